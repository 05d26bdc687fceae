"""
Periodic Loop

Base class for the discovery and tracking loops. Each loop is a small state
machine:

    RUNNING       last cycle succeeded, next cycle after `interval_sec`
    COOLING_DOWN  last cycle failed, next cycle after `error_interval_sec`
    STOPPED       stop() was called or max_cycles was reached

Sleeps wait on a stop event, so shutdown interrupts a sleep right away.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Optional

logger = logging.getLogger(__name__)


class LoopState(Enum):
    """Lifecycle state of a periodic loop."""
    RUNNING = "running"
    COOLING_DOWN = "cooling_down"
    STOPPED = "stopped"


class PeriodicLoop:
    """
    Runs `run_cycle()` forever on a fixed cadence.

    A cycle that raises is logged and followed by the shorter error interval.
    Cycles of the same loop never overlap.
    """

    name = "loop"

    def __init__(self, interval_sec: float, error_interval_sec: float):
        self.interval_sec = interval_sec
        self.error_interval_sec = error_interval_sec

        self.state = LoopState.STOPPED
        self.cycles = 0
        self.failures = 0
        self.last_error: Optional[BaseException] = None
        self._stop_event = asyncio.Event()

    async def run_cycle(self) -> Any:
        raise NotImplementedError

    def stop(self):
        """Ask the loop to exit after the current cycle."""
        self._stop_event.set()

    @property
    def stopping(self) -> bool:
        return self._stop_event.is_set()

    def next_delay(self) -> float:
        """Delay before the next cycle given the current state."""
        if self.state == LoopState.COOLING_DOWN:
            return self.error_interval_sec
        return self.interval_sec

    async def run_once(self) -> Any:
        """
        Run a single cycle and update state.

        Returns:
            The cycle's result, or None if it failed
        """
        try:
            result = await self.run_cycle()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.failures += 1
            self.last_error = e
            self.state = LoopState.COOLING_DOWN
            logger.exception(
                f"[{self.name}] Cycle failed: {e}. "
                f"Retrying in {self.error_interval_sec:.0f}s"
            )
            return None
        finally:
            self.cycles += 1

        self.last_error = None
        self.state = LoopState.RUNNING
        return result

    async def run(self, max_cycles: Optional[int] = None):
        """
        Run cycles until stop() is called.

        Args:
            max_cycles: Exit after this many cycles (None = run forever)
        """
        logger.info(f"[{self.name}] Loop started")
        self.state = LoopState.RUNNING

        try:
            while not self.stopping:
                await self.run_once()

                if max_cycles is not None and self.cycles >= max_cycles:
                    break

                delay = self.next_delay()
                logger.debug(f"[{self.name}] Sleeping {delay:.0f}s")
                if await self._sleep(delay):
                    break
        finally:
            self.state = LoopState.STOPPED
            logger.info(f"[{self.name}] Loop stopped after {self.cycles} cycles")

    async def _sleep(self, delay: float) -> bool:
        """Sleep for `delay` seconds. Returns True if woken by stop()."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            return True
        except asyncio.TimeoutError:
            return False
