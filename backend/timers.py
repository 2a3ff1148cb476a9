"""
Timer multiplexer for the simulation streams.

Every repeating or one-shot timer the engine uses (economy tick, event roll,
event countdown, leak drain, delayed alerts) is a named asyncio task held
here, so each one can be started, replaced and cancelled on its own.
"""

import asyncio
from typing import Callable, Dict, List

from logger import setup_logger

logger = setup_logger("timers")


class TimerMultiplexer:
    """Named repeating and one-shot timers backed by asyncio tasks."""

    def __init__(self):
        self._tasks: Dict[str, asyncio.Task] = {}

    def start_repeating(self, name: str, interval: float, callback: Callable[[], None]) -> asyncio.Task:
        """Call `callback` every `interval` seconds until cancelled.

        A timer already running under the same name is cancelled first.
        """
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval}")
        self.cancel(name)
        task = asyncio.get_running_loop().create_task(self._run_repeating(name, interval, callback))
        self._tasks[name] = task
        logger.debug(f"Repeating timer '{name}' started ({interval}s)")
        return task

    def start_once(self, name: str, delay: float, callback: Callable[[], None]) -> asyncio.Task:
        """Call `callback` once after `delay` seconds unless cancelled first."""
        self.cancel(name)
        task = asyncio.get_running_loop().create_task(self._run_once(name, delay, callback))
        self._tasks[name] = task
        logger.debug(f"One-shot timer '{name}' scheduled in {delay}s")
        return task

    def cancel(self, name: str) -> bool:
        """Cancel a timer by name. Returns True if one was running."""
        task = self._tasks.pop(name, None)
        if task is None:
            return False
        if not task.done():
            task.cancel()
            logger.debug(f"Timer '{name}' cancelled")
            return True
        return False

    def cancel_all(self) -> None:
        for name in list(self._tasks):
            self.cancel(name)

    def is_active(self, name: str) -> bool:
        task = self._tasks.get(name)
        return task is not None and not task.done()

    def active_names(self) -> List[str]:
        return sorted(name for name, task in self._tasks.items() if not task.done())

    async def _run_repeating(self, name: str, interval: float, callback: Callable[[], None]):
        while True:
            try:
                await asyncio.sleep(interval)
                callback()
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in timer '{name}': {e}")

    async def _run_once(self, name: str, delay: float, callback: Callable[[], None]):
        try:
            await asyncio.sleep(delay)
        except asyncio.CancelledError:
            return
        # drop our own handle before the callback so it may reschedule the name
        if self._tasks.get(name) is asyncio.current_task():
            del self._tasks[name]
        try:
            callback()
        except Exception as e:
            logger.error(f"Error in timer '{name}': {e}")
