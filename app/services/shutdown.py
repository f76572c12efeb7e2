"""
Shutdown coordination: races the interrupt and termination triggers and
fires exactly once for whichever arrives first.
"""
from enum import Enum
from typing import Optional, Protocol
import asyncio
import logging
import os
import signal

logger = logging.getLogger(__name__)


class ShutdownRegistrationError(RuntimeError):
    """Raised when a signal observer cannot be installed at startup"""


class ShutdownState(str, Enum):
    ARMED = "armed"
    FIRED = "fired"


class ShutdownTrigger(Protocol):
    name: str

    def arm(self, loop: asyncio.AbstractEventLoop) -> None: ...

    async def wait(self) -> None: ...

    def disarm(self) -> None: ...


class RealTrigger:
    """Completes when the process receives `signum`"""

    def __init__(self, signum: int, name: str):
        self.signum = signum
        self.name = name
        self._event: Optional[asyncio.Event] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._previous_handler = None
        self._uses_loop_handler = False

    def arm(self, loop: asyncio.AbstractEventLoop) -> None:
        self._event = asyncio.Event()
        try:
            loop.add_signal_handler(self.signum, self._event.set)
            self._uses_loop_handler = True
        except NotImplementedError:
            # Windows loops have no add_signal_handler
            self._previous_handler = signal.signal(self.signum, self._on_signal)
            self._uses_loop_handler = False
        self._loop = loop

    def _on_signal(self, signum, frame):
        self._loop.call_soon_threadsafe(self._event.set)

    async def wait(self) -> None:
        if self._event is None:
            raise RuntimeError(f"{self.name} trigger is not armed")
        await self._event.wait()

    def disarm(self) -> None:
        if self._loop is None:
            return
        if self._uses_loop_handler:
            if not self._loop.is_closed():
                self._loop.remove_signal_handler(self.signum)
        else:
            signal.signal(self.signum, self._previous_handler)
        self._loop = None
        self._previous_handler = None


class NeverTrigger:
    """Placeholder for a signal the platform cannot deliver; never completes"""

    def __init__(self, name: str):
        self.name = name

    def arm(self, loop: asyncio.AbstractEventLoop) -> None:
        pass

    async def wait(self) -> None:
        await asyncio.Event().wait()

    def disarm(self) -> None:
        pass


def interrupt_trigger() -> RealTrigger:
    return RealTrigger(signal.SIGINT, "interrupt")


def termination_trigger() -> ShutdownTrigger:
    """SIGTERM where the platform delivers it separately from SIGINT"""
    if os.name == "posix":
        return RealTrigger(signal.SIGTERM, "terminate")
    return NeverTrigger("terminate")


class ShutdownCoordinator:
    def __init__(
        self,
        interrupt: Optional[ShutdownTrigger] = None,
        terminate: Optional[ShutdownTrigger] = None,
    ):
        self.triggers = [
            interrupt if interrupt is not None else interrupt_trigger(),
            terminate if terminate is not None else termination_trigger(),
        ]
        self._armed = []
        self._race: Optional[asyncio.Task] = None
        self._fired_by: Optional[str] = None

    @property
    def state(self) -> ShutdownState:
        return ShutdownState.FIRED if self._fired_by is not None else ShutdownState.ARMED

    @property
    def fired(self) -> bool:
        return self._fired_by is not None

    @property
    def fired_by(self) -> Optional[str]:
        return self._fired_by

    @property
    def is_armed(self) -> bool:
        return bool(self._armed)

    def arm(self) -> None:
        """Register every trigger on the running loop"""
        if self._armed:
            return
        loop = asyncio.get_running_loop()
        for trigger in self.triggers:
            try:
                trigger.arm(loop)
            except (ValueError, OSError, RuntimeError, NotImplementedError) as e:
                self.disarm()
                raise ShutdownRegistrationError(
                    f"Failed to install {trigger.name} shutdown handler: {e}"
                ) from e
            self._armed.append(trigger)
            logger.debug(f"Armed {trigger.name} shutdown trigger")

    def disarm(self) -> None:
        """Release every signal registration; safe to call repeatedly"""
        if self._race is not None and not self._race.done():
            self._race.cancel()
            self._race = None
        while self._armed:
            self._armed.pop().disarm()

    async def wait(self) -> str:
        """Wait until the first trigger fires and return its name"""
        if self._fired_by is not None:
            return self._fired_by
        if self._race is None:
            if not self._armed:
                raise RuntimeError("Shutdown coordinator is not armed")
            self._race = asyncio.ensure_future(self._run_race())
        return await asyncio.shield(self._race)

    async def _run_race(self) -> str:
        waiters = {
            asyncio.ensure_future(trigger.wait()): trigger.name
            for trigger in self.triggers
        }
        try:
            done, pending = await asyncio.wait(
                waiters, return_when=asyncio.FIRST_COMPLETED
            )
        except asyncio.CancelledError:
            await self._drop(waiters)
            raise
        await self._drop(pending)
        # Simultaneous completions resolve in trigger order
        winner = next(name for task, name in waiters.items() if task in done)
        self._fired_by = winner
        return winner

    @staticmethod
    async def _drop(tasks) -> None:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def __enter__(self):
        self.arm()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.disarm()
        return False
