# -*- coding: utf-8 -*-
"""
Browser capability consumed by the scan pipeline.

The pipeline and every heuristic test only talk to ``BrowserSession``; the
Selenium implementation lives in ``selenium_session``.
"""

import asyncio
from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

from ..errors import NavigationError


@dataclass(frozen=True)
class DeviceProfile:
    name: str
    width: int
    height: int
    mobile: bool = False
    touch: bool = False
    device_scale_factor: float = 1.0
    user_agent: Optional[str] = None


DEVICE_PROFILES: Dict[str, DeviceProfile] = {
    "desktop": DeviceProfile("desktop", 1280, 800),
    "mobile": DeviceProfile(
        "mobile", 390, 844, mobile=True, touch=True, device_scale_factor=3.0,
        user_agent=(
            "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
            "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
        ),
    ),
    "tablet": DeviceProfile(
        "tablet", 1024, 768, mobile=True, touch=True, device_scale_factor=2.0,
        user_agent=(
            "Mozilla/5.0 (iPad; CPU OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
            "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
        ),
    ),
}


def get_device_profile(name: Optional[str]) -> DeviceProfile:
    """Return the named profile; unknown names fall back to desktop."""
    return DEVICE_PROFILES.get((name or "desktop").lower(), DEVICE_PROFILES["desktop"])


class BrowserSession(ABC):
    """One controllable page/tab.

    All methods are coroutines. Implementations serialize access to the
    underlying tab, so callers may issue calls from concurrently running
    tasks.
    """

    profile: DeviceProfile = DEVICE_PROFILES["desktop"]
    step_timeout: float = 3.0

    @abstractmethod
    async def navigate(self, url: str, timeout: float) -> None:
        """Load ``url``; raise ``NavigationError`` on failure or timeout."""

    @abstractmethod
    async def evaluate(self, script: str, *args: Any, timeout: Optional[float] = None) -> Any:
        """Run ``script`` in the page and return its JSON-compatible result."""

    @abstractmethod
    async def simulate_key_press(self, key: str) -> None:
        """Press ``key`` (``Tab``, ``Shift+Tab``, ``Escape``, ``Enter``) on the focused element."""

    @abstractmethod
    async def screenshot(self, timeout: Optional[float] = None) -> bytes:
        """Full-page PNG screenshot."""

    @abstractmethod
    async def set_viewport(self, profile: DeviceProfile) -> None:
        """Resize and re-emulate the page for ``profile``."""

    @abstractmethod
    async def page_source(self) -> str:
        ...

    @abstractmethod
    async def current_url(self) -> str:
        ...

    @abstractmethod
    async def close(self) -> None:
        ...

    async def sleep(self, seconds: float) -> None:
        """Let the page run for ``seconds`` (animations, timers)."""
        if seconds > 0:
            await asyncio.sleep(seconds)

    async def add_init_script(self, script: str) -> bool:
        """Register ``script`` to run before page scripts on every navigation.

        A script is registered at most once per session; repeating the call
        is a no-op. Sessions that cannot do this return False.
        """
        return False


SessionFactory = Callable[[DeviceProfile], Awaitable[BrowserSession]]


class SessionProvider(ABC):
    """Hands out sessions to pipeline runs."""

    @abstractmethod
    def acquire(self, profile: DeviceProfile):
        """Async context manager yielding a ``BrowserSession``."""

    async def close(self) -> None:
        return None


class FreshSessionProvider(SessionProvider):
    """A new session for every scan, closed when the scan ends."""

    def __init__(self, factory: SessionFactory):
        self.factory = factory

    @asynccontextmanager
    async def acquire(self, profile: DeviceProfile) -> AsyncIterator[BrowserSession]:
        try:
            session = await self.factory(profile)
        except NavigationError:
            raise
        except Exception as e:
            raise NavigationError(f"Browser session unavailable: {e}") from e
        try:
            yield session
        finally:
            await session.close()


class ReusableSessionProvider(SessionProvider):
    """One session reused sequentially (crawl mode).

    The session sits in an ``asyncio.Queue`` of size one, so overlapping
    callers wait for it instead of sharing the tab. Page-to-page state is reset
    by ``BrowserSession.navigate``.
    """

    def __init__(self, factory: SessionFactory):
        self.factory = factory
        self._pool: Optional[asyncio.Queue] = None
        self._session: Optional[BrowserSession] = None

    async def _ensure_session(self, profile: DeviceProfile) -> None:
        if self._pool is not None:
            return
        try:
            self._session = await self.factory(profile)
        except NavigationError:
            raise
        except Exception as e:
            raise NavigationError(f"Browser session unavailable: {e}") from e
        self._pool = asyncio.Queue(maxsize=1)
        await self._pool.put(self._session)

    @asynccontextmanager
    async def acquire(self, profile: DeviceProfile) -> AsyncIterator[BrowserSession]:
        await self._ensure_session(profile)
        session = await self._pool.get()
        try:
            yield session
        finally:
            await self._pool.put(session)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
        self._session = None
        self._pool = None
