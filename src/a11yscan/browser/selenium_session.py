# -*- coding: utf-8 -*-
"""
Selenium/Chrome implementation of ``BrowserSession``.

Selenium calls block, so every call is pushed to a worker thread with
``asyncio.to_thread`` and serialized by an ``asyncio.Lock``: tasks sharing the
session interleave cooperatively but never drive the tab in parallel.
"""

import asyncio
import base64
import tempfile
from typing import Any, Callable, Optional, Set

from selenium import webdriver
from selenium.common.exceptions import TimeoutException, WebDriverException
from selenium.webdriver.chrome.options import Options as ChromeOptions
from selenium.webdriver.common.action_chains import ActionChains
from selenium.webdriver.common.keys import Keys

from ..errors import NavigationError
from ..utils.logging_config import get_logger
from .session import BrowserSession, DeviceProfile, DEVICE_PROFILES

logger = get_logger("browser")

KEY_MAP = {
    "tab": (Keys.TAB,),
    "shift+tab": (Keys.SHIFT, Keys.TAB),
    "escape": (Keys.ESCAPE,),
    "enter": (Keys.ENTER,),
    "space": (Keys.SPACE,),
}


def create_chrome_driver(profile: DeviceProfile, headless: bool = True) -> webdriver.Chrome:
    """Create a Chrome WebDriver sized for ``profile``."""
    options = ChromeOptions()
    if headless:
        options.add_argument("--headless=new")

    options.add_argument("--disable-gpu")
    options.add_argument("--no-sandbox")
    options.add_argument("--incognito")
    options.add_argument("--disable-dev-shm-usage")
    options.add_argument("--autoplay-policy=no-user-gesture-required")
    options.add_argument(f"--window-size={profile.width},{profile.height}")
    if profile.user_agent:
        options.add_argument(f"--user-agent={profile.user_agent}")

    temp_profile = tempfile.mkdtemp(prefix="a11yscan_")
    options.add_argument(f"--user-data-dir={temp_profile}")

    driver = webdriver.Chrome(options=options)
    driver.set_script_timeout(30)
    logger.debug(f"WebDriver created for profile {profile.name}.")
    return driver


class SeleniumBrowserSession(BrowserSession):

    def __init__(self, driver: webdriver.Chrome, profile: DeviceProfile = DEVICE_PROFILES["desktop"],
                 step_timeout: float = 3.0):
        self.driver = driver
        self.profile = profile
        self.step_timeout = step_timeout
        self._lock = asyncio.Lock()
        self._closed = False
        self._init_scripts: Set[str] = set()

    @classmethod
    async def create(cls, profile: DeviceProfile, headless: bool = True,
                     step_timeout: float = 3.0) -> "SeleniumBrowserSession":
        driver = await asyncio.to_thread(create_chrome_driver, profile, headless)
        return cls(driver, profile, step_timeout)

    @classmethod
    def factory(cls, headless: bool = True, step_timeout: float = 3.0) -> Callable:
        """Session factory suitable for the session providers."""
        async def _create(profile: DeviceProfile) -> "SeleniumBrowserSession":
            return await cls.create(profile, headless=headless, step_timeout=step_timeout)
        return _create

    async def _call(self, func: Callable, *args: Any, timeout: Optional[float] = None) -> Any:
        async with self._lock:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args),
                timeout if timeout is not None else self.step_timeout,
            )

    async def run_with_driver(self, func: Callable, timeout: Optional[float] = None) -> Any:
        """Run ``func(driver)`` under the session lock (libraries that need the raw WebDriver)."""
        return await self._call(func, self.driver, timeout=timeout)

    def _reset_state(self) -> None:
        try:
            self.driver.execute_cdp_cmd("Network.clearBrowserCookies", {})
        except WebDriverException as e:
            logger.debug(f"CDP cookie reset unavailable: {e}")
            self.driver.delete_all_cookies()
        self.driver.get("about:blank")

    def _load(self, url: str, timeout: float) -> None:
        self._reset_state()
        self.driver.set_page_load_timeout(timeout)
        self.driver.get(url)

    async def navigate(self, url: str, timeout: float) -> None:
        logger.info(f"Navigating to {url} (timeout {timeout}s)")
        try:
            # the driver enforces the page-load timeout; the outer bound covers a hung driver
            await self._call(self._load, url, timeout, timeout=timeout + 5)
        except (TimeoutException, asyncio.TimeoutError) as e:
            raise NavigationError(f"Page load timed out after {timeout}s", url, timed_out=True) from e
        except WebDriverException as e:
            raise NavigationError(f"Page load failed: {e.msg or e}", url) from e

    async def evaluate(self, script: str, *args: Any, timeout: Optional[float] = None) -> Any:
        return await self._call(self.driver.execute_script, script, *args, timeout=timeout)

    def _press(self, key: str) -> None:
        keys = KEY_MAP.get(key.lower())
        if keys is None:
            raise ValueError(f"Unsupported key: {key}")
        actions = ActionChains(self.driver)
        if len(keys) == 2:
            actions.key_down(keys[0]).send_keys(keys[1]).key_up(keys[0])
        else:
            actions.send_keys(keys[0])
        actions.perform()

    async def simulate_key_press(self, key: str) -> None:
        await self._call(self._press, key)

    def _full_page_screenshot(self) -> bytes:
        try:
            result = self.driver.execute_cdp_cmd(
                "Page.captureScreenshot",
                {"format": "png", "captureBeyondViewport": True},
            )
            return base64.b64decode(result["data"])
        except WebDriverException as e:
            logger.debug(f"Full-page capture unavailable, using viewport screenshot: {e}")
            return self.driver.get_screenshot_as_png()

    async def screenshot(self, timeout: Optional[float] = None) -> bytes:
        return await self._call(self._full_page_screenshot, timeout=timeout)

    def _apply_profile(self, profile: DeviceProfile) -> None:
        self.driver.set_window_size(profile.width, profile.height)
        self.driver.execute_cdp_cmd("Emulation.setDeviceMetricsOverride", {
            "width": profile.width,
            "height": profile.height,
            "deviceScaleFactor": profile.device_scale_factor,
            "mobile": profile.mobile,
        })
        self.driver.execute_cdp_cmd("Emulation.setTouchEmulationEnabled", {"enabled": profile.touch})
        if profile.user_agent:
            self.driver.execute_cdp_cmd("Emulation.setUserAgentOverride", {"userAgent": profile.user_agent})

    async def set_viewport(self, profile: DeviceProfile) -> None:
        await self._call(self._apply_profile, profile)
        self.profile = profile

    async def page_source(self) -> str:
        return await self._call(lambda: self.driver.page_source)

    async def current_url(self) -> str:
        return await self._call(lambda: self.driver.current_url)

    async def add_init_script(self, script: str) -> bool:
        if script in self._init_scripts:
            return True
        try:
            await self._call(
                self.driver.execute_cdp_cmd,
                "Page.addScriptToEvaluateOnNewDocument",
                {"source": script},
            )
            self._init_scripts.add(script)
            return True
        except WebDriverException as e:
            logger.warning(f"Cannot register init script: {e}")
            return False

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            await asyncio.to_thread(self.driver.quit)
            logger.debug("WebDriver closed.")
        except WebDriverException as e:
            logger.warning(f"Error closing WebDriver: {e}")
