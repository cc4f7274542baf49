"""
apn_session.py

What this module does
- Owns the Playwright driver, the browser process and the single browsing
  context of one client instance.
- Hands out short-lived pages, one per workflow, and closes them afterwards.

Why it matters
- One explicit owner for the browser state instead of closures shared by every
  workflow. Pages no longer leak between calls.

Behavior summary
- `start()`: launches driver + browser + context once; later calls do nothing.
- `page()`: context manager yielding a fresh page in the shared context.
- `close()`: closes the browser and stops the driver. Safe to call multiple times.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

from playwright.sync_api import Page, sync_playwright

from apn_client.utils.errors import BrowserLaunchError
from apn_client.utils.logger import get_logger

logger = get_logger(__name__)

BROWSER_ENGINES = ("chromium", "firefox", "webkit")


class PortalSession:
    def __init__(
        self,
        *,
        browser_engine: str = "chromium",
        launch_options: dict[str, Any] | None = None,
        context_options: dict[str, Any] | None = None,
        default_timeout_ms: int | None = None,
        playwright_factory: Callable[[], Any] = sync_playwright,
    ) -> None:
        if browser_engine not in BROWSER_ENGINES:
            raise ValueError(
                f"Unknown browser engine {browser_engine!r}; expected one of {', '.join(BROWSER_ENGINES)}"
            )
        self.browser_engine = browser_engine
        self.launch_options = dict(launch_options or {})
        self.context_options = dict(context_options or {})
        self.default_timeout_ms = default_timeout_ms

        self._playwright_factory = playwright_factory
        self._pw = None
        self._browser = None
        self._context = None

    # -------------------- Lifecycle --------------------

    @property
    def is_started(self) -> bool:
        return self._context is not None

    @property
    def is_launched(self) -> bool:
        """True while a driver or browser is held, even if the context never opened."""
        return self._pw is not None or self._browser is not None

    def start(self) -> None:
        """
        What it does:
        - Starts Playwright, launches the configured browser and opens one context.

        Behavior:
        - No-op when already started (the context and its cookies are reused).
        - If the browser binaries are missing Playwright raises; that surfaces as
          BrowserLaunchError with the install hint.
        """
        if self._context is not None:
            return

        logger.info("Launching %s browser", self.browser_engine)
        self._pw = self._playwright_factory().start()
        try:
            browser_type = getattr(self._pw, self.browser_engine)
            self._browser = browser_type.launch(**self.launch_options)
        except Exception as e:
            self.close()
            raise BrowserLaunchError(
                f"Failed to launch Playwright {self.browser_engine}.\n"
                "If this is the first time on this machine, run:\n\n"
                f"  playwright install {self.browser_engine}\n",
                original_exception=e,
            ) from e

        try:
            self._context = self._browser.new_context(**self.context_options)
        except Exception as e:
            self.close()
            raise BrowserLaunchError(
                f"Failed to open a {self.browser_engine} browser context: {e}",
                original_exception=e,
            ) from e

    def close(self) -> None:
        """
        What it does:
        - Closes the browser (and with it the context and any open pages), then
          stops Playwright.

        Behavior:
        - Safe to call multiple times; the browser is closed exactly once.
        """
        try:
            if self._browser:
                logger.info("Closing %s browser", self.browser_engine)
                self._browser.close()
        finally:
            self._browser = None
            self._context = None

        try:
            if self._pw:
                self._pw.stop()
        finally:
            self._pw = None

    # -------------------- Pages --------------------

    @contextmanager
    def page(self) -> Iterator[Page]:
        if self._context is None:
            raise RuntimeError("Browser context not initialized. Did start() run?")

        page = self._context.new_page()
        if self.default_timeout_ms is not None:
            page.set_default_timeout(self.default_timeout_ms)
        try:
            yield page
        finally:
            try:
                page.close()
            except Exception as e:
                logger.debug("Ignoring error while closing page: %s", e)
