"""Playwright browser lifecycle for a test run."""

from __future__ import annotations

import logging
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from playwright.async_api import async_playwright

logger = logging.getLogger(__name__)


@dataclass
class BrowserSession:
    """Holds the Playwright objects backing one run.

    ``browser`` is ``None`` for a persistent context, which owns its own
    browser process.
    """

    playwright: Any
    context: Any
    browser: Any = None
    user_data_dir: Optional[str] = None

    async def close(self) -> None:
        try:
            await self.context.close()
        finally:
            try:
                if self.browser is not None:
                    await self.browser.close()
            finally:
                await self.playwright.stop()


def build_launch_args(settings: Dict[str, Any]) -> List[str]:
    browser_cfg = settings.get("browser", {})
    args = [str(item) for item in browser_cfg.get("launch_args") or []]
    extension_path = browser_cfg.get("extension_path")
    if extension_path:
        resolved = str(Path(extension_path).resolve())
        args.extend(
            [
                f"--disable-extensions-except={resolved}",
                f"--load-extension={resolved}",
            ]
        )
    return args


async def launch_browser(settings: Dict[str, Any] | None = None) -> BrowserSession:
    """Start Chromium and return a session whose ``context`` the scheduler drives.

    Loading an extension requires a persistent context, so when
    ``browser.extension_path`` is set the profile lives in
    ``browser.user_data_dir`` (or a fresh temporary directory).
    """

    resolved = settings or {}
    browser_cfg = resolved.get("browser", {})
    headless = bool(browser_cfg.get("headless", True))
    slow_mo = int(browser_cfg.get("slow_mo", 0))
    extension_path = browser_cfg.get("extension_path")
    if extension_path and not Path(extension_path).exists():
        raise FileNotFoundError(f"Extension path not found: {extension_path}")

    args = build_launch_args(resolved)
    playwright = await async_playwright().start()
    try:
        if extension_path:
            user_data_dir = browser_cfg.get("user_data_dir") or tempfile.mkdtemp(prefix="webtest-profile-")
            Path(user_data_dir).mkdir(parents=True, exist_ok=True)
            context = await playwright.chromium.launch_persistent_context(
                str(user_data_dir),
                headless=headless,
                slow_mo=slow_mo,
                args=args,
            )
            logger.info("Chromium launched with extension %s (profile %s)", extension_path, user_data_dir)
            return BrowserSession(playwright=playwright, context=context, user_data_dir=str(user_data_dir))

        browser = await playwright.chromium.launch(headless=headless, slow_mo=slow_mo, args=args)
        context = await browser.new_context()
        logger.info("Chromium launched (headless=%s)", headless)
        return BrowserSession(playwright=playwright, context=context, browser=browser)
    except Exception:
        await playwright.stop()
        raise


__all__ = ["BrowserSession", "build_launch_args", "launch_browser"]
