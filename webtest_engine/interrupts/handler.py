"""Detect and resolve wallet-extension popups opened by a step."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Sequence, Set

from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from webtest_engine.core.types import ContextLike, PageLike

from . import patterns
from .classifier import PatternPopupClassifier, PopupClassifier, unreadable_popup
from .types import NO_POPUP, InterruptResult, PopupClassification, PopupKind

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]

_TEXT_SCRIPT = "() => document.body ? document.body.innerText : ''"
_HTML_SCRIPT = "() => document.body ? document.body.innerHTML : ''"
_TIMEOUTS = (PlaywrightTimeoutError, asyncio.TimeoutError)


class InterruptHandler:
    """Finds a side-channel popup in a browsing context and approves or rejects it.

    The popup page is owned by a single :meth:`handle` call and is closed before
    the call returns. One handler serves every concurrently running task, so a
    page is claimed the moment it is found and other calls skip claimed pages.
    Pages that do not look like a wallet popup are left alone.
    """

    def __init__(
        self,
        *,
        settings: Dict[str, Any] | None = None,
        classifier: PopupClassifier | None = None,
        sleep_fn: SleepFn | None = None,
    ) -> None:
        cfg = (settings or {}).get("interrupts", {})
        self.enabled = bool(cfg.get("enabled", True))
        self.settle_ms = int(cfg.get("settle_ms", 300))
        self.wait_timeout_ms = int(cfg.get("wait_timeout_ms", 3000))
        self.ready_timeout_ms = int(cfg.get("ready_timeout_ms", 2000))
        self.close_timeout_ms = int(cfg.get("close_timeout_ms", 3000))
        self.click_timeout_ms = int(cfg.get("click_timeout_ms", 5000))
        self.probe_timeout_ms = int(cfg.get("probe_timeout_ms", 5000))
        self.min_content_chars = int(cfg.get("min_content_chars", 50))
        self.url_markers: Sequence[str] = tuple(cfg.get("url_markers") or ("notification", "popup", "confirm"))
        self.extension_id: Optional[str] = cfg.get("extension_id")
        self.classifier: PopupClassifier = classifier or PatternPopupClassifier()
        self._sleep = sleep_fn or asyncio.sleep
        self._claimed: Set[Any] = set()
        self._probing = False

    async def handle(
        self,
        context: ContextLike,
        policy: str = "approve",
        wait_timeout_ms: Optional[int] = None,
    ) -> InterruptResult:
        if policy == "ignore" or not self.enabled:
            return NO_POPUP

        if self.settle_ms > 0:
            await self._sleep(self.settle_ms / 1000)

        popup = await self.find_popup(context, wait_timeout_ms or self.wait_timeout_ms)
        if popup is None:
            return NO_POPUP

        try:
            await self._await_interactive(popup)
            classification = await self.classify(popup)
            logger.info(
                "Wallet popup detected: kind=%s subtype=%s error=%s",
                classification.kind.value,
                classification.subtype,
                classification.error_kind,
            )
            return await self._resolve(popup, classification, policy)
        finally:
            await self._release(popup)

    async def find_popup(self, context: ContextLike, timeout_ms: int) -> Optional[PageLike]:
        """Return an open popup, a probed notification page, or one that opens in time."""

        self._discover_extension_id(context)
        for page in list(context.pages):
            if page in self._claimed or _closed(page):
                continue
            if self.is_side_channel_url(page.url):
                self._claimed.add(page)
                return page

        probed = await self._probe_notification_page(context)
        if probed is not None:
            return probed

        try:
            page = await context.wait_for_event(
                "page",
                predicate=lambda candidate: candidate not in self._claimed and self.is_side_channel_url(candidate.url),
                timeout=timeout_ms,
            )
        except _TIMEOUTS:
            return None
        except Exception:  # noqa: BLE001 - a missing popup is not a failure
            logger.debug("waiting for popup page failed", exc_info=True)
            return None
        if page in self._claimed:
            logger.debug("popup %s already taken by another step", page.url)
            return None
        self._claimed.add(page)
        return page

    def is_side_channel_url(self, url: Optional[str]) -> bool:
        if not url or not url.startswith(patterns.EXTENSION_SCHEME):
            return False
        return any(marker in url for marker in self.url_markers)

    async def classify(self, popup: PageLike) -> PopupClassification:
        try:
            text = await popup.evaluate(_TEXT_SCRIPT)
            html = await popup.evaluate(_HTML_SCRIPT)
        except Exception as exc:  # noqa: BLE001 - unreadable popups classify as errors
            return unreadable_popup(str(exc))
        return self.classifier.classify(str(text or ""), str(html or ""))

    async def click_first(self, popup: PageLike, selectors: Iterable[str]) -> Optional[str]:
        """Click the first visible and enabled match; return its selector."""

        for selector in selectors:
            try:
                button = await popup.query_selector(selector)
                if button is None:
                    continue
                if not (await button.is_visible() and await button.is_enabled()):
                    continue
                try:
                    await button.scroll_into_view_if_needed()
                except Exception:  # noqa: BLE001 - scrolling is cosmetic
                    pass
                await button.click(timeout=self.click_timeout_ms)
                return selector
            except Exception:  # noqa: BLE001 - try the next candidate
                logger.debug("popup button %s not clickable", selector, exc_info=True)
        return None

    async def _resolve(
        self,
        popup: PageLike,
        classification: PopupClassification,
        policy: str,
    ) -> InterruptResult:
        if classification.has_error:
            selector = await self.click_first(popup, patterns.REJECT_BUTTONS)
            logger.warning("Rejected failing wallet request: %s", classification.error_text)
            return InterruptResult(
                has_popup=True,
                kind=classification.kind,
                subtype=classification.subtype,
                action="rejected",
                success=False,
                test_failed=True,
                error=classification.error_text,
                error_kind=classification.error_kind,
                selector=selector,
            )

        if policy == "reject":
            selector = await self.click_first(popup, patterns.REJECT_BUTTONS)
            return InterruptResult(
                has_popup=True,
                kind=classification.kind,
                subtype=classification.subtype,
                action="rejected",
                success=selector is not None,
                selector=selector,
            )

        selectors = patterns.APPROVE_BUTTONS.get(classification.kind.value, patterns.TRANSACTION_APPROVE_BUTTONS)
        selector = await self.click_first(popup, selectors)
        if selector is not None:
            await self._await_close(popup)
        return InterruptResult(
            has_popup=True,
            kind=classification.kind,
            subtype=classification.subtype,
            action="approved",
            success=selector is not None,
            selector=selector,
        )

    async def _await_interactive(self, popup: PageLike) -> None:
        try:
            await popup.wait_for_load_state("domcontentloaded", timeout=self.ready_timeout_ms)
        except Exception:  # noqa: BLE001 - classify whatever has rendered so far
            logger.debug("popup did not reach domcontentloaded", exc_info=True)
        try:
            await popup.wait_for_selector("button", timeout=self.ready_timeout_ms)
        except Exception:  # noqa: BLE001
            logger.debug("popup rendered no button in time", exc_info=True)

    async def _await_close(self, popup: PageLike) -> None:
        if _closed(popup):
            return
        try:
            await popup.wait_for_event("close", timeout=self.close_timeout_ms)
        except Exception:  # noqa: BLE001 - a lingering popup is not a failure
            logger.debug("popup stayed open after approval")

    async def _release(self, popup: PageLike) -> None:
        self._claimed.discard(popup)
        if _closed(popup):
            return
        try:
            await popup.close()
        except Exception:  # noqa: BLE001
            logger.debug("popup close failed", exc_info=True)

    async def _probe_notification_page(self, context: ContextLike) -> Optional[PageLike]:
        # Another call holding a popup means the pending request is already being worked.
        if not self.extension_id or self._claimed or self._probing:
            return None
        url = f"{patterns.EXTENSION_SCHEME}{self.extension_id}/{patterns.NOTIFICATION_PATH}"
        self._probing = True
        try:
            try:
                probe = await context.new_page()
            except Exception:  # noqa: BLE001 - probing is optional
                logger.debug("could not open notification probe page", exc_info=True)
                return None
            if probe in self._claimed:
                return None
            self._claimed.add(probe)
            try:
                await probe.goto(url, wait_until="domcontentloaded", timeout=self.probe_timeout_ms)
                try:
                    await probe.wait_for_selector("button", timeout=self.ready_timeout_ms)
                except Exception:  # noqa: BLE001
                    pass
                text = await probe.evaluate(_TEXT_SCRIPT)
                if len(str(text or "")) > self.min_content_chars:
                    return probe
            except Exception:  # noqa: BLE001 - no pending request behind the notification page
                logger.debug("notification probe failed for %s", url, exc_info=True)
            await self._release(probe)
            return None
        finally:
            self._probing = False

    def _discover_extension_id(self, context: ContextLike) -> None:
        if self.extension_id:
            return
        for page in list(context.pages):
            url = page.url or ""
            if url.startswith(patterns.EXTENSION_SCHEME):
                self.extension_id = url[len(patterns.EXTENSION_SCHEME):].split("/", 1)[0] or None
                if self.extension_id:
                    logger.info("Wallet extension id detected: %s", self.extension_id)
                    return


def _closed(page: PageLike) -> bool:
    try:
        return bool(page.is_closed())
    except Exception:  # noqa: BLE001
        return True


__all__ = ["InterruptHandler"]
