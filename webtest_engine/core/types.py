"""Shared type declarations for the test engine."""

from __future__ import annotations

from typing import Any, Protocol, Sequence


class PageLike(Protocol):
    """Subset of the Playwright ``Page`` API the engine drives."""

    url: str

    async def goto(self, url: str, **kwargs: Any) -> Any: ...

    async def click(self, selector: str, **kwargs: Any) -> None: ...

    async def fill(self, selector: str, value: str, **kwargs: Any) -> None: ...

    async def select_option(self, selector: str, value: Any, **kwargs: Any) -> Any: ...

    async def check(self, selector: str, **kwargs: Any) -> None: ...

    async def uncheck(self, selector: str, **kwargs: Any) -> None: ...

    async def wait_for_timeout(self, timeout: float) -> None: ...

    async def wait_for_selector(self, selector: str, **kwargs: Any) -> Any: ...

    async def screenshot(self, **kwargs: Any) -> bytes: ...

    async def evaluate(self, expression: str, arg: Any = None) -> Any: ...

    async def type(self, selector: str, text: str, **kwargs: Any) -> None: ...

    async def hover(self, selector: str, **kwargs: Any) -> None: ...

    async def press(self, selector: str, key: str, **kwargs: Any) -> None: ...

    async def wait_for_load_state(self, state: str = "load", **kwargs: Any) -> None: ...

    async def wait_for_event(self, event: str, **kwargs: Any) -> Any: ...

    async def query_selector(self, selector: str) -> Any: ...

    def is_closed(self) -> bool: ...

    async def close(self) -> None: ...


class ContextLike(Protocol):
    """Subset of the Playwright ``BrowserContext`` API the engine drives."""

    @property
    def pages(self) -> Sequence[PageLike]: ...

    async def new_page(self) -> PageLike: ...

    async def wait_for_event(self, event: str, **kwargs: Any) -> Any: ...
