"""Automation surface used by the interpreter to control a browser.

The interpreter only depends on the :class:`AutomationSurface` and
:class:`ElementHandle` protocols.  :class:`PlaywrightSurface` implements them on
top of Playwright's async API; any other object with the same coroutine methods
can be passed to :class:`wayang.runner.Runner` instead.
"""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional, Protocol, Sequence

from playwright.async_api import (
    Browser,
    BrowserContext,
    ElementHandle as PlaywrightElementHandle,
    Error as PlaywrightError,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)

if TYPE_CHECKING:  # pragma: no cover
    from .config import RunConfig

log = logging.getLogger(__name__)


class SurfaceError(Exception):
    """Raised by a surface when a browser operation fails."""

    def __init__(self, message: str, *, operation: str = "", details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.operation = operation
        self.details = details or {}


class ElementNotFound(SurfaceError):
    def __init__(self, selector: str, message: str | None = None) -> None:
        super().__init__(
            message or f"no element matches {selector!r}",
            operation="query_one",
            details={"selector": selector},
        )
        self.selector = selector


class ElementHandle(Protocol):
    async def attribute(self, name: str) -> Optional[str]: ...

    async def html(self) -> str: ...

    async def text(self) -> str: ...

    async def visible(self) -> bool: ...

    async def click(self) -> None: ...

    async def focus(self) -> None: ...

    async def blur(self) -> None: ...

    async def input(self, text: str) -> None: ...

    async def press(self, key: str) -> None: ...

    async def select_all_text(self) -> None: ...

    async def scroll_into_view(self) -> None: ...

    async def evaluate(self, expression: str) -> Any: ...

    async def wait_visible(self) -> None: ...

    async def wait_invisible(self) -> None: ...

    async def wait_stable(self) -> None: ...


class AutomationSurface(Protocol):
    async def navigate(self, url: str) -> None: ...

    async def evaluate(self, expression: str) -> Any: ...

    async def wait_load(self) -> None: ...

    async def wait_network_idle(self) -> None: ...

    async def keyboard_press(self, key: str) -> None: ...

    async def keyboard_insert_text(self, text: str) -> None: ...

    async def query_all(self, selector: str) -> Sequence[ElementHandle]: ...

    async def query_one(self, selector: str) -> ElementHandle: ...

    async def close(self) -> None: ...


# Playwright key names, looked up case-insensitively.
NAMED_KEYS = (
    "Backspace",
    "Tab",
    "Enter",
    "Shift",
    "Control",
    "Alt",
    "Meta",
    "CapsLock",
    "Escape",
    "Space",
    "PageUp",
    "PageDown",
    "End",
    "Home",
    "ArrowLeft",
    "ArrowUp",
    "ArrowRight",
    "ArrowDown",
    "Insert",
    "Delete",
    "F1",
    "F2",
    "F3",
    "F4",
    "F5",
    "F6",
    "F7",
    "F8",
    "F9",
    "F10",
    "F11",
    "F12",
)
_KEY_LOOKUP = {name.lower(): name for name in NAMED_KEYS}
_KEY_LOOKUP.update({"esc": "Escape", "return": "Enter", "del": "Delete", "ctrl": "Control", " ": "Space"})


def normalize_key(key: str) -> str:
    """Map a user supplied key to a Playwright key name.

    Single characters are kept verbatim; named keys match case-insensitively and
    combinations such as ``ctrl+a`` are normalised part by part.
    """

    if len(key) == 1:
        return _KEY_LOOKUP.get(key, key)
    if "+" in key.strip("+"):
        return "+".join(normalize_key(part) for part in key.split("+"))
    return _KEY_LOOKUP.get(key.lower(), key)


_TEXT_SCRIPT = """
    (el) => {
        if (el instanceof HTMLInputElement || el instanceof HTMLTextAreaElement || el instanceof HTMLSelectElement) {
            return el.value;
        }
        return el.innerText;
    }
"""


@contextlib.contextmanager
def _translate_errors(operation: str, **details: Any) -> Iterator[None]:
    try:
        yield
    except PlaywrightError as exc:
        message = str(exc).splitlines()[0] if str(exc) else operation
        raise SurfaceError(message, operation=operation, details=details) from exc


class PlaywrightElement:
    """:class:`ElementHandle` backed by a Playwright element handle."""

    def __init__(self, handle: PlaywrightElementHandle, *, timeout_ms: int = 10_000, wait_timeout_ms: int = 30_000) -> None:
        self.handle = handle
        self._timeout = timeout_ms
        self._wait_timeout = wait_timeout_ms

    async def attribute(self, name: str) -> Optional[str]:
        with _translate_errors("attribute", name=name):
            return await self.handle.get_attribute(name)

    async def html(self) -> str:
        with _translate_errors("html"):
            return await self.handle.evaluate("(el) => el.outerHTML")

    async def text(self) -> str:
        with _translate_errors("text"):
            return await self.handle.evaluate(_TEXT_SCRIPT)

    async def visible(self) -> bool:
        with _translate_errors("visible"):
            return await self.handle.is_visible()

    async def click(self) -> None:
        with _translate_errors("click"):
            await self.handle.click(timeout=self._timeout)

    async def focus(self) -> None:
        with _translate_errors("focus"):
            await self.handle.focus()

    async def blur(self) -> None:
        with _translate_errors("blur"):
            await self.handle.evaluate("(el) => el.blur()")

    async def input(self, text: str) -> None:
        with _translate_errors("input", text=text):
            await self.handle.fill(text, timeout=self._timeout)

    async def press(self, key: str) -> None:
        with _translate_errors("press", key=key):
            await self.handle.press(key, timeout=self._timeout)

    async def select_all_text(self) -> None:
        with _translate_errors("select_all_text"):
            await self.handle.select_text(timeout=self._timeout)

    async def scroll_into_view(self) -> None:
        with _translate_errors("scroll_into_view"):
            await self.handle.scroll_into_view_if_needed(timeout=self._timeout)

    async def evaluate(self, expression: str) -> Any:
        with _translate_errors("evaluate", expression=expression):
            return await self.handle.evaluate(expression)

    async def wait_visible(self) -> None:
        with _translate_errors("wait_visible"):
            await self.handle.wait_for_element_state("visible", timeout=self._wait_timeout)

    async def wait_invisible(self) -> None:
        with _translate_errors("wait_invisible"):
            await self.handle.wait_for_element_state("hidden", timeout=self._wait_timeout)

    async def wait_stable(self) -> None:
        with _translate_errors("wait_stable"):
            await self.handle.wait_for_element_state("stable", timeout=self._wait_timeout)


class PlaywrightSurface:
    """:class:`AutomationSurface` driving a single Playwright page."""

    def __init__(
        self,
        page: Page,
        *,
        browser: Browser | None = None,
        context: BrowserContext | None = None,
        playwright: Playwright | None = None,
        action_timeout_ms: int = 10_000,
        navigation_timeout_ms: int = 30_000,
        wait_timeout_ms: int = 30_000,
    ) -> None:
        self.page = page
        self.browser = browser
        self.context = context
        self.playwright = playwright
        self.action_timeout_ms = action_timeout_ms
        self.navigation_timeout_ms = navigation_timeout_ms
        self.wait_timeout_ms = wait_timeout_ms

    @classmethod
    async def launch(cls, config: "RunConfig") -> "PlaywrightSurface":
        """Start Chromium (or attach over CDP) and open a fresh page."""

        playwright = await async_playwright().start()
        try:
            chromium = playwright.chromium
            if config.cdp_url:
                browser = await chromium.connect_over_cdp(config.cdp_url)
            else:
                browser = await chromium.launch(headless=config.headless)
            context = await browser.new_context()
            page = await context.new_page()
        except Exception:
            log.exception("Browser initialisation failed")
            await playwright.stop()
            raise
        log.info("Browser ready (headless=%s, cdp=%s)", config.headless, bool(config.cdp_url))
        return cls(
            page,
            browser=browser,
            context=context,
            playwright=playwright,
            action_timeout_ms=config.action_timeout_ms,
            navigation_timeout_ms=config.navigation_timeout_ms,
            wait_timeout_ms=config.wait_timeout_ms,
        )

    def _wrap(self, handle: PlaywrightElementHandle) -> PlaywrightElement:
        return PlaywrightElement(handle, timeout_ms=self.action_timeout_ms, wait_timeout_ms=self.wait_timeout_ms)

    async def navigate(self, url: str) -> None:
        with _translate_errors("navigate", url=url):
            await self.page.goto(url, timeout=self.navigation_timeout_ms)

    async def evaluate(self, expression: str) -> Any:
        with _translate_errors("evaluate", expression=expression):
            return await self.page.evaluate(expression)

    async def wait_load(self) -> None:
        with _translate_errors("wait_load"):
            await self.page.wait_for_load_state("load", timeout=self.navigation_timeout_ms)

    async def wait_network_idle(self) -> None:
        with _translate_errors("wait_network_idle"):
            await self.page.wait_for_load_state("networkidle", timeout=self.navigation_timeout_ms)

    async def keyboard_press(self, key: str) -> None:
        with _translate_errors("keyboard_press", key=key):
            await self.page.keyboard.press(key)

    async def keyboard_insert_text(self, text: str) -> None:
        with _translate_errors("keyboard_insert_text", text=text):
            await self.page.keyboard.insert_text(text)

    async def query_all(self, selector: str) -> List[PlaywrightElement]:
        with _translate_errors("query_all", selector=selector):
            handles = await self.page.query_selector_all(selector)
        return [self._wrap(handle) for handle in handles]

    async def query_one(self, selector: str) -> PlaywrightElement:
        try:
            handle = await self.page.wait_for_selector(selector, state="attached", timeout=self.action_timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise ElementNotFound(selector) from exc
        except PlaywrightError as exc:
            raise SurfaceError(str(exc).splitlines()[0], operation="query_one", details={"selector": selector}) from exc
        if handle is None:  # pragma: no cover - only for hidden/detached states
            raise ElementNotFound(selector)
        return self._wrap(handle)

    async def close(self) -> None:
        """Close all Playwright objects owned by this surface."""

        try:
            if self.context is not None:
                await self.context.close()
            if self.browser is not None:
                await self.browser.close()
        finally:
            if self.playwright is not None:
                await self.playwright.stop()
            self.context = None
            self.browser = None
            self.playwright = None
