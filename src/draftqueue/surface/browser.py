"""
Playwright implementation of the surface adapter.

Drives a real Chromium page showing the Sleeper draft board. The board
needs a logged-in session, so the adapter can:
- attach to an already running Chromium over CDP (browser_cdp_url)
- reuse a persistent profile directory (browser_user_data_dir)
- or launch a fresh browser and let the user log in (headed by default)

The board's search box is a React controlled input. Setting its value
from outside does not reach React's state, so filtering goes through a
FilterDriver chain:
1. NativeEventFilterDriver - Playwright fill(), always run as the baseline
2. ReactFilterDriver - finds the input's React props and calls onChange
   directly; optional, only used when the props are discoverable

drive_filter_input() reports applied=True only when step 2 succeeded.
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from typing import Optional, Sequence

from playwright.async_api import (
    Browser,
    BrowserContext,
    ElementHandle,
    Error as PlaywrightError,
    Page,
    async_playwright,
)
from playwright_stealth import Stealth

from draftqueue.config import Settings
from draftqueue.surface.base import (
    DiscoveryQuery,
    Element,
    ElementDetachedError,
    SurfaceAdapter,
    SurfaceError,
)

logger = logging.getLogger(__name__)

# Stealth configuration so the board does not flag the automated browser
_stealth = Stealth()

# Finds React's props on a DOM node and calls its onChange with a
# synthetic event. Returns false when no handler is discoverable.
_REACT_ON_CHANGE_JS = """
(el, value) => {
    const keys = Object.keys(el);
    const propsKey = keys.find(k => k.startsWith('__reactProps'));
    let props = propsKey ? el[propsKey] : null;
    if (!props) {
        const fiberKey = keys.find(
            k => k.startsWith('__reactFiber') || k.startsWith('__reactInternalInstance')
        );
        props = fiberKey && el[fiberKey] ? el[fiberKey].memoizedProps : null;
    }
    if (!props || typeof props.onChange !== 'function') {
        return false;
    }
    el.value = value;
    props.onChange({
        target: { value: value },
        currentTarget: el,
        type: 'change',
        bubbles: true,
        preventDefault: () => {},
        stopPropagation: () => {},
        persist: () => {},
    });
    return true;
}
"""

# Each step is a separate evaluate so a failing step does not stop the rest.
_ALTERNATE_TRIGGER_STEPS = (
    ("click", "(el) => { el.focus(); el.click(); }"),
    (
        "input-event",
        "(el, text) => { el.value = text; el.dispatchEvent(new Event('input', { bubbles: true })); }",
    ),
    (
        "paste-event",
        "(el) => {"
        " let ev;"
        " try { ev = new ClipboardEvent('paste', { bubbles: true, cancelable: true }); }"
        " catch (e) { ev = new Event('paste', { bubbles: true }); }"
        " el.dispatchEvent(ev); }",
    ),
    (
        "parent-change",
        "(el) => { const p = el.parentElement; if (p) {"
        " p.dispatchEvent(new Event('input', { bubbles: true }));"
        " p.dispatchEvent(new Event('change', { bubbles: true })); } }",
    ),
    (
        "custom-events",
        "(el, text) => {"
        " el.dispatchEvent(new CustomEvent('search', { detail: text, bubbles: true }));"
        " el.dispatchEvent(new CustomEvent('filter', { detail: text, bubbles: true })); }",
    ),
    (
        "pointer-focus",
        "(el) => {"
        " el.dispatchEvent(new MouseEvent('mousedown', { bubbles: true }));"
        " el.dispatchEvent(new MouseEvent('mouseup', { bubbles: true }));"
        " el.dispatchEvent(new FocusEvent('focus', { bubbles: true })); }",
    ),
)


class FilterDriver(ABC):
    """Strategy for pushing a value into the board's search box."""

    name = "base"

    @abstractmethod
    async def apply(self, input_handle: ElementHandle, text: str) -> bool:
        """Push text into the input; True when the page accepted it."""


class NativeEventFilterDriver(FilterDriver):
    """Plain fill(): sets the value and dispatches a standard input event."""

    name = "native"

    async def apply(self, input_handle: ElementHandle, text: str) -> bool:
        await input_handle.fill(text)
        return True


class ReactFilterDriver(FilterDriver):
    """Calls the input's React onChange handler directly, when it can be found."""

    name = "react"

    async def apply(self, input_handle: ElementHandle, text: str) -> bool:
        return bool(await input_handle.evaluate(_REACT_ON_CHANGE_JS, text))


class PlaywrightSurface(SurfaceAdapter):
    """
    Surface adapter over a Playwright page.

    Usage:
        async with PlaywrightSurface(settings) as surface:
            reconciler = QueueReconciler(surface, settings)
            summary = await reconciler.add_players(players)

    Or wrap a page you already manage:
        surface = PlaywrightSurface(settings, page=page)
    """

    def __init__(self, settings: Optional[Settings] = None, page: Optional[Page] = None):
        """
        Initialize the adapter.

        Args:
            settings: Session settings (selectors, browser options)
            page: Existing page to drive; the context manager then leaves
                  the browser alone
        """
        self.settings = settings or Settings()
        self.timeout = self.settings.browser_timeout_ms
        self.filter_drivers: list[FilterDriver] = [NativeEventFilterDriver(), ReactFilterDriver()]

        self._page: Optional[Page] = page
        self._owns_browser = page is None

        # Playwright objects (initialized in __aenter__)
        self._playwright = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    # =========================================================================
    # Browser lifecycle
    # =========================================================================

    async def __aenter__(self) -> "PlaywrightSurface":
        """
        Start (or attach to) the browser and select the draft page.
        """
        if not self._owns_browser:
            return self

        self._playwright = await async_playwright().start()
        chromium = self._playwright.chromium

        if self.settings.browser_cdp_url:
            # Attach to the user's own browser where they are already logged in
            self._browser = await chromium.connect_over_cdp(self.settings.browser_cdp_url)
            self._context = (
                self._browser.contexts[0] if self._browser.contexts else await self._browser.new_context()
            )
        elif self.settings.browser_user_data_dir:
            self._context = await chromium.launch_persistent_context(
                self.settings.browser_user_data_dir,
                headless=self.settings.browser_headless,
                viewport={"width": 1600, "height": 1000},
            )
        else:
            self._browser = await chromium.launch(headless=self.settings.browser_headless)
            self._context = await self._browser.new_context(
                viewport={"width": 1600, "height": 1000},
                locale="en-US",
            )

        self._context.set_default_timeout(self.timeout)
        self._page = await self._select_page()

        if self.settings.draft_url and self.settings.draft_url not in (self._page.url or ""):
            await self.navigate(self.settings.draft_url)

        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """
        Clean up browser resources we created.

        An attached CDP browser is only disconnected, never closed.
        """
        if not self._owns_browser:
            return
        if self._context and not self.settings.browser_cdp_url:
            await self._context.close()
        if self._browser:
            await self._browser.close()
        if self._playwright:
            await self._playwright.stop()

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Surface not initialized. Use 'async with' context manager.")
        return self._page

    async def _select_page(self) -> Page:
        """Pick the open draft tab if there is one, else open a new page."""
        for page in self._context.pages:
            url = page.url or ""
            if self.settings.draft_url and self.settings.draft_url in url:
                return page
            if "sleeper" in url and "/draft/" in url:
                return page

        page = await self._context.new_page()
        if self.settings.browser_stealth:
            await _stealth.apply_stealth_async(page)
        return page

    async def navigate(self, url: str, max_attempts: int = 3) -> None:
        """
        Navigate to a URL with exponential backoff retry.

        Raises:
            SurfaceError: If navigation fails after all retries
        """
        last_error: Optional[Exception] = None
        for attempt in range(max_attempts):
            try:
                await self.page.goto(url, wait_until="domcontentloaded", timeout=self.timeout)
                return
            except PlaywrightError as e:
                last_error = e
                if attempt < max_attempts - 1:
                    delay = 2.0 * (2 ** attempt) + random.uniform(0, 1)
                    logger.warning(
                        "[Retry %d/%d] Navigate to %s failed: %s. Retrying in %.1fs...",
                        attempt + 1, max_attempts, url, e, delay,
                    )
                    await asyncio.sleep(delay)
        raise SurfaceError(f"Could not open {url}: {last_error}")

    # =========================================================================
    # SurfaceAdapter
    # =========================================================================

    async def discover(self, query: DiscoveryQuery) -> list[Element]:
        try:
            handles = await self.page.query_selector_all(query.selector)
        except PlaywrightError as e:
            raise SurfaceError(f"Could not query '{query.selector}': {e}") from e
        if query.label is None:
            return handles

        matching = []
        for handle in handles:
            if query.accepts_text(await self.text_of(handle)):
                matching.append(handle)
        return matching

    async def container_of(self, element: Element, markers: Sequence[str]) -> Optional[Element]:
        if not markers:
            return None
        try:
            js_handle = await element.evaluate_handle(
                "(el, sel) => el.closest(sel)", ", ".join(markers)
            )
        except PlaywrightError as e:
            logger.debug("closest() failed: %s", e)
            return None
        return js_handle.as_element()

    async def text_of(self, element: Element) -> str:
        try:
            # inner_text keeps the line breaks between cells; textContent
            # would glue "Josh Allen" and "QB" together
            return await element.inner_text()
        except PlaywrightError:
            try:
                return (await element.text_content()) or ""
            except PlaywrightError:
                return ""

    async def trigger(self, element: Element) -> None:
        if not await self.is_attached(element):
            raise ElementDetachedError("element is no longer attached to the page")
        try:
            await element.scroll_into_view_if_needed()
            await asyncio.sleep(self.settings.settle_delay)
            await element.click()
        except PlaywrightError as e:
            raise SurfaceError(f"click failed: {e}") from e

    async def is_attached(self, element: Element) -> bool:
        try:
            return bool(await element.evaluate("el => el.isConnected"))
        except PlaywrightError:
            return False

    async def is_visible(self, element: Element) -> bool:
        try:
            return await element.is_visible()
        except PlaywrightError:
            return False

    async def has_filter_input(self) -> bool:
        return await self._find_filter_input() is not None

    async def drive_filter_input(self, text: str) -> bool:
        input_handle = await self._find_filter_input()
        if input_handle is None:
            logger.debug("No search input found")
            return False

        applied = False
        for driver in self.filter_drivers:
            try:
                accepted = await driver.apply(input_handle, text)
            except PlaywrightError as e:
                logger.debug("Filter driver '%s' failed: %s", driver.name, e)
                continue
            # The native driver always "succeeds"; only a framework handler
            # accepting the value counts as applied
            if accepted and driver.name != "native":
                applied = True

        if not applied:
            logger.debug("No framework change handler accepted '%s'", text)
        return applied

    async def alternate_filter_triggers(self, text: str) -> None:
        input_handle = await self._find_filter_input()
        if input_handle is None:
            return

        for step_name, script in _ALTERNATE_TRIGGER_STEPS:
            try:
                await input_handle.evaluate(script, text)
            except PlaywrightError as e:
                logger.debug("Alternate trigger step '%s' failed: %s", step_name, e)
            await asyncio.sleep(self.settings.alternate_trigger_step)

    async def _find_filter_input(self) -> Optional[ElementHandle]:
        for selector in self.settings.filter_input_selectors:
            try:
                handle = await self.page.query_selector(selector)
            except PlaywrightError:
                continue
            if handle is not None:
                return handle
        return None
