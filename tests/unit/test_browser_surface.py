"""
Unit tests for the Playwright surface.

Uses stand-in page and element objects, so no browser is started.
"""

import pytest
from playwright.async_api import Error as PlaywrightError

from draftqueue.surface import DiscoveryQuery, ElementDetachedError, SurfaceError
from draftqueue.surface.browser import FilterDriver, PlaywrightSurface


class FakeHandle:
    def __init__(self, text="", react_accepts=False, connected=True, click_error=None, failing_step=None):
        self.text = text
        self.react_accepts = react_accepts
        self.connected = connected
        self.click_error = click_error
        self.failing_step = failing_step
        self.filled = []
        self.scripts = []
        self.clicks = 0

    async def fill(self, text):
        self.filled.append(text)

    async def evaluate(self, script, arg=None):
        if "isConnected" in script:
            return self.connected
        if "__reactProps" in script:
            return self.react_accepts
        self.scripts.append(script)
        if self.failing_step and self.failing_step in script:
            raise PlaywrightError("step failed")
        return None

    async def inner_text(self):
        return self.text

    async def scroll_into_view_if_needed(self):
        return None

    async def click(self):
        if self.click_error:
            raise self.click_error
        self.clicks += 1

    async def is_visible(self):
        return self.connected


class FakePage:
    def __init__(self, elements=None, search_input=None, search_selector=".player-search input", query_error=None):
        self.elements = elements or {}
        self.query_error = query_error
        self.search_input = search_input
        self.search_selector = search_selector

    async def query_selector_all(self, selector):
        if self.query_error:
            raise self.query_error
        return list(self.elements.get(selector, []))

    async def query_selector(self, selector):
        if selector == self.search_selector:
            return self.search_input
        return None


def make_surface(settings, **page_kwargs):
    return PlaywrightSurface(settings, page=FakePage(**page_kwargs))


def test_page_required(settings):
    with pytest.raises(RuntimeError):
        PlaywrightSurface(settings).page


class TestFilterDrivers:
    """Tests for pushing text into the search box."""

    @pytest.mark.asyncio
    async def test_applied_when_react_accepts(self, settings):
        search = FakeHandle(react_accepts=True)
        surface = make_surface(settings, search_input=search)

        assert await surface.drive_filter_input("Chase") is True
        assert search.filled == ["Chase"]

    @pytest.mark.asyncio
    async def test_native_fill_alone_is_not_applied(self, settings):
        search = FakeHandle(react_accepts=False)
        surface = make_surface(settings, search_input=search)

        assert await surface.drive_filter_input("Chase") is False
        assert search.filled == ["Chase"]

    @pytest.mark.asyncio
    async def test_no_search_box(self, settings):
        surface = make_surface(settings)
        assert not await surface.has_filter_input()
        assert await surface.drive_filter_input("Chase") is False

    @pytest.mark.asyncio
    async def test_alternate_steps_all_run(self, settings):
        search = FakeHandle(failing_step="ClipboardEvent")
        surface = make_surface(settings, search_input=search)

        await surface.alternate_filter_triggers("Chase")
        assert len(search.scripts) == 6

    def test_driver_must_implement_apply(self):
        with pytest.raises(TypeError):
            FilterDriver()


class TestElements:
    """Tests for discovery and activation."""

    @pytest.mark.asyncio
    async def test_label_filter(self, settings):
        buttons = [FakeHandle("REMOVE"), FakeHandle("Delete"), FakeHandle(" remove ")]
        surface = make_surface(settings, elements={".delete-button": buttons})

        found = await surface.discover(DiscoveryQuery(".delete-button", label="remove"))
        assert found == [buttons[0], buttons[2]]

    @pytest.mark.asyncio
    async def test_trigger_clicks(self, settings):
        button = FakeHandle()
        await make_surface(settings).trigger(button)
        assert button.clicks == 1

    @pytest.mark.asyncio
    async def test_trigger_detached(self, settings):
        with pytest.raises(ElementDetachedError):
            await make_surface(settings).trigger(FakeHandle(connected=False))

    @pytest.mark.asyncio
    async def test_click_failure_is_surface_error(self, settings):
        button = FakeHandle(click_error=PlaywrightError("intercepted"))
        with pytest.raises(SurfaceError):
            await make_surface(settings).trigger(button)

    @pytest.mark.asyncio
    async def test_query_failure_is_surface_error(self, settings):
        surface = make_surface(settings, query_error=PlaywrightError("execution context was destroyed"))
        with pytest.raises(SurfaceError):
            await surface.discover(DiscoveryQuery(".queue-action"))
