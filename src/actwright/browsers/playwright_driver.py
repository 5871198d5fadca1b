"""
Playwright Driver - IAutomationDriver over a Playwright page.

Snapshots are captured by walking each frame's DOM in the page (one element
node per HTML element, plus text nodes), so positional indexes in the tree
match what `xpath=./tag` finds when a locator is re-walked. SVG and MathML
elements are captured without a tag and are never locator targets.

Example:
    >>> async with async_playwright() as p:
    ...     browser = await p.chromium.launch()
    ...     page = await browser.new_page()
    ...     driver = PlaywrightDriver(page)
    ...     frames = await driver.capture_snapshot()
"""

import functools
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar, Union

from playwright.async_api import Error as PlaywrightError

from actwright.browsers.base import BaseAutomationDriver
from actwright.exceptions import DriverError
from actwright.interfaces.driver import ElementState, LiveElement, OptionInfo

logger = logging.getLogger(__name__)

T = TypeVar("T")


# Role and accessible-name helpers shared by the capture and inspect scripts
_ROLE_NAME_HELPERS = r'''
    const IMPLICIT_ROLES = {
        a: (el) => el.hasAttribute('href') ? 'link' : 'generic',
        article: () => 'article', aside: () => 'complementary',
        button: () => 'button', dialog: () => 'dialog', form: () => 'form',
        h1: () => 'heading', h2: () => 'heading', h3: () => 'heading',
        h4: () => 'heading', h5: () => 'heading', h6: () => 'heading',
        header: () => 'banner', footer: () => 'contentinfo', main: () => 'main',
        nav: () => 'navigation', section: () => 'region', img: () => 'img',
        li: () => 'listitem', ol: () => 'list', ul: () => 'list',
        option: () => 'option', p: () => 'paragraph', table: () => 'table',
        tr: () => 'row', td: () => 'cell', th: () => 'columnheader',
        textarea: () => 'textbox', html: () => 'document', body: () => 'generic',
        select: (el) => (el.multiple || el.size > 1) ? 'listbox' : 'combobox',
        input: (el) => {
            const type = (el.getAttribute('type') || 'text').toLowerCase();
            if (type === 'checkbox') return 'checkbox';
            if (type === 'radio') return 'radio';
            if (['button', 'submit', 'reset', 'image'].includes(type)) return 'button';
            if (type === 'range') return 'slider';
            if (type === 'number') return 'spinbutton';
            if (type === 'search') return 'searchbox';
            if (type === 'hidden') return 'none';
            return 'textbox';
        },
    };

    const roleOf = (el) => {
        const explicit = (el.getAttribute('role') || '').trim().split(/\s+/)[0];
        if (explicit) return explicit;
        const implicit = IMPLICIT_ROLES[el.tagName.toLowerCase()];
        return implicit ? implicit(el) : 'generic';
    };

    const clean = (text) => (text || '').replace(/\s+/g, ' ').trim().slice(0, 200);

    const NAME_FROM_CONTENT = new Set([
        'button', 'link', 'heading', 'option', 'menuitem', 'tab', 'cell',
        'columnheader', 'listitem', 'checkbox', 'radio', 'switch', 'treeitem',
    ]);

    const nameOf = (el) => {
        const label = el.getAttribute('aria-label');
        if (label) return clean(label);
        const labelledBy = el.getAttribute('aria-labelledby');
        if (labelledBy) {
            const text = labelledBy.split(/\s+/)
                .map(id => el.ownerDocument.getElementById(id))
                .filter(Boolean)
                .map(ref => ref.textContent)
                .join(' ');
            if (clean(text)) return clean(text);
        }
        if (el.labels && el.labels.length) return clean(el.labels[0].textContent);
        const alt = el.getAttribute('alt');
        if (alt) return clean(alt);
        const tag = el.tagName.toLowerCase();
        if (tag === 'input' && ['button', 'submit', 'reset'].includes((el.type || '').toLowerCase())) {
            return clean(el.value);
        }
        if (NAME_FROM_CONTENT.has(roleOf(el))) return clean(el.innerText || el.textContent);
        return clean(el.getAttribute('placeholder') || el.getAttribute('title') || '');
    };
'''

CAPTURE_TREE_JS = r'''() => {
''' + _ROLE_NAME_HELPERS + r'''
    const HTML_NS = 'http://www.w3.org/1999/xhtml';
    const OPAQUE = new Set(['script', 'style', 'noscript', 'template', 'iframe', 'frame']);

    const walk = (el) => {
        const tag = el.tagName.toLowerCase();
        const node = {
            role: roleOf(el),
            name: nameOf(el),
            description: clean(el.getAttribute('aria-description') || ''),
            children: [],
        };
        // SVG and MathML elements do not match an xpath name test in an HTML
        // document, so they are captured as untagged leaves
        if (el.namespaceURI !== HTML_NS) return node;
        node.tagName = tag;
        if (OPAQUE.has(tag)) return node;
        for (const child of el.childNodes) {
            if (child.nodeType === Node.ELEMENT_NODE) {
                node.children.push(walk(child));
            } else if (child.nodeType === Node.TEXT_NODE && clean(child.textContent)) {
                node.children.push({role: 'text', name: clean(child.textContent), children: []});
            }
        }
        return node;
    };

    return document.documentElement ? walk(document.documentElement) : null;
}'''

INSPECT_JS = r'''(el) => {
''' + _ROLE_NAME_HELPERS + r'''
    return {
        tag: el.tagName.toLowerCase(),
        role: roleOf(el),
        name: nameOf(el),
        attached: el.isConnected,
        isSelect: el.tagName.toLowerCase() === 'select',
    };
}'''

LIST_OPTIONS_JS = '''(el) => Array.from(el.options || []).map(o => ({text: o.text, value: o.value}))'''

PAGE_HEIGHT_JS = '''() => Math.max(document.documentElement.scrollHeight, document.body ? document.body.scrollHeight : 0)'''


def _driver_op(operation: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Translate Playwright errors into DriverError for one operation."""
    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(self: "PlaywrightDriver", *args: Any, **kwargs: Any) -> T:
            try:
                return await func(self, *args, **kwargs)
            except PlaywrightError as e:
                raise DriverError(f"{operation} failed: {e.message}", operation)
        return wrapper
    return decorator


class PlaywrightDriver(BaseAutomationDriver):
    """
    Automation driver backed by a Playwright `Page`.

    Live elements are Playwright ElementHandles. Frame indexes refer to
    `page.frames` as it was at the last snapshot capture.
    """

    def __init__(self, page: Any, poll_interval_ms: int = 50, trace: bool = False):
        """
        Args:
            page: Playwright Page
            poll_interval_ms: Interval between actionability checks
            trace: Record every primitive call
        """
        super().__init__(poll_interval_ms=poll_interval_ms, trace=trace)
        self._page = page
        self._frames: List[Any] = list(page.frames)

    @property
    def page(self) -> Any:
        return self._page

    @property
    def url(self) -> str:
        return self._page.url

    def _frame(self, frame_index: int) -> Any:
        if frame_index >= len(self._frames):
            raise DriverError(f"Frame {frame_index} does not exist", "frame")
        return self._frames[frame_index]

    # ------------------------------------------------------------------
    # Snapshot capture and live document queries
    # ------------------------------------------------------------------

    @_driver_op("captureSnapshot")
    async def capture_snapshot(self) -> List[Dict[str, Any]]:
        self._frames = list(self._page.frames)
        trees = []
        for index, frame in enumerate(self._frames):
            tree = await frame.evaluate(CAPTURE_TREE_JS)
            if tree is None:
                raise DriverError(f"Frame {index} ({frame.url}) has no document", "captureSnapshot")
            trees.append(tree)
        logger.debug(f"Captured {len(trees)} frame(s) from {self._page.url}")
        return trees

    @_driver_op("queryChildren")
    async def query_children(
        self,
        frame_index: int,
        parent: Optional[LiveElement],
        tag: str,
    ) -> List[LiveElement]:
        if parent is None:
            return await self._frame(frame_index).query_selector_all(f"xpath=/{tag}")
        return await parent.query_selector_all(f"xpath=./{tag}")

    @_driver_op("inspect")
    async def inspect(self, element: LiveElement) -> ElementState:
        info = await element.evaluate(INSPECT_JS)
        if not info["attached"]:
            return ElementState(tag=info["tag"], role=info["role"], name=info["name"], attached=False, visible=False)

        box = await element.bounding_box()
        return ElementState(
            tag=info["tag"],
            role=info["role"],
            name=info["name"],
            attached=True,
            visible=await element.is_visible(),
            enabled=await element.is_enabled(),
            bounding_box=(box["x"], box["y"], box["width"], box["height"]) if box else None,
            is_native_select=info["isSelect"],
        )

    @_driver_op("findByText")
    async def find_by_text(
        self,
        frame_index: int,
        text: str,
        role: str = "option",
    ) -> Optional[LiveElement]:
        locator = self._frame(frame_index).get_by_role(role, name=text, exact=True)
        if await locator.count() == 0:
            return None
        return await locator.first.element_handle()

    @_driver_op("listOptions")
    async def list_options(self, element: LiveElement) -> List[OptionInfo]:
        options = await element.evaluate(LIST_OPTIONS_JS)
        return [OptionInfo(text=o["text"], value=o["value"]) for o in options]

    @_driver_op("pageHeight")
    async def page_height(self) -> int:
        return int(await self._page.evaluate(PAGE_HEIGHT_JS))

    # ------------------------------------------------------------------
    # Primitive operations
    # ------------------------------------------------------------------

    @_driver_op("click")
    async def click(self, element: LiveElement) -> None:
        self._record("click", element)
        await element.click()

    @_driver_op("hover")
    async def hover(self, element: LiveElement) -> None:
        self._record("hover", element)
        await element.hover()

    @_driver_op("setValue")
    async def set_value(self, element: LiveElement, text: str) -> None:
        self._record("setValue", element, text)
        await element.fill(text)

    @_driver_op("keyStroke")
    async def key_stroke(self, element: LiveElement, char: str) -> None:
        self._record("keyStroke", element, char)
        await element.type(char)

    @_driver_op("selectByText")
    async def select_by_text(self, element: LiveElement, text: str) -> None:
        self._record("selectByText", element, text)
        await element.select_option(label=text)

    @_driver_op("selectByValue")
    async def select_by_value(self, element: LiveElement, value: str) -> None:
        self._record("selectByValue", element, value)
        await element.select_option(value=value)

    @_driver_op("scrollTo")
    async def scroll_to(self, target: Union[LiveElement, int]) -> None:
        self._record("scrollTo", target)
        if isinstance(target, int):
            await self._page.evaluate("(y) => window.scrollTo(0, y)", target)
        else:
            await target.scroll_into_view_if_needed()

    @_driver_op("keyPress")
    async def key_press(self, key_name: str) -> None:
        self._record("keyPress", key_name)
        await self._page.keyboard.press(key_name)
