"""In-memory stand-ins for Playwright's Page, Locator and BrowserContext.

Only the subset of the async API the page objects use is implemented.
Elements answer to the exact selector strings they are registered with
(``FakeElement(selectors={"#hmenu-content"})``), so tests reuse the page
objects' SELECTORS dictionaries instead of parsing CSS. Locators are lazy
and re-resolve on every call, and actions on more than one element raise a
strict-mode error like Playwright does.
"""
import re
from collections import deque
from typing import Callable, Iterable, Optional, Union

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

Label = Union[str, re.Pattern]

_ANCESTOR_XPATH = re.compile(
    r'^xpath=ancestor::(?P<tag>\*|\w+)\[contains\(concat\(" ", normalize-space\(@class\), " "\), " (?P<cls>[^"]+) "\)\]\[1\]$'
)


def _matches(label: Label, text: str) -> bool:
    if isinstance(label, re.Pattern):
        return label.search(text) is not None
    return label.lower() in text.lower()


class FakeElement:
    """A DOM node with just enough state for the page objects."""

    def __init__(
        self,
        selectors: Iterable[str] = (),
        text: str = "",
        *,
        tag: str = "div",
        classes: Iterable[str] = (),
        role: Optional[str] = None,
        name: Optional[str] = None,
        visible: bool = True,
        enabled: bool = True,
        readonly: bool = False,
        children: Iterable["FakeElement"] = (),
        on_click: Optional[Callable[[], None]] = None,
        on_press: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.selectors = set(selectors)
        self.text = text
        self.tag = tag
        self.classes = set(classes)
        self.role = role
        self.name = name
        self.visible = visible
        self.enabled = enabled
        self.readonly = readonly
        self.on_click = on_click
        self.on_press = on_press
        self.value = ""
        self.parent: Optional["FakeElement"] = None
        self.children: list["FakeElement"] = []
        # Pointer clicks are dropped while this element is displayed.
        self.intercepted_by: Optional["FakeElement"] = None
        # Number of upcoming pointer clicks that register but do nothing.
        self.swallow_pointer_clicks = 0
        self.clicks: list[str] = []
        for child in children:
            self.append(child)

    def append(self, child: "FakeElement") -> "FakeElement":
        child.parent = self
        self.children.append(child)
        return child

    def descendants(self) -> list["FakeElement"]:
        found = []
        for child in self.children:
            found.append(child)
            found.extend(child.descendants())
        return found

    def ancestors(self) -> list["FakeElement"]:
        chain = []
        node = self.parent
        while node is not None:
            chain.append(node)
            node = node.parent
        return chain

    def full_text(self) -> str:
        parts = [self.text] + [child.full_text() for child in self.children]
        return " ".join(part for part in parts if part).strip()

    def accessible_name(self) -> str:
        return self.name if self.name is not None else self.full_text()

    def is_displayed(self) -> bool:
        return self.visible and all(node.visible for node in self.ancestors())

    def __repr__(self) -> str:
        label = next(iter(self.selectors), self.role or self.tag)
        return f"<FakeElement {label} {self.full_text()[:30]!r}>"


def _unique(elements: Iterable[FakeElement]) -> list[FakeElement]:
    seen: list[FakeElement] = []
    for element in elements:
        if not any(element is other for other in seen):
            seen.append(element)
    return seen


class FakeLocator:
    """Lazy chain of lookup steps over a FakePage."""

    def __init__(
        self,
        page: "FakePage",
        parent: Optional["FakeLocator"],
        step: Callable[[list[FakeElement]], list[FakeElement]],
        description: str,
    ) -> None:
        self._page = page
        self._parent = parent
        self._step = step
        self._description = description

    def __repr__(self) -> str:
        return f"<FakeLocator {self._description}>"

    # -- resolution -----------------------------------------------------

    def resolve_from(self, scope: list[FakeElement]) -> list[FakeElement]:
        base = self._parent.resolve_from(scope) if self._parent else scope
        return self._step(base)

    def resolve(self) -> list[FakeElement]:
        return self.resolve_from([self._page.root])

    def _chain(self, step, description: str) -> "FakeLocator":
        return FakeLocator(self._page, self, step, f"{self._description} >> {description}")

    def _single(self, settle: bool = True) -> FakeElement:
        elements = self.resolve()
        if not elements and settle and self._page.settle(lambda: bool(self.resolve())):
            elements = self.resolve()
        if not elements:
            raise PlaywrightTimeoutError(f"Timeout waiting for {self._description}")
        if len(elements) > 1:
            raise PlaywrightError(
                f"strict mode violation: {self._description} resolved to {len(elements)} elements"
            )
        return elements[0]

    # -- chaining -------------------------------------------------------

    def locator(self, selector: str) -> "FakeLocator":
        ancestor = _ANCESTOR_XPATH.match(selector)
        if ancestor:
            tag, css_class = ancestor.group("tag"), ancestor.group("cls")

            def step(scope):
                found = []
                for element in scope:
                    for node in element.ancestors():
                        if css_class in node.classes and tag in ("*", node.tag):
                            found.append(node)
                            break
                return _unique(found)

            return self._chain(step, selector)

        def step(scope):
            return _unique(
                node for element in scope for node in element.descendants() if selector in node.selectors
            )

        return self._chain(step, selector)

    def get_by_role(self, role: str, name: Optional[Label] = None) -> "FakeLocator":
        def step(scope):
            return _unique(
                node
                for element in scope
                for node in element.descendants()
                if node.role == role and (name is None or _matches(name, node.accessible_name()))
            )

        return self._chain(step, f"role={role}[name={name!r}]")

    def filter(self, has_text: Optional[Label] = None, has: Optional["FakeLocator"] = None) -> "FakeLocator":
        def step(scope):
            kept = []
            for element in scope:
                if has_text is not None and not _matches(has_text, element.full_text()):
                    continue
                if has is not None and not has.resolve_from([element]):
                    continue
                kept.append(element)
            return kept

        return self._chain(step, f"filter(has_text={has_text!r}, has={has!r})")

    @property
    def first(self) -> "FakeLocator":
        return self._chain(lambda scope: scope[:1], "first")

    def nth(self, index: int) -> "FakeLocator":
        return self._chain(lambda scope: scope[index:index + 1], f"nth={index}")

    # -- queries --------------------------------------------------------

    async def count(self) -> int:
        return len(self.resolve())

    async def is_visible(self) -> bool:
        elements = self.resolve()
        if len(elements) > 1:
            raise PlaywrightError(f"strict mode violation: {self._description}")
        return bool(elements) and elements[0].is_displayed()

    async def is_hidden(self) -> bool:
        return not await self.is_visible()

    async def is_enabled(self) -> bool:
        return self._single().enabled

    async def wait_for(self, state: str = "visible", timeout: Optional[float] = None) -> None:
        self._page.waits.append((self._description, state, timeout))

        def holds() -> bool:
            elements = self.resolve()
            if len(elements) > 1:
                raise PlaywrightError(f"strict mode violation: {self._description}")
            if state == "visible":
                return bool(elements) and elements[0].is_displayed()
            if state == "hidden":
                return not elements or not elements[0].is_displayed()
            if state == "attached":
                return bool(elements)
            return not elements

        if holds() or self._page.settle(holds):
            return
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms waiting for {self._description} to be {state}")

    async def text_content(self, timeout: Optional[float] = None) -> Optional[str]:
        return self._single().full_text()

    async def inner_text(self, timeout: Optional[float] = None) -> str:
        return self._single().full_text()

    async def input_value(self, timeout: Optional[float] = None) -> str:
        return self._single().value

    # -- actions --------------------------------------------------------

    async def scroll_into_view_if_needed(self, timeout: Optional[float] = None) -> None:
        self._single()

    async def highlight(self) -> None:
        self._page.highlighted.append(self._single())

    async def click(self, trial: bool = False, timeout: Optional[float] = None) -> None:
        element = self._single()
        if not element.is_displayed() or not element.enabled:
            raise PlaywrightTimeoutError(f"Timeout waiting for {self._description} to be actionable")
        blocker = element.intercepted_by
        if blocker is not None and blocker.is_displayed():
            element.clicks.append("intercepted")
            raise PlaywrightTimeoutError(f"{blocker!r} intercepts pointer events")
        if trial:
            element.clicks.append("trial")
            return
        element.clicks.append("pointer")
        if element.swallow_pointer_clicks > 0:
            element.swallow_pointer_clicks -= 1
            return
        if element.on_click:
            element.on_click()

    async def evaluate(self, expression: str, arg=None):
        element = self._single(settle=False)
        if "click()" in expression:
            element.clicks.append("programmatic")
            if element.on_click:
                element.on_click()
        return None

    async def fill(self, value: str, timeout: Optional[float] = None) -> None:
        element = self._single()
        if not element.readonly:
            element.value = value

    async def press(self, key: str, timeout: Optional[float] = None) -> None:
        element = self._single()
        if element.on_press:
            element.on_press(key)


class FakePage:
    """Page holding a FakeElement tree rooted at ``root``."""

    def __init__(self, url: str = "about:blank") -> None:
        self.root = FakeElement(tag="html")
        self.url = url
        self.goto_error: Optional[Exception] = None
        self.on_goto: Optional[Callable[[str], None]] = None
        self.pending: deque[Callable[[], None]] = deque()
        self.waits: list[tuple] = []
        self.highlighted: list[FakeElement] = []
        self.paused = False
        self.video = None

    def add(self, *elements: FakeElement) -> None:
        for element in elements:
            self.root.append(element)

    def later(self, change: Callable[[], None]) -> None:
        """Queue a UI change that happens while something is waiting."""
        self.pending.append(change)

    def settle(self, condition: Callable[[], bool]) -> bool:
        """Apply queued changes one by one until condition holds."""
        while self.pending:
            self.pending.popleft()()
            if condition():
                return True
        return False

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self, None, lambda scope: scope, "page").locator(selector)

    def get_by_role(self, role: str, name: Optional[Label] = None) -> FakeLocator:
        return FakeLocator(self, None, lambda scope: scope, "page").get_by_role(role, name=name)

    async def goto(self, url: str, wait_until: Optional[str] = None, timeout: Optional[float] = None) -> None:
        if self.goto_error is not None:
            raise self.goto_error
        self.url = url
        if self.on_goto:
            self.on_goto(url)

    async def wait_for_timeout(self, timeout: float) -> None:
        return None

    async def wait_for_load_state(self, state: str = "load", timeout: Optional[float] = None) -> None:
        return None

    async def wait_for_url(self, url: Union[str, re.Pattern], timeout: Optional[float] = None) -> None:
        def holds() -> bool:
            if isinstance(url, re.Pattern):
                return url.search(self.url) is not None
            return self.url == url

        if holds() or self.settle(holds):
            return
        raise PlaywrightTimeoutError(f"Timeout {timeout}ms waiting for URL {url!r} (at {self.url})")

    async def pause(self) -> None:
        self.paused = True

    async def screenshot(self, path: Optional[str] = None, full_page: bool = False) -> bytes:
        data = b"\x89PNG fake"
        if path:
            with open(path, "wb") as f:
                f.write(data)
        return data

    async def content(self) -> str:
        return f"<html><body>{self.root.full_text()}</body></html>"

    async def title(self) -> str:
        return "Fake Storefront"


class FakeContext:
    """BrowserContext stand-in that records cookies."""

    def __init__(self) -> None:
        self.cookies: list[dict] = []

    async def add_cookies(self, cookies: list[dict]) -> None:
        self.cookies.extend(cookies)
