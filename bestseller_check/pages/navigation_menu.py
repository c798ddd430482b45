"""Page object for the storefront's hamburger (flyout) navigation menu."""
import re
from typing import Optional, Union

import structlog
from playwright.async_api import Error as PlaywrightError, Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..errors import HardTimeoutError, StructuralMismatchError
from ..models import CategoryPath, ScenarioPhase
from .base_page import BasePage

logger = structlog.get_logger()

Label = Union[str, re.Pattern]


class HamburgerMenu(BasePage):
    """Hamburger menu: open, expand "see all", drill into a category.

    The menu's open/closed state is never remembered; each step re-reads
    the visibility of the menu container.
    """

    phase = ScenarioPhase.NAVIGATION

    SELECTORS = {
        "trigger": "#nav-hamburger-menu",
        "content": "#hmenu-content",
        "menu_item": "#hmenu-content a.hmenu-item",
    }

    SEE_ALL_LABEL = re.compile(r"See\s*all", re.IGNORECASE)

    OPEN_ATTEMPTS = 3

    def __init__(
        self,
        page: Page,
        expect_timeout_ms: int = 8000,
        open_check_ms: int = 700,
        click_timeout_ms: int = 1200,
        url_wait_ms: int = 2500,
    ) -> None:
        """Initialize the menu page object.

        Args:
            page: Playwright page instance.
            expect_timeout_ms: Bound for terminal visibility checks.
            open_check_ms: Bound for the menu to appear after one trigger click.
            click_timeout_ms: Bound for a navigating item click.
            url_wait_ms: Bound for the URL to match after a navigating click.
        """
        super().__init__(page, expect_timeout_ms)
        self.open_check_ms = open_check_ms
        self.click_timeout_ms = click_timeout_ms
        self.url_wait_ms = url_wait_ms

    def menu(self) -> Locator:
        """Menu container inside the flyout dialog."""
        return self._page.get_by_role("dialog").locator(self.SELECTORS["content"]).first

    async def is_open(self) -> bool:
        return await self.is_visible(self.menu())

    async def open(self) -> None:
        """Open the menu, re-clicking the trigger when a click is swallowed.

        Raises:
            HardTimeoutError: If the menu is still closed after the final wait.
        """
        trigger = self._page.locator(self.SELECTORS["trigger"])
        for attempt in range(1, self.OPEN_ATTEMPTS + 1):
            try:
                await trigger.scroll_into_view_if_needed()
                await trigger.click()
            except PlaywrightError as e:
                logger.debug("menu_trigger_click_failed", attempt=attempt, error=str(e))
            if await self.wait_for_state(self.menu(), "visible", self.open_check_ms):
                logger.info("menu_opened", attempt=attempt)
                return
            logger.debug("menu_open_retry", attempt=attempt)

        if not await self.wait_for_state(self.menu(), "visible"):
            raise HardTimeoutError(
                "Hamburger menu did not open",
                self.phase,
                expected="menu visible",
                observed="menu hidden",
            )
        logger.info("menu_opened", attempt=self.OPEN_ATTEMPTS)

    async def expand_see_all(self) -> None:
        """Expand the "see all" departments list in place."""
        if not await self.wait_for_state(self.menu()):
            raise HardTimeoutError(
                "Menu must be open before expanding departments",
                self.phase,
                expected="menu visible",
                observed="menu hidden",
            )

        see_all = self.menu().get_by_role("link", name=self.SEE_ALL_LABEL).first
        if not await self.wait_for_state(see_all, "attached"):
            raise StructuralMismatchError("'See all' link not found in menu", self.phase)
        await see_all.scroll_into_view_if_needed()

        await self._click_keeping_menu_open(see_all, "see all")
        logger.info("menu_departments_expanded")

    def _item(self, label: Label) -> Locator:
        return self._page.locator(self.SELECTORS["menu_item"]).filter(has_text=label).first

    async def click_item(
        self, label: Label, stay_open: bool = True, url_hint: Optional[str] = None
    ) -> None:
        """Click a menu entry by label.

        Args:
            label: Case-insensitive pattern (or plain substring) of the entry.
            stay_open: True for entries that open a submenu, False for leaf
                entries that navigate away and close the menu.
            url_hint: URL regex expected after a navigating click.

        Raises:
            StructuralMismatchError: If the entry is not in the menu.
            HardTimeoutError: If the menu does not end in the expected state.
        """
        if not await self.is_open():
            await self.open()

        item = self._item(label)
        name = label.pattern if isinstance(label, re.Pattern) else label
        if not await self.wait_for_state(item):
            raise StructuralMismatchError(f"Menu item {name!r} not found", self.phase)
        await item.scroll_into_view_if_needed()

        if stay_open:
            await self._click_keeping_menu_open(item, name)
        else:
            hint = re.compile(url_hint or CategoryPath().url_hint, re.IGNORECASE)
            await self._click_navigating(item, name, hint)

    async def _click_keeping_menu_open(self, item: Locator, name: str) -> None:
        try:
            await item.click()
        except PlaywrightError as e:
            logger.debug("menu_click_intercepted", item=name, error=str(e))
            await self.programmatic_click(item)

        if not await self.wait_for_state(self.menu()):
            raise HardTimeoutError(
                f"Menu closed after clicking {name!r}",
                self.phase,
                expected="menu visible",
                observed="menu hidden",
            )

    async def _click_navigating(self, item: Locator, name: str, url_hint: re.Pattern) -> None:
        try:
            await item.click(timeout=self.click_timeout_ms)
        except PlaywrightError as e:
            logger.debug("menu_click_intercepted", item=name, error=str(e))

        navigated = await self._wait_for_url(url_hint)
        if not navigated:
            logger.warning("menu_navigation_fallback", item=name, url=self._page.url)
            await self.programmatic_click(item)
            navigated = await self._wait_for_url(url_hint)

        logger.info("menu_item_followed", item=name, navigated=navigated, url=self._page.url)

        if not await self.wait_for_state(self.menu(), "hidden"):
            raise HardTimeoutError(
                f"Menu stayed open after clicking {name!r}",
                self.phase,
                expected="menu hidden",
                observed="menu visible",
            )

    async def _wait_for_url(self, pattern: re.Pattern) -> bool:
        try:
            await self._page.wait_for_url(pattern, timeout=self.url_wait_ms)
            return True
        except PlaywrightTimeoutError:
            return False

    async def go_to_category(self, path: CategoryPath) -> None:
        """Drill into department → subcategory and verify the landing page.

        The landing page heading/link is the authoritative proof of arrival;
        the URL shape is only a hint.

        Raises:
            StructuralMismatchError: If an entry or the landing heading is missing.
            HardTimeoutError: If the menu does not reach the expected state.
        """
        await self.expand_see_all()
        await self.click_item(re.compile(path.department, re.IGNORECASE))
        await self.click_item(
            re.compile(path.subcategory, re.IGNORECASE), stay_open=False, url_hint=path.url_hint
        )

        heading = self._page.get_by_role("link", name=re.compile(path.heading, re.IGNORECASE)).first
        if not await self.wait_for_state(heading):
            logger.error("category_heading_missing", heading=path.heading, url=self._page.url)
            raise StructuralMismatchError(
                f"Landing page has no heading matching {path.heading!r} (url: {self._page.url})",
                self.phase,
            )
        logger.info("category_reached", heading=path.heading, url=self._page.url)
