"""Base page object for Playwright automation."""
from typing import Optional

import structlog
from playwright.async_api import Error as PlaywrightError, Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from ..click_protocol import PROGRAMMATIC_CLICK_JS
from ..models import ScenarioPhase

logger = structlog.get_logger()


class BasePage:
    """Base class for all page objects.

    Provides common functionality for page interactions including
    bounded wait strategies, forced activation and structural lookups.
    Page objects never hold on to locators between calls: the storefront
    re-renders freely, so every method re-queries what it needs.
    """

    phase: ScenarioPhase = ScenarioPhase.SETUP

    def __init__(self, page: Page, expect_timeout_ms: int = 8000) -> None:
        """Initialize the base page.

        Args:
            page: Playwright page instance.
            expect_timeout_ms: Default bound for terminal visibility checks.
        """
        self._page = page
        self.expect_timeout_ms = expect_timeout_ms

    async def wait_for_state(
        self, locator: Locator, state: str = "visible", timeout: Optional[int] = None
    ) -> bool:
        """Wait for a locator to reach a state without raising on timeout.

        Args:
            locator: Element to wait for.
            state: Expected state ('visible', 'hidden', 'attached', 'detached').
            timeout: Maximum wait time in milliseconds (default: expect timeout).

        Returns:
            True if the state was reached within the bound.
        """
        try:
            await locator.wait_for(
                state=state,
                timeout=self.expect_timeout_ms if timeout is None else timeout,
            )
            return True
        except PlaywrightTimeoutError:
            return False

    async def is_visible(self, locator: Locator) -> bool:
        """Instant visibility check that treats lookup errors as 'not visible'."""
        try:
            return await locator.is_visible()
        except PlaywrightError:
            return False

    async def programmatic_click(self, locator: Locator) -> None:
        """Invoke the element's click handler directly.

        Used when an overlay intercepts pointer events.
        """
        logger.debug("programmatic_click", phase=str(self.phase))
        await locator.evaluate(PROGRAMMATIC_CLICK_JS)

    async def get_text(self, locator: Locator, timeout: int = 2000) -> str:
        """Get trimmed text content, or an empty string if unreadable."""
        try:
            text = await locator.text_content(timeout=timeout)
        except PlaywrightError:
            return ""
        return (text or "").strip()

    @staticmethod
    def nearest_ancestor(locator: Locator, css_class: str, tag: str = "*") -> Locator:
        """Locate the closest ancestor carrying a CSS class.

        A structural walk instead of a fixed sibling/parent offset, so extra
        wrapper elements between the anchor and its container do not matter.

        Args:
            locator: Anchor element.
            css_class: Class token the ancestor must carry.
            tag: Ancestor tag name ('*' for any).

        Returns:
            Locator for the nearest matching ancestor.
        """
        return locator.locator(
            f'xpath=ancestor::{tag}[contains(concat(" ", normalize-space(@class), " "), " {css_class} ")][1]'
        )
