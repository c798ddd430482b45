"""Page object for the storefront header and its delivery-location popover."""
import re

import structlog
from playwright.async_api import Error as PlaywrightError, Page
from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_after_delay, wait_fixed

from ..click_protocol import BLOCKER_SELECTOR, activate_and_confirm_closed
from ..errors import HardTimeoutError, StructuralMismatchError
from ..models import ScenarioPhase
from .base_page import BasePage

logger = structlog.get_logger()


class StorefrontHomePage(BasePage):
    """Storefront landing page: header, logo and "Deliver to" location flow.

    Selectors are centralized here for easy maintenance when the site's
    DOM structure changes.
    """

    phase = ScenarioPhase.LOCATION

    SELECTORS = {
        "location_link": "#nav-global-location-popover-link",
        "logo": "a#nav-logo-sprites, a.nav-logo-link, #nav-logo-sprites",
        "location_header": "#glow-ingress-line2",
        "location_popover": '[aria-label="Choose your location"]',
        "zip_input": "#GLUXZipUpdateInput, #GLUXPostalCode",
        "ui_blocker": BLOCKER_SELECTOR,
    }

    CONTINUE_LABEL = re.compile(r"^Continue$", re.IGNORECASE)
    DISMISS_LABEL = re.compile(r"Dismiss|Close", re.IGNORECASE)

    def __init__(
        self,
        page: Page,
        expect_timeout_ms: int = 8000,
        click_attempts: int = 3,
        location_update_timeout_ms: int = 20000,
        settle_ms: int = 1000,
    ) -> None:
        """Initialize the home page.

        Args:
            page: Playwright page instance.
            expect_timeout_ms: Bound for visibility checks.
            click_attempts: Attempt ceiling for the "Continue" click protocol.
            location_update_timeout_ms: Bound for the header to reflect the new ZIP.
            settle_ms: Pause between filling the ZIP and submitting it.
        """
        super().__init__(page, expect_timeout_ms)
        self.click_attempts = click_attempts
        self.location_update_timeout_ms = location_update_timeout_ms
        self.settle_ms = settle_ms

    async def header_text(self) -> str:
        """Current trimmed text of the "Deliver to" header line."""
        return await self.get_text(self._page.locator(self.SELECTORS["location_header"]))

    async def ensure_location_link(self) -> None:
        """Make sure the "Deliver to" link is on the page.

        Some landing variants render without the header; clicking the logo
        reloads the regular home page.

        Raises:
            StructuralMismatchError: If the link is still missing afterwards.
        """
        link = self._page.locator(self.SELECTORS["location_link"])
        if await self.is_visible(link):
            return

        logger.info("location_link_missing", action="click_logo")
        logo = self._page.locator(self.SELECTORS["logo"]).first
        if await self.is_visible(logo):
            await logo.click()

        if not await self.wait_for_state(self._page.locator(self.SELECTORS["location_link"])):
            raise StructuralMismatchError(
                "'Deliver to' location link not found, even after returning via the site logo",
                self.phase,
            )

    async def set_delivery_zip(self, zip_code: str) -> str:
        """Set the delivery location to a US ZIP code.

        Args:
            zip_code: Five-digit ZIP code.

        Returns:
            The updated header text.

        Raises:
            StructuralMismatchError: If the popover, ZIP input or "Continue"
                button is missing, or the input refuses the value.
            OverlayPersistentError: If "Continue" never closes the dialog.
            HardTimeoutError: If the header never changes.
        """
        await self.ensure_location_link()

        baseline = await self.header_text()
        logger.info("setting_delivery_zip", zip_code=zip_code, header_before=baseline)

        await self._page.locator(self.SELECTORS["location_link"]).click()
        popover = self._page.locator(self.SELECTORS["location_popover"]).first
        if not await self.wait_for_state(popover):
            raise StructuralMismatchError("location popover did not open", self.phase)

        zip_input = popover.locator(self.SELECTORS["zip_input"]).first
        if not await self.wait_for_state(zip_input):
            raise StructuralMismatchError("ZIP code input not found in location popover", self.phase)

        await zip_input.fill(zip_code)
        typed = await zip_input.input_value()
        if typed != zip_code:
            raise StructuralMismatchError(
                f"ZIP input holds {typed!r} after filling {zip_code!r}", self.phase
            )

        await self._page.wait_for_timeout(self.settle_ms)
        try:
            await zip_input.press("Enter")
        except PlaywrightError as e:
            logger.debug("zip_enter_submit_failed", error=str(e))

        # "Continue" renders after the ZIP round trip; an absent button must
        # not read as an already-closed dialog.
        continue_button = self._page.get_by_role("button", name=self.CONTINUE_LABEL).first
        if not await self.wait_for_state(continue_button) and await self.is_visible(popover):
            raise StructuralMismatchError("'Continue' button not found in location popover", self.phase)

        dialog = (
            self._page.get_by_role("dialog")
            .filter(has=self._page.get_by_role("button", name=self.CONTINUE_LABEL))
            .first
        )
        await activate_and_confirm_closed(
            self._page,
            continue_button,
            dialog,
            self.click_attempts,
            phase=self.phase,
            blocker_selector=self.SELECTORS["ui_blocker"],
        )

        header = await self._wait_for_header_change(baseline)
        logger.info("delivery_zip_applied", zip_code=zip_code, header_after=header)

        await self.dismiss_banners()
        return header

    async def _wait_for_header_change(self, baseline: str) -> str:
        # An empty read means the header is re-rendering, not that it changed.
        retrying = AsyncRetrying(
            stop=stop_after_delay(self.location_update_timeout_ms / 1000),
            wait=wait_fixed(0.25),
            retry=retry_if_result(lambda text: not text or text == baseline),
        )
        try:
            return await retrying(self.header_text)
        except RetryError as e:
            observed = e.last_attempt.result()
            logger.error("location_header_unchanged", header=observed)
            raise HardTimeoutError(
                "Location header should update after applying ZIP",
                self.phase,
                expected=f"text different from {baseline!r}",
                observed=repr(observed),
            ) from None

    async def dismiss_banners(self) -> bool:
        """Close a residual informational banner if one is showing.

        Returns:
            True if a dismiss control was clicked.
        """
        dismiss = self._page.get_by_role("button", name=self.DISMISS_LABEL).first
        if not await self.is_visible(dismiss):
            return False

        try:
            await dismiss.click()
        except PlaywrightError as e:
            logger.debug("banner_dismiss_failed", error=str(e))
            return False

        await self._page.wait_for_timeout(200)
        return True
