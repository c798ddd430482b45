"""Overlay-aware activation of dialog buttons.

The storefront's location dialog sits under a full-screen "UI blocker" that
fades in and out while the dialog animates. A pointer click issued during
that window is intercepted, and the dialog's close can lag the click. Each
attempt therefore escalates from a pointer click to a programmatic
activation, and the whole protocol is capped at a fixed number of attempts.
"""
from typing import Optional

import structlog
from playwright.async_api import Error as PlaywrightError, Locator, Page
from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt

from .errors import OverlayPersistentError
from .models import ScenarioPhase

logger = structlog.get_logger()

BLOCKER_SELECTOR = ".glux-desktop-ui-blocker"

# Activates the element's own click handler, bypassing pointer hit-testing.
PROGRAMMATIC_CLICK_JS = "el => el.click()"

DEFAULT_TIMEOUTS_MS = {
    "button_visible": 8000,
    "blocker_hidden": 1200,
    "close_signal": 800,
}


class DialogStillOpen(Exception):
    """A single activation attempt ended with the dialog still visible."""


async def _visible(locator: Locator) -> bool:
    try:
        return await locator.is_visible()
    except PlaywrightError:
        return False


async def _became_hidden(locator: Locator, timeout: int) -> bool:
    try:
        await locator.wait_for(state="hidden", timeout=timeout)
        return True
    except PlaywrightTimeoutError:
        return False


async def _force_activate(button: Locator) -> None:
    try:
        await button.evaluate(PROGRAMMATIC_CLICK_JS)
    except PlaywrightError as e:
        # The button can detach when the dialog closes mid-call; the close
        # signal check that follows decides the outcome.
        logger.debug("forced_activation_failed", error=str(e))


async def _activate_once(
    page: Page,
    button: Locator,
    close_signal: Locator,
    blocker_selector: str,
    timeouts: dict[str, int],
) -> None:
    try:
        await button.wait_for(state="visible", timeout=timeouts["button_visible"])
    except PlaywrightTimeoutError as e:
        raise DialogStillOpen("button did not become visible") from e

    await button.scroll_into_view_if_needed()
    if not await button.is_visible() or not await button.is_enabled():
        raise DialogStillOpen("button is not visible and enabled")

    blocker = page.locator(blocker_selector)
    if await _visible(blocker):
        await _became_hidden(blocker, timeouts["blocker_hidden"])

    if await _visible(blocker):
        logger.debug("ui_blocker_persistent", action="programmatic_click")
        await _force_activate(button)
    else:
        for trial in (True, False):
            try:
                await button.click(trial=trial)
            except PlaywrightError as e:
                logger.debug("pointer_click_failed", trial=trial, error=str(e))

    if await _became_hidden(close_signal, timeouts["close_signal"]):
        return

    logger.debug("dialog_close_lagging", action="programmatic_click")
    await _force_activate(button)
    if await _became_hidden(close_signal, timeouts["close_signal"]):
        return

    raise DialogStillOpen("dialog still visible after programmatic activation")


async def activate_and_confirm_closed(
    page: Page,
    button: Locator,
    close_signal: Locator,
    max_attempts: int = 3,
    *,
    phase: ScenarioPhase = ScenarioPhase.SETUP,
    blocker_selector: str = BLOCKER_SELECTOR,
    timeouts: Optional[dict[str, int]] = None,
) -> int:
    """Click a dialog button until the dialog is confirmed closed.

    Args:
        page: Playwright page instance.
        button: Button that closes or advances the dialog.
        close_signal: Element that must become hidden (usually the dialog).
        max_attempts: Hard ceiling on activation attempts.
        phase: Scenario phase attributed to a failure.
        blocker_selector: Selector of the pointer-intercepting overlay.
        timeouts: Overrides for DEFAULT_TIMEOUTS_MS.

    Returns:
        Number of attempts used (0 when the dialog was already closed).

    Raises:
        OverlayPersistentError: If every attempt left the dialog open.
        ValueError: If max_attempts is below 1.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    bounds = {**DEFAULT_TIMEOUTS_MS, **(timeouts or {})}

    if not await _visible(close_signal):
        logger.debug("dialog_already_closed")
        return 0

    attempts_used = 0
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max_attempts),
            retry=retry_if_exception_type((DialogStillOpen, PlaywrightError)),
        ):
            with attempt:
                attempts_used = attempt.retry_state.attempt_number
                await _activate_once(page, button, close_signal, blocker_selector, bounds)
    except RetryError as e:
        cause = e.last_attempt.exception()
        logger.error(
            "dialog_close_failed",
            attempts=max_attempts,
            phase=str(phase),
            last_error=str(cause),
        )
        raise OverlayPersistentError(
            f"Button click did not close the dialog after {max_attempts} attempts; "
            f"overlay may be persistent ({cause})",
            phase,
        ) from cause

    logger.info("dialog_closed", attempts=attempts_used)
    return attempts_used
