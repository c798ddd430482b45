"""Playwright scenario: ZIP → category → second best seller price → threshold."""
import asyncio
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional
from urllib.parse import urlparse

import structlog
from playwright.async_api import Browser, BrowserContext, Error as PlaywrightError, Page, async_playwright
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt

from .artifacts import SNAPSHOT_DIR_FORMAT, cleanup_old_snapshots, save_debug_snapshot, should_keep, stop_tracing
from .errors import TRANSIENT_ERRORS, PlaywrightFailureError, PriceThresholdExceededError, ScenarioError
from .models import ArtifactMode, BestSellerItem, RunConfig, ScenarioPhase, ScenarioResult, ScenarioStatus
from .pages import CategoryPage, HamburgerMenu, StorefrontHomePage

logger = structlog.get_logger()

# Currency and language cookies that pin the storefront to USD / en_US
US_COOKIES = {
    "i18n-prefs": "USD",
    "lc-main": "en_US",
}


def cookie_domain(base_url: str) -> str:
    """Cookie domain covering the storefront host and its subdomains."""
    host = urlparse(base_url).hostname or ""
    if host.startswith("www."):
        host = host[len("www."):]
    return f".{host}"


async def seed_us_cookies(context: BrowserContext, base_url: str) -> None:
    """Seed USD/en_US cookies before the first navigation."""
    domain = cookie_domain(base_url)
    await context.add_cookies([
        {"name": name, "value": value, "domain": domain, "path": "/"}
        for name, value in US_COOKIES.items()
    ])
    logger.debug("seeded_cookies", domain=domain, names=list(US_COOKIES))


def assert_price_within_threshold(result: ScenarioResult) -> None:
    """Fail the run unless the extracted price is at most the threshold.

    Raises:
        AssertionError: If no price was extracted.
        PriceThresholdExceededError: If the price is above the threshold.
    """
    if result.price is None:
        raise AssertionError(f"No price extracted: {result.message or result.status}")
    if result.price > result.threshold:
        raise PriceThresholdExceededError(result.price, result.threshold)


class BestSellerPriceCheck:
    """Runs the best-seller price check against the storefront.

    The runner owns the browser lifecycle: one browser per run and a fresh
    context per try. The page objects only ever act on the page handed to
    them.
    """

    BROWSER_ARGS = [
        "--disable-gpu",
        "--disable-dev-shm-usage",
        "--no-sandbox",
    ]

    VIEWPORT = {"width": 1280, "height": 720}

    def __init__(
        self,
        config: RunConfig,
        progress_callback: Optional[Callable[[str], None]] = None,
    ) -> None:
        """Initialize the runner.

        Args:
            config: Run configuration.
            progress_callback: Optional callback function to report progress messages.
        """
        self.config = config
        self.progress_callback = progress_callback

    def _report_progress(self, message: str) -> None:
        """Report progress via callback if available."""
        if self.progress_callback:
            self.progress_callback(message)

    async def check_price(self, page: Page, context: BrowserContext) -> ScenarioResult:
        """Run every phase against an already-open page.

        Args:
            page: Fresh page in context.
            context: Browser context that receives the locale cookies.

        Returns:
            ScenarioResult with the extracted price and PASS/FAIL status.

        Raises:
            ScenarioError: If any phase fails; Playwright errors escaping a
                phase are wrapped as PlaywrightFailureError with that phase.
        """
        config = self.config
        phase = ScenarioPhase.SETUP
        try:
            await seed_us_cookies(context, config.base_url)
            await page.goto(config.base_url, wait_until="domcontentloaded")

            phase = ScenarioPhase.LOCATION
            self._report_progress(f"Setting delivery ZIP {config.zip_code}")
            home = StorefrontHomePage(
                page,
                expect_timeout_ms=config.expect_timeout_ms,
                click_attempts=config.click_attempts,
                location_update_timeout_ms=config.location_update_timeout_ms,
            )
            await home.set_delivery_zip(config.zip_code)

            phase = ScenarioPhase.NAVIGATION
            self._report_progress("Navigating to category")
            menu = HamburgerMenu(page, expect_timeout_ms=config.expect_timeout_ms)
            await menu.open()
            await menu.go_to_category(config.category)

            phase = ScenarioPhase.EXTRACTION
            self._report_progress("Reading Best Sellers")
            category_page = CategoryPage(
                page,
                expect_timeout_ms=config.expect_timeout_ms,
                debug_pause=config.debug_pause,
            )
            price = await category_page.get_second_best_seller_price()
            items = await self._collect_report_items(category_page)

        except ScenarioError:
            raise
        except PlaywrightError as e:
            logger.error("playwright_failure", phase=str(phase), error=str(e))
            raise PlaywrightFailureError(f"{type(e).__name__}: {e}", phase) from e

        result = ScenarioResult(threshold=config.price_threshold, price=price, items=items)
        logger.info(
            "price_checked",
            price=str(price),
            threshold=str(config.price_threshold),
            status=str(result.status),
        )
        self._report_progress(f"2nd Best Seller: {result.annotation()} ({result.status})")
        return result

    async def _collect_report_items(self, category_page: CategoryPage) -> list[BestSellerItem]:
        # Report-only re-read; the extracted price already decides the outcome.
        try:
            return await category_page.collect_best_sellers()
        except (ScenarioError, PlaywrightError) as e:
            logger.warning("best_sellers_collect_failed", error=str(e))
            return []

    def run(self) -> ScenarioResult:
        """Synchronous entry point - runs the async scenario.

        Returns:
            ScenarioResult; phase failures are reported with ERROR status.
        """
        return asyncio.run(self._run_async())

    async def _run_async(self) -> ScenarioResult:
        started_at = datetime.now()
        run_dir = self.config.artifacts_dir / started_at.strftime(SNAPSHOT_DIR_FORMAT)
        cleanup_old_snapshots(self.config.artifacts_dir, self.config.artifacts_max_age_hours)

        async with async_playwright() as p:
            browser = await p.chromium.launch(
                headless=self.config.headless,
                args=self.BROWSER_ARGS,
            )
            try:
                result = await self._run_with_retries(browser, run_dir)
            finally:
                await browser.close()

        result.started_at = started_at
        result.ended_at = datetime.now()
        return result

    async def _run_with_retries(self, browser: Browser, run_dir: Path) -> ScenarioResult:
        artifacts: list[str] = []
        tries = self.config.scenario_retries + 1
        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(tries),
                retry=retry_if_exception_type(TRANSIENT_ERRORS),
                reraise=True,
            ):
                with attempt:
                    number = attempt.retry_state.attempt_number
                    if number > 1:
                        logger.warning("scenario_retry", attempt=number, of=tries)
                        self._report_progress(f"Retrying ({number}/{tries})")
                    result = await self._run_once(browser, run_dir / f"attempt_{number}", artifacts)
        except ScenarioError as e:
            logger.error("scenario_failed", phase=str(e.phase), error=e.message)
            return ScenarioResult(
                threshold=self.config.price_threshold,
                status=ScenarioStatus.ERROR,
                failed_phase=e.phase,
                message=e.message,
                artifacts=artifacts,
            )

        result.artifacts = artifacts
        return result

    async def _create_context(self, browser: Browser, video_dir: Path) -> BrowserContext:
        options = {
            "viewport": self.VIEWPORT,
            "locale": "en-US",
        }
        if self.config.video_mode != ArtifactMode.OFF:
            options["record_video_dir"] = str(video_dir)

        context = await browser.new_context(**options)
        context.set_default_timeout(self.config.action_timeout_ms)
        context.set_default_navigation_timeout(self.config.navigation_timeout_ms)
        return context

    async def _run_once(self, browser: Browser, target_dir: Path, artifacts: list[str]) -> ScenarioResult:
        context = await self._create_context(browser, target_dir / "video")
        if self.config.trace_mode != ArtifactMode.OFF:
            await context.tracing.start(screenshots=True, snapshots=True)

        page = await context.new_page()
        failed = True
        try:
            result = await self.check_price(page, context)
            failed = not result.passed
            if failed:
                artifacts.extend(
                    await save_debug_snapshot(page, "threshold_exceeded", target_dir, message=result.annotation())
                )
            return result
        except ScenarioError as e:
            artifacts.extend(
                await save_debug_snapshot(page, str(e.phase), target_dir, e.phase, e.message)
            )
            raise
        finally:
            trace = await stop_tracing(context, self.config.trace_mode, failed, target_dir, "scenario")
            if trace:
                artifacts.append(trace)
            video = page.video
            await context.close()
            if video is not None:
                if should_keep(self.config.video_mode, failed):
                    artifacts.append(str(await video.path()))
                else:
                    await video.delete()
