"""Page object for a category landing page and its "Best Sellers" module."""
import re
from decimal import Decimal

import structlog
from playwright.async_api import Locator, Page

from ..errors import PriceNotFoundError, StructuralMismatchError
from ..models import BestSellerItem, ScenarioPhase
from ..price_parser import PRICE_SELECTORS, parse_price_pair, read_price_fragments
from .base_page import BasePage

logger = structlog.get_logger()

_NUMBER_WORDS = ("zero", "one", "two", "three", "four", "five", "six", "seven", "eight", "nine", "ten")


def _count_word(count: int) -> str:
    return _NUMBER_WORDS[count] if count < len(_NUMBER_WORDS) else str(count)


class CategoryPage(BasePage):
    """Category landing page built from "octopus" product cards.

    The best-sellers module is found by its title text rather than by
    position, and its items are filtered to those showing a price before
    indexing: the carousel interleaves "shop now" tiles with real listings.
    """

    phase = ScenarioPhase.EXTRACTION

    SELECTORS = {
        "card_title": ".octopus-pc-card-title span",
        "card_content": ".octopus-pc-card-content, .octopus-card-content, .octopus-card-carousel-container",
        "item": "li",
        "price": PRICE_SELECTORS["price"],
    }

    CARD_CLASS = "octopus-pc-card"
    BEST_SELLERS_TITLE = re.compile(r"best\s*sellers", re.IGNORECASE)
    MIN_PRICED_ITEMS = 2

    def __init__(self, page: Page, expect_timeout_ms: int = 8000, debug_pause: bool = False) -> None:
        """Initialize the category page.

        Args:
            page: Playwright page instance.
            expect_timeout_ms: Bound for the module title to appear.
            debug_pause: Highlight the chosen item and open the Playwright
                inspector before parsing it.
        """
        super().__init__(page, expect_timeout_ms)
        self.debug_pause = debug_pause

    async def best_sellers_card(self) -> Locator:
        """Locate the card that contains the "Best Sellers" title.

        Raises:
            StructuralMismatchError: If no such module is rendered.
        """
        title = (
            self._page.locator(self.SELECTORS["card_title"])
            .filter(has_text=self.BEST_SELLERS_TITLE)
            .first
        )
        if not await self.wait_for_state(title):
            logger.error("best_sellers_module_missing", url=self._page.url)
            raise StructuralMismatchError("best-seller module not found", self.phase)

        return self.nearest_ancestor(title, self.CARD_CLASS, tag="div")

    async def priced_items(self) -> Locator:
        """All list items of the module that display a price."""
        card = await self.best_sellers_card()
        content = card.locator(self.SELECTORS["card_content"])

        # Carousels render their items lazily once scrolled near.
        await content.first.scroll_into_view_if_needed()

        return content.locator(self.SELECTORS["item"]).filter(
            has=self._page.locator(self.SELECTORS["price"])
        )

    async def collect_best_sellers(self) -> list[BestSellerItem]:
        """Read every qualifying item of the module.

        Returns:
            Items in display order, positions counted among priced items only.
        """
        items = await self.priced_items()
        count = await items.count()
        collected = []
        for position in range(count):
            fragments = await read_price_fragments(items.nth(position))
            collected.append(
                BestSellerItem(
                    position=position,
                    fragments=fragments,
                    price=parse_price_pair(fragments),
                )
            )
        logger.info("best_sellers_collected", count=len(collected))
        return collected

    async def get_nth_best_seller_price(self, position: int = 2) -> Decimal:
        """Price of the Nth (1-based) priced item in the module.

        Raises:
            StructuralMismatchError: If the module is missing or has too few
                priced items.
            PriceNotFoundError: If the chosen item has no parsable price.
            ValueError: If position is below 1.
        """
        if position < 1:
            raise ValueError(f"position must be at least 1, got {position}")

        items = await self.priced_items()
        count = await items.count()
        logger.info("best_sellers_priced_items", count=count)

        required = max(position, self.MIN_PRICED_ITEMS)
        if count < required:
            raise StructuralMismatchError(
                f"best-seller module has fewer than {_count_word(required)} priced items (found {count})",
                self.phase,
            )

        item = items.nth(position - 1)
        if self.debug_pause:
            await item.highlight()
            await self._page.pause()

        fragments = await read_price_fragments(item)
        price = parse_price_pair(fragments)
        if price is None:
            raise PriceNotFoundError(
                f"no price found on best seller #{position} "
                f"(whole={fragments.whole_text!r}, fraction={fragments.fractional_text!r})",
                self.phase,
            )

        logger.info("best_seller_price_extracted", position=position, price=str(price))
        return price

    async def get_second_best_seller_price(self) -> Decimal:
        """Price of the second priced item in the "Best Sellers" module."""
        return await self.get_nth_best_seller_price(2)
