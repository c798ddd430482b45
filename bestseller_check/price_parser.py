"""Price parsing for split whole/fraction price displays."""
import re
from decimal import Decimal
from typing import Optional

import structlog
from playwright.async_api import Error as PlaywrightError, Locator

from .models import PriceFragmentPair

logger = structlog.get_logger()

NON_DIGIT = re.compile(r"\D")

# Storefront price markup: <span class="a-price"><span class="a-price-whole">1,234.</span>
# <span class="a-price-fraction">05</span></span>
PRICE_SELECTORS = {
    "price": ".a-price",
    "whole": ".a-price .a-price-whole",
    "fraction": ".a-price .a-price-fraction",
}


def parse_price_fragments(whole_text: Optional[str], fractional_text: Optional[str]) -> Optional[Decimal]:
    """Parse the two text fragments of a price display.

    Only digits survive, so thousands separators, currency symbols and the
    trailing dot of the whole part are never read as a decimal point.

    Args:
        whole_text: Raw text of the integer part (e.g. "1,234.").
        fractional_text: Raw text of the cents part (e.g. "5").

    Returns:
        Decimal with exactly two fractional digits, or None when the whole
        part carries no digits (price hidden, out of stock).
    """
    whole = NON_DIGIT.sub("", whole_text or "")
    fraction = NON_DIGIT.sub("", fractional_text or "")

    if not whole:
        return None

    fraction = (fraction or "00").rjust(2, "0")[:2]
    return Decimal(f"{whole}.{fraction}")


def parse_price_pair(pair: PriceFragmentPair) -> Optional[Decimal]:
    """Parse a PriceFragmentPair."""
    return parse_price_fragments(pair.whole_text, pair.fractional_text)


async def _inner_text_or_empty(locator: Locator, timeout: int) -> str:
    try:
        return await locator.inner_text(timeout=timeout)
    except PlaywrightError as e:
        logger.debug("price_fragment_unreadable", error=str(e))
        return ""


async def read_price_fragments(item: Locator, timeout: int = 2000) -> PriceFragmentPair:
    """Read the raw whole/fraction text of the first price inside an item."""
    whole = await _inner_text_or_empty(item.locator(PRICE_SELECTORS["whole"]).first, timeout)
    fraction = await _inner_text_or_empty(item.locator(PRICE_SELECTORS["fraction"]).first, timeout)
    return PriceFragmentPair(whole_text=whole, fractional_text=fraction)


async def parse_price_from_item(item: Locator, timeout: int = 2000) -> Optional[Decimal]:
    """Read and parse the price shown inside a list item."""
    return parse_price_pair(await read_price_fragments(item, timeout=timeout))
