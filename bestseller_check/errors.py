"""Failure types raised by the scenario phases."""
from decimal import Decimal
from typing import Optional

from .models import ScenarioPhase


class ScenarioError(Exception):
    """A scenario phase failed with a human-readable reason."""

    def __init__(self, message: str, phase: ScenarioPhase = ScenarioPhase.SETUP) -> None:
        super().__init__(message)
        self.message = message
        self.phase = phase

    def __str__(self) -> str:
        return f"[{self.phase}] {self.message}"


class StructuralMismatchError(ScenarioError):
    """An element the flow depends on is absent from the page."""


class PriceNotFoundError(ScenarioError):
    """The item exists but exposes no parsable price."""


class OverlayPersistentError(ScenarioError):
    """The click protocol ran out of attempts without closing the dialog."""


class HardTimeoutError(ScenarioError):
    """A top-level bounded wait elapsed before its condition held."""

    def __init__(
        self,
        message: str,
        phase: ScenarioPhase = ScenarioPhase.SETUP,
        expected: Optional[str] = None,
        observed: Optional[str] = None,
    ) -> None:
        if expected is not None or observed is not None:
            message = f"{message} (expected: {expected}; observed: {observed})"
        super().__init__(message, phase)
        self.expected = expected
        self.observed = observed


class PlaywrightFailureError(ScenarioError):
    """A raw Playwright error escaped a phase (navigation, detached element)."""


# Failures worth a fresh browser context; structural and data-absence
# failures point at the page itself and are reported on the first try.
TRANSIENT_ERRORS = (OverlayPersistentError, HardTimeoutError, PlaywrightFailureError)


class PriceThresholdExceededError(AssertionError):
    """The extracted price is above the configured threshold."""

    def __init__(self, price: Decimal, threshold: Decimal) -> None:
        super().__init__(
            f"2nd Best Seller price ${price:.2f} exceeds threshold ${threshold:.2f}"
        )
        self.price = price
        self.threshold = threshold
