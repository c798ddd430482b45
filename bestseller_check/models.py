"""Data contracts for type safety and documentation."""
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from pathlib import Path
from typing import Optional


class ScenarioPhase(StrEnum):
    """Phase of the scenario a failure is attributed to."""

    SETUP = "setup"
    LOCATION = "location-set"
    NAVIGATION = "navigation"
    EXTRACTION = "extraction"


class ScenarioStatus(StrEnum):
    """Outcome of a scenario run."""

    PASS = "PASS"
    FAIL = "FAIL"      # Price extracted but above threshold
    ERROR = "ERROR"    # A phase failed before a price was available


class ArtifactMode(StrEnum):
    """Retention policy for traces and videos."""

    OFF = "off"
    ON = "on"
    RETAIN_ON_FAILURE = "retain-on-failure"


@dataclass(frozen=True)
class PriceFragmentPair:
    """Raw text of the whole and fractional parts of a displayed price."""

    whole_text: str
    fractional_text: str


@dataclass(frozen=True)
class CategoryPath:
    """Two-level menu path plus the checks proving arrival.

    All values are regular expression sources matched case-insensitively.
    """

    department: str = r"^Electronics$"
    subcategory: str = r"TV\s*&\s*Video"
    heading: str = r"Televisions?\s*&\s*Video"
    url_hint: str = r"/(gp/browse|tv|television)"


@dataclass(frozen=True)
class RunConfig:
    """Configuration for a scenario run."""

    base_url: str = "https://www.amazon.com"
    zip_code: str = "10001"
    price_threshold: Decimal = Decimal("100")
    headless: bool = True
    action_timeout_ms: int = 2000
    navigation_timeout_ms: int = 5000
    expect_timeout_ms: int = 8000
    location_update_timeout_ms: int = 20000
    click_attempts: int = 3
    scenario_retries: int = 1
    category: CategoryPath = field(default_factory=CategoryPath)
    artifacts_dir: Path = Path("debug")
    trace_mode: ArtifactMode = ArtifactMode.RETAIN_ON_FAILURE
    video_mode: ArtifactMode = ArtifactMode.RETAIN_ON_FAILURE
    artifacts_max_age_hours: int = 24
    output_dir: Path = Path("output")
    debug_pause: bool = False


@dataclass(frozen=True)
class BestSellerItem:
    """A qualifying (priced) entry of the best-sellers module."""

    position: int
    fragments: PriceFragmentPair
    price: Optional[Decimal]

    def to_dict(self) -> dict:
        """Convert to dictionary for DataFrame creation."""
        return {
            "position": self.position,
            "whole_text": self.fragments.whole_text,
            "fractional_text": self.fragments.fractional_text,
            "price": float(self.price) if self.price is not None else None,
        }


@dataclass
class ScenarioResult:
    """Result of one best-seller price check."""

    threshold: Decimal
    price: Optional[Decimal] = None
    status: ScenarioStatus = ScenarioStatus.ERROR
    failed_phase: Optional[ScenarioPhase] = None
    message: str = ""
    items: list[BestSellerItem] = field(default_factory=list)
    artifacts: list[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    ended_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        """Derive the status from the price once one is known."""
        if self.price is not None and self.failed_phase is None:
            self.status = ScenarioStatus.PASS if self.passed else ScenarioStatus.FAIL

    @property
    def passed(self) -> bool:
        return self.price is not None and self.price <= self.threshold

    @property
    def elapsed_seconds(self) -> float:
        if self.ended_at is None:
            return 0.0
        return (self.ended_at - self.started_at).total_seconds()

    def annotation(self) -> str:
        """Human-readable price annotation, e.g. ``$142.50``."""
        if self.price is None:
            return "n/a"
        return f"${self.price:.2f}"

    def to_dict(self) -> dict:
        """Convert to dictionary for DataFrame creation."""
        return {
            "price": float(self.price) if self.price is not None else None,
            "threshold": float(self.threshold),
            "status": str(self.status),
            "failed_phase": str(self.failed_phase) if self.failed_phase else None,
            "message": self.message,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
        }
