"""Shared fixtures for the best-seller check tests."""
import pytest

from bestseller_check.models import RunConfig
from storefront import Storefront


@pytest.fixture
def storefront():
    """Fake storefront with the default best sellers ($89.99, $142.50)."""
    return Storefront()


@pytest.fixture
def fast_config():
    """RunConfig with bounds short enough for the in-memory storefront."""
    return RunConfig(
        expect_timeout_ms=100,
        location_update_timeout_ms=500,
        click_attempts=3,
    )
