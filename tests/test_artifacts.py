"""Tests for failure artifact handling."""
import asyncio
import json
import os
from datetime import datetime, timedelta

import pytest

from bestseller_check.artifacts import (
    SNAPSHOT_DIR_FORMAT,
    cleanup_old_snapshots,
    save_debug_snapshot,
    should_keep,
    stop_tracing,
)
from bestseller_check.models import ArtifactMode, ScenarioPhase
from fakes import FakePage


class FakeTracing:
    def __init__(self):
        self.stops = []

    async def stop(self, path=None):
        self.stops.append(path)


class TracingContext:
    def __init__(self):
        self.tracing = FakeTracing()


class TestCleanupOldSnapshots:
    """Tests for snapshot retention."""

    def test_removes_only_expired(self, tmp_path):
        """Test that old timestamped folders go and the rest stay."""
        old = tmp_path / (datetime.now() - timedelta(hours=30)).strftime(SNAPSHOT_DIR_FORMAT)
        recent = tmp_path / (datetime.now() - timedelta(hours=1)).strftime(SNAPSHOT_DIR_FORMAT)
        unrelated = tmp_path / "keep-me"
        for path in (old, recent, unrelated):
            path.mkdir()
        (tmp_path / "notes.txt").write_text("x")

        removed = cleanup_old_snapshots(tmp_path, max_age_hours=24)

        assert removed == 1
        assert not old.exists()
        assert recent.exists()
        assert unrelated.exists()

    def test_missing_directory(self, tmp_path):
        """Test that a missing artifacts directory is fine."""
        assert cleanup_old_snapshots(tmp_path / "nope") == 0


class TestSaveDebugSnapshot:
    """Tests for save_debug_snapshot."""

    def test_writes_screenshot_html_and_state(self, tmp_path):
        """Test the three artifacts and the state content."""
        page = FakePage(url="https://www.amazon.com/gp/browse.html")

        written = asyncio.run(
            save_debug_snapshot(page, "extraction", tmp_path, ScenarioPhase.EXTRACTION, "module missing")
        )

        assert [os.path.basename(p) for p in written] == [
            "extraction_screenshot.png",
            "extraction_page.html",
            "extraction_state.json",
        ]
        state = json.loads((tmp_path / "extraction_state.json").read_text())
        assert state["phase"] == "extraction"
        assert state["url"] == "https://www.amazon.com/gp/browse.html"
        assert state["message"] == "module missing"

    def test_unsafe_context_name(self, tmp_path):
        """Test that the context name is made filesystem safe."""
        written = asyncio.run(save_debug_snapshot(FakePage(), "location/set zip", tmp_path))

        assert os.path.basename(written[0]) == "location_set_zip_screenshot.png"

    def test_capture_failure_not_raised(self, tmp_path):
        """Test that a failing screenshot is logged, never raised."""
        page = FakePage()

        async def broken_screenshot(**kwargs):
            raise RuntimeError("Target page, context or browser has been closed")

        page.screenshot = broken_screenshot

        assert asyncio.run(save_debug_snapshot(page, "setup", tmp_path)) == []


class TestRetention:
    """Tests for trace and video retention."""

    @pytest.mark.parametrize(
        "mode,failed,kept",
        [
            (ArtifactMode.OFF, True, False),
            (ArtifactMode.ON, False, True),
            (ArtifactMode.RETAIN_ON_FAILURE, True, True),
            (ArtifactMode.RETAIN_ON_FAILURE, False, False),
        ],
    )
    def test_should_keep(self, mode, failed, kept):
        """Test the retention matrix."""
        assert should_keep(mode, failed) is kept

    def test_trace_saved_on_failure(self, tmp_path):
        """Test that a failed run keeps its trace archive."""
        context = TracingContext()

        path = asyncio.run(stop_tracing(context, ArtifactMode.RETAIN_ON_FAILURE, True, tmp_path, "scenario"))

        assert path == str(tmp_path / "scenario_trace.zip")
        assert context.tracing.stops == [path]

    def test_trace_discarded_on_success(self, tmp_path):
        """Test that a passing run stops tracing without saving."""
        context = TracingContext()

        path = asyncio.run(stop_tracing(context, ArtifactMode.RETAIN_ON_FAILURE, False, tmp_path, "scenario"))

        assert path is None
        assert context.tracing.stops == [None]

    def test_tracing_off(self, tmp_path):
        """Test that nothing is stopped when tracing never started."""
        context = TracingContext()

        assert asyncio.run(stop_tracing(context, ArtifactMode.OFF, True, tmp_path, "scenario")) is None
        assert context.tracing.stops == []
