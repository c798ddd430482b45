"""Failure artifacts: screenshots, page HTML, state JSON and traces."""
import json
import re
import shutil
from datetime import datetime, timedelta
from pathlib import Path
from typing import Optional

import structlog
from playwright.async_api import BrowserContext, Page

from .models import ArtifactMode, ScenarioPhase

logger = structlog.get_logger()

SNAPSHOT_DIR_FORMAT = "%Y%m%d_%H%M%S"


def cleanup_old_snapshots(artifacts_dir: Path, max_age_hours: int = 24) -> int:
    """Remove snapshot directories older than max_age_hours.

    Args:
        artifacts_dir: Root directory holding timestamped snapshot folders.
        max_age_hours: Retention window.

    Returns:
        Number of directories removed.
    """
    if not artifacts_dir.exists():
        return 0

    cutoff = datetime.now() - timedelta(hours=max_age_hours)
    removed = 0

    for snapshot_dir in artifacts_dir.iterdir():
        if not snapshot_dir.is_dir():
            continue
        try:
            # Directory name is the snapshot timestamp (YYYYMMDD_HHMMSS)
            dir_time = datetime.strptime(snapshot_dir.name, SNAPSHOT_DIR_FORMAT)
            if dir_time < cutoff:
                shutil.rmtree(snapshot_dir)
                removed += 1
                logger.debug("cleaned_debug_snapshot", path=str(snapshot_dir))
        except (ValueError, OSError):
            continue

    return removed


async def save_debug_snapshot(
    page: Page,
    context_name: str,
    target_dir: Path,
    phase: Optional[ScenarioPhase] = None,
    message: str = "",
) -> list[str]:
    """Save page state for debugging when a phase fails.

    Writes a full-page screenshot, the page HTML and a state JSON. Failures
    while capturing are logged, never raised: the original scenario error is
    what the caller reports.

    Args:
        page: Playwright page instance.
        context_name: Description of what was being done (e.g. "attempt_1").
        target_dir: Directory to write into.
        phase: Phase that failed.
        message: Failure message.

    Returns:
        Paths of the files written.
    """
    written: list[str] = []
    safe_context = re.sub(r"[^a-zA-Z0-9_-]", "_", context_name)

    try:
        target_dir.mkdir(parents=True, exist_ok=True)

        screenshot_path = target_dir / f"{safe_context}_screenshot.png"
        await page.screenshot(path=str(screenshot_path), full_page=True)
        written.append(str(screenshot_path))

        html_path = target_dir / f"{safe_context}_page.html"
        html_path.write_text(await page.content(), encoding="utf-8")
        written.append(str(html_path))

        state = {
            "url": page.url,
            "context": context_name,
            "phase": str(phase) if phase else None,
            "message": message,
            "timestamp": datetime.now().isoformat(),
            "page_title": await page.title(),
        }
        state_path = target_dir / f"{safe_context}_state.json"
        state_path.write_text(json.dumps(state, indent=2), encoding="utf-8")
        written.append(str(state_path))

        logger.info("debug_snapshot_saved", path=str(target_dir), context=context_name)

    except Exception as e:
        logger.warning("debug_snapshot_failed", context=context_name, error=str(e))

    return written


def should_keep(mode: ArtifactMode, failed: bool) -> bool:
    """Whether an artifact governed by mode is kept for this outcome."""
    if mode == ArtifactMode.ON:
        return True
    if mode == ArtifactMode.RETAIN_ON_FAILURE:
        return failed
    return False


async def stop_tracing(
    context: BrowserContext, mode: ArtifactMode, failed: bool, target_dir: Path, name: str
) -> Optional[str]:
    """Stop tracing and keep the trace archive according to mode.

    Returns:
        Path of the saved trace, or None if discarded.
    """
    if mode == ArtifactMode.OFF:
        return None

    if not should_keep(mode, failed):
        await context.tracing.stop()
        return None

    target_dir.mkdir(parents=True, exist_ok=True)
    trace_path = target_dir / f"{name}_trace.zip"
    await context.tracing.stop(path=str(trace_path))
    logger.info("trace_saved", path=str(trace_path))
    return str(trace_path)
