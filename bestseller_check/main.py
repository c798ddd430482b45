"""Best-Seller Price Check - Main Entry Point."""
import argparse
import logging
import sys
from pathlib import Path

import structlog

from .config_loader import load_run_config
from .models import ScenarioStatus
from .report import save_results
from .scenario import BestSellerPriceCheck

# Exit codes
EXIT_PASS = 0
EXIT_THRESHOLD_EXCEEDED = 1
EXIT_FILE_NOT_FOUND = 2
EXIT_INVALID_CONFIG = 3
EXIT_SCENARIO_FAILED = 4
EXIT_UNEXPECTED = 5
EXIT_INTERRUPTED = 130

DEFAULT_SETTINGS = Path("config/settings.yaml")


def configure_logging(verbose: bool = False) -> None:
    """Configure structured logging.

    Args:
        verbose: Enable debug level logging if True.
    """
    log_level = logging.DEBUG if verbose else logging.INFO

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        stream=sys.stdout,
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        description="Best-Seller Price Check - fails when the 2nd best seller is above a threshold",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Run with config/settings.yaml and environment overrides
  python -m bestseller_check.main

  # Different ZIP and threshold
  python -m bestseller_check.main --zip 94105 --threshold 250

  # Watch the browser and stop on the chosen item
  python -m bestseller_check.main --visible --debug-pause
        """,
    )
    parser.add_argument(
        "--settings",
        "-s",
        type=Path,
        help="Path to settings.yaml configuration file (default: config/settings.yaml if present)",
    )
    parser.add_argument("--base-url", help="Storefront base URL (env: BASE_URL)")
    parser.add_argument("--zip", dest="zip_code", help="Delivery ZIP code (env: ZIP)")
    parser.add_argument(
        "--threshold",
        dest="price_threshold",
        help="Maximum accepted price in USD (env: PRICE_THRESHOLD)",
    )
    parser.add_argument(
        "--visible",
        action="store_true",
        help="Run browser with visible window (for debugging)",
    )
    parser.add_argument(
        "--debug-pause",
        action="store_true",
        help="Highlight the chosen item and open the Playwright inspector",
    )
    parser.add_argument(
        "--retries",
        dest="scenario_retries",
        type=int,
        help="Whole-scenario retries (default from settings: 1)",
    )
    parser.add_argument(
        "--output",
        "-o",
        dest="output_dir",
        type=Path,
        help="Output directory for the Excel report (default: ./output)",
    )
    parser.add_argument(
        "--no-report",
        action="store_true",
        help="Skip writing the Excel report",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )

    return parser.parse_args(argv)


def _cli_overrides(args: argparse.Namespace) -> dict:
    overrides = {
        "base_url": args.base_url,
        "zip_code": args.zip_code,
        "price_threshold": args.price_threshold,
        "scenario_retries": args.scenario_retries,
        "output_dir": args.output_dir,
    }
    if args.visible:
        overrides["headless"] = False
    if args.debug_pause:
        overrides["debug_pause"] = True
    return overrides


def main(argv: list[str] | None = None) -> int:
    """Run the best-seller price check.

    Returns:
        Exit code: 0 if the price is within the threshold, 1 if above it,
        2+ for errors.
    """
    args = parse_args(argv)
    configure_logging(args.verbose)

    logger = structlog.get_logger()

    try:
        if args.settings is not None and not args.settings.exists():
            raise FileNotFoundError(f"Configuration file not found: {args.settings}")

        config = load_run_config(args.settings or DEFAULT_SETTINGS, overrides=_cli_overrides(args))

        logger.info(
            "starting_price_check",
            base_url=config.base_url,
            zip_code=config.zip_code,
            threshold=str(config.price_threshold),
            headless=config.headless,
        )

        print(f"\n{'=' * 60}")
        print("BEST-SELLER PRICE CHECK")
        print(f"{'=' * 60}")
        print(f"Base URL: {config.base_url}")
        print(f"ZIP Code: {config.zip_code}")
        print(f"Category: {config.category.department} > {config.category.subcategory}")
        print(f"Threshold: ${config.price_threshold:.2f}")
        print(f"{'=' * 60}\n")

        check = BestSellerPriceCheck(config, progress_callback=print)
        result = check.run()

        output_path = None
        if not args.no_report:
            output_path = save_results(
                result,
                config.output_dir,
                timing_info={"base_url": config.base_url, "zip_code": config.zip_code},
            )

        logger.info(
            "price_check_complete",
            status=str(result.status),
            price=str(result.price) if result.price is not None else None,
            elapsed_seconds=result.elapsed_seconds,
        )

        print(f"\n{'=' * 60}")
        print(f"RESULT: {result.status}")
        print(f"{'=' * 60}")
        print(f"2nd Best Seller price: {result.annotation()}")
        if result.status == ScenarioStatus.ERROR:
            print(f"Failed during {result.failed_phase}: {result.message}")
        for artifact in result.artifacts:
            print(f"Artifact: {artifact}")
        if output_path:
            print(f"Results saved to: {output_path}")
        print(f"{'=' * 60}\n")

        if result.status == ScenarioStatus.PASS:
            return EXIT_PASS
        if result.status == ScenarioStatus.FAIL:
            return EXIT_THRESHOLD_EXCEEDED
        return EXIT_SCENARIO_FAILED

    except FileNotFoundError as e:
        logger.error("file_not_found", error=str(e))
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FILE_NOT_FOUND

    except ValueError as e:
        logger.error("validation_error", error=str(e))
        print(f"Configuration Error: {e}", file=sys.stderr)
        return EXIT_INVALID_CONFIG

    except KeyboardInterrupt:
        logger.info("interrupted_by_user")
        print("\nPrice check interrupted by user.", file=sys.stderr)
        return EXIT_INTERRUPTED

    except Exception as e:
        logger.exception("unexpected_error", error=str(e))
        print(f"Unexpected Error: {e}", file=sys.stderr)
        return EXIT_UNEXPECTED


if __name__ == "__main__":
    sys.exit(main())
