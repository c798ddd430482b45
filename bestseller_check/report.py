"""Excel run report with formula-injection hardening."""
import re
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

from .models import ScenarioResult


def sanitize_cell_value(value: Any) -> Any:
    """Sanitize cell values to prevent formula injection.

    Text scraped from the storefront ends up in the workbook, and Excel
    formulas can execute commands when prefixed with certain characters.

    Args:
        value: Cell value to sanitize.

    Returns:
        Sanitized value, or original if safe.

    Raises:
        ValueError: If malicious DDE pattern detected.
    """
    if isinstance(value, str):
        # Check for DDE/external command patterns FIRST (these are malicious)
        dde_patterns = [
            r"=\s*CMD\s*\|",
            r"=\s*EXEC\s*\(",
            r"=\s*HYPERLINK\s*\(",
            r"=\s*WEBSERVICE\s*\(",
        ]
        for pattern in dde_patterns:
            if re.search(pattern, value, re.IGNORECASE):
                raise ValueError(
                    f"Potentially malicious formula detected: {value[:50]}..."
                )

        dangerous_prefixes = ("=", "+", "-", "@", "\t", "\r", "\n")
        if value.startswith(dangerous_prefixes):
            return f"'{value}"

    return value


def _sanitize_frame(df: pd.DataFrame) -> pd.DataFrame:
    for col in df.select_dtypes(include=["object"]).columns:
        df[col] = df[col].apply(sanitize_cell_value)
    return df


def build_frames(result: ScenarioResult) -> dict[str, pd.DataFrame]:
    """DataFrames for each report sheet."""
    summary_df = _sanitize_frame(pd.DataFrame([result.to_dict()]))

    items_df = pd.DataFrame(
        [item.to_dict() for item in result.items],
        columns=["position", "whole_text", "fractional_text", "price"],
    )
    items_df = _sanitize_frame(items_df)

    artifacts_df = pd.DataFrame({"artifact": result.artifacts}, dtype="object")

    return {
        "Summary": summary_df,
        "Best Sellers": items_df,
        "Artifacts": artifacts_df,
    }


def save_results(
    result: ScenarioResult,
    output_dir: Path,
    timing_info: dict | None = None,
) -> Path:
    """Save the scenario result to Excel.

    Args:
        result: Scenario result to report.
        output_dir: Directory to save the output file.
        timing_info: Optional extra execution data (e.g. environment, zip_code).

    Returns:
        Path to the created output file.
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    output_path = output_dir / f"results_{timestamp}.xlsx"

    frames = build_frames(result)

    with pd.ExcelWriter(output_path, engine="xlsxwriter") as writer:
        workbook = writer.book

        header_format = workbook.add_format(
            {"bold": True, "bg_color": "#4F81BD", "font_color": "white"}
        )
        pass_format = workbook.add_format({"bg_color": "#C6EFCE"})
        fail_format = workbook.add_format({"bg_color": "#FFC7CE"})
        currency_format = workbook.add_format({"num_format": "$#,##0.00"})

        for sheet_name, df in frames.items():
            df.to_excel(writer, sheet_name=sheet_name, index=False)
            worksheet = writer.sheets[sheet_name]
            for col_num, value in enumerate(df.columns.values):
                worksheet.write(0, col_num, value, header_format)

            for col_name in ("price", "threshold"):
                if col_name in df.columns:
                    col_idx = df.columns.get_loc(col_name)
                    worksheet.set_column(col_idx, col_idx, 12, currency_format)

        # Status highlighting on the summary row
        summary_df = frames["Summary"]
        worksheet = writer.sheets["Summary"]
        status_col = summary_df.columns.get_loc("status")
        worksheet.conditional_format(
            1, status_col, len(summary_df), status_col,
            {"type": "text", "criteria": "containing", "value": "PASS", "format": pass_format},
        )
        worksheet.conditional_format(
            1, status_col, len(summary_df), status_col,
            {"type": "text", "criteria": "not containing", "value": "PASS", "format": fail_format},
        )

        # Execution Info sheet (timing data)
        elapsed = result.elapsed_seconds
        exec_data = {
            "Metric": [
                "Start Time",
                "End Time",
                "Duration",
                "Duration (seconds)",
                "Priced Items Found",
            ],
            "Value": [
                result.started_at.isoformat(),
                result.ended_at.isoformat() if result.ended_at else "N/A",
                f"{int(elapsed // 60)}m {int(elapsed % 60)}s",
                f"{elapsed:.1f}",
                str(len(result.items)),
            ],
        }
        for key, value in (timing_info or {}).items():
            exec_data["Metric"].append(str(key))
            exec_data["Value"].append(sanitize_cell_value(str(value)))

        exec_df = pd.DataFrame(exec_data)
        exec_df.to_excel(writer, sheet_name="Execution Info", index=False)
        worksheet = writer.sheets["Execution Info"]
        for col_num, value in enumerate(exec_df.columns.values):
            worksheet.write(0, col_num, value, header_format)
        # Widen columns for readability
        worksheet.set_column(0, 0, 22)
        worksheet.set_column(1, 1, 30)

    return output_path
