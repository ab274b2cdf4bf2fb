# src/axebatch/analysis/excel_report.py
import re
from pathlib import Path
from typing import Dict, List, Sequence, Union
from urllib.parse import urlparse

import openpyxl
import pandas as pd

from ..errors import ExportError
from ..models import TestOutcome
from ..utils.config_manager import get_config_manager
from ..utils.logging_config import get_logger

config_manager = get_config_manager()
logger = get_logger("exporters", config_manager.get_logging_config()["components"]["exporters"])

ISSUE_COLUMNS = [
    "page_url", "violation_id", "impact", "description",
    "help", "target", "html", "failure_summary"
]

# Friendlier column names applied after export
HEADER_MAPPING = {
    "target": "CSS selector",
    "html": "Current HTML",
    "failure_summary": "failure_summary/action"
}


def outcome_issues(outcome: TestOutcome) -> List[Dict[str, str]]:
    """One row per violation node."""
    issues = []
    for violation in outcome.violations:
        for node in violation.nodes:
            issues.append({
                "page_url": outcome.url,
                "violation_id": violation.rule_id,
                "impact": violation.impact.value,
                "description": violation.description,
                "help": violation.help,
                "target": node.target_selector,
                "html": node.markup_snippet,
                "failure_summary": node.failure_summary or "",
            })
    return issues


def sheet_name_for(url: str, sheet_counter: Dict[str, int]) -> str:
    """Unique Excel sheet name (max 31 chars) from the URL's domain and last path segment."""
    parsed = urlparse(url)
    domain = parsed.netloc.replace("www.", "")
    path = parsed.path.rstrip('/')
    last_segment = path.split('/')[-1] if path else "home"

    base_name = re.sub(r'[\\/*?:\[\]]', '_', f"{domain}_{last_segment}")[:28]  # Leave room for a number

    if base_name in sheet_counter:
        sheet_counter[base_name] += 1
        sheet_name = f"{base_name}_{sheet_counter[base_name]}"
    else:
        sheet_counter[base_name] = 1
        sheet_name = base_name
    return sheet_name[:31]


def rename_headers(input_file: Union[str, Path], output_file: Union[str, Path]) -> None:
    """
    Load an Excel file, rename the headers in HEADER_MAPPING and save it.

    Args:
        input_file: Source workbook.
        output_file: Where to save the modified workbook.
    """
    wb = openpyxl.load_workbook(input_file)
    for ws in wb.worksheets:
        for cell in ws[1]:
            if cell.value in HEADER_MAPPING:
                logger.debug(f"Sheet '{ws.title}': renaming '{cell.value}' to '{HEADER_MAPPING[cell.value]}'")
                cell.value = HEADER_MAPPING[cell.value]
    wb.save(output_file)


def write_excel_report(outcomes: Sequence[TestOutcome], excel_path: Union[str, Path]) -> Path:
    """Generate an Excel report with one sheet per audited URL."""
    if not outcomes:
        raise ExportError("No outcomes to export")
    for outcome in outcomes:
        if not isinstance(outcome, TestOutcome):
            raise ExportError(f"Expected TestOutcome, got {type(outcome).__name__}")

    excel_path = Path(excel_path)
    excel_path.parent.mkdir(parents=True, exist_ok=True)
    sheet_counter: Dict[str, int] = {}

    try:
        with pd.ExcelWriter(str(excel_path), engine="openpyxl") as writer:
            for outcome in outcomes:
                sheet_name = sheet_name_for(outcome.url, sheet_counter)
                issues = outcome_issues(outcome)
                if issues:
                    df = pd.DataFrame(issues, columns=ISSUE_COLUMNS)
                elif outcome.is_failed:
                    df = pd.DataFrame([{"page_url": outcome.url, "violation_id": "N/A", "impact": "N/A",
                                        "description": f"Audit failed: {outcome.error_message}"}],
                                      columns=ISSUE_COLUMNS)
                else:
                    df = pd.DataFrame([{"page_url": outcome.url, "violation_id": "N/A",
                                        "impact": "N/A", "description": "No issues detected"}],
                                      columns=ISSUE_COLUMNS)
                df.to_excel(writer, sheet_name=sheet_name, index=False)
                logger.debug(f"Sheet '{sheet_name}' created for {outcome.url}")

        rename_headers(excel_path, excel_path)
    except (OSError, ValueError) as e:
        raise ExportError(f"Error generating Excel report {excel_path}: {e}") from e

    logger.info(f"Excel report generated: '{excel_path}' ({len(outcomes)} sheets)")
    return excel_path
