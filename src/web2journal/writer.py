"""Write daily journal reports to the data directory."""

from datetime import date
from pathlib import Path

from .formatter import format_daily_report
from .models import JournalEntry


def report_path(data_path: Path, day: date) -> Path:
    return Path(data_path) / f"{day.year:04d}" / f"{day.month:02d}" / f"{day.day:02d}.md"


def write_daily_report(
    day: date, entries: list[JournalEntry], data_path: Path
) -> Path:
    """Write the report for one day as YYYY/MM/DD.md.

    Returns the path to the written file.
    """
    path = report_path(data_path, day)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_daily_report(day, entries), encoding="utf-8")
    return path
