"""
Report output: the CSV file consumed downstream and a console summary.
"""

import csv
import logging
import os
import tempfile
from collections.abc import Sequence
from pathlib import Path

from rich.table import Table

from pkgimpact.impact import ImpactRecord

logger = logging.getLogger(__name__)

# Column order is relied upon by existing consumers
CSV_HEADER = [
    "Name",
    "Package Size",
    "Package Size (Bytes)",
    "Total Removal Size",
    "Total Removal Size (Bytes)",
    "Would Also Remove",
]


def record_to_row(record: ImpactRecord) -> list:
    return [
        record.identity,
        record.human_size,
        record.size,
        record.human_total_removal_size,
        record.total_removal_size,
        " ".join(record.also_removes),
    ]


def write_csv_report(records: Sequence[ImpactRecord], path: str | Path) -> Path:
    """
    Write the header and one row per record, in the given order.

    The file only appears once every row has been written.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    try:
        with os.fdopen(fd, "w", newline="", encoding="utf-8") as fh:
            writer = csv.writer(fh, lineterminator="\n")
            writer.writerow(CSV_HEADER)
            for record in records:
                writer.writerow(record_to_row(record))
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise

    logger.info(f"Report written: {path} ({len(records)} packages)")
    return path


def top_records(records: Sequence[ImpactRecord], limit: int) -> list[ImpactRecord]:
    """Records with the largest total removal size, ties broken by identity"""
    ranked = sorted(records, key=lambda r: (-r.total_removal_size, r.identity))
    return ranked[:limit]


def render_top_table(records: Sequence[ImpactRecord], limit: int = 10) -> Table:
    """Build a rich table of the heaviest removals"""
    table = Table(title=f"Top {limit} removals by reclaimed space")
    table.add_column("Package", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Total Removal", justify="right", style="bold")
    table.add_column("Also Removes", justify="right")

    for record in top_records(records, limit):
        table.add_row(
            record.identity,
            record.human_size,
            record.human_total_removal_size,
            str(len(record.also_removes)),
        )

    return table
