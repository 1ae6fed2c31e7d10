"""
BOM Export Service - Flat BOM export to CSV.

Writes the pre-order flat BOM of a part, one row per occurrence:

    Level,Part Number,Name,Quantity,Unit,Path
    0,ASM-100,Chassis,1,EA,ASM-100
    1,SUB-200,Frame,2,EA,ASM-100/SUB-200

Quantity is the BOM-line quantity as entered (per one parent), not the
rolled-up total.
"""

import csv
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional, TextIO

from src.services import bom_service
from src.services.bom_tree import FlatBomItem
from src.services.logging_utils import get_service_logger, log_operation
from src.utils.constants import BOM_CSV_HEADER
from src.utils.datetime_utils import utc_now

logger = get_service_logger(__name__)


@dataclass
class ExportResult:
    """Result of a BOM export operation."""

    part_id: int
    part_number: str
    record_count: int
    output_path: str
    export_date: str


def flat_item_to_row(item: FlatBomItem) -> List[str]:
    """CSV row for one flat BOM item, in BOM_CSV_HEADER order."""
    return [
        str(item.level),
        item.part_number,
        item.name,
        str(item.quantity),
        item.unit,
        item.path,
    ]


def write_flat_bom_csv(items: Iterable[FlatBomItem], stream: TextIO) -> int:
    """
    Write flat BOM items as CSV to an open text stream.

    Args:
        items: Rows from flatten() / BomTreeResult.flat_list
        stream: Writable text stream (open files with newline="")

    Returns:
        Number of data rows written (header excluded)
    """
    writer = csv.writer(stream)
    writer.writerow(BOM_CSV_HEADER)
    count = 0
    for item in items:
        writer.writerow(flat_item_to_row(item))
        count += 1
    return count


def render_flat_bom_csv(items: Iterable[FlatBomItem]) -> str:
    """Render flat BOM items as CSV text."""
    output = io.StringIO()
    write_flat_bom_csv(items, output)
    return output.getvalue()


def export_bom_csv(
    part_id: int, file_path: str, max_depth: Optional[int] = None
) -> ExportResult:
    """
    Export the flat BOM of a part to a CSV file.

    Parent directories are created as needed; an existing file is replaced.

    Args:
        part_id: Root part ID
        file_path: Destination path
        max_depth: Depth bound (default: configured max_bom_depth)

    Returns:
        ExportResult with the number of rows written

    Raises:
        PartNotFound: If the part doesn't exist
        MaxDepthExceededError: If the stored BOM is deeper than max_depth
        OSError: If the file cannot be written
    """
    result = bom_service.get_tree(part_id, max_depth=max_depth)

    output = Path(file_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8", newline="") as f:
        record_count = write_flat_bom_csv(result.flat_list, f)

    log_operation(
        logger,
        operation="export_bom_csv",
        outcome="success",
        part_id=part_id,
        record_count=record_count,
        output_path=str(output),
    )

    return ExportResult(
        part_id=part_id,
        part_number=result.root_part.part_number,
        record_count=record_count,
        output_path=str(output),
        export_date=utc_now().isoformat(),
    )
