"""
Flat-file cost/inventory feed.

Format: one header row, then ``SenderID|SKU|Cost|Quantity`` lines.
"""

import csv
import io
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from pydantic import ValidationError

from avcimporter.models import CostInvItem
from avcimporter.utils.errors import InvalidConfigurationError

HEADER = "SenderID|SKU|Cost|Quantity\n"


def build_flat_cost_inv(
    items: Iterable[CostInvItem],
    sender_id: str,
    now: Optional[datetime] = None,
) -> Tuple[bytes, str]:
    """
    Render the feed and a timestamped file name.

    Returns:
        (feed bytes, "COSTINV_<YYYYMMDD_HHMMSS>.txt")
    """
    now = now or datetime.now()
    filename = f"COSTINV_{now.strftime('%Y%m%d_%H%M%S')}.txt"

    buf = io.StringIO()
    buf.write(HEADER)
    for item in items:
        buf.write(f"{sender_id}|{item.sku}|{item.cost:.2f}|{item.qty}\n")

    return buf.getvalue().encode("utf-8"), filename


def read_items_csv(path: Union[str, Path]) -> List[CostInvItem]:
    """
    Load cost/inventory items from a CSV with ``sku,cost,qty`` columns.

    Raises:
        InvalidConfigurationError: If a row is missing a column or fails validation
    """
    items: List[CostInvItem] = []
    with open(path, newline="", encoding="utf-8") as f:
        for line_no, row in enumerate(csv.DictReader(f), start=2):
            try:
                items.append(CostInvItem.model_validate(row))
            except ValidationError as e:
                raise InvalidConfigurationError(
                    f"Invalid item on line {line_no} of {path}",
                    {"errors": [err["msg"] for err in e.errors()]},
                )
    return items
