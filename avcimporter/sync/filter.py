"""
Watermark-based de-duplication of order batches.
"""

from typing import Callable, Dict, List, NamedTuple, Sequence, Tuple

from avcimporter.models import Ordering, OrderRecord

SortKey = Tuple[int, int, str]


def lexical_key(identifier: str) -> SortKey:
    # Plain string ordering; "" sorts first.
    return (0, 0, identifier)


def numeric_key(identifier: str) -> SortKey:
    """ASCII-digit identifiers by value, then everything else lexically."""
    if identifier == "":
        return (0, 0, "")
    # int() rejects non-ASCII digits such as "²"
    if identifier.isascii() and identifier.isdigit():
        return (1, int(identifier), identifier)
    return (2, 0, identifier)


ORDERING_KEYS: Dict[Ordering, Callable[[str], SortKey]] = {
    Ordering.LEXICAL: lexical_key,
    Ordering.NUMERIC: numeric_key,
}


class PartitionResult(NamedTuple):
    """New records (input order kept) and the advanced watermark."""

    new_records: List[OrderRecord]
    new_watermark: str


def partition(
    watermark: str,
    records: Sequence[OrderRecord],
    ordering: Ordering = Ordering.LEXICAL,
) -> PartitionResult:
    """
    Split a batch into records newer than the watermark.

    A record is new iff its identifier orders strictly after the watermark.
    The returned watermark is the maximum of the old watermark and every
    identifier in the batch, so it never regresses.

    Args:
        watermark: Highest identifier processed so far
        records: Batch from the order feed
        ordering: How identifiers are compared

    Returns:
        PartitionResult with the new records and new watermark
    """
    key = ORDERING_KEYS[ordering]
    threshold = key(watermark)

    new_records: List[OrderRecord] = []
    highest, highest_key = watermark, threshold

    for record in records:
        record_key = key(record.order_id)
        if record_key > threshold:
            new_records.append(record)
        if record_key > highest_key:
            highest, highest_key = record.order_id, record_key

    return PartitionResult(new_records=new_records, new_watermark=highest)
