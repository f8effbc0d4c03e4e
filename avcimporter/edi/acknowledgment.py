"""
997 Functional Acknowledgment rendering.

The acknowledgment always accepts: no content validation happens beyond
envelope extraction, so there is no rejection path.
"""

from datetime import datetime
from typing import List, Optional

from avcimporter.models import EnvelopeIds
from avcimporter.utils.errors import InvalidConfigurationError

SEGMENT_TERMINATOR = "~"
ELEMENT_SEPARATOR = "*"
SUBELEMENT_SEPARATOR = ">"
ACK_SUFFIX = ".997"

DEFAULT_PARTNER_ID = "AMAZON"
AUTHORIZATION_BLANK = " " * 10

_RESERVED = frozenset(SEGMENT_TERMINATOR + ELEMENT_SEPARATOR + SUBELEMENT_SEPARATOR)


def _segment(*elements: str) -> str:
    return ELEMENT_SEPARATOR.join(elements) + SEGMENT_TERMINATOR


def is_valid_interchange_id(value: str) -> bool:
    """Printable ASCII with none of the envelope separators."""
    return value.isascii() and value.isprintable() and not _RESERVED.intersection(value)


def check_interchange_id(value: str, name: str) -> str:
    """
    Return value unchanged if it can be written into an envelope.

    Raises:
        InvalidConfigurationError: If value is empty, non-ASCII or contains a separator
    """
    if not value or not is_valid_interchange_id(value):
        raise InvalidConfigurationError(
            f"Invalid {name} {value!r}: must be non-empty printable ASCII without '~', '*' or '>'",
            {"field": name},
        )
    return value


class AcknowledgmentBuilder:
    """Render a 997 that echoes an inbound document's control numbers."""

    def __init__(self, partner_id: str = DEFAULT_PARTNER_ID, usage_indicator: str = "T") -> None:
        """
        Args:
            partner_id: Trading partner ID written as interchange receiver and group sender
            usage_indicator: ISA15 value, "T" for test or "P" for production
        """
        self.partner_id = check_interchange_id(partner_id, "edi.partnerId")
        self.usage_indicator = usage_indicator

    def segments(self, ids: EnvelopeIds, sender_id: str, now: datetime) -> List[str]:
        """Render each segment, terminator included, in envelope order."""
        interchange_ctrl = ids.interchange.control_number
        group_ctrl = ids.group.control_number
        set_ctrl = ids.transaction_set.control_number

        return [
            _segment(
                "ISA", "00", AUTHORIZATION_BLANK, "00", AUTHORIZATION_BLANK,
                "ZZ", sender_id, "ZZ", self.partner_id.ljust(15),
                now.strftime("%y%m%d"), now.strftime("%H%M"),
                "U", "00400", interchange_ctrl, "0", self.usage_indicator, SUBELEMENT_SEPARATOR,
            ),
            _segment(
                "GS", "FA", self.partner_id, sender_id,
                ids.group.date, ids.group.time, group_ctrl, "X", "004010",
            ),
            _segment("ST", "997", set_ctrl),
            _segment("AK1", "PO", group_ctrl),
            _segment("AK9", "A", "1", "1", "1"),
            _segment("SE", "6", set_ctrl),
            _segment("GE", "1", group_ctrl),
            _segment("IEA", "1", interchange_ctrl),
        ]

    def build(self, ids: EnvelopeIds, sender_id: str, now: Optional[datetime] = None) -> bytes:
        """
        Render the complete acknowledgment document.

        Args:
            ids: Identifiers extracted from the inbound document
            sender_id: Our trading-partner ID
            now: Timestamp for the new interchange header (defaults to now)

        Returns:
            One segment per line, the last line without a trailing newline

        Raises:
            InvalidConfigurationError: If sender_id cannot be written into an envelope
        """
        check_interchange_id(sender_id, "edi.senderId")
        now = now or datetime.now()
        return "\n".join(self.segments(ids, sender_id, now)).encode("ascii")


def ack_filename(source_name: str) -> str:
    """Name of the acknowledgment for an inbound document."""
    return source_name + ACK_SUFFIX
