"""
X12 envelope extraction.

Pulls the interchange (ISA), functional group (GS) and transaction set
(ST) identifiers out of an inbound 850 purchase order. Only the first
occurrence of each header is honored; anything after it is ignored.
"""

import re
from typing import Optional, Union

from avcimporter.models import EnvelopeIds, FunctionalGroup, InterchangeEnvelope, TransactionSet
from avcimporter.utils.errors import (
    InvalidEnvelopeError,
    InvalidGroupError,
    InvalidTransactionSetError,
)

PURCHASE_ORDER_GROUP = "PO"
PURCHASE_ORDER_SET = "850"

# A header starts the document or follows a segment terminator.
_SEGMENT_START = r"(?:^|~)\s*"

# 1: sender ID, 2: receiver ID, 3: YYMMDD, 4: HHMM, 5: control number
ISA_PATTERN = re.compile(
    _SEGMENT_START
    + r"ISA\*00\*[^*~]*\*00\*[^*~]*\*ZZ\*([^*~]+)\*ZZ\*([^*~]+)\*"
    + r"([0-9]{6})\*([0-9]{4})\*U\*00400\*([0-9]+)\*"
)

# 1: sender ID, 2: receiver ID, 3: YYYYMMDD, 4: HHMM, 5: control number
GS_PATTERN = re.compile(
    _SEGMENT_START
    + rf"GS\*{PURCHASE_ORDER_GROUP}\*([^*~]+)\*([^*~]+)\*([0-9]{{8}})\*([0-9]{{4}})\*([0-9]+)\*X"
)

# 1: control number
ST_PATTERN = re.compile(_SEGMENT_START + rf"ST\*{PURCHASE_ORDER_SET}\*([0-9]+)(?=[*~]|\s*$)")


def _as_text(document: Union[bytes, str]) -> str:
    if isinstance(document, bytes):
        # latin-1 maps every byte, so decoding never fails
        return document.decode("latin-1")
    return document


class EnvelopeExtractor:
    """Extract envelope identifiers from inbound purchase-order documents."""

    def extract(self, document: Union[bytes, str], name: Optional[str] = None) -> EnvelopeIds:
        """
        Parse the ISA, GS and ST headers of an X12 850 document.

        Args:
            document: Raw document content
            name: Document name, used only in error details

        Returns:
            The interchange, group and transaction-set identifiers

        Raises:
            InvalidEnvelopeError: ISA header missing or malformed
            InvalidGroupError: GS*PO header missing or malformed
            InvalidTransactionSetError: ST*850 header missing or malformed
        """
        text = _as_text(document)

        isa = ISA_PATTERN.search(text)
        if not isa:
            raise InvalidEnvelopeError(
                "invalid ISA segment: expected sender, receiver, 6-digit date, "
                "4-digit time and numeric control number",
                document=name,
            )

        gs = GS_PATTERN.search(text)
        if not gs:
            raise InvalidGroupError(
                "invalid GS segment: expected PO group with sender, receiver, "
                "8-digit date, 4-digit time and numeric control number",
                document=name,
            )

        st = ST_PATTERN.search(text)
        if not st:
            raise InvalidTransactionSetError(
                f"invalid ST segment: could not find {PURCHASE_ORDER_SET} control number",
                document=name,
            )

        return EnvelopeIds(
            interchange=InterchangeEnvelope(
                sender_id=isa.group(1).strip(),
                receiver_id=isa.group(2).strip(),
                date=isa.group(3),
                time=isa.group(4),
                control_number=isa.group(5),
            ),
            group=FunctionalGroup(
                sender_id=gs.group(1).strip(),
                receiver_id=gs.group(2).strip(),
                date=gs.group(3),
                time=gs.group(4),
                control_number=gs.group(5),
            ),
            transaction_set=TransactionSet(
                type_code=PURCHASE_ORDER_SET,
                control_number=st.group(1),
            ),
        )


def extract(document: Union[bytes, str], name: Optional[str] = None) -> EnvelopeIds:
    """Module-level shortcut for ``EnvelopeExtractor().extract``."""
    return EnvelopeExtractor().extract(document, name=name)
