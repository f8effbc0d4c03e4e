"""
Core data models for AVC Importer.

This module defines the Pydantic models used throughout the application
for data validation and serialization.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


# =============================================================================
# Enums
# =============================================================================


class Integration(str, Enum):
    """Which subsystems a cycle runs, decided once at startup."""

    NONE = "none"
    EDI_ONLY = "edi_only"
    API_ONLY = "api_only"
    BOTH = "both"

    @classmethod
    def from_flags(cls, edi: bool, api: bool) -> "Integration":
        """Map the two activation flags onto a single variant."""
        if edi and api:
            return cls.BOTH
        if edi:
            return cls.EDI_ONLY
        if api:
            return cls.API_ONLY
        return cls.NONE

    @property
    def edi_enabled(self) -> bool:
        return self in (Integration.EDI_ONLY, Integration.BOTH)

    @property
    def api_enabled(self) -> bool:
        return self in (Integration.API_ONLY, Integration.BOTH)


class Ordering(str, Enum):
    """Ordering used to compare order identifiers against the watermark."""

    LEXICAL = "lexical"
    NUMERIC = "numeric"


class OutputFormat(str, Enum):
    """Supported formats for persisted order records."""

    JSON = "json"


# =============================================================================
# X12 Envelope Models
# =============================================================================


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class InterchangeEnvelope(_Frozen):
    """ISA header fields needed for acknowledgment."""

    sender_id: str = Field(..., description="ISA06 interchange sender ID")
    receiver_id: str = Field(..., description="ISA08 interchange receiver ID")
    date: str = Field(..., pattern=r"^[0-9]{6}$", description="ISA09 date (YYMMDD)")
    time: str = Field(..., pattern=r"^[0-9]{4}$", description="ISA10 time (HHMM)")
    control_number: str = Field(..., pattern=r"^[0-9]+$", description="ISA13 control number")


class FunctionalGroup(_Frozen):
    """GS header fields for the purchase-order group."""

    sender_id: str = Field(..., description="GS02 application sender code")
    receiver_id: str = Field(..., description="GS03 application receiver code")
    date: str = Field(..., pattern=r"^[0-9]{8}$", description="GS04 date (YYYYMMDD)")
    time: str = Field(..., pattern=r"^[0-9]{4}$", description="GS05 time (HHMM)")
    control_number: str = Field(..., pattern=r"^[0-9]+$", description="GS06 group control number")


class TransactionSet(_Frozen):
    """ST header fields."""

    type_code: str = Field("850", description="ST01 transaction set identifier code")
    control_number: str = Field(..., pattern=r"^[0-9]+$", description="ST02 set control number")


class EnvelopeIds(_Frozen):
    """The three nested envelope identifiers of one inbound document."""

    interchange: InterchangeEnvelope
    group: FunctionalGroup
    transaction_set: TransactionSet


# =============================================================================
# Sync Models
# =============================================================================


class OrderRecord(BaseModel):
    """One purchase order from the remote feed."""

    order_id: str = Field(..., min_length=1, description="Identifier compared against the watermark")
    payload: Dict[str, Any] = Field(default_factory=dict, description="Raw order document")


class CheckpointRecord(BaseModel):
    """On-disk checkpoint layout."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    last_control_number: str = Field(..., alias="lastControlNumber")


class InboundDocument(BaseModel):
    """An inbound file as listed by the file-transfer endpoint."""

    name: str
    content: bytes


class CostInvItem(BaseModel):
    """One line in the cost/inventory feed."""

    sku: str = Field(..., min_length=1, description="Item identifier")
    cost: float = Field(..., ge=0, description="Unit cost")
    qty: int = Field(..., ge=0, description="Available quantity")


# =============================================================================
# Reporting
# =============================================================================


class SkippedDocument(BaseModel):
    """An inbound document that failed envelope extraction."""

    name: str
    error: str


class CycleReport(BaseModel):
    """Outcome of one synchronization cycle."""

    integration: Integration
    started_at: datetime = Field(default_factory=datetime.now)
    documents_seen: int = 0
    acknowledged: List[str] = Field(default_factory=list)
    skipped: List[SkippedDocument] = Field(default_factory=list)
    orders_fetched: int = 0
    orders_saved: List[str] = Field(default_factory=list)
    watermark_before: str = ""
    watermark_after: str = ""
    checkpoint_advanced: bool = False

    @property
    def clean(self) -> bool:
        """True when no inbound document was skipped."""
        return not self.skipped
