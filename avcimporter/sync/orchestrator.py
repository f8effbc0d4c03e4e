"""
One synchronization cycle.

Phase 1 acknowledges every inbound purchase order with a 997; phase 2
pulls the order feed and persists orders newer than the checkpoint.
Phases run sequentially. Malformed inbound documents are logged and
skipped; any other error aborts the cycle.
"""

from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Protocol, Sequence
from urllib.parse import quote

from avcimporter.edi.acknowledgment import AcknowledgmentBuilder, ack_filename, check_interchange_id
from avcimporter.edi.envelope import EnvelopeExtractor
from avcimporter.models import (
    CycleReport,
    InboundDocument,
    Integration,
    Ordering,
    OrderRecord,
    OutputFormat,
    SkippedDocument,
)
from avcimporter.sync.checkpoint import Checkpoint
from avcimporter.sync.filter import partition
from avcimporter.utils.errors import EDIParseError, MissingConfigurationError, UnsupportedFormatError
from avcimporter.utils.fileutils import save_to_file
from avcimporter.utils.logging import LogContext, get_logger, log_performance

logger = get_logger(__name__)


class FileTransport(Protocol):
    """Remote inbound/outbound file exchange."""

    def list_inbound_files(self) -> Sequence[InboundDocument]: ...

    def put_outbound_file(self, name: str, data: bytes) -> None: ...

    def delete_inbound_file(self, name: str) -> None: ...


class OrderFeed(Protocol):
    """Authenticated purchase-order feed."""

    def fetch_order_batch(self) -> Sequence[OrderRecord]: ...


def order_filename(file_name: str, order_id: str) -> str:
    """
    File name for one persisted order record.

    The id is percent-encoded, so distinct ids never share a file and
    path separators cannot leave the orders directory.
    """
    return f"{file_name}_{quote(order_id, safe='')}.json"


class TransferOrchestrator:
    """Drive one synchronization cycle across the enabled integrations."""

    def __init__(
        self,
        integration: Integration,
        storage_dir: Path,
        sender_id: str = "",
        file_transport: Optional[FileTransport] = None,
        order_feed: Optional[OrderFeed] = None,
        checkpoint: Optional[Checkpoint] = None,
        extractor: Optional[EnvelopeExtractor] = None,
        builder: Optional[AcknowledgmentBuilder] = None,
        ordering: Ordering = Ordering.LEXICAL,
        file_name: str = "data_dump",
        output_format: str = OutputFormat.JSON.value,
        delete_inbound: bool = False,
        keep_inbound: bool = True,
        clock: Callable[[], datetime] = datetime.now,
        verbose: bool = False,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            integration: Which phases run
            storage_dir: Local directory for orders, inbound copies and the checkpoint
            sender_id: Our trading-partner ID for acknowledgments
            file_transport: Inbound/outbound file collaborator (EDI phase)
            order_feed: Order batch collaborator (API phase)
            checkpoint: Watermark store (defaults to one inside storage_dir)
            extractor: Envelope extractor
            builder: Acknowledgment builder
            ordering: Identifier ordering for de-duplication
            file_name: Base name for persisted order files
            output_format: Format for persisted order files
            delete_inbound: Remove inbound files after acknowledging them
            keep_inbound: Save a local copy of each inbound file
            clock: Source of the acknowledgment timestamp
            verbose: Log rendered acknowledgments and order payloads
        """
        if integration.edi_enabled and file_transport is None:
            raise MissingConfigurationError("file_transport")
        if integration.edi_enabled and not sender_id:
            raise MissingConfigurationError("edi.senderId")
        if integration.edi_enabled:
            check_interchange_id(sender_id, "edi.senderId")
        if integration.api_enabled and order_feed is None:
            raise MissingConfigurationError("order_feed")

        supported = [f.value for f in OutputFormat]
        if output_format not in supported:
            raise UnsupportedFormatError(output_format, supported)

        self.integration = integration
        self.storage_dir = Path(storage_dir)
        self.sender_id = sender_id
        self.file_transport = file_transport
        self.order_feed = order_feed
        self.checkpoint = checkpoint or Checkpoint(self.storage_dir)
        self.extractor = extractor or EnvelopeExtractor()
        self.builder = builder or AcknowledgmentBuilder()
        self.ordering = ordering
        self.file_name = file_name
        self.delete_inbound = delete_inbound
        self.keep_inbound = keep_inbound
        self.clock = clock
        self.verbose = verbose

    def run_cycle(self) -> CycleReport:
        """
        Run every enabled phase once.

        Returns:
            Report of what was acknowledged, skipped and saved

        Raises:
            AVCImporterException: Any non-parse error, which aborts the cycle
        """
        report = CycleReport(integration=self.integration)
        logger.info(f"Starting sync cycle ({self.integration.value})")

        if self.integration.edi_enabled:
            with LogContext(phase="edi"):
                self.run_inbound_phase(report)

        if self.integration.api_enabled:
            with LogContext(phase="api"):
                self.run_order_feed_phase(report)

        logger.info(
            f"Sync cycle completed: {len(report.acknowledged)} acknowledged, "
            f"{len(report.skipped)} skipped, {len(report.orders_saved)} orders saved"
        )
        return report

    @log_performance
    def run_inbound_phase(self, report: CycleReport) -> None:
        """Acknowledge every inbound document, skipping malformed ones."""
        documents = self.file_transport.list_inbound_files()
        report.documents_seen = len(documents)
        logger.info(f"Found {len(documents)} inbound documents")

        for document in documents:
            with LogContext(document=document.name):
                self._acknowledge(document, report)

    def _acknowledge(self, document: InboundDocument, report: CycleReport) -> None:
        if self.keep_inbound:
            save_to_file(self.storage_dir / "inbound", document.name, document.content)

        try:
            ids = self.extractor.extract(document.content, name=document.name)
        except EDIParseError as e:
            logger.error(f"Error generating 997 for {document.name}: {e.message}")
            report.skipped.append(SkippedDocument(name=document.name, error=e.message))
            return

        ack = self.builder.build(ids, self.sender_id, self.clock())
        ack_name = ack_filename(document.name)
        if self.verbose:
            logger.info(f"997 for {document.name}:\n{ack.decode('ascii')}")

        self.file_transport.put_outbound_file(ack_name, ack)
        report.acknowledged.append(document.name)
        logger.info(f"Uploaded 997: {ack_name}")

        if self.delete_inbound:
            self.file_transport.delete_inbound_file(document.name)

    @log_performance
    def run_order_feed_phase(self, report: CycleReport) -> None:
        """Persist orders newer than the checkpoint and advance it."""
        watermark = self.checkpoint.load()
        report.watermark_before = watermark
        report.watermark_after = watermark

        batch = list(self.order_feed.fetch_order_batch())
        report.orders_fetched = len(batch)

        result = partition(watermark, batch, self.ordering)
        logger.info(
            f"{len(result.new_records)} of {len(batch)} orders are new "
            f"(checkpoint {watermark!r})"
        )

        orders_dir = self.storage_dir / "orders"
        for record in result.new_records:
            if self.verbose:
                logger.info(f"Order {record.order_id}: {record.payload}")
            save_to_file(orders_dir, order_filename(self.file_name, record.order_id), record.payload)
            report.orders_saved.append(record.order_id)

        if result.new_watermark != watermark:
            self.checkpoint.save(result.new_watermark)
            report.watermark_after = result.new_watermark
            report.checkpoint_advanced = True
            logger.info(f"Checkpoint advanced to {result.new_watermark!r}")
        else:
            logger.info("Checkpoint unchanged")
