"""
Shared fixtures: sample X12 documents and in-memory collaborators.
"""

from datetime import datetime
from typing import Dict, List

import pytest

from avcimporter.models import InboundDocument, OrderRecord
from avcimporter.utils.errors import SFTPTransportError

SAMPLE_850 = (
    "ISA*00*          *00*          *ZZ*AMAZON         *ZZ*VENDORXYZ      "
    "*230515*1432*U*00400*900000014*0*T*>~\n"
    "GS*PO*AMAZON*VENDORXYZ*20230515*1432*900000014*X*004010~\n"
    "ST*850*0001~\n"
    "BEG*00*SA*4Z8YF7PD**20230515~\n"
    "REF*CR*AMZN_VENDORCODE~\n"
    "DTM*064*20230520~\n"
    "N1*ST**92*RNO1~\n"
    "PO1*1*10*EA*12.5**UP*123456789012~\n"
    "CTT*1~\n"
    "SE*9*0001~\n"
    "GE*1*900000014~\n"
    "IEA*1*900000014~\n"
)


def make_850(isa_ctrl: str = "900000014", gs_ctrl: str = "900000014", st_ctrl: str = "0001") -> str:
    """Build a minimal 850 with the given control numbers."""
    return (
        "ISA*00*          *00*          *ZZ*AMAZON         *ZZ*VENDORXYZ      "
        f"*230515*1432*U*00400*{isa_ctrl}*0*T*>~"
        f"GS*PO*AMAZON*VENDORXYZ*20230515*1432*{gs_ctrl}*X*004010~"
        f"ST*850*{st_ctrl}~"
        "BEG*00*SA*4Z8YF7PD**20230515~"
        f"SE*3*{st_ctrl}~"
        f"GE*1*{gs_ctrl}~"
        f"IEA*1*{isa_ctrl}~"
    )


class FakeFileTransport:
    """In-memory stand-in for the SFTP transport."""

    def __init__(self, inbound: Dict[str, bytes]) -> None:
        self.inbound = dict(inbound)
        self.outbound: Dict[str, bytes] = {}
        self.deleted: List[str] = []
        self.fail_put = False
        self.closed = False

    def list_inbound_files(self) -> List[InboundDocument]:
        return [InboundDocument(name=n, content=c) for n, c in self.inbound.items()]

    def put_outbound_file(self, name: str, data: bytes) -> None:
        if self.fail_put:
            raise SFTPTransportError("upload", f"upload/{name}", "connection reset")
        self.outbound[name] = data

    def delete_inbound_file(self, name: str) -> None:
        self.deleted.append(name)
        self.inbound.pop(name, None)

    def close(self) -> None:
        self.closed = True


class FakeOrderFeed:
    """Returns a fixed batch of order records."""

    def __init__(self, order_ids: List[str]) -> None:
        self.order_ids = list(order_ids)
        self.calls = 0
        self.closed = False

    def fetch_order_batch(self) -> List[OrderRecord]:
        self.calls += 1
        return [
            OrderRecord(order_id=oid, payload={"purchaseOrderNumber": oid, "state": "New"})
            for oid in self.order_ids
        ]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def sample_850() -> bytes:
    """Well-formed inbound purchase order."""
    return SAMPLE_850.encode("ascii")


@pytest.fixture
def fixed_now() -> datetime:
    """Timestamp used for rendered acknowledgments."""
    return datetime(2024, 3, 7, 9, 5, 30)


@pytest.fixture
def storage_dir(tmp_path):
    """Empty storage directory."""
    path = tmp_path / "output"
    path.mkdir()
    return path
