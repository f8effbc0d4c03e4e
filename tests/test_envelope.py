"""
Tests for X12 envelope extraction.
"""

import pytest

from avcimporter.edi.envelope import EnvelopeExtractor, extract
from avcimporter.utils.errors import (
    EDIParseError,
    InvalidEnvelopeError,
    InvalidGroupError,
    InvalidTransactionSetError,
)

from conftest import make_850


class TestEnvelopeExtractor:
    """Test extraction of ISA, GS and ST identifiers."""

    def test_extracts_all_identifiers(self, sample_850):
        """Test a well-formed 850 yields every envelope field."""
        ids = EnvelopeExtractor().extract(sample_850)

        assert ids.interchange.sender_id == "AMAZON"
        assert ids.interchange.receiver_id == "VENDORXYZ"
        assert ids.interchange.date == "230515"
        assert ids.interchange.time == "1432"
        assert ids.interchange.control_number == "900000014"

        assert ids.group.sender_id == "AMAZON"
        assert ids.group.receiver_id == "VENDORXYZ"
        assert ids.group.date == "20230515"
        assert ids.group.time == "1432"
        assert ids.group.control_number == "900000014"

        assert ids.transaction_set.type_code == "850"
        assert ids.transaction_set.control_number == "0001"

    def test_accepts_text_input(self, sample_850):
        """Test str and bytes input produce the same result."""
        assert extract(sample_850.decode("ascii")) == extract(sample_850)

    def test_single_line_document(self):
        """Test segments without newlines between them."""
        ids = extract(make_850("000000123", "456", "7890"))

        assert ids.interchange.control_number == "000000123"
        assert ids.group.control_number == "456"
        assert ids.transaction_set.control_number == "7890"

    def test_leading_zeros_preserved(self):
        """Test control numbers are kept as text, not converted to integers."""
        ids = extract(make_850("000000001", "000000001", "0001"))

        assert ids.interchange.control_number == "000000001"
        assert ids.transaction_set.control_number == "0001"

    def test_only_first_occurrence_honored(self):
        """Test a second interchange in the same document is ignored."""
        document = make_850("111111111", "111", "1111") + make_850("222222222", "222", "2222")
        ids = extract(document)

        assert ids.interchange.control_number == "111111111"
        assert ids.group.control_number == "111"
        assert ids.transaction_set.control_number == "1111"

    def test_non_ascii_bytes_do_not_fail_decoding(self, sample_850):
        """Test arbitrary bytes in the body are tolerated."""
        document = sample_850.replace(b"RNO1", b"RN\xff\xfe1")
        ids = extract(document)
        assert ids.group.control_number == "900000014"


class TestExtractionErrors:
    """Test the error raised for each malformed header."""

    def test_missing_isa(self, sample_850):
        """Test a document without ISA fails with the ISA error."""
        document = sample_850.replace(b"ISA*", b"XXX*")
        with pytest.raises(InvalidEnvelopeError) as exc_info:
            extract(document, name="po.edi")

        assert exc_info.value.details["segment"] == "ISA"
        assert exc_info.value.details["document"] == "po.edi"

    def test_non_numeric_isa_control_number(self):
        """Test ISA13 must be numeric."""
        with pytest.raises(InvalidEnvelopeError):
            extract(make_850(isa_ctrl="ABC"))

    def test_short_isa_date(self, sample_850):
        """Test ISA09 must be six digits."""
        document = sample_850.replace(b"*230515*", b"*2305*")
        with pytest.raises(InvalidEnvelopeError):
            extract(document)

    def test_missing_gs(self, sample_850):
        """Test a document without a GS*PO group fails with the GS error."""
        document = sample_850.replace(b"GS*PO*", b"GS*IN*")
        with pytest.raises(InvalidGroupError) as exc_info:
            extract(document)

        assert exc_info.value.details["segment"] == "GS"

    def test_missing_st(self, sample_850):
        """Test a document without ST*850 fails with the ST error."""
        document = sample_850.replace(b"ST*850*", b"ST*855*")
        with pytest.raises(InvalidTransactionSetError):
            extract(document)

    def test_non_numeric_st_control_number(self):
        """Test ST02 must be numeric."""
        with pytest.raises(InvalidTransactionSetError):
            extract(make_850(st_ctrl="00A1"))

    def test_isa_checked_before_gs(self):
        """Test the ISA error wins when every header is missing."""
        with pytest.raises(InvalidEnvelopeError):
            extract(b"not an edi document")

    def test_errors_share_a_base_class(self):
        """Test callers can catch every parse failure with one type."""
        with pytest.raises(EDIParseError):
            extract(b"")

    def test_header_must_start_a_segment(self):
        """Test a header embedded inside another segment is not matched."""
        document = make_850().replace("ST*850*", "REF*ST*850*")
        with pytest.raises(InvalidTransactionSetError):
            extract(document)
