"""Tests for typed 850, 855, 810 and 997 parsing and building."""
from decimal import Decimal

import pytest

from x12engine.models.enums import IssueCode, Severity
from x12engine.models.envelope import Delimiters
from x12engine.models.transaction_sets import (
    AllowanceCharge,
    ElementError,
    FunctionalAck997,
    Invoice810,
    InvoiceLine,
    PurchaseOrder850,
    PurchaseOrderAck855,
    UnsupportedTransactionSet,
)
from x12engine.services.x12.generator import create_transaction_set
from x12engine.services.x12.parser import decode_segment
from x12engine.services.x12.transaction_sets import ack_997, invoice_810, po_850, poa_855
from x12engine.services.x12.transaction_sets.common import make_segment
from x12engine.services.x12.transaction_sets.registry import (
    build_transaction_set,
    is_transaction_set_supported,
    parse_transaction_set,
)
from x12engine.utils.errors import UnsupportedTransactionSetError
from tests.factories import SAMPLE_810, SAMPLE_850, SAMPLE_855, SAMPLE_997


def _set(code, *segments):
    return create_transaction_set(code, "0001", [decode_segment(s, Delimiters()) for s in segments])


def _lines(generator, transaction_set):
    return generator.generate_transaction_set(transaction_set, Delimiters())


@pytest.mark.unit
class TestPurchaseOrder850:
    """Tests for the 850 Purchase Order."""

    def test_parse_header(self, parse_set, sample_850):
        """Test BEG, CUR and header REF/PER/DTM."""
        result = po_850.parse(parse_set(sample_850))
        assert result.errors == []
        order = result.data
        assert isinstance(order, PurchaseOrder850)
        assert order.purpose_code == "00"
        assert order.order_type_code == "SA"
        assert order.purchase_order_number == "PO12345"
        assert order.order_date == "20240101"
        assert order.currency_code == "USD"
        assert order.references[0].qualifier == "CO"
        assert order.contacts[0].name == "John Doe"
        assert order.contacts[0].communications[0].number == "5551234567"
        assert [d.qualifier for d in order.dates] == ["002"]

    def test_parse_parties(self, parse_set, sample_850):
        """Test N1 loops collect N3 and N4."""
        order = po_850.parse(parse_set(sample_850)).data
        assert [p.entity_code for p in order.parties] == ["BY", "ST"]
        buyer = order.parties[0]
        assert buyer.name == "Buyer Company"
        assert buyer.id_qualifier == "92"
        assert buyer.id_code == "BUYER001"
        assert buyer.address.address_lines == ["123 Main St"]
        assert buyer.address.city == "New York"
        assert buyer.address.postal_code == "10001"

    def test_parse_lines(self, parse_set, sample_850):
        """Test PO1 loops with PID and line DTM."""
        order = po_850.parse(parse_set(sample_850)).data
        assert len(order.line_items) == 2
        line = order.line_items[0]
        assert line.assigned_id == "1"
        assert line.quantity == Decimal("10")
        assert line.unit_price == Decimal("100")
        assert line.basis_of_unit_price == "PE"
        assert [(p.qualifier, p.value) for p in line.product_ids] == [("VP", "PROD-001"), ("BP", "BUYER-SKU-001")]
        assert line.descriptions[0].description == "Widget A"
        assert line.dates[0].date == "20240115"
        assert order.line_items[1].dates == []

    def test_parse_summary(self, parse_set, sample_850):
        """Test CTT and AMT."""
        order = po_850.parse(parse_set(sample_850)).data
        assert order.total_line_items == 2
        assert order.amounts[0].qualifier == "TT"
        assert order.amounts[0].amount == Decimal("2000")

    def test_missing_beg(self):
        """Test no data without the beginning segment."""
        result = po_850.parse(_set("850", "PO1*1*10*EA"))
        assert result.data is None
        assert result.errors[0].code == IssueCode.MISSING_BEGINNING_SEGMENT
        assert result.errors[0].segment_id == "BEG"
        assert result.has_errors is True

    def test_no_line_items(self):
        """Test an order without PO1 keeps its data and reports an error."""
        result = po_850.parse(_set("850", "BEG*00*SA*PO1**20240101"))
        assert result.data.purchase_order_number == "PO1"
        assert [e.code for e in result.errors] == [IssueCode.NO_LINE_ITEMS]

    def test_build_reproduces_segments(self, parse_set, generator, sample_850):
        """Test parse then build gives back the same segments."""
        transaction_set = parse_set(sample_850)
        rebuilt = po_850.build(po_850.parse(transaction_set).data)
        assert _lines(generator, rebuilt) == _lines(generator, transaction_set)

    def test_build_minimal(self, generator):
        """Test optional header segments are omitted."""
        order = PurchaseOrder850(purchase_order_number="PO9", order_date="20240301")
        lines = _lines(generator, po_850.build(order, "005010X220A1"))
        assert lines == ["ST*850*0001*005010X220A1", "BEG*00*SA*PO9**20240301", "SE*3*0001"]

    def test_line_references(self, generator):
        """Test REF inside a PO1 loop belongs to the line and is written back there."""
        transaction_set = _set(
            "850",
            "BEG*00*SA*PO1**20240101",
            "REF*CO*HEADER-REF",
            "PO1*1*1*EA*5*PE*VP*P1",
            "PID*F****Widget",
            "REF*CT*CONTRACT-7",
            "DTM*002*20240115",
            "CTT*1",
        )
        order = po_850.parse(transaction_set).data
        assert [r.identifier for r in order.references] == ["HEADER-REF"]
        assert [(r.qualifier, r.identifier) for r in order.line_items[0].references] == [("CT", "CONTRACT-7")]
        assert order.line_items[0].dates[0].date == "20240115"
        assert _lines(generator, po_850.build(order)) == _lines(generator, transaction_set)


@pytest.mark.unit
class TestPurchaseOrderAck855:
    """Tests for the 855 Purchase Order Acknowledgment."""

    def test_parse(self, parse_set, sample_855):
        """Test BAK fields and ACK lines."""
        ack = poa_855.parse(parse_set(sample_855)).data
        assert isinstance(ack, PurchaseOrderAck855)
        assert ack.acknowledgment_type == "AC"
        assert ack.purchase_order_number == "PO12345"
        assert ack.purchase_order_date == "20240101"
        assert ack.acknowledgment_date == "20240102"
        assert ack.parties[0].entity_code == "SE"
        assert ack.total_line_items == 2

        first = ack.line_items[0].acknowledgments[0]
        assert first.status_code == "IA"
        assert first.quantity == Decimal("10")
        assert first.date_qualifier == "068"
        assert first.date == "20240115"
        second = ack.line_items[1].acknowledgments[0]
        assert second.status_code == "IR"
        assert second.quantity == Decimal("0")

    def test_missing_bak(self):
        """Test no data without BAK."""
        result = poa_855.parse(_set("855", "PO1*1"))
        assert result.data is None
        assert result.errors[0].segment_id == "BAK"

    def test_build_reproduces_segments(self, parse_set, generator, sample_855):
        """Test parse then build gives back the same segments."""
        transaction_set = parse_set(sample_855)
        rebuilt = poa_855.build(poa_855.parse(transaction_set).data)
        assert _lines(generator, rebuilt) == _lines(generator, transaction_set)


@pytest.mark.unit
class TestInvoice810:
    """Tests for the 810 Invoice."""

    def test_parse(self, parse_set, sample_810):
        """Test BIG, terms and implied-cent totals."""
        result = invoice_810.parse(parse_set(sample_810))
        assert result.errors == []
        invoice = result.data
        assert isinstance(invoice, Invoice810)
        assert invoice.invoice_number == "INV-001"
        assert invoice.invoice_date == "20240101"
        assert invoice.purchase_order_number == "PO12345"
        assert invoice.total_amount == Decimal("2000.00")
        assert invoice.subtotal_amount is None
        terms = invoice.terms[0]
        assert terms.terms_type_code == "01"
        assert terms.discount_percent == Decimal("2")
        assert terms.discount_days == 10
        assert terms.net_days == 30

    def test_line_and_summary_taxes(self, parse_set, sample_810):
        """Test TXI inside a line stays on the line and after TDS is invoice-level."""
        invoice = invoice_810.parse(parse_set(sample_810)).data
        assert invoice.line_items[0].taxes[0].amount == Decimal("80")
        assert invoice.line_items[0].taxes[0].percent == Decimal("8")
        assert invoice.line_items[1].taxes == []
        assert [t.amount for t in invoice.taxes] == [Decimal("160")]

    def test_allowances_and_summaries(self):
        """Test SAC, CAD and ISS."""
        result = invoice_810.parse(_set(
            "810",
            "BIG*20240101*INV-2",
            "IT1*1*1*EA*10",
            "SAC*A*C310***500",
            "TDS*1000",
            "CAD*M***FEDX*GROUND*CC",
            "SAC*C*D240***1500**********Freight",
            "ISS*3*CT*25*LB",
        ))
        invoice = result.data
        assert invoice.line_items[0].allowances[0].amount == Decimal("5.00")
        assert invoice.allowances[0].indicator == "C"
        assert invoice.allowances[0].amount == Decimal("15.00")
        assert invoice.allowances[0].description == "Freight"
        assert invoice.carrier_summary.carrier_code == "FEDX"
        assert invoice.carrier_summary.shipment_status == "CC"
        assert invoice.shipment_summary.weight == Decimal("25")

    def test_line_references(self):
        """Test REF inside an IT1 loop stays on the line."""
        invoice = invoice_810.parse(_set(
            "810",
            "BIG*20240101*INV-2",
            "REF*PO*PO9",
            "IT1*1*1*EA*10",
            "REF*PK*SLIP-1",
            "TDS*1000",
        )).data
        assert [r.qualifier for r in invoice.references] == ["PO"]
        assert [r.identifier for r in invoice.line_items[0].references] == ["SLIP-1"]

    def test_missing_tds(self):
        """Test an invoice without TDS keeps data and reports an error."""
        result = invoice_810.parse(_set("810", "BIG*20240101*INV-2", "IT1*1*1*EA*10"))
        assert result.data is not None
        assert [e.code for e in result.errors] == [IssueCode.MISSING_TDS]

    def test_missing_big(self):
        """Test no data without BIG."""
        result = invoice_810.parse(_set("810", "TDS*100"))
        assert result.data is None
        assert result.errors[0].segment_id == "BIG"

    def test_build_reproduces_segments(self, parse_set, generator, sample_810):
        """Test parse then build gives back the same segments."""
        transaction_set = parse_set(sample_810)
        rebuilt = invoice_810.build(invoice_810.parse(transaction_set).data)
        assert _lines(generator, rebuilt) == _lines(generator, transaction_set)

    def test_build_allowance_description(self, generator):
        """Test SAC15 placement and N2 amounts on the write path."""
        invoice = Invoice810(
            invoice_date="20240101",
            invoice_number="INV-3",
            line_items=[InvoiceLine(assigned_id="1")],
            allowances=[AllowanceCharge(indicator="C", code="D240", amount=Decimal("15"), description="Freight")],
            total_amount=Decimal("115"),
        )
        lines = _lines(generator, invoice_810.build(invoice))
        assert "TDS*11500" in lines
        assert "SAC*C*D240***1500**********Freight" in lines


@pytest.mark.unit
class TestFunctionalAck997:
    """Tests for the 997 Functional Acknowledgment."""

    def test_parse(self, parse_set, sample_997):
        """Test AK1, AK2/AK5 and AK9."""
        ack = ack_997.parse(parse_set(sample_997)).data
        assert isinstance(ack, FunctionalAck997)
        assert ack.functional_code == "PO"
        assert ack.group_control_number == "1"
        assert ack.version_code == "005010X220A1"
        response = ack.transaction_set_responses[0]
        assert response.transaction_set_code == "850"
        assert response.control_number == "0001"
        assert response.acknowledgment_code == "A"
        assert ack.group_acknowledgment_code == "A"
        assert (ack.number_included, ack.number_received, ack.number_accepted) == (1, 1, 1)

    def test_parse_errors(self):
        """Test AK3/AK4 nesting and composite AK401."""
        ack = ack_997.parse(_set(
            "997",
            "AK1*PO*7",
            "AK2*850*0001",
            "AK3*PO1*4**8",
            "AK4*2:1*66*7*BAD",
            "AK4*3**4",
            "AK5*R*5",
            "AK9*R*1*1*0*4",
        )).data
        response = ack.transaction_set_responses[0]
        assert response.acknowledgment_code == "R"
        assert response.syntax_error_codes == ["5"]
        segment_error = response.segment_errors[0]
        assert (segment_error.segment_id, segment_error.position, segment_error.error_code) == ("PO1", 4, "8")
        first, second = segment_error.element_errors
        assert (first.position, first.component_position, first.element_reference) == (2, 1, "66")
        assert first.bad_value == "BAD"
        assert second.component_position is None
        assert ack.group_syntax_error_codes == ["4"]

    def test_missing_ak1(self):
        """Test no data without AK1."""
        result = ack_997.parse(_set("997", "AK9*A*0*0*0"))
        assert result.data is None

    def test_build_composite_position(self, generator):
        """Test AK401 is written as a composite when a component is given."""
        segment = ack_997.element_error_segment(ElementError(position=2, component_position=1, error_code="7"))
        assert generator.generate_segment(segment, Delimiters()) == "AK4*2:1**7"

    def test_build_reproduces_segments(self, parse_set, generator, sample_997):
        """Test parse then build gives back the same segments."""
        transaction_set = parse_set(sample_997)
        rebuilt = ack_997.build(ack_997.parse(transaction_set).data)
        assert _lines(generator, rebuilt) == _lines(generator, transaction_set)


@pytest.mark.unit
class TestRegistry:
    """Tests for the transaction set dispatch table."""

    @pytest.mark.parametrize("text, expected", [
        (SAMPLE_850, PurchaseOrder850),
        (SAMPLE_855, PurchaseOrderAck855),
        (SAMPLE_810, Invoice810),
        (SAMPLE_997, FunctionalAck997),
    ])
    def test_dispatch(self, parse_set, text, expected):
        """Test each code reaches its typed parser."""
        assert isinstance(parse_transaction_set(parse_set(text)).data, expected)

    def test_supported_codes(self):
        """Test the supported set list."""
        for code in ("850", "855", "856", "810", "997"):
            assert is_transaction_set_supported(code) is True
        assert is_transaction_set_supported("837") is False

    def test_unsupported_parse(self):
        """Test unknown codes give a placeholder and one warning."""
        result = parse_transaction_set(_set("837", "BHT*0019"))
        assert isinstance(result.data, UnsupportedTransactionSet)
        assert result.data.transaction_set_code == "837"
        assert [e.code for e in result.errors] == [IssueCode.UNSUPPORTED_TRANSACTION_SET]
        assert result.errors[0].severity == Severity.WARNING
        assert result.has_errors is False

    def test_path_stamped_on_issues(self):
        """Test typed issues are located at the given path."""
        path = "functional_groups[0].transaction_sets[1]"
        result = parse_transaction_set(_set("850", "PO1*1*10*EA"), path)
        assert [e.code for e in result.errors] == [IssueCode.MISSING_BEGINNING_SEGMENT]
        assert result.errors[0].path == path

    def test_no_path_by_default(self):
        """Test issues stay unlocated without a path."""
        result = parse_transaction_set(_set("850", "PO1*1*10*EA"))
        assert result.errors[0].path is None

    def test_unsupported_build(self):
        """Test building a placeholder raises."""
        with pytest.raises(UnsupportedTransactionSetError) as exc_info:
            build_transaction_set(UnsupportedTransactionSet(transaction_set_code="837"))
        assert exc_info.value.details == {"transaction_set_code": "837"}

    def test_build_dispatch(self, generator):
        """Test typed records reach their builder."""
        order = PurchaseOrder850(purchase_order_number="PO9", order_date="20240301", control_number="12")
        transaction_set = build_transaction_set(order)
        assert transaction_set.header.transaction_set_code == "850"
        assert transaction_set.header.control_number == "0012"


@pytest.mark.unit
class TestMakeSegment:
    """Tests for the shared segment builder."""

    def test_values_formatted(self, generator):
        """Test numbers are rendered and trailing blanks dropped."""
        segment = make_segment("CTT", 2, Decimal("2000.50"), None, "")
        assert generator.generate_segment(segment, Delimiters()) == "CTT*2*2000.5"
