"""810 Invoice."""
from typing import List, Optional

from x12engine.models.enums import IssueCode, Severity
from x12engine.models.envelope import Segment, TransactionSet, X12Issue
from x12engine.models.transaction_sets import (
    AllowanceCharge,
    CarrierSummary,
    Invoice810,
    InvoiceLine,
    Party,
    ShipmentSummary,
    TermsOfSale,
    TransactionSetParseResult,
)
from x12engine.services.x12.generator import create_transaction_set
from x12engine.services.x12.parser import get_element_value
from x12engine.services.x12.transaction_sets.common import (
    apply_party_segment,
    date_time_segment,
    decimal_value,
    item_description_segment,
    make_segment,
    missing_segment,
    parse_date_time,
    parse_item_description,
    parse_party,
    parse_reference,
    parse_tax,
    party_segments,
    reference_segment,
    tax_segment,
    value,
)
from x12engine.services.x12.transaction_sets.po_850 import line_segment, parse_line
from x12engine.utils.decimal_utils import amount_to_implied_cents, implied_cents_to_amount, parse_int
from x12engine.utils.logger import get_logger

logger = get_logger(__name__)

TRANSACTION_SET_CODE = "810"


def parse_terms(segment: Segment) -> TermsOfSale:
    return TermsOfSale(
        terms_type_code=value(segment, 1),
        basis_date_code=value(segment, 2),
        discount_percent=decimal_value(segment, 3),
        discount_due_date=value(segment, 4),
        discount_days=parse_int(get_element_value(segment, 5)),
        net_due_date=value(segment, 6),
        net_days=parse_int(get_element_value(segment, 7)),
        discount_amount=implied_cents_to_amount(get_element_value(segment, 8)),
        description=value(segment, 12),
    )


def terms_segment(terms: TermsOfSale) -> Segment:
    return make_segment(
        "ITD",
        terms.terms_type_code,
        terms.basis_date_code,
        terms.discount_percent,
        terms.discount_due_date,
        terms.discount_days,
        terms.net_due_date,
        terms.net_days,
        amount_to_implied_cents(terms.discount_amount),
        None,
        None,
        None,
        terms.description,
    )


def parse_allowance(segment: Segment) -> AllowanceCharge:
    """SAC; SAC05 carries implied cents."""
    return AllowanceCharge(
        indicator=get_element_value(segment, 1),
        code=value(segment, 2),
        amount=implied_cents_to_amount(get_element_value(segment, 5)),
        description=value(segment, 15),
    )


def allowance_segment(allowance: AllowanceCharge) -> Segment:
    values = [allowance.indicator, allowance.code, None, None, amount_to_implied_cents(allowance.amount)]
    if allowance.description:
        values.extend([None] * 9 + [allowance.description])
    return make_segment("SAC", *values)


def parse(transaction_set: TransactionSet) -> TransactionSetParseResult:
    """
    Project a generic 810 onto ``Invoice810``.

    An IT1 loop collects PID, REF, DTM, TXI and SAC until TDS or CTT. TXI, REF
    and SAC outside a line are invoice-level. TDS amounts carry implied cents.

    Args:
        transaction_set: Parsed ST/SE envelope

    Returns:
        TransactionSetParseResult; no data when BIG is missing
    """
    segments = transaction_set.segments
    big = next((s for s in segments if s.segment_id == "BIG"), None)
    if big is None:
        return TransactionSetParseResult(errors=[missing_segment("BIG", TRANSACTION_SET_CODE)])

    invoice = Invoice810(
        control_number=transaction_set.header.control_number,
        invoice_date=get_element_value(big, 1),
        invoice_number=get_element_value(big, 2),
        purchase_order_date=value(big, 3),
        purchase_order_number=value(big, 4),
        release_number=value(big, 5),
        change_order_sequence=value(big, 6),
        transaction_type_code=value(big, 7),
    )

    current_party: Optional[Party] = None
    current_line: Optional[InvoiceLine] = None
    has_tds = False

    for segment in segments:
        segment_id = segment.segment_id

        if current_line is not None:
            if segment_id == "REF":
                current_line.references.append(parse_reference(segment))
                continue
            if segment_id == "PID":
                current_line.descriptions.append(parse_item_description(segment))
                continue
            if segment_id == "DTM":
                current_line.dates.append(parse_date_time(segment))
                continue
            if segment_id == "TXI":
                current_line.taxes.append(parse_tax(segment))
                continue
            if segment_id == "SAC":
                current_line.allowances.append(parse_allowance(segment))
                continue
            if segment_id in ("TDS", "CTT"):
                current_line = None

        if current_party is not None and segment_id != "N1":
            if apply_party_segment(current_party, segment):
                continue

        if segment_id == "IT1":
            current_party = None
            current_line = parse_line(segment, InvoiceLine)
            invoice.line_items.append(current_line)
        elif segment_id == "N1":
            current_party = parse_party(segment)
            invoice.parties.append(current_party)
        elif segment_id == "CUR":
            invoice.currency_code = value(segment, 2)
        elif segment_id == "REF":
            invoice.references.append(parse_reference(segment))
        elif segment_id == "ITD":
            invoice.terms.append(parse_terms(segment))
        elif segment_id == "DTM":
            invoice.dates.append(parse_date_time(segment))
        elif segment_id == "TDS":
            has_tds = True
            invoice.total_amount = implied_cents_to_amount(get_element_value(segment, 1))
            invoice.subtotal_amount = implied_cents_to_amount(get_element_value(segment, 2))
            invoice.discounted_amount = implied_cents_to_amount(get_element_value(segment, 3))
            invoice.terms_discount_amount = implied_cents_to_amount(get_element_value(segment, 4))
        elif segment_id == "TXI":
            invoice.taxes.append(parse_tax(segment))
        elif segment_id == "SAC":
            invoice.allowances.append(parse_allowance(segment))
        elif segment_id == "CAD":
            invoice.carrier_summary = CarrierSummary(
                transportation_method=value(segment, 1),
                carrier_code=value(segment, 4),
                routing=value(segment, 5),
                shipment_status=value(segment, 6),
            )
        elif segment_id == "ISS":
            invoice.shipment_summary = ShipmentSummary(
                units_shipped=decimal_value(segment, 1),
                unit_of_measure=value(segment, 2),
                weight=decimal_value(segment, 3),
                weight_unit=value(segment, 4),
            )
        elif segment_id == "CTT":
            invoice.total_line_items = parse_int(get_element_value(segment, 1))
            invoice.hash_total = decimal_value(segment, 2)

    errors: List[X12Issue] = []
    if not invoice.line_items:
        errors.append(X12Issue(
            code=IssueCode.NO_LINE_ITEMS,
            message="810 has no IT1 line items",
            severity=Severity.ERROR,
            segment_id="IT1",
        ))
    if not has_tds:
        errors.append(missing_segment("TDS", TRANSACTION_SET_CODE, IssueCode.MISSING_TDS))

    logger.debug(
        "Parsed invoice",
        invoice_number=invoice.invoice_number,
        line_items=len(invoice.line_items),
        total_amount=str(invoice.total_amount),
    )
    return TransactionSetParseResult(data=invoice, errors=errors)


def build(invoice: Invoice810, implementation_reference: Optional[str] = None) -> TransactionSet:
    """Serialize an ``Invoice810`` into an ST/SE envelope."""
    segments = [make_segment(
        "BIG",
        invoice.invoice_date,
        invoice.invoice_number,
        invoice.purchase_order_date,
        invoice.purchase_order_number,
        invoice.release_number,
        invoice.change_order_sequence,
        invoice.transaction_type_code,
    )]
    if invoice.currency_code:
        segments.append(make_segment("CUR", "SE", invoice.currency_code))
    segments.extend(reference_segment(reference) for reference in invoice.references)
    for party in invoice.parties:
        segments.extend(party_segments(party))
    segments.extend(terms_segment(terms) for terms in invoice.terms)
    segments.extend(date_time_segment(date_time) for date_time in invoice.dates)

    for line in invoice.line_items:
        segments.append(line_segment("IT1", line))
        segments.extend(item_description_segment(description) for description in line.descriptions)
        segments.extend(reference_segment(reference) for reference in line.references)
        segments.extend(date_time_segment(date_time) for date_time in line.dates)
        segments.extend(tax_segment(tax) for tax in line.taxes)
        segments.extend(allowance_segment(allowance) for allowance in line.allowances)

    if invoice.total_amount is not None:
        segments.append(make_segment(
            "TDS",
            amount_to_implied_cents(invoice.total_amount),
            amount_to_implied_cents(invoice.subtotal_amount),
            amount_to_implied_cents(invoice.discounted_amount),
            amount_to_implied_cents(invoice.terms_discount_amount),
        ))
    segments.extend(tax_segment(tax) for tax in invoice.taxes)
    if invoice.carrier_summary is not None:
        carrier = invoice.carrier_summary
        segments.append(make_segment(
            "CAD", carrier.transportation_method, None, None, carrier.carrier_code, carrier.routing, carrier.shipment_status,
        ))
    segments.extend(allowance_segment(allowance) for allowance in invoice.allowances)
    if invoice.shipment_summary is not None:
        summary = invoice.shipment_summary
        segments.append(make_segment("ISS", summary.units_shipped, summary.unit_of_measure, summary.weight, summary.weight_unit))
    if invoice.total_line_items is not None:
        segments.append(make_segment("CTT", invoice.total_line_items, invoice.hash_total))

    return create_transaction_set(TRANSACTION_SET_CODE, invoice.control_number, segments, implementation_reference)
