"""850 Purchase Order."""
from typing import List, Optional

from x12engine.models.enums import IssueCode, Severity
from x12engine.models.envelope import Segment, TransactionSet, X12Issue
from x12engine.models.transaction_sets import (
    MonetaryAmount,
    Party,
    PurchaseOrder850,
    PurchaseOrderLine,
    TransactionSetParseResult,
)
from x12engine.services.x12.generator import create_transaction_set
from x12engine.services.x12.parser import get_element_value
from x12engine.services.x12.transaction_sets.common import (
    apply_party_segment,
    carrier_segment,
    contact_segment,
    date_time_segment,
    decimal_value,
    item_description_segment,
    make_segment,
    missing_segment,
    parse_carrier,
    parse_contact,
    parse_date_time,
    parse_item_description,
    parse_party,
    parse_product_ids,
    parse_reference,
    parse_tax,
    party_segments,
    product_id_values,
    reference_segment,
    tax_segment,
    value,
)
from x12engine.utils.decimal_utils import parse_int
from x12engine.utils.logger import get_logger

logger = get_logger(__name__)

TRANSACTION_SET_CODE = "850"


def parse_line(segment: Segment, line_class=PurchaseOrderLine):
    """PO1-style line: id, quantity, unit, price, basis, then product id pairs."""
    return line_class(
        assigned_id=value(segment, 1),
        quantity=decimal_value(segment, 2),
        unit_of_measure=value(segment, 3),
        unit_price=decimal_value(segment, 4),
        basis_of_unit_price=value(segment, 5),
        product_ids=parse_product_ids(segment, 6),
    )


def line_segment(segment_id: str, line: PurchaseOrderLine) -> Segment:
    return make_segment(
        segment_id,
        line.assigned_id,
        line.quantity,
        line.unit_of_measure,
        line.unit_price,
        line.basis_of_unit_price,
        *product_id_values(line.product_ids),
    )


def parse(transaction_set: TransactionSet) -> TransactionSetParseResult:
    """
    Project a generic 850 onto ``PurchaseOrder850``.

    Header PER and DTM segments are those outside any N1 or PO1 loop. A PO1
    loop collects PID, REF, DTM and TXI until the next PO1, CTT or AMT.

    Args:
        transaction_set: Parsed ST/SE envelope

    Returns:
        TransactionSetParseResult; no data when BEG is missing
    """
    segments = transaction_set.segments
    beg = next((s for s in segments if s.segment_id == "BEG"), None)
    if beg is None:
        return TransactionSetParseResult(errors=[missing_segment("BEG", TRANSACTION_SET_CODE)])

    order = PurchaseOrder850(
        control_number=transaction_set.header.control_number,
        purpose_code=get_element_value(beg, 1),
        order_type_code=get_element_value(beg, 2),
        purchase_order_number=get_element_value(beg, 3),
        release_number=value(beg, 4),
        order_date=get_element_value(beg, 5),
        contract_number=value(beg, 6),
    )

    current_party: Optional[Party] = None
    current_line: Optional[PurchaseOrderLine] = None

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
            if segment_id in ("CTT", "AMT"):
                current_line = None

        if current_party is not None and segment_id != "N1":
            if apply_party_segment(current_party, segment):
                continue

        if segment_id == "PO1":
            current_party = None
            current_line = parse_line(segment)
            order.line_items.append(current_line)
        elif segment_id == "N1":
            current_party = parse_party(segment)
            order.parties.append(current_party)
        elif segment_id == "CUR":
            order.currency_code = value(segment, 2)
            order.exchange_rate = decimal_value(segment, 3)
        elif segment_id == "REF":
            order.references.append(parse_reference(segment))
        elif segment_id == "PER":
            order.contacts.append(parse_contact(segment))
        elif segment_id == "DTM":
            order.dates.append(parse_date_time(segment))
        elif segment_id == "TD5":
            order.carrier_details.append(parse_carrier(segment))
        elif segment_id == "CTT":
            order.total_line_items = parse_int(get_element_value(segment, 1))
            order.hash_total = decimal_value(segment, 2)
        elif segment_id == "AMT":
            order.amounts.append(MonetaryAmount(qualifier=get_element_value(segment, 1), amount=decimal_value(segment, 2)))

    errors: List[X12Issue] = []
    if not order.line_items:
        errors.append(X12Issue(
            code=IssueCode.NO_LINE_ITEMS,
            message="850 has no PO1 line items",
            severity=Severity.ERROR,
            segment_id="PO1",
        ))

    logger.debug(
        "Parsed purchase order",
        purchase_order_number=order.purchase_order_number,
        line_items=len(order.line_items),
        parties=len(order.parties),
    )
    return TransactionSetParseResult(data=order, errors=errors)


def build(order: PurchaseOrder850, implementation_reference: Optional[str] = None) -> TransactionSet:
    """Serialize a ``PurchaseOrder850`` into an ST/SE envelope."""
    segments = [make_segment(
        "BEG",
        order.purpose_code,
        order.order_type_code,
        order.purchase_order_number,
        order.release_number,
        order.order_date,
        order.contract_number,
    )]
    if order.currency_code:
        segments.append(make_segment("CUR", "BY", order.currency_code, order.exchange_rate))
    segments.extend(reference_segment(reference) for reference in order.references)
    segments.extend(contact_segment(contact) for contact in order.contacts)
    segments.extend(date_time_segment(date_time) for date_time in order.dates)
    segments.extend(carrier_segment(carrier) for carrier in order.carrier_details)
    for party in order.parties:
        segments.extend(party_segments(party))

    for line in order.line_items:
        segments.append(line_segment("PO1", line))
        segments.extend(item_description_segment(description) for description in line.descriptions)
        segments.extend(reference_segment(reference) for reference in line.references)
        segments.extend(date_time_segment(date_time) for date_time in line.dates)
        segments.extend(tax_segment(tax) for tax in line.taxes)

    if order.total_line_items is not None:
        segments.append(make_segment("CTT", order.total_line_items, order.hash_total))
    segments.extend(make_segment("AMT", amount.qualifier, amount.amount) for amount in order.amounts)

    return create_transaction_set(TRANSACTION_SET_CODE, order.control_number, segments, implementation_reference)
