"""855 Purchase Order Acknowledgment."""
from typing import Optional

from x12engine.models.envelope import Segment, TransactionSet
from x12engine.models.transaction_sets import (
    AcknowledgmentLine,
    LineAcknowledgment,
    Party,
    PurchaseOrderAck855,
    TransactionSetParseResult,
)
from x12engine.services.x12.generator import create_transaction_set
from x12engine.services.x12.parser import get_element_value
from x12engine.services.x12.transaction_sets.common import (
    apply_party_segment,
    contact_segment,
    date_time_segment,
    decimal_value,
    item_description_segment,
    make_segment,
    missing_segment,
    parse_contact,
    parse_date_time,
    parse_item_description,
    parse_party,
    parse_reference,
    party_segments,
    reference_segment,
    value,
)
from x12engine.services.x12.transaction_sets.po_850 import line_segment, parse_line
from x12engine.utils.decimal_utils import parse_int
from x12engine.utils.logger import get_logger

logger = get_logger(__name__)

TRANSACTION_SET_CODE = "855"


def parse_line_acknowledgment(segment: Segment) -> LineAcknowledgment:
    return LineAcknowledgment(
        status_code=get_element_value(segment, 1),
        quantity=decimal_value(segment, 2),
        unit_of_measure=value(segment, 3),
        date_qualifier=value(segment, 4),
        date=value(segment, 5),
    )


def parse(transaction_set: TransactionSet) -> TransactionSetParseResult:
    """Project a generic 855 onto ``PurchaseOrderAck855``."""
    segments = transaction_set.segments
    bak = next((s for s in segments if s.segment_id == "BAK"), None)
    if bak is None:
        return TransactionSetParseResult(errors=[missing_segment("BAK", TRANSACTION_SET_CODE)])

    ack = PurchaseOrderAck855(
        control_number=transaction_set.header.control_number,
        purpose_code=get_element_value(bak, 1),
        acknowledgment_type=get_element_value(bak, 2),
        purchase_order_number=get_element_value(bak, 3),
        purchase_order_date=get_element_value(bak, 4),
        release_number=value(bak, 5),
        request_reference=value(bak, 6),
        contract_number=value(bak, 7),
        acknowledgment_date=value(bak, 9),
    )

    current_party: Optional[Party] = None
    current_line: Optional[AcknowledgmentLine] = None

    for segment in segments:
        segment_id = segment.segment_id

        if current_line is not None:
            if segment_id == "REF":
                current_line.references.append(parse_reference(segment))
                continue
            if segment_id == "ACK":
                current_line.acknowledgments.append(parse_line_acknowledgment(segment))
                continue
            if segment_id == "PID":
                current_line.descriptions.append(parse_item_description(segment))
                continue
            if segment_id == "DTM":
                current_line.dates.append(parse_date_time(segment))
                continue
            if segment_id == "CTT":
                current_line = None

        if current_party is not None and segment_id != "N1":
            if apply_party_segment(current_party, segment):
                continue

        if segment_id == "PO1":
            current_party = None
            current_line = parse_line(segment, AcknowledgmentLine)
            ack.line_items.append(current_line)
        elif segment_id == "N1":
            current_party = parse_party(segment)
            ack.parties.append(current_party)
        elif segment_id == "CUR":
            ack.currency_code = value(segment, 2)
        elif segment_id == "REF":
            ack.references.append(parse_reference(segment))
        elif segment_id == "PER":
            ack.contacts.append(parse_contact(segment))
        elif segment_id == "DTM":
            ack.dates.append(parse_date_time(segment))
        elif segment_id == "CTT":
            ack.total_line_items = parse_int(get_element_value(segment, 1))

    logger.debug(
        "Parsed purchase order acknowledgment",
        purchase_order_number=ack.purchase_order_number,
        acknowledgment_type=ack.acknowledgment_type,
        line_items=len(ack.line_items),
    )
    return TransactionSetParseResult(data=ack)


def build(ack: PurchaseOrderAck855, implementation_reference: Optional[str] = None) -> TransactionSet:
    """Serialize a ``PurchaseOrderAck855`` into an ST/SE envelope."""
    segments = [make_segment(
        "BAK",
        ack.purpose_code,
        ack.acknowledgment_type,
        ack.purchase_order_number,
        ack.purchase_order_date,
        ack.release_number,
        ack.request_reference,
        ack.contract_number,
        None,
        ack.acknowledgment_date,
    )]
    if ack.currency_code:
        segments.append(make_segment("CUR", "SE", ack.currency_code))
    segments.extend(reference_segment(reference) for reference in ack.references)
    segments.extend(contact_segment(contact) for contact in ack.contacts)
    segments.extend(date_time_segment(date_time) for date_time in ack.dates)
    for party in ack.parties:
        segments.extend(party_segments(party))

    for line in ack.line_items:
        segments.append(line_segment("PO1", line))
        segments.extend(item_description_segment(description) for description in line.descriptions)
        segments.extend(reference_segment(reference) for reference in line.references)
        segments.extend(date_time_segment(date_time) for date_time in line.dates)
        for acknowledgment in line.acknowledgments:
            segments.append(make_segment(
                "ACK",
                acknowledgment.status_code,
                acknowledgment.quantity,
                acknowledgment.unit_of_measure,
                acknowledgment.date_qualifier,
                acknowledgment.date,
            ))

    if ack.total_line_items is not None:
        segments.append(make_segment("CTT", ack.total_line_items))

    return create_transaction_set(TRANSACTION_SET_CODE, ack.control_number, segments, implementation_reference)
