"""Segment helpers shared by the typed transaction-set modules."""
from decimal import Decimal
from typing import List, Optional, Union

from x12engine.models.enums import IssueCode, Severity
from x12engine.models.envelope import Element, Segment, X12Issue
from x12engine.models.transaction_sets import (
    Address,
    CarrierDetail,
    CommunicationNumber,
    Contact,
    DateTimeReference,
    ItemDescription,
    Party,
    ProductId,
    Reference,
    TaxInfo,
)
from x12engine.services.x12.parser import get_element_value
from x12engine.utils.decimal_utils import format_decimal, parse_decimal

SegmentValue = Union[str, int, Decimal, None]


def value(segment: Segment, index: int) -> Optional[str]:
    """Element value or None when blank."""
    result = get_element_value(segment, index).strip()
    return result or None


def decimal_value(segment: Segment, index: int) -> Optional[Decimal]:
    return parse_decimal(get_element_value(segment, index))


def make_segment(segment_id: str, *values: SegmentValue) -> Segment:
    """Build a generic segment from element values; trailing blanks are dropped."""
    fields = []
    for item in values:
        if item is None:
            fields.append("")
        elif isinstance(item, (Decimal, int)):
            fields.append(format_decimal(item))
        else:
            fields.append(item)
    while fields and fields[-1] == "":
        fields.pop()
    return Segment(segment_id=segment_id, elements=[Element(value=field) for field in fields])


def missing_segment(segment_id: str, transaction_set_code: str, code: IssueCode = IssueCode.MISSING_BEGINNING_SEGMENT) -> X12Issue:
    return X12Issue(
        code=code,
        message=f"{transaction_set_code} is missing required segment {segment_id}",
        severity=Severity.ERROR,
        segment_id=segment_id,
    )


# Parsing

def parse_reference(segment: Segment) -> Reference:
    return Reference(
        qualifier=get_element_value(segment, 1),
        identifier=get_element_value(segment, 2),
        description=value(segment, 3),
    )


def parse_date_time(segment: Segment) -> DateTimeReference:
    return DateTimeReference(
        qualifier=get_element_value(segment, 1),
        date=value(segment, 2),
        time=value(segment, 3),
    )


def parse_contact(segment: Segment) -> Contact:
    """PER with up to three qualifier/number pairs."""
    communications = []
    for index in (3, 5, 7):
        qualifier = value(segment, index)
        number = value(segment, index + 1)
        if qualifier and number:
            communications.append(CommunicationNumber(qualifier=qualifier, number=number))
    return Contact(function_code=get_element_value(segment, 1), name=value(segment, 2), communications=communications)


def parse_party(segment: Segment) -> Party:
    return Party(
        entity_code=get_element_value(segment, 1),
        name=value(segment, 2),
        id_qualifier=value(segment, 3),
        id_code=value(segment, 4),
    )


def apply_party_segment(party: Party, segment: Segment) -> bool:
    """
    Attach an N3, N4 or PER segment to the current N1 loop.

    Returns:
        True when the segment belonged to the party loop
    """
    if segment.segment_id == "N3":
        if party.address is None:
            party.address = Address()
        party.address.address_lines.extend(
            line for line in (value(segment, 1), value(segment, 2)) if line
        )
        return True
    if segment.segment_id == "N4":
        if party.address is None:
            party.address = Address()
        party.address.city = value(segment, 1)
        party.address.state = value(segment, 2)
        party.address.postal_code = value(segment, 3)
        party.address.country_code = value(segment, 4)
        return True
    if segment.segment_id == "PER":
        party.contacts.append(parse_contact(segment))
        return True
    # N2 carries overflow name text
    if segment.segment_id == "N2":
        return True
    return False


def parse_product_ids(segment: Segment, start: int) -> List[ProductId]:
    """Qualifier/value pairs from ``start`` to the end of the segment."""
    product_ids = []
    for index in range(start, len(segment.elements) + 1, 2):
        qualifier = value(segment, index)
        product_value = value(segment, index + 1)
        if qualifier and product_value:
            product_ids.append(ProductId(qualifier=qualifier, value=product_value))
    return product_ids


def parse_item_description(segment: Segment) -> ItemDescription:
    return ItemDescription(description_type=get_element_value(segment, 1) or "F", description=value(segment, 5))


def parse_tax(segment: Segment) -> TaxInfo:
    return TaxInfo(
        tax_type=get_element_value(segment, 1),
        amount=decimal_value(segment, 2),
        percent=decimal_value(segment, 3),
        exempt_code=value(segment, 6),
        jurisdiction_code=value(segment, 5),
    )


def parse_carrier(segment: Segment) -> CarrierDetail:
    return CarrierDetail(
        routing_sequence_code=value(segment, 1),
        id_qualifier=value(segment, 2),
        carrier_code=value(segment, 3),
        transportation_method=value(segment, 4),
        routing=value(segment, 5),
    )


# Building

def reference_segment(reference: Reference) -> Segment:
    return make_segment("REF", reference.qualifier, reference.identifier, reference.description)


def date_time_segment(date_time: DateTimeReference) -> Segment:
    return make_segment("DTM", date_time.qualifier, date_time.date, date_time.time)


def contact_segment(contact: Contact) -> Segment:
    values: List[SegmentValue] = [contact.function_code, contact.name]
    for communication in contact.communications[:3]:
        values.extend([communication.qualifier, communication.number])
    return make_segment("PER", *values)


def party_segments(party: Party) -> List[Segment]:
    """N1 loop: N1, N3, N4 and PER."""
    segments = [make_segment("N1", party.entity_code, party.name, party.id_qualifier, party.id_code)]
    address = party.address
    if address is not None:
        lines = address.address_lines
        if lines:
            segments.append(make_segment("N3", lines[0], lines[1] if len(lines) > 1 else None))
        # N3 holds two lines
        for offset in range(2, len(lines), 2):
            segments.append(make_segment("N3", lines[offset], lines[offset + 1] if len(lines) > offset + 1 else None))
        if any([address.city, address.state, address.postal_code, address.country_code]):
            segments.append(make_segment("N4", address.city, address.state, address.postal_code, address.country_code))
    segments.extend(contact_segment(contact) for contact in party.contacts)
    return segments


def product_id_values(product_ids: List[ProductId]) -> List[str]:
    values = []
    for product_id in product_ids:
        values.extend([product_id.qualifier, product_id.value])
    return values


def item_description_segment(description: ItemDescription) -> Segment:
    return make_segment("PID", description.description_type, None, None, None, description.description)


def tax_segment(tax: TaxInfo) -> Segment:
    return make_segment("TXI", tax.tax_type, tax.amount, tax.percent, None, tax.jurisdiction_code, tax.exempt_code)


def carrier_segment(carrier: CarrierDetail) -> Segment:
    return make_segment(
        "TD5",
        carrier.routing_sequence_code,
        carrier.id_qualifier,
        carrier.carrier_code,
        carrier.transportation_method,
        carrier.routing,
    )
