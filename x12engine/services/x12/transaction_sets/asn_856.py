"""856 Ship Notice/Manifest."""
from typing import Dict, List, Optional

from x12engine.models.enums import HierarchicalLevelCode, IssueCode, Severity
from x12engine.models.envelope import Segment, TransactionSet, X12Issue
from x12engine.models.transaction_sets import (
    HierarchicalLevel,
    ItemDetail,
    OrderDetail,
    PackDetail,
    Packaging,
    Party,
    Reference,
    ShipmentDetail,
    ShipNotice856,
    TransactionSetParseResult,
)
from x12engine.services.x12.generator import create_transaction_set
from x12engine.services.x12.parser import get_element_value
from x12engine.services.x12.transaction_sets.common import (
    apply_party_segment,
    carrier_segment,
    date_time_segment,
    decimal_value,
    make_segment,
    missing_segment,
    parse_carrier,
    parse_date_time,
    parse_party,
    parse_product_ids,
    parse_reference,
    party_segments,
    product_id_values,
    reference_segment,
    value,
)
from x12engine.utils.decimal_utils import parse_int
from x12engine.utils.logger import get_logger

logger = get_logger(__name__)

TRANSACTION_SET_CODE = "856"
SERIAL_NUMBER_QUALIFIER = "SN"
PARTY_LOOP_SEGMENTS = ("N2", "N3", "N4", "PER")

# Segments each level owns; anything else climbs to the parent level
LEVEL_SEGMENTS = {
    HierarchicalLevelCode.SHIPMENT.value: ("TD1", "TD5", "REF", "DTM", "N1"),
    HierarchicalLevelCode.ORDER.value: ("PRF", "REF", "DTM"),
    HierarchicalLevelCode.PACK.value: ("TD1", "MAN"),
    HierarchicalLevelCode.ITEM.value: ("LIN", "SN1", "PID", "REF", "SER"),
}


def parse_packaging(segment: Segment) -> Packaging:
    return Packaging(
        packaging_code=value(segment, 1),
        lading_quantity=parse_int(get_element_value(segment, 2)),
        weight_qualifier=value(segment, 6),
        weight=decimal_value(segment, 7),
        weight_unit=value(segment, 8),
    )


def packaging_segment(packaging: Packaging) -> Segment:
    return make_segment(
        "TD1",
        packaging.packaging_code,
        packaging.lading_quantity,
        None,
        None,
        None,
        packaging.weight_qualifier,
        packaging.weight,
        packaging.weight_unit,
    )


def _new_level(segment: Segment) -> HierarchicalLevel:
    level = HierarchicalLevel(
        hl_id=get_element_value(segment, 1),
        parent_id=value(segment, 2),
        level_code=get_element_value(segment, 3),
        child_code=value(segment, 4),
    )
    if level.level_code == HierarchicalLevelCode.SHIPMENT.value:
        level.shipment = ShipmentDetail()
    elif level.level_code == HierarchicalLevelCode.ORDER.value:
        level.order = OrderDetail()
    elif level.level_code == HierarchicalLevelCode.PACK.value:
        level.pack = PackDetail()
    elif level.level_code == HierarchicalLevelCode.ITEM.value:
        level.item = ItemDetail()
    return level


def _apply(level: HierarchicalLevel, segment: Segment) -> Optional[Party]:
    """Route one segment into a level's detail; returns a new N1 party if one started."""
    segment_id = segment.segment_id

    if level.shipment is not None:
        shipment = level.shipment
        if segment_id == "TD1":
            shipment.packaging = parse_packaging(segment)
        elif segment_id == "TD5":
            shipment.carrier = parse_carrier(segment)
        elif segment_id == "REF":
            shipment.references.append(parse_reference(segment))
        elif segment_id == "DTM":
            shipment.dates.append(parse_date_time(segment))
        elif segment_id == "N1":
            party = parse_party(segment)
            shipment.parties.append(party)
            return party

    elif level.order is not None:
        order = level.order
        if segment_id == "PRF":
            order.purchase_order_number = value(segment, 1)
            order.release_number = value(segment, 2)
            order.purchase_order_date = value(segment, 4)
        elif segment_id == "REF":
            order.references.append(parse_reference(segment))
        elif segment_id == "DTM":
            order.dates.append(parse_date_time(segment))

    elif level.pack is not None:
        if segment_id == "TD1":
            level.pack.packaging = parse_packaging(segment)
        elif segment_id == "MAN":
            mark = value(segment, 2)
            if mark:
                level.pack.marks.append(mark)

    elif level.item is not None:
        item = level.item
        if segment_id == "LIN":
            item.line_number = value(segment, 1)
            item.product_ids = parse_product_ids(segment, 2)
        elif segment_id == "SN1":
            item.assigned_id = value(segment, 1)
            item.quantity_shipped = decimal_value(segment, 2)
            item.unit_of_measure = value(segment, 3)
        elif segment_id == "PID":
            description = value(segment, 5)
            if description:
                item.descriptions.append(description)
        elif segment_id == "SER":
            serial = value(segment, 1)
            if serial:
                item.serial_numbers.append(serial)
        elif segment_id == "REF":
            reference = parse_reference(segment)
            if reference.qualifier == SERIAL_NUMBER_QUALIFIER:
                item.serial_numbers.append(reference.identifier)
            else:
                item.references.append(reference)

    return None


def _owner(level: HierarchicalLevel, segment_id: str, levels: Dict[str, HierarchicalLevel]) -> Optional[HierarchicalLevel]:
    """Nearest level, starting at ``level`` and climbing parents, that owns ``segment_id``."""
    seen = set()
    while level is not None and level.hl_id not in seen:
        if segment_id in LEVEL_SEGMENTS.get(level.level_code, ()):
            return level
        seen.add(level.hl_id)
        level = levels.get(level.parent_id) if level.parent_id else None
    return None


def _enclosing_pack(level: HierarchicalLevel, levels: Dict[str, HierarchicalLevel]) -> Optional[PackDetail]:
    seen = set()
    parent = levels.get(level.parent_id) if level.parent_id else None
    while parent is not None and parent.hl_id not in seen:
        if parent.pack is not None:
            return parent.pack
        seen.add(parent.hl_id)
        parent = levels.get(parent.parent_id) if parent.parent_id else None
    return None


def parse(transaction_set: TransactionSet) -> TransactionSetParseResult:
    """
    Project a generic 856 onto ``ShipNotice856``.

    Segments after an HL belong to that level when the level type owns
    them, otherwise to the nearest ancestor that does. Items under a pack
    are listed on the pack and in the notice's flattened ``items``.

    Args:
        transaction_set: Parsed ST/SE envelope

    Returns:
        TransactionSetParseResult; no data when BSN is missing
    """
    segments = transaction_set.segments
    bsn = next((s for s in segments if s.segment_id == "BSN"), None)
    if bsn is None:
        return TransactionSetParseResult(errors=[missing_segment("BSN", TRANSACTION_SET_CODE)])

    notice = ShipNotice856(
        control_number=transaction_set.header.control_number,
        purpose_code=get_element_value(bsn, 1),
        shipment_id=get_element_value(bsn, 2),
        shipment_date=get_element_value(bsn, 3),
        shipment_time=value(bsn, 4),
        hierarchical_structure_code=value(bsn, 5),
    )

    levels: Dict[str, HierarchicalLevel] = {}
    current: Optional[HierarchicalLevel] = None
    current_party: Optional[Party] = None

    for segment in segments:
        segment_id = segment.segment_id

        if segment_id == "HL":
            current = _new_level(segment)
            current_party = None
            levels[current.hl_id] = current
            notice.hierarchical_levels.append(current)
            if current.item is not None:
                notice.items.append(current.item)
                pack = _enclosing_pack(current, levels)
                if pack is not None:
                    pack.items.append(current.item)
            continue

        if segment_id == "CTT":
            notice.total_line_items = parse_int(get_element_value(segment, 1))
            continue

        if current is None:
            if segment_id == "DTM":
                notice.dates.append(parse_date_time(segment))
            continue

        if current_party is not None and segment_id in PARTY_LOOP_SEGMENTS:
            apply_party_segment(current_party, segment)
            continue

        owner = _owner(current, segment_id, levels)
        if owner is None:
            logger.debug("No HL level accepts segment", segment_id=segment_id, hl_id=current.hl_id)
            continue
        party = _apply(owner, segment)
        if party is not None:
            current_party = party

    errors: List[X12Issue] = []
    if not notice.hierarchical_levels:
        errors.append(X12Issue(
            code=IssueCode.NO_HL_SEGMENTS,
            message="856 has no HL segments",
            severity=Severity.ERROR,
            segment_id="HL",
        ))

    logger.debug(
        "Parsed ship notice",
        shipment_id=notice.shipment_id,
        levels=len(notice.hierarchical_levels),
        items=len(notice.items),
    )
    return TransactionSetParseResult(data=notice, errors=errors)


def _level_segments(level: HierarchicalLevel) -> List[Segment]:
    segments = [make_segment("HL", level.hl_id, level.parent_id, level.level_code, level.child_code)]

    if level.shipment is not None:
        shipment = level.shipment
        if shipment.packaging is not None:
            segments.append(packaging_segment(shipment.packaging))
        if shipment.carrier is not None:
            segments.append(carrier_segment(shipment.carrier))
        segments.extend(reference_segment(reference) for reference in shipment.references)
        segments.extend(date_time_segment(date_time) for date_time in shipment.dates)
        for party in shipment.parties:
            segments.extend(party_segments(party))

    elif level.order is not None:
        order = level.order
        if order.purchase_order_number:
            segments.append(make_segment("PRF", order.purchase_order_number, order.release_number, None, order.purchase_order_date))
        segments.extend(reference_segment(reference) for reference in order.references)
        segments.extend(date_time_segment(date_time) for date_time in order.dates)

    elif level.pack is not None:
        if level.pack.packaging is not None:
            segments.append(packaging_segment(level.pack.packaging))
        segments.extend(make_segment("MAN", "GM", mark) for mark in level.pack.marks)

    elif level.item is not None:
        item = level.item
        segments.append(make_segment("LIN", item.line_number, *product_id_values(item.product_ids)))
        if item.quantity_shipped is not None:
            segments.append(make_segment("SN1", item.assigned_id, item.quantity_shipped, item.unit_of_measure))
        segments.extend(make_segment("PID", "F", None, None, None, description) for description in item.descriptions)
        segments.extend(reference_segment(reference) for reference in item.references)
        segments.extend(
            reference_segment(Reference(qualifier=SERIAL_NUMBER_QUALIFIER, identifier=serial))
            for serial in item.serial_numbers
        )

    return segments


def build(notice: ShipNotice856, implementation_reference: Optional[str] = None) -> TransactionSet:
    """Serialize a ``ShipNotice856`` from its hierarchical levels."""
    segments = [make_segment(
        "BSN",
        notice.purpose_code,
        notice.shipment_id,
        notice.shipment_date,
        notice.shipment_time,
        notice.hierarchical_structure_code,
    )]
    segments.extend(date_time_segment(date_time) for date_time in notice.dates)
    for level in notice.hierarchical_levels:
        segments.extend(_level_segments(level))
    if notice.total_line_items is not None:
        segments.append(make_segment("CTT", notice.total_line_items))

    return create_transaction_set(TRANSACTION_SET_CODE, notice.control_number, segments, implementation_reference)
