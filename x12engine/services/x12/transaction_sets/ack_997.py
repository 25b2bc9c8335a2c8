"""997 Functional Acknowledgment."""
from typing import Optional

from x12engine.models.envelope import Element, Segment, TransactionSet
from x12engine.models.transaction_sets import (
    ElementError,
    FunctionalAck997,
    SegmentError,
    TransactionSetParseResult,
    TransactionSetResponse,
)
from x12engine.services.x12.generator import create_transaction_set
from x12engine.services.x12.parser import get_element_value, get_subelement_value
from x12engine.services.x12.transaction_sets.common import make_segment, missing_segment, value
from x12engine.utils.decimal_utils import parse_int
from x12engine.utils.logger import get_logger

logger = get_logger(__name__)

TRANSACTION_SET_CODE = "997"


def _codes(segment: Segment, start: int, end: int):
    return [code for code in (value(segment, index) for index in range(start, end + 1)) if code]


def parse_element_error(segment: Segment) -> ElementError:
    """AK4; AK401 may be a position:component composite."""
    return ElementError(
        position=parse_int(get_subelement_value(segment, 1, 1)) or 0,
        component_position=parse_int(get_subelement_value(segment, 1, 2)),
        element_reference=value(segment, 2),
        error_code=get_element_value(segment, 3),
        bad_value=value(segment, 4),
    )


def parse(transaction_set: TransactionSet) -> TransactionSetParseResult:
    """
    Project a generic 997 onto ``FunctionalAck997``.

    AK2 opens a transaction set response that AK5 closes; AK3 segment
    errors nest under the open AK2 and AK4 element errors under the last
    AK3.
    """
    segments = transaction_set.segments
    ak1 = next((s for s in segments if s.segment_id == "AK1"), None)
    if ak1 is None:
        return TransactionSetParseResult(errors=[missing_segment("AK1", TRANSACTION_SET_CODE)])

    ack = FunctionalAck997(
        control_number=transaction_set.header.control_number,
        functional_code=get_element_value(ak1, 1),
        group_control_number=get_element_value(ak1, 2),
        version_code=value(ak1, 3),
    )

    response: Optional[TransactionSetResponse] = None
    segment_error: Optional[SegmentError] = None

    for segment in segments:
        segment_id = segment.segment_id
        if segment_id == "AK2":
            response = TransactionSetResponse(
                transaction_set_code=get_element_value(segment, 1),
                control_number=get_element_value(segment, 2),
                implementation_reference=value(segment, 3),
            )
            segment_error = None
            ack.transaction_set_responses.append(response)
        elif segment_id == "AK3" and response is not None:
            segment_error = SegmentError(
                segment_id=get_element_value(segment, 1),
                position=parse_int(get_element_value(segment, 2)) or 0,
                loop_id=value(segment, 3),
                error_code=value(segment, 4),
            )
            response.segment_errors.append(segment_error)
        elif segment_id == "AK4" and segment_error is not None:
            segment_error.element_errors.append(parse_element_error(segment))
        elif segment_id == "AK5" and response is not None:
            response.acknowledgment_code = get_element_value(segment, 1)
            response.syntax_error_codes = _codes(segment, 2, 6)
            segment_error = None
        elif segment_id == "AK9":
            ack.group_acknowledgment_code = get_element_value(segment, 1)
            ack.number_included = parse_int(get_element_value(segment, 2)) or 0
            ack.number_received = parse_int(get_element_value(segment, 3)) or 0
            ack.number_accepted = parse_int(get_element_value(segment, 4)) or 0
            ack.group_syntax_error_codes = _codes(segment, 5, 9)

    logger.debug(
        "Parsed functional acknowledgment",
        functional_code=ack.functional_code,
        group_control_number=ack.group_control_number,
        group_acknowledgment_code=ack.group_acknowledgment_code,
    )
    return TransactionSetParseResult(data=ack)


def element_error_segment(error: ElementError) -> Segment:
    segment = make_segment("AK4", str(error.position), error.element_reference, error.error_code, error.bad_value)
    if error.component_position is not None:
        segment.elements[0] = Element(
            value=str(error.position),
            subelements=[str(error.position), str(error.component_position)],
        )
    return segment


def build(ack: FunctionalAck997, implementation_reference: Optional[str] = None) -> TransactionSet:
    """Serialize a ``FunctionalAck997`` into an ST/SE envelope."""
    segments = [make_segment("AK1", ack.functional_code, ack.group_control_number, ack.version_code)]
    for response in ack.transaction_set_responses:
        segments.append(make_segment(
            "AK2", response.transaction_set_code, response.control_number, response.implementation_reference,
        ))
        for segment_error in response.segment_errors:
            segments.append(make_segment(
                "AK3", segment_error.segment_id, segment_error.position, segment_error.loop_id, segment_error.error_code,
            ))
            segments.extend(element_error_segment(error) for error in segment_error.element_errors)
        if response.acknowledgment_code:
            segments.append(make_segment("AK5", response.acknowledgment_code, *response.syntax_error_codes[:5]))
    segments.append(make_segment(
        "AK9",
        ack.group_acknowledgment_code,
        ack.number_included,
        ack.number_received,
        ack.number_accepted,
        *ack.group_syntax_error_codes[:5],
    ))

    return create_transaction_set(TRANSACTION_SET_CODE, ack.control_number, segments, implementation_reference)
