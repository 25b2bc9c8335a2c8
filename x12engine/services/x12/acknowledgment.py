"""Build 997 functional acknowledgments for parsed documents."""
import re
from typing import Dict, List, Optional, Tuple, Union

from x12engine.models.enums import AcknowledgmentCode, IssueCode
from x12engine.models.envelope import (
    DroppedGroup,
    FunctionalGroup,
    Interchange,
    InterchangeOptions,
    ParseResult,
    ReceiverIdentity,
    SenderIdentity,
    TransactionSet,
    X12Issue,
)
from x12engine.models.transaction_sets import (
    ElementError,
    FunctionalAck997,
    SegmentError,
    TransactionSetResponse,
)
from x12engine.services.x12.config import (
    ELEMENT_SYNTAX_ERROR,
    GROUP_SYNTAX_ERROR,
    SEGMENT_SYNTAX_ERROR,
    SET_SYNTAX_ERROR_SEGMENTS,
)
from x12engine.services.x12.generator import X12Generator
from x12engine.services.x12.parser import (
    DROPPED_GROUP_CODES,
    DROPPED_SET_CODES,
    dropped_ordinals,
    group_path,
    kept_ordinals,
    path_ordinal,
    set_path,
)
from x12engine.services.x12.transaction_sets import ack_997
from x12engine.services.x12.transaction_sets.registry import parse_transaction_set
from x12engine.services.x12.validator import X12Validator
from x12engine.utils.logger import get_logger

logger = get_logger(__name__)

AK1_VERSION = "005010"
SEGMENT_INDEX_PATTERN = re.compile(r"\.?segments\[(\d+)\]$")

ELEMENT_ERROR_CODES: Dict[IssueCode, str] = {
    IssueCode.MISSING_REQUIRED_ELEMENT: ELEMENT_SYNTAX_ERROR["missing_mandatory"],
    IssueCode.ELEMENT_TOO_SHORT: ELEMENT_SYNTAX_ERROR["too_short"],
    IssueCode.ELEMENT_TOO_LONG: ELEMENT_SYNTAX_ERROR["too_long"],
    IssueCode.INVALID_ELEMENT_TYPE: ELEMENT_SYNTAX_ERROR["invalid_character"],
    IssueCode.INVALID_ELEMENT_VALUE: ELEMENT_SYNTAX_ERROR["invalid_code"],
}

SEGMENT_ERROR_CODES: Dict[IssueCode, str] = {
    IssueCode.MISSING_BEGINNING_SEGMENT: SEGMENT_SYNTAX_ERROR["missing_mandatory"],
    IssueCode.MISSING_REQUIRED_SEGMENT: SEGMENT_SYNTAX_ERROR["missing_mandatory"],
    IssueCode.MISSING_TDS: SEGMENT_SYNTAX_ERROR["missing_mandatory"],
    IssueCode.NO_LINE_ITEMS: SEGMENT_SYNTAX_ERROR["missing_mandatory"],
    IssueCode.NO_HL_SEGMENTS: SEGMENT_SYNTAX_ERROR["missing_mandatory"],
    IssueCode.TOO_MANY_SEGMENTS: SEGMENT_SYNTAX_ERROR["unexpected"],
    IssueCode.UNEXPECTED_SEGMENT: SEGMENT_SYNTAX_ERROR["unexpected"],
}

DROPPED_GROUP_SYNTAX_ERRORS: Dict[IssueCode, str] = {
    IssueCode.MISSING_GE: GROUP_SYNTAX_ERROR["trailer_missing"],
    IssueCode.GE_ELEMENT_COUNT: GROUP_SYNTAX_ERROR["control_number_mismatch"],
    IssueCode.GS_ELEMENT_COUNT: GROUP_SYNTAX_ERROR["version_not_supported"],
}


class AcknowledgmentBuilder:
    """
    Derive 997 acknowledgments from a parse result.

    Only errors reject: envelope errors recorded against a set, errors from
    the typed transaction-set parser and, when a validator is supplied, rule
    table errors. Warnings never reject.
    """

    def __init__(self, validator: Optional[X12Validator] = None, generator: Optional[X12Generator] = None):
        self.validator = validator
        self.generator = generator or X12Generator()

    def build_acknowledgments(self, result: ParseResult) -> List[FunctionalAck997]:
        """
        One ``FunctionalAck997`` per functional group, in document order.

        Groups dropped by the parser are rejected from their recorded GS
        header; a dropped group whose GS could not be read gets nothing.

        Args:
            result: Output of ``X12Parser.parse``

        Returns:
            Acknowledgments in group order; empty without an interchange
        """
        interchange = result.interchange
        if interchange is None:
            return []

        dropped = dropped_ordinals(result.errors, DROPPED_GROUP_CODES, 0)
        ordinals = kept_ordinals(len(interchange.functional_groups), dropped)
        entries: List[Tuple[int, Union[FunctionalGroup, DroppedGroup]]] = list(zip(ordinals, interchange.functional_groups))
        entries.extend((path_ordinal(group.path, 0), group) for group in result.dropped_groups)
        entries.sort(key=lambda entry: entry[0])

        acknowledgments = []
        for number, (group_ordinal, group) in enumerate(entries, start=1):
            if isinstance(group, DroppedGroup):
                ack = self._acknowledge_dropped_group(interchange, group)
            else:
                ack = self._acknowledge_group(interchange, group, group_ordinal, result.errors)
            ack.control_number = str(number).zfill(4)
            acknowledgments.append(ack)
        return acknowledgments

    def _acknowledge_dropped_group(self, interchange: Interchange, group: DroppedGroup) -> FunctionalAck997:
        logger.info(
            "Rejected dropped functional group",
            path=group.path,
            group_control_number=group.control_number,
            code=group.code.value,
        )
        return FunctionalAck997(
            functional_code=group.functional_code,
            group_control_number=group.control_number,
            version_code=group.version_code if interchange.header.version == AK1_VERSION else None,
            group_acknowledgment_code=AcknowledgmentCode.REJECTED.value,
            number_included=group.transaction_set_count,
            number_received=group.transaction_set_count,
            number_accepted=0,
            group_syntax_error_codes=[DROPPED_GROUP_SYNTAX_ERRORS[group.code]],
        )

    def _acknowledge_group(
        self,
        interchange: Interchange,
        group: FunctionalGroup,
        group_ordinal: int,
        errors: List[X12Issue],
    ) -> FunctionalAck997:
        header = group.header
        dropped_sets = dropped_ordinals(errors, DROPPED_SET_CODES, 1, group_ordinal)
        set_ordinals = kept_ordinals(len(group.transaction_sets), dropped_sets)

        responses = []
        for transaction_set, set_ordinal in zip(group.transaction_sets, set_ordinals):
            path = set_path(group_ordinal, set_ordinal)
            issues = [
                issue for issue in errors
                if issue.path == path and issue.code not in DROPPED_SET_CODES
            ]
            issues.extend(issue for issue in parse_transaction_set(transaction_set, path).errors if issue.is_error)
            if self.validator is not None:
                issues.extend(
                    issue for issue in self.validator.validate_transaction_set(transaction_set, path)
                    if issue.is_error
                )
            responses.append(self._respond(transaction_set, issues))

        received = len(group.transaction_sets) + len(dropped_sets)
        accepted = sum(1 for r in responses if r.acknowledgment_code == AcknowledgmentCode.ACCEPTED.value)
        if received and accepted == received:
            group_code = AcknowledgmentCode.ACCEPTED
        elif accepted == 0:
            group_code = AcknowledgmentCode.REJECTED
        else:
            group_code = AcknowledgmentCode.PARTIALLY_ACCEPTED

        group_syntax_errors = []
        if group.trailer.control_number != header.control_number:
            group_syntax_errors.append(GROUP_SYNTAX_ERROR["control_number_mismatch"])
        if group.trailer.number_of_transaction_sets != received:
            group_syntax_errors.append(GROUP_SYNTAX_ERROR["count_mismatch"])

        logger.info(
            "Acknowledged functional group",
            path=group_path(group_ordinal),
            group_control_number=header.control_number,
            received=received,
            accepted=accepted,
            group_acknowledgment_code=group_code.value,
        )
        return FunctionalAck997(
            functional_code=header.functional_code,
            group_control_number=header.control_number,
            version_code=header.version_code if interchange.header.version == AK1_VERSION else None,
            transaction_set_responses=responses,
            group_acknowledgment_code=group_code.value,
            number_included=group.trailer.number_of_transaction_sets,
            number_received=received,
            number_accepted=accepted,
            group_syntax_error_codes=group_syntax_errors,
        )

    def _respond(self, transaction_set: TransactionSet, issues: List[X12Issue]) -> TransactionSetResponse:
        response = TransactionSetResponse(
            transaction_set_code=transaction_set.header.transaction_set_code,
            control_number=transaction_set.header.control_number,
            implementation_reference=transaction_set.header.implementation_reference,
        )
        if not issues:
            response.acknowledgment_code = AcknowledgmentCode.ACCEPTED.value
            return response

        by_position: Dict[int, SegmentError] = {}
        for issue in issues:
            position = self._segment_position(transaction_set, issue)
            segment_error = by_position.get(position)
            if segment_error is None:
                segment_error = SegmentError(segment_id=issue.segment_id or "", position=position)
                by_position[position] = segment_error
                response.segment_errors.append(segment_error)

            if issue.code in ELEMENT_ERROR_CODES and issue.element_index:
                segment_error.error_code = SEGMENT_SYNTAX_ERROR["data_element_errors"]
                segment_error.element_errors.append(ElementError(
                    position=issue.element_index,
                    component_position=issue.component_index,
                    error_code=ELEMENT_ERROR_CODES[issue.code],
                    bad_value=self._bad_value(transaction_set, position, issue.element_index),
                ))
            elif segment_error.error_code is None:
                segment_error.error_code = SEGMENT_ERROR_CODES.get(issue.code, SEGMENT_SYNTAX_ERROR["unexpected"])

        response.acknowledgment_code = AcknowledgmentCode.REJECTED.value
        response.syntax_error_codes = [SET_SYNTAX_ERROR_SEGMENTS]
        return response

    def _segment_position(self, transaction_set: TransactionSet, issue: X12Issue) -> int:
        """
        AK302 position, counting ST as 1.

        Issues on a decoded segment carry its index in their path; otherwise
        the first segment with the issue's id is used, and a segment that is
        absent is reported where the trailer sits.
        """
        match = SEGMENT_INDEX_PATTERN.search(issue.path or "")
        if match:
            return int(match.group(1)) + 2
        if issue.code == IssueCode.MISSING_BEGINNING_SEGMENT:
            return 2
        for index, segment in enumerate(transaction_set.segments):
            if segment.segment_id == issue.segment_id:
                return index + 2
        return len(transaction_set.segments) + 2

    def _bad_value(self, transaction_set: TransactionSet, position: int, element_index: int) -> Optional[str]:
        index = position - 2
        if not 0 <= index < len(transaction_set.segments):
            return None
        elements = transaction_set.segments[index].elements
        if element_index > len(elements):
            return None
        return elements[element_index - 1].value or None

    def build_document(
        self,
        result: ParseResult,
        sender: SenderIdentity,
        receiver: ReceiverIdentity,
        control_number: Optional[str] = None,
        timestamp: Optional[str] = None,
    ) -> Optional[str]:
        """
        Serialize the acknowledgments for ``result`` as an interchange.

        The reply uses the inbound delimiters, interchange version and
        group version.

        Args:
            result: Output of ``X12Parser.parse``
            sender: Identity of the acknowledging party
            receiver: Identity of the original sender
            control_number: ISA13 of the reply; time-derived when omitted
            timestamp: Fixed "%Y%m%d%H%M" timestamp

        Returns:
            X12 text, or None when nothing can be acknowledged or a dropped
            group could not be identified
        """
        acknowledgments = self.build_acknowledgments(result)
        if not acknowledgments:
            logger.warning("No functional group to acknowledge", errors=len(result.errors))
            return None

        unidentified = len(dropped_ordinals(result.errors, DROPPED_GROUP_CODES, 0)) - len(result.dropped_groups)
        if unidentified > 0:
            logger.warning("Dropped functional group cannot be acknowledged", unidentified=unidentified)
            return None

        inbound = result.interchange
        versions = [group.header.version_code for group in inbound.functional_groups]
        versions.extend(group.version_code for group in result.dropped_groups)
        transaction_sets = [ack_997.build(ack) for ack in acknowledgments]
        options = InterchangeOptions(
            control_number=control_number,
            version=inbound.header.version,
            delimiters=inbound.delimiters,
            gs_version_code=next((version for version in versions if version), None),
            timestamp=timestamp,
        )
        interchange = self.generator.build_interchange(transaction_sets, sender, receiver, options)
        return self.generator.generate(interchange)
