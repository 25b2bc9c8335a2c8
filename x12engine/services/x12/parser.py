"""Envelope parser and generic segment decoder."""
import re
from typing import List, Optional, Set

from x12engine.config.settings import X12Settings, get_settings
from x12engine.models.enums import IssueCode, Severity
from x12engine.models.envelope import (
    Delimiters,
    DroppedGroup,
    Element,
    FunctionalGroup,
    GETrailer,
    GSHeader,
    IEATrailer,
    ISAHeader,
    Interchange,
    ParseResult,
    Segment,
    SETrailer,
    STHeader,
    TransactionSet,
    X12Issue,
)
from x12engine.services.x12.lexer import RawSegment, extract_delimiters, split_segments
from x12engine.utils.logger import get_logger

logger = get_logger(__name__)

# Minimum element counts (excluding the segment id)
GS_MIN_ELEMENTS = 8
GE_MIN_ELEMENTS = 2
ST_MIN_ELEMENTS = 2
SE_MIN_ELEMENTS = 2
IEA_MIN_ELEMENTS = 2
# GS01 through GS06 identify a group for acknowledgment
GS_IDENTIFYING_ELEMENTS = 6

# Issues that remove an envelope from the parsed tree
DROPPED_GROUP_CODES = (IssueCode.MISSING_GE, IssueCode.GS_ELEMENT_COUNT, IssueCode.GE_ELEMENT_COUNT)
DROPPED_SET_CODES = (IssueCode.MISSING_SE, IssueCode.ST_ELEMENT_COUNT, IssueCode.SE_ELEMENT_COUNT)

INDEX_PATTERN = re.compile(r"\[(\d+)\]")


def group_path(group_index: int) -> str:
    return f"functional_groups[{group_index}]"


def set_path(group_index: int, set_index: int) -> str:
    return f"functional_groups[{group_index}].transaction_sets[{set_index}]"


def path_ordinal(path: Optional[str], position: int) -> Optional[int]:
    """The ``position``-th bracketed index of an issue path."""
    if not path:
        return None
    indexes = INDEX_PATTERN.findall(path)
    if len(indexes) <= position:
        return None
    return int(indexes[position])


def dropped_ordinals(errors: List[X12Issue], codes, depth: int, group_ordinal: Optional[int] = None) -> Set[int]:
    """Document ordinals of envelopes at ``depth`` removed by one of ``codes``."""
    dropped = set()
    for issue in errors:
        if issue.code not in codes:
            continue
        if group_ordinal is not None and path_ordinal(issue.path, 0) != group_ordinal:
            continue
        ordinal = path_ordinal(issue.path, depth)
        if ordinal is not None:
            dropped.add(ordinal)
    return dropped


def kept_ordinals(kept_count: int, dropped: Set[int]) -> List[int]:
    """Document ordinals of the envelopes that survived parsing, in order."""
    ordinals = []
    candidate = 0
    while len(ordinals) < kept_count:
        if candidate not in dropped:
            ordinals.append(candidate)
        candidate += 1
    return ordinals


def decode_segment(text: str, delimiters: Delimiters) -> Segment:
    """
    Decode one segment with the interchange's own delimiters.

    Empty elements in the middle of a segment are kept so positions stay
    stable. For a repeated element, ``value`` is the first component of the
    first repetition, ``subelements`` the components of that repetition and
    ``repetitions`` the remaining raw repetitions.

    Args:
        text: Segment text without its terminator
        delimiters: Delimiters of the enclosing interchange

    Returns:
        Segment
    """
    fields = text.split(delimiters.element_separator)
    elements = []
    for field in fields[1:]:
        if delimiters.repetition_separator in field:
            repetitions = field.split(delimiters.repetition_separator)
            first = repetitions[0]
            subelements = None
            if delimiters.subelement_separator in first:
                subelements = first.split(delimiters.subelement_separator)
                first = subelements[0]
            elements.append(Element(value=first, subelements=subelements, repetitions=repetitions[1:]))
        elif delimiters.subelement_separator in field:
            subelements = field.split(delimiters.subelement_separator)
            elements.append(Element(value=subelements[0], subelements=subelements))
        else:
            elements.append(Element(value=field))
    return Segment(segment_id=fields[0].strip(), elements=elements, raw=text)


def get_element_value(segment: Segment, index: int, default: str = "") -> str:
    """Value of the 1-based element ``index``, or ``default`` when absent."""
    if index < 1 or index > len(segment.elements):
        return default
    return segment.elements[index - 1].value


def get_subelement_value(segment: Segment, index: int, sub_index: int, default: str = "") -> str:
    """Value of component ``sub_index`` of element ``index`` (both 1-based)."""
    if index < 1 or index > len(segment.elements):
        return default
    element = segment.elements[index - 1]
    if not element.subelements:
        return element.value if sub_index == 1 else default
    if sub_index < 1 or sub_index > len(element.subelements):
        return default
    return element.subelements[sub_index - 1]


def _parse_count(value: str) -> Optional[int]:
    value = value.strip()
    return int(value) if value.isdigit() else None


class _ParseContext:
    """Per-call parse state so one parser instance stays reentrant."""

    def __init__(self, segments: List[RawSegment], delimiters: Delimiters):
        self.segments = segments
        self.delimiters = delimiters
        self.errors: List[X12Issue] = []
        self.warnings: List[X12Issue] = []
        self.dropped_groups: List[DroppedGroup] = []

    def fields(self, index: int) -> List[str]:
        return self.segments[index].text.split(self.delimiters.element_separator)

    def segment_id(self, index: int) -> str:
        return self.segments[index].segment_id

    def add(
        self,
        code: IssueCode,
        message: str,
        index: int,
        severity: Severity = Severity.ERROR,
        element_index: Optional[int] = None,
        path: Optional[str] = None,
    ) -> None:
        segment = self.segments[index]
        issue = X12Issue(
            code=code,
            message=message,
            severity=severity,
            segment_id=segment.segment_id,
            element_index=element_index,
            path=path,
            position=segment.position.model_copy(update={"element_index": element_index or 0}),
        )
        if severity == Severity.ERROR:
            self.errors.append(issue)
        else:
            self.warnings.append(issue)

    def find_closing(self, start: int, end: int, opener: str, closer: str) -> int:
        """Index of the segment closing ``start``, counting nested openers; -1 if none before ``end``."""
        depth = 0
        for index in range(start, end):
            segment_id = self.segments[index].segment_id
            if segment_id == opener:
                depth += 1
            elif segment_id == closer:
                depth -= 1
                if depth == 0:
                    return index
        return -1


class X12Parser:
    """
    Parse X12 documents into an interchange tree.

    Fatal problems (unreadable ISA, unsupported version, missing IEA)
    return a result without an interchange. Missing group or set trailers
    drop only the affected envelope, and control-count mismatches are
    reported as warnings. A dropped group whose GS can still be read is
    listed in ``ParseResult.dropped_groups`` so it can be acknowledged.
    """

    def __init__(self, settings: Optional[X12Settings] = None):
        self.settings = settings or get_settings()

    def parse(self, text: str) -> ParseResult:
        """
        Parse an interchange.

        Args:
            text: Raw document text

        Returns:
            ParseResult; ``success`` is True only when no errors were found
        """
        if not text or not text.strip():
            return self._fatal(IssueCode.EMPTY_INPUT, "Input is empty")

        if len(text) > self.settings.max_input_length:
            return self._fatal(
                IssueCode.INPUT_TOO_LARGE,
                f"Input is {len(text)} characters; limit is {self.settings.max_input_length}",
            )

        logger.info("Starting X12 parsing", length=len(text))

        extracted = extract_delimiters(text)
        if extracted.errors:
            logger.warning("Unable to read ISA delimiters", code=extracted.errors[0].code.value)
            return ParseResult(success=False, errors=extracted.errors)
        delimiters = extracted.delimiters

        segments = split_segments(text, delimiters)
        if not segments:
            return self._fatal(IssueCode.NO_SEGMENTS, "No segments found")

        ctx = _ParseContext(segments, delimiters)

        header = self._parse_isa(ctx)
        if header is None:
            return ParseResult(success=False, errors=ctx.errors)

        iea_index = next((i for i, s in enumerate(segments) if s.segment_id == "IEA"), -1)
        if iea_index == -1:
            ctx.add(IssueCode.MISSING_IEA, "Interchange has no IEA trailer", len(segments) - 1)
            return ParseResult(success=False, errors=ctx.errors)

        iea = ctx.fields(iea_index)
        if len(iea) - 1 < IEA_MIN_ELEMENTS:
            ctx.add(IssueCode.IEA_ELEMENT_COUNT, "IEA must have 2 elements", iea_index)
            return ParseResult(success=False, errors=ctx.errors)

        trailer = IEATrailer(
            number_of_groups=self._count(ctx, iea[1], iea_index, 1),
            control_number=iea[2].strip(),
        )
        if trailer.control_number != header.control_number:
            ctx.add(
                IssueCode.CONTROL_NUMBER_MISMATCH,
                f"IEA02 {trailer.control_number} does not match ISA13 {header.control_number}",
                iea_index,
                severity=Severity.WARNING,
                element_index=2,
            )

        groups = self._parse_groups(ctx, 1, iea_index)

        if trailer.number_of_groups != len(groups):
            ctx.add(
                IssueCode.GROUP_COUNT_MISMATCH,
                f"IEA01 declares {trailer.number_of_groups} groups; found {len(groups)}",
                iea_index,
                severity=Severity.WARNING,
                element_index=1,
            )

        if iea_index < len(segments) - 1:
            ctx.add(
                IssueCode.UNEXPECTED_SEGMENT,
                f"{len(segments) - iea_index - 1} segment(s) after IEA were ignored",
                iea_index + 1,
                severity=Severity.WARNING,
            )

        interchange = Interchange(
            header=header,
            functional_groups=groups,
            trailer=trailer,
            delimiters=delimiters,
        )

        logger.info(
            "X12 parsing complete",
            control_number=header.control_number,
            functional_groups=len(groups),
            transaction_sets=sum(len(g.transaction_sets) for g in groups),
            errors=len(ctx.errors),
            warnings=len(ctx.warnings),
        )

        return ParseResult(
            success=not ctx.errors,
            interchange=interchange,
            errors=ctx.errors,
            warnings=ctx.warnings,
            dropped_groups=ctx.dropped_groups,
        )

    def _fatal(self, code: IssueCode, message: str) -> ParseResult:
        logger.warning("X12 parsing failed", code=code.value, message=message)
        return ParseResult(success=False, errors=[X12Issue(code=code, message=message)])

    def _count(self, ctx: _ParseContext, value: str, index: int, element_index: int) -> int:
        count = _parse_count(value)
        if count is None:
            ctx.add(
                IssueCode.INVALID_COUNT,
                f"Count value '{value}' is not numeric",
                index,
                severity=Severity.WARNING,
                element_index=element_index,
            )
            return 0
        return count

    def _parse_isa(self, ctx: _ParseContext) -> Optional[ISAHeader]:
        if ctx.segment_id(0) != "ISA":
            ctx.add(IssueCode.INVALID_ISA, "First segment must be ISA", 0)
            return None

        fields = ctx.fields(0)
        if len(fields) < 17:
            ctx.add(IssueCode.ISA_ELEMENT_COUNT, f"ISA has {len(fields) - 1} elements; expected 16", 0)
            return None

        values = [field.strip() for field in fields[1:16]]
        header = ISAHeader(
            authorization_qualifier=values[0],
            authorization_info=values[1],
            security_qualifier=values[2],
            security_info=values[3],
            sender_id_qualifier=values[4],
            sender_id=values[5],
            receiver_id_qualifier=values[6],
            receiver_id=values[7],
            date=values[8],
            time=values[9],
            repetition_separator=values[10],
            version=values[11],
            control_number=values[12],
            acknowledgment_requested=values[13],
            usage_indicator=values[14],
            component_separator=fields[16][:1],
        )

        if header.version not in self.settings.supported_versions:
            ctx.add(
                IssueCode.UNSUPPORTED_VERSION,
                f"Unsupported interchange version {header.version}",
                0,
                element_index=12,
            )
            return None

        return header

    def _parse_groups(self, ctx: _ParseContext, start: int, end: int) -> List[FunctionalGroup]:
        groups = []
        group_index = 0
        skipping = False
        index = start
        while index < end:
            if ctx.segment_id(index) != "GS":
                if not skipping:
                    ctx.add(
                        IssueCode.UNEXPECTED_SEGMENT,
                        f"Segment {ctx.segment_id(index)} is outside any functional group",
                        index,
                        severity=Severity.WARNING,
                    )
                index += 1
                continue

            path = group_path(group_index)
            ge_index = ctx.find_closing(index, end, "GS", "GE")
            if ge_index == -1:
                ctx.add(IssueCode.MISSING_GE, "Functional group has no GE trailer", index, path=path)
                logger.warning("Functional group missing GE", path=path)
                next_gs = next((i for i in range(index + 1, end) if ctx.segment_id(i) == "GS"), end)
                self._record_dropped_group(ctx, index, next_gs, group_index, IssueCode.MISSING_GE)
                group_index += 1
                skipping = True
                index += 1
                continue

            skipping = False
            group = self._parse_group(ctx, index, ge_index, group_index)
            if group is not None:
                groups.append(group)
            group_index += 1
            index = ge_index + 1

        return groups

    def _parse_group(self, ctx: _ParseContext, gs_index: int, ge_index: int, group_index: int) -> Optional[FunctionalGroup]:
        path = group_path(group_index)
        gs = ctx.fields(gs_index)
        if len(gs) - 1 < GS_MIN_ELEMENTS:
            ctx.add(IssueCode.GS_ELEMENT_COUNT, f"GS has {len(gs) - 1} elements; expected 8", gs_index, path=path)
            self._record_dropped_group(ctx, gs_index, ge_index, group_index, IssueCode.GS_ELEMENT_COUNT)
            return None

        ge = ctx.fields(ge_index)
        if len(ge) - 1 < GE_MIN_ELEMENTS:
            ctx.add(IssueCode.GE_ELEMENT_COUNT, "GE must have 2 elements", ge_index, path=path)
            self._record_dropped_group(ctx, gs_index, ge_index, group_index, IssueCode.GE_ELEMENT_COUNT)
            return None

        header = GSHeader(
            functional_code=gs[1].strip(),
            sender_code=gs[2].strip(),
            receiver_code=gs[3].strip(),
            date=gs[4].strip(),
            time=gs[5].strip(),
            control_number=gs[6].strip(),
            agency_code=gs[7].strip(),
            version_code=gs[8].strip(),
        )
        trailer = GETrailer(
            number_of_transaction_sets=self._count(ctx, ge[1], ge_index, 1),
            control_number=ge[2].strip(),
        )

        if trailer.control_number != header.control_number:
            ctx.add(
                IssueCode.GE_CONTROL_NUMBER_MISMATCH,
                f"GE02 {trailer.control_number} does not match GS06 {header.control_number}",
                ge_index,
                severity=Severity.WARNING,
                element_index=2,
                path=path,
            )

        transaction_sets = self._parse_transaction_sets(ctx, gs_index + 1, ge_index, group_index)

        if trailer.number_of_transaction_sets != len(transaction_sets):
            ctx.add(
                IssueCode.TRANSACTION_SET_COUNT_MISMATCH,
                f"GE01 declares {trailer.number_of_transaction_sets} transaction sets; found {len(transaction_sets)}",
                ge_index,
                severity=Severity.WARNING,
                element_index=1,
                path=path,
            )

        return FunctionalGroup(header=header, transaction_sets=transaction_sets, trailer=trailer)

    def _record_dropped_group(self, ctx: _ParseContext, gs_index: int, stop: int, group_index: int, code: IssueCode) -> None:
        """Keep the GS of a dropped group when GS01 and GS06 can still be read."""
        gs = [field.strip() for field in ctx.fields(gs_index)]
        if len(gs) - 1 < GS_IDENTIFYING_ELEMENTS or not gs[1] or not gs[6]:
            logger.warning("Dropped functional group has no readable GS", path=group_path(group_index))
            return
        ctx.dropped_groups.append(DroppedGroup(
            path=group_path(group_index),
            code=code,
            functional_code=gs[1],
            control_number=gs[6],
            version_code=gs[8] if len(gs) > 8 and gs[8] else None,
            transaction_set_count=sum(1 for i in range(gs_index + 1, stop) if ctx.segment_id(i) == "ST"),
        ))

    def _parse_transaction_sets(self, ctx: _ParseContext, start: int, end: int, group_index: int) -> List[TransactionSet]:
        transaction_sets = []
        set_index = 0
        skipping = False
        index = start
        while index < end:
            if ctx.segment_id(index) != "ST":
                if not skipping:
                    ctx.add(
                        IssueCode.UNEXPECTED_SEGMENT,
                        f"Segment {ctx.segment_id(index)} is outside any transaction set",
                        index,
                        severity=Severity.WARNING,
                        path=group_path(group_index),
                    )
                index += 1
                continue

            path = set_path(group_index, set_index)
            se_index = ctx.find_closing(index, end, "ST", "SE")
            if se_index == -1:
                ctx.add(IssueCode.MISSING_SE, "Transaction set has no SE trailer", index, path=path)
                logger.warning("Transaction set missing SE", path=path)
                set_index += 1
                skipping = True
                index += 1
                continue

            skipping = False
            transaction_set = self._parse_transaction_set(ctx, index, se_index, path)
            if transaction_set is not None:
                transaction_sets.append(transaction_set)
            set_index += 1
            index = se_index + 1

        return transaction_sets

    def _parse_transaction_set(self, ctx: _ParseContext, st_index: int, se_index: int, path: str) -> Optional[TransactionSet]:
        st = ctx.fields(st_index)
        if len(st) - 1 < ST_MIN_ELEMENTS:
            ctx.add(IssueCode.ST_ELEMENT_COUNT, f"ST has {len(st) - 1} elements; expected at least 2", st_index, path=path)
            return None

        se = ctx.fields(se_index)
        if len(se) - 1 < SE_MIN_ELEMENTS:
            ctx.add(IssueCode.SE_ELEMENT_COUNT, "SE must have 2 elements", se_index, path=path)
            return None

        header = STHeader(
            transaction_set_code=st[1].strip(),
            control_number=st[2].strip(),
            implementation_reference=st[3].strip() if len(st) > 3 and st[3].strip() else None,
        )
        trailer = SETrailer(
            number_of_segments=self._count(ctx, se[1], se_index, 1),
            control_number=se[2].strip(),
        )
        body = [decode_segment(ctx.segments[i].text, ctx.delimiters) for i in range(st_index + 1, se_index)]

        if trailer.control_number != header.control_number:
            ctx.add(
                IssueCode.SE_CONTROL_NUMBER_MISMATCH,
                f"SE02 {trailer.control_number} does not match ST02 {header.control_number}",
                se_index,
                severity=Severity.WARNING,
                element_index=2,
                path=path,
            )

        # SE01 counts ST and SE themselves
        actual = len(body) + 2
        if trailer.number_of_segments != actual:
            ctx.add(
                IssueCode.SEGMENT_COUNT_MISMATCH,
                f"SE01 declares {trailer.number_of_segments} segments; found {actual}",
                se_index,
                severity=Severity.WARNING,
                element_index=1,
                path=path,
            )

        return TransactionSet(header=header, segments=body, trailer=trailer)


def parse(text: str) -> ParseResult:
    """Parse a document with default settings."""
    return X12Parser().parse(text)
