"""Delimiter extraction, segment splitting and tokenization."""
import re
from bisect import bisect_right
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from x12engine.models.enums import IssueCode, TokenType
from x12engine.models.envelope import Delimiters, ParsePosition, Token, X12Issue
from x12engine.utils.logger import get_logger

logger = get_logger(__name__)

# ISA is fixed width: 3 + 16 separators + fixed element widths
ISA_MIN_LENGTH = 106
ISA_FIELD_COUNT = 17
LINE_BREAKS = "\r\n"


class DelimiterResult(BaseModel):
    delimiters: Delimiters
    errors: List[X12Issue] = Field(default_factory=list)


class RawSegment(BaseModel):
    """Segment text (terminator removed) and where it starts."""

    segment_id: str
    text: str
    index: int
    position: ParsePosition


class TokenizeResult(BaseModel):
    tokens: List[Token] = Field(default_factory=list)
    errors: List[X12Issue] = Field(default_factory=list)


def extract_delimiters(text: str) -> DelimiterResult:
    """
    Read the four delimiters from the ISA header.

    The element separator is the character right after ``ISA``; ISA16 holds
    the subelement separator and is followed by the segment terminator.
    ISA11 is the repetition separator unless it is the 004010 ``U`` filler.

    Args:
        text: Raw document text

    Returns:
        DelimiterResult with defaults and a fatal error when the header
        cannot be read
    """
    defaults = Delimiters()

    if len(text) < ISA_MIN_LENGTH:
        return DelimiterResult(delimiters=defaults, errors=[X12Issue(
            code=IssueCode.ISA_TOO_SHORT,
            message=f"Input is {len(text)} characters; an ISA header needs at least {ISA_MIN_LENGTH}",
            segment_id="ISA",
        )])

    if not text.startswith("ISA"):
        return DelimiterResult(delimiters=defaults, errors=[X12Issue(
            code=IssueCode.INVALID_ISA,
            message="Document does not start with an ISA segment",
            segment_id="ISA",
        )])

    element_separator = text[3]
    fields = text.split(element_separator)
    if len(fields) < ISA_FIELD_COUNT:
        return DelimiterResult(delimiters=defaults, errors=[X12Issue(
            code=IssueCode.ISA_ELEMENT_COUNT,
            message=f"ISA has {len(fields) - 1} elements; expected 16",
            segment_id="ISA",
        )])

    # fields[16] runs on past ISA16 into the next segment
    isa16 = fields[16]
    subelement_separator = isa16[0] if isa16 else defaults.subelement_separator
    segment_terminator = isa16[1] if len(isa16) > 1 else defaults.segment_terminator

    isa11 = fields[11]
    if len(isa11) == 1 and isa11 != "U":
        repetition_separator = isa11
    else:
        repetition_separator = defaults.repetition_separator

    return DelimiterResult(delimiters=Delimiters(
        element_separator=element_separator,
        subelement_separator=subelement_separator,
        repetition_separator=repetition_separator,
        segment_terminator=segment_terminator,
    ))


def _line_starts(text: str) -> List[int]:
    return [0] + [match.end() for match in re.finditer("\n", text)]


def _position(line_starts: List[int], offset: int, segment_index: int = 0, element_index: int = 0) -> ParsePosition:
    line = bisect_right(line_starts, offset)
    return ParsePosition(
        line=line,
        column=offset - line_starts[line - 1] + 1,
        offset=offset,
        segment_index=segment_index,
        element_index=element_index,
    )


def split_segments(text: str, delimiters: Delimiters) -> List[RawSegment]:
    """
    Split a document on its segment terminator.

    Line breaks around segments are dropped, as are blank segments. When the
    terminator is itself a line break, line breaks inside segments are kept.
    """
    terminator = delimiters.segment_terminator
    line_starts = _line_starts(text)
    keep_inner_breaks = terminator in LINE_BREAKS

    segments: List[RawSegment] = []
    offset = 0
    for chunk in text.split(terminator):
        start = offset
        offset += len(chunk) + len(terminator)

        body = chunk.lstrip(LINE_BREAKS)
        lead = len(chunk) - len(body)
        body = body.rstrip(LINE_BREAKS)
        if not keep_inner_breaks:
            body = body.replace("\r", "").replace("\n", "")
        if not body.strip():
            continue

        segments.append(RawSegment(
            segment_id=body.split(delimiters.element_separator, 1)[0].strip(),
            text=body,
            index=len(segments),
            position=_position(line_starts, start + lead, segment_index=len(segments)),
        ))

    return segments


def tokenize(text: str, delimiters: Optional[Delimiters] = None) -> TokenizeResult:
    """
    Produce a position-annotated token stream.

    Each segment yields ``SEGMENT_ID``, one ``ELEMENT`` per data element,
    ``SUBELEMENT`` for every further component, ``REPETITION`` for the first
    component of every further repetition and a closing
    ``SEGMENT_TERMINATOR``. The stream always ends with ``EOF``. ISA elements
    are never split, since ISA11 and ISA16 hold separators themselves.

    Args:
        text: Raw document text
        delimiters: Delimiters to use; extracted from the ISA when omitted

    Returns:
        TokenizeResult
    """
    errors: List[X12Issue] = []
    if delimiters is None:
        extracted = extract_delimiters(text)
        delimiters = extracted.delimiters
        errors = extracted.errors
        if errors:
            return TokenizeResult(tokens=[Token(type=TokenType.EOF, position=ParsePosition())], errors=errors)

    line_starts = _line_starts(text)
    element_separator = delimiters.element_separator
    tokens: List[Token] = []
    segments = split_segments(text, delimiters)

    for segment in segments:
        fields = segment.text.split(element_separator)
        segment_id = fields[0].strip()
        base = segment.position.offset
        tokens.append(Token(type=TokenType.SEGMENT_ID, value=segment_id, position=segment.position))

        field_offset = base + len(fields[0]) + 1
        for element_index, field in enumerate(fields[1:], start=1):
            if segment_id == "ISA":
                parts = [(TokenType.ELEMENT, field, 0)]
            else:
                parts = _element_parts(field, delimiters)
            for token_type, value, relative in parts:
                tokens.append(Token(
                    type=token_type,
                    value=value,
                    position=_position(line_starts, field_offset + relative, segment.index, element_index),
                ))
            field_offset += len(field) + 1

        end = base + len(segment.text)
        tokens.append(Token(
            type=TokenType.SEGMENT_TERMINATOR,
            value=delimiters.segment_terminator,
            position=_position(line_starts, end, segment.index, len(fields) - 1),
        ))

    tokens.append(Token(type=TokenType.EOF, position=_position(line_starts, len(text), len(segments), 0)))
    logger.debug("Tokenized document", tokens=len(tokens))
    return TokenizeResult(tokens=tokens, errors=errors)


def _element_parts(field: str, delimiters: Delimiters) -> List[Tuple[TokenType, str, int]]:
    """Split one element into (type, value, offset within element) triples."""
    parts = []
    relative = 0
    for repetition_index, repetition in enumerate(field.split(delimiters.repetition_separator)):
        for component_index, component in enumerate(repetition.split(delimiters.subelement_separator)):
            if component_index > 0:
                token_type = TokenType.SUBELEMENT
            elif repetition_index > 0:
                token_type = TokenType.REPETITION
            else:
                token_type = TokenType.ELEMENT
            parts.append((token_type, component, relative))
            relative += len(component) + 1
    return parts


def segment_to_string(tokens: List[Token], start: int, delimiters: Delimiters) -> Tuple[str, int]:
    """
    Rebuild one segment's text from its tokens.

    Args:
        tokens: Token stream from ``tokenize``
        start: Index of a ``SEGMENT_ID`` token
        delimiters: Delimiters used to tokenize

    Returns:
        Tuple of the segment text (without terminator) and the index of the
        token following its terminator
    """
    separators = {
        TokenType.ELEMENT: delimiters.element_separator,
        TokenType.SUBELEMENT: delimiters.subelement_separator,
        TokenType.REPETITION: delimiters.repetition_separator,
    }
    parts = [tokens[start].value]
    index = start + 1
    while index < len(tokens) and tokens[index].type not in (TokenType.SEGMENT_TERMINATOR, TokenType.EOF):
        token = tokens[index]
        parts.append(separators[token.type] + token.value)
        index += 1
    if index < len(tokens) and tokens[index].type == TokenType.SEGMENT_TERMINATOR:
        index += 1
    return "".join(parts), index
