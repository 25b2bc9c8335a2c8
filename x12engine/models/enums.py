"""
Enumerations shared by the X12 models.

Enums are defined as string enums so issues and tokens serialize cleanly
to JSON.
"""
import enum


class Severity(str, enum.Enum):
    """Issue severity."""

    ERROR = "error"
    WARNING = "warning"


class TokenType(str, enum.Enum):
    """Tokenizer output types."""

    SEGMENT_ID = "SEGMENT_ID"
    ELEMENT = "ELEMENT"
    SUBELEMENT = "SUBELEMENT"
    REPETITION = "REPETITION"
    SEGMENT_TERMINATOR = "SEGMENT_TERMINATOR"
    EOF = "EOF"


class ElementType(str, enum.Enum):
    """X12 data element types checked by the validator."""

    AN = "AN"  # alphanumeric string
    N = "N"  # numeric, implied or explicit decimal
    DT = "DT"  # date
    TM = "TM"  # time
    ID = "ID"  # code value


class IssueCode(str, enum.Enum):
    """Machine-readable issue codes."""

    # Input and delimiters
    EMPTY_INPUT = "EMPTY_INPUT"
    INPUT_TOO_LARGE = "INPUT_TOO_LARGE"
    ISA_TOO_SHORT = "ISA_TOO_SHORT"
    INVALID_ISA = "INVALID_ISA"
    ISA_ELEMENT_COUNT = "ISA_ELEMENT_COUNT"
    NO_SEGMENTS = "NO_SEGMENTS"
    UNSUPPORTED_VERSION = "UNSUPPORTED_VERSION"

    # Envelope structure
    MISSING_IEA = "MISSING_IEA"
    IEA_ELEMENT_COUNT = "IEA_ELEMENT_COUNT"
    MISSING_GE = "MISSING_GE"
    GS_ELEMENT_COUNT = "GS_ELEMENT_COUNT"
    GE_ELEMENT_COUNT = "GE_ELEMENT_COUNT"
    MISSING_SE = "MISSING_SE"
    ST_ELEMENT_COUNT = "ST_ELEMENT_COUNT"
    SE_ELEMENT_COUNT = "SE_ELEMENT_COUNT"
    UNEXPECTED_SEGMENT = "UNEXPECTED_SEGMENT"
    INVALID_COUNT = "INVALID_COUNT"

    # Advisory control checks
    CONTROL_NUMBER_MISMATCH = "CONTROL_NUMBER_MISMATCH"
    GROUP_COUNT_MISMATCH = "GROUP_COUNT_MISMATCH"
    GE_CONTROL_NUMBER_MISMATCH = "GE_CONTROL_NUMBER_MISMATCH"
    TRANSACTION_SET_COUNT_MISMATCH = "TRANSACTION_SET_COUNT_MISMATCH"
    SE_CONTROL_NUMBER_MISMATCH = "SE_CONTROL_NUMBER_MISMATCH"
    SEGMENT_COUNT_MISMATCH = "SEGMENT_COUNT_MISMATCH"

    # Typed transaction sets
    MISSING_BEGINNING_SEGMENT = "MISSING_BEGINNING_SEGMENT"
    NO_LINE_ITEMS = "NO_LINE_ITEMS"
    NO_HL_SEGMENTS = "NO_HL_SEGMENTS"
    MISSING_TDS = "MISSING_TDS"
    UNSUPPORTED_TRANSACTION_SET = "UNSUPPORTED_TRANSACTION_SET"

    # Validator
    INVALID_ELEMENT_VALUE = "INVALID_ELEMENT_VALUE"
    INVALID_ELEMENT_TYPE = "INVALID_ELEMENT_TYPE"
    MISSING_REQUIRED_ELEMENT = "MISSING_REQUIRED_ELEMENT"
    ELEMENT_TOO_SHORT = "ELEMENT_TOO_SHORT"
    ELEMENT_TOO_LONG = "ELEMENT_TOO_LONG"
    MISSING_REQUIRED_SEGMENT = "MISSING_REQUIRED_SEGMENT"
    TOO_MANY_SEGMENTS = "TOO_MANY_SEGMENTS"


class HierarchicalLevelCode(str, enum.Enum):
    """HL03 level codes understood by the 856 parser."""

    SHIPMENT = "S"
    ORDER = "O"
    PACK = "P"
    ITEM = "I"


class AcknowledgmentCode(str, enum.Enum):
    """AK5/AK9 acknowledgment codes."""

    ACCEPTED = "A"
    ACCEPTED_WITH_ERRORS = "E"
    PARTIALLY_ACCEPTED = "P"
    REJECTED = "R"
    REJECTED_MESSAGE_AUTHENTICATION = "M"
    REJECTED_VALIDITY = "W"
    REJECTED_CONTENT = "X"
