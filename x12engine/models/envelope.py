"""Envelope, segment and diagnostic models."""
from typing import List, Optional

from pydantic import BaseModel, Field

from x12engine.models.enums import IssueCode, Severity, TokenType


class Delimiters(BaseModel):
    """The four separators of one interchange."""

    element_separator: str = "*"
    subelement_separator: str = ":"
    repetition_separator: str = "^"
    segment_terminator: str = "~"


class ParsePosition(BaseModel):
    """Location of a token or segment in the source text."""

    line: int = 1
    column: int = 1
    offset: int = 0
    segment_index: int = 0
    element_index: int = 0


class X12Issue(BaseModel):
    """A parse or validation finding."""

    code: IssueCode
    message: str
    severity: Severity = Severity.ERROR
    segment_id: Optional[str] = None
    element_index: Optional[int] = None  # 1-based
    component_index: Optional[int] = None  # 1-based
    path: Optional[str] = None
    position: Optional[ParsePosition] = None

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR


class Token(BaseModel):
    """Tokenizer output unit."""

    type: TokenType
    value: str = ""
    position: ParsePosition


class Element(BaseModel):
    """One data element of a generic segment."""

    value: str = ""
    subelements: Optional[List[str]] = None
    repetitions: Optional[List[str]] = None


class Segment(BaseModel):
    """A decoded segment; ``elements[0]`` is the first data element."""

    segment_id: str
    elements: List[Element] = Field(default_factory=list)
    raw: Optional[str] = None


class ISAHeader(BaseModel):
    """ISA interchange control header, values as received."""

    authorization_qualifier: str = "00"
    authorization_info: str = ""
    security_qualifier: str = "00"
    security_info: str = ""
    sender_id_qualifier: str = "ZZ"
    sender_id: str = ""
    receiver_id_qualifier: str = "ZZ"
    receiver_id: str = ""
    date: str = ""
    time: str = ""
    repetition_separator: str = "^"
    version: str = "005010"
    control_number: str = ""
    acknowledgment_requested: str = "0"
    usage_indicator: str = "T"
    component_separator: str = ":"


class IEATrailer(BaseModel):
    number_of_groups: int = 0
    control_number: str = ""


class GSHeader(BaseModel):
    """GS functional group header."""

    functional_code: str
    sender_code: str = ""
    receiver_code: str = ""
    date: str = ""
    time: str = ""
    control_number: str = ""
    agency_code: str = "X"
    version_code: str = ""


class GETrailer(BaseModel):
    number_of_transaction_sets: int = 0
    control_number: str = ""


class STHeader(BaseModel):
    transaction_set_code: str
    control_number: str = ""
    implementation_reference: Optional[str] = None


class SETrailer(BaseModel):
    number_of_segments: int = 0
    control_number: str = ""


class TransactionSet(BaseModel):
    """ST/SE envelope and its body segments (ST and SE excluded)."""

    header: STHeader
    segments: List[Segment] = Field(default_factory=list)
    trailer: SETrailer


class FunctionalGroup(BaseModel):
    header: GSHeader
    transaction_sets: List[TransactionSet] = Field(default_factory=list)
    trailer: GETrailer


class Interchange(BaseModel):
    """A fully parsed ISA/IEA interchange."""

    header: ISAHeader
    functional_groups: List[FunctionalGroup] = Field(default_factory=list)
    trailer: IEATrailer
    delimiters: Delimiters = Field(default_factory=Delimiters)


class DroppedGroup(BaseModel):
    """GS header of a functional group removed from the tree, kept for acknowledgment."""

    path: str
    code: IssueCode
    functional_code: str
    control_number: str
    version_code: Optional[str] = None
    transaction_set_count: int = 0


class ParseResult(BaseModel):
    """Outcome of parsing a document; never raised, always returned."""

    success: bool
    interchange: Optional[Interchange] = None
    errors: List[X12Issue] = Field(default_factory=list)
    warnings: List[X12Issue] = Field(default_factory=list)
    dropped_groups: List[DroppedGroup] = Field(default_factory=list)


class SenderIdentity(BaseModel):
    """Sender identity used on the write path."""

    sender_id: str
    sender_code: Optional[str] = None  # GS02; defaults to the stripped ISA06
    sender_id_qualifier: Optional[str] = None  # ISA05; defaults to the configured qualifier


class ReceiverIdentity(BaseModel):
    """Receiver identity used on the write path."""

    receiver_id: str
    receiver_code: Optional[str] = None
    receiver_id_qualifier: Optional[str] = None


class InterchangeOptions(BaseModel):
    """Write-path options for ``build_interchange``."""

    control_number: Optional[str] = None
    version: Optional[str] = None
    usage_indicator: Optional[str] = None
    acknowledgment_requested: bool = False
    delimiters: Optional[Delimiters] = None
    gs_version_code: Optional[str] = None
    # Fixed "%Y%m%d%H%M" timestamp for reproducible output
    timestamp: Optional[str] = None
