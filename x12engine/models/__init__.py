"""
X12 models package.

**Imports:**
    from x12engine.models import Interchange, ParseResult
    from x12engine.models.transaction_sets import PurchaseOrder850
    from x12engine.models.canonical import CanonicalOrder
"""

from x12engine.models.enums import (
    Severity,
    TokenType,
    ElementType,
    IssueCode,
    HierarchicalLevelCode,
    AcknowledgmentCode,
)

from x12engine.models.envelope import (
    Delimiters,
    ParsePosition,
    X12Issue,
    Token,
    Element,
    Segment,
    ISAHeader,
    IEATrailer,
    GSHeader,
    GETrailer,
    STHeader,
    SETrailer,
    TransactionSet,
    FunctionalGroup,
    Interchange,
    ParseResult,
    SenderIdentity,
    ReceiverIdentity,
    InterchangeOptions,
)

__all__ = [
    "Severity",
    "TokenType",
    "ElementType",
    "IssueCode",
    "HierarchicalLevelCode",
    "AcknowledgmentCode",
    "Delimiters",
    "ParsePosition",
    "X12Issue",
    "Token",
    "Element",
    "Segment",
    "ISAHeader",
    "IEATrailer",
    "GSHeader",
    "GETrailer",
    "STHeader",
    "SETrailer",
    "TransactionSet",
    "FunctionalGroup",
    "Interchange",
    "ParseResult",
    "SenderIdentity",
    "ReceiverIdentity",
    "InterchangeOptions",
]
