"""Dispatch table from transaction set code to its parse and build functions."""
from typing import Callable, Dict, NamedTuple, Optional

from x12engine.models.enums import IssueCode, Severity
from x12engine.models.envelope import TransactionSet, X12Issue
from x12engine.models.transaction_sets import (
    TransactionSetData,
    TransactionSetParseResult,
    UnsupportedTransactionSet,
)
from x12engine.services.x12.transaction_sets import ack_997, asn_856, invoice_810, po_850, poa_855
from x12engine.utils.errors import UnsupportedTransactionSetError
from x12engine.utils.logger import get_logger

logger = get_logger(__name__)


class TransactionSetHandler(NamedTuple):
    parse: Callable[[TransactionSet], TransactionSetParseResult]
    build: Callable[..., TransactionSet]


TRANSACTION_SET_HANDLERS: Dict[str, TransactionSetHandler] = {
    "850": TransactionSetHandler(po_850.parse, po_850.build),
    "855": TransactionSetHandler(poa_855.parse, poa_855.build),
    "856": TransactionSetHandler(asn_856.parse, asn_856.build),
    "810": TransactionSetHandler(invoice_810.parse, invoice_810.build),
    "997": TransactionSetHandler(ack_997.parse, ack_997.build),
}


def is_transaction_set_supported(transaction_set_code: str) -> bool:
    return transaction_set_code in TRANSACTION_SET_HANDLERS


def parse_transaction_set(transaction_set: TransactionSet, path: Optional[str] = None) -> TransactionSetParseResult:
    """
    Project a generic transaction set onto its typed record.

    Unknown codes yield an ``UnsupportedTransactionSet`` with one advisory
    warning rather than an error.

    Args:
        transaction_set: Parsed ST/SE envelope
        path: Location of the set in its interchange, stamped on issues
            that carry no path of their own
    """
    result = _parse_with_handler(transaction_set)
    if path is not None:
        result.errors = [
            issue if issue.path else issue.model_copy(update={"path": path})
            for issue in result.errors
        ]
    return result


def _parse_with_handler(transaction_set: TransactionSet) -> TransactionSetParseResult:
    code = transaction_set.header.transaction_set_code
    handler = TRANSACTION_SET_HANDLERS.get(code)
    if handler is None:
        logger.info("No typed parser for transaction set", transaction_set_code=code)
        return TransactionSetParseResult(
            data=UnsupportedTransactionSet(
                transaction_set_code=code,
                control_number=transaction_set.header.control_number,
            ),
            errors=[X12Issue(
                code=IssueCode.UNSUPPORTED_TRANSACTION_SET,
                message=f"Transaction set {code} is not supported",
                severity=Severity.WARNING,
                segment_id="ST",
                element_index=1,
            )],
        )
    return handler.parse(transaction_set)


def build_transaction_set(data: TransactionSetData, implementation_reference: Optional[str] = None) -> TransactionSet:
    """
    Serialize a typed record into an ST/SE envelope.

    Raises:
        UnsupportedTransactionSetError: No builder for the record's code
    """
    handler = TRANSACTION_SET_HANDLERS.get(data.transaction_set_code)
    if handler is None or isinstance(data, UnsupportedTransactionSet):
        raise UnsupportedTransactionSetError(data.transaction_set_code)
    return handler.build(data, implementation_reference)
