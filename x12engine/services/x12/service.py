"""Facade over the X12 parser, validator, generator, mapper and acknowledgments."""
from typing import List, Optional

from x12engine.config.settings import X12Settings, get_settings
from x12engine.models.envelope import (
    Interchange,
    InterchangeOptions,
    ParseResult,
    ReceiverIdentity,
    SenderIdentity,
    TransactionSet,
    X12Issue,
)
from x12engine.models.transaction_sets import TransactionSetData, TransactionSetParseResult
from x12engine.services.x12.acknowledgment import AcknowledgmentBuilder
from x12engine.services.x12.generator import X12Generator
from x12engine.services.x12.mapper import CanonicalDocument, X12Mapper
from x12engine.services.x12.parser import (
    DROPPED_GROUP_CODES,
    DROPPED_SET_CODES,
    X12Parser,
    dropped_ordinals,
    kept_ordinals,
    set_path,
)
from x12engine.services.x12.transaction_sets import registry
from x12engine.services.x12.validator import X12Validator
from x12engine.utils.logger import get_logger

logger = get_logger(__name__)


class X12Service:
    """
    Single entry point for reading and writing X12 documents.

    Each component is built from the same settings so one instance can be
    shared; none of them keeps state between calls.
    """

    def __init__(self, settings: Optional[X12Settings] = None):
        self.settings = settings or get_settings()
        self.parser = X12Parser(self.settings)
        self.validator = X12Validator(settings=self.settings)
        self.generator = X12Generator(self.settings)
        self.mapper = X12Mapper()
        self.acknowledgments = AcknowledgmentBuilder(generator=self.generator)

    # Read path

    def parse_document(self, text: str) -> ParseResult:
        return self.parser.parse(text)

    def parse_transaction_set(self, transaction_set: TransactionSet, path: Optional[str] = None) -> TransactionSetParseResult:
        return registry.parse_transaction_set(transaction_set, path)

    def parse_and_extract_transaction_sets(self, text: str) -> List[TransactionSetParseResult]:
        """
        Parse a document and project every transaction set onto its typed record.

        Args:
            text: Raw document text

        Returns:
            Typed results in document order, their issues located by
            document position; empty when the envelope failed
        """
        result = self.parser.parse(text)
        if result.interchange is None:
            logger.warning("No interchange to extract from", errors=len(result.errors))
            return []

        groups = result.interchange.functional_groups
        group_ordinals = kept_ordinals(len(groups), dropped_ordinals(result.errors, DROPPED_GROUP_CODES, 0))
        extracted = []
        for group, group_ordinal in zip(groups, group_ordinals):
            dropped_sets = dropped_ordinals(result.errors, DROPPED_SET_CODES, 1, group_ordinal)
            set_ordinals = kept_ordinals(len(group.transaction_sets), dropped_sets)
            for transaction_set, set_ordinal in zip(group.transaction_sets, set_ordinals):
                extracted.append(registry.parse_transaction_set(transaction_set, set_path(group_ordinal, set_ordinal)))
        logger.info(
            "Extracted transaction sets",
            count=len(extracted),
            with_errors=sum(1 for item in extracted if item.has_errors),
        )
        return extracted

    def validate_interchange(self, interchange: Interchange) -> List[X12Issue]:
        return self.validator.validate_interchange(interchange)

    def is_transaction_set_supported(self, transaction_set_code: str) -> bool:
        return registry.is_transaction_set_supported(transaction_set_code)

    # Write path

    def generate_document(self, interchange: Interchange, line_breaks: bool = False) -> str:
        return self.generator.generate(interchange, line_breaks=line_breaks)

    def generate_transaction_set(self, data: TransactionSetData, implementation_reference: Optional[str] = None) -> TransactionSet:
        """
        Build an ST/SE envelope from a typed record.

        Raises:
            UnsupportedTransactionSetError: No builder for the record's code
        """
        return registry.build_transaction_set(data, implementation_reference)

    def build_interchange(
        self,
        transaction_sets: List[TransactionSet],
        sender: SenderIdentity,
        receiver: ReceiverIdentity,
        options: Optional[InterchangeOptions] = None,
    ) -> Interchange:
        return self.generator.build_interchange(transaction_sets, sender, receiver, options)

    def generate_997_for_document(
        self,
        text: str,
        sender: SenderIdentity,
        receiver: ReceiverIdentity,
        control_number: Optional[str] = None,
    ) -> Optional[str]:
        """
        Parse ``text`` and answer it with a 997 interchange.

        Args:
            text: Inbound document
            sender: Identity of the acknowledging party
            receiver: Identity of the inbound sender
            control_number: ISA13 of the reply

        Returns:
            997 text, or None when no functional group could be recovered
        """
        result = self.parser.parse(text)
        return self.acknowledgments.build_document(result, sender, receiver, control_number=control_number)

    # Canonical mapping

    def map_to_canonical(self, data: TransactionSetData) -> CanonicalDocument:
        return self.mapper.map_to_canonical(data)

    def map_from_canonical(self, transaction_set_code: str, document: CanonicalDocument, control_number: str = "0001") -> TransactionSetData:
        return self.mapper.map_from_canonical(transaction_set_code, document, control_number)


_service: Optional[X12Service] = None


def get_service() -> X12Service:
    """Shared service built from the module-level settings."""
    global _service
    if _service is None:
        _service = X12Service()
    return _service


def parse(text: str) -> ParseResult:
    return get_service().parse_document(text)


def generate(interchange: Interchange, line_breaks: bool = False) -> str:
    return get_service().generate_document(interchange, line_breaks=line_breaks)


def validate_interchange(interchange: Interchange) -> List[X12Issue]:
    return get_service().validate_interchange(interchange)


def parse_transaction_set(transaction_set: TransactionSet, path: Optional[str] = None) -> TransactionSetParseResult:
    return get_service().parse_transaction_set(transaction_set, path)


def generate_997_for_document(text: str, sender: SenderIdentity, receiver: ReceiverIdentity) -> Optional[str]:
    return get_service().generate_997_for_document(text, sender, receiver)


def map_to_canonical(data: TransactionSetData) -> CanonicalDocument:
    return get_service().map_to_canonical(data)


def map_from_canonical(transaction_set_code: str, document: CanonicalDocument, control_number: str = "0001") -> TransactionSetData:
    return get_service().map_from_canonical(transaction_set_code, document, control_number)
