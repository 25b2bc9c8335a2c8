"""Serialize interchanges to X12 text and build envelopes for outbound sets."""
import time as time_module
from datetime import datetime
from typing import Dict, List, Optional

from x12engine.config.settings import X12Settings, get_settings
from x12engine.models.envelope import (
    Delimiters,
    FunctionalGroup,
    GETrailer,
    GSHeader,
    IEATrailer,
    ISAHeader,
    Interchange,
    InterchangeOptions,
    ReceiverIdentity,
    Segment,
    SenderIdentity,
    SETrailer,
    STHeader,
    TransactionSet,
)
from x12engine.services.x12.config import functional_code_for
from x12engine.utils.logger import get_logger

logger = get_logger(__name__)

# ISA02, ISA04, ISA06 and ISA08 are fixed width
ISA_INFO_WIDTH = 10
ISA_ID_WIDTH = 15
ISA_CONTROL_WIDTH = 9
ST_CONTROL_WIDTH = 4
REPETITION_VERSION = "005010"


def next_control_number() -> str:
    """Time-derived 9-digit interchange control number."""
    return str(int(time_module.time() * 1000) % 1_000_000_000).zfill(ISA_CONTROL_WIDTH)


def _fixed(value: str, width: int) -> str:
    return (value or "").ljust(width)[:width]


class X12Generator:
    """
    Turn interchange trees back into X12 text.

    ``generate`` is the inverse of ``X12Parser.parse``: it trusts the tree
    it is given and writes trailer values as they are.
    """

    def __init__(self, settings: Optional[X12Settings] = None):
        self.settings = settings or get_settings()

    def default_delimiters(self) -> Delimiters:
        return Delimiters(
            element_separator=self.settings.element_separator,
            subelement_separator=self.settings.subelement_separator,
            repetition_separator=self.settings.repetition_separator,
            segment_terminator=self.settings.segment_terminator,
        )

    def generate(
        self,
        interchange: Interchange,
        line_breaks: bool = False,
        delimiters: Optional[Delimiters] = None,
    ) -> str:
        """
        Serialize an interchange.

        Args:
            interchange: Interchange to write
            line_breaks: Put each segment on its own line
            delimiters: Override for the interchange's own delimiters

        Returns:
            X12 text
        """
        delimiters = delimiters or interchange.delimiters
        lines = [self.generate_isa(interchange.header, delimiters)]

        for group in interchange.functional_groups:
            lines.append(self.generate_gs(group.header, delimiters))
            for transaction_set in group.transaction_sets:
                lines.extend(self.generate_transaction_set(transaction_set, delimiters))
            lines.append(self._join(delimiters, [
                "GE",
                str(group.trailer.number_of_transaction_sets),
                group.trailer.control_number,
            ]))

        lines.append(self._join(delimiters, [
            "IEA",
            str(interchange.trailer.number_of_groups),
            interchange.trailer.control_number.zfill(ISA_CONTROL_WIDTH),
        ]))

        terminated = [line + delimiters.segment_terminator for line in lines]
        return ("\n" if line_breaks else "").join(terminated)

    def _join(self, delimiters: Delimiters, fields: List[str]) -> str:
        return delimiters.element_separator.join(fields)

    def generate_isa(self, header: ISAHeader, delimiters: Delimiters) -> str:
        if header.version == REPETITION_VERSION:
            repetition = delimiters.repetition_separator
        else:
            repetition = header.repetition_separator or "U"

        return self._join(delimiters, [
            "ISA",
            _fixed(header.authorization_qualifier, 2),
            _fixed(header.authorization_info, ISA_INFO_WIDTH),
            _fixed(header.security_qualifier, 2),
            _fixed(header.security_info, ISA_INFO_WIDTH),
            _fixed(header.sender_id_qualifier, 2),
            _fixed(header.sender_id, ISA_ID_WIDTH),
            _fixed(header.receiver_id_qualifier, 2),
            _fixed(header.receiver_id, ISA_ID_WIDTH),
            header.date,
            header.time,
            repetition,
            header.version,
            header.control_number.zfill(ISA_CONTROL_WIDTH),
            header.acknowledgment_requested,
            header.usage_indicator,
            delimiters.subelement_separator,
        ])

    def generate_gs(self, header: GSHeader, delimiters: Delimiters) -> str:
        return self._join(delimiters, [
            "GS",
            header.functional_code,
            header.sender_code,
            header.receiver_code,
            header.date,
            header.time,
            header.control_number,
            header.agency_code,
            header.version_code,
        ])

    def generate_transaction_set(self, transaction_set: TransactionSet, delimiters: Delimiters) -> List[str]:
        """ST, body and SE lines of one transaction set, without terminators."""
        st = ["ST", transaction_set.header.transaction_set_code, transaction_set.header.control_number.zfill(ST_CONTROL_WIDTH)]
        if transaction_set.header.implementation_reference:
            st.append(transaction_set.header.implementation_reference)

        lines = [self._join(delimiters, st)]
        lines.extend(self.generate_segment(segment, delimiters) for segment in transaction_set.segments)
        lines.append(self._join(delimiters, [
            "SE",
            str(transaction_set.trailer.number_of_segments),
            transaction_set.trailer.control_number.zfill(ST_CONTROL_WIDTH),
        ]))
        return lines

    def generate_segment(self, segment: Segment, delimiters: Delimiters) -> str:
        """Serialize one generic segment; trailing empty elements are dropped."""
        fields = [segment.segment_id]
        for element in segment.elements:
            if element.subelements and len(element.subelements) > 1:
                value = delimiters.subelement_separator.join(element.subelements)
            else:
                value = element.value
            if element.repetitions:
                value = delimiters.repetition_separator.join([value] + element.repetitions)
            fields.append(value)

        while len(fields) > 1 and fields[-1] == "":
            fields.pop()
        return self._join(delimiters, fields)

    def create_isa(
        self,
        sender: SenderIdentity,
        receiver: ReceiverIdentity,
        control_number: str,
        options: InterchangeOptions,
        timestamp: datetime,
    ) -> ISAHeader:
        version = options.version or self.settings.default_version
        delimiters = options.delimiters or self.default_delimiters()
        return ISAHeader(
            authorization_qualifier="00",
            authorization_info="",
            security_qualifier="00",
            security_info="",
            sender_id_qualifier=sender.sender_id_qualifier or self.settings.default_id_qualifier,
            sender_id=sender.sender_id,
            receiver_id_qualifier=receiver.receiver_id_qualifier or self.settings.default_id_qualifier,
            receiver_id=receiver.receiver_id,
            date=timestamp.strftime("%y%m%d"),
            time=timestamp.strftime("%H%M"),
            repetition_separator=delimiters.repetition_separator if version == REPETITION_VERSION else "U",
            version=version,
            control_number=control_number.zfill(ISA_CONTROL_WIDTH),
            acknowledgment_requested="1" if options.acknowledgment_requested else "0",
            usage_indicator=options.usage_indicator or self.settings.default_usage_indicator,
            component_separator=delimiters.subelement_separator,
        )

    def create_gs(
        self,
        functional_code: str,
        sender: SenderIdentity,
        receiver: ReceiverIdentity,
        control_number: str,
        version_code: str,
        timestamp: datetime,
    ) -> GSHeader:
        return GSHeader(
            functional_code=functional_code,
            sender_code=sender.sender_code or sender.sender_id.strip(),
            receiver_code=receiver.receiver_code or receiver.receiver_id.strip(),
            date=timestamp.strftime("%Y%m%d"),
            time=timestamp.strftime("%H%M"),
            control_number=control_number,
            agency_code="X",
            version_code=version_code,
        )

    def build_interchange(
        self,
        transaction_sets: List[TransactionSet],
        sender: SenderIdentity,
        receiver: ReceiverIdentity,
        options: Optional[InterchangeOptions] = None,
    ) -> Interchange:
        """
        Wrap transaction sets in groups and an interchange.

        Sets are grouped by functional identifier in first-seen order and
        groups get control numbers 1, 2, ... in that order.

        Args:
            transaction_sets: Outbound sets
            sender: Interchange and group sender
            receiver: Interchange and group receiver
            options: Control number, version and delimiter overrides

        Returns:
            Interchange ready for ``generate``
        """
        options = options or InterchangeOptions()
        version = options.version or self.settings.default_version
        control_number = options.control_number or next_control_number()
        version_code = options.gs_version_code or self.settings.gs_version_codes.get(version, version)
        timestamp = datetime.strptime(options.timestamp, "%Y%m%d%H%M") if options.timestamp else datetime.now()

        by_code: Dict[str, List[TransactionSet]] = {}
        for transaction_set in transaction_sets:
            code = functional_code_for(transaction_set.header.transaction_set_code)
            by_code.setdefault(code, []).append(transaction_set)

        groups = []
        for number, (functional_code, members) in enumerate(by_code.items(), start=1):
            group_control = str(number)
            groups.append(FunctionalGroup(
                header=self.create_gs(functional_code, sender, receiver, group_control, version_code, timestamp),
                transaction_sets=members,
                trailer=GETrailer(number_of_transaction_sets=len(members), control_number=group_control),
            ))

        header = self.create_isa(sender, receiver, control_number, options, timestamp)
        logger.info(
            "Built interchange",
            control_number=header.control_number,
            functional_groups=len(groups),
            transaction_sets=len(transaction_sets),
        )
        return Interchange(
            header=header,
            functional_groups=groups,
            trailer=IEATrailer(number_of_groups=len(groups), control_number=header.control_number),
            delimiters=options.delimiters or self.default_delimiters(),
        )


def create_transaction_set(
    transaction_set_code: str,
    control_number: str,
    segments: List[Segment],
    implementation_reference: Optional[str] = None,
) -> TransactionSet:
    """ST/SE envelope around body segments with a correct SE01 count."""
    control_number = control_number.zfill(ST_CONTROL_WIDTH)
    return TransactionSet(
        header=STHeader(
            transaction_set_code=transaction_set_code,
            control_number=control_number,
            implementation_reference=implementation_reference,
        ),
        segments=segments,
        trailer=SETrailer(number_of_segments=len(segments) + 2, control_number=control_number),
    )


def generate(interchange: Interchange, line_breaks: bool = False) -> str:
    """Serialize with default settings."""
    return X12Generator().generate(interchange, line_breaks=line_breaks)
