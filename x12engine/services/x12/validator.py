"""Rule-based validation of parsed interchanges."""
import re
from datetime import datetime
from typing import Dict, List, Optional

from x12engine.config.settings import X12Settings, get_settings
from x12engine.models.enums import ElementType, IssueCode, Severity
from x12engine.models.envelope import (
    FunctionalGroup,
    Interchange,
    Segment,
    TransactionSet,
    X12Issue,
)
from x12engine.services.x12.config import (
    VALID_ACKNOWLEDGMENT_REQUESTED,
    VALID_AGENCY_CODES,
    VALID_AUTHORIZATION_QUALIFIERS,
    VALID_FUNCTIONAL_CODES,
    VALID_ID_QUALIFIERS,
    VALID_SECURITY_QUALIFIERS,
    VALID_USAGE_INDICATORS,
    ElementRule,
    SegmentRule,
    ValidatorConfig,
)
from x12engine.services.x12.parser import group_path, set_path
from x12engine.utils.logger import get_logger

logger = get_logger(__name__)

NUMERIC_PATTERN = re.compile(r"^-?\d+\.?\d*$")
DATE_PATTERN = re.compile(r"^(\d{6}|\d{8})$")
TIME_PATTERN = re.compile(r"^\d{4}(\d{2}(\d{1,2})?)?$")


def is_valid_date(value: str) -> bool:
    """YYMMDD or CCYYMMDD naming a real calendar day."""
    if not DATE_PATTERN.match(value):
        return False
    try:
        datetime.strptime(value, "%Y%m%d" if len(value) == 8 else "%y%m%d")
    except ValueError:
        return False
    return True


def is_valid_time(value: str) -> bool:
    """HHMM with optional seconds and decimal seconds."""
    if not TIME_PATTERN.match(value):
        return False
    hours, minutes = int(value[:2]), int(value[2:4])
    seconds = int(value[4:6]) if len(value) >= 6 else 0
    return hours < 24 and minutes < 60 and seconds < 60


def check_element_type(value: str, element_type: ElementType) -> bool:
    """Check a non-empty value against an X12 element type."""
    if element_type == ElementType.N:
        return bool(NUMERIC_PATTERN.match(value))
    if element_type == ElementType.DT:
        return is_valid_date(value)
    if element_type == ElementType.TM:
        return is_valid_time(value)
    return True


class X12Validator:
    """
    Validate an interchange against envelope code lists and per
    transaction-set rule tables.

    The validator never mutates its input and never raises; every finding
    is returned as an ``X12Issue``.
    """

    def __init__(self, config: Optional[ValidatorConfig] = None, settings: Optional[X12Settings] = None):
        self.config = config or ValidatorConfig()
        self.settings = settings or get_settings()

    def validate_interchange(self, interchange: Interchange) -> List[X12Issue]:
        """
        Validate all envelopes and transaction sets of an interchange.

        Args:
            interchange: Parsed or hand-built interchange

        Returns:
            List of issues; errors and warnings together
        """
        issues: List[X12Issue] = []
        issues.extend(self._validate_isa(interchange))

        for group_index, group in enumerate(interchange.functional_groups):
            issues.extend(self._validate_group(group, group_index))
            for set_index, transaction_set in enumerate(group.transaction_sets):
                issues.extend(self.validate_transaction_set(transaction_set, set_path(group_index, set_index)))

        if interchange.trailer.number_of_groups != len(interchange.functional_groups):
            issues.append(self._issue(
                IssueCode.GROUP_COUNT_MISMATCH,
                f"IEA01 declares {interchange.trailer.number_of_groups} groups; "
                f"interchange has {len(interchange.functional_groups)}",
                "IEA", 1, severity=Severity.WARNING,
            ))
        if interchange.trailer.control_number != interchange.header.control_number:
            issues.append(self._issue(
                IssueCode.CONTROL_NUMBER_MISMATCH,
                "IEA02 does not match ISA13",
                "IEA", 2, severity=Severity.WARNING,
            ))

        error_count = sum(1 for issue in issues if issue.is_error)
        logger.info(
            "Interchange validated",
            control_number=interchange.header.control_number,
            errors=error_count,
            warnings=len(issues) - error_count,
        )
        return issues

    def _issue(
        self,
        code: IssueCode,
        message: str,
        segment_id: str,
        element_index: Optional[int] = None,
        severity: Severity = Severity.ERROR,
        path: Optional[str] = None,
    ) -> X12Issue:
        return X12Issue(
            code=code,
            message=message,
            severity=severity,
            segment_id=segment_id,
            element_index=element_index,
            path=path,
        )

    def _validate_isa(self, interchange: Interchange) -> List[X12Issue]:
        header = interchange.header
        issues = []

        code_checks = [
            (1, header.authorization_qualifier, VALID_AUTHORIZATION_QUALIFIERS),
            (3, header.security_qualifier, VALID_SECURITY_QUALIFIERS),
            (5, header.sender_id_qualifier, VALID_ID_QUALIFIERS),
            (7, header.receiver_id_qualifier, VALID_ID_QUALIFIERS),
            (12, header.version, self.settings.supported_versions),
            (14, header.acknowledgment_requested, VALID_ACKNOWLEDGMENT_REQUESTED),
            (15, header.usage_indicator, VALID_USAGE_INDICATORS),
        ]
        for element_index, value, valid_values in code_checks:
            if value not in valid_values:
                issues.append(self._issue(
                    IssueCode.INVALID_ELEMENT_VALUE,
                    f"ISA{element_index:02d} value '{value}' is not valid",
                    "ISA", element_index,
                ))

        if not re.match(r"^\d{6}$", header.date):
            issues.append(self._issue(IssueCode.INVALID_ELEMENT_TYPE, "ISA09 must be YYMMDD", "ISA", 9))
        if not re.match(r"^\d{4}$", header.time):
            issues.append(self._issue(IssueCode.INVALID_ELEMENT_TYPE, "ISA10 must be HHMM", "ISA", 10))
        if not re.match(r"^\d{9}$", header.control_number):
            issues.append(self._issue(IssueCode.INVALID_ELEMENT_TYPE, "ISA13 must be 9 digits", "ISA", 13))

        return issues

    def _validate_group(self, group: FunctionalGroup, group_index: int) -> List[X12Issue]:
        header = group.header
        path = group_path(group_index)
        issues = []

        if header.functional_code not in VALID_FUNCTIONAL_CODES:
            issues.append(self._issue(
                IssueCode.INVALID_ELEMENT_VALUE,
                f"Unknown functional identifier code '{header.functional_code}'",
                "GS", 1, severity=Severity.WARNING, path=path,
            ))
        if not re.match(r"^\d{8}$", header.date):
            issues.append(self._issue(IssueCode.INVALID_ELEMENT_TYPE, "GS04 must be CCYYMMDD", "GS", 4, path=path))
        if not re.match(r"^\d{4,8}$", header.time):
            issues.append(self._issue(IssueCode.INVALID_ELEMENT_TYPE, "GS05 must be 4 to 8 digits", "GS", 5, path=path))
        if header.agency_code not in VALID_AGENCY_CODES:
            issues.append(self._issue(
                IssueCode.INVALID_ELEMENT_VALUE,
                f"GS07 value '{header.agency_code}' should be T or X",
                "GS", 7, severity=Severity.WARNING, path=path,
            ))

        if group.trailer.number_of_transaction_sets != len(group.transaction_sets):
            issues.append(self._issue(
                IssueCode.TRANSACTION_SET_COUNT_MISMATCH,
                f"GE01 declares {group.trailer.number_of_transaction_sets} transaction sets; "
                f"group has {len(group.transaction_sets)}",
                "GE", 1, severity=Severity.WARNING, path=path,
            ))
        if group.trailer.control_number != header.control_number:
            issues.append(self._issue(
                IssueCode.GE_CONTROL_NUMBER_MISMATCH,
                "GE02 does not match GS06",
                "GE", 2, severity=Severity.WARNING, path=path,
            ))

        return issues

    def validate_transaction_set(self, transaction_set: TransactionSet, path: Optional[str] = None) -> List[X12Issue]:
        """
        Validate one transaction set against its rule table.

        Codes without a table produce a single advisory warning.
        """
        code = transaction_set.header.transaction_set_code
        issues = []

        if transaction_set.trailer.number_of_segments != len(transaction_set.segments) + 2:
            issues.append(self._issue(
                IssueCode.SEGMENT_COUNT_MISMATCH,
                f"SE01 declares {transaction_set.trailer.number_of_segments} segments; "
                f"set has {len(transaction_set.segments) + 2}",
                "SE", 1, severity=Severity.WARNING, path=path,
            ))
        if transaction_set.trailer.control_number != transaction_set.header.control_number:
            issues.append(self._issue(
                IssueCode.SE_CONTROL_NUMBER_MISMATCH,
                "SE02 does not match ST02",
                "SE", 2, severity=Severity.WARNING, path=path,
            ))

        rules = self.config.get_rules(code)
        if rules is None:
            issues.append(self._issue(
                IssueCode.UNSUPPORTED_TRANSACTION_SET,
                f"No validation rules for transaction set {code}",
                "ST", 1, severity=Severity.WARNING, path=path,
            ))
            return issues

        counts: Dict[str, int] = {}
        for segment in transaction_set.segments:
            counts[segment.segment_id] = counts.get(segment.segment_id, 0) + 1

        rules_by_id = {rule.segment_id: rule for rule in rules}
        for rule in rules:
            count = counts.get(rule.segment_id, 0)
            if rule.required and count == 0:
                issues.append(self._issue(
                    IssueCode.MISSING_REQUIRED_SEGMENT,
                    f"Required segment {rule.segment_id} is missing",
                    rule.segment_id, path=path,
                ))
            if rule.max_occurs is not None and count > rule.max_occurs:
                issues.append(self._issue(
                    IssueCode.TOO_MANY_SEGMENTS,
                    f"Segment {rule.segment_id} occurs {count} times; maximum is {rule.max_occurs}",
                    rule.segment_id, path=path,
                ))

        for segment_index, segment in enumerate(transaction_set.segments):
            rule = rules_by_id.get(segment.segment_id)
            if rule is None:
                continue
            segment_path = f"{path}.segments[{segment_index}]" if path else f"segments[{segment_index}]"
            issues.extend(self._validate_segment(segment, rule, segment_path))

        return issues

    def _validate_segment(self, segment: Segment, rule: SegmentRule, path: str) -> List[X12Issue]:
        issues = []
        for element_rule in rule.elements:
            issue = self._validate_element(segment, element_rule, path)
            if issue is not None:
                issues.append(issue)
        return issues

    def _validate_element(self, segment: Segment, rule: ElementRule, path: str) -> Optional[X12Issue]:
        name = f"{segment.segment_id}{rule.position:02d}"
        value = ""
        if rule.position <= len(segment.elements):
            value = segment.elements[rule.position - 1].value

        if not value:
            if rule.required:
                return self._issue(
                    IssueCode.MISSING_REQUIRED_ELEMENT,
                    f"Required element {name} is missing",
                    segment.segment_id, rule.position, path=path,
                )
            return None

        if rule.min_length is not None and len(value) < rule.min_length:
            return self._issue(
                IssueCode.ELEMENT_TOO_SHORT,
                f"{name} is shorter than {rule.min_length} characters",
                segment.segment_id, rule.position, path=path,
            )
        if rule.max_length is not None and len(value) > rule.max_length:
            return self._issue(
                IssueCode.ELEMENT_TOO_LONG,
                f"{name} is longer than {rule.max_length} characters",
                segment.segment_id, rule.position, path=path,
            )
        if not check_element_type(value, rule.element_type):
            return self._issue(
                IssueCode.INVALID_ELEMENT_TYPE,
                f"{name} value '{value}' is not a valid {rule.element_type.value}",
                segment.segment_id, rule.position, path=path,
            )
        if rule.valid_values is not None and value not in rule.valid_values:
            return self._issue(
                IssueCode.INVALID_ELEMENT_VALUE,
                f"{name} value '{value}' is not an allowed code",
                segment.segment_id, rule.position, path=path,
            )
        return None


def validate_interchange(interchange: Interchange) -> List[X12Issue]:
    """Validate with the default rule tables."""
    return X12Validator().validate_interchange(interchange)
