"""Tests for rule-based interchange validation."""
import pytest

from x12engine.models.enums import ElementType, IssueCode, Severity
from x12engine.models.envelope import Delimiters
from x12engine.services.x12.config import SegmentRule, ValidatorConfig
from x12engine.services.x12.generator import create_transaction_set
from x12engine.services.x12.parser import decode_segment
from x12engine.services.x12.validator import (
    X12Validator,
    check_element_type,
    is_valid_date,
    is_valid_time,
    validate_interchange,
)
from tests.factories import SAMPLE_810, SAMPLE_850, SAMPLE_855, SAMPLE_856, SAMPLE_997


def _set(code, *segments):
    return create_transaction_set(code, "0001", [decode_segment(s, Delimiters()) for s in segments])


def _codes(issues):
    return [issue.code for issue in issues]


@pytest.mark.unit
class TestValidateSamples:
    """Tests that well-formed samples validate cleanly."""

    @pytest.mark.parametrize("text", [SAMPLE_850, SAMPLE_855, SAMPLE_856, SAMPLE_810, SAMPLE_997])
    def test_sample_has_no_issues(self, parser, validator, text):
        """Test each sample passes every rule."""
        interchange = parser.parse(text).interchange
        assert validator.validate_interchange(interchange) == []

    def test_validator_does_not_mutate(self, parser, validator, sample_850):
        """Test the interchange is unchanged after validation."""
        interchange = parser.parse(sample_850).interchange
        before = interchange.model_dump()
        validator.validate_interchange(interchange)
        assert interchange.model_dump() == before

    def test_module_level_validate(self, parser, sample_856):
        """Test the default-rules entry point."""
        assert validate_interchange(parser.parse(sample_856).interchange) == []


@pytest.mark.unit
class TestEnvelopeRules:
    """Tests for ISA and GS checks."""

    def test_invalid_usage_indicator(self, parser, validator, sample_850):
        """Test ISA15 outside P/T/I."""
        interchange = parser.parse(sample_850).interchange
        interchange.header.usage_indicator = "X"
        issues = validator.validate_interchange(interchange)
        assert _codes(issues) == [IssueCode.INVALID_ELEMENT_VALUE]
        assert issues[0].segment_id == "ISA"
        assert issues[0].element_index == 15

    def test_bad_isa_control_number(self, parser, validator, sample_850):
        """Test ISA13 must be nine digits."""
        interchange = parser.parse(sample_850).interchange
        interchange.header.control_number = "12AB"
        interchange.trailer.control_number = "12AB"
        issues = validator.validate_interchange(interchange)
        assert _codes(issues) == [IssueCode.INVALID_ELEMENT_TYPE]
        assert issues[0].element_index == 13

    def test_unknown_functional_code_is_warning(self, parser, validator, sample_850):
        """Test an unknown GS01 is advisory."""
        interchange = parser.parse(sample_850).interchange
        interchange.functional_groups[0].header.functional_code = "ZZ"
        issues = validator.validate_interchange(interchange)
        assert _codes(issues) == [IssueCode.INVALID_ELEMENT_VALUE]
        assert issues[0].severity == Severity.WARNING
        assert issues[0].path == "functional_groups[0]"

    def test_bad_gs_date(self, parser, validator, sample_850):
        """Test GS04 must be CCYYMMDD."""
        interchange = parser.parse(sample_850).interchange
        interchange.functional_groups[0].header.date = "240101"
        issues = validator.validate_interchange(interchange)
        assert _codes(issues) == [IssueCode.INVALID_ELEMENT_TYPE]
        assert issues[0].element_index == 4

    def test_count_mismatches_are_warnings(self, parser, validator, sample_850):
        """Test trailer disagreements on a hand-edited tree."""
        interchange = parser.parse(sample_850).interchange
        interchange.trailer.number_of_groups = 3
        interchange.functional_groups[0].trailer.number_of_transaction_sets = 2
        issues = validator.validate_interchange(interchange)
        assert set(_codes(issues)) == {IssueCode.GROUP_COUNT_MISMATCH, IssueCode.TRANSACTION_SET_COUNT_MISMATCH}
        assert all(issue.severity == Severity.WARNING for issue in issues)


@pytest.mark.unit
class TestTransactionSetRules:
    """Tests for per transaction-set rule tables."""

    def test_missing_required_segment(self, validator):
        """Test an 850 without BEG."""
        issues = validator.validate_transaction_set(_set("850", "PO1*1*10*EA*100"))
        assert _codes(issues) == [IssueCode.MISSING_REQUIRED_SEGMENT]
        assert issues[0].segment_id == "BEG"

    def test_too_many_segments(self, validator):
        """Test a second CUR."""
        issues = validator.validate_transaction_set(_set(
            "850", "BEG*00*SA*PO1**20240101", "CUR*BY*USD", "CUR*BY*EUR", "PO1*1*10*EA*100",
        ))
        assert _codes(issues) == [IssueCode.TOO_MANY_SEGMENTS]
        assert issues[0].segment_id == "CUR"

    def test_missing_required_element(self, validator):
        """Test BEG03 left empty."""
        issues = validator.validate_transaction_set(_set("850", "BEG*00*SA***20240101", "PO1*1"))
        assert _codes(issues) == [IssueCode.MISSING_REQUIRED_ELEMENT]
        assert issues[0].element_index == 3

    def test_element_too_short(self, validator):
        """Test BEG01 below its minimum length."""
        issues = validator.validate_transaction_set(_set("850", "BEG*0*SA*PO1**20240101", "PO1*1"))
        assert _codes(issues) == [IssueCode.ELEMENT_TOO_SHORT]

    def test_element_too_long(self, validator):
        """Test PO103 above its maximum length."""
        issues = validator.validate_transaction_set(_set("850", "BEG*00*SA*PO1**20240101", "PO1*1*10*EACH"))
        assert _codes(issues) == [IssueCode.ELEMENT_TOO_LONG]

    def test_invalid_date(self, validator):
        """Test BEG05 naming a day that does not exist."""
        issues = validator.validate_transaction_set(_set("850", "BEG*00*SA*PO1**20241301", "PO1*1"))
        assert _codes(issues) == [IssueCode.INVALID_ELEMENT_TYPE]
        assert issues[0].element_index == 5

    def test_invalid_numeric(self, validator):
        """Test a non-numeric quantity."""
        issues = validator.validate_transaction_set(_set("850", "BEG*00*SA*PO1**20240101", "PO1*1*ten*EA"))
        assert _codes(issues) == [IssueCode.INVALID_ELEMENT_TYPE]

    def test_invalid_code_value(self, validator):
        """Test AK501 outside its code list."""
        issues = validator.validate_transaction_set(_set("997", "AK1*PO*1", "AK5*Z", "AK9*A*1*1*1"))
        assert _codes(issues) == [IssueCode.INVALID_ELEMENT_VALUE]
        assert issues[0].segment_id == "AK5"

    def test_element_issue_path(self, parser, validator, sample_850):
        """Test element issues point at the offending segment."""
        interchange = parser.parse(sample_850.replace("BEG*00*", "BEG*0*")).interchange
        issues = validator.validate_interchange(interchange)
        assert issues[0].path == "functional_groups[0].transaction_sets[0].segments[0]"

    def test_unsupported_set_single_warning(self, validator):
        """Test a set without rules gets one advisory issue."""
        issues = validator.validate_transaction_set(_set("999", "ZZZ*1"), "functional_groups[0].transaction_sets[0]")
        assert _codes(issues) == [IssueCode.UNSUPPORTED_TRANSACTION_SET]
        assert issues[0].severity == Severity.WARNING
        assert issues[0].path == "functional_groups[0].transaction_sets[0]"

    def test_partner_rule_override(self, settings):
        """Test partner tables extend the defaults."""
        config = ValidatorConfig({"999": [SegmentRule(segment_id="ZZZ", required=True)]})
        validator = X12Validator(config=config, settings=settings)
        issues = validator.validate_transaction_set(_set("999", "AAA*1"))
        assert _codes(issues) == [IssueCode.MISSING_REQUIRED_SEGMENT]
        assert config.is_supported("850") is True


@pytest.mark.unit
class TestElementTypeChecks:
    """Tests for date, time and numeric checks."""

    def test_is_valid_date(self):
        """Test both date widths and impossible days."""
        assert is_valid_date("20240229") is True
        assert is_valid_date("240101") is True
        assert is_valid_date("20230229") is False
        assert is_valid_date("2024011") is False

    def test_is_valid_time(self):
        """Test HHMM and HHMMSS."""
        assert is_valid_time("1200") is True
        assert is_valid_time("235959") is True
        assert is_valid_time("2400") is False
        assert is_valid_time("12") is False

    def test_check_element_type(self):
        """Test numeric and free-text types."""
        assert check_element_type("12.50", ElementType.N) is True
        assert check_element_type("-3", ElementType.N) is True
        assert check_element_type("1,000", ElementType.N) is False
        assert check_element_type("anything", ElementType.AN) is True
