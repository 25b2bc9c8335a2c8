"""Tests for the envelope parser and generic segment decoder."""
import pytest

from x12engine.config.settings import X12Settings
from x12engine.models.enums import IssueCode, Severity
from x12engine.models.envelope import Delimiters
from x12engine.services.x12.parser import (
    X12Parser,
    decode_segment,
    dropped_ordinals,
    get_element_value,
    get_subelement_value,
    kept_ordinals,
    parse,
    path_ordinal,
)
from tests.factories import PO_850_BODY, make_document, wrap_set


def _codes(issues):
    return [issue.code for issue in issues]


@pytest.mark.unit
class TestParseEnvelope:
    """Tests for a well-formed interchange."""

    def test_parse_850(self, parser, sample_850):
        """Test a complete 850 parses into one group and one set."""
        result = parser.parse(sample_850)
        assert result.success is True
        assert result.errors == []
        assert result.warnings == []
        groups = result.interchange.functional_groups
        assert len(groups) == 1
        assert len(groups[0].transaction_sets) == 1
        assert groups[0].transaction_sets[0].header.transaction_set_code == "850"

    def test_isa_header(self, parser, sample_850):
        """Test ISA values are trimmed and kept as received."""
        header = parser.parse(sample_850).interchange.header
        assert header.sender_id == "SENDER"
        assert header.receiver_id == "RECEIVER"
        assert header.version == "005010"
        assert header.usage_indicator == "T"
        assert header.control_number == "000000001"
        assert header.component_separator == ":"

    def test_gs_header(self, parser, sample_850):
        """Test GS fields."""
        group = parser.parse(sample_850).interchange.functional_groups[0]
        assert group.header.functional_code == "PO"
        assert group.header.sender_code == "SENDER"
        assert group.header.receiver_code == "RECEIVER"
        assert group.header.version_code == "005010X220A1"
        assert group.trailer.number_of_transaction_sets == 1

    def test_transaction_set_body(self, parser, sample_850):
        """Test ST/SE are excluded from the body and counted in SE01."""
        transaction_set = parser.parse(sample_850).interchange.functional_groups[0].transaction_sets[0]
        assert transaction_set.segments[0].segment_id == "BEG"
        assert transaction_set.segments[-1].segment_id == "AMT"
        assert transaction_set.trailer.number_of_segments == len(transaction_set.segments) + 2

    def test_line_breaks(self, parser, sample_850):
        """Test LF and CRLF after each terminator."""
        assert parser.parse(sample_850.replace("~", "~\n")).success is True
        assert parser.parse(sample_850.replace("~", "~\r\n")).success is True

    def test_module_level_parse(self, sample_850):
        """Test the default-settings entry point."""
        assert parse(sample_850).success is True

    def test_parser_is_reentrant(self, parser, sample_850, sample_810):
        """Test repeated parses do not share state."""
        first = parser.parse(sample_850)
        parser.parse(sample_810)
        again = parser.parse(sample_850)
        assert first == again

    def test_004010_interchange(self, parser):
        """Test the older version is accepted."""
        text = make_document(wrap_set("850", "PO", PO_850_BODY), version="004010", repetition="U")
        result = parser.parse(text)
        assert result.success is True
        assert result.interchange.header.repetition_separator == "U"


@pytest.mark.unit
class TestParseFatalErrors:
    """Tests for problems that prevent building an interchange."""

    def test_empty_input(self, parser):
        """Test empty and blank input."""
        for text in ("", "   \n"):
            result = parser.parse(text)
            assert result.success is False
            assert result.interchange is None
            assert result.errors[0].code == IssueCode.EMPTY_INPUT

    def test_input_too_large(self, sample_850):
        """Test the configured size limit."""
        parser = X12Parser(X12Settings(max_input_length=50))
        result = parser.parse(sample_850)
        assert result.interchange is None
        assert result.errors[0].code == IssueCode.INPUT_TOO_LARGE

    def test_missing_iea(self, parser, sample_850):
        """Test a document without IEA."""
        result = parser.parse(sample_850.replace("IEA*1*000000001~", ""))
        assert result.success is False
        assert result.interchange is None
        assert IssueCode.MISSING_IEA in _codes(result.errors)

    def test_short_iea(self, parser, sample_850):
        """Test an IEA without its control number."""
        result = parser.parse(sample_850.replace("IEA*1*000000001~", "IEA*1~"))
        assert result.interchange is None
        assert result.errors[0].code == IssueCode.IEA_ELEMENT_COUNT

    def test_unsupported_version(self, parser):
        """Test an ISA12 outside the supported versions."""
        text = make_document(wrap_set("850", "PO", PO_850_BODY), version="003040")
        result = parser.parse(text)
        assert result.interchange is None
        assert result.errors[0].code == IssueCode.UNSUPPORTED_VERSION
        assert result.errors[0].element_index == 12

    def test_not_an_interchange(self, parser):
        """Test input that does not start with ISA."""
        result = parser.parse("GS*PO*SENDER*RECEIVER*20240101*1200*1*X*005010~" * 3)
        assert result.interchange is None
        assert result.errors[0].code == IssueCode.INVALID_ISA


@pytest.mark.unit
class TestParseWarnings:
    """Tests for advisory control checks."""

    def test_iea_control_number_mismatch(self, parser, sample_850):
        """Test IEA02 different from ISA13 is a warning."""
        result = parser.parse(sample_850.replace("IEA*1*000000001~", "IEA*1*000000009~"))
        assert result.success is True
        assert _codes(result.warnings) == [IssueCode.CONTROL_NUMBER_MISMATCH]
        assert result.warnings[0].severity == Severity.WARNING

    def test_group_count_mismatch(self, parser, sample_850):
        """Test IEA01 different from the groups found."""
        result = parser.parse(sample_850.replace("IEA*1*", "IEA*2*"))
        assert result.success is True
        assert _codes(result.warnings) == [IssueCode.GROUP_COUNT_MISMATCH]

    def test_segment_count_mismatch(self, parser, sample_810):
        """Test a wrong SE01 is reported but the set is kept."""
        result = parser.parse(sample_810.replace("SE*20*0001~", "SE*19*0001~"))
        assert result.success is True
        assert _codes(result.warnings) == [IssueCode.SEGMENT_COUNT_MISMATCH]
        assert result.warnings[0].path == "functional_groups[0].transaction_sets[0]"
        assert len(result.interchange.functional_groups[0].transaction_sets) == 1

    def test_se_control_number_mismatch(self, parser, sample_850):
        """Test SE02 different from ST02."""
        result = parser.parse(sample_850.replace("SE*20*0001~", "SE*20*0002~"))
        assert _codes(result.warnings) == [IssueCode.SE_CONTROL_NUMBER_MISMATCH]

    def test_transaction_set_count_mismatch(self, parser, sample_850):
        """Test GE01 different from the sets found."""
        result = parser.parse(sample_850.replace("GE*1*1~", "GE*3*1~"))
        assert _codes(result.warnings) == [IssueCode.TRANSACTION_SET_COUNT_MISMATCH]

    def test_ge_control_number_mismatch(self, parser, sample_850):
        """Test GE02 different from GS06."""
        result = parser.parse(sample_850.replace("GE*1*1~", "GE*1*7~"))
        assert _codes(result.warnings) == [IssueCode.GE_CONTROL_NUMBER_MISMATCH]

    def test_non_numeric_count(self, parser, sample_850):
        """Test a non-numeric IEA01."""
        result = parser.parse(sample_850.replace("IEA*1*", "IEA*X*"))
        assert result.success is True
        assert IssueCode.INVALID_COUNT in _codes(result.warnings)
        assert result.interchange.trailer.number_of_groups == 0

    def test_segment_outside_group(self, parser, sample_850):
        """Test a stray segment between ISA and GS."""
        result = parser.parse(sample_850.replace("GS*", "XYZ*1~GS*", 1))
        assert result.success is True
        assert _codes(result.warnings) == [IssueCode.UNEXPECTED_SEGMENT]
        assert result.warnings[0].segment_id == "XYZ"

    def test_segments_after_iea(self, parser, sample_850):
        """Test trailing segments after IEA are ignored with a warning."""
        result = parser.parse(sample_850 + "GS*PO*A*B~")
        assert result.success is True
        assert _codes(result.warnings) == [IssueCode.UNEXPECTED_SEGMENT]


@pytest.mark.unit
class TestParseDroppedEnvelopes:
    """Tests for missing trailers dropping only the affected envelope."""

    def test_missing_se_drops_only_that_set(self, parser):
        """Test a set without SE is dropped and the next one kept."""
        body = [
            "GS*PO*SENDER*RECEIVER*20240101*1200*1*X*005010X220A1~",
            "ST*850*0001~",
            "BEG*00*SA*PO1**20240101~",
            "ST*850*0002~",
            "BEG*00*SA*PO2**20240101~",
            "PO1*1*1*EA*1~",
            "SE*4*0002~",
            "GE*2*1~",
        ]
        result = parser.parse(make_document(body))

        assert result.success is False
        assert _codes(result.errors) == [IssueCode.MISSING_SE]
        assert result.errors[0].path == "functional_groups[0].transaction_sets[0]"
        sets = result.interchange.functional_groups[0].transaction_sets
        assert [s.header.control_number for s in sets] == ["0002"]
        # Skipped segments of the dropped set are not reported again
        assert IssueCode.UNEXPECTED_SEGMENT not in _codes(result.warnings)
        assert IssueCode.TRANSACTION_SET_COUNT_MISMATCH in _codes(result.warnings)

    def test_missing_ge_drops_only_that_group(self, parser, sample_850):
        """Test a group without GE is dropped and the next one kept."""
        body = [
            "GS*PO*SENDER*RECEIVER*20240101*1200*1*X*005010X220A1~",
            "ST*850*0001~",
            "BEG*00*SA*PO1**20240101~",
            "SE*3*0001~",
            *wrap_set("850", "PO", PO_850_BODY, group_control="2"),
        ]
        result = parser.parse(make_document(body).replace("IEA*1*", "IEA*2*"))

        assert _codes(result.errors) == [IssueCode.MISSING_GE]
        assert result.errors[0].path == "functional_groups[0]"
        groups = result.interchange.functional_groups
        assert [g.header.control_number for g in groups] == ["2"]
        assert IssueCode.GROUP_COUNT_MISMATCH in _codes(result.warnings)
        assert IssueCode.UNEXPECTED_SEGMENT not in _codes(result.warnings)

    def test_short_st_drops_set(self, parser, sample_850):
        """Test an ST without a control number."""
        result = parser.parse(sample_850.replace("ST*850*0001~", "ST*850~"))
        assert _codes(result.errors) == [IssueCode.ST_ELEMENT_COUNT]
        assert result.interchange.functional_groups[0].transaction_sets == []

    def test_short_gs_drops_group(self, parser, sample_850):
        """Test a GS with too few elements."""
        result = parser.parse(sample_850.replace("*X*005010X220A1~", "~"))
        assert _codes(result.errors) == [IssueCode.GS_ELEMENT_COUNT]
        assert result.interchange.functional_groups == []
        dropped = result.dropped_groups[0]
        assert (dropped.path, dropped.functional_code, dropped.control_number) == ("functional_groups[0]", "PO", "1")
        assert dropped.version_code is None
        assert dropped.transaction_set_count == 1

    def test_short_ge_drops_group(self, parser, sample_850):
        """Test a GE without a control number keeps the GS for acknowledgment."""
        result = parser.parse(sample_850.replace("GE*1*1~", "GE*1~"))
        assert _codes(result.errors) == [IssueCode.GE_ELEMENT_COUNT]
        assert result.dropped_groups[0].code == IssueCode.GE_ELEMENT_COUNT
        assert result.dropped_groups[0].version_code == "005010X220A1"

    def test_issue_position(self, parser):
        """Test errors carry the position of the offending segment."""
        body = [
            "GS*PO*SENDER*RECEIVER*20240101*1200*1*X*005010X220A1~",
            "ST*850*0001~",
            "BEG*00*SA*PO1**20240101~",
            "GE*1*1~",
        ]
        result = parser.parse(make_document(body))
        issue = result.errors[0]
        assert issue.code == IssueCode.MISSING_SE
        assert issue.segment_id == "ST"
        assert issue.position.segment_index == 2


@pytest.mark.unit
class TestDecodeSegment:
    """Tests for the generic segment decoder."""

    def test_simple_elements(self):
        """Test empty elements in the middle keep positions."""
        segment = decode_segment("BEG*00*SA*PO12345**20240101", Delimiters())
        assert segment.segment_id == "BEG"
        assert [e.value for e in segment.elements] == ["00", "SA", "PO12345", "", "20240101"]
        assert segment.raw == "BEG*00*SA*PO12345**20240101"

    def test_composite_element(self):
        """Test subelements of a composite."""
        segment = decode_segment("AK4*2:1*66*7", Delimiters())
        assert segment.elements[0].value == "2"
        assert segment.elements[0].subelements == ["2", "1"]
        assert segment.elements[1].subelements is None

    def test_repeated_element(self):
        """Test repetitions keep the first repetition as the value."""
        segment = decode_segment("REF*A:1^B*C", Delimiters())
        element = segment.elements[0]
        assert element.value == "A"
        assert element.subelements == ["A", "1"]
        assert element.repetitions == ["B"]

    def test_custom_delimiters(self):
        """Test decoding with the interchange's own delimiters."""
        delimiters = Delimiters(element_separator="|", subelement_separator=">")
        segment = decode_segment("AK4|2>1|66", delimiters)
        assert segment.elements[0].subelements == ["2", "1"]
        assert segment.elements[1].value == "66"

    def test_get_element_value(self):
        """Test 1-based access with defaults."""
        segment = decode_segment("N1*BY*Buyer", Delimiters())
        assert get_element_value(segment, 1) == "BY"
        assert get_element_value(segment, 3) == ""
        assert get_element_value(segment, 0, default="x") == "x"

    def test_get_subelement_value(self):
        """Test component access on plain and composite elements."""
        segment = decode_segment("AK4*2:1*66", Delimiters())
        assert get_subelement_value(segment, 1, 2) == "1"
        assert get_subelement_value(segment, 2, 1) == "66"
        assert get_subelement_value(segment, 2, 2) == ""
        assert get_subelement_value(segment, 5, 1, default="-") == "-"


@pytest.mark.unit
class TestEnvelopeOrdinals:
    """Tests for locating envelopes that survived parsing."""

    def test_path_ordinal(self):
        """Test bracketed indexes are read by depth."""
        path = "functional_groups[2].transaction_sets[5]"
        assert path_ordinal(path, 0) == 2
        assert path_ordinal(path, 1) == 5
        assert path_ordinal("functional_groups[2]", 1) is None
        assert path_ordinal(None, 0) is None

    def test_kept_ordinals_skip_dropped(self, parser):
        """Test surviving sets keep their document positions."""
        body = [
            "GS*PO*SENDER*RECEIVER*20240101*1200*1*X*005010X220A1~",
            "ST*850*0009~",
            "BEG*00*SA*PO9**20240101~",
            *wrap_set("850", "PO", PO_850_BODY)[1:-1],
            "GE*2*1~",
        ]
        result = parser.parse(make_document(body))
        dropped = dropped_ordinals(result.errors, (IssueCode.MISSING_SE,), 1, 0)
        assert dropped == {0}
        assert kept_ordinals(1, dropped) == [1]
