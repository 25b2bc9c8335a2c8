"""Tests for 997 functional acknowledgment generation."""
import pytest

from x12engine.models.envelope import Delimiters
from x12engine.services.x12.acknowledgment import AcknowledgmentBuilder
from x12engine.services.x12.transaction_sets import ack_997
from tests.factories import PO_850_BODY, make_document, wrap_set

GS_PO = "GS*PO*SENDER*RECEIVER*20240101*1200*1*X*005010X220A1~"
GOOD_SET = ["ST*850*0001~", "BEG*00*SA*PO1**20240101~", "PO1*1*1*EA*1~", "SE*4*0001~"]
NO_LINES_SET = ["ST*850*0002~", "BEG*00*SA*PO2**20240101~", "SE*3*0002~"]


@pytest.fixture
def builder():
    """Acknowledgment builder without rule-table validation."""
    return AcknowledgmentBuilder()


@pytest.mark.unit
class TestGroupAcknowledgment:
    """Tests for AK1/AK2/AK5/AK9 content."""

    def test_accepted_document(self, parser, builder, sample_850):
        """Test a clean 850 is accepted."""
        acks = builder.build_acknowledgments(parser.parse(sample_850))
        assert len(acks) == 1
        ack = acks[0]
        assert ack.control_number == "0001"
        assert ack.functional_code == "PO"
        assert ack.group_control_number == "1"
        assert ack.version_code == "005010X220A1"
        assert ack.transaction_set_responses[0].transaction_set_code == "850"
        assert ack.transaction_set_responses[0].control_number == "0001"
        assert ack.transaction_set_responses[0].acknowledgment_code == "A"
        assert ack.transaction_set_responses[0].segment_errors == []
        assert ack.group_acknowledgment_code == "A"
        assert (ack.number_included, ack.number_received, ack.number_accepted) == (1, 1, 1)
        assert ack.group_syntax_error_codes == []

    def test_typed_parse_error_rejects(self, parser, builder):
        """Test an 850 without line items is rejected with AK3 and AK5 code 5."""
        text = make_document([GS_PO, *NO_LINES_SET, "GE*1*1~"])
        ack = builder.build_acknowledgments(parser.parse(text))[0]
        response = ack.transaction_set_responses[0]
        assert response.acknowledgment_code == "R"
        assert response.syntax_error_codes == ["5"]
        segment_error = response.segment_errors[0]
        assert segment_error.segment_id == "PO1"
        # Absent segment is reported at the trailer position
        assert segment_error.position == 3
        assert segment_error.error_code == "3"
        assert ack.group_acknowledgment_code == "R"
        assert ack.number_accepted == 0

    def test_missing_beginning_segment_position(self, parser, builder):
        """Test a missing BEG is reported right after ST."""
        body = [GS_PO, "ST*850*0001~", "PO1*1*1*EA*1~", "SE*3*0001~", "GE*1*1~"]
        ack = builder.build_acknowledgments(parser.parse(make_document(body)))[0]
        segment_error = ack.transaction_set_responses[0].segment_errors[0]
        assert (segment_error.segment_id, segment_error.position, segment_error.error_code) == ("BEG", 2, "3")

    def test_partially_accepted(self, parser, builder):
        """Test one good and one bad set give AK9 P."""
        text = make_document([GS_PO, *GOOD_SET, *NO_LINES_SET, "GE*2*1~"])
        ack = builder.build_acknowledgments(parser.parse(text))[0]
        assert [r.acknowledgment_code for r in ack.transaction_set_responses] == ["A", "R"]
        assert ack.group_acknowledgment_code == "P"
        assert (ack.number_received, ack.number_accepted) == (2, 1)

    def test_dropped_set_counted_without_response(self, parser, builder):
        """Test a set without SE counts as received but gets no AK2."""
        body = [
            GS_PO,
            "ST*850*0009~",
            "BEG*00*SA*PO9**20240101~",
            *GOOD_SET,
            "GE*2*1~",
        ]
        result = parser.parse(make_document(body))
        ack = builder.build_acknowledgments(result)[0]
        assert [r.control_number for r in ack.transaction_set_responses] == ["0001"]
        assert ack.transaction_set_responses[0].acknowledgment_code == "A"
        assert (ack.number_included, ack.number_received, ack.number_accepted) == (2, 2, 1)
        assert ack.group_acknowledgment_code == "P"
        assert ack.group_syntax_error_codes == []

    def test_included_count_mismatch(self, parser, builder, sample_850):
        """Test AK905 when GE01 disagrees with the sets received."""
        result = parser.parse(sample_850.replace("GE*1*1~", "GE*3*1~"))
        ack = builder.build_acknowledgments(result)[0]
        assert ack.number_included == 3
        assert ack.number_received == 1
        assert ack.group_syntax_error_codes == ["5"]
        assert ack.group_acknowledgment_code == "A"

    def test_group_control_number_mismatch(self, parser, builder, sample_850):
        """Test AK905 code 4 when GE02 disagrees with GS06."""
        result = parser.parse(sample_850.replace("GE*1*1~", "GE*1*9~"))
        ack = builder.build_acknowledgments(result)[0]
        assert ack.group_syntax_error_codes == ["4"]
        assert ack.group_acknowledgment_code == "A"

    def test_warnings_do_not_reject(self, parser, builder, sample_810):
        """Test a wrong SE01 alone leaves the set accepted."""
        result = parser.parse(sample_810.replace("SE*20*0001~", "SE*19*0001~"))
        ack = builder.build_acknowledgments(result)[0]
        assert ack.transaction_set_responses[0].acknowledgment_code == "A"

    def test_dropped_group_rejected(self, parser, builder):
        """Test a group without GE is rejected from its GS header."""
        body = [
            GS_PO,
            *GOOD_SET,
            *wrap_set("850", "PO", PO_850_BODY, group_control="2"),
        ]
        result = parser.parse(make_document(body).replace("IEA*1*", "IEA*2*"))
        assert [group.control_number for group in result.dropped_groups] == ["1"]

        acks = builder.build_acknowledgments(result)
        assert [ack.group_control_number for ack in acks] == ["1", "2"]
        assert [ack.control_number for ack in acks] == ["0001", "0002"]
        dropped = acks[0]
        assert dropped.functional_code == "PO"
        assert dropped.version_code == "005010X220A1"
        assert dropped.transaction_set_responses == []
        assert dropped.group_acknowledgment_code == "R"
        assert (dropped.number_included, dropped.number_received, dropped.number_accepted) == (1, 1, 0)
        assert dropped.group_syntax_error_codes == ["3"]
        assert acks[1].group_acknowledgment_code == "A"

    def test_short_gs_rejected(self, parser, builder, sample_850):
        """Test a GS without its version code is rejected with AK905 code 2."""
        result = parser.parse(sample_850.replace("*X*005010X220A1~", "~"))
        ack = builder.build_acknowledgments(result)[0]
        assert ack.group_acknowledgment_code == "R"
        assert ack.group_syntax_error_codes == ["2"]
        assert ack.version_code is None

    def test_ak1_version_only_for_005010(self, parser, builder):
        """Test AK103 is omitted for 004010 interchanges."""
        text = make_document(wrap_set("850", "PO", PO_850_BODY), version="004010", repetition="U")
        ack = builder.build_acknowledgments(parser.parse(text))[0]
        assert ack.version_code is None

    def test_no_interchange(self, parser, builder):
        """Test nothing is acknowledged when the envelope failed."""
        result = parser.parse("")
        assert builder.build_acknowledgments(result) == []


@pytest.mark.unit
class TestValidatorRejection:
    """Tests for opt-in rule-table rejection."""

    def test_element_error_reported(self, parser, validator):
        """Test validator errors become AK3/AK4 when a validator is supplied."""
        result = parser.parse(make_document(wrap_set("850", "PO", ["BEG*0*SA*PO1**20240101~", "PO1*1*1*EA*1~"])))

        assert AcknowledgmentBuilder().build_acknowledgments(result)[0].group_acknowledgment_code == "A"

        ack = AcknowledgmentBuilder(validator=validator).build_acknowledgments(result)[0]
        response = ack.transaction_set_responses[0]
        assert response.acknowledgment_code == "R"
        segment_error = response.segment_errors[0]
        assert (segment_error.segment_id, segment_error.position, segment_error.error_code) == ("BEG", 2, "8")
        element_error = segment_error.element_errors[0]
        assert (element_error.position, element_error.error_code, element_error.bad_value) == (1, "4", "0")


@pytest.mark.unit
class TestBuildDocument:
    """Tests for the serialized 997 interchange."""

    def test_exact_document(self, parser, builder, sample_850, sender, receiver):
        """Test the full reply for a clean 850."""
        output = builder.build_document(
            parser.parse(sample_850), sender, receiver, control_number="5", timestamp="202401021530",
        )
        assert output == (
            "ISA*00*          *00*          *ZZ*RECEIVER       *ZZ*SENDER         "
            "*240102*1530*^*005010*000000005*0*T*:~"
            "GS*FA*RECEIVER*SENDER*20240102*1530*1*X*005010X220A1~"
            "ST*997*0001~"
            "AK1*PO*1*005010X220A1~"
            "AK2*850*0001~"
            "AK5*A~"
            "AK9*A*1*1*1~"
            "SE*6*0001~"
            "GE*1*1~"
            "IEA*1*000000005~"
        )

    def test_reply_parses(self, parser, builder, sample_810, sender, receiver):
        """Test the reply is itself a valid 997."""
        output = builder.build_document(parser.parse(sample_810), sender, receiver, control_number="6")
        reply = parser.parse(output)
        assert reply.success is True
        transaction_set = reply.interchange.functional_groups[0].transaction_sets[0]
        ack = ack_997.parse(transaction_set).data
        assert ack.functional_code == "IN"
        assert ack.group_acknowledgment_code == "A"

    def test_inbound_delimiters_reused(self, parser, generator, builder, sample_850, sender, receiver):
        """Test the reply is written with the inbound separators."""
        interchange = parser.parse(sample_850).interchange
        custom = generator.generate(interchange, delimiters=Delimiters(element_separator="|", subelement_separator=">"))
        output = builder.build_document(parser.parse(custom), sender, receiver, control_number="7")
        assert output.startswith("ISA|00|")
        assert "AK5|A~" in output
        assert "|T|>~" in output

    def test_second_group_without_trailer(self, parser, builder, sender, receiver):
        """Test a later group that lost its GE is rejected in the reply."""
        body = [
            *wrap_set("850", "PO", PO_850_BODY),
            GS_PO.replace("*1*X*", "*2*X*"),
            *GOOD_SET,
        ]
        result = parser.parse(make_document(body).replace("IEA*1*", "IEA*2*"))
        output = builder.build_document(result, sender, receiver, control_number="8")
        assert "AK1*PO*1*005010X220A1~AK2*850*0001~AK5*A~AK9*A*1*1*1~" in output
        assert "ST*997*0002~AK1*PO*2*005010X220A1~AK9*R*1*1*0*3~SE*4*0002~" in output
        assert "GE*2*1~" in output

    def test_unidentified_dropped_group(self, parser, builder, sender, receiver):
        """Test no reply when a dropped group has no readable GS."""
        body = [*wrap_set("850", "PO", PO_850_BODY), "GS*PO~", *GOOD_SET]
        result = parser.parse(make_document(body).replace("IEA*1*", "IEA*2*"))
        assert result.dropped_groups == []
        assert [ack.group_acknowledgment_code for ack in builder.build_acknowledgments(result)] == ["A"]
        assert builder.build_document(result, sender, receiver) is None

    def test_nothing_to_acknowledge(self, parser, builder, sender, receiver):
        """Test None when no group survived."""
        assert builder.build_document(parser.parse("garbage"), sender, receiver) is None
