"""Code lists and rule tables for X12 validation and generation."""
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from x12engine.models.enums import ElementType
from x12engine.utils.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_TRANSACTION_SETS = ("850", "855", "856", "810", "997")

# GS01 functional identifier per transaction set
FUNCTIONAL_CODE_MAP = {
    "850": "PO",
    "855": "PR",
    "856": "SH",
    "810": "IN",
    "997": "FA",
}
DEFAULT_FUNCTIONAL_CODE = "XX"

VALID_FUNCTIONAL_CODES = [
    "PO", "PR", "SH", "IN", "FA", "PC", "RS", "SC", "QR", "IB", "RA", "GF", "AR", "TX", "HC", "HP",
]

# ISA05 / ISA07 interchange ID qualifiers
VALID_ID_QUALIFIERS = (
    ["01", "02", "03", "04", "07", "08", "09"]
    + [str(code) for code in range(10, 39)]
    + ["AM", "NR", "SA", "SN", "ZZ"]
)

VALID_AUTHORIZATION_QUALIFIERS = ["00", "01", "02", "03", "04", "05", "06"]
VALID_SECURITY_QUALIFIERS = ["00", "01"]
VALID_ACKNOWLEDGMENT_REQUESTED = ["0", "1"]
VALID_USAGE_INDICATORS = ["P", "T", "I"]
VALID_AGENCY_CODES = ["T", "X"]

# AK3/AK4 syntax error codes used when reporting parse issues
SEGMENT_SYNTAX_ERROR = {
    "unrecognized": "1",
    "unexpected": "2",
    "missing_mandatory": "3",
    "data_element_errors": "8",
}
ELEMENT_SYNTAX_ERROR = {
    "missing_mandatory": "1",
    "too_short": "4",
    "too_long": "5",
    "invalid_character": "6",
    "invalid_code": "7",
    "invalid_date": "8",
    "invalid_time": "9",
}
# AK502: one or more segments in error
SET_SYNTAX_ERROR_SEGMENTS = "5"
# AK905 functional group syntax error codes
GROUP_SYNTAX_ERROR = {
    "version_not_supported": "2",
    "trailer_missing": "3",
    "control_number_mismatch": "4",
    "count_mismatch": "5",
}


class ElementRule(BaseModel):
    """Constraint on one element (1-based position)."""

    position: int
    required: bool = False
    min_length: Optional[int] = None
    max_length: Optional[int] = None
    element_type: ElementType = ElementType.AN
    valid_values: Optional[List[str]] = None


class SegmentRule(BaseModel):
    """Occurrence rule for a segment and the rules for its elements."""

    segment_id: str
    required: bool = False
    max_occurs: Optional[int] = None
    elements: List[ElementRule] = Field(default_factory=list)


def _el(position, required=False, min_length=None, max_length=None, element_type=ElementType.AN, valid_values=None):
    return ElementRule(
        position=position,
        required=required,
        min_length=min_length,
        max_length=max_length,
        element_type=element_type,
        valid_values=valid_values,
    )


_REF = SegmentRule(segment_id="REF", elements=[
    _el(1, True, 2, 3, ElementType.ID),
    _el(2, False, 1, 50),
    _el(3, False, 1, 80),
])
_PER = SegmentRule(segment_id="PER", elements=[_el(1, True, 2, 2, ElementType.ID), _el(2, False, 1, 60)])
_DTM = SegmentRule(segment_id="DTM", elements=[
    _el(1, True, 3, 3, ElementType.ID),
    _el(2, False, 6, 8, ElementType.DT),
    _el(3, False, 4, 8, ElementType.TM),
])
_N1 = SegmentRule(segment_id="N1", elements=[
    _el(1, True, 2, 3, ElementType.ID),
    _el(2, False, 1, 60),
    _el(3, False, 1, 2, ElementType.ID),
    _el(4, False, 2, 80),
])
_N3 = SegmentRule(segment_id="N3", elements=[_el(1, True, 1, 55), _el(2, False, 1, 55)])
_N4 = SegmentRule(segment_id="N4", elements=[
    _el(1, False, 2, 30),
    _el(2, False, 2, 2, ElementType.ID),
    _el(3, False, 3, 15, ElementType.ID),
    _el(4, False, 2, 3, ElementType.ID),
])
_CUR = SegmentRule(segment_id="CUR", max_occurs=1, elements=[
    _el(1, True, 2, 3, ElementType.ID),
    _el(2, True, 3, 3, ElementType.ID),
    _el(3, False, 4, 10, ElementType.N),
])
_TD5 = SegmentRule(segment_id="TD5", elements=[
    _el(1, False, 1, 2, ElementType.ID),
    _el(2, False, 1, 2, ElementType.ID),
    _el(3, False, 2, 80),
    _el(4, False, 1, 2, ElementType.ID),
    _el(5, False, 1, 35),
])
_TD1 = SegmentRule(segment_id="TD1", elements=[
    _el(1, False, 3, 5),
    _el(2, False, 1, 7, ElementType.N),
    _el(7, False, 1, 10, ElementType.N),
])
_PID = SegmentRule(segment_id="PID", elements=[
    _el(1, True, 1, 1, ElementType.ID, ["F", "S", "X"]),
    _el(5, False, 1, 80),
])
_TXI = SegmentRule(segment_id="TXI", elements=[
    _el(1, True, 2, 2, ElementType.ID),
    _el(2, False, 1, 18, ElementType.N),
    _el(3, False, 1, 10, ElementType.N),
])
_CTT = SegmentRule(segment_id="CTT", max_occurs=1, elements=[
    _el(1, True, 1, 6, ElementType.N),
    _el(2, False, 1, 10, ElementType.N),
])
_LINE_ITEM_ELEMENTS = [
    _el(1, False, 1, 20),
    _el(2, False, 1, 15, ElementType.N),
    _el(3, False, 2, 2, ElementType.ID),
    _el(4, False, 1, 17, ElementType.N),
]


TRANSACTION_SET_RULES: Dict[str, List[SegmentRule]] = {
    "850": [
        SegmentRule(segment_id="BEG", required=True, max_occurs=1, elements=[
            _el(1, True, 2, 2, ElementType.ID),
            _el(2, True, 2, 2, ElementType.ID),
            _el(3, True, 1, 22),
            _el(5, True, 6, 8, ElementType.DT),
        ]),
        _CUR, _REF, _PER, _DTM, _TD5, _N1, _N3, _N4,
        SegmentRule(segment_id="PO1", required=True, elements=_LINE_ITEM_ELEMENTS),
        _PID,
        _TXI,
        _CTT,
        SegmentRule(segment_id="AMT", elements=[
            _el(1, True, 1, 3, ElementType.ID),
            _el(2, True, 1, 18, ElementType.N),
        ]),
    ],
    "855": [
        SegmentRule(segment_id="BAK", required=True, max_occurs=1, elements=[
            _el(1, True, 2, 2, ElementType.ID),
            _el(2, True, 2, 2, ElementType.ID),
            _el(3, True, 1, 22),
            _el(4, True, 6, 8, ElementType.DT),
            _el(9, False, 6, 8, ElementType.DT),
        ]),
        _CUR, _REF, _PER, _DTM, _N1, _N3, _N4,
        SegmentRule(segment_id="PO1", elements=_LINE_ITEM_ELEMENTS),
        _PID,
        SegmentRule(segment_id="ACK", elements=[
            _el(1, True, 2, 2, ElementType.ID),
            _el(2, False, 1, 15, ElementType.N),
            _el(3, False, 2, 2, ElementType.ID),
            _el(5, False, 6, 8, ElementType.DT),
        ]),
        _CTT,
    ],
    "856": [
        SegmentRule(segment_id="BSN", required=True, max_occurs=1, elements=[
            _el(1, True, 2, 2, ElementType.ID),
            _el(2, True, 2, 30),
            _el(3, True, 6, 8, ElementType.DT),
            _el(4, True, 4, 8, ElementType.TM),
        ]),
        _DTM,
        SegmentRule(segment_id="HL", required=True, elements=[
            _el(1, True, 1, 12),
            _el(2, False, 1, 12),
            _el(3, True, 1, 2, ElementType.ID),
        ]),
        _TD1, _TD5, _REF, _N1, _N3, _N4,
        SegmentRule(segment_id="PRF", elements=[_el(1, True, 1, 22), _el(4, False, 6, 8, ElementType.DT)]),
        SegmentRule(segment_id="MAN", elements=[_el(1, True, 1, 2, ElementType.ID), _el(2, True, 1, 48)]),
        SegmentRule(segment_id="LIN", elements=[_el(2, True, 2, 2, ElementType.ID), _el(3, True, 1, 48)]),
        SegmentRule(segment_id="SN1", elements=[
            _el(2, True, 1, 10, ElementType.N),
            _el(3, True, 2, 2, ElementType.ID),
        ]),
        _PID,
        _CTT,
    ],
    "810": [
        SegmentRule(segment_id="BIG", required=True, max_occurs=1, elements=[
            _el(1, True, 6, 8, ElementType.DT),
            _el(2, True, 1, 22),
            _el(3, False, 6, 8, ElementType.DT),
        ]),
        _CUR, _REF, _N1, _N3, _N4,
        SegmentRule(segment_id="ITD", elements=[
            _el(3, False, 1, 6, ElementType.N),
            _el(5, False, 1, 3, ElementType.N),
            _el(7, False, 1, 3, ElementType.N),
        ]),
        _DTM,
        SegmentRule(segment_id="IT1", required=True, elements=_LINE_ITEM_ELEMENTS),
        _PID,
        _TXI,
        SegmentRule(segment_id="SAC", elements=[
            _el(1, True, 1, 1, ElementType.ID, ["A", "C", "N"]),
            _el(5, False, 1, 15, ElementType.N),
        ]),
        SegmentRule(segment_id="TDS", required=True, max_occurs=1, elements=[
            _el(1, True, 1, 15, ElementType.N),
            _el(2, False, 1, 15, ElementType.N),
        ]),
        SegmentRule(segment_id="CAD"),
        SegmentRule(segment_id="ISS", elements=[_el(1, False, 1, 10, ElementType.N)]),
        _CTT,
    ],
    "997": [
        SegmentRule(segment_id="AK1", required=True, max_occurs=1, elements=[
            _el(1, True, 2, 2, ElementType.ID),
            _el(2, True, 1, 9, ElementType.N),
        ]),
        SegmentRule(segment_id="AK2", elements=[
            _el(1, True, 3, 3, ElementType.ID),
            _el(2, True, 4, 9),
        ]),
        SegmentRule(segment_id="AK3", elements=[
            _el(1, True, 2, 3, ElementType.ID),
            _el(2, True, 1, 6, ElementType.N),
        ]),
        SegmentRule(segment_id="AK4", elements=[_el(3, True, 1, 3, ElementType.ID)]),
        SegmentRule(segment_id="AK5", required=True, elements=[
            _el(1, True, 1, 1, ElementType.ID, ["A", "E", "M", "R", "W", "X"]),
        ]),
        SegmentRule(segment_id="AK9", required=True, max_occurs=1, elements=[
            _el(1, True, 1, 1, ElementType.ID, ["A", "E", "M", "P", "R", "W", "X"]),
            _el(2, True, 1, 6, ElementType.N),
            _el(3, True, 1, 6, ElementType.N),
            _el(4, True, 1, 6, ElementType.N),
        ]),
    ],
}


class ValidatorConfig:
    """Rule tables used by the validator, optionally overridden per partner."""

    def __init__(self, rules: Optional[Dict[str, List[SegmentRule]]] = None):
        self.rules = dict(TRANSACTION_SET_RULES)
        if rules:
            self.rules.update(rules)
            logger.info("Loaded partner rule overrides", transaction_sets=sorted(rules))

    def get_rules(self, transaction_set_code: str) -> Optional[List[SegmentRule]]:
        """Rules for a transaction set, or None when it has no table."""
        return self.rules.get(transaction_set_code)

    def is_supported(self, transaction_set_code: str) -> bool:
        return transaction_set_code in self.rules


def functional_code_for(transaction_set_code: str) -> str:
    """GS01 value for a transaction set code."""
    return FUNCTIONAL_CODE_MAP.get(transaction_set_code, DEFAULT_FUNCTIONAL_CODE)


# Canonical mapping tables: X12 code -> canonical name

ENTITY_CODE_MAP = {
    "BY": "buyer",
    "SE": "seller",
    "ST": "ship_to",
    "BT": "bill_to",
    "RI": "remit_to",
    "SF": "ship_from",
    "VN": "vendor",
    "SU": "supplier",
    "MF": "manufacturer",
}

ID_QUALIFIER_MAP = {
    "01": "duns",
    "08": "uba",
    "09": "duns_plus_4",
    "14": "duns_plus_suffix",
    "91": "assigned_by_seller",
    "92": "assigned_by_buyer",
    "UL": "gln",
    "ZZ": "mutually_defined",
}

UNIT_OF_MEASURE_MAP = {
    "EA": "each",
    "BX": "box",
    "CA": "case",
    "CT": "carton",
    "DZ": "dozen",
    "KG": "kilogram",
    "LB": "pound",
    "PK": "package",
    "PC": "piece",
}

REFERENCE_QUALIFIER_MAP = {
    "AH": "agreement_number",
    "BM": "bill_of_lading",
    "CN": "carrier_reference",
    "CO": "customer_order_number",
    "CT": "contract_number",
    "IN": "invoice_number",
    "IT": "internal_customer_number",
    "PO": "purchase_order_number",
    "SA": "salesperson",
    "SI": "shipper_identification",
    "VN": "vendor_order_number",
}

PRODUCT_QUALIFIER_MAP = {
    "BP": "buyer_part_number",
    "EN": "ean",
    "IN": "buyer_item_number",
    "MG": "manufacturer_part_number",
    "MN": "model_number",
    "SK": "sku",
    "UP": "upc",
    "VN": "vendor_item_number",
    "VP": "vendor_part_number",
}

# BEG01 / BAK01 transaction set purpose
ORDER_PURPOSE_MAP = {
    "00": "purchase_order",
    "01": "cancellation",
    "04": "change",
    "05": "replace",
    "06": "confirmation",
    "07": "duplicate",
}

# BAK02
ACKNOWLEDGMENT_TYPE_MAP = {
    "AC": "accepted_with_changes",
    "AD": "accepted",
    "AE": "accepted_with_exceptions",
    "AK": "acknowledged",
    "RD": "rejected_with_detail",
    "RJ": "rejected",
}

# ACK01
LINE_STATUS_MAP = {
    "IA": "accepted",
    "IB": "backordered",
    "IC": "changed",
    "ID": "deleted",
    "IQ": "quantity_changed",
    "IR": "rejected",
    "IS": "substituted",
    "DR": "date_rescheduled",
}

CONTACT_NUMBER_QUALIFIERS = {"phone": "TE", "email": "EM", "fax": "FX"}

REQUESTED_DELIVERY_QUALIFIER = "002"
SCHEDULED_SHIP_QUALIFIER = "068"
TRACKING_NUMBER_QUALIFIER = "CN"
TOTAL_AMOUNT_QUALIFIER = "TT"
ALL_TAXES_TYPE = "TX"
