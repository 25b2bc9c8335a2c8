"""Typed records for the supported transaction sets.

Each record carries a literal ``transaction_set_code`` so a
``TransactionSetData`` value can be told apart without isinstance checks.
Numeric elements are ``Decimal``; dates and times stay in their X12 form.
"""
from decimal import Decimal
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

from x12engine.models.envelope import X12Issue


# Shared segment records

class Reference(BaseModel):
    """REF segment."""

    qualifier: str
    identifier: str = ""
    description: Optional[str] = None


class DateTimeReference(BaseModel):
    """DTM segment."""

    qualifier: str
    date: Optional[str] = None
    time: Optional[str] = None


class CommunicationNumber(BaseModel):
    qualifier: str
    number: str


class Contact(BaseModel):
    """PER segment."""

    function_code: str
    name: Optional[str] = None
    communications: List[CommunicationNumber] = Field(default_factory=list)


class Address(BaseModel):
    """N3/N4 pair."""

    address_lines: List[str] = Field(default_factory=list)
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country_code: Optional[str] = None


class Party(BaseModel):
    """N1 loop."""

    entity_code: str
    name: Optional[str] = None
    id_qualifier: Optional[str] = None
    id_code: Optional[str] = None
    address: Optional[Address] = None
    contacts: List[Contact] = Field(default_factory=list)


class ProductId(BaseModel):
    """Qualifier/value pair from PO1, IT1 or LIN."""

    qualifier: str
    value: str


class ItemDescription(BaseModel):
    """PID segment."""

    description_type: str = "F"
    description: Optional[str] = None


class TaxInfo(BaseModel):
    """TXI segment."""

    tax_type: str
    amount: Optional[Decimal] = None
    percent: Optional[Decimal] = None
    jurisdiction_code: Optional[str] = None
    exempt_code: Optional[str] = None


class AllowanceCharge(BaseModel):
    """SAC segment; ``amount`` is already scaled from implied cents."""

    indicator: str
    code: Optional[str] = None
    amount: Optional[Decimal] = None
    description: Optional[str] = None


class CarrierDetail(BaseModel):
    """TD5 segment."""

    routing_sequence_code: Optional[str] = None
    id_qualifier: Optional[str] = None
    carrier_code: Optional[str] = None
    transportation_method: Optional[str] = None
    routing: Optional[str] = None


class MonetaryAmount(BaseModel):
    """AMT segment."""

    qualifier: str
    amount: Optional[Decimal] = None


# 850 Purchase Order

class PurchaseOrderLine(BaseModel):
    """PO1 loop."""

    assigned_id: Optional[str] = None
    quantity: Optional[Decimal] = None
    unit_of_measure: Optional[str] = None
    unit_price: Optional[Decimal] = None
    basis_of_unit_price: Optional[str] = None
    product_ids: List[ProductId] = Field(default_factory=list)
    descriptions: List[ItemDescription] = Field(default_factory=list)
    references: List[Reference] = Field(default_factory=list)
    dates: List[DateTimeReference] = Field(default_factory=list)
    taxes: List[TaxInfo] = Field(default_factory=list)


class PurchaseOrder850(BaseModel):
    transaction_set_code: Literal["850"] = "850"
    control_number: str = "0001"
    purpose_code: str = "00"
    order_type_code: str = "SA"
    purchase_order_number: str
    release_number: Optional[str] = None
    order_date: str
    contract_number: Optional[str] = None
    currency_code: Optional[str] = None
    exchange_rate: Optional[Decimal] = None
    references: List[Reference] = Field(default_factory=list)
    contacts: List[Contact] = Field(default_factory=list)
    dates: List[DateTimeReference] = Field(default_factory=list)
    carrier_details: List[CarrierDetail] = Field(default_factory=list)
    parties: List[Party] = Field(default_factory=list)
    line_items: List[PurchaseOrderLine] = Field(default_factory=list)
    total_line_items: Optional[int] = None
    hash_total: Optional[Decimal] = None
    amounts: List[MonetaryAmount] = Field(default_factory=list)


# 855 Purchase Order Acknowledgment

class LineAcknowledgment(BaseModel):
    """ACK segment."""

    status_code: str
    quantity: Optional[Decimal] = None
    unit_of_measure: Optional[str] = None
    date_qualifier: Optional[str] = None
    date: Optional[str] = None


class AcknowledgmentLine(PurchaseOrderLine):
    """PO1 loop of an 855, with its ACK detail."""

    acknowledgments: List[LineAcknowledgment] = Field(default_factory=list)


class PurchaseOrderAck855(BaseModel):
    transaction_set_code: Literal["855"] = "855"
    control_number: str = "0001"
    purpose_code: str = "00"
    acknowledgment_type: str = "AD"
    purchase_order_number: str
    purchase_order_date: str
    release_number: Optional[str] = None
    request_reference: Optional[str] = None
    contract_number: Optional[str] = None
    acknowledgment_date: Optional[str] = None
    currency_code: Optional[str] = None
    references: List[Reference] = Field(default_factory=list)
    contacts: List[Contact] = Field(default_factory=list)
    dates: List[DateTimeReference] = Field(default_factory=list)
    parties: List[Party] = Field(default_factory=list)
    line_items: List[AcknowledgmentLine] = Field(default_factory=list)
    total_line_items: Optional[int] = None


# 856 Ship Notice

class Packaging(BaseModel):
    """TD1 segment."""

    packaging_code: Optional[str] = None
    lading_quantity: Optional[int] = None
    weight_qualifier: Optional[str] = None
    weight: Optional[Decimal] = None
    weight_unit: Optional[str] = None


class ItemDetail(BaseModel):
    """Item (I) level content."""

    line_number: Optional[str] = None
    product_ids: List[ProductId] = Field(default_factory=list)
    assigned_id: Optional[str] = None
    quantity_shipped: Optional[Decimal] = None
    unit_of_measure: Optional[str] = None
    descriptions: List[str] = Field(default_factory=list)
    serial_numbers: List[str] = Field(default_factory=list)
    references: List[Reference] = Field(default_factory=list)


class ShipmentDetail(BaseModel):
    """Shipment (S) level content."""

    packaging: Optional[Packaging] = None
    carrier: Optional[CarrierDetail] = None
    references: List[Reference] = Field(default_factory=list)
    dates: List[DateTimeReference] = Field(default_factory=list)
    parties: List[Party] = Field(default_factory=list)


class OrderDetail(BaseModel):
    """Order (O) level content."""

    purchase_order_number: Optional[str] = None
    release_number: Optional[str] = None
    purchase_order_date: Optional[str] = None
    references: List[Reference] = Field(default_factory=list)
    dates: List[DateTimeReference] = Field(default_factory=list)


class PackDetail(BaseModel):
    """Pack (P) level content; ``items`` are the I levels beneath it."""

    packaging: Optional[Packaging] = None
    marks: List[str] = Field(default_factory=list)
    items: List[ItemDetail] = Field(default_factory=list)


class HierarchicalLevel(BaseModel):
    """HL segment and the detail routed to it."""

    hl_id: str
    parent_id: Optional[str] = None
    level_code: str
    child_code: Optional[str] = None
    shipment: Optional[ShipmentDetail] = None
    order: Optional[OrderDetail] = None
    pack: Optional[PackDetail] = None
    item: Optional[ItemDetail] = None


class ShipNotice856(BaseModel):
    transaction_set_code: Literal["856"] = "856"
    control_number: str = "0001"
    purpose_code: str = "00"
    shipment_id: str
    shipment_date: str
    shipment_time: Optional[str] = None
    hierarchical_structure_code: Optional[str] = None
    dates: List[DateTimeReference] = Field(default_factory=list)
    hierarchical_levels: List[HierarchicalLevel] = Field(default_factory=list)
    # Every item level in document order, packed or not
    items: List[ItemDetail] = Field(default_factory=list)
    total_line_items: Optional[int] = None


# 810 Invoice

class InvoiceLine(PurchaseOrderLine):
    """IT1 loop."""

    allowances: List[AllowanceCharge] = Field(default_factory=list)


class TermsOfSale(BaseModel):
    """ITD segment."""

    terms_type_code: Optional[str] = None
    basis_date_code: Optional[str] = None
    discount_percent: Optional[Decimal] = None
    discount_due_date: Optional[str] = None
    discount_days: Optional[int] = None
    net_due_date: Optional[str] = None
    net_days: Optional[int] = None
    discount_amount: Optional[Decimal] = None
    description: Optional[str] = None


class CarrierSummary(BaseModel):
    """CAD segment."""

    transportation_method: Optional[str] = None
    carrier_code: Optional[str] = None
    routing: Optional[str] = None
    shipment_status: Optional[str] = None


class ShipmentSummary(BaseModel):
    """ISS segment."""

    units_shipped: Optional[Decimal] = None
    unit_of_measure: Optional[str] = None
    weight: Optional[Decimal] = None
    weight_unit: Optional[str] = None


class Invoice810(BaseModel):
    transaction_set_code: Literal["810"] = "810"
    control_number: str = "0001"
    invoice_date: str
    invoice_number: str
    purchase_order_date: Optional[str] = None
    purchase_order_number: Optional[str] = None
    release_number: Optional[str] = None
    change_order_sequence: Optional[str] = None
    transaction_type_code: Optional[str] = None
    currency_code: Optional[str] = None
    references: List[Reference] = Field(default_factory=list)
    parties: List[Party] = Field(default_factory=list)
    terms: List[TermsOfSale] = Field(default_factory=list)
    dates: List[DateTimeReference] = Field(default_factory=list)
    line_items: List[InvoiceLine] = Field(default_factory=list)
    total_amount: Optional[Decimal] = None
    subtotal_amount: Optional[Decimal] = None
    discounted_amount: Optional[Decimal] = None
    terms_discount_amount: Optional[Decimal] = None
    taxes: List[TaxInfo] = Field(default_factory=list)
    allowances: List[AllowanceCharge] = Field(default_factory=list)
    carrier_summary: Optional[CarrierSummary] = None
    shipment_summary: Optional[ShipmentSummary] = None
    total_line_items: Optional[int] = None
    hash_total: Optional[Decimal] = None


# 997 Functional Acknowledgment

class ElementError(BaseModel):
    """AK4 segment."""

    position: int
    component_position: Optional[int] = None
    element_reference: Optional[str] = None
    error_code: str
    bad_value: Optional[str] = None


class SegmentError(BaseModel):
    """AK3 segment with its AK4 children."""

    segment_id: str
    position: int
    loop_id: Optional[str] = None
    error_code: Optional[str] = None
    element_errors: List[ElementError] = Field(default_factory=list)


class TransactionSetResponse(BaseModel):
    """AK2 loop closed by AK5."""

    transaction_set_code: str
    control_number: str
    implementation_reference: Optional[str] = None
    segment_errors: List[SegmentError] = Field(default_factory=list)
    acknowledgment_code: Optional[str] = None
    syntax_error_codes: List[str] = Field(default_factory=list)


class FunctionalAck997(BaseModel):
    transaction_set_code: Literal["997"] = "997"
    control_number: str = "0001"
    functional_code: str
    group_control_number: str
    version_code: Optional[str] = None
    transaction_set_responses: List[TransactionSetResponse] = Field(default_factory=list)
    group_acknowledgment_code: str = "A"
    number_included: int = 0
    number_received: int = 0
    number_accepted: int = 0
    group_syntax_error_codes: List[str] = Field(default_factory=list)


class UnsupportedTransactionSet(BaseModel):
    """Placeholder for a transaction set without a typed parser."""

    transaction_set_code: str
    control_number: str = ""


TransactionSetData = Union[
    PurchaseOrder850,
    PurchaseOrderAck855,
    ShipNotice856,
    Invoice810,
    FunctionalAck997,
    UnsupportedTransactionSet,
]


class TransactionSetParseResult(BaseModel):
    data: Optional[TransactionSetData] = None
    errors: List[X12Issue] = Field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(issue.is_error for issue in self.errors)
