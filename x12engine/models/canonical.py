"""Canonical business objects, independent of any EDI standard.

Dates are ISO-8601 strings (``YYYY-MM-DD``); a value the mapper could not
interpret is kept as received. Amounts and quantities are ``Decimal``.
Coded values that have no semantic name are carried with
``type="unknown"`` and the raw X12 code in ``code``.
"""
from decimal import Decimal
from typing import Annotated, List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.functional_validators import BeforeValidator


def _coerce_decimal(value):
    """Accept str/int/float input for Decimal fields."""
    if value is None or isinstance(value, Decimal):
        return value
    if isinstance(value, (int, float)):
        return Decimal(str(value))
    if isinstance(value, str):
        value = value.strip()
        return Decimal(value) if value else None
    return value


Amount = Annotated[Optional[Decimal], BeforeValidator(_coerce_decimal)]


class CanonicalBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class CanonicalIdentifier(CanonicalBase):
    type: str
    value: str
    code: Optional[str] = None  # raw qualifier when type is "unknown"


class CanonicalAddress(CanonicalBase):
    street1: Optional[str] = None
    street2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class CanonicalContact(CanonicalBase):
    type: str = "IC"
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    fax: Optional[str] = None


class CanonicalParty(CanonicalBase):
    """A trading party; only the first identifier travels on N1.

    ``role`` is set only on parties outside the named slots of a document.
    """

    role: Optional[str] = None
    name: Optional[str] = None
    identifiers: List[CanonicalIdentifier] = Field(default_factory=list)
    address: Optional[CanonicalAddress] = None
    contacts: List[CanonicalContact] = Field(default_factory=list)


class CanonicalReference(CanonicalBase):
    type: str
    value: str
    description: Optional[str] = None
    code: Optional[str] = None


class CanonicalShippingDetails(CanonicalBase):
    carrier: Optional[str] = None
    service_type: Optional[str] = None
    routing: Optional[str] = None


class CanonicalLine(CanonicalBase):
    """Priced line; ``extended_price`` is derived and never carried in X12."""

    line_number: str
    quantity: Amount = None
    unit_of_measure: Optional[str] = None
    unit_price: Amount = None
    product_identifiers: List[CanonicalIdentifier] = Field(default_factory=list)
    description: Optional[str] = None
    references: List[CanonicalReference] = Field(default_factory=list)

    @computed_field
    @property
    def extended_price(self) -> Optional[Decimal]:
        if self.quantity is None or self.unit_price is None:
            return None
        return self.quantity * self.unit_price


class CanonicalOrderLine(CanonicalLine):
    requested_delivery_date: Optional[str] = None
    # Acknowledgment detail (855)
    status: Optional[str] = None
    acknowledged_quantity: Amount = None
    scheduled_date: Optional[str] = None


class CanonicalOrderTotals(CanonicalBase):
    line_item_count: Optional[int] = None
    total_amount: Amount = None


class CanonicalOrder(CanonicalBase):
    """Purchase order, or its acknowledgment when ``status`` is set."""

    order_number: str
    order_date: Optional[str] = None
    order_type: str = "purchase_order"
    status: Optional[str] = None
    acknowledgment_date: Optional[str] = None
    currency: Optional[str] = None
    buyer: Optional[CanonicalParty] = None
    seller: Optional[CanonicalParty] = None
    ship_to: Optional[CanonicalParty] = None
    bill_to: Optional[CanonicalParty] = None
    additional_parties: List[CanonicalParty] = Field(default_factory=list)
    contacts: List[CanonicalContact] = Field(default_factory=list)
    line_items: List[CanonicalOrderLine] = Field(default_factory=list)
    references: List[CanonicalReference] = Field(default_factory=list)
    totals: Optional[CanonicalOrderTotals] = None
    shipping_details: Optional[CanonicalShippingDetails] = None


class CanonicalTax(CanonicalBase):
    type: str
    amount: Amount = None
    rate: Amount = None


class CanonicalInvoiceLine(CanonicalLine):
    taxes: List[CanonicalTax] = Field(default_factory=list)


class CanonicalInvoiceTotals(CanonicalBase):
    subtotal: Amount = None
    tax_amount: Amount = None
    discount_amount: Amount = None
    total_amount: Amount = None


class CanonicalPaymentTerms(CanonicalBase):
    type_code: Optional[str] = None
    net_days: Optional[int] = None
    discount_percent: Amount = None
    discount_days: Optional[int] = None
    description: Optional[str] = None


class CanonicalInvoice(CanonicalBase):
    invoice_number: str
    invoice_date: Optional[str] = None
    purchase_order_number: Optional[str] = None
    purchase_order_date: Optional[str] = None
    currency: Optional[str] = None
    seller: Optional[CanonicalParty] = None
    buyer: Optional[CanonicalParty] = None
    bill_to: Optional[CanonicalParty] = None
    remit_to: Optional[CanonicalParty] = None
    ship_to: Optional[CanonicalParty] = None
    additional_parties: List[CanonicalParty] = Field(default_factory=list)
    line_items: List[CanonicalInvoiceLine] = Field(default_factory=list)
    references: List[CanonicalReference] = Field(default_factory=list)
    totals: CanonicalInvoiceTotals = Field(default_factory=CanonicalInvoiceTotals)
    payment_terms: Optional[CanonicalPaymentTerms] = None


class CanonicalShipmentItem(CanonicalBase):
    line_number: Optional[str] = None
    quantity: Amount = None
    unit_of_measure: Optional[str] = None
    product_identifiers: List[CanonicalIdentifier] = Field(default_factory=list)
    description: Optional[str] = None
    serial_numbers: List[str] = Field(default_factory=list)


class CanonicalPackage(CanonicalBase):
    package_type: Optional[str] = None
    weight: Amount = None
    weight_unit: Optional[str] = None
    marks: List[str] = Field(default_factory=list)
    items: List[CanonicalShipmentItem] = Field(default_factory=list)


class CanonicalCarrier(CanonicalBase):
    code: Optional[str] = None
    service_type: Optional[str] = None
    routing: Optional[str] = None
    tracking_numbers: List[str] = Field(default_factory=list)


class CanonicalShipmentTotals(CanonicalBase):
    package_count: Optional[int] = None
    item_count: Optional[int] = None
    weight: Amount = None
    weight_unit: Optional[str] = None


class CanonicalShipment(CanonicalBase):
    """Ship notice.

    ``items`` lists every item: packaged items in package order first,
    then items that belong to no package.
    """

    shipment_number: str
    shipment_date: Optional[str] = None
    shipment_time: Optional[str] = None
    purchase_order_numbers: List[str] = Field(default_factory=list)
    carrier: Optional[CanonicalCarrier] = None
    ship_from: Optional[CanonicalParty] = None
    ship_to: Optional[CanonicalParty] = None
    additional_parties: List[CanonicalParty] = Field(default_factory=list)
    packages: List[CanonicalPackage] = Field(default_factory=list)
    items: List[CanonicalShipmentItem] = Field(default_factory=list)
    references: List[CanonicalReference] = Field(default_factory=list)
    totals: Optional[CanonicalShipmentTotals] = None
