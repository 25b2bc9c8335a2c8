"""Bidirectional mapping between typed X12 records and canonical objects."""
import re
from decimal import Decimal
from typing import Callable, Dict, List, Optional, Tuple, Union

from x12engine.models.canonical import (
    CanonicalAddress,
    CanonicalCarrier,
    CanonicalContact,
    CanonicalIdentifier,
    CanonicalInvoice,
    CanonicalInvoiceLine,
    CanonicalInvoiceTotals,
    CanonicalOrder,
    CanonicalOrderLine,
    CanonicalOrderTotals,
    CanonicalPackage,
    CanonicalParty,
    CanonicalPaymentTerms,
    CanonicalReference,
    CanonicalShipment,
    CanonicalShipmentItem,
    CanonicalShipmentTotals,
    CanonicalShippingDetails,
    CanonicalTax,
)
from x12engine.models.transaction_sets import (
    AcknowledgmentLine,
    Address,
    CarrierDetail,
    CommunicationNumber,
    Contact,
    DateTimeReference,
    HierarchicalLevel,
    Invoice810,
    InvoiceLine,
    ItemDescription,
    ItemDetail,
    LineAcknowledgment,
    MonetaryAmount,
    OrderDetail,
    PackDetail,
    Packaging,
    Party,
    ProductId,
    PurchaseOrder850,
    PurchaseOrderAck855,
    PurchaseOrderLine,
    Reference,
    ShipmentDetail,
    ShipNotice856,
    TaxInfo,
    TermsOfSale,
    TransactionSetData,
)
from x12engine.services.x12.config import (
    ACKNOWLEDGMENT_TYPE_MAP,
    ALL_TAXES_TYPE,
    CONTACT_NUMBER_QUALIFIERS,
    ENTITY_CODE_MAP,
    ID_QUALIFIER_MAP,
    LINE_STATUS_MAP,
    ORDER_PURPOSE_MAP,
    PRODUCT_QUALIFIER_MAP,
    REFERENCE_QUALIFIER_MAP,
    REQUESTED_DELIVERY_QUALIFIER,
    SCHEDULED_SHIP_QUALIFIER,
    TOTAL_AMOUNT_QUALIFIER,
    TRACKING_NUMBER_QUALIFIER,
    UNIT_OF_MEASURE_MAP,
)
from x12engine.utils.errors import MappingError
from x12engine.utils.decimal_utils import parse_financial_amount
from x12engine.utils.logger import get_logger

logger = get_logger(__name__)

UNKNOWN = "unknown"
ISO_DATE_PATTERN = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")

CanonicalDocument = Union[CanonicalOrder, CanonicalInvoice, CanonicalShipment]


class CodeTable:
    """
    Two-way lookup between X12 codes and canonical names.

    Unknown codes pass through unchanged in both directions, so plain string
    fields survive a round trip. Identifier-shaped values use
    ``to_identifier``/``from_identifier`` instead, which tag unknown codes.
    """

    def __init__(self, name: str, codes: Dict[str, str]):
        self.name = name
        self.codes = codes
        self.names = {canonical: code for code, canonical in codes.items()}

    def to_name(self, code: Optional[str]) -> Optional[str]:
        if code is None:
            return None
        if code in self.codes:
            return self.codes[code]
        logger.debug("Unknown code passed through", table=self.name, code=code)
        return code

    def to_code(self, name: Optional[str]) -> Optional[str]:
        if name is None:
            return None
        return self.names.get(name, name)

    def to_identifier(self, code: Optional[str], value: str) -> CanonicalIdentifier:
        if code in self.codes:
            return CanonicalIdentifier(type=self.codes[code], value=value)
        logger.debug("Unknown identifier qualifier", table=self.name, code=code)
        return CanonicalIdentifier(type=UNKNOWN, value=value, code=code)

    def from_identifier(self, identifier: CanonicalIdentifier) -> Optional[str]:
        if identifier.type == UNKNOWN:
            return identifier.code
        return self.names.get(identifier.type, identifier.code or identifier.type)


ENTITY_CODES = CodeTable("entity", ENTITY_CODE_MAP)
ID_QUALIFIERS = CodeTable("id_qualifier", ID_QUALIFIER_MAP)
UNITS_OF_MEASURE = CodeTable("unit_of_measure", UNIT_OF_MEASURE_MAP)
REFERENCE_QUALIFIERS = CodeTable("reference", REFERENCE_QUALIFIER_MAP)
PRODUCT_QUALIFIERS = CodeTable("product", PRODUCT_QUALIFIER_MAP)
ORDER_PURPOSES = CodeTable("order_purpose", ORDER_PURPOSE_MAP)
ACKNOWLEDGMENT_TYPES = CodeTable("acknowledgment_type", ACKNOWLEDGMENT_TYPE_MAP)
LINE_STATUSES = CodeTable("line_status", LINE_STATUS_MAP)


def x12_date_to_iso(value: Optional[str]) -> Optional[str]:
    """
    CCYYMMDD or YYMMDD to ``YYYY-MM-DD``; anything else passes through.

    Two-digit years below 50 are read as 20YY.
    """
    if not value:
        return None
    if len(value) == 8 and value.isdigit():
        return f"{value[:4]}-{value[4:6]}-{value[6:]}"
    if len(value) == 6 and value.isdigit():
        century = "20" if int(value[:2]) < 50 else "19"
        return f"{century}{value[:2]}-{value[2:4]}-{value[4:]}"
    return value


def iso_to_x12_date(value: Optional[str]) -> Optional[str]:
    """``YYYY-MM-DD`` to CCYYMMDD; anything else passes through."""
    if not value:
        return None
    match = ISO_DATE_PATTERN.match(value)
    if match:
        return "".join(match.groups())
    return value


def _date_for(dates: List[DateTimeReference], qualifier: str) -> Optional[str]:
    return next((x12_date_to_iso(d.date) for d in dates if d.qualifier == qualifier), None)


# Parties, references and identifiers

def _address_lines(address: CanonicalAddress) -> List[str]:
    """N301/N302 lines; N301 is mandatory, so street2 needs street1."""
    if address.street2 and not address.street1:
        raise MappingError("Address has street2 but no street1", details={"street2": address.street2})
    return [line for line in (address.street1, address.street2) if line]


def party_to_canonical(party: Party, with_role: bool = False) -> CanonicalParty:
    identifiers = []
    if party.id_code:
        identifiers.append(ID_QUALIFIERS.to_identifier(party.id_qualifier, party.id_code))

    address = None
    if party.address is not None:
        lines = party.address.address_lines
        address = CanonicalAddress(
            street1=lines[0] if lines else None,
            street2=" ".join(lines[1:]) if len(lines) > 1 else None,
            city=party.address.city,
            state=party.address.state,
            postal_code=party.address.postal_code,
            country=party.address.country_code,
        )

    return CanonicalParty(
        role=ENTITY_CODES.to_name(party.entity_code) if with_role else None,
        name=party.name,
        identifiers=identifiers,
        address=address,
        contacts=[contact_to_canonical(contact) for contact in party.contacts],
    )


def party_from_canonical(party: CanonicalParty, entity_code: Optional[str] = None) -> Party:
    id_qualifier = id_code = None
    if party.identifiers:
        id_qualifier = ID_QUALIFIERS.from_identifier(party.identifiers[0])
        id_code = party.identifiers[0].value

    address = None
    if party.address is not None:
        source = party.address
        address = Address(
            address_lines=_address_lines(source),
            city=source.city,
            state=source.state,
            postal_code=source.postal_code,
            country_code=source.country,
        )

    return Party(
        entity_code=entity_code or ENTITY_CODES.to_code(party.role) or "",
        name=party.name,
        id_qualifier=id_qualifier,
        id_code=id_code,
        address=address,
        contacts=[contact_from_canonical(contact) for contact in party.contacts],
    )


def contact_to_canonical(contact: Contact) -> CanonicalContact:
    numbers = {c.qualifier: c.number for c in contact.communications}
    return CanonicalContact(
        type=contact.function_code,
        name=contact.name,
        phone=numbers.get(CONTACT_NUMBER_QUALIFIERS["phone"]),
        email=numbers.get(CONTACT_NUMBER_QUALIFIERS["email"]),
        fax=numbers.get(CONTACT_NUMBER_QUALIFIERS["fax"]),
    )


def contact_from_canonical(contact: CanonicalContact) -> Contact:
    communications = []
    for field, qualifier in CONTACT_NUMBER_QUALIFIERS.items():
        number = getattr(contact, field)
        if number:
            communications.append(CommunicationNumber(qualifier=qualifier, number=number))
    return Contact(function_code=contact.type, name=contact.name, communications=communications)


def reference_to_canonical(reference: Reference) -> CanonicalReference:
    if reference.qualifier in REFERENCE_QUALIFIERS.codes:
        return CanonicalReference(
            type=REFERENCE_QUALIFIERS.codes[reference.qualifier],
            value=reference.identifier,
            description=reference.description,
        )
    return CanonicalReference(type=UNKNOWN, value=reference.identifier, description=reference.description, code=reference.qualifier)


def reference_from_canonical(reference: CanonicalReference) -> Reference:
    if reference.type == UNKNOWN:
        qualifier = reference.code or ""
    else:
        qualifier = REFERENCE_QUALIFIERS.names.get(reference.type, reference.code or reference.type)
    return Reference(qualifier=qualifier, identifier=reference.value, description=reference.description)


def product_ids_to_canonical(product_ids: List[ProductId]) -> List[CanonicalIdentifier]:
    return [PRODUCT_QUALIFIERS.to_identifier(p.qualifier, p.value) for p in product_ids]


def product_ids_from_canonical(identifiers: List[CanonicalIdentifier]) -> List[ProductId]:
    return [
        ProductId(qualifier=PRODUCT_QUALIFIERS.from_identifier(identifier) or "", value=identifier.value)
        for identifier in identifiers
    ]


def _first_description(descriptions: List[ItemDescription]) -> Optional[str]:
    return next((d.description for d in descriptions if d.description), None)


def _assign_parties(parties: List[Party], slots: Dict[str, str]) -> Tuple[Dict[str, CanonicalParty], List[CanonicalParty]]:
    """Split parties into named slots (first per entity code) and the rest."""
    named: Dict[str, CanonicalParty] = {}
    additional = []
    for party in parties:
        slot = slots.get(party.entity_code)
        if slot is not None and slot not in named:
            named[slot] = party_to_canonical(party)
        else:
            additional.append(party_to_canonical(party, with_role=True))
    return named, additional


def _slot_parties(document, slots: Dict[str, str]) -> List[Party]:
    parties = []
    for entity_code, slot in slots.items():
        party = getattr(document, slot)
        if party is not None:
            parties.append(party_from_canonical(party, entity_code))
    parties.extend(party_from_canonical(party) for party in document.additional_parties)
    return parties


ORDER_PARTY_SLOTS = {"BY": "buyer", "SE": "seller", "ST": "ship_to", "BT": "bill_to"}
INVOICE_PARTY_SLOTS = {"SE": "seller", "BY": "buyer", "BT": "bill_to", "RI": "remit_to", "ST": "ship_to"}
SHIPMENT_PARTY_SLOTS = {"SF": "ship_from", "ST": "ship_to"}


class X12Mapper:
    """
    Map typed transaction sets to canonical business objects and back.

    Mapping a canonical object to X12 and back yields an equal object. Only
    the first party identifier and the first two street lines are carried.
    """

    # 850

    def map_850_to_order(self, order: PurchaseOrder850) -> CanonicalOrder:
        named, additional = _assign_parties(order.parties, ORDER_PARTY_SLOTS)

        totals = None
        total_amount = next((a.amount for a in order.amounts if a.qualifier == TOTAL_AMOUNT_QUALIFIER), None)
        if order.total_line_items is not None or total_amount is not None:
            totals = CanonicalOrderTotals(line_item_count=order.total_line_items, total_amount=total_amount)

        shipping = None
        if order.carrier_details:
            carrier = order.carrier_details[0]
            shipping = CanonicalShippingDetails(
                carrier=carrier.carrier_code,
                service_type=carrier.transportation_method,
                routing=carrier.routing,
            )

        return CanonicalOrder(
            order_number=order.purchase_order_number,
            order_date=x12_date_to_iso(order.order_date),
            order_type=ORDER_PURPOSES.to_name(order.purpose_code),
            currency=order.currency_code,
            buyer=named.get("buyer"),
            seller=named.get("seller"),
            ship_to=named.get("ship_to"),
            bill_to=named.get("bill_to"),
            additional_parties=additional,
            contacts=[contact_to_canonical(contact) for contact in order.contacts],
            line_items=[self._order_line_to_canonical(line, index) for index, line in enumerate(order.line_items)],
            references=[reference_to_canonical(reference) for reference in order.references],
            totals=totals,
            shipping_details=shipping,
        )

    def _order_line_to_canonical(self, line: PurchaseOrderLine, index: int) -> CanonicalOrderLine:
        return CanonicalOrderLine(
            line_number=line.assigned_id or str(index + 1),
            quantity=line.quantity,
            unit_of_measure=UNITS_OF_MEASURE.to_name(line.unit_of_measure),
            unit_price=line.unit_price,
            product_identifiers=product_ids_to_canonical(line.product_ids),
            description=_first_description(line.descriptions),
            references=[reference_to_canonical(reference) for reference in line.references],
            requested_delivery_date=_date_for(line.dates, REQUESTED_DELIVERY_QUALIFIER),
        )

    def _order_line_from_canonical(self, line: CanonicalOrderLine, line_class=PurchaseOrderLine):
        dates = []
        if line.requested_delivery_date:
            dates.append(DateTimeReference(
                qualifier=REQUESTED_DELIVERY_QUALIFIER,
                date=iso_to_x12_date(line.requested_delivery_date),
            ))
        return line_class(
            assigned_id=line.line_number,
            quantity=line.quantity,
            unit_of_measure=UNITS_OF_MEASURE.to_code(line.unit_of_measure),
            unit_price=line.unit_price,
            basis_of_unit_price="PE" if line.unit_price is not None else None,
            product_ids=product_ids_from_canonical(line.product_identifiers),
            descriptions=[ItemDescription(description=line.description)] if line.description else [],
            references=[reference_from_canonical(reference) for reference in line.references],
            dates=dates,
        )

    def map_order_to_850(self, order: CanonicalOrder, control_number: str = "0001") -> PurchaseOrder850:
        amounts = []
        total_line_items = None
        if order.totals is not None:
            total_line_items = order.totals.line_item_count
            if order.totals.total_amount is not None:
                amounts.append(MonetaryAmount(qualifier=TOTAL_AMOUNT_QUALIFIER, amount=order.totals.total_amount))

        carriers = []
        if order.shipping_details is not None:
            shipping = order.shipping_details
            carriers.append(CarrierDetail(
                id_qualifier="2" if shipping.carrier else None,
                carrier_code=shipping.carrier,
                transportation_method=shipping.service_type,
                routing=shipping.routing,
            ))

        return PurchaseOrder850(
            control_number=control_number,
            purpose_code=ORDER_PURPOSES.to_code(order.order_type) or "00",
            purchase_order_number=order.order_number,
            order_date=iso_to_x12_date(order.order_date) or "",
            currency_code=order.currency,
            references=[reference_from_canonical(reference) for reference in order.references],
            contacts=[contact_from_canonical(contact) for contact in order.contacts],
            carrier_details=carriers,
            parties=_slot_parties(order, ORDER_PARTY_SLOTS),
            line_items=[self._order_line_from_canonical(line) for line in order.line_items],
            total_line_items=total_line_items,
            amounts=amounts,
        )

    # 855

    def map_855_to_order(self, ack: PurchaseOrderAck855) -> CanonicalOrder:
        named, additional = _assign_parties(ack.parties, ORDER_PARTY_SLOTS)
        line_items = []
        for index, line in enumerate(ack.line_items):
            canonical = self._order_line_to_canonical(line, index)
            if line.acknowledgments:
                first = line.acknowledgments[0]
                canonical.status = LINE_STATUSES.to_name(first.status_code)
                canonical.acknowledged_quantity = first.quantity
                canonical.scheduled_date = x12_date_to_iso(first.date)
            line_items.append(canonical)

        totals = None
        if ack.total_line_items is not None:
            totals = CanonicalOrderTotals(line_item_count=ack.total_line_items)

        return CanonicalOrder(
            order_number=ack.purchase_order_number,
            order_date=x12_date_to_iso(ack.purchase_order_date),
            order_type=ORDER_PURPOSES.to_name(ack.purpose_code),
            status=ACKNOWLEDGMENT_TYPES.to_name(ack.acknowledgment_type),
            acknowledgment_date=x12_date_to_iso(ack.acknowledgment_date),
            currency=ack.currency_code,
            buyer=named.get("buyer"),
            seller=named.get("seller"),
            ship_to=named.get("ship_to"),
            bill_to=named.get("bill_to"),
            additional_parties=additional,
            contacts=[contact_to_canonical(contact) for contact in ack.contacts],
            line_items=line_items,
            references=[reference_to_canonical(reference) for reference in ack.references],
            totals=totals,
        )

    def map_order_to_855(self, order: CanonicalOrder, control_number: str = "0001") -> PurchaseOrderAck855:
        line_items = []
        for line in order.line_items:
            ack_line = self._order_line_from_canonical(line, AcknowledgmentLine)
            if line.status is not None:
                ack_line.acknowledgments.append(LineAcknowledgment(
                    status_code=LINE_STATUSES.to_code(line.status),
                    quantity=line.acknowledged_quantity,
                    unit_of_measure=ack_line.unit_of_measure if line.acknowledged_quantity is not None else None,
                    date_qualifier=SCHEDULED_SHIP_QUALIFIER if line.scheduled_date else None,
                    date=iso_to_x12_date(line.scheduled_date),
                ))
            line_items.append(ack_line)

        return PurchaseOrderAck855(
            control_number=control_number,
            purpose_code=ORDER_PURPOSES.to_code(order.order_type) or "00",
            acknowledgment_type=ACKNOWLEDGMENT_TYPES.to_code(order.status) or "AD",
            purchase_order_number=order.order_number,
            purchase_order_date=iso_to_x12_date(order.order_date) or "",
            acknowledgment_date=iso_to_x12_date(order.acknowledgment_date),
            currency_code=order.currency,
            references=[reference_from_canonical(reference) for reference in order.references],
            contacts=[contact_from_canonical(contact) for contact in order.contacts],
            parties=_slot_parties(order, ORDER_PARTY_SLOTS),
            line_items=line_items,
            total_line_items=order.totals.line_item_count if order.totals is not None else None,
        )

    # 810

    def map_810_to_invoice(self, invoice: Invoice810) -> CanonicalInvoice:
        named, additional = _assign_parties(invoice.parties, INVOICE_PARTY_SLOTS)

        tax_amount = None
        if invoice.taxes:
            tax_amount = sum((tax.amount or Decimal("0") for tax in invoice.taxes), Decimal("0"))

        payment_terms = None
        if invoice.terms:
            terms = invoice.terms[0]
            payment_terms = CanonicalPaymentTerms(
                type_code=terms.terms_type_code,
                net_days=terms.net_days,
                discount_percent=terms.discount_percent,
                discount_days=terms.discount_days,
                description=terms.description,
            )

        line_items = []
        for index, line in enumerate(invoice.line_items):
            line_items.append(CanonicalInvoiceLine(
                line_number=line.assigned_id or str(index + 1),
                quantity=line.quantity,
                unit_of_measure=UNITS_OF_MEASURE.to_name(line.unit_of_measure),
                unit_price=line.unit_price,
                    product_identifiers=product_ids_to_canonical(line.product_ids),
                description=_first_description(line.descriptions),
                references=[reference_to_canonical(reference) for reference in line.references],
                taxes=[CanonicalTax(type=tax.tax_type, amount=tax.amount, rate=tax.percent) for tax in line.taxes],
            ))

        return CanonicalInvoice(
            invoice_number=invoice.invoice_number,
            invoice_date=x12_date_to_iso(invoice.invoice_date),
            purchase_order_number=invoice.purchase_order_number,
            purchase_order_date=x12_date_to_iso(invoice.purchase_order_date),
            currency=invoice.currency_code,
            seller=named.get("seller"),
            buyer=named.get("buyer"),
            bill_to=named.get("bill_to"),
            remit_to=named.get("remit_to"),
            ship_to=named.get("ship_to"),
            additional_parties=additional,
            line_items=line_items,
            references=[reference_to_canonical(reference) for reference in invoice.references],
            totals=CanonicalInvoiceTotals(
                subtotal=invoice.subtotal_amount,
                tax_amount=tax_amount,
                discount_amount=invoice.terms_discount_amount,
                total_amount=invoice.total_amount,
            ),
            payment_terms=payment_terms,
        )

    def map_invoice_to_810(self, invoice: CanonicalInvoice, control_number: str = "0001") -> Invoice810:
        """
        Canonical invoice to 810.

        TDS carries implied cents, so total, subtotal and discount are
        rounded half-up to two decimals here rather than when written.
        """
        totals = invoice.totals
        taxes = []
        if totals.tax_amount is not None:
            taxes.append(TaxInfo(tax_type=ALL_TAXES_TYPE, amount=totals.tax_amount))

        terms = []
        if invoice.payment_terms is not None:
            source = invoice.payment_terms
            terms.append(TermsOfSale(
                terms_type_code=source.type_code,
                discount_percent=source.discount_percent,
                discount_days=source.discount_days,
                net_days=source.net_days,
                description=source.description,
            ))

        line_items = []
        for line in invoice.line_items:
            line_items.append(InvoiceLine(
                assigned_id=line.line_number,
                quantity=line.quantity,
                unit_of_measure=UNITS_OF_MEASURE.to_code(line.unit_of_measure),
                unit_price=line.unit_price,
                product_ids=product_ids_from_canonical(line.product_identifiers),
                descriptions=[ItemDescription(description=line.description)] if line.description else [],
                references=[reference_from_canonical(reference) for reference in line.references],
                taxes=[TaxInfo(tax_type=tax.type, amount=tax.amount, percent=tax.rate) for tax in line.taxes],
            ))

        return Invoice810(
            control_number=control_number,
            invoice_date=iso_to_x12_date(invoice.invoice_date) or "",
            invoice_number=invoice.invoice_number,
            purchase_order_date=iso_to_x12_date(invoice.purchase_order_date),
            purchase_order_number=invoice.purchase_order_number,
            currency_code=invoice.currency,
            references=[reference_from_canonical(reference) for reference in invoice.references],
            parties=_slot_parties(invoice, INVOICE_PARTY_SLOTS),
            terms=terms,
            line_items=line_items,
            total_amount=parse_financial_amount(totals.total_amount),
            subtotal_amount=parse_financial_amount(totals.subtotal),
            terms_discount_amount=parse_financial_amount(totals.discount_amount),
            taxes=taxes,
            total_line_items=len(line_items) if line_items else None,
        )

    # 856

    def _item_to_canonical(self, item: ItemDetail) -> CanonicalShipmentItem:
        return CanonicalShipmentItem(
            line_number=item.line_number,
            quantity=item.quantity_shipped,
            unit_of_measure=UNITS_OF_MEASURE.to_name(item.unit_of_measure),
            product_identifiers=product_ids_to_canonical(item.product_ids),
            description=item.descriptions[0] if item.descriptions else None,
            serial_numbers=list(item.serial_numbers),
        )

    def _item_from_canonical(self, item: CanonicalShipmentItem) -> ItemDetail:
        return ItemDetail(
            line_number=item.line_number,
            product_ids=product_ids_from_canonical(item.product_identifiers),
            quantity_shipped=item.quantity,
            unit_of_measure=UNITS_OF_MEASURE.to_code(item.unit_of_measure),
            descriptions=[item.description] if item.description else [],
            serial_numbers=list(item.serial_numbers),
        )

    def map_856_to_shipment(self, notice: ShipNotice856) -> CanonicalShipment:
        shipment_levels = [level.shipment for level in notice.hierarchical_levels if level.shipment is not None]
        packs = [level.pack for level in notice.hierarchical_levels if level.pack is not None]
        purchase_orders = [
            level.order.purchase_order_number
            for level in notice.hierarchical_levels
            if level.order is not None and level.order.purchase_order_number
        ]

        carrier = None
        references: List[CanonicalReference] = []
        named: Dict[str, CanonicalParty] = {}
        additional: List[CanonicalParty] = []
        totals = None
        if shipment_levels:
            shipment = shipment_levels[0]
            tracking = [r.identifier for r in shipment.references if r.qualifier == TRACKING_NUMBER_QUALIFIER]
            references = [
                reference_to_canonical(r) for r in shipment.references if r.qualifier != TRACKING_NUMBER_QUALIFIER
            ]
            if shipment.carrier is not None or tracking:
                detail = shipment.carrier or CarrierDetail()
                carrier = CanonicalCarrier(
                    code=detail.carrier_code,
                    service_type=detail.transportation_method,
                    routing=detail.routing,
                    tracking_numbers=tracking,
                )
            named, additional = _assign_parties(shipment.parties, SHIPMENT_PARTY_SLOTS)
            packaging = shipment.packaging
            if packaging is not None or notice.total_line_items is not None:
                packaging = packaging or Packaging()
                totals = CanonicalShipmentTotals(
                    package_count=packaging.lading_quantity,
                    item_count=notice.total_line_items,
                    weight=packaging.weight,
                    weight_unit=UNITS_OF_MEASURE.to_name(packaging.weight_unit),
                )
        elif notice.total_line_items is not None:
            totals = CanonicalShipmentTotals(item_count=notice.total_line_items)

        packages = []
        packed_ids = set()
        for pack in packs:
            packages.append(CanonicalPackage(
                package_type=pack.packaging.packaging_code if pack.packaging else None,
                weight=pack.packaging.weight if pack.packaging else None,
                weight_unit=UNITS_OF_MEASURE.to_name(pack.packaging.weight_unit) if pack.packaging else None,
                marks=list(pack.marks),
                items=[self._item_to_canonical(item) for item in pack.items],
            ))
            packed_ids.update(id(item) for item in pack.items)

        # Packaged items first, then loose ones
        items = [item for package in packages for item in package.items]
        items.extend(self._item_to_canonical(item) for item in notice.items if id(item) not in packed_ids)

        return CanonicalShipment(
            shipment_number=notice.shipment_id,
            shipment_date=x12_date_to_iso(notice.shipment_date),
            shipment_time=notice.shipment_time,
            purchase_order_numbers=purchase_orders,
            carrier=carrier,
            ship_from=named.get("ship_from"),
            ship_to=named.get("ship_to"),
            additional_parties=additional,
            packages=packages,
            items=items,
            references=references,
            totals=totals,
        )

    def map_shipment_to_856(self, shipment: CanonicalShipment, control_number: str = "0001") -> ShipNotice856:
        """
        Build the S/O/P/I hierarchy: one shipment level, an order level per
        purchase order, packs under the last order level and items under
        their pack. Items outside every package hang off the same parent as
        the packs.
        """
        levels: List[HierarchicalLevel] = []

        def add(level_code: str, parent_id: Optional[str], **detail) -> HierarchicalLevel:
            level = HierarchicalLevel(hl_id=str(len(levels) + 1), parent_id=parent_id, level_code=level_code, **detail)
            levels.append(level)
            return level

        references = [reference_from_canonical(reference) for reference in shipment.references]
        carrier = None
        if shipment.carrier is not None:
            references.extend(
                Reference(qualifier=TRACKING_NUMBER_QUALIFIER, identifier=number)
                for number in shipment.carrier.tracking_numbers
            )
            if any([shipment.carrier.code, shipment.carrier.service_type, shipment.carrier.routing]):
                carrier = CarrierDetail(
                    id_qualifier="2" if shipment.carrier.code else None,
                    carrier_code=shipment.carrier.code,
                    transportation_method=shipment.carrier.service_type,
                    routing=shipment.carrier.routing,
                )

        packaging = None
        totals = shipment.totals
        if totals is not None and any(v is not None for v in (totals.package_count, totals.weight, totals.weight_unit)):
            packaging = Packaging(
                lading_quantity=totals.package_count,
                weight_qualifier="G" if totals.weight is not None else None,
                weight=totals.weight,
                weight_unit=UNITS_OF_MEASURE.to_code(totals.weight_unit),
            )

        shipment_level = add("S", None, shipment=ShipmentDetail(
            packaging=packaging,
            carrier=carrier,
            references=references,
            parties=_slot_parties(shipment, SHIPMENT_PARTY_SLOTS),
        ))

        parent_id = shipment_level.hl_id
        for number in shipment.purchase_order_numbers:
            parent_id = add("O", shipment_level.hl_id, order=OrderDetail(purchase_order_number=number)).hl_id

        all_items: List[ItemDetail] = []
        packaged: List[CanonicalShipmentItem] = []
        for package in shipment.packages:
            pack = PackDetail(
                packaging=Packaging(
                    packaging_code=package.package_type,
                    weight_qualifier="G" if package.weight is not None else None,
                    weight=package.weight,
                    weight_unit=UNITS_OF_MEASURE.to_code(package.weight_unit),
                ) if any([package.package_type, package.weight is not None, package.weight_unit]) else None,
                marks=list(package.marks),
            )
            pack_level = add("P", parent_id, pack=pack)
            for item in package.items:
                detail = self._item_from_canonical(item)
                pack.items.append(detail)
                all_items.append(detail)
                add("I", pack_level.hl_id, item=detail)
            packaged.extend(package.items)

        if shipment.items[:len(packaged)] == packaged:
            loose = shipment.items[len(packaged):]
        else:
            loose = [item for item in shipment.items if item not in packaged]
        for item in loose:
            detail = self._item_from_canonical(item)
            all_items.append(detail)
            add("I", parent_id, item=detail)

        return ShipNotice856(
            control_number=control_number,
            shipment_id=shipment.shipment_number,
            shipment_date=iso_to_x12_date(shipment.shipment_date) or "",
            shipment_time=shipment.shipment_time,
            hierarchical_structure_code="0001",
            hierarchical_levels=levels,
            items=all_items,
            total_line_items=totals.item_count if totals is not None else None,
        )

    # Dispatch

    def map_to_canonical(self, data: TransactionSetData) -> CanonicalDocument:
        """
        Map any supported typed record to its canonical object.

        Raises:
            MappingError: The record has no canonical form (997, unsupported)
        """
        mappers: Dict[type, Callable] = {
            PurchaseOrder850: self.map_850_to_order,
            PurchaseOrderAck855: self.map_855_to_order,
            Invoice810: self.map_810_to_invoice,
            ShipNotice856: self.map_856_to_shipment,
        }
        mapper = mappers.get(type(data))
        if mapper is None:
            raise MappingError(
                f"Transaction set {data.transaction_set_code} has no canonical mapping",
                details={"transaction_set_code": data.transaction_set_code},
            )
        return mapper(data)

    def map_from_canonical(self, transaction_set_code: str, document: CanonicalDocument, control_number: str = "0001") -> TransactionSetData:
        """
        Map a canonical object to the typed record for ``transaction_set_code``.

        Raises:
            MappingError: No mapping for the code and document type, or an
                address with street2 but no street1
        """
        mappers = {
            ("850", CanonicalOrder): self.map_order_to_850,
            ("855", CanonicalOrder): self.map_order_to_855,
            ("810", CanonicalInvoice): self.map_invoice_to_810,
            ("856", CanonicalShipment): self.map_shipment_to_856,
        }
        mapper = mappers.get((transaction_set_code, type(document)))
        if mapper is None:
            raise MappingError(
                f"Cannot map {type(document).__name__} to transaction set {transaction_set_code}",
                details={"transaction_set_code": transaction_set_code},
            )
        return mapper(document, control_number)
