"""Catalogue mirror events."""

from protean.fields import Identifier, String, Text

from orders.domain import orders


@orders.event(part_of="CatalogProduct")
class CatalogProductRegistered:
    __version__ = 1

    product_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    sku = String()
    variant_ids = Text()  # JSON list of numeric variant ids as strings
    status = String()
