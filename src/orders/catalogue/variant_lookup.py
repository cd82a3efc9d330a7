"""VariantLookup — one row per storefront variant id, pointing at its owner."""

from protean.fields import Identifier, String

from orders.domain import orders


@orders.projection
class VariantLookup:
    variant_id = String(identifier=True, required=True)
    product_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    sku = String()
