"""CatalogProduct aggregate — the marketplace's mirror of a storefront product.

Each product belongs to exactly one seller. Ingestion resolves the owner of a
purchased line by its normalized SKU first and by the storefront variant id
second.
"""

import json
import re
from enum import Enum

from protean.fields import Identifier, String, Text

from orders.catalogue.events import CatalogProductRegistered
from orders.domain import orders

_WHITESPACE = re.compile(r"\s+")


class CatalogStatus(Enum):
    ACTIVE = "active"
    DRAFT = "draft"
    ARCHIVED = "archived"


def normalize_sku(raw) -> str:
    """Trim, upper-case and replace inner whitespace runs with ``-``."""
    if raw is None:
        return ""
    return _WHITESPACE.sub("-", str(raw).strip().upper())


def normalize_variant_id(raw) -> str:
    """Reduce a variant reference to its numeric id.

    Accepts plain numbers and global ids such as
    ``gid://shopify/ProductVariant/123``. Returns ``""`` when no digits
    trail the value.
    """
    if raw is None:
        return ""
    match = re.search(r"(\d+)$", str(raw).strip())
    return match.group(1) if match else ""


@orders.aggregate
class CatalogProduct:
    merchant_id = Identifier(required=True)
    title = String(max_length=500)
    sku = String(max_length=100)
    variant_ids = Text()  # JSON list of numeric variant ids
    status = String(max_length=20, choices=CatalogStatus, default=CatalogStatus.ACTIVE.value)

    @classmethod
    def register(cls, product_id, merchant_id, title=None, sku=None, variant_ids=None, status=None):
        product = cls(id=product_id, merchant_id=merchant_id)
        product.update(title=title, sku=sku, variant_ids=variant_ids, status=status)
        return product

    def update(self, title=None, sku=None, variant_ids=None, status=None, merchant_id=None):
        if merchant_id:
            self.merchant_id = merchant_id
        self.title = title
        self.sku = normalize_sku(sku) or None
        ids = [vid for vid in (normalize_variant_id(v) for v in variant_ids or []) if vid]
        self.variant_ids = json.dumps(sorted(set(ids)))
        self.status = CatalogStatus(status).value if status else CatalogStatus.ACTIVE.value

        self.raise_(
            CatalogProductRegistered(
                product_id=str(self.id),
                merchant_id=str(self.merchant_id),
                sku=self.sku,
                variant_ids=self.variant_ids,
                status=self.status,
            )
        )

    def get_variant_ids(self) -> list[str]:
        if not self.variant_ids:
            return []
        return json.loads(self.variant_ids)
