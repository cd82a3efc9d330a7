"""Resolve purchased lines to the sellers that own them.

Two lookups run in chunks sized to the store's ``IN`` clause limit: catalogue
products by normalized SKU, then variant lookup rows by numeric variant id. A
SKU match always wins over a variant match. Lines matching neither are not
marketplace items and are dropped.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field

import structlog
from protean.utils.globals import current_domain

from orders.catalogue.product import CatalogProduct
from orders.catalogue.variant_lookup import VariantLookup
from orders.webhook.payload import LineItem

logger = structlog.get_logger(__name__)


@dataclass
class SellerBucket:
    merchant_id: str
    lines: list[LineItem] = field(default_factory=list)
    subtotal: float = 0.0

    def add(self, line: LineItem) -> None:
        self.lines.append(line)
        self.subtotal += line.line_total


def chunked(values: Iterable[str], size: int) -> Iterator[list[str]]:
    batch: list[str] = []
    for value in values:
        batch.append(value)
        if len(batch) == size:
            yield batch
            batch = []
    if batch:
        yield batch


def _distinct(values: Iterable[str]) -> list[str]:
    seen: dict[str, None] = {}
    for value in values:
        if value:
            seen.setdefault(value, None)
    return list(seen)


def products_by_sku(skus: Iterable[str], chunk_size: int) -> dict[str, CatalogProduct]:
    repo = current_domain.repository_for(CatalogProduct)
    found: dict[str, CatalogProduct] = {}
    for part in chunked(_distinct(skus), chunk_size):
        for product in repo._dao.query.filter(sku__in=part).all().items:
            if product.sku in found:
                logger.warning(
                    "SKU registered to more than one product",
                    sku=product.sku,
                    kept=str(found[product.sku].id),
                    ignored=str(product.id),
                )
                continue
            found[product.sku] = product
    return found


def lookups_by_variant(variant_ids: Iterable[str], chunk_size: int) -> dict[str, VariantLookup]:
    repo = current_domain.repository_for(VariantLookup)
    found: dict[str, VariantLookup] = {}
    for part in chunked(_distinct(variant_ids), chunk_size):
        for lookup in repo._dao.query.filter(variant_id__in=part).all().items:
            found[str(lookup.variant_id)] = lookup
    return found


def resolve_sellers(lines: list[LineItem], chunk_size: int) -> dict[str, SellerBucket]:
    """Group lines into per-seller buckets, preserving line order."""
    by_sku = products_by_sku((line.normalized_sku for line in lines), chunk_size)
    by_variant = lookups_by_variant((line.variant_id for line in lines), chunk_size)

    buckets: dict[str, SellerBucket] = {}
    dropped = 0
    for line in lines:
        product = by_sku.get(line.normalized_sku) if line.normalized_sku else None
        if product is not None:
            merchant_id = str(product.merchant_id)
        else:
            lookup = by_variant.get(line.variant_id) if line.variant_id else None
            if lookup is None:
                dropped += 1
                continue
            merchant_id = str(lookup.merchant_id)

        bucket = buckets.setdefault(merchant_id, SellerBucket(merchant_id=merchant_id))
        bucket.add(line)

    if dropped:
        logger.info("Dropped lines with no catalogue owner", dropped=dropped, kept=len(lines) - dropped)
    return buckets
