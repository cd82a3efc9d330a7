"""Catalogue registration — command and handler.

Upserts a product and rewrites its variant lookup rows in the same unit of
work, dropping rows for variants the product no longer carries.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from orders.catalogue.product import CatalogProduct, CatalogStatus
from orders.catalogue.variant_lookup import VariantLookup
from orders.domain import orders

logger = structlog.get_logger(__name__)


@orders.command(part_of="CatalogProduct")
class RegisterCatalogProduct:
    product_id = Identifier(required=True)
    merchant_id = Identifier(required=True)
    title = String(max_length=500)
    sku = String(max_length=100)
    variant_ids = Text()  # JSON list
    status = String(max_length=20, choices=CatalogStatus)


@orders.command_handler(part_of=CatalogProduct)
class CatalogRegistrationHandler:
    @handle(RegisterCatalogProduct)
    def register_product(self, command):
        repo = current_domain.repository_for(CatalogProduct)
        variant_ids = json.loads(command.variant_ids) if command.variant_ids else []

        try:
            product = repo.get(command.product_id)
            previous = set(product.get_variant_ids())
            product.update(
                title=command.title,
                sku=command.sku,
                variant_ids=variant_ids,
                status=command.status,
                merchant_id=command.merchant_id,
            )
        except ObjectNotFoundError:
            previous = set()
            product = CatalogProduct.register(
                product_id=command.product_id,
                merchant_id=command.merchant_id,
                title=command.title,
                sku=command.sku,
                variant_ids=variant_ids,
                status=command.status,
            )
        repo.add(product)

        lookup_repo = current_domain.repository_for(VariantLookup)
        current = set(product.get_variant_ids())
        for stale in previous - current:
            try:
                lookup_repo._dao.delete(lookup_repo.get(stale))
            except ObjectNotFoundError:
                pass
        for variant_id in current:
            try:
                lookup = lookup_repo.get(variant_id)
                lookup.product_id = str(product.id)
                lookup.merchant_id = str(product.merchant_id)
                lookup.sku = product.sku
            except ObjectNotFoundError:
                lookup = VariantLookup(
                    variant_id=variant_id,
                    product_id=str(product.id),
                    merchant_id=str(product.merchant_id),
                    sku=product.sku,
                )
            lookup_repo.add(lookup)

        logger.info(
            "Catalogue product registered",
            product_id=str(product.id),
            merchant_id=str(product.merchant_id),
            variants=len(current),
        )
        return str(product.id)
