"""
Variant resolution for cart lines and restock requests
"""
from dataclasses import dataclass
from typing import Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from retail_ledger.exceptions import NotFound
from retail_ledger.models import Product, ProductVariant


@dataclass(frozen=True)
class ExplicitVariant:
    variant: ProductVariant


@dataclass(frozen=True)
class DefaultVariant:
    variant: ProductVariant


@dataclass(frozen=True)
class NoVariant:
    product: Product


VariantResolution = Union[ExplicitVariant, DefaultVariant, NoVariant]


def get_active_product(db: Session, organization_id: UUID, product_id: UUID) -> Product:
    product = db.query(Product).filter(
        Product.id == product_id,
        Product.organization_id == organization_id,
        Product.is_active.is_(True),
    ).first()
    if product is None:
        raise NotFound("Product", product_id)
    return product


def resolve_variant(
    db: Session,
    product: Product,
    variant_id: Optional[UUID],
    use_default: bool = False,
) -> VariantResolution:
    """
    Resolve the variant a request refers to.

    An explicit variant_id must belong to the product and be active. Without one, the
    product's default variant (flagged is_default, else the oldest) is
    returned when use_default is set; otherwise NoVariant. Sales pass
    use_default=False so an unspecified variant never silently picks stock.
    """
    if variant_id is not None:
        variant = db.query(ProductVariant).filter(
            ProductVariant.id == variant_id,
            ProductVariant.product_id == product.id,
            ProductVariant.organization_id == product.organization_id,
            ProductVariant.is_active.is_(True),
        ).first()
        if variant is None:
            raise NotFound("ProductVariant", variant_id)
        return ExplicitVariant(variant)

    if not use_default:
        return NoVariant(product)

    variant = db.query(ProductVariant).filter(
        ProductVariant.product_id == product.id,
        ProductVariant.is_active.is_(True),
    ).order_by(
        ProductVariant.is_default.desc(),
        ProductVariant.created_at.asc(),
    ).first()
    if variant is None:
        return NoVariant(product)
    return DefaultVariant(variant)
