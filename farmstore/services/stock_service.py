"""
Stock ledger - per-variant available quantity.

Every decrement goes through a single conditional UPDATE so two concurrent
checkouts can never both pass the "enough stock" test on the same row.
Callers own the transaction: reservations made inside a unit of work are
released by rolling it back.
"""
import logging
from typing import List, Dict, Any

from sqlalchemy import update

from farmstore.models import ProductVariant, Product
from farmstore.exceptions import InsufficientStockError, NotFoundError, ValidationError
from farmstore.blueprints.metrics import stock_reservations_total

logger = logging.getLogger(__name__)


def _get_variant(session, variant_id: int) -> ProductVariant:
    variant = session.get(ProductVariant, variant_id)
    if not variant or variant.is_deleted:
        raise NotFoundError(f'Variant {variant_id} not found')
    return variant


def _expire_cached_stock(session, variant_id: int) -> None:
    """Bulk UPDATEs bypass the identity map; drop any stale in-memory count."""
    for obj in list(session.identity_map.values()):
        if isinstance(obj, ProductVariant) and obj.id == variant_id:
            session.expire(obj, ['stock_quantity'])


def check_and_reserve(session, variant_id: int, quantity: int) -> None:
    """
    Atomically decrement stock for a variant.
    
    Raises:
        ValidationError: quantity is not positive
        InsufficientStockError: fewer than `quantity` units available.
            Not retryable without re-validating the cart.
    """
    if quantity <= 0:
        raise ValidationError('Quantity must be greater than 0')
    
    result = session.execute(
        update(ProductVariant)
        .where(
            ProductVariant.id == variant_id,
            ProductVariant.is_deleted.is_(False),
            ProductVariant.stock_quantity >= quantity
        )
        .values(stock_quantity=ProductVariant.stock_quantity - quantity)
        .execution_options(synchronize_session=False)
    )
    _expire_cached_stock(session, variant_id)
    
    if result.rowcount == 1:
        stock_reservations_total.labels(outcome='reserved').inc()
        logger.debug(f"[STOCK] Reserved {quantity} of variant {variant_id}")
        return
    
    # Nothing matched: the variant is missing, withdrawn, or short
    variant = session.get(ProductVariant, variant_id)
    if variant is None:
        raise NotFoundError(f'Variant {variant_id} not found')

    product_name = variant.product.name if variant.product else f'variant {variant_id}'
    available = 0 if variant.is_deleted else variant.stock_quantity
    logger.info(
        f"[STOCK] Insufficient stock for variant {variant_id}: "
        f"requested {quantity}, available {available}"
    )
    stock_reservations_total.labels(outcome='insufficient').inc()
    raise InsufficientStockError(product_name, quantity, available, variant_id=variant_id)


def release(session, variant_id: int, quantity: int) -> None:
    """Compensating increment, used when a placed order is cancelled."""
    if quantity <= 0:
        return
    session.execute(
        update(ProductVariant)
        .where(ProductVariant.id == variant_id)
        .values(stock_quantity=ProductVariant.stock_quantity + quantity)
        .execution_options(synchronize_session=False)
    )
    _expire_cached_stock(session, variant_id)
    logger.info(f"[STOCK] Released {quantity} of variant {variant_id}")


def get_available(session, variant_id: int) -> int:
    """Current available quantity for a variant."""
    return _get_variant(session, variant_id).stock_quantity


def validate_stock_availability(session, variant_id: int, quantity: int) -> bool:
    """Read-only check; does not reserve anything."""
    variant = session.get(ProductVariant, variant_id)
    if not variant or variant.is_deleted:
        return False
    return variant.stock_quantity >= quantity


def adjust(session, variant_id: int, new_quantity: int) -> ProductVariant:
    """
    Operator restock: set stock to an absolute value (last writer wins).
    
    NOTE: Commit is handled by the caller (route).
    """
    if new_quantity is None or new_quantity < 0:
        raise ValidationError('Invalid stock quantity')
    
    variant = _get_variant(session, variant_id)
    previous = variant.stock_quantity
    variant.stock_quantity = new_quantity
    session.flush()
    
    logger.info(f"[STOCK] Variant {variant_id} adjusted {previous} -> {new_quantity}")
    return variant


def get_low_stock(session, threshold: int) -> List[Dict[str, Any]]:
    """Variants at or below the threshold, with a display name like 'Apples - 1kg'."""
    rows = (
        session.query(ProductVariant, Product)
        .join(Product, Product.id == ProductVariant.product_id)
        .filter(
            ProductVariant.is_deleted.is_(False),
            ProductVariant.stock_quantity <= threshold
        )
        .order_by(ProductVariant.stock_quantity, ProductVariant.id)
        .all()
    )
    
    return [
        {
            'variantId': variant.id,
            'variantName': f"{product.name} - {variant.pack_label}",
            'stockQuantity': variant.stock_quantity,
            'productId': product.id,
            'sku': variant.sku,
        }
        for variant, product in rows
    ]
