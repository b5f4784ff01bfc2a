"""
Cart snapshot - session scoped cart lines.

The cart is a convenience store read at checkout time; it is not locked and
is not part of the order transaction.
"""
import logging
from decimal import Decimal
from typing import Dict, Any, List

from sqlalchemy.orm import joinedload

from farmstore.models import CartItem, ProductVariant
from farmstore.exceptions import NotFoundError, ValidationError
from farmstore.utils.money import to_money, money_float

logger = logging.getLogger(__name__)


def _get_purchasable_variant(session, product_id: int, variant_id: int) -> ProductVariant:
    variant = session.get(ProductVariant, variant_id)
    if (
        not variant
        or variant.is_deleted
        or variant.product_id != product_id
        or variant.product.is_deleted
    ):
        raise NotFoundError('Product variant not found')
    return variant


def get_cart_items(session, session_id: str) -> List[CartItem]:
    """Cart lines in insertion order with product and variant loaded."""
    return (
        session.query(CartItem)
        .options(joinedload(CartItem.product), joinedload(CartItem.variant))
        .filter(CartItem.session_id == session_id)
        .order_by(CartItem.id)
        .all()
    )


def serialize_cart_item(item: CartItem) -> Dict[str, Any]:
    """Cart line resolved against the live variant (price, stock, name)."""
    variant = item.variant
    product = item.product
    unit_price = variant.effective_price
    return {
        'id': item.id,
        'productId': item.product_id,
        'variantId': item.variant_id,
        'quantity': item.quantity,
        'product': {
            'id': product.id,
            'name': product.name,
            'imageUrl': product.image_url,
        },
        'variant': {
            'id': variant.id,
            'price': money_float(variant.price),
            'discountPrice': money_float(variant.discount_price),
            'quantity': money_float(variant.quantity),
            'unit': variant.unit,
            'stockQuantity': variant.stock_quantity,
            'sku': variant.sku,
        },
        'unitPrice': money_float(unit_price),
        'subtotal': money_float(to_money(unit_price * item.quantity)),
    }


def get_cart(session, session_id: str) -> Dict[str, Any]:
    """Full cart payload for the API."""
    items = get_cart_items(session, session_id)
    subtotal = sum((to_money(i.variant.effective_price * i.quantity) for i in items), Decimal('0.00'))
    return {
        'sessionId': session_id,
        'items': [serialize_cart_item(i) for i in items],
        'itemCount': sum(i.quantity for i in items),
        'subtotal': money_float(subtotal),
    }


def add_to_cart(session, session_id: str, product_id: int, variant_id: int, quantity: int) -> Dict[str, Any]:
    """Add a line, or increment the existing (session, product, variant) line."""
    if quantity <= 0:
        raise ValidationError('Quantity must be greater than 0')
    
    _get_purchasable_variant(session, product_id, variant_id)
    
    item = session.query(CartItem).filter_by(
        session_id=session_id,
        product_id=product_id,
        variant_id=variant_id
    ).first()
    
    if item:
        item.quantity += quantity
    else:
        session.add(CartItem(
            session_id=session_id,
            product_id=product_id,
            variant_id=variant_id,
            quantity=quantity
        ))
    session.commit()
    
    logger.info(f"[CART] session={session_id} add variant={variant_id} qty={quantity}")
    return get_cart(session, session_id)


def update_cart_item(session, session_id: str, product_id: int, variant_id: int, quantity: int) -> Dict[str, Any]:
    """Set the quantity of a line; quantity <= 0 removes it."""
    item = session.query(CartItem).filter_by(
        session_id=session_id,
        product_id=product_id,
        variant_id=variant_id
    ).first()
    
    if quantity <= 0:
        if item:
            session.delete(item)
            session.commit()
        return get_cart(session, session_id)
    
    if not item:
        raise NotFoundError('Item not in cart')
    
    item.quantity = quantity
    session.commit()
    return get_cart(session, session_id)


def remove_from_cart(session, session_id: str, product_id: int, variant_id: int) -> Dict[str, Any]:
    session.query(CartItem).filter_by(
        session_id=session_id,
        product_id=product_id,
        variant_id=variant_id
    ).delete(synchronize_session=False)
    session.commit()
    return get_cart(session, session_id)


def clear_cart(session, session_id: str) -> None:
    """Delete every line for the session. NOTE: Commit is handled by the caller."""
    session.query(CartItem).filter(
        CartItem.session_id == session_id
    ).delete(synchronize_session=False)
