"""
Order read models - customer history, admin views and public tracking.

Pure reads. Customer history is cached per user (cache-aside) and dropped
whenever that user's orders change.
"""
import logging
from math import ceil
from typing import Optional, Dict, Any, List

from sqlalchemy import func
from sqlalchemy.orm import selectinload, joinedload

from farmstore.models import Order, OrderItem, OrderStatus, Payment, ProductReview
from farmstore.exceptions import NotFoundError, ValidationError
from farmstore.services.cache_service import get_cache
from farmstore.utils.money import money_float

logger = logging.getLogger(__name__)


def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_order_item(item: OrderItem) -> Dict[str, Any]:
    product = item.product
    variant = item.variant
    return {
        'id': item.id,
        'productId': item.product_id,
        'variantId': item.variant_id,
        'quantity': item.quantity,
        'price': money_float(item.price),
        'lineTotal': money_float(item.line_total),
        'product': {
            'id': product.id,
            'name': product.name,
            'imageUrl': product.image_url,
            'category': product.category,
        } if product else None,
        'variant': {
            'id': variant.id,
            'sku': variant.sku,
            'quantity': money_float(variant.quantity),
            'unit': variant.unit,
            'packLabel': variant.pack_label,
        } if variant else None,
    }


def serialize_payment(payment: Optional[Payment]) -> Optional[Dict[str, Any]]:
    if payment is None:
        return None
    return {
        'id': payment.id,
        'orderId': payment.order_id,
        'razorpayPaymentId': payment.razorpay_payment_id,
        'razorpayOrderId': payment.razorpay_order_id,
        'amount': money_float(payment.amount),
        'currency': payment.currency,
        'status': payment.status,
        'createdAt': _iso(payment.created_at),
    }


def serialize_order(order: Order) -> Dict[str, Any]:
    """Full order view with items, payment and applied discount."""
    discount = order.discount
    return {
        'id': order.id,
        'trackingId': order.tracking_id,
        'status': order.status.value,
        'previousStatus': order.previous_status.value if order.previous_status else None,
        'subtotal': money_float(order.subtotal),
        'discountAmount': money_float(order.discount_amount),
        'total': money_float(order.total),
        'paymentMethod': order.payment_method.value,
        'paymentId': order.payment_id,
        'customerInfo': order.customer_info,
        'statusTimeline': order.status_timeline or [],
        'cancellationReason': order.cancellation_reason,
        'shipmentTrackingNumber': order.shipment_tracking_number,
        'createdAt': _iso(order.created_at),
        'updatedAt': _iso(order.updated_at),
        'deliveredAt': _iso(order.delivered_at),
        'items': [serialize_order_item(item) for item in order.items],
        'payment': serialize_payment(order.payment),
        'discount': {
            'id': discount.id,
            'code': discount.code,
            'type': discount.type.value,
            'value': money_float(discount.value),
        } if discount else None,
    }


def _orders_query(session):
    return session.query(Order).options(
        selectinload(Order.items).joinedload(OrderItem.product),
        selectinload(Order.items).joinedload(OrderItem.variant),
        joinedload(Order.payment),
        joinedload(Order.discount),
    )


def _newest_first(query):
    return query.order_by(Order.created_at.desc(), Order.id.desc())


def load_order_history(session, user_id: int) -> List[Dict[str, Any]]:
    orders = _newest_first(_orders_query(session).filter(Order.user_id == user_id)).all()
    return [serialize_order(order) for order in orders]


def get_order_history(session, user_id: int) -> List[Dict[str, Any]]:
    """All orders of a user, newest first."""
    cache = get_cache()
    if cache is None:
        return load_order_history(session, user_id)
    return cache.get_or_load(user_id, 'history', lambda: load_order_history(session, user_id))


def get_order_details(session, order_id: int) -> Dict[str, Any]:
    """Admin detail view including the placing user."""
    order = _orders_query(session).options(joinedload(Order.user)).filter(Order.id == order_id).first()
    if not order:
        raise NotFoundError('Order not found')
    
    data = serialize_order(order)
    data['placedBy'] = order.user.to_dict() if order.user else None
    return data


def track_order(session, tracking_id: str, email: str) -> Dict[str, Any]:
    """
    Public lookup by tracking number.
    
    The email must match the one captured on the order; a mismatch looks
    exactly like an unknown tracking number.
    """
    normalized = (tracking_id or '').strip().upper()
    order = _orders_query(session).filter(Order.tracking_id == normalized).first()
    
    if not order or (order.customer_email or '').strip().lower() != (email or '').strip().lower():
        logger.info(f"Tracking lookup failed for {normalized}")
        raise NotFoundError('Order not found')
    
    return {
        'trackingId': order.tracking_id,
        'status': order.status.value,
        'statusTimeline': order.status_timeline or [],
        'shipmentTrackingNumber': order.shipment_tracking_number,
        'createdAt': _iso(order.created_at),
        'deliveredAt': _iso(order.delivered_at),
        'total': money_float(order.total),
        'items': [
            {
                'name': item.product.name if item.product else None,
                'pack': item.variant.pack_label if item.variant else None,
                'quantity': item.quantity,
            }
            for item in order.items
        ],
    }


def get_cancelled_orders(session, user_id: int) -> List[Dict[str, Any]]:
    """Cancelled orders and open cancellation requests of a user."""
    orders = _newest_first(
        _orders_query(session).filter(
            Order.user_id == user_id,
            Order.status.in_([OrderStatus.CANCELLED, OrderStatus.CANCELLATION_REQUESTED])
        )
    ).all()
    return [serialize_order(order) for order in orders]


def get_delivered_orders(session, user_id: int) -> List[Dict[str, Any]]:
    """Delivered orders; each item says whether it can still be rated."""
    orders = _newest_first(
        _orders_query(session).filter(
            Order.user_id == user_id,
            Order.status == OrderStatus.DELIVERED
        )
    ).all()
    
    rated = {
        (row.order_id, row.product_id)
        for row in session.query(ProductReview.order_id, ProductReview.product_id).filter(
            ProductReview.user_id == user_id
        )
    }
    
    result = []
    for order in orders:
        data = serialize_order(order)
        for item in data['items']:
            item['canRate'] = (order.id, item['productId']) not in rated
        result.append(data)
    return result


def get_payment_history(session, user_id: int) -> List[Dict[str, Any]]:
    rows = (
        session.query(Payment, Order.tracking_id)
        .join(Order, Order.id == Payment.order_id)
        .filter(Payment.user_id == user_id)
        .order_by(Payment.created_at.desc(), Payment.id.desc())
        .all()
    )
    history = []
    for payment, tracking_id in rows:
        data = serialize_payment(payment)
        data['trackingId'] = tracking_id
        history.append(data)
    return history


def list_orders(session, status: Optional[str] = None, page: int = 1, per_page: int = 20) -> Dict[str, Any]:
    """Admin order list with optional status filter and pagination."""
    page = max(page, 1)
    per_page = min(max(per_page, 1), 100)
    
    query = _orders_query(session)
    count_query = session.query(func.count(Order.id))
    if status:
        try:
            status_filter = Order.status == OrderStatus(status)
        except ValueError:
            raise ValidationError(f'Unknown order status: {status}')
        query = query.filter(status_filter)
        count_query = count_query.filter(status_filter)
    
    total = count_query.scalar() or 0
    orders = _newest_first(query).offset((page - 1) * per_page).limit(per_page).all()
    
    return {
        'orders': [serialize_order(order) for order in orders],
        'total': total,
        'page': page,
        'perPage': per_page,
        'pages': ceil(total / per_page) if total else 0,
    }
