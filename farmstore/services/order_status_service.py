"""
Order lifecycle - status transitions and the cancellation review flow.

    pending -> confirmed -> processing -> shipped -> delivered
    confirmed | processing -> cancellation_requested -> cancelled
                                                     -> (previous status)

delivered and cancelled are terminal.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from farmstore.models import Order, OrderStatus, AuditAction
from farmstore.exceptions import (
    BusinessLogicError, InvalidStatusTransitionError, NotFoundError, UnauthorizedError
)
from farmstore.services import stock_service
from farmstore.services.audit_service import log_action
from farmstore.services.cache_service import invalidate_user_orders
from farmstore.services.order_service import timeline_entry
from farmstore.blueprints.metrics import order_transitions_total

logger = logging.getLogger(__name__)

# Operator-driven forward moves
ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLATION_REQUESTED: set(),
    OrderStatus.CANCELLED: set(),
}

CANCELLABLE_BY_CUSTOMER = {OrderStatus.CONFIRMED, OrderStatus.PROCESSING}

DEFAULT_MESSAGES = {
    OrderStatus.CONFIRMED: 'Your order has been confirmed',
    OrderStatus.PROCESSING: 'Your order is being prepared',
    OrderStatus.SHIPPED: 'Your order has been shipped',
    OrderStatus.DELIVERED: 'Your order has been delivered',
    OrderStatus.CANCELLED: 'Your order has been cancelled',
}


def _get_order(session, order_id: int) -> Order:
    order = session.get(Order, order_id)
    if not order:
        raise NotFoundError('Order not found')
    return order


def _append_timeline(order: Order, status: OrderStatus, message: str) -> None:
    # JSON column: assign a new list so the change is tracked
    order.status_timeline = list(order.status_timeline or []) + [timeline_entry(status, message)]


def _set_status(order: Order, status: OrderStatus, message: str) -> None:
    order.status = status
    _append_timeline(order, status, message)
    order_transitions_total.labels(status=status.value).inc()
    if status == OrderStatus.DELIVERED:
        order.delivered_at = datetime.now(timezone.utc)


def _restock(session, order: Order) -> None:
    for item in order.items:
        stock_service.release(session, item.variant_id, item.quantity)


def transition_order(
    session,
    order_id: int,
    new_status: OrderStatus,
    message: Optional[str] = None,
    tracking_number: Optional[str] = None
) -> Order:
    """
    Move an order along the operator lifecycle and commit.
    
    Cancelling directly (no prior request) also restocks the items.
    
    Raises:
        InvalidStatusTransitionError: move not allowed from the current status
    """
    order = _get_order(session, order_id)
    new_status = OrderStatus(new_status)
    current = order.status
    
    if new_status not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransitionError(current.value, new_status.value)
    
    try:
        if new_status == OrderStatus.CANCELLED:
            _restock(session, order)
        if tracking_number:
            order.shipment_tracking_number = tracking_number
        
        _set_status(order, new_status, message or DEFAULT_MESSAGES[new_status])
        log_action(
            session,
            AuditAction.ORDER_STATUS_CHANGED,
            resource_type='order',
            resource_id=order.id,
            details={'from': current.value, 'to': new_status.value}
        )
        session.commit()
    except Exception:
        session.rollback()
        raise
    
    logger.info(f"Order {order.id} status {current.value} -> {new_status.value}")
    invalidate_user_orders(order.user_id)
    return order


def request_cancellation(session, order_id: int, user_id: int, reason: str) -> Order:
    """
    Customer asks to cancel an order that has not shipped yet.
    
    Raises:
        NotFoundError: order does not exist
        UnauthorizedError: order belongs to someone else
        BusinessLogicError: order is past the point of cancellation
    """
    order = _get_order(session, order_id)
    if order.user_id != user_id:
        raise UnauthorizedError('You can only cancel your own orders', status_code=403)
    
    if order.status not in CANCELLABLE_BY_CUSTOMER:
        raise BusinessLogicError(
            f"Order cannot be cancelled while {order.status.value}",
            payload={'currentStatus': order.status.value}
        )
    
    try:
        order.previous_status = order.status
        order.cancellation_reason = reason
        _set_status(order, OrderStatus.CANCELLATION_REQUESTED, 'Cancellation requested by customer')
        session.commit()
    except Exception:
        session.rollback()
        raise
    
    logger.info(f"Order {order.id} cancellation requested by user {user_id}")
    invalidate_user_orders(order.user_id)
    return order


def _get_pending_cancellation(session, order_id: int) -> Order:
    order = _get_order(session, order_id)
    if order.status != OrderStatus.CANCELLATION_REQUESTED:
        raise BusinessLogicError('Order has no pending cancellation request')
    return order


def approve_cancellation(session, order_id: int, note: Optional[str] = None) -> Order:
    """Operator accepts the request: order becomes cancelled and stock returns."""
    order = _get_pending_cancellation(session, order_id)
    
    try:
        _restock(session, order)
        order.previous_status = None
        _set_status(order, OrderStatus.CANCELLED, note or DEFAULT_MESSAGES[OrderStatus.CANCELLED])
        log_action(
            session,
            AuditAction.ORDER_CANCELLATION_APPROVED,
            resource_type='order',
            resource_id=order.id,
            details={'reason': order.cancellation_reason, 'note': note}
        )
        session.commit()
    except Exception:
        session.rollback()
        raise
    
    logger.info(f"Order {order.id} cancellation approved, {len(order.items)} line(s) restocked")
    invalidate_user_orders(order.user_id)
    return order


def reject_cancellation(session, order_id: int, note: Optional[str] = None) -> Order:
    """Operator declines the request: order returns to where it was."""
    order = _get_pending_cancellation(session, order_id)
    restored = order.previous_status or OrderStatus.CONFIRMED
    
    try:
        order.previous_status = None
        _set_status(order, restored, note or 'Cancellation request was declined')
        log_action(
            session,
            AuditAction.ORDER_CANCELLATION_REJECTED,
            resource_type='order',
            resource_id=order.id,
            details={'restoredStatus': restored.value, 'note': note}
        )
        session.commit()
    except Exception:
        session.rollback()
        raise
    
    logger.info(f"Order {order.id} cancellation rejected, back to {restored.value}")
    invalidate_user_orders(order.user_id)
    return order
