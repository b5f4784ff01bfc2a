"""
Order pipeline - turns a verified checkout into a durable order.

Stock reservation and order persistence share one database transaction:
any failure before the commit rolls back every reservation made so far.
Side effects after the commit (operator email, discount bookkeeping, cart
clearing) are best-effort and never undo the order.
"""
import logging
import secrets
import string
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, List, Dict, Any

from sqlalchemy.exc import IntegrityError

from farmstore.models import Order, OrderItem, OrderStatus, Payment, PaymentMethod
from farmstore.exceptions import (
    StoreError, BusinessLogicError, EmptyCartError, PaymentGatewayError,
    PaymentVerificationError, ValidationError
)
from farmstore.services import stock_service, cart_service, discount_service, email_service
from farmstore.services.cache_service import invalidate_user_orders
from farmstore.blueprints.metrics import orders_placed_total, checkout_failures_total, checkout_duration_seconds
from farmstore.utils.money import to_money, from_minor_units

logger = logging.getLogger(__name__)
security_logger = logging.getLogger('farmstore.security')

TRACKING_ID_ATTEMPTS = 5

PLACED_MESSAGE = 'Your order has been placed successfully'


def timeline_entry(status: OrderStatus, message: str, when: Optional[datetime] = None) -> Dict[str, Any]:
    when = when or datetime.now(timezone.utc)
    return {'status': status.value, 'message': message, 'date': when.isoformat()}


def _random_tracking_id() -> str:
    letters = ''.join(secrets.choice(string.ascii_uppercase) for _ in range(3))
    digits = ''.join(secrets.choice(string.digits) for _ in range(3))
    return letters + digits


def generate_tracking_id(session, attempts: int = TRACKING_ID_ATTEMPTS) -> str:
    """
    Three uppercase letters followed by three digits, e.g. ``KQZ042``.
    
    Checked against existing orders before use; the unique index on
    orders.tracking_id catches the remaining race at commit time.
    """
    for _ in range(attempts):
        candidate = _random_tracking_id()
        taken = session.query(Order.id).filter(Order.tracking_id == candidate).first()
        if not taken:
            return candidate
        logger.warning(f"[CHECKOUT] Tracking id collision on {candidate}, retrying")
    
    raise StoreError('Could not allocate a tracking number, please retry', 503)


def _capture_lines(cart_items) -> List[Dict[str, Any]]:
    """Freeze the unit price of every cart line at this moment."""
    lines = []
    for item in cart_items:
        if item.variant is None:
            raise ValidationError(f'Cart line {item.id} refers to a missing variant')
        lines.append({
            'product_id': item.product_id,
            'variant_id': item.variant_id,
            'quantity': item.quantity,
            'price': to_money(item.variant.effective_price),
        })
    return lines


def _fail(reason: str) -> None:
    checkout_failures_total.labels(reason=reason).inc()


@checkout_duration_seconds.time()
def place_order(session, user, session_id: str, checkout, payment_client=None) -> Order:
    """
    Create an order from the shopper's cart.
    
    Args:
        session: Database session (this function commits)
        user: Authenticated AppUser placing the order
        session_id: Cart session identifier
        checkout: RazorpayCheckout or CodCheckout contract
        payment_client: RazorpayClient used to verify electronic payments
    
    Returns:
        The committed Order with items (and payment for electronic orders)
    
    Raises:
        EmptyCartError: cart has no lines
        PaymentGatewayError: electronic checkout without a configured gateway
        PaymentVerificationError: signature mismatch (nothing is written)
        DiscountRejectedError: applied discount no longer valid
        InsufficientStockError: a line cannot be covered (all reservations released)
    """
    method = PaymentMethod(checkout.payment_method)
    
    # 1. Cart
    cart_items = cart_service.get_cart_items(session, session_id)
    if not cart_items:
        _fail('empty_cart')
        raise EmptyCartError()
    
    # 2. Payment proof, before anything is mutated
    if method == PaymentMethod.RAZORPAY:
        if payment_client is None:
            _fail('gateway_unavailable')
            raise PaymentGatewayError('Online payments are not configured', status_code=503)
        
        if not payment_client.verify_payment_signature(
            checkout.razorpay_order_id,
            checkout.razorpay_payment_id,
            checkout.razorpay_signature
        ):
            _fail('invalid_signature')
            security_logger.warning(
                f"[CHECKOUT] Rejected payment {checkout.razorpay_payment_id} for user {user.id}: "
                f"signature mismatch"
            )
            raise PaymentVerificationError()
    
    # 3. Server-side totals and discount re-validation
    lines = _capture_lines(cart_items)
    subtotal = sum((line['price'] * line['quantity'] for line in lines), Decimal('0.00'))
    
    discount = None
    discount_amount = Decimal('0.00')
    if checkout.applied_discount:
        validation = discount_service.validate_discount(
            session,
            subtotal,
            user_id=user.id,
            discount_id=checkout.applied_discount.id
        )
        if not validation.valid:
            _fail('discount_rejected')
        validation.raise_if_rejected()
        discount = validation.discount
        discount_amount = validation.discount_amount
    
    total = subtotal - discount_amount
    
    paid_amount = None
    if checkout.amount is not None:
        paid_amount = from_minor_units(checkout.amount)
    if method == PaymentMethod.RAZORPAY and paid_amount < total:
        _fail('amount_mismatch')
        security_logger.warning(
            f"[CHECKOUT] Payment {checkout.razorpay_payment_id} covers {paid_amount}, order total is {total}"
        )
        raise ValidationError('Paid amount does not cover the order total', payload={
            'paid': float(paid_amount),
            'total': float(total),
        })
    
    # 4. Reserve stock and persist the order in one transaction
    try:
        for line in lines:
            stock_service.check_and_reserve(session, line['variant_id'], line['quantity'])
        
        order = Order(
            user_id=user.id,
            session_id=session_id,
            subtotal=subtotal,
            discount_amount=discount_amount,
            total=total,
            status=OrderStatus.CONFIRMED,
            customer_info=checkout.customer_info.model_dump(mode='json', exclude_none=True),
            payment_method=method,
            payment_id=checkout.razorpay_payment_id if method == PaymentMethod.RAZORPAY else None,
            tracking_id=generate_tracking_id(session),
            discount_id=discount.id if discount else None,
            status_timeline=[timeline_entry(OrderStatus.CONFIRMED, PLACED_MESSAGE)],
        )
        
        for line in lines:
            order.items.append(OrderItem(**line))
        
        if method == PaymentMethod.RAZORPAY:
            order.payment = Payment(
                user_id=user.id,
                razorpay_payment_id=checkout.razorpay_payment_id,
                razorpay_order_id=checkout.razorpay_order_id,
                amount=paid_amount,
                currency=checkout.currency,
                status='completed'
            )
        
        session.add(order)
        session.commit()
    
    except StoreError as e:
        session.rollback()
        _fail(e.payload.get('reason', 'rejected') if e.payload else 'rejected')
        logger.info(f"[CHECKOUT] Aborted for user {user.id}: {e.message}")
        raise
    except IntegrityError as e:
        session.rollback()
        _fail('integrity')
        logger.error(f"[CHECKOUT] Integrity error for user {user.id}: {e}")
        raise BusinessLogicError('Order could not be saved, please retry') from e
    except Exception:
        session.rollback()
        _fail('unexpected')
        logger.exception(f"[CHECKOUT] Unexpected error for user {user.id}")
        raise
    
    orders_placed_total.labels(payment_method=method.value).inc()
    logger.info(
        f"[CHECKOUT] Order {order.id} ({order.tracking_id}) placed by user {user.id}: "
        f"{len(lines)} line(s), total {total}, {method.value}"
    )
    
    # 5-7. Best-effort follow-ups
    email_service.send_order_notification_to_admin(order)
    
    if discount is not None:
        _record_discount_usage(session, discount.id, user.id, session_id, order.id)
    
    try:
        cart_service.clear_cart(session, session_id)
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"[CHECKOUT] Failed to clear cart {session_id} after order {order.id}: {e}")
    
    invalidate_user_orders(user.id)
    return order


def _record_discount_usage(session, discount_id: int, user_id: int, session_id: str, order_id: int) -> None:
    try:
        discount_service.apply_discount(session, discount_id, user_id, session_id, order_id)
    except Exception as e:
        session.rollback()
        logger.error(f"[DISCOUNT] Failed to record discount {discount_id} for order {order_id}: {e}")
