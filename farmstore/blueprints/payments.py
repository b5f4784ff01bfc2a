"""
Payments blueprint - gateway order creation and checkout.

POST /api/payments/verify is the checkout entry point for both Razorpay and
cash on delivery.
"""
import uuid

from flask import Blueprint, jsonify, g, current_app, request

from farmstore.database import get_session
from farmstore.exceptions import ValidationError
from farmstore.middleware import require_login
from farmstore.models import PaymentMethod
from farmstore.schemas import InitializePaymentRequest, parse_checkout
from farmstore.services import order_service, order_query_service
from farmstore.services.razorpay_client import get_payment_client, require_payment_client
from farmstore.utils.payload import parse_body

payments_bp = Blueprint('payments', __name__, url_prefix='/api/payments')


@payments_bp.route('/initialize', methods=['POST'])
@require_login
def initialize():
    """Create a gateway order the browser checkout pays against."""
    data = parse_body(InitializePaymentRequest)
    client = require_payment_client()
    
    receipt = data.receipt or f"rcpt_{uuid.uuid4().hex[:12]}"
    gateway_order = client.create_order(data.amount, data.currency, receipt)
    
    return jsonify({
        'orderId': gateway_order.get('id'),
        'amount': gateway_order.get('amount', data.amount),
        'currency': gateway_order.get('currency', data.currency),
        'receipt': receipt,
        'keyId': client.key_id,
    })


@payments_bp.route('/verify', methods=['POST'])
@require_login
def verify():
    """Verify payment (or accept COD) and place the order."""
    checkout = parse_checkout(request.get_json(silent=True))
    
    session_id = None if g.cart_session_generated else g.cart_session_id
    session_id = session_id or checkout.session_id
    if not session_id:
        raise ValidationError('Missing session ID')
    
    order = order_service.place_order(
        get_session(),
        g.user,
        session_id,
        checkout,
        payment_client=get_payment_client()
    )
    
    current_app.logger.info(f"[CHECKOUT] Order {order.tracking_id} returned to user {g.user.id}")
    message = (
        'Order placed successfully' if order.payment_method == PaymentMethod.COD
        else 'Payment successful and order created'
    )
    return jsonify({
        'message': message,
        'order': order_query_service.serialize_order(order),
        'payment': order_query_service.serialize_payment(order.payment),
    })


@payments_bp.route('/history', methods=['GET'])
@require_login
def history():
    return jsonify(order_query_service.get_payment_history(get_session(), g.user.id))
