"""
Razorpay webhook blueprint.

Exempt from CSRF; authenticity comes from the X-Razorpay-Signature header.
"""
import logging

from flask import Blueprint, request, jsonify

from farmstore.database import get_session
from farmstore.models import Payment
from farmstore.services.razorpay_client import get_payment_client
from farmstore.services.cache_service import invalidate_user_orders

logger = logging.getLogger(__name__)

webhooks_bp = Blueprint('webhooks', __name__, url_prefix='/api/webhooks')

# Gateway event -> Payment.status
PAYMENT_STATUS_EVENTS = {
    'payment.captured': 'captured',
    'payment.failed': 'failed',
    'refund.processed': 'refunded',
}


def _payment_entity(data: dict) -> dict:
    payload = data.get('payload') or {}
    if 'payment' in payload:
        return (payload['payment'] or {}).get('entity') or {}
    if 'refund' in payload:
        refund = (payload['refund'] or {}).get('entity') or {}
        return {'id': refund.get('payment_id')}
    return {}


@webhooks_bp.route('/razorpay', methods=['POST'])
def razorpay_webhook():
    """
    Handle Razorpay webhook notifications.
    
    Orders are created by the checkout itself; deliveries only update the
    recorded payment status.
    """
    client = get_payment_client()
    if client is None:
        return jsonify({'error': 'Payments not configured'}), 503
    
    signature = request.headers.get('X-Razorpay-Signature', '')
    if not client.verify_webhook_signature(request.get_data(), signature):
        return jsonify({'error': 'Invalid signature'}), 401
    
    data = request.get_json(silent=True)
    if not data:
        logger.warning("[RAZORPAY] Empty webhook payload")
        return jsonify({'error': 'Empty payload'}), 400
    
    event = data.get('event')
    logger.info(f"[RAZORPAY] Received webhook: event={event}")
    
    new_status = PAYMENT_STATUS_EVENTS.get(event)
    if not new_status:
        return jsonify({'status': 'ignored', 'event': event}), 200
    
    payment_ref = _payment_entity(data).get('id')
    session = get_session()
    payment = session.query(Payment).filter_by(razorpay_payment_id=payment_ref).first() if payment_ref else None
    
    if payment is None:
        logger.info(f"[RAZORPAY] No recorded payment for {payment_ref} ({event})")
        return jsonify({'status': 'acknowledged'}), 200
    
    try:
        payment.status = new_status
        session.commit()
    except Exception:
        session.rollback()
        raise
    
    invalidate_user_orders(payment.user_id)
    logger.info(f"[RAZORPAY] Payment {payment_ref} marked {new_status}")
    return jsonify({'status': 'processed'}), 200
