"""Razorpay API client - order creation and payment signature checks."""
import hmac
import hashlib
import logging
from typing import Dict, Any, Optional

import requests
from flask import current_app

from farmstore.exceptions import PaymentGatewayError
from farmstore.blueprints.metrics import payment_signature_checks_total

logger = logging.getLogger(__name__)
security_logger = logging.getLogger('farmstore.security')


def _hmac_sha256(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode('utf-8'), message, hashlib.sha256).hexdigest()


def _record_check(kind: str, is_valid: bool) -> bool:
    payment_signature_checks_total.labels(kind=kind, result='valid' if is_valid else 'invalid').inc()
    return is_valid


class RazorpayClient:
    """Client for the Razorpay REST API."""
    
    BASE_URL = "https://api.razorpay.com/v1"
    
    def __init__(self, key_id: str, key_secret: str, webhook_secret: Optional[str] = None):
        """
        Initialize Razorpay client.
        
        Args:
            key_id: Public key id (rzp_live_... / rzp_test_...)
            key_secret: Secret used for API auth and payment signatures
            webhook_secret: Secret configured for webhook deliveries (optional)
        """
        if not key_id:
            raise ValueError("RAZORPAY_KEY_ID is required")
        if not key_secret:
            raise ValueError("RAZORPAY_KEY_SECRET is required")
        
        self.key_id = key_id
        self.key_secret = key_secret
        self.webhook_secret = webhook_secret
    
    def create_order(self, amount: int, currency: str = 'INR', receipt: Optional[str] = None) -> Dict[str, Any]:
        """
        Create a gateway order the browser checkout will pay against.
        
        Args:
            amount: Amount in the smallest currency unit (paise)
            currency: ISO currency code
            receipt: Merchant receipt reference
        
        Returns:
            Dict with the gateway order (id, amount, currency, status...)
        
        Raises:
            PaymentGatewayError: If the gateway is unreachable or answers an error
        """
        url = f"{self.BASE_URL}/orders"
        
        payload = {
            "amount": int(amount),
            "currency": currency,
            "payment_capture": 1
        }
        if receipt:
            payload["receipt"] = receipt
        
        logger.info(f"[RAZORPAY] Creating order for {amount} {currency} (receipt={receipt})")
        
        try:
            response = requests.post(
                url,
                json=payload,
                auth=(self.key_id, self.key_secret),
                timeout=10
            )
            response.raise_for_status()
            data = response.json()
            
            logger.info(f"[RAZORPAY] Order created: {data.get('id')}")
            return data
        
        except requests.HTTPError as e:
            logger.error(f"[RAZORPAY] Error creating order: {e.response.text}")
            raise PaymentGatewayError('Payment gateway rejected the order request') from e
        except requests.RequestException as e:
            logger.error(f"[RAZORPAY] Gateway unreachable: {str(e)}")
            raise PaymentGatewayError('Payment gateway unavailable') from e
    
    def verify_payment_signature(self, order_ref: str, payment_ref: str, signature: str) -> bool:
        """
        Check the checkout signature: HMAC-SHA256 of "order_ref|payment_ref".
        
        Reads nothing but its inputs and the key secret; never touches stock or orders.
        """
        if not order_ref or not payment_ref or not signature:
            security_logger.warning(
                f"[RAZORPAY] Missing signature fields (order={order_ref!r}, payment={payment_ref!r})"
            )
            return _record_check('payment', False)
        
        expected = _hmac_sha256(self.key_secret, f"{order_ref}|{payment_ref}".encode('utf-8'))
        is_valid = hmac.compare_digest(expected.encode('utf-8'), signature.encode('utf-8'))
        if not is_valid:
            security_logger.warning(
                f"[RAZORPAY] Invalid payment signature for order {order_ref} / payment {payment_ref}"
            )
        return _record_check('payment', is_valid)
    
    def verify_webhook_signature(self, body: bytes, signature: str) -> bool:
        """Check a webhook delivery: HMAC-SHA256 of the raw body."""
        if not self.webhook_secret:
            security_logger.warning("[RAZORPAY] Webhook received but RAZORPAY_WEBHOOK_SECRET is not configured")
            return False
        if not signature:
            security_logger.warning("[RAZORPAY] Missing X-Razorpay-Signature header")
            return _record_check('webhook', False)
        
        expected = _hmac_sha256(self.webhook_secret, body)
        is_valid = hmac.compare_digest(expected.encode('utf-8'), signature.encode('utf-8'))
        if not is_valid:
            security_logger.warning("[RAZORPAY] Invalid webhook signature")
        return _record_check('webhook', is_valid)


def init_payments(app) -> Optional[RazorpayClient]:
    """
    Build the payment client from config and register it on the app.
    
    Without keys the extension is None: electronic checkout answers 503
    while cash on delivery keeps working.
    """
    key_id = app.config.get('RAZORPAY_KEY_ID')
    key_secret = app.config.get('RAZORPAY_KEY_SECRET')
    
    client = None
    if key_id and key_secret:
        client = RazorpayClient(
            key_id,
            key_secret,
            webhook_secret=app.config.get('RAZORPAY_WEBHOOK_SECRET')
        )
        app.logger.info(f"[RAZORPAY] Payment client configured (key {key_id[:8]}...)")
    else:
        app.logger.warning("[RAZORPAY] Keys not configured, online payments disabled")
    
    app.extensions['razorpay'] = client
    return client


def get_payment_client() -> Optional[RazorpayClient]:
    return current_app.extensions.get('razorpay')


def require_payment_client() -> RazorpayClient:
    client = get_payment_client()
    if client is None:
        raise PaymentGatewayError('Online payments are not configured', status_code=503)
    return client
