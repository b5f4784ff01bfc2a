"""
Unit tests for the Razorpay client.
"""

import hashlib
import hmac
from unittest.mock import patch, MagicMock

import pytest
import requests

from farmstore.exceptions import PaymentGatewayError
from farmstore.services.razorpay_client import RazorpayClient


@pytest.fixture
def rzp():
    return RazorpayClient('rzp_test_key', 'test_key_secret', webhook_secret='whsec')


class TestConstruction:
    
    def test_missing_key_id(self):
        with pytest.raises(ValueError):
            RazorpayClient('', 'secret')
    
    def test_missing_secret(self):
        with pytest.raises(ValueError):
            RazorpayClient('rzp_test_key', None)


class TestPaymentSignature:
    """Tests for checkout signature verification."""
    
    def test_valid_signature(self, rzp, payment_signature):
        signature = payment_signature('order_A1', 'pay_B2')
        
        assert rzp.verify_payment_signature('order_A1', 'pay_B2', signature) is True
    
    def test_tampered_payment_id(self, rzp, payment_signature):
        signature = payment_signature('order_A1', 'pay_B2')
        
        assert rzp.verify_payment_signature('order_A1', 'pay_XX', signature) is False
    
    def test_signature_from_other_secret(self, rzp, payment_signature):
        signature = payment_signature('order_A1', 'pay_B2', secret='someone-else')
        
        assert rzp.verify_payment_signature('order_A1', 'pay_B2', signature) is False
    
    def test_missing_fields(self, rzp):
        assert rzp.verify_payment_signature('order_A1', '', 'abc') is False
        assert rzp.verify_payment_signature(None, 'pay_B2', 'abc') is False
    
    def test_rejection_logged_on_security_logger(self, rzp, caplog):
        with caplog.at_level('WARNING', logger='farmstore.security'):
            rzp.verify_payment_signature('order_A1', 'pay_B2', 'bad')
        
        assert any('Invalid payment signature' in r.message for r in caplog.records)


class TestWebhookSignature:
    
    def test_valid_webhook(self, rzp):
        body = b'{"event":"payment.captured"}'
        signature = hmac.new(b'whsec', body, hashlib.sha256).hexdigest()
        
        assert rzp.verify_webhook_signature(body, signature) is True
    
    def test_invalid_webhook(self, rzp):
        assert rzp.verify_webhook_signature(b'{}', 'deadbeef') is False
    
    def test_webhook_without_secret(self):
        client = RazorpayClient('rzp_test_key', 'test_key_secret')
        
        assert client.verify_webhook_signature(b'{}', 'anything') is False


class TestCreateOrder:
    """Tests for gateway order creation."""
    
    @patch('farmstore.services.razorpay_client.requests.post')
    def test_create_order(self, mock_post, rzp):
        response = MagicMock()
        response.json.return_value = {'id': 'order_XYZ', 'amount': 19900, 'currency': 'INR'}
        response.raise_for_status.return_value = None
        mock_post.return_value = response
        
        data = rzp.create_order(19900, 'INR', 'rcpt_1')
        
        assert data['id'] == 'order_XYZ'
        args, kwargs = mock_post.call_args
        assert args[0] == 'https://api.razorpay.com/v1/orders'
        assert kwargs['json'] == {'amount': 19900, 'currency': 'INR', 'payment_capture': 1, 'receipt': 'rcpt_1'}
        assert kwargs['auth'] == ('rzp_test_key', 'test_key_secret')
        assert kwargs['timeout'] == 10
    
    @patch('farmstore.services.razorpay_client.requests.post')
    def test_gateway_error(self, mock_post, rzp):
        response = MagicMock()
        response.text = '{"error": "bad request"}'
        response.raise_for_status.side_effect = requests.HTTPError(response=response)
        mock_post.return_value = response
        
        with pytest.raises(PaymentGatewayError) as exc_info:
            rzp.create_order(19900)
        assert exc_info.value.status_code == 502
    
    @patch('farmstore.services.razorpay_client.requests.post')
    def test_gateway_unreachable(self, mock_post, rzp):
        mock_post.side_effect = requests.ConnectionError('timeout')
        
        with pytest.raises(PaymentGatewayError):
            rzp.create_order(19900)
