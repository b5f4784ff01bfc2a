"""
Integration tests for checkout through /api/payments.
"""

import pytest

from farmstore.models import Order, OrderItem, Payment, ProductVariant, CartItem


@pytest.fixture
def cod_body(customer_info):
    return {'paymentMethod': 'cod', 'customerInfo': customer_info}


def _stock(session, variant_id):
    session.expire_all()
    return session.get(ProductVariant, variant_id).stock_quantity


class TestCheckoutEndpoint:
    """POST /api/payments/verify"""
    
    def test_cod_checkout(self, authenticated_client, session, variant, add_to_cart, cart_session_id, cod_body):
        variant_id = variant.id
        add_to_cart(variant, 2)
        
        response = authenticated_client.post(
            '/api/payments/verify', json=cod_body, headers={'X-Session-Id': cart_session_id}
        )
        
        assert response.status_code == 200
        data = response.get_json()
        assert data['message'] == 'Order placed successfully'
        assert data['payment'] is None
        assert data['order']['status'] == 'confirmed'
        assert data['order']['total'] == 199.0
        assert len(data['order']['trackingId']) == 6
        assert response.headers['X-Session-Id'] == cart_session_id
        
        assert _stock(session, variant_id) == 0
        assert session.query(CartItem).filter_by(session_id=cart_session_id).count() == 0
    
    def test_session_id_from_body(self, authenticated_client, session, variant, add_to_cart, cart_session_id, cod_body):
        add_to_cart(variant, 1)
        
        response = authenticated_client.post(
            '/api/payments/verify', json=dict(cod_body, sessionId=cart_session_id)
        )
        
        assert response.status_code == 200
        assert session.query(Order).count() == 1
    
    def test_missing_session_id(self, authenticated_client, session, cod_body):
        response = authenticated_client.post('/api/payments/verify', json=cod_body)
        
        assert response.status_code == 400
        assert response.get_json()['message'] == 'Missing session ID'
    
    def test_requires_login(self, client, session, cart_session_id, cod_body):
        response = client.post(
            '/api/payments/verify', json=cod_body, headers={'X-Session-Id': cart_session_id}
        )
        
        assert response.status_code == 401
    
    def test_razorpay_checkout(
        self, authenticated_client, session, variant, add_to_cart, cart_session_id, customer_info, payment_signature
    ):
        add_to_cart(variant, 1)
        body = {
            'paymentMethod': 'razorpay',
            'razorpayOrderId': 'order_API1',
            'razorpayPaymentId': 'pay_API1',
            'razorpaySignature': payment_signature('order_API1', 'pay_API1'),
            'amount': 9950,
            'customerInfo': customer_info,
        }
        
        response = authenticated_client.post(
            '/api/payments/verify', json=body, headers={'X-Session-Id': cart_session_id}
        )
        
        assert response.status_code == 200
        data = response.get_json()
        assert data['message'] == 'Payment successful and order created'
        assert data['payment']['razorpayPaymentId'] == 'pay_API1'
        assert data['payment']['amount'] == 99.5
        assert data['order']['paymentId'] == 'pay_API1'
    
    def test_forged_signature(
        self, authenticated_client, session, variant, add_to_cart, cart_session_id, customer_info
    ):
        variant_id = variant.id
        add_to_cart(variant, 1)
        body = {
            'paymentMethod': 'razorpay',
            'razorpayOrderId': 'order_API1',
            'razorpayPaymentId': 'pay_API1',
            'razorpaySignature': 'deadbeef',
            'amount': 9950,
            'customerInfo': customer_info,
        }
        
        response = authenticated_client.post(
            '/api/payments/verify', json=body, headers={'X-Session-Id': cart_session_id}
        )
        
        assert response.status_code == 400
        assert session.query(Order).count() == 0
        assert session.query(Payment).count() == 0
        assert _stock(session, variant_id) == 2
    
    def test_out_of_stock_names_product(
        self, authenticated_client, session, variant, add_to_cart, cart_session_id, cod_body
    ):
        add_to_cart(variant, 3)
        
        response = authenticated_client.post(
            '/api/payments/verify', json=cod_body, headers={'X-Session-Id': cart_session_id}
        )
        
        assert response.status_code == 400
        data = response.get_json()
        assert data['reason'] == 'insufficient_stock'
        assert 'Organic Apples' in data['message']
        assert session.query(OrderItem).count() == 0

    def test_withdrawn_variant_names_product(
        self, authenticated_client, session, variant, add_to_cart, cart_session_id, cod_body
    ):
        add_to_cart(variant, 1)
        variant.is_deleted = True
        session.commit()

        response = authenticated_client.post(
            '/api/payments/verify', json=cod_body, headers={'X-Session-Id': cart_session_id}
        )

        assert response.status_code == 400
        data = response.get_json()
        assert data['reason'] == 'insufficient_stock'
        assert data['available'] == 0
        assert 'Organic Apples' in data['message']
        assert session.query(Order).count() == 0

    def test_empty_cart(self, authenticated_client, session, cart_session_id, cod_body):
        response = authenticated_client.post(
            '/api/payments/verify', json=cod_body, headers={'X-Session-Id': cart_session_id}
        )
        
        assert response.status_code == 400
    
    def test_malformed_customer_info(
        self, authenticated_client, session, variant, add_to_cart, cart_session_id, customer_info
    ):
        add_to_cart(variant, 1)
        body = {'paymentMethod': 'cod', 'customerInfo': dict(customer_info, pincode='12AB')}
        
        response = authenticated_client.post(
            '/api/payments/verify', json=body, headers={'X-Session-Id': cart_session_id}
        )
        
        assert response.status_code == 400
        assert response.get_json()['errors']
        assert session.query(Order).count() == 0
    
    def test_unknown_payment_method(self, authenticated_client, session, cart_session_id, customer_info):
        response = authenticated_client.post(
            '/api/payments/verify',
            json={'paymentMethod': 'upi', 'customerInfo': customer_info},
            headers={'X-Session-Id': cart_session_id}
        )
        
        assert response.status_code == 400


class TestPaymentInitialize:
    """POST /api/payments/initialize"""
    
    def test_creates_gateway_order(self, authenticated_client, session, monkeypatch):
        from farmstore.services.razorpay_client import RazorpayClient
        
        def fake_create_order(self, amount, currency='INR', receipt=None):
            return {'id': 'order_NEW', 'amount': amount, 'currency': currency}
        monkeypatch.setattr(RazorpayClient, 'create_order', fake_create_order)
        
        response = authenticated_client.post('/api/payments/initialize', json={'amount': 19900})
        
        assert response.status_code == 200
        data = response.get_json()
        assert data['orderId'] == 'order_NEW'
        assert data['amount'] == 19900
        assert data['keyId'] == 'rzp_test_key'
        assert data['receipt'].startswith('rcpt_')
    
    def test_rejects_zero_amount(self, authenticated_client, session):
        response = authenticated_client.post('/api/payments/initialize', json={'amount': 0})
        
        assert response.status_code == 400
