"""
Integration tests for the Razorpay webhook receiver.
"""

import hashlib
import hmac
import json

from farmstore.models import Payment


def _signed(body):
    raw = json.dumps(body).encode('utf-8')
    signature = hmac.new(b'test_webhook_secret', raw, hashlib.sha256).hexdigest()
    return raw, {'X-Razorpay-Signature': signature, 'Content-Type': 'application/json'}


def _record_payment(session, order, payment_ref='pay_WH1'):
    payment = Payment(
        order_id=order.id,
        user_id=order.user_id,
        razorpay_payment_id=payment_ref,
        amount=order.total,
        currency='INR'
    )
    session.add(payment)
    session.commit()
    return payment.id


class TestRazorpayWebhook:
    
    def test_captured_event_updates_payment(self, client, session, user, variant, make_order):
        payment_id = _record_payment(session, make_order(user, variant))
        raw, headers = _signed({
            'event': 'payment.captured',
            'payload': {'payment': {'entity': {'id': 'pay_WH1'}}}
        })
        
        response = client.post('/api/webhooks/razorpay', data=raw, headers=headers)
        
        assert response.status_code == 200
        assert response.get_json()['status'] == 'processed'
        session.expire_all()
        assert session.get(Payment, payment_id).status == 'captured'
    
    def test_status_change_drops_cached_order_views(self, client, session, user, variant, make_order, monkeypatch):
        user_id = user.id
        _record_payment(session, make_order(user, variant))
        invalidated = []
        monkeypatch.setattr('farmstore.blueprints.webhooks.invalidate_user_orders', invalidated.append)
        raw, headers = _signed({
            'event': 'payment.failed',
            'payload': {'payment': {'entity': {'id': 'pay_WH1'}}}
        })

        client.post('/api/webhooks/razorpay', data=raw, headers=headers)

        assert invalidated == [user_id]

    def test_refund_event(self, client, session, user, variant, make_order):
        payment_id = _record_payment(session, make_order(user, variant))
        raw, headers = _signed({
            'event': 'refund.processed',
            'payload': {'refund': {'entity': {'id': 'rfnd_1', 'payment_id': 'pay_WH1'}}}
        })
        
        client.post('/api/webhooks/razorpay', data=raw, headers=headers)
        
        session.expire_all()
        assert session.get(Payment, payment_id).status == 'refunded'
    
    def test_bad_signature(self, client, session):
        raw = json.dumps({'event': 'payment.captured'}).encode('utf-8')
        
        response = client.post('/api/webhooks/razorpay', data=raw, headers={
            'X-Razorpay-Signature': 'nope', 'Content-Type': 'application/json'
        })
        
        assert response.status_code == 401
    
    def test_unhandled_event_is_ignored(self, client, session):
        raw, headers = _signed({'event': 'order.paid', 'payload': {}})
        
        response = client.post('/api/webhooks/razorpay', data=raw, headers=headers)
        
        assert response.status_code == 200
        assert response.get_json()['status'] == 'ignored'
    
    def test_unknown_payment_is_acknowledged(self, client, session):
        raw, headers = _signed({
            'event': 'payment.failed',
            'payload': {'payment': {'entity': {'id': 'pay_UNKNOWN'}}}
        })
        
        response = client.post('/api/webhooks/razorpay', data=raw, headers=headers)
        
        assert response.status_code == 200
        assert response.get_json()['status'] == 'acknowledged'
