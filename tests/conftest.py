import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
import hashlib
import hmac
import itertools
import uuid

from farmstore import create_app
from farmstore.database import get_session, create_all, drop_all
from farmstore.models import (
    AppUser, AdminUser, Product, ProductVariant, CartItem, Discount, DiscountType,
    Order, OrderItem, OrderStatus, PaymentMethod
)

RAZORPAY_SECRET = 'test_key_secret'


def sign_payment(order_ref, payment_ref, secret=RAZORPAY_SECRET):
    """Signature the gateway would send for a successful payment."""
    return hmac.new(
        secret.encode('utf-8'),
        f'{order_ref}|{payment_ref}'.encode('utf-8'),
        hashlib.sha256
    ).hexdigest()


@pytest.fixture(scope='session')
def app():
    """Create application instance for testing."""
    return create_app('config.TestConfig')


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def session(app):
    """Fresh schema per test inside an application context."""
    with app.app_context():
        create_all()
        session = get_session()
        yield session
        session.rollback()
        session.remove()
        drop_all()


@pytest.fixture(scope='function')
def cart_session_id():
    return uuid.uuid4().hex


@pytest.fixture(scope='function')
def user(session):
    """Storefront customer."""
    user = AppUser(
        email='asha@example.com',
        name='Asha Rao',
        phone='9876543210',
        active=True
    )
    user.set_password('password123')
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def other_user(session):
    user = AppUser(email='ravi@example.com', name='Ravi Kumar', active=True)
    user.set_password('password123')
    session.add(user)
    session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(session):
    admin = AdminUser(email='ops@example.com')
    admin.set_password('adminpass123')
    session.add(admin)
    session.commit()
    return admin


@pytest.fixture(scope='function')
def product(session):
    product = Product(name='Organic Apples', category='Fruits', image_url='/img/apples.jpg')
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def variant(session, product):
    """1kg apples, list 120.00, sale 99.50, 2 in stock."""
    variant = ProductVariant(
        product_id=product.id,
        price=Decimal('120.00'),
        discount_price=Decimal('99.50'),
        quantity=Decimal('1'),
        unit='kg',
        stock_quantity=2,
        sku='APL-1KG'
    )
    session.add(variant)
    session.commit()
    return variant


@pytest.fixture(scope='function')
def second_product(session):
    product = Product(name='Farm Honey', category='Pantry')
    session.add(product)
    session.commit()
    return product


@pytest.fixture(scope='function')
def second_variant(session, second_product):
    """500g honey at 250.00 with no sale price, 5 in stock."""
    variant = ProductVariant(
        product_id=second_product.id,
        price=Decimal('250.00'),
        discount_price=None,
        quantity=Decimal('500'),
        unit='g',
        stock_quantity=5,
        sku='HNY-500G'
    )
    session.add(variant)
    session.commit()
    return variant


@pytest.fixture(scope='function')
def add_to_cart(session, cart_session_id):
    """Put a variant in the test cart."""
    def _add(variant, quantity, session_id=None):
        item = CartItem(
            session_id=session_id or cart_session_id,
            product_id=variant.product_id,
            variant_id=variant.id,
            quantity=quantity
        )
        session.add(item)
        session.commit()
        return item
    return _add


@pytest.fixture(scope='function')
def make_discount(session):
    """Build an active discount valid from yesterday to next week."""
    def _make(code='FRESH10', type=DiscountType.PERCENTAGE, value='10', **overrides):
        now = datetime.now(timezone.utc)
        fields = dict(
            code=code,
            description=f'{code} promo',
            type=type,
            value=Decimal(value),
            min_purchase=Decimal('0'),
            usage_limit=None,
            per_user=False,
            is_active=True,
            start_date=now - timedelta(days=1),
            end_date=now + timedelta(days=7),
            used=0,
        )
        fields.update(overrides)
        discount = Discount(**fields)
        session.add(discount)
        session.commit()
        return discount
    return _make


@pytest.fixture(scope='function')
def customer_info():
    return {
        'name': 'Asha Rao',
        'email': 'asha@example.com',
        'phone': '9876543210',
        'address': '12 MG Road',
        'city': 'Bengaluru',
        'state': 'Karnataka',
        'pincode': '560001',
    }


@pytest.fixture(scope='function')
def authenticated_client(client, user):
    """Client logged in as the storefront customer."""
    with client.session_transaction() as sess:
        sess['user_id'] = user.id
    return client


@pytest.fixture(scope='function')
def admin_client(client, admin_user):
    """Client logged in as an operator."""
    with client.session_transaction() as sess:
        sess['admin_user_id'] = admin_user.id
    return client


@pytest.fixture(scope='function')
def make_order(session, customer_info):
    """Persist an order directly, bypassing the checkout pipeline."""
    counter = itertools.count(1)
    
    def _make(user, variant, quantity=1, status=OrderStatus.CONFIRMED, discount_id=None, email=None):
        info = dict(customer_info)
        if email:
            info['email'] = email
        price = variant.effective_price
        order = Order(
            user_id=user.id,
            session_id='seeded',
            subtotal=price * quantity,
            discount_amount=Decimal('0.00'),
            total=price * quantity,
            status=status,
            customer_info=info,
            payment_method=PaymentMethod.COD,
            tracking_id=f'TST{next(counter):03d}',
            discount_id=discount_id,
            status_timeline=[{'status': status.value, 'message': 'seeded', 'date': '2026-01-01T00:00:00+00:00'}],
        )
        order.items.append(OrderItem(
            product_id=variant.product_id,
            variant_id=variant.id,
            quantity=quantity,
            price=price
        ))
        session.add(order)
        session.commit()
        return order
    return _make


@pytest.fixture(scope='function')
def payment_signature():
    return sign_payment
