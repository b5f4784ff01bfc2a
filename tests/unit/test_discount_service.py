"""
Unit tests for the discount evaluator.
"""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from farmstore.exceptions import DiscountRejectedError, NotFoundError, ValidationError
from farmstore.models import Discount, DiscountType, DiscountUsage
from farmstore.services import discount_service


class TestValidateDiscount:
    """Tests for validate_discount."""
    
    def test_percentage_discount(self, session, make_discount):
        discount = make_discount(value='10')
        
        result = discount_service.validate_discount(session, Decimal('199.00'), discount_id=discount.id)
        
        assert result.valid is True
        assert result.discount_amount == Decimal('19.90')
        assert result.adjusted_total == Decimal('179.10')
    
    def test_percentage_rounds_half_up(self, session, make_discount):
        discount = make_discount(value='12.5')
        
        result = discount_service.validate_discount(session, Decimal('0.20'), discount_id=discount.id)
        
        # 0.025 -> 0.03
        assert result.discount_amount == Decimal('0.03')
    
    def test_fixed_discount_capped_at_total(self, session, make_discount):
        discount = make_discount(code='FLAT500', type=DiscountType.FIXED, value='500')
        
        result = discount_service.validate_discount(session, Decimal('320.00'), discount_id=discount.id)
        
        assert result.valid is True
        assert result.discount_amount == Decimal('320.00')
        assert result.adjusted_total == Decimal('0.00')
    
    def test_lookup_by_code_is_case_insensitive(self, session, make_discount):
        make_discount(code='FRESH10')
        
        result = discount_service.validate_discount(session, 100, code='fresh10')
        
        assert result.valid is True
        assert result.discount.code == 'FRESH10'
    
    def test_unknown_code(self, session):
        result = discount_service.validate_discount(session, 100, code='NOPE')
        
        assert result.valid is False
        assert result.reason == 'not_found'
    
    def test_inactive_flag(self, session, make_discount):
        discount = make_discount(is_active=False)
        
        result = discount_service.validate_discount(session, 100, discount_id=discount.id)
        
        assert result.reason == 'inactive'
    
    def test_outside_date_window(self, session, make_discount):
        now = datetime.now(timezone.utc)
        discount = make_discount(start_date=now - timedelta(days=10), end_date=now - timedelta(days=1))
        
        result = discount_service.validate_discount(session, 100, discount_id=discount.id)
        
        assert result.reason == 'inactive'
    
    def test_below_minimum_purchase(self, session, make_discount):
        discount = make_discount(min_purchase=Decimal('500'))
        
        result = discount_service.validate_discount(session, Decimal('499.99'), discount_id=discount.id)
        
        assert result.valid is False
        assert result.reason == 'below_minimum'
        assert result.to_dict()['finalTotal'] == 499.99
    
    def test_usage_limit_reached(self, session, make_discount):
        discount = make_discount(usage_limit=3, used=3)
        
        result = discount_service.validate_discount(session, 100, discount_id=discount.id)
        
        assert result.reason == 'usage_limit_reached'
    
    def test_zero_usage_limit_means_unlimited(self, session, make_discount):
        discount = make_discount(usage_limit=0, used=250)
        
        result = discount_service.validate_discount(session, 100, discount_id=discount.id)
        
        assert result.valid is True
    
    def test_per_user_already_used(self, session, user, make_discount):
        discount = make_discount(per_user=True)
        session.add(DiscountUsage(discount_id=discount.id, user_id=user.id, order_id=None))
        session.commit()
        
        result = discount_service.validate_discount(session, 100, user_id=user.id, discount_id=discount.id)
        
        assert result.reason == 'already_used'
    
    def test_raise_if_rejected(self, session):
        result = discount_service.validate_discount(session, 100, code='NOPE')
        
        with pytest.raises(DiscountRejectedError) as exc_info:
            result.raise_if_rejected()
        assert exc_info.value.to_dict()['reason'] == 'not_found'


class TestApplyDiscount:
    """Tests for redemption bookkeeping."""
    
    def test_apply_records_usage_and_increments(self, session, user, make_discount):
        discount = make_discount()
        
        usage = discount_service.apply_discount(session, discount.id, user.id, 'sess-1', None)
        
        assert usage.id is not None
        assert session.get(Discount, discount.id).used == 1
    
    def test_apply_is_idempotent_per_order(self, session, user, make_discount, variant, make_order):
        discount = make_discount()
        order = make_order(user, variant)
        
        first = discount_service.apply_discount(session, discount.id, user.id, 'sess-1', order.id)
        second = discount_service.apply_discount(session, discount.id, user.id, 'sess-1', order.id)
        
        assert first.id == second.id
        assert session.get(Discount, discount.id).used == 1
        assert session.query(DiscountUsage).count() == 1
    
    def test_apply_refuses_to_exceed_limit(self, session, user, make_discount):
        discount = make_discount(usage_limit=1, used=1)
        
        with pytest.raises(DiscountRejectedError):
            discount_service.apply_discount(session, discount.id, user.id, 'sess-1', None)
        
        assert session.get(Discount, discount.id).used == 1
        assert session.query(DiscountUsage).count() == 0
    
    def test_apply_unknown_discount(self, session, user):
        with pytest.raises(NotFoundError):
            discount_service.apply_discount(session, 424242, user.id, 'sess-1', None)


class TestActiveDiscounts:
    """Tests for the shopper-facing discount list."""
    
    def test_filters_exhausted_and_used(self, session, user, make_discount):
        make_discount(code='OPEN')
        make_discount(code='GONE', usage_limit=2, used=2)
        make_discount(code='OFF', is_active=False)
        once = make_discount(code='ONCE', per_user=True)
        session.add(DiscountUsage(discount_id=once.id, user_id=user.id))
        session.commit()
        
        anonymous = [d.code for d in discount_service.get_active_discounts(session)]
        for_user = [d.code for d in discount_service.get_active_discounts(session, user_id=user.id)]
        
        assert sorted(anonymous) == ['ONCE', 'OPEN']
        assert for_user == ['OPEN']


class TestDiscountAdmin:
    """Tests for discount CRUD."""
    
    def _payload(self, **overrides):
        now = datetime.now(timezone.utc)
        data = {
            'code': 'monsoon20',
            'description': 'Monsoon sale',
            'type': 'percentage',
            'value': Decimal('20'),
            'min_purchase': Decimal('300'),
            'usage_limit': 100,
            'per_user': True,
            'is_active': True,
            'start_date': now,
            'end_date': now + timedelta(days=30),
        }
        data.update(overrides)
        return data
    
    def test_create_uppercases_code(self, session):
        discount = discount_service.create_discount(session, self._payload())
        session.commit()
        
        assert discount.code == 'MONSOON20'
        assert discount.type == DiscountType.PERCENTAGE
        assert discount.used == 0
    
    def test_create_duplicate_code(self, session, make_discount):
        make_discount(code='MONSOON20')
        
        with pytest.raises(ValidationError):
            discount_service.create_discount(session, self._payload())
    
    def test_create_rejects_inverted_window(self, session):
        now = datetime.now(timezone.utc)
        
        with pytest.raises(ValidationError):
            discount_service.create_discount(session, self._payload(start_date=now, end_date=now - timedelta(days=1)))
    
    def test_update_partial(self, session, make_discount):
        discount = make_discount()
        
        discount_service.update_discount(session, discount.id, {'value': Decimal('15'), 'is_active': False})
        session.commit()
        
        refreshed = session.get(Discount, discount.id)
        assert refreshed.value == Decimal('15.00')
        assert refreshed.is_active is False
    
    def test_delete_unreferenced(self, session, make_discount):
        discount = make_discount()
        discount_id = discount.id
        
        assert discount_service.delete_discount(session, discount_id) is True
        session.commit()
        assert session.get(Discount, discount_id) is None
    
    def test_delete_referenced_deactivates(self, session, user, variant, make_discount, make_order):
        discount = make_discount()
        make_order(user, variant, discount_id=discount.id)
        
        assert discount_service.delete_discount(session, discount.id) is False
        session.commit()
        assert session.get(Discount, discount.id).is_active is False
