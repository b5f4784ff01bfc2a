"""
Discount evaluator - validation, redemption bookkeeping and admin CRUD.

Redemption (apply_discount) is an accounting side channel: the order
pipeline calls it after the order is committed and only logs its failures.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional, Dict, Any, List

from sqlalchemy import update, or_, func
from sqlalchemy.exc import IntegrityError

from farmstore.models import Discount, DiscountType, DiscountUsage, Order
from farmstore.exceptions import DiscountRejectedError, NotFoundError, ValidationError
from farmstore.utils.money import to_money, money_float

logger = logging.getLogger(__name__)

# Rejection reasons
NOT_FOUND = 'not_found'
INACTIVE = 'inactive'
BELOW_MINIMUM = 'below_minimum'
USAGE_LIMIT_REACHED = 'usage_limit_reached'
ALREADY_USED = 'already_used'


@dataclass
class DiscountValidation:
    """Outcome of validate_discount."""
    valid: bool
    cart_total: Decimal
    reason: Optional[str] = None
    message: str = ''
    discount: Optional[Discount] = None
    discount_amount: Decimal = Decimal('0.00')
    adjusted_total: Optional[Decimal] = None
    
    def raise_if_rejected(self) -> 'DiscountValidation':
        if not self.valid:
            raise DiscountRejectedError(self.reason, self.message)
        return self
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            'valid': self.valid,
            'reason': self.reason,
            'message': self.message,
            'discount': self.discount.to_dict() if self.discount and self.valid else None,
            'discountAmount': money_float(self.discount_amount),
            'finalTotal': money_float(self.adjusted_total if self.valid else self.cart_total),
        }


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; stored values are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_within_window(discount: Discount, now: Optional[datetime] = None) -> bool:
    now = now or datetime.now(timezone.utc)
    return _as_utc(discount.start_date) <= now <= _as_utc(discount.end_date)


def compute_discount_amount(discount: Discount, cart_total: Decimal) -> Decimal:
    """Percentage of the total, or a fixed amount capped at the total."""
    cart_total = to_money(cart_total)
    if discount.type == DiscountType.PERCENTAGE:
        amount = to_money(cart_total * Decimal(discount.value) / Decimal('100'))
    else:
        amount = to_money(discount.value)
    return min(amount, cart_total)


def count_user_usage(session, discount_id: int, user_id: int) -> int:
    return session.query(func.count(DiscountUsage.id)).filter(
        DiscountUsage.discount_id == discount_id,
        DiscountUsage.user_id == user_id
    ).scalar() or 0


def _find_discount(session, code: Optional[str], discount_id: Optional[int]) -> Optional[Discount]:
    if discount_id:
        return session.get(Discount, discount_id)
    if code and code.strip():
        return session.query(Discount).filter(
            func.upper(Discount.code) == code.strip().upper()
        ).first()
    return None


def validate_discount(
    session,
    cart_total,
    user_id: Optional[int] = None,
    code: Optional[str] = None,
    discount_id: Optional[int] = None,
    now: Optional[datetime] = None
) -> DiscountValidation:
    """
    Check a discount (by id, or by code as fallback) against a cart total.
    
    Never raises for a business rejection; the result carries the reason.
    """
    cart_total = to_money(cart_total)
    discount = _find_discount(session, code, discount_id)
    
    def rejected(reason: str, message: str) -> DiscountValidation:
        logger.info(f"[DISCOUNT] Rejected {code or discount_id} for user {user_id}: {reason}")
        return DiscountValidation(False, cart_total, reason, message, discount)
    
    if not discount:
        return rejected(NOT_FOUND, 'Discount code not found')
    
    if not discount.is_active or not is_within_window(discount, now):
        return rejected(INACTIVE, 'This discount is not active')
    
    min_purchase = to_money(discount.min_purchase or 0)
    if cart_total < min_purchase:
        return rejected(BELOW_MINIMUM, f'Minimum purchase of {min_purchase} required for this discount')
    
    if discount.has_usage_limit and discount.used >= discount.usage_limit:
        return rejected(USAGE_LIMIT_REACHED, 'This discount has reached its usage limit')
    
    if discount.per_user and user_id and count_user_usage(session, discount.id, user_id) > 0:
        return rejected(ALREADY_USED, 'You have already used this discount')
    
    amount = compute_discount_amount(discount, cart_total)
    return DiscountValidation(
        valid=True,
        cart_total=cart_total,
        message='Discount applied',
        discount=discount,
        discount_amount=amount,
        adjusted_total=cart_total - amount,
    )


def apply_discount(
    session,
    discount_id: int,
    user_id: Optional[int],
    session_id: Optional[str],
    order_id: Optional[int]
) -> DiscountUsage:
    """
    Record one redemption and bump the used counter.
    
    Idempotent per (discount, order): repeating the call for the same order
    returns the existing usage row without counting twice.
    """
    if order_id is not None:
        existing = session.query(DiscountUsage).filter_by(
            discount_id=discount_id, order_id=order_id
        ).first()
        if existing:
            logger.info(f"[DISCOUNT] Usage for discount {discount_id} / order {order_id} already recorded")
            return existing
    
    try:
        result = session.execute(
            update(Discount)
            .where(
                Discount.id == discount_id,
                or_(
                    Discount.usage_limit.is_(None),
                    Discount.usage_limit <= 0,
                    Discount.used < Discount.usage_limit
                )
            )
            .values(used=Discount.used + 1)
            .execution_options(synchronize_session=False)
        )
        
        if result.rowcount != 1:
            if not session.get(Discount, discount_id):
                raise NotFoundError('Discount not found')
            raise DiscountRejectedError(USAGE_LIMIT_REACHED, 'This discount has reached its usage limit')
        
        usage = DiscountUsage(
            discount_id=discount_id,
            user_id=user_id,
            session_id=session_id,
            order_id=order_id
        )
        session.add(usage)
        session.commit()
        
        discount = session.get(Discount, discount_id)
        if discount is not None:
            session.refresh(discount)
        
        logger.info(f"[DISCOUNT] Discount {discount_id} applied to order {order_id} by user {user_id}")
        return usage
    
    except IntegrityError:
        session.rollback()
        existing = session.query(DiscountUsage).filter_by(
            discount_id=discount_id, order_id=order_id
        ).first()
        if existing:
            return existing
        raise
    except Exception:
        session.rollback()
        raise


def get_active_discounts(session, user_id: Optional[int] = None) -> List[Discount]:
    """Discounts a shopper can still use right now."""
    now = datetime.now(timezone.utc)
    candidates = session.query(Discount).filter(
        Discount.is_active.is_(True)
    ).order_by(Discount.end_date).all()
    
    available = []
    for discount in candidates:
        if not is_within_window(discount, now):
            continue
        if discount.has_usage_limit and discount.used >= discount.usage_limit:
            continue
        if discount.per_user and user_id and count_user_usage(session, discount.id, user_id) > 0:
            continue
        available.append(discount)
    return available


# =====================================================
# ADMIN CRUD
# =====================================================

def list_discounts(session) -> List[Discount]:
    return session.query(Discount).order_by(Discount.created_at.desc(), Discount.id.desc()).all()


def _check_window(start_date: datetime, end_date: datetime) -> None:
    if _as_utc(end_date) <= _as_utc(start_date):
        raise ValidationError('End date must be after start date')


def create_discount(session, data: Dict[str, Any]) -> Discount:
    """Create a discount from validated data. NOTE: Commit is handled by the caller."""
    code = data['code'].strip().upper()
    if session.query(Discount).filter(func.upper(Discount.code) == code).first():
        raise ValidationError(f'Discount code {code} already exists')
    
    _check_window(data['start_date'], data['end_date'])
    
    discount = Discount(
        code=code,
        description=data.get('description'),
        type=DiscountType(data['type']),
        value=to_money(data['value']),
        min_purchase=to_money(data.get('min_purchase') or 0),
        usage_limit=data.get('usage_limit'),
        per_user=bool(data.get('per_user', False)),
        is_active=bool(data.get('is_active', True)),
        start_date=data['start_date'],
        end_date=data['end_date'],
    )
    session.add(discount)
    session.flush()
    return discount


def update_discount(session, discount_id: int, data: Dict[str, Any]) -> Discount:
    """Partial update. NOTE: Commit is handled by the caller."""
    discount = session.get(Discount, discount_id)
    if not discount:
        raise NotFoundError('Discount not found')
    
    for field, value in data.items():
        if field == 'code':
            value = value.strip().upper()
        elif field == 'type':
            value = DiscountType(value)
        elif field in ('value', 'min_purchase'):
            value = to_money(value)
        setattr(discount, field, value)
    
    _check_window(discount.start_date, discount.end_date)
    session.flush()
    return discount


def delete_discount(session, discount_id: int) -> bool:
    """
    Delete a discount, or deactivate it when orders already reference it.
    
    Returns True when the row was physically removed.
    """
    discount = session.get(Discount, discount_id)
    if not discount:
        raise NotFoundError('Discount not found')
    
    referenced = session.query(Order.id).filter(Order.discount_id == discount_id).first()
    if referenced:
        discount.is_active = False
        session.flush()
        return False
    
    session.delete(discount)
    session.flush()
    return True
