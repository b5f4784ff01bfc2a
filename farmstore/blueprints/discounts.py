"""Discounts blueprint - shopper facing discount endpoints."""
from flask import Blueprint, jsonify, g

from farmstore.database import get_session
from farmstore.exceptions import NotFoundError
from farmstore.middleware import require_login
from farmstore.models import Order
from farmstore.schemas import ValidateDiscountRequest, ApplyDiscountRequest
from farmstore.services import discount_service
from farmstore.utils.payload import parse_body

discounts_bp = Blueprint('discounts', __name__, url_prefix='/api/discounts')


def _current_user_id():
    user = g.get('user')
    return user.id if user else None


@discounts_bp.route('/active', methods=['GET'])
def active():
    discounts = discount_service.get_active_discounts(get_session(), user_id=_current_user_id())
    return jsonify([d.to_dict() for d in discounts])


@discounts_bp.route('/validate', methods=['POST'])
def validate():
    data = parse_body(ValidateDiscountRequest)
    result = discount_service.validate_discount(
        get_session(),
        data.cart_total,
        user_id=_current_user_id(),
        code=data.code,
        discount_id=data.discount_id
    )
    return jsonify(result.to_dict())


@discounts_bp.route('/apply', methods=['POST'])
@require_login
def apply():
    data = parse_body(ApplyDiscountRequest)
    db_session = get_session()
    
    if data.order_id is not None:
        order = db_session.get(Order, data.order_id)
        if not order or order.user_id != g.user.id:
            raise NotFoundError('Order not found')
    
    usage = discount_service.apply_discount(
        db_session, data.discount_id, g.user.id, g.cart_session_id, data.order_id
    )
    return jsonify({'message': 'Discount applied', 'usage': usage.to_dict()})
