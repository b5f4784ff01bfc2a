"""Cart blueprint - session scoped via the X-Session-Id header."""
from flask import Blueprint, jsonify, g

from farmstore.database import get_session
from farmstore.schemas import AddToCartRequest, UpdateCartItemRequest
from farmstore.services import cart_service
from farmstore.utils.payload import parse_body

cart_bp = Blueprint('cart', __name__, url_prefix='/api/cart')


@cart_bp.route('', methods=['GET'])
def get_cart():
    return jsonify(cart_service.get_cart(get_session(), g.cart_session_id))


@cart_bp.route('', methods=['POST'])
def add_item():
    data = parse_body(AddToCartRequest)
    cart = cart_service.add_to_cart(
        get_session(), g.cart_session_id, data.product_id, data.variant_id, data.quantity
    )
    return jsonify(cart)


@cart_bp.route('/<int:product_id>/<int:variant_id>', methods=['PUT'])
def update_item(product_id, variant_id):
    data = parse_body(UpdateCartItemRequest)
    cart = cart_service.update_cart_item(
        get_session(), g.cart_session_id, product_id, variant_id, data.quantity
    )
    return jsonify(cart)


@cart_bp.route('/<int:product_id>/<int:variant_id>', methods=['DELETE'])
def remove_item(product_id, variant_id):
    return jsonify(cart_service.remove_from_cart(get_session(), g.cart_session_id, product_id, variant_id))


@cart_bp.route('', methods=['DELETE'])
def clear():
    db_session = get_session()
    cart_service.clear_cart(db_session, g.cart_session_id)
    db_session.commit()
    return jsonify(cart_service.get_cart(db_session, g.cart_session_id))
