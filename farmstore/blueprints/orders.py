"""Orders blueprint - customer order history, tracking and cancellation."""
from flask import Blueprint, jsonify, g, current_app

from farmstore.database import get_session
from farmstore.middleware import require_login
from farmstore.schemas import TrackOrderRequest, CancellationRequest, RateProductRequest
from farmstore.services import order_query_service, order_status_service, review_service
from farmstore.utils.payload import parse_body

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')


@orders_bp.route('/history', methods=['GET'])
@require_login
def history():
    return jsonify(order_query_service.get_order_history(get_session(), g.user.id))


@orders_bp.route('/tracking', methods=['POST'])
def tracking():
    """Public lookup: tracking number plus the email used at checkout."""
    data = parse_body(TrackOrderRequest)
    return jsonify(order_query_service.track_order(get_session(), data.order_number, data.email))


@orders_bp.route('/<int:order_id>/request-cancellation', methods=['POST'])
@require_login
def request_cancellation(order_id):
    data = parse_body(CancellationRequest)
    db_session = get_session()
    order = order_status_service.request_cancellation(db_session, order_id, g.user.id, data.reason)
    return jsonify({
        'message': 'Cancellation request submitted',
        'order': order_query_service.serialize_order(order),
    })


@orders_bp.route('/cancelled', methods=['GET'])
@require_login
def cancelled():
    return jsonify(order_query_service.get_cancelled_orders(get_session(), g.user.id))


@orders_bp.route('/delivered', methods=['GET'])
@require_login
def delivered():
    return jsonify(order_query_service.get_delivered_orders(get_session(), g.user.id))


@orders_bp.route('/<int:order_id>/rate-product', methods=['POST'])
@require_login
def rate_product(order_id):
    data = parse_body(RateProductRequest)
    review = review_service.rate_product(
        get_session(), g.user, order_id, data.product_id, data.rating, data.review_text
    )
    current_app.logger.info(f"Product {data.product_id} rated from order {order_id}")
    return jsonify({'message': 'Thank you for your review', 'review': review.to_dict()}), 201
