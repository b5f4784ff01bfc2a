"""Shipping blueprint - pincode validation and rate quotes (display only)."""
from flask import Blueprint, jsonify

from farmstore.exceptions import NotFoundError
from farmstore.schemas import ShippingRateRequest
from farmstore.services.shipping_service import get_postal_service
from farmstore.utils.payload import parse_body

shipping_bp = Blueprint('shipping', __name__, url_prefix='/api/shipping')


@shipping_bp.route('/validate-pincode/<pincode>', methods=['GET'])
def validate_pincode(pincode):
    info = get_postal_service().validate_pincode(pincode)
    if info is None:
        raise NotFoundError('Pincode not found')
    return jsonify({'success': True, 'data': info})


@shipping_bp.route('/calculate-rates', methods=['POST'])
def calculate_rates():
    data = parse_body(ShippingRateRequest)
    rates = get_postal_service().quote_rates(
        data.from_pincode, data.to_pincode, data.weight, data.cod_amount
    )
    return jsonify({'success': True, 'rates': rates})
