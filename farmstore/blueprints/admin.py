"""
Admin Blueprint - back-office API for operators.

Routes:
- /api/admin/login, /api/admin/logout - Operator authentication
- /api/admin/orders... - Order list, detail, transitions, cancellation review
- /api/admin/products/<variant_id>/stock - Restock a variant
- /api/admin/validate-stock, /api/admin/low-stock - Stock reads
- /api/admin/discounts... - Discount CRUD
- /api/admin/audit-log - Operator action history
"""
from datetime import datetime, timezone

from flask import Blueprint, request, session, jsonify, current_app, g
from sqlalchemy import func

from farmstore.database import get_session
from farmstore.decorators.admin_security import admin_required
from farmstore.exceptions import UnauthorizedError
from farmstore.models import AdminUser, AuditAction
from farmstore.schemas import (
    LoginRequest, StatusUpdateRequest, CancellationDecisionRequest, StockUpdateRequest,
    ValidateStockRequest, DiscountCreateRequest, DiscountUpdateRequest
)
from farmstore.services import (
    discount_service, order_query_service, order_status_service, stock_service
)
from farmstore.services.audit_service import log_action, get_audit_logs
from farmstore.utils.payload import parse_body

admin_bp = Blueprint('admin', __name__, url_prefix='/api/admin')


# =====================================================
# AUTH
# =====================================================

@admin_bp.route('/login', methods=['POST'])
def login():
    """Operator login - separate from shopper login."""
    data = parse_body(LoginRequest)
    session_db = get_session()
    
    admin_user = session_db.query(AdminUser).filter(
        func.lower(AdminUser.email) == data.email.lower(),
        AdminUser.is_active.is_(True)
    ).first()
    
    if not admin_user or not admin_user.check_password(data.password):
        current_app.logger.warning(f"Failed admin login attempt for {data.email}")
        raise UnauthorizedError('Invalid email or password')
    
    admin_user.last_login = datetime.now(timezone.utc)
    session_db.commit()
    
    session['admin_user_id'] = admin_user.id
    session.permanent = True
    
    current_app.logger.info(f"Admin {admin_user.email} logged in")
    return jsonify({'admin': admin_user.to_dict()})


@admin_bp.route('/logout', methods=['POST'])
def logout():
    session.pop('admin_user_id', None)
    return jsonify({'message': 'Logged out'})


# =====================================================
# ORDERS
# =====================================================

@admin_bp.route('/orders', methods=['GET'])
@admin_required
def orders_list():
    result = order_query_service.list_orders(
        get_session(),
        status=request.args.get('status') or None,
        page=request.args.get('page', 1, type=int),
        per_page=request.args.get('perPage', 20, type=int)
    )
    return jsonify(result)


@admin_bp.route('/orders/<int:order_id>/details', methods=['GET'])
@admin_required
def order_details(order_id):
    return jsonify(order_query_service.get_order_details(get_session(), order_id))


@admin_bp.route('/orders/<int:order_id>/status', methods=['PUT'])
@admin_required
def order_status(order_id):
    data = parse_body(StatusUpdateRequest)
    order = order_status_service.transition_order(
        get_session(), order_id, data.status, data.message, data.tracking_number
    )
    current_app.logger.info(f"Admin {g.admin_user.id} set order {order_id} to {data.status}")
    return jsonify(order_query_service.serialize_order(order))


@admin_bp.route('/orders/<int:order_id>/cancellation/approve', methods=['POST'])
@admin_required
def approve_cancellation(order_id):
    data = parse_body(CancellationDecisionRequest)
    order = order_status_service.approve_cancellation(get_session(), order_id, data.note)
    return jsonify(order_query_service.serialize_order(order))


@admin_bp.route('/orders/<int:order_id>/cancellation/reject', methods=['POST'])
@admin_required
def reject_cancellation(order_id):
    data = parse_body(CancellationDecisionRequest)
    order = order_status_service.reject_cancellation(get_session(), order_id, data.note)
    return jsonify(order_query_service.serialize_order(order))


# =====================================================
# STOCK
# =====================================================

@admin_bp.route('/products/<int:variant_id>/stock', methods=['PUT'])
@admin_required
def update_stock(variant_id):
    """Set the stock of a variant (the path id is the variant id)."""
    data = parse_body(StockUpdateRequest)
    session_db = get_session()
    
    try:
        previous = stock_service.get_available(session_db, variant_id)
        variant = stock_service.adjust(session_db, variant_id, data.stock_quantity)
        log_action(
            session_db,
            AuditAction.STOCK_ADJUSTED,
            resource_type='variant',
            resource_id=variant_id,
            details={'from': previous, 'to': data.stock_quantity}
        )
        session_db.commit()
    except Exception:
        session_db.rollback()
        raise
    
    return jsonify({
        'variantId': variant.id,
        'stockQuantity': variant.stock_quantity,
        'sku': variant.sku,
    })


@admin_bp.route('/validate-stock', methods=['POST'])
@admin_required
def validate_stock():
    data = parse_body(ValidateStockRequest)
    session_db = get_session()
    
    results = [
        {
            'variantId': line.variant_id,
            'quantity': line.quantity,
            'available': stock_service.validate_stock_availability(session_db, line.variant_id, line.quantity),
        }
        for line in data.items
    ]
    return jsonify({'valid': all(r['available'] for r in results), 'items': results})


@admin_bp.route('/low-stock', methods=['GET'])
@admin_required
def low_stock():
    threshold = request.args.get(
        'threshold', current_app.config.get('LOW_STOCK_THRESHOLD', 10), type=int
    )
    return jsonify(stock_service.get_low_stock(get_session(), threshold))


# =====================================================
# DISCOUNTS
# =====================================================

@admin_bp.route('/discounts', methods=['GET'])
@admin_required
def discounts_list():
    return jsonify([d.to_dict() for d in discount_service.list_discounts(get_session())])


@admin_bp.route('/discounts', methods=['POST'])
@admin_required
def discounts_create():
    data = parse_body(DiscountCreateRequest)
    session_db = get_session()
    
    try:
        discount = discount_service.create_discount(session_db, data.model_dump())
        log_action(
            session_db,
            AuditAction.DISCOUNT_CREATED,
            resource_type='discount',
            resource_id=discount.id,
            details={'code': discount.code}
        )
        session_db.commit()
    except Exception:
        session_db.rollback()
        raise
    
    return jsonify(discount.to_dict()), 201


@admin_bp.route('/discounts/<int:discount_id>', methods=['PUT'])
@admin_required
def discounts_update(discount_id):
    data = parse_body(DiscountUpdateRequest)
    changes = data.model_dump(exclude_unset=True)
    session_db = get_session()
    
    try:
        discount = discount_service.update_discount(session_db, discount_id, changes)
        log_action(
            session_db,
            AuditAction.DISCOUNT_UPDATED,
            resource_type='discount',
            resource_id=discount_id,
            details=changes
        )
        session_db.commit()
    except Exception:
        session_db.rollback()
        raise
    
    return jsonify(discount.to_dict())


@admin_bp.route('/discounts/<int:discount_id>', methods=['DELETE'])
@admin_required
def discounts_delete(discount_id):
    session_db = get_session()
    
    try:
        deleted = discount_service.delete_discount(session_db, discount_id)
        log_action(
            session_db,
            AuditAction.DISCOUNT_DELETED,
            resource_type='discount',
            resource_id=discount_id,
            details={'deactivatedOnly': not deleted}
        )
        session_db.commit()
    except Exception:
        session_db.rollback()
        raise
    
    message = 'Discount deleted' if deleted else 'Discount is referenced by orders and was deactivated'
    return jsonify({'message': message, 'deleted': deleted})


# =====================================================
# AUDIT
# =====================================================

@admin_bp.route('/audit-log', methods=['GET'])
@admin_required
def audit_log():
    logs = get_audit_logs(
        get_session(),
        resource_type=request.args.get('resourceType') or None,
        resource_id=request.args.get('resourceId', type=int),
        limit=min(request.args.get('limit', 100, type=int), 500)
    )
    return jsonify([entry.to_dict() for entry in logs])
