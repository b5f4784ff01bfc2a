"""
Audit logging service for back-office actions on orders, stock and discounts.
"""
import json
import logging
from typing import Optional, List

from flask import request, session as flask_session, has_request_context

from farmstore.models.audit_log import AuditLog, AuditAction

logger = logging.getLogger(__name__)


def log_action(
    session,
    action: AuditAction,
    resource_type: str = None,
    resource_id: int = None,
    details: dict = None,
    admin_user_id: Optional[int] = None
):
    """
    Add an audit entry for an operator action.
    
    Args:
        session: Database session
        action: AuditAction enum value
        resource_type: Type of resource affected ('order', 'variant', 'discount')
        resource_id: ID of the affected resource
        details: Dict with additional details (stored as JSON)
        admin_user_id: Acting operator; defaults to the logged-in admin
    """
    try:
        ip_address = None
        if has_request_context():
            if admin_user_id is None:
                admin_user_id = flask_session.get('admin_user_id')
            ip_address = request.remote_addr
        
        audit_entry = AuditLog(
            admin_user_id=admin_user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            details=json.dumps(details, default=str) if details else None,
            ip_address=ip_address
        )
        session.add(audit_entry)
        # Note: Caller is responsible for committing the session
        
        logger.info(f"Audit log created: {action.value} by admin {admin_user_id} on {resource_type} {resource_id}")
    
    except Exception as e:
        # Audit failures must not break the operator action
        logger.error(f"Failed to create audit log: {e}")


def get_audit_logs(session, resource_type: str = None, resource_id: int = None, limit: int = 100) -> List[AuditLog]:
    query = session.query(AuditLog)
    if resource_type:
        query = query.filter(AuditLog.resource_type == resource_type)
    if resource_id is not None:
        query = query.filter(AuditLog.resource_id == resource_id)
    return query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc()).limit(limit).all()
