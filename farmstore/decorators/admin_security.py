"""
Operator authentication for the back-office API.
"""

from functools import wraps
from flask import session, g, jsonify

from farmstore.database import get_session
from farmstore.models import AdminUser


def _unauthorized(message):
    return jsonify({'status': 'error', 'message': message}), 401


def admin_required(f):
    """
    Decorator: require an active operator in session['admin_user_id'].
    
    Shopper logins (session['user_id']) never satisfy it. The operator is
    available to the view as g.admin_user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        admin_user_id = session.get('admin_user_id')
        if not admin_user_id:
            return _unauthorized('Admin authentication required')
        
        admin_user = get_session().get(AdminUser, admin_user_id)
        if not admin_user or not admin_user.is_active:
            session.pop('admin_user_id', None)
            return _unauthorized('Invalid admin session')
        
        g.admin_user = admin_user
        return f(*args, **kwargs)
    
    return decorated_function
