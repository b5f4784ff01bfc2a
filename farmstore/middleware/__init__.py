"""Middleware for shopper authentication and cart session context."""
import uuid
from functools import wraps

from flask import session, g, request, jsonify

from farmstore.database import get_session
from farmstore.models import AppUser

SESSION_HEADER = 'X-Session-Id'


def load_current_user():
    """
    Load the logged-in shopper into g.user (None when anonymous).
    
    Called before each request.
    """
    g.user = None
    
    user_id = session.get('user_id')
    if user_id:
        user = get_session().query(AppUser).filter_by(id=user_id, active=True).first()
        if user:
            g.user = user
        else:
            session.pop('user_id', None)


def load_cart_session():
    """Resolve the cart session from the X-Session-Id header, minting one if absent."""
    header_value = (request.headers.get(SESSION_HEADER) or '').strip()
    g.cart_session_generated = not header_value
    g.cart_session_id = header_value[:64] if header_value else uuid.uuid4().hex


def echo_cart_session(response):
    """Return the cart session id so clients can keep using it."""
    cart_session_id = g.get('cart_session_id')
    if cart_session_id:
        response.headers[SESSION_HEADER] = cart_session_id
    return response


def require_login(f):
    """
    Decorator: Require a shopper to be logged in.
    
    Answers 401 JSON when not authenticated.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if g.get('user') is None:
            return jsonify({'status': 'error', 'message': 'Authentication required'}), 401
        return f(*args, **kwargs)
    return decorated_function
