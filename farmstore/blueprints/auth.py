"""
Shopper authentication blueprint.

Minimal session login so the order API can be used; account management
lives elsewhere.
"""
import logging

from flask import Blueprint, jsonify, session, g
from flask_wtf.csrf import generate_csrf
from sqlalchemy import func

from farmstore.database import get_session
from farmstore.exceptions import UnauthorizedError
from farmstore.middleware import require_login
from farmstore.models import AppUser
from farmstore.schemas import LoginRequest
from farmstore.utils.payload import parse_body

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')


@auth_bp.route('/login', methods=['POST'])
def login():
    data = parse_body(LoginRequest)
    db_session = get_session()
    
    user = db_session.query(AppUser).filter(
        func.lower(AppUser.email) == data.email.lower(),
        AppUser.active.is_(True)
    ).first()
    
    if not user or not user.check_password(data.password):
        logger.warning(f"Failed login for {data.email}")
        raise UnauthorizedError('Invalid email or password')
    
    session.clear()
    session['user_id'] = user.id
    session.permanent = True
    
    logger.info(f"User {user.id} logged in")
    return jsonify({'user': user.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
def logout():
    session.pop('user_id', None)
    return jsonify({'message': 'Logged out'})


@auth_bp.route('/me', methods=['GET'])
@require_login
def me():
    return jsonify({'user': g.user.to_dict()})


@auth_bp.route('/csrf-token', methods=['GET'])
def csrf_token():
    """Token for the X-CSRFToken header of cookie-session requests."""
    return jsonify({'csrfToken': generate_csrf()})
