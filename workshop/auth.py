from flask import Blueprint, jsonify, request
from flask_login import login_user, logout_user, login_required, current_user
from workshop.data.core.user_info.user import User
from workshop import limiter
from workshop.utils.logger import get_logger

logger = get_logger("workshop.auth")
auth = Blueprint('auth', __name__, url_prefix='/auth')


@auth.route('/login', methods=['POST'])
@limiter.limit("20 per minute")
def login():
    if current_user.is_authenticated:
        logger.debug(f"User {current_user.username} already authenticated")
        return jsonify({"success": True, "message": "Already logged in", "data": current_user.to_dict()})

    data = request.get_json(silent=True) or {}
    username = data.get('username')
    password = data.get('password')

    logger.debug(f"Login attempt for username: {username}")

    if not username or not password:
        logger.warning(f"Login attempt with missing credentials for username: {username}")
        return jsonify({"success": False, "message": "Please enter both username and password"}), 400

    user = User.query.filter_by(username=username).first()

    if user is None or not user.check_password(password):
        logger.warning(f"Failed login attempt for username: {username}")
        return jsonify({"success": False, "message": "Invalid username or password"}), 401

    if not user.is_active:
        logger.warning(f"Login attempt for disabled account: {username}")
        return jsonify({"success": False, "message": "Account is disabled"}), 403

    login_user(user)
    logger.info(f"Successful login for user: {username}")
    return jsonify({"success": True, "message": f"Welcome, {user.username}!", "data": user.to_dict()})


@auth.route('/logout', methods=['POST'])
@login_required
def logout():
    username = current_user.username
    logout_user()
    logger.info(f"User logged out: {username}")
    return jsonify({"success": True, "message": "You have been logged out"})
