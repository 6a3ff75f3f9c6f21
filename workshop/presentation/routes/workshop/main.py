"""
Workshop job routes - blueprint and shared response helpers

Every endpoint answers with the JSON envelope
{"success": true, "message"?, "data"?} or {"success": false, "message", ...}.
"""
from functools import wraps

from flask import Blueprint, jsonify, request
from flask_login import current_user

from workshop import db
from workshop.business.errors import WorkshopDomainError
from workshop.utils.logger import get_logger
from workshop.utils.logging_sanitizer import sanitize_exception_message, sanitize_request_payload

logger = get_logger("workshop.routes.jobs")

jobs_bp = Blueprint('jobs', __name__, url_prefix='/jobs')


def json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def ok(data=None, message=None, status=200, **extra):
    payload = {"success": True}
    if message:
        payload["message"] = message
    if data is not None:
        payload["data"] = data
    payload.update(extra)
    return jsonify(payload), status


def fail(message, status=400, **extra):
    payload = {"success": False, "message": message}
    payload.update(extra)
    return jsonify(payload), status


def job_endpoint(action):
    """
    Convert domain errors into their envelope and anything else into a
    logged 500 "Server error" after rolling the session back.
    """
    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                return view(*args, **kwargs)
            except WorkshopDomainError as e:
                db.session.rollback()
                logger.info(f"{action} rejected ({type(e).__name__}): {e.message}")
                payload, status = e.to_response()
                return jsonify(payload), status
            except Exception as e:
                db.session.rollback()
                user = getattr(current_user, 'username', None)
                logger.error(
                    f"{action} error for user {user}: {sanitize_exception_message(e)}; payload={sanitize_request_payload(request)}",
                    exc_info=True,
                )
                return fail("Server error", 500)
        return wrapper
    return decorator


@jobs_bp.errorhandler(404)
def job_not_found(error):
    return fail("Resource not found", 404)


@jobs_bp.errorhandler(405)
def job_method_not_allowed(error):
    return fail("Method not allowed", 405)


# Import route modules so their endpoints register on jobs_bp
from workshop.presentation.routes.workshop import job_routes, resource_routes, task_routes  # noqa: E402,F401
