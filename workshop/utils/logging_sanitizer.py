"""
Logging Sanitizer Utility

Redacts sensitive values from request payloads before they are written to a log line.
JSON bodies are nested (parts, tasks, charges), so lists and dicts are walked recursively.
"""

from typing import Any, Dict


# Fields that should never be logged
SENSITIVE_FIELDS = {
    'password',
    'password_confirm',
    'confirm_password',
    'current_password',
    'new_password',
    'pwd',
    'secret',
    'token',
    'api_key',
    'apikey',
    'auth_token',
    'access_token',
    'refresh_token',
    'session_id',
    'credit_card',
    'creditcard',
    'cvv',
}


def sanitize_value(value: Any, redact_text: str = '[REDACTED]') -> Any:
    """Sanitize any JSON-like value (dict, list or scalar)."""
    if isinstance(value, dict):
        return sanitize_dict(value, redact_text)
    if isinstance(value, (list, tuple)):
        return [sanitize_value(item, redact_text) for item in value]
    return value


def sanitize_dict(data: Dict[str, Any], redact_text: str = '[REDACTED]') -> Dict[str, Any]:
    """
    Sanitize a dictionary by replacing sensitive field values with redaction text.

    Args:
        data: Dictionary to sanitize
        redact_text: Text to use for redacted values (default: '[REDACTED]')

    Returns:
        Sanitized copy; the input is never modified

    Example:
        >>> sanitize_dict({'username': 'admin', 'password': 'secret123'})
        {'username': 'admin', 'password': '[REDACTED]'}
    """
    if not data:
        return data

    sanitized = {}
    for key, value in data.items():
        if str(key).lower() in SENSITIVE_FIELDS:
            sanitized[key] = redact_text
        else:
            sanitized[key] = sanitize_value(value, redact_text)
    return sanitized


def sanitize_request_payload(request, redact_text: str = '[REDACTED]') -> Dict[str, Any]:
    """
    Collect the JSON body and query args of a Flask request in a log-safe form.

    Args:
        request: Flask request object

    Returns:
        dict with 'json' and 'args' keys
    """
    body = request.get_json(silent=True)
    return {
        'json': sanitize_value(body, redact_text) if body is not None else None,
        'args': sanitize_dict(request.args.to_dict(), redact_text),
    }


def sanitize_exception_message(exception: Exception) -> str:
    """
    Sanitize exception messages so they don't leak sensitive data.

    Args:
        exception: Exception to sanitize

    Returns:
        Sanitized exception message
    """
    message = str(exception)
    if any(field in message.lower() for field in SENSITIVE_FIELDS):
        return f"{type(exception).__name__}: [Message contains sensitive data]"
    return message
