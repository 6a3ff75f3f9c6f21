"""
Test the logging sanitizer utility.
Passwords and tokens must never reach a log line, including nested JSON bodies.
"""

from workshop.utils.logging_sanitizer import (
    sanitize_dict,
    sanitize_exception_message,
    sanitize_request_payload,
    sanitize_value,
)


def test_sanitize_dict():
    result = sanitize_dict({'username': 'admin', 'password': 'secret123', 'Token': 'xyz'})
    assert result['username'] == 'admin'
    assert result['password'] == '[REDACTED]'
    assert result['Token'] == '[REDACTED]'


def test_sanitize_nested_values():
    body = {'title': 'Brake job', 'parts': [{'product': 1, 'api_key': 'k'}], 'auth': {'refresh_token': 'r'}}
    result = sanitize_value(body)
    assert result['parts'][0] == {'product': 1, 'api_key': '[REDACTED]'}
    assert result['auth']['refresh_token'] == '[REDACTED]'
    assert body['parts'][0]['api_key'] == 'k', "input must not be modified"


def test_sanitize_empty_input():
    assert sanitize_dict({}) == {}
    assert sanitize_dict(None) is None


def test_sanitize_request_payload(app):
    with app.test_request_context('/jobs?search=brake&token=abc', method='POST',
                                  json={'username': 'tester', 'password': 'pw'}):
        from flask import request
        payload = sanitize_request_payload(request)
    assert payload['json'] == {'username': 'tester', 'password': '[REDACTED]'}
    assert payload['args'] == {'search': 'brake', 'token': '[REDACTED]'}


def test_sanitize_exception_message():
    assert sanitize_exception_message(ValueError('job 3 not found')) == 'job 3 not found'
    assert 'sensitive' in sanitize_exception_message(ValueError('bad password for admin'))
