import pytest

from api_errors import (AuthError, HttpError, QuotaError, classify_error, is_quota_error,
                        parse_error_payload)


def google_error(code, message, status=None, reason=None):
    error = {'code': code, 'message': message}
    if status:
        error['status'] = status
    if reason:
        error['errors'] = [{'reason': reason, 'message': message}]
    return {'error': error}


@pytest.mark.parametrize("status, payload, expected", [
    (401, google_error(401, 'Request had invalid authentication credentials.'), AuthError),
    (429, google_error(429, 'Too many requests'), QuotaError),
    (403, google_error(403, 'User rate limit exceeded', reason='userRateLimitExceeded'), QuotaError),
    (400, google_error(400, 'Resource has been exhausted', status='RESOURCE_EXHAUSTED'), QuotaError),
    (404, google_error(404, 'Not found', status='NOT_FOUND'), HttpError),
    (500, None, HttpError),
])
def test_classify_by_status_and_reason(status, payload, expected):
    assert classify_error(status, payload) is expected


def test_reason_in_error_details_counts():
    payload = {'error': {'code': 403, 'message': 'denied',
                         'details': [{'@type': 'type.googleapis.com/google.rpc.ErrorInfo',
                                      'reason': 'RATE_LIMIT_EXCEEDED'}]}}
    assert classify_error(403, payload) is QuotaError


def test_message_text_is_only_a_fallback():
    payload = google_error(403, "Quota exceeded for quota metric 'Queries' and limit 'Queries per minute'")
    assert classify_error(403, payload) is QuotaError
    assert classify_error(403, None, message='Permission denied') is HttpError


def test_parse_error_payload_handles_text_and_garbage():
    assert parse_error_payload('<html>bad gateway</html>') == (None, None, [])
    assert parse_error_payload({'unexpected': True}) == (None, None, [])

    message, status, reasons = parse_error_payload(
        '{"error": {"message": "slow down", "status": "RESOURCE_EXHAUSTED", "errors": [{"reason": "rateLimitExceeded"}]}}')
    assert message == 'slow down'
    assert status == 'RESOURCE_EXHAUSTED'
    assert reasons == ['rateLimitExceeded']


def test_is_quota_error():
    assert is_quota_error(QuotaError('limit'))
    assert not is_quota_error(HttpError('Not found', status=404))
    assert is_quota_error(RuntimeError('Quota exceeded for quota metric'))
    assert not is_quota_error(RuntimeError('boom'))
