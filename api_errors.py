"""Error kinds raised while talking to the Tag Manager and Analytics Admin APIs."""
import json

# Machine readable reasons Google uses for rate limiting
QUOTA_REASONS = {
    'RESOURCE_EXHAUSTED',
    'RATE_LIMIT_EXCEEDED',
    'rateLimitExceeded',
    'userRateLimitExceeded',
    'quotaExceeded',
    'dailyLimitExceeded',
}

# Only used when the response carries no usable status or reason
QUOTA_MESSAGE_MARKERS = ('Quota exceeded', 'quota metric')


class ApiError(Exception):
    """A remote call failed."""

    def __init__(self, message, status=None, reason=None):
        super().__init__(message)
        self.message = message
        self.status = status
        self.reason = reason


class AuthError(ApiError):
    """No usable access token, or the API rejected it."""


class QuotaError(ApiError):
    """The API reported a rate limit or quota problem."""


class HttpError(ApiError):
    """Any other non-2xx response."""


class NetworkError(ApiError):
    """Transport failure or a response body that could not be decoded."""


class QueueFullError(ApiError):
    """The dispatcher queue reached its configured bound."""


class ValidationError(ValueError):
    """A work item is missing a required field or has an invalid value."""


class OrchestrationError(Exception):
    """A fatal phase failed. The partial report is kept for display."""

    def __init__(self, message, report=None):
        super().__init__(message)
        self.report = report


def parse_error_payload(payload):
    """
    Pull (message, status_name, reasons) out of a Google error envelope.

    Accepts the decoded JSON body or raw text. Missing pieces come back as None / empty.
    """
    if isinstance(payload, (str, bytes)):
        try:
            payload = json.loads(payload)
        except ValueError:
            return None, None, []

    if not isinstance(payload, dict) or not isinstance(payload.get('error'), dict):
        return None, None, []

    error = payload['error']
    reasons = []
    for item in error.get('errors') or []:
        if isinstance(item, dict) and item.get('reason'):
            reasons.append(item['reason'])
    for detail in error.get('details') or []:
        if isinstance(detail, dict) and detail.get('reason'):
            reasons.append(detail['reason'])

    return error.get('message'), error.get('status'), reasons


def classify_error(status, payload=None, message=None):
    """
    Return the ApiError subclass matching an HTTP status and error body.

    Status code and the reason codes of the error envelope decide first.
    The message text is checked for quota wording only as a fallback.
    """
    body_message, status_name, reasons = parse_error_payload(payload)
    text = message or body_message or ''

    if status == 401:
        return AuthError
    if status == 429 or status_name in QUOTA_REASONS:
        return QuotaError
    if any(reason in QUOTA_REASONS for reason in reasons):
        return QuotaError
    if any(marker in text for marker in QUOTA_MESSAGE_MARKERS):
        return QuotaError
    return HttpError


def is_quota_error(error):
    """True when an exception signals a quota / rate limit problem."""
    if isinstance(error, QuotaError):
        return True
    if isinstance(error, ApiError):
        return False
    return any(marker in str(error) for marker in QUOTA_MESSAGE_MARKERS)
