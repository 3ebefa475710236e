import time

import requests

from api_errors import ApiError, AuthError, NetworkError, classify_error
from batch_config import MAX_ATTEMPTS


class AuthenticatedCaller:
    """
    Performs one HTTP call against a Google REST API with a bearer token.

    A 401 on the first attempt triggers a single re-authentication and an
    immediate retry. Any other failure is retried with exponential backoff
    (1s, 2s, 4s, ...) until the last attempt, whose error propagates as is.
    """

    def __init__(self, auth, http=None, sleep=time.sleep, name="API"):
        self.auth = auth
        self.http = http or requests.Session()
        self.sleep = sleep
        self.name = name

    def _headers(self, headers):
        """Default JSON and bearer headers, overridden by the caller's own."""
        final = {
            'Authorization': f'Bearer {self.auth.token}',
            'Content-Type': 'application/json'
        }
        final.update(headers or {})
        # Caller headers win, but never by dropping the token
        if not final.get('Authorization'):
            final['Authorization'] = f'Bearer {self.auth.token}'
        return final

    def call(self, url, method='GET', headers=None, body=None, max_attempts=MAX_ATTEMPTS):
        """Send one request and return the decoded JSON body."""
        if not self.auth.is_authenticated:
            raise AuthError(f"Not authenticated with {self.name}")

        final_headers = self._headers(headers)

        for attempt in range(max_attempts):
            try:
                response = self.http.request(method, url, headers=final_headers, json=body)

                if response.status_code == 401 and attempt == 0:
                    print(f"{self.name} rejected the access token, re-authenticating...")
                    self.auth.mark_unauthenticated()
                    self.auth.authenticate()
                    final_headers['Authorization'] = f'Bearer {self.auth.token}'
                    continue

                if not response.ok:
                    raise self._error_from_response(response)

                return self._decode(response)

            except (ApiError, requests.RequestException) as e:
                error = e
                if isinstance(e, requests.RequestException):
                    error = NetworkError(f"Request to {url} failed: {e}")
                    error.__cause__ = e

                if attempt == max_attempts - 1:
                    raise error

                wait = 2 ** attempt
                print(f"{self.name} call failed (attempt {attempt + 1}/{max_attempts}): {error}. Retrying in {wait}s...")
                self.sleep(wait)

        # Only reachable when the refresh retry had no attempt left
        raise AuthError(f"{self.name} rejected the access token", status=401)

    def _decode(self, response):
        """Decode a successful response; an empty body becomes {}."""
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise NetworkError(f"Could not decode response from {response.url}: {e}",
                               status=response.status_code) from e

    def _error_from_response(self, response):
        """Build the classified ApiError for a non-2xx response."""
        message = f"HTTP {response.status_code}: {response.reason}"
        payload = None
        try:
            payload = response.json()
            if payload.get('error', {}).get('message'):
                message = payload['error']['message']
        except (ValueError, AttributeError):
            pass

        error_class = classify_error(response.status_code, payload, message)
        reason = None
        if isinstance(payload, dict) and isinstance(payload.get('error'), dict):
            reason = payload['error'].get('status')
        return error_class(message, status=response.status_code, reason=reason)
