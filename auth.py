from google.oauth2 import service_account
from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from googleapiclient.discovery import build

from api_errors import AuthError
from batch_config import SERVICE_ACCOUNT_FILE

# OAuth 2.0 scopes needed to edit GTM containers and GA4 properties
SCOPES = [
    'https://www.googleapis.com/auth/tagmanager.edit.containers',
    'https://www.googleapis.com/auth/tagmanager.readonly',
    'https://www.googleapis.com/auth/analytics.edit'
]

def get_credentials(key_file=None):
    """Get credentials using a service account key file."""
    key_file = key_file or SERVICE_ACCOUNT_FILE
    try:
        creds = service_account.Credentials.from_service_account_file(
            key_file, scopes=SCOPES)

        print("Successfully loaded service account credentials")
        return creds

    except (OSError, ValueError) as e:
        print(f"Error loading service account key {key_file}: {e}")
        raise


class GoogleAuthSession:
    """
    Holds the bearer token for one API family.

    authenticate() refreshes the underlying google-auth credentials and
    stores the new access token. Callers check is_authenticated before use
    and call mark_unauthenticated() when the API rejects the token.
    """

    def __init__(self, credentials, request_factory=Request):
        self.credentials = credentials
        self.request_factory = request_factory
        self.token = None
        self.is_authenticated = False

    def authenticate(self):
        """Obtain a fresh access token and return it."""
        try:
            self.credentials.refresh(self.request_factory())
        except GoogleAuthError as e:
            self.mark_unauthenticated()
            raise AuthError(f"Authentication failed: {e}") from e

        self.token = self.credentials.token
        self.is_authenticated = bool(self.token)
        if not self.is_authenticated:
            raise AuthError("Authentication failed: no access token returned")
        return self.token

    def mark_unauthenticated(self):
        self.is_authenticated = False
        self.token = None


def initialize_services(credentials=None):
    """Initialize and return GTM and Analytics Admin discovery services."""
    credentials = credentials or get_credentials()

    # Initialize GTM API service
    gtm_service = build('tagmanager', 'v2', credentials=credentials)

    # Initialize Analytics Admin API v1beta service
    analytics_service = build('analyticsadmin', 'v1beta', credentials=credentials)

    return gtm_service, analytics_service
