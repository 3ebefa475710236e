"""
Configuration for request pacing and batch creation.
Edit the constants below to tune how hard the tool pushes the Google APIs.
The defaults stay under the Tag Manager API per-minute write quota.
"""
import os
from dataclasses import dataclass

# Service account key file used by auth.get_credentials()
SERVICE_ACCOUNT_FILE = os.environ.get('GOOGLE_APPLICATION_CREDENTIALS', 'credentials.json')

# Rolling quota window enforced on the client side, per API family
REQUESTS_PER_WINDOW = 20
QUOTA_WINDOW_SECONDS = 60
WINDOW_MARGIN_SECONDS = 1

# Wait applied by the dispatcher when the API itself reports a quota error
QUOTA_COOLDOWN_SECONDS = 65

# Pause after every completed request, even below the quota
REQUEST_PACING_SECONDS = 1

# Attempts per HTTP call (first try included)
MAX_ATTEMPTS = 3

# Upper bounds for per-session structures
MAX_QUEUE_SIZE = 500
RESOURCE_CACHE_SIZE = 256


@dataclass
class DispatcherConfig:
    """Quota settings for one RateLimitedDispatcher."""
    capacity: int = REQUESTS_PER_WINDOW
    window_seconds: float = QUOTA_WINDOW_SECONDS
    window_margin_seconds: float = WINDOW_MARGIN_SECONDS
    quota_cooldown_seconds: float = QUOTA_COOLDOWN_SECONDS
    pacing_seconds: float = REQUEST_PACING_SECONDS
    max_queue_size: int = MAX_QUEUE_SIZE


@dataclass
class BatchOptions:
    """
    How a creation phase walks its items.

    batch_size: items processed before pausing
    delay_seconds: pause between two batches (never after the last one)
    check_duplicates: skip items whose name already exists remotely
    quota_cooldown_seconds: extra pause after an item failed on quota
    """
    batch_size: int
    delay_seconds: float
    check_duplicates: bool = False
    quota_cooldown_seconds: float = 30


# GTM data layer variables, one per unique parameter
VARIABLE_BATCH = BatchOptions(batch_size=5, delay_seconds=2)

# GTM trigger + event tag pairs, one per unique event name
EVENT_BATCH = BatchOptions(batch_size=3, delay_seconds=3, quota_cooldown_seconds=30)

# GA4 custom dimensions / metrics, per property
GA4_BATCH = BatchOptions(batch_size=10, delay_seconds=1, check_duplicates=True)
