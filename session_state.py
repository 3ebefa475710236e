"""Per-session selections that the wizards used to keep in module globals."""
from batch_config import RESOURCE_CACHE_SIZE
from resource_resolver import IdempotentResourceResolver, ResourceCache


class GTMSession:
    """Target container, measurement ID and resolved shared resources for GTM runs."""

    def __init__(self, account_id='', container_id='', measurement_id='', cache_size=RESOURCE_CACHE_SIZE):
        self.account_id = account_id
        self.container_id = container_id
        self.measurement_id = measurement_id
        self.resolver = IdempotentResourceResolver(ResourceCache(cache_size))
        self.items = []
        self.last_report = None

    def select(self, account_id=None, container_id=None, measurement_id=None):
        """Set the target container and measurement ID; None leaves a value unchanged."""
        if account_id is not None:
            self.account_id = account_id
        if container_id is not None:
            self.container_id = container_id
        if measurement_id is not None:
            self.measurement_id = measurement_id

    def is_ready(self):
        """True once account, container and measurement ID are all set."""
        return bool(self.account_id and self.container_id and self.measurement_id)

    def reset(self):
        self.account_id = ''
        self.container_id = ''
        self.measurement_id = ''
        self.items = []
        self.last_report = None
        self.resolver.reset()


class GA4Session:
    """Selected properties and the dimensions / metrics queued for creation."""

    def __init__(self, property_ids=None, dimensions=None, metrics=None):
        self.property_ids = list(property_ids or [])
        self.dimensions = list(dimensions or [])
        self.metrics = list(metrics or [])
        self.last_results = []

    def reset(self):
        self.property_ids = []
        self.dimensions = []
        self.metrics = []
        self.last_results = []
