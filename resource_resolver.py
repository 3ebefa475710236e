from collections import OrderedDict, namedtuple

from batch_config import RESOURCE_CACHE_SIZE

ScopeKey = namedtuple('ScopeKey', ['account_id', 'container_id', 'workspace_id', 'name'])
ScopeKey.__new__.__defaults__ = (None,)


class ResourceCache:
    """
    Session scoped map of ScopeKey -> remote resource id.

    Bounded: once max_entries is reached the least recently used entry is
    evicted. A lookup after eviction simply goes back to the API, where the
    resolver finds the existing resource through its matcher.
    """

    def __init__(self, max_entries=RESOURCE_CACHE_SIZE):
        self.max_entries = max_entries
        self._entries = OrderedDict()

    def get(self, key):
        if key not in self._entries:
            return None
        self._entries.move_to_end(key)
        return self._entries[key]

    def set(self, key, resource_id):
        self._entries[key] = resource_id
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def clear(self):
        self._entries.clear()

    def __contains__(self, key):
        return key in self._entries

    def __len__(self):
        return len(self._entries)


class IdempotentResourceResolver:
    """Get-or-create lookups for resources that must exist once per scope."""

    def __init__(self, cache=None):
        self.cache = cache if cache is not None else ResourceCache()
        self._in_flight = set()

    def resolve_or_create(self, scope_key, list_existing, matcher, create, id_field):
        """
        Return the id of the resource for scope_key.

        Order: session cache, then an existing remote resource accepted by
        matcher, then a new resource from create(). Whatever is found is cached.
        """
        cached = self.cache.get(scope_key)
        if cached is not None:
            return cached

        # A key that is still being resolved must not be created a second time
        if scope_key in self._in_flight:
            raise RuntimeError(f"Resolution already in progress for {scope_key}")

        self._in_flight.add(scope_key)
        try:
            for resource in list_existing():
                if matcher(resource):
                    resource_id = resource[id_field]
                    print(f"  Reusing existing {resource.get('name', id_field)} (ID: {resource_id})")
                    self.cache.set(scope_key, resource_id)
                    return resource_id

            created = create()
            resource_id = created[id_field]
            self.cache.set(scope_key, resource_id)
            return resource_id
        finally:
            self._in_flight.discard(scope_key)

    def reset(self):
        """Forget every cached id."""
        self.cache.clear()
        self._in_flight.clear()


def constant_variable_matcher(name):
    """Match a constant ("c") variable with exactly this name."""
    def matches(variable):
        return variable.get('type') == 'c' and variable.get('name') == name
    return matches


def initialization_trigger_matcher(marker='initialization'):
    """Match an init trigger, or any trigger whose name contains marker (case-insensitive)."""
    def matches(trigger):
        name = trigger.get('name') or ''
        return trigger.get('type') == 'init' or marker in name.lower()
    return matches
