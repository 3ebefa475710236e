"""Work items read from user input and the report built while creating them."""
from dataclasses import asdict, dataclass, field

CREATED = 'created'
SKIPPED = 'skipped'
FAILED = 'failed'


@dataclass(frozen=True)
class EventItem:
    """One GA4 event to tag in GTM, with the data layer parameters it sends."""
    event_name: str
    parameters: tuple = ()


@dataclass(frozen=True)
class CustomDimension:
    parameter_name: str
    display_name: str
    scope: str = 'EVENT'
    description: str = ''
    disallow_ads_personalization: bool = False


@dataclass(frozen=True)
class CustomMetric:
    parameter_name: str
    display_name: str
    measurement_unit: str = 'STANDARD'
    description: str = ''
    scope: str = 'EVENT'


@dataclass(frozen=True)
class ItemOutcome:
    phase: str
    item: str
    status: str
    reason: str = None
    resource: dict = None


@dataclass
class PhaseCounts:
    created: int = 0
    failed: int = 0
    skipped: int = 0


@dataclass
class RunReport:
    """
    Outcome of one orchestration run.

    Filled in phase by phase while the run is going, then frozen by
    complete(). A report is also attached to a fatal OrchestrationError, so
    callers can always show what was created before the failure.
    """
    total_items: int = 0
    unique_items: int = 0
    property_id: str = None
    workspace: dict = None
    measurement_variable_id: str = None
    config_tag: dict = None
    outcomes: list = field(default_factory=list)
    phases: dict = field(default_factory=dict)
    errors: list = field(default_factory=list)
    completed: bool = False

    def _check_open(self):
        if self.completed:
            raise RuntimeError("Run report is complete and can no longer be changed")

    def _record(self, phase, item, status, reason=None, resource=None):
        self._check_open()
        self.outcomes.append(ItemOutcome(phase, item, status, reason, resource))
        counts = self.phases.setdefault(phase, PhaseCounts())
        setattr(counts, status, getattr(counts, status) + 1)

    def created(self, phase, item, resource=None):
        self._record(phase, item, CREATED, resource=resource)

    def skipped(self, phase, item, reason):
        self._record(phase, item, SKIPPED, reason=reason)

    def failed(self, phase, item, error):
        message = f"Failed to create {phase} for {item}: {error}"
        self._record(phase, item, FAILED, reason=str(error))
        self.errors.append(message)

    def add_error(self, message):
        self._check_open()
        self.errors.append(message)

    def counts(self, phase):
        return self.phases.get(phase, PhaseCounts())

    def resources(self, phase):
        return [o.resource for o in self.outcomes
                if o.phase == phase and o.status == CREATED and o.resource is not None]

    def summary(self):
        totals = PhaseCounts()
        for counts in self.phases.values():
            totals.created += counts.created
            totals.failed += counts.failed
            totals.skipped += counts.skipped
        return {
            'total_items': self.total_items,
            'unique_items': self.unique_items,
            'created': totals.created,
            'failed': totals.failed,
            'skipped': totals.skipped,
            'errors': len(self.errors),
            'phases': {phase: asdict(counts) for phase, counts in self.phases.items()},
        }

    def complete(self):
        if not self.completed:
            self.outcomes = tuple(self.outcomes)
            self.errors = tuple(self.errors)
            self.completed = True
        return self
