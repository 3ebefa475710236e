import time

import ga4_service
from api_errors import ValidationError, is_quota_error
from batch_config import GA4_BATCH
from batching import process_in_batches
from models import RunReport

PHASE_DIMENSIONS = 'custom dimension'
PHASE_METRICS = 'custom metric'

KINDS = {
    'dimensions': (PHASE_DIMENSIONS, ga4_service.list_custom_dimensions, ga4_service.create_custom_dimension),
    'metrics': (PHASE_METRICS, ga4_service.list_custom_metrics, ga4_service.create_custom_metric),
}


class GA4Orchestrator:
    """Creates custom dimensions and metrics in one or more GA4 properties."""

    def __init__(self, dispatcher, session, options=GA4_BATCH, sleep=time.sleep, progress=print):
        self.dispatcher = dispatcher
        self.session = session
        self.options = options
        self.sleep = sleep
        self.progress = progress

    def create_dimensions(self, property_id, dimensions):
        """Create custom dimensions in one property and return its RunReport."""
        return self._create(property_id, list(dimensions), 'dimensions')

    def create_metrics(self, property_id, metrics):
        """Create custom metrics in one property and return its RunReport."""
        return self._create(property_id, list(metrics), 'metrics')

    def run(self, kind='dimensions'):
        """Create the session's dimensions or metrics in every selected property.

        Returns a list of (property_id, RunReport). A failing property does
        not stop the others.
        """
        if kind not in KINDS:
            raise ValueError(f"Unknown kind {kind!r}, expected one of {sorted(KINDS)}")
        if not self.session.property_ids:
            raise ValidationError('Please select at least one property first')

        items = self.session.dimensions if kind == 'dimensions' else self.session.metrics
        if not items:
            raise ValidationError(f"Please add at least one {kind[:-1]}")

        results = []
        for property_id in self.session.property_ids:
            self.progress(f"Creating {len(items)} {kind} in property {property_id}...")
            results.append((property_id, self._create(property_id, list(items), kind)))

        self.session.last_results.extend(results)
        return results

    def _create(self, property_id, items, kind):
        """Walk items for one property in batches, skipping duplicates."""
        if not property_id:
            raise ValidationError('Property ID is required')

        phase, list_existing, create = KINDS[kind]
        report = RunReport(total_items=len(items), property_id=property_id)
        report.unique_items = len({item.parameter_name.lower() for item in items if item.parameter_name})

        existing = set()
        if self.options.check_duplicates:
            try:
                existing = {resource['parameterName'].lower()
                            for resource in list_existing(self.dispatcher, property_id)
                            if resource.get('parameterName')}
            except Exception as e:
                report.add_error(f"Could not load existing {phase}s for property {property_id}: {e}")

        created_names = set()

        def handle(item):
            label = item.parameter_name or item.display_name or '(unnamed)'
            if not item.parameter_name or not item.display_name:
                report.failed(phase, label,
                              ValidationError('Missing required fields (parameterName or displayName)'))
                return

            key = item.parameter_name.lower()
            if key in created_names:
                report.skipped(phase, label, f"Duplicate {phase} in input")
                return
            if self.options.check_duplicates and key in existing:
                report.skipped(phase, label, f"{phase.capitalize()} already exists")
                return

            try:
                resource = create(self.dispatcher, property_id, item)
            except Exception as e:
                report.failed(phase, label, e)
                if is_quota_error(e):
                    self.sleep(self.options.quota_cooldown_seconds)
                return

            created_names.add(key)
            report.created(phase, label, resource)

        process_in_batches(
            items, self.options, handle, kind,
            sleep=self.sleep, progress=self.progress,
            status=lambda: f"{report.counts(phase).created} created so far")

        return report.complete()
