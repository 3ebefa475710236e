"""
Creates a complete GA4 event setup in a GTM container.

A run goes through five phases, each depending on ids from the earlier ones:

1. a new workspace (fatal on failure)
2. the "CONS - Measurement ID" constant variable, reused if present (fatal on failure)
3. the Initialization trigger, reused if present, and the GA4 config tag
4. one data layer variable per unique parameter, in batches
5. one custom event trigger and one GA4 event tag per unique event, in batches

Per-item failures are recorded in the RunReport and the run moves on.
"""
import time

import gtm_service
from api_errors import OrchestrationError, is_quota_error
from batch_config import EVENT_BATCH, VARIABLE_BATCH
from batching import process_in_batches
from models import RunReport
from resource_resolver import ScopeKey, constant_variable_matcher, initialization_trigger_matcher

PHASE_WORKSPACE = 'workspace'
PHASE_MEASUREMENT_VARIABLE = 'measurement ID variable'
PHASE_INIT_TRIGGER = 'initialization trigger'
PHASE_CONFIG_TAG = 'config tag'
PHASE_VARIABLES = 'variable'
PHASE_TRIGGERS = 'trigger'
PHASE_TAGS = 'event tag'


def unique_parameters(items):
    """Union of all parameters across items, in first-seen order."""
    seen = {}
    for item in items:
        for parameter in item.parameters:
            seen.setdefault(parameter, None)
    return list(seen)


def unique_events(items):
    """One item per event name. A repeated name keeps its first position but the last item's parameters."""
    by_name = {}
    for item in items:
        by_name[item.event_name] = item
    return list(by_name.values())


class GTMOrchestrator:

    def __init__(self, dispatcher, session, variable_options=VARIABLE_BATCH, event_options=EVENT_BATCH,
                 sleep=time.sleep, progress=print):
        self.dispatcher = dispatcher
        self.session = session
        self.variable_options = variable_options
        self.event_options = event_options
        self.sleep = sleep
        self.progress = progress

    def run(self, items=None):
        """Run all phases and return the completed RunReport.

        Raises OrchestrationError, carrying the partial report, when the
        workspace or the measurement ID variable cannot be created.
        """
        items = list(self.session.items if items is None else items)
        report = RunReport(total_items=len(items))
        self.session.last_report = report
        account_id = self.session.account_id
        container_id = self.session.container_id

        self.progress('Creating GTM workspace...')
        try:
            workspace = gtm_service.create_workspace(self.dispatcher, account_id, container_id)
        except Exception as e:
            report.add_error(f"Configuration failed: {e}")
            report.complete()
            raise OrchestrationError(
                f"Workspace creation failed: {e}. Cannot continue with configuration.", report) from e

        workspace_id = workspace['workspaceId']
        report.workspace = workspace
        report.created(PHASE_WORKSPACE, workspace.get('name', workspace_id), workspace)
        path = gtm_service.workspace_path(account_id, container_id, workspace_id)

        self.progress('Creating measurement ID constant variable...')
        try:
            variable_id, created = self._resolve(
                ScopeKey(account_id, container_id, workspace_id, gtm_service.MEASUREMENT_ID_VARIABLE),
                lambda: gtm_service.list_variables(self.dispatcher, path),
                constant_variable_matcher(gtm_service.MEASUREMENT_ID_VARIABLE),
                lambda: gtm_service.create_constant_variable(self.dispatcher, path, self.session.measurement_id),
                'variableId')
        except Exception as e:
            report.failed(PHASE_MEASUREMENT_VARIABLE, gtm_service.MEASUREMENT_ID_VARIABLE, e)
            report.complete()
            raise OrchestrationError(f"Measurement ID variable creation failed: {e}", report) from e

        report.measurement_variable_id = variable_id
        self._record_resolved(report, PHASE_MEASUREMENT_VARIABLE, gtm_service.MEASUREMENT_ID_VARIABLE,
                              variable_id, 'variableId', created)

        self.progress('Creating GA4 Config tag...')
        self._create_config_tag(report, account_id, container_id, workspace_id, path)

        self._create_variables(report, path, unique_parameters(items))

        events = unique_events(items)
        report.unique_items = len(events)
        self._create_events(report, path, events)

        report.complete()
        self.progress(f"GTM configuration completed: {report.summary()['created']} created, "
                      f"{len(report.errors)} errors")
        return report

    def _resolve(self, scope_key, list_existing, matcher, create, id_field):
        """Resolve a shared resource; returns (id, created_now)."""
        created = []

        def create_and_flag():
            resource = create()
            created.append(resource)
            return resource

        resource_id = self.session.resolver.resolve_or_create(
            scope_key, list_existing, matcher, create_and_flag, id_field)
        return resource_id, bool(created)

    def _record_resolved(self, report, phase, name, resource_id, id_field, created):
        """Record a resolved shared resource as created or reused."""
        if created:
            report.created(phase, name, {id_field: resource_id, 'name': name})
        else:
            report.skipped(phase, name, 'already exists')

    def _create_config_tag(self, report, account_id, container_id, workspace_id, path):
        """Resolve the initialization trigger and add the GA4 config tag on it."""
        try:
            trigger_id, created = self._resolve(
                ScopeKey(account_id, container_id, workspace_id, gtm_service.INITIALIZATION_TRIGGER),
                lambda: gtm_service.list_triggers(self.dispatcher, path),
                initialization_trigger_matcher(),
                lambda: gtm_service.create_initialization_trigger(self.dispatcher, path),
                'triggerId')
            self._record_resolved(report, PHASE_INIT_TRIGGER, gtm_service.INITIALIZATION_TRIGGER,
                                  trigger_id, 'triggerId', created)

            config_tag = gtm_service.create_config_tag(self.dispatcher, path, trigger_id)
        except Exception as e:
            report.failed(PHASE_CONFIG_TAG, gtm_service.CONFIG_TAG_NAME, e)
            return

        report.config_tag = config_tag
        report.created(PHASE_CONFIG_TAG, gtm_service.CONFIG_TAG_NAME, config_tag)

    def _create_variables(self, report, path, parameters):
        """Create one data layer variable per parameter."""
        def handle(parameter):
            if not parameter or not parameter.strip():
                report.skipped(PHASE_VARIABLES, repr(parameter), 'blank parameter name')
                return
            try:
                variable = gtm_service.create_variable(self.dispatcher, path, parameter)
            except Exception as e:
                report.failed(PHASE_VARIABLES, parameter, e)
                return
            report.created(PHASE_VARIABLES, parameter, variable)

        process_in_batches(
            parameters, self.variable_options, handle, 'variables',
            sleep=self.sleep, progress=self.progress,
            status=lambda: f"{report.counts(PHASE_VARIABLES).created} created so far")

    def _create_events(self, report, path, events):
        """Create a custom event trigger and its GA4 event tag per event."""
        def handle(event):
            name = event.event_name
            try:
                trigger = gtm_service.create_event_trigger(self.dispatcher, path, name)
            except Exception as e:
                report.failed(PHASE_TRIGGERS, name, e)
                report.skipped(PHASE_TAGS, name, 'trigger was not created')
                self._cool_down_on_quota(e)
                return
            report.created(PHASE_TRIGGERS, name, trigger)

            try:
                tag = gtm_service.create_event_tag(
                    self.dispatcher, path, name, event.parameters, trigger['triggerId'])
            except Exception as e:
                report.failed(PHASE_TAGS, name, e)
                self._cool_down_on_quota(e)
                return
            report.created(PHASE_TAGS, name, tag)

        process_in_batches(
            events, self.event_options, handle, 'event configurations',
            sleep=self.sleep, progress=self.progress,
            status=lambda: f"{report.counts(PHASE_TAGS).created} events completed")

    def _cool_down_on_quota(self, error):
        """Pause the event phase after a quota failure."""
        if is_quota_error(error):
            cooldown = self.event_options.quota_cooldown_seconds
            self.progress(f"Quota exceeded, pausing {round(cooldown)}s before the next event...")
            self.sleep(cooldown)
