import os
import json
import time
from dataclasses import asdict
from datetime import datetime, timezone

import gtm_service
from gtm_orchestrator import PHASE_TAGS, PHASE_TRIGGERS, PHASE_VARIABLES

REPORT_VERSION = '2.1'


def _parameter_value(resource, key):
    for parameter in resource.get('parameter') or []:
        if parameter.get('key') == key:
            return parameter.get('value')
    return None


def _metadata(tool):
    return {
        'generated': datetime.now(timezone.utc).isoformat(),
        'version': REPORT_VERSION,
        'tool': tool
    }


def build_gtm_export(report, session, items=None):
    """Build the JSON document describing a GTM run, complete or partial."""
    workspace = None
    if report.workspace:
        workspace_id = report.workspace.get('workspaceId')
        workspace = {
            'id': workspace_id,
            'name': report.workspace.get('name'),
            'url': gtm_service.workspace_url(session.account_id, session.container_id, workspace_id)
        }

    measurement_variable = None
    if report.measurement_variable_id:
        measurement_variable = {
            'id': report.measurement_variable_id,
            'name': gtm_service.MEASUREMENT_ID_VARIABLE,
            'type': 'constant',
            'value': session.measurement_id
        }

    config_tag = None
    if report.config_tag:
        config_tag = {
            'id': report.config_tag.get('tagId'),
            'name': report.config_tag.get('name'),
            'type': report.config_tag.get('type'),
            'triggerType': 'initialization',
            'usesMeasurementIdVariable': True
        }

    return {
        'metadata': _metadata('GTM CSV Upload Tool'),
        'workspace': workspace,
        'configuration': {
            'accountId': session.account_id,
            'containerId': session.container_id,
            'measurementId': session.measurement_id
        },
        'summary': report.summary(),
        'details': {
            'measurementIdVariable': measurement_variable,
            'variables': [{
                'id': v.get('variableId'),
                'name': v.get('name'),
                'type': v.get('type'),
                'parameter': _parameter_value(v, 'name')
            } for v in report.resources(PHASE_VARIABLES)],
            'triggers': [{
                'id': t.get('triggerId'),
                'name': t.get('name'),
                'type': t.get('type'),
                'eventName': (t.get('name') or '').replace('CE - ', '', 1)
            } for t in report.resources(PHASE_TRIGGERS)],
            'tags': [{
                'id': tag.get('tagId'),
                'name': tag.get('name'),
                'type': tag.get('type'),
                'eventName': (tag.get('name') or '').replace('GA4 - Event - ', '', 1),
                'firingTriggerId': tag.get('firingTriggerId'),
                'usesMeasurementIdVariable': True
            } for tag in report.resources(PHASE_TAGS)],
            'configTag': config_tag,
            'errors': list(report.errors)
        },
        'originalData': [asdict(item) for item in (items if items is not None else session.items)]
    }


def build_ga4_export(results):
    """Build the JSON document for GA4 runs given [(property_id, RunReport), ...]."""
    properties = []
    for property_id, report in results:
        properties.append({
            'propertyId': property_id,
            'summary': report.summary(),
            'results': [{
                'phase': outcome.phase,
                'item': outcome.item,
                'status': outcome.status,
                'reason': outcome.reason,
                'resourceName': (outcome.resource or {}).get('name')
            } for outcome in report.outcomes],
            'errors': list(report.errors)
        })
    return {
        'metadata': _metadata('GA4 Custom Dimensions & Metrics Manager'),
        'properties': properties
    }


def save_report(document, path=None, prefix='gtm-configuration'):
    """Write a report document to disk as indented JSON and return the path."""
    path = path or f"{prefix}-{int(time.time() * 1000)}.json"
    file_existed = os.path.exists(path)
    with open(path, 'w') as f:
        json.dump(document, f, indent=2, default=str)

    if file_existed:
        print(f"Overwrote report {path}")
    else:
        print(f"Saved report to {path}")
    return path
