import json

from ga4_orchestrator import GA4Orchestrator
from gtm_orchestrator import GTMOrchestrator
from models import CustomDimension, EventItem
from report_export import build_ga4_export, build_gtm_export, save_report


def test_gtm_export_describes_created_resources(gtm_api, gtm_session, clock):
    items = [EventItem('purchase', ('value',))]
    report = GTMOrchestrator(gtm_api, gtm_session, sleep=clock.sleep, progress=lambda m: None).run(items)

    document = build_gtm_export(report, gtm_session, items)

    workspace_id = report.workspace['workspaceId']
    assert document['workspace']['url'] == (
        f"https://tagmanager.google.com/#/container/accounts/111/containers/222/workspaces/{workspace_id}")
    assert document['configuration'] == {'accountId': '111', 'containerId': '222', 'measurementId': 'G-ABCDEF1234'}
    assert document['summary']['errors'] == 0
    details = document['details']
    assert details['measurementIdVariable']['value'] == 'G-ABCDEF1234'
    assert [v['parameter'] for v in details['variables']] == ['value']
    assert [t['eventName'] for t in details['triggers']] == ['purchase']
    assert [t['eventName'] for t in details['tags']] == ['purchase']
    assert details['configTag']['name'] == 'GA4 - Config'
    assert document['originalData'] == [{'event_name': 'purchase', 'parameters': ('value',)}]


def test_gtm_export_without_workspace(gtm_session):
    from models import RunReport
    report = RunReport()
    report.add_error('Configuration failed: Permission denied')

    document = build_gtm_export(report.complete(), gtm_session, [])

    assert document['workspace'] is None
    assert document['details']['errors'] == ['Configuration failed: Permission denied']


def test_ga4_export_lists_outcomes_per_property(ga4_api, ga4_session, clock):
    orchestrator = GA4Orchestrator(ga4_api, ga4_session, sleep=clock.sleep, progress=lambda m: None)
    report = orchestrator.create_dimensions('p1', [CustomDimension('plan', 'Plan'), CustomDimension('plan', 'Plan')])

    document = build_ga4_export([('p1', report)])

    results = document['properties'][0]['results']
    assert [(r['status'], r['item']) for r in results] == [('created', 'plan'), ('skipped', 'plan')]
    assert results[0]['resourceName'] == '100'
    assert results[1]['resourceName'] is None


def test_save_report_writes_indented_json(tmp_path):
    path = tmp_path / 'report.json'

    written = save_report({'summary': {'created': 1}, 'details': ('a',)}, str(path))

    assert written == str(path)
    assert json.loads(path.read_text()) == {'summary': {'created': 1}, 'details': ['a']}
    assert '\n  "summary"' in path.read_text()


def test_save_report_default_name_uses_prefix(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)

    written = save_report({}, prefix='ga4-configuration')

    assert written.startswith('ga4-configuration-') and written.endswith('.json')
    assert (tmp_path / written).exists()
