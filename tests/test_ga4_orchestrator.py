from dataclasses import replace

import pytest

from api_errors import HttpError, ValidationError
from batch_config import GA4_BATCH
from fakes import FakeGA4Api, posting_to
from ga4_orchestrator import PHASE_DIMENSIONS, PHASE_METRICS, GA4Orchestrator
from models import CustomDimension, CustomMetric


@pytest.fixture
def orchestrator(ga4_api, ga4_session, clock, messages):
    return GA4Orchestrator(ga4_api, ga4_session, sleep=clock.sleep, progress=messages.append)


def test_creates_dimensions_and_skips_existing_ones(clock, ga4_session):
    api = FakeGA4Api(existing_dimensions=[{'name': 'properties/p1/customDimensions/1', 'parameterName': 'User_Type'}])
    orchestrator = GA4Orchestrator(api, ga4_session, sleep=clock.sleep, progress=lambda m: None)

    report = orchestrator.create_dimensions('p1', [
        CustomDimension('user_type', 'User Type'),
        CustomDimension('page_category', 'Page Category', scope='ITEM', description='Category'),
    ])

    assert report.counts(PHASE_DIMENSIONS).skipped == 1
    assert report.counts(PHASE_DIMENSIONS).created == 1
    assert api.posted('customDimensions') == [{
        'parameterName': 'page_category',
        'displayName': 'Page Category',
        'scope': 'ITEM',
        'description': 'Category',
        'disallowAdsPersonalization': False
    }]
    assert report.property_id == 'p1'
    assert report.completed


def test_missing_required_fields_fail_without_a_call(orchestrator, ga4_api):
    report = orchestrator.create_dimensions('p1', [CustomDimension('', 'No key'), CustomDimension('key_only', '')])

    assert report.counts(PHASE_DIMENSIONS).failed == 2
    assert ga4_api.posted('customDimensions') == []
    assert 'Missing required fields' in report.errors[0]


def test_duplicate_rows_in_input_are_created_once(orchestrator, ga4_api):
    report = orchestrator.create_metrics('p1', [CustomMetric('load_time', 'Load Time', 'MILLISECONDS'),
                                                CustomMetric('LOAD_TIME', 'Load Time again')])

    assert len(ga4_api.posted('customMetrics')) == 1
    assert report.counts(PHASE_METRICS).skipped == 1
    assert report.unique_items == 1


def test_metric_payload_is_event_scoped(orchestrator, ga4_api):
    orchestrator.create_metrics('p1', [CustomMetric('revenue', 'Revenue', 'CURRENCY', scope='USER')])

    payload = ga4_api.posted('customMetrics')[0]
    assert payload['scope'] == 'EVENT'
    assert payload['measurementUnit'] == 'CURRENCY'


def test_items_are_processed_in_paced_batches(orchestrator, clock):
    dimensions = [CustomDimension(f"param_{i}", f"Param {i}") for i in range(12)]

    report = orchestrator.create_dimensions('p1', dimensions)

    assert report.counts(PHASE_DIMENSIONS).created == 12
    assert clock.sleeps == [1]


def test_creation_failures_do_not_stop_the_batch(orchestrator, ga4_api):
    ga4_api.fail_when(posting_to('customDimensions', parameterName='bad'), HttpError('Invalid name', status=400))

    report = orchestrator.create_dimensions('p1', [CustomDimension('bad', 'Bad'), CustomDimension('good', 'Good')])

    assert report.counts(PHASE_DIMENSIONS).failed == 1
    assert report.counts(PHASE_DIMENSIONS).created == 1
    assert report.errors == ('Failed to create custom dimension for bad: Invalid name',)


def test_listing_failure_is_recorded_and_creation_continues(orchestrator, ga4_api):
    ga4_api.fail_when(lambda method, url, body: method == 'GET', HttpError('Forbidden', status=403))

    report = orchestrator.create_dimensions('p1', [CustomDimension('user_type', 'User Type')])

    assert report.counts(PHASE_DIMENSIONS).created == 1
    assert report.errors == ('Could not load existing custom dimensions for property p1: Forbidden',)


def test_duplicate_check_can_be_disabled(ga4_session, clock):
    api = FakeGA4Api(existing_dimensions=[{'parameterName': 'user_type'}])
    options = replace(GA4_BATCH, check_duplicates=False)
    orchestrator = GA4Orchestrator(api, ga4_session, options=options, sleep=clock.sleep, progress=lambda m: None)

    report = orchestrator.create_dimensions('p1', [CustomDimension('user_type', 'User Type')])

    assert report.counts(PHASE_DIMENSIONS).created == 1
    assert [method for method, _, _ in api.calls] == ['POST']


def test_run_covers_every_selected_property(orchestrator, ga4_session, ga4_api):
    ga4_session.property_ids = ['p1', 'p2']
    ga4_session.dimensions = [CustomDimension('user_type', 'User Type')]

    results = orchestrator.run('dimensions')

    assert [property_id for property_id, _ in results] == ['p1', 'p2']
    assert ga4_session.last_results == results
    urls = [url for method, url, _ in ga4_api.calls if method == 'POST']
    assert urls == ['https://analyticsadmin.googleapis.com/v1beta/properties/p1/customDimensions',
                    'https://analyticsadmin.googleapis.com/v1beta/properties/p2/customDimensions']


def test_run_requires_properties_and_items(orchestrator, ga4_session):
    with pytest.raises(ValidationError, match='at least one metric'):
        orchestrator.run('metrics')

    ga4_session.property_ids = []
    with pytest.raises(ValidationError, match='at least one property'):
        orchestrator.run('dimensions')

    with pytest.raises(ValueError, match='Unknown kind'):
        orchestrator.run('audiences')


def test_session_reset_clears_selections(ga4_session):
    ga4_session.dimensions = [CustomDimension('a', 'A')]
    ga4_session.reset()
    assert ga4_session.property_ids == [] and ga4_session.dimensions == [] and ga4_session.last_results == []
