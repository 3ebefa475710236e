import pytest

from api_errors import ValidationError
from csv_input import (find_header, load_event_items, load_ga4_definitions, parse_event_rows,
                       parse_ga4_rows, validate_dimensions, validate_measurement_id, validate_metrics)
from models import CustomDimension, CustomMetric, EventItem


def test_event_rows_skip_title_and_split_parameters():
    rows = [
        ['Tracking plan - Q3', ''],
        ['GA4 Event Name', 'Parameters'],
        ['purchase', 'value, currency transaction_id'],
        ['', 'orphan'],
        ['sign_up', ''],
    ]

    assert parse_event_rows(rows) == [
        EventItem('purchase', ('value', 'currency', 'transaction_id')),
        EventItem('sign_up', ()),
    ]


def test_event_rows_without_event_column_are_rejected():
    with pytest.raises(ValidationError, match='GA4 Event Name'):
        parse_event_rows([['Name', 'Parameters'], ['purchase', 'value']])


def test_event_table_without_events_is_rejected():
    with pytest.raises(ValidationError, match='No valid events'):
        parse_event_rows([['Event Name', 'Parameters'], ['', 'value']])


def test_load_event_items_handles_bom(tmp_path):
    path = tmp_path / 'events.csv'
    path.write_text('\ufeffGA4 Event Name,Parameters\nlogin,method\n', encoding='utf-8')

    assert load_event_items(str(path)) == [EventItem('login', ('method',))]


def test_find_header_prefers_exact_match():
    headers = ['ga4 custom dimension notes', 'name', 'display name']
    assert find_header(headers, ['name', 'display name']) == 1
    assert find_header(headers, ['dimension']) == 0
    assert find_header(headers, ['unit']) is None


def test_ga4_sheet_splits_dimensions_and_metrics():
    rows = [
        ['Key', 'Name', 'Notes/Description', 'GA4 Custom Dimension', 'GA4 Custom Metric', 'Measurement Unit'],
        ['user_type', 'User Type', 'Logged in or not', 'TRUE', 'FALSE', ''],
        ['load_time', 'Load Time', '', 'FALSE', 'TRUE', 'MILLISECONDS'],
        ['', '', '', '', '', ''],
        ['score', 'Score', '', 'true', 'true', ''],
    ]

    dimensions, metrics = parse_ga4_rows(rows)

    assert dimensions == [CustomDimension('user_type', 'User Type', description='Logged in or not'),
                          CustomDimension('score', 'Score')]
    assert metrics == [CustomMetric('load_time', 'Load Time', 'MILLISECONDS'),
                       CustomMetric('score', 'Score', 'STANDARD')]


def test_ga4_sheet_needs_key_and_name_columns():
    with pytest.raises(ValidationError):
        parse_ga4_rows([['Description'], ['x']])
    with pytest.raises(ValidationError, match='header row'):
        parse_ga4_rows([['Key', 'Name']])


def test_load_ga4_definitions(tmp_path):
    path = tmp_path / 'ga4.csv'
    path.write_text('Key,Name,Custom Dimension,Custom Metric\nplan,Plan,TRUE,FALSE\n', encoding='utf-8')

    dimensions, metrics = load_ga4_definitions(str(path))

    assert [d.parameter_name for d in dimensions] == ['plan']
    assert metrics == []


@pytest.mark.parametrize("measurement_id, expected", [
    ('G-ABCDEF1234', True),
    ('G-abcdef1234', False),
    ('UA-12345-1', False),
    ('G-ABC', False),
    ('', False),
    (None, False),
])
def test_validate_measurement_id(measurement_id, expected):
    assert validate_measurement_id(measurement_id) is expected


def test_validate_dimensions_normalizes_scope_and_reports_errors():
    errors, warnings, normalized = validate_dimensions([
        CustomDimension('user_type', 'User Type', scope='SESSION'),
        CustomDimension('1bad', ''),
        CustomDimension('long_one', 'x' * 83, description='d' * 151),
    ])

    assert normalized[0].scope == 'EVENT'
    assert errors == [
        'Row 2: Display name is required',
        'Row 2: Parameter name must start with letter and contain only letters, numbers, and underscores',
    ]
    assert warnings == [
        'Row 1: Invalid scope. Using EVENT as default',
        'Row 3: Display name is longer than 82 characters',
        'Row 3: Description is longer than 150 characters',
    ]


def test_validate_metrics_defaults_unknown_unit():
    errors, warnings, normalized = validate_metrics([CustomMetric('load_time', 'Load Time', 'PARSECS')])

    assert errors == []
    assert warnings == ['Row 1: Invalid measurement unit. Using STANDARD as default']
    assert normalized == [CustomMetric('load_time', 'Load Time', 'STANDARD')]
