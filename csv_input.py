"""Read work items from CSV exports and check them before any API call is made."""
import csv
import re
from dataclasses import replace

from api_errors import ValidationError
from ga4_service import DIMENSION_SCOPES, MEASUREMENT_UNITS
from models import CustomDimension, CustomMetric, EventItem

MEASUREMENT_ID_PATTERN = re.compile(r'^G-[A-Z0-9]{10}$')
GA4_PARAMETER_PATTERN = re.compile(r'^[a-zA-Z][a-zA-Z0-9_]*$')
PARAMETER_SEPARATORS = re.compile(r'[\s,]+')

MAX_DISPLAY_NAME_LENGTH = 82
MAX_DESCRIPTION_LENGTH = 150

# Accepted header names for the unified GA4 dimensions / metrics sheet, best match first
GA4_HEADERS = {
    'parameter_name': ['key', 'parameter name', 'parametername'],
    'display_name': ['name', 'display name', 'displayname'],
    'description': ['notes/description', 'description', 'notes', 'desc'],
    'dimension': ['ga4 custom dimension', 'custom dimension', 'dimension'],
    'metric': ['ga4 custom metric', 'custom metric', 'metric'],
    'measurement_unit': ['measurement unit', 'measurementunit', 'unit'],
}


def _is_event_column(header):
    header = header.lower()
    return 'ga4 event' in header or 'event name' in header


def _cell(row, index):
    if index is None or index >= len(row):
        return ''
    return (row[index] or '').strip()


def parse_event_rows(rows):
    """
    Turn CSV rows into EventItems.

    The header is the first row with an event name column, so a title line
    above the table is ignored. Parameters are split on commas and whitespace.
    """
    rows = list(rows)
    header_index = next((i for i, row in enumerate(rows) if any(_is_event_column(c) for c in row)), None)
    if header_index is None:
        raise ValidationError('No "GA4 Event Name" column found in CSV')

    header = rows[header_index]
    event_column = next(i for i, name in enumerate(header) if _is_event_column(name))
    parameters_column = next((i for i, name in enumerate(header) if 'parameters' in name.lower()), None)

    items = []
    for row in rows[header_index + 1:]:
        event_name = _cell(row, event_column)
        if not event_name:
            continue
        parameters = tuple(p for p in PARAMETER_SEPARATORS.split(_cell(row, parameters_column)) if p)
        items.append(EventItem(event_name, parameters))

    if not items:
        raise ValidationError(
            'No valid events found in CSV. Please check that your CSV has "GA4 Event Name" and "Parameters" columns.')
    return items


def load_event_items(path):
    with open(path, 'r', newline='', encoding='utf-8-sig') as csvfile:
        items = parse_event_rows(csv.reader(csvfile))
    print(f"Successfully parsed {len(items)} events from {path}")
    return items


def find_header(headers, terms):
    """Index of the first header equal to a term, else the first containing one, else None."""
    for term in terms:
        if term in headers:
            return headers.index(term)
    for term in terms:
        for index, header in enumerate(headers):
            if term in header:
                return index
    return None


def parse_ga4_rows(rows):
    """Split a unified GA4 sheet into (dimensions, metrics) using its TRUE/FALSE flag columns."""
    rows = list(rows)
    if len(rows) < 2:
        raise ValidationError('CSV must have header row and at least one data row')

    headers = [h.lower().strip() for h in rows[0]]
    columns = {field: find_header(headers, terms) for field, terms in GA4_HEADERS.items()}
    if columns['parameter_name'] is None or columns['display_name'] is None:
        raise ValidationError('CSV needs a "Key" (parameter name) and a "Name" (display name) column')

    dimensions = []
    metrics = []
    for row in rows[1:]:
        if not any((cell or '').strip() for cell in row):
            continue

        parameter_name = _cell(row, columns['parameter_name'])
        display_name = _cell(row, columns['display_name'])
        description = _cell(row, columns['description'])

        if 'true' in _cell(row, columns['dimension']).lower():
            dimensions.append(CustomDimension(parameter_name, display_name, description=description))

        if 'true' in _cell(row, columns['metric']).lower():
            unit = _cell(row, columns['measurement_unit']) or 'STANDARD'
            metrics.append(CustomMetric(parameter_name, display_name, measurement_unit=unit,
                                        description=description))

    return dimensions, metrics


def load_ga4_definitions(path):
    with open(path, 'r', newline='', encoding='utf-8-sig') as csvfile:
        dimensions, metrics = parse_ga4_rows(csv.reader(csvfile))
    print(f"Loaded {len(dimensions)} custom dimensions and {len(metrics)} custom metrics from {path}")
    return dimensions, metrics


def validate_measurement_id(measurement_id):
    return bool(MEASUREMENT_ID_PATTERN.match(measurement_id or ''))


def _validate_common(item, row, errors, warnings):
    if not item.display_name:
        errors.append(f"Row {row}: Display name is required")
    if not item.parameter_name:
        errors.append(f"Row {row}: Parameter name is required")
    elif not GA4_PARAMETER_PATTERN.match(item.parameter_name):
        errors.append(f"Row {row}: Parameter name must start with letter and contain only letters, numbers, and underscores")

    if item.display_name and len(item.display_name) > MAX_DISPLAY_NAME_LENGTH:
        warnings.append(f"Row {row}: Display name is longer than {MAX_DISPLAY_NAME_LENGTH} characters")
    if item.description and len(item.description) > MAX_DESCRIPTION_LENGTH:
        warnings.append(f"Row {row}: Description is longer than {MAX_DESCRIPTION_LENGTH} characters")


def validate_dimensions(dimensions):
    """Return (errors, warnings, dimensions) with unknown scopes replaced by EVENT."""
    errors, warnings, normalized = [], [], []
    for index, dimension in enumerate(dimensions, 1):
        _validate_common(dimension, index, errors, warnings)
        if dimension.scope and dimension.scope not in DIMENSION_SCOPES:
            warnings.append(f"Row {index}: Invalid scope. Using EVENT as default")
            dimension = replace(dimension, scope='EVENT')
        normalized.append(dimension)
    return errors, warnings, normalized


def validate_metrics(metrics):
    """Return (errors, warnings, metrics) with unknown measurement units replaced by STANDARD."""
    errors, warnings, normalized = [], [], []
    for index, metric in enumerate(metrics, 1):
        _validate_common(metric, index, errors, warnings)
        if metric.measurement_unit and metric.measurement_unit not in MEASUREMENT_UNITS:
            warnings.append(f"Row {index}: Invalid measurement unit. Using STANDARD as default")
            metric = replace(metric, measurement_unit='STANDARD')
        normalized.append(metric)
    return errors, warnings, normalized
