from googleapiclient.errors import HttpError as DiscoveryHttpError

ANALYTICS_ADMIN_API = 'https://analyticsadmin.googleapis.com/v1beta'

DIMENSION_SCOPES = ('EVENT', 'USER', 'ITEM')
MEASUREMENT_UNITS = ('STANDARD', 'CURRENCY', 'FEET', 'METERS', 'KILOMETERS', 'MILES',
                     'MILLISECONDS', 'SECONDS', 'MINUTES', 'HOURS')


def dimension_payload(dimension):
    return {
        'parameterName': dimension.parameter_name,
        'displayName': dimension.display_name,
        'scope': dimension.scope or 'EVENT',
        'description': dimension.description or '',
        'disallowAdsPersonalization': bool(dimension.disallow_ads_personalization)
    }


def metric_payload(metric):
    # Custom metrics are always event scoped in GA4
    return {
        'parameterName': metric.parameter_name,
        'displayName': metric.display_name,
        'description': metric.description or '',
        'measurementUnit': metric.measurement_unit or 'STANDARD',
        'scope': 'EVENT'
    }


def list_custom_dimensions(dispatcher, property_id):
    data = dispatcher.request(f"{ANALYTICS_ADMIN_API}/properties/{property_id}/customDimensions")
    return data.get('customDimensions', [])


def list_custom_metrics(dispatcher, property_id):
    data = dispatcher.request(f"{ANALYTICS_ADMIN_API}/properties/{property_id}/customMetrics")
    return data.get('customMetrics', [])


def create_custom_dimension(dispatcher, property_id, dimension):
    created = dispatcher.request(
        f"{ANALYTICS_ADMIN_API}/properties/{property_id}/customDimensions",
        method='POST', body=dimension_payload(dimension))
    print(f"Created GA4 custom dimension: {created.get('displayName', dimension.display_name)} for property {property_id}")
    return created


def create_custom_metric(dispatcher, property_id, metric):
    created = dispatcher.request(
        f"{ANALYTICS_ADMIN_API}/properties/{property_id}/customMetrics",
        method='POST', body=metric_payload(metric))
    print(f"Created GA4 custom metric: {created.get('displayName', metric.display_name)} for property {property_id}")
    return created


def get_ga4_properties(analytics_service):
    """List every GA4 property reachable through the discovery client, across all accounts."""
    accounts = analytics_service.accounts().list().execute().get('accounts', [])
    properties = []

    if not accounts:
        print("No GA4 accounts found.")
        return properties

    for account in accounts:
        account_id = account['name'].split('/')[1]
        try:
            response = analytics_service.properties().list(
                filter=f"parent:accounts/{account_id}"
            ).execute()
        except DiscoveryHttpError as e:
            print(f"Error listing properties for account {account.get('displayName')}: {e}")
            continue

        for prop in response.get('properties', []):
            properties.append({
                'name': prop.get('displayName'),
                'id': prop['name'].split('/')[1],
                'accountName': account.get('displayName'),
                'accountId': account_id,
                'propertyType': prop.get('propertyType', 'PROPERTY_TYPE_ORDINARY')
            })

    return properties
