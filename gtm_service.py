import re
from datetime import datetime

from googleapiclient.errors import HttpError as DiscoveryHttpError

from api_errors import ValidationError

TAGMANAGER_API = 'https://tagmanager.googleapis.com/tagmanager/v2'

MEASUREMENT_ID_VARIABLE = 'CONS - Measurement ID'
MEASUREMENT_ID_REFERENCE = '{{' + MEASUREMENT_ID_VARIABLE + '}}'
INITIALIZATION_TRIGGER = 'Initialization'
CONFIG_TAG_NAME = 'GA4 - Config'

# GA4 event parameter names that GTM accepts in an eventParameters list
PARAMETER_NAME_PATTERN = re.compile(r'^[a-zA-Z_][a-zA-Z0-9_]*$')


def workspace_path(account_id, container_id, workspace_id=None):
    path = f"accounts/{account_id}/containers/{container_id}"
    if workspace_id:
        path += f"/workspaces/{workspace_id}"
    return path


def workspace_url(account_id, container_id, workspace_id):
    """Link to the workspace in the Tag Manager UI."""
    return f"https://tagmanager.google.com/#/container/{workspace_path(account_id, container_id, workspace_id)}"


def generate_workspace_name(now=None):
    now = now or datetime.now()
    return f"GA4 Events Configurations - {now.strftime('%Y-%m-%d %H%M%S')}"


def list_accounts(dispatcher):
    data = dispatcher.request(f"{TAGMANAGER_API}/accounts")
    return data.get('account', [])


def list_containers(dispatcher, account_id):
    if not account_id:
        raise ValidationError('Account ID is required')
    data = dispatcher.request(f"{TAGMANAGER_API}/accounts/{account_id}/containers")
    return data.get('container', [])


def create_workspace(dispatcher, account_id, container_id, name=None):
    if not account_id or not container_id:
        raise ValidationError('Account ID and Container ID are required')

    body = {
        'name': name or generate_workspace_name(),
        'description': 'Workspace created from CSV import for GA4 event configuration'
    }
    return dispatcher.request(
        f"{TAGMANAGER_API}/{workspace_path(account_id, container_id)}/workspaces",
        method='POST', body=body)


def list_variables(dispatcher, path):
    data = dispatcher.request(f"{TAGMANAGER_API}/{path}/variables")
    return data.get('variable', [])


def list_triggers(dispatcher, path):
    data = dispatcher.request(f"{TAGMANAGER_API}/{path}/triggers")
    return data.get('trigger', [])


def create_constant_variable(dispatcher, path, value, name=MEASUREMENT_ID_VARIABLE):
    body = {
        'name': name,
        'type': 'c',
        'parameter': [
            {'type': 'TEMPLATE', 'key': 'value', 'value': value}
        ]
    }
    return dispatcher.request(f"{TAGMANAGER_API}/{path}/variables", method='POST', body=body)


def create_variable(dispatcher, path, parameter_name):
    """Create a data layer variable "DLV - <parameter>" reading that parameter."""
    if not parameter_name or not parameter_name.strip():
        raise ValidationError('Parameter name is required')

    parameter_name = parameter_name.strip()
    body = {
        'name': f"DLV - {parameter_name}",
        'type': 'v',
        'parameter': [
            {'type': 'TEMPLATE', 'key': 'name', 'value': parameter_name},
            {'type': 'INTEGER', 'key': 'dataLayerVersion', 'value': '2'}
        ]
    }
    return dispatcher.request(f"{TAGMANAGER_API}/{path}/variables", method='POST', body=body)


def create_initialization_trigger(dispatcher, path):
    body = {'name': INITIALIZATION_TRIGGER, 'type': 'init', 'filter': []}
    return dispatcher.request(f"{TAGMANAGER_API}/{path}/triggers", method='POST', body=body)


def create_event_trigger(dispatcher, path, event_name):
    """Create a custom event trigger "CE - <event>" firing on {{_event}} equals event."""
    if not event_name or not event_name.strip():
        raise ValidationError('Event name is required')

    event_name = event_name.strip()
    body = {
        'name': f"CE - {event_name}",
        'type': 'customEvent',
        'customEventFilter': [
            {
                'type': 'equals',
                'parameter': [
                    {'type': 'TEMPLATE', 'key': 'arg0', 'value': '{{_event}}'},
                    {'type': 'TEMPLATE', 'key': 'arg1', 'value': event_name}
                ]
            }
        ]
    }
    return dispatcher.request(f"{TAGMANAGER_API}/{path}/triggers", method='POST', body=body)


def create_config_tag(dispatcher, path, trigger_id):
    body = {
        'name': CONFIG_TAG_NAME,
        'type': 'gaawc',
        'parameter': [
            {'type': 'TEMPLATE', 'key': 'measurementId', 'value': MEASUREMENT_ID_REFERENCE},
            {'type': 'TEMPLATE', 'key': 'measurementIdOverride', 'value': MEASUREMENT_ID_REFERENCE}
        ],
        'firingTriggerId': [trigger_id]
    }
    return dispatcher.request(f"{TAGMANAGER_API}/{path}/tags", method='POST', body=body)


def build_event_parameters(parameters):
    """Map each valid parameter name to its DLV variable. Invalid names are dropped."""
    event_parameters = []
    for param in parameters or []:
        if not isinstance(param, str) or not PARAMETER_NAME_PATTERN.match(param.strip()):
            continue
        param = param.strip()
        event_parameters.append({
            'type': 'MAP',
            'map': [
                {'type': 'TEMPLATE', 'key': 'name', 'value': param},
                {'type': 'TEMPLATE', 'key': 'value', 'value': f"{{{{DLV - {param}}}}}"}
            ]
        })
    return event_parameters


def create_event_tag(dispatcher, path, event_name, parameters, trigger_id):
    if not event_name or not trigger_id:
        raise ValidationError('Event name and trigger ID are required')

    tag_parameters = [
        {'type': 'TEMPLATE', 'key': 'measurementId', 'value': MEASUREMENT_ID_REFERENCE},
        {'type': 'TEMPLATE', 'key': 'eventName', 'value': event_name},
        {'type': 'TEMPLATE', 'key': 'measurementIdOverride', 'value': MEASUREMENT_ID_REFERENCE}
    ]
    event_parameters = build_event_parameters(parameters)
    if event_parameters:
        tag_parameters.append({'type': 'LIST', 'key': 'eventParameters', 'list': event_parameters})

    body = {
        'name': f"GA4 - Event - {event_name}",
        'type': 'gaawe',
        'parameter': tag_parameters,
        'firingTriggerId': [trigger_id]
    }
    return dispatcher.request(f"{TAGMANAGER_API}/{path}/tags", method='POST', body=body)


def get_gtm_containers(service):
    """Get all accessible GTM containers through the discovery client."""
    accounts = service.accounts().list().execute()
    containers = []

    if not accounts.get('account'):
        print("No GTM accounts found.")
        return containers

    for account in accounts['account']:
        account_path = f"accounts/{account['accountId']}"

        try:
            container_list = service.accounts().containers().list(
                parent=account_path
            ).execute()
        except DiscoveryHttpError as e:
            print(f"Error listing containers for account {account['name']}: {e}")
            continue

        for container in container_list.get('container', []):
            containers.append({
                'accountId': account['accountId'],
                'accountName': account['name'],
                'containerId': container['containerId'],
                'containerName': container['name'],
                'publicId': container.get('publicId', ''),
                'path': f"{account_path}/containers/{container['containerId']}"
            })

    return containers


def find_container_by_public_id(service, public_id):
    """Find a GTM container by its public ID (GTM-XXXX). Returns (account_id, container_id, name)."""
    for container in get_gtm_containers(service):
        if container['publicId'] == public_id:
            print(f"  Found container: {container['containerName']} (Public ID: {public_id})")
            return container['accountId'], container['containerId'], container['containerName']

    print(f"  Container with Public ID {public_id} not found.")
    return None, None, None
