import sys
import argparse
from dataclasses import replace

from api_client import AuthenticatedCaller
from api_errors import ApiError, OrchestrationError, ValidationError
from batch_config import GA4_BATCH
from auth import GoogleAuthSession, get_credentials, initialize_services
from csv_input import (load_event_items, load_ga4_definitions, validate_dimensions,
                       validate_measurement_id, validate_metrics)
from ga4_orchestrator import GA4Orchestrator
from ga4_service import get_ga4_properties
from gtm_orchestrator import GTMOrchestrator
from gtm_service import find_container_by_public_id, get_gtm_containers, list_accounts, list_containers
from rate_limiter import RateLimitedDispatcher
from report_export import build_ga4_export, build_gtm_export, save_report
from session_state import GA4Session, GTMSession


def build_dispatcher(credentials, name):
    """Authenticate and return a dispatcher with its own queue and quota window."""
    auth_session = GoogleAuthSession(credentials)
    auth_session.authenticate()
    return RateLimitedDispatcher(AuthenticatedCaller(auth_session, name=name), name=name)


def print_report(report):
    summary = report.summary()
    print(f"Created {summary['created']}, skipped {summary['skipped']}, failed {summary['failed']}")
    for phase, counts in summary['phases'].items():
        print(f"  {phase}: {counts['created']} created, {counts['skipped']} skipped, {counts['failed']} failed")
    if report.errors:
        print("Errors:")
        for i, error in enumerate(report.errors, 1):
            print(f"  {i}. {error}")


def run_gtm(args, credentials):
    if not validate_measurement_id(args.measurement_id):
        print("Please enter a valid GA4 Measurement ID (G-XXXXXXXXXX)")
        return 1

    session = GTMSession(measurement_id=args.measurement_id)
    session.select(account_id=args.account_id, container_id=args.container_id)
    if args.container_public_id:
        gtm_discovery, _ = initialize_services(credentials)
        account_id, container_id, _ = find_container_by_public_id(gtm_discovery, args.container_public_id)
        session.select(account_id=account_id, container_id=container_id)
    if not session.is_ready():
        print("No target container. Use --container-public-id or --account-id with --container-id.")
        return 1

    session.items = load_event_items(args.csv)

    orchestrator = GTMOrchestrator(build_dispatcher(credentials, 'Tag Manager'), session)
    exit_code = 0
    try:
        report = orchestrator.run()
    except OrchestrationError as e:
        print(f"Error creating GTM configuration: {e}")
        report = e.report
        exit_code = 1

    print_report(report)
    if report.workspace or args.report:
        save_report(build_gtm_export(report, session), args.report)
    return exit_code


def run_ga4(args, credentials):
    dimensions, metrics = load_ga4_definitions(args.csv)
    errors, warnings, dimensions = validate_dimensions(dimensions)
    metric_errors, metric_warnings, metrics = validate_metrics(metrics)
    errors += metric_errors
    for warning in warnings + metric_warnings:
        print(f"Warning: {warning}")
    if errors:
        print("Fix these rows before creating anything:")
        for error in errors:
            print(f"  {error}")
        return 1

    property_ids = [p.strip() for p in args.properties.split(',') if p.strip()]
    session = GA4Session(property_ids, dimensions, metrics)

    options = replace(GA4_BATCH, check_duplicates=not args.no_check_duplicates)
    orchestrator = GA4Orchestrator(build_dispatcher(credentials, 'Analytics Admin'), session, options=options)

    kinds = ['dimensions', 'metrics'] if args.kind == 'both' else [args.kind]
    results = []
    for kind in kinds:
        if not (session.dimensions if kind == 'dimensions' else session.metrics):
            print(f"No {kind} marked TRUE in {args.csv}, skipping.")
            continue
        results.extend(orchestrator.run(kind))

    for property_id, report in results:
        print(f"Property {property_id}:")
        print_report(report)

    if results:
        save_report(build_ga4_export(results), args.report, prefix='ga4-configuration')
    return 1 if any(report.errors for _, report in results) else 0


def list_accounts_and_containers(dispatcher):
    """Print every GTM account with its container IDs, through the rate-limited REST API."""
    accounts = list_accounts(dispatcher)
    if not accounts:
        print("No GTM accounts found.")
    for account in accounts:
        print(f"{account['accountId']}\t{account.get('name', '')}")
        for container in list_containers(dispatcher, account['accountId']):
            print(f"  {container['containerId']}\t{container.get('publicId', '')}\t{container.get('name', '')}")
    return 0


def run_list(args, credentials):
    if args.what == 'accounts':
        return list_accounts_and_containers(build_dispatcher(credentials, 'Tag Manager'))

    gtm_discovery, analytics_discovery = initialize_services(credentials)
    if args.what == 'containers':
        for container in get_gtm_containers(gtm_discovery):
            print(f"{container['publicId']}\t{container['accountId']}/{container['containerId']}\t"
                  f"{container['accountName']} / {container['containerName']}")
    else:
        for prop in get_ga4_properties(analytics_discovery):
            print(f"{prop['id']}\t{prop['accountName']} / {prop['name']}")
    return 0


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Bulk-create GA4 tracking configuration in GTM and GA4')
    parser.add_argument('--credentials', type=str, help='Service account key file (default: credentials.json)')
    commands = parser.add_subparsers(dest='command', required=True)

    gtm = commands.add_parser('gtm', help='Create variables, triggers and tags for the events in a CSV')
    gtm.add_argument('--csv', required=True, help='CSV with "GA4 Event Name" and "Parameters" columns')
    gtm.add_argument('--container-public-id', help='Target container public ID (GTM-XXXX)')
    gtm.add_argument('--account-id', help='Target GTM account ID')
    gtm.add_argument('--container-id', help='Target GTM container ID')
    gtm.add_argument('--measurement-id', required=True, help='GA4 Measurement ID (G-XXXXXXXXXX)')
    gtm.add_argument('--report', help='Where to write the JSON report')

    ga4 = commands.add_parser('ga4', help='Create custom dimensions / metrics from a CSV')
    ga4.add_argument('--csv', required=True, help='Unified Key,Name,... sheet')
    ga4.add_argument('--properties', required=True, help='Comma-separated list of GA4 property IDs')
    ga4.add_argument('--kind', choices=['dimensions', 'metrics', 'both'], default='both')
    ga4.add_argument('--no-check-duplicates', action='store_true',
                     help='Try to create items even if the parameter name already exists')
    ga4.add_argument('--report', help='Where to write the JSON report')

    listing = commands.add_parser('list', help='List accessible GTM containers or GA4 properties')
    listing.add_argument('what', choices=['containers', 'properties', 'accounts'])

    return parser.parse_args(argv)


def main(argv=None):
    """Parse arguments, authenticate, and run the selected command."""
    args = parse_args(argv)
    commands = {'gtm': run_gtm, 'ga4': run_ga4, 'list': run_list}

    try:
        credentials = get_credentials(args.credentials)
        return commands[args.command](args, credentials)
    except (ApiError, ValidationError, OSError, ValueError) as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
