#!/usr/bin/env python3
"""
DNS Record Sync
Purpose: Create Cloud DNS A and PTR records for every powered-on VM using the
hostname and IPv4 address reported by VMware Tools

Usage:
    python scripts/sync_dns_records.py [--forward-domain DOMAIN] [--reverse-domain DOMAIN]
                                       [--ttl SECONDS] [--dry-run] [--purge-only] [--show-details]

    --dry-run:      Show what would change without submitting anything
    --purge-only:   Remove the records that would be replaced, add nothing
    --show-details: Print every record added or removed
"""

import argparse
import sys
from pathlib import Path
from typing import Any, Dict

import requests
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

# Add scripts directory to path for sibling imports
sys.path.insert(0, str(Path(__file__).parent))

# pylint: disable=wrong-import-position
from cloud_dns import CloudDnsZones
from console import Colors, print_message, set_log_file
from dns_sync import APPLIED, DEFAULT_TTL, DRY_RUN, FAILED, DnsSync, ZoneChange
from gcve_connect import connect_vcenter
from gcve_errors import ConfigurationError, GcveError
from gcve_secrets import DEFAULT_CONFIG, SecretsManager, load_config
from vm_inventory import list_vm_guests

# Errors that end a run with an ERROR line instead of a traceback
RUN_ERRORS = (GcveError, HttpError, GoogleAuthError, requests.RequestException)


def resolve_options(args: argparse.Namespace, config: Dict[str, Any]) -> Dict[str, Any]:
    """Command line flags win over the dns_sync and gcp config sections"""
    section = config.get("dns_sync") or {}

    def pick(name: str, default=None):
        value = getattr(args, name, None)
        return value if value is not None else section.get(name, default)

    options = {
        "forward_domain": pick("forward_domain"),
        "reverse_domain": pick("reverse_domain"),
        "ttl": int(pick("ttl", DEFAULT_TTL)),
        "project": args.project or (config.get("gcp") or {}).get("project"),
    }

    missing = [name for name in ("forward_domain", "reverse_domain") if not options[name]]
    if missing:
        raise ConfigurationError(
            "Missing required option(s): "
            + ", ".join(f"--{name.replace('_', '-')} (or dns_sync.{name})" for name in missing)
        )
    if options["ttl"] <= 0:
        raise ConfigurationError(f"TTL must be positive, got {options['ttl']}")

    return options


def describe(change: ZoneChange) -> str:
    adds = len(change.changes.additions)
    removes = len(change.changes.deletions)
    if change.status == APPLIED:
        return f"applied (change {change.change_id}): +{adds} / -{removes}"
    if change.status == DRY_RUN:
        return f"dry-run, would apply: +{adds} / -{removes}"
    if change.status == FAILED:
        return f"FAILED: {change.error}"
    return "already in sync"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Sync Cloud DNS A/PTR records with vCenter VM guest data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--config", type=Path, help=f"Path to YAML config file (default: {DEFAULT_CONFIG})")
    parser.add_argument("-f", "--forward-domain", help="Forward zone DNS name, e.g. gcve.example.com")
    parser.add_argument("-r", "--reverse-domain", help="Reverse zone DNS name, e.g. 10.in-addr.arpa")
    parser.add_argument("--ttl", type=int, help=f"Record TTL in seconds (default: {DEFAULT_TTL})")
    parser.add_argument("--project", help="GCP project holding the zones (default: gcp.project or ADC project)")
    parser.add_argument("--dry-run", action="store_true", help="Show what would be done without making changes")
    parser.add_argument("--purge-only", action="store_true", help="Only remove records for inventory names")
    parser.add_argument("--show-details", action="store_true", help="Print every record added or removed")
    parser.add_argument("--retries", type=int, default=3, help="vCenter connection attempts (default: 3)")
    parser.add_argument("--log-file", type=Path, help="Also append output to this file")
    return parser


def main() -> int:
    args = build_parser().parse_args()
    set_log_file(args.log_file)

    script_dir = Path(__file__).resolve().parent
    project_dir = script_dir.parent
    config_file = args.config if args.config else project_dir / DEFAULT_CONFIG

    print_message(Colors.GREEN, "=" * 80)
    print_message(Colors.GREEN, "DNS Record Sync")
    print_message(Colors.GREEN, "=" * 80 + "\n")

    if args.dry_run:
        print_message(Colors.YELLOW, "🔍 DRY-RUN MODE: No changes will be made\n")
    if args.purge_only:
        print_message(Colors.YELLOW, "PURGE-ONLY MODE: Records will be removed, none added\n")

    try:
        config = load_config(config_file, ["vcenter"])
        options = resolve_options(args, config)
        zones = CloudDnsZones.from_default_credentials(options["project"])

        result = connect_vcenter(config["vcenter"], SecretsManager(project_dir), attempts=args.retries)
        if not result.ok:
            print_message(Colors.RED, f"ERROR: Could not connect to vCenter: {result.error}")
            return 1

        with result.handle as conn:
            guests = list_vm_guests(conn.si)

        sync = DnsSync(
            zones=zones,
            forward_domain=options["forward_domain"],
            reverse_domain=options["reverse_domain"],
            ttl=options["ttl"],
            dry_run=args.dry_run,
            purge_only=args.purge_only,
            show_details=args.show_details,
        )
        report = sync.run(guests)

    except RUN_ERRORS as e:
        print_message(Colors.RED, f"ERROR: {e}")
        return 1

    print()
    print_message(Colors.GREEN, "=" * 80)
    print_message(Colors.GREEN, "SUMMARY")
    print_message(Colors.GREEN, "=" * 80)
    print(f"  VMs skipped:  {len(report.dropped)}")
    print(f"  Forward zone {report.forward.dns_name}: {describe(report.forward)}")
    print(f"  Reverse zone {report.reverse.dns_name}: {describe(report.reverse)}")

    if not report.ok:
        print_message(Colors.RED, "\n⚠ One or more zones failed to update")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
