#!/usr/bin/env python3
"""
List VMs with guest hostname and IPv4

Shows what sync_dns_records.py will see: every VM in vCenter with its power
state, the hostname and address VMware Tools reports, and whether that is
enough to build DNS records.
"""

import argparse
import sys
from pathlib import Path

# Add scripts directory to path for sibling imports
sys.path.insert(0, str(Path(__file__).parent))

# pylint: disable=wrong-import-position
from console import Colors, print_message
from dns_records import is_ipv4
from gcve_connect import connect_vcenter
from gcve_errors import GcveError
from gcve_secrets import DEFAULT_CONFIG, SecretsManager, load_config
from vm_inventory import list_vm_guests


def main():
    parser = argparse.ArgumentParser(description="List VMs with guest hostname and IPv4")
    parser.add_argument('--config', type=Path, help=f'Path to config file (default: {DEFAULT_CONFIG})')
    parser.add_argument('--all', action='store_true', help='Include powered-off VMs')
    args = parser.parse_args()

    project_dir = Path(__file__).resolve().parent.parent
    config_file = args.config if args.config else project_dir / DEFAULT_CONFIG

    print("VM Guest Inventory")
    print("=" * 80)

    try:
        config = load_config(config_file, ["vcenter"])
    except GcveError as e:
        print(f"✗ Failed to load configuration: {e}")
        return 1

    result = connect_vcenter(config["vcenter"], SecretsManager(project_dir))
    if not result.ok:
        print(f"✗ Failed to connect to vCenter: {result.error}")
        return 1

    with result.handle as conn:
        guests = list_vm_guests(conn.si, powered_on_only=not args.all)

    print(f"{'VM':<30} {'Power':<12} {'Guest hostname':<25} {'IPv4':<16}")
    print("-" * 80)

    eligible = 0
    for guest in guests:
        usable = bool(guest.hostname) and is_ipv4(guest.ip_address)
        eligible += usable
        line = (
            f"{guest.name:<30} {guest.power_state:<12} "
            f"{guest.hostname or '-':<25} {guest.ip_address or '-':<16}"
        )
        print_message(Colors.GREEN if usable else Colors.YELLOW, line)

    if not guests:
        print("  (No VMs found)")

    print("-" * 80)
    print(f"\nTotal VMs: {len(guests)}")
    print(f"  Usable for DNS sync: {eligible}")
    print(f"  Missing guest data:  {len(guests) - eligible}")

    return 0


if __name__ == '__main__':
    sys.exit(main())
