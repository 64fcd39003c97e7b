"""
Keep Cloud DNS forward (A) and reverse (PTR) records in line with VM inventory
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple

from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

from cloud_dns import CloudDnsZones
from console import Colors, print_message
from dns_records import (
    ForwardRecord,
    RecordChanges,
    ReverseRecord,
    diff_records,
    is_ipv4,
    normalize_domain,
    reverse_name,
    short_hostname,
)
from vm_inventory import VmGuest

DEFAULT_TTL = 301

# Errors that fail one zone's change without touching the other zone
APPLY_ERRORS = (HttpError, GoogleAuthError, OSError)

# ZoneChange.status values
DRY_RUN = "dry-run"
NO_CHANGES = "no-changes"
APPLIED = "applied"
FAILED = "failed"


@dataclass
class ZoneChange:
    zone_name: str
    dns_name: str
    changes: RecordChanges
    status: str = NO_CHANGES
    change_id: Optional[str] = None
    error: Optional[str] = None


@dataclass
class DnsSyncReport:
    forward: ZoneChange
    reverse: ZoneChange
    dropped: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return FAILED not in (self.forward.status, self.reverse.status)


def build_desired_records(
    guests: Iterable[VmGuest], forward_domain: str, reverse_domain: str
) -> Tuple[List[ForwardRecord], List[ReverseRecord], List[str]]:
    """
    A and PTR records for every usable guest, plus the names of dropped VMs.

    A guest is dropped when it has no hostname or dotted IPv4 address, when its
    hostname or address was already claimed by an earlier guest, or when its
    address falls outside the reverse zone.
    """
    forward_domain = normalize_domain(forward_domain)
    reverse_domain = normalize_domain(reverse_domain)

    forward, reverse, dropped = [], [], []
    seen_names, seen_addresses = set(), set()

    for guest in guests:
        if not guest.hostname or not is_ipv4(guest.ip_address):
            print_message(
                Colors.YELLOW,
                f"⚠ {guest.name}: no usable guest hostname/IPv4 "
                f"(hostname={guest.hostname!r}, ip={guest.ip_address!r}), skipping",
            )
            dropped.append(guest.name)
            continue

        fqdn = f"{short_hostname(guest.hostname)}.{forward_domain}"
        ptr_name = reverse_name(guest.ip_address)

        if fqdn in seen_names or guest.ip_address in seen_addresses:
            print_message(
                Colors.YELLOW,
                f"⚠ {guest.name}: {fqdn} / {guest.ip_address} already claimed by another VM, skipping",
            )
            dropped.append(guest.name)
            continue

        if not ptr_name.endswith(f".{reverse_domain}"):
            print_message(
                Colors.YELLOW,
                f"⚠ {guest.name}: {guest.ip_address} is outside reverse zone {reverse_domain}, skipping",
            )
            dropped.append(guest.name)
            continue

        seen_names.add(fqdn)
        seen_addresses.add(guest.ip_address)
        forward.append(ForwardRecord(fqdn, guest.ip_address))
        reverse.append(ReverseRecord(ptr_name, fqdn))

    return forward, reverse, dropped


class DnsSync:
    """Reconcile one forward and one reverse zone against a VM list"""

    def __init__(
        self,
        zones: CloudDnsZones,
        forward_domain: str,
        reverse_domain: str,
        ttl: int = DEFAULT_TTL,
        dry_run: bool = False,
        purge_only: bool = False,
        show_details: bool = False,
    ):
        self.zones = zones
        self.forward_domain = normalize_domain(forward_domain)
        self.reverse_domain = normalize_domain(reverse_domain)
        self.ttl = ttl
        self.dry_run = dry_run
        self.purge_only = purge_only
        self.show_details = show_details

    def run(self, guests: Iterable[VmGuest]) -> DnsSyncReport:
        # Both zones must exist before anything is computed or applied
        forward_zone = self.zones.find_zone(self.forward_domain)
        reverse_zone = self.zones.find_zone(self.reverse_domain)

        forward, reverse, dropped = build_desired_records(
            guests, self.forward_domain, self.reverse_domain
        )
        print_message(
            Colors.BLUE,
            f"{len(forward)} VM(s) with usable guest data, {len(dropped)} skipped",
        )

        forward_change = self._reconcile(forward_zone, ForwardRecord.record_type, forward)
        reverse_change = self._reconcile(reverse_zone, ReverseRecord.record_type, reverse)

        return DnsSyncReport(forward=forward_change, reverse=reverse_change, dropped=dropped)

    def _reconcile(self, zone, record_type: str, desired) -> ZoneChange:
        existing = self.zones.list_record_sets(zone["name"], record_type)
        changes = diff_records(desired, existing, self.ttl, purge_only=self.purge_only)
        result = ZoneChange(zone_name=zone["name"], dns_name=zone["dnsName"], changes=changes)

        print_message(
            Colors.BLUE,
            f"{zone['dnsName']} ({record_type}): {len(changes.deletions)} to remove, "
            f"{len(changes.additions)} to add",
        )
        if self.show_details:
            for existing_set in changes.deletions:
                print(f"    - {existing_set.name} {record_type} {' '.join(existing_set.rrdatas)}")
            for record in changes.additions:
                print(f"    + {record.name} {record_type} {' '.join(record.rrdatas)}")

        if changes.empty:
            return result

        if self.dry_run:
            result.status = DRY_RUN
            return result

        try:
            response = self.zones.apply_changes(zone["name"], changes, self.ttl)
        except APPLY_ERRORS as e:
            result.status = FAILED
            result.error = str(e)
            print_message(Colors.RED, f"✗ Failed to update {zone['dnsName']}: {e}")
            return result

        result.status = APPLIED
        result.change_id = response.get("id")
        print_message(Colors.GREEN, f"✓ Submitted change {result.change_id} to {zone['dnsName']}")
        return result
