"""
DNS record model and the desired-vs-existing diff used by dns_sync

Records are a closed set of two variants. ForwardRecord maps a hostname to an
IPv4 address (A); ReverseRecord maps an in-addr.arpa name to a hostname (PTR).
"""

import ipaddress
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Tuple, Union

REVERSE_SUFFIX = ".in-addr.arpa."


@dataclass(frozen=True)
class ForwardRecord:
    name: str
    address: str

    record_type = "A"

    @property
    def rrdatas(self) -> List[str]:
        return [self.address]


@dataclass(frozen=True)
class ReverseRecord:
    name: str
    target: str

    record_type = "PTR"

    @property
    def rrdatas(self) -> List[str]:
        return [self.target]


DnsRecord = Union[ForwardRecord, ReverseRecord]


@dataclass(frozen=True)
class ExistingRecordSet:
    """A record set as the zone holds it; ttl and rrdatas identify it for deletion"""

    record: DnsRecord
    ttl: int
    rrdatas: Tuple[str, ...]

    @property
    def name(self) -> str:
        return self.record.name


@dataclass
class RecordChanges:
    additions: List[DnsRecord] = field(default_factory=list)
    deletions: List[ExistingRecordSet] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.additions and not self.deletions


def normalize_domain(domain: str) -> str:
    """Multicloud.Internal -> multicloud.internal."""
    domain = domain.strip().lower()
    return domain if domain.endswith(".") else f"{domain}."


def reverse_name(ip_address: str) -> str:
    """10.88.10.55 -> 55.10.88.10.in-addr.arpa."""
    return ".".join(reversed(ip_address.split("."))) + REVERSE_SUFFIX


def is_ipv4(value: Optional[str]) -> bool:
    """Dotted-quad IPv4 check"""
    if not value:
        return False
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        return False
    return True


def short_hostname(hostname: str) -> str:
    """WEB1.corp.example.com -> web1"""
    return hostname.strip().rstrip(".").split(".")[0].lower()


def record_from_api(name: str, record_type: str, rrdatas: Iterable[str]) -> Optional[DnsRecord]:
    """Build the typed variant for an API record set; None for other types"""
    first = next(iter(rrdatas), "")
    if record_type == ForwardRecord.record_type:
        return ForwardRecord(name, first)
    if record_type == ReverseRecord.record_type:
        return ReverseRecord(name, first)
    return None


def diff_records(
    desired: Iterable[DnsRecord],
    existing: Iterable[ExistingRecordSet],
    ttl: int,
    purge_only: bool = False,
) -> RecordChanges:
    """
    Work out the change that makes a zone hold the desired records.

    Existing record sets are never patched: a set whose name is desired but
    whose data or ttl differs is deleted and the desired record added. A set
    that already matches is left alone. With purge_only every existing set
    whose name is desired is deleted, matching or not, and nothing is added.
    Names and data compare case-insensitively.
    """
    desired_by_name: Dict[str, DnsRecord] = {}
    for record in desired:
        desired_by_name.setdefault(record.name.lower(), record)

    changes = RecordChanges()
    unchanged = set()
    for current in existing:
        key = current.name.lower()
        wanted = desired_by_name.get(key)
        if wanted is None:
            continue
        in_sync = (
            type(current.record) is type(wanted)
            and current.ttl == ttl
            and [d.lower() for d in current.rrdatas] == [d.lower() for d in wanted.rrdatas]
        )
        if in_sync and not purge_only:
            unchanged.add(key)
            continue
        changes.deletions.append(current)

    if not purge_only:
        changes.additions = [
            record for name, record in desired_by_name.items() if name not in unchanged
        ]

    return changes
