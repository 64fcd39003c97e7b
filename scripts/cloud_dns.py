"""
Cloud DNS access for dns_sync (google-api-python-client, dns v1)
"""

from typing import Any, Dict, List, Optional

import google.auth
from googleapiclient.discovery import build

from dns_records import DnsRecord, ExistingRecordSet, RecordChanges, record_from_api
from gcve_errors import ConfigurationError, NotFoundError

DNS_SCOPE = "https://www.googleapis.com/auth/ndev.clouddns.readwrite"


class CloudDnsZones:
    """Managed DNS zone capability for one project"""

    def __init__(self, service: Any, project: str):
        self.service = service
        self.project = project

    @classmethod
    def from_default_credentials(cls, project: Optional[str] = None) -> "CloudDnsZones":
        """Build a client with Application Default Credentials"""
        credentials, default_project = google.auth.default(scopes=[DNS_SCOPE])
        project = project or default_project
        if not project:
            raise ConfigurationError(
                "No GCP project configured. Set gcp.project in the config or pass --project"
            )
        return cls(build("dns", "v1", credentials=credentials, cache_discovery=False), project)

    def find_zone(self, dns_name: str) -> Dict[str, Any]:
        """Managed zone whose DNS name is exactly dns_name (with trailing dot)"""
        zones = self.service.managedZones()
        request = zones.list(project=self.project, dnsName=dns_name)
        while request is not None:
            response = request.execute()
            for zone in response.get("managedZones", []):
                if zone.get("dnsName", "").lower() == dns_name.lower():
                    return zone
            request = zones.list_next(request, response)
        raise NotFoundError(f"No managed zone found for {dns_name} in project {self.project}")

    def list_record_sets(self, zone_name: str, record_type: str) -> List[ExistingRecordSet]:
        # The API only filters by type together with a name, so filter here
        record_sets = self.service.resourceRecordSets()
        request = record_sets.list(project=self.project, managedZone=zone_name)
        found = []
        while request is not None:
            response = request.execute()
            for rrset in response.get("rrsets", []):
                if rrset.get("type") != record_type:
                    continue
                rrdatas = tuple(rrset.get("rrdatas", []))
                record = record_from_api(rrset["name"], record_type, rrdatas)
                found.append(ExistingRecordSet(record=record, ttl=int(rrset.get("ttl", 0)), rrdatas=rrdatas))
            request = record_sets.list_next(request, response)
        return found

    def apply_changes(self, zone_name: str, changes: RecordChanges, ttl: int) -> Dict[str, Any]:
        """Submit additions and deletions as one atomic change"""
        body = {
            "additions": [_addition(record, ttl) for record in changes.additions],
            "deletions": [
                {
                    "name": existing.name,
                    "type": existing.record.record_type,
                    "ttl": existing.ttl,
                    "rrdatas": list(existing.rrdatas),
                }
                for existing in changes.deletions
            ],
        }
        return self.service.changes().create(
            project=self.project, managedZone=zone_name, body=body
        ).execute()


def _addition(record: DnsRecord, ttl: int) -> Dict[str, Any]:
    return {
        "name": record.name,
        "type": record.record_type,
        "ttl": ttl,
        "rrdatas": record.rrdatas,
    }
