"""
Cloud Storage access for content sync (JSON API via google-api-python-client)
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterator, Optional
from urllib.parse import quote

import google.auth
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload

from gcve_errors import NotFoundError

STORAGE_SCOPE = "https://www.googleapis.com/auth/devstorage.full_control"
PUBLIC_URL_BASE = "https://storage.googleapis.com"
ALL_USERS = "allUsers"

# 64MB download chunks; OVAs are large
DOWNLOAD_CHUNK_SIZE = 64 * 1024 * 1024


@dataclass(frozen=True)
class StorageObject:
    name: str
    size: int


def http_status(error: HttpError) -> int:
    """Status code of an HttpError across client library versions"""
    return int(getattr(error.resp, "status", 0) or 0)


class GcsObjectStore:
    """Object storage capability used by content_sync"""

    def __init__(self, service: Any):
        self.service = service

    @classmethod
    def from_default_credentials(cls) -> "GcsObjectStore":
        """Build a client with Application Default Credentials"""
        credentials, _ = google.auth.default(scopes=[STORAGE_SCOPE])
        return cls(build("storage", "v1", credentials=credentials, cache_discovery=False))

    def get_bucket(self, bucket: str) -> Dict[str, Any]:
        try:
            return self.service.buckets().get(bucket=bucket).execute()
        except HttpError as e:
            if http_status(e) == 404:
                raise NotFoundError(f"Bucket not found: {bucket}") from e
            raise

    @staticmethod
    def is_uniform_access(bucket_info: Dict[str, Any]) -> bool:
        """True when per-object ACLs are disabled on the bucket"""
        iam = bucket_info.get("iamConfiguration", {})
        return bool(iam.get("uniformBucketLevelAccess", {}).get("enabled", False))

    def list_objects(self, bucket: str, prefix: Optional[str] = None) -> Iterator[StorageObject]:
        objects = self.service.objects()
        params = {"bucket": bucket, "fields": "items(name,size),nextPageToken"}
        if prefix:
            params["prefix"] = prefix
        request = objects.list(**params)
        while request is not None:
            response = request.execute()
            for item in response.get("items", []):
                yield StorageObject(name=item["name"], size=int(item.get("size", 0)))
            request = objects.list_next(request, response)

    def is_public(self, bucket: str, name: str) -> bool:
        try:
            acl = self.service.objectAccessControls().get(
                bucket=bucket, object=name, entity=ALL_USERS
            ).execute()
        except HttpError as e:
            if http_status(e) == 404:
                return False
            raise
        return acl.get("role") in ("READER", "OWNER")

    def grant_public_read(self, bucket: str, name: str) -> None:
        self.service.objectAccessControls().insert(
            bucket=bucket, object=name, body={"entity": ALL_USERS, "role": "READER"}
        ).execute()

    def revoke_public_read(self, bucket: str, name: str) -> None:
        self.service.objectAccessControls().delete(
            bucket=bucket, object=name, entity=ALL_USERS
        ).execute()

    @staticmethod
    def public_url(bucket: str, name: str) -> str:
        return f"{PUBLIC_URL_BASE}/{bucket}/{quote(name)}"

    def download(self, bucket: str, name: str, destination: Path) -> None:
        request = self.service.objects().get_media(bucket=bucket, object=name)
        with open(destination, "wb") as fh:
            downloader = MediaIoBaseDownload(fh, request, chunksize=DOWNLOAD_CHUNK_SIZE)
            done = False
            while not done:
                _, done = downloader.next_chunk()
