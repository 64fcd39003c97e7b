"""
Import OVA/ISO objects from a Cloud Storage bucket into a content library

Each object becomes one library item named after its base filename. Items that
already exist are skipped, so re-running against an unchanged bucket creates
nothing.
"""

import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Callable, List, Optional

import requests
from googleapiclient.errors import HttpError

from console import Colors, print_message
from content_library import ITEM_TYPES, ContentLibrary
from gcs_objects import GcsObjectStore, StorageObject
from gcve_errors import ConfigurationError, NoMatchingObjectsError, TransferError

# Errors that fail one object without stopping the batch
ITEM_ERRORS = (TransferError, HttpError, requests.RequestException, OSError)


@dataclass
class ContentSyncReport:
    created: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


def content_suffix(object_name: str) -> Optional[str]:
    """Lower-cased suffix if the object is an importable type, else None"""
    suffix = PurePosixPath(object_name).suffix.lower()
    return suffix if suffix in ITEM_TYPES else None


def item_name(object_name: str) -> str:
    """gs://bucket/images/vm1.ova -> vm1"""
    return PurePosixPath(object_name).stem


class ContentSync:
    """One pass of bucket -> content library synchronisation"""

    def __init__(
        self,
        store: GcsObjectStore,
        library: ContentLibrary,
        bucket: str,
        prefix: Optional[str] = None,
        stage_locally: bool = False,
        stage_dir: Optional[Path] = None,
        auto_grant: bool = False,
        leave_public: bool = False,
    ):
        self.store = store
        self.library = library
        self.bucket = bucket
        self.prefix = prefix
        self.stage_locally = stage_locally
        self.stage_dir = stage_dir
        self.auto_grant = auto_grant
        self.leave_public = leave_public

    def run(self) -> ContentSyncReport:
        bucket_info = self.store.get_bucket(self.bucket)

        if not self.stage_locally and self.store.is_uniform_access(bucket_info):
            raise ConfigurationError(
                f"Bucket {self.bucket} uses uniform bucket-level access, so objects "
                "cannot be made public individually. Use --stage-locally instead."
            )

        candidates = [
            obj for obj in self.store.list_objects(self.bucket, self.prefix)
            if content_suffix(obj.name)
        ]
        if not candidates:
            location = f"gs://{self.bucket}/{self.prefix or ''}"
            raise NoMatchingObjectsError(
                f"No {'/'.join(s.lstrip('.').upper() for s in ITEM_TYPES)} objects found in {location}"
            )

        print_message(Colors.BLUE, f"Found {len(candidates)} candidate object(s) in gs://{self.bucket}")

        existing = self.library.item_names()
        report = ContentSyncReport()

        for obj in candidates:
            name = item_name(obj.name)
            if name in existing:
                print_message(Colors.YELLOW, f"⊘ {name} already in library, skipping ({obj.name})")
                report.skipped.append(name)
                continue

            # Claim the name before importing so a second object with the same
            # base name in this run is skipped rather than duplicated
            existing.add(name)

            print_message(Colors.YELLOW, f"• Importing {obj.name} as {name} ({obj.size / (1024 * 1024):.1f} MB)")
            try:
                if self.stage_locally:
                    self._stage_and_upload(obj, name)
                else:
                    self._import_direct(obj, name)
            except ITEM_ERRORS as e:
                print_message(Colors.RED, f"✗ Failed to import {obj.name}: {e}")
                report.failed.append(name)
                continue

            print_message(Colors.GREEN, f"✓ Imported {name}")
            report.created.append(name)

        return report

    def _create_and_fill(self, obj: StorageObject, name: str, fill: Callable[[str], None]) -> None:
        """Create the item and fill it; remove the empty item if filling fails"""
        item_type = ITEM_TYPES[content_suffix(obj.name)]
        item_id = self.library.create_item(
            name, item_type, description=f"Imported from gs://{self.bucket}/{obj.name}"
        )
        try:
            fill(item_id)
        except ITEM_ERRORS:
            try:
                self.library.delete_item(item_id)
            except requests.RequestException as e:
                print_message(Colors.YELLOW, f"⚠ Could not remove incomplete item {name}: {e}")
            raise

    def _import_direct(self, obj: StorageObject, name: str) -> None:
        granted = False
        if not self.store.is_public(self.bucket, obj.name):
            if not self.auto_grant:
                raise TransferError(
                    f"{obj.name} is not publicly readable; use --auto-grant or --stage-locally"
                )
            print_message(Colors.BLUE, f"  Granting temporary public read on {obj.name}")
            self.store.grant_public_read(self.bucket, obj.name)
            granted = True

        url = self.store.public_url(self.bucket, obj.name)
        file_name = PurePosixPath(obj.name).name
        try:
            self._create_and_fill(
                obj, name, lambda item_id: self.library.import_from_url(item_id, file_name, url)
            )
        finally:
            if granted and not self.leave_public:
                print_message(Colors.BLUE, f"  Revoking public read on {obj.name}")
                try:
                    self.store.revoke_public_read(self.bucket, obj.name)
                except HttpError as e:
                    print_message(Colors.RED, f"✗ {obj.name} is still public, revoke failed: {e}")

    def _stage_and_upload(self, obj: StorageObject, name: str) -> None:
        if self.stage_dir:
            Path(self.stage_dir).mkdir(parents=True, exist_ok=True)
        work_dir = Path(tempfile.mkdtemp(prefix="gcve-content-", dir=self.stage_dir))
        try:
            local_path = work_dir / PurePosixPath(obj.name).name
            print_message(Colors.BLUE, f"  Downloading to {local_path}")
            self.store.download(self.bucket, obj.name, local_path)
            self._create_and_fill(
                obj, name, lambda item_id: self.library.upload_file(item_id, local_path)
            )
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)
