"""
Tests for bucket -> content library sync.
"""

from pathlib import Path

import pytest

from content_sync import ContentSync, content_suffix, item_name
from gcs_objects import StorageObject
from gcve_errors import ConfigurationError, NoMatchingObjectsError, NotFoundError, TransferError


class FakeStore:
    """In-memory stand-in for GcsObjectStore."""

    def __init__(self, objects, uniform=False, public=(), exists=True):
        self.objects = [StorageObject(name, 1024) for name in objects]
        self.uniform = uniform
        self.public = set(public)
        self.exists = exists
        self.granted = []
        self.revoked = []
        self.downloads = []

    def get_bucket(self, bucket):
        if not self.exists:
            raise NotFoundError(f"Bucket not found: {bucket}")
        return {"name": bucket}

    def is_uniform_access(self, bucket_info):
        return self.uniform

    def list_objects(self, bucket, prefix=None):
        return [o for o in self.objects if o.name.startswith(prefix or "")]

    def is_public(self, bucket, name):
        return name in self.public

    def grant_public_read(self, bucket, name):
        self.granted.append(name)
        self.public.add(name)

    def revoke_public_read(self, bucket, name):
        self.revoked.append(name)
        self.public.discard(name)

    @staticmethod
    def public_url(bucket, name):
        return f"https://storage.googleapis.com/{bucket}/{name}"

    def download(self, bucket, name, destination):
        self.downloads.append(Path(destination))
        Path(destination).write_bytes(b"ova-bytes")


class FakeLibrary:
    """In-memory stand-in for ContentLibrary."""

    def __init__(self, names=(), fail_names=()):
        self.items = {f"id-{n}": n for n in names}
        self.fail_names = set(fail_names)
        self.imported = []
        self.uploaded = []
        self.deleted = []

    def item_names(self):
        return set(self.items.values())

    def create_item(self, name, item_type, description=""):
        item_id = f"id-{name}"
        self.items[item_id] = name
        return item_id

    def delete_item(self, item_id):
        self.deleted.append(item_id)
        del self.items[item_id]

    def import_from_url(self, item_id, file_name, uri):
        if self.items[item_id] in self.fail_names:
            raise TransferError("pull failed")
        self.imported.append((self.items[item_id], uri))

    def upload_file(self, item_id, local_path):
        assert local_path.exists()
        if self.items[item_id] in self.fail_names:
            raise TransferError("upload failed")
        self.uploaded.append((self.items[item_id], local_path.name))


class TestNaming:
    """Tests for object name helpers."""

    def test_suffix_filter_is_case_insensitive(self):
        names = ["notes.txt", "image.OVA", "boot.iso", "archive.ova.gz", "noext"]
        assert [n for n in names if content_suffix(n)] == ["image.OVA", "boot.iso"]

    def test_item_name_strips_path_and_extension(self):
        assert item_name("images/linux/vm1.ova") == "vm1"
        assert item_name("boot.ISO") == "boot"


class TestContentSync:
    """Tests for ContentSync.run."""

    def test_only_ova_and_iso_imported(self):
        store = FakeStore(["notes.txt", "image.OVA", "boot.iso"], public={"image.OVA", "boot.iso"})
        library = FakeLibrary()

        report = ContentSync(store, library, "bucket").run()

        assert sorted(report.created) == ["boot", "image"]
        assert sorted(n for n, _ in library.imported) == ["boot", "image"]

    def test_existing_item_is_skipped(self):
        store = FakeStore(["vm1.ova"], public={"vm1.ova"})
        library = FakeLibrary(names=["vm1"])

        report = ContentSync(store, library, "bucket").run()

        assert report.skipped == ["vm1"]
        assert report.created == []
        assert library.imported == []

    def test_second_run_creates_nothing(self):
        store = FakeStore(["vm1.ova", "boot.iso"], public={"vm1.ova", "boot.iso"})
        library = FakeLibrary()
        ContentSync(store, library, "bucket").run()

        report = ContentSync(store, library, "bucket").run()

        assert report.created == []
        assert sorted(report.skipped) == ["boot", "vm1"]

    def test_same_base_name_in_two_prefixes_imported_once(self):
        store = FakeStore(["a/vm1.ova", "b/vm1.ova"], public={"a/vm1.ova", "b/vm1.ova"})
        library = FakeLibrary()

        report = ContentSync(store, library, "bucket").run()

        assert report.created == ["vm1"]
        assert report.skipped == ["vm1"]

    def test_missing_bucket_aborts(self):
        with pytest.raises(NotFoundError):
            ContentSync(FakeStore([], exists=False), FakeLibrary(), "bucket").run()

    def test_no_matching_objects_aborts(self):
        store = FakeStore(["notes.txt", "iso/readme.md"])
        with pytest.raises(NoMatchingObjectsError):
            ContentSync(store, FakeLibrary(), "bucket").run()

    def test_prefix_is_applied(self):
        store = FakeStore(["keep/vm1.ova", "other/vm2.ova"], public={"keep/vm1.ova", "other/vm2.ova"})
        library = FakeLibrary()

        report = ContentSync(store, library, "bucket", prefix="keep/").run()

        assert report.created == ["vm1"]

    def test_uniform_bucket_rejects_direct_strategy(self):
        store = FakeStore(["vm1.ova"], uniform=True)
        library = FakeLibrary()

        with pytest.raises(ConfigurationError):
            ContentSync(store, library, "bucket", auto_grant=True).run()

        assert library.items == {}

    def test_uniform_bucket_allowed_when_staging(self, tmp_path):
        store = FakeStore(["vm1.ova"], uniform=True)
        library = FakeLibrary()

        report = ContentSync(store, library, "bucket", stage_locally=True, stage_dir=tmp_path).run()

        assert report.created == ["vm1"]

    def test_private_object_without_auto_grant_fails_softly(self):
        store = FakeStore(["private.ova", "public.iso"], public={"public.iso"})
        library = FakeLibrary()

        report = ContentSync(store, library, "bucket").run()

        assert report.failed == ["private"]
        assert report.created == ["public"]
        assert "private" not in library.item_names()
        assert store.granted == []

    def test_auto_grant_is_revoked_after_import(self):
        store = FakeStore(["vm1.ova"])
        library = FakeLibrary()

        report = ContentSync(store, library, "bucket", auto_grant=True).run()

        assert report.created == ["vm1"]
        assert store.granted == ["vm1.ova"]
        assert store.revoked == ["vm1.ova"]
        assert library.imported == [("vm1", "https://storage.googleapis.com/bucket/vm1.ova")]

    def test_leave_public_keeps_grant(self):
        store = FakeStore(["vm1.ova"])

        ContentSync(store, FakeLibrary(), "bucket", auto_grant=True, leave_public=True).run()

        assert store.granted == ["vm1.ova"]
        assert store.revoked == []

    def test_already_public_object_is_not_revoked(self):
        store = FakeStore(["vm1.ova"], public={"vm1.ova"})

        ContentSync(store, FakeLibrary(), "bucket", auto_grant=True).run()

        assert store.granted == []
        assert store.revoked == []

    def test_grant_revoked_even_when_import_fails(self):
        store = FakeStore(["vm1.ova"])
        library = FakeLibrary(fail_names={"vm1"})

        report = ContentSync(store, library, "bucket", auto_grant=True).run()

        assert report.failed == ["vm1"]
        assert store.revoked == ["vm1.ova"]
        assert library.deleted == ["id-vm1"]
        assert library.items == {}

    def test_one_failure_does_not_stop_batch(self):
        store = FakeStore(["bad.ova", "good.ova"], public={"bad.ova", "good.ova"})
        library = FakeLibrary(fail_names={"bad"})

        report = ContentSync(store, library, "bucket").run()

        assert report.failed == ["bad"]
        assert report.created == ["good"]

    def test_stage_locally_uploads_and_cleans_up(self, tmp_path):
        store = FakeStore(["images/vm1.ova"])
        library = FakeLibrary()

        report = ContentSync(store, library, "bucket", stage_locally=True, stage_dir=tmp_path).run()

        assert report.created == ["vm1"]
        assert library.uploaded == [("vm1", "vm1.ova")]
        assert store.granted == []
        assert not store.downloads[0].exists()
        assert list(tmp_path.iterdir()) == []

    def test_stage_directory_removed_when_upload_fails(self, tmp_path):
        store = FakeStore(["vm1.ova"])
        library = FakeLibrary(fail_names={"vm1"})

        report = ContentSync(store, library, "bucket", stage_locally=True, stage_dir=tmp_path).run()

        assert report.failed == ["vm1"]
        assert list(tmp_path.iterdir()) == []
        assert library.deleted == ["id-vm1"]
