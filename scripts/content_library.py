"""
vCenter content library client (vSphere Automation REST API, /api endpoints)

Items are created empty, then filled through an update session, either by
pushing a local file or by letting vCenter pull from a URL.
"""

import time
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Set

import requests

from gcve_errors import NotFoundError, TransferError

ITEM_TYPES = {".ova": "ovf", ".iso": "iso"}

# File states reported while an update session receives data
FILE_DONE_STATES = {"READY"}
FILE_FAILED_STATES = {"ERROR"}
SESSION_DONE_STATES = {"DONE"}
SESSION_FAILED_STATES = {"ERROR", "CANCELED"}


class ContentLibrary:
    """Content catalog capability for one library"""

    def __init__(
        self,
        session: requests.Session,
        base_url: str,
        library_id: str,
        poll_interval: float = 10,
        transfer_timeout: float = 4 * 3600,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.session = session
        self.base_url = base_url.rstrip("/")
        self.library_id = library_id
        self.poll_interval = poll_interval
        self.transfer_timeout = transfer_timeout
        self._sleep = sleep

    @classmethod
    def find(cls, session: requests.Session, base_url: str, name: str, **kwargs) -> "ContentLibrary":
        """Look a library up by its display name"""
        response = session.post(
            f"{base_url.rstrip('/')}/api/content/library",
            params={"action": "find"},
            json={"name": name},
            timeout=60,
        )
        response.raise_for_status()
        ids = response.json()
        if not ids:
            raise NotFoundError(f"Content library not found: {name}")
        return cls(session, base_url, ids[0], **kwargs)

    def _url(self, path: str) -> str:
        return f"{self.base_url}/api/content/library/item{path}"

    def _get(self, path: str, **params) -> Any:
        response = self.session.get(self._url(path), params=params or None, timeout=60)
        response.raise_for_status()
        return response.json()

    def _post(self, path: str, body: Optional[Dict] = None, **params) -> Any:
        response = self.session.post(self._url(path), params=params or None, json=body, timeout=60)
        response.raise_for_status()
        return response.json() if response.content else None

    def item_names(self) -> Set[str]:
        names = set()
        for item_id in self._get("", library_id=self.library_id):
            names.add(self._get(f"/{item_id}")["name"])
        return names

    def create_item(self, name: str, item_type: str, description: str = "") -> str:
        return self._post("", {
            "library_id": self.library_id,
            "name": name,
            "type": item_type,
            "description": description,
        })

    def delete_item(self, item_id: str) -> None:
        response = self.session.delete(self._url(f"/{item_id}"), timeout=60)
        response.raise_for_status()

    def upload_file(self, item_id: str, local_path: Path) -> None:
        """Push a local file into an item"""
        size = local_path.stat().st_size
        session_id = self._post("/update-session", {"library_item_id": item_id})
        try:
            info = self._post(f"/update-session/{session_id}/file", {
                "name": local_path.name,
                "source_type": "PUSH",
                "size": size,
            })
            upload_uri = (info or {}).get("upload_endpoint", {}).get("uri")
            if not upload_uri:
                raise TransferError(f"No upload endpoint returned for {local_path.name}")
            with open(local_path, "rb") as f:
                response = self.session.put(
                    upload_uri,
                    data=f,
                    headers={"Content-Type": "application/octet-stream", "Content-Length": str(size)},
                    timeout=None,
                )
            response.raise_for_status()
            self._finish(session_id, local_path.name)
        except (requests.RequestException, TransferError, OSError):
            self._fail(session_id)
            raise

    def import_from_url(self, item_id: str, file_name: str, uri: str) -> None:
        """Have vCenter pull a file into an item from a URL"""
        session_id = self._post("/update-session", {"library_item_id": item_id})
        try:
            self._post(f"/update-session/{session_id}/file", {
                "name": file_name,
                "source_type": "PULL",
                "source_endpoint": {"uri": uri},
            })
            self._finish(session_id, file_name)
        except (requests.RequestException, TransferError):
            self._fail(session_id)
            raise

    def _finish(self, session_id: str, file_name: str) -> None:
        self._wait(
            lambda: self._get(f"/update-session/{session_id}/file/{file_name}").get("status"),
            FILE_DONE_STATES, FILE_FAILED_STATES, f"file {file_name}",
        )
        self._post(f"/update-session/{session_id}", action="complete")
        self._wait(
            lambda: self._get(f"/update-session/{session_id}").get("state"),
            SESSION_DONE_STATES, SESSION_FAILED_STATES, f"update session {session_id}",
        )

    def _fail(self, session_id: str) -> None:
        try:
            self._post(f"/update-session/{session_id}", action="cancel")
        except requests.RequestException:
            pass  # Session may already be gone

    def _wait(self, state_fn: Callable[[], str], done: Set[str], failed: Set[str], what: str) -> None:
        elapsed = 0.0
        while elapsed <= self.transfer_timeout:
            state = state_fn()
            if state in done:
                return
            if state in failed:
                raise TransferError(f"Transfer of {what} ended in state {state}")
            self._sleep(self.poll_interval)
            elapsed += self.poll_interval
        raise TransferError(f"Timed out waiting for {what}")
