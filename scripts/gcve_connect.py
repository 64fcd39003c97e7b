#!/usr/bin/env python3
"""
vCenter connection handling for the GCVE scripts

A VCenterConnection is created and closed by the caller and passed to whatever
needs it. It carries two channels to the same vCenter: a pyVmomi service
instance for inventory and an authenticated requests session for the vSphere
Automation REST API (content library).
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import requests
import urllib3
from pyVim.connect import Disconnect, SmartConnect
from pyVmomi import vim

from console import Colors, print_message
from gcve_secrets import SecretsManager


class VCenterConnection:
    """Open/close pair of SOAP and REST sessions to one vCenter"""

    def __init__(self, hostname: str, username: str, password: str, verify_ssl: bool = False):
        self.hostname = hostname
        self.username = username
        self.password = password
        self.verify_ssl = verify_ssl

        self.si: Optional[vim.ServiceInstance] = None
        self.session: Optional[requests.Session] = None

    @property
    def base_url(self) -> str:
        return f"https://{self.hostname}"

    @property
    def is_open(self) -> bool:
        return self.si is not None and self.session is not None

    def open(self) -> "VCenterConnection":
        """Log in to vCenter (SOAP first, then REST)"""
        if not self.verify_ssl:
            urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

        self.si = SmartConnect(
            host=self.hostname,
            user=self.username,
            pwd=self.password,
            disableSslCertValidation=not self.verify_ssl,
        )

        session = requests.Session()
        session.verify = self.verify_ssl
        try:
            response = session.post(
                f"{self.base_url}/api/session",
                auth=(self.username, self.password),
                timeout=30,
            )
            response.raise_for_status()
        except requests.RequestException:
            session.close()
            self._disconnect_soap()
            raise

        session.headers["vmware-api-session-id"] = response.json()
        self.session = session
        return self

    def close(self) -> None:
        """Log out of both sessions; safe to call more than once"""
        if self.session is not None:
            try:
                self.session.delete(f"{self.base_url}/api/session", timeout=30)
            except requests.RequestException as e:
                print_message(Colors.YELLOW, f"⚠ REST logout failed: {e}")
            finally:
                self.session.close()
                self.session = None
        self._disconnect_soap()

    def _disconnect_soap(self) -> None:
        if self.si is not None:
            Disconnect(self.si)
            self.si = None

    def __enter__(self) -> "VCenterConnection":
        if not self.is_open:
            self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


@dataclass
class ConnectResult:
    """Outcome of connect_with_retry: a handle or the last failure reason"""

    handle: Any = None
    error: Optional[str] = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.handle is not None


def connect_with_retry(
    open_fn: Callable[[], Any],
    attempts: int = 3,
    delay: float = 5,
    on_retry: Optional[Callable[[int, Exception], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ConnectResult:
    """
    Call open_fn up to `attempts` times.

    on_retry(attempt, error) runs between attempts, e.g. to prompt for a new
    password. Never raises for connection failures; the reason is returned.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    last_error: Optional[Exception] = None
    for attempt in range(1, attempts + 1):
        try:
            handle = open_fn()
            return ConnectResult(handle=handle, attempts=attempt)
        except (vim.fault.VimFault, requests.RequestException, OSError) as e:
            last_error = e
            print_message(Colors.RED, f"✗ Connection attempt {attempt}/{attempts} failed: {e}")

        if attempt < attempts:
            if on_retry:
                on_retry(attempt, last_error)
            sleep(delay)

    return ConnectResult(error=str(last_error), attempts=attempts)


def connect_vcenter(
    vcenter_config: Dict[str, Any],
    secrets_mgr: SecretsManager,
    attempts: int = 3,
    delay: float = 5,
) -> ConnectResult:
    """
    Open a VCenterConnection from the 'vcenter' config section.

    The password comes from the secrets manager; after a failed attempt the
    user is prompted for it again.
    """
    password = {"value": secrets_mgr.get_vcenter_password(vcenter_config.get("password"))}

    def open_fn() -> VCenterConnection:
        return VCenterConnection(
            hostname=vcenter_config["hostname"],
            username=vcenter_config["username"],
            password=password["value"],
            verify_ssl=bool(vcenter_config.get("verify_ssl", False)),
        ).open()

    def on_retry(attempt: int, error: Exception) -> None:
        password["value"] = secrets_mgr.prompt("vcenter_password")

    print_message(Colors.YELLOW, f"Connecting to vCenter: {vcenter_config['hostname']}")
    result = connect_with_retry(open_fn, attempts=attempts, delay=delay, on_retry=on_retry)
    if result.ok:
        print_message(Colors.GREEN, "✓ Connected to vCenter successfully\n")
    return result
