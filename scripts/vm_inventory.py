"""
VM inventory source: guest-reported hostname and IPv4 of every VM in vCenter
"""

from dataclasses import dataclass
from typing import List, Optional

from pyVmomi import vim


@dataclass(frozen=True)
class VmGuest:
    name: str
    hostname: Optional[str]
    ip_address: Optional[str]
    power_state: str = "unknown"


def list_vm_guests(si: vim.ServiceInstance, powered_on_only: bool = True) -> List[VmGuest]:
    """Enumerate VMs with the hostname/IP VMware Tools reports for them"""
    content = si.RetrieveContent()
    container = content.viewManager.CreateContainerView(
        content.rootFolder, [vim.VirtualMachine], True
    )

    guests = []
    try:
        for vm in container.view:
            power_state = str(vm.runtime.powerState)
            if powered_on_only and power_state != "poweredOn":
                continue

            guest = vm.guest
            guests.append(VmGuest(
                name=vm.name,
                hostname=guest.hostName if guest else None,
                ip_address=guest.ipAddress if guest else None,
                power_state=power_state,
            ))
    finally:
        container.Destroy()

    return sorted(guests, key=lambda g: g.name)
