from __future__ import annotations
from typing import Dict, List, Optional

from armnode.models import (
    LoginCredentials,
    NodeMetadata,
    NodeStatus,
    ProvisioningState,
    PublicIPAddress,
    VirtualMachineInstance,
    VMDeployment,
)
from .credential_store import CredentialStore, credential_key
from .naming import extract_group

# A template deployment goes Accepted -> Running -> Succeeded. The resources
# it creates are only usable once it has Succeeded.
STATUS_TO_NODESTATUS: Dict[ProvisioningState, NodeStatus] = {
    ProvisioningState.ACCEPTED: NodeStatus.PENDING,
    ProvisioningState.READY: NodeStatus.PENDING,
    ProvisioningState.RUNNING: NodeStatus.PENDING,
    ProvisioningState.CANCELED: NodeStatus.TERMINATED,
    ProvisioningState.FAILED: NodeStatus.ERROR,
    ProvisioningState.DELETED: NodeStatus.TERMINATED,
    ProvisioningState.SUCCEEDED: NodeStatus.RUNNING,
    ProvisioningState.UNRECOGNIZED: NodeStatus.UNRECOGNIZED,
}

POWER_STATE_PREFIX = "PowerState"
POWER_STATE_DISPLAY: Dict[str, NodeStatus] = {
    "VM running": NodeStatus.RUNNING,
    "VM stopped": NodeStatus.SUSPENDED,
}


def base_status(provisioning_state: Optional[str]) -> NodeStatus:
    return STATUS_TO_NODESTATUS[ProvisioningState.from_string(provisioning_state)]


def refine_with_power_state(status: NodeStatus, vm: Optional[VirtualMachineInstance]) -> NodeStatus:
    """Only a RUNNING deployment is refined by the VM's power state."""
    if status is not NodeStatus.RUNNING or vm is None or not vm.statuses:
        return status
    for entry in vm.statuses:
        # slicing never raises, so short or missing codes simply don't match
        if (entry.code or "")[:len(POWER_STATE_PREFIX)] == POWER_STATE_PREFIX:
            return POWER_STATE_DISPLAY.get(entry.displayStatus, status)
    return status


def first_public_address(ip_addresses: Optional[List[Optional[PublicIPAddress]]]) -> Optional[str]:
    for ip in ip_addresses or []:
        if ip is not None and ip.properties is not None and ip.properties.ipAddress is not None:
            return ip.properties.ipAddress
    return None


class StatusReconciler:
    """
    Reduce a VMDeployment to NodeMetadata.

    Pure apart from the credential store read; running it twice on the same
    input gives the same node.
    """

    def __init__(self, credential_store: CredentialStore, default_credentials: LoginCredentials):
        self.credential_store = credential_store
        self.default_credentials = default_credentials

    def reconcile(self, source: VMDeployment) -> NodeMetadata:
        deployment = source.deployment
        name = deployment.name

        status = refine_with_power_state(
            base_status(deployment.properties.provisioningState), source.vm
        )
        credentials = self.credential_store.get(credential_key(name)) or self.default_credentials
        address = first_public_address(source.ipAddressList)

        return NodeMetadata(
            id=name,
            providerId=deployment.id or name,
            name=name,
            group=extract_group(name),
            status=status,
            backendStatus=deployment.properties.provisioningState,
            credentials=credentials,
            publicAddresses=[address] if address else [],
        )
