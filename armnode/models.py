from __future__ import annotations
from enum import Enum
from typing import List, Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field, model_validator

TEMPLATE_SCHEMA = "https://schema.management.azure.com/schemas/2015-01-01/deploymentTemplate.json#"
CONTENT_VERSION = "1.0.0.0"

STORAGE_ACCOUNTS = "Microsoft.Storage/storageAccounts"
VIRTUAL_NETWORKS = "Microsoft.Network/virtualNetworks"
PUBLIC_IP_ADDRESSES = "Microsoft.Network/publicIPAddresses"
NETWORK_INTERFACES = "Microsoft.Network/networkInterfaces"
VIRTUAL_MACHINES = "Microsoft.Compute/virtualMachines"


class ArmModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        """ARM JSON shape: exact field names, optional fields left out instead of null."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


# -------------------- States --------------------

class ProvisioningState(str, Enum):
    ACCEPTED = "Accepted"
    READY = "Ready"
    RUNNING = "Running"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"
    CANCELED = "Canceled"
    DELETED = "Deleted"
    UNRECOGNIZED = "Unrecognized"

    @classmethod
    def from_string(cls, text: Optional[str]) -> "ProvisioningState":
        if not text:
            return cls.UNRECOGNIZED
        return _STATE_LOOKUP.get(text.strip().lower(), cls.UNRECOGNIZED)

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


_STATE_LOOKUP: Dict[str, ProvisioningState] = {
    "accepted": ProvisioningState.ACCEPTED,
    "ready": ProvisioningState.READY,
    "running": ProvisioningState.RUNNING,
    "succeeded": ProvisioningState.SUCCEEDED,
    "failed": ProvisioningState.FAILED,
    "canceled": ProvisioningState.CANCELED,
    "cancelled": ProvisioningState.CANCELED,
    "deleted": ProvisioningState.DELETED,
}

TERMINAL_STATES = frozenset({
    ProvisioningState.SUCCEEDED,
    ProvisioningState.FAILED,
    ProvisioningState.CANCELED,
    ProvisioningState.DELETED,
})


class NodeStatus(str, Enum):
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    SUSPENDED = "SUSPENDED"
    ERROR = "ERROR"
    TERMINATED = "TERMINATED"
    UNRECOGNIZED = "UNRECOGNIZED"


class DeploymentMode(str, Enum):
    INCREMENTAL = "Incremental"
    COMPLETE = "Complete"


# -------------------- Resource properties --------------------

class IdReference(ArmModel):
    id: str


class StorageAccountProperties(ArmModel):
    accountType: str = "Standard_LRS"


class AddressSpace(ArmModel):
    addressPrefixes: List[str]


class SubnetProperties(ArmModel):
    addressPrefix: str


class Subnet(ArmModel):
    name: str
    properties: SubnetProperties


class VirtualNetworkProperties(ArmModel):
    addressSpace: AddressSpace
    subnets: List[Subnet] = Field(default_factory=list)


class DnsSettings(ArmModel):
    domainNameLabel: str


class PublicIPAddressProperties(ArmModel):
    publicIPAllocationMethod: str = "Dynamic"
    dnsSettings: Optional[DnsSettings] = None


class IpConfigurationProperties(ArmModel):
    privateIPAllocationMethod: str = "Dynamic"
    publicIPAddress: Optional[IdReference] = None
    subnet: Optional[IdReference] = None


class IpConfiguration(ArmModel):
    name: str
    properties: IpConfigurationProperties


class NetworkInterfaceProperties(ArmModel):
    ipConfigurations: List[IpConfiguration]


class HardwareProfile(ArmModel):
    vmSize: str


class OsProfile(ArmModel):
    computerName: str
    adminUsername: str
    adminPassword: str


class ImageReference(ArmModel):
    publisher: str
    offer: str
    sku: str
    version: str = "latest"


class Vhd(ArmModel):
    uri: str


class OsDisk(ArmModel):
    name: str
    caching: str = "ReadWrite"
    createOption: str = "FromImage"
    vhd: Vhd


class DataDisk(ArmModel):
    name: str
    diskSizeGB: str
    lun: int = 0
    createOption: str = "Empty"
    vhd: Vhd


class StorageProfile(ArmModel):
    imageReference: ImageReference
    osDisk: OsDisk
    dataDisks: Optional[List[DataDisk]] = None


class NetworkProfile(ArmModel):
    networkInterfaces: List[IdReference]


class BootDiagnostics(ArmModel):
    enabled: bool = True
    storageUri: str


class DiagnosticsProfile(ArmModel):
    bootDiagnostics: BootDiagnostics


class VirtualMachineProperties(ArmModel):
    hardwareProfile: HardwareProfile
    osProfile: OsProfile
    storageProfile: StorageProfile
    networkProfile: NetworkProfile
    diagnosticsProfile: Optional[DiagnosticsProfile] = None


# One properties variant per resource type; the envelope enforces the pairing.
PROPERTIES_BY_TYPE: Dict[str, type] = {
    STORAGE_ACCOUNTS: StorageAccountProperties,
    VIRTUAL_NETWORKS: VirtualNetworkProperties,
    PUBLIC_IP_ADDRESSES: PublicIPAddressProperties,
    NETWORK_INTERFACES: NetworkInterfaceProperties,
    VIRTUAL_MACHINES: VirtualMachineProperties,
}


# -------------------- Template --------------------

class ResourceDefinition(ArmModel):
    name: str
    type: str
    location: str
    apiVersion: str
    dependsOn: Optional[List[str]] = None
    tags: Optional[Dict[str, str]] = None
    # one of the PROPERTIES_BY_TYPE variants (a raw dict for unregistered types)
    properties: Optional[Any] = None

    @model_validator(mode="before")
    @classmethod
    def _coerce_properties(cls, data: Any) -> Any:
        if isinstance(data, dict):
            variant = PROPERTIES_BY_TYPE.get(data.get("type"))
            props = data.get("properties")
            if variant is not None and isinstance(props, dict):
                data = {**data, "properties": variant.model_validate(props)}
        return data

    @model_validator(mode="after")
    def _check_properties_variant(self) -> "ResourceDefinition":
        variant = PROPERTIES_BY_TYPE.get(self.type)
        if self.properties is not None and variant is not None and not isinstance(self.properties, variant):
            raise ValueError(
                f"Resource type {self.type} expects {variant.__name__} properties, "
                f"got {type(self.properties).__name__}"
            )
        return self


class DeploymentTemplate(ArmModel):
    schema_: str = Field(default=TEMPLATE_SCHEMA, alias="$schema")
    contentVersion: str = CONTENT_VERSION
    parameters: Dict[str, Any] = Field(default_factory=dict)
    variables: Dict[str, str] = Field(default_factory=dict)
    resources: List[ResourceDefinition] = Field(default_factory=list)
    outputs: Optional[Dict[str, Any]] = None


class DeploymentBodyProperties(ArmModel):
    template: DeploymentTemplate
    mode: DeploymentMode = DeploymentMode.INCREMENTAL
    parameters: Dict[str, Any] = Field(default_factory=dict)


class DeploymentBody(ArmModel):
    properties: DeploymentBodyProperties


# -------------------- Provider snapshots --------------------

class DeploymentProperties(ArmModel):
    provisioningState: Optional[str] = None
    correlationId: Optional[str] = None
    timestamp: Optional[str] = None
    error: Optional[Dict[str, Any]] = None


class Deployment(ArmModel):
    id: Optional[str] = None
    name: str
    properties: DeploymentProperties = Field(default_factory=DeploymentProperties)

    @property
    def state(self) -> ProvisioningState:
        return ProvisioningState.from_string(self.properties.provisioningState)


class DeploymentHandle(BaseModel):
    name: str
    deployment: Optional[Deployment] = None


class VirtualMachineStatus(ArmModel):
    code: Optional[str] = None
    level: Optional[str] = None
    displayStatus: Optional[str] = None


class VirtualMachineInstance(ArmModel):
    statuses: Optional[List[VirtualMachineStatus]] = None


class PublicIPAddressDetails(ArmModel):
    ipAddress: Optional[str] = None
    provisioningState: Optional[str] = None


class PublicIPAddress(ArmModel):
    id: Optional[str] = None
    name: Optional[str] = None
    properties: Optional[PublicIPAddressDetails] = None


class VMDeployment(BaseModel):
    deployment: Deployment
    vm: Optional[VirtualMachineInstance] = None
    ipAddressList: Optional[List[Optional[PublicIPAddress]]] = None


# -------------------- Nodes --------------------

class LoginCredentials(BaseModel):
    username: str
    password: Optional[str] = None


class NodeMetadata(BaseModel):
    id: str
    providerId: str
    name: str
    group: Optional[str] = None
    status: NodeStatus
    backendStatus: Optional[str] = None
    credentials: Optional[LoginCredentials] = None
    publicAddresses: List[str] = Field(default_factory=list)


# -------------------- API --------------------

class AzureCreds(BaseModel):
    clientId: str
    clientSecret: str
    subscriptionId: str
    tenantId: str


class VmSettings(BaseModel):
    vmSize: str = "Standard_A0"
    imagePublisher: str = "Canonical"
    imageOffer: str = "UbuntuServer"
    imageSku: str = "18.04-LTS"
    adminUsername: Optional[str] = None
    adminPassword: Optional[str] = None
    virtualNetworkPrefix: str = "10.0.0.0/16"
    subnetPrefix: str = "10.0.0.0/24"
    dataDiskSizeGB: int = 100
    storageContainerName: str = "vhds"


class PreviewRequest(BaseModel):
    group: str
    name: Optional[str] = None
    settings: VmSettings = Field(default_factory=VmSettings)


class UpRequest(PreviewRequest):
    creds: Optional[AzureCreds] = None
