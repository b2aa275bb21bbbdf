"""
Declarative resource graph for a single node: storage account, virtual
network, public IP, network interface and virtual machine.

Every name and cross reference is a symbolic ARM expression resolved by the
provider at deployment time against the `variables` mapping produced by
`build_variables`. Resources referenced from another resource's properties
are also listed in its `dependsOn`, which is what the provider schedules on.
"""

from __future__ import annotations
from typing import Dict, List, Optional

from armnode.models import (
    NETWORK_INTERFACES,
    PUBLIC_IP_ADDRESSES,
    STORAGE_ACCOUNTS,
    VIRTUAL_MACHINES,
    VIRTUAL_NETWORKS,
    AddressSpace,
    BootDiagnostics,
    DataDisk,
    DiagnosticsProfile,
    DnsSettings,
    HardwareProfile,
    IdReference,
    ImageReference,
    IpConfiguration,
    IpConfigurationProperties,
    LoginCredentials,
    NetworkInterfaceProperties,
    NetworkProfile,
    OsDisk,
    OsProfile,
    PublicIPAddressProperties,
    ResourceDefinition,
    StorageAccountProperties,
    StorageProfile,
    Subnet,
    SubnetProperties,
    Vhd,
    VirtualMachineProperties,
    VirtualNetworkProperties,
    VmSettings,
)
from .naming import dns_label, storage_account_name
from .resource_registry import ResourceRegistry

RESOURCE_API_VERSION = "2015-06-15"
RESOURCE_LOCATION = "[resourceGroup().location]"


def variable(name: str) -> str:
    return f"variables('{name}')"


def var_ref(name: str) -> str:
    return f"[{variable(name)}]"


def resource_id(resource_type: str, name_variable: str) -> str:
    return f"[resourceId('{resource_type}',{variable(name_variable)})]"


def depends_on(resource_type: str, name_variable: str) -> str:
    return f"[concat('{resource_type}/', {variable(name_variable)})]"


def blob_uri(*parts: str) -> str:
    """concat() expression for a blob endpoint URL in the node's storage account."""
    pieces = ["'http://'", variable("StorageAccountName"), "'.blob.core.windows.net'"]
    for part in parts:
        pieces.extend(["'/'", part])
    return f"[concat({','.join(pieces)})]"


def virtual_machine_name(name: str) -> str:
    return f"{name}VirtualMachine"


def public_ip_name(name: str) -> str:
    return f"{name}PublicIP"


def build_variables(name: str, settings: Optional[VmSettings] = None,
                    credentials: Optional[LoginCredentials] = None) -> Dict[str, str]:
    """Complete variables mapping for a node named `name`."""
    settings = settings or VmSettings()
    username = settings.adminUsername or (credentials.username if credentials else None)
    password = settings.adminPassword or (credentials.password if credentials else None)
    if not username or not password:
        raise ValueError("An admin username and password are required for the virtual machine")

    return {
        "StorageAccountName": storage_account_name(name + "sa"),
        "VirtualNetworkName": f"{name}VirtualNetwork",
        "VirtualNetworkPrefix": settings.virtualNetworkPrefix,
        "SubnetName": f"{name}Subnet",
        "SubnetPrefix": settings.subnetPrefix,
        "PublicIPAddressName": public_ip_name(name),
        "DnsLabelPrefix": dns_label(name),
        "NetworkInterfaceCardName": f"{name}NIC",
        "VnetID": resource_id(VIRTUAL_NETWORKS, "VirtualNetworkName"),
        "SubnetRef": f"[concat({variable('VnetID')},'/subnets/',{variable('SubnetName')})]",
        "VirtualMachineName": virtual_machine_name(name),
        "VmSize": settings.vmSize,
        "ComputerName": f"{name}Computer"[:15],
        "ImagePublisher": settings.imagePublisher,
        "ImageOffer": settings.imageOffer,
        "OSVersion": settings.imageSku,
        "OsDiskName": f"{name}osdisk",
        "DataDiskName": f"{name}datadisk",
        "DataDiskSize": str(settings.dataDiskSizeGB),
        "VmStorageAccountContainerName": settings.storageContainerName,
        "AdminUsername": username,
        "AdminPassword": password,
    }


class DeploymentTemplateBuilder:
    def __init__(self, location: str = RESOURCE_LOCATION, api_version: str = RESOURCE_API_VERSION):
        self.location = location
        self.api_version = api_version
        self.registry = ResourceRegistry(self)

    def _resource(self, resource_type: str, name_variable: str, properties,
                  depends: Optional[List[str]] = None, tags: Optional[Dict[str, str]] = None) -> ResourceDefinition:
        return ResourceDefinition(
            name=var_ref(name_variable),
            type=resource_type,
            location=self.location,
            apiVersion=self.api_version,
            dependsOn=depends,
            tags=tags,
            properties=properties,
        )

    def build_resources(self) -> List[ResourceDefinition]:
        return [self.registry.get_factory(t)() for t in self.registry.get_supported_types()]

    # -------------------- Resources --------------------

    def storage_resource(self) -> ResourceDefinition:
        return self._resource(
            STORAGE_ACCOUNTS, "StorageAccountName",
            StorageAccountProperties(accountType="Standard_LRS"),
        )

    def virtual_network_resource(self) -> ResourceDefinition:
        properties = VirtualNetworkProperties(
            addressSpace=AddressSpace(addressPrefixes=[var_ref("VirtualNetworkPrefix")]),
            subnets=[
                Subnet(
                    name=var_ref("SubnetName"),
                    properties=SubnetProperties(addressPrefix=var_ref("SubnetPrefix")),
                )
            ],
        )
        return self._resource(VIRTUAL_NETWORKS, "VirtualNetworkName", properties)

    def public_ip_resource(self) -> ResourceDefinition:
        properties = PublicIPAddressProperties(
            publicIPAllocationMethod="Dynamic",
            dnsSettings=DnsSettings(domainNameLabel=var_ref("DnsLabelPrefix")),
        )
        return self._resource(PUBLIC_IP_ADDRESSES, "PublicIPAddressName", properties)

    def network_interface_resource(self) -> ResourceDefinition:
        ip_config = IpConfiguration(
            name="IpConfig1",
            properties=IpConfigurationProperties(
                privateIPAllocationMethod="Dynamic",
                publicIPAddress=IdReference(id=resource_id(PUBLIC_IP_ADDRESSES, "PublicIPAddressName")),
                subnet=IdReference(id=var_ref("SubnetRef")),
            ),
        )
        return self._resource(
            NETWORK_INTERFACES, "NetworkInterfaceCardName",
            NetworkInterfaceProperties(ipConfigurations=[ip_config]),
            depends=[
                depends_on(PUBLIC_IP_ADDRESSES, "PublicIPAddressName"),
                depends_on(VIRTUAL_NETWORKS, "VirtualNetworkName"),
            ],
        )

    def virtual_machine_resource(self) -> ResourceDefinition:
        container = variable("VmStorageAccountContainerName")
        storage_profile = StorageProfile(
            imageReference=ImageReference(
                publisher=var_ref("ImagePublisher"),
                offer=var_ref("ImageOffer"),
                sku=var_ref("OSVersion"),
                version="latest",
            ),
            osDisk=OsDisk(
                name=var_ref("OsDiskName"),
                caching="ReadWrite",
                createOption="FromImage",
                vhd=Vhd(uri=blob_uri(container, f"{variable('OsDiskName')},'.vhd'")),
            ),
            dataDisks=[
                DataDisk(
                    name=var_ref("DataDiskName"),
                    diskSizeGB=var_ref("DataDiskSize"),
                    lun=0,
                    createOption="Empty",
                    vhd=Vhd(uri=blob_uri(container, f"{variable('DataDiskName')},'.vhd'")),
                )
            ],
        )
        properties = VirtualMachineProperties(
            hardwareProfile=HardwareProfile(vmSize=var_ref("VmSize")),
            osProfile=OsProfile(
                computerName=var_ref("ComputerName"),
                adminUsername=var_ref("AdminUsername"),
                adminPassword=var_ref("AdminPassword"),
            ),
            storageProfile=storage_profile,
            networkProfile=NetworkProfile(
                networkInterfaces=[IdReference(id=resource_id(NETWORK_INTERFACES, "NetworkInterfaceCardName"))]
            ),
            diagnosticsProfile=DiagnosticsProfile(
                bootDiagnostics=BootDiagnostics(enabled=True, storageUri=blob_uri())
            ),
        )
        return self._resource(
            VIRTUAL_MACHINES, "VirtualMachineName", properties,
            depends=[
                depends_on(STORAGE_ACCOUNTS, "StorageAccountName"),
                depends_on(NETWORK_INTERFACES, "NetworkInterfaceCardName"),
            ],
            tags={"displayName": "VirtualMachine"},
        )
