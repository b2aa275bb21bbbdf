"""Tests for the single-node resource graph and template assembly."""
import pytest

from armnode.models import (
    NETWORK_INTERFACES,
    PUBLIC_IP_ADDRESSES,
    STORAGE_ACCOUNTS,
    VIRTUAL_MACHINES,
    VIRTUAL_NETWORKS,
    DeploymentMode,
    LoginCredentials,
    VirtualMachineProperties,
    VmSettings,
)
from armnode.services.assembler import assemble_template, build_deployment_body
from armnode.services.template_builder import DeploymentTemplateBuilder, build_variables
from armnode.services.validator import TemplateValidator, parse_dependency, resource_key

CREDS = LoginCredentials(username="azureuser", password="Default#Pass1")


@pytest.fixture
def resources():
    return DeploymentTemplateBuilder().build_resources()


@pytest.fixture
def template(resources):
    return assemble_template(resources, build_variables("web-a1b2c3", VmSettings(), CREDS))


class TestTopology:
    def test_resources_listed_storage_to_vm(self, resources):
        assert [r.type for r in resources] == [
            STORAGE_ACCOUNTS,
            VIRTUAL_NETWORKS,
            PUBLIC_IP_ADDRESSES,
            NETWORK_INTERFACES,
            VIRTUAL_MACHINES,
        ]

    def test_names_are_symbolic(self, resources):
        for r in resources:
            assert r.name.startswith("[variables('")
            assert r.location == "[resourceGroup().location]"
            assert r.apiVersion == "2015-06-15"

    def test_only_nic_and_vm_declare_dependencies(self, resources):
        with_deps = {r.type: r.dependsOn for r in resources if r.dependsOn}
        assert set(with_deps) == {NETWORK_INTERFACES, VIRTUAL_MACHINES}
        assert with_deps[NETWORK_INTERFACES] == [
            "[concat('Microsoft.Network/publicIPAddresses/', variables('PublicIPAddressName'))]",
            "[concat('Microsoft.Network/virtualNetworks/', variables('VirtualNetworkName'))]",
        ]
        assert with_deps[VIRTUAL_MACHINES] == [
            "[concat('Microsoft.Storage/storageAccounts/', variables('StorageAccountName'))]",
            "[concat('Microsoft.Network/networkInterfaces/', variables('NetworkInterfaceCardName'))]",
        ]

    def test_every_dependency_names_a_sibling(self, resources):
        siblings = {resource_key(r) for r in resources}
        for r in resources:
            for entry in r.dependsOn or []:
                assert parse_dependency(entry) in siblings

    def test_vm_references_nic_and_storage(self, resources):
        vm = resources[-1]
        assert isinstance(vm.properties, VirtualMachineProperties)
        assert vm.properties.networkProfile.networkInterfaces[0].id == (
            "[resourceId('Microsoft.Network/networkInterfaces',variables('NetworkInterfaceCardName'))]"
        )
        assert vm.properties.diagnosticsProfile.bootDiagnostics.storageUri == (
            "[concat('http://',variables('StorageAccountName'),'.blob.core.windows.net')]"
        )
        assert vm.properties.storageProfile.osDisk.vhd.uri == (
            "[concat('http://',variables('StorageAccountName'),'.blob.core.windows.net',"
            "'/',variables('VmStorageAccountContainerName'),'/',variables('OsDiskName'),'.vhd')]"
        )
        assert vm.tags == {"displayName": "VirtualMachine"}


class TestVariables:
    def test_names_derived_from_node_name(self):
        variables = build_variables("web-a1b2c3", VmSettings(), CREDS)
        assert variables["StorageAccountName"] == "weba1b2c3sa"
        assert variables["VirtualMachineName"] == "web-a1b2c3VirtualMachine"
        assert variables["DnsLabelPrefix"] == "web-a1b2c3"
        assert variables["AdminUsername"] == "azureuser"

    def test_request_credentials_win_over_defaults(self):
        vm = VmSettings(adminUsername="ops", adminPassword="Other#Pass2")
        variables = build_variables("web-1", vm, CREDS)
        assert (variables["AdminUsername"], variables["AdminPassword"]) == ("ops", "Other#Pass2")

    def test_password_required(self):
        with pytest.raises(ValueError, match="admin username and password"):
            build_variables("web-1", VmSettings(), LoginCredentials(username="azureuser"))


class TestAssembly:
    def test_template_is_referentially_complete(self, template):
        result = TemplateValidator.validate(template)
        assert result["valid"], result["errors"]

    def test_template_wire_shape(self, template):
        wire = template.to_wire()
        assert list(wire) == ["$schema", "contentVersion", "parameters", "variables", "resources"]
        assert wire["$schema"].endswith("deploymentTemplate.json#")
        assert wire["contentVersion"] == "1.0.0.0"
        storage = wire["resources"][0]
        assert "dependsOn" not in storage
        assert "tags" not in storage
        assert storage["properties"] == {"accountType": "Standard_LRS"}

    def test_deployment_body_uses_incremental_mode(self, template):
        body = build_deployment_body(template).to_wire()
        assert set(body["properties"]) == {"template", "mode", "parameters"}
        assert body["properties"]["mode"] == "Incremental"
        assert body["properties"]["parameters"] == {}
        assert body["properties"]["template"]["resources"][3]["type"] == NETWORK_INTERFACES

    def test_complete_mode(self, template):
        body = build_deployment_body(template, mode=DeploymentMode.COMPLETE)
        assert body.to_wire()["properties"]["mode"] == "Complete"
