"""Tests for reducing deployment, VM and public IP data to one node status."""
import pytest

from armnode.models import LoginCredentials, NodeStatus, PublicIPAddress, VMDeployment
from armnode.services.credential_store import credential_key
from armnode.services.reconciler import StatusReconciler, base_status, first_public_address

from fakes import deployment, vm_instance

RUNNING_VM = vm_instance(("ProvisioningState/succeeded", "Provisioning succeeded"), ("PowerState/running", "VM running"))
STOPPED_VM = vm_instance(("ProvisioningState/succeeded", "Provisioning succeeded"), ("PowerState/stopped", "VM stopped"))


@pytest.fixture
def reconciler(store, default_credentials):
    return StatusReconciler(store, default_credentials)


def ips(*addresses):
    return [
        None if a is None else PublicIPAddress.model_validate({"name": "pip", "properties": {"ipAddress": a}})
        for a in addresses
    ]


class TestBaseMapping:
    @pytest.mark.parametrize("state,expected", [
        ("Accepted", NodeStatus.PENDING),
        ("Ready", NodeStatus.PENDING),
        ("Running", NodeStatus.PENDING),
        ("Canceled", NodeStatus.TERMINATED),
        ("Failed", NodeStatus.ERROR),
        ("Deleted", NodeStatus.TERMINATED),
        ("Succeeded", NodeStatus.RUNNING),
        ("SomethingNew", NodeStatus.UNRECOGNIZED),
        (None, NodeStatus.UNRECOGNIZED),
    ])
    def test_provisioning_state_to_node_status(self, state, expected):
        assert base_status(state) is expected


class TestPowerState:
    def test_succeeded_without_vm_data_is_running(self, reconciler):
        node = reconciler.reconcile(VMDeployment(deployment=deployment("Succeeded")))
        assert node.status is NodeStatus.RUNNING

    def test_running_vm_stays_running(self, reconciler):
        node = reconciler.reconcile(VMDeployment(deployment=deployment("Succeeded"), vm=RUNNING_VM))
        assert node.status is NodeStatus.RUNNING

    def test_stopped_vm_is_suspended(self, reconciler):
        vm = vm_instance(("PowerState/stopped", "VM stopped"))
        node = reconciler.reconcile(VMDeployment(deployment=deployment("Succeeded"), vm=vm))
        assert node.status is NodeStatus.SUSPENDED

    def test_unknown_power_display_keeps_running(self, reconciler):
        vm = vm_instance(("PowerState/deallocating", "VM deallocating"))
        node = reconciler.reconcile(VMDeployment(deployment=deployment("Succeeded"), vm=vm))
        assert node.status is NodeStatus.RUNNING

    def test_first_power_state_entry_decides(self, reconciler):
        vm = vm_instance(("PowerState/running", "VM running"), ("PowerState/stopped", "VM stopped"))
        node = reconciler.reconcile(VMDeployment(deployment=deployment("Succeeded"), vm=vm))
        assert node.status is NodeStatus.RUNNING

    def test_short_and_missing_codes_are_skipped(self, reconciler):
        vm = vm_instance(("Power", "VM stopped"), (None, "VM stopped"), ("PowerState/stopped", "VM stopped"))
        node = reconciler.reconcile(VMDeployment(deployment=deployment("Succeeded"), vm=vm))
        assert node.status is NodeStatus.SUSPENDED

    @pytest.mark.parametrize("state,expected", [
        ("Failed", NodeStatus.ERROR),
        ("Running", NodeStatus.PENDING),
        ("Canceled", NodeStatus.TERMINATED),
        ("Bogus", NodeStatus.UNRECOGNIZED),
    ])
    def test_refinement_only_applies_to_running(self, reconciler, state, expected):
        for vm in (RUNNING_VM, STOPPED_VM):
            node = reconciler.reconcile(VMDeployment(deployment=deployment(state), vm=vm))
            assert node.status is expected


class TestSideData:
    def test_first_non_null_address_wins(self):
        scanned = [None, PublicIPAddress.model_validate({"properties": {"ipAddress": None}})] + ips("10.1.2.3", "10.1.2.4")
        assert first_public_address(scanned) == "10.1.2.3"

    def test_reconciled_node_carries_single_address(self, reconciler):
        source = VMDeployment(
            deployment=deployment("Succeeded"),
            ipAddressList=[None, PublicIPAddress(), *ips(None, "10.1.2.3", "10.1.2.4")],
        )
        assert reconciler.reconcile(source).publicAddresses == ["10.1.2.3"]

    @pytest.mark.parametrize("addresses", [None, [], [None], [PublicIPAddress()]])
    def test_no_address_is_not_an_error(self, reconciler, addresses):
        node = reconciler.reconcile(VMDeployment(deployment=deployment("Succeeded"), ipAddressList=addresses))
        assert node.publicAddresses == []

    def test_default_login_when_nothing_stored(self, reconciler, default_credentials):
        node = reconciler.reconcile(VMDeployment(deployment=deployment("Succeeded")))
        assert node.credentials == default_credentials

    def test_stored_login_wins(self, reconciler, store):
        stored = LoginCredentials(username="ops", password="Other#Pass2")
        store.put(credential_key("web-a1b2c3"), stored)
        node = reconciler.reconcile(VMDeployment(deployment=deployment("Succeeded", "web-a1b2c3")))
        assert node.credentials == stored

    def test_identity_fields(self, reconciler):
        node = reconciler.reconcile(VMDeployment(deployment=deployment("Running", "web-a1b2c3")))
        assert node.id == node.name == "web-a1b2c3"
        assert node.providerId.endswith("/deployments/web-a1b2c3")
        assert node.group == "web"
        assert node.backendStatus == "Running"


def test_reconcile_is_idempotent(reconciler):
    source = VMDeployment(deployment=deployment("Succeeded"), vm=STOPPED_VM, ipAddressList=ips("10.1.2.3"))
    assert reconciler.reconcile(source) == reconciler.reconcile(source)
