"""Fakes standing in for the ARM transport, the clock and the sleep."""
from typing import Dict, List, Optional

from armnode.exceptions import TransportError
from armnode.models import (
    Deployment,
    DeploymentBody,
    PublicIPAddress,
    VirtualMachineInstance,
)


def deployment(state: Optional[str], name: str = "web-a1b2c3") -> Deployment:
    return Deployment.model_validate({
        "id": f"/subscriptions/sub/resourceGroups/rg/providers/Microsoft.Resources/deployments/{name}",
        "name": name,
        "properties": {"provisioningState": state},
    })


def vm_instance(*statuses) -> VirtualMachineInstance:
    return VirtualMachineInstance.model_validate({
        "statuses": [{"code": code, "displayStatus": display} for code, display in statuses]
    })


class FakeClock:
    """Monotonic clock advanced only by the fake sleep."""

    def __init__(self):
        self.now = 0.0
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


class ScriptedFetch:
    """Returns scripted deployments (or raises scripted errors) one per call."""

    def __init__(self, script, repeat_last: bool = False):
        self.script = list(script)
        self.repeat_last = repeat_last
        self.calls = 0

    def __call__(self, name: str) -> Deployment:
        self.calls += 1
        if not self.script:
            raise AssertionError("status queried after the script ran out")
        item = self.script[0] if (self.repeat_last and len(self.script) == 1) else self.script.pop(0)
        if isinstance(item, Exception):
            raise item
        return deployment(item, name)


class FakeResourceGroupApi:
    def __init__(self, states: List[str], vm: Optional[VirtualMachineInstance] = None,
                 public_ips: Optional[List[Dict]] = None, accept_state: Optional[str] = "Accepted"):
        self.fetch = ScriptedFetch(states, repeat_last=True)
        self.vm = vm
        self.public_ips = public_ips or []
        self.accept_state = accept_state
        self.submitted: Dict[str, DeploymentBody] = {}
        self.instance_view_calls: List[str] = []
        self.reject_with: Optional[TransportError] = None

    def create_deployment(self, name: str, body: DeploymentBody) -> Optional[Deployment]:
        if self.reject_with:
            raise self.reject_with
        self.submitted[name] = body
        return deployment(self.accept_state, name) if self.accept_state else None

    def get_deployment(self, name: str) -> Deployment:
        return self.fetch(name)

    def get_vm_instance_view(self, vm_name: str) -> VirtualMachineInstance:
        self.instance_view_calls.append(vm_name)
        if self.vm is None:
            raise TransportError("not found", status_code=404)
        return self.vm

    def list_public_ips(self) -> List[PublicIPAddress]:
        return [PublicIPAddress.model_validate(ip) for ip in self.public_ips]
