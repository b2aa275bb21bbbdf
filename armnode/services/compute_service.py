from __future__ import annotations
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional

from armnode.config import Settings
from armnode.exceptions import TransportError
from armnode.models import (
    AzureCreds,
    Deployment,
    DeploymentTemplate,
    LoginCredentials,
    NodeMetadata,
    ProvisioningState,
    VmSettings,
    VMDeployment,
)
from .arm_client import AzureRestClient, ResourceGroupApi
from .assembler import assemble_template, build_deployment_body
from .credential_store import CredentialStore, credential_key
from .poller import ProvisioningPoller
from .reconciler import StatusReconciler
from .submitter import DeploymentSubmitter
from .template_builder import (
    DeploymentTemplateBuilder,
    build_variables,
    public_ip_name,
    virtual_machine_name,
)
from .validator import TemplateValidator

logger = logging.getLogger(__name__)

MASKED = "********"


class ArmComputeService:
    """Build, submit, wait for and reconcile single-VM deployments in one resource group."""

    def __init__(
        self,
        api: ResourceGroupApi,
        credential_store: CredentialStore,
        settings: Settings,
        clock: Callable[[], float] = time.monotonic,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.api = api
        self.settings = settings
        self.credential_store = credential_store
        self.builder = DeploymentTemplateBuilder()
        self.submitter = DeploymentSubmitter(api)
        self.poller = ProvisioningPoller(
            api.get_deployment,
            interval=settings.pollInterval,
            timeout=settings.pollTimeout,
            clock=clock,
            sleep=sleep,
        )
        self.reconciler = StatusReconciler(credential_store, settings.default_credentials)

    @classmethod
    def from_settings(cls, settings: Settings, credential_store: CredentialStore,
                      creds: Optional[AzureCreds] = None) -> "ArmComputeService":
        if creds:
            settings = settings.model_copy(update={
                "subscriptionId": creds.subscriptionId,
                "tenantId": creds.tenantId,
                "clientId": creds.clientId,
                "clientSecret": creds.clientSecret,
            })
        missing = settings.missing_azure_settings()
        if missing:
            raise ValueError(f"Missing Azure settings: {', '.join(missing)}")
        client = AzureRestClient(settings.tenantId, settings.clientId, settings.clientSecret)
        api = ResourceGroupApi(client, settings.subscriptionId, settings.resourceGroup)
        return cls(api, credential_store, settings)

    # -------------------- Templates --------------------

    def build_template(self, name: str, vm_settings: Optional[VmSettings]) -> DeploymentTemplate:
        variables = build_variables(name, vm_settings, self.settings.default_credentials)
        return assemble_template(self.builder.build_resources(), variables)

    @staticmethod
    def preview(name: str, vm_settings: Optional[VmSettings],
                default_credentials: LoginCredentials) -> Dict[str, Any]:
        variables = build_variables(name, vm_settings, default_credentials)
        template = DeploymentTemplate(
            variables=variables, resources=DeploymentTemplateBuilder().build_resources()
        )
        validation = TemplateValidator.validate(template)

        wire = template.to_wire()
        wire["variables"]["AdminPassword"] = MASKED
        return {
            "preview": True,
            "name": name,
            "template": wire,
            "validation": validation,
        }

    # -------------------- Nodes --------------------

    def create_node(self, name: str, vm_settings: Optional[VmSettings] = None,
                    cancel: Optional[threading.Event] = None) -> NodeMetadata:
        """
        Deploy the node's resource graph and block until it is provisioned.

        Raises TemplateValidationError before anything is sent, SubmissionError
        when the provider rejects the request, ProviderFailedError on a failed
        deployment and PollingTimeoutError when the deadline passes first.
        """
        template = self.build_template(name, vm_settings)
        body = build_deployment_body(template)
        handle = self.submitter.submit(name, body)

        variables = template.variables
        self.credential_store.put(
            credential_key(name),
            LoginCredentials(username=variables["AdminUsername"], password=variables["AdminPassword"]),
        )

        deployment = self.poller.poll(handle.name, initial=handle.deployment, cancel=cancel)
        return self.reconciler.reconcile(self.resolve(deployment))

    def get_node(self, name: str) -> NodeMetadata:
        """Current status of a node from one status snapshot, without waiting."""
        return self.reconciler.reconcile(self.resolve(self.api.get_deployment(name)))

    def resolve(self, deployment: Deployment) -> VMDeployment:
        """Attach VM instance view and public IPs; a failed lookup counts as absent."""
        name = deployment.name
        vm = None
        if deployment.state is ProvisioningState.SUCCEEDED:
            try:
                vm = self.api.get_vm_instance_view(virtual_machine_name(name))
            except TransportError as e:
                logger.warning("Could not read instance view for %s: %s", name, e)

        ip_addresses = None
        ip_name = public_ip_name(name)
        try:
            ip_addresses = [ip for ip in self.api.list_public_ips() if ip.name == ip_name]
        except TransportError as e:
            logger.warning("Could not list public IPs for %s: %s", name, e)

        return VMDeployment(deployment=deployment, vm=vm, ipAddressList=ip_addresses)
