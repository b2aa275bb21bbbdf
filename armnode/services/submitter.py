from __future__ import annotations
import logging

from armnode.exceptions import SubmissionError, TransportError
from armnode.models import DeploymentBody, DeploymentHandle
from .arm_client import ResourceGroupApi

logger = logging.getLogger(__name__)


class DeploymentSubmitter:
    def __init__(self, api: ResourceGroupApi):
        self.api = api

    def submit(self, name: str, body: DeploymentBody) -> DeploymentHandle:
        """
        Send the deployment request. Success only means the provider accepted it;
        the returned handle may carry the provider's first status snapshot.
        """
        try:
            deployment = self.api.create_deployment(name, body)
        except TransportError as e:
            raise SubmissionError(f"Deployment '{name}' was rejected: {e}") from e
        state = deployment.properties.provisioningState if deployment else None
        logger.info("Submitted deployment %s (initial state: %s)", name, state or "unknown")
        return DeploymentHandle(name=name, deployment=deployment)
