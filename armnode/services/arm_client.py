"""
Azure Resource Manager REST transport.

AzureRestClient handles OAuth2 client-credentials tokens and bearer
injection; ResourceGroupApi exposes the handful of resource-group scoped
calls the provisioning pipeline needs.
"""

from __future__ import annotations
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, TypeVar

import requests

from armnode.exceptions import TransportError
from armnode.models import Deployment, DeploymentBody, PublicIPAddress, VirtualMachineInstance

logger = logging.getLogger(__name__)

T = TypeVar("T")

MANAGEMENT_ENDPOINT = "https://management.azure.com"
LOGIN_ENDPOINT = "https://login.microsoftonline.com"
MANAGEMENT_SCOPE = "https://management.azure.com/.default"

DEPLOYMENTS_API_VERSION = "2021-04-01"
COMPUTE_API_VERSION = "2024-11-01"
NETWORK_API_VERSION = "2024-05-01"

# Refresh tokens this many seconds before they expire
TOKEN_EXPIRY_MARGIN = 60


class AzureRestClient:
    def __init__(
        self,
        tenant_id: str,
        client_id: str,
        client_secret: str,
        session: Optional[requests.Session] = None,
        endpoint: str = MANAGEMENT_ENDPOINT,
        timeout: float = 30,
    ):
        self.tenant_id = tenant_id
        self.client_id = client_id
        self.client_secret = client_secret
        self.session = session or requests.Session()
        self.endpoint = endpoint.rstrip("/")
        self.timeout = timeout
        self._lock = threading.Lock()
        self._token: Optional[str] = None
        self._token_expires_at = 0.0

    def _get_azure_token(self) -> str:
        """Get Azure AD access token for Resource Manager API"""
        url = f"{LOGIN_ENDPOINT}/{self.tenant_id}/oauth2/v2.0/token"
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "scope": MANAGEMENT_SCOPE,
            "grant_type": "client_credentials"
        }
        try:
            response = self.session.post(url, data=data, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            raise TransportError(f"Token request failed: {e}") from e
        self._token_expires_at = time.time() + float(payload.get("expires_in", 3600))
        return payload["access_token"]

    def _bearer(self, refresh: bool = False) -> str:
        with self._lock:
            if refresh or not self._token or time.time() > self._token_expires_at - TOKEN_EXPIRY_MARGIN:
                self._token = self._get_azure_token()
            return self._token

    def request(self, method: str, path: str, body: Optional[Dict[str, Any]] = None,
                params: Optional[Dict[str, str]] = None) -> requests.Response:
        url = f"{self.endpoint}{path}"
        response = None
        for attempt in range(2):
            headers = {
                "Authorization": f"Bearer {self._bearer(refresh=attempt > 0)}",
                "Content-Type": "application/json"
            }
            try:
                response = self.session.request(
                    method, url, headers=headers, json=body, params=params, timeout=self.timeout
                )
            except requests.RequestException as e:
                raise TransportError(f"{method} {path} failed: {e}") from e
            if response.status_code == 401 and attempt == 0:
                logger.info("Access token rejected for %s %s, re-authenticating", method, path)
                continue
            break

        if response.status_code >= 400:
            raise TransportError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response


def _json(response: requests.Response) -> Optional[Dict[str, Any]]:
    if not response.content:
        return None
    return response.json()


def _decode(response: requests.Response, what: str, parse: Callable[[Optional[Dict[str, Any]]], T]) -> T:
    """Parse a 2xx body; anything unreadable is a transport failure."""
    try:
        return parse(_json(response))
    except (ValueError, TypeError, AttributeError) as e:
        raise TransportError(
            f"{what} returned an unreadable body: {e}",
            status_code=response.status_code,
            body=response.text,
        ) from e


class ResourceGroupApi:
    def __init__(self, client: AzureRestClient, subscription_id: str, resource_group: str):
        self.client = client
        self.subscription_id = subscription_id
        self.resource_group = resource_group

    @property
    def _base(self) -> str:
        return f"/subscriptions/{self.subscription_id}/resourcegroups/{self.resource_group}"

    def create_deployment(self, name: str, body: DeploymentBody) -> Optional[Deployment]:
        path = f"{self._base}/providers/Microsoft.Resources/deployments/{name}"
        response = self.client.request(
            "PUT", path, body=body.to_wire(), params={"api-version": DEPLOYMENTS_API_VERSION},
        )
        return _decode(response, f"PUT {path}", lambda p: Deployment.model_validate(p) if p else None)

    def get_deployment(self, name: str) -> Deployment:
        path = f"{self._base}/providers/Microsoft.Resources/deployments/{name}"
        response = self.client.request("GET", path, params={"api-version": DEPLOYMENTS_API_VERSION})
        return _decode(response, f"GET {path}", lambda p: Deployment.model_validate(p or {"name": name}))

    def get_vm_instance_view(self, vm_name: str) -> VirtualMachineInstance:
        path = f"{self._base}/providers/Microsoft.Compute/virtualMachines/{vm_name}/instanceView"
        response = self.client.request("GET", path, params={"api-version": COMPUTE_API_VERSION})
        return _decode(response, f"GET {path}", lambda p: VirtualMachineInstance.model_validate(p or {}))

    def list_public_ips(self) -> List[PublicIPAddress]:
        path = f"{self._base}/providers/Microsoft.Network/publicIPAddresses"
        response = self.client.request("GET", path, params={"api-version": NETWORK_API_VERSION})
        return _decode(
            response,
            f"GET {path}",
            lambda p: [PublicIPAddress.model_validate(item) for item in (p or {}).get("value", [])],
        )
