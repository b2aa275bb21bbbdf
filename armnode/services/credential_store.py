from __future__ import annotations
import threading
from typing import Dict, Optional

from armnode.models import LoginCredentials

NODE_KEY_PREFIX = "node#"


def credential_key(deployment_name: str) -> str:
    return NODE_KEY_PREFIX + deployment_name


class CredentialStore:
    """Login identities per node, shared by every deployment driven in this process."""

    def __init__(self):
        self._lock = threading.Lock()
        self._items: Dict[str, LoginCredentials] = {}

    def get(self, key: str) -> Optional[LoginCredentials]:
        with self._lock:
            return self._items.get(key)

    def put(self, key: str, credentials: LoginCredentials) -> None:
        with self._lock:
            self._items[key] = credentials

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._items
