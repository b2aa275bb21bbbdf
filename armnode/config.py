from __future__ import annotations
import os
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from armnode.models import LoginCredentials

DEFAULT_LOCATION = "southeastasia"
DEFAULT_POLL_INTERVAL = 3.0
DEFAULT_POLL_TIMEOUT = 800.0
DEFAULT_LOGIN_USER = "azureuser"


class Settings(BaseModel):
    subscriptionId: Optional[str] = None
    tenantId: Optional[str] = None
    clientId: Optional[str] = None
    clientSecret: Optional[str] = None
    resourceGroup: Optional[str] = None
    # Reported by /health; templates deploy to the resource group's location
    location: str = DEFAULT_LOCATION
    pollInterval: float = DEFAULT_POLL_INTERVAL
    pollTimeout: float = DEFAULT_POLL_TIMEOUT
    defaultLoginUser: str = DEFAULT_LOGIN_USER
    defaultLoginPassword: Optional[str] = None
    allowedOrigins: List[str] = ["*"]

    @property
    def default_credentials(self) -> LoginCredentials:
        return LoginCredentials(username=self.defaultLoginUser, password=self.defaultLoginPassword)

    def missing_azure_settings(self) -> List[str]:
        required = {
            "ARM_SUBSCRIPTION_ID": self.subscriptionId,
            "ARM_TENANT_ID": self.tenantId,
            "ARM_CLIENT_ID": self.clientId,
            "ARM_CLIENT_SECRET": self.clientSecret,
            "ARM_RESOURCE_GROUP": self.resourceGroup,
        }
        return [k for k, v in required.items() if not v]


def get_allowed_origins() -> List[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "*")
    if raw.strip() == "*":
        return ["*"]
    return [x.strip() for x in raw.split(",") if x.strip()]


def load_settings() -> Settings:
    """
    Read settings from the process environment.
    Values from a .env file are applied first (existing variables win).
    """
    load_dotenv()
    return Settings(
        subscriptionId=os.getenv("ARM_SUBSCRIPTION_ID"),
        tenantId=os.getenv("ARM_TENANT_ID"),
        clientId=os.getenv("ARM_CLIENT_ID"),
        clientSecret=os.getenv("ARM_CLIENT_SECRET"),
        resourceGroup=os.getenv("ARM_RESOURCE_GROUP"),
        location=os.getenv("AZURE_LOCATION", DEFAULT_LOCATION),
        pollInterval=float(os.getenv("ARM_POLL_INTERVAL", DEFAULT_POLL_INTERVAL)),
        pollTimeout=float(os.getenv("ARM_POLL_TIMEOUT", DEFAULT_POLL_TIMEOUT)),
        defaultLoginUser=os.getenv("ARM_DEFAULT_LOGIN_USER", DEFAULT_LOGIN_USER),
        defaultLoginPassword=os.getenv("ARM_DEFAULT_LOGIN_PASSWORD"),
        allowedOrigins=get_allowed_origins(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()
