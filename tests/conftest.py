"""Shared pytest fixtures for provisioning tests."""
import pytest

from armnode.config import Settings
from armnode.models import LoginCredentials
from armnode.services.credential_store import CredentialStore

from fakes import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store():
    return CredentialStore()


@pytest.fixture
def default_credentials():
    return LoginCredentials(username="azureuser", password="Default#Pass1")


@pytest.fixture
def settings():
    return Settings(
        subscriptionId="sub",
        tenantId="tenant",
        clientId="client",
        clientSecret="secret",
        resourceGroup="rg",
        pollInterval=3,
        pollTimeout=800,
        defaultLoginUser="azureuser",
        defaultLoginPassword="Default#Pass1",
    )
