"""
Resource Registry for the deployment template builder

Maps ARM resource types to the builder methods that produce their
ResourceDefinition. The registration order is the order resources are
listed in the template (storage -> network -> public IP -> NIC -> VM).
"""

from typing import Dict, Callable, List

from armnode.models import (
    NETWORK_INTERFACES,
    PUBLIC_IP_ADDRESSES,
    STORAGE_ACCOUNTS,
    VIRTUAL_MACHINES,
    VIRTUAL_NETWORKS,
    ResourceDefinition,
)


class ResourceRegistry:
    """Registry for resource definition factories"""

    def __init__(self, builder_instance):
        """
        Initialize the registry with references to builder instance methods.

        Args:
            builder_instance: An instance of DeploymentTemplateBuilder
        """
        self.builder = builder_instance

        self._resource_registry: Dict[str, Callable[[], ResourceDefinition]] = {
            STORAGE_ACCOUNTS: self.builder.storage_resource,
            VIRTUAL_NETWORKS: self.builder.virtual_network_resource,
            PUBLIC_IP_ADDRESSES: self.builder.public_ip_resource,
            NETWORK_INTERFACES: self.builder.network_interface_resource,
            VIRTUAL_MACHINES: self.builder.virtual_machine_resource,
        }

    def get_factory(self, resource_type: str) -> Callable[[], ResourceDefinition]:
        """
        Get the factory for a given resource type.

        Raises:
            ValueError: If the type is not supported
        """
        factory = self._resource_registry.get(resource_type)
        if factory:
            return factory
        supported = ", ".join(self._resource_registry.keys())
        raise ValueError(
            f"Unsupported resource type: {resource_type}. "
            f"Supported types: {supported}"
        )

    def get_supported_types(self) -> List[str]:
        return list(self._resource_registry.keys())
