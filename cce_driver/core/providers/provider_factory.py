from typing import ClassVar

from cce_driver.core.cluster.configuration import AuthInfo
from cce_driver.core.providers.base_provider import BaseCloudClient


class ProviderFactory:
    _registry: ClassVar[dict[str, type[BaseCloudClient]]] = {}

    @classmethod
    def register_provider(cls, name: str, client_class: type[BaseCloudClient]) -> None:
        name = name.lower()

        if name in cls._registry:
            raise ValueError(f"Provider '{name}' is already registered.")

        cls._registry[name] = client_class

    @classmethod
    def get_registered_providers(cls) -> list[str]:
        return list(cls._registry.keys())

    @classmethod
    def get_provider(cls, provider_type: str, auth_info: AuthInfo, region: str) -> BaseCloudClient:
        client_class = cls._registry.get(provider_type.lower())

        if client_class is None:
            raise ValueError(f'Unknown provider: {provider_type}')

        client = client_class(auth_info, region)
        client.authenticate()

        return client
