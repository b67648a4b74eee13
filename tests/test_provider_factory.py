import pytest

from conftest import FakeCloudClient

from cce_driver.core.cluster.configuration import AuthInfo
from cce_driver.core.providers.provider_factory import ProviderFactory


class AuthenticatingClient(FakeCloudClient):
    name = 'authenticating'

    def authenticate(self) -> None:
        self.authenticated = True


@pytest.fixture(autouse=True)
def clean_registry():
    ProviderFactory._registry.clear()
    yield


class TestProviderFactory:
    def test_register_provider(self):
        ProviderFactory.register_provider('Fake', FakeCloudClient)

        assert ProviderFactory._registry['fake'] is FakeCloudClient
        assert ProviderFactory.get_registered_providers() == ['fake']

    def test_register_provider_already_registered(self):
        ProviderFactory.register_provider('fake', FakeCloudClient)

        with pytest.raises(ValueError, match="Provider 'fake' is already registered."):
            ProviderFactory.register_provider('fake', AuthenticatingClient)

    def test_get_provider(self):
        ProviderFactory.register_provider('authenticating', AuthenticatingClient)
        auth_info = AuthInfo(username='admin', project_name='eu-de_project')

        client = ProviderFactory.get_provider('Authenticating', auth_info, 'eu-nl')

        assert isinstance(client, AuthenticatingClient)
        assert client.authenticated
        assert client.auth_info is auth_info
        assert client.region == 'eu-nl'

    def test_get_provider_unknown(self):
        with pytest.raises(ValueError, match='Unknown provider: opentelekomcloud'):
            ProviderFactory.get_provider('opentelekomcloud', AuthInfo(), 'eu-de')
