from abc import ABC, abstractmethod

from kubernetes import client
from tenacity import RetryError, Retrying, retry_if_result, stop_after_attempt, wait_exponential

from cce_driver.core.cluster.state import ClusterCredentials
from cce_driver.core.exceptions import BootstrapError
from cce_driver.core.kubernetes.kubernetes_client import KubernetesClient
from cce_driver.core.utils import setup_logger

CATTLE_NAMESPACE = 'cattle-system'
CATTLE_SECRET_NAME = 'cattle-secret'
CLUSTER_ADMIN = 'cluster-admin'
SERVICE_ACCOUNT_NAME = 'kontainer-engine'
CLUSTER_ROLE_BINDING_NAME = 'system-netes-default-clusterRoleBinding'

LEGACY_SERVICE_ACCOUNT_NAME = 'netes-default'
LEGACY_CLUSTER_ROLE_BINDING_NAME = 'netes-default-clusterRoleBinding'


class BaseIdentityProvider(ABC):
    @abstractmethod
    def generate_service_account_token(self, credentials: ClusterCredentials) -> str:
        """Provision a cluster-admin service account and return its bearer token.

        Must be safe to call again when the outcome of a previous call is unknown.
        """

    @abstractmethod
    def remove_legacy_service_account(self, credentials: ClusterCredentials) -> None:
        pass


class KubernetesIdentityProvider(BaseIdentityProvider):
    def __init__(self, token_poll_attempts: int = 5, token_poll_start: float = 0.25):
        self._logger = setup_logger('KubernetesIdentityProvider')
        self._token_poll_attempts = token_poll_attempts
        self._token_poll_start = token_poll_start

    def _client(self, credentials: ClusterCredentials) -> KubernetesClient:
        return KubernetesClient(credentials)

    def generate_service_account_token(self, credentials: ClusterCredentials) -> str:
        k8s = self._client(credentials)

        k8s.create_namespace(CATTLE_NAMESPACE)
        service_account = k8s.get_or_create_service_account(SERVICE_ACCOUNT_NAME, CATTLE_NAMESPACE, CATTLE_SECRET_NAME)

        admin_rules = [
            client.V1PolicyRule(api_groups=['*'], resources=['*'], verbs=['*']),
            client.V1PolicyRule(non_resource_ur_ls=['*'], verbs=['*']),
        ]
        admin_role = k8s.get_or_create_cluster_role(CLUSTER_ADMIN, admin_rules)

        k8s.create_cluster_role_binding(
            CLUSTER_ROLE_BINDING_NAME, admin_role.metadata.name, service_account.metadata.name, CATTLE_NAMESPACE
        )
        k8s.create_service_account_token_secret(CATTLE_SECRET_NAME, CATTLE_NAMESPACE, service_account)

        return self._wait_for_token(k8s)

    def _wait_for_token(self, k8s: KubernetesClient) -> str:
        def _read_token() -> str | None:
            service_account = k8s.read_service_account(SERVICE_ACCOUNT_NAME, CATTLE_NAMESPACE)
            if not service_account.secrets:
                return None

            data = k8s.get_secret(CATTLE_SECRET_NAME, CATTLE_NAMESPACE) or {}
            token = data.get('token')

            return token.decode() if token else None

        retrying = Retrying(
            retry=retry_if_result(lambda token: token is None),
            stop=stop_after_attempt(self._token_poll_attempts),
            wait=wait_exponential(multiplier=self._token_poll_start, min=self._token_poll_start),
        )

        try:
            token = retrying(_read_token)
        except RetryError as e:
            raise BootstrapError('failed to fetch service account token') from e

        self._logger.info(f'Token for service account {CATTLE_NAMESPACE}/{SERVICE_ACCOUNT_NAME} fetched')

        return token

    def remove_legacy_service_account(self, credentials: ClusterCredentials) -> None:
        k8s = self._client(credentials)

        k8s.delete_service_account(LEGACY_SERVICE_ACCOUNT_NAME, CATTLE_NAMESPACE)
        k8s.delete_cluster_role_binding(LEGACY_CLUSTER_ROLE_BINDING_NAME)
