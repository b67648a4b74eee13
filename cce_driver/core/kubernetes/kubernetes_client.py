import base64

from kubernetes import client, config
from kubernetes.client import ApiException

from cce_driver.core.cluster.state import ClusterCredentials
from cce_driver.core.utils import setup_logger


def build_kubeconfig(credentials: ClusterCredentials, cluster_name: str = 'cce') -> dict:
    """Kubeconfig document for the credentials obtained during post-check.

    Certificate fields are kept base64 encoded, as returned by the cluster API.
    """
    user = credentials.username or 'user'

    return {
        'apiVersion': 'v1',
        'kind': 'Config',
        'clusters': [
            {
                'name': cluster_name,
                'cluster': {
                    'server': credentials.endpoint,
                    'certificate-authority-data': credentials.root_ca_certificate,
                },
            }
        ],
        'users': [
            {
                'name': user,
                'user': {
                    'client-certificate-data': credentials.client_certificate,
                    'client-key-data': credentials.client_key,
                },
            }
        ],
        'contexts': [{'name': cluster_name, 'context': {'cluster': cluster_name, 'user': user}}],
        'current-context': cluster_name,
    }


class KubernetesClients:
    def __init__(self, api_client: client.ApiClient):
        self.api = api_client
        self.core = client.CoreV1Api(api_client)  # Namespaces, ServiceAccounts, Secrets
        self.rbac = client.RbacAuthorizationV1Api(api_client)  # ClusterRoles, ClusterRoleBindings


class KubernetesClient:
    def __init__(self, credentials: ClusterCredentials, cluster_name: str = 'cce'):
        self._logger = setup_logger('KubernetesClient')

        configuration = client.Configuration()
        config.load_kube_config_from_dict(
            build_kubeconfig(credentials, cluster_name), client_configuration=configuration
        )

        self._clients = KubernetesClients(client.ApiClient(configuration))

    def create_namespace(self, namespace: str, skip_if_exists: bool = True) -> None:
        try:
            self._clients.core.create_namespace(client.V1Namespace(metadata=client.V1ObjectMeta(name=namespace)))
            self._logger.info(f'Namespace {namespace} created')
        except ApiException as e:
            if e.status == 409 and skip_if_exists:
                self._logger.warning(f'Namespace {namespace} already exists, skipping creation')
                return
            raise

    def get_or_create_service_account(self, name: str, namespace: str, secret_name: str) -> client.V1ServiceAccount:
        try:
            return self._clients.core.read_namespaced_service_account(name, namespace)
        except ApiException as e:
            if e.status != 404:
                raise ValueError(f'error getting service account: {e}') from e

        service_account = client.V1ServiceAccount(
            metadata=client.V1ObjectMeta(name=name),
            secrets=[client.V1ObjectReference(kind='Secret', namespace=namespace, name=secret_name)],
        )

        try:
            created = self._clients.core.create_namespaced_service_account(namespace, service_account)
        except ApiException as e:
            raise ValueError(f'error creating service account: {e}') from e

        self._logger.info(f'Service account {namespace}/{name} created')

        return created

    def read_service_account(self, name: str, namespace: str) -> client.V1ServiceAccount:
        return self._clients.core.read_namespaced_service_account(name, namespace)

    def get_or_create_cluster_role(self, name: str, rules: list[client.V1PolicyRule]) -> client.V1ClusterRole:
        try:
            return self._clients.rbac.read_cluster_role(name)
        except ApiException:
            pass

        try:
            return self._clients.rbac.create_cluster_role(
                client.V1ClusterRole(metadata=client.V1ObjectMeta(name=name), rules=rules)
            )
        except ApiException as e:
            raise ValueError(f'error creating admin role: {e}') from e

    def create_cluster_role_binding(self, name: str, role_name: str, service_account: str, namespace: str) -> None:
        binding = client.V1ClusterRoleBinding(
            metadata=client.V1ObjectMeta(name=name),
            subjects=[client.RbacV1Subject(kind='ServiceAccount', name=service_account, namespace=namespace)],
            role_ref=client.V1RoleRef(kind='ClusterRole', name=role_name, api_group='rbac.authorization.k8s.io'),
        )

        try:
            self._clients.rbac.create_cluster_role_binding(binding)
        except ApiException as e:
            if e.status != 409:
                raise ValueError(f'error creating role bindings: {e}') from e

    def create_service_account_token_secret(self, name: str, namespace: str, service_account: client.V1ServiceAccount) -> None:
        secret = client.V1Secret(
            metadata=client.V1ObjectMeta(
                name=name,
                namespace=namespace,
                annotations={
                    'kubernetes.io/service-account.name': service_account.metadata.name,
                    'kubernetes.io/service-account.uid': service_account.metadata.uid or '',
                },
            ),
            type='kubernetes.io/service-account-token',
        )

        try:
            self._clients.core.create_namespaced_secret(namespace, secret)
        except ApiException as e:
            if e.status != 409:
                raise ValueError(f'error creating service secret: {e}') from e

    def get_secret(self, secret_name: str, namespace: str) -> dict[str, bytes] | None:
        try:
            secret = self._clients.core.read_namespaced_secret(secret_name, namespace)
            return {k: base64.b64decode(v) for k, v in secret.data.items()} if secret.data is not None else None
        except ApiException as e:
            if e.status == 404:
                msg = f"Secret '{secret_name}' not found in namespace '{namespace}'."
            else:
                msg = f"Error retrieving secret '{secret_name}': {e}"

            self._logger.exception(msg, exc_info=False)
            raise ValueError(msg) from e

    def delete_service_account(self, name: str, namespace: str) -> None:
        try:
            self._clients.core.delete_namespaced_service_account(name, namespace)
        except ApiException as e:
            if e.status != 404:
                raise
            self._logger.warning(f'Service account {namespace}/{name} not found, nothing to delete')

    def delete_cluster_role_binding(self, name: str) -> None:
        try:
            self._clients.rbac.delete_cluster_role_binding(name)
        except ApiException as e:
            if e.status != 404:
                raise
            self._logger.warning(f'Cluster role binding {name} not found, nothing to delete')
