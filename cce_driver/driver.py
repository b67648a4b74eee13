import asyncio
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

import yaml

from cce_driver.core.cluster.info import ClusterInfo, state_from_info, store_state
from cce_driver.core.cluster.state import ClusterCredentials, ClusterState, TrackedResource
from cce_driver.core.config import (
    BOOTSTRAP_RETRIES,
    BOOTSTRAP_RETRY_DELAY,
    DEFAULT_PROVIDER,
    STATUS_POLL_ATTEMPTS,
    STATUS_POLL_INTERVAL,
)
from cce_driver.core.exceptions import ResourceNotFoundError, annotate_phase
from cce_driver.core.kubernetes.identity import BaseIdentityProvider, KubernetesIdentityProvider
from cce_driver.core.kubernetes.kubernetes_client import build_kubeconfig
from cce_driver.core.options import CREATE_FLAGS, UPDATE_FLAGS, DriverFlag, DriverOptions, state_from_options
from cce_driver.core.providers.base_provider import BaseCloudClient
from cce_driver.core.providers.provider_factory import ProviderFactory
from cce_driver.core.provisioning.bootstrap import ServiceAccountBootstrap
from cce_driver.core.provisioning.cleanup import CleanupEngine
from cce_driver.core.provisioning.cluster import ClusterProvisioner
from cce_driver.core.provisioning.load_balancer import LoadBalancerProvisioner
from cce_driver.core.provisioning.network import NetworkProvisioner
from cce_driver.core.provisioning.orchestrator import CreationOrchestrator
from cce_driver.core.provisioning.polling import wait_for_deletion
from cce_driver.core.provisioning.resize import ResizeEngine
from cce_driver.core.utils import setup_logger


class Capability(StrEnum):
    GET_VERSION = 'get_version'
    GET_CLUSTER_SIZE = 'get_cluster_size'
    SET_CLUSTER_SIZE = 'set_cluster_size'


@dataclass(frozen=True)
class K8sCapabilities:
    l4_load_balancer_enabled: bool = False
    node_pool_scaling_supported: bool = False


class CCEDriver:
    """Host-facing driver managing the lifecycle of CCE clusters.

    Every call restores ``ClusterState`` from the host record, works on the
    in-memory state and writes it back, on failures too.
    """

    def __init__(
        self,
        client_factory: Callable[[ClusterState], BaseCloudClient] | None = None,
        identity: BaseIdentityProvider | None = None,
        provider: str = DEFAULT_PROVIDER,
        poll_attempts: int = STATUS_POLL_ATTEMPTS,
        poll_interval: float = STATUS_POLL_INTERVAL,
        bootstrap_attempts: int = BOOTSTRAP_RETRIES,
        bootstrap_delay: float = BOOTSTRAP_RETRY_DELAY,
    ):
        self._logger = setup_logger('CCEDriver')
        self._client_factory = client_factory or self._registered_client
        self._identity = identity or KubernetesIdentityProvider()
        self._provider = provider
        self._poll_attempts = poll_attempts
        self._poll_interval = poll_interval
        self._bootstrap_attempts = bootstrap_attempts
        self._bootstrap_delay = bootstrap_delay

    def _registered_client(self, state: ClusterState) -> BaseCloudClient:
        return ProviderFactory.get_provider(self._provider, state.auth_info, state.region)

    def _orchestrator(self, client: BaseCloudClient) -> CreationOrchestrator:
        return CreationOrchestrator(
            network=NetworkProvisioner(client, self._poll_attempts, self._poll_interval),
            cluster=ClusterProvisioner(client, self._poll_attempts, self._poll_interval),
            load_balancer=LoadBalancerProvisioner(client),
            cleanup=CleanupEngine(client, self._poll_attempts, self._poll_interval),
        )

    def get_driver_create_options(self) -> dict[str, DriverFlag]:
        return dict(CREATE_FLAGS)

    def get_driver_update_options(self) -> dict[str, DriverFlag]:
        return dict(UPDATE_FLAGS)

    async def create(self, options: DriverOptions, info: ClusterInfo | None = None) -> ClusterInfo:
        state = state_from_options(options)
        info = info if info is not None else ClusterInfo()

        self._logger.info(f'Creating cluster {state.cluster_name}')
        client = self._client_factory(state)

        try:
            await self._orchestrator(client).create(state)
        finally:
            store_state(info, state)

        return info

    async def update(self, info: ClusterInfo, options: DriverOptions) -> ClusterInfo:
        state = state_from_info(info)
        client = self._client_factory(state)

        node_count = options.get('node-count', flags=UPDATE_FLAGS)
        description = options.get('description', flags=UPDATE_FLAGS)

        self._logger.info(f'Updating cluster {state.cluster_name}')

        try:
            if node_count is not None and node_count != state.node_count:
                await ResizeEngine(client).resize(state, node_count)

            if description is not None and description != state.description:
                with annotate_phase('update cluster description'):
                    await asyncio.to_thread(client.update_cluster_description, state.cluster_id, description)
                state.description = description
        finally:
            store_state(info, state)

        return info

    async def remove(self, info: ClusterInfo) -> None:
        state = state_from_info(info)
        client = self._client_factory(state)

        self._logger.info(f'Removing cluster {state.cluster_name}')

        try:
            if state.cluster_id:
                await self._remove_cluster(client, state)

            await CleanupEngine(client, self._poll_attempts, self._poll_interval).cleanup(state)
        finally:
            store_state(info, state)

        self._logger.info(f'Cluster {state.cluster_name} removed')

    async def _remove_cluster(self, client: BaseCloudClient, state: ClusterState) -> None:
        cluster_id = state.cluster_id

        if state.node_ids:
            with annotate_phase('delete nodes'):
                try:
                    await asyncio.to_thread(client.delete_nodes, cluster_id, list(state.node_ids))
                except ResourceNotFoundError:
                    self._logger.warning(f'Nodes of cluster {cluster_id} already gone')
            state.node_ids = []
            state.node_count = 0

        with annotate_phase('delete cluster'):
            try:
                await asyncio.to_thread(client.delete_cluster, cluster_id)
            except ResourceNotFoundError:
                self._logger.warning(f'Cluster {cluster_id} already gone')

        await wait_for_deletion(
            lambda: client.get_cluster(cluster_id),
            f'cluster {cluster_id}',
            attempts=self._poll_attempts,
            interval=self._poll_interval,
        )

        state.cluster = TrackedResource()

    async def get_cluster_size(self, info: ClusterInfo) -> int:
        return state_from_info(info).node_count

    async def set_cluster_size(self, info: ClusterInfo, count: int) -> ClusterInfo:
        state = state_from_info(info)
        client = self._client_factory(state)

        try:
            await ResizeEngine(client).resize(state, count)
        finally:
            store_state(info, state)

        return info

    async def post_check(self, info: ClusterInfo) -> ClusterInfo:
        state = state_from_info(info)
        client = self._client_factory(state)

        with annotate_phase('get cluster'):
            cluster = await asyncio.to_thread(client.get_cluster, state.cluster_id)

        with annotate_phase('get cluster certificate'):
            cert = await asyncio.to_thread(client.get_cluster_certificate, state.cluster_id)

        credentials = ClusterCredentials(
            endpoint=cert.endpoint,
            root_ca_certificate=cert.root_ca_certificate,
            client_certificate=cert.client_certificate,
            client_key=cert.client_key,
            username=cert.username,
        )

        info.status = cluster.phase
        info.endpoint = credentials.endpoint
        info.root_ca_certificate = credentials.root_ca_certificate
        info.client_certificate = credentials.client_certificate
        info.client_key = credentials.client_key
        info.username = credentials.username

        bootstrap = ServiceAccountBootstrap(self._identity, self._bootstrap_attempts, self._bootstrap_delay)
        token = await bootstrap.provision_token(credentials)

        info.service_account_token = token
        state.credentials = credentials.model_copy(update={'service_account_token': token})
        store_state(info, state)

        self._logger.info(f'Post-check of cluster {state.cluster_name} finished')

        return info

    async def get_version(self, info: ClusterInfo) -> str:
        return state_from_info(info).cluster_version

    async def set_version(self, info: ClusterInfo, version: str) -> None:
        raise NotImplementedError('setting version is not implemented')

    def get_capabilities(self) -> set[Capability]:
        return {Capability.GET_VERSION, Capability.GET_CLUSTER_SIZE, Capability.SET_CLUSTER_SIZE}

    def get_k8s_capabilities(self) -> K8sCapabilities:
        return K8sCapabilities()

    async def remove_legacy_service_account(self, info: ClusterInfo) -> None:
        state = state_from_info(info)

        if state.credentials is None:
            self._logger.warning(f'Cluster {state.cluster_name} has no credentials, nothing to remove')
            return

        await asyncio.to_thread(self._identity.remove_legacy_service_account, state.credentials)

    def get_kubeconfig(self, info: ClusterInfo) -> str:
        state = state_from_info(info)

        if state.credentials is None:
            raise ResourceNotFoundError('credentials of cluster', state.cluster_name)

        return yaml.safe_dump(build_kubeconfig(state.credentials, state.cluster_name), sort_keys=False)
