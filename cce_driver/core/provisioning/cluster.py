import asyncio
from dataclasses import dataclass, field

from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_after_attempt, wait_fixed

from cce_driver.core.cluster.state import ClusterState
from cce_driver.core.config import STATUS_POLL_ATTEMPTS, STATUS_POLL_INTERVAL
from cce_driver.core.exceptions import ResourceTimeoutError, annotate_phase
from cce_driver.core.providers.base_provider import BaseCloudClient
from cce_driver.core.providers.models import CreateClusterRequest, CreateNodesRequest, NodeStatus
from cce_driver.core.provisioning.handoff import Handoff
from cce_driver.core.provisioning.polling import wait_for_status
from cce_driver.core.utils import setup_logger


@dataclass
class ClusterResult:
    cluster_id: str = ''
    node_ids: list[str] = field(default_factory=list)
    node_ips: list[str] = field(default_factory=list)


@dataclass
class ClusterOutputs:
    cluster_id: Handoff[str]
    node_ids: Handoff[list[str]]
    node_ips: Handoff[list[str]]

    @classmethod
    def create(cls) -> 'ClusterOutputs':
        return cls(cluster_id=Handoff('cluster id'), node_ids=Handoff('node ids'), node_ips=Handoff('node IPs'))

    def publish(self, result: ClusterResult) -> None:
        self.cluster_id.publish(result.cluster_id)
        self.node_ids.publish(list(result.node_ids))
        self.node_ips.publish(list(result.node_ips))


class ClusterProvisioner:
    def __init__(
        self,
        client: BaseCloudClient,
        poll_attempts: int = STATUS_POLL_ATTEMPTS,
        poll_interval: float = STATUS_POLL_INTERVAL,
    ):
        self._logger = setup_logger('ClusterProvisioner')
        self._client = client
        self._poll_attempts = poll_attempts
        self._poll_interval = poll_interval

    @staticmethod
    def _build_request(state: ClusterState) -> CreateClusterRequest:
        return CreateClusterRequest(
            name=state.cluster_name,
            description=state.description,
            cluster_type=state.cluster_type,
            cluster_version=state.cluster_version,
            flavor=state.cluster_flavor,
            vpc_id=state.vpc.id,
            subnet_id=state.subnet.id,
            highway_subnet_id=state.highway_subnet.id,
            container_network_mode=state.container_network_mode,
            container_network_cidr=state.container_network_cidr,
            authentication_mode=state.auth_mode,
            billing_mode=state.cluster_billing_mode,
            floating_ip=state.cluster_eip.id,
            authenticating_proxy_ca=state.authenticating_proxy_ca,
            labels=dict(state.cluster_labels),
        )

    async def run(self, state: ClusterState, outputs: ClusterOutputs) -> None:
        """Create the cluster and publish its results, including partial ones on failure."""
        result = ClusterResult()

        try:
            await self._create(state, result)
        finally:
            outputs.publish(result)

    async def create_cluster(self, state: ClusterState) -> ClusterResult:
        result = ClusterResult()
        await self._create(state, result)

        return result

    async def _create(self, state: ClusterState, result: ClusterResult) -> None:
        self._logger.info(f'Creating cluster {state.cluster_name}')

        with annotate_phase('create cluster'):
            result.cluster_id = await asyncio.to_thread(self._client.create_cluster, self._build_request(state))

        cluster_id = result.cluster_id
        self._logger.info(f'Cluster {state.cluster_name} submitted as {cluster_id}, waiting until it is available')

        await wait_for_status(
            lambda: self._client.get_cluster(cluster_id).status,
            f'cluster {cluster_id}',
            attempts=self._poll_attempts,
            interval=self._poll_interval,
        )

        with annotate_phase('create nodes'):
            request = CreateNodesRequest(cluster_id=cluster_id, node_config=state.node_config, count=state.node_count)
            result.node_ids = await asyncio.to_thread(self._client.create_nodes, request)

        self._logger.info(f'Created {len(result.node_ids)} nodes for cluster {cluster_id}')

        with annotate_phase('get nodes status'):
            result.node_ips = await self._wait_for_node_ips(cluster_id, result.node_ids)

        self._logger.info(f'Cluster {cluster_id} nodes are up: {result.node_ips}')

    async def _wait_for_node_ips(self, cluster_id: str, node_ids: list[str]) -> list[str]:
        if not node_ids:
            return []

        def _fetch() -> dict[str, NodeStatus]:
            statuses = self._client.get_nodes_status(cluster_id, node_ids)
            return {x.node_id: x for x in statuses}

        def _missing_ips(statuses: dict[str, NodeStatus]) -> bool:
            return any(node_id not in statuses or not statuses[node_id].private_ip for node_id in node_ids)

        retrying = AsyncRetrying(
            retry=retry_if_result(_missing_ips),
            stop=stop_after_attempt(self._poll_attempts),
            wait=wait_fixed(self._poll_interval),
        )

        try:
            statuses = await retrying(asyncio.to_thread, _fetch)
        except RetryError as e:
            raise ResourceTimeoutError(
                'get nodes status', f'nodes of cluster {cluster_id} did not report private IPs'
            ) from e

        return [statuses[node_id].private_ip for node_id in node_ids]
