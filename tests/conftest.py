import threading

import pytest

from cce_driver.core.cluster.configuration import AuthInfo
from cce_driver.core.cluster.state import ClusterState
from cce_driver.core.exceptions import ResourceNotFoundError
from cce_driver.core.providers.base_provider import BaseCloudClient
from cce_driver.core.providers.models import (
    ClusterCertificate,
    ClusterStatus,
    CreateClusterRequest,
    CreateElasticIPRequest,
    CreateNodesRequest,
    ElasticIP,
    NodeStatus,
    ResourceStatus,
    SubnetStatus,
)


class FakeCloudClient(BaseCloudClient):
    """In-memory cloud recording every call. Failures are injected per method name."""

    name = 'fake'

    def __init__(self, auth_info: AuthInfo | None = None, region: str = 'eu-de'):
        super().__init__(auth_info or AuthInfo(), region)

        self._lock = threading.Lock()
        self._counter = 0
        self._failures: dict[str, list] = {}

        self.calls: list[tuple] = []
        self.vpcs: dict[str, str] = {}
        self.subnets: dict[str, tuple[str, str]] = {}
        self.eips: dict[str, CreateElasticIPRequest] = {}
        self.clusters: dict[str, CreateClusterRequest] = {}
        self.descriptions: dict[str, str] = {}
        self.nodes: dict[str, list[str]] = {}
        self.node_ips: dict[str, str] = {}
        self.load_balancers: set[str] = set()
        self.listeners: set[str] = set()
        self.pools: set[str] = set()
        self.members: dict[str, str] = {}

    def fail(self, method: str, error: Exception, times: int | None = None) -> None:
        self._failures[method] = [error, times]

    def called(self, method: str) -> list[tuple]:
        return [tuple(args) for name, *args in self.calls if name == method]

    def _record(self, method: str, *args) -> None:
        with self._lock:
            self.calls.append((method, *args))

            failure = self._failures.get(method)
            if failure is None:
                return

            error, times = failure
            if times is not None:
                if times <= 0:
                    return
                failure[1] = times - 1

        raise error

    def _next_id(self, prefix: str) -> str:
        with self._lock:
            self._counter += 1
            return f'{prefix}-{self._counter}'

    # network
    def find_vpc(self, name: str) -> str:
        self._record('find_vpc', name)
        return next((vpc_id for vpc_id, vpc_name in self.vpcs.items() if vpc_name == name), '')

    def create_vpc(self, name: str) -> str:
        self._record('create_vpc', name)
        vpc_id = self._next_id('vpc')
        self.vpcs[vpc_id] = name
        return vpc_id

    def get_vpc_status(self, vpc_id: str) -> ResourceStatus:
        self._record('get_vpc_status', vpc_id)
        if vpc_id not in self.vpcs:
            raise ResourceNotFoundError('VPC', vpc_id)
        return ResourceStatus.READY

    def delete_vpc(self, vpc_id: str) -> None:
        self._record('delete_vpc', vpc_id)
        if self.vpcs.pop(vpc_id, None) is None:
            raise ResourceNotFoundError('VPC', vpc_id)

    def find_subnet(self, vpc_id: str, name: str) -> str:
        self._record('find_subnet', vpc_id, name)
        return next((x for x, (vpc, subnet_name) in self.subnets.items() if (vpc, subnet_name) == (vpc_id, name)), '')

    def create_subnet(self, vpc_id: str, name: str) -> str:
        self._record('create_subnet', vpc_id, name)
        subnet_id = self._next_id('subnet')
        self.subnets[subnet_id] = (vpc_id, name)
        return subnet_id

    def get_subnet_status(self, subnet_id: str) -> SubnetStatus:
        self._record('get_subnet_status', subnet_id)
        if subnet_id not in self.subnets:
            raise ResourceNotFoundError('subnet', subnet_id)
        return SubnetStatus(id=subnet_id, network_subnet_id=f'net-{subnet_id}', status=ResourceStatus.READY)

    def delete_subnet(self, vpc_id: str, subnet_id: str) -> None:
        self._record('delete_subnet', vpc_id, subnet_id)
        if self.subnets.pop(subnet_id, None) is None:
            raise ResourceNotFoundError('subnet', subnet_id)

    # compute
    def create_eip(self, request: CreateElasticIPRequest) -> ElasticIP:
        self._record('create_eip', request)
        eip_id = self._next_id('eip')
        address = f'80.158.0.{eip_id.split("-")[1]}'
        self.eips[address] = request
        return ElasticIP(id=eip_id, public_address=address)

    def get_eip_status(self, public_address: str) -> ResourceStatus:
        self._record('get_eip_status', public_address)
        return ResourceStatus.READY

    def delete_floating_ip(self, public_address: str) -> None:
        self._record('delete_floating_ip', public_address)
        if self.eips.pop(public_address, None) is None:
            raise ResourceNotFoundError('floating IP', public_address)

    # cluster
    def create_cluster(self, request: CreateClusterRequest) -> str:
        self._record('create_cluster', request)
        cluster_id = self._next_id('cluster')
        self.clusters[cluster_id] = request
        self.descriptions[cluster_id] = request.description
        self.nodes[cluster_id] = []
        return cluster_id

    def get_cluster(self, cluster_id: str) -> ClusterStatus:
        self._record('get_cluster', cluster_id)
        if cluster_id not in self.clusters:
            raise ResourceNotFoundError('cluster', cluster_id)
        return ClusterStatus(cluster_id=cluster_id, status=ResourceStatus.READY, phase='Available')

    def update_cluster_description(self, cluster_id: str, description: str) -> None:
        self._record('update_cluster_description', cluster_id, description)
        self.descriptions[cluster_id] = description

    def delete_cluster(self, cluster_id: str) -> None:
        self._record('delete_cluster', cluster_id)
        if self.clusters.pop(cluster_id, None) is None:
            raise ResourceNotFoundError('cluster', cluster_id)
        self.nodes.pop(cluster_id, None)

    def get_cluster_certificate(self, cluster_id: str) -> ClusterCertificate:
        self._record('get_cluster_certificate', cluster_id)
        return ClusterCertificate(
            endpoint='https://192.168.0.10:5443',
            root_ca_certificate='Y2EtZGF0YQ==',
            client_certificate='Y2VydC1kYXRh',
            client_key='a2V5LWRhdGE=',
            username='user',
        )

    def create_nodes(self, request: CreateNodesRequest) -> list[str]:
        self._record('create_nodes', request)
        node_ids = [self._next_id('node') for _ in range(request.count)]
        for node_id in node_ids:
            self.node_ips[node_id] = f'192.168.1.{node_id.split("-")[1]}'
        self.nodes.setdefault(request.cluster_id, []).extend(node_ids)
        return node_ids

    def get_nodes_status(self, cluster_id: str, node_ids: list[str]) -> list[NodeStatus]:
        self._record('get_nodes_status', cluster_id, list(node_ids))
        return [
            NodeStatus(node_id=x, status=ResourceStatus.READY, private_ip=self.node_ips[x])
            for x in node_ids if x in self.nodes.get(cluster_id, [])
        ]

    def delete_nodes(self, cluster_id: str, node_ids: list[str]) -> None:
        self._record('delete_nodes', cluster_id, list(node_ids))
        if cluster_id not in self.nodes:
            raise ResourceNotFoundError('cluster', cluster_id)
        self.nodes[cluster_id] = [x for x in self.nodes[cluster_id] if x not in node_ids]

    # load balancer
    def create_load_balancer(self, vip_subnet_id: str, description: str) -> str:
        self._record('create_load_balancer', vip_subnet_id, description)
        lb_id = self._next_id('lb')
        self.load_balancers.add(lb_id)
        return lb_id

    def create_listener(self, lb_id: str, protocol: str, port: int, description: str) -> str:
        self._record('create_listener', lb_id, protocol, port, description)
        listener_id = self._next_id('listener')
        self.listeners.add(listener_id)
        return listener_id

    def create_pool(self, listener_id: str, protocol: str, lb_method: str) -> str:
        self._record('create_pool', listener_id, protocol, lb_method)
        pool_id = self._next_id('pool')
        self.pools.add(pool_id)
        return pool_id

    def create_member(self, pool_id: str, address: str, port: int, subnet_id: str) -> str:
        self._record('create_member', pool_id, address, port, subnet_id)
        member_id = self._next_id('member')
        self.members[member_id] = address
        return member_id

    def delete_member(self, pool_id: str, member_id: str) -> None:
        self._record('delete_member', pool_id, member_id)
        if self.members.pop(member_id, None) is None:
            raise ResourceNotFoundError('LB member', member_id)

    def delete_pool(self, pool_id: str) -> None:
        self._record('delete_pool', pool_id)
        self.pools.discard(pool_id)

    def delete_listener(self, listener_id: str) -> None:
        self._record('delete_listener', listener_id)
        self.listeners.discard(listener_id)

    def delete_load_balancer(self, lb_id: str) -> None:
        self._record('delete_load_balancer', lb_id)
        self.load_balancers.discard(lb_id)


@pytest.fixture
def fake_client():
    return FakeCloudClient()


@pytest.fixture
def cluster_state():
    return ClusterState(
        cluster_name='test-cluster',
        description='test cluster',
        region='eu-de',
        vpc_name='test-vpc',
        subnet_name='test-subnet',
        node_count=2,
    )
