from dataclasses import dataclass, field
from enum import StrEnum

from cce_driver.core.cluster.configuration import ElasticIPOptions, NodeConfiguration


class ResourceStatus(StrEnum):
    PENDING = 'pending'
    READY = 'ready'
    ERROR = 'error'


@dataclass(frozen=True)
class SubnetStatus:
    id: str
    # ID of the underlying neutron subnet, used for load balancer VIPs and members
    network_subnet_id: str
    status: ResourceStatus


@dataclass(frozen=True)
class ElasticIP:
    id: str
    public_address: str


@dataclass(frozen=True)
class NodeStatus:
    node_id: str
    status: ResourceStatus
    private_ip: str = ''


@dataclass(frozen=True)
class ClusterStatus:
    cluster_id: str
    status: ResourceStatus
    phase: str = ''


@dataclass(frozen=True)
class ClusterCertificate:
    endpoint: str
    root_ca_certificate: str
    client_certificate: str
    client_key: str
    username: str


@dataclass(frozen=True)
class CreateClusterRequest:
    name: str
    description: str
    cluster_type: str
    cluster_version: str
    flavor: str
    vpc_id: str
    subnet_id: str
    highway_subnet_id: str
    container_network_mode: str
    container_network_cidr: str
    authentication_mode: str
    billing_mode: int
    floating_ip: str = ''
    authenticating_proxy_ca: str = ''
    labels: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class CreateNodesRequest:
    cluster_id: str
    node_config: NodeConfiguration
    count: int


@dataclass(frozen=True)
class CreateElasticIPRequest:
    options: ElasticIPOptions
    name: str = ''
