from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from cce_driver.core.cluster.configuration import AuthInfo, ElasticIPOptions, NodeConfiguration
from cce_driver.core.exceptions import ConsistencyError


class Ownership(StrEnum):
    ABSENT = 'absent'
    REFERENCED = 'referenced'
    OWNED = 'owned'


class TrackedResource(BaseModel):
    """Identifier of a cloud resource tagged with who is responsible for it.

    Only ``owned`` resources were created by this driver and may be deleted by it.
    Referenced resources were supplied by the user and are never touched.
    """

    id: str = ''
    ownership: Ownership = Ownership.ABSENT

    @classmethod
    def owned(cls, resource_id: str) -> TrackedResource:
        return cls(id=resource_id, ownership=Ownership.OWNED)

    @classmethod
    def referenced(cls, resource_id: str) -> TrackedResource:
        return cls(id=resource_id, ownership=Ownership.REFERENCED if resource_id else Ownership.ABSENT)

    @property
    def is_owned(self) -> bool:
        return self.ownership == Ownership.OWNED and bool(self.id)


class LoadBalancerRecord(BaseModel):
    lb_id: str = ''
    listener_id: str = ''
    pool_id: str = ''
    member_ids: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.lb_id or self.listener_id or self.pool_id or self.member_ids)


class ClusterCredentials(BaseModel):
    model_config = ConfigDict(frozen=True)

    endpoint: str = ''
    root_ca_certificate: str = ''
    client_certificate: str = ''
    client_key: str = ''
    username: str = ''
    service_account_token: str = ''


class ClusterState(BaseModel):
    # identity
    cluster_name: str
    display_name: str = ''
    description: str = ''
    project_name: str = ''
    region: str = ''
    cluster_type: str = 'VirtualMachine'
    cluster_flavor: str = 'cce.s2.small'
    cluster_version: str = ''
    cluster_billing_mode: int = 0
    cluster_labels: dict[str, str] = Field(default_factory=dict)
    auth_info: AuthInfo = Field(default_factory=AuthInfo)
    auth_mode: str = 'rbac'
    authenticating_proxy_ca: str = ''

    # networking
    vpc_name: str = ''
    vpc: TrackedResource = Field(default_factory=TrackedResource)
    subnet_name: str = ''
    subnet: TrackedResource = Field(default_factory=TrackedResource)
    highway_subnet_name: str = ''
    highway_subnet: TrackedResource = Field(default_factory=TrackedResource)
    container_network_mode: str = 'overlay_l2'
    container_network_cidr: str = '172.16.0.0/16'

    # floating IPs are tracked by their public address
    use_floating_ip: bool = True
    cluster_eip: TrackedResource = Field(default_factory=TrackedResource)
    cluster_eip_options: ElasticIPOptions = Field(default_factory=ElasticIPOptions)

    # load balancer
    create_lb: bool = False
    lb_eip: TrackedResource = Field(default_factory=TrackedResource)
    lb_eip_options: ElasticIPOptions = Field(default_factory=ElasticIPOptions)
    app_protocol: str = 'TCP'
    app_port: int = 80
    load_balancer: LoadBalancerRecord | None = None

    # cluster and node pool
    cluster: TrackedResource = Field(default_factory=TrackedResource)
    node_config: NodeConfiguration = Field(default_factory=NodeConfiguration)
    node_count: int = 0
    node_ids: list[str] = Field(default_factory=list)

    credentials: ClusterCredentials | None = None

    @property
    def cluster_id(self) -> str:
        return self.cluster.id

    @property
    def managed_resources(self) -> dict[str, bool]:
        return {
            'vpc': self.vpc.is_owned,
            'subnet': self.subnet.is_owned,
            'highway_subnet': self.highway_subnet.is_owned,
            'cluster': self.cluster.is_owned,
            'nodes': self.cluster.is_owned and bool(self.node_ids),
            'cluster_eip': self.cluster_eip.is_owned,
            'lb_eip': self.lb_eip.is_owned,
        }

    def check_node_invariant(self) -> None:
        if len(self.node_ids) != self.node_count:
            raise ConsistencyError(
                f'cluster {self.cluster_name} tracks {len(self.node_ids)} node ids for node count {self.node_count}'
            )

    def to_json(self) -> str:
        return self.model_dump_json()

    @classmethod
    def from_json(cls, data: str) -> ClusterState:
        return cls.model_validate_json(data)
