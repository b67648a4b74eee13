from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from cce_driver.core.utils import setup_logger

if TYPE_CHECKING:
    from cce_driver.core.cluster.configuration import AuthInfo
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


class NetworkAPI(ABC):
    @abstractmethod
    def find_vpc(self, name: str) -> str:
        """Return the ID of the VPC with the given name, or an empty string."""

    @abstractmethod
    def create_vpc(self, name: str) -> str:
        pass

    @abstractmethod
    def get_vpc_status(self, vpc_id: str) -> ResourceStatus:
        pass

    @abstractmethod
    def delete_vpc(self, vpc_id: str) -> None:
        pass

    @abstractmethod
    def find_subnet(self, vpc_id: str, name: str) -> str:
        """Return the ID of the subnet with the given name inside the VPC, or an empty string."""

    @abstractmethod
    def create_subnet(self, vpc_id: str, name: str) -> str:
        pass

    @abstractmethod
    def get_subnet_status(self, subnet_id: str) -> SubnetStatus:
        pass

    @abstractmethod
    def delete_subnet(self, vpc_id: str, subnet_id: str) -> None:
        pass


class ComputeAPI(ABC):
    @abstractmethod
    def create_eip(self, request: CreateElasticIPRequest) -> ElasticIP:
        pass

    @abstractmethod
    def get_eip_status(self, public_address: str) -> ResourceStatus:
        pass

    @abstractmethod
    def delete_floating_ip(self, public_address: str) -> None:
        pass


class ClusterAPI(ABC):
    @abstractmethod
    def create_cluster(self, request: CreateClusterRequest) -> str:
        pass

    @abstractmethod
    def get_cluster(self, cluster_id: str) -> ClusterStatus:
        pass

    @abstractmethod
    def update_cluster_description(self, cluster_id: str, description: str) -> None:
        pass

    @abstractmethod
    def delete_cluster(self, cluster_id: str) -> None:
        pass

    @abstractmethod
    def get_cluster_certificate(self, cluster_id: str) -> ClusterCertificate:
        pass

    @abstractmethod
    def create_nodes(self, request: CreateNodesRequest) -> list[str]:
        pass

    @abstractmethod
    def get_nodes_status(self, cluster_id: str, node_ids: list[str]) -> list[NodeStatus]:
        pass

    @abstractmethod
    def delete_nodes(self, cluster_id: str, node_ids: list[str]) -> None:
        pass


class LoadBalancerAPI(ABC):
    @abstractmethod
    def create_load_balancer(self, vip_subnet_id: str, description: str) -> str:
        pass

    @abstractmethod
    def create_listener(self, lb_id: str, protocol: str, port: int, description: str) -> str:
        pass

    @abstractmethod
    def create_pool(self, listener_id: str, protocol: str, lb_method: str) -> str:
        pass

    @abstractmethod
    def create_member(self, pool_id: str, address: str, port: int, subnet_id: str) -> str:
        pass

    @abstractmethod
    def delete_member(self, pool_id: str, member_id: str) -> None:
        pass

    @abstractmethod
    def delete_pool(self, pool_id: str) -> None:
        pass

    @abstractmethod
    def delete_listener(self, listener_id: str) -> None:
        pass

    @abstractmethod
    def delete_load_balancer(self, lb_id: str) -> None:
        pass


class BaseCloudClient(NetworkAPI, ComputeAPI, ClusterAPI, LoadBalancerAPI, ABC):
    """Synchronous cloud client consumed by the provisioning components.

    Every method raises ``ResourceNotFoundError`` when the addressed resource does not exist.
    """

    name: str

    def __init__(self, auth_info: AuthInfo, region: str) -> None:
        self._logger = setup_logger(self.name.capitalize())

        self.auth_info = auth_info
        self.region = region

    def authenticate(self) -> None:
        pass
