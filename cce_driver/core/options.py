from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from cce_driver.core.cluster.configuration import AuthInfo, ElasticIPOptions, NodeConfiguration, VolumeSpec
from cce_driver.core.cluster.state import ClusterState, TrackedResource
from cce_driver.core.config import AUTH_URL, DEFAULT_REGION
from cce_driver.core.exceptions import InvalidOptionError
from cce_driver.core.utils import parse_labels, setup_logger

logger = setup_logger('DriverOptions')

CLUSTER_VERSIONS = ('v1.13.10-r0', 'v1.11.7-r2')
CLUSTER_FLAVORS = (
    'cce.s1.small', 'cce.s1.medium', 'cce.s1.large',
    'cce.s2.small', 'cce.s2.medium', 'cce.s2.large',
    'cce.t1.small', 'cce.t1.medium', 'cce.t1.large',
    'cce.t2.small', 'cce.t2.medium', 'cce.t2.large',
)
AUTH_MODES = ('rbac', 'authenticating_proxy')


class FlagType(StrEnum):
    STRING = 'string'
    INT = 'int'
    BOOL = 'bool'
    STRING_SLICE = 'stringSlice'


@dataclass(frozen=True)
class DriverFlag:
    type: FlagType
    usage: str
    default: Any = None
    password: bool = False


CREATE_FLAGS: dict[str, DriverFlag] = {
    # general
    'name': DriverFlag(FlagType.STRING, 'Cluster name'),
    'display-name': DriverFlag(FlagType.STRING, 'Cluster name displayed to user'),
    'description': DriverFlag(FlagType.STRING, 'Cluster description'),
    # authentication
    'domain-name': DriverFlag(FlagType.STRING, 'OTC domain name'),
    'project-name': DriverFlag(FlagType.STRING, 'OTC project name'),
    'username': DriverFlag(FlagType.STRING, 'OTC username'),
    'password': DriverFlag(FlagType.STRING, 'OTC user password', password=True),
    'access-key': DriverFlag(FlagType.STRING, 'OTC access key ID', password=True),
    'secret-key': DriverFlag(FlagType.STRING, 'OTC secret access key', password=True),
    'token': DriverFlag(FlagType.STRING, 'OTC token', password=True),
    'region': DriverFlag(FlagType.STRING, 'OTC region', DEFAULT_REGION),
    # cluster
    'cluster-type': DriverFlag(FlagType.STRING, "Type of the cluster, 'VirtualMachine' or 'BareMetal'", 'VirtualMachine'),
    'cluster-version': DriverFlag(FlagType.STRING, f'Version of k8s (one of {", ".join(CLUSTER_VERSIONS)}), default is latest available'),
    'cluster-flavor': DriverFlag(FlagType.STRING, f'Cluster flavor, one of {", ".join(CLUSTER_FLAVORS)}', 'cce.s2.small'),
    'cluster-billing-mode': DriverFlag(FlagType.INT, 'The bill mode of the cluster', 0),
    'cluster-labels': DriverFlag(FlagType.STRING_SLICE, 'The map of Kubernetes labels (key/value pairs) to be applied to cluster', []),
    # networking
    'vpc': DriverFlag(FlagType.STRING, 'The name of VPC'),
    'vpc-id': DriverFlag(FlagType.STRING, 'The ID of existing VPC'),
    'subnet': DriverFlag(FlagType.STRING, 'The name of subnet'),
    'subnet-id': DriverFlag(FlagType.STRING, 'The ID of existing subnet'),
    'highway-subnet': DriverFlag(FlagType.STRING, 'The name of highway subnet when the cluster-type is BareMetal'),
    'highway-subnet-id': DriverFlag(FlagType.STRING, 'The ID of existing highway subnet when the cluster-type is BareMetal'),
    'container-network-mode': DriverFlag(FlagType.STRING, 'The network mode of container', 'overlay_l2'),
    'container-network-cidr': DriverFlag(FlagType.STRING, 'The network cidr of container', '172.16.0.0/16'),
    # cluster auth
    'authentication-mode': DriverFlag(FlagType.STRING, 'The Authentication Mode for cce cluster. rbac or authenticating_proxy', 'rbac'),
    'auth-proxy-ca': DriverFlag(FlagType.STRING, 'The CA for authenticating proxy, required if authentication-mode is authenticating_proxy'),
    'no-floating-ip': DriverFlag(FlagType.BOOL, 'Do not associate a floating IP with the cluster master', False),
    'cluster-floating-ip': DriverFlag(FlagType.STRING, 'Existing floating IP to be associated with cluster master node'),
    # nodes
    'node-count': DriverFlag(FlagType.INT, 'The number of nodes to create in this cluster', 1),
    'availability-zone': DriverFlag(FlagType.STRING, 'AZ used for node creation', 'eu-de-01'),
    'node-flavor': DriverFlag(FlagType.STRING, 'The node flavor', 's3.large.2'),
    'node-os': DriverFlag(FlagType.STRING, 'The operation system of nodes', 'EulerOS 2.5'),
    'key-pair': DriverFlag(FlagType.STRING, 'The name of ssh key-pair'),
    # BMS settings
    'billing-mode': DriverFlag(FlagType.INT, 'The bill mode of the nodes', 0),
    'bms-period-type': DriverFlag(FlagType.STRING, 'The period type', 'month'),
    'bms-period-num': DriverFlag(FlagType.INT, 'The number of period', 1),
    'bms-auto-renew': DriverFlag(FlagType.BOOL, 'If the period is auto renew', False),
    # disks
    'root-volume-size': DriverFlag(FlagType.INT, 'Size of the system disk attached to each node in GB, 40 min', 40),
    'root-volume-type': DriverFlag(FlagType.STRING, 'Type of the system disk attached to each node, one of SATA, SAS, SSD', 'SATA'),
    'data-volume-size': DriverFlag(FlagType.INT, 'Size of the data disk attached to each node in GB, 100 min', 100),
    'data-volume-type': DriverFlag(FlagType.STRING, 'Type of the data disk attached to each node, one of SATA, SAS, SSD', 'SATA'),
    # master node bandwidth
    'cluster-eip-type': DriverFlag(FlagType.STRING, 'The type of bandwidth', '5_bgp'),
    'cluster-eip-bandwidth-size': DriverFlag(FlagType.INT, 'The size of bandwidth, MBit', 100),
    'cluster-eip-share-type': DriverFlag(FlagType.STRING, 'The share type of bandwidth', 'PER'),
    # load balancer
    'create-load-balancer': DriverFlag(FlagType.BOOL, 'If not set, no LB will be created', True),
    'lb-floating-ip': DriverFlag(FlagType.STRING, 'Existing floating IP to be associated with load balancer'),
    'lb-eip-type': DriverFlag(FlagType.STRING, 'The type of bandwidth', '5_bgp'),
    'lb-eip-bandwidth-size': DriverFlag(FlagType.INT, 'The size of bandwidth, MBit', 100),
    'lb-eip-share-type': DriverFlag(FlagType.STRING, 'The share type of bandwidth', 'PER'),
    'app-protocol': DriverFlag(FlagType.STRING, 'Protocol of the load balancer listener and pool', 'TCP'),
    'app-port': DriverFlag(FlagType.INT, 'Port of the application exposed by the load balancer', 80),
}

UPDATE_FLAGS: dict[str, DriverFlag] = {
    'description': CREATE_FLAGS['description'],
    'node-count': DriverFlag(FlagType.INT, 'The number of nodes in this cluster'),
}


def _camel_case(key: str) -> str:
    head, *tail = key.split('-')
    return head + ''.join(x.capitalize() for x in tail)


@dataclass
class DriverOptions:
    """Flat typed options map handed over by the host."""

    string_options: dict[str, str] = field(default_factory=dict)
    int_options: dict[str, int] = field(default_factory=dict)
    bool_options: dict[str, bool] = field(default_factory=dict)
    string_slice_options: dict[str, list[str]] = field(default_factory=dict)

    def _options_for(self, flag_type: FlagType) -> dict[str, Any]:
        return {
            FlagType.STRING: self.string_options,
            FlagType.INT: self.int_options,
            FlagType.BOOL: self.bool_options,
            FlagType.STRING_SLICE: self.string_slice_options,
        }[flag_type]

    def lookup(self, flag_type: FlagType, *keys: str) -> Any:
        """Value of the first key present in either kebab-case or camelCase form, or None."""
        options = self._options_for(flag_type)

        for key in keys:
            for candidate in (key, _camel_case(key)):
                if candidate in options:
                    return options[candidate]

        return None

    def get(self, key: str, *aliases: str, flags: dict[str, DriverFlag] = CREATE_FLAGS) -> Any:
        flag = flags[key]
        value = self.lookup(flag.type, key, *aliases)

        return flag.default if value is None else value


def state_from_options(opts: DriverOptions) -> ClusterState:
    logger.info('Start setting state from provided opts')

    name = opts.get('name')
    if not name:
        raise InvalidOptionError('cluster name is required')

    labels = parse_labels(opts.get('cluster-labels') or [])

    node_count = opts.get('node-count')
    if node_count < 0:
        raise InvalidOptionError(f'node count must not be negative, got {node_count}')

    auth_mode = opts.get('authentication-mode', 'auth-mode')
    if auth_mode not in AUTH_MODES:
        raise InvalidOptionError(f'unknown authentication mode {auth_mode}, must be one of {AUTH_MODES}')

    auth_proxy_ca = opts.get('auth-proxy-ca')
    if auth_mode == 'authenticating_proxy' and not auth_proxy_ca:
        raise InvalidOptionError('auth-proxy-ca is required when authentication-mode is authenticating_proxy')

    create_lb = opts.get('create-load-balancer')
    app_port = opts.get('app-port')
    if create_lb and app_port <= 0:
        raise InvalidOptionError(f'app-port must be positive when a load balancer is created, got {app_port}')

    project_name = opts.get('project-name')

    return ClusterState(
        cluster_name=name,
        display_name=opts.get('display-name') or '',
        description=opts.get('description') or '',
        project_name=project_name or '',
        region=opts.get('region'),
        cluster_type=opts.get('cluster-type'),
        cluster_flavor=opts.get('cluster-flavor'),
        cluster_version=opts.get('cluster-version') or '',
        cluster_billing_mode=opts.get('cluster-billing-mode'),
        cluster_labels=labels,
        auth_info=AuthInfo(
            auth_url=AUTH_URL,
            token=opts.get('token') or '',
            username=opts.get('username') or '',
            password=opts.get('password') or '',
            project_name=project_name or '',
            domain_name=opts.get('domain-name') or '',
            access_key=opts.get('access-key') or '',
            secret_key=opts.get('secret-key') or '',
        ),
        auth_mode=auth_mode,
        authenticating_proxy_ca=auth_proxy_ca or '',
        vpc_name=opts.get('vpc', 'vpc-name') or '',
        vpc=TrackedResource.referenced(opts.get('vpc-id') or ''),
        subnet_name=opts.get('subnet', 'subnet-name') or '',
        subnet=TrackedResource.referenced(opts.get('subnet-id') or ''),
        highway_subnet_name=opts.get('highway-subnet', 'highway-subnet-name') or '',
        highway_subnet=TrackedResource.referenced(opts.get('highway-subnet-id') or ''),
        container_network_mode=opts.get('container-network-mode'),
        container_network_cidr=opts.get('container-network-cidr'),
        use_floating_ip=not opts.get('no-floating-ip'),
        cluster_eip=TrackedResource.referenced(opts.get('cluster-floating-ip') or ''),
        cluster_eip_options=ElasticIPOptions(
            ip_type=opts.get('cluster-eip-type'),
            bandwidth_size=opts.get('cluster-eip-bandwidth-size'),
            share_type=opts.get('cluster-eip-share-type'),
        ),
        create_lb=create_lb,
        lb_eip=TrackedResource.referenced(opts.get('lb-floating-ip') or ''),
        lb_eip_options=ElasticIPOptions(
            ip_type=opts.get('lb-eip-type'),
            bandwidth_size=opts.get('lb-eip-bandwidth-size'),
            share_type=opts.get('lb-eip-share-type'),
        ),
        app_protocol=opts.get('app-protocol'),
        app_port=app_port,
        node_config=NodeConfiguration(
            flavor=opts.get('node-flavor'),
            availability_zone=opts.get('availability-zone'),
            key_pair=opts.get('key-pair') or '',
            os=opts.get('node-os', 'os'),
            root_volume=VolumeSpec(size=opts.get('root-volume-size'), volume_type=opts.get('root-volume-type')),
            data_volumes=[VolumeSpec(size=opts.get('data-volume-size'), volume_type=opts.get('data-volume-type'))],
            billing_mode=opts.get('billing-mode'),
            bms_period_type=opts.get('bms-period-type'),
            bms_period_num=opts.get('bms-period-num'),
            bms_auto_renew=opts.get('bms-auto-renew'),
        ),
        node_count=node_count,
    )
