import asyncio

from cce_driver.core.cluster.state import ClusterState, LoadBalancerRecord
from cce_driver.core.exceptions import annotate_phase
from cce_driver.core.providers.base_provider import BaseCloudClient
from cce_driver.core.provisioning.handoff import Handoff
from cce_driver.core.utils import setup_logger

LB_METHOD_LEAST_CONNECTIONS = 'LEAST_CONNECTIONS'


class LoadBalancerProvisioner:
    def __init__(self, client: BaseCloudClient, lb_method: str = LB_METHOD_LEAST_CONNECTIONS):
        self._logger = setup_logger('LoadBalancerProvisioner')
        self._client = client
        self._lb_method = lb_method

    async def run(
        self, state: ClusterState, node_ips: Handoff[list[str]], record_out: Handoff[LoadBalancerRecord]
    ) -> None:
        record = LoadBalancerRecord()

        try:
            await self.create_load_balancer(state, node_ips, record)
        finally:
            record_out.publish(record)

    async def create_load_balancer(
        self, state: ClusterState, node_ips: Handoff[list[str]], record: LoadBalancerRecord | None = None
    ) -> LoadBalancerRecord:
        """Create the load balancer chain, filling ``record`` as each sub-resource appears.

        On failure ``record`` still lists everything created so far.
        """
        record = record if record is not None else LoadBalancerRecord()

        with annotate_phase('get subnet status'):
            subnet = await asyncio.to_thread(self._client.get_subnet_status, state.subnet.id)

        with annotate_phase('create load balancer'):
            record.lb_id = await asyncio.to_thread(
                self._client.create_load_balancer, subnet.network_subnet_id, 'CCE cluster'
            )
        self._logger.info(f'Created load balancer {record.lb_id}')

        with annotate_phase('create load balancer listener'):
            record.listener_id = await asyncio.to_thread(
                self._client.create_listener, record.lb_id, state.app_protocol, state.app_port, 'CCE LB listener'
            )

        with annotate_phase('create load balancer pool'):
            record.pool_id = await asyncio.to_thread(
                self._client.create_pool, record.listener_id, state.app_protocol, self._lb_method
            )

        self._logger.info(f'Load balancer {record.lb_id} pool ready, waiting for node IPs')
        ips = await node_ips.receive()

        for ip in ips:
            with annotate_phase(f'create load balancer member {ip}'):
                member_id = await asyncio.to_thread(
                    self._client.create_member, record.pool_id, ip, state.app_port, subnet.network_subnet_id
                )
            record.member_ids.append(member_id)

        self._logger.info(f'Registered {len(record.member_ids)} members in load balancer {record.lb_id}')

        return record
