import asyncio

from cce_driver.core.cluster.state import ClusterState, Ownership, TrackedResource
from cce_driver.core.config import STATUS_POLL_ATTEMPTS, STATUS_POLL_INTERVAL
from cce_driver.core.providers.base_provider import BaseCloudClient
from cce_driver.core.providers.models import CreateElasticIPRequest
from cce_driver.core.provisioning.polling import wait_for_status
from cce_driver.core.utils import setup_logger


class NetworkProvisioner:
    """Finds or creates the VPC, subnets and elastic IPs a cluster needs.

    Resources passed by ID are used as-is, resources found by name are adopted,
    and only resources created here are tagged as owned. Provider errors are
    not retried and propagate unchanged.
    """

    def __init__(
        self,
        client: BaseCloudClient,
        poll_attempts: int = STATUS_POLL_ATTEMPTS,
        poll_interval: float = STATUS_POLL_INTERVAL,
    ):
        self._logger = setup_logger('NetworkProvisioner')
        self._client = client
        self._poll_attempts = poll_attempts
        self._poll_interval = poll_interval

    @staticmethod
    def _adopt_existing(resource: TrackedResource) -> bool:
        if not resource.id:
            return False

        if resource.ownership == Ownership.ABSENT:
            resource.ownership = Ownership.REFERENCED

        return True

    async def ensure_network(self, state: ClusterState) -> ClusterState:
        self._logger.info('Setup network process started')

        await self._ensure_vpc(state)
        await self._ensure_subnet(state)
        await self._ensure_highway_subnet(state)

        if state.use_floating_ip:
            request = CreateElasticIPRequest(state.cluster_eip_options, f'{state.cluster_name}-cluster-eip')
            await self._ensure_eip(state, 'cluster_eip', request)

        if state.create_lb:
            request = CreateElasticIPRequest(state.lb_eip_options, f'{state.cluster_name}-lb-eip')
            await self._ensure_eip(state, 'lb_eip', request)

        self._logger.info('Setup network process finished')

        return state

    async def _ensure_vpc(self, state: ClusterState) -> None:
        if self._adopt_existing(state.vpc) or not state.vpc_name:
            return

        vpc_id = await asyncio.to_thread(self._client.find_vpc, state.vpc_name)
        if vpc_id:
            self._logger.info(f'Using existing VPC {state.vpc_name} ({vpc_id})')
            state.vpc = TrackedResource.referenced(vpc_id)
            return

        vpc_id = await asyncio.to_thread(self._client.create_vpc, state.vpc_name)
        # tracked before waiting so a failed wait still gets rolled back
        state.vpc = TrackedResource.owned(vpc_id)
        self._logger.info(f'Created VPC {state.vpc_name} ({vpc_id}), waiting until it is ready')

        await wait_for_status(
            lambda: self._client.get_vpc_status(vpc_id),
            f'VPC {vpc_id}',
            attempts=self._poll_attempts,
            interval=self._poll_interval,
        )

    async def _find_or_create_subnet(self, state: ClusterState, name: str) -> TrackedResource:
        subnet_id = await asyncio.to_thread(self._client.find_subnet, state.vpc.id, name)
        if subnet_id:
            self._logger.info(f'Using existing subnet {name} ({subnet_id})')
            return TrackedResource.referenced(subnet_id)

        subnet_id = await asyncio.to_thread(self._client.create_subnet, state.vpc.id, name)
        self._logger.info(f'Created subnet {name} ({subnet_id}), waiting until it is ready')

        return TrackedResource.owned(subnet_id)

    async def _wait_for_subnet(self, subnet_id: str) -> None:
        await wait_for_status(
            lambda: self._client.get_subnet_status(subnet_id).status,
            f'subnet {subnet_id}',
            attempts=self._poll_attempts,
            interval=self._poll_interval,
        )

    async def _ensure_subnet(self, state: ClusterState) -> None:
        if self._adopt_existing(state.subnet) or not state.subnet_name:
            return

        state.subnet = await self._find_or_create_subnet(state, state.subnet_name)

        if state.subnet.is_owned:
            await self._wait_for_subnet(state.subnet.id)

    async def _ensure_highway_subnet(self, state: ClusterState) -> None:
        if self._adopt_existing(state.highway_subnet) or not state.highway_subnet_name:
            return

        state.highway_subnet = await self._find_or_create_subnet(state, state.highway_subnet_name)

        if state.highway_subnet.is_owned:
            await self._wait_for_subnet(state.highway_subnet.id)

    async def _ensure_eip(self, state: ClusterState, field: str, request: CreateElasticIPRequest) -> None:
        if self._adopt_existing(getattr(state, field)):
            return

        created = await asyncio.to_thread(self._client.create_eip, request)
        setattr(state, field, TrackedResource.owned(created.public_address))
        self._logger.info(f'Created elastic IP {created.public_address} ({request.name})')

        await wait_for_status(
            lambda: self._client.get_eip_status(created.public_address),
            f'elastic IP {created.public_address}',
            attempts=self._poll_attempts,
            interval=self._poll_interval,
        )
