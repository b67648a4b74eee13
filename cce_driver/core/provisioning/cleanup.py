import asyncio
from collections.abc import Callable

from cce_driver.core.cluster.state import ClusterState, TrackedResource
from cce_driver.core.config import STATUS_POLL_ATTEMPTS, STATUS_POLL_INTERVAL
from cce_driver.core.exceptions import CompositeError, ResourceNotFoundError, annotate_phase
from cce_driver.core.providers.base_provider import BaseCloudClient
from cce_driver.core.provisioning.polling import wait_for_deletion
from cce_driver.core.utils import setup_logger


class CleanupEngine:
    """Releases the resources this driver owns, in reverse creation order.

    Cluster and nodes are left to the removal flow. Already deleted resources
    count as removed, and every removal clears the ownership so repeated calls
    are no-ops.
    """

    def __init__(
        self,
        client: BaseCloudClient,
        poll_attempts: int = STATUS_POLL_ATTEMPTS,
        poll_interval: float = STATUS_POLL_INTERVAL,
    ):
        self._logger = setup_logger('CleanupEngine')
        self._client = client
        self._poll_attempts = poll_attempts
        self._poll_interval = poll_interval

    async def _delete(self, phase: str, func: Callable, *args) -> None:
        with annotate_phase(phase):
            try:
                await asyncio.to_thread(func, *args)
            except ResourceNotFoundError:
                self._logger.warning(f'Skipping {phase}: resource already gone')

    async def cleanup(self, state: ClusterState) -> None:
        self._logger.info('Cleanup process started')
        errors = []

        lb_error = await self._cleanup_load_balancer(state)
        if lb_error:
            errors.append(lb_error)

        for phase, field in (('delete cluster elastic IP', 'cluster_eip'), ('delete LB elastic IP', 'lb_eip')):
            eip: TrackedResource = getattr(state, field)
            if not eip.is_owned:
                continue
            try:
                await self._delete(phase, self._client.delete_floating_ip, eip.id)
                setattr(state, field, TrackedResource())
            except Exception as e:
                self._logger.exception(str(e), exc_info=False)
                errors.append(e)

        subnets_removed = lb_error is None
        if subnets_removed:
            for field in ('highway_subnet', 'subnet'):
                try:
                    await self._cleanup_subnet(state, field)
                except Exception as e:
                    self._logger.exception(str(e), exc_info=False)
                    errors.append(e)
                    subnets_removed = False

        if state.vpc.is_owned:
            if subnets_removed:
                try:
                    await self._delete('delete VPC', self._client.delete_vpc, state.vpc.id)
                    state.vpc = TrackedResource()
                except Exception as e:
                    self._logger.exception(str(e), exc_info=False)
                    errors.append(e)
            else:
                self._logger.warning(f'Keeping VPC {state.vpc.id}: dependent resources were not removed')

        if error := CompositeError.from_errors(errors):
            raise error

        self._logger.info('Cleanup process finished')

    async def _cleanup_load_balancer(self, state: ClusterState) -> Exception | None:
        lb = state.load_balancer
        if lb is None:
            return None

        try:
            for member_id in list(lb.member_ids):
                if member_id:
                    await self._delete(f'delete LB member {member_id}', self._client.delete_member, lb.pool_id, member_id)
                lb.member_ids.remove(member_id)

            if lb.pool_id:
                await self._delete('delete LB pool', self._client.delete_pool, lb.pool_id)
                lb.pool_id = ''

            if lb.listener_id:
                await self._delete('delete LB listener', self._client.delete_listener, lb.listener_id)
                lb.listener_id = ''

            if lb.lb_id:
                await self._delete('delete load balancer', self._client.delete_load_balancer, lb.lb_id)
                lb.lb_id = ''
        except Exception as e:
            self._logger.exception(str(e), exc_info=False)
            return e

        state.load_balancer = None

        return None

    async def _cleanup_subnet(self, state: ClusterState, field: str) -> None:
        subnet: TrackedResource = getattr(state, field)
        if not subnet.is_owned:
            return

        await self._delete(f'delete subnet {subnet.id}', self._client.delete_subnet, state.vpc.id, subnet.id)
        await wait_for_deletion(
            lambda: self._client.get_subnet_status(subnet.id),
            f'subnet {subnet.id}',
            attempts=self._poll_attempts,
            interval=self._poll_interval,
        )

        setattr(state, field, TrackedResource())
