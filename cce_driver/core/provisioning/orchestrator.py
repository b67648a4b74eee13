import asyncio
from enum import StrEnum

from cce_driver.core.cluster.state import ClusterState, LoadBalancerRecord, TrackedResource
from cce_driver.core.exceptions import CompositeError, ConsistencyError, annotate_phase
from cce_driver.core.provisioning.cleanup import CleanupEngine
from cce_driver.core.provisioning.cluster import ClusterOutputs, ClusterProvisioner
from cce_driver.core.provisioning.handoff import Handoff
from cce_driver.core.provisioning.load_balancer import LoadBalancerProvisioner
from cce_driver.core.provisioning.network import NetworkProvisioner
from cce_driver.core.utils import setup_logger


class CreationPhase(StrEnum):
    INIT = 'init'
    NETWORK_READY = 'network_ready'
    PROVISIONING = 'provisioning'
    READY = 'ready'
    FAILED = 'failed'


_TRANSITIONS = {
    CreationPhase.INIT: (CreationPhase.NETWORK_READY, CreationPhase.FAILED),
    CreationPhase.NETWORK_READY: (CreationPhase.PROVISIONING, CreationPhase.FAILED),
    CreationPhase.PROVISIONING: (CreationPhase.READY, CreationPhase.FAILED),
    CreationPhase.READY: (),
    CreationPhase.FAILED: (),
}


class CreationOrchestrator:
    """Drives a cluster from options to a ready cluster, rolling back owned resources on failure.

    The cluster and the optional load balancer are created by two concurrent
    tasks. They share nothing except single-slot handoffs, and the state passed
    in is only touched before the tasks start and after both of them finished.
    """

    def __init__(
        self,
        network: NetworkProvisioner,
        cluster: ClusterProvisioner,
        load_balancer: LoadBalancerProvisioner,
        cleanup: CleanupEngine,
    ):
        self._logger = setup_logger('CreationOrchestrator')
        self._network = network
        self._cluster = cluster
        self._load_balancer = load_balancer
        self._cleanup = cleanup
        self.phase = CreationPhase.INIT

    def _transition(self, phase: CreationPhase) -> None:
        if phase not in _TRANSITIONS[self.phase]:
            raise ConsistencyError(f'invalid creation phase transition {self.phase} -> {phase}')

        self._logger.debug(f'Creation phase {self.phase} -> {phase}')
        self.phase = phase

    async def create(self, state: ClusterState) -> ClusterState:
        self.phase = CreationPhase.INIT

        try:
            with annotate_phase('set up network'):
                await self._network.ensure_network(state)
            self._transition(CreationPhase.NETWORK_READY)

            self._transition(CreationPhase.PROVISIONING)
            await self._provision(state)
            self._transition(CreationPhase.READY)
        except Exception as e:
            self._transition(CreationPhase.FAILED)
            self._logger.exception(f'Cluster {state.cluster_name} creation failed: {e}', exc_info=False)
            await self._rollback(state, e)
            raise

        self._logger.info(f'Cluster {state.cluster_name} creation finished')

        return state

    async def _provision(self, state: ClusterState) -> None:
        cluster_outputs = ClusterOutputs.create()
        lb_record: Handoff[LoadBalancerRecord] = Handoff('load balancer record')

        # the tasks get their own copy, the shared state is updated only after both joined
        snapshot = state.model_copy(deep=True)

        tasks = [self._cluster.run(snapshot, cluster_outputs)]
        if state.create_lb:
            tasks.append(self._load_balancer.run(snapshot, cluster_outputs.node_ips, lb_record))

        results = await asyncio.gather(*tasks, return_exceptions=True)

        cluster_id = await cluster_outputs.cluster_id.receive()
        if cluster_id:
            state.cluster = TrackedResource.owned(cluster_id)
        state.node_ids = await cluster_outputs.node_ids.receive()

        if state.create_lb:
            state.load_balancer = await lb_record.receive()

        if error := CompositeError.from_errors(r for r in results if isinstance(r, Exception)):
            raise error

        if len(state.node_ids) != state.node_count:
            raise ConsistencyError(f'created {len(state.node_ids)} nodes, expected {state.node_count}')

    async def _rollback(self, state: ClusterState, error: Exception) -> None:
        try:
            await self._cleanup.cleanup(state)
        except Exception as cleanup_error:
            self._logger.exception(f'Rollback of cluster {state.cluster_name} failed: {cleanup_error}', exc_info=False)
            error.add_note(f'rollback failed: {cleanup_error}')
