import asyncio

from cce_driver.core.cluster.state import ClusterState
from cce_driver.core.exceptions import InvalidOptionError, ResizeConsistencyError, annotate_phase
from cce_driver.core.providers.base_provider import BaseCloudClient
from cce_driver.core.providers.models import CreateNodesRequest
from cce_driver.core.utils import setup_logger


class ResizeEngine:
    """Scales the node pool of an existing cluster.

    Scale down always evicts the most recently created nodes.
    """

    def __init__(self, client: BaseCloudClient):
        self._logger = setup_logger('ResizeEngine')
        self._client = client

    async def resize(self, state: ClusterState, desired_count: int) -> ClusterState:
        if desired_count < 0:
            raise InvalidOptionError(f'node count must not be negative, got {desired_count}')

        state.check_node_invariant()

        delta = desired_count - state.node_count
        if delta == 0:
            self._logger.info(f'Cluster {state.cluster_name} already has {desired_count} nodes')
            return state

        self._logger.info(f'Resizing cluster {state.cluster_name} from {state.node_count} to {desired_count} nodes')

        if delta > 0:
            with annotate_phase('create nodes'):
                request = CreateNodesRequest(cluster_id=state.cluster_id, node_config=state.node_config, count=delta)
                new_nodes = await asyncio.to_thread(self._client.create_nodes, request)
            state.node_ids.extend(new_nodes)
        else:
            nodes_to_delete = state.node_ids[desired_count:]
            with annotate_phase('delete nodes'):
                await asyncio.to_thread(self._client.delete_nodes, state.cluster_id, nodes_to_delete)
            del state.node_ids[desired_count:]

        state.node_count = len(state.node_ids)

        if state.node_count != desired_count:
            raise ResizeConsistencyError(expected=desired_count, actual=state.node_count)

        self._logger.info(f'Cluster {state.cluster_name} resized to {desired_count} nodes')

        return state
