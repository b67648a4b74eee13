import pytest

from cce_driver.core.cluster.state import TrackedResource
from cce_driver.core.exceptions import ConsistencyError, InvalidOptionError, ProvisioningError, ResizeConsistencyError
from cce_driver.core.provisioning.resize import ResizeEngine


@pytest.fixture
def engine(fake_client):
    return ResizeEngine(fake_client)


@pytest.fixture
def running_state(fake_client, cluster_state):
    fake_client.nodes['cluster-a'] = ['n1', 'n2']
    cluster_state.cluster = TrackedResource.owned('cluster-a')
    cluster_state.node_ids = ['n1', 'n2']
    return cluster_state


class TestResizeEngine:
    @pytest.mark.asyncio
    async def test_grow_then_shrink(self, engine, fake_client, running_state):
        await engine.resize(running_state, 5)

        assert running_state.node_count == 5
        assert running_state.node_ids[:2] == ['n1', 'n2']
        assert len(running_state.node_ids) == 5
        assert fake_client.called('create_nodes')[0][0].count == 3
        created = running_state.node_ids[2:]

        await engine.resize(running_state, 3)

        assert running_state.node_ids == ['n1', 'n2', created[0]]
        assert running_state.node_count == 3
        assert fake_client.called('delete_nodes') == [('cluster-a', created[1:])]
        assert fake_client.nodes['cluster-a'] == running_state.node_ids

    @pytest.mark.asyncio
    async def test_same_size_is_noop(self, engine, fake_client, running_state):
        await engine.resize(running_state, 2)

        assert fake_client.calls == []
        assert running_state.node_ids == ['n1', 'n2']

    @pytest.mark.asyncio
    async def test_shrink_to_zero(self, engine, fake_client, running_state):
        await engine.resize(running_state, 0)

        assert running_state.node_ids == []
        assert running_state.node_count == 0

    @pytest.mark.asyncio
    async def test_negative_count(self, engine, fake_client, running_state):
        with pytest.raises(InvalidOptionError):
            await engine.resize(running_state, -1)

        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_inconsistent_state_is_rejected(self, engine, fake_client, running_state):
        running_state.node_count = 3

        with pytest.raises(ConsistencyError):
            await engine.resize(running_state, 4)

        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_postcondition(self, engine, fake_client, running_state, monkeypatch):
        create_nodes = fake_client.create_nodes
        monkeypatch.setattr(fake_client, 'create_nodes', lambda request: create_nodes(request)[:1])

        with pytest.raises(ResizeConsistencyError, match='resize finished with 3 nodes, expected 5') as exc_info:
            await engine.resize(running_state, 5)

        assert exc_info.value.expected == 5
        assert exc_info.value.actual == 3
        assert len(running_state.node_ids) == running_state.node_count == 3

    @pytest.mark.asyncio
    async def test_provider_failure_keeps_nodes(self, engine, fake_client, running_state):
        fake_client.fail('delete_nodes', RuntimeError('node is locked'))

        with pytest.raises(ProvisioningError, match='failed to delete nodes: node is locked'):
            await engine.resize(running_state, 1)

        assert running_state.node_ids == ['n1', 'n2']
        assert running_state.node_count == 2
