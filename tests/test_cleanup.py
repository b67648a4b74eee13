import pytest

from cce_driver.core.cluster.configuration import ElasticIPOptions
from cce_driver.core.cluster.state import LoadBalancerRecord, Ownership, TrackedResource
from cce_driver.core.exceptions import CompositeError
from cce_driver.core.providers.models import CreateElasticIPRequest
from cce_driver.core.provisioning.cleanup import CleanupEngine


@pytest.fixture
def engine(fake_client):
    return CleanupEngine(fake_client, poll_attempts=3, poll_interval=0)


@pytest.fixture
def provisioned_state(fake_client, cluster_state):
    vpc_id = fake_client.create_vpc('test-vpc')
    cluster_state.vpc = TrackedResource.owned(vpc_id)
    cluster_state.subnet = TrackedResource.owned(fake_client.create_subnet(vpc_id, 'test-subnet'))
    cluster_state.highway_subnet = TrackedResource.owned(fake_client.create_subnet(vpc_id, 'test-highway'))

    cluster_eip = fake_client.create_eip(CreateElasticIPRequest(ElasticIPOptions(), 'cluster-eip'))
    cluster_state.cluster_eip = TrackedResource.owned(cluster_eip.public_address)
    lb_eip = fake_client.create_eip(CreateElasticIPRequest(ElasticIPOptions(), 'existing-eip'))
    cluster_state.lb_eip = TrackedResource.referenced(lb_eip.public_address)

    lb_id = fake_client.create_load_balancer('net-1', 'CCE cluster')
    listener_id = fake_client.create_listener(lb_id, 'TCP', 80, 'CCE LB listener')
    pool_id = fake_client.create_pool(listener_id, 'TCP', 'LEAST_CONNECTIONS')
    member_ids = [fake_client.create_member(pool_id, ip, 80, 'net-1') for ip in ('192.168.1.1', '192.168.1.2')]
    cluster_state.load_balancer = LoadBalancerRecord(
        lb_id=lb_id, listener_id=listener_id, pool_id=pool_id, member_ids=member_ids
    )

    cluster_state.cluster = TrackedResource.owned('cluster-a')
    cluster_state.node_ids = ['n1', 'n2']

    fake_client.calls.clear()
    return cluster_state


class TestCleanupEngine:
    @pytest.mark.asyncio
    async def test_removes_owned_resources_in_reverse_order(self, engine, fake_client, provisioned_state):
        await engine.cleanup(provisioned_state)

        assert [x[0] for x in fake_client.calls if x[0].startswith('delete')] == [
            'delete_member',
            'delete_member',
            'delete_pool',
            'delete_listener',
            'delete_load_balancer',
            'delete_floating_ip',
            'delete_subnet',
            'delete_subnet',
            'delete_vpc',
        ]
        assert fake_client.members == {}
        assert fake_client.load_balancers == set()
        assert fake_client.subnets == {}
        assert fake_client.vpcs == {}
        assert provisioned_state.load_balancer is None
        assert not any(provisioned_state.managed_resources[x] for x in ('vpc', 'subnet', 'highway_subnet', 'cluster_eip'))

    @pytest.mark.asyncio
    async def test_referenced_resources_are_kept(self, engine, fake_client, provisioned_state):
        lb_eip = provisioned_state.lb_eip.id

        await engine.cleanup(provisioned_state)

        assert lb_eip in fake_client.eips
        assert provisioned_state.lb_eip.ownership == Ownership.REFERENCED

    @pytest.mark.asyncio
    async def test_cluster_and_nodes_are_left_alone(self, engine, fake_client, provisioned_state):
        await engine.cleanup(provisioned_state)

        assert fake_client.called('delete_cluster') == []
        assert fake_client.called('delete_nodes') == []
        assert provisioned_state.cluster.is_owned
        assert provisioned_state.node_ids == ['n1', 'n2']

    @pytest.mark.asyncio
    async def test_second_cleanup_is_noop(self, engine, fake_client, provisioned_state):
        await engine.cleanup(provisioned_state)
        calls = len(fake_client.calls)

        await engine.cleanup(provisioned_state)

        assert len(fake_client.calls) == calls

    @pytest.mark.asyncio
    async def test_already_deleted_counts_as_removed(self, engine, fake_client, provisioned_state):
        fake_client.vpcs.clear()
        fake_client.members.clear()

        await engine.cleanup(provisioned_state)

        assert provisioned_state.vpc.ownership == Ownership.ABSENT
        assert provisioned_state.load_balancer is None

    @pytest.mark.asyncio
    async def test_load_balancer_failure_keeps_network(self, engine, fake_client, provisioned_state):
        fake_client.fail('delete_listener', RuntimeError('listener busy'))

        with pytest.raises(CompositeError, match='failed to delete LB listener: listener busy'):
            await engine.cleanup(provisioned_state)

        record = provisioned_state.load_balancer
        assert record.member_ids == []
        assert record.pool_id == ''
        assert record.listener_id
        assert record.lb_id in fake_client.load_balancers
        # elastic IPs do not depend on the load balancer
        assert provisioned_state.cluster_eip.ownership == Ownership.ABSENT
        assert provisioned_state.subnet.is_owned
        assert provisioned_state.vpc.is_owned
        assert fake_client.called('delete_subnet') == []
        assert fake_client.called('delete_vpc') == []

    @pytest.mark.asyncio
    async def test_failures_are_collected(self, engine, fake_client, provisioned_state):
        fake_client.fail('delete_floating_ip', RuntimeError('EIP is bound'), times=1)
        fake_client.fail('delete_subnet', RuntimeError('subnet in use'), times=1)

        with pytest.raises(CompositeError) as exc_info:
            await engine.cleanup(provisioned_state)

        assert len(exc_info.value.errors) == 2
        assert provisioned_state.cluster_eip.is_owned
        # highway subnet failed, the regular subnet is still removed but the VPC is kept
        assert provisioned_state.highway_subnet.is_owned
        assert provisioned_state.subnet.ownership == Ownership.ABSENT
        assert provisioned_state.vpc.is_owned

        await engine.cleanup(provisioned_state)

        assert provisioned_state.highway_subnet.ownership == Ownership.ABSENT
        assert provisioned_state.vpc.ownership == Ownership.ABSENT
        assert provisioned_state.cluster_eip.ownership == Ownership.ABSENT
