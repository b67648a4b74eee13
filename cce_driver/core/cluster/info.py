from dataclasses import dataclass, field

from pydantic import ValidationError

from cce_driver.core.cluster.state import ClusterState
from cce_driver.core.exceptions import InvalidOptionError
from cce_driver.core.utils import setup_logger

STATE_METADATA_KEY = 'state'

logger = setup_logger('ClusterInfo')


@dataclass
class ClusterInfo:
    """Record owned by the host. Only ``metadata['state']`` is read back by the driver."""

    version: str = ''
    node_count: int = 0
    status: str = ''
    endpoint: str = ''
    root_ca_certificate: str = ''
    client_certificate: str = ''
    client_key: str = ''
    username: str = ''
    service_account_token: str = ''
    metadata: dict[str, str] = field(default_factory=dict)


def store_state(info: ClusterInfo, state: ClusterState) -> None:
    if info.metadata is None:
        info.metadata = {}

    info.metadata[STATE_METADATA_KEY] = state.to_json()
    info.version = state.cluster_version
    info.node_count = state.node_count


def state_from_info(info: ClusterInfo) -> ClusterState:
    raw_state = (info.metadata or {}).get(STATE_METADATA_KEY)

    if not raw_state:
        raise InvalidOptionError('cluster info carries no driver state')

    try:
        return ClusterState.from_json(raw_state)
    except ValidationError as e:
        logger.exception(f'Error encountered while loading state: {e}', exc_info=False)
        raise InvalidOptionError(f'stored driver state is malformed: {e}') from e
