import asyncio
from collections.abc import Callable

from tenacity import AsyncRetrying, RetryError, retry_if_result, stop_after_attempt, wait_fixed

from cce_driver.core.config import STATUS_POLL_ATTEMPTS, STATUS_POLL_INTERVAL
from cce_driver.core.exceptions import ProvisioningError, ResourceNotFoundError, ResourceTimeoutError
from cce_driver.core.providers.models import ResourceStatus
from cce_driver.core.utils import setup_logger

logger = setup_logger('Polling')


async def wait_for_status(
    fetch_status: Callable[[], ResourceStatus],
    resource: str,
    target: ResourceStatus = ResourceStatus.READY,
    attempts: int = STATUS_POLL_ATTEMPTS,
    interval: float = STATUS_POLL_INTERVAL,
) -> None:
    async def _fetch() -> ResourceStatus:
        status = await asyncio.to_thread(fetch_status)
        logger.debug(f'{resource} status: {status}')

        if status == ResourceStatus.ERROR and target != ResourceStatus.ERROR:
            raise ProvisioningError(f'wait for {resource}', f'{resource} entered error status')

        return status

    retrying = AsyncRetrying(
        retry=retry_if_result(lambda status: status != target),
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(interval),
    )

    try:
        await retrying(_fetch)
    except RetryError as e:
        raise ResourceTimeoutError(
            f'wait for {resource}', f'{resource} did not reach status {target} after {attempts} attempts'
        ) from e


async def wait_for_deletion(
    fetch: Callable[[], object],
    resource: str,
    attempts: int = STATUS_POLL_ATTEMPTS,
    interval: float = STATUS_POLL_INTERVAL,
) -> None:
    """Poll until ``fetch`` raises ``ResourceNotFoundError``."""

    async def _is_gone() -> bool:
        try:
            await asyncio.to_thread(fetch)
        except ResourceNotFoundError:
            return True

        logger.debug(f'{resource} still present')
        return False

    retrying = AsyncRetrying(
        retry=retry_if_result(lambda gone: not gone),
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(interval),
    )

    try:
        await retrying(_is_gone)
    except RetryError as e:
        raise ResourceTimeoutError(
            f'wait for {resource} removal', f'{resource} still present after {attempts} attempts'
        ) from e
