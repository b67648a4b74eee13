import asyncio

from tenacity import AsyncRetrying, RetryCallState, RetryError, stop_after_attempt, wait_fixed

from cce_driver.core.cluster.state import ClusterCredentials
from cce_driver.core.config import BOOTSTRAP_RETRIES, BOOTSTRAP_RETRY_DELAY
from cce_driver.core.exceptions import BootstrapError
from cce_driver.core.kubernetes.identity import BaseIdentityProvider
from cce_driver.core.utils import setup_logger


class ServiceAccountBootstrap:
    """Provisions the service account token once the cluster is ready.

    Attempts are spaced by a fixed delay with no backoff growth.
    """

    def __init__(
        self,
        identity: BaseIdentityProvider,
        attempts: int = BOOTSTRAP_RETRIES,
        delay: float = BOOTSTRAP_RETRY_DELAY,
    ):
        self._logger = setup_logger('ServiceAccountBootstrap')
        self._identity = identity
        self._attempts = attempts
        self._delay = delay

    def _log_retry(self, retry_state: RetryCallState) -> None:
        self._logger.warning(
            f'Error creating service account: {retry_state.outcome.exception()}, '
            f'retries left: {self._attempts - retry_state.attempt_number}'
        )

    async def provision_token(self, credentials: ClusterCredentials) -> str:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._attempts),
            wait=wait_fixed(self._delay),
            before_sleep=self._log_retry,
        )

        try:
            token = await retrying(asyncio.to_thread, self._identity.generate_service_account_token, credentials)
        except RetryError as e:
            last_error = e.last_attempt.exception()
            self._logger.error('Retries exceeded, failing post-check')
            raise BootstrapError(
                f'failed to provision service account token after {self._attempts} attempts: {last_error}'
            ) from last_error

        self._logger.info('Service account token generated successfully')

        return token
