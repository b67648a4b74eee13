import asyncio
from typing import Generic, TypeVar

from cce_driver.core.exceptions import ConsistencyError

T = TypeVar('T')


class Handoff(Generic[T]):
    """Single-slot channel passing one value from a producer task to its consumers.

    Producers must publish exactly once, on the error path too, so that nobody
    waiting on ``receive`` is left blocked.
    """

    def __init__(self, name: str):
        self.name = name
        self._future: asyncio.Future[T] = asyncio.get_running_loop().create_future()

    @property
    def published(self) -> bool:
        return self._future.done()

    def publish(self, value: T) -> None:
        if self._future.done():
            raise ConsistencyError(f'handoff {self.name} already published')

        self._future.set_result(value)

    async def receive(self) -> T:
        return await asyncio.shield(self._future)
