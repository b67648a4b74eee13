from collections.abc import Iterable, Iterator
from contextlib import contextmanager


class CCEDriverError(Exception):
    pass


class InvalidOptionError(CCEDriverError):
    """Driver options rejected before any provider call is made."""


class ResourceNotFoundError(CCEDriverError):
    """Raised by cloud clients when the requested resource does not exist."""

    def __init__(self, resource: str, resource_id: str = ''):
        self.resource = resource
        self.resource_id = resource_id

        super().__init__(f'{resource} {resource_id} not found' if resource_id else f'{resource} not found')


class ProvisioningError(CCEDriverError):
    def __init__(self, phase: str, cause: BaseException | str):
        self.phase = phase
        self.cause = cause

        super().__init__(f'failed to {phase}: {cause}')


class ResourceTimeoutError(ProvisioningError):
    pass


class ConsistencyError(CCEDriverError):
    pass


class ResizeConsistencyError(ConsistencyError):
    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual

        super().__init__(f'resize finished with {actual} nodes, expected {expected}')


class BootstrapError(CCEDriverError):
    pass


class CompositeError(CCEDriverError):
    def __init__(self, errors: Iterable[BaseException]):
        self.errors = list(errors)

        details = '\n\t'.join(f'* {e}' for e in self.errors)
        super().__init__(f'{len(self.errors)} error(s) occurred:\n\t{details}')

    @classmethod
    def from_errors(cls, errors: Iterable[BaseException | None]) -> 'CompositeError | None':
        collected = [e for e in errors if e is not None]

        return cls(collected) if collected else None


@contextmanager
def annotate_phase(phase: str) -> Iterator[None]:
    try:
        yield
    except (ProvisioningError, ConsistencyError, CompositeError, InvalidOptionError):
        raise
    except Exception as e:
        raise ProvisioningError(phase, e) from e
