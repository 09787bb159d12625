"""Unit-of-work runner.

Executes one business operation inside a fresh unit of work, retries the
whole operation on conflicts and transient store failures, and after a
successful commit hands events to the relay and changed aggregates to
the cache invalidator, in that order.
"""

from typing import Awaitable, Callable, TypeVar

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_incrementing,
)

from oms.application.cache_invalidation import CacheInvalidator
from oms.application.event_relay import EventRelay
from oms.application.unit_of_work import AbstractUnitOfWork, UnitOfWorkFactory
from oms.domain.exceptions import DomainError
from oms.infrastructure.config import settings

logger = structlog.get_logger()

T = TypeVar("T")

Operation = Callable[[AbstractUnitOfWork], Awaitable[T]]


class UnitOfWorkRunner:
    """Runs operations atomically with bounded retry."""

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        relay: EventRelay,
        invalidator: CacheInvalidator,
        max_retries: int | None = None,
        retry_backoff_seconds: float | None = None,
    ) -> None:
        """Initialize runner.

        Args:
            uow_factory: Creates a fresh unit of work per attempt.
            relay: Publishes events after commit.
            invalidator: Evicts cache keys after commit.
            max_retries: Retries after the first attempt
                (defaults to ``settings.uow_max_retries``).
            retry_backoff_seconds: Linear backoff step between attempts
                (the n-th retry waits n steps).
        """
        self.uow_factory = uow_factory
        self.relay = relay
        self.invalidator = invalidator
        self.max_retries = settings.uow_max_retries if max_retries is None else max_retries
        self.retry_backoff_seconds = (
            settings.uow_retry_backoff_seconds
            if retry_backoff_seconds is None
            else retry_backoff_seconds
        )

    def _retrying(self, name: str) -> AsyncRetrying:
        def log_retry(retry_state: RetryCallState) -> None:
            error = retry_state.outcome.exception()
            logger.warning(
                "Unit of work failed, retrying",
                operation=name,
                attempt=retry_state.attempt_number,
                error_code=error.error_code,
                error=error.message,
            )

        return AsyncRetrying(
            retry=retry_if_exception(_is_retryable),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_incrementing(start=self.retry_backoff_seconds, increment=self.retry_backoff_seconds),
            before_sleep=log_retry,
            reraise=True,
        )

    async def run(self, operation: "Operation[T]", name: str = "operation") -> T:
        """Run an operation in its own unit of work and commit it.

        The operation loads, mutates and saves aggregates through the
        unit of work it receives; it must not commit. Any exception
        rolls the unit of work back before it propagates. Cancellation
        rolls back and is re-raised without retry.

        Args:
            operation: Coroutine function taking the unit of work.
            name: Operation name for logs.

        Returns:
            Whatever the operation returned.

        Raises:
            DomainError: Non-retryable errors immediately, retryable ones
                once retries are exhausted.
        """
        try:
            async for attempt in self._retrying(name):
                with attempt:
                    uow = self.uow_factory()
                    async with uow:
                        result = await operation(uow)
                        await uow.commit()
        except DomainError as e:
            logger.info(
                "Unit of work rolled back",
                operation=name,
                attempt=attempt.retry_state.attempt_number,
                error_code=e.error_code,
                error_kind=e.kind.value,
            )
            raise

        events = uow.collect_events()
        await self.relay.publish_all(events)
        await self.invalidator.invalidate(uow.written_aggregates() + uow.deleted_aggregates())
        logger.debug(
            "Unit of work committed",
            operation=name,
            attempt=attempt.retry_state.attempt_number,
            event_count=len(events),
        )
        return result


def _is_retryable(error: BaseException) -> bool:
    return isinstance(error, DomainError) and error.kind.retryable
