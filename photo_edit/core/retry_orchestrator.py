"""
Bounded retry for image-producing generation calls.

Each attempt is reduced to an explicit AttemptOutcome (success, retriable
or non-retriable failure) and the loop below decides what to do next:

    Idle -> Attempting(n) -> Succeeded
                          -> Aborted            (non-retriable status)
                          -> Attempting(n + 1)  (after backoff)
                          -> Exhausted          (no attempts left)

Only GenerationFailedPermanently leaves this module on failure; the
underlying error is logged and kept on ``last_error``.
"""

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

from ..models.enums import AttemptStatus, ErrorClass, NON_RETRIABLE_CLASSES, OperationState
from ..models.schemas import EditResult
from ..utils.errors import (
    ConfigurationError,
    GenerationFailedPermanently,
    ImageProcessingError,
    NoImageReturned,
    OperationCancelled,
)
from ..utils.logger import get_logger
from ..utils.retry import backoff_delay, timeout_async

logger = get_logger(__name__)

T = TypeVar('T')

Attempt = Callable[[], Awaitable[EditResult]]
StateHook = Callable[[OperationState, int], None]

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BASE_DELAY_SECONDS = 1.0


def classify_error(error: BaseException) -> ErrorClass:
    """Map a failed attempt's error onto the retry policy's error classes."""
    if isinstance(error, NoImageReturned):
        return ErrorClass.NO_IMAGE_RETURNED
    if isinstance(error, (ConfigurationError, ImageProcessingError)):
        # Missing credentials and malformed payloads stay that way between attempts
        return ErrorClass.INVALID_ARGUMENT

    status = getattr(error, "status", None)
    if isinstance(status, str):
        try:
            error_class = ErrorClass(status.upper())
        except ValueError:
            return ErrorClass.TRANSIENT
        if error_class in NON_RETRIABLE_CLASSES:
            return error_class

    return ErrorClass.TRANSIENT


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of one attempt, as consumed by the retry loop."""
    status: AttemptStatus
    result: Optional[EditResult] = None
    error: Optional[BaseException] = None
    error_class: Optional[ErrorClass] = None

    @classmethod
    def success(cls, result: EditResult) -> "AttemptOutcome":
        return cls(status=AttemptStatus.SUCCESS, result=result)

    @classmethod
    def failure(cls, error: BaseException) -> "AttemptOutcome":
        error_class = classify_error(error)
        status = (
            AttemptStatus.NON_RETRIABLE if error_class in NON_RETRIABLE_CLASSES
            else AttemptStatus.RETRIABLE
        )
        return cls(status=status, error=error, error_class=error_class)


class RetryOrchestrator:
    """Runs a generation attempt until success, abort or exhaustion."""

    def __init__(
        self,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        base_delay_seconds: float = DEFAULT_BASE_DELAY_SECONDS,
        attempt_timeout_seconds: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """
        Initialize the orchestrator.

        Args:
            max_attempts: Total attempts, including the first one
            base_delay_seconds: Wait before retry n is base * n
            attempt_timeout_seconds: Optional deadline per attempt
            sleep: Awaitable used for backoff (tests inject a recorder)
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay_seconds = base_delay_seconds
        self.attempt_timeout_seconds = attempt_timeout_seconds
        self.sleep = sleep

    def delay_before(self, attempt_number: int) -> float:
        """Backoff before the given attempt; zero for the first."""
        return backoff_delay(attempt_number - 1, self.base_delay_seconds)

    async def run(
        self,
        attempt: Attempt,
        cancel_event: Optional[asyncio.Event] = None,
        on_state: Optional[StateHook] = None,
        operation: str = "edit",
    ) -> EditResult:
        """
        Run ``attempt`` with retries.

        Args:
            attempt: Zero-argument coroutine factory doing one send + normalize
            cancel_event: When set, stops retrying and aborts the in-flight attempt
            on_state: Called with every state transition and attempt number
            operation: Name used in log records

        Returns:
            The first successful EditResult

        Raises:
            GenerationFailedPermanently: Attempts exhausted or aborted
            OperationCancelled: cancel_event was set
        """
        emit = on_state or (lambda state, n: None)
        emit(OperationState.IDLE, 0)

        last_error: Optional[BaseException] = None
        attempts_made = 0
        aborted = False

        for attempt_number in range(1, self.max_attempts + 1):
            try:
                if attempt_number > 1:
                    delay = self.delay_before(attempt_number)
                    logger.info(
                        f"{operation}: waiting {delay:.1f}s before attempt {attempt_number}",
                        extra={"operation": operation, "attempt": attempt_number, "delay_seconds": delay}
                    )
                    await self._race(self.sleep(delay), cancel_event)

                if cancel_event is not None and cancel_event.is_set():
                    raise OperationCancelled("Operation cancelled by caller")

                emit(OperationState.ATTEMPTING, attempt_number)
                attempts_made = attempt_number
                outcome = await self._attempt_once(attempt, cancel_event)
            except OperationCancelled:
                emit(OperationState.CANCELLED, attempts_made)
                logger.warning(
                    f"{operation}: cancelled",
                    extra={"operation": operation, "attempts": attempts_made}
                )
                raise

            if outcome.status is AttemptStatus.SUCCESS:
                emit(OperationState.SUCCEEDED, attempt_number)
                if attempt_number > 1:
                    logger.info(
                        f"{operation}: succeeded on attempt {attempt_number}",
                        extra={"operation": operation, "attempt": attempt_number}
                    )
                return outcome.result

            last_error = outcome.error
            logger.warning(
                f"{operation}: attempt {attempt_number}/{self.max_attempts} failed",
                extra={
                    "operation": operation,
                    "attempt": attempt_number,
                    "max_attempts": self.max_attempts,
                    "error_class": outcome.error_class.value,
                    "error_type": type(outcome.error).__name__,
                    "error": str(outcome.error),
                }
            )

            if outcome.status is AttemptStatus.NON_RETRIABLE:
                logger.error(
                    f"{operation}: non-retriable error {outcome.error_class.value}, aborting retries",
                    extra={"operation": operation, "error_class": outcome.error_class.value}
                )
                aborted = True
                break

        emit(OperationState.ABORTED if aborted else OperationState.EXHAUSTED, attempts_made)
        logger.error(
            f"{operation}: all generation attempts failed",
            extra={
                "operation": operation,
                "attempts": attempts_made,
                "aborted": aborted,
                "last_error_type": type(last_error).__name__,
                "last_error": str(last_error),
            }
        )
        raise GenerationFailedPermanently(
            attempts=attempts_made,
            last_error=last_error,
            aborted=aborted,
        ) from last_error

    async def _attempt_once(
        self,
        attempt: Attempt,
        cancel_event: Optional[asyncio.Event],
    ) -> AttemptOutcome:
        try:
            result = await self._race(
                timeout_async(attempt(), self.attempt_timeout_seconds),
                cancel_event,
            )
        except OperationCancelled:
            raise
        except Exception as e:
            return AttemptOutcome.failure(e)

        if result is None or result.image is None:
            return AttemptOutcome.failure(NoImageReturned())
        return AttemptOutcome.success(result)

    @staticmethod
    async def _race(coro: Awaitable[T], cancel_event: Optional[asyncio.Event]) -> T:
        """Await ``coro`` unless ``cancel_event`` fires first."""
        if cancel_event is None:
            return await coro

        task = asyncio.ensure_future(coro)
        if cancel_event.is_set():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise OperationCancelled("Operation cancelled by caller")

        waiter = asyncio.ensure_future(cancel_event.wait())
        try:
            done, _ = await asyncio.wait({task, waiter}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            pending = [t for t in (task, waiter) if not t.done()]
            for t in pending:
                t.cancel()
            await asyncio.gather(*pending, return_exceptions=True)

        if task in done:
            return task.result()
        raise OperationCancelled("Operation cancelled by caller")
