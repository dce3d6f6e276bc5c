"""Concurrency-related utility functions."""

from dataclasses import dataclass
from trio import sleep
from typing import Awaitable, Callable, Iterator, Optional, Tuple, Type, TypeVar

from .errors import RetryExhausted

__all__ = ("RetryPolicy", "exponential_backoff")


T = TypeVar("T")

Sleeper = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry policy with exponentially increasing delays between
    consecutive attempts.

    The unit of work passed to `run()` is an async function that takes no
    arguments. It may:

    - return a value, which ends the run successfully (``None`` is a valid
      return value and means that the work deliberately produced nothing)

    - raise an exception matching ``retry_on``, which schedules another
      attempt after a delay

    - raise any other exception, which propagates immediately.
    """

    max_attempts: int = 10
    """Maximum number of attempts, including the first one."""

    base_delay: float = 0.5
    """Delay after the first failed attempt, in seconds."""

    multiplier: float = 2.0
    """Factor by which the delay grows after each failed attempt."""

    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    """Exception types that trigger another attempt."""

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("at least one attempt is needed")
        if self.base_delay <= 0:
            raise ValueError("delay must be positive")
        if self.multiplier <= 1:
            raise ValueError("multiplier must be larger than 1")

    def delays(self) -> Iterator[float]:
        """Yields the delays to wait between consecutive attempts."""
        delay = self.base_delay
        for _ in range(self.max_attempts - 1):
            yield delay
            delay *= self.multiplier

    async def run(
        self, work: Callable[[], Awaitable[T]], *, sleep: Sleeper = sleep
    ) -> Optional[T]:
        """Executes the given unit of work until it succeeds or the number of
        attempts is exhausted.

        Parameters:
            work: the async function to call
            sleep: async function to call with the number of seconds to wait
                between attempts

        Returns:
            the value returned by the first successful attempt

        Raises:
            RetryExhausted: if all the attempts failed
        """
        delays = self.delays()
        attempts = 0
        while True:
            attempts += 1
            try:
                return await work()
            except self.retry_on as ex:
                delay = next(delays, None)
                if delay is None:
                    raise RetryExhausted(ex, attempts) from ex

            await sleep(delay)


def exponential_backoff(attempts: int, delay: float) -> RetryPolicy:
    """Creates a retry policy that makes the given number of attempts, waiting
    ``delay`` seconds after the first failure and doubling the wait after
    each subsequent one.
    """
    return RetryPolicy(max_attempts=attempts, base_delay=delay)
