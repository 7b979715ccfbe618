"""Keyed request lifecycle state: one generic machine for every backend operation.

Each operation key (see ``Operation``) owns one ``RequestState``. The table is
mutated only through begin / succeed / fail / reset; views read it with ``get``
or ``subscribe`` and never write it directly.

Same-key interleaving is last-completion-wins unless ``discard_stale_completions``
is enabled, in which case a completion carrying a token older than the latest
``begin`` for that key is dropped.
"""

import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

from bodyvantage.core import EMPTY_SUCCESS_PAYLOAD
from bodyvantage.domain import LifecycleEvent, Operation
from bodyvantage.providers import BackendServiceError
from bodyvantage.schemas import RequestState

logger = logging.getLogger(__name__)

T = TypeVar("T")

StateListener = Callable[[RequestState], None]
TableListener = Callable[[str, RequestState], None]

_GENERIC_ERROR_MESSAGE = "Request failed."


class CancelToken:
    """Set when the initiating view is torn down; completions after that are not applied."""

    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


def flatten_error(error: BaseException) -> str:
    """Collapse any backend/transport error into the single message stored on the state."""
    message = str(error).strip()
    return message or _GENERIC_ERROR_MESSAGE


def reduce_request_state(state: RequestState, event: LifecycleEvent, value: Any = None) -> RequestState:
    """Pure transition function. Out-of-order events overwrite rather than raise."""
    if event is LifecycleEvent.BEGIN:
        return RequestState.pending()
    if event is LifecycleEvent.SUCCEED:
        return RequestState.success(EMPTY_SUCCESS_PAYLOAD if value is None else value)
    if event is LifecycleEvent.FAIL:
        return RequestState.failure(value if isinstance(value, str) and value else _GENERIC_ERROR_MESSAGE)
    if event is LifecycleEvent.RESET:
        return RequestState.idle()
    raise ValueError(f"Unknown lifecycle event: {event!r}")


def _key(key: Operation | str) -> str:
    return key.value if isinstance(key, Operation) else str(key)


class RequestStateMachine:
    def __init__(self, discard_stale_completions: bool = False):
        self.discard_stale_completions = discard_stale_completions
        self._states: dict[str, RequestState] = {}
        self._tokens: dict[str, int] = defaultdict(int)
        self._listeners: dict[str, list[StateListener]] = defaultdict(list)
        self._table_listeners: list[TableListener] = []

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    def get(self, key: Operation | str) -> RequestState:
        state = self._states.get(_key(key))
        return state if state is not None else RequestState.idle()

    def snapshot(self) -> dict[str, RequestState]:
        return dict(self._states)

    def subscribe(self, key: Operation | str, listener: StateListener) -> Callable[[], None]:
        """Call listener with every new state for key. Returns an unsubscribe callable."""
        k = _key(key)
        self._listeners[k].append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners[k]:
                self._listeners[k].remove(listener)

        return unsubscribe

    def subscribe_all(self, listener: TableListener) -> Callable[[], None]:
        self._table_listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._table_listeners:
                self._table_listeners.remove(listener)

        return unsubscribe

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def dispatch(self, key: Operation | str, event: LifecycleEvent, value: Any = None) -> RequestState:
        k = _key(key)
        new_state = reduce_request_state(self.get(k), event, value)
        self._states[k] = new_state
        logger.debug("request state %s: %s -> %s", k, event.value, new_state.status)
        for listener in list(self._listeners.get(k, ())):
            listener(new_state)
        for table_listener in list(self._table_listeners):
            table_listener(k, new_state)
        return new_state

    def begin(self, key: Operation | str) -> int:
        """Move key to pending, clearing any previous error or payload. Returns the request token."""
        k = _key(key)
        self._tokens[k] += 1
        self.dispatch(k, LifecycleEvent.BEGIN)
        return self._tokens[k]

    def succeed(self, key: Operation | str, payload: Any, token: int | None = None) -> bool:
        if self._is_stale(key, token):
            return False
        self.dispatch(key, LifecycleEvent.SUCCEED, payload)
        return True

    def fail(self, key: Operation | str, error: str, token: int | None = None) -> bool:
        if self._is_stale(key, token):
            return False
        self.dispatch(key, LifecycleEvent.FAIL, error)
        return True

    def reset(self, key: Operation | str) -> None:
        self.dispatch(key, LifecycleEvent.RESET)

    def _is_stale(self, key: Operation | str, token: int | None) -> bool:
        if token is None or not self.discard_stale_completions:
            return False
        k = _key(key)
        if token < self._tokens[k]:
            logger.debug("dropping stale completion for %s (token %s < %s)", k, token, self._tokens[k])
            return True
        return False

    # -------------------------------------------------------------------------
    # Async driver
    # -------------------------------------------------------------------------

    async def run(
        self,
        key: Operation | str,
        operation: Callable[[], Awaitable[T]],
        *,
        cancel: CancelToken | None = None,
    ) -> RequestState:
        """begin → await operation → succeed/fail. Results after cancel are dropped."""
        k = _key(key)
        if cancel is not None and cancel.cancelled:
            return self.get(k)
        token = self.begin(k)
        try:
            payload = await operation()
        except BackendServiceError as e:
            if cancel is not None and cancel.cancelled:
                logger.debug("dropping failure for %s after teardown", k)
                return self.get(k)
            logger.warning("%s failed: %s", k, e)
            self.fail(k, flatten_error(e), token=token)
            return self.get(k)
        except Exception as e:
            # Unexpected errors still leave the key in a terminal state before propagating
            if cancel is None or not cancel.cancelled:
                self.fail(k, flatten_error(e), token=token)
            raise
        if cancel is not None and cancel.cancelled:
            logger.debug("dropping result for %s after teardown", k)
            return self.get(k)
        self.succeed(k, payload, token=token)
        return self.get(k)

    @asynccontextmanager
    async def scope(self) -> AsyncIterator[CancelToken]:
        """Yield a token for one view's lifetime; cancelled on exit."""
        token = CancelToken()
        try:
            yield token
        finally:
            token.cancel()
