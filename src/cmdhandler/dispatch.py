"""
Plugin dispatch engine.

Turns an inbound request into a plugin run:

1. Validate the plugin name and resolve the loader
2. Translate parameters and build the invocation
3. Record the request in the execution log (fail closed)
4. Count the plugin use
5. Run the plugin, either inline for job runners (the output becomes the
   response) or on a background worker for chat callers (they get an
   immediate acknowledgment; failures go to their callback URL)

Plugins are never retried. Separate requests share nothing except the
read-only loader registry and the audit, metrics and webhook collaborators,
so the same plugin may run many times concurrently.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Callable, Iterable, Mapping, Optional, Union

from cmdhandler.arguments import ROUTING_KEYS, translate
from cmdhandler.audit import ExecutionLog
from cmdhandler.commands import (
    PluginInvocation,
    build_invocation,
    is_safe_plugin_name,
    plugin_path,
)
from cmdhandler.config import Settings
from cmdhandler.exceptions import (
    AuditFailureError,
    DispatchError,
    ExecutionFailureError,
    InvalidRequestError,
)
from cmdhandler.executor import ExecutionResult, run_invocation
from cmdhandler.loaders import LoaderDescriptor, LoaderRegistry
from cmdhandler.metrics import Counter, metric_name
from cmdhandler.notifier import FailureNotifier
from cmdhandler.reporter import (
    format_acknowledgment,
    format_success,
)

logger = logging.getLogger(__name__)

# Wire names accepted for the optional routing parameters, preferred first
JOB_RUNNER_KEYS = ("jobRunnerUrl", "jobRunnerCallback")
RESPONSE_CALLBACK_KEYS = ("response_url", "responseCallback")
USER_KEY = "user_name"
TEXT_KEY = "text"

Runner = Callable[[PluginInvocation, Optional[float]], ExecutionResult]


class DispatchState(str, Enum):
    """Where a request ended up."""

    REJECTED = "rejected"
    ABORTED = "aborted"  # execution log unavailable
    ACCEPTED = "accepted"  # acknowledged, background run pending
    COMPLETED_SYNC = "completed_sync"
    COMPLETED_ASYNC_SUCCESS = "completed_async_success"
    COMPLETED_ASYNC_FAILURE = "completed_async_failure"


def _first_present(values: Mapping[str, str], keys: Iterable[str]) -> Optional[str]:
    for key in keys:
        value = values.get(key)
        if value:
            return value
    return None


@dataclass(frozen=True)
class DispatchRequest:
    """
    One inbound plugin request.

    ``parameters`` holds everything the plugin receives as arguments: all
    inbound keys except ``plugin`` and ``loader``. The optional routing
    values (callbacks, user, text) are still forwarded to the plugin.
    """

    loader: str
    plugin: str
    job_runner_callback: Optional[str] = None
    response_callback: Optional[str] = None
    parameters: Mapping[str, str] = field(default_factory=dict)
    requesting_user: Optional[str] = None
    raw_text: Optional[str] = None

    def __post_init__(self) -> None:
        params = {k: v for k, v in self.parameters.items() if k not in ROUTING_KEYS}
        object.__setattr__(self, "parameters", MappingProxyType(params))

    @property
    def is_synchronous(self) -> bool:
        """Job runners wait for the plugin and receive its output."""
        return bool(self.job_runner_callback)

    @classmethod
    def from_params(
        cls, params: Union[Mapping[str, str], Iterable[tuple[str, str]]]
    ) -> "DispatchRequest":
        """
        Build a request from raw key/value pairs (query string or form).

        When a key is repeated, the first value wins.
        """
        items = params.items() if isinstance(params, Mapping) else params
        values: dict[str, str] = {}
        for key, value in items:
            values.setdefault(key, value)

        return cls(
            loader=values.get("loader", ""),
            plugin=values.get("plugin", ""),
            job_runner_callback=_first_present(values, JOB_RUNNER_KEYS),
            response_callback=_first_present(values, RESPONSE_CALLBACK_KEYS),
            parameters=values,
            requesting_user=values.get(USER_KEY),
            raw_text=values.get(TEXT_KEY),
        )


@dataclass(frozen=True)
class EngineConfig:
    """Immutable engine configuration, built once at startup."""

    registry: LoaderRegistry
    plugin_root: Path
    sync_timeout: Optional[float] = 300.0
    background_timeout: Optional[float] = None
    max_workers: int = 32

    @classmethod
    def from_settings(
        cls, settings: Settings, registry: Optional[LoaderRegistry] = None
    ) -> "EngineConfig":
        return cls(
            registry=registry if registry is not None else LoaderRegistry.default(),
            plugin_root=settings.plugin_root_path,
            sync_timeout=settings.sync_timeout_seconds,
            background_timeout=settings.background_timeout_seconds,
            max_workers=settings.max_workers,
        )


@dataclass(frozen=True)
class PreparedDispatch:
    """A validated request with its resolved loader and built invocation."""

    request: DispatchRequest
    descriptor: LoaderDescriptor
    invocation: PluginInvocation


@dataclass(frozen=True)
class DispatchOutcome:
    """
    Response to send for a dispatched request.

    ``pending`` is set for background requests; the caller must hand it to
    DispatchEngine.run_detached() once the acknowledgment has been sent.
    """

    state: DispatchState
    status_code: int
    body: str
    pending: Optional[PreparedDispatch] = None

    @classmethod
    def from_error(cls, error: DispatchError) -> "DispatchOutcome":
        """Outcome for a request that ended with a DispatchError."""
        if isinstance(error, InvalidRequestError):
            state = DispatchState.REJECTED
        elif isinstance(error, AuditFailureError):
            state = DispatchState.ABORTED
        else:
            state = DispatchState.COMPLETED_SYNC
        return cls(state=state, status_code=error.status_code, body=error.public_message)


def prepare_dispatch(config: EngineConfig, request: DispatchRequest) -> PreparedDispatch:
    """
    Validate a request and build its invocation.

    Pure data transformation; nothing is logged, audited or executed.

    Raises:
        InvalidRequestError: If the plugin name is empty or unsafe, or the
            loader is not registered
    """
    if not request.plugin:
        raise InvalidRequestError("empty plugin name")
    if not is_safe_plugin_name(request.plugin):
        raise InvalidRequestError(f"unsafe plugin name: {request.plugin!r}")

    descriptor = config.registry.resolve(request.loader)
    if descriptor is None:
        raise InvalidRequestError(f"unsupported loader: {request.loader!r}")

    args = translate(descriptor.argument_style, request.parameters)
    invocation = build_invocation(
        descriptor,
        plugin_path(config.plugin_root, descriptor.id, request.plugin),
        args,
    )
    return PreparedDispatch(request=request, descriptor=descriptor, invocation=invocation)


class DispatchEngine:
    """
    Validates requests and runs plugins.

    Responsibilities:
    - Reject unsupported loaders and unsafe or missing plugin names
    - Audit and count every accepted request
    - Run job runner requests inline, bounded by the sync timeout
    - Run chat requests on a worker pool and report failures to the callback
    """

    def __init__(
        self,
        config: EngineConfig,
        execution_log: ExecutionLog,
        counter: Counter,
        notifier: FailureNotifier,
        runner: Runner = run_invocation,
    ):
        """
        Initialize the engine.

        Args:
            config: Loader table, plugin root and execution limits
            execution_log: Audit log written before every run
            counter: Usage counter keyed by plugin name
            notifier: Delivers background failures to the caller's callback
            runner: Executes an invocation (injectable for tests)
        """
        self.config = config
        self._execution_log = execution_log
        self._counter = counter
        self._notifier = notifier
        self._runner = runner
        self._pool = ThreadPoolExecutor(
            max_workers=config.max_workers, thread_name_prefix="plugin"
        )

    def prepare(self, request: DispatchRequest) -> PreparedDispatch:
        """Validate a request and build its invocation (see prepare_dispatch)."""
        return prepare_dispatch(self.config, request)

    def dispatch(self, request: DispatchRequest) -> DispatchOutcome:
        """
        Handle one request up to the point where a response can be sent.

        Synchronous requests run to completion here. Background requests
        return an acknowledgment with ``pending`` set; nothing has been
        executed yet.

        Raises:
            InvalidRequestError: Request rejected, nothing audited or run
            AuditFailureError: Execution log unavailable, nothing run
            ExecutionFailureError: Synchronous plugin run failed
        """
        try:
            prepared = self.prepare(request)
        except InvalidRequestError as e:
            logger.info(f"Rejected plugin request: {e.reason}")
            raise

        try:
            self._execution_log.record_event(
                loader=prepared.descriptor.id,
                plugin=request.plugin,
                user=request.requesting_user,
                text=request.raw_text,
            )
        except AuditFailureError:
            logger.error(f"Error logging event for {request.plugin}. Aborted execution.")
            raise

        self._counter.increment(metric_name(request.plugin))

        if request.is_synchronous:
            return self._run_sync(prepared)

        return DispatchOutcome(
            state=DispatchState.ACCEPTED,
            status_code=200,
            body=format_acknowledgment(request.plugin),
            pending=prepared,
        )

    def handle(self, request: DispatchRequest) -> DispatchOutcome:
        """Like dispatch(), but returns errors as outcomes instead of raising."""
        try:
            return self.dispatch(request)
        except DispatchError as e:
            return DispatchOutcome.from_error(e)

    def _run_sync(self, prepared: PreparedDispatch) -> DispatchOutcome:
        plugin = prepared.request.plugin
        result = self._runner(prepared.invocation, self.config.sync_timeout)

        if not result.succeeded:
            logger.error(
                f"Failure executing {plugin}. Reason: {result.failure_detail}\n"
                f"Output: {result.output_text}"
            )
            raise ExecutionFailureError(plugin, result)

        return DispatchOutcome(
            state=DispatchState.COMPLETED_SYNC,
            status_code=200,
            body=result.output_text,
        )

    def run_detached(self, prepared: PreparedDispatch) -> "Future[DispatchState]":
        """Start a background run and return without waiting for it."""
        return self._pool.submit(self._run_background, prepared)

    def _run_background(self, prepared: PreparedDispatch) -> DispatchState:
        request = prepared.request
        try:
            result = self._runner(prepared.invocation, self.config.background_timeout)
        except Exception as e:
            logger.error(f"Error running {request.plugin}: {e}", exc_info=True)
            return DispatchState.COMPLETED_ASYNC_FAILURE

        if result.succeeded:
            logger.info(format_success(request.plugin, request.raw_text))
            return DispatchState.COMPLETED_ASYNC_SUCCESS

        self._notifier.notify_failure(request.response_callback, result.output_text)
        logger.error(
            f"*** Failure executing {request.plugin}.  Reason: {result.failure_detail}\n"
            f"Output: {result.output_text}"
        )
        return DispatchState.COMPLETED_ASYNC_FAILURE

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting background runs, optionally waiting for running ones."""
        logger.info("Shutting down plugin worker pool...")
        self._pool.shutdown(wait=wait)

    def close(self) -> None:
        """Release collaborator resources (HTTP client, statsd socket)."""
        for collaborator in (self._notifier, self._counter):
            close = getattr(collaborator, "close", None)
            if callable(close):
                close()
