"""
Request runner.

:class:`RequestRunner` dispatches one request at a time through a
webmachine-style state machine. Each ``state_*`` method returns the next state
method, or a terminal value: an :class:`~oasmachine.models.HttpResult`, or None
when the request does not match any operation::

    resolve -> controller bound -> authenticate -> pre-controller hooks
            -> parse request -> invoke controller -> render

Once a response is finished (by an authenticator, hook or controller writing
to ``context.res``), the remaining steps are skipped and it is rendered.
"""

import inspect
import json
import logging
from typing import Any, Callable, Optional, Union

from .context import RequestContext
from .controllers import call_handler
from .error_models import ErrorResponse
from .exceptions import ConfigurationError, HttpError
from .models import HttpResult, Request
from .oas3 import OpenApi, ResolvedOperation
from .options import CompiledOptions
from .streaming import bytes_to_stream, is_readable_stream, string_to_stream

logger = logging.getLogger(__name__)

MAX_STATES = 50

State = Callable[[], Any]


def _serialize_pydantic(data: Any) -> Any:
    """Convert pydantic models (at any depth) to JSON-ready values."""
    if hasattr(data, "model_dump"):
        return data.model_dump(mode="json")
    if isinstance(data, (list, tuple)):
        return [_serialize_pydantic(item) for item in data]
    if isinstance(data, dict):
        return {key: _serialize_pydantic(value) for key, value in data.items()}
    return data


def result_to_http_result(context: RequestContext, result: Any) -> HttpResult:
    """Render a controller's result (or the body written to ``context.res``)."""
    body = None
    if result is not None:
        if isinstance(result, (bytes, bytearray)):
            body = bytes_to_stream(result)
        elif isinstance(result, str):
            body = string_to_stream(result)
        elif is_readable_stream(result):
            body = result
        else:
            if not context.res.has_header("content-type"):
                context.res.headers.set("Content-Type", "application/json")
            body = string_to_stream(json.dumps(_serialize_pydantic(result)))

    return HttpResult(status=context.res.status_code, headers=context.res.get_headers(), body=body)


def http_error_to_result(error: HttpError) -> HttpResult:
    """Render an HttpError as a JSON ``{message, errors?}`` envelope."""
    headers = {"Content-Type": "application/json"}
    headers.update(error.headers)
    envelope = ErrorResponse.from_http_error(error)
    return HttpResult(status=error.status, headers=headers, body=string_to_stream(envelope.model_dump_json()))


class RequestRunner:
    """Runs requests against a compiled document. Safe to share between requests.

    Example::

        runner = compile_runner("petstore.yaml", Options(controllers={"pets": pets}))
        result = await runner(Request("GET", "/pets?limit=10"))
        if result is None:
            ...  # not an API route
    """

    def __init__(self, api: OpenApi, options: CompiledOptions):
        self.api = api
        self.options = options

    async def __call__(self, request: Request) -> Optional[HttpResult]:
        return await self.run(request)

    async def run(self, request: Request) -> Optional[HttpResult]:
        machine = RequestStateMachine(self, request)
        try:
            return await machine.process_request()
        except ConfigurationError:
            raise
        except Exception as e:
            return await self.handle_error(e, machine.context)

    async def handle_error(self, error: Exception, context: Optional[RequestContext]) -> HttpResult:
        """Convert ``error`` into a result, or re-raise it, as configured."""
        auto_handle = self.options.auto_handle_http_errors
        if not auto_handle:
            raise error

        if callable(auto_handle):
            result = auto_handle(error, context)
            if inspect.isawaitable(result):
                result = await result
            return result

        if isinstance(error, HttpError):
            logger.debug(f"HTTP error {error.status}: {error.message}")
            return http_error_to_result(error)

        if self.options.handle_unexpected_errors:
            logger.error(f"Unexpected error handling request: {error}", exc_info=True)
            return http_error_to_result(HttpError(500, "Internal server error"))

        raise error


class RequestStateMachine:
    """Dispatch of a single request. Created per request, never shared."""

    def __init__(self, runner: RequestRunner, request: Request):
        self.runner = runner
        self.options = runner.options
        self.request = request
        self.resolved: Optional[ResolvedOperation] = None
        self.context: Optional[RequestContext] = None
        self.handler: Optional[Callable] = None
        self.controller_result: Any = None

    async def process_request(self) -> Optional[HttpResult]:
        logger.debug(f"Dispatching {self.request.method.value} {self.request.url}")

        current: Union[State, Optional[HttpResult]] = self.state_resolve
        state_count = 0

        while callable(current):
            state_count += 1
            if state_count > MAX_STATES:
                raise RuntimeError(f"Request state machine exceeded max states ({MAX_STATES})")

            state_name = current.__name__
            logger.debug(f"  [{state_count}] → {state_name}")
            current = await current()

        if current is None:
            logger.debug(f"  ✓ Unhandled after {state_count} states")
        else:
            logger.debug(f"  ✓ Complete in {state_count} states: {current.status}")
        return current

    async def state_resolve(self):
        self.resolved = self.runner.api.resolve(self.request.method, self.request.url, self.request.headers)
        if self.resolved is None:
            return None
        self.context = RequestContext(self.request, self.resolved, self.runner.api)
        return self.state_controller_bound

    def _unbound(self, controller: Optional[str], operation_id: Optional[str]) -> ConfigurationError:
        return ConfigurationError(
            f"No controller bound for {self.request.method.value} {self.resolved.path_template} "
            f"({controller or 'no controller'}#{operation_id or 'no operation id'})"
        )

    async def state_controller_bound(self):
        operation = self.resolved.operation
        content_type = self.request.get_content_type()
        controller, operation_id, handler = operation.get_handler(content_type)
        if handler is None:
            unmatched_body = operation.request_body is not None and operation.get_media_type(content_type) is None
            if not unmatched_body:
                raise self._unbound(controller, operation_id)
            # Parsing the body reports the content type; only fail if it does not.
        self.handler = handler
        return self.state_authenticate

    async def state_authenticate(self):
        context = self.context
        security = await context.operation.authenticate(context)
        context.security = security
        if security and len(security) == 1:
            context.user = next(iter(security.values())).user
        return self.state_pre_controller

    async def state_pre_controller(self):
        context = self.context
        for hook in self.options.pre_controller_hooks:
            if context.is_response_finished():
                break
            result = hook(context)
            if inspect.isawaitable(result):
                await result
        return self.state_parse_request

    async def state_parse_request(self):
        if self.context.is_response_finished():
            return self.state_render
        await self.context.parse_request()
        return self.state_invoke_controller

    async def state_invoke_controller(self):
        if self.context.is_response_finished():
            return self.state_render
        if self.handler is None:
            controller, operation_id, _ = self.context.operation.get_handler(self.request.get_content_type())
            raise self._unbound(controller, operation_id)
        self.controller_result = await call_handler(
            self.handler,
            self.context,
            self.options.run_sync_controllers_in_thread,
        )
        return self.state_render

    async def state_render(self):
        context = self.context
        result = context.res.body if context.res.body is not None else self.controller_result
        return result_to_http_result(context, result)
