"""
Compiler and runner options.

:class:`Options` is what callers construct; :func:`compile_options` turns it
into an immutable :class:`CompiledOptions` once, before the document is
compiled. Nothing reads :class:`Options` after that point.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from jsonschema import FormatChecker

from .body_parsers import BodyParserWrapper, default_mime_type_parsers, is_body_parser, is_string_parser
from .exceptions import CompileError
from .formats import build_format_checker
from .mime import MimeTypeRegistry

logger = logging.getLogger(__name__)

DEFAULT_MAX_BODY_SIZE = 100000

ErrorHandler = Callable[[BaseException, Any], Any]


@dataclass
class Options:
    """Configuration for compiling a document and running requests against it.

    Attributes:
        controllers: Mapping of controller name to the object holding its
                     operations. An operation is looked up with ``getattr`` on
                     modules and objects, or by key on mappings.
                     Example: {"pets": pets_module, "admin": {"listUsers": list_users}}

        authenticators: Mapping of security scheme name to an authenticator.
                        An authenticator is called with the request context and
                        returns an :class:`~oasmachine.models.Authenticated`, a
                        mapping with the same keys, or a falsy value. It may be
                        a coroutine function.

        mime_type_parsers: Mapping of MIME type pattern to parser. Parsers with a
                           ``parse_string`` method are used for parameters and
                           bodies; parsers with only ``parse_body`` are used for
                           bodies. These override the built in parsers for
                           ``text/*``, ``application/json`` and
                           ``application/x-www-form-urlencoded``. Map a pattern to
                           None to remove a built in parser.

        custom_formats: Extra JSON Schema formats, see :mod:`oasmachine.formats`.

        default_max_body_size: Largest request body, in bytes, that the built in
                               parsers will read. Larger bodies fail with 413.

        ignore_servers: Ignore the document's ``servers``. Paths are matched
                        from the root and no "server" parameters are produced.

        allow_missing_controllers: Allow operations with no controller or
                                   operation id. Requests to such operations
                                   raise :class:`~oasmachine.exceptions.ConfigurationError`.

        auto_handle_http_errors: Convert errors with an HTTP status into JSON
                                 error responses. May also be a callable
                                 ``(error, context) -> HttpResult`` which is
                                 used instead of the built in conversion.

        handle_unexpected_errors: When auto handling is on, also convert errors
                                  without a status into a 500 response instead
                                  of re-raising them.

        all_errors: Report every schema violation rather than only the most
                    relevant one.

        plugins: Objects with an optional ``pre_controller(context)`` method.

        pre_controller_hooks: Callables ``(context)`` run after the plugins.

        run_sync_controllers_in_thread: Run synchronous controllers and
                                        authenticators on a worker thread.

    Examples:
        # Just routing and validation
        Options()

        Options(
            controllers={"pets": pets},
            authenticators={"basicAuth": check_basic_auth},
            custom_formats={"even": {"type": "integer", "validate": lambda n: n % 2 == 0}},
        )
    """

    controllers: Dict[str, Any] = field(default_factory=dict)
    authenticators: Dict[str, Callable] = field(default_factory=dict)
    mime_type_parsers: Dict[str, Any] = field(default_factory=dict)
    custom_formats: Dict[str, Any] = field(default_factory=dict)

    default_max_body_size: int = DEFAULT_MAX_BODY_SIZE
    ignore_servers: bool = False
    allow_missing_controllers: bool = True

    auto_handle_http_errors: Union[bool, ErrorHandler] = True
    handle_unexpected_errors: bool = False
    all_errors: bool = False

    plugins: List[Any] = field(default_factory=list)
    pre_controller_hooks: List[Callable] = field(default_factory=list)
    run_sync_controllers_in_thread: bool = True


@dataclass(frozen=True)
class CompiledOptions:
    """Options after compilation. Shared, read only, by every request."""

    controllers: Mapping[str, Any]
    authenticators: Mapping[str, Callable]
    body_parsers: MimeTypeRegistry
    parameter_parsers: MimeTypeRegistry
    format_checker: FormatChecker
    default_max_body_size: int
    ignore_servers: bool
    allow_missing_controllers: bool
    auto_handle_http_errors: Union[bool, ErrorHandler]
    handle_unexpected_errors: bool
    all_errors: bool
    pre_controller_hooks: Tuple[Callable, ...]
    run_sync_controllers_in_thread: bool


def _collect_hooks(options: Options) -> Tuple[Callable, ...]:
    hooks: List[Callable] = []
    for plugin in options.plugins:
        hook = getattr(plugin, "pre_controller", None)
        if hook is not None:
            hooks.append(hook)
    hooks.extend(options.pre_controller_hooks)
    return tuple(hooks)


def compile_options(options: Optional[Options] = None) -> CompiledOptions:
    """Validate ``options`` and build the parser registries and format checker.

    Raises:
        CompileError: If a parser, format or size limit is invalid.
    """
    options = options or Options()

    if options.default_max_body_size <= 0:
        raise CompileError(f"default_max_body_size must be positive, got {options.default_max_body_size}")

    mime_type_parsers: Dict[str, Any] = default_mime_type_parsers()
    mime_type_parsers.update(
        {pattern.strip().lower(): parser for pattern, parser in options.mime_type_parsers.items()}
    )

    body_parsers: Dict[str, Any] = {}
    parameter_parsers: Dict[str, Any] = {}
    for pattern, parser in mime_type_parsers.items():
        if parser is None:
            continue
        if is_string_parser(parser):
            parameter_parsers[pattern] = parser
            body_parsers[pattern] = (
                parser if is_body_parser(parser)
                else BodyParserWrapper(parser, options.default_max_body_size)
            )
        elif is_body_parser(parser):
            body_parsers[pattern] = parser
        else:
            raise CompileError(f"Parser for {pattern} must have a parse_string or parse_body method")

    try:
        format_checker = build_format_checker(options.custom_formats)
        body_registry: MimeTypeRegistry = MimeTypeRegistry(body_parsers)
        parameter_registry: MimeTypeRegistry = MimeTypeRegistry(parameter_parsers)
    except ValueError as e:
        raise CompileError(str(e)) from e

    hooks = _collect_hooks(options)
    logger.debug(
        f"Compiled options: {len(body_parsers)} body parsers, "
        f"{len(options.authenticators)} authenticators, {len(hooks)} pre-controller hooks"
    )

    return CompiledOptions(
        controllers=dict(options.controllers),
        authenticators=dict(options.authenticators),
        body_parsers=body_registry,
        parameter_parsers=parameter_registry,
        format_checker=format_checker,
        default_max_body_size=options.default_max_body_size,
        ignore_servers=options.ignore_servers,
        allow_missing_controllers=options.allow_missing_controllers,
        auto_handle_http_errors=options.auto_handle_http_errors,
        handle_unexpected_errors=options.handle_unexpected_errors,
        all_errors=options.all_errors,
        pre_controller_hooks=hooks,
        run_sync_controllers_in_thread=options.run_sync_controllers_in_thread,
    )
