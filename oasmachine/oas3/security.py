"""
Security evaluation for one operation.

An operation's ``security`` is a list of alternatives; each alternative maps
scheme names to required scopes. The request is authenticated if every scheme of
any one alternative accepts it. Alternatives are tried in order and the first
that succeeds wins.

Evaluation is a small webmachine-style state machine: each ``state_*`` method
returns the next state method, or a terminal value (the identity map, or None
when an authenticator already finished the response). Failures raise
:class:`~oasmachine.exceptions.HttpError` with status 401 or 403.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from ..controllers import call_handler
from ..exceptions import HttpError
from ..models import Authenticated

logger = logging.getLogger(__name__)

SecurityRequirement = Mapping[str, Sequence[str]]
IdentityMap = Dict[str, Authenticated]

MAX_STATES = 1000


def _missing(required: Sequence[str], have: Optional[Sequence[str]]) -> List[str]:
    if not have:
        return list(required)
    return [item for item in required if item not in have]


def describe_requirements(requirements: Sequence[SecurityRequirement]) -> str:
    """``[{"a": []}, {"b": [], "c": []}]`` -> ``"a, (b + c)"``."""
    described = []
    for requirement in requirements:
        schemes = list(requirement.keys())
        described.append(schemes[0] if len(schemes) == 1 else f"({' + '.join(schemes)})")
    return ", ".join(described)


def challenge_for_scheme(scheme: Mapping[str, Any]) -> Optional[str]:
    """The ``WWW-Authenticate`` challenge for a security scheme object, if it has one."""
    scheme_type = scheme.get("type")
    if scheme_type == "http" and scheme.get("scheme"):
        return str(scheme["scheme"]).capitalize()
    if scheme_type in ("oauth2", "openIdConnect"):
        return "Bearer"
    return None


@dataclass
class SecurityState:
    """Per-request evaluation state. Never shared between requests."""

    context: Any
    # Authenticator results by scheme name; each authenticator runs at most once.
    tried_schemes: Dict[str, Optional[Authenticated]] = field(default_factory=dict)
    reasons: List[str] = field(default_factory=list)
    requirement_index: int = 0
    result: Optional[IdentityMap] = None


State = Callable[[], Any]


class SecurityEvaluator:
    """Compiled security policy of one operation. Shared by all requests."""

    def __init__(
        self,
        requirements: Sequence[SecurityRequirement],
        required_roles: Sequence[str],
        authenticators: Mapping[str, Callable],
        security_schemes: Mapping[str, Mapping[str, Any]],
        run_sync_in_thread: bool = True,
    ):
        self.requirements = [dict(requirement) for requirement in requirements]
        self.required_roles = list(required_roles)
        self.authenticators = authenticators
        self.run_sync_in_thread = run_sync_in_thread

        challenges: List[str] = []
        for requirement in self.requirements:
            for scheme_name in requirement:
                challenge = challenge_for_scheme(security_schemes.get(scheme_name) or {})
                if challenge and challenge not in challenges:
                    challenges.append(challenge)
        self.challenges = challenges

    async def authenticate(self, context: Any) -> Optional[IdentityMap]:
        """Authenticate ``context``.

        Returns the identity map (empty when the operation needs no
        authentication), or None if an authenticator finished the response.

        Raises:
            HttpError: 401/403 if no alternative is satisfied.
        """
        run = _SecurityRun(self, SecurityState(context=context))
        return await run.run()


class _SecurityRun:
    """One evaluation of a :class:`SecurityEvaluator` against one request."""

    def __init__(self, evaluator: SecurityEvaluator, state: SecurityState):
        self.evaluator = evaluator
        self.state = state

    async def run(self) -> Optional[IdentityMap]:
        current: Union[State, Optional[IdentityMap]] = self.state_has_requirements
        state_count = 0

        while callable(current):
            state_count += 1
            if state_count > MAX_STATES:
                raise RuntimeError(f"Security evaluation exceeded max states ({MAX_STATES})")
            logger.debug(f"  [security {state_count}] → {current.__name__}")
            current = await current()

        return current

    async def state_has_requirements(self):
        if not self.evaluator.requirements:
            return {}
        return self.state_next_requirement

    async def state_next_requirement(self):
        if self.state.requirement_index >= len(self.evaluator.requirements):
            return self.state_no_requirement_satisfied
        return self.state_check_requirement

    async def state_check_requirement(self):
        requirement = self.evaluator.requirements[self.state.requirement_index]
        result: IdentityMap = {}

        for scheme_name, required_scopes in requirement.items():
            if self.state.context.is_response_finished():
                return self.state_response_finished

            authenticated = await self._try_scheme(scheme_name)
            if not authenticated:
                return self.state_requirement_failed

            missing_scopes = _missing(required_scopes or [], authenticated.scopes)
            if missing_scopes:
                self.state.reasons.append(
                    f"Authenticated using '{scheme_name}' but missing required scopes: {', '.join(missing_scopes)}."
                )
                return self.state_requirement_failed

            missing_roles = _missing(self.evaluator.required_roles, authenticated.roles)
            if missing_roles:
                self.state.reasons.append(
                    f"Authenticated using '{scheme_name}' but missing required roles: {', '.join(missing_roles)}."
                )
                return self.state_requirement_failed

            result[scheme_name] = authenticated

        self.state.result = result
        return self.state_authenticated

    async def state_requirement_failed(self):
        if self.state.context.is_response_finished():
            return self.state_response_finished
        self.state.requirement_index += 1
        return self.state_next_requirement

    async def state_authenticated(self):
        logger.debug(f"Authenticated using {', '.join(self.state.result or {})}")
        return self.state.result

    async def state_response_finished(self):
        logger.debug("Response finished during authentication")
        return None

    async def state_no_requirement_satisfied(self):
        if self.state.reasons:
            message = "\n".join(self.state.reasons)
            logger.info(f"Authorization failed: {message}")
            raise HttpError(403, message)

        message = (
            "Must authenticate using one of the following schemes: "
            f"{describe_requirements(self.evaluator.requirements)}."
        )
        logger.info(message)
        if self.evaluator.challenges:
            raise HttpError(401, message, headers={"WWW-Authenticate": list(self.evaluator.challenges)})
        raise HttpError(403, message)

    async def _try_scheme(self, scheme_name: str) -> Optional[Authenticated]:
        if scheme_name not in self.state.tried_schemes:
            authenticator = self.evaluator.authenticators[scheme_name]
            value = await call_handler(authenticator, self.state.context, self.evaluator.run_sync_in_thread)
            self.state.tried_schemes[scheme_name] = Authenticated.from_value(value)
        return self.state.tried_schemes[scheme_name]
