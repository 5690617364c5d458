# SPDX-License-Identifier: BSL-1.1
# Copyright (c) 2026 MuVeraAI Corporation
"""
Decorator pattern for gating host functions through a DecisionGateway.

Wrap any callable, sync or async, with ``@gated``::

    from sovereign_gateway.decorators import gated

    @gated(gateway, principal_id="peer-7", action_class="system-queries",
           describe=lambda query: f"query the system: {query}")
    def run_query(query: str) -> list[str]:
        return backend.search(query)

    run_query("open incidents")          # admitted: the function runs
    print(run_query.gate_state.last_decision.status)

This is the host boundary: a refused action raises here, after the
decision has already been recorded. Inside the gateway nothing raises for
a rejection.
"""
from __future__ import annotations

import functools
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence, TypeVar

from sovereign_gateway.audit.record import Decision
from sovereign_gateway.errors import ActionBlockedError, CriticalPatternDetectedError
from sovereign_gateway.gateway import DecisionGateway, ProposedAction, SubmitResult
from sovereign_gateway.types import DecisionType

F = TypeVar("F", bound=Callable[..., Any])

logger = logging.getLogger("sovereign.gateway.decorators")


@dataclass
class GateState:
    """
    Mutable counters attached to a ``@gated`` function as ``gate_state``.

    Attributes:
        call_count: Calls attempted.
        admitted_count: Calls the gateway admitted.
        last_decision: The most recent recorded decision, if any.
    """

    call_count: int = 0
    admitted_count: int = 0
    last_decision: Decision | None = field(default=None)


def gated(
    gateway: DecisionGateway,
    principal_id: str,
    action_class: str,
    decision_type: DecisionType = DecisionType.ANALYTICAL,
    justifications: Sequence[str] = (),
    requested_mode: str | None = None,
    describe: Callable[..., str] | None = None,
) -> Callable[[F], F]:
    """
    Submit every call of the decorated function to ``gateway`` first.

    Args:
        gateway: The gateway that decides admission.
        principal_id: Principal the calls run on behalf of.
        action_class: Permission class checked against the trust ledger.
        decision_type: Tag recorded on each decision.
        justifications: Justifications attached to every call.
        requested_mode: Mode the function needs, if any.
        describe: Builds the scanned description from the call's arguments.
            Defaults to the function's qualified name.

    Returns:
        A decorator. The wrapper exposes ``gate_state`` (:class:`GateState`).

    Raises:
        CriticalPatternDetectedError: At call time, when the description
            tripped the emergency protocol.
        ActionBlockedError: At call time, for any other refusal.
    """
    if not action_class:
        raise ValueError("action_class must be a non-empty string.")

    def decorator(func: F) -> F:
        state = GateState()

        def _action(args: tuple[Any, ...], kwargs: dict[str, Any]) -> ProposedAction:
            description = describe(*args, **kwargs) if describe is not None else func.__qualname__
            return ProposedAction(
                principal_id=principal_id,
                action_class=action_class,
                description=description,
                decision_type=decision_type,
                justifications=tuple(justifications),
                requested_mode=requested_mode,
                metadata={"function": func.__qualname__},
            )

        def _admit(result: SubmitResult) -> None:
            state.call_count += 1
            state.last_decision = result.decision
            logger.info(
                "gated_call",
                extra={
                    "function": func.__qualname__,
                    "decision_id": result.decision.decision_id,
                    "status": result.decision.status.value,
                },
            )
            if result.lockout_triggered:
                raise CriticalPatternDetectedError(result.decision)
            if not result.admitted:
                raise ActionBlockedError(result.decision)
            state.admitted_count += 1

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                _admit(await gateway.submit(_action(args, kwargs)))
                return await func(*args, **kwargs)

            async_wrapper.gate_state = state  # type: ignore[attr-defined]
            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            _admit(gateway.submit_sync(_action(args, kwargs)))
            return func(*args, **kwargs)

        wrapper.gate_state = state  # type: ignore[attr-defined]
        return wrapper  # type: ignore[return-value]

    return decorator
