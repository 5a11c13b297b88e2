"""Cancellable, superseding rule validation.

Rule parsing may be slow (it can call out to an external parser), so
editors validate after a short pause in typing. Whatever the pause, a
newer edit to the same slot must win: :class:`SupersedingValidator`
cancels any in-flight request for a slot when a new one arrives, and the
older request resolves to ``None`` instead of an out-of-order result.

The debounce timer itself belongs to the caller; use
:data:`DEFAULT_DEBOUNCE_SECONDS` as the quiescence window.

Example
-------
::

    validator = SupersedingValidator()
    result = await validator.request(AccessRuleKind.READ, "_ROW_.owner = _USER_.id")
    if result is not None and not result.valid:
        show(result.diagnostic)
"""
from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Hashable, Union

from record_api_settings.rules.validator import (
    AccessRuleKind,
    AccessRuleValidator,
    RuleValidationResult,
)

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS: float = 0.5

ValidateCallable = Callable[
    [AccessRuleKind, Union[str, None]],
    Union[RuleValidationResult, Awaitable[RuleValidationResult]],
]


class SupersedingValidator:
    """Runs rule validation with per-slot superseding semantics.

    Parameters
    ----------
    validate:
        Callable taking ``(rule, expression)``. It may return a
        :class:`RuleValidationResult` directly, in which case it runs in a
        worker thread, or an awaitable resolving to one. Defaults to
        :meth:`AccessRuleValidator.validate`.
    """

    def __init__(self, validate: ValidateCallable | None = None) -> None:
        self._validate: ValidateCallable = validate or AccessRuleValidator().validate
        self._generations: dict[Hashable, int] = {}
        self._pending: dict[Hashable, asyncio.Task[RuleValidationResult]] = {}
        self._latest: dict[Hashable, RuleValidationResult] = {}

    async def request(
        self,
        rule: AccessRuleKind,
        expression: str | None,
        slot: Hashable | None = None,
    ) -> RuleValidationResult | None:
        """Validate ``expression``, superseding earlier requests for the slot.

        Parameters
        ----------
        rule:
            The rule kind to validate against.
        expression:
            Candidate expression.
        slot:
            Key identifying the edited field. Defaults to ``rule``.

        Returns
        -------
        RuleValidationResult | None
            The result, or ``None`` if a newer request for the same slot
            arrived before this one finished.
        """
        key = rule if slot is None else slot
        generation = self._generations.get(key, 0) + 1
        self._generations[key] = generation

        previous = self._pending.pop(key, None)
        if previous is not None and not previous.done():
            previous.cancel()

        task = asyncio.ensure_future(self._run(rule, expression))
        self._pending[key] = task

        try:
            result = await task
        except asyncio.CancelledError:
            if self._generations.get(key) != generation:
                logger.debug("Validation for %s superseded (generation %d)", key, generation)
                return None
            raise
        finally:
            if self._pending.get(key) is task:
                del self._pending[key]

        if self._generations.get(key) != generation:
            logger.debug("Discarding stale validation for %s (generation %d)", key, generation)
            return None

        self._latest[key] = result
        return result

    def latest(self, slot: Hashable) -> RuleValidationResult | None:
        """Return the most recent non-superseded result for ``slot``."""
        return self._latest.get(slot)

    def is_pending(self, slot: Hashable) -> bool:
        """Return True while a request for ``slot`` is in flight."""
        task = self._pending.get(slot)
        return task is not None and not task.done()

    def cancel(self, slot: Hashable) -> None:
        """Invalidate and cancel any in-flight request for ``slot``."""
        self._generations[slot] = self._generations.get(slot, 0) + 1
        task = self._pending.pop(slot, None)
        if task is not None and not task.done():
            task.cancel()

    async def _run(
        self,
        rule: AccessRuleKind,
        expression: str | None,
    ) -> RuleValidationResult:
        if inspect.iscoroutinefunction(self._validate):
            return await self._validate(rule, expression)
        outcome = await asyncio.to_thread(self._validate, rule, expression)
        if inspect.isawaitable(outcome):
            return await outcome
        return outcome
