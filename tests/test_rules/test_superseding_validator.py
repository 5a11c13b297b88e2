"""Tests for SupersedingValidator."""
from __future__ import annotations

import asyncio

from record_api_settings.rules.supersede import (
    DEFAULT_DEBOUNCE_SECONDS,
    SupersedingValidator,
)
from record_api_settings.rules.validator import AccessRuleKind, RuleValidationResult


def _ok(rule: AccessRuleKind, expression: str | None) -> RuleValidationResult:
    return RuleValidationResult(rule=rule, expression=expression, valid=True)


class TestSupersedingValidator:
    def test_default_debounce_window(self) -> None:
        assert DEFAULT_DEBOUNCE_SECONDS == 0.5

    def test_sync_default_validator_runs(self) -> None:
        validator = SupersedingValidator()
        result = asyncio.run(
            validator.request(AccessRuleKind.CREATE, "_ROW_.owner = _USER_.id")
        )
        assert result is not None
        assert result.valid is False
        assert validator.latest(AccessRuleKind.CREATE) == result

    def test_async_validate_callable(self) -> None:
        async def validate(rule: AccessRuleKind, expression: str | None) -> RuleValidationResult:
            return _ok(rule, expression)

        validator = SupersedingValidator(validate)
        result = asyncio.run(validator.request(AccessRuleKind.READ, "x = 1"))
        assert result == _ok(AccessRuleKind.READ, "x = 1")

    def test_newer_request_supersedes_older(self) -> None:
        async def scenario() -> tuple[object, object, object]:
            release = asyncio.Event()

            async def slow_validate(
                rule: AccessRuleKind, expression: str | None
            ) -> RuleValidationResult:
                if expression == "first":
                    await release.wait()
                return _ok(rule, expression)

            validator = SupersedingValidator(slow_validate)
            first = asyncio.create_task(validator.request(AccessRuleKind.READ, "first"))
            await asyncio.sleep(0)
            second = await validator.request(AccessRuleKind.READ, "second")
            release.set()
            return await first, second, validator.latest(AccessRuleKind.READ)

        first, second, latest = asyncio.run(scenario())
        assert first is None
        assert isinstance(second, RuleValidationResult)
        assert second.expression == "second"
        assert latest == second

    def test_slots_are_independent(self) -> None:
        async def scenario() -> tuple[object, object]:
            release = asyncio.Event()

            async def slow_validate(
                rule: AccessRuleKind, expression: str | None
            ) -> RuleValidationResult:
                if rule is AccessRuleKind.READ:
                    await release.wait()
                return _ok(rule, expression)

            validator = SupersedingValidator(slow_validate)
            read = asyncio.create_task(validator.request(AccessRuleKind.READ, "a"))
            await asyncio.sleep(0)
            update = await validator.request(AccessRuleKind.UPDATE, "b")
            release.set()
            return await read, update

        read, update = asyncio.run(scenario())
        assert isinstance(read, RuleValidationResult)
        assert isinstance(update, RuleValidationResult)

    def test_cancel_discards_in_flight_request(self) -> None:
        async def scenario() -> tuple[bool, object, bool]:
            release = asyncio.Event()

            async def slow_validate(
                rule: AccessRuleKind, expression: str | None
            ) -> RuleValidationResult:
                await release.wait()
                return _ok(rule, expression)

            validator = SupersedingValidator(slow_validate)
            task = asyncio.create_task(validator.request(AccessRuleKind.READ, "x"))
            await asyncio.sleep(0)
            pending = validator.is_pending(AccessRuleKind.READ)
            validator.cancel(AccessRuleKind.READ)
            result = await task
            return pending, result, validator.is_pending(AccessRuleKind.READ)

        pending_before, result, pending_after = asyncio.run(scenario())
        assert pending_before is True
        assert result is None
        assert pending_after is False

    def test_custom_slot_key(self) -> None:
        validator = SupersedingValidator(_ok)
        result = asyncio.run(
            validator.request(AccessRuleKind.READ, "x = 1", slot="read_access_rule")
        )
        assert validator.latest("read_access_rule") == result
        assert validator.latest(AccessRuleKind.READ) is None
