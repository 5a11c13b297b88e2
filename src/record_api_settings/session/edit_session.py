"""Edit session for a single resource's Record API entry.

An :class:`EditSession` moves an entry between three states:

- ``ABSENT``: the resource has no entry in the last-read document.
- ``DRAFT``: an operator is editing; nothing is written yet.
- ``ENABLED``: the entry exists in the last-persisted document.

Transitions::

    ABSENT  --begin_edit--> DRAFT
    ENABLED --begin_edit--> DRAFT
    DRAFT   --submit-->     ENABLED   (failure stays in DRAFT)
    DRAFT   --discard-->    ABSENT | ENABLED
    ENABLED --disable-->    ABSENT
    DRAFT   --disable-->    ABSENT

Every write re-reads the whole document from the store, transforms it with
a pure document operation and hands the result back. Errors are scoped to
the call that raised them: they are logged, returned in
:class:`SessionOutcome` and leave the draft intact so the operator can
retry. The session never drives navigation; it reports
:class:`SessionSignal` values to the editor shell instead.

Example
-------
::

    store = YamlConfigStore(Path("config.yaml"))
    session = EditSession.open(Resource("posts", ResourceKind.TABLE), store)
    session.begin_edit()
    session.update(acl_world={PermissionFlag.READ})
    outcome = session.submit()
    assert outcome.ok and session.state is SessionState.ENABLED
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from record_api_settings.config.document import (
    find_record_api,
    remove_record_apis,
    upsert_record_api,
)
from record_api_settings.config.models import Config, RecordApiConfig
from record_api_settings.config.store import ConfigStore
from record_api_settings.errors import (
    ConfigStoreError,
    IllegalFieldError,
    InvalidEntryError,
    InvalidTransitionError,
    MissingBaseConfigurationError,
    PersistenceError,
    RecordApiError,
    RuleValidationError,
)
from record_api_settings.permissions.flags import Resource
from record_api_settings.rules.supersede import SupersedingValidator
from record_api_settings.rules.validator import (
    AccessRuleKind,
    AccessRuleValidator,
    RuleValidationResult,
    access_rules_for,
)

logger = logging.getLogger(__name__)

_RULE_FIELDS: dict[str, AccessRuleKind] = {k.field_name: k for k in AccessRuleKind}


class SessionState(str, Enum):
    """Lifecycle states of a resource's entry within an edit session."""

    ABSENT = "absent"
    DRAFT = "draft"
    ENABLED = "enabled"


class SessionSignal(str, Enum):
    """Events reported to the editor shell."""

    DIRTY = "dirty"
    SUBMITTED = "submitted"
    CLOSED = "closed"


@dataclass(frozen=True)
class SessionOutcome:
    """Result of a session operation.

    Attributes
    ----------
    state:
        Session state after the operation.
    signals:
        Signals the editor shell should act on.
    error:
        The error that made the operation fail, if any.
    """

    state: SessionState
    signals: tuple[SessionSignal, ...] = ()
    error: RecordApiError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def __bool__(self) -> bool:
        """Return True if the operation succeeded."""
        return self.ok


class EditSession:
    """Drives one resource's entry through draft, submit and disable.

    Parameters
    ----------
    resource:
        The table or view being configured.
    store:
        Configuration store read and written on every mutation.
    persisted:
        The resource's entry in the last-read document, if any.
    validator:
        Access rule validator. Defaults to :class:`AccessRuleValidator`.
    on_signal:
        Optional callback invoked with each emitted signal.
    """

    def __init__(
        self,
        resource: Resource,
        store: ConfigStore,
        persisted: RecordApiConfig | None = None,
        validator: AccessRuleValidator | None = None,
        on_signal: Callable[[SessionSignal], None] | None = None,
    ) -> None:
        self._resource = resource
        self._store = store
        self._validator = validator or AccessRuleValidator()
        self._async_validator = SupersedingValidator(self._validator.validate)
        self._on_signal = on_signal

        self._persisted = persisted
        self._state = SessionState.ENABLED if persisted is not None else SessionState.ABSENT
        self._baseline: RecordApiConfig | None = None
        self._draft: RecordApiConfig | None = None
        self._field_errors: dict[str, str] = {}

    @classmethod
    def open(
        cls,
        resource: Resource,
        store: ConfigStore,
        validator: AccessRuleValidator | None = None,
        on_signal: Callable[[SessionSignal], None] | None = None,
    ) -> EditSession:
        """Read the store and start a session for ``resource``.

        Raises
        ------
        ConfigStoreError
            If the store cannot be read.
        """
        persisted = find_record_api(store.get(), resource.name)
        return cls(
            resource,
            store,
            persisted=persisted,
            validator=validator,
            on_signal=on_signal,
        )

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def resource(self) -> Resource:
        return self._resource

    @property
    def persisted(self) -> RecordApiConfig | None:
        """The entry as last persisted, or ``None`` when absent."""
        return self._persisted

    @property
    def draft(self) -> RecordApiConfig | None:
        return self._draft

    @property
    def field_errors(self) -> dict[str, str]:
        """Outstanding per-field errors, keyed by field name."""
        return dict(self._field_errors)

    @property
    def is_dirty(self) -> bool:
        """True when the draft differs from the state at :meth:`begin_edit`."""
        if self._state is not SessionState.DRAFT:
            return False
        return self._draft != self._baseline or bool(self._field_errors)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def begin_edit(self) -> SessionOutcome:
        """Enter DRAFT, seeded from the persisted entry or fresh defaults."""
        self._require(SessionState.ABSENT, SessionState.ENABLED, action="begin_edit")

        self._baseline = self._persisted or RecordApiConfig.default_for(self._resource)
        self._draft = self._baseline
        self._field_errors = {}
        self._state = SessionState.DRAFT
        logger.debug(
            "Editing record API for %s (%s)",
            self._resource.name,
            "existing" if self._persisted else "new",
        )
        return SessionOutcome(state=self._state)

    def update(self, **changes: Any) -> SessionOutcome:
        """Apply field changes to the draft.

        Invalid rule expressions are kept in the draft as typed and recorded
        in :attr:`field_errors`, which blocks :meth:`submit`. An empty name
        is recorded there too but not applied.

        Raises
        ------
        IllegalPermissionFlagError
            If an ACL change holds a flag illegal for the resource kind.
        IllegalFieldError
            If a change targets a field the resource kind does not expose.
        ImmutableFieldError
            If ``table_name`` is changed.
        """
        self._require(SessionState.DRAFT, action="update")
        assert self._draft is not None

        exposed = access_rules_for(self._resource.kind)
        errors = dict(self._field_errors)
        accepted: dict[str, Any] = {}

        for field_name, value in changes.items():
            rule = _RULE_FIELDS.get(field_name)
            if rule is not None:
                if rule not in exposed and value:
                    raise IllegalFieldError(
                        field_name, f"not available for a {self._resource.kind.value}"
                    )
                self._async_validator.cancel(field_name)
                result = self._validator.validate(rule, value)
                if result.valid:
                    errors.pop(field_name, None)
                else:
                    errors[field_name] = result.diagnostic or "invalid expression"
                accepted[field_name] = value
                continue
            if field_name == "name" and (not isinstance(value, str) or not value.strip()):
                errors["name"] = "Api name missing"
                continue
            errors.pop(field_name, None)
            accepted[field_name] = value

        draft = self._draft.with_changes(self._resource.kind, **accepted)

        self._draft = draft
        self._field_errors = errors
        signals = (SessionSignal.DIRTY,) if self.is_dirty else ()
        return self._emit(SessionOutcome(state=self._state, signals=signals))

    def submit(self) -> SessionOutcome:
        """Persist the draft; DRAFT becomes ENABLED on success."""
        self._require(SessionState.DRAFT, action="submit")
        assert self._draft is not None
        entry = self._draft

        try:
            self._check_submittable(entry)
            document = self._read_base()
            self._write(upsert_record_api(document, entry))
        except RecordApiError as exc:
            logger.warning("Submit for %s failed: %s", self._resource.name, exc)
            return SessionOutcome(state=self._state, error=exc)

        logger.info("Record API %r enabled for %s", entry.name, self._resource.name)
        self._persisted = entry
        self._reset(SessionState.ENABLED)
        return self._emit(
            SessionOutcome(state=self._state, signals=(SessionSignal.SUBMITTED,))
        )

    def disable(self) -> SessionOutcome:
        """Remove every entry for the resource; the session becomes ABSENT."""
        self._require(SessionState.ENABLED, SessionState.DRAFT, action="disable")

        if self._persisted is not None:
            try:
                document = self._read_base()
                self._write(remove_record_apis(document, self._resource.name))
            except RecordApiError as exc:
                logger.warning("Disable for %s failed: %s", self._resource.name, exc)
                return SessionOutcome(state=self._state, error=exc)
            logger.info("Record API disabled for %s", self._resource.name)

        self._persisted = None
        self._reset(SessionState.ABSENT)
        return self._emit(
            SessionOutcome(state=self._state, signals=(SessionSignal.CLOSED,))
        )

    def discard(self) -> SessionOutcome:
        """Drop the draft without writing anything."""
        self._require(SessionState.DRAFT, action="discard")
        previous = SessionState.ENABLED if self._persisted is not None else SessionState.ABSENT
        self._reset(previous)
        return self._emit(
            SessionOutcome(state=self._state, signals=(SessionSignal.CLOSED,))
        )

    async def request_rule_validation(
        self,
        rule: AccessRuleKind,
        expression: str | None,
    ) -> RuleValidationResult | None:
        """Validate a rule as the operator types, superseding older requests.

        A result that is not superseded is applied like :meth:`update`: the
        draft takes ``expression`` and :attr:`field_errors` records the
        outcome for that field. Returns ``None`` when a newer request or an
        :meth:`update` of the same rule arrived first.

        Raises
        ------
        IllegalFieldError
            If the resource kind does not expose ``rule``.
        """
        self._require(SessionState.DRAFT, action="request_rule_validation")
        if rule not in access_rules_for(self._resource.kind) and expression:
            raise IllegalFieldError(
                rule.field_name, f"not available for a {self._resource.kind.value}"
            )

        result = await self._async_validator.request(rule, expression, slot=rule.field_name)
        if result is None or self._draft is None:
            return None

        self._draft = self._draft.with_changes(
            self._resource.kind, **{rule.field_name: expression}
        )
        if result.valid:
            self._field_errors.pop(rule.field_name, None)
        else:
            self._field_errors[rule.field_name] = result.diagnostic or "invalid expression"
        if self.is_dirty:
            self._emit(SessionOutcome(state=self._state, signals=(SessionSignal.DIRTY,)))
        return result

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _require(self, *states: SessionState, action: str) -> None:
        if self._state not in states:
            raise InvalidTransitionError(
                f"Cannot {action} while {self._state.value}; "
                f"expected one of {[s.value for s in states]}"
            )

    def _check_submittable(self, entry: RecordApiConfig) -> None:
        # Entries read from the store were never checked against the kind.
        entry.check_against(self._resource.kind)

        for field_name, diagnostic in self._field_errors.items():
            rule = _RULE_FIELDS.get(field_name)
            if rule is not None:
                raise RuleValidationError(rule, diagnostic)
        if self._field_errors:
            field_name, diagnostic = next(iter(self._field_errors.items()))
            raise InvalidEntryError(f"{field_name}: {diagnostic}")

        for rule in access_rules_for(self._resource.kind):
            self._validator.validate_or_raise(rule, entry.rule(rule))

    def _read_base(self) -> Config:
        try:
            document = self._store.get()
        except ConfigStoreError as exc:
            logger.error("Missing base configuration for %s: %s", self._resource.name, exc)
            raise MissingBaseConfigurationError(str(exc)) from exc
        if document is None:
            logger.error("Missing base configuration for %s", self._resource.name)
            raise MissingBaseConfigurationError("missing base configuration")
        return document

    def _write(self, document: Config) -> None:
        try:
            self._store.set(document)
        except ConfigStoreError as exc:
            raise PersistenceError(f"Failed to persist configuration: {exc}") from exc

    def _reset(self, state: SessionState) -> None:
        for field_name in _RULE_FIELDS:
            self._async_validator.cancel(field_name)
        self._state = state
        self._baseline = None
        self._draft = None
        self._field_errors = {}

    def _emit(self, outcome: SessionOutcome) -> SessionOutcome:
        if self._on_signal is not None:
            for signal in outcome.signals:
                self._on_signal(signal)
        return outcome
