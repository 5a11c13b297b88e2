"""Edit session state machine for a single resource's Record API."""
from __future__ import annotations

from record_api_settings.session.edit_session import (
    EditSession,
    SessionOutcome,
    SessionSignal,
    SessionState,
)

__all__ = [
    "EditSession",
    "SessionOutcome",
    "SessionSignal",
    "SessionState",
]
