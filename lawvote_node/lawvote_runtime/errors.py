from __future__ import annotations

"""
Failure taxonomy for the governance runtime.

Two families live here:

- Rejection values (`Rejection`, `RejectionKind`) returned by the pure
  transition layer and the validator. They are ordinary results, never raised.
- Exceptions rooted at `GovError`, raised by the ledger on misuse
  (initialising twice, reading before genesis), by the session orchestrator
  and by the config loader. The API layer maps them to HTTP statuses.
"""

import enum
from dataclasses import dataclass


class RejectionKind(str, enum.Enum):
    TRANSITION_REJECTED = "transition_rejected"
    AUTHORIZATION_FAILED = "authorization_failed"
    STALE_STATE = "stale_state"


@dataclass(frozen=True)
class Rejection:
    kind: RejectionKind
    reason: str

    @property
    def ok(self) -> bool:
        return False


class GovError(RuntimeError):
    pass


class TransitionRejected(GovError):
    """No legal case matched, or the substrate refused an obligation."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class AuthorizationFailure(GovError):
    """The caller cannot prove control of the required voting token."""

    def __init__(self, token_name: str, holder: str) -> None:
        super().__init__(f"authorization_failed: {holder!r} does not control {token_name!r}")
        self.token_name = token_name
        self.holder = holder


class StaleStateError(GovError):
    def __init__(self, attempts: int) -> None:
        super().__init__(f"stale_state: gave up after {attempts} attempts")
        self.attempts = attempts


class ConfigurationError(GovError):
    pass


class LedgerNotInitialised(GovError):
    pass
