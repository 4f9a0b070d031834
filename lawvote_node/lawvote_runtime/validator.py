from __future__ import annotations

"""
Observer-side validation of a submission.

Any node holding the prior committed state can decide a submission on its
own: recompute the transition, check the claimed successor and obligations
match, then check every obligation against the submission context and the
balance view. The result is a reason string, or None when the submission is
valid. Nothing here raises for a well-formed submission.
"""

from dataclasses import dataclass
from typing import Optional

from .audit_proofs import canonical_json_bytes
from .constraints import Obligations, TxContext, unmet_spend, window_within
from .crypto_utils import verify_signature
from .models import GovInput, GovParams, GovState, input_to_json, state_to_json
from .tokens import BalanceView
from .transition import transition


@dataclass(frozen=True)
class Submission:
    expected_version: int
    action: GovInput
    new_state: GovState
    obligations: Obligations
    context: TxContext


def submission_digest(sub: Submission) -> bytes:
    """Bytes a signer signs: everything except the signature itself."""
    body = {
        "expected_version": int(sub.expected_version),
        "action": input_to_json(sub.action),
        "new_state": state_to_json(sub.new_state),
        "obligations": sub.obligations.to_json(),
        "context": sub.context.without_signature().to_json(),
    }
    return canonical_json_bytes(body)


def _check_window(obligations: Obligations, context: TxContext, now_ms: int) -> Optional[str]:
    for ob in obligations.deadlines():
        if not window_within(context, ob.deadline_ms):
            return "outside_validity_interval"
        if context.valid_from_ms is not None and now_ms < context.valid_from_ms:
            return "outside_validity_interval"
        if context.valid_to_ms is not None and now_ms > context.valid_to_ms:
            return "outside_validity_interval"
    return None


def _check_mint(prior: GovState, obligations: Obligations) -> Optional[str]:
    minted = obligations.minted_total()
    if minted.is_zero() and not obligations.payments():
        return None
    if any(a != prior.minting_authority for a in minted.authorities()):
        return "mint_mismatch"
    if minted != obligations.paid_total():
        return "mint_mismatch"
    return None


def validate_submission(
    params: GovParams,
    prior: GovState,
    sub: Submission,
    balances: BalanceView,
    *,
    now_ms: int,
    require_signed: bool = False,
) -> Optional[str]:
    step = transition(params, prior, sub.action)
    if step is None:
        return "no_transition"

    obligations, nxt = step
    if nxt != sub.new_state:
        return "state_mismatch"
    if obligations != sub.obligations:
        return "obligations_mismatch"

    # only possession claims need the holder's signature
    if require_signed and obligations.spends():
        ctx = sub.context
        if not ctx.signer or not ctx.signature:
            return "bad_signature"
        if not verify_signature(ctx.signer, submission_digest(sub), ctx.signature):
            return "bad_signature"

    missing = unmet_spend(obligations, sub.context, balances)
    if missing is not None:
        names = ",".join(n for _a, n, _q in missing.value.flatten())
        return f"authorization_failed:{names}"

    reason = _check_window(obligations, sub.context, now_ms)
    if reason:
        return reason

    return _check_mint(prior, obligations)
