from __future__ import annotations

"""
lawvote runtime package (lazy import)

The pure protocol modules (tokens, constraints, models, transition) have
no third-party imports; crypto and persistence are only
loaded when touched. Modules are exposed lazily via __getattr__ (PEP 562) so
`import lawvote_node.lawvote_runtime` stays side-effect free.
"""

from importlib import import_module
from typing import Any

__all__ = [
    "tokens",
    "constraints",
    "models",
    "transition",
    "validator",
    "ledger",
    "session",
    "clock",
    "crypto",
    "store",
    "errors",
]

_LAZY_MAP = {
    "tokens": "lawvote_node.lawvote_runtime.tokens",
    "constraints": "lawvote_node.lawvote_runtime.constraints",
    "models": "lawvote_node.lawvote_runtime.models",
    "transition": "lawvote_node.lawvote_runtime.transition",
    "validator": "lawvote_node.lawvote_runtime.validator",
    "ledger": "lawvote_node.lawvote_runtime.ledger",
    "session": "lawvote_node.lawvote_runtime.session",
    "clock": "lawvote_node.lawvote_runtime.clock",
    "crypto": "lawvote_node.lawvote_runtime.crypto_utils",
    "store": "lawvote_node.lawvote_runtime.atomic_store",
    "errors": "lawvote_node.lawvote_runtime.errors",
}


def __getattr__(name: str) -> Any:
    mod_path = _LAZY_MAP.get(name)
    if not mod_path:
        raise AttributeError(name)
    return import_module(mod_path)


def __dir__() -> list[str]:
    return sorted(set(globals().keys()) | set(_LAZY_MAP.keys()))
