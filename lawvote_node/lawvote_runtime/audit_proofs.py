from __future__ import annotations

"""
Hashing for the commit history.

Every observer hashing the same GovState or commit receipt must get the same
digest, so all hashing goes through canonical JSON. Block ids chain each
commit to the previous one; `merkle_root` summarises a whole history page
run for cheap comparison between two ledgers.
"""

import hashlib
import json
from typing import Any, Dict, List

EMPTY_ROOT = hashlib.sha256(b"").hexdigest()


def canonical_json_bytes(obj: Any) -> bytes:
    # sorted keys, no whitespace
    return json.dumps(obj, ensure_ascii=False, sort_keys=True, separators=(",", ":")).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def receipt_hash(receipt: Dict[str, Any]) -> str:
    return sha256_hex(canonical_json_bytes(receipt))


def chain_block_id(prev_block_id: str, state_hash: str, receipt_digest: str) -> str:
    return sha256_hex(f"{prev_block_id}|{state_hash}|{receipt_digest}".encode("utf-8"))


def merkle_root(receipt_hashes: List[str]) -> str:
    """
    Root over commit receipt digests, in commit order. Leaves are the raw
    digest bytes; an odd node at any level is paired with itself.
    """
    if not receipt_hashes:
        return EMPTY_ROOT

    level = [bytes.fromhex(h) for h in receipt_hashes]
    while len(level) > 1:
        if len(level) % 2:
            level.append(level[-1])
        level = [hashlib.sha256(level[i] + level[i + 1]).digest() for i in range(0, len(level), 2)]
    return level[0].hex()
