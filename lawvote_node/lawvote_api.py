from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lawvote_node.api import governance
from lawvote_node.config import (
    build_store,
    configure_logging,
    get_max_attempts,
    get_operator,
    get_require_signed,
    load_config,
    params_from_config,
)
from lawvote_node.lawvote_runtime.clock import SystemClock
from lawvote_node.lawvote_runtime.ledger import LocalLedger
from lawvote_node.lawvote_runtime.session import GovernanceSession

log = logging.getLogger(__name__)


def create_app(
    cfg: Optional[Dict[str, Any]] = None,
    *,
    clock: Any = None,
    repo_root: Optional[str] = None,
) -> FastAPI:
    if cfg is None:
        cfg = load_config(repo_root or os.getcwd())
    configure_logging(cfg)

    params = params_from_config(cfg)
    clock = clock or SystemClock()
    ledger = LocalLedger(
        params,
        store=build_store(cfg),
        clock=clock,
        require_signed=get_require_signed(cfg),
    )
    session = GovernanceSession(
        params,
        ledger,
        clock,
        operator=get_operator(cfg),
        max_attempts=get_max_attempts(cfg),
    )

    app = FastAPI(title="Lawvote Node API")

    # CORS, tighten in prod if needed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.config = cfg
    app.state.session = session
    app.state.cycles = []

    app.include_router(governance.router)

    @app.get("/health")
    def health():
        return {"ok": True, "initialised": ledger.is_initialised()}

    log.info(
        "Governance instance ready: %d holders, %d votes required",
        len(params.initial_holders),
        params.required_votes,
    )
    return app
