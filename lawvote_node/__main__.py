# lawvote_node/__main__.py
"""
Entry point for running the lawvote node as a module:
    python -m lawvote_node [--host 0.0.0.0] [--port 8000] [--config-root .]

The governance instance (holders, required votes, persistence) comes from
<config-root>/lawvote_config.yaml plus LAWVOTE_* environment overrides.
"""

from __future__ import annotations

import argparse
import os
import sys

import uvicorn

from .config import get_bind_host, get_bind_port, load_config
from .lawvote_runtime.errors import ConfigurationError
from .lawvote_api import create_app


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        prog="lawvote-node",
        description="Run a lawvote governance node (HTTP API)",
    )
    p.add_argument("--host", default=None, help="Bind address (default: server.host from config)")
    p.add_argument("--port", type=int, default=None, help="HTTP port (default: server.port from config)")
    p.add_argument(
        "--config-root",
        default=os.environ.get("LAWVOTE_CONFIG_ROOT", os.getcwd()),
        help="Directory holding lawvote_config.yaml (default: cwd)",
    )
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)
    try:
        cfg = load_config(args.config_root)
        app = create_app(cfg)
    except ConfigurationError as e:
        print(f"[lawvote-node] configuration error: {e}", file=sys.stderr)
        return 2

    host = args.host or get_bind_host(cfg)
    port = args.port or get_bind_port(cfg)
    uvicorn.run(app, host=host, port=port, log_level="info")
    return 0


if __name__ == "__main__":
    sys.exit(main())
