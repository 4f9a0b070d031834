import logging

import pytest

from lawvote_node.config import (
    CONFIG_FILENAME,
    build_store,
    configure_logging,
    get_max_attempts,
    load_config,
    params_from_config,
)
from lawvote_node.lawvote_runtime.atomic_store import AtomicLedgerStore
from lawvote_node.lawvote_runtime.errors import ConfigurationError

YAML = """
governance:
  base_token_name: seat
  initial_holders: [alice, bob, carol]
  required_votes: 2
session:
  max_attempts: 7
"""


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in [
        "LAWVOTE_BASE_TOKEN_NAME",
        "LAWVOTE_INITIAL_HOLDERS",
        "LAWVOTE_REQUIRED_VOTES",
        "LAWVOTE_MAX_ATTEMPTS",
        "LAWVOTE_PERSISTENCE",
        "LAWVOTE_DATA_DIR",
        "LAWVOTE_REQUIRE_SIGNED_TX",
        "LAWVOTE_LOG_LEVEL",
    ]:
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path, text):
    (tmp_path / CONFIG_FILENAME).write_text(text, encoding="utf-8")
    return str(tmp_path)


def test_yaml_on_top_of_defaults(tmp_path):
    cfg = load_config(_write(tmp_path, YAML))
    params = params_from_config(cfg)
    assert params.base_token_name == "seat"
    assert params.initial_holders == ("alice", "bob", "carol")
    assert params.required_votes == 2
    assert get_max_attempts(cfg) == 7
    # untouched sections keep their defaults
    assert cfg["persistence"]["driver"] == "memory"


def test_missing_file_means_defaults(tmp_path):
    cfg = load_config(str(tmp_path))
    assert cfg["governance"]["base_token_name"] == "vote"
    # defaults carry no holders, so no instance can start from them
    with pytest.raises(ConfigurationError):
        params_from_config(cfg)


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("LAWVOTE_INITIAL_HOLDERS", "dave, erin")
    monkeypatch.setenv("LAWVOTE_REQUIRED_VOTES", "1")
    monkeypatch.setenv("LAWVOTE_REQUIRE_SIGNED_TX", "yes")
    cfg = load_config(_write(tmp_path, YAML))
    assert params_from_config(cfg).initial_holders == ("dave", "erin")
    assert cfg["governance"]["required_votes"] == 1
    assert cfg["security"]["require_signed_tx"] is True


def test_bad_env_value(tmp_path, monkeypatch):
    monkeypatch.setenv("LAWVOTE_REQUIRED_VOTES", "two")
    with pytest.raises(ConfigurationError):
        load_config(str(tmp_path))


def test_overrides_argument(tmp_path):
    cfg = load_config(_write(tmp_path, YAML), overrides={"governance": {"required_votes": 3}})
    assert params_from_config(cfg).required_votes == 3
    assert cfg["governance"]["base_token_name"] == "seat"


@pytest.mark.parametrize(
    "text",
    [
        "governance: [unclosed",
        "- just\n- a list\n",
    ],
)
def test_unreadable_yaml(tmp_path, text):
    with pytest.raises(ConfigurationError):
        load_config(_write(tmp_path, text))


@pytest.mark.parametrize(
    "governance",
    [
        {"base_token_name": "", "initial_holders": ["a"], "required_votes": 1},
        {"base_token_name": "vote", "initial_holders": [], "required_votes": 1},
        {"base_token_name": "vote", "initial_holders": ["a", "a"], "required_votes": 1},
        {"base_token_name": "vote", "initial_holders": ["a", " "], "required_votes": 1},
        {"base_token_name": "vote", "initial_holders": ["a"], "required_votes": -1},
        {"base_token_name": "vote", "initial_holders": ["a"], "required_votes": True},
        {"base_token_name": "vote", "initial_holders": ["a"], "required_votes": "1"},
        {"base_token_name": "vote", "initial_holders": ["a", "b"], "required_votes": 1, "token_count": 3},
    ],
)
def test_malformed_instance_parameters(governance):
    with pytest.raises(ConfigurationError):
        params_from_config({"governance": governance})


def test_matching_token_count_is_accepted():
    gov = {"base_token_name": "vote", "initial_holders": ["a", "b"], "required_votes": 0, "token_count": 2}
    assert params_from_config({"governance": gov}).required_votes == 0


def test_build_store(tmp_path):
    assert build_store({"persistence": {"driver": "memory"}}) is None
    store = build_store({"persistence": {"driver": "json", "data_dir": str(tmp_path), "keep_backups": 1}})
    assert isinstance(store, AtomicLedgerStore)
    assert store.path.parent == tmp_path
    with pytest.raises(ConfigurationError):
        build_store({"persistence": {"driver": "sqlite"}})


def test_configure_logging_level():
    configure_logging({"logging": {"level": "debug"}})
    assert logging.getLogger().level == logging.DEBUG
    configure_logging({"logging": {"level": "INFO"}})
    with pytest.raises(ConfigurationError):
        configure_logging({"logging": {"level": "chatty"}})


def test_cli_refuses_to_start_without_holders(tmp_path, capsys):
    from lawvote_node.__main__ import main, parse_args

    args = parse_args(["--config-root", str(tmp_path), "--port", "9001"])
    assert args.port == 9001
    assert main(["--config-root", str(tmp_path)]) == 2
    assert "configuration error" in capsys.readouterr().err
