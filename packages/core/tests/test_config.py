"""Tests for configuration loading."""

from prfleet_core.config import load_config


def test_defaults_applied_when_no_config_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["stale_agent_timeout"] == 300
    assert config["stale_run_threshold"] == 300
    assert config["store"] == "file"
    assert config["status_dir"] == ".agent/status"
    assert config["bot_logins"] == ["coderabbitai[bot]"]


def test_config_file_overrides_defaults(tmp_path):
    cfg = tmp_path / ".fleet.yml"
    cfg.write_text("stale_agent_timeout: 60\nstore: noop\n")
    config = load_config(config_path=str(cfg))
    assert config["stale_agent_timeout"] == 60
    assert config["store"] == "noop"
    assert config["stale_run_threshold"] == 300


def test_empty_config_file(tmp_path):
    cfg = tmp_path / ".fleet.yml"
    cfg.write_text("")
    config = load_config(config_path=str(cfg))
    assert config["max_items"] == 500


def test_cli_overrides_config_file(tmp_path):
    cfg = tmp_path / ".fleet.yml"
    cfg.write_text("status_dir: /tmp/a\n")
    config = load_config(config_path=str(cfg), cli_overrides={"status_dir": "/tmp/b"})
    assert config["status_dir"] == "/tmp/b"


def test_none_cli_overrides_ignored(tmp_path):
    cfg = tmp_path / ".fleet.yml"
    cfg.write_text("status_dir: /tmp/a\n")
    config = load_config(config_path=str(cfg), cli_overrides={"status_dir": None})
    assert config["status_dir"] == "/tmp/a"


def test_github_token_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("GITHUB_TOKEN", "gh-token")
    config = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    assert config["github_token"] == "gh-token"


def test_bot_logins_is_not_shared_reference(tmp_path):
    """Mutating one config's bot list must not affect another."""
    config_a = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config_b = load_config(config_path=str(tmp_path / "nonexistent.yml"))
    config_a["bot_logins"].append("other[bot]")
    assert config_b["bot_logins"] == ["coderabbitai[bot]"]
