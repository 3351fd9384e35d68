import os
from pathlib import Path
from typing import Optional

import yaml

DEFAULT_CONFIG: dict = {
    "stale_agent_timeout": 300,  # seconds without a call before an agent's claims are re-queued
    "stale_run_threshold": 300,  # seconds after which an unfinished run may be replaced without force
    "store": "file",  # "file" persists nitpick resolutions under status_dir; "noop" keeps nothing
    "status_dir": ".agent/status",
    "max_items": 500,
    "bot_logins": ["coderabbitai[bot]"],  # review authors whose bodies carry nitpick sections
    "detail_max_chars": 500,
}


def load_config(config_path: str = ".prfleet.yml", cli_overrides: Optional[dict] = None) -> dict:
    """
    Load configuration by merging (in order of precedence):
      1. Built-in defaults
      2. .prfleet.yml in the current directory
      3. CLI argument overrides
    """
    config = {**DEFAULT_CONFIG, "bot_logins": list(DEFAULT_CONFIG["bot_logins"])}

    path = Path(config_path)
    if path.exists():
        with open(path) as f:
            file_config = yaml.safe_load(f) or {}
        config.update(file_config)

    if cli_overrides:
        for key, value in cli_overrides.items():
            if value is not None:
                config[key] = value

    config["github_token"] = os.environ.get("GITHUB_TOKEN")

    return config
