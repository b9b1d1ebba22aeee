"""Run configuration, loaded from YAML.

Example ``cisync.yaml``::

    repo_path: /srv/ci-scripts
    branch: main
    scripts_dir: ConfigurationItems
    git_executable: /usr/bin/git
    service_url: https://cm01.corp.example/AdminService
    log_only: true
    workers: 8
    items:
      - Baseline - Disable SMBv1
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

from cisync.errors import ConfigError
from cisync.reconcile.normalizer import DEFAULT_SIGNATURE_MARKER

USERNAME_ENV = "CISYNC_USERNAME"
PASSWORD_ENV = "CISYNC_PASSWORD"


@dataclass
class Settings:
    repo_path: str = "."
    branch: str = "main"
    scripts_dir: str = "."
    git_executable: str = "git"
    git_timeout: float = 60.0
    skip_sync: bool = False
    service_url: str = ""
    service_timeout: float = 30.0
    verify_tls: bool = True
    log_only: bool = False
    workers: int = 4
    signature_marker: str = DEFAULT_SIGNATURE_MARKER
    audit_path: str = "cisync-audit.csv"
    items: list[str] = field(default_factory=list)

    @property
    def scripts_root(self) -> Path:
        return Path(self.repo_path) / self.scripts_dir

    def credentials(self) -> tuple[str, str] | None:
        """Basic-auth pair from the environment, if both parts are set."""
        username = os.environ.get(USERNAME_ENV, "")
        password = os.environ.get(PASSWORD_ENV, "")
        if username and password:
            return username, password
        return None


def load_settings(path: str | Path | None = None, **overrides) -> Settings:
    """Load settings from a YAML file and apply non-``None`` overrides.

    Raises:
        ConfigError: If the file cannot be read or holds unknown keys.
    """
    data: dict = {}
    if path:
        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Cannot read config {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Config {path} must be a mapping")

    known = {f.name for f in fields(Settings)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(unknown)}")

    data.update({k: v for k, v in overrides.items() if v is not None})
    settings = Settings(**data)
    if settings.workers < 1:
        raise ConfigError("workers must be at least 1")
    return settings
