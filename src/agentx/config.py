"""Configuration management for agentx.

Handles:
- .agentxrc.yaml discovery (current directory upward, then $HOME)
- Environment variable overrides
- Resolving where the issues root lives
- Optional git hooks for start (branch) and close (commit)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

import yaml

from agentx.errors import Malformed
from agentx.models import Priority


CONFIG_FILE = ".agentxrc.yaml"
HOME_ROOT = ".agentx"

LOCATION_CWD = "cwd"
LOCATION_FIXED = "fixed"
LOCATION_HOME = "home"


@dataclass
class AgentxConfig:
    """User-facing config from .agentxrc.yaml."""
    default_priority: str = Priority.MEDIUM
    auto_status_detection: bool = True
    issues_location: dict[str, str] = field(default_factory=lambda: {"type": LOCATION_CWD})
    json_output: bool = False
    git_branch_on_start: bool = False
    git_commit_on_close: bool = False
    path: str | None = None  # file this config was read from

    @classmethod
    def load(cls, config_path: str | None) -> AgentxConfig:
        """Load config from config_path (defaults when None or missing)."""
        cfg = cls()
        if config_path and os.path.exists(config_path):
            with open(config_path, encoding="utf-8") as f:
                try:
                    data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise Malformed(f"{config_path} is not valid YAML: {e}") from None
            if not isinstance(data, dict):
                raise Malformed(f"{config_path} must be a mapping")
            cfg.path = config_path
            cfg.default_priority = Priority.normalize(
                str(data.get("default_priority", Priority.MEDIUM)))
            if not Priority.is_valid(cfg.default_priority):
                raise Malformed(f"{config_path}: invalid default_priority "
                                f"'{data.get('default_priority')}'")
            cfg.auto_status_detection = bool(data.get("auto_status_detection", True))
            location = data.get("issues_location") or {"type": LOCATION_CWD}
            if not isinstance(location, dict):
                raise Malformed(f"{config_path}: issues_location must be a mapping")
            cfg.issues_location = {str(k): str(v) for k, v in location.items()}
            cfg.json_output = bool(data.get("json", False))
            git = data.get("git") or {}
            if not isinstance(git, dict):
                raise Malformed(f"{config_path}: git must be a mapping")
            cfg.git_branch_on_start = bool(git.get("branch_on_start", False))
            cfg.git_commit_on_close = bool(git.get("commit_on_close", False))

        # Environment variable overrides
        if os.environ.get("AGENTX_JSON"):
            cfg.json_output = os.environ["AGENTX_JSON"].lower() in ("1", "true", "yes")

        return cfg

    def save(self, config_path: str) -> None:
        """Save config to config_path."""
        data: dict[str, Any] = {
            "default_priority": self.default_priority,
            "auto_status_detection": self.auto_status_detection,
            "issues_location": dict(self.issues_location),
        }
        if self.json_output:
            data["json"] = self.json_output
        git = {}
        if self.git_branch_on_start:
            git["branch_on_start"] = True
        if self.git_commit_on_close:
            git["commit_on_close"] = True
        if git:
            data["git"] = git
        with open(config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)


def find_config(start: str | None = None) -> str | None:
    """Walk up from start directory to find .agentxrc.yaml, falling back to $HOME.

    Returns absolute path to the config file, or None if not found.
    """
    if start is None:
        start = os.getcwd()
    current = os.path.abspath(start)
    while True:
        candidate = os.path.join(current, CONFIG_FILE)
        if os.path.isfile(candidate):
            return candidate
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    home_candidate = os.path.join(os.path.expanduser("~"), CONFIG_FILE)
    if os.path.isfile(home_candidate):
        return home_candidate
    return None


def resolve_issues_dir(config: AgentxConfig, override: str | None = None,
                       cwd: str | None = None) -> str:
    """Get the directory that holds issues/ for this invocation."""
    if override:
        return os.path.abspath(os.path.expanduser(override))
    # Check environment override
    env_dir = os.environ.get("AGENTX_DIR")
    if env_dir:
        return os.path.abspath(os.path.expanduser(env_dir))

    location = config.issues_location or {}
    kind = location.get("type", LOCATION_CWD)
    if kind == LOCATION_FIXED:
        path = location.get("path")
        if not path:
            raise Malformed("issues_location type 'fixed' needs a path")
        path = os.path.expanduser(path)
        if not os.path.isabs(path) and config.path:
            path = os.path.join(os.path.dirname(config.path), path)
        return os.path.abspath(path)
    if kind == LOCATION_HOME:
        folder = location.get("folder") or os.path.basename(os.path.abspath(cwd or os.getcwd()))
        return os.path.join(os.path.expanduser("~"), HOME_ROOT, folder)
    if kind != LOCATION_CWD:
        raise Malformed(f"unknown issues_location type '{kind}'")
    if config.path:
        return os.path.dirname(config.path)
    return os.path.abspath(cwd or os.getcwd())
