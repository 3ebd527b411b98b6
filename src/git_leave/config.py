"""Run configuration: key location, pool sizes and the default search folder."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

import pygit2

from .models import ConfigError

logger = logging.getLogger(__name__)

# Key used in the global `.gitconfig` file
CONFIG_KEY_DEFAULT_FOLDER = "leaveTool.defaultFolder"

ENV_DEFAULT_FOLDER = "GIT_LEAVE_DEFAULT_FOLDER"
ENV_SSH_KEY = "GIT_LEAVE_SSH_KEY"

DEFAULT_MAX_CONNECTIONS = 4


def default_max_workers() -> int:
    """Same sizing rule as ThreadPoolExecutor's own default."""
    return min(32, (os.cpu_count() or 1) + 4)


@dataclass
class LeaveConfig:
    """Process-wide settings passed explicitly into the engine."""

    ssh_key_path: Path
    max_workers: int = field(default_factory=default_max_workers)
    max_connections: int = DEFAULT_MAX_CONNECTIONS
    default_folder: Path | None = None


def default_ssh_key_path(home: Path | None = None) -> Path:
    """Get the private key used for pushing.

    Priority order:
    1. $GIT_LEAVE_SSH_KEY environment variable
    2. ~/.ssh/id_rsa
    """
    env_key = os.environ.get(ENV_SSH_KEY)
    if env_key:
        return Path(env_key).expanduser()
    return (home or Path.home()) / ".ssh" / "id_rsa"


def read_global_default_folder() -> str | None:
    """Read `leaveTool.defaultFolder` from the global git config.

    Returns None when there is no global config, the key is unset, or the
    value is empty.
    """
    try:
        config = pygit2.Config.get_global_config()
    except (OSError, pygit2.GitError) as e:
        logger.debug("Could not open global git config: %s", e)
        return None

    try:
        value = config[CONFIG_KEY_DEFAULT_FOLDER]
    except KeyError:
        return None
    except pygit2.GitError as e:
        logger.debug("Could not read %s: %s", CONFIG_KEY_DEFAULT_FOLDER, e)
        return None

    return value or None


def resolve_default_folder() -> Path | None:
    """Auto-resolve the default search folder.

    Priority order:
    1. $GIT_LEAVE_DEFAULT_FOLDER environment variable
    2. leaveTool.defaultFolder in the global git config
    """
    value = os.environ.get(ENV_DEFAULT_FOLDER) or read_global_default_folder()
    if not value:
        return None
    return Path(os.path.expandvars(value)).expanduser()


def load_config(
    home: Path | None = None,
    *,
    max_workers: int | None = None,
    max_connections: int | None = None,
) -> LeaveConfig:
    """Build the configuration for one run."""
    if max_workers is not None and max_workers < 1:
        raise ConfigError(f"Worker count must be at least 1, got {max_workers}")
    if max_connections is not None and max_connections < 1:
        raise ConfigError(f"Connection count must be at least 1, got {max_connections}")

    return LeaveConfig(
        ssh_key_path=default_ssh_key_path(home),
        max_workers=max_workers or default_max_workers(),
        max_connections=max_connections or DEFAULT_MAX_CONNECTIONS,
        default_folder=resolve_default_folder(),
    )
