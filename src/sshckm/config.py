# ----------------------------------------------------------------------------------------------- #
#                 $$$$$$\   $$$$$$\ $$$$$$$$\ $$\   $$\ $$\   $$\ $$$$$$\ $$\   $$\               #
#                $$  __$$\ $$  __$$\\__$$  __|$$ |  $$ |$$$\  $$ |\_$$  _|$$ |  $$ |              #
#                $$ /  \__|$$ /  $$ |  $$ |   $$ |  $$ |$$$$\ $$ |  $$ |  \$$\ $$  |              #
#                $$ |$$$$\ $$ |  $$ |  $$ |   $$ |  $$ |$$ $$\$$ |  $$ |   \$$$$  /               #
#                $$ |\_$$ |$$ |  $$ |  $$ |   $$ |  $$ |$$ \$$$$ |  $$ |   $$  $$<                #
#                $$ |  $$ |$$ |  $$ |  $$ |   $$ |  $$ |$$ |\$$$ |  $$ |  $$  /\$$\               #
#                \$$$$$$  | $$$$$$  |  $$ |   \$$$$$$  |$$ | \$$ |$$$$$$\ $$ /  $$ |              #
#                 \______/  \______/   \__|    \______/ \__|  \__|\______|\__|  \__|              #
# ----------------------------------------------------------------------------------------------- #
# Copyright (C) sshckm contributors                                                               #
# LICENSE: SPDX - AGPL-3.0-or-later                                                               #
# ----------------------------------------------------------------------------------------------- #
# This program is free software: you can redistribute it and/or modify                            #
# it under the terms of the GNU Affero General Public License as                                  #
# published by the Free Software Foundation, either version 3 of the                              #
# License, or (at your option) any later version.                                                 #
#                                                                                                 #
# This program is distributed in the hope that it will be useful,                                 #
# but WITHOUT ANY WARRANTY; without even the implied warranty of                                  #
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the                                   #
# GNU Affero General Public License for more details.                                             #
#                                                                                                 #
# You should have received a copy of the GNU Affero General Public License                        #
# along with this program.  If not, see <https://www.gnu.org/licenses/>.                          #
# ----------------------------------------------------------------------------------------------- #
"""
Configuration for sshckm.

The configuration directory holds two files:

    <config-dir>/
    ├── config.yaml      # settings (identity prefix, inventory, ssh options)
    └── vps_list.csv     # inventory: header + rows of name,ip,port,username

The directory is taken from --config-dir, then $SSHCKM_DIR, then
$XDG_CONFIG_HOME/sshckm (default ~/.config/sshckm).
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = "config.yaml"
INVENTORY_FILE_NAME = "vps_list.csv"
COMPLETION_TEMPLATE_NAME = "completion.bash.j2"
DEFAULT_IDENTITY_PREFIX = "~/.ssh/sshfile4sshmanager"
PLACEHOLDER_MARKER = "enter_"


class ConfigError(Exception):
    """Missing or invalid configuration; fatal before any host is touched."""


@dataclass(frozen=True)
class Config:
    """Settings resolved once at startup and passed to every operation."""

    config_dir: Path
    config_file: Path
    inventory_file: Path
    identity_prefix: Path
    ssh_options: Tuple[str, ...] = field(default_factory=tuple)

    def identity_file(self, host_name: str) -> Path:
        """Private key path for a host: ``<identity_prefix>-<host_name>``."""
        return Path(f"{self.identity_prefix}-{host_name}")


def default_config_dir() -> Path:
    """Resolve the configuration directory from the environment."""
    env_dir = os.environ.get("SSHCKM_DIR")
    if env_dir:
        return Path(env_dir).expanduser()

    config_home = os.environ.get("XDG_CONFIG_HOME") or "~/.config"
    return Path(config_home).expanduser() / "sshckm"


def config_paths(config_dir: Path) -> Dict[str, Path]:
    """Default locations of the config file and inventory inside ``config_dir``."""
    return {
        CONFIG_FILE_NAME: config_dir / CONFIG_FILE_NAME,
        INVENTORY_FILE_NAME: config_dir / INVENTORY_FILE_NAME,
    }


def _find_placeholders(data: Any, prefix: str = "") -> List[str]:
    """Return ``key: value`` strings for every value still set to a template placeholder."""
    found = []
    if isinstance(data, dict):
        for key, value in data.items():
            found.extend(_find_placeholders(value, f"{prefix}{key}"))
    elif isinstance(data, list):
        for index, value in enumerate(data):
            found.extend(_find_placeholders(value, f"{prefix}[{index}]"))
    elif isinstance(data, str) and data.strip().startswith(PLACEHOLDER_MARKER):
        found.append(f"{prefix}: {data}")
    return found


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Error loading config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config root must be a mapping: {path}")
    return data


def load_config(config_dir: Optional[Path] = None) -> Config:
    """
    Load and validate the configuration.

    Args:
        config_dir: Configuration directory (default: ``default_config_dir()``)

    Returns:
        Validated Config

    Raises:
        ConfigError: if a file is missing, unreadable or still holds placeholders
    """
    config_dir = Path(config_dir) if config_dir else default_config_dir()
    config_file = config_dir / CONFIG_FILE_NAME

    if not config_file.exists():
        raise ConfigError(
            f"{CONFIG_FILE_NAME} file is not found at {config_file}. "
            "Please copy it from the example file, then edit its values."
        )

    data = _load_yaml(config_file)
    logger.debug("Loaded config from %s", config_file)

    placeholders = _find_placeholders(data)
    if placeholders:
        lines = [f"Your {CONFIG_FILE_NAME} file still contains default placeholder values."]
        lines.extend(f"  - Please configure: {p}" for p in placeholders)
        lines.append(f"Please update {config_file} and re-run the command.")
        raise ConfigError("\n".join(lines))

    inventory_file = Path(str(data.get("inventory", INVENTORY_FILE_NAME))).expanduser()
    if not inventory_file.is_absolute():
        inventory_file = config_dir / inventory_file

    if not inventory_file.exists():
        raise ConfigError(
            f"{inventory_file.name} file is not found at {inventory_file}. "
            "Please copy it from the example file."
        )

    ssh_options = data.get("ssh_options") or []
    if not isinstance(ssh_options, list):
        raise ConfigError("ssh_options must be a list of 'Key=Value' strings")

    return Config(
        config_dir=config_dir,
        config_file=config_file,
        inventory_file=inventory_file,
        identity_prefix=Path(str(data.get("identity_prefix", DEFAULT_IDENTITY_PREFIX))).expanduser(),
        ssh_options=tuple(str(o) for o in ssh_options),
    )
