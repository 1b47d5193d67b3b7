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
"""Tests for configuration loading."""

from __future__ import annotations

from pathlib import Path

import pytest

from sshckm.config import ConfigError, default_config_dir, load_config


def test_load_config(tmp_path: Path, config_dir: Path) -> None:
    config = load_config(config_dir)
    assert config.config_file == config_dir / "config.yaml"
    assert config.inventory_file == config_dir / "vps_list.csv"
    assert config.identity_prefix == tmp_path / "keys" / "identity"
    assert config.identity_file("web1") == tmp_path / "keys" / "identity-web1"
    assert config.ssh_options == ()


def test_defaults_when_config_is_empty(config_dir: Path) -> None:
    (config_dir / "config.yaml").write_text("")
    config = load_config(config_dir)
    assert config.identity_prefix == Path("~/.ssh/sshfile4sshmanager").expanduser()
    assert config.inventory_file == config_dir / "vps_list.csv"


def test_missing_config_file(config_dir: Path) -> None:
    (config_dir / "config.yaml").unlink()
    with pytest.raises(ConfigError, match="config.yaml"):
        load_config(config_dir)


def test_missing_inventory(config_dir: Path) -> None:
    (config_dir / "vps_list.csv").unlink()
    with pytest.raises(ConfigError, match="vps_list.csv"):
        load_config(config_dir)


def test_placeholders_are_rejected(config_dir: Path) -> None:
    (config_dir / "config.yaml").write_text(
        "identity_prefix: enter_identity_prefix\nssh_options:\n  - enter_option\n"
    )
    with pytest.raises(ConfigError) as excinfo:
        load_config(config_dir)
    message = str(excinfo.value)
    assert "identity_prefix: enter_identity_prefix" in message
    assert "ssh_options[0]: enter_option" in message


def test_config_root_must_be_mapping(config_dir: Path) -> None:
    (config_dir / "config.yaml").write_text("- a\n- b\n")
    with pytest.raises(ConfigError, match="mapping"):
        load_config(config_dir)


def test_invalid_yaml(config_dir: Path) -> None:
    (config_dir / "config.yaml").write_text("identity_prefix: [unclosed\n")
    with pytest.raises(ConfigError):
        load_config(config_dir)


def test_ssh_options_and_custom_inventory(tmp_path: Path, config_dir: Path) -> None:
    inventory = tmp_path / "hosts.csv"
    inventory.write_text("name,ip,port,username\n")
    (config_dir / "config.yaml").write_text(
        f"inventory: {inventory}\nssh_options:\n  - ConnectTimeout=5\n"
    )
    config = load_config(config_dir)
    assert config.inventory_file == inventory
    assert config.ssh_options == ("ConnectTimeout=5",)


def test_ssh_options_must_be_list(config_dir: Path) -> None:
    (config_dir / "config.yaml").write_text("ssh_options: ConnectTimeout=5\n")
    with pytest.raises(ConfigError, match="list"):
        load_config(config_dir)


def test_default_config_dir_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SSHCKM_DIR", str(tmp_path / "custom"))
    assert default_config_dir() == tmp_path / "custom"


def test_default_config_dir_xdg(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("SSHCKM_DIR", raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
    assert default_config_dir() == tmp_path / "sshckm"
