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
"""Shared test fixtures."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from sshckm.config import Config
from sshckm.inventory import HostRecord
from sshckm.tools import CommandResult

INVENTORY_CSV = """name,ip,port,username
web1,10.0.0.5,22,admin
 db1 , 10.0.0.6 , 2222 , postgres
,10.0.0.9,22,nobody
"""


class FakeTools:
    """Stands in for SSHTools: records calls, simulates ssh-keygen on disk."""

    def __init__(
        self,
        generate_ok: bool = True,
        copy_ok: bool = True,
        verify_ok: bool = True,
        remove_ok: bool = True,
        remove_stdout: str = "removed\n",
        session_ok: bool = True,
    ) -> None:
        self.generate_ok = generate_ok
        self.copy_ok = copy_ok
        self.verify_ok = verify_ok
        self.remove_ok = remove_ok
        self.remove_stdout = remove_stdout
        self.session_ok = session_ok
        self.calls: list[tuple] = []
        self.generated = 0

    def _names(self) -> list[str]:
        return [c[0] for c in self.calls]

    def generate_key(self, private_path: Path, comment: str) -> CommandResult:
        self.calls.append(("generate_key", private_path, comment))
        if not self.generate_ok:
            return CommandResult(1, "", "ssh-keygen: boom")
        self.generated += 1
        private_path.write_text(f"PRIVATE-{self.generated}\n")
        Path(f"{private_path}.pub").write_text(f"ssh-ed25519 KEY{self.generated} {comment}\n")
        return CommandResult(0)

    def copy_id(self, host, public_path, previous_identity=None) -> CommandResult:
        self.calls.append(("copy_id", host, public_path, previous_identity))
        return CommandResult(0 if self.copy_ok else 1)

    def verify(self, host, identity_file) -> CommandResult:
        self.calls.append(("verify", host, identity_file))
        if self.verify_ok:
            return CommandResult(0, f"Hi, from {host.name}.\n")
        return CommandResult(255, "", "Permission denied (publickey).")

    def remove_authorized_key(self, host, identity_file, public_key) -> CommandResult:
        self.calls.append(("remove_authorized_key", host, identity_file, public_key))
        if self.remove_ok:
            return CommandResult(0, self.remove_stdout)
        return CommandResult(1, "", "Connection closed")

    def interactive_session(self, host, identity_file) -> CommandResult:
        self.calls.append(("interactive_session", host, identity_file))
        return CommandResult(0 if self.session_ok else 255)


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to streams of a finished test."""
    yield
    logger = logging.getLogger("sshckm")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def fake_tools() -> FakeTools:
    return FakeTools()


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """A config directory with config.yaml and vps_list.csv."""
    directory = tmp_path / "sshckm"
    directory.mkdir()
    (directory / "vps_list.csv").write_text(INVENTORY_CSV)
    (directory / "config.yaml").write_text(
        f"identity_prefix: {tmp_path / 'keys' / 'identity'}\ninventory: vps_list.csv\n"
    )
    return directory


@pytest.fixture
def config(tmp_path: Path, config_dir: Path) -> Config:
    return Config(
        config_dir=config_dir,
        config_file=config_dir / "config.yaml",
        inventory_file=config_dir / "vps_list.csv",
        identity_prefix=tmp_path / "keys" / "identity",
    )


@pytest.fixture
def web1() -> HostRecord:
    return HostRecord(name="web1", address="10.0.0.5", port=22, username="admin")


def write_key_pair(private_path: Path, label: str, backup: bool = False) -> None:
    """Create a fake key pair (optionally as the .bak pair) on disk."""
    private_path.parent.mkdir(parents=True, exist_ok=True)
    suffix = ".bak" if backup else ""
    Path(f"{private_path}{suffix}").write_text(f"PRIVATE-{label}\n")
    Path(f"{private_path}.pub{suffix}").write_text(f"ssh-ed25519 {label} old\n")
