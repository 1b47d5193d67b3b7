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
Invocations of the external SSH tools.

Remote commands are built from argument lists and quoted with ``shlex``;
data such as public keys is passed on stdin, never spliced into a command
line.
"""

import logging
import shlex
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from sshckm.inventory import HostRecord

logger = logging.getLogger(__name__)

# Reads one public key line on stdin and drops lines exactly equal to it
REMOVE_AUTHORIZED_KEY_SCRIPT = """\
set -e
IFS= read -r key
file="$HOME/.ssh/authorized_keys"
if [ ! -f "$file" ] || ! grep -qxF -- "$key" "$file"; then
    echo 'not_found'
    exit 0
fi
tmp="$file.sshckm.$$"
grep -vxF -- "$key" "$file" > "$tmp" || [ $? -eq 1 ]
chmod 600 "$tmp"
mv "$tmp" "$file"
echo 'removed'
"""


@dataclass
class CommandResult:
    """Outcome of one external command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def error(self) -> str:
        return (self.stderr or self.stdout).strip() or f"exit status {self.returncode}"


def build_ssh_command(
    host: HostRecord,
    identity_file: Optional[Path] = None,
    remote_argv: Optional[Sequence[str]] = None,
    options: Sequence[str] = (),
    batch: bool = False,
) -> List[str]:
    """
    Build an ``ssh`` command line.

    Args:
        host: Target host
        identity_file: Private key to authenticate with
        remote_argv: Remote command as an argument list (None for a login shell)
        options: Extra ``-o`` options
        batch: Only use ``identity_file``, never fall back to prompting

    Returns:
        Command list for subprocess
    """
    cmd = ["ssh", "-p", str(host.port)]

    if identity_file is not None:
        cmd.extend(["-i", str(identity_file)])

    if batch:
        cmd.extend(["-o", "IdentitiesOnly=yes", "-o", "BatchMode=yes"])

    for opt in options:
        cmd.extend(["-o", opt])

    cmd.append(host.destination)

    if remote_argv:
        # ssh hands the remote side a single string for its shell
        cmd.append(shlex.join(remote_argv))

    return cmd


class SSHTools:
    """Runs ssh, ssh-keygen and ssh-copy-id."""

    def __init__(self, ssh_options: Sequence[str] = (), run: Callable = subprocess.run):
        """
        Args:
            ssh_options: Extra ``-o`` options for every ssh connection
            run: subprocess.run compatible callable
        """
        self.ssh_options = tuple(ssh_options)
        self._run = run

    def _execute(
        self, cmd: List[str], capture_output: bool = True, input_text: Optional[str] = None
    ) -> CommandResult:
        logger.debug("Running: %s", shlex.join(cmd))
        try:
            result = self._run(
                cmd,
                capture_output=capture_output,
                text=True,
                input=input_text,
                check=False,
            )
        except FileNotFoundError as e:
            return CommandResult(127, "", f"{cmd[0]} not found: {e}")
        except OSError as e:
            return CommandResult(126, "", str(e))

        if capture_output:
            return CommandResult(result.returncode, result.stdout or "", result.stderr or "")
        return CommandResult(result.returncode)

    def generate_key(self, private_path: Path, comment: str) -> CommandResult:
        """Generate an unencrypted Ed25519 key pair at ``private_path``."""
        cmd = [
            "ssh-keygen",
            "-t",
            "ed25519",
            "-f",
            str(private_path),
            "-C",
            comment,
            "-q",
            "-N",
            "",
        ]
        return self._execute(cmd)

    def copy_id(
        self, host: HostRecord, public_path: Path, previous_identity: Optional[Path] = None
    ) -> CommandResult:
        """
        Append a public key to the host's authorized_keys with ssh-copy-id.

        Attached to the terminal so a password prompt can be answered when
        ``previous_identity`` is absent or rejected.
        """
        cmd = ["ssh-copy-id", "-f", "-p", str(host.port), "-i", str(public_path)]
        if previous_identity is not None:
            cmd.extend(["-o", f"IdentityFile={previous_identity}"])
        cmd.extend(["-o", "StrictHostKeyChecking=accept-new"])
        for opt in self.ssh_options:
            cmd.extend(["-o", opt])
        cmd.append(host.destination)
        return self._execute(cmd, capture_output=False)

    def run_remote(
        self,
        host: HostRecord,
        identity_file: Path,
        remote_argv: Sequence[str],
        input_text: Optional[str] = None,
    ) -> CommandResult:
        """Run ``remote_argv`` on the host, authenticating only with ``identity_file``."""
        cmd = build_ssh_command(host, identity_file, remote_argv, self.ssh_options, batch=True)
        return self._execute(cmd, input_text=input_text)

    def verify(self, host: HostRecord, identity_file: Path) -> CommandResult:
        return self.run_remote(host, identity_file, ["echo", f"Hi, from {host.name}."])

    def remove_authorized_key(
        self, host: HostRecord, identity_file: Path, public_key: str
    ) -> CommandResult:
        """
        Remove lines exactly equal to ``public_key`` from the remote authorized_keys.

        stdout is ``removed`` or ``not_found`` on success.
        """
        return self.run_remote(
            host,
            identity_file,
            ["sh", "-c", REMOVE_AUTHORIZED_KEY_SCRIPT],
            input_text=public_key + "\n",
        )

    def interactive_session(self, host: HostRecord, identity_file: Path) -> CommandResult:
        """Open a login shell attached to the terminal."""
        cmd = build_ssh_command(host, identity_file, options=self.ssh_options)
        return self._execute(cmd, capture_output=False)
