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
Key rotation for a single host.

A rotation walks these steps in order and stops at the first terminal failure:

    BackupExisting -> Generate -> Deploy -> Verify -> RetireOld -> Done

Nothing that could cut off access runs before the new key has been verified:
a failed Deploy or Verify leaves the previous key valid on the host, and the
new local pair on disk for diagnosis. A failed RetireOld is only a warning,
because the new key already works.
"""

import enum
import logging
import socket
from dataclasses import dataclass
from typing import Optional

from sshckm import log
from sshckm.config import Config
from sshckm.inventory import HostRecord
from sshckm.keys import KeyPair
from sshckm.tools import SSHTools

logger = logging.getLogger(__name__)


class RotationOutcome(enum.Enum):
    ROTATED = "rotated"
    SKIPPED_NO_BACKUP_NEEDED = "skipped-no-backup-needed"
    FAILED_LOOKUP = "failed-lookup"
    FAILED_BACKUP = "failed-backup"
    FAILED_GENERATE = "failed-generate"
    FAILED_DEPLOY = "failed-deploy"
    FAILED_VERIFY = "failed-verify"
    FAILED_RETIRE_OLD = "failed-retire-old"

    @property
    def succeeded(self) -> bool:
        """True once the new key has been verified."""
        return self in (
            RotationOutcome.ROTATED,
            RotationOutcome.SKIPPED_NO_BACKUP_NEEDED,
            RotationOutcome.FAILED_RETIRE_OLD,
        )


@dataclass
class RotationResult:
    host: str
    outcome: RotationOutcome
    backed_up: bool = False
    message: str = ""

    @property
    def succeeded(self) -> bool:
        return self.outcome.succeeded


class KeyRotator:
    """Rotates the key pair of one host at a time."""

    def __init__(self, config: Config, tools: SSHTools, local_hostname: Optional[str] = None):
        self.config = config
        self.tools = tools
        self.local_hostname = local_hostname or socket.gethostname()

    def key_comment(self, host: HostRecord) -> str:
        return f"ssh-manager-key for {host.name}; Created by {self.local_hostname}"

    def rotate(self, host: HostRecord) -> RotationResult:
        """
        Rotate the key pair of ``host``.

        Args:
            host: Inventory record of the host

        Returns:
            RotationResult with the terminal state reached
        """
        keys = KeyPair(self.config.identity_file(host.name))

        backed_up = False
        if keys.exists():
            failure = self._backup_existing(host, keys)
            if failure:
                return RotationResult(host.name, RotationOutcome.FAILED_BACKUP, False, failure)
            backed_up = True
        else:
            log.success(
                logger,
                "There is no current SSH identity file for %s. Generating a new SSH key.",
                host.name,
            )

        failure = self._generate(host, keys)
        if failure:
            return RotationResult(host.name, RotationOutcome.FAILED_GENERATE, backed_up, failure)

        failure = self._deploy(host, keys)
        if failure:
            return RotationResult(host.name, RotationOutcome.FAILED_DEPLOY, backed_up, failure)

        failure = self._verify(host, keys)
        if failure:
            return RotationResult(host.name, RotationOutcome.FAILED_VERIFY, backed_up, failure)

        return self._retire_old(host, keys, backed_up)

    def _backup_existing(self, host: HostRecord, keys: KeyPair) -> Optional[str]:
        if keys.has_backup():
            # After a failed Deploy the old backup is the only key the host accepts
            logger.warning(
                "Replacing the previous backup %s. If the last rotation of %s failed before "
                "the new key was verified, that backup may be the only key the host accepts.",
                keys.backup_private_path,
                host.name,
            )

        logger.warning(
            "Existing SSH identity file for %s found. Backing it up to %s...",
            host.name,
            keys.backup_private_path,
        )
        try:
            keys.backup()
        except OSError as e:
            logger.error("Failed to back up the SSH identity file for %s. Aborting. (%s)", host.name, e)
            return str(e)

        log.success(logger, "Existing SSH identity file has been backed up.")
        return None

    def _generate(self, host: HostRecord, keys: KeyPair) -> Optional[str]:
        logger.info(
            "Generating a new SSH key pair for %s named '%s'...", host.name, keys.private_path
        )

        identity_dir = keys.private_path.parent
        try:
            identity_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
        except OSError as e:
            logger.error("Cannot create %s: %s", identity_dir, e)
            return str(e)

        result = self.tools.generate_key(keys.private_path, self.key_comment(host))
        if not result.ok or not keys.exists():
            logger.error("Failed to generate a new key pair. Aborting. (%s)", result.error)
            return result.error

        try:
            keys.private_path.chmod(0o600)
        except OSError as e:
            logger.error("Cannot restrict permissions of %s: %s", keys.private_path, e)
            return str(e)

        log.success(logger, "The new SSH key pair has been generated successfully.")
        return None

    def _deploy(self, host: HostRecord, keys: KeyPair) -> Optional[str]:
        logger.info(
            "Copying the new public key to %s on port %d...", host.destination, host.port
        )

        previous = keys.backup_private_path if keys.has_backup() else None
        if previous is None:
            logger.warning("No previous key for %s; you may be prompted for its password.", host.name)

        result = self.tools.copy_id(host, keys.public_path, previous)
        if not result.ok:
            logger.error(
                "Failed to copy the new public key to %s. Please check your credentials.",
                host.name,
            )
            return result.error

        log.success(logger, "The new public key has been copied successfully to %s.", host.name)
        return None

    def _verify(self, host: HostRecord, keys: KeyPair) -> Optional[str]:
        logger.info("Testing the new key on %s...", host.name)

        result = self.tools.verify(host, keys.private_path)
        if not result.ok:
            logger.error(
                "Test with new key failed on %s. Aborting the rotation to prevent lockout. (%s)",
                host.name,
                result.error,
            )
            return result.error

        if result.stdout.strip():
            print(result.stdout.strip())
        log.success(logger, "The new key works on %s.", host.name)
        return None

    def _retire_old(self, host: HostRecord, keys: KeyPair, backed_up: bool) -> RotationResult:
        if not keys.has_backup():
            logger.warning(
                "Could not find the old key. Skipping public key removal from %s.", host.name
            )
            return RotationResult(host.name, RotationOutcome.SKIPPED_NO_BACKUP_NEEDED, backed_up)

        try:
            old_key = keys.read_public_key(backup=True)
        except FileNotFoundError:
            old_key = None
            message = f"old public key {keys.backup_public_path} not found"
        except (OSError, UnicodeDecodeError) as e:
            old_key = None
            message = f"cannot read old public key {keys.backup_public_path}: {e}"

        if old_key is None:
            logger.warning(
                "Cannot remove the old key from %s: %s. "
                "Remove it manually from ~/.ssh/authorized_keys.",
                host.name,
                message,
            )
            return RotationResult(host.name, RotationOutcome.FAILED_RETIRE_OLD, backed_up, message)

        logger.info("Removing the old key from %s...", host.name)
        result = self.tools.remove_authorized_key(host, keys.private_path, old_key)

        if not result.ok:
            logger.warning(
                "Failed to remove the old key from %s. "
                "Remove it manually from ~/.ssh/authorized_keys. (%s)",
                host.name,
                result.error,
            )
            return RotationResult(
                host.name, RotationOutcome.FAILED_RETIRE_OLD, backed_up, result.error
            )

        if "not_found" in result.stdout:
            logger.warning(
                "The old public key was not registered in the authorized_keys file on %s.",
                host.name,
            )
        else:
            log.success(logger, "The old public key successfully removed from %s.", host.name)

        return RotationResult(host.name, RotationOutcome.ROTATED, backed_up)
