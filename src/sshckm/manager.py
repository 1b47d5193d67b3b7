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
"""Host-level operations: connect, remove keys, rotate keys."""

import logging
from typing import List, Optional

from sshckm import log
from sshckm.config import Config
from sshckm.inventory import HostRecord, Inventory, InventoryError
from sshckm.keys import KeyPair
from sshckm.prompt import Confirmer, TerminalConfirmer
from sshckm.rotation import KeyRotator, RotationOutcome, RotationResult
from sshckm.tools import SSHTools

logger = logging.getLogger(__name__)


class SSHKeyManager:
    """SSH connection and key manager for the hosts of one inventory."""

    def __init__(
        self,
        config: Config,
        tools: Optional[SSHTools] = None,
        confirmer: Optional[Confirmer] = None,
        rotator: Optional[KeyRotator] = None,
    ):
        """
        Initialize the manager.

        Args:
            config: Loaded configuration
            tools: External tool runner (default: real ssh tools)
            confirmer: Source of yes/no answers (default: the terminal)
            rotator: Key rotation sequencer (default: built from config and tools)
        """
        self.config = config
        self.tools = tools or SSHTools(config.ssh_options)
        self.confirmer = confirmer or TerminalConfirmer()
        self.rotator = rotator or KeyRotator(config, self.tools)

    def _load_inventory(self) -> Inventory:
        return Inventory.load(self.config.inventory_file)

    def _lookup(self, name: str) -> Optional[HostRecord]:
        try:
            return self._load_inventory().get(name)
        except InventoryError as e:
            logger.error("%s", e)
            return None

    def key_pair(self, name: str) -> KeyPair:
        return KeyPair(self.config.identity_file(name))

    def connect(self, name: str) -> bool:
        """
        Open an interactive SSH session to a host.

        Returns:
            True if the session ended with exit status 0
        """
        keys = self.key_pair(name)
        if not keys.exists():
            logger.error(
                "The key file (%s) to SSH to %s is not found. "
                "Please create it by running 'rotatekey' action.",
                keys.private_path,
                name,
            )
            logger.warning("You will be prompted your VPS password in order to update the SSH key.")
            return False

        host = self._lookup(name)
        if host is None:
            return False

        logger.info("Attempting to connect to %s on port %d...", host.destination, host.port)

        result = self.tools.interactive_session(host, keys.private_path)
        if not result.ok:
            logger.error("Connection failed. Please check your credentials or network.")
            return False

        log.success(logger, "Connection successfully closed.")
        return True

    def remove_key(self, name: str) -> bool:
        """
        Remove a host's key from its authorized_keys and delete the local key files.

        Returns:
            False if the host could not be resolved or a local key file could
            not be deleted; an unconfirmed removal is reported and counts as
            success
        """
        keys = self.key_pair(name)
        if not keys.exists():
            logger.warning(
                "Key file for %s not found at %s. Skipping removal.", name, keys.private_path
            )
            return True

        host = self._lookup(name)
        if host is None:
            return False

        logger.warning(
            "WARNING: This will permanently delete the SSH key for %s from your local machine "
            "AND from the remote server's authorized_keys file.",
            name,
        )
        if not self.confirmer.confirm("Are you sure you want to proceed? (y/n)"):
            logger.error("You didn't type the exact prompt. Key removal aborted.")
            return True

        self._remove_remote_key(host, keys)
        return self._remove_local_keys(name, keys)

    def _remove_remote_key(self, host: HostRecord, keys: KeyPair) -> None:
        if not keys.public_path.exists():
            logger.warning(
                "Public key for %s not found. Skipping remote public key removal.", host.name
            )
            return

        logger.info("Removing the public key from %s's authorized keys file...", host.name)

        try:
            public_key = keys.read_public_key()
        except (OSError, UnicodeDecodeError) as e:
            logger.error(
                "Cannot read the public key of %s. Please remove it manually in "
                "~/.ssh/authorized_keys file. (%s)",
                host.name,
                e,
            )
            return

        result = self.tools.remove_authorized_key(host, keys.private_path, public_key)

        if not result.ok:
            logger.error(
                "Failed to remove the public key from %s. This key may still be active on the "
                "VPS. Please remove it manually in ~/.ssh/authorized_keys file. (%s)",
                host.name,
                result.error,
            )
        elif "not_found" in result.stdout:
            logger.warning("Public key was not registered on %s.", host.name)
        else:
            log.success(logger, "Public key successfully removed from %s.", host.name)

    def _remove_local_keys(self, name: str, keys: KeyPair) -> bool:
        logger.info("Removing local key files for %s...", name)

        deleted, missing, failed = keys.delete()
        for path in deleted:
            logger.debug("Deleted %s", path)
        for path in missing:
            logger.warning("The key file (%s) is not found on the local machine.", path)
        for path, error in failed:
            logger.error("Cannot delete the key file (%s): %s", path, error)

        if failed:
            return False

        log.success(logger, "Local key files for %s successfully removed.", name)
        return True

    def remove_all_keys(self) -> bool:
        """
        Remove the keys of every inventory host, in inventory order.

        Returns:
            True if every host was processed without error

        Raises:
            InventoryError: the inventory file cannot be read
        """
        logger.warning(
            "This will attempt to permanently delete ALL SSH keys created by this utility from "
            "your local machine AND from the remote VPSes' authorized_keys."
        )
        if not self.confirmer.confirm("Are you sure you want to proceed? (y/n)"):
            logger.info("Key removal aborted.")
            return True

        logger.info("Starting removal of all keys...")

        failed = []
        for name in self._load_inventory().names():
            if not self.remove_key(name):
                logger.error("Failed to remove key for %s.", name)
                failed.append(name)

        if failed:
            logger.error("Key removal failed for: %s", ", ".join(failed))
        return not failed

    def rotate_key(self, name: str) -> RotationResult:
        """Rotate the key pair of one host."""
        try:
            host = self._load_inventory().get(name)
        except InventoryError as e:
            logger.error("%s", e)
            return RotationResult(name, RotationOutcome.FAILED_LOOKUP, message=str(e))

        return self.rotator.rotate(host)

    def rotate_all_keys(self) -> List[RotationResult]:
        """
        Rotate every inventory host in order; a failure does not stop the run.

        Raises:
            InventoryError: the inventory file cannot be read
        """
        results = []
        for name in self._load_inventory().names():
            logger.info("Rotating key for: %s", name)
            result = self.rotate_key(name)
            if not result.succeeded:
                logger.error("Failed to rotate key for %s.", name)
            results.append(result)

        self._print_rotation_summary(results)
        return results

    def _print_rotation_summary(self, results: List[RotationResult]):
        succeeded = [r for r in results if r.succeeded]
        print()
        print("=" * 70)
        print(f"✅ Rotated keys on {len(succeeded)}/{len(results)} hosts")

        warnings = [r for r in results if r.outcome is RotationOutcome.FAILED_RETIRE_OLD]
        if warnings:
            print("⚠️  Old key left in authorized_keys (remove manually):")
            for r in warnings:
                print(f"  - {r.host}: {r.message}")

        failed = [r for r in results if not r.succeeded]
        if failed:
            print("❌ Failed hosts:")
            for r in failed:
                print(f"  - {r.host}: {r.outcome.value} {r.message}".rstrip())

        print("=" * 70)
