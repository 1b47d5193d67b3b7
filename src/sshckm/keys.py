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
"""Per-host key pair files on disk."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Tuple

logger = logging.getLogger(__name__)

PUBLIC_SUFFIX = ".pub"
BACKUP_SUFFIX = ".bak"


@dataclass(frozen=True)
class KeyPair:
    """
    Active and backup key files for one host.

    Layout:
        <prefix>-<host>          active private key
        <prefix>-<host>.pub      active public key
        <prefix>-<host>.bak      previous private key
        <prefix>-<host>.pub.bak  previous public key
    """

    private_path: Path

    @property
    def public_path(self) -> Path:
        return Path(f"{self.private_path}{PUBLIC_SUFFIX}")

    @property
    def backup_private_path(self) -> Path:
        return Path(f"{self.private_path}{BACKUP_SUFFIX}")

    @property
    def backup_public_path(self) -> Path:
        return Path(f"{self.public_path}{BACKUP_SUFFIX}")

    def all_paths(self) -> List[Path]:
        return [
            self.private_path,
            self.public_path,
            self.backup_private_path,
            self.backup_public_path,
        ]

    def exists(self) -> bool:
        """True if the active private key exists."""
        return self.private_path.is_file()

    def has_backup(self) -> bool:
        return self.backup_private_path.is_file()

    def backup(self) -> None:
        """
        Move the active pair to its ``.bak`` siblings.

        Renames replace any older backup. When the active pair has no public
        half, a stale ``.pub.bak`` is removed so the backup never mixes two
        generations of keys.
        """
        os.replace(self.private_path, self.backup_private_path)

        if self.public_path.exists():
            os.replace(self.public_path, self.backup_public_path)
        else:
            logger.warning("Public key %s not found; backing up the private key only.", self.public_path)
            if self.backup_public_path.exists():
                self.backup_public_path.unlink()

    def read_public_key(self, backup: bool = False) -> str:
        """Return the public key line (without trailing newline)."""
        path = self.backup_public_path if backup else self.public_path
        return path.read_text(encoding="utf-8").strip()

    def delete(self) -> Tuple[List[Path], List[Path], List[Tuple[Path, OSError]]]:
        """
        Delete every key file of this host.

        Returns:
            Tuple of (deleted paths, missing paths, (path, error) pairs that
            could not be deleted)
        """
        deleted = []
        missing = []
        failed = []
        for path in self.all_paths():
            try:
                path.unlink()
                deleted.append(path)
            except FileNotFoundError:
                missing.append(path)
            except OSError as e:
                failed.append((path, e))
        return deleted, missing, failed
