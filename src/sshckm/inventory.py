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
"""Inventory of manageable hosts, read from a CSV file."""

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List

logger = logging.getLogger(__name__)

COLUMNS = ("name", "ip", "port", "username")


class InventoryError(Exception):
    """The inventory cannot be read, or a host cannot be resolved from it."""


class HostNotFoundError(InventoryError):
    pass


class DuplicateHostError(InventoryError):
    pass


@dataclass(frozen=True)
class HostRecord:
    """Connection parameters for one inventory row."""

    name: str
    address: str
    port: int
    username: str

    @property
    def destination(self) -> str:
        return f"{self.username}@{self.address}"


class Inventory:
    """
    Rows of ``name,ip,port,username`` after a header line.

    Rows are kept raw and validated on lookup, so one malformed row only
    affects the host it describes.
    """

    def __init__(self, rows: List[List[str]], source: str = "<inventory>"):
        self.source = source
        self._rows: Dict[str, List[List[str]]] = {}
        self._line_numbers: Dict[str, List[int]] = {}

        # Line 1 is the header
        for line_number, row in enumerate(rows, start=2):
            fields = [f.strip() for f in row]
            if not fields or not fields[0]:
                continue
            name = fields[0]
            self._rows.setdefault(name, []).append(fields)
            self._line_numbers.setdefault(name, []).append(line_number)

    @classmethod
    def load(cls, path: Path) -> "Inventory":
        """
        Read an inventory file, skipping its header row.

        Raises:
            InventoryError: the file cannot be read or is not valid UTF-8 CSV
        """
        try:
            with open(path, "r", newline="", encoding="utf-8") as f:
                rows = list(csv.reader(f))
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise InventoryError(f"Cannot read inventory file {path}: {e}") from e
        logger.debug("Loaded %d inventory row(s) from %s", max(len(rows) - 1, 0), path)
        return cls(rows[1:], source=str(path))

    def names(self) -> List[str]:
        """Distinct host names in row order."""
        return list(self._rows)

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self._rows)

    def __contains__(self, name: object) -> bool:
        return name in self._rows

    def get(self, name: str) -> HostRecord:
        """
        Resolve a host name to its connection parameters.

        Args:
            name: Exact (case-sensitive) host name

        Returns:
            HostRecord for the matching row

        Raises:
            HostNotFoundError: no row has this name
            DuplicateHostError: several rows have this name
            InventoryError: the matching row is malformed
        """
        matches = self._rows.get(name)
        if not matches:
            raise HostNotFoundError(f"VPS details for '{name}' not found in {self.source}.")

        if len(matches) > 1:
            lines = ", ".join(str(n) for n in self._line_numbers[name])
            raise DuplicateHostError(
                f"VPS name '{name}' appears on several lines of {self.source} ({lines}). "
                "Rename or remove the duplicates."
            )

        return self._parse_row(matches[0])

    def _parse_row(self, fields: List[str]) -> HostRecord:
        name = fields[0]
        if len(fields) < len(COLUMNS):
            raise InventoryError(
                f"Row for '{name}' in {self.source} must have {len(COLUMNS)} columns: "
                + ",".join(COLUMNS)
            )

        _, address, port_text, username = fields[: len(COLUMNS)]

        if "/" in name or name in (".", ".."):
            raise InventoryError(f"VPS name '{name}' cannot be used as part of a key file name.")

        if not address or not username:
            raise InventoryError(f"Row for '{name}' in {self.source} has an empty ip or username.")

        try:
            port = int(port_text)
        except ValueError:
            raise InventoryError(f"Invalid port '{port_text}' for '{name}' in {self.source}.")

        if not 1 <= port <= 65535:
            raise InventoryError(f"Port {port} for '{name}' is out of range (1-65535).")

        return HostRecord(name=name, address=address, port=port, username=username)
