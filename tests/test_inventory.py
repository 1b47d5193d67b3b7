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
"""Tests for the CSV inventory reader."""

from __future__ import annotations

from pathlib import Path

import pytest

from sshckm.inventory import (
    DuplicateHostError,
    HostNotFoundError,
    HostRecord,
    Inventory,
    InventoryError,
)


def _inventory(tmp_path: Path, text: str) -> Inventory:
    path = tmp_path / "vps_list.csv"
    path.write_text(text)
    return Inventory.load(path)


def test_lookup_returns_exact_row(tmp_path: Path) -> None:
    inventory = _inventory(
        tmp_path,
        "name,ip,port,username\nweb1,10.0.0.5,22,admin\nweb2,10.0.0.7,2200,deploy\n",
    )
    assert inventory.get("web1") == HostRecord("web1", "10.0.0.5", 22, "admin")
    assert inventory.get("web2") == HostRecord("web2", "10.0.0.7", 2200, "deploy")


def test_fields_are_trimmed(tmp_path: Path) -> None:
    inventory = _inventory(tmp_path, "name,ip,port,username\n  db1 ,  10.0.0.6 , 2222 ,  pg \n")
    host = inventory.get("db1")
    assert host.address == "10.0.0.6"
    assert host.port == 2222
    assert host.username == "pg"
    assert host.destination == "pg@10.0.0.6"


def test_header_is_skipped_not_validated(tmp_path: Path) -> None:
    inventory = _inventory(tmp_path, "whatever,columns,here\nweb1,10.0.0.5,22,admin\n")
    assert inventory.names() == ["web1"]


def test_empty_names_are_skipped(tmp_path: Path) -> None:
    inventory = _inventory(
        tmp_path, "name,ip,port,username\n,10.0.0.1,22,x\n   ,10.0.0.2,22,y\nweb1,10.0.0.5,22,admin\n\n"
    )
    assert inventory.names() == ["web1"]
    assert len(inventory) == 1


def test_lookup_is_case_sensitive(tmp_path: Path) -> None:
    inventory = _inventory(tmp_path, "name,ip,port,username\nWeb1,10.0.0.5,22,admin\n")
    with pytest.raises(HostNotFoundError):
        inventory.get("web1")


def test_lookup_is_exact_not_prefix(tmp_path: Path) -> None:
    inventory = _inventory(tmp_path, "name,ip,port,username\nweb10,10.0.0.10,22,admin\n")
    with pytest.raises(HostNotFoundError):
        inventory.get("web1")


def test_duplicate_names_are_rejected(tmp_path: Path) -> None:
    inventory = _inventory(
        tmp_path,
        "name,ip,port,username\nweb1,10.0.0.5,22,admin\nweb1,10.0.0.99,22,root\ndb1,10.0.0.6,22,pg\n",
    )
    with pytest.raises(DuplicateHostError, match="2, 3"):
        inventory.get("web1")
    # Other hosts are unaffected
    assert inventory.get("db1").address == "10.0.0.6"
    assert inventory.names() == ["web1", "db1"]


@pytest.mark.parametrize(
    "row",
    [
        "web1,10.0.0.5,22",
        "web1,10.0.0.5,ssh,admin",
        "web1,10.0.0.5,0,admin",
        "web1,10.0.0.5,65536,admin",
        "web1,,22,admin",
        "web1,10.0.0.5,22,",
    ],
)
def test_malformed_row_fails_only_its_host(tmp_path: Path, row: str) -> None:
    inventory = _inventory(tmp_path, f"name,ip,port,username\n{row}\ndb1,10.0.0.6,22,pg\n")
    with pytest.raises(InventoryError):
        inventory.get("web1")
    assert inventory.get("db1").username == "pg"


def test_name_with_path_separator_is_rejected(tmp_path: Path) -> None:
    inventory = _inventory(tmp_path, "name,ip,port,username\n../evil,10.0.0.5,22,admin\n")
    with pytest.raises(InventoryError):
        inventory.get("../evil")


def test_extra_columns_are_ignored(tmp_path: Path) -> None:
    inventory = _inventory(tmp_path, "name,ip,port,username,notes\nweb1,10.0.0.5,22,admin,frontend\n")
    assert inventory.get("web1").username == "admin"


def test_empty_file(tmp_path: Path) -> None:
    inventory = _inventory(tmp_path, "")
    assert inventory.names() == []
    assert "web1" not in inventory


def test_non_utf8_file_is_an_inventory_error(tmp_path: Path) -> None:
    path = tmp_path / "vps_list.csv"
    path.write_bytes(b"name,ip,port,username\nw\xe9b1,10.0.0.5,22,admin\n")

    with pytest.raises(InventoryError, match="Cannot read inventory file"):
        Inventory.load(path)


def test_unreadable_file_is_an_inventory_error(tmp_path: Path) -> None:
    with pytest.raises(InventoryError, match="Cannot read inventory file"):
        Inventory.load(tmp_path / "missing.csv")
