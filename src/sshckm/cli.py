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
SSH Connection & Key Manager (sshckm)

Manages SSH connections and one key pair per host for a small inventory of
VPSes listed in a CSV file:
- Connecting to a host with its dedicated key
- Rotating keys (backup, generate, deploy, verify, retire the old key)
- Removing keys locally and from the remote authorized_keys
- Bash completion

Configuration directory (default: $SSHCKM_DIR or ~/.config/sshckm):
    config.yaml     # identity_prefix, inventory, ssh_options
    vps_list.csv    # header + rows: name,ip,port,username

Usage:
    sshckm connect my_server1
    sshckm rotatekey my_server1
    sshckm rotateallkeys
    sshckm removekey my_server1
    sshckm removeallkeys
    source <(sshckm --completion)

Concurrent runs against the same host are not safe: nothing locks the key
files between backup, generation and deployment.

Each rotation replaces the previous .bak pair. If a rotation fails before the
new key is verified, the .bak key may be the only one the host accepts;
rotating again would overwrite it and leave password login as the only way
back in. Fix the failure and check access with the .bak key first.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from sshckm import __version__
from sshckm.completion import render_completion
from sshckm.config import (
    CONFIG_FILE_NAME,
    INVENTORY_FILE_NAME,
    ConfigError,
    config_paths,
    default_config_dir,
    load_config,
)
from sshckm.inventory import Inventory, InventoryError
from sshckm.log import setup_logging
from sshckm.manager import SSHKeyManager

logger = logging.getLogger(__name__)

VERSION = __version__

# Action name -> number of <vps_name> arguments
ACTIONS: Dict[str, int] = {
    "connect": 1,
    "removekey": 1,
    "removeallkeys": 0,
    "rotatekey": 1,
    "rotateallkeys": 0,
}

GLOBAL_OPTIONS = [
    "--help",
    "-h",
    "--version",
    "-v",
    "--completion",
    "--script-path",
    "--script-dir",
    "--config-paths",
]

USAGE_EPILOG = """
Actions:
  connect <vps_name>    Connect to a VPS via SSH.
  removekey <vps_name>  Remove SSH key for a single VPS.
  removeallkeys         Remove SSH keys for all VPS.
  rotatekey <vps_name>  Rotate SSH keys on a VPS.
  rotateallkeys         Rotate SSH keys on all VPS.

Configuration:
  - Files are loaded from --config-dir, $SSHCKM_DIR or ~/.config/sshckm
  - CSV format: header line + rows: name,ip,port,username
  - See config.yaml.example and vps_list.csv.example for templates

Completion:
  - Enable for current session: source <(sshckm --completion)
  - Persist for new sessions: add the above to ~/.bashrc

Tips:
  - Check locations: sshckm --config-paths | --script-dir | --script-path
  - 'removekey' and 'removeallkeys' confirm before deleting keys
  - 'rotatekey' may prompt for your VPS password to copy the key

Examples:
  sshckm connect my_server1
  sshckm removekey my_server1
  sshckm removeallkeys
  sshckm rotatekey my_server1
  sshckm rotateallkeys
"""


class _ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        print(f"{self.prog}: error: {message}", file=sys.stderr)
        sys.exit(1)


def _create_argument_parser():
    """Create and configure the argument parser."""
    parser = _ArgumentParser(
        prog="sshckm",
        description="SSH Connection & Key Manager",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=USAGE_EPILOG,
    )

    parser.add_argument(
        "-v", "--version", action="version", version=f"%(prog)s {VERSION}"
    )
    parser.add_argument(
        "--config-dir",
        help="Configuration directory (default: $SSHCKM_DIR or ~/.config/sshckm)",
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Log every external command that is run"
    )

    info = parser.add_mutually_exclusive_group()
    info.add_argument(
        "--completion", action="store_true", help="Output bash completion script."
    )
    info.add_argument(
        "--script-path", action="store_true", help="Print the resolved script file path."
    )
    info.add_argument(
        "--script-dir", action="store_true", help="Print the resolved script directory."
    )
    info.add_argument(
        "--config-paths",
        action="store_true",
        help=f"Print paths for {CONFIG_FILE_NAME} and {INVENTORY_FILE_NAME}.",
    )
    # Used by the completion script
    info.add_argument("--actions", action="store_true", help=argparse.SUPPRESS)
    info.add_argument("--vps-names", action="store_true", help=argparse.SUPPRESS)

    parser.add_argument("action", nargs="?", help="Action to perform (see below)")
    parser.add_argument("names", nargs="*", metavar="vps_name", help="VPS name from the inventory")

    return parser


def _script_path() -> Path:
    return Path(sys.argv[0]).resolve()


def _print_config_paths(config_dir: Path):
    for label, path in config_paths(config_dir).items():
        state = "exists" if path.exists() else "missing"
        print(f"{label}: {path} ({state})")


def _inventory_names(config_dir: Path) -> List[str]:
    """Inventory names for completion; empty when nothing is configured yet."""
    try:
        inventory_file = load_config(config_dir).inventory_file
    except ConfigError:
        inventory_file = config_dir / INVENTORY_FILE_NAME

    if not inventory_file.exists():
        return []

    try:
        return Inventory.load(inventory_file).names()
    except InventoryError as e:
        logger.debug("%s", e)
        return []


def _execute_info_command(args, config_dir: Path) -> Optional[int]:
    """Handle the global flags that never touch a host."""
    if args.actions:
        print("\n".join(ACTIONS))
    elif args.vps_names:
        names = _inventory_names(config_dir)
        if names:
            print("\n".join(names))
    elif args.completion:
        print(render_completion(ACTIONS, GLOBAL_OPTIONS, config_dir), end="")
    elif args.script_path:
        print(_script_path())
    elif args.script_dir:
        print(_script_path().parent)
    elif args.config_paths:
        _print_config_paths(config_dir)
    else:
        return None
    return 0


def _validate_arguments(parser, args) -> bool:
    """Check the action name and its number of arguments."""
    if args.action not in ACTIONS:
        logger.error("Invalid action: '%s'.", args.action)
        print()
        parser.print_help()
        return False

    expected = ACTIONS[args.action]
    if len(args.names) < expected:
        logger.error("Missing required argument <vps_name> for '%s' action.", args.action)
    elif len(args.names) > expected:
        logger.error("Too many arguments for '%s' action.", args.action)
    else:
        return True

    print()
    parser.print_help()
    return False


def _execute_command(args, manager: SSHKeyManager) -> int:
    """Execute the action."""
    if args.action == "connect":
        success = manager.connect(args.names[0])

    elif args.action == "removekey":
        success = manager.remove_key(args.names[0])

    elif args.action == "removeallkeys":
        success = manager.remove_all_keys()

    elif args.action == "rotatekey":
        success = manager.rotate_key(args.names[0]).succeeded

    elif args.action == "rotateallkeys":
        results = manager.rotate_all_keys()
        success = all(r.succeeded for r in results)

    else:
        return 1

    return 0 if success else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = _create_argument_parser()
    args = parser.parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    config_dir = Path(args.config_dir).expanduser() if args.config_dir else default_config_dir()

    result = _execute_info_command(args, config_dir)
    if result is not None:
        return result

    if not args.action:
        parser.print_help()
        return 1

    if not _validate_arguments(parser, args):
        return 1

    try:
        config = load_config(config_dir)
    except ConfigError as e:
        for line in str(e).splitlines():
            logger.error("%s", line)
        return 1

    manager = SSHKeyManager(config)
    try:
        return _execute_command(args, manager)
    except InventoryError as e:
        logger.error("%s", e)
        return 1
    except KeyboardInterrupt:
        print()
        logger.error("Interrupted.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
