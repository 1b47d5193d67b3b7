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
sshckm-setup: install or uninstall the ``sshckm`` command link.

Usage:
    # Link into ~/.local/bin (no sudo required)
    sshckm-setup install --local

    # Link into /usr/local/bin (may require sudo)
    sshckm-setup install --system

    # Remove the link again
    sshckm-setup uninstall --local
    sshckm-setup uninstall --system

If no target is given, you will be prompted to choose.
"""

import argparse
import logging
import os
import shutil
import sys
import tempfile
from pathlib import Path
from typing import Optional

from jinja2 import Template

from sshckm import log
from sshckm.log import setup_logging
from sshckm.prompt import Confirmer, TerminalConfirmer

logger = logging.getLogger(__name__)

COMMAND_NAME = "sshckm"
LOCAL_BIN_DIR = Path.home() / ".local" / "bin"
SYSTEM_BIN_DIR = Path("/usr/local/bin")
PROFILE_SCRIPT = Path("/etc/profile.d/sshckm.sh")
COMPLETION_COMMAND = "source <(sshckm --completion)"

BASHRC_BLOCK = Template(
    """
# {{ command }} completion (added by {{ command }}-setup BEGIN)
if command -v {{ command }} >/dev/null 2>&1; then
  {{ completion_command }}
fi
# {{ command }} completion (added by {{ command }}-setup END)
""",
    keep_trailing_newline=True,
)

PROFILE_BLOCK = Template(
    """# {{ command }} bash completion (installed by {{ command }}-setup)
# Only for bash shells
if [ -n "$BASH_VERSION" ]; then
  if command -v {{ command }} >/dev/null 2>&1; then
    {{ completion_command }}
  fi
fi
""",
    keep_trailing_newline=True,
)


def _render(template: Template) -> str:
    return template.render(command=COMMAND_NAME, completion_command=COMPLETION_COMMAND)


def resolve_command() -> Optional[Path]:
    """Locate the installed ``sshckm`` executable."""
    found = shutil.which(COMMAND_NAME)
    if found:
        return Path(found).resolve()

    # Console scripts are installed next to the interpreter
    candidate = Path(sys.executable).parent / COMMAND_NAME
    if candidate.exists():
        return candidate.resolve()
    return None


def install_link(source: Path, target_dir: Path) -> Path:
    """
    Create or replace ``<target_dir>/sshckm`` as a symlink to ``source``.

    Raises:
        OSError: if the link cannot be created (e.g. permission denied)
    """
    target_dir.mkdir(parents=True, exist_ok=True)
    link = target_dir / COMMAND_NAME

    # The executable itself already lives here (e.g. pip install --user)
    if link.exists() and not link.is_symlink() and link.resolve() == source.resolve():
        return link

    if link.is_symlink() or link.exists():
        link.unlink()
    link.symlink_to(source)
    return link


def remove_link(target_dir: Path) -> bool:
    """
    Remove ``<target_dir>/sshckm``.

    Returns:
        False if there was nothing to remove

    Raises:
        OSError: if the link exists but cannot be removed
    """
    link = target_dir / COMMAND_NAME
    if not (link.is_symlink() or link.exists()):
        return False
    link.unlink()
    return True


def append_completion_block(rc_file: Path) -> bool:
    """
    Append the completion block to a shell rc file.

    Returns:
        False if the file already enables sshckm completion
    """
    if rc_file.exists() and COMPLETION_COMMAND in rc_file.read_text(encoding="utf-8"):
        return False

    with open(rc_file, "a", encoding="utf-8") as f:
        f.write(_render(BASHRC_BLOCK))
    return True


def write_profile_script(dest: Path) -> None:
    """
    Install the system-wide completion script with mode 0644.

    Raises:
        OSError: if ``dest`` cannot be written
    """
    fd, tmp_name = tempfile.mkstemp(prefix="sshckm-profile-")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(_render(PROFILE_BLOCK))
        os.chmod(tmp_name, 0o644)
        shutil.copyfile(tmp_name, dest)
        os.chmod(dest, 0o644)
    finally:
        os.unlink(tmp_name)


def _is_on_path(directory: Path) -> bool:
    entries = [Path(p).expanduser() for p in os.environ.get("PATH", "").split(os.pathsep) if p]
    return directory in entries


def _choose_target(confirmer: Confirmer, verb: str) -> Optional[str]:
    logger.info("Select %s target:", verb)
    print(f"  1) Local ({LOCAL_BIN_DIR / COMMAND_NAME})")
    print(f"  2) System ({SYSTEM_BIN_DIR / COMMAND_NAME})")
    answer = (confirmer.ask("Enter 1 or 2 (or q to cancel)") or "").strip()

    if answer == "1":
        return "local"
    if answer == "2":
        return "system"
    if answer.lower() == "q":
        logger.warning("Canceled.")
        return None
    logger.error("Invalid choice.")
    return "invalid"


def install_local(
    source: Path, confirmer: Confirmer, bin_dir: Path = LOCAL_BIN_DIR, rc_file: Optional[Path] = None
) -> int:
    rc_file = rc_file or Path.home() / ".bashrc"

    link = install_link(source, bin_dir)
    log.success(logger, "Installed local symlink: %s -> %s", link, source)

    if not _is_on_path(bin_dir):
        logger.warning("%s is not in PATH. Add it to your shell rc file.", bin_dir)

    logger.info("To enable bash completion for this session: %s", COMPLETION_COMMAND)

    if sys.stdout.isatty() and os.access(rc_file, os.W_OK):
        if COMPLETION_COMMAND not in rc_file.read_text(encoding="utf-8"):
            question = f"Add {COMMAND_NAME} bash completion to {rc_file} for future sessions? [y/N]"
            if confirmer.confirm(question):
                append_completion_block(rc_file)
                log.success(logger, "Appended completion block to %s", rc_file)
            else:
                logger.info("Skipped updating %s. You can add: %s", rc_file, COMPLETION_COMMAND)
    return 0


def install_system(
    source: Path,
    confirmer: Confirmer,
    bin_dir: Path = SYSTEM_BIN_DIR,
    profile_script: Path = PROFILE_SCRIPT,
) -> int:
    link = bin_dir / COMMAND_NAME
    try:
        install_link(source, bin_dir)
    except OSError as e:
        logger.error("Cannot create %s: %s", link, e)
        print(f"Permission required. Try: sudo ln -sfn '{source}' '{link}'", file=sys.stderr)
        return 1

    log.success(logger, "Installed system symlink: %s -> %s", link, source)
    logger.info("To enable bash completion for this session: %s", COMPLETION_COMMAND)

    if sys.stdout.isatty():
        if confirmer.confirm(f"Install global bash completion in {profile_script}? [y/N]"):
            try:
                write_profile_script(profile_script)
                log.success(logger, "Installed global completion: %s", profile_script)
            except OSError as e:
                logger.error("Cannot write %s: %s", profile_script, e)
                print("Permission required. Re-run with sudo to install completion globally.", file=sys.stderr)
    return 0


def uninstall_local(bin_dir: Path = LOCAL_BIN_DIR) -> int:
    if remove_link(bin_dir):
        log.success(logger, "Removed: %s", bin_dir / COMMAND_NAME)
    else:
        logger.warning("Nothing to remove at %s", bin_dir / COMMAND_NAME)
    return 0


def uninstall_system(bin_dir: Path = SYSTEM_BIN_DIR, profile_script: Path = PROFILE_SCRIPT) -> int:
    link = bin_dir / COMMAND_NAME
    try:
        if remove_link(bin_dir):
            log.success(logger, "Removed: %s", link)
        else:
            logger.warning("Nothing to remove at %s", link)
    except OSError:
        logger.error("Permission required to remove %s", link)
        print(f"Try: sudo rm -f '{link}'")
        return 1

    try:
        profile_script.unlink()
        log.success(logger, "Removed: %s", profile_script)
    except FileNotFoundError:
        pass
    except OSError:
        logger.warning("Permission required to remove global completion")
        print(f"Try: sudo rm -f '{profile_script}'")
    return 0


def _create_argument_parser():
    parser = argparse.ArgumentParser(
        prog="sshckm-setup",
        description="Install or uninstall the sshckm command link",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Targets:
  --local   ~/.local/bin/sshckm (no sudo required)
  --system  /usr/local/bin/sshckm (may require sudo)

If no target is provided, you will be prompted to choose.
        """,
    )
    parser.add_argument("command", choices=["install", "uninstall"], help="Operation to perform")

    target = parser.add_mutually_exclusive_group()
    target.add_argument("--local", dest="target", action="store_const", const="local")
    target.add_argument("--system", dest="target", action="store_const", const="system")
    return parser


def main(argv=None, confirmer: Optional[Confirmer] = None) -> int:
    """Main entry point."""
    args = _create_argument_parser().parse_args(argv)
    setup_logging()
    confirmer = confirmer or TerminalConfirmer()

    target = args.target
    if target is None:
        target = _choose_target(confirmer, args.command)
        if target is None:
            return 0
        if target == "invalid":
            return 1

    if args.command == "uninstall":
        if target == "local":
            return uninstall_local(LOCAL_BIN_DIR)
        return uninstall_system(SYSTEM_BIN_DIR, PROFILE_SCRIPT)

    source = resolve_command()
    if source is None:
        logger.error("%s executable not found. Install the package first (pip install .).", COMMAND_NAME)
        return 1

    if target == "local":
        return install_local(source, confirmer, LOCAL_BIN_DIR)
    return install_system(source, confirmer, SYSTEM_BIN_DIR, PROFILE_SCRIPT)


if __name__ == "__main__":
    sys.exit(main())
