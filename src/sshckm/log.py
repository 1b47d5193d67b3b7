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
Console logging for sshckm.

Every module logs through ``logging.getLogger(__name__)``; ``setup_logging``
attaches a single stdout handler to the ``sshckm`` logger that renders
records as::

    [2025-01-31 12:00:00] ✅ The new SSH key pair has been generated successfully.

Colors are only emitted when the stream is a terminal.
"""

import logging
import sys
from typing import Optional, TextIO

LOGGER_NAME = "sshckm"

SUCCESS = 25
logging.addLevelName(SUCCESS, "SUCCESS")

COLOR_RESET = "\033[0m"

LEVEL_STYLES = {
    logging.DEBUG: ("\033[0;37m", "🔎"),
    logging.INFO: ("\033[0;34m", "ℹ️"),
    SUCCESS: ("\033[0;32m", "✅"),
    logging.WARNING: ("\033[0;33m", "⚠️"),
    logging.ERROR: ("\033[0;31m", "❌"),
    logging.CRITICAL: ("\033[0;31m", "❌"),
}


class ConsoleFormatter(logging.Formatter):
    """Timestamped, emoji-tagged formatter with optional ANSI colors."""

    def __init__(self, use_color: bool = True):
        super().__init__(fmt="%(message)s", datefmt="%Y-%m-%d %H:%M:%S")
        self.use_color = use_color

    def format(self, record: logging.LogRecord) -> str:
        color, emoji = LEVEL_STYLES.get(record.levelno, ("", ""))
        line = f"[{self.formatTime(record, self.datefmt)}] {emoji} {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        if self.use_color and color:
            return f"{color}{line}{COLOR_RESET}"
        return line


def setup_logging(
    level: int = logging.INFO, stream: Optional[TextIO] = None, use_color: Optional[bool] = None
) -> logging.Logger:
    """
    Configure the ``sshckm`` logger.

    Args:
        level: Minimum level to emit
        stream: Output stream (default: stdout)
        use_color: Force colors on/off (default: only when stream is a TTY)

    Returns:
        The configured logger
    """
    stream = stream or sys.stdout
    if use_color is None:
        use_color = hasattr(stream, "isatty") and stream.isatty()

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream)
    handler.setFormatter(ConsoleFormatter(use_color=use_color))
    logger.addHandler(handler)

    return logger


def success(logger: logging.Logger, msg: str, *args) -> None:
    """Log ``msg`` at the SUCCESS level."""
    logger.log(SUCCESS, msg, *args)
