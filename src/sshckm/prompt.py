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
"""Confirmation prompts."""

import sys
from typing import Optional, Protocol, TextIO

AFFIRMATIVE_ANSWERS = ("y", "yes")


def is_affirmative(answer: Optional[str]) -> bool:
    """True for ``y``/``yes`` in any case, ignoring surrounding whitespace."""
    return answer is not None and answer.strip().lower() in AFFIRMATIVE_ANSWERS


class Confirmer(Protocol):
    def ask(self, question: str) -> Optional[str]:
        """Return the raw answer, or None if no answer could be read."""

    def confirm(self, question: str) -> bool: ...


class TerminalConfirmer:
    """Asks on the controlling terminal, falling back to stdin."""

    def __init__(self, tty_path: str = "/dev/tty", output: Optional[TextIO] = None):
        self.tty_path = tty_path
        self.output = output

    def ask(self, question: str) -> Optional[str]:
        output = self.output or sys.stdout
        print(question, file=output)
        print(": ", end="", file=output, flush=True)

        try:
            with open(self.tty_path, "r") as tty:
                answer = tty.readline()
                return answer if answer else None
        except OSError:
            pass

        try:
            return input()
        except EOFError:
            print(file=output)
            return None

    def confirm(self, question: str) -> bool:
        return is_affirmative(self.ask(question))


class StaticConfirmer:
    """Replays pre-supplied answers (the last one repeats)."""

    def __init__(self, *answers: str):
        self.answers = list(answers) or [""]
        self.questions = []

    def ask(self, question: str) -> Optional[str]:
        self.questions.append(question)
        if len(self.answers) > 1:
            return self.answers.pop(0)
        return self.answers[0]

    def confirm(self, question: str) -> bool:
        return is_affirmative(self.ask(question))
