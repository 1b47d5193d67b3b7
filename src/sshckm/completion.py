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
"""Bash completion script generation."""

from pathlib import Path
from typing import Dict, Optional, Sequence

from jinja2 import Environment, FileSystemLoader, Template

from sshckm.config import COMPLETION_TEMPLATE_NAME

PROGRAM_NAMES = ["sshckm"]

COMPLETION_TEMPLATE = """\
_sshckm_completion() {
    local cur cmd
    COMPREPLY=()
    cur="${COMP_WORDS[COMP_CWORD]}"
    cmd="${COMP_WORDS[0]}"

    # First argument: action or option
    if [[ ${COMP_CWORD} -eq 1 ]]; then
        local items
        items="$($cmd --actions 2>/dev/null; printf '%s\\n' {{ options | join(' ') }})"
        COMPREPLY=( $(compgen -W "$items" -- "$cur") )
        return 0
    fi

    # Second argument: VPS name for actions that require it
    local action="${COMP_WORDS[1]}"
    case "$action" in
        {{ host_actions | join('|') }})
            if [[ ${COMP_CWORD} -eq 2 ]]; then
                local names
                names="$($cmd --vps-names 2>/dev/null)"
                COMPREPLY=( $(compgen -W "$names" -- "$cur") )
                return 0
            fi
            ;;
    esac

    return 0
}

# Register completion for common names
{% for name in program_names -%}
complete -F _sshckm_completion {{ name }}
{% endfor %}"""


def _load_template(config_dir: Optional[Path]) -> Template:
    # A user template in the config directory wins over the bundled one
    if config_dir is not None and (config_dir / COMPLETION_TEMPLATE_NAME).is_file():
        env = Environment(loader=FileSystemLoader(str(config_dir)), keep_trailing_newline=True)
        return env.get_template(COMPLETION_TEMPLATE_NAME)
    return Template(COMPLETION_TEMPLATE, keep_trailing_newline=True)


def render_completion(
    actions: Dict[str, int],
    options: Sequence[str],
    config_dir: Optional[Path] = None,
    program_names: Sequence[str] = PROGRAM_NAMES,
) -> str:
    """
    Render the bash completion script.

    Args:
        actions: Action name -> number of host-name arguments it takes
        options: Global options offered as first-word completions
        config_dir: Directory that may hold a custom completion template
        program_names: Commands to register the completion function for

    Returns:
        Bash source, suitable for ``source <(sshckm --completion)``
    """
    template = _load_template(config_dir)
    return template.render(
        actions=list(actions),
        options=list(options),
        host_actions=[action for action, arity in actions.items() if arity == 1],
        program_names=list(program_names),
    )
