# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Curses colour attributes, built once curses has started.
"""
import curses
from dataclasses import dataclass


@dataclass(frozen=True)
class Theme:
    """Attributes used by the renderer; plain attributes without colour support."""

    header: int = curses.A_REVERSE
    active_border: int = curses.A_BOLD
    inactive_border: int = curses.A_DIM
    selected: int = curses.A_REVERSE
    text: int = curses.A_NORMAL
    muted: int = curses.A_DIM
    loading: int = curses.A_BOLD

    @classmethod
    def init(cls) -> "Theme":
        """
        Builds the theme for the running terminal. Must be called after
        curses.initscr(), e.g. inside curses.wrapper().
        """
        if not curses.has_colors():
            return cls()

        curses.start_color()
        curses.use_default_colors()
        curses.init_pair(1, curses.COLOR_BLACK, curses.COLOR_BLUE)
        curses.init_pair(2, curses.COLOR_BLUE, -1)
        curses.init_pair(3, curses.COLOR_WHITE, -1)
        curses.init_pair(4, curses.COLOR_YELLOW, -1)
        return cls(
            header=curses.color_pair(1),
            active_border=curses.color_pair(2) | curses.A_BOLD,
            inactive_border=curses.A_DIM,
            selected=curses.A_REVERSE,
            text=curses.color_pair(3),
            muted=curses.A_DIM,
            loading=curses.color_pair(4) | curses.A_BOLD,
        )
