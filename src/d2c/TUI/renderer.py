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
Draws the session onto a curses window.
"""
import curses
from typing import List

from ..WIZARD.session import Session
from ..WIZARD.tabs import FocusArea, Tab
from .theme import Theme
from .views import footer, main_pane, step_view, tab_stats

SIDEBAR_WIDTH = 18
LOG_HEIGHT = 7
SPINNER = "|/-\\"


def safe_addstr(win, y: int, x: int, text: str, attr: int = 0) -> None:
    """Writes text clipped to the window; curses raises on the last cell."""
    height, width = win.getmaxyx()
    if y < 0 or y >= height or x < 0 or x >= width:
        return
    try:
        win.addnstr(y, x, text, width - x, attr)
    except curses.error:
        pass


def draw_box(win, y: int, x: int, height: int, width: int, title: str, attr: int) -> None:
    if height < 2 or width < 2:
        return
    safe_addstr(win, y, x, "+" + "-" * (width - 2) + "+", attr)
    for row in range(y + 1, y + height - 1):
        safe_addstr(win, row, x, "|", attr)
        safe_addstr(win, row, x + width - 1, "|", attr)
    safe_addstr(win, y + height - 1, x, "+" + "-" * (width - 2) + "+", attr)
    if title:
        safe_addstr(win, y, x + 2, f" {title} ", attr)


class Renderer:
    """
    Lays out header, sidebar, main pane, activity log, footer and the
    popup of the active wizard step.
    """

    def __init__(self, stdscr, theme: Theme):
        self.stdscr = stdscr
        self.theme = theme
        self.tick = 0

    def draw(self, session: Session) -> None:
        self.tick += 1
        self.stdscr.erase()
        height, width = self.stdscr.getmaxyx()

        header = f"d2c - Docker Compose   |   <Tab> cycle panes   q quit   |   {session.project_name}"
        safe_addstr(self.stdscr, 0, 0, header.ljust(width), self.theme.header)

        body_height = max(height - LOG_HEIGHT - 2, 3)
        self._draw_sidebar(session, 1, body_height)
        self._draw_main(session, 1, body_height, width)
        self._draw_log(session, 1 + body_height, width)
        safe_addstr(self.stdscr, height - 1, 0, footer(session), self.theme.muted)

        if session.step is not None:
            self._draw_step(session, height, width)
        self.stdscr.refresh()

    def _border(self, active: bool) -> int:
        return self.theme.active_border if active else self.theme.inactive_border

    def _draw_sidebar(self, session: Session, y: int, height: int) -> None:
        draw_box(self.stdscr, y, 0, height, SIDEBAR_WIDTH, "Tabs", self._border(session.focus is FocusArea.SIDEBAR))
        row = y + 1
        for tab in Tab.all():
            active = tab is session.active_tab
            label = f"> {tab.title}" if active else f"  {tab.title}"
            safe_addstr(self.stdscr, row, 1, label, self.theme.selected if active else self.theme.text)
            row += 1
            if not active:
                continue
            for line in tab_stats(session, tab):
                safe_addstr(self.stdscr, row, 4, line[: SIDEBAR_WIDTH - 5], self.theme.text)
                row += 1

    def _draw_main(self, session: Session, y: int, height: int, width: int) -> None:
        title, lines = main_pane(session)
        pane_width = width - SIDEBAR_WIDTH
        draw_box(self.stdscr, y, SIDEBAR_WIDTH, height, pane_width, title, self._border(session.focus is FocusArea.MAIN))
        self._draw_lines(lines, y + 1, SIDEBAR_WIDTH + 2, height - 2, pane_width - 4)

    def _draw_log(self, session: Session, y: int, width: int) -> None:
        draw_box(self.stdscr, y, 0, LOG_HEIGHT, width, "Actions", self.theme.inactive_border)
        self._draw_lines(session.activity.lines, y + 1, 2, LOG_HEIGHT - 2, width - 4)

    def _draw_step(self, session: Session, height: int, width: int) -> None:
        title, lines = step_view(session, session.step)
        if session.loading:
            spinner = SPINNER[self.tick % len(SPINNER)]
            lines = lines + ["", f"{spinner} loading... (Esc to cancel)"]

        box_width = min(max(len(line) for line in lines + [title]) + 6, width - 4)
        box_height = min(len(lines) + 2, height - 2)
        y = max((height - box_height) // 2, 0)
        x = max((width - box_width) // 2, 0)

        for row in range(y, y + box_height):
            safe_addstr(self.stdscr, row, x, " " * box_width)
        draw_box(self.stdscr, y, x, box_height, box_width, title, self.theme.active_border)
        self._draw_lines(lines, y + 1, x + 2, box_height - 2, box_width - 4)

    def _draw_lines(self, lines: List[str], y: int, x: int, height: int, width: int) -> None:
        for row, line in enumerate(lines[: max(height, 0)]):
            attr = self.theme.selected if line.startswith(">") else self.theme.text
            if "loading..." in line:
                attr = self.theme.loading
            safe_addstr(self.stdscr, y + row, x, line[: max(width, 0)], attr)
