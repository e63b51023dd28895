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
Curses event loop: reads keys with a short timeout, delivers finished
background tasks and redraws.
"""
import curses
import logging
import os
from typing import Optional, Union

from ..WIZARD.keys import BACKSPACE, DOWN, ENTER, ESCAPE, LEFT, RIGHT, TAB, UP, Key
from ..WIZARD.session import LoopControl, Session
from .renderer import Renderer
from .theme import Theme

logger = logging.getLogger(__name__)

# Milliseconds to wait for a key before polling background tasks again.
KEY_TIMEOUT_MS = 120

_SPECIAL_KEYS = {
    "\n": ENTER,
    "\r": ENTER,
    "\x1b": ESCAPE,
    "\t": TAB,
    "\x7f": BACKSPACE,
    "\b": BACKSPACE,
    curses.KEY_ENTER: ENTER,
    curses.KEY_BACKSPACE: BACKSPACE,
    curses.KEY_UP: UP,
    curses.KEY_DOWN: DOWN,
    curses.KEY_LEFT: LEFT,
    curses.KEY_RIGHT: RIGHT,
}


def translate_key(raw: Union[str, int, None]) -> Optional[Key]:
    """
    Maps a value from window.get_wch() to a Key, or None for keys the
    wizard ignores.
    """
    if raw is None:
        return None
    if raw in _SPECIAL_KEYS:
        return _SPECIAL_KEYS[raw]
    if isinstance(raw, str) and len(raw) == 1 and raw.isprintable():
        return Key.of(raw)
    return None


def _loop(stdscr, session: Session) -> None:
    curses.curs_set(0)
    stdscr.keypad(True)
    stdscr.timeout(KEY_TIMEOUT_MS)
    renderer = Renderer(stdscr, Theme.init())

    while True:
        if session.poll_tasks() is LoopControl.EXIT:
            return
        renderer.draw(session)
        try:
            raw = stdscr.get_wch()
        except curses.error:
            continue
        key = translate_key(raw)
        if key is not None and session.handle_key(key) is LoopControl.EXIT:
            return


def run_tui(session: Session) -> None:
    """
    Runs the interactive wizard until the user quits or writes the file.

    :raises curses.error: If the terminal cannot be initialised.
    """
    os.environ.setdefault("ESCDELAY", "25")
    logger.info("starting wizard (%d services loaded)", len(session.project.services))
    try:
        curses.wrapper(_loop, session)
    except KeyboardInterrupt:
        logger.info("interrupted")
    finally:
        session.close()
