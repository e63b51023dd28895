"""
Key events delivered to the wizard, independent of the terminal library.
"""
from dataclasses import dataclass
from enum import Enum


class KeyCode(str, Enum):
    """
    Kinds of key the wizard reacts to.
    """
    CHAR = "char"
    ENTER = "enter"
    ESCAPE = "escape"
    TAB = "tab"
    BACKSPACE = "backspace"
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"


@dataclass(frozen=True)
class Key:
    """A single key press; `char` is set only for KeyCode.CHAR."""

    code: KeyCode
    char: str = ""

    @classmethod
    def of(cls, char: str) -> "Key":
        return cls(KeyCode.CHAR, char)

    def is_char(self, *chars: str) -> bool:
        return self.code is KeyCode.CHAR and self.char in chars

    @property
    def is_up(self) -> bool:
        return self.code is KeyCode.UP or self.is_char("k")

    @property
    def is_down(self) -> bool:
        return self.code is KeyCode.DOWN or self.is_char("j")

    @property
    def is_confirm(self) -> bool:
        return self.code is KeyCode.ENTER or self.is_char("y")


ENTER = Key(KeyCode.ENTER)
ESCAPE = Key(KeyCode.ESCAPE)
TAB = Key(KeyCode.TAB)
BACKSPACE = Key(KeyCode.BACKSPACE)
UP = Key(KeyCode.UP)
DOWN = Key(KeyCode.DOWN)
LEFT = Key(KeyCode.LEFT)
RIGHT = Key(KeyCode.RIGHT)
