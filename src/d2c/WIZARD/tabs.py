"""
Tabs, focus areas and the per-tab key commands shown outside the wizard.
"""
from enum import Enum
from typing import Dict, List, Optional


class FocusArea(str, Enum):
    """
    Which pane receives navigation keys.
    """
    SIDEBAR = "sidebar"
    MAIN = "main"

    def next(self) -> "FocusArea":
        return FocusArea.MAIN if self is FocusArea.SIDEBAR else FocusArea.SIDEBAR


class TabCommand(str, Enum):
    """
    Actions that open a wizard step or edit the project directly.
    """
    NEW_IMAGE = "new image"
    EDIT_IMAGE = "edit image"
    DELETE_IMAGE = "delete image"
    MOUNT_VOLUME = "mount volume"
    UNMOUNT_VOLUME = "unmount volume"
    ADD_ENV = "add env"
    REMOVE_ENV = "remove env"
    ADD_VOLUME = "add volume"
    DELETE_VOLUME = "delete volume"


class Tab(Enum):
    """
    Sidebar tabs, in display order.
    """
    PROJECT = "Project"
    IMAGES = "Images"
    VOLUMES = "Volumes"

    @classmethod
    def all(cls) -> List["Tab"]:
        return list(cls)

    @property
    def title(self) -> str:
        return self.value

    def next(self) -> "Tab":
        tabs = Tab.all()
        return tabs[(tabs.index(self) + 1) % len(tabs)]

    def previous(self) -> "Tab":
        tabs = Tab.all()
        return tabs[(tabs.index(self) - 1) % len(tabs)]

    def command_for_key(self, key: str) -> Optional[TabCommand]:
        return TAB_COMMANDS.get(self, {}).get(key)

    def action_labels(self) -> List[str]:
        labels = [f"{key} {command.value}" for key, command in TAB_COMMANDS.get(self, {}).items()]
        return labels + ["p write compose file"]


TAB_COMMANDS: Dict[Tab, Dict[str, TabCommand]] = {
    Tab.IMAGES: {
        "n": TabCommand.NEW_IMAGE,
        "e": TabCommand.EDIT_IMAGE,
        "d": TabCommand.DELETE_IMAGE,
        "v": TabCommand.MOUNT_VOLUME,
        "u": TabCommand.UNMOUNT_VOLUME,
        "a": TabCommand.ADD_ENV,
        "r": TabCommand.REMOVE_ENV,
    },
    Tab.VOLUMES: {
        "a": TabCommand.ADD_VOLUME,
        "d": TabCommand.DELETE_VOLUME,
    },
}
