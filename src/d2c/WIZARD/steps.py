"""
Wizard steps. Each step is its own dataclass holding only its draft input
and navigation state; the session holds at most one of them.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union

from .defaults import DEFAULT_MOUNT_TARGET


@dataclass
class TextInput:
    """
    A single-line input buffer.

    A pre-filled input shows its value as a placeholder: the first typed
    character replaces it.
    """

    value: str = ""
    typed: bool = True

    @classmethod
    def prefilled(cls, value: str) -> "TextInput":
        return cls(value=value, typed=False)

    def insert(self, ch: str) -> None:
        if not self.typed:
            self.value = ""
            self.typed = True
        self.value += ch

    def backspace(self) -> None:
        self.value = self.value[:-1]
        self.typed = True

    def strip(self) -> str:
        return self.value.strip()


class ConfigureField(Enum):
    HOST_PORT = "host_port"
    CONTAINER_PORT = "container_port"
    NAME = "name"

    def next(self) -> "ConfigureField":
        order = list(ConfigureField)
        return order[(order.index(self) + 1) % len(order)]


class MountExistingField(Enum):
    VOLUME = "volume"
    TARGET = "target"

    def next(self) -> "MountExistingField":
        return MountExistingField.TARGET if self is MountExistingField.VOLUME else MountExistingField.VOLUME


class MountInputField(Enum):
    SOURCE = "source"
    TARGET = "target"

    def next(self) -> "MountInputField":
        return MountInputField.TARGET if self is MountInputField.SOURCE else MountInputField.SOURCE


class EnvInputField(Enum):
    KEY = "key"
    VALUE = "value"

    def next(self) -> "EnvInputField":
        return EnvInputField.VALUE if self is EnvInputField.KEY else EnvInputField.KEY


VOLUME_SOURCE_OPTIONS = (
    "Use existing named volume",
    "Create and mount a new named volume",
    "Use local path (./ or /usr/...)",
)


@dataclass
class EnterImageTerm:
    term: TextInput = field(default_factory=TextInput)
    # Ticket of the running resolve task; keys are ignored while set.
    pending: Optional[int] = None


@dataclass
class SelectTag:
    image_term: str
    namespace: str
    repo: str
    all_tags: List[str]
    filtered_tags: List[str]
    query: str = ""
    selected: int = 0
    chosen_tag: Optional[str] = None
    pending: Optional[int] = None


@dataclass
class ConfigurePorts:
    existing_index: Optional[int]
    namespace: str
    repo: str
    tag: str
    host_port: TextInput
    container_port: TextInput
    service_name: TextInput
    active_field: ConfigureField = ConfigureField.HOST_PORT


@dataclass
class ConfirmDeleteImage:
    index: int


@dataclass
class ConfirmWriteCompose:
    pass


@dataclass
class AddVolume:
    name: TextInput = field(default_factory=TextInput)


@dataclass
class SelectVolumeSource:
    image_index: int
    selected_option: int = 0


@dataclass
class MountExistingVolume:
    image_index: int
    selected_volume: int = 0
    target: TextInput = field(default_factory=lambda: TextInput.prefilled(DEFAULT_MOUNT_TARGET))
    active_field: MountExistingField = MountExistingField.VOLUME


@dataclass
class MountNewVolume:
    image_index: int
    volume_name: TextInput
    target: TextInput = field(default_factory=lambda: TextInput.prefilled(DEFAULT_MOUNT_TARGET))
    active_field: MountInputField = MountInputField.SOURCE


@dataclass
class MountLocalPath:
    image_index: int
    source: TextInput = field(default_factory=lambda: TextInput.prefilled("./"))
    target: TextInput = field(default_factory=lambda: TextInput.prefilled(DEFAULT_MOUNT_TARGET))
    active_field: MountInputField = MountInputField.SOURCE


@dataclass
class RemoveImageMount:
    image_index: int
    selected_mount: int = 0


@dataclass
class AddImageEnv:
    image_index: int
    key: TextInput = field(default_factory=TextInput)
    value: TextInput = field(default_factory=TextInput)
    active_field: EnvInputField = EnvInputField.KEY


@dataclass
class RemoveImageEnv:
    image_index: int
    selected_env: int = 0


WizardStep = Union[
    EnterImageTerm,
    SelectTag,
    ConfigurePorts,
    ConfirmDeleteImage,
    ConfirmWriteCompose,
    AddVolume,
    SelectVolumeSource,
    MountExistingVolume,
    MountNewVolume,
    MountLocalPath,
    RemoveImageMount,
    AddImageEnv,
    RemoveImageEnv,
]
