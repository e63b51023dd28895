"""
Interactive session state: the project being authored, navigation state,
the activity log and the single active wizard step.
"""
import logging
from collections import deque
from enum import Enum
from typing import Any, Callable, Deque, List, Optional

from ..CONVERTERS.to_compose import ComposeConverter
from ..config import Settings
from ..exceptions import D2CError
from ..MODELS.project import ProjectModel
from .defaults import split_port_mapping
from .handlers import KEY_HANDLERS, RESULT_HANDLERS, Transition, TransitionKind
from .keys import Key, KeyCode
from .steps import (
    AddImageEnv,
    AddVolume,
    ConfigurePorts,
    ConfirmDeleteImage,
    ConfirmWriteCompose,
    EnterImageTerm,
    RemoveImageEnv,
    RemoveImageMount,
    SelectVolumeSource,
    TextInput,
    WizardStep,
)
from .tabs import FocusArea, Tab, TabCommand
from .tasks import TaskRunner

logger = logging.getLogger(__name__)

ACTIVITY_LOG_SIZE = 5


class LoopControl(Enum):
    CONTINUE = "continue"
    EXIT = "exit"


class ActivityLog:
    """
    The most recent status lines shown to the user, oldest dropped first.
    Every line is also written to the application log.
    """

    def __init__(self, size: int = ACTIVITY_LOG_SIZE):
        self._lines: Deque[str] = deque(["ready"], maxlen=size)

    def push(self, line: str) -> None:
        logger.info(line)
        self._lines.append(line)

    @property
    def lines(self) -> List[str]:
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)


class Session:
    """
    Owns all mutable state of one wizard run.

    Keys and task outcomes are fed in by the event loop; both are processed
    on the loop thread only.
    """

    def __init__(
        self,
        registry,
        settings: Optional[Settings] = None,
        project: Optional[ProjectModel] = None,
        runner: Optional[TaskRunner] = None,
        project_name: str = "d2c",
    ):
        self.registry = registry
        self.settings = settings or Settings()
        self.project = project if project is not None else ProjectModel()
        self.runner = runner or TaskRunner()
        self.project_name = project_name

        self.focus = FocusArea.SIDEBAR
        self.active_tab = Tab.PROJECT
        self.images_selected = 0
        self.volumes_selected = 0
        self.step: Optional[WizardStep] = None
        self.activity = ActivityLog()
        self.written_path: Optional[str] = None

    def push_log(self, line: str) -> None:
        self.activity.push(line)

    @property
    def loading(self) -> bool:
        return getattr(self.step, "pending", None) is not None

    def start_task(self, fn: Callable[..., Any], *args: Any) -> int:
        return self.runner.submit(fn, *args)

    def handle_key(self, key: Key) -> LoopControl:
        """
        Processes one key press.

        :return: LoopControl.EXIT when the session should end.
        """
        if self.step is None:
            return self._handle_global_key(key)

        if key.code is KeyCode.ESCAPE:
            self.step = None
            self.push_log("step canceled")
            return LoopControl.CONTINUE

        if self.loading:
            return LoopControl.CONTINUE

        handler = KEY_HANDLERS[type(self.step)]
        try:
            transition = handler(self, self.step, key)
        except D2CError as e:
            self.push_log(str(e))
            return LoopControl.CONTINUE
        return self._apply(transition)

    def poll_tasks(self) -> LoopControl:
        """
        Delivers finished background tasks to the step waiting for them.

        Outcomes for a step that was canceled or replaced are discarded.
        Errors other than D2CError are re-raised here, on the loop thread.
        """
        control = LoopControl.CONTINUE
        for outcome in self.runner.drain():
            step = self.step
            if step is None or getattr(step, "pending", None) != outcome.ticket:
                logger.debug("discarding stale task outcome %d", outcome.ticket)
                continue
            step.pending = None

            if outcome.failed and not isinstance(outcome.error, D2CError):
                raise outcome.error

            handler = RESULT_HANDLERS[type(step)]
            if self._apply(handler(self, step, outcome)) is LoopControl.EXIT:
                control = LoopControl.EXIT
        return control

    def _apply(self, transition: Transition) -> LoopControl:
        if transition.kind is TransitionKind.REPLACE:
            self.step = transition.step
        elif transition.kind is TransitionKind.CLOSE:
            self.step = None
        elif transition.kind is TransitionKind.EXIT:
            self.step = None
            return LoopControl.EXIT
        return LoopControl.CONTINUE

    def _handle_global_key(self, key: Key) -> LoopControl:
        if key.code is KeyCode.ESCAPE or key.is_char("q"):
            return LoopControl.EXIT
        if key.code is KeyCode.TAB:
            self.focus = self.focus.next()
        elif key.code is KeyCode.LEFT or key.is_char("h"):
            self.focus = FocusArea.SIDEBAR
        elif key.code is KeyCode.RIGHT or key.is_char("l"):
            self.focus = FocusArea.MAIN
        elif key.is_up or key.is_down:
            self._move_selection(-1 if key.is_up else 1)
        elif key.code is KeyCode.CHAR:
            command = self.active_tab.command_for_key(key.char)
            if command is not None:
                self.run_command(command)
            elif key.char == "p":
                self.step = ConfirmWriteCompose()
                self.push_log("write compose file: confirm with y")
        return LoopControl.CONTINUE

    def _move_selection(self, delta: int) -> None:
        if self.focus is FocusArea.SIDEBAR:
            self.active_tab = self.active_tab.previous() if delta < 0 else self.active_tab.next()
        elif self.active_tab is Tab.IMAGES:
            self.images_selected = _clamp(self.images_selected + delta, len(self.project.services))
        elif self.active_tab is Tab.VOLUMES:
            self.volumes_selected = _clamp(self.volumes_selected + delta, len(self.project.volumes))

    def selected_image_index(self) -> Optional[int]:
        """Index of the selected service, if the main pane can act on one."""
        if self.focus is not FocusArea.MAIN or not self.project.services:
            return None
        return min(self.images_selected, len(self.project.services) - 1)

    def run_command(self, command: TabCommand) -> None:
        """
        Opens the wizard step for a tab command, or applies it directly.
        Commands that need a selected entry do nothing without one.
        """
        if command is TabCommand.NEW_IMAGE:
            self.step = EnterImageTerm()
            self.push_log("add image: enter image term")
            return
        if command is TabCommand.ADD_VOLUME:
            self.step = AddVolume()
            self.push_log("add volume: enter a name")
            return
        if command is TabCommand.DELETE_VOLUME:
            if self.focus is FocusArea.MAIN and self.project.volumes:
                self.delete_volume(min(self.volumes_selected, len(self.project.volumes) - 1))
            return

        index = self.selected_image_index()
        if index is None:
            return
        service = self.project.services[index]

        if command is TabCommand.EDIT_IMAGE:
            host, container = split_port_mapping(service.port_mapping)
            self.step = ConfigurePorts(
                existing_index=index,
                namespace=service.namespace,
                repo=service.repo,
                tag=service.tag,
                host_port=TextInput.prefilled(host),
                container_port=TextInput.prefilled(container),
                service_name=TextInput.prefilled(service.service_name),
            )
            self.push_log("edit image: adjust ports/name")
        elif command is TabCommand.DELETE_IMAGE:
            self.step = ConfirmDeleteImage(index=index)
            self.push_log("delete image: confirm with y")
        elif command is TabCommand.MOUNT_VOLUME:
            self.step = SelectVolumeSource(image_index=index)
            self.push_log("mount volume: choose existing/new/local")
        elif command is TabCommand.UNMOUNT_VOLUME:
            if not service.mounts:
                self.push_log("selected image has no mounted volumes")
                return
            self.step = RemoveImageMount(image_index=index)
            self.push_log("unmount: pick mount and confirm")
        elif command is TabCommand.ADD_ENV:
            self.step = AddImageEnv(image_index=index)
            self.push_log("add env: enter variable and value")
        elif command is TabCommand.REMOVE_ENV:
            if not service.env_vars:
                self.push_log("selected image has no env vars")
                return
            self.step = RemoveImageEnv(image_index=index)
            self.push_log("remove env: pick variable and confirm")

    def delete_image(self, index: int) -> bool:
        """
        Removes a service and re-clamps the selection; out of range is a no-op.
        """
        removed = self.project.remove_service(index)
        if removed is None:
            return False
        self.images_selected = _clamp(self.images_selected, len(self.project.services))
        self.push_log(f"deleted image {removed.display_name}")
        return True

    def delete_volume(self, index: int) -> bool:
        """
        Removes a named volume unless a service still mounts it.
        """
        volume = self.project.volumes[index] if 0 <= index < len(self.project.volumes) else None
        if volume is None:
            return False
        users = self.project.volume_users(volume.name)
        if users:
            self.push_log(f"volume {volume.name} is mounted by {', '.join(users)}")
            return False
        self.project.remove_volume(index)
        self.volumes_selected = _clamp(self.volumes_selected, len(self.project.volumes))
        self.push_log(f"deleted volume {volume.name}")
        return True

    def write_compose(self) -> str:
        """
        Writes the manifest to the configured output file.

        :return: Absolute path of the written file.
        """
        self.written_path = ComposeConverter(self.project).convert(self.settings.output_file)
        return self.written_path

    def close(self) -> None:
        self.runner.shutdown()


def _clamp(index: int, count: int) -> int:
    if count <= 0:
        return 0
    return max(0, min(index, count - 1))
