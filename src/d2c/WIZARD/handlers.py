"""
Key and task-result handlers for each wizard step.

A handler receives the session, the active step and a key (or a finished
task outcome) and returns a Transition telling the session what to do with
the step. Handlers may raise D2CError subclasses; the session reports them in
the activity log and keeps the step open.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Dict, List, Optional, Tuple, Type

from ..exceptions import ValidationError
from ..MODELS.service_definition import ServiceEntry, VolumeMount
from ..REGISTRY.image_reference import ResolvedRepository
from ..REGISTRY.tag_ranker import filter_tags
from .defaults import (
    DEFAULT_MOUNT_TARGET,
    MAX_PORT,
    default_service_name,
    is_digit_char,
    is_env_key_char,
    is_local_path,
    is_name_char,
    is_path_char,
    preferred_container_port,
    split_port_mapping,
    suggested_port_mapping,
)
from .keys import Key, KeyCode
from .steps import (
    VOLUME_SOURCE_OPTIONS,
    AddImageEnv,
    AddVolume,
    ConfigureField,
    ConfigurePorts,
    ConfirmDeleteImage,
    ConfirmWriteCompose,
    EnterImageTerm,
    EnvInputField,
    MountExistingField,
    MountExistingVolume,
    MountInputField,
    MountLocalPath,
    MountNewVolume,
    RemoveImageEnv,
    RemoveImageMount,
    SelectTag,
    SelectVolumeSource,
    TextInput,
    WizardStep,
)
from .tasks import TaskOutcome

if TYPE_CHECKING:
    from ..REGISTRY.registry_client import RegistryClient
    from .session import Session

logger = logging.getLogger(__name__)


class TransitionKind(Enum):
    STAY = "stay"
    REPLACE = "replace"
    CLOSE = "close"
    EXIT = "exit"


@dataclass(frozen=True)
class Transition:
    """What happens to the active step after a handler ran."""

    kind: TransitionKind
    step: Optional[WizardStep] = None

    @classmethod
    def replace(cls, step: WizardStep) -> "Transition":
        return cls(TransitionKind.REPLACE, step)


STAY = Transition(TransitionKind.STAY)
CLOSE = Transition(TransitionKind.CLOSE)
EXIT = Transition(TransitionKind.EXIT)


def _edit_text(text: TextInput, key: Key, accepts: Callable[[str], bool]) -> bool:
    """
    Applies a character or backspace key to an input.

    :return: True if the key was consumed.
    """
    if key.code is KeyCode.BACKSPACE:
        text.backspace()
        return True
    if key.code is KeyCode.CHAR and accepts(key.char):
        text.insert(key.char)
        return True
    return False


def _move(selected: int, key: Key, count: int) -> int:
    if count <= 0:
        return 0
    if key.is_up:
        return max(selected - 1, 0)
    if key.is_down:
        return min(selected + 1, count - 1)
    return selected


def _any_char(ch: str) -> bool:
    return True


def _target_or_default(text: TextInput) -> str:
    return text.strip() or DEFAULT_MOUNT_TARGET


def _parse_port(value: str, label: str) -> int:
    port = int(value)
    if not 1 <= port <= MAX_PORT:
        raise ValidationError(f"{label} port must be between 1 and {MAX_PORT}")
    return port


# Tasks, run on the worker thread.

def resolve_and_list_tags(
    registry: "RegistryClient", term: str
) -> Optional[Tuple[ResolvedRepository, List[str]]]:
    resolved = registry.resolve(term)
    if resolved is None:
        return None
    return resolved, registry.list_tags(resolved.namespace, resolved.repo)


# Image wizard

def enter_image_term(session: "Session", step: EnterImageTerm, key: Key) -> Transition:
    if key.code is KeyCode.ENTER:
        term = step.term.strip()
        if not term:
            session.push_log("type an image name to continue")
            return STAY
        step.pending = session.start_task(resolve_and_list_tags, session.registry, term)
        session.push_log(f"searching Docker Hub for {term}")
        return STAY
    _edit_text(step.term, key, _any_char)
    return STAY


def image_term_resolved(session: "Session", step: EnterImageTerm, outcome: TaskOutcome) -> Transition:
    if outcome.failed:
        session.push_log(f"repo search failed: {outcome.error}")
        return STAY
    if outcome.value is None:
        session.push_log("no repo match found")
        return STAY

    resolved, all_tags = outcome.value
    session.push_log("image repo resolved; pick a tag")
    return Transition.replace(
        SelectTag(
            image_term=step.term.strip(),
            namespace=resolved.namespace,
            repo=resolved.repo,
            all_tags=all_tags,
            filtered_tags=filter_tags(all_tags, "", session.settings.tag_limit),
        )
    )


def select_tag(session: "Session", step: SelectTag, key: Key) -> Transition:
    # Letters go to the filter, so only arrow keys move the selection.
    if key.code in (KeyCode.UP, KeyCode.DOWN):
        step.selected = _move(step.selected, key, len(step.filtered_tags))
        return STAY

    if key.code is KeyCode.ENTER:
        if not step.filtered_tags:
            session.push_log("no tag matches the filter")
            return STAY
        step.chosen_tag = step.filtered_tags[min(step.selected, len(step.filtered_tags) - 1)]
        step.pending = session.start_task(
            session.registry.list_exposed_ports, step.namespace, step.repo, step.chosen_tag
        )
        return STAY

    if key.code is KeyCode.BACKSPACE:
        step.query = step.query[:-1]
    elif key.code is KeyCode.CHAR:
        step.query += key.char
    else:
        return STAY
    step.filtered_tags = filter_tags(step.all_tags, step.query, session.settings.tag_limit)
    step.selected = 0
    return STAY


def tag_ports_listed(session: "Session", step: SelectTag, outcome: TaskOutcome) -> Transition:
    ports: List[int] = []
    if outcome.failed:
        session.push_log(f"port suggestions unavailable: {outcome.error}")
    else:
        ports = outcome.value

    container_port = preferred_container_port(ports)
    host, container = split_port_mapping(suggested_port_mapping(session.project, container_port))
    if container_port is not None:
        session.push_log(f"suggested container port {container_port}")
    session.push_log(f"resolved {step.image_term} -> {step.namespace}/{step.repo}; set ports")

    return Transition.replace(
        ConfigurePorts(
            existing_index=None,
            namespace=step.namespace,
            repo=step.repo,
            tag=step.chosen_tag,
            host_port=TextInput.prefilled(host),
            container_port=TextInput.prefilled(container),
            service_name=TextInput.prefilled(
                default_service_name(step.repo, len(session.project.services))
            ),
        )
    )


def configure_ports(session: "Session", step: ConfigurePorts, key: Key) -> Transition:
    if key.code is KeyCode.TAB:
        step.active_field = step.active_field.next()
        return STAY
    if key.code is KeyCode.ENTER:
        return _commit_service(session, step)

    if step.active_field is ConfigureField.HOST_PORT:
        _edit_text(step.host_port, key, is_digit_char)
    elif step.active_field is ConfigureField.CONTAINER_PORT:
        _edit_text(step.container_port, key, is_digit_char)
    else:
        _edit_text(step.service_name, key, is_name_char)
    return STAY


def _commit_service(session: "Session", step: ConfigurePorts) -> Transition:
    project = session.project
    existing = None
    if step.existing_index is not None:
        existing = project.get_service(step.existing_index)
        if existing is None:
            logger.warning("service %d vanished while being edited", step.existing_index)
            session.push_log("edited image no longer exists")
            return CLOSE

    fallback = existing.port_mapping if existing else project.next_port_mapping()
    fallback_host, fallback_container = split_port_mapping(fallback)
    host = _parse_port(step.host_port.strip() or fallback_host, "host")
    container = _parse_port(step.container_port.strip() or fallback_container, "container")

    service = ServiceEntry(
        service_name=step.service_name.strip()
        or default_service_name(step.repo, len(project.services)),
        namespace=step.namespace,
        repo=step.repo,
        tag=step.tag,
        port_mapping=f"{host}:{container}",
        mounts=[m.model_copy() for m in existing.mounts] if existing else [],
        env_vars=[e.model_copy() for e in existing.env_vars] if existing else [],
    )

    if existing is not None:
        project.replace_service(step.existing_index, service)
        session.images_selected = step.existing_index
        session.push_log(f"updated image {service.display_name}")
    else:
        session.images_selected = project.add_service(service)
        session.push_log(f"added image {service.display_name}")
    return CLOSE


def confirm_delete_image(session: "Session", step: ConfirmDeleteImage, key: Key) -> Transition:
    if key.is_confirm:
        session.delete_image(step.index)
        return CLOSE
    if key.is_char("n"):
        session.push_log("delete canceled")
        return CLOSE
    return STAY


def confirm_write_compose(session: "Session", step: ConfirmWriteCompose, key: Key) -> Transition:
    if key.is_confirm:
        output_file = session.settings.output_file
        try:
            session.write_compose()
        except OSError as e:
            session.push_log(f"failed to write {output_file}: {e}")
            return CLOSE
        session.push_log(f"wrote {output_file} from preview")
        return EXIT
    if key.is_char("n"):
        session.push_log("compose write canceled")
        return CLOSE
    return STAY


# Volumes

def add_volume(session: "Session", step: AddVolume, key: Key) -> Transition:
    if key.code is not KeyCode.ENTER:
        _edit_text(step.name, key, is_name_char)
        return STAY

    name = step.name.strip() or session.project.default_volume_name()
    session.volumes_selected = session.project.add_volume(name)
    session.push_log(f"added volume {name}")
    return CLOSE


def select_volume_source(session: "Session", step: SelectVolumeSource, key: Key) -> Transition:
    if key.code is not KeyCode.ENTER:
        step.selected_option = _move(step.selected_option, key, len(VOLUME_SOURCE_OPTIONS))
        return STAY

    if step.selected_option == 0:
        if session.project.volumes:
            return Transition.replace(MountExistingVolume(image_index=step.image_index))
        session.push_log("no existing volume; creating new volume mount")
    if step.selected_option in (0, 1):
        return Transition.replace(
            MountNewVolume(
                image_index=step.image_index,
                volume_name=TextInput.prefilled(session.project.default_volume_name()),
            )
        )
    return Transition.replace(MountLocalPath(image_index=step.image_index))


def _mount(session: "Session", image_index: int, source: str, target: str, label: str) -> Transition:
    service = session.project.get_service(image_index)
    if service is None:
        session.push_log("selected image no longer exists")
        return CLOSE
    service.mounts.append(VolumeMount(source=source, target=target))
    session.push_log(f"{label} {source}:{target} on {service.service_name}")
    return CLOSE


def _declare_volume(session: "Session", name: str) -> None:
    index = session.project.ensure_volume(name)
    if index is not None:
        session.volumes_selected = index


def mount_existing_volume(session: "Session", step: MountExistingVolume, key: Key) -> Transition:
    volumes = session.project.volumes
    if key.code is KeyCode.TAB:
        step.active_field = step.active_field.next()
        return STAY

    if key.code is KeyCode.ENTER:
        if not volumes:
            session.push_log("no named volumes available; create one first")
            return STAY
        chosen = volumes[min(step.selected_volume, len(volumes) - 1)].name
        _declare_volume(session, chosen)
        return _mount(session, step.image_index, chosen, _target_or_default(step.target), "mounted volume")

    if step.active_field is MountExistingField.VOLUME:
        step.selected_volume = _move(step.selected_volume, key, len(volumes))
    else:
        _edit_text(step.target, key, is_path_char)
    return STAY


def mount_new_volume(session: "Session", step: MountNewVolume, key: Key) -> Transition:
    if key.code is KeyCode.TAB:
        step.active_field = step.active_field.next()
        return STAY

    if key.code is KeyCode.ENTER:
        source = step.volume_name.strip() or session.project.default_volume_name()
        _declare_volume(session, source)
        return _mount(session, step.image_index, source, _target_or_default(step.target), "mounted new volume")

    if step.active_field is MountInputField.SOURCE:
        _edit_text(step.volume_name, key, is_name_char)
    else:
        _edit_text(step.target, key, is_path_char)
    return STAY


def mount_local_path(session: "Session", step: MountLocalPath, key: Key) -> Transition:
    if key.code is KeyCode.TAB:
        step.active_field = step.active_field.next()
        return STAY

    if key.code is KeyCode.ENTER:
        source = step.source.strip()
        if not is_local_path(source):
            raise ValidationError("local path must start with ./ or /")
        return _mount(session, step.image_index, source, _target_or_default(step.target), "mounted local path")

    text = step.source if step.active_field is MountInputField.SOURCE else step.target
    _edit_text(text, key, is_path_char)
    return STAY


def remove_image_mount(session: "Session", step: RemoveImageMount, key: Key) -> Transition:
    service = session.project.get_service(step.image_index)
    mounts = service.mounts if service else []

    if key.is_confirm:
        if not mounts:
            session.push_log("selected image has no mounts")
            return CLOSE
        removed = mounts.pop(min(step.selected_mount, len(mounts) - 1))
        session.push_log(f"removed mount {removed.source}:{removed.target} from {service.service_name}")
        return CLOSE
    if key.is_char("n"):
        session.push_log("unmount canceled")
        return CLOSE

    step.selected_mount = _move(step.selected_mount, key, len(mounts))
    return STAY


# Environment variables

def add_image_env(session: "Session", step: AddImageEnv, key: Key) -> Transition:
    if key.code is KeyCode.TAB:
        step.active_field = step.active_field.next()
        return STAY

    if key.code is KeyCode.ENTER:
        env_key = step.key.strip().upper()
        if not env_key:
            raise ValidationError("env variable name is required")
        service = session.project.get_service(step.image_index)
        if service is None:
            session.push_log("selected image no longer exists")
            return CLOSE
        replaced = service.set_env(env_key, step.value.value)
        verb = "updated" if replaced else "added"
        session.push_log(f"{verb} env {env_key} on {service.service_name}")
        return CLOSE

    if step.active_field is EnvInputField.KEY:
        if key.code is KeyCode.CHAR and is_env_key_char(key.char):
            step.key.insert(key.char.upper())
        elif key.code is KeyCode.BACKSPACE:
            step.key.backspace()
    else:
        _edit_text(step.value, key, _any_char)
    return STAY


def remove_image_env(session: "Session", step: RemoveImageEnv, key: Key) -> Transition:
    service = session.project.get_service(step.image_index)
    env_vars = service.env_vars if service else []

    if key.is_confirm:
        if not env_vars:
            session.push_log("selected image has no env vars")
            return CLOSE
        removed = env_vars.pop(min(step.selected_env, len(env_vars) - 1))
        session.push_log(f"removed env {removed.key} from {service.service_name}")
        return CLOSE
    if key.is_char("n"):
        session.push_log("remove env canceled")
        return CLOSE

    step.selected_env = _move(step.selected_env, key, len(env_vars))
    return STAY


KeyHandler = Callable[["Session", WizardStep, Key], Transition]
ResultHandler = Callable[["Session", WizardStep, TaskOutcome], Transition]

KEY_HANDLERS: Dict[Type, KeyHandler] = {
    EnterImageTerm: enter_image_term,
    SelectTag: select_tag,
    ConfigurePorts: configure_ports,
    ConfirmDeleteImage: confirm_delete_image,
    ConfirmWriteCompose: confirm_write_compose,
    AddVolume: add_volume,
    SelectVolumeSource: select_volume_source,
    MountExistingVolume: mount_existing_volume,
    MountNewVolume: mount_new_volume,
    MountLocalPath: mount_local_path,
    RemoveImageMount: remove_image_mount,
    AddImageEnv: add_image_env,
    RemoveImageEnv: remove_image_env,
}

RESULT_HANDLERS: Dict[Type, ResultHandler] = {
    EnterImageTerm: image_term_resolved,
    SelectTag: tag_ports_listed,
}
