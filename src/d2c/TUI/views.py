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
Text content of each pane and wizard step, kept free of curses calls.
"""
from typing import List, Optional, Sequence, Tuple

from ..MODELS.service_definition import ServiceEntry
from ..WIZARD.session import Session
from ..WIZARD.steps import (
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
    WizardStep,
)
from ..WIZARD.tabs import Tab

View = Tuple[str, List[str]]


def _marker(active: bool) -> str:
    return ">" if active else " "


def _choices(items: Sequence[str], selected: int) -> List[str]:
    return [f"{_marker(i == selected)} {item}" for i, item in enumerate(items)]


def _image_desc(session: Session, index: int) -> str:
    service: Optional[ServiceEntry] = session.project.get_service(index)
    if service is None:
        return "unknown-image"
    return f"{service.service_name}: {service.display_name}"


def main_pane(session: Session) -> View:
    """Title and lines of the main pane for the active tab."""
    project = session.project
    if session.active_tab is Tab.PROJECT:
        return f"Project: {session.project_name}", project.compose_yaml().splitlines()

    if session.active_tab is Tab.IMAGES:
        if not project.services:
            return "Images", ["No images yet.", "Press n in Images tab to add one."]
        lines = [
            f"{svc.service_name}: {svc.display_name}   ->   {svc.port_mapping}"
            f"   mounts:{len(svc.mounts)}   env:{len(svc.env_vars)}"
            for svc in project.services
        ]
        return "Images", _choices(lines, session.images_selected)

    if not project.volumes:
        return "Volumes", ["No volumes yet.", "Press a in Volumes tab to add one."]
    lines = []
    for volume in project.volumes:
        users = project.volume_users(volume.name)
        lines.append(f"{volume.name}   used by: {', '.join(users)}" if users else volume.name)
    return "Volumes", _choices(lines, session.volumes_selected)


def tab_stats(session: Session, tab: Tab) -> List[str]:
    """Summary lines shown under a tab in the sidebar."""
    project = session.project
    if tab is Tab.PROJECT:
        return [session.project_name]
    if tab is Tab.IMAGES:
        return [f"images: {len(project.services)}", f"ports: {project.total_exposed_ports()}"]
    return [f"volumes: {len(project.volumes)}"]


def footer(session: Session) -> str:
    actions = ", ".join(session.active_tab.action_labels())
    return (
        f"focus: {session.focus.value}   tab: {session.active_tab.title}   "
        f"keys: Tab switch focus, j/k move, {actions}, q quit"
    )


def step_view(session: Session, step: WizardStep) -> View:
    """
    Title and body lines of the popup for a wizard step.
    """
    if isinstance(step, EnterImageTerm):
        return "New Image", [
            "Type image name/org (examples: python, nginx, node)",
            "",
            f"Image: {step.term.value}",
            "",
            "Enter: resolve and fetch tags  |  Esc: cancel",
        ]

    if isinstance(step, SelectTag):
        lines = [
            f"Resolved image term: {step.image_term}",
            f"Using repo: {step.namespace}/{step.repo}",
            f"Filter tags: {step.query}",
            "",
        ]
        if step.filtered_tags:
            lines += _choices(step.filtered_tags, step.selected)
        else:
            lines.append("No tags match this query.")
        lines += ["", "Type to fuzzy filter  |  arrows to move  |  Enter add image  |  Esc cancel"]
        return "Select Tag", lines

    if isinstance(step, ConfigurePorts):
        field = step.active_field
        return ("Edit Image" if step.existing_index is not None else "Configure Image"), [
            f"Image: {step.namespace}/{step.repo}:{step.tag}",
            "",
            f"{_marker(field is ConfigureField.HOST_PORT)} In port (host): {step.host_port.value}",
            f"{_marker(field is ConfigureField.CONTAINER_PORT)} Out port (container): {step.container_port.value}",
            f"{_marker(field is ConfigureField.NAME)} Service name: {step.service_name.value}",
            "",
            "Tab: switch field  |  Enter: save  |  Esc: cancel",
        ]

    if isinstance(step, ConfirmDeleteImage):
        service = session.project.get_service(step.index)
        if service is None:
            return "Confirm Delete", ["Selected image not found.", "Press Esc to cancel"]
        return "Confirm Delete", [
            f"{service.service_name}: {service.display_name}",
            f"ports: {service.port_mapping}",
            "",
            "Press y (or Enter) to confirm",
            "Press n or Esc to cancel",
        ]

    if isinstance(step, ConfirmWriteCompose):
        lines = [f"This will write {session.settings.output_file} using the current Project preview."]
        if not session.project.services:
            lines += ["", "Warning: no images are configured yet."]
        return "Confirm Write", lines + ["", "Press y (or Enter) to confirm", "Press n or Esc to cancel"]

    if isinstance(step, AddVolume):
        return "New Volume", [
            "Enter volume name:",
            "",
            f"Name: {step.name.value}",
            "",
            "Enter: add volume  |  Esc: cancel",
        ]

    if isinstance(step, SelectVolumeSource):
        return "Mount Source", [
            f"Image: {_image_desc(session, step.image_index)}",
            "",
            *_choices(VOLUME_SOURCE_OPTIONS, step.selected_option),
            "",
            "j/k or arrows: move  |  Enter: choose  |  Esc: cancel",
        ]

    if isinstance(step, MountExistingVolume):
        volumes = session.project.volumes
        chosen = volumes[min(step.selected_volume, len(volumes) - 1)].name if volumes else "<no volume>"
        field = step.active_field
        return "Mount Existing", [
            f"Image: {_image_desc(session, step.image_index)}",
            "",
            f"{_marker(field is MountExistingField.VOLUME)} Volume: {chosen}",
            f"{_marker(field is MountExistingField.TARGET)} Container path: {step.target.value}",
            "",
            "Tab: switch field  |  j/k: volume select  |  Enter: mount  |  Esc: cancel",
        ]

    if isinstance(step, MountNewVolume):
        field = step.active_field
        return "Mount New", [
            f"Image: {_image_desc(session, step.image_index)}",
            "",
            f"{_marker(field is MountInputField.SOURCE)} Volume name: {step.volume_name.value}",
            f"{_marker(field is MountInputField.TARGET)} Container path: {step.target.value}",
            "",
            "Tab: switch field  |  Enter: create + mount  |  Esc: cancel",
        ]

    if isinstance(step, MountLocalPath):
        field = step.active_field
        return "Mount Local", [
            f"Image: {_image_desc(session, step.image_index)}",
            "",
            f"{_marker(field is MountInputField.SOURCE)} Local source path: {step.source.value}",
            f"{_marker(field is MountInputField.TARGET)} Container path: {step.target.value}",
            "",
            "Source must start with ./ or /",
            "Tab: switch field  |  Enter: mount  |  Esc: cancel",
        ]

    if isinstance(step, RemoveImageMount):
        service = session.project.get_service(step.image_index)
        mounts = [f"{m.source}:{m.target}" for m in service.mounts] if service else []
        return "Unmount", [
            f"Image: {_image_desc(session, step.image_index)}",
            "",
            *(_choices(mounts, step.selected_mount) or ["No mounted volumes on this image."]),
            "",
            "j/k or arrows: move  |  Enter/y: remove  |  n/Esc: cancel",
        ]

    if isinstance(step, AddImageEnv):
        field = step.active_field
        return "Env", [
            f"Image: {_image_desc(session, step.image_index)}",
            "",
            f"{_marker(field is EnvInputField.KEY)} Variable: {step.key.value}",
            f"{_marker(field is EnvInputField.VALUE)} Value: {step.value.value}",
            "",
            "Name auto-uppercases. Value is kept exactly as typed.",
            "Tab: switch field  |  Enter: save  |  Esc: cancel",
        ]

    if isinstance(step, RemoveImageEnv):
        service = session.project.get_service(step.image_index)
        env_vars = [f"{e.key}={e.value}" for e in service.env_vars] if service else []
        return "Remove Env", [
            f"Image: {_image_desc(session, step.image_index)}",
            "",
            *(_choices(env_vars, step.selected_env) or ["No env vars on this image."]),
            "",
            "j/k or arrows: move  |  Enter/y: remove  |  n/Esc: cancel",
        ]

    raise TypeError(f"no view for step {type(step).__name__}")
