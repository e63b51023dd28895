"""
Unit tests for key translation and the text shown by the terminal UI.
"""
import curses

import pytest
from d2c.config import Settings
from d2c.MODELS.project import ProjectModel
from d2c.MODELS.service_definition import ServiceEntry
from d2c.TUI.app import translate_key
from d2c.TUI.views import footer, main_pane, step_view, tab_stats
from d2c.WIZARD import steps
from d2c.WIZARD.keys import BACKSPACE, ENTER, ESCAPE, TAB, UP, Key
from d2c.WIZARD.session import Session
from d2c.WIZARD.tabs import Tab
from d2c.WIZARD.tasks import InlineTaskRunner


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("\n", ENTER),
        (curses.KEY_ENTER, ENTER),
        ("\x1b", ESCAPE),
        ("\t", TAB),
        ("\x7f", BACKSPACE),
        (curses.KEY_BACKSPACE, BACKSPACE),
        (curses.KEY_UP, UP),
        ("a", Key.of("a")),
        ("é", Key.of("é")),
        ("\x01", None),
        (curses.KEY_F1, None),
        (None, None),
    ],
)
def test_translate_key(raw, expected):
    assert translate_key(raw) == expected


@pytest.fixture
def session():
    project = ProjectModel(services=[
        ServiceEntry(service_name="web", namespace="library", repo="nginx", tag="latest", port_mapping="8080:80")
    ])
    return Session(None, Settings(), project, runner=InlineTaskRunner(), project_name="shop")


def test_project_pane_shows_manifest(session):
    title, lines = main_pane(session)
    assert title == "Project: shop"
    assert lines[:3] == ["services:", "  web:", "    image: nginx:latest"]


def test_images_pane_marks_selection(session):
    session.active_tab = Tab.IMAGES
    title, lines = main_pane(session)
    assert title == "Images"
    assert lines == ["> web: library/nginx:latest   ->   8080:80   mounts:0   env:0"]


def test_empty_volumes_pane(session):
    session.active_tab = Tab.VOLUMES
    assert main_pane(session) == ("Volumes", ["No volumes yet.", "Press a in Volumes tab to add one."])


def test_tab_stats(session):
    assert tab_stats(session, Tab.PROJECT) == ["shop"]
    assert tab_stats(session, Tab.IMAGES) == ["images: 1", "ports: 1"]
    assert tab_stats(session, Tab.VOLUMES) == ["volumes: 0"]


def test_footer_lists_tab_actions(session):
    session.active_tab = Tab.VOLUMES
    assert "a add volume, d delete volume, p write compose file" in footer(session)


@pytest.mark.parametrize(
    "step, title",
    [
        (steps.EnterImageTerm(), "New Image"),
        (steps.SelectTag("nginx", "library", "nginx", [], []), "Select Tag"),
        (steps.ConfirmDeleteImage(index=0), "Confirm Delete"),
        (steps.ConfirmWriteCompose(), "Confirm Write"),
        (steps.AddVolume(), "New Volume"),
        (steps.SelectVolumeSource(image_index=0), "Mount Source"),
        (steps.MountExistingVolume(image_index=0), "Mount Existing"),
        (steps.MountLocalPath(image_index=0), "Mount Local"),
        (steps.RemoveImageMount(image_index=0), "Unmount"),
        (steps.AddImageEnv(image_index=0), "Env"),
        (steps.RemoveImageEnv(image_index=0), "Remove Env"),
    ],
)
def test_step_titles(session, step, title):
    assert step_view(session, step)[0] == title


def test_select_tag_view(session):
    step = steps.SelectTag("nginx", "library", "nginx", ["latest", "1.25"], ["latest", "1.25"], selected=1)
    _, lines = step_view(session, step)
    assert "  latest" in lines
    assert "> 1.25" in lines


def test_missing_image_in_step(session):
    _, lines = step_view(session, steps.ConfirmDeleteImage(index=5))
    assert lines[0] == "Selected image not found."
    _, lines = step_view(session, steps.RemoveImageEnv(image_index=5))
    assert "No env vars on this image." in lines
