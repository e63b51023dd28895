"""
Unit tests for the wizard session and its steps.
"""
import http.client
import json

import pytest
from d2c.config import Settings
from d2c.exceptions import NetworkError
from d2c.MODELS.project import ProjectModel
from d2c.MODELS.service_definition import EnvVar, ServiceEntry, VolumeMount
from d2c.REGISTRY import registry_client
from d2c.REGISTRY.image_reference import ResolvedRepository
from d2c.REGISTRY.registry_client import RegistryClient
from d2c.WIZARD import steps
from d2c.WIZARD.defaults import (
    default_service_name,
    preferred_container_port,
    split_port_mapping,
    suggested_port_mapping,
)
from d2c.WIZARD.keys import BACKSPACE, DOWN, ENTER, ESCAPE, TAB, UP, Key
from d2c.WIZARD.session import ActivityLog, LoopControl, Session
from d2c.WIZARD.tabs import FocusArea, Tab
from d2c.WIZARD.tasks import InlineTaskRunner


class TokenBody:
    headers = {}

    def read(self):
        return json.dumps({"token": "t0k"}).encode("utf-8")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


class FakeRegistry:
    """Stands in for RegistryClient; raises whatever is configured."""

    def __init__(self, tags=None, ports=None, resolve_error=None, ports_error=None):
        self.tags = tags if tags is not None else ["1.25", "latest", "1.25-alpine", "2.0-rc1"]
        self.ports = ports if ports is not None else [443, 80]
        self.resolve_error = resolve_error
        self.ports_error = ports_error
        self.calls = []

    def resolve(self, term):
        self.calls.append(("resolve", term))
        if self.resolve_error:
            raise self.resolve_error
        if term == "nothing":
            return None
        return ResolvedRepository.from_term(term) or ResolvedRepository("library", term)

    def list_tags(self, namespace, repo):
        self.calls.append(("list_tags", namespace, repo))
        return list(self.tags)

    def list_exposed_ports(self, namespace, repo, tag):
        self.calls.append(("list_exposed_ports", namespace, repo, tag))
        if self.ports_error:
            raise self.ports_error
        return list(self.ports)


def nginx(name="nginx", ports="8000:80", **kwargs):
    return ServiceEntry(service_name=name, namespace="library", repo="nginx", tag="latest",
                        port_mapping=ports, **kwargs)


@pytest.fixture
def settings(tmp_path):
    return Settings(output_file=str(tmp_path / "docker-compose.yaml"))


@pytest.fixture
def make_session(settings):
    def build(registry=None, project=None):
        session = Session(registry or FakeRegistry(), settings, project, runner=InlineTaskRunner())
        session.active_tab = Tab.IMAGES
        return session
    return build


def type_text(session, text):
    for ch in text:
        session.handle_key(Key.of(ch))


def open_images_tab(session, main=True):
    session.active_tab = Tab.IMAGES
    session.focus = FocusArea.MAIN if main else FocusArea.SIDEBAR


def add_image(session, term="nginx"):
    open_images_tab(session)
    session.handle_key(Key.of("n"))
    type_text(session, term)
    session.handle_key(ENTER)
    session.poll_tasks()
    session.handle_key(ENTER)
    session.poll_tasks()
    session.handle_key(ENTER)


class TestDefaults:

    def test_default_service_name(self):
        assert default_service_name("nginx", 0) == "nginx"
        assert default_service_name("my.app+x", 0) == "my_app_x"
        assert default_service_name("", 2) == "service_3"

    def test_preferred_container_port(self):
        assert preferred_container_port([5432, 8080]) == 8080
        assert preferred_container_port([9000, 9001]) == 9000
        assert preferred_container_port([]) is None

    def test_suggested_port_mapping(self):
        project = ProjectModel(services=[nginx()])
        assert suggested_port_mapping(project, 6379) == "8001:6379"
        assert suggested_port_mapping(project, None) == "8001:80"

    def test_split_port_mapping(self):
        assert split_port_mapping(" 8000 : 443 ") == ("8000", "443")
        assert split_port_mapping("9000") == ("9000", "80")


class TestNavigation:
    """Tests for keys handled when no step is open."""

    def test_quit(self, make_session):
        assert make_session().handle_key(Key.of("q")) is LoopControl.EXIT
        assert make_session().handle_key(ESCAPE) is LoopControl.EXIT

    def test_focus_and_tabs(self, make_session):
        session = make_session()
        session.active_tab = Tab.PROJECT
        session.handle_key(DOWN)
        assert session.active_tab is Tab.IMAGES
        session.handle_key(Key.of("k"))
        session.handle_key(UP)
        assert session.active_tab is Tab.VOLUMES
        session.handle_key(TAB)
        assert session.focus is FocusArea.MAIN
        session.handle_key(Key.of("h"))
        assert session.focus is FocusArea.SIDEBAR
        session.handle_key(Key.of("l"))
        assert session.focus is FocusArea.MAIN

    def test_list_selection_is_clamped(self, make_session):
        session = make_session(project=ProjectModel(services=[nginx("a"), nginx("b")]))
        open_images_tab(session)
        for _ in range(5):
            session.handle_key(Key.of("j"))
        assert session.images_selected == 1
        for _ in range(5):
            session.handle_key(UP)
        assert session.images_selected == 0

    def test_image_commands_need_main_focus(self, make_session):
        session = make_session(project=ProjectModel(services=[nginx()]))
        open_images_tab(session, main=False)
        session.handle_key(Key.of("d"))
        assert session.step is None

    def test_commands_with_nothing_to_remove(self, make_session):
        session = make_session(project=ProjectModel(services=[nginx()]))
        open_images_tab(session)
        session.handle_key(Key.of("u"))
        session.handle_key(Key.of("r"))
        assert session.step is None
        assert session.activity.lines[-2:] == [
            "selected image has no mounted volumes",
            "selected image has no env vars",
        ]

    def test_p_opens_write_confirmation(self, make_session):
        session = make_session()
        session.handle_key(Key.of("p"))
        assert isinstance(session.step, steps.ConfirmWriteCompose)


class TestAddImage:
    """Tests for the search, tag and port steps."""

    def test_full_flow(self, make_session):
        registry = FakeRegistry()
        session = make_session(registry)
        open_images_tab(session, main=False)

        session.handle_key(Key.of("n"))
        type_text(session, "nginx")
        session.handle_key(ENTER)
        assert session.loading
        assert session.poll_tasks() is LoopControl.CONTINUE

        step = session.step
        assert isinstance(step, steps.SelectTag)
        assert (step.namespace, step.repo) == ("library", "nginx")
        assert step.filtered_tags == ["latest", "1.25", "1.25-alpine", "2.0-rc1"]

        session.handle_key(DOWN)
        session.handle_key(ENTER)
        session.poll_tasks()
        step = session.step
        assert isinstance(step, steps.ConfigurePorts)
        assert (step.tag, step.host_port.value, step.container_port.value) == ("1.25", "8000", "80")
        assert step.service_name.value == "nginx"
        assert registry.calls[-1] == ("list_exposed_ports", "library", "nginx", "1.25")

        session.handle_key(ENTER)
        assert session.step is None
        assert session.project.services[0].image_ref == "nginx:1.25"
        assert session.project.services[0].port_mapping == "8000:80"
        assert session.activity.lines[-1] == "added image library/nginx:1.25"

    def test_empty_term(self, make_session):
        session = make_session()
        session.handle_key(Key.of("n"))
        session.handle_key(ENTER)
        assert isinstance(session.step, steps.EnterImageTerm)
        assert session.activity.lines[-1] == "type an image name to continue"

    def test_q_is_typed_inside_a_step(self, make_session):
        session = make_session()
        session.handle_key(Key.of("n"))
        assert session.handle_key(Key.of("q")) is LoopControl.CONTINUE
        assert session.step.term.value == "q"

    def test_no_match(self, make_session):
        session = make_session()
        session.handle_key(Key.of("n"))
        type_text(session, "nothing")
        session.handle_key(ENTER)
        session.poll_tasks()
        assert isinstance(session.step, steps.EnterImageTerm)
        assert session.step.pending is None
        assert session.activity.lines[-1] == "no repo match found"

    def test_registry_error_keeps_step(self, make_session):
        session = make_session(FakeRegistry(resolve_error=NetworkError("hub down")))
        session.handle_key(Key.of("n"))
        type_text(session, "nginx")
        session.handle_key(ENTER)
        session.poll_tasks()
        assert isinstance(session.step, steps.EnterImageTerm)
        assert session.activity.lines[-1] == "repo search failed: hub down"

    def test_unreachable_repo_path_keeps_step(self, make_session, monkeypatch):
        requested = []

        def truncated_registry(request, timeout=None):
            requested.append(request.full_url)
            if request.full_url.startswith("https://auth.docker.io/"):
                return TokenBody()
            raise http.client.IncompleteRead(b"{")

        monkeypatch.setattr(registry_client, "urlopen", truncated_registry)
        session = make_session(RegistryClient())
        session.handle_key(Key.of("n"))
        type_text(session, "bitnami/my caf\u00e9")
        session.handle_key(ENTER)
        assert session.poll_tasks() is LoopControl.CONTINUE
        assert isinstance(session.step, steps.EnterImageTerm)
        assert not session.loading
        assert requested[-1] == "https://registry-1.docker.io/v2/bitnami/my%20caf%C3%A9/tags/list"
        assert session.activity.lines[-1].startswith("repo search failed: request to ")

    def test_unexpected_error_is_raised(self, make_session):
        session = make_session(FakeRegistry(resolve_error=RuntimeError("bug")))
        session.handle_key(Key.of("n"))
        type_text(session, "nginx")
        session.handle_key(ENTER)
        with pytest.raises(RuntimeError):
            session.poll_tasks()

    def test_keys_ignored_while_loading(self, make_session):
        session = make_session()
        session.handle_key(Key.of("n"))
        type_text(session, "nginx")
        session.handle_key(ENTER)
        type_text(session, "xyz")
        assert session.step.term.value == "nginx"

    def test_tag_filter_takes_letters(self, make_session):
        """j and k go into the filter; only arrows move the selection."""
        session = make_session(FakeRegistry(tags=["jammy", "latest", "kinetic"]))
        session.handle_key(Key.of("n"))
        type_text(session, "ubuntu")
        session.handle_key(ENTER)
        session.poll_tasks()
        session.handle_key(Key.of("j"))
        assert session.step.query == "j"
        assert session.step.filtered_tags == ["jammy"]
        session.handle_key(BACKSPACE)
        assert len(session.step.filtered_tags) == 3

    def test_no_tag_matches(self, make_session):
        session = make_session()
        session.handle_key(Key.of("n"))
        type_text(session, "nginx")
        session.handle_key(ENTER)
        session.poll_tasks()
        type_text(session, "zzz")
        session.handle_key(ENTER)
        assert isinstance(session.step, steps.SelectTag)
        assert not session.loading

    def test_port_lookup_failure_uses_default_mapping(self, make_session):
        session = make_session(
            FakeRegistry(ports_error=NetworkError("blob missing")),
            project=ProjectModel(services=[nginx()]),
        )
        session.handle_key(Key.of("n"))
        type_text(session, "bitnami/redis")
        session.handle_key(ENTER)
        session.poll_tasks()
        session.handle_key(ENTER)
        session.poll_tasks()
        step = session.step
        assert (step.host_port.value, step.container_port.value) == ("8001", "80")
        assert "port suggestions unavailable: blob missing" in session.activity.lines

    def test_typing_replaces_prefilled_values(self, make_session):
        session = make_session()
        session.handle_key(Key.of("n"))
        type_text(session, "nginx")
        session.handle_key(ENTER)
        session.poll_tasks()
        session.handle_key(ENTER)
        session.poll_tasks()

        type_text(session, "9x0")
        session.handle_key(TAB)
        session.handle_key(TAB)
        type_text(session, "web.site")
        session.handle_key(ENTER)

        service = session.project.services[0]
        assert service.port_mapping == "90:80"
        assert service.service_name == "website"

    def test_port_out_of_range(self, make_session):
        session = make_session()
        session.handle_key(Key.of("n"))
        type_text(session, "nginx")
        session.handle_key(ENTER)
        session.poll_tasks()
        session.handle_key(ENTER)
        session.poll_tasks()

        type_text(session, "70000")
        session.handle_key(ENTER)
        assert isinstance(session.step, steps.ConfigurePorts)
        assert session.project.services == []
        assert session.activity.lines[-1] == "host port must be between 1 and 65535"

    def test_blank_fields_fall_back(self, make_session):
        session = make_session()
        add_image(session)
        open_images_tab(session)
        session.handle_key(Key.of("e"))
        for field_key in [BACKSPACE] * 4 + [TAB] + [BACKSPACE] * 2 + [TAB] + [BACKSPACE] * 5:
            session.handle_key(field_key)
        session.handle_key(ENTER)
        service = session.project.services[0]
        assert service.port_mapping == "8000:80"
        assert service.service_name == "nginx"
        assert session.activity.lines[-1] == "updated image library/nginx:latest"

    def test_edit_keeps_mounts_and_env(self, make_session):
        project = ProjectModel(services=[
            nginx("a"),
            nginx("b", ports="8001:80",
                  mounts=[VolumeMount(source="./html", target="/usr/share/nginx/html")],
                  env_vars=[EnvVar(key="A", value="1")]),
        ])
        session = make_session(project=project)
        open_images_tab(session)
        session.handle_key(DOWN)
        session.handle_key(Key.of("e"))
        step = session.step
        assert step.existing_index == 1
        assert (step.host_port.value, step.container_port.value) == ("8001", "80")

        session.handle_key(TAB)
        type_text(session, "8080")
        session.handle_key(ENTER)

        edited = session.project.services[1]
        assert edited.port_mapping == "8001:8080"
        assert edited.mounts[0].source == "./html"
        assert edited.env_vars[0].key == "A"
        assert session.images_selected == 1
        assert session.activity.lines[-1] == "updated image library/nginx:latest"


class TestEscape:
    """Escape closes any step and never touches the project."""

    def test_escape_during_loading_discards_result(self, make_session):
        session = make_session(project=ProjectModel(services=[nginx()]))
        before = session.project.compose_yaml()
        session.handle_key(Key.of("n"))
        type_text(session, "redis")
        session.handle_key(ENTER)
        assert session.loading

        session.handle_key(ESCAPE)
        assert session.step is None
        assert session.activity.lines[-1] == "step canceled"

        session.poll_tasks()
        assert session.step is None
        assert session.project.compose_yaml() == before

    @pytest.mark.parametrize("command", ["e", "d", "v", "a"])
    def test_escape_from_image_steps(self, make_session, command):
        session = make_session(project=ProjectModel(services=[nginx()]))
        open_images_tab(session)
        before = session.project.compose_yaml()
        session.handle_key(Key.of(command))
        assert session.step is not None
        type_text(session, "1")
        session.handle_key(ESCAPE)
        assert session.step is None
        assert session.project.compose_yaml() == before


class TestDeleteImage:

    def test_confirm(self, make_session):
        session = make_session(project=ProjectModel(services=[nginx("a"), nginx("b")]))
        open_images_tab(session)
        session.images_selected = 1
        session.handle_key(Key.of("d"))
        assert session.step == steps.ConfirmDeleteImage(index=1)
        session.handle_key(Key.of("y"))
        assert [s.service_name for s in session.project.services] == ["a"]
        assert session.images_selected == 0
        assert session.activity.lines[-1] == "deleted image library/nginx:latest"

    def test_cancel(self, make_session):
        session = make_session(project=ProjectModel(services=[nginx()]))
        open_images_tab(session)
        session.handle_key(Key.of("d"))
        session.handle_key(Key.of("n"))
        assert session.step is None
        assert len(session.project.services) == 1
        assert session.activity.lines[-1] == "delete canceled"

    def test_out_of_range_is_noop(self, make_session):
        session = make_session(project=ProjectModel(services=[nginx()]))
        assert session.delete_image(4) is False
        assert len(session.project.services) == 1


class TestVolumes:
    """Tests for named volumes and mounts."""

    def test_add_volume(self, make_session):
        session = make_session()
        session.active_tab = Tab.VOLUMES
        session.handle_key(Key.of("a"))
        session.handle_key(ENTER)
        session.handle_key(Key.of("a"))
        type_text(session, "db data")
        session.handle_key(ENTER)
        assert [v.name for v in session.project.volumes] == ["volume_1", "dbdata"]
        assert session.volumes_selected == 1

    def test_delete_volume(self, make_session):
        session = make_session()
        session.project.add_volume("a")
        session.project.add_volume("b")
        session.active_tab = Tab.VOLUMES
        session.focus = FocusArea.MAIN
        session.volumes_selected = 1
        session.handle_key(Key.of("d"))
        assert [v.name for v in session.project.volumes] == ["a"]
        assert session.volumes_selected == 0

    def test_delete_mounted_volume_is_refused(self, make_session):
        project = ProjectModel(services=[nginx(mounts=[VolumeMount(source="data", target="/data")])])
        project.add_volume("data")
        session = make_session(project=project)
        assert session.delete_volume(0) is False
        assert [v.name for v in project.volumes] == ["data"]
        assert session.activity.lines[-1] == "volume data is mounted by nginx"

    def test_existing_without_volumes_redirects_to_new(self, make_session):
        session = make_session(project=ProjectModel(services=[nginx()]))
        open_images_tab(session)
        session.handle_key(Key.of("v"))
        session.handle_key(ENTER)
        step = session.step
        assert isinstance(step, steps.MountNewVolume)
        assert step.volume_name.value == "volume_1"
        assert session.activity.lines[-1] == "no existing volume; creating new volume mount"

        session.handle_key(ENTER)
        assert session.project.services[0].mounts == [VolumeMount(source="volume_1", target="/data")]
        assert [v.name for v in session.project.volumes] == ["volume_1"]

    def test_mount_existing(self, make_session):
        project = ProjectModel(services=[nginx()])
        project.add_volume("a")
        project.add_volume("b")
        session = make_session(project=project)
        open_images_tab(session)
        session.handle_key(Key.of("v"))
        session.handle_key(ENTER)
        assert isinstance(session.step, steps.MountExistingVolume)

        session.handle_key(Key.of("j"))
        session.handle_key(TAB)
        type_text(session, "/srv/j k")
        session.handle_key(ENTER)
        assert project.services[0].mounts == [VolumeMount(source="b", target="/srv/jk")]
        assert session.activity.lines[-1] == "mounted volume b:/srv/jk on nginx"
        assert len(project.volumes) == 2

    def test_mount_new_declares_volume(self, make_session):
        project = ProjectModel(services=[nginx()])
        session = make_session(project=project)
        open_images_tab(session)
        session.handle_key(Key.of("v"))
        session.handle_key(DOWN)
        session.handle_key(ENTER)
        type_text(session, "cache")
        session.handle_key(TAB)
        type_text(session, "/var/cache")
        session.handle_key(ENTER)
        assert project.services[0].mounts == [VolumeMount(source="cache", target="/var/cache")]
        assert [v.name for v in project.volumes] == ["cache"]

    def test_mount_local_path_validation(self, make_session):
        project = ProjectModel(services=[nginx()])
        session = make_session(project=project)
        open_images_tab(session)
        session.handle_key(Key.of("v"))
        session.handle_key(Key.of("j"))
        session.handle_key(Key.of("j"))
        session.handle_key(ENTER)
        assert session.step.source.value == "./"

        type_text(session, "html")
        session.handle_key(ENTER)
        assert isinstance(session.step, steps.MountLocalPath)
        assert session.activity.lines[-1] == "local path must start with ./ or /"

        for _ in range(4):
            session.handle_key(BACKSPACE)
        type_text(session, "./html")
        session.handle_key(ENTER)
        assert session.step is None
        assert project.services[0].mounts == [VolumeMount(source="./html", target="/data")]
        assert project.volumes == []

    def test_unmount(self, make_session):
        project = ProjectModel(services=[nginx(mounts=[
            VolumeMount(source="./a", target="/a"),
            VolumeMount(source="./b", target="/b"),
        ])])
        session = make_session(project=project)
        open_images_tab(session)
        session.handle_key(Key.of("u"))
        session.handle_key(Key.of("j"))
        session.handle_key(Key.of("j"))
        session.handle_key(ENTER)
        assert [m.source for m in project.services[0].mounts] == ["./a"]
        assert session.activity.lines[-1] == "removed mount ./b:/b from nginx"


class TestEnv:

    def test_add_and_update(self, make_session):
        project = ProjectModel(services=[nginx()])
        session = make_session(project=project)
        open_images_tab(session)

        session.handle_key(Key.of("a"))
        type_text(session, "db_host-1")
        session.handle_key(TAB)
        type_text(session, "x = 1")
        session.handle_key(ENTER)
        assert project.services[0].env_vars == [EnvVar(key="DB_HOST1", value="x = 1")]
        assert session.activity.lines[-1] == "added env DB_HOST1 on nginx"

        session.handle_key(Key.of("a"))
        type_text(session, "DB_HOST1")
        session.handle_key(TAB)
        type_text(session, "y")
        session.handle_key(ENTER)
        assert project.services[0].env_vars == [EnvVar(key="DB_HOST1", value="y")]
        assert session.activity.lines[-1] == "updated env DB_HOST1 on nginx"

    def test_key_required(self, make_session):
        session = make_session(project=ProjectModel(services=[nginx()]))
        open_images_tab(session)
        session.handle_key(Key.of("a"))
        session.handle_key(TAB)
        type_text(session, "value")
        session.handle_key(ENTER)
        assert isinstance(session.step, steps.AddImageEnv)
        assert session.activity.lines[-1] == "env variable name is required"

    def test_remove(self, make_session):
        project = ProjectModel(services=[nginx(env_vars=[EnvVar(key="A"), EnvVar(key="B")])])
        session = make_session(project=project)
        open_images_tab(session)
        session.handle_key(Key.of("r"))
        session.handle_key(Key.of("y"))
        assert [e.key for e in project.services[0].env_vars] == ["B"]

        session.handle_key(Key.of("r"))
        session.handle_key(Key.of("n"))
        assert [e.key for e in project.services[0].env_vars] == ["B"]
        assert session.activity.lines[-1] == "remove env canceled"


class TestWriteCompose:

    def test_write_ends_session(self, make_session, settings):
        session = make_session(project=ProjectModel(services=[nginx()]))
        session.handle_key(Key.of("p"))
        assert session.handle_key(ENTER) is LoopControl.EXIT
        with open(settings.output_file, encoding="utf-8") as f:
            assert f.read() == session.project.compose_yaml()
        assert session.written_path is not None

    def test_write_failure_closes_step(self, make_session, settings, tmp_path):
        settings.output_file = str(tmp_path / "missing" / "docker-compose.yaml")
        session = make_session()
        session.handle_key(Key.of("p"))
        assert session.handle_key(Key.of("y")) is LoopControl.CONTINUE
        assert session.step is None
        assert session.activity.lines[-1].startswith(f"failed to write {settings.output_file}")

    def test_cancel(self, make_session, settings):
        session = make_session()
        session.handle_key(Key.of("p"))
        session.handle_key(Key.of("n"))
        assert session.step is None
        assert session.activity.lines[-1] == "compose write canceled"


def test_activity_log_keeps_last_five():
    log = ActivityLog()
    assert log.lines == ["ready"]
    for i in range(7):
        log.push(f"line {i}")
    assert log.lines == [f"line {i}" for i in range(2, 7)]
