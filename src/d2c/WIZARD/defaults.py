"""
Default values the wizard pre-fills or falls back to.
"""
from typing import Optional, Sequence, Tuple

from ..MODELS.project import ProjectModel

PREFERRED_CONTAINER_PORTS = (80, 443, 8080, 3000, 5000, 5432, 3306, 6379)
DEFAULT_MOUNT_TARGET = "/data"
MAX_PORT = 65535


def default_service_name(repo: str, service_count: int) -> str:
    """
    Service name derived from the repository name.

    Characters outside [A-Za-z0-9_-] become '_'; an empty result falls back
    to 'service_<n+1>'.
    """
    name = "".join(ch if is_name_char(ch) else "_" for ch in repo)
    return name or f"service_{service_count + 1}"


def preferred_container_port(ports: Sequence[int]) -> Optional[int]:
    """
    Picks the container port to suggest from the ports an image exposes.
    """
    for candidate in PREFERRED_CONTAINER_PORTS:
        if candidate in ports:
            return candidate
    return ports[0] if ports else None


def split_port_mapping(mapping: str) -> Tuple[str, str]:
    """
    Splits 'host:container'; a bare port is paired with container port 80.
    """
    mapping = mapping.strip()
    if ":" in mapping:
        host, container = mapping.split(":", 1)
        return host.strip(), container.strip()
    return mapping, "80"


def suggested_port_mapping(project: ProjectModel, container_port: Optional[int]) -> str:
    """
    The next sequential host port, paired with the suggested container port.
    """
    fallback = project.next_port_mapping()
    if container_port is None:
        return fallback
    host, _ = split_port_mapping(fallback)
    return f"{host}:{container_port}"


def is_digit_char(ch: str) -> bool:
    return "0" <= ch <= "9"


def is_name_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch in "_-")


def is_path_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch in "/_-.")


def is_env_key_char(ch: str) -> bool:
    return ch.isascii() and (ch.isalnum() or ch == "_")


def is_local_path(source: str) -> bool:
    return source.startswith("./") or source.startswith("/")
