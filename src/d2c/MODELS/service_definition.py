"""
Models for services, their mounts and environment variables.
"""
import re
from typing import List
from pydantic import BaseModel

PORT_MAPPING = re.compile(r"^[0-9]+:[0-9]+$")

BIND_PREFIXES = ("./", "../", "/", "~")


class VolumeMount(BaseModel):
    """
    Defines a mapping between a named volume or host path and a service path.
    """
    source: str
    target: str

    @property
    def is_bind_mount(self) -> bool:
        """True when the source is a host path rather than a named volume."""
        return self.source.startswith(BIND_PREFIXES)


class EnvVar(BaseModel):
    """
    A single KEY=value environment entry.
    """
    key: str
    value: str = ""


class VolumeEntry(BaseModel):
    """
    A named volume declared at the top level of the compose file.
    """
    name: str


class ServiceEntry(BaseModel):
    """
    One configured image, emitted as a service in the compose file.
    """
    service_name: str
    namespace: str
    repo: str
    tag: str

    # Always "<host>:<container>", digits only.
    port_mapping: str

    mounts: List[VolumeMount] = []
    env_vars: List[EnvVar] = []

    @property
    def image_ref(self) -> str:
        """Image reference as written in the compose file."""
        if self.namespace == "library":
            return f"{self.repo}:{self.tag}"
        return f"{self.namespace}/{self.repo}:{self.tag}"

    @property
    def display_name(self) -> str:
        return f"{self.namespace}/{self.repo}:{self.tag}"

    def set_env(self, key: str, value: str) -> bool:
        """
        Sets an environment variable, replacing an existing entry with the same key.

        :return: True if the key was already present.
        """
        for env in self.env_vars:
            if env.key == key:
                env.value = value
                return True
        self.env_vars.append(EnvVar(key=key, value=value))
        return False


def is_port_mapping(value: str) -> bool:
    return bool(PORT_MAPPING.match(value))
