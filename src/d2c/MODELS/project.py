"""
Model for the compose project being authored.
"""
from typing import List, Optional
from pydantic import BaseModel
from .service_definition import ServiceEntry, VolumeEntry

BASE_HOST_PORT = 8000
DEFAULT_CONTAINER_PORT = 80


class ProjectModel(BaseModel):
    """
    Ordered services and named volumes of one compose file.
    Insertion order is display order and emission order.
    """
    services: List[ServiceEntry] = []
    volumes: List[VolumeEntry] = []

    def next_port_mapping(self) -> str:
        """
        Default mapping for the next service: host ports count up from 8000.
        """
        return f"{BASE_HOST_PORT + len(self.services)}:{DEFAULT_CONTAINER_PORT}"

    def total_exposed_ports(self) -> int:
        return sum(1 for svc in self.services if ":" in svc.port_mapping)

    def get_service(self, index: int) -> Optional[ServiceEntry]:
        if 0 <= index < len(self.services):
            return self.services[index]
        return None

    def add_service(self, service: ServiceEntry) -> int:
        """
        Appends a service.

        :return: Index of the new service.
        """
        self.services.append(service)
        return len(self.services) - 1

    def replace_service(self, index: int, service: ServiceEntry) -> bool:
        if not 0 <= index < len(self.services):
            return False
        self.services[index] = service
        return True

    def remove_service(self, index: int) -> Optional[ServiceEntry]:
        """
        Removes the service at `index`; out of range is a no-op.

        :return: The removed service, or None.
        """
        if not 0 <= index < len(self.services):
            return None
        return self.services.pop(index)

    def has_volume(self, name: str) -> bool:
        return any(volume.name == name for volume in self.volumes)

    def add_volume(self, name: str) -> int:
        """
        Declares a named volume.

        :return: Index of the new volume.
        """
        self.volumes.append(VolumeEntry(name=name))
        return len(self.volumes) - 1

    def ensure_volume(self, name: str) -> Optional[int]:
        """
        Declares a named volume the first time it is referenced.

        :return: Index of the new volume, or None if it was already declared.
        """
        if self.has_volume(name):
            return None
        return self.add_volume(name)

    def volume_users(self, name: str) -> List[str]:
        """
        Names of the services that mount the named volume.
        """
        return [
            svc.service_name
            for svc in self.services
            if any(m.source == name and not m.is_bind_mount for m in svc.mounts)
        ]

    def remove_volume(self, index: int) -> Optional[VolumeEntry]:
        if not 0 <= index < len(self.volumes):
            return None
        return self.volumes.pop(index)

    def default_volume_name(self) -> str:
        return f"volume_{len(self.volumes) + 1}"

    def compose_yaml(self) -> str:
        """
        Renders the project as docker-compose YAML text.
        """
        from ..CONVERTERS.to_compose import ComposeConverter

        return ComposeConverter(self).render()
