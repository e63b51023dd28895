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
Parser that loads an existing Docker Compose file into the project model.
Only the subset the wizard edits is kept: image, one port mapping, string
volume mounts, environment and top-level named volumes.
"""
import logging
import yaml
from typing import Dict, Any, List, Optional, Tuple
from ..MODELS.project import ProjectModel
from ..MODELS.service_definition import EnvVar, ServiceEntry, VolumeMount, is_port_mapping

logger = logging.getLogger(__name__)


class ComposeParser:
    """
    Parser for docker-compose.yml files.
    """

    def parse(self, compose_path: str) -> ProjectModel:
        """
        Parses a compose file from a path.

        :param compose_path: Path to the compose file.
        :return: Parsed project.
        """
        with open(compose_path, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse_from_string(content)

    def parse_from_string(self, content: str) -> ProjectModel:
        """
        Parses a compose file from a string.

        :param content: YAML content of the compose file.
        :return: Parsed project.
        :raises ValueError: If the document is not a mapping.
        """
        data = yaml.safe_load(content)
        if not data:
            data = {}
        if not isinstance(data, dict):
            raise ValueError("compose document must be a mapping")

        project = ProjectModel()
        for name, spec in (data.get('services') or {}).items():
            project.add_service(self._parse_service(str(name), spec or {}, len(project.services)))

        for name in (data.get('volumes') or {}):
            project.ensure_volume(str(name))

        for svc in project.services:
            for mount in svc.mounts:
                if not mount.is_bind_mount:
                    project.ensure_volume(mount.source)

        return project

    def _parse_service(self, name: str, spec: Dict[str, Any], position: int) -> ServiceEntry:
        """
        Parses a single service definition from a compose file.

        :param name: The name of the service.
        :param spec: The service specification dictionary.
        :param position: Number of services parsed before this one.
        :return: A ServiceEntry instance.
        """
        namespace, repo, tag = self._split_image(str(spec.get('image', '')))

        # Ports
        mapping = None
        ports = spec.get('ports') or []
        if ports:
            first = ports[0]
            if isinstance(first, dict):
                published, target = first.get('published'), first.get('target')
                mapping = f"{published}:{target}" if published and target else None
            else:
                mapping = str(first).split('/', 1)[0]
                if ':' not in mapping:
                    mapping = f"{mapping}:{mapping}"
        if mapping is None or not is_port_mapping(mapping):
            fallback = f"{8000 + position}:80"
            if ports:
                logger.warning("service %s: unsupported port %r, using %s", name, ports[0], fallback)
            mapping = fallback
        if len(ports) > 1:
            logger.warning("service %s: only the first port mapping is kept", name)

        # Volumes
        mounts = []
        for v in spec.get('volumes') or []:
            if isinstance(v, str):
                parts = v.split(':')
                if len(parts) >= 2:
                    mounts.append(VolumeMount(source=parts[0], target=parts[1]))
            elif isinstance(v, dict) and v.get('source') and v.get('target'):
                mounts.append(VolumeMount(source=v['source'], target=v['target']))

        # Environment
        env_vars: List[EnvVar] = []
        env_spec = spec.get('environment') or []
        if isinstance(env_spec, list):
            for e in env_spec:
                k, _, v = str(e).partition('=')
                env_vars.append(EnvVar(key=k, value=v))
        elif isinstance(env_spec, dict):
            env_vars = [EnvVar(key=str(k), value='' if v is None else str(v)) for k, v in env_spec.items()]

        return ServiceEntry(
            service_name=name,
            namespace=namespace,
            repo=repo,
            tag=tag,
            port_mapping=mapping,
            mounts=mounts,
            env_vars=env_vars,
        )

    def _split_image(self, image: str) -> Tuple[str, str, str]:
        """
        Splits an image reference into namespace, repository and tag.

        :param image: e.g. 'nginx:1.25' or 'bitnami/redis:7.2'
        :return: (namespace, repo, tag); the tag defaults to 'latest'.
        """
        tag: Optional[str] = None
        last_colon = image.rfind(':')
        if last_colon != -1 and '/' not in image[last_colon + 1:]:
            image, tag = image[:last_colon], image[last_colon + 1:]

        if '/' in image:
            namespace, repo = image.split('/', 1)
        else:
            namespace, repo = 'library', image
        return namespace, repo, tag or 'latest'
