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
Converter that emits the project model as a docker-compose.yaml document.
"""
import logging
import os
from jinja2 import Environment
from ..MODELS.project import ProjectModel

logger = logging.getLogger(__name__)

COMPOSE_TEMPLATE = """services:
{% if not services %}
  # No services yet
  # Press n in Images tab to add one
{% endif %}
{% for svc in services %}
  {{ svc.service_name }}:
    image: {{ svc.image_ref }}
    ports:
      - "{{ svc.port_mapping }}"
{% if svc.mounts %}
    volumes:
{% for mount in svc.mounts %}
      - "{{ mount.source }}:{{ mount.target }}"
{% endfor %}
{% endif %}
{% if svc.env_vars %}
    environment:
{% for env in svc.env_vars %}
      - {{ env.key }}={{ env.value }}
{% endfor %}
{% endif %}
{% endfor %}
{% if services and volumes %}

volumes:
{% for volume in volumes %}
  {{ volume.name }}:
{% endfor %}
{% endif %}
"""

_environment = Environment(trim_blocks=True, lstrip_blocks=True, autoescape=False)


class ComposeConverter:
    """
    Renders a ProjectModel into compose file text and writes it to disk.
    """

    def __init__(self, project: ProjectModel):
        """
        Initializes the compose converter.

        :param project: The project to render.
        """
        self.project = project
        self.template = _environment.from_string(COMPOSE_TEMPLATE)

    def render(self) -> str:
        """
        Renders the compose document.

        :return: The YAML text, ending with a newline.
        """
        return self.template.render(
            services=self.project.services,
            volumes=self.project.volumes,
        )

    def convert(self, output_path: str = "docker-compose.yaml") -> str:
        """
        Writes the compose document.

        :param output_path: Where to write the file.
        :return: The absolute path written.
        :raises OSError: If the file cannot be written.
        """
        content = self.render()
        with open(output_path, "w", encoding="utf-8") as f:
            f.write(content)

        path = os.path.abspath(output_path)
        logger.info("wrote %s (%d services)", path, len(self.project.services))
        return path
