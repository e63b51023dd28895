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
Runtime settings for the registry client and the wizard.
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

ENV_PREFIX = "D2C_"


class Settings(BaseModel):
    """
    Settings built once at startup and passed to the registry client,
    the wizard session and the renderer.
    """
    auth_url: str = "https://auth.docker.io/token"
    auth_service: str = "registry.docker.io"
    registry_url: str = "https://registry-1.docker.io"
    hub_url: str = "https://hub.docker.com"

    search_page_size: int = 25
    tag_limit: int = 30
    output_file: str = "docker-compose.yaml"

    # None means no timeout; a hanging registry call blocks its worker.
    timeout: Optional[float] = None
    user_agent: str = "d2c/0.1.0"

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None, **overrides) -> "Settings":
        """
        Builds settings from defaults, D2C_* environment variables and overrides.

        :param dotenv_path: Optional .env file to load before reading the environment.
        :param overrides: Explicit values that win over the environment.
        :return: A Settings instance.
        """
        load_dotenv(dotenv_path)
        values = {}
        for name in cls.model_fields:
            raw = os.environ.get(f"{ENV_PREFIX}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)
