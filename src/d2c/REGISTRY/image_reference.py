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
Repository references on Docker Hub.
Turns 'namespace/repo' terms and search result names into a concrete pair.
"""

from typing import Optional, Tuple
from dataclasses import dataclass


def split_repo_name(name: str) -> Optional[Tuple[str, str]]:
    """
    Split a 'namespace/repo' string on its first slash.

    Both halves are trimmed and must be non-empty.

    Args:
        name: Repository name such as 'bitnami/nginx'

    Returns:
        (namespace, repo) or None if the name has no usable slash.
    """
    if "/" not in name:
        return None
    namespace, repo = name.split("/", 1)
    namespace, repo = namespace.strip(), repo.strip()
    if not namespace or not repo:
        return None
    return namespace, repo


@dataclass(frozen=True)
class ResolvedRepository:
    """
    A Docker Hub repository resolved from a free-text term.

    Examples:
        - nginx (official) -> library/nginx
        - bitnami/nginx -> bitnami/nginx
    """

    namespace: str
    repo: str

    OFFICIAL_NAMESPACE = "library"

    @classmethod
    def from_term(cls, term: str) -> Optional["ResolvedRepository"]:
        """
        Trust a term that already names a namespace.

        Args:
            term: User input, e.g. 'bitnami/postgresql'

        Returns:
            ResolvedRepository, or None if the term needs a search.
        """
        parts = split_repo_name(term.strip())
        if parts is None:
            return None
        return cls(namespace=parts[0], repo=parts[1])

    @classmethod
    def from_search_name(
        cls, repo_name: str, is_official: bool
    ) -> Optional["ResolvedRepository"]:
        """
        Parse a repo_name from the Docker Hub search API.

        Official images are listed without a namespace and live under 'library'.
        """
        parts = split_repo_name(repo_name)
        if parts is not None:
            return cls(namespace=parts[0], repo=parts[1])
        if is_official and repo_name.strip():
            return cls(namespace=cls.OFFICIAL_NAMESPACE, repo=repo_name.strip())
        return None

    @property
    def full_name(self) -> str:
        """Get the registry path, e.g. 'library/nginx'."""
        return f"{self.namespace}/{self.repo}"

    def image_ref(self, tag: str) -> str:
        """Get the image reference used in a compose file."""
        if self.namespace == self.OFFICIAL_NAMESPACE:
            return f"{self.repo}:{tag}"
        return f"{self.full_name}:{tag}"

    def __str__(self) -> str:
        return self.full_name
