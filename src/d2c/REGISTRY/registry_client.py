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
Docker Hub client for resolving repositories and inspecting tags.
Implements the parts of the Docker Registry HTTP API V2 the wizard needs.
"""

import http.client
import json
import logging
import re
from typing import Optional, Dict, List, Any, Tuple
from urllib.request import urlopen, Request
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode, urljoin

from pydantic import BaseModel, ValidationError as PydanticValidationError

from ..config import Settings
from ..exceptions import DecodeError, NetworkError
from .image_reference import ResolvedRepository
from .repository_search import SearchResponse, pick_best
from .tag_ranker import filter_tags

logger = logging.getLogger(__name__)

OCI_INDEX = "application/vnd.oci.image.index.v1+json"
OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
DOCKER_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"
DOCKER_MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"

MANIFEST_ACCEPT = ", ".join(
    [OCI_INDEX, OCI_MANIFEST, DOCKER_MANIFEST_LIST, DOCKER_MANIFEST_V2]
)

PREFERRED_PLATFORM = ("linux", "amd64")

_NEXT_LINK = re.compile(r'<([^>]+)>\s*;\s*rel="?next"?')


class TokenResponse(BaseModel):
    token: str


class TagsListResponse(BaseModel):
    tags: Optional[List[str]] = None


class RegistryClient:
    """
    Client for Docker Hub search and the registry-1.docker.io V2 API.
    One instance is built at startup and shared by the CLI and the wizard.
    """

    def __init__(self, settings: Optional[Settings] = None):
        """
        Initialize the registry client.

        Args:
            settings: Endpoints and limits. Defaults to Settings().
        """
        self.settings = settings or Settings()

    def _request(
        self, url: str, token: Optional[str] = None, accept: Optional[str] = None
    ) -> Tuple[bytes, Dict[str, str]]:
        """Make a GET request and return the body and response headers."""
        request = Request(url)
        request.add_header("User-Agent", self.settings.user_agent)
        if token:
            request.add_header("Authorization", f"Bearer {token}")
        if accept:
            request.add_header("Accept", accept)

        logger.debug("GET %s", url)
        try:
            if self.settings.timeout is None:
                response = urlopen(request)
            else:
                response = urlopen(request, timeout=self.settings.timeout)
            with response:
                headers = dict(response.headers or {})
                return response.read(), headers
        except HTTPError as e:
            raise NetworkError(f"{url} returned HTTP {e.code}") from e
        except (URLError, OSError) as e:
            reason = getattr(e, "reason", e)
            raise NetworkError(f"request to {url} failed: {reason}") from e
        except (http.client.HTTPException, ValueError) as e:
            # Malformed URLs and truncated bodies surface outside URLError.
            raise NetworkError(f"request to {url} failed: {e}") from e

    def _repository_url(self, repository: ResolvedRepository, path: str) -> str:
        namespace = quote(repository.namespace, safe="")
        repo = quote(repository.repo, safe="")
        return f"{self.settings.registry_url}/v2/{namespace}/{repo}/{path}"

    def _get_json(
        self, url: str, token: Optional[str] = None, accept: Optional[str] = None
    ) -> Tuple[Any, Dict[str, str]]:
        content, headers = self._request(url, token, accept)
        try:
            return json.loads(content.decode("utf-8")), headers
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DecodeError(f"malformed JSON from {url}: {e}") from e

    def _get_model(self, model, url: str, token: Optional[str] = None):
        data, headers = self._get_json(url, token)
        try:
            return model.model_validate(data), headers
        except PydanticValidationError as e:
            raise DecodeError(f"unexpected response from {url}") from e

    def _get_pull_token(self, repository: ResolvedRepository) -> str:
        """Get a pull-only bearer token scoped to one repository."""
        params = {
            "service": self.settings.auth_service,
            "scope": f"repository:{repository.full_name}:pull",
        }
        url = f"{self.settings.auth_url}?{urlencode(params)}"
        response, _ = self._get_model(TokenResponse, url)
        return response.token

    def resolve(self, term: str) -> Optional[ResolvedRepository]:
        """
        Resolve a free-text image term to a repository.

        Args:
            term: What the user typed, e.g. 'nginx' or 'bitnami/redis'

        Returns:
            The resolved repository, or None if nothing matched.
        """
        term = term.strip()
        if not term:
            return None

        direct = ResolvedRepository.from_term(term)
        if direct is not None:
            return direct

        params = {"query": term, "page_size": self.settings.search_page_size}
        url = f"{self.settings.hub_url}/v2/search/repositories/?{urlencode(params)}"
        response, _ = self._get_model(SearchResponse, url)
        resolved = pick_best(response.results, term)
        logger.debug("resolved %r -> %s", term, resolved)
        return resolved

    def list_tags(self, namespace: str, repo: str) -> List[str]:
        """
        List all tags of a repository.

        Args:
            namespace: Repository namespace ('library' for official images)
            repo: Repository name

        Returns:
            Tags in registry order.
        """
        repository = ResolvedRepository(namespace=namespace, repo=repo)
        token = self._get_pull_token(repository)

        tags: List[str] = []
        url: Optional[str] = (
            self._repository_url(repository, "tags/list")
        )
        while url:
            response, headers = self._get_model(TagsListResponse, url, token)
            tags.extend(response.tags or [])
            url = self._next_page(url, headers)
        return tags

    def _next_page(self, url: str, headers: Dict[str, str]) -> Optional[str]:
        """Follow an RFC 5988 Link header, if the registry paginates."""
        link = headers.get("Link") or headers.get("link")
        if not link:
            return None
        match = _NEXT_LINK.search(link)
        if not match:
            return None
        return urljoin(url, match.group(1))

    def get_manifest(
        self, repository: ResolvedRepository, reference: str, token: str
    ) -> Dict[str, Any]:
        """
        Get the image manifest for a tag or digest.

        Multi-platform indexes are resolved to the linux/amd64 entry, or the
        first entry when that platform is not published.
        """
        url = self._repository_url(repository, f"manifests/{quote(reference, safe=':')}")
        manifest, _ = self._get_json(url, token, MANIFEST_ACCEPT)
        if not isinstance(manifest, dict):
            raise DecodeError(f"manifest for {repository}:{reference} is not an object")

        if "manifests" in manifest and "config" not in manifest:
            digest = self._select_platform_digest(manifest)
            manifest, _ = self._get_json(
                self._repository_url(repository, f"manifests/{digest}"),
                token,
                MANIFEST_ACCEPT,
            )
            if not isinstance(manifest, dict):
                raise DecodeError(f"manifest {digest} is not an object")

        return manifest

    def _select_platform_digest(self, index: Dict[str, Any]) -> str:
        """Pick the digest of the preferred platform from a manifest index."""
        entries = index.get("manifests") or []
        if not isinstance(entries, list) or not entries:
            raise DecodeError("manifest index has no entries")

        for entry in entries:
            if not isinstance(entry, dict):
                continue
            platform = entry.get("platform") or {}
            if (platform.get("os"), platform.get("architecture")) == PREFERRED_PLATFORM:
                chosen = entry
                break
        else:
            chosen = entries[0]

        digest = chosen.get("digest") if isinstance(chosen, dict) else None
        if not digest:
            raise DecodeError("manifest index entry has no digest")
        return digest

    def get_config(
        self, repository: ResolvedRepository, manifest: Dict[str, Any], token: str
    ) -> Dict[str, Any]:
        """
        Get the image configuration blob referenced by a manifest.
        """
        config = manifest.get("config") or {}
        digest = config.get("digest", "") if isinstance(config, dict) else ""
        if not digest:
            raise DecodeError("No config digest in manifest")

        url = self._repository_url(repository, f"blobs/{digest}")
        blob, _ = self._get_json(url, token)
        if not isinstance(blob, dict):
            raise DecodeError(f"config blob {digest} is not an object")
        return blob

    def list_exposed_ports(self, namespace: str, repo: str, tag: str) -> List[int]:
        """
        List the ports an image tag declares with EXPOSE.

        Args:
            namespace: Repository namespace
            repo: Repository name
            tag: Tag to inspect

        Returns:
            Sorted, de-duplicated port numbers. Empty if none are declared.
        """
        repository = ResolvedRepository(namespace=namespace, repo=repo)
        token = self._get_pull_token(repository)
        manifest = self.get_manifest(repository, tag, token)
        config = self.get_config(repository, manifest, token)
        return parse_exposed_ports(config)

    def search_tags(
        self, namespace: str, repo: str, query: str, limit: int
    ) -> List[str]:
        """List a repository's tags and rank them against a query."""
        return filter_tags(self.list_tags(namespace, repo), query, limit)

    def auto_search_tags(
        self, term: str, query: str, limit: int
    ) -> Optional[Tuple[ResolvedRepository, List[str]]]:
        """Resolve a term, then list and rank the repository's tags."""
        resolved = self.resolve(term)
        if resolved is None:
            return None
        return resolved, self.search_tags(resolved.namespace, resolved.repo, query, limit)


def parse_exposed_ports(config: Dict[str, Any]) -> List[int]:
    """
    Extract port numbers from an image config's ExposedPorts mapping.

    Keys look like '80/tcp'; entries without a numeric port are skipped.
    """
    container_config = config.get("config") or {}
    exposed = container_config.get("ExposedPorts") if isinstance(container_config, dict) else None
    if not isinstance(exposed, dict):
        return []

    ports = set()
    for key in exposed:
        port = str(key).split("/", 1)[0]
        if port.isascii() and port.isdigit():
            ports.add(int(port))
    return sorted(ports)
