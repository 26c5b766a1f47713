"""Minimalist function set of the Docker Registry HTTP API V2.

We must be able to list repositories and tags, to get tag digests, and to
delete manifests.

https://distribution.github.io/distribution/spec/api/
"""

import base64
import re
from collections.abc import Generator

import httpx

from ..config import RegistryAuth, ReaperConfig
from ..exceptions import (
    DigestConflictError,
    RegistryAuthError,
    RegistryError,
    RegistryNetworkError,
    RegistryNotFoundError,
    RegistryServerError,
    RegistryUnsupportedError,
)
from .registry import ContainerRegistryClient

MANIFEST_TYPES = (
    "application/vnd.docker.distribution.manifest.v2+json",
    "application/vnd.docker.distribution.manifest.list.v2+json",
    "application/vnd.oci.image.manifest.v1+json",
    "application/vnd.oci.image.index.v1+json",
)
"""Media types we accept, so that the digest we see is the one we delete."""

_CHALLENGE_PARAM = re.compile(r'(\w+)="([^"]*)"')


class RegistryTokenAuth(httpx.Auth):
    """HTTP Basic auth, plus the bearer token dance.

    Registries such as Docker Hub, GHCR, or a distribution registry with a
    token service answer 401 with a ``WWW-Authenticate: Bearer`` challenge
    naming a realm, a service, and a scope.  We fetch a token from the
    realm, presenting our credentials if we have any, and re-send the
    original request once with that token.
    """

    requires_response_body = True

    def __init__(self, auth: RegistryAuth) -> None:
        self._basic: str | None = None
        if auth.username:
            password = auth.password.get_secret_value() if auth.password else ""
            userpass = f"{auth.username}:{password}".encode()
            self._basic = f"Basic {base64.b64encode(userpass).decode()}"
        self._token: str | None = None

    def auth_flow(
        self, request: httpx.Request
    ) -> Generator[httpx.Request, httpx.Response, None]:
        if self._token:
            request.headers["authorization"] = f"Bearer {self._token}"
        elif self._basic:
            request.headers["authorization"] = self._basic
        response = yield request
        if response.status_code != 401:
            return
        scheme, _, challenge = response.headers.get(
            "www-authenticate", ""
        ).partition(" ")
        if scheme.lower() != "bearer":
            return
        params = dict(_CHALLENGE_PARAM.findall(challenge))
        realm = params.pop("realm", None)
        if not realm:
            return
        token_request = httpx.Request("GET", realm, params=params)
        if self._basic:
            token_request.headers["authorization"] = self._basic
        token_response = yield token_request
        if token_response.status_code != 200:
            # The caller sees the token service's refusal.
            return
        try:
            obj = token_response.json()
        except ValueError:
            obj = None
        token = None
        if isinstance(obj, dict):
            token = obj.get("token") or obj.get("access_token")
        if token:
            self._token = token
            request.headers["authorization"] = f"Bearer {token}"
        yield request


class DockerRegistryClient(ContainerRegistryClient):
    """Client for any registry speaking the distribution API."""

    def __init__(
        self,
        cfg: ReaperConfig,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        super().__init__()
        self._url = str(cfg.registry_url).rstrip("/")
        self.name = self._url
        self._page_size = cfg.page_size
        self._http_client = httpx.Client(
            base_url=self._url,
            auth=RegistryTokenAuth(cfg.auth or RegistryAuth()),
            headers={"accept": ",".join(("application/json", *MANIFEST_TYPES))},
            timeout=cfg.timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._http_client.close()

    def list_repositories(self) -> list[str]:
        return self._paginate("/v2/_catalog", "repositories")

    def list_tags(self, repository: str) -> list[str]:
        return self._paginate(f"/v2/{repository}/tags/list", "tags")

    def resolve_digest(self, repository: str, tag: str) -> str:
        r = self._request("HEAD", f"/v2/{repository}/manifests/{tag}")
        digest = r.headers.get("docker-content-digest")
        if not digest:
            raise RegistryError(
                f"Registry sent no digest for {repository}:{tag}",
                status=r.status_code,
            )
        self._logger.debug(f"Resolved {repository}:{tag} to {digest}")
        return digest

    def delete_manifest(self, repository: str, digest: str) -> None:
        self._request("DELETE", f"/v2/{repository}/manifests/{digest}")
        self._logger.debug(f"Deleted manifest {repository}@{digest}")

    def _paginate(self, path: str, key: str) -> list[str]:
        # Each page's Link header carries the cursor for the next one.
        results: list[str] = []
        next_page: str | None = path
        params: dict[str, int] | None = {"n": self._page_size}
        page = 1
        while next_page:
            self._logger.debug(f"Requesting {path}: page {page}")
            r = self._request("GET", next_page, params=params)
            try:
                obj = r.json()
            except ValueError as exc:
                raise RegistryError(
                    f"GET {next_page} returned invalid JSON: {exc}",
                    status=r.status_code,
                ) from exc
            if not isinstance(obj, dict):
                raise RegistryError(
                    f"GET {next_page} returned {type(obj).__name__},"
                    " not an object",
                    status=r.status_code,
                )
            results.extend(obj.get(key) or [])
            next_page = r.links.get("next", {}).get("url")
            params = None
            page += 1
        self._logger.debug(f"Found {len(results)} entries at {path}")
        return results

    def _request(
        self, method: str, url: str, params: dict[str, int] | None = None
    ) -> httpx.Response:
        try:
            r = self._http_client.request(method, url, params=params)
        except httpx.HTTPError as exc:
            raise RegistryNetworkError(
                f"{method} {url} failed: {type(exc).__name__}: {exc}"
            ) from exc
        if r.is_success:
            return r
        msg = f"{method} {url} returned {r.status_code}"
        match r.status_code:
            case 401 | 403:
                raise RegistryAuthError(msg, status=r.status_code)
            case 404:
                raise RegistryNotFoundError(msg, status=r.status_code)
            case 405:
                raise RegistryUnsupportedError(msg, status=r.status_code)
            case 409 | 412:
                raise DigestConflictError(msg, status=r.status_code)
            case status if status >= 500:
                raise RegistryServerError(msg, status=status)
            case _:
                raise RegistryError(msg, status=r.status_code)
