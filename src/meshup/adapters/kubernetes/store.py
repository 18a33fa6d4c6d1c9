"""Low-level readers for ConfigMaps and Secrets.

The upgrade reads these objects straight from the Kubernetes API rather than through
the control plane's public API, so an upgrade can proceed even when the control
plane is down. Reading them also serves as a passive permission check.
"""

from __future__ import annotations

import base64
import binascii
from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from meshup.domain.errors import FetchError

from .schema import ConfigMapObject, SecretObject

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType

    from meshup.config import ClusterConfig

log = getLogger(__name__)

_STATUS_REASONS: dict[int, str] = {
    401: "unauthorized",
    403: "forbidden",
    404: "not found",
}


@runtime_checkable
class ClusterStore(Protocol):
    """Read-only access to namespaced ConfigMaps and Secrets.

    Both methods raise :class:`FetchError` when the object cannot be read.
    """

    def get_config_map(self, namespace: str, name: str) -> Mapping[str, str]:
        ...

    def get_secret(self, namespace: str, name: str) -> Mapping[str, bytes]:
        ...


def decode_secret_data(secret: SecretObject) -> dict[str, bytes]:
    """Return the secret's fields as bytes, preferring ``stringData`` entries."""

    name = secret.metadata.name
    values: dict[str, bytes] = {}
    for key, encoded in secret.data.items():
        try:
            values[key] = base64.b64decode(encoded, validate=True)
        except binascii.Error as exc:
            raise FetchError(f"secret {name} field {key!r} is not valid base64") from exc
    for key, text in secret.string_data.items():
        values[key] = text.encode("utf-8")
    return values


def _default_client_factory(config: ClusterConfig) -> httpx.Client:
    return httpx.Client(
        base_url=config.server,
        headers=config.default_headers(),
        verify=config.ssl_context(),
        timeout=config.timeout_seconds,
    )


@dataclass(slots=True)
class KubernetesApiStore:
    """:class:`ClusterStore` backed by the Kubernetes REST API."""

    config: ClusterConfig
    client_factory: Callable[[ClusterConfig], httpx.Client] = field(
        default=_default_client_factory
    )
    _client: httpx.Client | None = field(default=None, init=False, repr=False)

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def get_config_map(self, namespace: str, name: str) -> Mapping[str, str]:
        path = f"/api/v1/namespaces/{quote(namespace)}/configmaps/{quote(name)}"
        config_map = self._get(path, ConfigMapObject, what=f"configmap {namespace}/{name}")
        return config_map.data

    def get_secret(self, namespace: str, name: str) -> Mapping[str, bytes]:
        path = f"/api/v1/namespaces/{quote(namespace)}/secrets/{quote(name)}"
        secret = self._get(path, SecretObject, what=f"secret {namespace}/{name}")
        return decode_secret_data(secret)

    def _http(self) -> httpx.Client:
        if self._client is None:
            self._client = self.client_factory(self.config)
        return self._client

    def _get[ModelT: BaseModel](self, path: str, model: type[ModelT], *, what: str) -> ModelT:
        log.debug("GET %s%s", self.config.server, path)
        try:
            response = self._http().get(path)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            reason = _STATUS_REASONS.get(status, f"HTTP {status}")
            raise FetchError(f"could not read {what}: {reason}") from exc
        except httpx.HTTPError as exc:
            raise FetchError(
                f"could not reach the Kubernetes API at {self.config.server}: {exc}"
            ) from exc

        try:
            return model.model_validate_json(response.content)
        except ValidationError as exc:
            raise FetchError(f"unexpected payload for {what}: {exc}") from exc


__all__ = ["ClusterStore", "KubernetesApiStore", "decode_secret_data"]
