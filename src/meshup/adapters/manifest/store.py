"""In-memory cluster store synthesised from previously rendered manifests."""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import ValidationError

from meshup.adapters.kubernetes.schema import ConfigMapObject, ObjectMeta, SecretObject
from meshup.adapters.kubernetes.store import decode_secret_data
from meshup.domain.errors import FetchError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

log = getLogger(__name__)

_MANIFEST_SUFFIXES = frozenset({".yaml", ".yml", ".json"})

type ObjectKey = tuple[str, str]


@dataclass(slots=True)
class ManifestStore:
    """:class:`meshup.adapters.kubernetes.ClusterStore` over parsed manifest documents.

    Objects without a namespace are filed under ``default_namespace``.
    """

    default_namespace: str
    config_maps: dict[ObjectKey, ConfigMapObject] = field(default_factory=dict)
    secrets: dict[ObjectKey, SecretObject] = field(default_factory=dict)

    @classmethod
    def from_text(
        cls, text: str, *, default_namespace: str, source: str = "<text>"
    ) -> ManifestStore:
        store = cls(default_namespace=default_namespace)
        try:
            documents = list(yaml.safe_load_all(text))
        except yaml.YAMLError as exc:
            raise FetchError(f"could not parse manifests from {source}: {exc}") from exc
        for document in _flatten(documents, source=source):
            store.add(document, source=source)
        return store

    @classmethod
    def from_source(cls, source: str, *, default_namespace: str) -> ManifestStore:
        """Load manifests from a file, a directory of manifests, or ``-`` for stdin."""

        label = "stdin" if source == "-" else source
        try:
            text = _read_source(source)
        except (OSError, UnicodeDecodeError) as exc:
            raise FetchError(f"could not read manifests from {label}: {exc}") from exc
        return cls.from_text(text, default_namespace=default_namespace, source=label)

    def add(self, document: Mapping[str, Any], *, source: str = "<text>") -> None:
        kind = document.get("kind")
        try:
            if kind == "ConfigMap":
                config_map = ConfigMapObject.model_validate(document)
                self.config_maps[self._key(config_map.metadata)] = config_map
            elif kind == "Secret":
                secret = SecretObject.model_validate(document)
                self.secrets[self._key(secret.metadata)] = secret
            else:
                log.debug("Skipping %s object from %s", kind, source)
        except ValidationError as exc:
            raise FetchError(f"invalid {kind} object in {source}: {exc}") from exc

    def get_config_map(self, namespace: str, name: str) -> Mapping[str, str]:
        config_map = self.config_maps.get((namespace, name))
        if config_map is None:
            raise FetchError(
                f"could not read configmap {namespace}/{name}: not found in manifests"
            )
        return config_map.data

    def get_secret(self, namespace: str, name: str) -> Mapping[str, bytes]:
        secret = self.secrets.get((namespace, name))
        if secret is None:
            raise FetchError(
                f"could not read secret {namespace}/{name}: not found in manifests"
            )
        return decode_secret_data(secret)

    def _key(self, metadata: ObjectMeta) -> ObjectKey:
        return (metadata.namespace or self.default_namespace, metadata.name)


def _read_source(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    path = Path(source).expanduser()
    if path.is_dir():
        files = sorted(p for p in path.iterdir() if p.suffix in _MANIFEST_SUFFIXES)
        return "\n---\n".join(p.read_text(encoding="utf-8") for p in files)
    return path.read_text(encoding="utf-8")


def _flatten(documents: Iterable[object], *, source: str) -> Iterator[Mapping[str, Any]]:
    for document in documents:
        if document is None:
            continue
        if not isinstance(document, dict):
            raise FetchError(f"manifest documents in {source} must be mappings")
        if str(document.get("kind", "")).endswith("List"):
            yield from _flatten(document.get("items") or (), source=source)
            continue
        yield document


__all__ = ["ManifestStore"]
