"""Pydantic models for Kubernetes objects and the stored configuration documents."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta
from typing import cast

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel

from meshup.domain.durations import format_seconds, parse_duration


class KubernetesBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ObjectMeta(KubernetesBaseModel):
    name: str = ""
    namespace: str | None = None
    labels: dict[str, str] = Field(default_factory=dict)
    annotations: dict[str, str] = Field(default_factory=dict)

    @field_validator("labels", "annotations", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return {} if value is None else value


class KubernetesObject(KubernetesBaseModel):
    api_version: str = Field(default="v1", alias="apiVersion")
    kind: str = ""
    metadata: ObjectMeta = Field(default_factory=ObjectMeta)


class ConfigMapObject(KubernetesObject):
    data: dict[str, str] = Field(default_factory=dict)

    @field_validator("data", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return {} if value is None else value


class SecretObject(KubernetesObject):
    """Secret payload; ``data`` is base64 encoded, ``stringData`` is plain text."""

    type: str | None = None
    data: dict[str, str] = Field(default_factory=dict)
    string_data: dict[str, str] = Field(default_factory=dict, alias="stringData")

    @field_validator("data", "string_data", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return {} if value is None else value


# Stored configuration documents


class DocumentModel(BaseModel):
    model_config = ConfigDict(
        extra="ignore",
        populate_by_name=True,
        alias_generator=to_camel,
    )


def _parse_duration_value(value: object) -> object:
    if value is None or value == "":
        return timedelta(0)
    if isinstance(value, str):
        return parse_duration(value)
    if isinstance(value, Mapping):
        mapping = cast(Mapping[str, object], value)
        seconds = int(str(mapping.get("seconds", 0)))
        nanos = int(str(mapping.get("nanos", 0)))
        return timedelta(seconds=seconds, microseconds=nanos // 1000)
    return value


class FlagDocument(DocumentModel):
    name: str
    value: str = ""


class InstallDocument(DocumentModel):
    uuid: str = ""
    cli_version: str = ""
    flags: list[FlagDocument] = Field(default_factory=list)

    @field_validator("flags", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return [] if value is None else value


class IdentityContextDocument(DocumentModel):
    trust_domain: str = ""
    trust_anchors_pem: str = ""
    issuance_lifetime: timedelta = timedelta(0)
    clock_skew_allowance: timedelta = timedelta(0)

    _parse_durations = field_validator(
        "issuance_lifetime", "clock_skew_allowance", mode="before"
    )(_parse_duration_value)

    @field_serializer("issuance_lifetime", "clock_skew_allowance")
    def _serialize_duration(self, value: timedelta) -> str:
        return format_seconds(value)


class AutoInjectContextDocument(DocumentModel):
    pass


class GlobalDocument(DocumentModel):
    control_plane_namespace: str = ""
    version: str = ""
    cni_enabled: bool = False
    identity_context: IdentityContextDocument | None = None
    auto_inject_context: AutoInjectContextDocument | None = None
    omit_webhook_side_effects: bool = False


class ProxyDocument(DocumentModel):
    proxy_image: str = ""
    proxy_version: str = ""
    log_level: str = ""
    proxy_uid: int = 0
    inbound_port: int = 0
    outbound_port: int = 0
    admin_port: int = 0
    control_port: int = 0
    ignore_inbound_ports: list[int] = Field(default_factory=list)
    ignore_outbound_ports: list[int] = Field(default_factory=list)

    @field_validator("ignore_inbound_ports", "ignore_outbound_ports", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return [] if value is None else value


__all__ = [
    "AutoInjectContextDocument",
    "ConfigMapObject",
    "FlagDocument",
    "GlobalDocument",
    "IdentityContextDocument",
    "InstallDocument",
    "KubernetesObject",
    "ObjectMeta",
    "ProxyDocument",
    "SecretObject",
]
