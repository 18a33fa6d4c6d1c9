"""Translate stored configuration documents to and from domain models."""

from __future__ import annotations

import json
from logging import getLogger
from typing import TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from meshup.domain.errors import FetchError
from meshup.domain.model import (
    ControlPlaneConfig,
    GlobalConfig,
    IdentityContext,
    InstallRecord,
    ProxyConfig,
    RecordedFlag,
)

from .schema import (
    AutoInjectContextDocument,
    FlagDocument,
    GlobalDocument,
    IdentityContextDocument,
    InstallDocument,
    ProxyDocument,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

log = getLogger(__name__)

GLOBAL_KEY = "global"
PROXY_KEY = "proxy"
INSTALL_KEY = "install"


def decode_configs(data: Mapping[str, str]) -> ControlPlaneConfig:
    """Decode the JSON documents stored in the configuration ConfigMap.

    ``global`` is required. ``proxy`` and ``install`` may be absent on clusters
    installed by older versions; they decode to empty values for later repair.
    """

    raw_global = data.get(GLOBAL_KEY)
    if not raw_global:
        raise FetchError(f"stored configuration has no {GLOBAL_KEY!r} document")
    global_doc = _decode(GlobalDocument, GLOBAL_KEY, raw_global)
    proxy_doc = _decode_optional(ProxyDocument, PROXY_KEY, data.get(PROXY_KEY))
    install_doc = _decode_optional(InstallDocument, INSTALL_KEY, data.get(INSTALL_KEY))
    if not data.get(INSTALL_KEY):
        log.info("Stored configuration has no install record")

    return ControlPlaneConfig(
        install=install_from_document(install_doc),
        global_config=global_from_documents(global_doc, proxy_doc),
    )


def encode_configs(configs: ControlPlaneConfig) -> dict[str, str]:
    """Serialise ``configs`` into ConfigMap data, the inverse of :func:`decode_configs`."""

    global_doc, proxy_doc = documents_from_global(configs.global_config)
    return {
        GLOBAL_KEY: _encode(global_doc),
        PROXY_KEY: _encode(proxy_doc),
        INSTALL_KEY: _encode(document_from_install(configs.install)),
    }


def install_from_document(document: InstallDocument) -> InstallRecord:
    return InstallRecord(
        uuid=document.uuid,
        cli_version=document.cli_version,
        flags=tuple(RecordedFlag(name=flag.name, value=flag.value) for flag in document.flags),
    )


def document_from_install(install: InstallRecord) -> InstallDocument:
    return InstallDocument(
        uuid=install.uuid,
        cli_version=install.cli_version,
        flags=[FlagDocument(name=flag.name, value=flag.value) for flag in install.flags],
    )


def global_from_documents(global_doc: GlobalDocument, proxy_doc: ProxyDocument) -> GlobalConfig:
    identity_doc = global_doc.identity_context
    identity_context = None
    if identity_doc is not None:
        identity_context = IdentityContext(
            trust_domain=identity_doc.trust_domain,
            trust_anchors_pem=identity_doc.trust_anchors_pem,
            clock_skew_allowance=identity_doc.clock_skew_allowance,
            issuance_lifetime=identity_doc.issuance_lifetime,
        )
    return GlobalConfig(
        namespace=global_doc.control_plane_namespace,
        version=global_doc.version,
        cni_enabled=global_doc.cni_enabled,
        auto_inject=global_doc.auto_inject_context is not None,
        omit_webhook_side_effects=global_doc.omit_webhook_side_effects,
        proxy=ProxyConfig(
            image=proxy_doc.proxy_image,
            version=proxy_doc.proxy_version,
            log_level=proxy_doc.log_level,
            uid=proxy_doc.proxy_uid,
            inbound_port=proxy_doc.inbound_port,
            outbound_port=proxy_doc.outbound_port,
            admin_port=proxy_doc.admin_port,
            control_port=proxy_doc.control_port,
            ignore_inbound_ports=tuple(proxy_doc.ignore_inbound_ports),
            ignore_outbound_ports=tuple(proxy_doc.ignore_outbound_ports),
        ),
        identity_context=identity_context,
    )


def documents_from_global(global_config: GlobalConfig) -> tuple[GlobalDocument, ProxyDocument]:
    context = global_config.identity_context
    identity_doc = None
    if context is not None:
        identity_doc = IdentityContextDocument(
            trust_domain=context.trust_domain,
            trust_anchors_pem=context.trust_anchors_pem,
            issuance_lifetime=context.issuance_lifetime,
            clock_skew_allowance=context.clock_skew_allowance,
        )
    proxy = global_config.proxy
    global_doc = GlobalDocument(
        control_plane_namespace=global_config.namespace,
        version=global_config.version,
        cni_enabled=global_config.cni_enabled,
        identity_context=identity_doc,
        auto_inject_context=AutoInjectContextDocument() if global_config.auto_inject else None,
        omit_webhook_side_effects=global_config.omit_webhook_side_effects,
    )
    proxy_doc = ProxyDocument(
        proxy_image=proxy.image,
        proxy_version=proxy.version,
        log_level=proxy.log_level,
        proxy_uid=proxy.uid,
        inbound_port=proxy.inbound_port,
        outbound_port=proxy.outbound_port,
        admin_port=proxy.admin_port,
        control_port=proxy.control_port,
        ignore_inbound_ports=list(proxy.ignore_inbound_ports),
        ignore_outbound_ports=list(proxy.ignore_outbound_ports),
    )
    return global_doc, proxy_doc


def _decode[ModelT: BaseModel](model: type[ModelT], key: str, raw: str) -> ModelT:
    try:
        return model.model_validate_json(raw)
    except ValidationError as exc:
        raise FetchError(f"could not decode stored {key!r} configuration: {exc}") from exc


def _decode_optional[ModelT: BaseModel](model: type[ModelT], key: str, raw: str | None) -> ModelT:
    if not raw:
        return model()
    return _decode(model, key, raw)


def _encode(document: BaseModel) -> str:
    payload = document.model_dump(mode="json", by_alias=True, exclude_none=True)
    return json.dumps(payload, sort_keys=True)


__all__ = [
    "GLOBAL_KEY",
    "INSTALL_KEY",
    "PROXY_KEY",
    "decode_configs",
    "document_from_install",
    "documents_from_global",
    "encode_configs",
    "global_from_documents",
    "install_from_document",
]
