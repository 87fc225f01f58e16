import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Optional, Tuple

from cdn_assembly.config import (
    DEFAULT_HTTP_PORT,
    DEFAULT_HTTPS_PORT,
    DEFAULT_ORIGIN_KEEPALIVE_TIMEOUT,
    DEFAULT_ORIGIN_READ_TIMEOUT,
)
from cdn_assembly.errors import (
    MissingRequiredOrigin,
    MissingShieldRegion,
    StrategyNotImplemented,
    UnsupportedOriginKind,
)
from cdn_assembly.policies import (
    OriginProtocol,
    OriginSslProtocol,
    select_origin_protocol,
    select_origin_ssl_protocols,
    validate_shield_region,
)

logger = logging.getLogger(__name__)


class OriginKind(str, Enum):
    S3 = "S3"
    S3_WEBSITE = "S3_WEBSITE"
    HTTP = "HTTP"
    LOAD_BALANCER = "LOAD_BALANCER"
    API = "API"


_ORIGIN_KIND_ALIASES = {
    "HTTPS": OriginKind.HTTP,
    "ALB": OriginKind.LOAD_BALANCER,
}

STORAGE_ORIGIN_KINDS = frozenset([OriginKind.S3, OriginKind.S3_WEBSITE])
CUSTOM_ORIGIN_KINDS = frozenset([OriginKind.HTTP, OriginKind.LOAD_BALANCER])

# Field on the configuration that carries the origin for each kind.
ORIGIN_REFERENCE_FIELDS = {
    OriginKind.S3: "bucket",
    OriginKind.S3_WEBSITE: "bucket",
    OriginKind.HTTP: "origin_domain_name",
    OriginKind.LOAD_BALANCER: "load_balancer_dns_name",
    OriginKind.API: "api_origin",
}
REFERENCE_FIELD_NAMES = (
    "bucket",
    "origin_domain_name",
    "load_balancer_dns_name",
    "api_origin",
)


@dataclass(frozen=True)
class OriginDescriptor:
    kind: OriginKind
    origin_id: str
    reference: Any
    origin_path: Optional[str] = None
    access_control: bool = False
    protocol_policy: Optional[OriginProtocol] = None
    http_port: Optional[int] = None
    https_port: Optional[int] = None
    read_timeout: Optional[int] = None
    keepalive_timeout: Optional[int] = None
    ssl_protocols: Tuple[OriginSslProtocol, ...] = ()
    shield_region: Optional[str] = None

    @property
    def shield_enabled(self) -> bool:
        return self.shield_region is not None


def parse_origin_kind(value) -> OriginKind:
    if isinstance(value, OriginKind):
        return value
    key = str(value or "").strip().upper()
    kind = _ORIGIN_KIND_ALIASES.get(key)
    if kind is None:
        try:
            kind = OriginKind(key)
        except ValueError:
            raise UnsupportedOriginKind(f"Unsupported origin kind: {value!r}") from None
    return kind


def _populated(value) -> bool:
    return value is not None and value != ""


def require_origin_reference(source, kind: OriginKind):
    """Return the single origin reference on ``source`` that matches ``kind``."""
    expected = ORIGIN_REFERENCE_FIELDS[kind]
    populated = [
        name for name in REFERENCE_FIELD_NAMES if _populated(getattr(source, name, None))
    ]
    if expected not in populated:
        raise MissingRequiredOrigin(
            f"A {kind.value} origin requires {expected} to be set"
        )
    conflicting = [name for name in populated if name != expected]
    if conflicting:
        raise MissingRequiredOrigin(
            f"A {kind.value} origin cannot also set {', '.join(conflicting)}"
        )
    return getattr(source, expected)


def _slug(value: str) -> str:
    value = re.sub(r"[^a-z0-9]+", "-", value.lower())
    return value.strip("-")[:80]


def origin_id_for(kind: OriginKind, reference, origin_path: Optional[str]) -> str:
    label = reference if isinstance(reference, str) else reference.identity()
    parts = [kind.value.lower(), _slug(label)]
    if origin_path:
        parts.append(_slug(origin_path))
    return "-".join(part for part in parts if part)


def build_origin(
    kind: OriginKind,
    reference,
    *,
    origin_path: Optional[str] = None,
    shield: bool = False,
    shield_region: Optional[str] = None,
    protocol_policy=None,
    port: int = 0,
    ssl_protocols: Optional[Iterable] = None,
    read_timeout: int = 0,
    keepalive_timeout: int = 0,
) -> OriginDescriptor:
    if kind is OriginKind.API:
        raise StrategyNotImplemented("API gateway origins are not implemented yet")

    region = None
    if shield:
        if not shield_region:
            raise MissingShieldRegion(
                f"Origin Shield on the {kind.value} origin needs a shield region"
            )
        region = validate_shield_region(shield_region)

    origin_path = origin_path or None
    common = dict(
        kind=kind,
        origin_id=origin_id_for(kind, reference, origin_path),
        reference=reference,
        origin_path=origin_path,
        shield_region=region,
    )
    if kind is OriginKind.S3:
        # Reads always go through origin access control, never a public bucket.
        return OriginDescriptor(access_control=True, **common)
    if kind is OriginKind.S3_WEBSITE:
        return OriginDescriptor(access_control=False, **common)

    return OriginDescriptor(
        protocol_policy=select_origin_protocol(protocol_policy),
        http_port=port or DEFAULT_HTTP_PORT,
        https_port=port or DEFAULT_HTTPS_PORT,
        read_timeout=read_timeout or DEFAULT_ORIGIN_READ_TIMEOUT,
        keepalive_timeout=keepalive_timeout or DEFAULT_ORIGIN_KEEPALIVE_TIMEOUT,
        ssl_protocols=select_origin_ssl_protocols(ssl_protocols),
        **common,
    )


def origin_from_config(config, kind: Optional[OriginKind] = None) -> OriginDescriptor:
    kind = kind or parse_origin_kind(config.origin_kind)
    reference = require_origin_reference(config, kind)
    logger.debug("Building %s origin", kind.value)
    return build_origin(
        kind,
        reference,
        origin_path=config.origin_path,
        shield=config.origin_shield,
        shield_region=config.origin_shield_region,
        protocol_policy=config.origin_protocol_policy,
        port=config.origin_port,
        ssl_protocols=config.origin_ssl_protocols,
        read_timeout=config.origin_read_timeout,
        keepalive_timeout=config.origin_keepalive_timeout,
    )
