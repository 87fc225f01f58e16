import logging
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from cdn_assembly.behaviors import (
    BehaviorComposer,
    BehaviorDescriptor,
    BehaviorOverride,
    EdgeLambda,
    FunctionAssociation,
)
from cdn_assembly.config import CDN_AWS_ACCOUNT, CDN_AWS_PARTITION
from cdn_assembly.errors import InvalidCertificateBinding
from cdn_assembly.origins import OriginDescriptor, OriginKind, origin_from_config, parse_origin_kind
from cdn_assembly.policies import (
    GeoRestriction,
    HttpVersion,
    PriceClass,
    SslMethod,
    TlsVersion,
    select_geo_restriction,
    select_http_version,
    select_minimum_tls_version,
    select_price_class,
    select_ssl_method,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ErrorFallback:
    """Rewrite of an origin error, normally 403/404 -> 200 with the SPA entry document."""

    http_status: int
    fallback_status: Optional[int] = None
    fallback_path: Optional[str] = None
    cache_ttl: Optional[int] = None


@dataclass(frozen=True)
class GeoRestrictionConfig:
    mode: Any = "ALLOW"
    country_codes: Tuple[str, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "country_codes", tuple(self.country_codes))


@dataclass(frozen=True)
class AccessLoggingConfig:
    bucket_name: Optional[str] = None
    prefix: Optional[str] = None
    include_cookies: bool = False


@dataclass(frozen=True)
class DistributionConfig:
    """Everything a caller states about the distribution they want.

    Exactly one origin reference (``bucket``, ``origin_domain_name``,
    ``load_balancer_dns_name`` or ``api_origin``) must be set, matching
    ``origin_kind``. Lists are frozen to tuples.
    """

    origin_kind: Any
    # origin references, mutually exclusive
    bucket: Any = None
    origin_domain_name: Optional[str] = None
    load_balancer_dns_name: Optional[str] = None
    api_origin: Optional[str] = None
    # shared origin knobs
    origin_path: Optional[str] = None
    origin_shield: bool = False
    origin_shield_region: Optional[str] = None
    # custom origins
    origin_protocol_policy: Any = None
    origin_port: int = 0
    origin_ssl_protocols: Tuple[Any, ...] = ()
    origin_read_timeout: int = 0
    origin_keepalive_timeout: int = 0
    # distribution
    comment: str = ""
    enabled: bool = True
    default_root_object: Optional[str] = None
    domain_names: Tuple[str, ...] = ()
    price_class: Any = None
    http_version: Any = None
    enable_ipv6: bool = True
    # TLS
    certificate_arn: Optional[str] = None
    minimum_tls_version: Any = None
    ssl_support_method: Any = None
    # security
    web_acl_id: Optional[str] = None
    geo_restriction: Optional[GeoRestrictionConfig] = None
    # default behavior
    caching_posture: Any = None
    origin_request_posture: Any = None
    response_header_posture: Any = None
    viewer_protocol_policy: Any = None
    allowed_methods: Any = None
    cached_methods: Any = None
    compress: bool = True
    trusted_key_groups: Tuple[str, ...] = ()
    function_associations: Tuple[FunctionAssociation, ...] = ()
    edge_lambdas: Tuple[EdgeLambda, ...] = ()
    smooth_streaming: bool = False
    enable_grpc: bool = False
    # errors, logging, monitoring
    error_fallbacks: Tuple[ErrorFallback, ...] = ()
    access_logging: Optional[AccessLoggingConfig] = None
    publish_additional_metrics: bool = False
    # composition
    additional_behaviors: Tuple[BehaviorOverride, ...] = ()
    auto_patch_origin_policy: bool = False

    def __post_init__(self):
        for name in (
            "origin_ssl_protocols",
            "domain_names",
            "trusted_key_groups",
            "function_associations",
            "edge_lambdas",
            "error_fallbacks",
            "additional_behaviors",
        ):
            object.__setattr__(self, name, tuple(getattr(self, name) or ()))
        for name in ("allowed_methods", "cached_methods"):
            value = getattr(self, name)
            if isinstance(value, list):
                object.__setattr__(self, name, tuple(value))


@dataclass(frozen=True)
class CertificateBinding:
    certificate_arn: str
    minimum_protocol_version: TlsVersion
    ssl_support_method: SslMethod


@dataclass(frozen=True)
class ErrorResponse:
    http_status: int
    response_http_status: Optional[int]
    response_page_path: Optional[str]
    ttl: Optional[int]


@dataclass(frozen=True)
class AccessLogging:
    bucket_name: Optional[str]
    prefix: Optional[str]
    include_cookies: bool


@dataclass(frozen=True)
class DistributionDescriptor:
    distribution_id: str
    account: str
    origin_kind: OriginKind
    origin_handle: Any
    default_behavior: BehaviorDescriptor
    additional_behaviors: Tuple[BehaviorDescriptor, ...] = ()
    comment: str = ""
    enabled: bool = True
    default_root_object: Optional[str] = None
    domain_names: Tuple[str, ...] = ()
    price_class: PriceClass = PriceClass.PRICE_CLASS_ALL
    http_version: HttpVersion = HttpVersion.HTTP2
    enable_ipv6: bool = True
    certificate: Optional[CertificateBinding] = None
    web_acl_id: Optional[str] = None
    geo_restriction: Optional[GeoRestriction] = None
    error_responses: Tuple[ErrorResponse, ...] = ()
    access_logging: Optional[AccessLogging] = None
    publish_additional_metrics: bool = False
    auto_patch_origin_policy: bool = False
    partition: str = field(default="aws", compare=False)

    @property
    def identity(self) -> str:
        """Placeholder ARN used until a realized distribution ARN exists."""
        return (
            f"arn:{self.partition}:cloudfront::{self.account}"
            f":distribution/{self.distribution_id}"
        )

    @property
    def default_origin(self) -> OriginDescriptor:
        return self.default_behavior.origin

    @property
    def behaviors(self) -> Tuple[BehaviorDescriptor, ...]:
        return (self.default_behavior,) + self.additional_behaviors


class DistributionAssembler:
    """Resolves a ``DistributionConfig`` into a ``DistributionDescriptor``.

    Steps run in a fixed order so the earliest structural error is the one
    reported: default behavior, certificate/TLS, firewall, geo restriction,
    error fallbacks, logging, additional behaviors.
    """

    def __init__(
        self,
        config: DistributionConfig,
        distribution_id: str = "Distribution",
        account: str = CDN_AWS_ACCOUNT,
    ) -> None:
        self.config = config
        self.distribution_id = distribution_id
        self.account = account

    def assemble(self) -> DistributionDescriptor:
        config = self.config
        kind = parse_origin_kind(config.origin_kind)
        logger.debug("Assembling %s distribution %s", kind.value, self.distribution_id)

        composer = BehaviorComposer(config, origin_from_config(config, kind))
        default_behavior = composer.default_behavior()
        certificate = self._resolve_certificate()
        web_acl_id = self._resolve_web_acl()
        geo_restriction = self._resolve_geo_restriction()
        error_responses = self._resolve_error_fallbacks()
        access_logging = self._resolve_logging()
        additional_behaviors = composer.additional_behaviors()

        return DistributionDescriptor(
            distribution_id=self.distribution_id,
            account=self.account,
            partition=CDN_AWS_PARTITION,
            origin_kind=kind,
            origin_handle=default_behavior.origin.reference,
            default_behavior=default_behavior,
            additional_behaviors=additional_behaviors,
            comment=config.comment,
            enabled=config.enabled,
            default_root_object=config.default_root_object or None,
            domain_names=config.domain_names,
            price_class=select_price_class(config.price_class),
            http_version=select_http_version(config.http_version),
            enable_ipv6=config.enable_ipv6,
            certificate=certificate,
            web_acl_id=web_acl_id,
            geo_restriction=geo_restriction,
            error_responses=error_responses,
            access_logging=access_logging,
            publish_additional_metrics=config.publish_additional_metrics,
            auto_patch_origin_policy=config.auto_patch_origin_policy,
        )

    def _resolve_certificate(self) -> Optional[CertificateBinding]:
        config = self.config
        if not config.certificate_arn:
            if config.minimum_tls_version or config.ssl_support_method:
                logger.debug("No certificate bound; ignoring TLS settings")
            return None
        if not config.domain_names:
            raise InvalidCertificateBinding(
                "A certificate is bound but no domain names are configured"
            )
        return CertificateBinding(
            certificate_arn=config.certificate_arn,
            minimum_protocol_version=select_minimum_tls_version(
                config.minimum_tls_version
            ),
            ssl_support_method=select_ssl_method(config.ssl_support_method),
        )

    def _resolve_web_acl(self) -> Optional[str]:
        return self.config.web_acl_id or None

    def _resolve_geo_restriction(self) -> Optional[GeoRestriction]:
        geo = self.config.geo_restriction
        if geo is None:
            return None
        return select_geo_restriction(geo.mode, geo.country_codes)

    def _resolve_error_fallbacks(self) -> Tuple[ErrorResponse, ...]:
        responses = []
        for fallback in self.config.error_fallbacks:
            status = fallback.fallback_status
            if status is not None and not 200 <= status <= 299:
                logger.warning(
                    "Error fallback for %s answers with %s; only 2xx rewrites are supported",
                    fallback.http_status,
                    status,
                )
            responses.append(
                ErrorResponse(
                    http_status=fallback.http_status,
                    response_http_status=status,
                    response_page_path=fallback.fallback_path or None,
                    ttl=fallback.cache_ttl,
                )
            )
        return tuple(responses)

    def _resolve_logging(self) -> Optional[AccessLogging]:
        logging_config = self.config.access_logging
        if logging_config is None:
            return None
        return AccessLogging(
            bucket_name=logging_config.bucket_name or None,
            prefix=logging_config.prefix or None,
            include_cookies=logging_config.include_cookies,
        )
