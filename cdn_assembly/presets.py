"""Ready-made configurations for common workloads.

Each preset takes the origin reference and returns a ``DistributionConfig``;
keyword arguments replace any preset field.
"""
import dataclasses

from cdn_assembly.config import DEFAULT_ROOT_OBJECT
from cdn_assembly.distribution import DistributionConfig, ErrorFallback
from cdn_assembly.origins import OriginKind
from cdn_assembly.policies import (
    CachingPosture,
    HttpVersion,
    OriginProtocol,
    OriginRequestPosture,
    PriceClass,
    ResponseHeaderPosture,
    ViewerProtocol,
)

READ_METHODS = ("GET", "HEAD", "OPTIONS")
CACHED_METHODS = ("GET", "HEAD")
API_METHODS = ("GET", "HEAD", "OPTIONS", "PUT", "POST", "PATCH", "DELETE")


def spa_fallbacks(entry_document: str = f"/{DEFAULT_ROOT_OBJECT}", ttl: int = 0):
    return (
        ErrorFallback(403, 200, entry_document, ttl),
        ErrorFallback(404, 200, entry_document, ttl),
    )


_COMMON = dict(
    enabled=True,
    price_class=PriceClass.PRICE_CLASS_ALL,
    http_version=HttpVersion.HTTP2_AND_3,
    enable_ipv6=True,
    viewer_protocol_policy=ViewerProtocol.REDIRECT_TO_HTTPS,
    allowed_methods=READ_METHODS,
    cached_methods=CACHED_METHODS,
    compress=True,
    caching_posture=CachingPosture.CACHING_OPTIMIZED,
    origin_request_posture=OriginRequestPosture.ALL_VIEWER,
    response_header_posture=ResponseHeaderPosture.SECURITY_HEADERS,
)


def _preset(**fields) -> DistributionConfig:
    return DistributionConfig(**{**_COMMON, **fields})


def _apply(config: DistributionConfig, overrides: dict) -> DistributionConfig:
    if not overrides:
        return config
    return dataclasses.replace(config, **overrides)


def static_website(bucket, **overrides) -> DistributionConfig:
    """S3 website endpoint, public by nature."""
    config = _preset(
        comment="S3 Static Website Distribution",
        origin_kind=OriginKind.S3_WEBSITE,
        bucket=bucket,
        default_root_object=DEFAULT_ROOT_OBJECT,
        error_fallbacks=spa_fallbacks(),
    )
    return _apply(config, overrides)


def private_bucket(bucket, **overrides) -> DistributionConfig:
    """Private S3 content read through origin access control."""
    config = _preset(
        comment="S3 Private Content with OAC",
        origin_kind=OriginKind.S3,
        bucket=bucket,
        origin_request_posture=OriginRequestPosture.CORS_S3_ORIGIN,
        auto_patch_origin_policy=True,
    )
    return _apply(config, overrides)


def single_page_app(bucket, **overrides) -> DistributionConfig:
    """SPA on a private bucket: 403/404 answer 200 with the entry document."""
    config = _preset(
        comment="SPA with SPA fallbacks",
        origin_kind=OriginKind.S3,
        bucket=bucket,
        default_root_object=DEFAULT_ROOT_OBJECT,
        origin_request_posture=OriginRequestPosture.CORS_S3_ORIGIN,
        error_fallbacks=spa_fallbacks(),
        auto_patch_origin_policy=True,
    )
    return _apply(config, overrides)


def http_api(domain_name: str, **overrides) -> DistributionConfig:
    config = _preset(
        comment="HTTP API behind CloudFront",
        origin_kind=OriginKind.HTTP,
        origin_domain_name=domain_name,
        origin_protocol_policy=OriginProtocol.HTTPS_ONLY,
        origin_port=443,
        allowed_methods=API_METHODS,
        caching_posture=CachingPosture.CACHING_DISABLED,
        origin_request_posture=OriginRequestPosture.ALL_VIEWER_EXCEPT_HOST_HEADER,
    )
    return _apply(config, overrides)


def load_balancer_api(dns_name: str, **overrides) -> DistributionConfig:
    config = dataclasses.replace(
        http_api("placeholder"),
        comment="ALB API behind CloudFront",
        origin_kind=OriginKind.LOAD_BALANCER,
        origin_domain_name=None,
        load_balancer_dns_name=dns_name,
    )
    return _apply(config, overrides)


def media_streaming(domain_name: str, **overrides) -> DistributionConfig:
    config = _preset(
        comment="Media streaming optimized distribution",
        origin_kind=OriginKind.HTTP,
        origin_domain_name=domain_name,
        smooth_streaming=True,
    )
    return _apply(config, overrides)


def private_signed_content(bucket, trusted_key_groups, **overrides) -> DistributionConfig:
    """Private S3 content that viewers reach with signed URLs or cookies."""
    config = _preset(
        comment="Private content with signed URLs/cookies",
        origin_kind=OriginKind.S3,
        bucket=bucket,
        trusted_key_groups=tuple(trusted_key_groups),
        auto_patch_origin_policy=True,
    )
    return _apply(config, overrides)
