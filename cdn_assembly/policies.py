"""Static lookup tables that turn posture names into policy descriptors.

Every selector here is permissive: an unknown name logs a warning and
degrades to the safest default instead of aborting the assembly. Enum member
names mirror the corresponding ``aws_cdk.aws_cloudfront`` member names so the
CDK layer can resolve them with ``getattr``.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple, Union

from cdn_assembly.config import DEFAULT_CACHE_MAX_TTL, DEFAULT_CACHE_MIN_TTL, DEFAULT_CACHE_TTL

logger = logging.getLogger(__name__)


class CachingPosture(str, Enum):
    CACHING_OPTIMIZED = "CACHING_OPTIMIZED"
    CACHING_DISABLED = "CACHING_DISABLED"
    AMPLIFY = "AMPLIFY"
    CACHING_OPTIMIZED_FOR_UNCOMPRESSED_OBJECTS = (
        "CACHING_OPTIMIZED_FOR_UNCOMPRESSED_OBJECTS"
    )
    USE_ORIGIN_CACHE_CONTROL_HEADERS = "USE_ORIGIN_CACHE_CONTROL_HEADERS"
    USE_ORIGIN_CACHE_CONTROL_HEADERS_QUERY_STRINGS = (
        "USE_ORIGIN_CACHE_CONTROL_HEADERS_QUERY_STRINGS"
    )
    ELEMENTAL_MEDIA_PACKAGE = "ELEMENTAL_MEDIA_PACKAGE"
    CUSTOM = "CUSTOM"


class OriginRequestPosture(str, Enum):
    NONE = "NONE"
    ALL_VIEWER = "ALL_VIEWER"
    ALL_VIEWER_EXCEPT_HOST_HEADER = "ALL_VIEWER_EXCEPT_HOST_HEADER"
    ALL_VIEWER_AND_CLOUDFRONT_2022 = "ALL_VIEWER_AND_CLOUDFRONT_2022"
    CORS_CUSTOM_ORIGIN = "CORS_CUSTOM_ORIGIN"
    CORS_S3_ORIGIN = "CORS_S3_ORIGIN"
    ELEMENTAL_MEDIA_TAILOR = "ELEMENTAL_MEDIA_TAILOR"
    USER_AGENT_REFERER_HEADERS = "USER_AGENT_REFERER_HEADERS"


class ResponseHeaderPosture(str, Enum):
    NONE = "NONE"
    SECURITY_HEADERS = "SECURITY_HEADERS"
    CORS_ALLOW_ALL_ORIGINS = "CORS_ALLOW_ALL_ORIGINS"
    CORS_ALLOW_ALL_ORIGINS_AND_SECURITY_HEADERS = (
        "CORS_ALLOW_ALL_ORIGINS_AND_SECURITY_HEADERS"
    )
    CORS_ALLOW_ALL_ORIGINS_WITH_PREFLIGHT = "CORS_ALLOW_ALL_ORIGINS_WITH_PREFLIGHT"
    CORS_ALLOW_ALL_ORIGINS_WITH_PREFLIGHT_AND_SECURITY_HEADERS = (
        "CORS_ALLOW_ALL_ORIGINS_WITH_PREFLIGHT_AND_SECURITY_HEADERS"
    )


class ViewerProtocol(str, Enum):
    ALLOW_ALL = "ALLOW_ALL"
    REDIRECT_TO_HTTPS = "REDIRECT_TO_HTTPS"
    HTTPS_ONLY = "HTTPS_ONLY"


class OriginProtocol(str, Enum):
    HTTP_ONLY = "HTTP_ONLY"
    HTTPS_ONLY = "HTTPS_ONLY"
    MATCH_VIEWER = "MATCH_VIEWER"


class OriginSslProtocol(str, Enum):
    SSL_V3 = "SSLv3"
    TLS_V1 = "TLSv1"
    TLS_V1_1 = "TLSv1.1"
    TLS_V1_2 = "TLSv1.2"


class PriceClass(str, Enum):
    PRICE_CLASS_ALL = "ALL"
    PRICE_CLASS_200 = "200"
    PRICE_CLASS_100 = "100"


class HttpVersion(str, Enum):
    HTTP1_1 = "HTTP1_1"
    HTTP2 = "HTTP2"
    HTTP2_AND_3 = "HTTP2_AND_3"
    HTTP3 = "HTTP3"


class TlsVersion(str, Enum):
    SSL_V3 = "SSL_V3"
    TLS_V1 = "TLS_V1"
    TLS_V1_2016 = "TLS_V1_2016"
    TLS_V1_1_2016 = "TLS_V1_1_2016"
    TLS_V1_2_2018 = "TLS_V1_2_2018"
    TLS_V1_2_2019 = "TLS_V1_2_2019"
    TLS_V1_2_2021 = "TLS_V1_2_2021"


class SslMethod(str, Enum):
    SNI = "SNI"
    VIP = "VIP"


class GeoRestrictionMode(str, Enum):
    ALLOW = "ALLOW"
    DENY = "DENY"
    NONE = "NONE"


class AllowedMethodSet(str, Enum):
    ALLOW_GET_HEAD = "ALLOW_GET_HEAD"
    ALLOW_GET_HEAD_OPTIONS = "ALLOW_GET_HEAD_OPTIONS"
    ALLOW_ALL = "ALLOW_ALL"


class CachedMethodSet(str, Enum):
    CACHE_GET_HEAD = "CACHE_GET_HEAD"
    CACHE_GET_HEAD_OPTIONS = "CACHE_GET_HEAD_OPTIONS"


class FunctionEventType(str, Enum):
    VIEWER_REQUEST = "VIEWER_REQUEST"
    VIEWER_RESPONSE = "VIEWER_RESPONSE"


class LambdaEdgeEventType(str, Enum):
    ORIGIN_REQUEST = "ORIGIN_REQUEST"
    ORIGIN_RESPONSE = "ORIGIN_RESPONSE"
    VIEWER_REQUEST = "VIEWER_REQUEST"
    VIEWER_RESPONSE = "VIEWER_RESPONSE"


ALL_HTTP_METHODS = frozenset(
    ["GET", "HEAD", "OPTIONS", "PUT", "POST", "PATCH", "DELETE"]
)
READ_HTTP_METHODS = frozenset(["GET", "HEAD", "OPTIONS"])

# Regions where CloudFront offers Origin Shield.
ORIGIN_SHIELD_REGIONS = frozenset(
    [
        "af-south-1",
        "ap-east-1",
        "ap-northeast-1",
        "ap-northeast-2",
        "ap-northeast-3",
        "ap-south-1",
        "ap-southeast-1",
        "ap-southeast-2",
        "ap-southeast-3",
        "ap-southeast-4",
        "ca-central-1",
        "eu-central-1",
        "eu-north-1",
        "eu-south-1",
        "eu-south-2",
        "eu-west-1",
        "eu-west-2",
        "eu-west-3",
        "il-central-1",
        "me-central-1",
        "me-south-1",
        "sa-east-1",
        "us-east-1",
        "us-east-2",
        "us-west-1",
        "us-west-2",
    ]
)


@dataclass(frozen=True)
class ManagedPolicy:
    """A CloudFront managed policy, referenced by its CDK member name."""

    name: str


@dataclass(frozen=True)
class CacheKeyComponent:
    behavior: str
    names: Tuple[str, ...] = ()

    @classmethod
    def from_names(cls, names: Optional[Iterable[str]]) -> "CacheKeyComponent":
        names = tuple(names or ())
        if names:
            return cls("allow_list", names)
        return cls("none")


@dataclass(frozen=True)
class CustomCachingPosture:
    """Caller-side request for a dedicated cache policy.

    Leaving an allow-list out, or passing an empty one, keeps that axis out
    of the cache key entirely.
    """

    name: Optional[str] = None
    comment: Optional[str] = None
    default_ttl: Optional[int] = None
    min_ttl: Optional[int] = None
    max_ttl: Optional[int] = None
    query_strings: Optional[Sequence[str]] = None
    headers: Optional[Sequence[str]] = None
    cookies: Optional[Sequence[str]] = None

    def __post_init__(self):
        for field_name in ("query_strings", "headers", "cookies"):
            value = getattr(self, field_name)
            if value is not None:
                object.__setattr__(self, field_name, tuple(value))


@dataclass(frozen=True)
class CustomCachePolicy:
    name: Optional[str]
    comment: str
    default_ttl: int
    min_ttl: int
    max_ttl: int
    query_strings: CacheKeyComponent
    headers: CacheKeyComponent
    cookies: CacheKeyComponent
    enable_accept_encoding_gzip: bool = True
    enable_accept_encoding_brotli: bool = True


@dataclass(frozen=True)
class GeoRestriction:
    mode: GeoRestrictionMode
    country_codes: Tuple[str, ...]


CachePolicy = Union[ManagedPolicy, CustomCachePolicy]
PostureName = Union[str, Enum, None]


def _normalize(name) -> str:
    if isinstance(name, Enum):
        return name.name
    return str(name).strip().upper()


def _table(enum_cls, aliases=None) -> dict:
    table = {}
    for member in enum_cls:
        table[member.name] = member
        table[member.value.upper()] = member
    table.update(aliases or {})
    return table


def _select(table: dict, name: PostureName, default, kind: str):
    if name is None or name == "":
        return default
    found = table.get(_normalize(name))
    if found is None:
        logger.warning("Unknown %s %r, falling back to %s", kind, name, default)
        return default
    return found


_CACHING_TABLE = _table(
    CachingPosture,
    {
        "MANAGED_CACHING_OPTIMIZED": CachingPosture.CACHING_OPTIMIZED,
        "MANAGED_CACHING_DISABLED": CachingPosture.CACHING_DISABLED,
        "MANAGED_AMPLIFY": CachingPosture.AMPLIFY,
    },
)

_ORIGIN_REQUEST_TABLE = _table(
    OriginRequestPosture,
    {
        "MANAGED_ALL_VIEWER": OriginRequestPosture.ALL_VIEWER,
        "MANAGED_CORS_S3": OriginRequestPosture.CORS_S3_ORIGIN,
        "MANAGED_ELEMENT_CAPTURE": OriginRequestPosture.ELEMENTAL_MEDIA_TAILOR,
        "CUSTOM": OriginRequestPosture.ALL_VIEWER,
    },
)

_RESPONSE_HEADER_TABLE = _table(
    ResponseHeaderPosture,
    {
        "MANAGED_CORS_ALLOW_ALL": ResponseHeaderPosture.CORS_ALLOW_ALL_ORIGINS,
        "MANAGED_SECURITY_HEADERS": ResponseHeaderPosture.SECURITY_HEADERS,
        "CUSTOM": ResponseHeaderPosture.SECURITY_HEADERS,
    },
)

_VIEWER_PROTOCOL_TABLE = _table(ViewerProtocol)
_ORIGIN_PROTOCOL_TABLE = _table(OriginProtocol, {"HTTPS": OriginProtocol.HTTPS_ONLY})
_ORIGIN_SSL_TABLE = _table(OriginSslProtocol)
_PRICE_CLASS_TABLE = _table(
    PriceClass,
    {
        "PRICECLASS_ALL": PriceClass.PRICE_CLASS_ALL,
        "PRICECLASS_200": PriceClass.PRICE_CLASS_200,
        "PRICECLASS_100": PriceClass.PRICE_CLASS_100,
    },
)
_HTTP_VERSION_TABLE = _table(HttpVersion)
_TLS_TABLE = _table(TlsVersion)
_SSL_METHOD_TABLE = _table(SslMethod, {"SNI_ONLY": SslMethod.SNI})
_GEO_MODE_TABLE = _table(
    GeoRestrictionMode,
    {
        "ALLOWLIST": GeoRestrictionMode.ALLOW,
        "WHITELIST": GeoRestrictionMode.ALLOW,
        "DENYLIST": GeoRestrictionMode.DENY,
        "BLACKLIST": GeoRestrictionMode.DENY,
    },
)
_ALLOWED_METHODS_TABLE = _table(AllowedMethodSet)
_CACHED_METHODS_TABLE = _table(CachedMethodSet)
_FUNCTION_EVENT_TABLE = _table(FunctionEventType)
_LAMBDA_EVENT_TABLE = _table(LambdaEdgeEventType)


def custom_cache_policy(posture: CustomCachingPosture) -> CustomCachePolicy:
    def ttl(value, default):
        return default if value is None else value

    return CustomCachePolicy(
        name=posture.name,
        comment=posture.comment or "Custom cache policy created by cdn_assembly",
        default_ttl=ttl(posture.default_ttl, DEFAULT_CACHE_TTL),
        min_ttl=ttl(posture.min_ttl, DEFAULT_CACHE_MIN_TTL),
        max_ttl=ttl(posture.max_ttl, DEFAULT_CACHE_MAX_TTL),
        query_strings=CacheKeyComponent.from_names(posture.query_strings),
        headers=CacheKeyComponent.from_names(posture.headers),
        cookies=CacheKeyComponent.from_names(posture.cookies),
    )


def select_cache_policy(
    posture: Union[PostureName, CustomCachingPosture],
) -> CachePolicy:
    if isinstance(posture, CustomCachingPosture):
        return custom_cache_policy(posture)
    selected = _select(
        _CACHING_TABLE, posture, CachingPosture.CACHING_OPTIMIZED, "caching posture"
    )
    if selected is CachingPosture.CUSTOM:
        return custom_cache_policy(CustomCachingPosture())
    return ManagedPolicy(selected.name)


def select_origin_request_policy(posture: PostureName) -> Optional[ManagedPolicy]:
    selected = _select(
        _ORIGIN_REQUEST_TABLE,
        posture,
        OriginRequestPosture.NONE,
        "origin request posture",
    )
    if selected is OriginRequestPosture.NONE:
        return None
    return ManagedPolicy(selected.name)


def select_response_headers_policy(posture: PostureName) -> Optional[ManagedPolicy]:
    selected = _select(
        _RESPONSE_HEADER_TABLE,
        posture,
        ResponseHeaderPosture.SECURITY_HEADERS,
        "response header posture",
    )
    if selected is ResponseHeaderPosture.NONE:
        return None
    return ManagedPolicy(selected.name)


def select_viewer_protocol(name: PostureName) -> ViewerProtocol:
    return _select(
        _VIEWER_PROTOCOL_TABLE,
        name,
        ViewerProtocol.REDIRECT_TO_HTTPS,
        "viewer protocol policy",
    )


def select_origin_protocol(name: PostureName) -> OriginProtocol:
    return _select(
        _ORIGIN_PROTOCOL_TABLE,
        name,
        OriginProtocol.HTTPS_ONLY,
        "origin protocol policy",
    )


def select_origin_ssl_protocols(
    names: Optional[Iterable[PostureName]],
) -> Tuple[OriginSslProtocol, ...]:
    """Unknown protocol names are dropped rather than defaulted."""
    selected = []
    for name in names or ():
        protocol = _ORIGIN_SSL_TABLE.get(_normalize(name))
        if protocol is None:
            logger.warning("Ignoring unknown origin SSL protocol %r", name)
        elif protocol not in selected:
            selected.append(protocol)
    return tuple(selected)


def select_price_class(name: PostureName) -> PriceClass:
    return _select(
        _PRICE_CLASS_TABLE, name, PriceClass.PRICE_CLASS_ALL, "price class"
    )


def select_http_version(name: PostureName) -> HttpVersion:
    return _select(_HTTP_VERSION_TABLE, name, HttpVersion.HTTP2, "HTTP version")


def select_minimum_tls_version(name: PostureName) -> TlsVersion:
    return _select(
        _TLS_TABLE, name, TlsVersion.TLS_V1_2_2021, "minimum TLS version"
    )


def select_ssl_method(name: PostureName) -> SslMethod:
    return _select(_SSL_METHOD_TABLE, name, SslMethod.SNI, "SSL support method")


def select_function_event_type(name: PostureName) -> FunctionEventType:
    return _select(
        _FUNCTION_EVENT_TABLE,
        name,
        FunctionEventType.VIEWER_REQUEST,
        "function event type",
    )


def select_lambda_event_type(name: PostureName) -> LambdaEdgeEventType:
    return _select(
        _LAMBDA_EVENT_TABLE,
        name,
        LambdaEdgeEventType.VIEWER_REQUEST,
        "Lambda@Edge event type",
    )


def _method_set(methods) -> frozenset:
    return frozenset(str(method).strip().upper() for method in methods)


def select_allowed_methods(
    methods: Union[PostureName, Iterable[str]],
) -> AllowedMethodSet:
    """Collapse a list of HTTP methods into one of CloudFront's fixed sets."""
    if methods is None or isinstance(methods, (str, Enum)):
        return _select(
            _ALLOWED_METHODS_TABLE,
            methods,
            AllowedMethodSet.ALLOW_GET_HEAD,
            "allowed methods",
        )
    requested = _method_set(methods)
    if requested >= ALL_HTTP_METHODS:
        return AllowedMethodSet.ALLOW_ALL
    if requested >= READ_HTTP_METHODS:
        return AllowedMethodSet.ALLOW_GET_HEAD_OPTIONS
    return AllowedMethodSet.ALLOW_GET_HEAD


def select_cached_methods(
    methods: Union[PostureName, Iterable[str]],
) -> CachedMethodSet:
    if methods is None or isinstance(methods, (str, Enum)):
        return _select(
            _CACHED_METHODS_TABLE,
            methods,
            CachedMethodSet.CACHE_GET_HEAD,
            "cached methods",
        )
    if _method_set(methods) >= READ_HTTP_METHODS:
        return CachedMethodSet.CACHE_GET_HEAD_OPTIONS
    return CachedMethodSet.CACHE_GET_HEAD


def select_geo_restriction(
    mode: PostureName, country_codes: Optional[Iterable[str]]
) -> Optional[GeoRestriction]:
    """Return ``None`` when no restriction applies.

    A missing or unknown mode with country codes behaves as an allow-list.
    """
    selected = _select(
        _GEO_MODE_TABLE, mode, GeoRestrictionMode.ALLOW, "geo restriction mode"
    )
    codes = []
    for code in country_codes or ():
        code = code.strip().upper()
        if code and code not in codes:
            codes.append(code)
    if selected is GeoRestrictionMode.NONE or not codes:
        return None
    return GeoRestriction(selected, tuple(codes))


def validate_shield_region(region: str) -> str:
    if region not in ORIGIN_SHIELD_REGIONS:
        logger.warning(
            "%s is not a known Origin Shield region; passing it through", region
        )
    return region
