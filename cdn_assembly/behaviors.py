"""Default and path-pattern behaviors.

Additional behaviors are sparse overrides of the default behavior: each one
starts from a copy of the resolved default settings and replaces only the
fields the caller explicitly set. ``UNSET`` marks "caller said nothing";
``None``, empty strings and empty sequences are not overrides either, while an
explicit ``False`` is.
"""
import dataclasses
import logging
from dataclasses import dataclass
from types import SimpleNamespace
from typing import Any, Optional, Tuple

from cdn_assembly.errors import InvalidPathPattern
from cdn_assembly.origins import (
    REFERENCE_FIELD_NAMES,
    OriginDescriptor,
    build_origin,
    parse_origin_kind,
    require_origin_reference,
)
from cdn_assembly.policies import (
    AllowedMethodSet,
    CachedMethodSet,
    CachePolicy,
    FunctionEventType,
    LambdaEdgeEventType,
    ManagedPolicy,
    ViewerProtocol,
    select_allowed_methods,
    select_cache_policy,
    select_cached_methods,
    select_function_event_type,
    select_lambda_event_type,
    select_origin_request_policy,
    select_response_headers_policy,
    select_viewer_protocol,
)

logger = logging.getLogger(__name__)


class _Unset:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


UNSET: Any = _Unset()


def is_set(value) -> bool:
    if value is UNSET or value is None:
        return False
    if isinstance(value, (str, list, tuple, set, frozenset)) and not value:
        return False
    return True


def _freeze(value):
    if isinstance(value, list):
        return tuple(value)
    return value


@dataclass(frozen=True)
class FunctionAssociation:
    """A CloudFront Function attached to a behavior."""

    function_arn: str
    event_type: Any = FunctionEventType.VIEWER_REQUEST
    function_name: Optional[str] = None


@dataclass(frozen=True)
class EdgeLambda:
    """A Lambda@Edge version attached to a behavior. The ARN must be a version in us-east-1."""

    function_version_arn: str
    event_type: Any = LambdaEdgeEventType.VIEWER_REQUEST
    include_body: bool = False


@dataclass(frozen=True)
class BehaviorSettings:
    viewer_protocol_policy: Any = None
    allowed_methods: Any = None
    cached_methods: Any = None
    compress: bool = True
    caching_posture: Any = None
    origin_request_posture: Any = None
    response_header_posture: Any = None
    trusted_key_groups: Tuple[str, ...] = ()
    function_associations: Tuple[FunctionAssociation, ...] = ()
    edge_lambdas: Tuple[EdgeLambda, ...] = ()
    smooth_streaming: bool = False
    enable_grpc: bool = False

    @classmethod
    def from_config(cls, config) -> "BehaviorSettings":
        return cls(
            **{
                field.name: _freeze(getattr(config, field.name))
                for field in dataclasses.fields(cls)
            }
        )


SETTINGS_FIELDS = tuple(field.name for field in dataclasses.fields(BehaviorSettings))
ORIGIN_OVERRIDE_FIELDS = (
    "origin_kind",
    *REFERENCE_FIELD_NAMES,
    "origin_path",
    "origin_protocol_policy",
)


@dataclass(frozen=True)
class BehaviorOverride:
    path_pattern: str
    use_default_origin: bool = False
    # origin
    origin_kind: Any = UNSET
    bucket: Any = UNSET
    origin_domain_name: Any = UNSET
    load_balancer_dns_name: Any = UNSET
    api_origin: Any = UNSET
    origin_path: Any = UNSET
    origin_protocol_policy: Any = UNSET
    # behavior settings
    viewer_protocol_policy: Any = UNSET
    allowed_methods: Any = UNSET
    cached_methods: Any = UNSET
    compress: Any = UNSET
    caching_posture: Any = UNSET
    origin_request_posture: Any = UNSET
    response_header_posture: Any = UNSET
    trusted_key_groups: Any = UNSET
    function_associations: Any = UNSET
    edge_lambdas: Any = UNSET
    smooth_streaming: Any = UNSET
    enable_grpc: Any = UNSET

    def overridden_fields(self) -> Tuple[str, ...]:
        return tuple(
            name
            for name in ORIGIN_OVERRIDE_FIELDS + SETTINGS_FIELDS
            if is_set(getattr(self, name))
        )

    def overrides_origin(self) -> bool:
        if self.use_default_origin:
            return False
        return any(is_set(getattr(self, name)) for name in ORIGIN_OVERRIDE_FIELDS)


@dataclass(frozen=True)
class BehaviorDescriptor:
    path_pattern: Optional[str]
    origin: OriginDescriptor
    viewer_protocol_policy: ViewerProtocol
    allowed_methods: AllowedMethodSet
    cached_methods: CachedMethodSet
    compress: bool
    cache_policy: CachePolicy
    origin_request_policy: Optional[ManagedPolicy]
    response_headers_policy: Optional[ManagedPolicy]
    trusted_key_groups: Tuple[str, ...] = ()
    function_associations: Tuple[FunctionAssociation, ...] = ()
    edge_lambdas: Tuple[EdgeLambda, ...] = ()
    smooth_streaming: bool = False
    enable_grpc: bool = False

    @property
    def is_default(self) -> bool:
        return self.path_pattern is None


def merge_settings(
    defaults: BehaviorSettings, override: BehaviorOverride
) -> BehaviorSettings:
    changes = {
        name: _freeze(getattr(override, name))
        for name in SETTINGS_FIELDS
        if is_set(getattr(override, name))
    }
    return dataclasses.replace(defaults, **changes)


def resolve_behavior(
    settings: BehaviorSettings,
    origin: OriginDescriptor,
    path_pattern: Optional[str] = None,
) -> BehaviorDescriptor:
    return BehaviorDescriptor(
        path_pattern=path_pattern,
        origin=origin,
        viewer_protocol_policy=select_viewer_protocol(settings.viewer_protocol_policy),
        allowed_methods=select_allowed_methods(settings.allowed_methods),
        cached_methods=select_cached_methods(settings.cached_methods),
        compress=bool(settings.compress),
        cache_policy=select_cache_policy(settings.caching_posture),
        origin_request_policy=select_origin_request_policy(
            settings.origin_request_posture
        ),
        response_headers_policy=select_response_headers_policy(
            settings.response_header_posture
        ),
        trusted_key_groups=tuple(settings.trusted_key_groups or ()),
        function_associations=tuple(
            FunctionAssociation(
                association.function_arn,
                select_function_event_type(association.event_type),
                association.function_name,
            )
            for association in settings.function_associations or ()
        ),
        edge_lambdas=tuple(
            EdgeLambda(
                edge_lambda.function_version_arn,
                select_lambda_event_type(edge_lambda.event_type),
                edge_lambda.include_body,
            )
            for edge_lambda in settings.edge_lambdas or ()
        ),
        smooth_streaming=bool(settings.smooth_streaming),
        enable_grpc=bool(settings.enable_grpc),
    )


class BehaviorComposer:
    def __init__(self, config, default_origin: OriginDescriptor) -> None:
        self.config = config
        self.default_origin = default_origin
        self.default_settings = BehaviorSettings.from_config(config)
        self._default_behavior: Optional[BehaviorDescriptor] = None

    def default_behavior(self) -> BehaviorDescriptor:
        if self._default_behavior is None:
            self._default_behavior = resolve_behavior(
                self.default_settings, self.default_origin
            )
        return self._default_behavior

    def additional_behaviors(self) -> Tuple[BehaviorDescriptor, ...]:
        seen = set()
        behaviors = []
        for override in self.config.additional_behaviors:
            if not override.path_pattern:
                raise InvalidPathPattern("Additional behaviors need a path pattern")
            if override.path_pattern in seen:
                logger.warning(
                    "Path pattern %s appears more than once; the first one wins",
                    override.path_pattern,
                )
            seen.add(override.path_pattern)
            behaviors.append(self.compose(override))
        return tuple(behaviors)

    def compose(self, override: BehaviorOverride) -> BehaviorDescriptor:
        default = self.default_behavior()
        origin = self.default_origin
        if override.overrides_origin():
            origin = self._override_origin(override)
        settings = merge_settings(self.default_settings, override)
        logger.debug(
            "Behavior %s overrides %s",
            override.path_pattern,
            ", ".join(override.overridden_fields()) or "nothing",
        )
        if settings == self.default_settings and origin is self.default_origin:
            return dataclasses.replace(default, path_pattern=override.path_pattern)
        return resolve_behavior(settings, origin, override.path_pattern)

    def _override_origin(self, override: BehaviorOverride) -> OriginDescriptor:
        config = self.config
        kind = self.default_origin.kind
        if is_set(override.origin_kind):
            kind = parse_origin_kind(override.origin_kind)

        source = config
        if any(is_set(getattr(override, name)) for name in REFERENCE_FIELD_NAMES):
            source = SimpleNamespace(
                **{
                    name: getattr(override, name)
                    if is_set(getattr(override, name))
                    else None
                    for name in REFERENCE_FIELD_NAMES
                }
            )
        reference = require_origin_reference(source, kind)

        origin_path = config.origin_path
        if is_set(override.origin_path):
            origin_path = override.origin_path
        protocol_policy = config.origin_protocol_policy
        if is_set(override.origin_protocol_policy):
            protocol_policy = override.origin_protocol_policy

        return build_origin(
            kind,
            reference,
            origin_path=origin_path,
            shield=config.origin_shield,
            shield_region=config.origin_shield_region,
            protocol_policy=protocol_policy,
            port=config.origin_port,
            ssl_protocols=config.origin_ssl_protocols,
            read_timeout=config.origin_read_timeout,
            keepalive_timeout=config.origin_keepalive_timeout,
        )
