from typing import Optional

from aws_cdk import Duration
from aws_cdk import aws_certificatemanager as certificatemanager
from aws_cdk import aws_cloudfront as cloudfront
from aws_cdk import aws_cloudfront_origins as origins
from aws_cdk import aws_lambda
from aws_cdk import aws_s3 as s3
from constructs import Construct

from cdn_assembly.access_control import AccessControlPatcher
from cdn_assembly.behaviors import BehaviorDescriptor
from cdn_assembly.distribution import DistributionConfig, DistributionDescriptor
from cdn_assembly.factory import assemble
from cdn_assembly.origins import OriginDescriptor, OriginKind
from cdn_assembly.policies import CacheKeyComponent, ManagedPolicy


def _member(cdk_type, value):
    return getattr(cdk_type, value.name)


def _cache_key(behavior_type, component: CacheKeyComponent):
    if component.behavior == "allow_list":
        return behavior_type.allow_list(*component.names)
    return behavior_type.none()


class DistributionRealizer:
    """Turns a ``DistributionDescriptor`` into ``cloudfront.Distribution`` props.

    Helper constructs (certificate, OAC, cache policies, imported functions)
    are created in ``scope`` with ids prefixed by the distribution id. One CDK
    origin is created per Origin Descriptor instance, so behaviors sharing the
    default origin share one CloudFront origin.
    """

    def __init__(
        self, scope: Construct, id: str, descriptor: DistributionDescriptor
    ) -> None:
        self.scope = scope
        self.id = id
        self.descriptor = descriptor
        self._origins = {}
        self._cache_policies = {}
        self._key_groups = {}
        self._imports = 0
        self._access_control: Optional[cloudfront.S3OriginAccessControl] = None

    def _import_id(self, kind: str) -> str:
        self._imports += 1
        return f"{self.id}{kind}{self._imports}"

    def distribution_props(self) -> dict:
        descriptor = self.descriptor
        props = dict(
            default_behavior=self.behavior_options(descriptor.default_behavior),
            additional_behaviors=self.additional_behaviors() or None,
            comment=descriptor.comment or None,
            enabled=descriptor.enabled,
            default_root_object=descriptor.default_root_object,
            domain_names=list(descriptor.domain_names) or None,
            price_class=_member(cloudfront.PriceClass, descriptor.price_class),
            http_version=_member(cloudfront.HttpVersion, descriptor.http_version),
            enable_ipv6=descriptor.enable_ipv6,
            web_acl_id=descriptor.web_acl_id,
            geo_restriction=self.geo_restriction(),
            error_responses=self.error_responses() or None,
            publish_additional_metrics=descriptor.publish_additional_metrics or None,
        )
        props.update(self.certificate_props())
        props.update(self.logging_props())
        return props

    def additional_behaviors(self) -> dict:
        behaviors = {}
        for behavior in self.descriptor.additional_behaviors:
            # First occurrence of a path pattern wins.
            if behavior.path_pattern not in behaviors:
                behaviors[behavior.path_pattern] = self.behavior_options(behavior)
        return behaviors

    def behavior_options(self, behavior: BehaviorDescriptor) -> cloudfront.BehaviorOptions:
        return cloudfront.BehaviorOptions(
            origin=self.origin(behavior.origin),
            viewer_protocol_policy=_member(
                cloudfront.ViewerProtocolPolicy, behavior.viewer_protocol_policy
            ),
            allowed_methods=_member(cloudfront.AllowedMethods, behavior.allowed_methods),
            cached_methods=_member(cloudfront.CachedMethods, behavior.cached_methods),
            compress=behavior.compress,
            cache_policy=self.cache_policy(behavior.cache_policy),
            origin_request_policy=self._managed(
                cloudfront.OriginRequestPolicy, behavior.origin_request_policy
            ),
            response_headers_policy=self._managed(
                cloudfront.ResponseHeadersPolicy, behavior.response_headers_policy
            ),
            trusted_key_groups=[
                self.key_group(key_group_id)
                for key_group_id in behavior.trusted_key_groups
            ]
            or None,
            function_associations=[
                cloudfront.FunctionAssociation(
                    event_type=_member(cloudfront.FunctionEventType, association.event_type),
                    function=cloudfront.Function.from_function_attributes(
                        self.scope,
                        self._import_id("Function"),
                        function_arn=association.function_arn,
                        function_name=association.function_name
                        or association.function_arn.split("/")[-1],
                    ),
                )
                for association in behavior.function_associations
            ]
            or None,
            edge_lambdas=[
                cloudfront.EdgeLambda(
                    event_type=_member(cloudfront.LambdaEdgeEventType, edge_lambda.event_type),
                    function_version=aws_lambda.Version.from_version_arn(
                        self.scope,
                        self._import_id("EdgeLambda"),
                        edge_lambda.function_version_arn,
                    ),
                    include_body=edge_lambda.include_body or None,
                )
                for edge_lambda in behavior.edge_lambdas
            ]
            or None,
            smooth_streaming=behavior.smooth_streaming or None,
            enable_grpc=behavior.enable_grpc or None,
        )

    @staticmethod
    def _managed(cdk_type, policy: Optional[ManagedPolicy]):
        if policy is None:
            return None
        return getattr(cdk_type, policy.name)

    def cache_policy(self, policy) -> cloudfront.ICachePolicy:
        if isinstance(policy, ManagedPolicy):
            return getattr(cloudfront.CachePolicy, policy.name)
        if policy not in self._cache_policies:
            self._cache_policies[policy] = cloudfront.CachePolicy(
                self.scope,
                f"{self.id}CachePolicy{len(self._cache_policies) + 1}",
                cache_policy_name=policy.name,
                comment=policy.comment,
                default_ttl=Duration.seconds(policy.default_ttl),
                min_ttl=Duration.seconds(policy.min_ttl),
                max_ttl=Duration.seconds(policy.max_ttl),
                query_string_behavior=_cache_key(
                    cloudfront.CacheQueryStringBehavior, policy.query_strings
                ),
                header_behavior=_cache_key(cloudfront.CacheHeaderBehavior, policy.headers),
                cookie_behavior=_cache_key(cloudfront.CacheCookieBehavior, policy.cookies),
                enable_accept_encoding_gzip=policy.enable_accept_encoding_gzip,
                enable_accept_encoding_brotli=policy.enable_accept_encoding_brotli,
            )
        return self._cache_policies[policy]

    def key_group(self, key_group_id: str) -> cloudfront.IKeyGroup:
        if key_group_id not in self._key_groups:
            self._key_groups[key_group_id] = cloudfront.KeyGroup.from_key_group_id(
                self.scope, self._import_id("KeyGroup"), key_group_id
            )
        return self._key_groups[key_group_id]

    def origin(self, origin: OriginDescriptor) -> cloudfront.IOrigin:
        key = id(origin)
        if key not in self._origins:
            self._origins[key] = self._build_origin(origin)
        return self._origins[key]

    def _build_origin(self, origin: OriginDescriptor) -> cloudfront.IOrigin:
        options = dict(origin_path=origin.origin_path)
        if origin.shield_enabled:
            options.update(
                origin_shield_enabled=True, origin_shield_region=origin.shield_region
            )

        if origin.kind is OriginKind.S3:
            return origins.S3BucketOrigin.with_origin_access_control(
                self._bucket(origin),
                origin_access_control=self.access_control(),
                **options,
            )
        if origin.kind is OriginKind.S3_WEBSITE:
            return origins.S3StaticWebsiteOrigin(self._bucket(origin), **options)

        return origins.HttpOrigin(
            origin.reference,
            protocol_policy=_member(cloudfront.OriginProtocolPolicy, origin.protocol_policy),
            http_port=origin.http_port,
            https_port=origin.https_port,
            read_timeout=Duration.seconds(origin.read_timeout),
            keepalive_timeout=Duration.seconds(origin.keepalive_timeout),
            origin_ssl_protocols=[
                _member(cloudfront.OriginSslPolicy, protocol)
                for protocol in origin.ssl_protocols
            ]
            or None,
            **options,
        )

    @staticmethod
    def _bucket(origin: OriginDescriptor) -> s3.IBucket:
        bucket = getattr(origin.reference, "bucket", None)
        if bucket is None:
            raise TypeError(
                f"{origin.origin_id} needs a BucketOriginHandle to be realized with CDK"
            )
        return bucket

    def access_control(self) -> cloudfront.S3OriginAccessControl:
        if self._access_control is None:
            self._access_control = cloudfront.S3OriginAccessControl(
                self.scope,
                f"{self.id}OAC",
                description=f"OAC for {self.id}",
            )
        return self._access_control

    def certificate_props(self) -> dict:
        binding = self.descriptor.certificate
        if binding is None:
            return {}
        return dict(
            certificate=certificatemanager.Certificate.from_certificate_arn(
                self.scope,
                f"{self.id}Certificate",
                certificate_arn=binding.certificate_arn,
            ),
            minimum_protocol_version=_member(
                cloudfront.SecurityPolicyProtocol, binding.minimum_protocol_version
            ),
            ssl_support_method=_member(cloudfront.SSLMethod, binding.ssl_support_method),
        )

    def geo_restriction(self) -> Optional[cloudfront.GeoRestriction]:
        geo = self.descriptor.geo_restriction
        if geo is None:
            return None
        if geo.mode.name == "DENY":
            return cloudfront.GeoRestriction.denylist(*geo.country_codes)
        return cloudfront.GeoRestriction.allowlist(*geo.country_codes)

    def error_responses(self) -> list:
        return [
            cloudfront.ErrorResponse(
                http_status=response.http_status,
                response_http_status=response.response_http_status,
                response_page_path=response.response_page_path,
                ttl=Duration.seconds(response.ttl) if response.ttl is not None else None,
            )
            for response in self.descriptor.error_responses
        ]

    def logging_props(self) -> dict:
        access_logging = self.descriptor.access_logging
        if access_logging is None:
            return {}
        props = dict(
            enable_logging=True,
            log_file_prefix=access_logging.prefix,
            log_includes_cookies=access_logging.include_cookies,
        )
        if access_logging.bucket_name:
            props["log_bucket"] = s3.Bucket.from_bucket_name(
                self.scope,
                f"{self.id}LogBucket",
                bucket_name=access_logging.bucket_name,
            )
        return props


class AssembledDistribution(cloudfront.Distribution):
    """A CloudFront distribution assembled from a ``DistributionConfig``.

    The storage origin's read policy is patched after the distribution exists,
    conditioned on its real ARN.
    """

    def __init__(self, scope: Construct, id: str, config: DistributionConfig) -> None:
        descriptor = assemble(config, id)
        props = DistributionRealizer(scope, id, descriptor).distribution_props()

        super().__init__(scope, id, **props)

        self.descriptor = descriptor
        self.access_control_patcher = AccessControlPatcher(descriptor)
        self.access_control_patcher.patch(self.distribution_arn)
