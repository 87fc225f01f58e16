from typing import Optional

from aws_cdk import RemovalPolicy, Stack
from aws_cdk import aws_route53 as route53
from aws_cdk import aws_route53_targets as targets
from aws_cdk import aws_s3 as s3
from constructs import Construct

from cdn_assembly import presets
from cdn_assembly.behaviors import BehaviorOverride
from cdn_assembly.buckets import BucketOriginHandle
from cdn_assembly.cloudfront_distribution import AssembledDistribution
from cdn_assembly.config import (
    CDN_CERTIFICATE_ARN,
    CDN_DOMAIN_NAME,
    CDN_HOSTED_ZONE_NAME,
    CDN_SITE_BUCKET,
    CDN_WEB_ACL_ARN,
)
from cdn_assembly.origins import OriginKind
from cdn_assembly.policies import CachingPosture, OriginProtocol, OriginRequestPosture


class StaticSiteDistributionStack(Stack):
    """A single page app on a private bucket, optionally fronting an API."""

    def __init__(
        self,
        scope: Construct,
        id: str,
        *,
        site_bucket_name: Optional[str] = CDN_SITE_BUCKET,
        domain_name: Optional[str] = CDN_DOMAIN_NAME,
        certificate_arn: Optional[str] = CDN_CERTIFICATE_ARN,
        web_acl_arn: Optional[str] = CDN_WEB_ACL_ARN,
        hosted_zone_name: Optional[str] = CDN_HOSTED_ZONE_NAME,
        api_domain_name: Optional[str] = None,
        **kwargs,
    ) -> None:
        super().__init__(scope, id, **kwargs)

        bucket = s3.Bucket(
            self,
            "SiteBucket",
            bucket_name=site_bucket_name,
            block_public_access=s3.BlockPublicAccess.BLOCK_ALL,
            enforce_ssl=True,
            removal_policy=RemovalPolicy.RETAIN,
        )
        self.site = BucketOriginHandle(bucket)

        additional_behaviors = []
        if api_domain_name:
            additional_behaviors.append(
                BehaviorOverride(
                    "/rest_api/*",
                    origin_kind=OriginKind.HTTP,
                    origin_domain_name=api_domain_name,
                    origin_protocol_policy=OriginProtocol.HTTP_ONLY,
                    allowed_methods=presets.READ_METHODS,
                    caching_posture=CachingPosture.CACHING_DISABLED,
                    origin_request_posture=OriginRequestPosture.ALL_VIEWER,
                )
            )

        domain_names = (domain_name,) if domain_name else ()
        config = presets.single_page_app(
            self.site,
            domain_names=domain_names,
            certificate_arn=certificate_arn,
            web_acl_id=web_acl_arn,
            additional_behaviors=tuple(additional_behaviors),
        )
        self.distribution = AssembledDistribution(self, "SiteDistribution", config)

        if hosted_zone_name and domain_name:
            zone = route53.HostedZone.from_lookup(
                self, "SiteZone", domain_name=hosted_zone_name
            )
            route53.ARecord(
                self,
                "SiteAliasRecord",
                zone=zone,
                target=route53.RecordTarget.from_alias(
                    targets.CloudFrontTarget(self.distribution)
                ),
                record_name=domain_name,
            )
