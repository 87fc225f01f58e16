import aws_cdk
import aws_cdk.assertions as assertions
import pytest
from aws_cdk import aws_s3 as s3

from cdn_assembly import presets
from cdn_assembly.behaviors import BehaviorOverride
from cdn_assembly.buckets import BucketOriginHandle
from cdn_assembly.cloudfront_distribution import AssembledDistribution
from cdn_assembly.distribution import (
    AccessLoggingConfig,
    DistributionConfig,
    GeoRestrictionConfig,
)
from cdn_assembly.origins import OriginKind
from cdn_assembly.policies import CustomCachingPosture

CACHING_OPTIMIZED = "658327ea-f89d-4fab-a63d-7e88639e58f6"
CACHING_DISABLED = "4135ea2d-6df8-44a3-9df3-4b5a84be39ad"
CERTIFICATE_ARN = "arn:aws:acm:us-east-1:123456789012:certificate/site"


@pytest.fixture
def stack():
    app = aws_cdk.App()
    return aws_cdk.Stack(
        app,
        "cdn",
        env=aws_cdk.Environment(account="123456789012", region="us-east-1"),
    )


@pytest.fixture
def bucket_origin(stack):
    return BucketOriginHandle(s3.Bucket(stack, "SiteBucket"))


def distribution_config(template):
    (resource,) = template.find_resources("AWS::CloudFront::Distribution").values()
    return resource["Properties"]["DistributionConfig"]


def test_single_page_app(stack, bucket_origin):
    distribution = AssembledDistribution(
        stack, "Spa", presets.single_page_app(bucket_origin)
    )
    template = assertions.Template.from_stack(stack)

    template.has_resource_properties(
        "AWS::CloudFront::Distribution",
        {
            "DistributionConfig": assertions.Match.object_like(
                {
                    "DefaultRootObject": "index.html",
                    "HttpVersion": "http2and3",
                    "PriceClass": "PriceClass_All",
                    "DefaultCacheBehavior": assertions.Match.object_like(
                        {
                            "ViewerProtocolPolicy": "redirect-to-https",
                            "CachePolicyId": CACHING_OPTIMIZED,
                            "Compress": True,
                            "AllowedMethods": ["GET", "HEAD", "OPTIONS"],
                        }
                    ),
                    "CustomErrorResponses": [
                        {
                            "ErrorCode": 403,
                            "ResponseCode": 200,
                            "ResponsePagePath": "/index.html",
                            "ErrorCachingMinTTL": 0,
                        },
                        {
                            "ErrorCode": 404,
                            "ResponseCode": 200,
                            "ResponsePagePath": "/index.html",
                            "ErrorCachingMinTTL": 0,
                        },
                    ],
                }
            )
        },
    )
    template.resource_count_is("AWS::CloudFront::OriginAccessControl", 1)
    assert distribution.access_control_patcher.state.name == "PATCHED"


def test_read_policy_is_scoped_to_the_distribution(stack, bucket_origin):
    AssembledDistribution(stack, "Spa", presets.private_bucket(bucket_origin))
    template = assertions.Template.from_stack(stack)

    template.has_resource_properties(
        "AWS::S3::BucketPolicy",
        {
            "PolicyDocument": {
                "Statement": assertions.Match.array_with(
                    [
                        assertions.Match.object_like(
                            {
                                "Sid": "AllowCloudFrontServicePrincipalRead1",
                                "Effect": "Allow",
                                "Action": "s3:GetObject",
                                "Principal": {"Service": "cloudfront.amazonaws.com"},
                                "Condition": {
                                    "StringEquals": {
                                        "AWS:SourceArn": assertions.Match.any_value()
                                    }
                                },
                            }
                        )
                    ]
                )
            }
        },
    )
    assert len(bucket_origin.read_statements) == 1


def test_additional_behaviors(stack, bucket_origin):
    config = presets.single_page_app(
        bucket_origin,
        additional_behaviors=[
            BehaviorOverride("/static/*"),
            BehaviorOverride(
                "/rest_api/*",
                origin_kind=OriginKind.HTTP,
                origin_domain_name="api.example.com",
                origin_protocol_policy="HTTP_ONLY",
                caching_posture="CACHING_DISABLED",
            ),
            BehaviorOverride("/static/*", caching_posture="CACHING_DISABLED"),
        ],
    )
    AssembledDistribution(stack, "Spa", config)
    template = assertions.Template.from_stack(stack)

    properties = distribution_config(template)
    behaviors = properties["CacheBehaviors"]
    assert [behavior["PathPattern"] for behavior in behaviors] == [
        "/static/*",
        "/rest_api/*",
    ]
    assert behaviors[0]["CachePolicyId"] == CACHING_OPTIMIZED
    assert behaviors[1]["CachePolicyId"] == CACHING_DISABLED
    assert behaviors[0]["TargetOriginId"] == properties["DefaultCacheBehavior"]["TargetOriginId"]
    assert len(properties["Origins"]) == 2
    template.has_resource_properties(
        "AWS::CloudFront::Distribution",
        {
            "DistributionConfig": assertions.Match.object_like(
                {
                    "Origins": assertions.Match.array_with(
                        [
                            assertions.Match.object_like(
                                {
                                    "DomainName": "api.example.com",
                                    "CustomOriginConfig": assertions.Match.object_like(
                                        {"OriginProtocolPolicy": "http-only"}
                                    ),
                                }
                            )
                        ]
                    )
                }
            )
        },
    )


def test_http_origin(stack):
    config = DistributionConfig(
        origin_kind=OriginKind.HTTP,
        origin_domain_name="api.example.com",
        origin_shield=True,
        origin_shield_region="eu-west-1",
        origin_ssl_protocols=["TLSv1.2"],
    )
    AssembledDistribution(stack, "Api", config)
    template = assertions.Template.from_stack(stack)

    (origin,) = distribution_config(template)["Origins"]
    assert origin["DomainName"] == "api.example.com"
    assert origin["OriginShield"] == {"Enabled": True, "OriginShieldRegion": "eu-west-1"}
    expected = {
        "OriginProtocolPolicy": "https-only",
        "HTTPPort": 80,
        "HTTPSPort": 443,
        "OriginReadTimeout": 30,
        "OriginKeepaliveTimeout": 5,
        "OriginSSLProtocols": ["TLSv1.2"],
    }
    custom = origin["CustomOriginConfig"]
    assert {key: custom.get(key) for key in expected} == expected
    template.resource_count_is("AWS::CloudFront::OriginAccessControl", 0)


def test_domain_certificate_and_security(stack, bucket_origin):
    config = presets.private_bucket(
        bucket_origin,
        domain_names=["www.example.com"],
        certificate_arn=CERTIFICATE_ARN,
        web_acl_id="arn:aws:wafv2:us-east-1:123456789012:global/webacl/site/abc",
        geo_restriction=GeoRestrictionConfig("ALLOW", ["us", "ca"]),
    )
    AssembledDistribution(stack, "Site", config)
    template = assertions.Template.from_stack(stack)

    template.has_resource_properties(
        "AWS::CloudFront::Distribution",
        {
            "DistributionConfig": assertions.Match.object_like(
                {
                    "Aliases": ["www.example.com"],
                    "ViewerCertificate": {
                        "AcmCertificateArn": CERTIFICATE_ARN,
                        "SslSupportMethod": "sni-only",
                        "MinimumProtocolVersion": "TLSv1.2_2021",
                    },
                    "WebACLId": "arn:aws:wafv2:us-east-1:123456789012:global/webacl/site/abc",
                    "Restrictions": {
                        "GeoRestriction": {
                            "Locations": ["US", "CA"],
                            "RestrictionType": "whitelist",
                        }
                    },
                }
            )
        },
    )


def test_logging_and_metrics(stack, bucket_origin):
    config = presets.private_bucket(
        bucket_origin,
        access_logging=AccessLoggingConfig("access-logs", "cdn/", include_cookies=True),
        publish_additional_metrics=True,
    )
    AssembledDistribution(stack, "Site", config)
    template = assertions.Template.from_stack(stack)

    logging_config = distribution_config(template)["Logging"]
    assert logging_config["Prefix"] == "cdn/"
    assert logging_config["IncludeCookies"] is True
    template.resource_count_is("AWS::CloudFront::MonitoringSubscription", 1)


def test_custom_cache_policy(stack, bucket_origin):
    config = presets.private_bucket(
        bucket_origin,
        caching_posture=CustomCachingPosture(
            name="assets", default_ttl=3600, query_strings=["v"]
        ),
        additional_behaviors=[BehaviorOverride("/img/*", compress=False)],
    )
    AssembledDistribution(stack, "Site", config)
    template = assertions.Template.from_stack(stack)

    template.resource_count_is("AWS::CloudFront::CachePolicy", 1)
    template.has_resource_properties(
        "AWS::CloudFront::CachePolicy",
        {
            "CachePolicyConfig": assertions.Match.object_like(
                {
                    "Name": "assets",
                    "DefaultTTL": 3600,
                    "ParametersInCacheKeyAndForwardedToOrigin": assertions.Match.object_like(
                        {
                            "QueryStringsConfig": {
                                "QueryStringBehavior": "whitelist",
                                "QueryStrings": ["v"],
                            },
                            "HeadersConfig": {"HeaderBehavior": "none"},
                            "CookiesConfig": {"CookieBehavior": "none"},
                        }
                    ),
                }
            )
        },
    )


def test_static_website_origin(stack, bucket_origin):
    AssembledDistribution(stack, "Website", presets.static_website(bucket_origin))
    template = assertions.Template.from_stack(stack)

    (origin,) = distribution_config(template)["Origins"]
    assert origin["CustomOriginConfig"]["OriginProtocolPolicy"] == "http-only"
    template.resource_count_is("AWS::CloudFront::OriginAccessControl", 0)
    assert bucket_origin.read_statements == []


def test_storage_origin_needs_a_bucket(stack, site_bucket):
    with pytest.raises(TypeError):
        AssembledDistribution(stack, "Spa", presets.private_bucket(site_bucket))


def test_grpc_behaviors(stack):
    config = presets.http_api(
        "grpc.example.com",
        additional_behaviors=[
            BehaviorOverride("/grpc.Service/*", enable_grpc=True),
            BehaviorOverride("/health"),
        ],
    )
    AssembledDistribution(stack, "Grpc", config)
    template = assertions.Template.from_stack(stack)

    properties = distribution_config(template)
    grpc, health = properties["CacheBehaviors"]
    assert grpc["PathPattern"] == "/grpc.Service/*"
    assert grpc["GrpcConfig"] == {"Enabled": True}
    assert "GrpcConfig" not in health
    assert "GrpcConfig" not in properties["DefaultCacheBehavior"]
