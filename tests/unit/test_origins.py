from types import SimpleNamespace

import pytest

from cdn_assembly.errors import (
    MissingRequiredOrigin,
    MissingShieldRegion,
    StrategyNotImplemented,
    UnsupportedOriginKind,
)
from cdn_assembly.origins import (
    OriginKind,
    build_origin,
    origin_from_config,
    origin_id_for,
    parse_origin_kind,
    require_origin_reference,
)
from cdn_assembly.policies import OriginProtocol, OriginSslProtocol


def references(**fields):
    values = dict(
        bucket=None, origin_domain_name=None, load_balancer_dns_name=None, api_origin=None
    )
    values.update(fields)
    return SimpleNamespace(**values)


class TestParseOriginKind:
    @pytest.mark.parametrize(
        "value, expected",
        [
            ("S3", OriginKind.S3),
            ("s3_website", OriginKind.S3_WEBSITE),
            ("https", OriginKind.HTTP),
            ("ALB", OriginKind.LOAD_BALANCER),
            (OriginKind.API, OriginKind.API),
        ],
    )
    def test_known_kinds(self, value, expected):
        assert parse_origin_kind(value) is expected

    @pytest.mark.parametrize("value", ["FTP", "", None])
    def test_unknown_kind(self, value):
        with pytest.raises(UnsupportedOriginKind):
            parse_origin_kind(value)


class TestRequireOriginReference:
    def test_returns_matching_reference(self, site_bucket):
        assert require_origin_reference(references(bucket=site_bucket), OriginKind.S3) is site_bucket
        assert (
            require_origin_reference(
                references(load_balancer_dns_name="alb.example.com"),
                OriginKind.LOAD_BALANCER,
            )
            == "alb.example.com"
        )

    @pytest.mark.parametrize(
        "kind, fields",
        [
            (OriginKind.S3, dict(origin_domain_name="api.example.com")),
            (OriginKind.S3_WEBSITE, dict(load_balancer_dns_name="alb.example.com")),
            (OriginKind.HTTP, dict(bucket=object())),
            (OriginKind.LOAD_BALANCER, dict(origin_domain_name="api.example.com")),
            (OriginKind.API, dict(origin_domain_name="api.example.com")),
        ],
    )
    def test_non_matching_reference_is_rejected(self, kind, fields):
        with pytest.raises(MissingRequiredOrigin):
            require_origin_reference(references(**fields), kind)

    def test_empty_string_is_missing(self):
        with pytest.raises(MissingRequiredOrigin):
            require_origin_reference(references(origin_domain_name=""), OriginKind.HTTP)

    def test_second_reference_is_rejected(self, site_bucket):
        source = references(bucket=site_bucket, origin_domain_name="api.example.com")

        with pytest.raises(MissingRequiredOrigin, match="origin_domain_name"):
            require_origin_reference(source, OriginKind.S3)


class TestBuildOrigin:
    def test_storage_origin_always_uses_access_control(self, site_bucket):
        origin = build_origin(OriginKind.S3, site_bucket)

        assert origin.access_control
        assert origin.reference is site_bucket
        assert origin.protocol_policy is None
        assert origin.origin_id == "s3-arn-aws-s3-site-bucket"

    def test_website_origin_has_no_access_control(self, site_bucket):
        assert not build_origin(OriginKind.S3_WEBSITE, site_bucket).access_control

    def test_custom_origin_defaults(self):
        origin = build_origin(OriginKind.HTTP, "api.example.com")

        assert origin.protocol_policy is OriginProtocol.HTTPS_ONLY
        assert (origin.http_port, origin.https_port) == (80, 443)
        assert (origin.read_timeout, origin.keepalive_timeout) == (30, 5)
        assert not origin.shield_enabled

    def test_custom_origin_settings(self):
        origin = build_origin(
            OriginKind.LOAD_BALANCER,
            "alb.example.com",
            protocol_policy="HTTP_ONLY",
            port=8080,
            read_timeout=60,
            keepalive_timeout=10,
            ssl_protocols=["TLSv1.2"],
            origin_path="/v1",
        )

        assert origin.protocol_policy is OriginProtocol.HTTP_ONLY
        assert (origin.http_port, origin.https_port) == (8080, 8080)
        assert (origin.read_timeout, origin.keepalive_timeout) == (60, 10)
        assert origin.ssl_protocols == (OriginSslProtocol.TLS_V1_2,)
        assert origin.origin_id == "load_balancer-alb-example-com-v1"

    def test_shield_needs_region(self):
        with pytest.raises(MissingShieldRegion):
            build_origin(OriginKind.HTTP, "api.example.com", shield=True)

    def test_shield_with_region(self):
        origin = build_origin(
            OriginKind.HTTP, "api.example.com", shield=True, shield_region="eu-west-1"
        )

        assert origin.shield_enabled
        assert origin.shield_region == "eu-west-1"

    def test_region_without_shield_is_ignored(self):
        origin = build_origin(OriginKind.HTTP, "api.example.com", shield_region="eu-west-1")

        assert not origin.shield_enabled

    def test_api_origin_is_reserved(self):
        with pytest.raises(StrategyNotImplemented):
            build_origin(OriginKind.API, "abc123.execute-api.us-east-1.amazonaws.com")


def test_origin_ids_are_stable():
    assert origin_id_for(OriginKind.HTTP, "API.Example.com", None) == origin_id_for(
        OriginKind.HTTP, "api.example.com", ""
    )


def test_origin_from_config(endpoint_config):
    origin = origin_from_config(endpoint_config(origin_protocol_policy="MATCH_VIEWER"))

    assert origin.kind is OriginKind.HTTP
    assert origin.reference == "api.example.com"
    assert origin.protocol_policy is OriginProtocol.MATCH_VIEWER
