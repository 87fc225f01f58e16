import pytest

from cdn_assembly.distribution import DistributionConfig
from cdn_assembly.origins import OriginKind


class RecordingOrigin:
    """Storage origin handle that records policy appends instead of making them."""

    def __init__(self, arn="arn:aws:s3:::site-bucket"):
        self.arn = arn
        self.read_policies = []

    def identity(self):
        return self.arn

    def append_read_policy(self, principal, condition):
        self.read_policies.append((principal, condition))


@pytest.fixture
def site_bucket():
    return RecordingOrigin()


@pytest.fixture
def storage_config(site_bucket):
    def build(**fields):
        fields.setdefault("origin_kind", OriginKind.S3)
        fields.setdefault("bucket", site_bucket)
        return DistributionConfig(**fields)

    return build


@pytest.fixture
def endpoint_config():
    def build(**fields):
        fields.setdefault("origin_kind", OriginKind.HTTP)
        fields.setdefault("origin_domain_name", "api.example.com")
        return DistributionConfig(**fields)

    return build
