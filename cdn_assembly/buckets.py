from aws_cdk import aws_iam as iam
from aws_cdk import aws_s3 as s3

from cdn_assembly.config import READ_OBJECT_ACTION


class BucketOriginHandle:
    """Storage origin handle backed by a CDK bucket."""

    def __init__(self, bucket: s3.IBucket) -> None:
        self.bucket = bucket
        self.read_statements: list[iam.PolicyStatement] = []

    def identity(self) -> str:
        return self.bucket.bucket_arn

    def append_read_policy(self, principal: str, condition: dict) -> None:
        statement = iam.PolicyStatement(
            sid=f"AllowCloudFrontServicePrincipalRead{len(self.read_statements) + 1}",
            effect=iam.Effect.ALLOW,
            principals=[iam.ServicePrincipal(principal)],
            actions=[READ_OBJECT_ACTION],
            resources=[self.bucket.arn_for_objects("*")],
            conditions=condition,
        )
        self.bucket.add_to_resource_policy(statement)
        self.read_statements.append(statement)
