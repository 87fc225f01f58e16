"""Second construction phase: scope origin reads to the new distribution.

The distribution needs the origin, and the origin's policy needs the
distribution's identity. The patcher runs after the descriptor exists and
appends one read statement to the storage origin's policy.
"""
import logging
from enum import Enum
from typing import Optional, Protocol

from cdn_assembly.config import CLOUDFRONT_SERVICE_PRINCIPAL
from cdn_assembly.distribution import DistributionDescriptor
from cdn_assembly.origins import OriginKind

logger = logging.getLogger(__name__)


class StorageOriginHandle(Protocol):
    def identity(self) -> str:
        ...

    def append_read_policy(self, principal: str, condition: dict) -> None:
        ...


class PatchState(Enum):
    UNPATCHED = "UNPATCHED"
    PATCHED = "PATCHED"


def source_arn_condition(distribution_identity: str) -> dict:
    return {"StringEquals": {"AWS:SourceArn": distribution_identity}}


class AccessControlPatcher:
    def __init__(self, descriptor: DistributionDescriptor) -> None:
        self.descriptor = descriptor
        self.state = PatchState.UNPATCHED

    @property
    def applies(self) -> bool:
        return (
            self.descriptor.origin_kind is OriginKind.S3
            and self.descriptor.auto_patch_origin_policy
        )

    def patch(self, distribution_identity: Optional[str] = None) -> bool:
        """Append the read statement once. Returns whether a statement was appended.

        ``distribution_identity`` defaults to the descriptor's placeholder ARN;
        realized distributions pass their real ARN.
        """
        if self.state is PatchState.PATCHED or not self.applies:
            return False
        identity = distribution_identity or self.descriptor.identity
        self.descriptor.origin_handle.append_read_policy(
            CLOUDFRONT_SERVICE_PRINCIPAL, source_arn_condition(identity)
        )
        self.state = PatchState.PATCHED
        logger.info(
            "Scoped reads on %s to distribution %s",
            self.descriptor.default_origin.origin_id,
            self.descriptor.distribution_id,
        )
        return True
