import logging

from cdn_assembly.access_control import AccessControlPatcher
from cdn_assembly.distribution import DistributionConfig, DistributionDescriptor
from cdn_assembly.origins import parse_origin_kind, require_origin_reference
from cdn_assembly.strategies import strategy_for

logger = logging.getLogger(__name__)


def assemble(
    config: DistributionConfig, distribution_id: str = "Distribution"
) -> DistributionDescriptor:
    """Pick the strategy for ``config.origin_kind`` and build the descriptor.

    Nothing is built until the origin kind is known and its origin reference
    is present.
    """
    kind = parse_origin_kind(config.origin_kind)
    require_origin_reference(config, kind)
    strategy = strategy_for(kind)
    logger.debug(
        "Dispatching %s to %s", distribution_id, type(strategy).__name__
    )
    return strategy.build(config, distribution_id)


def new_distribution(
    config: DistributionConfig, distribution_id: str = "Distribution"
) -> DistributionDescriptor:
    """Assemble the descriptor, then run the access-control patch against it."""
    descriptor = assemble(config, distribution_id)
    AccessControlPatcher(descriptor).patch()
    return descriptor
