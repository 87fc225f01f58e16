"""Origin-family strategies and the registry the factory dispatches on.

A strategy fills in its family's defaults for fields the caller left unset,
enforces the family's origin-policy rules and hands the result to the
``DistributionAssembler``. New origin kinds are added by registering another
strategy; reserved kinds raise ``StrategyNotImplemented``.
"""
import dataclasses
import logging
from abc import ABC
from typing import Dict, Type

from cdn_assembly.config import DEFAULT_ROOT_OBJECT
from cdn_assembly.distribution import DistributionAssembler, DistributionConfig, DistributionDescriptor
from cdn_assembly.errors import IncompatibleOriginPolicy, StrategyNotImplemented, UnsupportedOriginKind
from cdn_assembly.origins import OriginKind, parse_origin_kind
from cdn_assembly.policies import AllowedMethodSet, CachedMethodSet, HttpVersion, PriceClass

logger = logging.getLogger(__name__)

STRATEGY_REGISTRY: Dict[OriginKind, Type["DistributionStrategy"]] = {}
RESERVED_ORIGIN_KINDS = frozenset([OriginKind.API])


def register_strategy(*kinds: OriginKind):
    def decorator(strategy_cls):
        for kind in kinds:
            STRATEGY_REGISTRY[kind] = strategy_cls
        strategy_cls.origin_kinds = tuple(kinds)
        return strategy_cls

    return decorator


def strategy_for(kind: OriginKind) -> "DistributionStrategy":
    strategy_cls = STRATEGY_REGISTRY.get(kind)
    if strategy_cls is None:
        if kind in RESERVED_ORIGIN_KINDS:
            raise StrategyNotImplemented(
                f"The {kind.value} distribution strategy is not implemented yet"
            )
        raise UnsupportedOriginKind(f"Unsupported origin kind: {kind.value}")
    return strategy_cls()


class DistributionStrategy(ABC):
    origin_kinds = ()
    # Applied only where the caller left the field unset.
    defaults: Dict[str, object] = {}

    def build(
        self, config: DistributionConfig, distribution_id: str
    ) -> DistributionDescriptor:
        config = self.prepare(self.apply_defaults(config))
        return DistributionAssembler(config, distribution_id).assemble()

    def apply_defaults(self, config: DistributionConfig) -> DistributionConfig:
        changes = {
            name: value
            for name, value in self.defaults.items()
            if getattr(config, name) in (None, "", ())
        }
        if not changes:
            return config
        return dataclasses.replace(config, **changes)

    def prepare(self, config: DistributionConfig) -> DistributionConfig:
        return config


@register_strategy(OriginKind.S3, OriginKind.S3_WEBSITE)
class StorageDistributionStrategy(DistributionStrategy):
    defaults = {
        "default_root_object": DEFAULT_ROOT_OBJECT,
        "price_class": PriceClass.PRICE_CLASS_100,
        "http_version": HttpVersion.HTTP2_AND_3,
        "allowed_methods": AllowedMethodSet.ALLOW_GET_HEAD_OPTIONS,
        "cached_methods": CachedMethodSet.CACHE_GET_HEAD_OPTIONS,
    }

    def prepare(self, config):
        kind = parse_origin_kind(config.origin_kind)
        if kind is OriginKind.S3_WEBSITE and config.auto_patch_origin_policy:
            # Website endpoints cannot use origin access control.
            logger.warning(
                "Ignoring auto_patch_origin_policy for a static website origin"
            )
            return dataclasses.replace(config, auto_patch_origin_policy=False)
        return config


@register_strategy(OriginKind.HTTP, OriginKind.LOAD_BALANCER)
class EndpointDistributionStrategy(DistributionStrategy):
    def prepare(self, config):
        if config.auto_patch_origin_policy:
            raise IncompatibleOriginPolicy(
                f"{parse_origin_kind(config.origin_kind).value} origins have no "
                "storage policy to patch"
            )
        return config
