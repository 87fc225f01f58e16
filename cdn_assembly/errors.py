class DistributionAssemblyError(Exception):
    """Base class for configuration errors raised while assembling a distribution."""


class MissingRequiredOrigin(DistributionAssemblyError):
    """The origin reference is absent or does not match the origin kind."""


class UnsupportedOriginKind(DistributionAssemblyError):
    """No strategy is registered for the origin kind."""


class StrategyNotImplemented(UnsupportedOriginKind):
    """The origin kind is reserved but has no strategy yet."""


class MissingShieldRegion(DistributionAssemblyError):
    """Origin Shield was requested without a region."""


class InvalidCertificateBinding(DistributionAssemblyError):
    """A certificate was bound without any custom domain name."""


class IncompatibleOriginPolicy(DistributionAssemblyError):
    """The origin kind cannot carry an identity-based read policy."""


class InvalidPathPattern(DistributionAssemblyError):
    """An additional behavior has no path pattern."""
