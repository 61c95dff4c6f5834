"""Error types raised by upctx."""


class UpctxError(Exception):
    """Base exception for all upctx errors."""

    pass


class ConfigIntegrityError(UpctxError):
    """A context, cluster or auth-info referenced by the kubeconfig is missing."""

    pass


class NavigationError(UpctxError):
    """A path segment cannot be found, entered, left or accepted."""

    pass


class ExternalCallError(UpctxError):
    """Listing children or probing a cluster failed."""

    pass


class ProfileError(UpctxError):
    """The up profile configuration cannot be read or has no usable profile."""

    pass


class KubeconfigError(UpctxError):
    """The kubeconfig file cannot be read, parsed or written."""

    pass
