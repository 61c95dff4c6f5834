"""Reconstruct the current navigation node from the active kubeconfig context."""

from typing import Optional, Tuple

from jose import JWTError, jwt
from kubernetes.client import ApiException
from loguru import logger

from upctx.ctx.navigation import ControlPlane, Group, NavigationNode, Organization, Root, Space
from upctx.errors import ConfigIntegrityError, ExternalCallError
from upctx.kube.client import is_not_found_or_unauthorized
from upctx.kube.kubeconfig import AuthInfo, KubeConfig
from upctx.kube.urls import NamespacedName, current_space_scope
from upctx.upbound.context import UpboundContext

ORGANIZATION_CLAIM = "organization"


def resolve_current(conf: KubeConfig) -> Optional[AuthInfo]:
    """Check the current context and return its auth-info (None if it has none).

    Raises ConfigIntegrityError when the current context, its cluster or a
    referenced auth-info is missing.
    """
    if not conf.current_context:
        raise ConfigIntegrityError("no current context set in kubeconfig")
    context = conf.contexts.get(conf.current_context)
    if context is None:
        raise ConfigIntegrityError(f'context "{conf.current_context}" not found in kubeconfig')
    if context.cluster not in conf.clusters:
        raise ConfigIntegrityError(f'cluster "{context.cluster}" not found in kubeconfig')
    if not context.auth_info:
        return None
    auth_info = conf.auth_infos.get(context.auth_info)
    if auth_info is None:
        raise ConfigIntegrityError(f'authInfo "{context.auth_info}" not found in kubeconfig')
    return auth_info


def org_from_token(token: Optional[str]) -> Optional[str]:
    """Read the organization claim of a JWT without verifying it."""
    if not token:
        return None
    try:
        claims = jwt.get_unverified_claims(token)
    except JWTError as error:
        logger.debug(f"Token is not a JWT: {error}")
        return None
    org = claims.get(ORGANIZATION_CLAIM)
    return org if isinstance(org, str) and org else None


def _scoped_node(space: Space, resource: NamespacedName) -> NavigationNode:
    if resource.namespace and resource.name:
        return ControlPlane(group=Group(space=space, name=resource.namespace), name=resource.name)
    if resource.namespace:
        return Group(space=space, name=resource.namespace)
    return space


def derive_self_hosted_state(
    conf: KubeConfig, ingress: str, ca: str, resource: NamespacedName, auth_info: Optional[AuthInfo]
) -> NavigationNode:
    space = Space(name=conf.current_context, ingress=ingress, ca=ca, auth_info=auth_info)
    return _scoped_node(space, resource)


def derive_cloud_state(
    conf: KubeConfig, scope: Optional[Tuple[str, NamespacedName]], auth_info: Optional[AuthInfo]
) -> NavigationNode:
    if auth_info is None:
        return Root()
    org_name = org_from_token(auth_info.token)
    if org_name is None:
        logger.debug("No organization claim in the current token, starting from the root")
        return Root()

    org = Organization(name=org_name)
    if scope is None:
        return org

    ingress, resource = scope
    space = Space(org=org, name=ingress.split(".")[0], ingress=ingress, auth_info=auth_info)
    return _scoped_node(space, resource)


def space_probe_config(conf: KubeConfig, ingress: str) -> KubeConfig:
    """Copy of ``conf`` whose current cluster points at the space hub instead of a resource."""
    probe = conf.deep_copy()
    cluster = probe.clusters[probe.contexts[probe.current_context].cluster]
    cluster.server = f"https://{ingress}"
    return probe


def derive_state(upbound: UpboundContext, conf: KubeConfig) -> NavigationNode:
    """Work out which node the current kubeconfig context points at.

    A server URL that exposes a public ingress config map belongs to a
    self-hosted space. Not found or unauthorized answers mean a cloud space.

    Args:
        upbound: Session used to read the ingress of the space.
        conf: Kubeconfig whose current context is inspected.

    Returns:
        The node the current context points at.

    Raises:
        ConfigIntegrityError: If the current context or its cluster is missing.
        ExternalCallError: If the ingress configuration cannot be read.
    """
    auth_info = resolve_current(conf)
    scope = current_space_scope(conf)
    if scope is None:
        logger.debug("Current cluster has no server, treating it as a cloud context")
        return derive_cloud_state(conf, scope, auth_info)

    ingress, resource = scope
    try:
        host, ca = upbound.get_ingress(space_probe_config(conf, ingress))
    except ApiException as error:
        if is_not_found_or_unauthorized(error):
            logger.debug(f"No public ingress found ({error.status}), treating the space as cloud")
            return derive_cloud_state(conf, scope, auth_info)
        raise ExternalCallError(f"error reading ingress configuration: {error}") from error
    except ExternalCallError:
        raise
    except Exception as error:
        raise ExternalCallError(f"error reading ingress configuration: {error}") from error

    logger.debug(f"Found self-hosted ingress {host!r}")
    return derive_self_hosted_state(conf, host, ca, resource, auth_info)
