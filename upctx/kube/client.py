"""Kubernetes API access for spaces and control planes."""

from dataclasses import dataclass
from typing import List, Tuple

from kubernetes import client, config
from kubernetes.client import ApiException
from loguru import logger

from upctx.errors import ExternalCallError
from upctx.kube.kubeconfig import KubeConfig

GROUP_LABEL_KEY = "spaces.upbound.io/group"
SPACES_GROUP = "spaces.upbound.io"
SPACES_VERSION = "v1beta1"
CONTROL_PLANES_PLURAL = "controlplanes"

INGRESS_NAMESPACE = "upbound-system"
INGRESS_CONFIG_MAP = "ingress-public"
INGRESS_HOST_KEY = "ingress-host"
INGRESS_CA_KEY = "ingress-ca"

USER_AGENT = "up-cli"


@dataclass(frozen=True)
class KubernetesClientSet:
    core: client.CoreV1Api
    custom: client.CustomObjectsApi
    version: client.VersionApi


def load_clients(conf: KubeConfig) -> KubernetesClientSet:
    """Create API clients for the current context of an in-memory kubeconfig."""
    api_client = config.new_client_from_config_dict(
        conf.to_dict(), context=conf.current_context or None, persist_config=False
    )
    api_client.user_agent = USER_AGENT
    return KubernetesClientSet(
        core=client.CoreV1Api(api_client),
        custom=client.CustomObjectsApi(api_client),
        version=client.VersionApi(api_client),
    )


def is_not_found_or_unauthorized(error: Exception) -> bool:
    return isinstance(error, ApiException) and error.status in (401, 404)


def get_ingress_host(clients: KubernetesClientSet) -> Tuple[str, str]:
    """Read the public ingress host and CA bundle of a self-hosted space.

    Args:
        clients: API clients for the space hub.

    Returns:
        The ingress host and the PEM CA bundle, which may be empty.

    Raises:
        ApiException: Left to the caller, which tells a cloud space (not found
            or unauthorized) from a real failure.
        ExternalCallError: If the config map has no host.
    """
    config_map = clients.core.read_namespaced_config_map(INGRESS_CONFIG_MAP, INGRESS_NAMESPACE)
    data = config_map.data or {}
    host = data.get(INGRESS_HOST_KEY)
    if not host:
        raise ExternalCallError(
            f"{INGRESS_NAMESPACE}/{INGRESS_CONFIG_MAP} config map has no {INGRESS_HOST_KEY!r} key"
        )
    return host, data.get(INGRESS_CA_KEY, "")


def list_group_names(clients: KubernetesClientSet) -> List[str]:
    namespaces = clients.core.list_namespace(label_selector=f"{GROUP_LABEL_KEY}=true")
    return [ns.metadata.name for ns in namespaces.items]


def list_control_plane_names(clients: KubernetesClientSet, group: str) -> List[str]:
    result = clients.custom.list_namespaced_custom_object(
        SPACES_GROUP, SPACES_VERSION, group, CONTROL_PLANES_PLURAL
    )
    return [item["metadata"]["name"] for item in result.get("items", [])]


def verify_kubeconfig(conf: KubeConfig) -> None:
    """Check that the API server of the current context answers a version request."""
    try:
        version = load_clients(conf).version.get_code()
    except Exception as error:
        raise ExternalCallError(f"unable to connect to {conf.current_context!r}: {error}") from error
    logger.debug(f"Context {conf.current_context!r} reports server version {version.git_version}")
