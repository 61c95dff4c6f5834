"""URL helpers for Spaces API servers."""

import re
from typing import NamedTuple, Optional, Tuple

from upctx.kube.kubeconfig import KubeConfig

# https://ingress/apis/spaces.upbound.io/v1beta1/namespaces/default/controlplanes/ctp1/k8s
CONTROL_PLANE_URL_RE = re.compile(
    r"^(?P<base>.+)/apis/spaces\.upbound\.io/(?P<version>v[^/]+)/namespaces/(?P<namespace>[^/]+)/controlplanes/(?P<controlplane>[^/]+)/k8s$"
)
# https://ingress/apis/spaces.upbound.io/v1beta1/namespaces/default
GROUP_URL_RE = re.compile(
    r"^(?P<base>.+)/apis/spaces\.upbound\.io/(?P<version>v[^/]+)/namespaces/(?P<namespace>[^/]+)$"
)

SPACES_API_VERSION = "v1beta1"


class NamespacedName(NamedTuple):
    namespace: str = ""
    name: str = ""


def to_spaces_k8s_url(ingress: str, resource: NamespacedName = NamespacedName()) -> str:
    """Build the API server URL for a space, or for a control plane inside it."""
    if not resource.name:
        return f"https://{ingress}"
    return (
        f"https://{ingress}/apis/spaces.upbound.io/{SPACES_API_VERSION}"
        f"/namespaces/{resource.namespace}/controlplanes/{resource.name}/k8s"
    )


def parse_spaces_k8s_url(url: str) -> Optional[Tuple[str, NamespacedName]]:
    """Split a control plane or group URL into (base, resource), or None if it is neither."""
    match = CONTROL_PLANE_URL_RE.match(url)
    if match:
        return match.group("base"), NamespacedName(match.group("namespace"), match.group("controlplane"))
    match = GROUP_URL_RE.match(url)
    if match:
        return match.group("base"), NamespacedName(match.group("namespace"))
    return None


def strip_scheme(url: str) -> str:
    return url[len("https://"):] if url.startswith("https://") else url


def current_space_scope(conf: KubeConfig) -> Optional[Tuple[str, NamespacedName]]:
    """Return (ingress host, resource) for the current context, or None without a server.

    A server pointing at a control plane or group yields that resource. A bare
    server yields the context namespace as the group, when one is set.
    """
    context = conf.contexts.get(conf.current_context)
    if context is None:
        return None
    cluster = conf.clusters.get(context.cluster)
    if cluster is None or not cluster.server:
        return None

    server = cluster.server.rstrip("/")
    parsed = parse_spaces_k8s_url(server)
    if parsed is not None:
        base, resource = parsed
        return strip_scheme(base), resource

    ingress = strip_scheme(server)
    if not context.namespace:
        return ingress, NamespacedName()
    return ingress, NamespacedName(namespace=context.namespace)
