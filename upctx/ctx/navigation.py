"""Navigation nodes for the organization → space → group → control plane hierarchy.

Every node lists its children lazily through ``items`` and describes its
position with ``breadcrumbs``. Nodes that can move up mix in ``Back``; nodes
that can become the canonical kubeconfig context mix in ``Accepting``.
"""

import base64
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Tuple, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict

from upctx.kube.kubeconfig import AuthInfo, Cluster, Context, KubeConfig
from upctx.kube.urls import NamespacedName, to_spaces_k8s_url
from upctx.upbound.context import UpboundContext

SPACE_EXTENSION_KEY = "spaces.upbound.io/space"
IN_MEMORY_REF = "upbound"
CONTEXT_SWITCHED_FMT = 'Kubeconfig context "{context}" switched to: {breadcrumbs}'


class ContextWriter(Protocol):
    def write(self, config: KubeConfig) -> None: ...


@dataclass
class NavigationContext:
    """What a transition needs besides the node itself."""

    upbound: UpboundContext
    writer: ContextWriter
    kube_context: str = "upbound"


@dataclass(frozen=True)
class Termination:
    """Ends navigation with a message for the operator."""

    message: str


Transition = Union["NavigationNode", Termination]
OnEnter = Callable[[NavigationContext], Transition]


@dataclass(frozen=True)
class Item:
    text: str
    kind: str = ""
    on_enter: Optional[OnEnter] = None
    matching_terms: Tuple[str, ...] = field(default_factory=tuple)
    # back marks the synthetic ".." entry
    back: bool = False
    # not_selectable marks placeholders the cursor skips
    not_selectable: bool = False

    def matches(self, segment: str) -> bool:
        return segment.lower() == self.text.lower() or segment in self.matching_terms


def sort_items(items: List[Item]) -> List[Item]:
    """Sort by text, keeping back entries first."""
    return sorted(items, key=lambda item: (not item.back, item.text))


class NavigationNode(BaseModel):
    model_config = ConfigDict(frozen=True)

    def items(self, ctx: NavigationContext) -> List[Item]:
        raise NotImplementedError

    def breadcrumbs(self) -> str:
        raise NotImplementedError


class Back:
    """Capability of moving to the parent node."""

    def back(self) -> NavigationNode:
        raise NotImplementedError

    def can_back(self) -> bool:
        return True


class Accepting:
    """Capability of becoming the canonical kubeconfig context."""

    def accept(self, ctx: NavigationContext) -> str:
        raise NotImplementedError

    def can_accept(self) -> bool:
        return True


def _go_to(node: NavigationNode) -> OnEnter:
    return lambda ctx: node


def _accept_and_quit(node: Accepting) -> OnEnter:
    return lambda ctx: Termination(node.accept(ctx))


class Root(NavigationNode):
    def items(self, ctx: NavigationContext) -> List[Item]:
        orgs = ctx.upbound.list_organizations()
        items = [
            Item(
                text=org.display_name or org.name,
                kind="organization",
                matching_terms=(org.name,),
                on_enter=_go_to(Organization(name=org.name)),
            )
            for org in orgs
        ]
        return sort_items(items)

    def breadcrumbs(self) -> str:
        return "Upbound"


class Organization(Back, NavigationNode):
    name: str

    def items(self, ctx: NavigationContext) -> List[Item]:
        spaces = ctx.upbound.list_spaces(self.name)
        auth_info = ctx.upbound.org_auth_info(self.name)

        items = [Item(text="..", kind="organizations", on_enter=_go_to(self.back()), back=True)]
        for space in spaces:
            node = Space(org=self, name=space.name, ingress=space.fqdn, auth_info=auth_info)
            items.append(Item(text=space.name, kind="space", on_enter=_go_to(node)))
        return sort_items(items)

    def back(self) -> NavigationNode:
        return Root()

    def breadcrumbs(self) -> str:
        return f"Upbound {self.name}/"


class Space(Back, Accepting, NavigationNode):
    """A space reached through its ingress.

    Cloud spaces carry their organization; disconnected (self-hosted) spaces
    do not, and may remember the kubeconfig context of their hub cluster.
    """

    org: Optional[Organization] = None
    name: str
    ingress: str = ""
    ca: str = ""
    auth_info: Optional[AuthInfo] = None
    hub_context: str = ""

    @property
    def is_cloud(self) -> bool:
        return self.org is not None and bool(self.org.name)

    def items(self, ctx: NavigationContext) -> List[Item]:
        groups = ctx.upbound.list_groups(self.build_kubeconfig(ctx.upbound))

        children = [
            Item(text=group, kind="group", on_enter=_go_to(Group(space=self, name=group)))
            for group in groups
        ]
        if self.can_back():
            children.append(Item(text="..", kind="spaces", on_enter=_go_to(self.back()), back=True))
        items = sort_items(children)

        if not groups:
            items.append(Item(text="No groups found", not_selectable=True))
        if self.can_accept():
            items.append(Item(text=f'Switch context to "{self.name}"', on_enter=_accept_and_quit(self)))
        return items

    def back(self) -> NavigationNode:
        return self.org or Organization(name="")

    def can_back(self) -> bool:
        return self.is_cloud

    def can_accept(self) -> bool:
        return self.is_cloud

    def accept(self, ctx: NavigationContext) -> str:
        return _write(ctx, self.build_kubeconfig(ctx.upbound), self.breadcrumbs())

    def breadcrumbs(self) -> str:
        org = self.org.name if self.org else ""
        return f"Upbound {org}/{self.name}/"

    def space_extension(self) -> dict:
        if self.is_cloud:
            return {
                "apiVersion": "upbound.io/v1alpha1",
                "kind": "SpaceExtension",
                "spec": {"cloud": {"organization": self.org.name}},
            }
        return {
            "apiVersion": "spaces.upbound.io/v1alpha1",
            "kind": "SpaceExtension",
            "spec": {"disconnected": {"hubContext": self.hub_context}},
        }

    def _ingress_cluster(self, resource: NamespacedName) -> Cluster:
        cluster = Cluster(server=to_spaces_k8s_url(self.ingress, resource))
        if self.ca:
            cluster.certificate_authority_data = base64.b64encode(self.ca.encode()).decode()
        else:
            cluster.insecure_skip_tls_verify = True
        return cluster

    def build_kubeconfig(
        self, upbound: UpboundContext, resource: NamespacedName = NamespacedName()
    ) -> KubeConfig:
        """Build an in-memory kubeconfig pointing at the space or at a resource in it.

        Without a resource name the context targets the space hub in the
        resource namespace. With a name it targets that control plane and its
        "default" namespace.
        """
        ref = IN_MEMORY_REF
        config = KubeConfig(current_context=ref)
        context = Context()
        previous = upbound.kubeconfig
        hub = previous.contexts.get(self.hub_context) if self.hub_context else None

        if not resource.name:
            context.namespace = resource.namespace or None
            if hub is not None:
                logger.debug(f"Using hub context {self.hub_context!r} for space {self.name!r}")
                context.cluster = hub.cluster
                config.clusters[hub.cluster] = previous.clusters[hub.cluster].model_copy(deep=True)
                if hub.auth_info in previous.auth_infos:
                    context.auth_info = hub.auth_info
                    config.auth_infos[hub.auth_info] = previous.auth_infos[hub.auth_info].model_copy(deep=True)
            else:
                config.clusters[ref] = self._ingress_cluster(resource)
                context.cluster = ref
                if self.auth_info is not None:
                    config.auth_infos[ref] = self.auth_info.model_copy(deep=True)
                    context.auth_info = ref
        else:
            context.namespace = "default"
            config.clusters[ref] = self._ingress_cluster(resource)
            context.cluster = ref
            if self.auth_info is not None:
                config.auth_infos[ref] = self.auth_info.model_copy(deep=True)
                context.auth_info = ref
            elif hub is not None and hub.auth_info in previous.auth_infos:
                context.auth_info = hub.auth_info
                config.auth_infos[hub.auth_info] = previous.auth_infos[hub.auth_info].model_copy(deep=True)

        context.set_extension(SPACE_EXTENSION_KEY, self.space_extension())
        config.contexts[ref] = context
        return config


class Group(Back, Accepting, NavigationNode):
    space: Space
    name: str

    def items(self, ctx: NavigationContext) -> List[Item]:
        names = ctx.upbound.list_control_planes(self.space.build_kubeconfig(ctx.upbound), self.name)

        children = [Item(text="..", kind="groups", on_enter=_go_to(self.back()), back=True)]
        for name in names:
            children.append(
                Item(text=name, kind="controlplane", on_enter=_go_to(ControlPlane(group=self, name=name)))
            )
        items = sort_items(children)

        if not names:
            items.append(Item(text=f'No control planes found in the "{self.name}" group', not_selectable=True))
        items.append(
            Item(text=f'Switch context to "{self.space.name}/{self.name}"', on_enter=_accept_and_quit(self))
        )
        return items

    def back(self) -> NavigationNode:
        return self.space

    def accept(self, ctx: NavigationContext) -> str:
        config = self.space.build_kubeconfig(ctx.upbound, NamespacedName(namespace=self.name))
        return _write(ctx, config, self.breadcrumbs())

    def breadcrumbs(self) -> str:
        return f"{self.space.breadcrumbs()}{self.name}/"


class ControlPlane(Back, Accepting, NavigationNode):
    group: Group
    name: str

    @property
    def namespaced_name(self) -> NamespacedName:
        return NamespacedName(namespace=self.group.name, name=self.name)

    def items(self, ctx: NavigationContext) -> List[Item]:
        return [
            Item(text="..", kind="controlplanes", on_enter=_go_to(self.back()), back=True),
            Item(text=f'Connect to "{self.name}" and quit', on_enter=_accept_and_quit(self)),
        ]

    def back(self) -> NavigationNode:
        return self.group

    def accept(self, ctx: NavigationContext) -> str:
        config = self.group.space.build_kubeconfig(ctx.upbound, self.namespaced_name)
        return _write(ctx, config, self.breadcrumbs())

    def breadcrumbs(self) -> str:
        return f"{self.group.breadcrumbs()}{self.name}"


def _write(ctx: NavigationContext, config: KubeConfig, breadcrumbs: str) -> str:
    logger.debug(f"Writing context for {breadcrumbs}")
    ctx.writer.write(config)
    return CONTEXT_SWITCHED_FMT.format(context=ctx.kube_context, breadcrumbs=breadcrumbs)


def short_path(node: NavigationNode) -> Optional[str]:
    """The compact "space/group[/controlplane]" form printed with --short."""
    if isinstance(node, Group):
        return f"{node.space.name}/{node.name}"
    if isinstance(node, ControlPlane):
        return f"{node.group.space.name}/{node.group.name}/{node.name}"
    return None
