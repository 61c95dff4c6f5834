"""Non-interactive entry points: relative path navigation and swap-to-previous."""

from pathlib import Path
from typing import Callable, Optional

from loguru import logger

from upctx.ctx.derive import derive_state
from upctx.ctx.last_context import LastContextStore
from upctx.ctx.merge import activate_context
from upctx.ctx.navigation import (
    CONTEXT_SWITCHED_FMT,
    Accepting,
    Back,
    NavigationContext,
    NavigationNode,
    Root,
    Termination,
    short_path,
)
from upctx.errors import NavigationError
from upctx.kube.kubeconfig import KubeConfig, modify_config

CONTEXT_UNCHANGED_FMT = 'Kubeconfig context "{context}": {breadcrumbs}'


def navigate(ctx: NavigationContext, argument: str, initial: NavigationNode) -> tuple[NavigationNode, Optional[Termination]]:
    """Walk ``argument`` segment by segment.

    Paths start at the root unless they begin with "." (relative to
    ``initial``). Returns the final node and the termination an item produced,
    if any.
    """
    node = initial if argument.startswith(".") else Root()

    for segment in argument.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if not isinstance(node, Back) or not node.can_back():
                raise NavigationError(f"cannot move to parent context from: {node.breadcrumbs()}")
            node = node.back()
            continue

        match = next((item for item in node.items(ctx) if item.matches(segment)), None)
        if match is None:
            raise NavigationError(f'"{segment}" not found in: {node.breadcrumbs()}')
        if match.on_enter is None:
            raise NavigationError(f'cannot enter "{segment}" in: {node.breadcrumbs()}')
        logger.debug(f"Entering {segment!r} from {node.breadcrumbs()}")
        result = match.on_enter(ctx)
        if isinstance(result, Termination):
            return node, result
        node = result
    return node, None


def run_relative(ctx: NavigationContext, argument: str, initial: NavigationNode, short: bool = False) -> str:
    """Resolve ``argument`` and accept the node it leads to.

    Args:
        ctx: Shared navigation state.
        argument: Slash separated path, absolute when ``initial`` is the root.
        initial: Node the path starts from.
        short: Return the short path instead of the switch message.

    Returns:
        The text to print.

    Raises:
        NavigationError: If a segment is unknown or the final node cannot be accepted.
    """
    node, termination = navigate(ctx, argument, initial)

    if termination is not None:
        message = termination.message
    elif node.breadcrumbs() != initial.breadcrumbs():
        if not isinstance(node, Accepting) or not node.can_accept():
            raise NavigationError(f"cannot move context to: {node.breadcrumbs()}")
        message = node.accept(ctx)
    else:
        message = CONTEXT_UNCHANGED_FMT.format(context=ctx.kube_context, breadcrumbs=node.breadcrumbs())

    if short:
        return short_path(node) or ""
    return message


def swap_to_previous(
    ctx: NavigationContext,
    store: LastContextStore,
    path: Path,
    short: bool = False,
    modify: Callable[[Path, KubeConfig], None] = modify_config,
) -> str:
    """Toggle between the current and the previously active kubeconfig context.

    Args:
        ctx: Shared navigation state holding the loaded kubeconfig.
        store: Pointer to the previously active context.
        path: Kubeconfig to write.
        short: Return the short path instead of the switch message.
        modify: Function writing the swapped kubeconfig.

    Returns:
        The text to print.
    """
    last = store.read().strip()
    if not last:
        raise NavigationError("no previous context found")
    conf, previous = activate_context(ctx.upbound.kubeconfig, last, ctx.kube_context)
    logger.debug(f"Swapping to {last!r}, next swap returns to {previous!r}")

    state = derive_state(ctx.upbound, conf)
    modify(path, conf)
    try:
        store.write(previous)
    except OSError as error:
        logger.warning(f"Unable to save last context {previous!r}: {error}")

    if short:
        return short_path(state) or ""
    return CONTEXT_SWITCHED_FMT.format(context=ctx.kube_context, breadcrumbs=state.breadcrumbs())
