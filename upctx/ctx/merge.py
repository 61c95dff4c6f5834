"""Kubeconfig merge and swap engine.

The canonical context (``preferred``) and its shadow ``<preferred>-previous``
are swapped in place so that toggling between the last two targets needs no
network access. All functions work on a copy of the config passed in.
"""

from typing import Iterable, Optional, Tuple

from loguru import logger

from upctx.errors import ConfigIntegrityError
from upctx.kube.kubeconfig import Context, KubeConfig

PREVIOUS_SUFFIX = "-previous"


def previous_name(preferred: str) -> str:
    return preferred + PREVIOUS_SUFFIX


def allocate_free_name(prefix: str, taken: Iterable[str]) -> str:
    """Return the first of ``prefix1``, ``prefix2``, ... that is not in ``taken``."""
    taken = set(taken)
    index = 1
    while f"{prefix}{index}" in taken:
        index += 1
    return f"{prefix}{index}"


def _swap_references(conf: KubeConfig, attr: str, section: dict, preferred: str, kind: str) -> None:
    """Exchange the entries named preferred and preferred-previous in ``section``.

    Every context referencing one name is repointed to the other.
    """
    prev = previous_name(preferred)
    if getattr(conf.contexts[preferred], attr) != prev:
        return

    shadow = section.get(prev)
    if shadow is None:
        raise ConfigIntegrityError(f'no "{prev}" {kind} found')
    current = section.get(preferred)
    if current is None:
        del section[prev]
    else:
        section[prev] = current
    section[preferred] = shadow

    for context in conf.contexts.values():
        ref = getattr(context, attr)
        if ref == prev:
            setattr(context, attr, preferred)
        elif ref == preferred:
            setattr(context, attr, prev)


def activate_context(conf: KubeConfig, source: str, preferred: str) -> Tuple[KubeConfig, str]:
    """Make ``source`` the current context.

    Anything other than ``<preferred>-previous`` is activated by pointing
    current-context at it. ``<preferred>-previous`` is swapped into the
    preferred name together with its cluster and auth-info.

    Args:
        conf: Kubeconfig to work on. It is not modified.
        source: Name of the context to activate.
        preferred: Canonical context name, usually ``upbound``.

    Returns:
        The new config and the context name to restore on the next swap.

    Raises:
        ConfigIntegrityError: If a context, cluster or auth-info taking part
            in the swap is missing.
    """
    conf = conf.deep_copy()
    prev = previous_name(preferred)

    if source != prev:
        old_current = conf.current_context
        conf.current_context = source
        return conf, old_current

    if source == conf.current_context:
        return conf, conf.current_context

    source_context = conf.contexts.get(source)
    if source_context is None:
        raise ConfigIntegrityError(f'no "{prev}" context found')

    old_current = conf.current_context
    current_context = None
    if old_current:
        current_context = conf.contexts.get(old_current)
        if current_context is None:
            raise ConfigIntegrityError(f'no "{old_current}" context found')

    if old_current == preferred:
        conf.contexts[preferred] = source_context
        conf.contexts[prev] = current_context
        new_last = prev
    else:
        # keep "other" as the last context for other <-> preferred-previous
        conf.contexts[preferred] = source_context
        del conf.contexts[prev]
        new_last = old_current
    conf.current_context = preferred

    _swap_references(conf, "cluster", conf.clusters, preferred, "cluster")
    _swap_references(conf, "auth_info", conf.auth_infos, preferred, "authInfo")

    logger.debug(f"Activated {source!r} as {preferred!r}, previous is {new_last!r}")
    return conf, new_last


def _free_previous(conf: KubeConfig, attr: str, section: dict, prev: str) -> None:
    """Move the entry named ``prev`` aside if any context other than ``prev`` uses it."""
    if prev not in section:
        return
    free = allocate_free_name(prev, section.keys())
    renamed = 0
    for name, context in conf.contexts.items():
        if getattr(context, attr) == prev and name != prev:
            setattr(context, attr, free)
            renamed += 1
    if renamed > 0:
        logger.debug(f"Moved {prev!r} to {free!r} for {renamed} context(s)")
        section[free] = section[prev]


def merge_upbound_context(
    dest: KubeConfig, src: KubeConfig, src_context: str, dest_name: str
) -> Tuple[KubeConfig, str]:
    """Copy ``src_context`` from ``src`` into ``dest`` and activate it as ``dest_name``.

    The copy is staged under ``<dest_name>-previous`` and then swapped into
    place with ``activate_context``. Entries already named
    ``<dest_name>-previous`` that another context still uses are moved to a
    free name first, so no existing target is lost.

    Args:
        dest: Kubeconfig to merge into. It is not modified.
        src: Kubeconfig holding the new target.
        src_context: Context in ``src`` to copy.
        dest_name: Canonical context name in ``dest``.

    Returns:
        The merged config and the context name to restore on the next swap.

    Raises:
        ConfigIntegrityError: If ``src_context`` or its cluster is missing.
    """
    dest = dest.deep_copy()
    prev = previous_name(dest_name)

    context = src.contexts.get(src_context)
    if context is None:
        raise ConfigIntegrityError(f'context "{src_context}" not found in kubeconfig')
    cluster = src.clusters.get(context.cluster)
    if cluster is None:
        raise ConfigIntegrityError(f'cluster "{context.cluster}" not found in kubeconfig')
    auth_info = src.auth_infos.get(context.auth_info)

    if dest.current_context == prev:
        if prev not in dest.contexts:
            raise ConfigIntegrityError(f'no "{prev}" context found')
        # make room for the previous context
        dest.contexts[dest_name] = dest.contexts[prev].model_copy(deep=True)
        dest.current_context = dest_name

    _free_previous(dest, "cluster", dest.clusters, prev)
    _free_previous(dest, "auth_info", dest.auth_infos, prev)

    dest.clusters[prev] = cluster.model_copy(deep=True)

    staged = context.model_copy(deep=True)
    staged.cluster = prev
    if auth_info is not None:
        dest.auth_infos[prev] = auth_info.model_copy(deep=True)
        staged.auth_info = prev
    dest.contexts[prev] = staged

    return activate_context(dest, prev, dest_name)


def contexts_deep_equal(conf: KubeConfig, a: str, b: str) -> bool:
    """Compare two contexts by what they point at rather than by entry names.

    Cluster and auth-info bodies are compared, along with the namespace and
    extensions of the contexts themselves.
    """
    if a == b:
        return True
    if not a or not b:
        return False
    first: Optional[Context] = conf.contexts.get(a)
    second: Optional[Context] = conf.contexts.get(b)
    if first is None and second is None:
        return True
    if first is None or second is None:
        return False

    def _body(section: dict, name: str):
        entry = section.get(name)
        return entry.to_dict() if entry is not None else None

    if _body(conf.clusters, first.cluster) != _body(conf.clusters, second.cluster):
        return False
    if _body(conf.auth_infos, first.auth_info) != _body(conf.auth_infos, second.auth_info):
        return False
    first_rest = first.to_dict()
    second_rest = second.to_dict()
    for key in ("cluster", "user"):
        first_rest.pop(key, None)
        second_rest.pop(key, None)
    return first_rest == second_rest
