"""
Test Configuration and Fixtures
=============================

This module provides pytest fixtures and utilities for testing the upctx project.
"""

from pathlib import Path
from typing import Callable, Dict, Optional, Tuple

import pytest

from upctx.environment import reset_env_config
from upctx.kube.kubeconfig import AuthInfo, Cluster, Context, KubeConfig
from upctx.utils.paths import reset_path_manager

# (namespace, cluster, user)
ContextSpec = Tuple[Optional[str], str, str]


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    Point HOME and KUBECONFIG at a temporary directory.

    Yields:
        Path: The temporary home directory
    """
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("KUBECONFIG", str(home / ".kube" / "config"))
    for name in ("UP_CONTEXT", "UP_PROFILE", "UP_DOMAIN", "UP_SHORT", "UPCTX_DEBUG", "UPCTX_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    reset_path_manager()
    reset_env_config()
    yield home
    reset_path_manager()
    reset_env_config()


@pytest.fixture
def make_config() -> Callable[..., KubeConfig]:
    """
    Build a KubeConfig from compact literals.

    Returns:
        A factory taking current, contexts ({name: (namespace, cluster, user)}),
        clusters ({name: server}) and users ({name: token}).
    """

    def _make(
        current: str = "",
        contexts: Optional[Dict[str, ContextSpec]] = None,
        clusters: Optional[Dict[str, str]] = None,
        users: Optional[Dict[str, str]] = None,
    ) -> KubeConfig:
        return KubeConfig(
            current_context=current,
            contexts={
                name: Context(namespace=ns, cluster=cluster, auth_info=user)
                for name, (ns, cluster, user) in (contexts or {}).items()
            },
            clusters={name: Cluster(server=server) for name, server in (clusters or {}).items()},
            auth_infos={name: AuthInfo(token=token) for name, token in (users or {}).items()},
        )

    return _make


@pytest.fixture
def summarize() -> Callable[[KubeConfig], dict]:
    """Reduce a KubeConfig to the literals accepted by ``make_config``."""

    def _summarize(conf: KubeConfig) -> dict:
        return {
            "current": conf.current_context,
            "contexts": {
                name: (ctx.namespace, ctx.cluster, ctx.auth_info) for name, ctx in conf.contexts.items()
            },
            "clusters": {name: cluster.server for name, cluster in conf.clusters.items()},
            "users": {name: user.token for name, user in conf.auth_infos.items()},
        }

    return _summarize
