"""Tests for the kubeconfig writers."""

from unittest.mock import MagicMock

import pytest
import yaml
from loguru import logger

from upctx.ctx.last_context import MemoryLastContextStore
from upctx.ctx.writer import FileWriter, PrintWriter
from upctx.errors import ExternalCallError
from upctx.kube.kubeconfig import AuthInfo, Cluster, Context, KubeConfig, load_kubeconfig, modify_config


def _target(server="https://acme.space", namespace="default"):
    return KubeConfig(
        current_context="upbound",
        contexts={"upbound": Context(cluster="upbound", auth_info="upbound", namespace=namespace)},
        clusters={"upbound": Cluster(server=server)},
        auth_infos={"upbound": AuthInfo(token="t")},
    )


@pytest.fixture
def kubeconfig_path(tmp_path, make_config):
    """Create a kubeconfig with an unrelated current context."""
    path = tmp_path / "config"
    modify_config(path, make_config("kind", {"kind": ("default", "kind", "kind")}, {"kind": "https://kind"}, {"kind": "k"}))
    return path


def test_file_writer_writes_and_saves_previous(kubeconfig_path):
    """Test that a new target is merged, written and the old context remembered."""
    store = MemoryLastContextStore()
    verify = MagicMock()
    writer = FileWriter(kubeconfig_path, "upbound", store, verify=verify)

    writer.write(_target())

    written = load_kubeconfig(kubeconfig_path)
    assert written.current_context == "upbound"
    assert written.clusters["upbound"].server == "https://acme.space"
    assert "kind" in written.contexts
    assert store.read() == "kind"
    verify.assert_called_once()


def test_file_writer_skips_unchanged_context(kubeconfig_path):
    """Test that writing the same target twice does nothing the second time."""
    store = MemoryLastContextStore()
    FileWriter(kubeconfig_path, "upbound", store, verify=MagicMock()).write(_target())
    before = kubeconfig_path.read_text()

    verify = MagicMock()
    modify = MagicMock()
    FileWriter(kubeconfig_path, "upbound", store, verify=verify, modify=modify).write(_target())

    verify.assert_not_called()
    modify.assert_not_called()
    assert kubeconfig_path.read_text() == before
    assert store.read() == "kind"


def test_file_writer_verify_rejection_leaves_file(kubeconfig_path):
    """Test that a failed verification leaves the kubeconfig untouched."""
    before = kubeconfig_path.read_text()
    store = MemoryLastContextStore("kind")
    writer = FileWriter(
        kubeconfig_path, "upbound", store, verify=MagicMock(side_effect=ExternalCallError("unable to connect"))
    )

    with pytest.raises(ExternalCallError):
        writer.write(_target())

    assert kubeconfig_path.read_text() == before
    assert store.read() == "kind"


def test_file_writer_missing_kubeconfig(tmp_path):
    """Test writing into a kubeconfig that does not exist yet."""
    path = tmp_path / ".kube" / "config"
    store = MemoryLastContextStore()

    FileWriter(path, "upbound", store, verify=MagicMock()).write(_target())

    assert load_kubeconfig(path).current_context == "upbound"
    assert store.read() == ""


def test_file_writer_pointer_failure_is_a_warning(kubeconfig_path):
    """Test that a failure to save the last context only logs a warning."""
    store = MagicMock()
    store.write.side_effect = PermissionError("read-only")
    messages = []
    handler_id = logger.add(messages.append, level="WARNING")
    try:
        FileWriter(kubeconfig_path, "upbound", store, verify=MagicMock()).write(_target())
    finally:
        logger.remove(handler_id)

    assert load_kubeconfig(kubeconfig_path).current_context == "upbound"
    assert any("Unable to save last context" in str(message) for message in messages)


def test_upsert_context_uses_custom_name(kubeconfig_path):
    """Test that the canonical context name is configurable."""
    writer = FileWriter(kubeconfig_path, "custom", MemoryLastContextStore(), verify=MagicMock())
    merged, previous = writer.upsert_context(_target(), writer.load_output_kubeconfig())

    assert merged.current_context == "custom"
    assert merged.contexts["custom"].cluster == "custom"
    assert previous == "kind"


def test_print_writer(capsys):
    """Test that the print writer emits the kubeconfig as YAML."""
    PrintWriter().write(_target())
    data = yaml.safe_load(capsys.readouterr().out)

    assert data["current-context"] == "upbound"
    assert data["clusters"][0]["cluster"]["server"] == "https://acme.space"
