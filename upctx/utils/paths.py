from pathlib import Path
from pydantic import BaseModel, Field
import os


def default_kubeconfig_path() -> Path:
    """Return the kubeconfig file kubectl would load first.

    The first entry of ``KUBECONFIG`` wins; otherwise ``~/.kube/config``.
    """
    env_value = os.getenv("KUBECONFIG", "")
    for entry in env_value.split(os.pathsep):
        if entry:
            return Path(entry).expanduser()
    return Path.home() / ".kube" / "config"


class PathMngrModel(BaseModel):
    """Well-known locations read and written by upctx."""

    home_dir: Path = Field(default_factory=Path.home)
    kubeconfig_file: Path = Field(default_factory=default_kubeconfig_path)

    @property
    def kube_dir(self) -> Path:
        return self.home_dir / ".kube"

    @property
    def last_context_file(self) -> Path:
        """Plain-text file holding the context to restore on ``upctx ctx -``."""
        return self.kube_dir / "kubectx"

    @property
    def up_config_file(self) -> Path:
        """Profile configuration shared with the up CLI."""
        return self.home_dir / ".up" / "config.json"

    def get_kubeconfig_file(self) -> Path:
        return self.kubeconfig_file

    def get_last_context_file(self) -> Path:
        return self.last_context_file

    def get_up_config_file(self) -> Path:
        return self.up_config_file


# Singleton instance
_path_manager = None


def get_path_manager() -> PathMngrModel:
    """Get the singleton path manager instance."""
    global _path_manager
    if _path_manager is None:
        _path_manager = PathMngrModel()
    return _path_manager


def reset_path_manager() -> None:
    global _path_manager
    _path_manager = None
