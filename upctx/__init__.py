"""
upctx - Upbound kubeconfig context navigation
"""

from upctx.cli import cli
from upctx.errors import UpctxError
from upctx.utils.paths import get_path_manager

__version__ = "0.1.0"
__all__ = [
    "cli",
    "UpctxError",
    "get_path_manager",
]
