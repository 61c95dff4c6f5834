"""Writers that commit a freshly built kubeconfig context."""

from pathlib import Path
from typing import Callable, Optional

import typer
from loguru import logger

from upctx.ctx.last_context import LastContextStore
from upctx.ctx.merge import contexts_deep_equal, merge_upbound_context
from upctx.kube.kubeconfig import KubeConfig, load_kubeconfig, modify_config

VerifyFunc = Callable[[KubeConfig], None]
ModifyFunc = Callable[[Path, KubeConfig], None]


class PrintWriter:
    """Prints the kubeconfig to stdout instead of touching any file."""

    def write(self, config: KubeConfig) -> None:
        typer.echo(config.to_yaml(), nl=False)


class FileWriter:
    """Upserts the current context of a kubeconfig into a kubeconfig file.

    The incoming context is merged under ``kube_context`` (the canonical name).
    Nothing is written when the merged context is structurally identical to
    the one it replaces. Otherwise ``verify`` runs first and a rejection leaves
    the file untouched.
    """

    def __init__(
        self,
        path: Path,
        kube_context: str,
        last_context: LastContextStore,
        verify: VerifyFunc,
        modify: ModifyFunc = modify_config,
    ):
        self.path = Path(path)
        self.kube_context = kube_context
        self.last_context = last_context
        self.verify = verify
        self.modify = modify

    def load_output_kubeconfig(self) -> KubeConfig:
        try:
            return load_kubeconfig(self.path)
        except FileNotFoundError:
            logger.debug(f"{self.path} does not exist, starting from an empty kubeconfig")
            return KubeConfig()

    def upsert_context(self, config: KubeConfig, out_config: KubeConfig) -> tuple[Optional[KubeConfig], str]:
        """Merge ``config`` into ``out_config``.

        Args:
            config: In-memory kubeconfig whose current context is the new target.
            out_config: Kubeconfig loaded from the output file.

        Returns:
            The merged kubeconfig and the context to restore on the next swap.
            The kubeconfig is None when there is nothing to write.

        Raises:
            ExternalCallError: If the new target does not answer.
        """
        merged, prev_context = merge_upbound_context(
            out_config, config, config.current_context, self.kube_context
        )
        if contexts_deep_equal(merged, prev_context, merged.current_context):
            logger.debug(f"Context {merged.current_context!r} is unchanged, skipping write")
            return None, prev_context
        self.verify(merged)
        return merged, prev_context

    def write(self, config: KubeConfig) -> None:
        out_config = self.load_output_kubeconfig()
        merged, prev_context = self.upsert_context(config, out_config)
        if merged is None:
            return
        self.modify(self.path, merged)

        try:
            self.last_context.write(prev_context)
        except OSError as error:
            logger.warning(f"Unable to save last context {prev_context!r}: {error}")
