"""Storage for the context name restored by ``upctx ctx -``."""

from pathlib import Path

from loguru import logger


class LastContextStore:
    """Single-value store backed by a plain-text file (``~/.kube/kubectx``)."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> str:
        """Return the saved context name, or "" if nothing was saved yet."""
        try:
            return self.path.read_text()
        except FileNotFoundError:
            return ""

    def write(self, value: str) -> None:
        """Save ``value``, creating missing parent directories."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(value)
        logger.debug(f"Saved last context {value!r} to {self.path}")


class MemoryLastContextStore:
    """In-memory store with the same interface as LastContextStore."""

    def __init__(self, value: str = ""):
        self.value = value

    def read(self) -> str:
        return self.value

    def write(self, value: str) -> None:
        self.value = value
