"""Kubeconfig model and YAML codec.

The models mirror the on-disk kubeconfig format and keep unknown keys
(``extra="allow"``) so that entries upctx does not understand survive a
load/dump cycle untouched.
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from upctx.errors import KubeconfigError

CLUSTERS = "clusters"
CONTEXTS = "contexts"
USERS = "users"


class _KubeModel(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class Cluster(_KubeModel):
    """A named API server endpoint."""

    server: str = ""
    certificate_authority_data: Optional[str] = Field(None, alias="certificate-authority-data")
    insecure_skip_tls_verify: Optional[bool] = Field(None, alias="insecure-skip-tls-verify")


class ExecEnvVar(_KubeModel):
    name: str
    value: str


class ExecConfig(_KubeModel):
    """Exec credential plugin descriptor."""

    api_version: str = Field("client.authentication.k8s.io/v1", alias="apiVersion")
    command: str
    args: Optional[List[str]] = None
    env: Optional[List[ExecEnvVar]] = None
    interactive_mode: Optional[str] = Field(None, alias="interactiveMode")


class AuthInfo(_KubeModel):
    """Credentials for a cluster (the ``users`` section)."""

    token: Optional[str] = None
    exec: Optional[ExecConfig] = None


class NamedExtension(_KubeModel):
    name: str
    extension: Any = None


class Context(_KubeModel):
    """A (cluster, user, namespace) triple."""

    cluster: str = ""
    auth_info: str = Field("", alias="user")
    namespace: Optional[str] = None
    extensions: Optional[List[NamedExtension]] = None

    def get_extension(self, name: str) -> Any:
        for entry in self.extensions or []:
            if entry.name == name:
                return entry.extension
        return None

    def set_extension(self, name: str, value: Any) -> None:
        entries = [entry for entry in self.extensions or [] if entry.name != name]
        entries.append(NamedExtension(name=name, extension=value))
        self.extensions = entries


_SECTION_MODELS = {CLUSTERS: Cluster, CONTEXTS: Context, USERS: AuthInfo}
_SECTION_ITEM_KEYS = {CLUSTERS: "cluster", CONTEXTS: "context", USERS: "user"}


class KubeConfig(BaseModel):
    """In-memory kubeconfig with name-keyed maps instead of named lists."""

    model_config = ConfigDict(populate_by_name=True)

    api_version: str = "v1"
    kind: str = "Config"
    current_context: str = ""
    clusters: Dict[str, Cluster] = Field(default_factory=dict)
    contexts: Dict[str, Context] = Field(default_factory=dict)
    auth_infos: Dict[str, AuthInfo] = Field(default_factory=dict)
    preferences: Dict[str, Any] = Field(default_factory=dict)

    def deep_copy(self) -> "KubeConfig":
        return self.model_copy(deep=True)

    def section(self, name: str) -> Dict[str, BaseModel]:
        """Return the name-keyed map for a kubeconfig section (clusters, contexts, users)."""
        if name == CLUSTERS:
            return self.clusters
        if name == CONTEXTS:
            return self.contexts
        if name == USERS:
            return self.auth_infos
        raise KeyError(name)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "KubeConfig":
        data = data or {}
        sections = {}
        for section, model in _SECTION_MODELS.items():
            item_key = _SECTION_ITEM_KEYS[section]
            entries = {}
            for entry in data.get(section) or []:
                entries[entry["name"]] = model.model_validate(entry.get(item_key) or {})
            sections[section] = entries
        return cls(
            api_version=data.get("apiVersion") or "v1",
            kind=data.get("kind") or "Config",
            current_context=data.get("current-context") or "",
            clusters=sections[CLUSTERS],
            contexts=sections[CONTEXTS],
            auth_infos=sections[USERS],
            preferences=data.get("preferences") or {},
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"apiVersion": self.api_version, "kind": self.kind}
        data["preferences"] = dict(self.preferences)
        for section in (CLUSTERS, CONTEXTS, USERS):
            item_key = _SECTION_ITEM_KEYS[section]
            data[section] = [
                {"name": name, item_key: entry.to_dict()}
                for name, entry in self.section(section).items()
            ]
        data["current-context"] = self.current_context
        return data

    @classmethod
    def from_yaml(cls, text: str) -> "KubeConfig":
        return cls.from_dict(yaml.safe_load(text))

    def to_yaml(self) -> str:
        return dump_yaml(self.to_dict())


def dump_yaml(data: Dict[str, Any]) -> str:
    return yaml.safe_dump(data, default_flow_style=False, sort_keys=False)


def _read_text(path: Path) -> str:
    try:
        return path.read_text()
    except FileNotFoundError:
        raise
    except OSError as error:
        raise KubeconfigError(f"unable to read kubeconfig {path}: {error}") from error


def load_kubeconfig(path: Path) -> KubeConfig:
    """Load a kubeconfig file.

    Args:
        path: Location of the kubeconfig.

    Returns:
        The parsed kubeconfig.

    Raises:
        FileNotFoundError: If the file does not exist.
        KubeconfigError: If the file cannot be read or is not a valid kubeconfig.
    """
    path = Path(path)
    logger.debug(f"Loading kubeconfig from {path}")
    text = _read_text(path)
    try:
        return KubeConfig.from_yaml(text)
    except (yaml.YAMLError, ValidationError, KeyError, TypeError, AttributeError) as error:
        raise KubeconfigError(f"unable to parse kubeconfig {path}: {error}") from error


def _merge_section(raw_entries: List[Dict[str, Any]], section: str, new_config: KubeConfig) -> List[Dict[str, Any]]:
    model = _SECTION_MODELS[section]
    item_key = _SECTION_ITEM_KEYS[section]
    wanted = new_config.section(section)

    merged = []
    seen = set()
    for entry in raw_entries:
        name = entry.get("name")
        if name not in wanted:
            logger.debug(f"Removing {section} entry {name!r}")
            continue
        seen.add(name)
        current = model.model_validate(entry.get(item_key) or {})
        if current.to_dict() == wanted[name].to_dict():
            merged.append(entry)
        else:
            logger.debug(f"Updating {section} entry {name!r}")
            merged.append({"name": name, item_key: wanted[name].to_dict()})
    for name, value in wanted.items():
        if name not in seen:
            logger.debug(f"Adding {section} entry {name!r}")
            merged.append({"name": name, item_key: value.to_dict()})
    return merged


def modify_config(path: Path, new_config: KubeConfig) -> None:
    """Write ``new_config`` to ``path`` using read-merge-write.

    The file is read again right before writing. Unchanged entries and unknown
    top-level keys are kept as they are on disk. Changed entries are replaced,
    entries missing from ``new_config`` are removed and new ones are appended.

    Args:
        path: Kubeconfig to update. It is created when missing.
        new_config: The complete desired kubeconfig.

    Raises:
        KubeconfigError: If the existing file cannot be parsed or the result
            cannot be written.
    """
    path = Path(path)
    try:
        raw = yaml.safe_load(_read_text(path)) or {}
    except FileNotFoundError:
        raw = {}
    except yaml.YAMLError as error:
        raise KubeconfigError(f"unable to parse kubeconfig {path}: {error}") from error
    if not isinstance(raw, dict):
        raise KubeconfigError(f"unable to parse kubeconfig {path}: expected a mapping")

    raw.setdefault("apiVersion", new_config.api_version)
    raw.setdefault("kind", new_config.kind)
    for section in (CLUSTERS, CONTEXTS, USERS):
        raw[section] = _merge_section(raw.get(section) or [], section, new_config)
    raw["current-context"] = new_config.current_context

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(dump_yaml(raw))
    except OSError as error:
        raise KubeconfigError(f"unable to write kubeconfig {path}: {error}") from error
    logger.info(f"Wrote kubeconfig {path}")
