"""Profiles stored by the up CLI in ``~/.up/config.json``."""

from pathlib import Path
from typing import Dict, Optional, Tuple

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from upctx.errors import ProfileError


class Profile(BaseModel):
    """Credentials and defaults for talking to Upbound."""

    model_config = ConfigDict(extra="allow")

    id: str = ""
    type: str = "user"
    session: str = ""
    account: str = ""
    kubeconfig: str = ""
    kube_context: str = ""
    base: Dict[str, str] = Field(default_factory=dict)


class UpboundProfiles(BaseModel):
    model_config = ConfigDict(extra="allow")

    default: str = ""
    profiles: Dict[str, Profile] = Field(default_factory=dict)


class UpConfig(BaseModel):
    model_config = ConfigDict(extra="allow")

    upbound: UpboundProfiles = Field(default_factory=UpboundProfiles)

    @classmethod
    def load(cls, path: Path) -> "UpConfig":
        """Load the config file; a missing file yields an empty config."""
        path = Path(path)
        if not path.exists():
            logger.debug(f"No up config at {path}")
            return cls()
        try:
            return cls.model_validate_json(path.read_text())
        except ValidationError as error:
            raise ProfileError(f"unable to parse {path}: {error}") from error

    def get_profile(self, name: Optional[str] = None) -> Tuple[str, Profile]:
        """Return (name, profile) for ``name`` or for the default profile."""
        name = name or self.upbound.default
        if not name:
            return "", Profile()
        profile = self.upbound.profiles.get(name)
        if profile is None:
            raise ProfileError(f'profile "{name}" not found')
        return name, profile
