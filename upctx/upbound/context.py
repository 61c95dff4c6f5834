"""Runtime context shared by navigation, derivation and writers."""

from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

import requests
from kubernetes import client
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from upctx.environment import DEFAULT_DOMAIN
from upctx.errors import ExternalCallError
from upctx.kube import client as kube_client
from upctx.kube.kubeconfig import AuthInfo, ExecConfig, ExecEnvVar, KubeConfig, load_kubeconfig
from upctx.upbound.profile import Profile, UpConfig
from upctx.utils.paths import get_path_manager

SESSION_COOKIE = "SID"
UPBOUND_API_GROUP = "upbound.io"
UPBOUND_API_VERSION = "v1alpha1"
SPACE_MODE_LABEL_KEY = "spaces.upbound.io/mode"
SKIPPED_SPACE_MODES = ("legacy", "connected")
REQUEST_TIMEOUT = 30


class OrganizationInfo(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: int = 0
    name: str
    display_name: str = Field("", alias="displayName")


class SpaceInfo(BaseModel):
    name: str
    fqdn: str = ""
    mode: str = ""


class UpboundContext:
    """Profile, endpoints and the operator's kubeconfig for one invocation."""

    def __init__(
        self,
        profile_name: str = "",
        profile: Optional[Profile] = None,
        domain: str = DEFAULT_DOMAIN,
        insecure_skip_tls_verify: bool = False,
        kubeconfig_path: Optional[Path] = None,
        kubeconfig: Optional[KubeConfig] = None,
    ):
        self.profile_name = profile_name
        self.profile = profile or Profile()
        self.domain = domain
        self.insecure_skip_tls_verify = insecure_skip_tls_verify
        self.kubeconfig_path = Path(kubeconfig_path or get_path_manager().get_kubeconfig_file())
        self.kubeconfig = kubeconfig if kubeconfig is not None else KubeConfig()

    @classmethod
    def from_flags(
        cls,
        profile: Optional[str] = None,
        domain: str = DEFAULT_DOMAIN,
        insecure_skip_tls_verify: bool = False,
        kubeconfig_path: Optional[Path] = None,
    ) -> "UpboundContext":
        paths = get_path_manager()
        up_config = UpConfig.load(paths.get_up_config_file())
        profile_name, selected = up_config.get_profile(profile)
        kubeconfig_path = Path(kubeconfig_path or paths.get_kubeconfig_file())
        try:
            kubeconfig = load_kubeconfig(kubeconfig_path)
        except FileNotFoundError:
            logger.debug(f"{kubeconfig_path} not found, using an empty kubeconfig")
            kubeconfig = KubeConfig()
        return cls(
            profile_name=profile_name,
            profile=selected,
            domain=domain,
            insecure_skip_tls_verify=insecure_skip_tls_verify,
            kubeconfig_path=kubeconfig_path,
            kubeconfig=kubeconfig,
        )

    @property
    def api_endpoint(self) -> str:
        parsed = urlparse(self.domain)
        scheme = parsed.scheme or "https"
        host = parsed.netloc or parsed.path
        return f"{scheme}://api.{host}"

    def list_organizations(self) -> List[OrganizationInfo]:
        url = f"{self.api_endpoint}/v1/organizations"
        logger.debug(f"Listing organizations from {url}")
        try:
            response = requests.get(
                url,
                cookies={SESSION_COOKIE: self.profile.session},
                headers={"User-Agent": kube_client.USER_AGENT},
                verify=not self.insecure_skip_tls_verify,
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
        except requests.RequestException as error:
            raise ExternalCallError(f"error listing organizations: {error}") from error
        return [OrganizationInfo.model_validate(org) for org in response.json()]

    def _cloud_api_client(self) -> client.ApiClient:
        configuration = client.Configuration()
        configuration.host = self.api_endpoint
        configuration.verify_ssl = not self.insecure_skip_tls_verify
        api_client = client.ApiClient(configuration, cookie=f"{SESSION_COOKIE}={self.profile.session}")
        api_client.user_agent = kube_client.USER_AGENT
        return api_client

    def list_spaces(self, org: str) -> List[SpaceInfo]:
        """List the spaces of an organization that ``upctx`` can navigate into."""
        try:
            result = client.CustomObjectsApi(self._cloud_api_client()).list_namespaced_custom_object(
                UPBOUND_API_GROUP, UPBOUND_API_VERSION, org, "spaces"
            )
        except Exception as error:
            raise ExternalCallError(f"error listing spaces in {org!r}: {error}") from error

        spaces = []
        for item in result.get("items", []):
            metadata: Dict[str, Any] = item.get("metadata", {})
            mode = (metadata.get("labels") or {}).get(SPACE_MODE_LABEL_KEY, "")
            if mode in SKIPPED_SPACE_MODES:
                logger.debug(f"Skipping {mode} space {metadata.get('name')!r}")
                continue
            spaces.append(
                SpaceInfo(name=metadata["name"], fqdn=(item.get("status") or {}).get("fqdn", ""), mode=mode)
            )
        return spaces

    def org_auth_info(self, org: str) -> AuthInfo:
        """Auth-info that fetches an organization-scoped token through the up CLI."""
        return AuthInfo(
            exec=ExecConfig(
                api_version="client.authentication.k8s.io/v1",
                command="up",
                args=["organization", "token"],
                env=[
                    ExecEnvVar(name="ORGANIZATION", value=org),
                    ExecEnvVar(name="UP_PROFILE", value=self.profile_name),
                ],
                interactive_mode="IfAvailable",
            )
        )

    def list_groups(self, conf: KubeConfig) -> List[str]:
        try:
            return kube_client.list_group_names(kube_client.load_clients(conf))
        except Exception as error:
            raise ExternalCallError(f"error listing groups: {error}") from error

    def list_control_planes(self, conf: KubeConfig, group: str) -> List[str]:
        try:
            return kube_client.list_control_plane_names(kube_client.load_clients(conf), group)
        except Exception as error:
            raise ExternalCallError(f"error listing control planes in {group!r}: {error}") from error

    def get_ingress(self, conf: KubeConfig) -> tuple[str, str]:
        """Return the self-hosted ingress (host, CA). ApiExceptions propagate unwrapped."""
        return kube_client.get_ingress_host(kube_client.load_clients(conf))

    def verify(self, conf: KubeConfig) -> None:
        kube_client.verify_kubeconfig(conf)
