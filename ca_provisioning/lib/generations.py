"""Per-generation command conventions for easy-rsa 2.x and 3.x.

Each profile holds everything that differs between the two protocols:
command lines, output paths, the DH ordering rule and the openssl config
link target. The workflow builder only composes the shared topology.
"""

import shlex
from pathlib import Path

from .config import DNMode, ProvisioningRequest
from .errors import TaskGraphError
from .layout import InstanceLayout
from .version_policy import ProtocolGeneration, parse_version

# Subject variables easy-rsa 2.x would otherwise leak into the CRL
LEGACY_CRL_BLANKED_VARS = ("KEY_CN", "KEY_OU", "KEY_NAME", "KEY_ALTNAMES")

# Modern versions above this use the renamed default openssl config
MODERN_CNF_RENAME_AFTER = (3, 0, 3)

STATIC_KEY_COMMAND = "openvpn --genkey --secret keys/ta.key"


class GenerationProfile:
    """Command and path conventions of one protocol generation."""

    generation: ProtocolGeneration
    entrypoint: str
    dh_follows_server_certificate: bool

    def openssl_cnf_target(self, tool_version: str) -> str:
        raise NotImplementedError

    def ca_key(self, layout: InstanceLayout) -> Path:
        raise NotImplementedError

    def ca_cert(self, layout: InstanceLayout) -> Path:
        raise NotImplementedError

    def server_key(self, layout: InstanceLayout, common_name: str) -> Path:
        raise NotImplementedError

    def server_cert(self, layout: InstanceLayout, common_name: str) -> Path:
        raise NotImplementedError

    def dh_params(self, layout: InstanceLayout, request: ProvisioningRequest) -> Path:
        raise NotImplementedError

    def init_ca_command(self, request: ProvisioningRequest) -> str:
        raise NotImplementedError

    def init_ca_env(self, request: ProvisioningRequest) -> dict[str, str]:
        return {}

    def server_certificate_command(self, request: ProvisioningRequest) -> str:
        raise NotImplementedError

    def dh_command(self, request: ProvisioningRequest) -> str:
        raise NotImplementedError

    def crl_command(self, layout: InstanceLayout) -> str:
        raise NotImplementedError

    def static_key_command(self) -> str:
        return STATIC_KEY_COMMAND


class LegacyProfile(GenerationProfile):
    """easy-rsa 2.x: sourced vars file plus pkitool, DH generated first."""

    generation = ProtocolGeneration.LEGACY
    entrypoint = "pkitool"
    # build-dh runs after clean-all, which empties the key store
    dh_follows_server_certificate = False

    def openssl_cnf_target(self, tool_version: str) -> str:
        return "openssl-1.0.0.cnf"

    def ca_key(self, layout: InstanceLayout) -> Path:
        return layout.keystore / "ca.key"

    def ca_cert(self, layout: InstanceLayout) -> Path:
        return layout.keystore / "ca.crt"

    def server_key(self, layout: InstanceLayout, common_name: str) -> Path:
        return layout.keystore / f"{common_name}.key"

    def server_cert(self, layout: InstanceLayout, common_name: str) -> Path:
        return layout.keystore / f"{common_name}.crt"

    def dh_params(self, layout: InstanceLayout, request: ProvisioningRequest) -> Path:
        return layout.keystore / f"dh{request.key_size}.pem"

    def init_ca_command(self, request: ProvisioningRequest) -> str:
        return ". ./vars && ./pkitool --initca"

    def server_certificate_command(self, request: ProvisioningRequest) -> str:
        return f". ./vars && ./pkitool --server {shlex.quote(request.common_name)}"

    def dh_command(self, request: ProvisioningRequest) -> str:
        # clean-all empties the key store, so it only runs before a CA exists
        return '. ./vars && { [ -f "$KEY_DIR/ca.key" ] || ./clean-all; } && ./build-dh'

    def crl_command(self, layout: InstanceLayout) -> str:
        blanked = " ".join(f"{name}=" for name in LEGACY_CRL_BLANKED_VARS)
        return (
            f". ./vars && env {blanked} openssl ca -gencrl"
            f" -out {shlex.quote(str(layout.crl_path))}"
            ' -config "$KEY_CONFIG"'
        )


class ModernProfile(GenerationProfile):
    """easy-rsa 3.x: the easyrsa front-end in batch mode, DH after the server cert."""

    generation = ProtocolGeneration.MODERN
    entrypoint = "easyrsa"
    dh_follows_server_certificate = True

    def openssl_cnf_target(self, tool_version: str) -> str:
        if parse_version(tool_version) > MODERN_CNF_RENAME_AFTER:
            return "openssl-easyrsa.cnf"
        return "openssl-1.0.cnf"

    def ca_key(self, layout: InstanceLayout) -> Path:
        return layout.keystore / "private" / "ca.key"

    def ca_cert(self, layout: InstanceLayout) -> Path:
        return layout.keystore / "ca.crt"

    def server_key(self, layout: InstanceLayout, common_name: str) -> Path:
        return layout.keystore / "private" / f"{common_name}.key"

    def server_cert(self, layout: InstanceLayout, common_name: str) -> Path:
        return layout.keystore / "issued" / f"{common_name}.crt"

    def dh_params(self, layout: InstanceLayout, request: ProvisioningRequest) -> Path:
        return layout.keystore / "dh.pem"

    def init_ca_command(self, request: ProvisioningRequest) -> str:
        return "./easyrsa --batch init-pki && ./easyrsa --batch build-ca nopass"

    def init_ca_env(self, request: ProvisioningRequest) -> dict[str, str]:
        if request.dn_mode is DNMode.CN_ONLY:
            return {"EASYRSA_REQ_CN": f"{request.common_name} CA"}
        return {}

    def server_certificate_command(self, request: ProvisioningRequest) -> str:
        return f"./easyrsa --batch build-server-full {shlex.quote(request.common_name)} nopass"

    def dh_command(self, request: ProvisioningRequest) -> str:
        return "./easyrsa --batch gen-dh"

    def crl_command(self, layout: InstanceLayout) -> str:
        return f"./easyrsa --batch gen-crl && cp keys/crl.pem {shlex.quote(str(layout.crl_path))}"


PROFILES: dict[ProtocolGeneration, GenerationProfile] = {
    ProtocolGeneration.LEGACY: LegacyProfile(),
    ProtocolGeneration.MODERN: ModernProfile(),
}


def profile_for(generation: ProtocolGeneration) -> GenerationProfile:
    """Return the profile for a resolved generation.

    Raises:
        TaskGraphError: If the generation has no profile; resolution should have
            rejected it already
    """
    try:
        return PROFILES[generation]
    except KeyError:
        raise TaskGraphError(f"no profile for protocol generation {generation!r}") from None
