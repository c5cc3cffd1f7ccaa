"""Render the easy-rsa parameter ("vars") file for an instance."""

import logging
from pathlib import Path
from shlex import quote

from .config import KeyAlgorithm, ProvisioningRequest
from .generations import profile_for
from .layout import InstanceLayout
from .version_policy import ProtocolGeneration

logger = logging.getLogger(__name__)

HEADER = "# Managed by ca-provision, local changes will be overwritten\n"


def render_legacy(request: ProvisioningRequest) -> str:
    """Return easy-rsa 2.x vars content: plain shell exports."""
    dn = request.dn
    lines = [
        'export EASY_RSA="`pwd`"',
        'export OPENSSL="openssl"',
        'export PKCS11TOOL="pkcs11-tool"',
        'export GREP="grep"',
        'export KEY_CONFIG=`$EASY_RSA/whichopensslcnf $EASY_RSA`',
        'export KEY_DIR="$EASY_RSA/keys"',
        'export PKCS11_MODULE_PATH="dummy"',
        'export PKCS11_PIN="dummy"',
        f"export KEY_SIZE={request.key_size}",
        f"export CA_EXPIRE={request.ca_expire}",
        f"export KEY_EXPIRE={request.key_expire}",
        f"export KEY_COUNTRY={quote(dn.country)}",
        f"export KEY_PROVINCE={quote(dn.province)}",
        f"export KEY_CITY={quote(dn.city)}",
        f"export KEY_ORG={quote(dn.organization)}",
        f"export KEY_EMAIL={quote(dn.email)}",
    ]
    if request.key_cn is not None:
        lines.append(f"export KEY_CN={quote(request.key_cn)}")
    if request.key_name is not None:
        lines.append(f"export KEY_NAME={quote(request.key_name)}")
    if request.key_ou is not None:
        lines.append(f"export KEY_OU={quote(request.key_ou)}")
    return HEADER + "\n".join(lines) + "\n"


def render_modern(request: ProvisioningRequest, ssl_conf: str) -> str:
    """Return easy-rsa 3.x vars content: set_var lines read by the easyrsa script."""
    dn = request.dn
    settings: list[tuple[str, str]] = [
        ("EASYRSA_PKI", '"$PWD/keys"'),
        ("EASYRSA_SSL_CONF", f'"$PWD/{ssl_conf}"'),
        ("EASYRSA_DN", quote(request.dn_mode.value)),
        ("EASYRSA_REQ_COUNTRY", quote(dn.country)),
        ("EASYRSA_REQ_PROVINCE", quote(dn.province)),
        ("EASYRSA_REQ_CITY", quote(dn.city)),
        ("EASYRSA_REQ_ORG", quote(dn.organization)),
        ("EASYRSA_REQ_EMAIL", quote(dn.email)),
        ("EASYRSA_ALGO", request.key_algorithm.value),
    ]
    if request.key_algorithm is KeyAlgorithm.RSA:
        settings.append(("EASYRSA_KEY_SIZE", str(request.key_size)))
    else:
        settings.append(("EASYRSA_CURVE", quote(request.key_curve)))
    settings += [
        ("EASYRSA_CA_EXPIRE", str(request.ca_expire)),
        ("EASYRSA_CERT_EXPIRE", str(request.key_expire)),
        ("EASYRSA_CRL_DAYS", str(request.crl_days)),
        ("EASYRSA_DIGEST", quote(request.digest)),
    ]
    if request.key_ou is not None:
        settings.append(("EASYRSA_REQ_OU", quote(request.key_ou)))
    if request.key_cn is not None:
        settings.append(("EASYRSA_REQ_CN", quote(request.key_cn)))
    return HEADER + "".join(f"set_var {name} {value}\n" for name, value in settings)


class VarsRenderer:
    """Writes the vars file every easy-rsa invocation of an instance reads."""

    def render(
        self,
        request: ProvisioningRequest,
        generation: ProtocolGeneration,
        layout: InstanceLayout,
        tool_version: str,
    ) -> Path:
        if generation is ProtocolGeneration.LEGACY:
            content = render_legacy(request)
        else:
            ssl_conf = profile_for(generation).openssl_cnf_target(tool_version)
            content = render_modern(request, ssl_conf)

        path = layout.vars_file
        if path.exists() and path.read_text() == content:
            return path
        path.write_text(content)
        path.chmod(0o640)
        logger.info("Rendered %s for easy-rsa %s", path, tool_version)
        return path
