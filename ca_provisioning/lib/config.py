"""Service configuration and provisioning request dataclasses."""

import os
import re
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path

from .errors import ConfigurationError

ENV_PREFIX = "CA_PROVISIONING_"

INSTANCE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")

SUPPORTED_DIGESTS = frozenset({"md5", "sha1", "sha224", "sha256", "sha384", "sha512"})
ED_CURVES = frozenset({"ed25519", "ed448"})

DEFAULT_RSA_KEY_SIZE = 2048
DEFAULT_EC_CURVE = "secp384r1"
DEFAULT_ED_CURVE = "ed25519"


class KeyAlgorithm(StrEnum):
    """Key algorithms understood by easy-rsa."""

    RSA = "rsa"
    EC = "ec"
    ED = "ed"


class DNMode(StrEnum):
    """Distinguished-name mode for CA initialization."""

    ORG = "org"
    CN_ONLY = "cn_only"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in {"1", "true", "yes", "on"}:
        return True
    if value in {"0", "false", "no", "off"}:
        return False
    raise ConfigurationError(f"{ENV_PREFIX}{name} must be a boolean, got {raw!r}")


def _env_int(name: str, default: int, base: int = 10) -> int:
    raw = os.environ.get(ENV_PREFIX + name)
    if raw is None:
        return default
    try:
        return int(raw, base)
    except ValueError as e:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from e


@dataclass
class ServiceConfig:
    """Process-wide settings shared by every CA instance."""

    base_dir: Path = Path("/etc/openvpn")
    group: str = "nogroup"
    easyrsa_version: str = "3.0.8"
    easyrsa_source: Path = Path("/usr/share/easy-rsa")
    link_openssl_cnf: bool = False
    step_timeout: int = 600
    long_step_timeout: int = 7200
    verify_certificates: bool = False
    dir_mode: int = 0o750

    def __post_init__(self) -> None:
        # Commands run from the easy-rsa directory and symlink targets use these paths
        self.base_dir = Path(self.base_dir).absolute()
        self.easyrsa_source = Path(self.easyrsa_source).absolute()

    @classmethod
    def from_env(cls) -> "ServiceConfig":
        """Build configuration from CA_PROVISIONING_* environment variables.

        Raises:
            ConfigurationError: If a numeric or boolean variable is malformed
        """
        defaults = cls()
        return cls(
            base_dir=Path(os.environ.get(ENV_PREFIX + "BASE_DIR", str(defaults.base_dir))),
            group=os.environ.get(ENV_PREFIX + "GROUP", defaults.group),
            easyrsa_version=os.environ.get(
                ENV_PREFIX + "EASYRSA_VERSION", defaults.easyrsa_version
            ),
            easyrsa_source=Path(
                os.environ.get(ENV_PREFIX + "EASYRSA_SOURCE", str(defaults.easyrsa_source))
            ),
            link_openssl_cnf=_env_bool("LINK_OPENSSL_CNF", defaults.link_openssl_cnf),
            step_timeout=_env_int("STEP_TIMEOUT", defaults.step_timeout),
            long_step_timeout=_env_int("LONG_STEP_TIMEOUT", defaults.long_step_timeout),
            verify_certificates=_env_bool("VERIFY_CERTIFICATES", defaults.verify_certificates),
            dir_mode=_env_int("DIR_MODE", defaults.dir_mode, base=8),
        )


@dataclass(frozen=True)
class DistinguishedName:
    """X.509 subject fields used for the CA and server certificates."""

    country: str
    province: str
    city: str
    organization: str
    email: str
    common_name: str
    organizational_unit: str = ""


@dataclass(frozen=True)
class ProvisioningRequest:
    """Parameters for one certificate-authority instance.

    Immutable once constructed. Invalid combinations raise ConfigurationError
    from __post_init__, before any directory or step is touched.
    """

    name: str
    dn: DistinguishedName
    dn_mode: DNMode = DNMode.ORG
    key_algorithm: KeyAlgorithm = KeyAlgorithm.RSA
    key_size: int | None = None
    key_curve: str | None = None
    ca_expire: int = 3650
    key_expire: int = 3650
    crl_days: int = 30
    digest: str = "sha512"
    key_name: str | None = None
    key_ou: str | None = None
    key_cn: str | None = None
    tls_static_key: bool = False

    def __post_init__(self) -> None:
        if not INSTANCE_NAME_PATTERN.match(self.name):
            raise ConfigurationError(f"invalid instance name: {self.name!r}")
        if not self.dn.common_name:
            raise ConfigurationError("common name must not be empty")
        if len(self.dn.country) != 2:
            raise ConfigurationError(f"country must be a 2-letter code, got {self.dn.country!r}")

        for label in ("ca_expire", "key_expire", "crl_days"):
            if getattr(self, label) <= 0:
                raise ConfigurationError(f"{label} must be positive")

        if self.digest not in SUPPORTED_DIGESTS:
            raise ConfigurationError(f"unsupported digest: {self.digest!r}")

        # Coerce plain strings coming from CLI or JSON
        object.__setattr__(self, "key_algorithm", _coerce(KeyAlgorithm, self.key_algorithm))
        object.__setattr__(self, "dn_mode", _coerce(DNMode, self.dn_mode))

        if self.key_algorithm is KeyAlgorithm.RSA:
            if self.key_curve is not None:
                raise ConfigurationError("key_curve is only valid for ec and ed algorithms")
            if self.key_size is None:
                object.__setattr__(self, "key_size", DEFAULT_RSA_KEY_SIZE)
            if self.key_size < 1024:
                raise ConfigurationError(f"RSA key size too small: {self.key_size}")
            return

        if self.key_size is not None:
            raise ConfigurationError("key_size is only valid for the rsa algorithm")
        if self.key_algorithm is KeyAlgorithm.ED:
            if self.key_curve is None:
                object.__setattr__(self, "key_curve", DEFAULT_ED_CURVE)
            if self.key_curve not in ED_CURVES:
                raise ConfigurationError(f"unsupported ed curve: {self.key_curve!r}")
        elif self.key_curve is None:
            object.__setattr__(self, "key_curve", DEFAULT_EC_CURVE)

    @property
    def common_name(self) -> str:
        return self.dn.common_name


def _coerce(enum_type, value):
    try:
        return enum_type(value)
    except ValueError as e:
        raise ConfigurationError(f"invalid {enum_type.__name__}: {value!r}") from e
