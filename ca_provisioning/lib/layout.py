"""Filesystem layout of one CA instance."""

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class InstanceLayout:
    """Paths rooted at <base>/<instance>/ shared by both protocol generations."""

    base_dir: Path
    name: str

    @property
    def root(self) -> Path:
        return self.base_dir / self.name

    @property
    def easyrsa_dir(self) -> Path:
        """Working directory for every step."""
        return self.root / "easy-rsa"

    @property
    def vars_file(self) -> Path:
        return self.easyrsa_dir / "vars"

    @property
    def keystore(self) -> Path:
        """Private key store written by easy-rsa (EASYRSA_PKI for 3.x, KEY_DIR for 2.x)."""
        return self.easyrsa_dir / "keys"

    @property
    def openssl_cnf(self) -> Path:
        return self.easyrsa_dir / "openssl.cnf"

    @property
    def keys_alias(self) -> Path:
        """Stable alias pointing at the key store."""
        return self.root / "keys"

    @property
    def crl_path(self) -> Path:
        """Published CRL, identical location for both generations."""
        return self.root / "crl.pem"

    @property
    def static_key(self) -> Path:
        return self.keystore / "ta.key"
