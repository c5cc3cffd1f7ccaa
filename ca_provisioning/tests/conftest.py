"""Test fixtures for ca_provisioning tests."""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec

from ca_provisioning.lib.config import (
    DistinguishedName,
    KeyAlgorithm,
    ProvisioningRequest,
    ServiceConfig,
)
from ca_provisioning.lib.layout import InstanceLayout
from ca_provisioning.lib.models import CommandResult
from ca_provisioning.lib.task_graph import StepSpec


class RecordingRunner:
    """Command runner that records steps and creates their markers instead of running them."""

    def __init__(self, fail_on: dict[str, CommandResult] | None = None) -> None:
        self.fail_on = fail_on or {}
        self.calls: list[str] = []

    def run(self, step: StepSpec) -> CommandResult:
        self.calls.append(step.name)
        if step.name in self.fail_on:
            return self.fail_on[step.name]
        step.marker.parent.mkdir(parents=True, exist_ok=True)
        step.marker.touch()
        return CommandResult(returncode=0, output="")


@pytest.fixture
def easyrsa_source(tmp_path: Path) -> Path:
    """Return a fake installed easy-rsa tree with both entrypoints."""
    source = tmp_path / "easy-rsa-src"
    source.mkdir()
    for script in ("easyrsa", "pkitool", "clean-all", "build-dh"):
        (source / script).write_text("#!/bin/sh\n")
    (source / "openssl-easyrsa.cnf").write_text("# config\n")
    return source


@pytest.fixture
def service_config(tmp_path: Path, easyrsa_source: Path) -> ServiceConfig:
    """Return configuration rooted in a temporary directory, without chown."""
    return ServiceConfig(
        base_dir=tmp_path / "openvpn",
        group="",
        easyrsa_version="3.0.8",
        easyrsa_source=easyrsa_source,
        step_timeout=60,
        long_step_timeout=3600,
    )


@pytest.fixture
def legacy_config(service_config: ServiceConfig) -> ServiceConfig:
    service_config.easyrsa_version = "2.3.3"
    return service_config


@pytest.fixture
def dn() -> DistinguishedName:
    return DistinguishedName(
        country="GB",
        province="London",
        city="London",
        organization="Test Org",
        email="pki@example.com",
        common_name="vpn.example.com",
    )


@pytest.fixture
def make_request(dn: DistinguishedName) -> Callable[..., ProvisioningRequest]:
    """Return factory for requests with test defaults."""

    def _make(**overrides: object) -> ProvisioningRequest:
        fields: dict[str, object] = {
            "name": "contractors",
            "dn": dn,
            "key_algorithm": KeyAlgorithm.RSA,
            "key_size": 2048,
        }
        fields.update(overrides)
        return ProvisioningRequest(**fields)

    return _make


@pytest.fixture
def rsa_request(make_request: Callable[..., ProvisioningRequest]) -> ProvisioningRequest:
    return make_request()


@pytest.fixture
def layout(service_config: ServiceConfig) -> InstanceLayout:
    return InstanceLayout(service_config.base_dir, "contractors")


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def write_certificate() -> Callable[..., Path]:
    """Return helper writing a self-signed PEM certificate with a chosen validity window."""

    def _write(
        path: Path,
        not_before: datetime | None = None,
        not_after: datetime | None = None,
        common_name: str = "Test CA",
    ) -> Path:
        now = datetime.now(UTC)
        not_before = not_before or now - timedelta(days=1)
        not_after = not_after or now + timedelta(days=30)
        key = ec.generate_private_key(ec.SECP256R1())
        name = x509.Name([x509.NameAttribute(x509.NameOID.COMMON_NAME, common_name)])
        cert = (
            x509.CertificateBuilder()
            .subject_name(name)
            .issuer_name(name)
            .public_key(key.public_key())
            .serial_number(0xABCDE)
            .not_valid_before(not_before)
            .not_valid_after(not_after)
            .sign(key, hashes.SHA256())
        )
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(cert.public_bytes(serialization.Encoding.PEM))
        return path

    return _write
