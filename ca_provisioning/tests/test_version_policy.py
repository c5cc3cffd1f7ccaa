"""Tests for version_policy module."""

import pytest

from ca_provisioning.lib.config import KeyAlgorithm
from ca_provisioning.lib.errors import ConfigurationError
from ca_provisioning.lib.version_policy import (
    ProtocolGeneration,
    check_algorithm,
    parse_version,
    resolve,
    resolve_for,
)


class TestParseVersion:
    """Tests for parse_version."""

    @pytest.mark.parametrize(
        ("version", "expected"),
        [
            ("3.0.8", (3, 0, 8)),
            ("2.3", (2, 3, 0)),
            ("3", (3, 0, 0)),
            ("v3.1.7", (3, 1, 7)),
            ("3.2.0-rc1", (3, 2, 0)),
            (" 2.2.2 ", (2, 2, 2)),
        ],
    )
    def test_parses_components(self, version: str, expected: tuple[int, int, int]) -> None:
        """Missing components default to zero and suffixes are ignored."""
        assert parse_version(version) == expected

    @pytest.mark.parametrize("version", ["", "latest", "x3.0"])
    def test_rejects_garbage(self, version: str) -> None:
        """Non-numeric versions raise ConfigurationError."""
        with pytest.raises(ConfigurationError, match="unparseable"):
            parse_version(version)


class TestResolve:
    """Tests for resolve()."""

    @pytest.mark.parametrize("version", ["2.0", "2.0.0", "2.3.3", "2.99.99"])
    def test_legacy_range(self, version: str) -> None:
        """[2.0, 3.0) resolves to Legacy."""
        assert resolve(version) is ProtocolGeneration.LEGACY

    @pytest.mark.parametrize("version", ["3.0", "3.0.3", "3.0.8", "3.1.7", "3.10.0"])
    def test_modern_range(self, version: str) -> None:
        """[3.0, 4.0) resolves to Modern."""
        assert resolve(version) is ProtocolGeneration.MODERN

    @pytest.mark.parametrize("version", ["1.9.9", "0.1", "1"])
    def test_too_old(self, version: str) -> None:
        """Versions below 2.0 are rejected as too old."""
        with pytest.raises(ConfigurationError, match="too old"):
            resolve(version)

    @pytest.mark.parametrize("version", ["4.0", "4.0.0", "10.0", "12.1.1"])
    def test_too_new(self, version: str) -> None:
        """Versions at or above 4.0 are rejected, compared numerically."""
        with pytest.raises(ConfigurationError, match="too new"):
            resolve(version)

    def test_deterministic(self) -> None:
        """Same input always yields the same generation."""
        assert {resolve("3.0.8") for _ in range(5)} == {ProtocolGeneration.MODERN}


class TestCheckAlgorithm:
    """Tests for check_algorithm and resolve_for."""

    @pytest.mark.parametrize("algorithm", [KeyAlgorithm.EC, KeyAlgorithm.ED])
    def test_legacy_rejects_non_rsa(self, algorithm: KeyAlgorithm) -> None:
        """Legacy protocol only supports RSA keys."""
        with pytest.raises(ConfigurationError, match="not supported by legacy protocol"):
            check_algorithm(ProtocolGeneration.LEGACY, algorithm)

    def test_legacy_accepts_rsa(self) -> None:
        check_algorithm(ProtocolGeneration.LEGACY, KeyAlgorithm.RSA)

    @pytest.mark.parametrize("algorithm", list(KeyAlgorithm))
    def test_modern_accepts_all(self, algorithm: KeyAlgorithm) -> None:
        check_algorithm(ProtocolGeneration.MODERN, algorithm)

    def test_resolve_for_combines_both_checks(self) -> None:
        """resolve_for returns the generation when the algorithm is allowed."""
        assert resolve_for("3.1.0", KeyAlgorithm.ED) is ProtocolGeneration.MODERN
        with pytest.raises(ConfigurationError):
            resolve_for("2.2.2", KeyAlgorithm.EC)
