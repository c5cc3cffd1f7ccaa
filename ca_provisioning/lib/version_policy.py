"""Map an easy-rsa version string to the command protocol it speaks."""

import re
from enum import StrEnum

from .config import KeyAlgorithm
from .errors import ConfigurationError

_VERSION_PATTERN = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?")

LEGACY_MIN = (2, 0, 0)
MODERN_MIN = (3, 0, 0)
UNSUPPORTED_MIN = (4, 0, 0)


class ProtocolGeneration(StrEnum):
    """Mutually exclusive easy-rsa command conventions."""

    LEGACY = "legacy"  # easy-rsa 2.x, pkitool
    MODERN = "modern"  # easy-rsa 3.x, easyrsa


def parse_version(version: str) -> tuple[int, int, int]:
    """Parse 'major[.minor[.patch]]' into a comparable integer tuple.

    Missing components count as zero; trailing suffixes such as '-rc1' are
    ignored.

    Raises:
        ConfigurationError: If the string does not start with a version number
    """
    match = _VERSION_PATTERN.match(version.strip())
    if match is None:
        raise ConfigurationError(f"unparseable easy-rsa version: {version!r}")
    major, minor, patch = (int(part) if part else 0 for part in match.groups())
    return major, minor, patch


def resolve(version: str) -> ProtocolGeneration:
    """Resolve the protocol generation for a tool version.

    Raises:
        ConfigurationError: If the version is below 2.0 or at/above 4.0
    """
    parsed = parse_version(version)
    if parsed < LEGACY_MIN:
        raise ConfigurationError(f"easy-rsa {version} is unsupported: too old")
    if parsed < MODERN_MIN:
        return ProtocolGeneration.LEGACY
    if parsed < UNSUPPORTED_MIN:
        return ProtocolGeneration.MODERN
    raise ConfigurationError(f"easy-rsa {version} is unsupported: too new")


def check_algorithm(generation: ProtocolGeneration, key_algorithm: KeyAlgorithm) -> None:
    """Reject key algorithms the generation cannot produce.

    Raises:
        ConfigurationError: If a non-RSA algorithm is requested under Legacy
    """
    if generation is ProtocolGeneration.LEGACY and key_algorithm is not KeyAlgorithm.RSA:
        raise ConfigurationError(
            f"algorithm {key_algorithm.value} not supported by legacy protocol (easy-rsa 2.x)"
        )


def resolve_for(version: str, key_algorithm: KeyAlgorithm) -> ProtocolGeneration:
    """Resolve the generation and validate the requested algorithm against it."""
    generation = resolve(version)
    check_algorithm(generation, key_algorithm)
    return generation
