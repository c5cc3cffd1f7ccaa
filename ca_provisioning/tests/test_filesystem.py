"""Tests for directory materialization and tool-tree copying."""

import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from ca_provisioning.lib.errors import ConfigurationError
from ca_provisioning.lib.filesystem import DirectoryMaterializer, copy_tool_tree


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


class TestDirectoryMaterializer:
    """Tests for DirectoryMaterializer.ensure()."""

    def test_creates_tree_with_mode(self, tmp_path: Path) -> None:
        target = tmp_path / "openvpn" / "contractors"
        DirectoryMaterializer().ensure(target, 0o750)

        assert target.is_dir()
        assert _mode(target) == 0o750
        assert _mode(tmp_path / "openvpn") == 0o750

    def test_leaves_existing_ancestors_alone(self, tmp_path: Path) -> None:
        tmp_path.chmod(0o755)
        DirectoryMaterializer().ensure(tmp_path / "ca", 0o700)
        assert _mode(tmp_path) == 0o755

    def test_applies_mode_to_existing_target(self, tmp_path: Path) -> None:
        target = tmp_path / "ca"
        target.mkdir(mode=0o777)
        DirectoryMaterializer().ensure(target, 0o750)
        assert _mode(target) == 0o750

    def test_sets_group(self, tmp_path: Path) -> None:
        target = tmp_path / "ca"
        with patch("ca_provisioning.lib.filesystem.shutil.chown") as mock_chown:
            DirectoryMaterializer().ensure(target, 0o750, group="openvpn")
        mock_chown.assert_called_once_with(target, group="openvpn")

    def test_unknown_group(self, tmp_path: Path) -> None:
        with patch(
            "ca_provisioning.lib.filesystem.shutil.chown", side_effect=LookupError("no group")
        ):
            with pytest.raises(ConfigurationError, match="unknown group"):
                DirectoryMaterializer().ensure(tmp_path / "ca", 0o750, group="missing")


class TestCopyToolTree:
    """Tests for copy_tool_tree."""

    def test_copies_when_entrypoint_missing(self, easyrsa_source: Path, tmp_path: Path) -> None:
        destination = tmp_path / "instance" / "easy-rsa"
        assert copy_tool_tree(easyrsa_source, destination, "easyrsa") is True
        assert (destination / "easyrsa").exists()
        assert (destination / "openssl-easyrsa.cnf").exists()

    def test_skips_when_entrypoint_present(self, easyrsa_source: Path, tmp_path: Path) -> None:
        destination = tmp_path / "easy-rsa"
        destination.mkdir()
        (destination / "easyrsa").write_text("local")

        assert copy_tool_tree(easyrsa_source, destination, "easyrsa") is False
        assert (destination / "easyrsa").read_text() == "local"
        assert not (destination / "pkitool").exists()

    def test_missing_source(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="source tree not found"):
            copy_tool_tree(tmp_path / "nope", tmp_path / "easy-rsa", "easyrsa")
