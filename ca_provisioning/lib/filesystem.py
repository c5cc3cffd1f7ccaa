"""Directory materialization for CA instances."""

import logging
import shutil
from pathlib import Path

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class DirectoryMaterializer:
    """Creates directory trees with fixed mode bits and group ownership."""

    def ensure(self, path: Path, mode: int, group: str | None = None) -> None:
        """Create path and missing parents below an existing ancestor.

        Mode and group are applied to every directory this call creates, and
        to path itself.

        Raises:
            ConfigurationError: If the group does not exist
        """
        created: list[Path] = []
        current = path
        while not current.exists():
            created.append(current)
            current = current.parent
        path.mkdir(parents=True, exist_ok=True)

        for directory in list(reversed(created)) or [path]:
            directory.chmod(mode)
            if group:
                try:
                    shutil.chown(directory, group=group)
                except LookupError as e:
                    raise ConfigurationError(f"unknown group: {group}") from e


def copy_tool_tree(source: Path, destination: Path, entrypoint: str) -> bool:
    """Copy the installed easy-rsa tree into an instance.

    Skipped when the tool's entrypoint script is already present.

    Returns:
        True if files were copied

    Raises:
        ConfigurationError: If the source tree does not exist
    """
    if (destination / entrypoint).exists():
        return False
    if not source.is_dir():
        raise ConfigurationError(f"easy-rsa source tree not found: {source}")
    shutil.copytree(source, destination, symlinks=True, dirs_exist_ok=True)
    logger.info("Copied easy-rsa from %s to %s", source, destination)
    return True
