"""Expose generated key material at stable per-instance paths."""

import logging
import os
import shutil
from pathlib import Path

from .errors import PublishError
from .layout import InstanceLayout

logger = logging.getLogger(__name__)


class ArtifactLinker:
    """Creates the keys alias and the instance-root CRL copy.

    Calling publish() again once both exist changes nothing.
    """

    def publish(self, layout: InstanceLayout) -> list[Path]:
        """Publish artifacts for an instance.

        Returns:
            Paths created or replaced by this call, empty when already published

        Raises:
            PublishError: If the alias or the CRL copy cannot be created
        """
        changed: list[Path] = []
        if self._link_keystore(layout):
            changed.append(layout.keys_alias)
        if self._copy_crl(layout):
            changed.append(layout.crl_path)
        return changed

    def _link_keystore(self, layout: InstanceLayout) -> bool:
        alias = layout.keys_alias
        target = layout.keystore
        if not target.is_dir():
            raise PublishError(alias, f"key store {target} does not exist")

        if alias.is_symlink():
            if Path(os.readlink(alias)) == target:
                return False
            logger.info("Replacing stale alias %s -> %s", alias, os.readlink(alias))
            alias.unlink()
        elif alias.exists():
            raise PublishError(alias, "path exists and is not a symlink")

        try:
            alias.symlink_to(target, target_is_directory=True)
        except OSError as e:
            raise PublishError(alias, str(e)) from e
        logger.info("Linked %s -> %s", alias, target)
        return True

    def _copy_crl(self, layout: InstanceLayout) -> bool:
        published = layout.crl_path
        if published.exists():
            return False

        source = layout.keystore / "crl.pem"
        if not source.is_file():
            raise PublishError(published, f"no CRL generated at {source}")
        try:
            shutil.copy2(source, published)
        except OSError as e:
            raise PublishError(published, str(e)) from e
        logger.info("Copied %s to %s", source, published)
        return True
