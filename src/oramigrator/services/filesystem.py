"""Filesystem helpers for oramigrator."""

import logging
import os
import shutil
import sys

from oramigrator.constants import DIR_MODE
from oramigrator.models import GeneratedArtifact, WorkspaceLayout


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger):
        self.logger = logger

    def set_permissions(self, path: str, mode: int):
        if sys.platform == "win32":
            return

        try:
            os.chmod(path, mode)
        except Exception as exc:
            self.logger.warning("Could not set permissions on %s: %s", path, exc)

    def prepare_workspace(self, layout: WorkspaceLayout):
        for directory in (layout.logs_dir, layout.dump_dir):
            if not os.path.isdir(directory):
                os.makedirs(directory, exist_ok=True)
                self.set_permissions(directory, DIR_MODE)
                self.logger.info("Created directory %s", directory)

    def write_if_missing(self, artifact: GeneratedArtifact) -> bool:
        """Write the artifact unless a file already exists at its path.

        Returns True when the file was created.
        """
        if os.path.exists(artifact.path):
            self.logger.info("Keeping existing %s", artifact.path)
            return False

        # newline="\n" and a BOM-less codec keep the file readable by the container shell
        with open(artifact.path, "w", encoding=artifact.encoding, newline="\n") as file_obj:
            file_obj.write(artifact.content)

        if artifact.mode is not None:
            self.set_permissions(artifact.path, artifact.mode)

        self.logger.info("Created %s", artifact.path)
        return True

    def clear_dir(self, path: str):
        """Remove everything inside path, keeping the directory itself."""
        if not os.path.isdir(path):
            return

        for entry in os.listdir(path):
            entry_path = os.path.join(path, entry)
            if os.path.isdir(entry_path) and not os.path.islink(entry_path):
                shutil.rmtree(entry_path)
            else:
                os.remove(entry_path)
            self.logger.debug("Removed %s", entry_path)
