"""
Visibility to permission bit mapping.
"""

import logging
from typing import Optional

from localfs.config import PermissionMap
from localfs.models import EntryType, Visibility
from localfs.native import FileSystemCapability, NativeFileSystem

logger = logging.getLogger(__name__)


class VisibilityMapper:
    """
    Translates between visibilities and permission bits.

    Usage:
        mapper = VisibilityMapper()
        mapper.permissions_for(EntryType.FILE, Visibility.PRIVATE)  # 0o600
        mapper.visibility_for(EntryType.DIR, 0o755)                 # Visibility.PUBLIC
    """

    def __init__(
        self,
        permissions: Optional[PermissionMap] = None,
        fs: Optional[FileSystemCapability] = None,
        unknown_visibility: Visibility = Visibility.PUBLIC,
    ):
        self.permissions = permissions or PermissionMap()
        self.fs = fs or NativeFileSystem()
        self.unknown_visibility = unknown_visibility

    def permissions_for(self, kind: EntryType, visibility: Visibility) -> int:
        table = self.permissions.dir if kind == EntryType.DIR else self.permissions.file
        return table.for_visibility(Visibility(visibility))

    def visibility_for(self, kind: EntryType, mode: int) -> Visibility:
        """Inverse lookup on the lower permission bits of ``mode``."""
        bits = mode & 0o7777
        table = self.permissions.dir if kind == EntryType.DIR else self.permissions.file
        if bits == table.public:
            return Visibility.PUBLIC
        if bits == table.private:
            return Visibility.PRIVATE
        return self.unknown_visibility

    def apply(self, location: str, kind: EntryType, visibility: Visibility) -> bool:
        """
        Change the permission bits of ``location``.

        Returns:
            False when the change-mode call fails, True otherwise
        """
        mode = self.permissions_for(kind, visibility)
        try:
            self.fs.chmod(location, mode)
        except OSError as e:
            logger.warning(f"Failed to set visibility of {location} to {mode:04o}: {e}")
            return False
        logger.debug(f"Set visibility of {location} to {Visibility(visibility).value}")
        return True
