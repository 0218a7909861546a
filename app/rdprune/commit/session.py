"""Per-run temporary workspace.

Every artifact a run creates before installing it (rewritten metadata,
the plan file under review) lives in one Session directory. The
directory is removed on every exit path unless the caller asked to
keep it.
"""

import logging
import shutil
import tempfile
from pathlib import Path
from types import TracebackType

from rdprune.core.errors import WorkspaceError

logger = logging.getLogger(__name__)

PLAN_FILENAME = "plan.lst"
REWRITE_SUBDIR = "rewritten"


class Session:
    """Temporary workspace owned by one invocation.

    Example:
        >>> with Session() as session:
        ...     target = session.allocate("mirror_metadata.2024-01-01T00:00:00Z.snapshot")

    Args:
        parent: Directory to create the workspace in (None = system temp).
        keep: Leave the workspace in place on exit.
    """

    def __init__(self, parent: Path | None = None, keep: bool = False) -> None:
        self._parent = parent
        self._keep = keep
        self._path: Path | None = None

    @property
    def path(self) -> Path:
        """Workspace directory.

        Raises:
            RuntimeError: If the session has not been entered.
        """
        if self._path is None:
            msg = "Session workspace is not open"
            raise RuntimeError(msg)
        return self._path

    @property
    def plan_path(self) -> Path:
        """Where the deletion plan is written for review."""
        return self.path / PLAN_FILENAME

    def open(self) -> Path:
        """Create the workspace directory.

        Raises:
            WorkspaceError: If the directory cannot be created.
        """
        if self._parent is not None:
            try:
                self._parent.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                msg = f"Cannot create temporary directory parent {self._parent}: {e}"
                raise WorkspaceError(msg) from e
        try:
            self._path = Path(tempfile.mkdtemp(prefix="rdprune-", dir=self._parent))
            (self._path / REWRITE_SUBDIR).mkdir()
        except OSError as e:
            msg = f"Cannot create temporary workspace: {e}"
            raise WorkspaceError(msg) from e
        logger.debug("Opened workspace %s", self._path)
        return self._path

    def close(self) -> None:
        """Remove the workspace unless it is being kept."""
        if self._path is None:
            return
        if self._keep:
            logger.info("Keeping temporary workspace %s", self._path)
        else:
            shutil.rmtree(self._path, ignore_errors=True)
            logger.debug("Removed workspace %s", self._path)
        self._path = None

    def allocate(self, filename: str) -> Path:
        """Path for a new artifact inside the workspace.

        Args:
            filename: Name to base the artifact on.

        Returns:
            A path inside the workspace that does not exist yet.
        """
        directory = self.path / REWRITE_SUBDIR
        candidate = directory / filename
        counter = 1
        while candidate.exists():
            candidate = directory / f"{filename}.{counter}"
            counter += 1
        return candidate

    def __enter__(self) -> "Session":
        self.open()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
