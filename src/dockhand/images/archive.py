import subprocess
from pathlib import Path

from ..log import get_logger
from .exceptions import ContextArchiveError

logger = get_logger(__name__)

ARCHIVE_FILENAME = "archive.tar"


def context_archive_path(source_path: str | Path) -> Path:
    return Path(source_path) / ARCHIVE_FILENAME


def create_context_archive(
    source_path: str | Path,
    archive_path: str | Path,
    tar_command: str = "tar",
) -> None:
    """Archives the contents of source_path into a tar file at archive_path.

    Runs the external tar command with source_path as its working directory,
    so relative paths inside the build context are kept intact. The archive
    itself is excluded when it lives inside source_path.

    Raises:
        ContextArchiveError: If tar is missing or exits with an error.
    """
    archive_path = Path(archive_path)
    cmd = [
        tar_command,
        "-cf",
        str(archive_path),
        f"--exclude=./{archive_path.name}",
        ".",
    ]
    logger.debug("creating build context archive", cmd=cmd, cwd=str(source_path))

    try:
        subprocess.run(
            cmd,
            cwd=str(source_path),
            check=True,
            capture_output=True,
            text=True,
        )
    except subprocess.CalledProcessError as e:
        error_msg = e.stderr.strip() if e.stderr else str(e)
        raise ContextArchiveError(
            f"Failed to create build context archive {archive_path}: {error_msg}"
        ) from e
    except OSError as e:
        raise ContextArchiveError(
            f"Failed to run {tar_command} for build context archive {archive_path}: {e}"
        ) from e
