"""
Cleanup: remove the run's temporary workspace.
"""

import shutil
import logging
from pathlib import Path

logger = logging.getLogger(__name__)


def cleanup_workspace(workspace: Path, keep: bool = False):
    """
    Delete the temporary workspace (downloads, converted thumbnails and
    subtitles, chapters files). With keep=True everything is left in place
    for debugging and its location is logged.
    """
    if not workspace.exists():
        return

    if keep:
        logger.info("Keeping temporary files in %s", workspace)
        return

    try:
        shutil.rmtree(workspace)
        logger.debug("Deleted workspace: %s", workspace)
    except OSError as e:
        logger.warning("Failed to delete %s: %s", workspace, e)
