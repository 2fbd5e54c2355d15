"""
Install the latest yt-dlp release next to the ytarchive script.

This is the installation the tool locator recommends: distro packages of
yt-dlp fall behind YouTube quickly.
"""

import os
import stat
import logging
import requests
from pathlib import Path

from ytarchive.core.error_codes import JobError
from ytarchive.core.constants import (
    ErrorCode, YT_DLP, YT_DLP_RELEASE_URL, YT_DLP_DOWNLOAD_TIMEOUT_SEC,
)

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 256


def release_asset_name() -> str:
    """The platform-independent zipapp everywhere except Windows."""
    return "yt-dlp.exe" if os.name == 'nt' else "yt-dlp"


def install_yt_dlp(target_dir: Path, session: requests.Session | None = None) -> Path:
    """
    Download the latest yt-dlp release into target_dir and set the execute
    bit. The file is written under a temporary name and renamed at the end,
    so an interrupted download never leaves a broken executable behind.
    """
    asset = release_asset_name()
    url = YT_DLP_RELEASE_URL.format(asset=asset)
    target = target_dir / asset
    partial = target_dir / f".{asset}.part"
    http = session or requests

    logger.info("Downloading %s from %s", YT_DLP, url)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        with http.get(url, stream=True, timeout=YT_DLP_DOWNLOAD_TIMEOUT_SEC) as resp:
            if resp.status_code != 200:
                raise JobError(ErrorCode.TOOL_INSTALL,
                               f"GitHub returned {resp.status_code} for {url}")
            with open(partial, 'wb') as f:
                for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
    except requests.exceptions.Timeout:
        partial.unlink(missing_ok=True)
        raise JobError(ErrorCode.TOOL_INSTALL, "Download timed out")
    except requests.exceptions.ConnectionError:
        partial.unlink(missing_ok=True)
        raise JobError(ErrorCode.TOOL_INSTALL, "Network error — could not reach GitHub")
    except requests.exceptions.RequestException as e:
        partial.unlink(missing_ok=True)
        raise JobError(ErrorCode.TOOL_INSTALL, f"Download failed: {e}")
    except OSError as e:
        partial.unlink(missing_ok=True)
        raise JobError(ErrorCode.TOOL_INSTALL, f"Cannot write to {target_dir}: {e}")
    except JobError:
        partial.unlink(missing_ok=True)
        raise

    if partial.stat().st_size == 0:
        partial.unlink(missing_ok=True)
        raise JobError(ErrorCode.TOOL_INSTALL, "Downloaded file is empty")

    mode = partial.stat().st_mode
    partial.chmod(mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    partial.replace(target)

    logger.info("Installed %s at %s", YT_DLP, target)
    return target
