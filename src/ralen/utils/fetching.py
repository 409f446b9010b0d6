"""Artifact downloads."""
import shutil
import tempfile
from pathlib import Path, PurePosixPath
from typing import Optional
from urllib.parse import unquote, urlparse

import aiohttp
from fuuid import b58_fuuid

from ralen.errors import TransportError
from ralen.logging import get_logger

logger = get_logger(__name__)

CHUNK_SIZE = 8192


def filename_from_url(url: str) -> str:
    """Last path segment of a URL, or empty string."""
    return PurePosixPath(unquote(urlparse(url).path)).name


def suggested_filename(response: aiohttp.ClientResponse) -> Optional[str]:
    """Filename from a Content-Disposition header, stripped of any directory part."""
    disposition = response.content_disposition
    if disposition is None or not disposition.filename:
        return None
    name = PurePosixPath(disposition.filename.strip('"').replace("\\", "/")).name
    return name or None


async def _stream_to_file(response: aiohttp.ClientResponse, dest: Path) -> int:
    written = 0
    with open(dest, "wb") as f:
        while chunk := await response.content.read(CHUNK_SIZE):
            f.write(chunk)
            written += len(chunk)
    return written


def _raise_for_status(url: str, response: aiohttp.ClientResponse) -> None:
    if response.status >= 400 or response.status < 200:
        logger.error(
            "download_request_failed",
            url=url,
            status=response.status,
            reason=response.reason,
        )
        raise TransportError(url, response.status, response.reason or "")


async def download_to_temp(
    session: aiohttp.ClientSession, url: str, label: str = "download"
) -> Path:
    """Download url into a fresh temporary directory and return the file path.

    Each call gets its own directory, so repeated downloads of the same
    artifact never collide. The caller owns cleanup of the parent directory.
    """
    tmp_dir = Path(tempfile.mkdtemp(prefix=f"ralen_{label}_{b58_fuuid()}_"))
    logger.info("download_started", url=url, tmp_dir=str(tmp_dir))

    try:
        async with session.get(url) as response:
            _raise_for_status(url, response)
            name = suggested_filename(response) or filename_from_url(url)
            if not name:
                name = f"download_{b58_fuuid()}"
            dest = tmp_dir / name
            size = await _stream_to_file(response, dest)
    except aiohttp.ClientError as e:
        shutil.rmtree(tmp_dir, ignore_errors=True)
        logger.error("download_failed", url=url, error=str(e))
        raise TransportError(url, getattr(e, "status", None), str(e)) from e
    except BaseException:
        shutil.rmtree(tmp_dir, ignore_errors=True)
        raise

    logger.info("download_complete", url=url, path=str(dest), size=size)
    return dest


async def download_to_file(session: aiohttp.ClientSession, url: str, dest: Path) -> Path:
    """Download url to a fixed destination path."""
    try:
        async with session.get(url) as response:
            _raise_for_status(url, response)
            size = await _stream_to_file(response, dest)
    except aiohttp.ClientError as e:
        if dest.exists():
            dest.unlink()
        raise TransportError(url, getattr(e, "status", None), str(e)) from e
    except OSError:
        if dest.exists():
            dest.unlink()
        raise

    logger.info("download_complete", url=url, path=str(dest), size=size)
    return dest
