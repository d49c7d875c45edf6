"""Download and unpack sherpa-onnx model archives.

Release archives are ``<model_id>.tar.bz2`` containing a top-level
``<model_id>/`` directory. A model directory created by a failed fetch
is deleted before ModelLoadError propagates; one that already existed is
left in place with the files it held.
"""

import os
import shutil
import logging
import tarfile
from typing import Optional

import httpx

from mediascribe.exceptions import ModelLoadError

logger = logging.getLogger(__name__)

DEFAULT_MODEL_BASE_URL = "https://github.com/k2-fsa/sherpa-onnx/releases/download/asr-models"
DOWNLOAD_TIMEOUT = httpx.Timeout(30.0, read=300.0)


def archive_url(base_url: str, model_id: str) -> str:
    return f"{base_url.rstrip('/')}/{model_id}.tar.bz2"


def _checked_members(tar: tarfile.TarFile, dest_dir: str) -> list[tarfile.TarInfo]:
    root = os.path.realpath(dest_dir)
    members = []
    for member in tar.getmembers():
        if member.issym() or member.islnk():
            raise tarfile.TarError(f"Refusing link in model archive: {member.name}")
        target = os.path.realpath(os.path.join(root, member.name))
        if os.path.commonpath([root, target]) != root:
            raise tarfile.TarError(f"Refusing path outside model directory: {member.name}")
        members.append(member)
    return members


def fetch_model(
    model_id: str,
    models_dir: str,
    base_url: str = DEFAULT_MODEL_BASE_URL,
    client: Optional[httpx.Client] = None,
) -> str:
    """Fetch ``model_id`` into ``models_dir``. Returns the model directory."""
    os.makedirs(models_dir, exist_ok=True)
    url = archive_url(base_url, model_id)
    part_path = os.path.join(models_dir, f"{model_id}.tar.bz2.part")
    model_dir = os.path.join(models_dir, model_id)
    created_dir = not os.path.exists(model_dir)

    owns_client = client is None
    if client is None:
        client = httpx.Client(follow_redirects=True, timeout=DOWNLOAD_TIMEOUT)

    logger.info(f"Downloading model {model_id} from {url}")
    try:
        with client.stream("GET", url) as response:
            response.raise_for_status()
            written = 0
            with open(part_path, "wb") as f:
                for chunk in response.iter_bytes():
                    f.write(chunk)
                    written += len(chunk)
        logger.info(f"Downloaded {written / (1024 * 1024):.1f} MB, unpacking")

        with tarfile.open(part_path, "r:*") as tar:
            tar.extractall(models_dir, members=_checked_members(tar, models_dir))

    except (httpx.HTTPError, tarfile.TarError, OSError, EOFError) as e:
        logger.error(f"Model fetch failed for {model_id}: {e}")
        if created_dir:
            shutil.rmtree(model_dir, ignore_errors=True)
        raise ModelLoadError(f"Could not fetch model {model_id}: {e}") from e

    finally:
        if os.path.exists(part_path):
            os.unlink(part_path)
        if owns_client:
            client.close()

    return model_dir
