"""Google Cloud Storage transfer for ``gs://`` workspaces.

Remote inputs are listed by prefix, downloaded into a temporary local
directory and processed like local files. Outputs are written to a
temporary working directory and uploaded when the run finishes. Every
temporary directory is removed at interpreter exit.
"""

import atexit
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import List, Optional, Tuple

from google.cloud import storage

logger = logging.getLogger(__name__)

GS_SCHEME = "gs://"


def is_gs_uri(path) -> bool:
    return str(path).startswith(GS_SCHEME)


def split_gs_uri(uri: str) -> Tuple[str, str]:
    """``"gs://bucket/a/b"`` -> ``("bucket", "a/b")``."""
    if not is_gs_uri(uri):
        raise ValueError(f"Not a gs:// URI: {uri}")
    bucket, _, name = str(uri)[len(GS_SCHEME):].partition("/")
    if not bucket:
        raise ValueError(f"Missing bucket in URI: {uri}")
    return bucket, name


def get_client(client: Optional[storage.Client] = None) -> storage.Client:
    return client if client is not None else storage.Client()


def make_temp_directory(prefix: str) -> Path:
    """Create a temporary directory that is deleted when the process exits."""
    path = Path(tempfile.mkdtemp(prefix=prefix))
    atexit.register(shutil.rmtree, str(path), True)
    return path


def list_gs_blobs(uri: str, extension: str, name_filter: Optional[str] = None, client=None) -> List[str]:
    """Blob names under ``uri`` that end with ``extension`` and contain ``name_filter``.

    Both tests ignore case. Directory placeholders (names ending in ``/``)
    are skipped.
    """
    bucket, prefix = split_gs_uri(uri)
    name_filter = (name_filter or "").lower()
    extension = extension.lower()

    names = []
    for blob in get_client(client).list_blobs(bucket, prefix=prefix):
        lower = blob.name.lower()
        if blob.name.endswith("/") or name_filter not in lower or not lower.endswith(extension):
            continue
        names.append(blob.name)
    return sorted(names)


def download_blobs(bucket: str, names: List[str], local_root: Path, client=None) -> List[Path]:
    """Download each blob into ``local_root`` by its file name."""
    bucket_handle = get_client(client).bucket(bucket)
    local_paths = []
    for name in names:
        local_path = Path(local_root) / Path(name).name
        logger.debug(f"Downloading gs://{bucket}/{name} to {local_path}")
        bucket_handle.blob(name).download_to_filename(str(local_path))
        if not local_path.exists():
            raise FileNotFoundError(
                f"Couldn't find downloaded remote file gs://{bucket}/{name}, expected at: {local_path}"
            )
        local_paths.append(local_path)
    return local_paths


def upload_directory(local_dir, remote_root: str, client=None) -> List[str]:
    """Upload every file under ``local_dir`` below ``remote_root``, keeping relative paths."""
    bucket, prefix = split_gs_uri(remote_root)
    prefix = prefix.rstrip("/")
    bucket_handle = get_client(client).bucket(bucket)

    logger.info(f"Uploading {local_dir} to {remote_root}")
    uploaded = []
    for dirpath, _, filenames in os.walk(local_dir):
        for filename in sorted(filenames):
            local_path = Path(dirpath, filename)
            relative = local_path.relative_to(local_dir).as_posix()
            name = f"{prefix}/{relative}" if prefix else relative
            bucket_handle.blob(name).upload_from_filename(str(local_path))
            uploaded.append(f"{GS_SCHEME}{bucket}/{name}")
    logger.info(f"Uploaded {len(uploaded)} files to {remote_root}")
    return uploaded
