"""Input discovery for images and segmentation masks, local or on ``gs://``."""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import List, Optional, Sequence
from urllib.parse import urlparse

from cellpair.remote import (
    download_blobs,
    is_gs_uri,
    list_gs_blobs,
    make_temp_directory,
    split_gs_uri,
    upload_directory,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InputImage:
    image_name: str
    uri: str
    local_path: Optional[str] = None


def _check_supported(path) -> None:
    scheme = urlparse(str(path)).scheme
    # Single-letter schemes are Windows drive letters.
    if len(scheme) > 1 and scheme not in ("file", "gs"):
        raise ValueError(f"Unsupported location {path}; only local paths and gs:// are supported")


def list_file_inputs(dir_path, extension: str, name_filter: Optional[str] = None) -> List[InputImage]:
    """Walk ``dir_path`` for files ending in ``extension`` and containing ``name_filter``.

    Both tests ignore case. Results are sorted by path. A missing directory
    yields no inputs.
    """
    root = Path(dir_path)
    if not root.is_dir():
        logger.warning(f"Input directory not found: {dir_path}")
        return []

    name_filter = (name_filter or "").lower()
    extension = extension.lower()
    inputs = []
    for dirpath, _, filenames in os.walk(root):
        for filename in filenames:
            lower = filename.lower()
            if name_filter not in lower or not lower.endswith(extension):
                continue
            path = Path(dirpath, filename).resolve()
            inputs.append(InputImage(filename, path.as_uri(), str(path)))
    return sorted(inputs, key=lambda item: item.local_path)


def list_gs_inputs(uri: str, extension: str, name_filter: Optional[str] = None, client=None) -> List[InputImage]:
    """Remote inputs under ``uri``; ``local_path`` stays unset until fetched."""
    bucket, _ = split_gs_uri(uri)
    return [
        InputImage(Path(name).name, f"gs://{bucket}/{name}")
        for name in list_gs_blobs(uri, extension, name_filter=name_filter, client=client)
    ]


def get_image_inputs(images_path, extension: str, image_filter: Optional[str] = None, client=None) -> List[InputImage]:
    _check_supported(images_path)
    if is_gs_uri(images_path):
        return list_gs_inputs(str(images_path), extension, name_filter=image_filter, client=client)
    return list_file_inputs(images_path, extension=extension, name_filter=image_filter)


def fetch_remote_images(inputs: Sequence[InputImage], client=None) -> List[InputImage]:
    """Download inputs without a local path into a temporary directory.

    All remote inputs must live in one bucket. Inputs that are already local
    pass through unchanged.
    """
    remote = [item for item in inputs if item.local_path is None]
    if not remote:
        return list(inputs)

    locations = [split_gs_uri(item.uri) for item in remote]
    buckets = sorted({bucket for bucket, _ in locations})
    if len(buckets) > 1:
        raise ValueError(f"All remote images must be in the same bucket, found: {buckets}")

    local_root = make_temp_directory("images")
    logger.info(f"Fetching {len(remote)} remote files into {local_root}")
    local_paths = download_blobs(buckets[0], [name for _, name in locations], local_root, client=client)
    downloaded = {item.uri: str(path.resolve()) for item, path in zip(remote, local_paths)}

    return [
        item if item.local_path is not None else replace(item, local_path=downloaded[item.uri])
        for item in inputs
    ]


def sample_name(image_name: str) -> str:
    """``"project:SAMPLE_01.ome.tiff"`` -> ``"SAMPLE_01"``."""
    return image_name.rsplit(":", 1)[-1].split(".", 1)[0]


def find_mask_file(mask_files: Sequence[Path], sample: str) -> Optional[Path]:
    """First mask whose file name contains ``"{sample}_"``."""
    token = f"{sample}_"
    for mask_file in mask_files:
        if token in Path(mask_file).name:
            return Path(mask_file)
    return None


def prep_working_directory(path) -> Path:
    """Local directory for outputs headed to ``path``.

    For a ``gs://`` location this is a temporary directory whose contents
    are uploaded with :func:`upload_to_remote`.
    """
    _check_supported(path)
    if is_gs_uri(path):
        directory = make_temp_directory("cellpair_workdir")
        logger.info(f"Prepped temporary local working directory: {directory}")
        return directory

    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    logger.info(f"Prepped working directory: {directory}")
    return directory


def upload_to_remote(local_dir, remote_root, client=None) -> List[str]:
    """Upload ``local_dir`` to ``remote_root``; a no-op for local locations."""
    if not is_gs_uri(remote_root):
        return []
    return upload_directory(local_dir, str(remote_root), client=client)
