# mask_io.py

import logging
import os
from typing import List

import numpy as np
import tifffile as tiff

logger = logging.getLogger(__name__)


def load_label_mask(mask_path):
    """
    Read a segmentation label mask from a TIFF file.

    Args:
        mask_path (str): Path to the mask file.

    Returns:
        np.ndarray: 2-D label array with singleton axes removed.

    Raises:
        FileNotFoundError: If the mask does not exist.
        ValueError: If the mask is stored as an RGB image.
    """
    if not os.path.exists(mask_path):
        raise FileNotFoundError(f"Mask file not found: {mask_path}")

    logger.info(f"Reading mask from {mask_path}")
    with tiff.TiffFile(mask_path) as tif:
        page = tif.pages[0]
        if page.photometric == tiff.PHOTOMETRIC.RGB:
            raise ValueError("RGB images are not supported!")
        mask = tif.asarray()

    mask = np.squeeze(mask)
    logger.info(f"Mask details: {{'DataType': {mask.dtype}, 'Shape': {mask.shape}}}")
    return mask


def load_image(image_path):
    """
    Load a multi-channel image with channels first.

    Args:
        image_path (str): Path to the image file.

    Returns:
        np.ndarray: Image of shape (C, H, W). Single-plane images get one
        channel; interleaved RGB images are moved to channels first.
    """
    if not os.path.exists(image_path):
        raise FileNotFoundError(f"Image file not found: {image_path}")

    logger.info(f"Reading image from {image_path}")
    with tiff.TiffFile(image_path) as tif:
        is_rgb = tif.pages[0].photometric == tiff.PHOTOMETRIC.RGB
        image = tif.asarray()

    image = np.squeeze(image)
    if image.ndim == 2:
        image = image[np.newaxis, ...]
    elif image.ndim == 3 and is_rgb and image.shape[-1] in (3, 4):
        image = np.transpose(image, (2, 0, 1))
    elif image.ndim != 3:
        raise ValueError(f"Unsupported image shape {image.shape} in {image_path}")

    logger.info(f"Image details: {{'DataType': {image.dtype}, 'Shape': {image.shape}}}")
    return image


def channel_names(image_path, n_channels: int) -> List[str]:
    """Return OME channel names when the file carries them, else ``Channel 1..N``."""
    names = []
    with tiff.TiffFile(image_path) as tif:
        if tif.ome_metadata:
            ome = tiff.xml2dict(tif.ome_metadata).get("OME", {})
            image = ome.get("Image", {})
            if isinstance(image, list):
                image = image[0] if image else {}
            channels = image.get("Pixels", {}).get("Channel", [])
            if isinstance(channels, dict):
                channels = [channels]
            names = [str(ch.get("Name", "")) for ch in channels]

    if len(names) != n_channels or not all(names):
        if names:
            logger.warning(
                f"OME metadata lists {len(names)} channel names for {n_channels} channels; using defaults"
            )
        names = [f"Channel {i + 1}" for i in range(n_channels)]
    return names
