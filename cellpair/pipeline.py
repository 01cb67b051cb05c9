import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence

from cellpair.assembler import extract_cell_objects, extract_whole_cell_objects
from cellpair.inputs import (
    InputImage,
    fetch_remote_images,
    find_mask_file,
    get_image_inputs,
    prep_working_directory,
    sample_name,
    upload_to_remote,
)
from cellpair.mask_io import channel_names, load_image, load_label_mask
from cellpair.measurements import measure_objects
from cellpair.project import ProjectEntry, save_objects
from cellpair.region import ImagePlane
from cellpair.reports import output_reports

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Locations:
    images_path: str
    segmasks_path: str
    project_path: str
    reports_path: str


def workspace_locations(
    workspace_path: str,
    images_subdir: str = "OMETIFF",
    segmasks_subdir: str = "SEGMASKS",
    project_subdir: str = "QUPATH",
    reports_subdir: str = "REPORTS",
) -> Locations:
    """Derive all locations from one workspace root."""
    root = str(workspace_path).rstrip("/")
    return Locations(
        images_path=f"{root}/{images_subdir}",
        segmasks_path=f"{root}/{segmasks_subdir}",
        project_path=f"{root}/{project_subdir}",
        reports_path=f"{root}/{reports_subdir}",
    )


def add_image_objects(
    image: InputImage,
    nucleus_mask_files: Sequence[Path],
    whole_cell_files: Sequence[Path],
    downsample: float = 1.0,
    plane: Optional[ImagePlane] = None,
) -> Optional[List]:
    """Build detection objects for one image from its sample's masks.

    Returns None when the sample has no whole-cell mask. Samples without a
    nucleus mask get one plain detection per whole-cell region.
    """
    sample = sample_name(image.image_name)
    logger.info(f" >>> {sample}")

    nucleus_mask_file = find_mask_file(nucleus_mask_files, sample)
    whole_cell_mask_file = find_mask_file(whole_cell_files, sample)

    if whole_cell_mask_file is None:
        logger.warning(f" >>> MISSING WHOLE CELL MASK FILE!! For: {sample}.")
        return None

    whole_cell_mask = load_label_mask(str(whole_cell_mask_file))
    if nucleus_mask_file is None:
        objects = extract_whole_cell_objects(whole_cell_mask, downsample, plane)
    else:
        nucleus_mask = load_label_mask(str(nucleus_mask_file))
        objects = extract_cell_objects(nucleus_mask, whole_cell_mask, downsample, plane)

    logger.info(f"  Number of objects: {len(objects)}")
    return objects


def process_image(
    image: InputImage,
    nucleus_mask_files: Sequence[Path],
    whole_cell_files: Sequence[Path],
    project_dir: Path,
    config: dict,
) -> ProjectEntry:
    objects_config = config.get("objects", {})
    downsample = float(objects_config.get("downsample", 1.0))
    plane = ImagePlane(z=int(objects_config.get("z", 0)), t=int(objects_config.get("t", 0)))

    measurement_config = config.get("measurements", {})
    compute_shape = measurement_config.get("shape", True)
    compute_intensity = measurement_config.get("intensity", True)

    entry = ProjectEntry(image=image)
    objects = add_image_objects(image, nucleus_mask_files, whole_cell_files, downsample, plane)
    if objects is None:
        return entry
    entry.objects = objects

    pixels = None
    channels = None
    if compute_intensity and objects:
        pixels = load_image(image.local_path)
        channels = measurement_config.get("channels") or channel_names(image.local_path, pixels.shape[0])

    logger.info(" >>> Calculating measurements...")
    entry.measurements = measure_objects(
        objects,
        image=pixels,
        channels=channels,
        compute_shape=compute_shape,
        compute_intensity=compute_intensity,
    )
    logger.info(f"100% complete: {image.image_name}")

    entry.objects_path = save_objects(
        objects, project_dir / f"{sample_name(image.image_name)}_objects.geojson"
    )
    return entry


def run_pipeline(config: dict, locations: Locations, image_filter: Optional[str] = None) -> List[ProjectEntry]:
    """Discover inputs, build and measure objects per image, export reports."""
    start_time = time.time()
    inputs_config = config.get("inputs", {})
    image_extension = inputs_config.get("image_extension", ".tiff")
    nucleus_suffix = inputs_config.get("nucleus_mask_suffix", "_NucleusMask.tiff")
    whole_cell_suffix = inputs_config.get("whole_cell_mask_suffix", "_WholeCellMask.tiff")
    use_nucleus_masks = config.get("matching", {}).get("use_nucleus_masks", True)

    project_dir = prep_working_directory(locations.project_path)

    logger.info("Discovering input files...")
    images = get_image_inputs(locations.images_path, image_extension, image_filter=image_filter)
    if any(image.local_path is None for image in images):
        logger.info("Fetching remote image files...")
        images = fetch_remote_images(images)
    logger.info(f"Adding {len(images)} input images: {[image.image_name for image in images]}")

    logger.info("Discovering mask files...")
    nucleus_inputs = []
    if use_nucleus_masks:
        nucleus_inputs = get_image_inputs(locations.segmasks_path, nucleus_suffix)
    else:
        logger.info("Nucleus masks disabled; building whole-cell objects only")
    whole_cell_inputs = get_image_inputs(locations.segmasks_path, whole_cell_suffix)
    if any(item.local_path is None for item in nucleus_inputs + whole_cell_inputs):
        logger.info("Fetching remote mask files...")
        nucleus_inputs = fetch_remote_images(nucleus_inputs)
        whole_cell_inputs = fetch_remote_images(whole_cell_inputs)

    nucleus_mask_files = [Path(item.local_path) for item in nucleus_inputs]
    whole_cell_files = [Path(item.local_path) for item in whole_cell_inputs]
    logger.info(
        f"Found {len(nucleus_mask_files)} nucleus masks and {len(whole_cell_files)} whole-cell masks"
    )

    if whole_cell_files:
        entries = [
            process_image(image, nucleus_mask_files, whole_cell_files, project_dir, config)
            for image in images
        ]
    else:
        logger.warning("No whole-cell masks found; no objects will be added")
        entries = [ProjectEntry(image=image) for image in images]

    logger.info(f"Outputting reports to: {locations.reports_path}")
    reports_dir = prep_working_directory(locations.reports_path)
    output_reports(reports_dir, entries)
    upload_to_remote(reports_dir, locations.reports_path)
    upload_to_remote(project_dir, locations.project_path)

    logger.info(f"Pipeline finished in {time.time() - start_time:.2f} seconds.")
    return entries
