import logging
from pathlib import Path
from typing import List, Sequence

import pandas as pd

from cellpair.measurements import BASE_COLUMNS

logger = logging.getLogger(__name__)


def report_path(out_dir, image_name: str) -> Path:
    stem = image_name.split(".", 1)[0]
    return Path(out_dir) / f"{stem}_QUANT.tsv"


def export_measurements(image_name: str, measurements: pd.DataFrame, out_path, separator: str = "\t") -> Path:
    """Write one image's measurement table with a leading ``Image`` column."""
    if measurements is None or measurements.empty:
        columns = list(measurements.columns) if measurements is not None else BASE_COLUMNS
        table = pd.DataFrame(columns=["Image"] + [c for c in columns if c != "Image"])
    else:
        table = measurements.copy()
        table.insert(0, "Image", image_name)
    table.to_csv(out_path, sep=separator, index=False)
    return Path(out_path)


def output_reports(out_dir, entries: Sequence, separator: str = "\t") -> List[Path]:
    """Export a ``{image}_QUANT.tsv`` file for every project entry."""
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for entry in entries:
        out_path = report_path(out_dir, entry.image_name)
        logger.info(f"Exporting measurements for {entry.image_name} to: {out_path}")
        written.append(export_measurements(entry.image_name, entry.measurements, out_path, separator))

    logger.info("Done exporting measurements.")
    return written
