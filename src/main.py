#!/usr/bin/env python3

import argparse
import yaml  # For reading YAML configuration files
import logging
import os
import time

from cellpair.pipeline import Locations, run_pipeline, workspace_locations


def setup_logging():
    """
    Configure logging with proper levels for different modules.

    Logs are sent to stdout, which is redirected to a file by the bash script.
    """
    formatter = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)
    # Clear existing handlers to avoid duplicate logs
    root_logger.handlers = []
    root_logger.addHandler(console_handler)

    logging.getLogger("cellpair.pipeline").setLevel(logging.INFO)
    logging.getLogger("cellpair.matcher").setLevel(logging.INFO)
    # Root expansion messages are per insert
    logging.getLogger("cellpair.quadtree").setLevel(logging.WARNING)

    # Reduce third-party noise
    logging.getLogger("rasterio").setLevel(logging.WARNING)
    logging.getLogger("tifffile").setLevel(logging.WARNING)
    logging.getLogger("shapely").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def parse_args():
    parser = argparse.ArgumentParser(
        description="Pair nucleus and whole-cell masks into cell objects and export measurements."
    )
    parser.add_argument(
        "--mode",
        type=str,
        choices=["workspace", "explicit"],
        required=True,
        help="Derive locations from a workspace root, or give each one explicitly.",
    )

    workspace = parser.add_argument_group("workspace mode")
    workspace.add_argument("--workspace_path", type=str, help="Root directory of the workspace")
    workspace.add_argument(
        "--images_subdir", type=str, default="OMETIFF", help="Name of the folder containing OME-TIFF images"
    )
    workspace.add_argument(
        "--segmasks_subdir", type=str, default="SEGMASKS", help="Name of the folder containing segmentation masks"
    )
    workspace.add_argument(
        "--project_subdir", type=str, default="QUPATH", help="Name of the folder to save project objects"
    )
    workspace.add_argument(
        "--reports_subdir", type=str, default="REPORTS", help="Name of the folder for measurements"
    )

    explicit = parser.add_argument_group("explicit mode")
    explicit.add_argument("--images_path", type=str, help="Directory containing OME-TIFF images")
    explicit.add_argument("--segmasks_path", type=str, help="Directory containing segmentation masks")
    explicit.add_argument("--project_path", type=str, help="Directory to save project objects")
    explicit.add_argument("--reports_path", type=str, help="Output path for measurements")

    parser.add_argument(
        "--image_filter",
        type=str,
        default=None,
        help="Filter for image names (file base name)",
    )
    parser.add_argument(
        "--config_file",
        type=str,
        default=None,
        help="YAML configuration file containing parameters.",
    )
    parser.add_argument(
        "--log_level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Set the logging level.",
    )
    args = parser.parse_args()

    if args.mode == "workspace" and not args.workspace_path:
        parser.error("--workspace_path is required in workspace mode")
    if args.mode == "explicit":
        missing = [
            f"--{name}"
            for name in ("images_path", "segmasks_path", "project_path", "reports_path")
            if not getattr(args, name)
        ]
        if missing:
            parser.error(f"explicit mode requires {', '.join(missing)}")
    return args


def resolve_locations(args) -> Locations:
    if args.mode == "workspace":
        return workspace_locations(
            args.workspace_path,
            images_subdir=args.images_subdir,
            segmasks_subdir=args.segmasks_subdir,
            project_subdir=args.project_subdir,
            reports_subdir=args.reports_subdir,
        )
    return Locations(
        images_path=args.images_path,
        segmasks_path=args.segmasks_path,
        project_path=args.project_path,
        reports_path=args.reports_path,
    )


def load_config(config_file):
    if config_file is None:
        logging.info("No configuration file given; using defaults")
        return {}
    if not os.path.exists(config_file):
        raise FileNotFoundError(f"Configuration file not found: {config_file}")
    logging.info(f"Loading configuration from {config_file}")
    with open(config_file, "r") as f:
        config = yaml.safe_load(f) or {}
    logging.info(f"Full configuration loaded: {config}")
    return config


def main():
    args = parse_args()

    setup_logging()
    if args.log_level:
        logging.getLogger().setLevel(getattr(logging, args.log_level))

    logging.info(f"Starting with log level: {args.log_level}")
    config = load_config(args.config_file)
    locations = resolve_locations(args)
    logging.info(f"Locations: {locations}")

    start_time = time.time()
    run_pipeline(config, locations, image_filter=args.image_filter)
    elapsed_time = time.time() - start_time
    logging.info(f"Done in {elapsed_time:.2f} seconds.")


if __name__ == "__main__":
    main()
