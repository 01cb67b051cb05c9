import sys
import unittest
from unittest.mock import patch

from src.main import load_config, parse_args, resolve_locations


class TestMainCLI(unittest.TestCase):
    def test_parse_args_workspace(self):
        argv = [
            "prog",
            "--mode",
            "workspace",
            "--workspace_path",
            "/data/run1",
            "--images_subdir",
            "IMAGES",
            "--log_level",
            "DEBUG",
            "--image_filter",
            "REG001",
        ]
        with patch.object(sys, "argv", argv):
            args = parse_args()
        self.assertEqual(args.mode, "workspace")
        self.assertEqual(args.log_level, "DEBUG")
        self.assertEqual(args.image_filter, "REG001")

        locations = resolve_locations(args)
        self.assertEqual(locations.images_path, "/data/run1/IMAGES")
        self.assertEqual(locations.segmasks_path, "/data/run1/SEGMASKS")
        self.assertEqual(locations.project_path, "/data/run1/QUPATH")
        self.assertEqual(locations.reports_path, "/data/run1/REPORTS")

    def test_parse_args_explicit(self):
        argv = [
            "prog",
            "--mode",
            "explicit",
            "--images_path",
            "/in/images",
            "--segmasks_path",
            "/in/masks",
            "--project_path",
            "/out/project",
            "--reports_path",
            "/out/reports",
        ]
        with patch.object(sys, "argv", argv):
            args = parse_args()
        locations = resolve_locations(args)
        self.assertEqual(locations.images_path, "/in/images")
        self.assertEqual(locations.reports_path, "/out/reports")
        self.assertIsNone(args.config_file)
        self.assertEqual(args.log_level, "INFO")

    def test_parse_args_gs_workspace(self):
        argv = ["prog", "--mode", "workspace", "--workspace_path", "gs://lab/run1/"]
        with patch.object(sys, "argv", argv):
            args = parse_args()
        locations = resolve_locations(args)
        self.assertEqual(locations.images_path, "gs://lab/run1/OMETIFF")
        self.assertEqual(locations.project_path, "gs://lab/run1/QUPATH")

    def test_workspace_requires_path(self):
        with patch.object(sys, "argv", ["prog", "--mode", "workspace"]):
            with patch("sys.stderr"):
                with self.assertRaises(SystemExit):
                    parse_args()

    def test_explicit_requires_all_paths(self):
        argv = ["prog", "--mode", "explicit", "--images_path", "/in/images"]
        with patch.object(sys, "argv", argv):
            with patch("sys.stderr"):
                with self.assertRaises(SystemExit):
                    parse_args()

    def test_load_config_defaults_to_empty(self):
        self.assertEqual(load_config(None), {})

    def test_load_config_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            load_config("/nonexistent/config.yaml")


def test_load_config_yaml(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text("objects:\n  downsample: 2.0\nmatching:\n  use_nucleus_masks: false\n")
    config = load_config(str(config_file))
    assert config["objects"]["downsample"] == 2.0
    assert config["matching"]["use_nucleus_masks"] is False


if __name__ == "__main__":
    unittest.main()
