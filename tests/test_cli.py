"""
Tests for the command line entry point

Run with:
    pytest tests/test_cli.py -v
"""

import logging

import cv2
import pytest
import yaml

from fingerprint_enhancement.cli import build_config, build_parser, main, setup_logging
from fingerprint_enhancement.errors import ConfigurationError


class TestExitCodes:
    """Test exit statuses of the command line tool"""

    def test_help_exits_zero(self):
        with pytest.raises(SystemExit) as excinfo:
            main(["--help"])

        assert excinfo.value.code == 0

    def test_missing_input_exits_one(self, capsys):
        assert main([]) == 1

        assert "usage:" in capsys.readouterr().err

    def test_unreadable_input_exits_one(self, tmp_path):
        broken = tmp_path / "broken.png"
        broken.write_bytes(b"garbage")

        assert main(["-i", str(broken), "-o", str(tmp_path / "out.png")]) == 1
        assert not (tmp_path / "out.png").exists()

    def test_nonexistent_input_exits_one(self, tmp_path):
        assert main(["-i", str(tmp_path / "missing.png")]) == 1

    @pytest.mark.parametrize(
        "options",
        [
            {"downsize": True, "min_rows": "abc"},
            {"margin": 2.5},
        ],
    )
    def test_invalid_config_file_values_exit_one(
        self, input_path, tmp_path, capsys, options
    ):
        output = tmp_path / "result.png"
        config_path = tmp_path / "config.yaml"
        config_path.write_text(
            yaml.dump({"input_image": str(input_path), "output_image": str(output), **options})
        )

        assert main(["--config", str(config_path)]) == 1
        assert "usage:" in capsys.readouterr().err
        assert not output.exists()

    def test_output_under_regular_file_exits_one(self, input_path, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        assert main(["-i", str(input_path), "-o", str(blocker / "out.png")]) == 1
        assert blocker.read_text() == "not a directory"

    def test_export_failure_writes_no_output(self, input_path, tmp_path):
        output = tmp_path / "result.png"
        blocker = tmp_path / "artifacts"
        blocker.write_text("not a directory")

        args = ["-i", str(input_path), "-o", str(output), "--export-artifacts", str(blocker)]

        assert main(args) == 1
        assert not output.exists()

    def test_success_writes_output(self, input_path, ridge_image, tmp_path):
        output = tmp_path / "result.png"

        assert main(["-i", str(input_path), "-o", str(output)]) == 0

        saved = cv2.imread(str(output), cv2.IMREAD_UNCHANGED)
        assert saved.shape[:2] == ridge_image.shape[:2]

    def test_no_save_writes_nothing(self, input_path, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        assert main(["--input_image", str(input_path), "--no_save"]) == 0
        assert not (tmp_path / "out.png").exists()

    def test_downsize_keeps_input_geometry(self, input_path, ridge_image, tmp_path):
        output = tmp_path / "result.png"
        args = [
            "-i", str(input_path),
            "-o", str(output),
            "-d",
            "--min-rows", "100",
            "--min-cols", "100",
        ]

        assert main(args) == 0

        saved = cv2.imread(str(output), cv2.IMREAD_UNCHANGED)
        assert saved.shape[:2] == ridge_image.shape[:2]


class TestBuildConfig:
    """Test merging of command line flags and config files"""

    def test_defaults(self, tmp_path):
        args = build_parser().parse_args(["-i", str(tmp_path / "a.png")])
        config = build_config(args)

        assert str(config.output_image) == "out.png"
        assert config.save is True
        assert config.postprocess is True
        assert config.downsize is False
        assert (config.min_rows, config.min_cols) == (1000, 1000)

    def test_negated_flags(self, tmp_path):
        args = build_parser().parse_args(
            ["-i", str(tmp_path / "a.png"), "-n", "-p", "--keep-downsized-geometry"]
        )
        config = build_config(args)

        assert config.save is False
        assert config.postprocess is False
        assert config.restore_geometry is False

    def test_underscore_aliases(self, tmp_path):
        args = build_parser().parse_args(
            [
                "--input_image", "a.png",
                "--output_image", "b.png",
                "--min_rows", "5",
                "--min_cols", "6",
            ]
        )
        config = build_config(args)

        assert str(config.output_image) == "b.png"
        assert (config.min_rows, config.min_cols) == (5, 6)

    def test_config_file_provides_defaults(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text(
            yaml.dump({"input_image": "from_file.png", "downsize": True, "min_rows": 300})
        )

        args = build_parser().parse_args(["--config", str(config_path), "--min-rows", "400"])
        config = build_config(args)

        assert str(config.input_image) == "from_file.png"
        assert config.downsize is True
        assert config.min_rows == 400

    def test_missing_input_raises(self):
        args = build_parser().parse_args([])

        with pytest.raises(ConfigurationError):
            build_config(args)

    def test_config_file_runs_pipeline(self, input_path, tmp_path):
        output = tmp_path / "from_config.png"
        config_path = tmp_path / "config.yaml"
        config_path.write_text(
            yaml.dump({"input_image": str(input_path), "output_image": str(output)})
        )

        assert main(["--config", str(config_path)]) == 0
        assert output.exists()


class TestSetupLogging:
    """Test logging configuration"""

    def test_silences_png_plugin_above_debug(self, monkeypatch):
        plugin_logger = logging.getLogger("PIL.PngImagePlugin")
        monkeypatch.setattr(plugin_logger, "level", logging.NOTSET)

        setup_logging("INFO")

        assert plugin_logger.level == logging.WARNING

    def test_keeps_png_plugin_in_debug(self, monkeypatch):
        plugin_logger = logging.getLogger("PIL.PngImagePlugin")
        monkeypatch.setattr(plugin_logger, "level", logging.NOTSET)

        setup_logging("DEBUG")

        assert plugin_logger.level == logging.NOTSET
