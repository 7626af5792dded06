"""
Tests for the pipeline stages and driver

Run with:
    pytest tests/test_pipeline.py -v
"""

import cv2
import numpy as np
import pytest
import yaml

from fingerprint_enhancement.config import PipelineConfig
from fingerprint_enhancement.errors import (
    ArtifactExportError,
    DimensionMismatchError,
    InvalidImageError,
    OutputWriteError,
)
from fingerprint_enhancement.images import iter_downsample_sizes, pad_image
from fingerprint_enhancement.pipeline import (
    run,
    run_enhancement_stage,
    run_pipeline,
    run_preprocess_stage,
    save_result,
)


class MismatchedMaskEngine:
    """Engine whose mask is one row short."""

    def extract_fingerprints(self, image):
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

    def compute_validity_mask(self, image):
        return np.full((image.shape[0] - 1, image.shape[1]), 255, dtype=np.uint8)


class ShrinkingEngine:
    """Engine returning an enhanced image smaller than its input."""

    def extract_fingerprints(self, image):
        return np.zeros((10, 10), dtype=np.uint8)

    def compute_validity_mask(self, image):
        return np.zeros(image.shape[:2], dtype=np.uint8)


def make_config(tmp_path, **overrides):
    options = {
        "input_image": tmp_path / "finger.png",
        "output_image": tmp_path / "out.png",
    }
    options.update(overrides)
    return PipelineConfig(**options)


class TestPreprocessStage:
    """Test padding and downsampling stage"""

    def test_pads_without_downsizing(self, ridge_image):
        stage = run_preprocess_stage(ridge_image)

        assert stage["stage_id"] == "preprocessing"
        assert stage["data"]["working_image"] is stage["data"]["padded_image"]
        assert stage["metrics"]["padded_size"] == {"rows": 200, "cols": 160}
        assert stage["metrics"]["downsample_steps"] == 0

    def test_downsizes_to_bound(self, ridge_image):
        stage = run_preprocess_stage(ridge_image, downsize=True, min_rows=100, min_cols=100)

        working = stage["data"]["working_image"]
        assert working.shape[0] <= 100
        assert working.shape[1] <= 100
        assert stage["metrics"]["downsample_steps"] > 0

    def test_step_count_matches_size_iteration(self, ridge_image):
        stage = run_preprocess_stage(ridge_image, downsize=True, min_rows=100, min_cols=100)

        steps = list(iter_downsample_sizes((200, 160), 100, 100))
        assert stage["metrics"]["downsample_steps"] == len(steps)
        assert stage["metrics"]["working_size"] == {
            "rows": steps[-1][1][0],
            "cols": steps[-1][1][1],
        }


class TestEnhancementStage:
    """Test enhancement stage"""

    def test_mask_only_requested_when_needed(self, ridge_image, fake_engine):
        stage = run_enhancement_stage(pad_image(ridge_image), fake_engine, compute_mask=False)

        assert stage["data"]["mask"] is None
        assert fake_engine.calls == ["extract_fingerprints"]

    def test_reports_types_and_coverage(self, ridge_image, fake_engine):
        stage = run_enhancement_stage(pad_image(ridge_image), fake_engine)

        assert stage["metrics"]["enhanced_type"] == "CV_8UC1"
        assert stage["metrics"]["mask_type"] == "CV_8UC1"
        assert 0.0 < stage["metrics"]["foreground_ratio"] < 1.0

    def test_wrong_enhanced_geometry_raises(self, ridge_image):
        with pytest.raises(DimensionMismatchError):
            run_enhancement_stage(pad_image(ridge_image), ShrinkingEngine())


class TestRunPipeline:
    """Test the stage sequence on decoded images"""

    @pytest.mark.parametrize("postprocess", [True, False])
    def test_geometry_round_trip(self, tmp_path, ridge_image, fake_engine, postprocess):
        config = make_config(tmp_path, postprocess=postprocess)

        output = run_pipeline(ridge_image, config, fake_engine)

        assert output["result"].shape[:2] == ridge_image.shape[:2]
        assert [s["stage_id"] for s in output["stages"]] == [
            "preprocessing",
            "enhancement",
            "compositing",
        ]

    def test_pass_through_keeps_engine_output(self, tmp_path, ridge_image, fake_engine):
        config = make_config(tmp_path, postprocess=False)

        output = run_pipeline(ridge_image, config, fake_engine)

        expected = cv2.cvtColor(ridge_image, cv2.COLOR_BGR2GRAY)
        assert np.array_equal(output["result"], expected)

    def test_background_is_white(self, tmp_path, ridge_image, fake_engine):
        config = make_config(tmp_path)

        result = run_pipeline(ridge_image, config, fake_engine)["result"]

        assert result[0, 0] == 255
        assert result[-1, -1] == 255

    def test_downsized_result_restores_input_geometry(
        self, tmp_path, ridge_image, fake_engine
    ):
        config = make_config(tmp_path, downsize=True, min_rows=120, min_cols=120)

        output = run_pipeline(ridge_image, config, fake_engine)

        assert output["result"].shape[:2] == ridge_image.shape[:2]
        working = output["stages"][0]["data"]["working_image"]
        assert working.shape[0] <= 120

    def test_downsized_result_can_keep_working_geometry(
        self, tmp_path, ridge_image, fake_engine
    ):
        config = make_config(
            tmp_path, downsize=True, min_rows=120, min_cols=120, restore_geometry=False
        )

        output = run_pipeline(ridge_image, config, fake_engine)

        steps = list(iter_downsample_sizes((200, 160), 120, 120))
        rows, cols = steps[-1][1]
        assert output["result"].shape[:2] == (rows - 40, cols - 40)

    @pytest.mark.parametrize("downsize", [True, False])
    def test_verbose_does_not_change_result(
        self, tmp_path, ridge_image, fake_engine, downsize
    ):
        options = {"downsize": downsize, "min_rows": 120, "min_cols": 120}
        quiet = run_pipeline(ridge_image, make_config(tmp_path, **options), fake_engine)
        verbose = run_pipeline(
            ridge_image, make_config(tmp_path, verbose=True, **options), fake_engine
        )

        assert np.array_equal(quiet["result"], verbose["result"])

    def test_mask_mismatch_is_fatal(self, tmp_path, ridge_image):
        config = make_config(tmp_path)

        with pytest.raises(DimensionMismatchError):
            run_pipeline(ridge_image, config, MismatchedMaskEngine())


class TestRun:
    """Test the full driver including decoding and persistence"""

    def test_saves_result_with_input_size(self, input_path, ridge_image, fake_engine):
        config = PipelineConfig(
            input_image=input_path, output_image=input_path.parent / "out.png"
        )

        result = run(config, engine=fake_engine)

        saved = cv2.imread(str(config.output_image), cv2.IMREAD_UNCHANGED)
        assert saved is not None
        assert saved.shape[:2] == ridge_image.shape[:2]
        assert np.array_equal(saved, result)

    def test_default_engine(self, input_path, ridge_image):
        config = PipelineConfig(
            input_image=input_path, output_image=input_path.parent / "out.png"
        )

        result = run(config)

        assert result.shape[:2] == ridge_image.shape[:2]
        assert set(np.unique(result)) <= {0, 255}

    def test_no_save(self, input_path, fake_engine):
        config = PipelineConfig(
            input_image=input_path,
            output_image=input_path.parent / "out.png",
            save=False,
        )

        run(config, engine=fake_engine)

        assert not config.output_image.exists()

    def test_missing_input_raises_without_output(self, tmp_path, fake_engine):
        config = make_config(tmp_path)

        with pytest.raises(InvalidImageError):
            run(config, engine=fake_engine)

        assert not config.output_image.exists()

    def test_failure_writes_nothing(self, input_path):
        config = PipelineConfig(
            input_image=input_path, output_image=input_path.parent / "out.png"
        )

        with pytest.raises(DimensionMismatchError):
            run(config, engine=MismatchedMaskEngine())

        assert list(input_path.parent.iterdir()) == [input_path]

    def test_show_displays_result(self, input_path, fake_engine, monkeypatch):
        shown = []
        monkeypatch.setattr(
            "fingerprint_enhancement.pipeline.driver.show_image",
            lambda image: shown.append(image.shape),
        )
        config = PipelineConfig(input_image=input_path, show=True, save=False)

        run(config, engine=fake_engine)

        assert shown == [(160, 120)]

    def test_exports_artifacts(self, input_path, fake_engine):
        export_dir = input_path.parent / "artifacts"
        config = PipelineConfig(
            input_image=input_path, save=False, export_artifacts_dir=export_dir
        )

        run(config, engine=fake_engine)

        with open(export_dir / "pipeline" / "manifest.yaml") as f:
            manifest = yaml.safe_load(f)

        stages = manifest["pipeline"]["stages"]
        assert [s["id"] for s in stages] == ["preprocessing", "enhancement", "compositing"]
        for stage in stages:
            for artifact_path in stage["artifacts"].values():
                assert (export_dir / artifact_path).exists()
        assert (export_dir / "pipeline/stages/02_enhancement/filter.png").exists()
        assert manifest["config"]["input_image"] == str(input_path)


    def test_export_failure_writes_no_output(self, input_path, fake_engine):
        blocker = input_path.parent / "artifacts"
        blocker.write_text("not a directory")
        config = PipelineConfig(
            input_image=input_path,
            output_image=input_path.parent / "out.png",
            export_artifacts_dir=blocker,
        )

        with pytest.raises(ArtifactExportError):
            run(config, engine=fake_engine)

        assert not config.output_image.exists()


class TestSaveResult:
    """Test result persistence"""

    def test_no_partial_file_left_behind(self, tmp_path):
        image = np.zeros((10, 10), dtype=np.uint8)
        save_result(image, tmp_path / "nested" / "result.png")

        assert sorted(p.name for p in (tmp_path / "nested").iterdir()) == ["result.png"]

    def test_float_result_is_saved_as_8_bit(self, tmp_path):
        image = np.full((4, 4), 300.0, dtype=np.float32)
        save_result(image, tmp_path / "result.png")

        saved = cv2.imread(str(tmp_path / "result.png"), cv2.IMREAD_UNCHANGED)
        assert saved.dtype == np.uint8
        assert np.all(saved == 255)

    def test_parent_is_regular_file(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")

        with pytest.raises(OutputWriteError):
            save_result(np.zeros((4, 4), dtype=np.uint8), blocker / "result.png")

        assert sorted(p.name for p in tmp_path.iterdir()) == ["blocker"]
