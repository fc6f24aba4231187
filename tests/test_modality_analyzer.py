import logging

import pytest

from medical_types import Modality
from modality_analyzer import ModalityAnalyzer, get_analyzer
from pixel_buffer import DecodeFailure
from profiles import PERFECT


@pytest.fixture
def analyzer():
    return ModalityAnalyzer(profile="clinical")


class TestAnalyze:
    def test_brain_png(self, analyzer, brain_png):
        analysis = analyzer.analyze(brain_png, "brain_mri_scan.png")

        assert analysis.classification.modality is Modality.BRAIN_MRI
        assert analysis.classification.confidence >= 80
        assert analysis.filename_scores.matched_groups == ("brain", "ct")
        assert analysis.structural.bilateral_symmetry == pytest.approx(1.0)

    def test_chest_png(self, analyzer, chest_png):
        analysis = analyzer.analyze(chest_png, "image_001.png")

        assert analysis.classification.modality is Modality.CHEST_XRAY
        assert analysis.pathology.top_pathology.value == "normal"

    def test_decode_failure_propagates(self, analyzer, caplog):
        with caplog.at_level(logging.ERROR, logger="modality_analyzer"):
            with pytest.raises(DecodeFailure):
                analyzer.analyze(b"not an image", "broken.png")

        assert "broken.png" in caplog.text

    def test_empty_bytes(self, analyzer):
        with pytest.raises(DecodeFailure):
            analyzer.analyze(b"", "empty.png")

    def test_repeated_calls_are_identical(self, analyzer, brain_png):
        first = analyzer.analyze(brain_png, "brain_mri_scan.png")
        second = analyzer.analyze(brain_png, "brain_mri_scan.png")

        assert first.classification == second.classification
        assert first.to_dict() == second.to_dict()

    def test_thread_pool_matches_inline(self, chest_buffer):
        inline = ModalityAnalyzer(max_workers=1).analyze_buffer(chest_buffer, "chest.png")
        pooled = ModalityAnalyzer(max_workers=4).analyze_buffer(chest_buffer, "chest.png")

        assert inline.classification == pooled.classification
        assert inline.features == pooled.features


class TestProfiles:
    def test_default_profile(self, analyzer):
        assert analyzer.profile.name == "clinical"

    def test_profile_instance_accepted(self):
        assert ModalityAnalyzer(profile=PERFECT).profile is PERFECT

    def test_per_call_override(self, analyzer, brain_buffer):
        analysis = analyzer.analyze_buffer(brain_buffer, "", profile="Perfect")

        assert analysis.classification.profile == "perfect"
        assert analysis.anatomical.tags
        assert analyzer.profile.name == "clinical"

    def test_unknown_profile(self):
        with pytest.raises(KeyError):
            ModalityAnalyzer(profile="experimental")


def test_analyze_file(tmp_path, analyzer, chest_png):
    path = tmp_path / "lung_pa.png"
    path.write_bytes(chest_png)

    analysis = analyzer.analyze_file(path)

    assert analysis.filename_scores.filename == "lung_pa.png"
    assert analysis.filename_scores.matched_groups == ("chest",)


def test_to_dict_layout(analyzer, brain_png):
    payload = analyzer.analyze(brain_png, "brain.png").to_dict()

    assert set(payload) == {"classification", "features"}
    assert set(payload["features"]) == {
        "visual", "structural", "texture", "filename", "pathology", "anatomical",
    }


def test_get_analyzer_is_singleton():
    assert get_analyzer() is get_analyzer()
