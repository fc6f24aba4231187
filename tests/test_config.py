import pytest

from config import Settings
from profiles import CLINICAL, DEFAULT_PROFILE, PERFECT, available_profiles, get_profile


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in ("PORT", "ANALYSIS_PROFILE", "EXTRACTION_WORKERS", "MAX_BATCH_SIZE"):
            monkeypatch.delenv(name, raising=False)

        s = Settings()

        assert s.PORT == 8000
        assert s.ANALYSIS_PROFILE == "clinical"
        assert s.EXTRACTION_WORKERS == 1
        assert s.MAX_BATCH_SIZE == 10
        assert s.validate()

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("PORT", "9100")
        monkeypatch.setenv("ANALYSIS_PROFILE", "perfect")
        monkeypatch.setenv("ALLOWED_ORIGINS", "http://a.test,http://b.test")

        s = Settings()

        assert s.PORT == 9100
        assert s.ANALYSIS_PROFILE == "perfect"
        assert s.ALLOWED_ORIGINS == ["http://a.test", "http://b.test"]

    def test_unknown_profile_fails_validation(self, monkeypatch):
        monkeypatch.setenv("ANALYSIS_PROFILE", "experimental")

        with pytest.raises(ValueError, match="experimental"):
            Settings().validate()

    def test_worker_count_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("ANALYSIS_PROFILE", "clinical")
        monkeypatch.setenv("EXTRACTION_WORKERS", "0")

        with pytest.raises(ValueError):
            Settings().validate()


class TestProfiles:
    def test_registry(self):
        assert available_profiles() == ["clinical", "perfect"]
        assert DEFAULT_PROFILE == "clinical"

    def test_lookup_is_case_insensitive(self):
        assert get_profile(" Perfect ") is PERFECT

    def test_unknown_name_lists_known_profiles(self):
        with pytest.raises(KeyError) as exc_info:
            get_profile("strict")

        assert "clinical, perfect" in exc_info.value.args[0]

    def test_confidence_bands(self):
        assert (CLINICAL.confidence_floor, CLINICAL.confidence_cap) == (80, 97)
        assert (PERFECT.confidence_floor, PERFECT.confidence_cap) == (75, 98)

    def test_modality_order_covers_all_modalities(self):
        assert set(CLINICAL.modality_order) == set(PERFECT.modality_order)
        assert len(PERFECT.modality_order) == 9

    def test_summary(self):
        summary = CLINICAL.summary()

        assert summary["name"] == "clinical"
        assert summary["filename_groups"] == ["chest", "brain", "ct", "bone"]
