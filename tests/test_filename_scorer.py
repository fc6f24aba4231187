import pytest

from filename_scorer import score_filename
from profiles import CLINICAL, PERFECT


def test_brain_scan_matches_brain_and_ct_groups():
    result = score_filename("brain_mri_scan.png", CLINICAL)

    assert result.matched_groups == ("brain", "ct")
    assert result.scores["brain"] == pytest.approx(0.95)
    assert result.scores["ct"] == pytest.approx(0.9)
    assert result.scores["chest"] == 0.0
    assert result.scores["bone"] == 0.0


def test_matching_is_case_insensitive():
    result = score_filename("CHEST_PA.JPG", CLINICAL)

    assert result.matched_groups == ("chest",)
    assert result.has_match


def test_no_keywords():
    result = score_filename("image_001.png", CLINICAL)

    assert not result.has_match
    assert set(result.scores) == {"chest", "brain", "ct", "bone"}
    assert all(score == 0.0 for score in result.scores.values())


@pytest.mark.parametrize("filename", ["", None])
def test_missing_filename(filename):
    result = score_filename(filename, PERFECT)

    assert result.filename == ""
    assert not result.has_match


def test_perfect_profile_has_wider_vocabulary():
    result = score_filename("echo_liver.png", PERFECT)

    assert result.matched_groups == ("ultrasound", "abdomen")
    assert result.scores["ultrasound"] == pytest.approx(0.9)
    assert result.scores["abdomen"] == pytest.approx(0.8)

    assert not score_filename("echo_liver.png", CLINICAL).has_match


def test_scores_are_read_only():
    result = score_filename("chest.png", CLINICAL)

    with pytest.raises(TypeError):
        result.scores["chest"] = 0.1
