"""
Filename Heuristic Scorer

Matches the uploaded file name against the active profile's keyword groups.
Every matched group contributes its full prior weight; groups are independent
and the result is not normalised.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Tuple

from profiles import ThresholdProfile


@dataclass(frozen=True)
class FilenameScores:
    filename: str
    scores: Mapping[str, float]
    matched_groups: Tuple[str, ...]

    @property
    def has_match(self) -> bool:
        return bool(self.matched_groups)

    def to_dict(self) -> Dict:
        return {
            "scores": dict(self.scores),
            "matched_groups": list(self.matched_groups),
        }


def score_filename(filename: str, profile: ThresholdProfile) -> FilenameScores:
    """
    Score a file name against every keyword group of the profile.

    Args:
        filename: Original file name (path components are not stripped)
        profile: Active threshold profile

    Returns:
        FilenameScores with one entry per group (0.0 when unmatched)
    """
    filename = filename or ""
    scores = {}
    matched = []
    for pattern in profile.filename_patterns:
        if pattern.matches(filename):
            scores[pattern.group] = pattern.weight
            matched.append(pattern.group)
        else:
            scores[pattern.group] = 0.0

    return FilenameScores(
        filename=filename,
        scores=MappingProxyType(scores),
        matched_groups=tuple(matched),
    )
