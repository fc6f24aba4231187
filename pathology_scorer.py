"""
Pathology Indicator Scorer

Maps visual features onto the fixed pathology taxonomy by walking the
profile's ordered rule table. A firing rule assigns its scores; a later rule
overwrites any entry an earlier one set.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from image_features import VisualFeatures
from medical_types import Pathology
from profiles import ThresholdProfile

TOP_PATHOLOGY_THRESHOLD = 0.3
TOP_PATHOLOGY_LIMIT = 5
PATHOLOGY_PRESENT_THRESHOLD = 0.5


@dataclass(frozen=True)
class PathologyAssessment:
    scores: Mapping[Pathology, float]
    top_pathologies: Tuple[Tuple[Pathology, float], ...]
    fired_rules: Tuple[str, ...]

    @property
    def top_pathology(self) -> Optional[Pathology]:
        return self.top_pathologies[0][0] if self.top_pathologies else None

    @property
    def confidence(self) -> float:
        return self.top_pathologies[0][1] if self.top_pathologies else 0.0

    @property
    def has_pathology(self) -> bool:
        return self.confidence > PATHOLOGY_PRESENT_THRESHOLD

    def to_dict(self) -> Dict:
        return {
            "scores": {p.value: s for p, s in self.scores.items()},
            "top_pathologies": [[p.value, s] for p, s in self.top_pathologies],
            "has_pathology": self.has_pathology,
            "fired_rules": list(self.fired_rules),
        }


def rank_pathologies(scores: Mapping[Pathology, float]) -> Tuple[Tuple[Pathology, float], ...]:
    """Entries above 0.3, highest first (ties keep declaration order), at most five."""
    candidates = [(p, s) for p, s in scores.items() if s > TOP_PATHOLOGY_THRESHOLD]
    candidates.sort(key=lambda item: item[1], reverse=True)
    return tuple(candidates[:TOP_PATHOLOGY_LIMIT])


def score_pathologies(visual: VisualFeatures, profile: ThresholdProfile) -> PathologyAssessment:
    scores = {pathology: 0.0 for pathology in Pathology}
    fired = []

    for rule in profile.pathology_rules:
        if not rule.predicate(visual):
            continue
        fired.append(rule.name)
        for pathology, score in rule.assignments:
            scores[pathology] = score

    return PathologyAssessment(
        scores=MappingProxyType(scores),
        top_pathologies=rank_pathologies(scores),
        fired_rules=tuple(fired),
    )
