"""
Ensemble Modality Classifier

Combines the filename prior, the profile's modality rules, anatomical tag
bonuses and the pathology-correlation bonus into one score per modality,
then picks the arg-max.

Each stage returns a new ScoreSnapshot instead of mutating a shared map, and
every non-zero addition is recorded as a Contribution so a result can be
traced back to the rules that produced it.

The reported confidence is a presentation clamp, not a probability: the raw
score (which may exceed 1.0, weights are not normalised) is scaled to
percent, capped, then floored at the profile minimum.
"""

import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Tuple

from filename_scorer import FilenameScores
from image_features import FeatureSet
from medical_types import CHEST_PATHOLOGIES, Modality, Pathology
from pathology_scorer import PathologyAssessment
from profiles import ThresholdProfile

ANATOMICAL_TAG_SATURATION = 6


@dataclass(frozen=True)
class Contribution:
    stage: str
    rule: str
    modality: Modality
    amount: float

    def to_dict(self) -> Dict:
        return {
            "stage": self.stage,
            "rule": self.rule,
            "modality": self.modality.value,
            "amount": round(self.amount, 4),
        }


@dataclass(frozen=True)
class ScoreSnapshot:
    """Modality scores after a named stage, plus every contribution so far."""
    stage: str
    scores: Mapping[Modality, float]
    contributions: Tuple[Contribution, ...]

    @classmethod
    def initial(cls, modalities: Iterable[Modality]) -> "ScoreSnapshot":
        return cls("initial", MappingProxyType({m: 0.0 for m in modalities}), ())

    def add(self, stage: str, additions: Iterable[Contribution]) -> "ScoreSnapshot":
        scores = dict(self.scores)
        added = []
        for contribution in additions:
            scores[contribution.modality] += contribution.amount
            added.append(contribution)
        return ScoreSnapshot(stage, MappingProxyType(scores), self.contributions + tuple(added))


@dataclass(frozen=True)
class AnatomicalAssessment:
    tags: Tuple[str, ...]
    confidence: float

    def to_dict(self) -> Dict:
        return {"tags": list(self.tags), "confidence": round(self.confidence, 4)}


@dataclass(frozen=True)
class ClassificationResult:
    modality: Modality
    confidence: int
    top_pathologies: Tuple[Tuple[Pathology, float], ...]
    scores: Mapping[Modality, float]
    raw_score: float
    profile: str
    contributions: Tuple[Contribution, ...]

    @property
    def is_unknown(self) -> bool:
        return self.modality is Modality.UNKNOWN

    def to_dict(self) -> Dict:
        return {
            "modality": self.modality.value,
            "confidence": self.confidence,
            "top_pathologies": [
                {"pathology": p.value, "score": round(s, 4)} for p, s in self.top_pathologies
            ],
            "scores": {m.value: round(s, 4) for m, s in self.scores.items()},
            "raw_score": round(self.raw_score, 4),
            "profile": self.profile,
            "contributions": [c.to_dict() for c in self.contributions],
        }


def detect_anatomical_tags(features: FeatureSet, profile: ThresholdProfile) -> AnatomicalAssessment:
    tags = []
    for rule in profile.anatomical_rules:
        if rule.predicate(features):
            tags.extend(rule.tags)
    confidence = min(len(tags) / ANATOMICAL_TAG_SATURATION, 1.0)
    return AnatomicalAssessment(tuple(tags), confidence)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_confidence(max_score: float, profile: ThresholdProfile) -> int:
    """Scale to percent, cap at the profile ceiling, then floor at the profile minimum."""
    confidence = min(max_score * 100, profile.confidence_cap)
    confidence = max(confidence, profile.confidence_floor)
    return round_half_up(confidence)


# ============================================
# Stages
# ============================================

def filename_stage(snapshot: ScoreSnapshot, filename_scores: FilenameScores,
                   profile: ThresholdProfile) -> ScoreSnapshot:
    additions = []
    for pattern in profile.filename_patterns:
        weight = filename_scores.scores.get(pattern.group, 0.0)
        if weight <= 0:
            continue
        for modality, factor in pattern.targets:
            additions.append(Contribution("filename", pattern.group, modality, weight * factor))
    return snapshot.add("filename", additions)


def modality_rule_stage(snapshot: ScoreSnapshot, features: FeatureSet,
                        profile: ThresholdProfile) -> ScoreSnapshot:
    additions = []
    for rule in profile.modality_rules:
        if not rule.predicate(features):
            continue
        for modality, score in rule.targets:
            additions.append(
                Contribution("modality_rule", rule.name, modality, score * profile.modality_rule_weight)
            )
    return snapshot.add("modality_rule", additions)


def anatomical_stage(snapshot: ScoreSnapshot, anatomical: AnatomicalAssessment,
                     profile: ThresholdProfile) -> ScoreSnapshot:
    additions = []
    for tag in anatomical.tags:
        for modality, bonus in profile.anatomical_bonuses.get(tag, ()):
            additions.append(Contribution("anatomical", tag, modality, bonus))
    return snapshot.add("anatomical", additions)


def pathology_stage(snapshot: ScoreSnapshot, pathology: PathologyAssessment,
                    profile: ThresholdProfile) -> ScoreSnapshot:
    additions = []
    top = pathology.top_pathology
    if profile.pathology_bonus > 0 and pathology.has_pathology and top in CHEST_PATHOLOGIES:
        additions.append(
            Contribution("pathology", top.value, Modality.CHEST_XRAY, profile.pathology_bonus)
        )
    return snapshot.add("pathology", additions)


def select_modality(scores: Mapping[Modality, float],
                    order: Tuple[Modality, ...]) -> Tuple[Modality, float]:
    """
    Arg-max over scores; ties go to the modality declared first in ``order``.

    An all-zero map is a tie like any other and resolves to ``order[0]``.
    """
    best: Optional[Modality] = None
    best_score = 0.0
    for modality in order:
        score = scores.get(modality, 0.0)
        if best is None or score > best_score:
            best, best_score = modality, score
    if best is None:
        return Modality.UNKNOWN, 0.0
    return best, best_score


def classify(features: FeatureSet, filename_scores: FilenameScores,
             pathology: PathologyAssessment, profile: ThresholdProfile,
             anatomical: Optional[AnatomicalAssessment] = None) -> ClassificationResult:
    """
    Run the full ensemble for one image.

    Args:
        features: Visual, structural and texture features
        filename_scores: Output of the filename scorer
        pathology: Output of the pathology scorer
        profile: Active threshold profile
        anatomical: Pre-computed anatomical tags (detected here when omitted)

    Returns:
        Frozen ClassificationResult
    """
    snapshot = ScoreSnapshot.initial(profile.modality_order)

    # Zero-area input has no pixels to score
    if features.visual.is_empty:
        return ClassificationResult(
            modality=Modality.UNKNOWN,
            confidence=clamp_confidence(0.0, profile),
            top_pathologies=pathology.top_pathologies,
            scores=snapshot.scores,
            raw_score=0.0,
            profile=profile.name,
            contributions=(),
        )

    if anatomical is None:
        anatomical = detect_anatomical_tags(features, profile)

    snapshot = filename_stage(snapshot, filename_scores, profile)
    snapshot = modality_rule_stage(snapshot, features, profile)
    snapshot = anatomical_stage(snapshot, anatomical, profile)
    snapshot = pathology_stage(snapshot, pathology, profile)

    modality, max_score = select_modality(snapshot.scores, profile.modality_order)

    return ClassificationResult(
        modality=modality,
        confidence=clamp_confidence(max_score, profile),
        top_pathologies=pathology.top_pathologies,
        scores=snapshot.scores,
        raw_score=max_score,
        profile=profile.name,
        contributions=snapshot.contributions,
    )
