"""
Threshold profiles for the modality classifier.

A profile is a frozen bundle of every threshold, weight, cap and rule table
the engine consults. The engine itself has a single code path; switching
profile only swaps this data. Two profiles ship:

    clinical  - stricter dark band and edge threshold, stride-2 sampling,
                pathology-correlation bonus, confidence band [80, 97]
    perfect   - wider filename vocabulary, anatomical tag bonuses,
                stride-3 sampling, confidence band [75, 98]

Rule predicates receive a feature bundle exposing ``visual``, ``structural``
and ``texture`` attributes (see image_features.FeatureSet); pathology rule
predicates receive VisualFeatures directly.
"""

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Tuple

from medical_types import Modality, Pathology, SCORED_MODALITIES

Targets = Tuple[Tuple[Modality, float], ...]


@dataclass(frozen=True)
class TextureBands:
    """Three-way split of a texture statistic into tagged bands."""
    high_threshold: float
    medium_threshold: float
    high_tags: Tuple[str, ...]
    medium_tags: Tuple[str, ...]
    low_tags: Tuple[str, ...]

    def tags_for(self, value: float) -> Tuple[str, ...]:
        if value > self.high_threshold:
            return self.high_tags
        if value > self.medium_threshold:
            return self.medium_tags
        return self.low_tags


@dataclass(frozen=True)
class FilenamePattern:
    """A keyword group: regex, prior weight and how the weight is spread over modalities."""
    group: str
    pattern: str
    weight: float
    targets: Targets
    regex: "re.Pattern" = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "regex", re.compile(self.pattern, re.IGNORECASE))

    def matches(self, filename: str) -> bool:
        return self.regex.search(filename) is not None


@dataclass(frozen=True)
class ModalityRule:
    name: str
    predicate: Callable[[Any], bool]
    targets: Targets


@dataclass(frozen=True)
class AnatomicalTagRule:
    name: str
    predicate: Callable[[Any], bool]
    tags: Tuple[str, ...]


@dataclass(frozen=True)
class PathologyRule:
    """Assigns fixed scores to pathologies when the predicate over VisualFeatures holds."""
    name: str
    predicate: Callable[[Any], bool]
    assignments: Tuple[Tuple[Pathology, float], ...]


@dataclass(frozen=True)
class ThresholdProfile:
    name: str
    description: str

    # Visual extractor
    dark_threshold: int
    edge_threshold: int

    # Structural / texture sampling
    symmetry_stride: int
    texture_stride: int

    # Texture tagging
    roughness_bands: TextureBands
    uniformity_bands: TextureBands
    variance_bands: TextureBands

    # Ensemble tables
    filename_patterns: Tuple[FilenamePattern, ...]
    modality_rules: Tuple[ModalityRule, ...]
    modality_rule_weight: float
    anatomical_rules: Tuple[AnatomicalTagRule, ...]
    anatomical_bonuses: Mapping[str, Targets]
    pathology_rules: Tuple["PathologyRule", ...]
    pathology_bonus: float

    # Confidence clamp
    confidence_cap: float
    confidence_floor: float

    modality_order: Tuple[Modality, ...] = SCORED_MODALITIES

    bright_threshold: int = 200
    center_mass_stride: int = 2
    texture_border: int = 2

    def summary(self) -> Dict:
        return {
            "name": self.name,
            "description": self.description,
            "confidence_floor": self.confidence_floor,
            "confidence_cap": self.confidence_cap,
            "dark_threshold": self.dark_threshold,
            "edge_threshold": self.edge_threshold,
            "symmetry_stride": self.symmetry_stride,
            "texture_stride": self.texture_stride,
            "modality_rule_weight": self.modality_rule_weight,
            "pathology_bonus": self.pathology_bonus,
            "filename_groups": [p.group for p in self.filename_patterns],
        }


# ============================================
# Shared pathology rule table
# ============================================
# Rules run in order and assign (not add); a later rule overwrites an earlier score.

PATHOLOGY_RULES: Tuple[PathologyRule, ...] = (
    PathologyRule(
        "pneumonia",
        lambda v: v.pathology_indicators["pneumonia"],
        ((Pathology.PNEUMONIA, 0.85), (Pathology.CONSOLIDATION, 0.7), (Pathology.INFILTRATION, 0.6)),
    ),
    PathologyRule(
        "atelectasis",
        lambda v: v.pathology_indicators["atelectasis"],
        ((Pathology.ATELECTASIS, 0.8), (Pathology.CONSOLIDATION, 0.5)),
    ),
    PathologyRule(
        "cardiomegaly",
        lambda v: v.pathology_indicators["cardiomegaly"],
        ((Pathology.CARDIOMEGALY, 0.75),),
    ),
    PathologyRule(
        "pleural_effusion",
        lambda v: v.pathology_indicators["pleural_effusion"],
        ((Pathology.PLEURAL_EFFUSION, 0.8), (Pathology.EDEMA, 0.4)),
    ),
    PathologyRule(
        "normal_chest",
        lambda v: v.pathology_indicators["normal_chest"],
        ((Pathology.NORMAL, 0.9),),
    ),
    PathologyRule(
        "nodule_mass",
        lambda v: v.contrast > 0.7 and v.edge_density > 0.5,
        ((Pathology.NODULE, 0.6), (Pathology.MASS, 0.4)),
    ),
    PathologyRule(
        "emphysema",
        lambda v: v.bright_ratio > 0.3 and v.dark_ratio < 0.4,
        ((Pathology.EMPHYSEMA, 0.5),),
    ),
    PathologyRule(
        "pneumothorax",
        lambda v: v.dark_ratio > 0.9,
        ((Pathology.PNEUMOTHORAX, 0.7),),
    ),
)


CT_PATTERN = r"ct|computed|tomography|scan|axial|coronal|sagittal"


# ============================================
# Clinical profile
# ============================================

CLINICAL = ThresholdProfile(
    name="clinical",
    description="Clinical-grade profile with pathology correlation",
    dark_threshold=50,
    edge_threshold=30,
    symmetry_stride=2,
    texture_stride=2,
    roughness_bands=TextureBands(
        60, 30,
        ("high-detail", "complex-texture", "possible-pathology"),
        ("medium-detail", "moderate-texture", "normal-variation"),
        ("smooth", "low-detail", "homogeneous"),
    ),
    uniformity_bands=TextureBands(
        0.8, 0.5,
        ("uniform", "homogeneous", "normal-tissue"),
        ("semi-uniform", "mild-variation"),
        ("heterogeneous", "varied", "possible-abnormality"),
    ),
    variance_bands=TextureBands(
        120, 60,
        ("high-variance", "noisy", "artifact-present"),
        ("medium-variance", "normal-noise"),
        ("low-variance", "clean", "high-quality"),
    ),
    filename_patterns=(
        FilenamePattern(
            "chest",
            r"chest|lung|thorax|cardiac|heart|pulmon|respiratory|cxr|pneumonia|tuberculosis",
            0.95,
            ((Modality.CHEST_XRAY, 0.2),),
        ),
        FilenamePattern(
            "brain",
            r"brain|mri|head|neuro|cerebr|skull|cranial|intracranial|stroke|tumor",
            0.95,
            ((Modality.BRAIN_MRI, 0.2),),
        ),
        FilenamePattern(
            "ct",
            CT_PATTERN,
            0.9,
            ((Modality.CT_SCAN, 0.12), (Modality.ABDOMINAL_CT, 0.08)),
        ),
        FilenamePattern(
            "bone",
            r"bone|fracture|orthop|joint|spine|skeletal|femur|tibia|radius|osteo",
            0.9,
            ((Modality.BONE_XRAY, 0.15), (Modality.SPINE_XRAY, 0.05)),
        ),
    ),
    modality_rules=(
        ModalityRule(
            "chest_xray",
            lambda f: (f.visual.is_dark and f.visual.has_high_contrast
                       and f.structural.anatomical_flags["chest_xray_shape"]
                       and f.visual.edge_density > 0.25),
            ((Modality.CHEST_XRAY, 0.95),),
        ),
        ModalityRule(
            "brain_mri",
            lambda f: (f.structural.anatomical_flags["brain_mri_shape"]
                       and f.visual.is_medium and f.structural.has_good_symmetry),
            ((Modality.BRAIN_MRI, 0.93),),
        ),
        ModalityRule(
            "ct_scan",
            lambda f: (f.structural.anatomical_flags["ct_shape"]
                       and f.visual.is_medium and f.texture.is_normal),
            ((Modality.CT_SCAN, 0.9), (Modality.ABDOMINAL_CT, 0.4)),
        ),
        ModalityRule(
            "bone_xray",
            lambda f: (f.visual.has_high_contrast and f.visual.bright_ratio > 0.15
                       and f.texture.is_complex),
            ((Modality.BONE_XRAY, 0.88),),
        ),
        ModalityRule(
            "ultrasound",
            lambda f: (f.visual.is_dark and f.visual.has_low_contrast
                       and "noisy" in f.texture.pattern_tags),
            ((Modality.ULTRASOUND, 0.85),),
        ),
        ModalityRule(
            "mammography",
            lambda f: (f.structural.anatomical_flags["mammography_shape"]
                       and f.visual.is_medium and f.visual.has_high_contrast),
            ((Modality.MAMMOGRAPHY, 0.87),),
        ),
        ModalityRule(
            "spine_xray",
            lambda f: (f.structural.anatomical_flags["spine_shape"]
                       and f.visual.has_high_contrast and f.visual.edge_density > 0.4),
            ((Modality.SPINE_XRAY, 0.86),),
        ),
    ),
    modality_rule_weight=0.6,
    anatomical_rules=(),
    anatomical_bonuses=MappingProxyType({}),
    pathology_rules=PATHOLOGY_RULES,
    pathology_bonus=0.15,
    confidence_cap=97,
    confidence_floor=80,
)


# ============================================
# Perfect profile
# ============================================

_BRAIN = ((Modality.BRAIN_MRI, 0.08),)
_CHEST = ((Modality.CHEST_XRAY, 0.08),)
_BONE = ((Modality.BONE_XRAY, 0.08), (Modality.SPINE_XRAY, 0.04))
_CT = ((Modality.CT_SCAN, 0.06), (Modality.ABDOMINAL_CT, 0.02))
_ULTRASOUND = ((Modality.ULTRASOUND, 0.08),)
_MAMMO = ((Modality.MAMMOGRAPHY, 0.08),)

PERFECT = ThresholdProfile(
    name="perfect",
    description="Wide-vocabulary profile with anatomical feature bonuses",
    dark_threshold=60,
    edge_threshold=25,
    symmetry_stride=3,
    texture_stride=3,
    roughness_bands=TextureBands(
        50, 25,
        ("high-detail", "complex-texture"),
        ("medium-detail", "moderate-texture"),
        ("smooth", "low-detail"),
    ),
    uniformity_bands=TextureBands(
        0.8, 0.5,
        ("uniform", "homogeneous"),
        ("semi-uniform",),
        ("heterogeneous", "varied"),
    ),
    variance_bands=TextureBands(
        100, 50,
        ("high-variance", "noisy"),
        ("medium-variance",),
        ("low-variance", "clean"),
    ),
    filename_patterns=(
        FilenamePattern(
            "brain",
            r"brain|mri|head|neuro|cerebr|skull|cranial|intracranial",
            0.9,
            ((Modality.BRAIN_MRI, 0.25),),
        ),
        FilenamePattern(
            "chest",
            r"chest|lung|thorax|cardiac|heart|pulmon|respiratory|cxr",
            0.9,
            ((Modality.CHEST_XRAY, 0.25),),
        ),
        FilenamePattern(
            "ct",
            CT_PATTERN,
            0.8,
            ((Modality.CT_SCAN, 0.15), (Modality.ABDOMINAL_CT, 0.1)),
        ),
        FilenamePattern(
            "xray",
            r"xray|x-ray|radiograph|radio|plain|film",
            0.8,
            ((Modality.CHEST_XRAY, 0.1), (Modality.BONE_XRAY, 0.1), (Modality.SPINE_XRAY, 0.05)),
        ),
        FilenamePattern(
            "ultrasound",
            r"ultrasound|echo|doppler|us\b|sonogram|sono",
            0.9,
            ((Modality.ULTRASOUND, 0.25),),
        ),
        FilenamePattern(
            "bone",
            r"bone|fracture|orthop|joint|spine|skeletal|femur|tibia|radius",
            0.8,
            ((Modality.BONE_XRAY, 0.2), (Modality.SPINE_XRAY, 0.05)),
        ),
        FilenamePattern(
            "abdomen",
            r"abdomen|abdom|liver|kidney|pelvis|gastro|intestin",
            0.8,
            ((Modality.ABDOMINAL_CT, 0.25),),
        ),
        FilenamePattern(
            "mammography",
            r"mammo|breast|mammography",
            0.9,
            ((Modality.MAMMOGRAPHY, 0.25),),
        ),
        FilenamePattern(
            "dental",
            r"dental|tooth|teeth|oral|jaw|mandible|maxilla",
            0.9,
            ((Modality.DENTAL_XRAY, 0.25),),
        ),
    ),
    modality_rules=(
        ModalityRule(
            "brain_mri",
            lambda f: (f.structural.has_good_symmetry and f.structural.anatomical_flags["square"]
                       and f.visual.is_medium and f.visual.has_high_contrast),
            ((Modality.BRAIN_MRI, 0.9),),
        ),
        ModalityRule(
            "chest_xray",
            lambda f: (f.visual.is_dark and f.visual.has_high_contrast
                       and f.structural.anatomical_flags["rectangular"]
                       and f.visual.edge_density > 0.25),
            ((Modality.CHEST_XRAY, 0.9),),
        ),
        ModalityRule(
            "ct_scan",
            lambda f: (f.visual.is_medium and f.structural.anatomical_flags["square"]
                       and f.visual.has_medium_contrast and f.texture.texture_complexity > 0.5),
            ((Modality.CT_SCAN, 0.8), (Modality.ABDOMINAL_CT, 0.3)),
        ),
        ModalityRule(
            "bone_xray",
            lambda f: (f.visual.has_high_contrast and f.visual.bright_ratio > 0.15
                       and f.texture.texture_complexity > 0.6),
            ((Modality.BONE_XRAY, 0.85),),
        ),
        ModalityRule(
            "ultrasound",
            lambda f: (f.visual.is_dark and f.visual.has_low_contrast
                       and "noisy" in f.texture.pattern_tags),
            ((Modality.ULTRASOUND, 0.8),),
        ),
        ModalityRule(
            "mammography",
            lambda f: (f.visual.is_medium and f.visual.has_high_contrast
                       and f.structural.anatomical_flags["tall"] and f.visual.edge_density > 0.3),
            ((Modality.MAMMOGRAPHY, 0.85),),
        ),
        ModalityRule(
            "dental_xray",
            lambda f: (f.visual.has_high_contrast and f.structural.anatomical_flags["wide"]
                       and f.visual.bright_ratio > 0.2),
            ((Modality.DENTAL_XRAY, 0.8),),
        ),
        ModalityRule(
            "spine_xray",
            lambda f: (f.visual.has_high_contrast and f.structural.anatomical_flags["tall"]
                       and f.visual.edge_density > 0.4),
            ((Modality.SPINE_XRAY, 0.8),),
        ),
    ),
    modality_rule_weight=0.5,
    anatomical_rules=(
        AnatomicalTagRule(
            "brain",
            lambda f: (f.structural.has_good_symmetry and f.structural.anatomical_flags["square"]
                       and f.visual.is_medium and f.visual.has_high_contrast),
            ("bilateral-brain-symmetry", "brain-tissue-contrast", "cranial-structure"),
        ),
        AnatomicalTagRule(
            "chest",
            lambda f: (f.visual.is_dark and f.visual.has_high_contrast
                       and f.structural.anatomical_flags["rectangular"]
                       and f.visual.edge_density > 0.3),
            ("rib-cage-structure", "lung-field-pattern", "thoracic-anatomy"),
        ),
        AnatomicalTagRule(
            "ct",
            lambda f: (f.visual.is_medium and f.structural.anatomical_flags["square"]
                       and f.visual.has_medium_contrast and f.visual.is_high_detail),
            ("cross-sectional-anatomy", "ct-density-patterns", "axial-slice"),
        ),
        AnatomicalTagRule(
            "bone",
            lambda f: (f.visual.has_high_contrast and f.visual.is_high_detail
                       and f.visual.bright_ratio > 0.1),
            ("bone-cortex", "skeletal-structure", "high-density-material"),
        ),
        AnatomicalTagRule(
            "ultrasound",
            lambda f: f.visual.is_dark and f.visual.has_low_contrast and f.visual.is_low_detail,
            ("acoustic-shadowing", "soft-tissue-echoes", "ultrasound-artifacts"),
        ),
        AnatomicalTagRule(
            "mammography",
            lambda f: (f.visual.is_medium and f.visual.has_high_contrast
                       and f.structural.anatomical_flags["tall"]),
            ("breast-tissue", "mammographic-density", "glandular-pattern"),
        ),
    ),
    anatomical_bonuses=MappingProxyType({
        "bilateral-brain-symmetry": _BRAIN,
        "brain-tissue-contrast": _BRAIN,
        "cranial-structure": _BRAIN,
        "rib-cage-structure": _CHEST,
        "lung-field-pattern": _CHEST,
        "thoracic-anatomy": _CHEST,
        "bone-cortex": _BONE,
        "skeletal-structure": _BONE,
        "cross-sectional-anatomy": _CT,
        "ct-density-patterns": _CT,
        "acoustic-shadowing": _ULTRASOUND,
        "soft-tissue-echoes": _ULTRASOUND,
        "breast-tissue": _MAMMO,
        "mammographic-density": _MAMMO,
    }),
    pathology_rules=PATHOLOGY_RULES,
    pathology_bonus=0.0,
    confidence_cap=98,
    confidence_floor=75,
    modality_order=(
        Modality.BRAIN_MRI,
        Modality.CHEST_XRAY,
        Modality.CT_SCAN,
        Modality.ULTRASOUND,
        Modality.BONE_XRAY,
        Modality.ABDOMINAL_CT,
        Modality.MAMMOGRAPHY,
        Modality.DENTAL_XRAY,
        Modality.SPINE_XRAY,
    ),
)


PROFILES: Mapping[str, ThresholdProfile] = MappingProxyType({
    CLINICAL.name: CLINICAL,
    PERFECT.name: PERFECT,
})

DEFAULT_PROFILE = CLINICAL.name


def available_profiles() -> List[str]:
    return list(PROFILES)


def get_profile(name: str) -> ThresholdProfile:
    """Look up a registered profile by name (case-insensitive)."""
    try:
        return PROFILES[name.strip().lower()]
    except KeyError:
        raise KeyError(
            f"Unknown analysis profile '{name}'. Available profiles: {', '.join(PROFILES)}"
        ) from None
