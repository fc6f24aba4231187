"""
Closed vocabularies for the modality classifier.

Modality and pathology identifiers are enums so that rule tables can only
ever target a known label. Values are the wire strings used in API responses.
"""

from enum import Enum


class Modality(Enum):
    """Imaging modality an image can be classified as."""
    CHEST_XRAY = "chest-xray"
    BRAIN_MRI = "brain-mri"
    CT_SCAN = "ct-scan"
    ULTRASOUND = "ultrasound"
    BONE_XRAY = "bone-xray"
    ABDOMINAL_CT = "abdominal-ct"
    MAMMOGRAPHY = "mammography"
    DENTAL_XRAY = "dental-xray"
    SPINE_XRAY = "spine-xray"
    UNKNOWN = "unknown"


# The nine scoreable modalities, in declaration order (UNKNOWN is an outcome, never scored)
SCORED_MODALITIES = tuple(m for m in Modality if m is not Modality.UNKNOWN)


class Pathology(Enum):
    """Pathology identifiers tracked by the indicator scorer."""
    PNEUMONIA = "pneumonia"
    ATELECTASIS = "atelectasis"
    CARDIOMEGALY = "cardiomegaly"
    PLEURAL_EFFUSION = "pleural_effusion"
    PNEUMOTHORAX = "pneumothorax"
    CONSOLIDATION = "consolidation"
    EDEMA = "edema"
    EMPHYSEMA = "emphysema"
    FIBROSIS = "fibrosis"
    NODULE = "nodule"
    MASS = "mass"
    INFILTRATION = "infiltration"
    STROKE = "stroke"
    TUMOR = "tumor"
    HEMORRHAGE = "hemorrhage"
    NORMAL = "normal"

    @property
    def display_name(self) -> str:
        return " ".join(word.capitalize() for word in self.value.split("_"))


# Pathologies whose presence as the top finding supports a chest X-ray reading
CHEST_PATHOLOGIES = frozenset({
    Pathology.PNEUMONIA,
    Pathology.ATELECTASIS,
    Pathology.CARDIOMEGALY,
    Pathology.PLEURAL_EFFUSION,
})


class UrgencyLevel(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
