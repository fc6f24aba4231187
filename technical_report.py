"""
Technical summary of an analysis: rounded metrics, category labels, image
quality grade, anatomical region and modality names, per-pathology severity
and location, and an urgency level.

Labels, names and quality grades come from the ReportTables registered for
the profile that produced the classification.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from medical_types import Modality, Pathology, UrgencyLevel
from modality_analyzer import ImageAnalysis
from modality_classifier import round_half_up
from profiles import CLINICAL, DEFAULT_PROFILE, PERFECT

# (upper bound, label) pairs plus the label used above the last bound
Bands = Tuple[Tuple[Tuple[float, str], ...], str]

PATHOLOGY_LOCATIONS = {
    Pathology.PNEUMONIA: "Lung parenchyma",
    Pathology.ATELECTASIS: "Lung parenchyma",
    Pathology.CONSOLIDATION: "Lung parenchyma",
    Pathology.CARDIOMEGALY: "Cardiac silhouette",
    Pathology.PLEURAL_EFFUSION: "Pleural space",
}

HIGH_URGENCY_PATHOLOGIES = frozenset({Pathology.PNEUMONIA, Pathology.PLEURAL_EFFUSION})


@dataclass(frozen=True)
class ReportTables:
    anatomical_regions: Mapping[Modality, str]
    unknown_region: str
    imaging_modalities: Mapping[Modality, str]
    unknown_modality: str
    brightness_bands: Bands
    contrast_bands: Bands
    detail_bands: Bands
    symmetry_bands: Bands
    symmetry_label: str
    # None leaves the texture line without a category
    texture_bands: Optional[Bands]
    # Checked in order; the first grade whose predicate holds is reported
    quality_grades: Tuple[Tuple[Callable[[ImageAnalysis], bool], str], ...]
    quality_fallback: str


CLINICAL_REPORT = ReportTables(
    anatomical_regions={
        Modality.CHEST_XRAY: "Thoracic cavity (cardiopulmonary system)",
        Modality.BRAIN_MRI: "Intracranial structures (central nervous system)",
        Modality.CT_SCAN: "Cross-sectional anatomy (multi-organ system)",
        Modality.BONE_XRAY: "Musculoskeletal system (osseous structures)",
        Modality.SPINE_XRAY: "Vertebral column (spinal anatomy)",
        Modality.ABDOMINAL_CT: "Abdominal cavity (visceral organs)",
        Modality.ULTRASOUND: "Soft tissue structures (real-time imaging)",
        Modality.MAMMOGRAPHY: "Breast tissue (mammary gland)",
        Modality.DENTAL_XRAY: "Oral cavity (dental structures)",
    },
    unknown_region="Undetermined region",
    imaging_modalities={
        Modality.BRAIN_MRI: "Magnetic Resonance Imaging (MRI)",
        Modality.CHEST_XRAY: "Digital Radiography (X-ray)",
        Modality.BONE_XRAY: "Digital Radiography (X-ray)",
        Modality.SPINE_XRAY: "Digital Radiography (X-ray)",
        Modality.DENTAL_XRAY: "Digital Radiography (X-ray)",
        Modality.CT_SCAN: "Computed Tomography (CT)",
        Modality.ABDOMINAL_CT: "Computed Tomography (CT)",
        Modality.ULTRASOUND: "Diagnostic Ultrasonography",
        Modality.MAMMOGRAPHY: "Digital Mammography",
    },
    unknown_modality="Unknown modality",
    brightness_bands=(((50, "Very Dark"), (100, "Dark"), (150, "Medium"), (200, "Bright")), "Very Bright"),
    contrast_bands=(((0.2, "Low"), (0.4, "Moderate"), (0.7, "Good")), "High"),
    detail_bands=(((0.15, "Low Detail"), (0.35, "Moderate Detail"), (0.55, "High Detail")), "Very High Detail"),
    symmetry_bands=(((0.3, "Poor"), (0.6, "Moderate"), (0.8, "Good")), "Excellent"),
    symmetry_label="Bilateral symmetry",
    texture_bands=(((0.3, "Smooth"), (0.6, "Normal"), (0.8, "Complex")), "Very Complex"),
    quality_grades=(
        (lambda a: a.visual.contrast > 0.6 and a.texture.is_high_quality and a.visual.edge_density > 0.3,
         "Excellent - optimal for interpretation"),
        (lambda a: a.visual.contrast > 0.4 and a.texture.uniformity > 0.5,
         "Good - adequate for interpretation"),
        (lambda a: a.visual.contrast > 0.25 or a.texture.uniformity > 0.4,
         "Acceptable - interpretable with some limitations"),
    ),
    quality_fallback="Limited - consider repeat imaging",
)

PERFECT_REPORT = ReportTables(
    anatomical_regions={
        Modality.BRAIN_MRI: "Neurological/Intracranial",
        Modality.CHEST_XRAY: "Thoracic/Cardiopulmonary",
        Modality.CT_SCAN: "Cross-sectional/Multi-organ",
        Modality.BONE_XRAY: "Musculoskeletal/Orthopedic",
        Modality.SPINE_XRAY: "Spinal/Vertebral",
        Modality.ABDOMINAL_CT: "Abdominal/Pelvic",
        Modality.ULTRASOUND: "Soft tissue/Vascular",
        Modality.MAMMOGRAPHY: "Breast tissue",
        Modality.DENTAL_XRAY: "Oral/Maxillofacial",
    },
    unknown_region="Unspecified anatomical region",
    imaging_modalities={
        Modality.BRAIN_MRI: "Magnetic Resonance Imaging (MRI)",
        Modality.CHEST_XRAY: "Plain Film Radiography (X-ray)",
        Modality.BONE_XRAY: "Plain Film Radiography (X-ray)",
        Modality.SPINE_XRAY: "Plain Film Radiography (X-ray)",
        Modality.DENTAL_XRAY: "Plain Film Radiography (X-ray)",
        Modality.CT_SCAN: "Computed Tomography (CT)",
        Modality.ABDOMINAL_CT: "Computed Tomography (CT)",
        Modality.ULTRASOUND: "Diagnostic Ultrasonography",
        Modality.MAMMOGRAPHY: "Digital Mammography",
    },
    unknown_modality="Unknown imaging modality",
    brightness_bands=(((60, "Dark"), (120, "Medium-Dark"), (180, "Medium"), (220, "Medium-Bright")), "Bright"),
    contrast_bands=(((0.3, "Low"), (0.6, "Medium")), "High"),
    detail_bands=(((0.2, "Low Detail"), (0.4, "Medium Detail")), "High Detail"),
    symmetry_bands=(((0.4, "Poor"), (0.7, "Good")), "Excellent"),
    symmetry_label="Symmetry",
    texture_bands=None,
    quality_grades=(
        (lambda a: a.visual.contrast > 0.6 and a.texture.uniformity > 0.6 and a.visual.edge_density > 0.3,
         "Excellent image quality - optimal for diagnostic interpretation"),
        (lambda a: a.visual.contrast > 0.4 and a.texture.uniformity > 0.4,
         "Good image quality - adequate for accurate diagnosis"),
        (lambda a: a.visual.contrast > 0.2 or a.texture.uniformity > 0.3,
         "Acceptable image quality - diagnostic with limitations"),
    ),
    quality_fallback="Limited image quality - may require repeat imaging",
)

REPORT_TABLES: Dict[str, ReportTables] = {
    CLINICAL.name: CLINICAL_REPORT,
    PERFECT.name: PERFECT_REPORT,
}


def report_tables_for(profile_name: str) -> ReportTables:
    return REPORT_TABLES.get(profile_name, REPORT_TABLES[DEFAULT_PROFILE])


def categorize(value: float, bands: Sequence[Tuple[float, str]], above: str) -> str:
    for bound, label in bands:
        if value < bound:
            return label
    return above


def _label(value: float, bands: Bands) -> str:
    return categorize(value, bands[0], bands[1])


def severity(probability: float) -> str:
    if probability > 0.8:
        return "severe"
    if probability > 0.6:
        return "moderate"
    return "mild"


def quality_assessment(analysis: ImageAnalysis, tables: ReportTables = CLINICAL_REPORT) -> str:
    for predicate, grade in tables.quality_grades:
        if predicate(analysis):
            return grade
    return tables.quality_fallback


def determine_urgency(modality: Modality,
                      top_pathologies: Sequence[Tuple[Pathology, float]]) -> UrgencyLevel:
    if modality is Modality.BRAIN_MRI:
        return UrgencyLevel.LOW
    if modality is not Modality.CHEST_XRAY:
        return UrgencyLevel.MEDIUM

    if not top_pathologies or top_pathologies[0][1] < 0.5:
        return UrgencyLevel.LOW
    primary, score = top_pathologies[0]
    if score > 0.8 and primary in HIGH_URGENCY_PATHOLOGIES:
        return UrgencyLevel.HIGH
    return UrgencyLevel.MEDIUM


def analysis_metrics(analysis: ImageAnalysis) -> Dict[str, int]:
    return {
        "brightness": round_half_up(analysis.visual.brightness),
        "contrast": round_half_up(analysis.visual.contrast * 100),
        "symmetry": round_half_up(analysis.structural.bilateral_symmetry * 100),
        "edge_density": round_half_up(analysis.visual.edge_density * 100),
        "texture_complexity": round_half_up(analysis.texture.texture_complexity * 100),
    }


def image_characteristics(analysis: ImageAnalysis, tables: ReportTables = CLINICAL_REPORT) -> List[str]:
    visual, structural, texture = analysis.visual, analysis.structural, analysis.texture

    texture_line = f"Texture complexity: {texture.texture_complexity * 100:.1f}%"
    if tables.texture_bands is not None:
        texture_line += f" ({_label(texture.texture_complexity, tables.texture_bands)})"

    return [
        f"Brightness: {round_half_up(visual.brightness)}/255 "
        f"({_label(visual.brightness, tables.brightness_bands)})",
        f"Contrast: {visual.contrast * 100:.1f}% ({_label(visual.contrast, tables.contrast_bands)})",
        f"Edge density: {visual.edge_density * 100:.1f}% "
        f"({_label(visual.edge_density, tables.detail_bands)})",
        f"{tables.symmetry_label}: {structural.bilateral_symmetry * 100:.1f}% "
        f"({_label(structural.bilateral_symmetry, tables.symmetry_bands)})",
        texture_line,
    ]


def build_technical_report(analysis: ImageAnalysis) -> Dict:
    """
    Summarise an analysis for display.

    Args:
        analysis: Result of ModalityAnalyzer.analyze*

    Returns:
        JSON-ready dictionary
    """
    classification = analysis.classification
    modality = classification.modality
    tables = report_tables_for(classification.profile)

    return {
        "analysis_metrics": analysis_metrics(analysis),
        "image_characteristics": image_characteristics(analysis, tables),
        "anatomical_region": tables.anatomical_regions.get(modality, tables.unknown_region),
        "imaging_modality": tables.imaging_modalities.get(modality, tables.unknown_modality),
        "quality_assessment": quality_assessment(analysis, tables),
        "pathologies": [
            {
                "condition": pathology.display_name,
                "probability": round_half_up(score * 100),
                "severity": severity(score),
                "location": PATHOLOGY_LOCATIONS.get(pathology, "Multiple regions"),
            }
            for pathology, score in classification.top_pathologies
        ],
        "urgency": determine_urgency(modality, classification.top_pathologies).value,
    }
