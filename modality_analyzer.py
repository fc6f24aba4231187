"""
Medical Image Modality Analyzer

Runs the full heuristic pipeline for one image:

1. Decode: raw bytes to an RGBA PixelBuffer (the only step that can fail)
2. Extract: visual, structural and texture features plus the filename prior,
   independently and optionally on a thread pool
3. Score: pathology indicators from the visual features, anatomical tags
4. Classify: weighted ensemble, arg-max and confidence clamp

Every call is stateless; the analyzer only holds its profile and pool size.

Author: Modality Classification Team
Version: 1.0.0
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union

from filename_scorer import FilenameScores, score_filename
from image_features import (
    FeatureSet,
    StructuralFeatures,
    TextureFeatures,
    VisualFeatures,
    extract_structural_features,
    extract_texture_features,
    extract_visual_features,
)
from modality_classifier import (
    AnatomicalAssessment,
    ClassificationResult,
    classify,
    detect_anatomical_tags,
)
from pathology_scorer import PathologyAssessment, score_pathologies
from pixel_buffer import DecodeFailure, PixelBuffer
from profiles import DEFAULT_PROFILE, ThresholdProfile, get_profile

# Configure logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImageAnalysis:
    """Everything computed for one image, classification included."""
    classification: ClassificationResult
    features: FeatureSet
    filename_scores: FilenameScores
    pathology: PathologyAssessment
    anatomical: AnatomicalAssessment

    @property
    def visual(self) -> VisualFeatures:
        return self.features.visual

    @property
    def structural(self) -> StructuralFeatures:
        return self.features.structural

    @property
    def texture(self) -> TextureFeatures:
        return self.features.texture

    def to_dict(self) -> Dict:
        return {
            "classification": self.classification.to_dict(),
            "features": {
                "visual": self.visual.to_dict(),
                "structural": self.structural.to_dict(),
                "texture": self.texture.to_dict(),
                "filename": self.filename_scores.to_dict(),
                "pathology": self.pathology.to_dict(),
                "anatomical": self.anatomical.to_dict(),
            },
        }


class ModalityAnalyzer:
    """
    Heuristic imaging-modality classifier.

    Combines pixel statistics and filename keywords under a named threshold
    profile. No model is loaded, so construction is cheap and instances can
    be shared freely between threads.
    """

    def __init__(self, profile: Union[str, ThresholdProfile] = DEFAULT_PROFILE, max_workers: int = 1):
        """
        Initialize the analyzer.

        Args:
            profile: Profile name or ThresholdProfile instance
            max_workers: Threads used to run the extractors; 1 runs them inline
        """
        self.profile = get_profile(profile) if isinstance(profile, str) else profile
        self.max_workers = max(1, int(max_workers))

    def _resolve_profile(self, profile: Optional[Union[str, ThresholdProfile]]) -> ThresholdProfile:
        if profile is None:
            return self.profile
        if isinstance(profile, ThresholdProfile):
            return profile
        return get_profile(profile)

    def _extract(self, buffer: PixelBuffer, filename: str,
                 profile: ThresholdProfile) -> tuple:
        if self.max_workers == 1:
            return (
                extract_visual_features(buffer, profile),
                extract_structural_features(buffer, profile),
                extract_texture_features(buffer, profile),
                score_filename(filename, profile),
            )

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            visual = pool.submit(extract_visual_features, buffer, profile)
            structural = pool.submit(extract_structural_features, buffer, profile)
            texture = pool.submit(extract_texture_features, buffer, profile)
            filename_scores = pool.submit(score_filename, filename, profile)
            return visual.result(), structural.result(), texture.result(), filename_scores.result()

    def analyze_buffer(self, buffer: PixelBuffer, filename: str = "",
                       profile: Optional[Union[str, ThresholdProfile]] = None) -> ImageAnalysis:
        """
        Classify an already-decoded pixel buffer.

        Args:
            buffer: Decoded RGBA pixels (zero-area buffers classify as unknown)
            filename: Original file name used for keyword priors
            profile: Override for this call only

        Returns:
            ImageAnalysis with the classification and all intermediate features
        """
        active = self._resolve_profile(profile)

        visual, structural, texture, filename_scores = self._extract(buffer, filename, active)
        features = FeatureSet(visual, structural, texture)
        logger.debug(
            f"Features for '{filename}': brightness={visual.brightness:.2f}, "
            f"contrast={visual.contrast:.3f}, edges={visual.edge_density:.3f}, "
            f"aspect={structural.aspect_ratio:.3f}, symmetry={structural.bilateral_symmetry:.3f}, "
            f"roughness={texture.roughness:.2f}, filename_groups={list(filename_scores.matched_groups)}"
        )

        pathology = score_pathologies(visual, active)
        anatomical = detect_anatomical_tags(features, active)
        classification = classify(features, filename_scores, pathology, active, anatomical)

        logger.info(
            f"Classified '{filename}' as {classification.modality.value} "
            f"(confidence: {classification.confidence}, raw: {classification.raw_score:.4f}, "
            f"profile: {active.name})"
        )

        return ImageAnalysis(
            classification=classification,
            features=features,
            filename_scores=filename_scores,
            pathology=pathology,
            anatomical=anatomical,
        )

    def analyze(self, image_bytes: bytes, filename: str = "",
                profile: Optional[Union[str, ThresholdProfile]] = None) -> ImageAnalysis:
        """
        Decode and classify an encoded image.

        Args:
            image_bytes: Raw image bytes (PNG, JPEG, ...)
            filename: Original file name
            profile: Override for this call only

        Returns:
            ImageAnalysis

        Raises:
            DecodeFailure: If no pixel data can be obtained from the bytes
        """
        try:
            buffer = PixelBuffer.from_bytes(image_bytes)
        except DecodeFailure as e:
            logger.error(f"Could not decode '{filename}': {e}")
            raise

        return self.analyze_buffer(buffer, filename, profile)

    def analyze_file(self, path: Union[str, Path],
                     profile: Optional[Union[str, ThresholdProfile]] = None) -> ImageAnalysis:
        """Read an image from disk and classify it, using its base name as the filename."""
        path = Path(path)
        return self.analyze(path.read_bytes(), path.name, profile)


# Singleton instance for reuse
_analyzer_instance: Optional[ModalityAnalyzer] = None


def get_analyzer() -> ModalityAnalyzer:
    """Get or create the global analyzer instance"""
    global _analyzer_instance
    if _analyzer_instance is None:
        from config import settings

        _analyzer_instance = ModalityAnalyzer(
            profile=settings.ANALYSIS_PROFILE,
            max_workers=settings.EXTRACTION_WORKERS,
        )
    return _analyzer_instance
