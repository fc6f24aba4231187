"""
Image Feature Extraction

Visual, structural and texture feature extractors. Each extractor is a pure
function of a PixelBuffer and a ThresholdProfile and returns a frozen record;
none of them reads another extractor's output.

Visual:     brightness histogram, mean brightness, contrast, edge density,
            dark/medium/bright band ratios and pathology indicator flags
Structural: aspect ratio, brightness-weighted centre of mass, left-right and
            top-bottom symmetry, anatomical shape flags
Texture:    8-neighbourhood roughness, uniformity, local variance,
            complexity and threshold-derived pattern tags

Zero-area buffers produce zero/neutral values instead of failing.
"""

from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, NamedTuple, Tuple

import numpy as np

from pixel_buffer import PixelBuffer
from profiles import ThresholdProfile

# Visual category thresholds (shared by all profiles)
DARK_MEAN_THRESHOLD = 80
BRIGHT_MEAN_THRESHOLD = 180
HIGH_CONTRAST_THRESHOLD = 0.6
LOW_CONTRAST_THRESHOLD = 0.3
HIGH_DETAIL_THRESHOLD = 0.4
LOW_DETAIL_THRESHOLD = 0.2

# Structural symmetry grades
GOOD_SYMMETRY_THRESHOLD = 0.7
POOR_SYMMETRY_THRESHOLD = 0.4

HISTOGRAM_BINS = 256
CONTRAST_NORMALIZER = 128.0

NEIGHBOR_OFFSETS = (
    (-1, -1), (-1, 0), (-1, 1),
    (0, -1),           (0, 1),
    (1, -1),  (1, 0),  (1, 1),
)


# ============================================
# Feature records
# ============================================

@dataclass(frozen=True)
class VisualFeatures:
    brightness: float
    contrast: float
    edge_density: float
    histogram: Tuple[int, ...]
    dark_ratio: float
    bright_ratio: float
    medium_ratio: float
    pathology_indicators: Mapping[str, bool]

    @property
    def is_empty(self) -> bool:
        """True for a zero-area image (empty histogram)."""
        return not any(self.histogram)

    @property
    def is_dark(self) -> bool:
        return self.brightness < DARK_MEAN_THRESHOLD

    @property
    def is_bright(self) -> bool:
        return self.brightness > BRIGHT_MEAN_THRESHOLD

    @property
    def is_medium(self) -> bool:
        return DARK_MEAN_THRESHOLD <= self.brightness <= BRIGHT_MEAN_THRESHOLD

    @property
    def has_high_contrast(self) -> bool:
        return self.contrast > HIGH_CONTRAST_THRESHOLD

    @property
    def has_medium_contrast(self) -> bool:
        return LOW_CONTRAST_THRESHOLD < self.contrast <= HIGH_CONTRAST_THRESHOLD

    @property
    def has_low_contrast(self) -> bool:
        return self.contrast <= LOW_CONTRAST_THRESHOLD

    @property
    def is_high_detail(self) -> bool:
        return self.edge_density > HIGH_DETAIL_THRESHOLD

    @property
    def is_medium_detail(self) -> bool:
        return LOW_DETAIL_THRESHOLD < self.edge_density <= HIGH_DETAIL_THRESHOLD

    @property
    def is_low_detail(self) -> bool:
        return self.edge_density <= LOW_DETAIL_THRESHOLD

    def to_dict(self) -> Dict:
        return {
            "brightness": round(self.brightness, 3),
            "contrast": round(self.contrast, 4),
            "edge_density": round(self.edge_density, 4),
            "dark_ratio": round(self.dark_ratio, 4),
            "bright_ratio": round(self.bright_ratio, 4),
            "medium_ratio": round(self.medium_ratio, 4),
            "pathology_indicators": dict(self.pathology_indicators),
        }


class CenterMass(NamedTuple):
    x: float
    y: float


@dataclass(frozen=True)
class StructuralFeatures:
    aspect_ratio: float
    center_mass: CenterMass
    bilateral_symmetry: float
    vertical_symmetry: float
    anatomical_flags: Mapping[str, bool]

    @property
    def has_good_symmetry(self) -> bool:
        return self.bilateral_symmetry > GOOD_SYMMETRY_THRESHOLD

    @property
    def has_medium_symmetry(self) -> bool:
        return POOR_SYMMETRY_THRESHOLD < self.bilateral_symmetry <= GOOD_SYMMETRY_THRESHOLD

    @property
    def has_poor_symmetry(self) -> bool:
        return self.bilateral_symmetry <= POOR_SYMMETRY_THRESHOLD

    def to_dict(self) -> Dict:
        return {
            "aspect_ratio": round(self.aspect_ratio, 4),
            "center_mass": {"x": round(self.center_mass.x, 4), "y": round(self.center_mass.y, 4)},
            "bilateral_symmetry": round(self.bilateral_symmetry, 4),
            "vertical_symmetry": round(self.vertical_symmetry, 4),
            "anatomical_flags": dict(self.anatomical_flags),
        }


@dataclass(frozen=True)
class TextureFeatures:
    roughness: float
    uniformity: float
    local_variance: float
    texture_complexity: float
    pattern_tags: Tuple[str, ...]
    is_smooth: bool
    is_normal: bool
    is_complex: bool
    has_artifacts: bool
    is_high_quality: bool

    def to_dict(self) -> Dict:
        return {
            "roughness": round(self.roughness, 3),
            "uniformity": round(self.uniformity, 4),
            "local_variance": round(self.local_variance, 3),
            "texture_complexity": round(self.texture_complexity, 4),
            "pattern_tags": list(self.pattern_tags),
        }


class FeatureSet(NamedTuple):
    """The three extractor outputs for one image, as consumed by rule predicates."""
    visual: VisualFeatures
    structural: StructuralFeatures
    texture: TextureFeatures


# ============================================
# Visual
# ============================================

# Indicator flags over brightness bands and contrast, evaluated on every image
PATHOLOGY_INDICATORS: Tuple[Tuple[str, Callable[..., bool]], ...] = (
    ("pneumonia", lambda mean, contrast, edge, dark, bright, medium: dark < 0.6 and contrast > 0.4),
    ("atelectasis", lambda mean, contrast, edge, dark, bright, medium: dark > 0.7 and edge > 0.3),
    ("cardiomegaly", lambda mean, contrast, edge, dark, bright, medium: medium > 0.4 and mean > 100),
    ("pleural_effusion", lambda mean, contrast, edge, dark, bright, medium: dark > 0.8 and contrast < 0.3),
    ("normal_chest", lambda mean, contrast, edge, dark, bright, medium: 0.6 < dark < 0.8 and contrast > 0.3),
)


def histogram_contrast(histogram: np.ndarray) -> float:
    """Population standard deviation of a brightness histogram, scaled to [0, 1]."""
    total = histogram.sum()
    if total == 0:
        return 0.0
    levels = np.arange(len(histogram), dtype=np.float64)
    mean = (histogram * levels).sum() / total
    variance = (histogram * (levels - mean) ** 2).sum() / total
    return float(min(np.sqrt(variance) / CONTRAST_NORMALIZER, 1.0))


def extract_visual_features(buffer: PixelBuffer, profile: ThresholdProfile) -> VisualFeatures:
    """
    Single pass over all pixels: histogram, mean, contrast, edges and bands.

    Edges are counted in row-major order by comparing each pixel's red channel
    with the next pixel's, so the last pixel of a row is compared with the
    first pixel of the following row.
    """
    total = buffer.pixel_count
    if total == 0:
        histogram = np.zeros(HISTOGRAM_BINS, dtype=np.int64)
        mean = contrast = edge_density = dark_ratio = bright_ratio = medium_ratio = 0.0
    else:
        levels = buffer.rounded_brightness.ravel()
        histogram = np.bincount(levels, minlength=HISTOGRAM_BINS)

        mean = float(levels.sum()) / total
        contrast = histogram_contrast(histogram)

        dark = int(np.count_nonzero(levels < profile.dark_threshold))
        bright = int(np.count_nonzero(levels > profile.bright_threshold))
        medium = total - dark - bright
        dark_ratio = dark / total
        bright_ratio = bright / total
        medium_ratio = medium / total

        red = buffer.red.ravel()
        edges = int(np.count_nonzero(np.abs(np.diff(red)) > profile.edge_threshold))
        edge_density = edges / total

    indicators = {
        name: bool(rule(mean, contrast, edge_density, dark_ratio, bright_ratio, medium_ratio))
        for name, rule in PATHOLOGY_INDICATORS
    }

    return VisualFeatures(
        brightness=mean,
        contrast=contrast,
        edge_density=edge_density,
        histogram=tuple(int(c) for c in histogram),
        dark_ratio=dark_ratio,
        bright_ratio=bright_ratio,
        medium_ratio=medium_ratio,
        pathology_indicators=MappingProxyType(indicators),
    )


# ============================================
# Structural
# ============================================

def _similarity(first: np.ndarray, second: np.ndarray) -> float:
    if first.size == 0:
        return 0.0
    similarity = np.maximum(0.0, 255.0 - np.abs(first - second)) / 255.0
    return float(similarity.mean())


def bilateral_symmetry(brightness: np.ndarray, stride: int) -> float:
    """Mean similarity between each sampled pixel left of centre and its mirror on the right."""
    height, width = brightness.shape
    xs = np.arange(0, width // 2, stride)
    rows = brightness[::stride]
    return _similarity(rows[:, xs], rows[:, width - 1 - xs])


def vertical_symmetry(brightness: np.ndarray, stride: int) -> float:
    """Same as bilateral_symmetry, mirrored across the horizontal midline."""
    height, width = brightness.shape
    ys = np.arange(0, height // 2, stride)
    columns = brightness[:, ::stride]
    return _similarity(columns[ys], columns[height - 1 - ys])


def center_of_mass(brightness: np.ndarray, stride: int) -> CenterMass:
    """Brightness-squared weighted centroid on a strided grid, normalised by image size."""
    height, width = brightness.shape
    if height == 0 or width == 0:
        return CenterMass(0.0, 0.0)

    mass = brightness[::stride, ::stride] ** 2
    total_mass = mass.sum()
    if total_mass <= 0:
        return CenterMass(0.0, 0.0)

    ys = np.arange(0, height, stride, dtype=np.float64)
    xs = np.arange(0, width, stride, dtype=np.float64)
    cx = (mass * xs[np.newaxis, :]).sum() / total_mass
    cy = (mass * ys[:, np.newaxis]).sum() / total_mass
    return CenterMass(float(cx / width), float(cy / height))


def anatomical_flags(aspect_ratio: float, symmetry: float, center: CenterMass) -> Dict[str, bool]:
    return {
        "chest_xray_shape": 1.2 < aspect_ratio < 1.8,
        "brain_mri_shape": abs(aspect_ratio - 1) < 0.2 and symmetry > GOOD_SYMMETRY_THRESHOLD,
        "ct_shape": abs(aspect_ratio - 1) < 0.15,
        "spine_shape": aspect_ratio < 0.6,
        "mammography_shape": 0.4 < aspect_ratio < 0.8,
        "square": abs(aspect_ratio - 1) < 0.15,
        "wide": aspect_ratio > 1.3,
        "tall": aspect_ratio < 0.77,
        "rectangular": aspect_ratio > 1.15 or aspect_ratio < 0.85,
        "centered": abs(center.x - 0.5) < 0.1 and abs(center.y - 0.5) < 0.1,
    }


def extract_structural_features(buffer: PixelBuffer, profile: ThresholdProfile) -> StructuralFeatures:
    aspect_ratio = buffer.width / buffer.height if buffer.height else 0.0
    brightness = buffer.brightness

    center = center_of_mass(brightness, profile.center_mass_stride)
    bilateral = bilateral_symmetry(brightness, profile.symmetry_stride)
    vertical = vertical_symmetry(brightness, profile.symmetry_stride)

    return StructuralFeatures(
        aspect_ratio=aspect_ratio,
        center_mass=center,
        bilateral_symmetry=bilateral,
        vertical_symmetry=vertical,
        anatomical_flags=MappingProxyType(anatomical_flags(aspect_ratio, bilateral, center)),
    )


# ============================================
# Texture
# ============================================

def neighborhood_statistics(brightness: np.ndarray, stride: int, border: int) -> Tuple[float, float]:
    """
    Average 8-neighbourhood roughness and local variance over sampled interior pixels.

    For every centre the absolute brightness differences to its eight
    neighbours are taken; their mean is the roughness contribution and their
    population variance the local-variance contribution.

    Returns:
        Tuple of (roughness, local_variance); both 0 when no centre is sampled
    """
    height, width = brightness.shape
    if height <= 2 * border or width <= 2 * border:
        return 0.0, 0.0

    def window(dy: int, dx: int) -> np.ndarray:
        return brightness[border + dy:height - border + dy:stride,
                          border + dx:width - border + dx:stride]

    center = window(0, 0)
    diffs = np.stack([np.abs(center - window(dy, dx)) for dx, dy in NEIGHBOR_OFFSETS])

    mean_diff = diffs.sum(axis=0) / len(NEIGHBOR_OFFSETS)
    variance = ((diffs - mean_diff) ** 2).sum(axis=0) / len(NEIGHBOR_OFFSETS)
    return float(mean_diff.mean()), float(variance.mean())


def _unique(tags: List[str]) -> Tuple[str, ...]:
    return tuple(dict.fromkeys(tags))


def extract_texture_features(buffer: PixelBuffer, profile: ThresholdProfile) -> TextureFeatures:
    roughness, local_variance = neighborhood_statistics(
        buffer.brightness, profile.texture_stride, profile.texture_border
    )
    uniformity = max(0.0, 255.0 - roughness) / 255.0
    complexity = min((roughness + local_variance) / 200.0, 1.0)

    roughness_bands = profile.roughness_bands
    variance_bands = profile.variance_bands
    tags = _unique(
        list(roughness_bands.tags_for(roughness))
        + list(profile.uniformity_bands.tags_for(uniformity))
        + list(variance_bands.tags_for(local_variance))
    )

    return TextureFeatures(
        roughness=roughness,
        uniformity=uniformity,
        local_variance=local_variance,
        texture_complexity=complexity,
        pattern_tags=tags,
        is_smooth=roughness < roughness_bands.medium_threshold,
        is_normal=roughness_bands.medium_threshold <= roughness <= roughness_bands.high_threshold,
        is_complex=roughness > roughness_bands.high_threshold,
        has_artifacts=local_variance > variance_bands.high_threshold,
        is_high_quality=local_variance < variance_bands.medium_threshold and uniformity > 0.6,
    )


def extract_features(buffer: PixelBuffer, profile: ThresholdProfile) -> FeatureSet:
    """Run the three pixel extractors sequentially."""
    return FeatureSet(
        visual=extract_visual_features(buffer, profile),
        structural=extract_structural_features(buffer, profile),
        texture=extract_texture_features(buffer, profile),
    )
