"""
Simple Analysis Script
Classifies the imaging modality of one or more images directly,
WITHOUT needing the API server.

Usage:
    python simple_analyze.py path/to/image.png
    python simple_analyze.py a.png b.jpg --profile perfect
    python simple_analyze.py scan.png --json
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from config import settings
from modality_analyzer import ModalityAnalyzer
from pixel_buffer import DecodeFailure
from profiles import available_profiles
from technical_report import build_technical_report

logger = logging.getLogger(__name__)


def analyze_single_image(analyzer: ModalityAnalyzer, image_path: str, verbose: bool = True) -> Optional[Dict]:
    """
    Classify a single image

    Args:
        analyzer: Configured ModalityAnalyzer
        image_path: Path to the image
        verbose: Print a human-readable summary

    Returns:
        Dictionary with classification and technical summary, or None on failure
    """
    path = Path(image_path)

    try:
        analysis = analyzer.analyze_file(path)
    except (OSError, DecodeFailure) as e:
        if verbose:
            print(f"   ❌ Error processing {path.name}: {e}")
        return None

    classification = analysis.classification
    technical = build_technical_report(analysis)

    if verbose:
        print(f"\n{'='*60}")
        print(f"RESULTS - {path.name}")
        print(f"{'='*60}")
        print(f"\n🔍 Modality: {classification.modality.value}")
        print(f"📊 Confidence: {classification.confidence}% (raw score {classification.raw_score:.4f})")
        print(f"🧭 Profile: {classification.profile}")
        print(f"🩻 {technical['imaging_modality']} - {technical['anatomical_region']}")

        print(f"\n📈 Image characteristics:")
        for line in technical['image_characteristics']:
            print(f"   {line}")
        print(f"   Quality: {technical['quality_assessment']}")

        if technical['pathologies']:
            print(f"\n💡 Pathology indicators:")
            for finding in technical['pathologies']:
                print(f"   {finding['condition']}: {finding['probability']}% ({finding['severity']})")
        print(f"\n⚠️  Urgency: {technical['urgency']}")

    return {
        'image': str(path),
        'classification': classification.to_dict(),
        'technical': technical,
    }


def analyze_images(image_paths: List[str], profile: str, verbose: bool = True) -> List[Dict]:
    """
    Classify several images with one analyzer

    Args:
        image_paths: Paths to the images
        profile: Threshold profile name
        verbose: Print a summary per image

    Returns:
        One result per image; failures carry an 'error' entry
    """
    analyzer = ModalityAnalyzer(profile=profile, max_workers=settings.EXTRACTION_WORKERS)

    results = []
    for image_path in image_paths:
        result = analyze_single_image(analyzer, image_path, verbose)
        if result is None:
            result = {'image': str(image_path), 'error': 'could not read or decode image'}
        results.append(result)

    return results


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Classify the imaging modality of medical images without the API server"
    )
    parser.add_argument('images', nargs='+', help="Image files to classify")
    parser.add_argument(
        '--profile',
        default=settings.ANALYSIS_PROFILE,
        choices=available_profiles(),
        help="Threshold profile (default: %(default)s)"
    )
    parser.add_argument('--json', action='store_true', help="Print results as JSON")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    # Keep stdout clean for --json
    level = logging.WARNING if args.json else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=settings.LOG_FORMAT)

    if not args.json:
        print("\n" + "="*60)
        print(f"MODALITY ANALYSIS - {len(args.images)} image(s), profile '{args.profile}'")
        print("="*60)

    results = analyze_images(args.images, args.profile, verbose=not args.json)

    if args.json:
        print(json.dumps(results, indent=2))
    else:
        print(f"\n{'='*60}")
        print(f"COMPLETE - {len(results)} results")
        print(f"{'='*60}")

    return 1 if any('error' in r for r in results) else 0


if __name__ == "__main__":
    sys.exit(main())
