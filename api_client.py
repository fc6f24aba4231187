"""
API Client for the Imaging Modality Classification API
Thin requests wrapper around the REST endpoints exposed by api.py
"""

import logging
import mimetypes
from pathlib import Path
from typing import Dict, List, Optional

import requests

logger = logging.getLogger(__name__)


def _guess_content_type(image_path: Path) -> str:
    content_type, _ = mimetypes.guess_type(image_path.name)
    if content_type and content_type.startswith('image/'):
        return content_type
    return 'image/png'


class ModalityAPIClient:
    """Client for interacting with the Modality Classification API"""

    def __init__(self, base_url: str = "http://localhost:8000", timeout: float = 30.0):
        """
        Initialize the API client

        Args:
            base_url: Base URL of the API server
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = requests.Session()

    def _get(self, path: str) -> Optional[Dict]:
        try:
            response = self.session.get(f"{self.base_url}{path}", timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.RequestException as e:
            logger.error(f"GET {path} failed: {e}")
            return None

    def health_check(self) -> Optional[Dict]:
        """Check if the API is healthy"""
        return self._get("/health")

    def list_profiles(self) -> Optional[Dict]:
        """Get the threshold profiles the server knows about"""
        return self._get("/profiles")

    def analyze_single(self, image_path: str, profile: Optional[str] = None) -> Optional[Dict]:
        """
        Classify a single image

        Args:
            image_path: Path to the image file
            profile: Optional profile override

        Returns:
            Analysis result dictionary, or None if the request failed
        """
        path = Path(image_path)
        params = {'profile': profile} if profile else None
        try:
            with open(path, 'rb') as f:
                files = {'file': (path.name, f, _guess_content_type(path))}
                response = self.session.post(
                    f"{self.base_url}/analyze", files=files, params=params, timeout=self.timeout
                )
            response.raise_for_status()
            return response.json()
        except (OSError, requests.RequestException) as e:
            logger.error(f"Analysis of {path.name} failed: {e}")
            return None

    def analyze_batch(self, image_paths: List[str], profile: Optional[str] = None) -> Optional[Dict]:
        """
        Classify multiple images in one request

        Args:
            image_paths: List of paths to image files
            profile: Optional profile override applied to every image

        Returns:
            Dictionary with a 'results' list, or None if the request failed
        """
        params = {'profile': profile} if profile else None
        handles = []
        try:
            files = []
            for image_path in image_paths:
                path = Path(image_path)
                f = open(path, 'rb')
                handles.append(f)
                files.append(('files', (path.name, f, _guess_content_type(path))))

            response = self.session.post(
                f"{self.base_url}/analyze/batch", files=files, params=params, timeout=self.timeout
            )
            response.raise_for_status()
            return response.json()
        except (OSError, requests.RequestException) as e:
            logger.error(f"Batch analysis failed: {e}")
            return None
        finally:
            # Close file handles
            for f in handles:
                f.close()


def main():
    """Check a running server and print what it offers"""
    logging.basicConfig(level=logging.INFO)

    print("="*60)
    print("MODALITY CLASSIFICATION API - CLIENT CHECK")
    print("="*60)

    client = ModalityAPIClient()

    print("\n1. Checking API health...")
    health = client.health_check()
    if not health:
        print("   ✗ API is not responding!")
        print("   Make sure the API server is running:")
        print("   python api.py")
        return

    print(f"   ✓ API Status: {health.get('status')}")
    print(f"   ✓ Active profile: {health.get('profile')}")

    print("\n2. Available profiles...")
    profiles = client.list_profiles() or {}
    for profile in profiles.get('profiles', []):
        print(f"   - {profile['name']}: {profile['description']}")

    print("\n📝 Next Steps:")
    print("1. client.analyze_single('path/to/image.png')")
    print("2. client.analyze_batch(['a.png', 'b.png'], profile='perfect')")
    print("3. Interactive API docs at: http://localhost:8000/docs")


if __name__ == "__main__":
    main()
