"""
Image loading utilities for the Marker Coverage Service.
Supports loading images from local paths, HTTP(S) URLs and raw bytes.
"""

import cv2
import numpy as np
import requests
import logging
from pathlib import Path
from typing import List
from urllib.parse import urlparse

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ('.jpg', '.jpeg', '.png')


def load_image(image_path: str, timeout: int = 30) -> np.ndarray:
    """
    Load image from local path or URL.

    Args:
        image_path: Path to image (local file path or HTTP/HTTPS URL)
        timeout: Request timeout in seconds for URL downloads

    Returns:
        OpenCV image array in BGR format (numpy.ndarray)

    Raises:
        ValueError: If image path is invalid or image cannot be loaded
    """
    if not image_path:
        raise ValueError('image_path cannot be empty')

    parsed = urlparse(str(image_path))
    is_url = parsed.scheme in ('http', 'https')

    try:
        if is_url:
            logger.info(f'Loading image from URL: {image_path}')
            response = requests.get(image_path, timeout=timeout)
            response.raise_for_status()
            image = decode_image(response.content)
        else:
            logger.debug(f'Loading image from local path: {image_path}')
            if not Path(image_path).is_file():
                raise ValueError(f'Image file not found: {image_path}')
            image = cv2.imread(str(image_path), cv2.IMREAD_COLOR)
            if image is None:
                raise ValueError(f'Failed to decode image: {image_path}')

        height, width = image.shape[:2]
        logger.debug(f'Successfully loaded image: {width}x{height} pixels')
        return image

    except requests.RequestException as e:
        logger.error(f'Failed to download image from URL: {e}')
        raise ValueError(f'Failed to load image from URL: {str(e)}')
    except ValueError:
        raise
    except Exception as e:
        logger.error(f'Unexpected error loading image: {e}', exc_info=True)
        raise ValueError(f'Failed to load image: {str(e)}')


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode an encoded image (PNG/JPEG bytes) to BGR.

    Raises:
        ValueError: If the bytes are empty or not a decodable image
    """
    if not data:
        raise ValueError('Image data is empty')
    image = cv2.imdecode(np.frombuffer(data, np.uint8), cv2.IMREAD_COLOR)
    if image is None or image.size == 0:
        raise ValueError('Failed to decode image data')
    return image


def validate_image_format(image_path: str) -> bool:
    """
    Validate that image path has a supported format.

    Args:
        image_path: Path to image file

    Returns:
        True if format is supported, False otherwise
    """
    return str(image_path).lower().endswith(SUPPORTED_FORMATS)


def collect_image_paths(path: str) -> List[Path]:
    """
    Collect image files from a file or directory path.

    Args:
        path: Image file, or directory scanned (non-recursively) for PNG/JPEG

    Returns:
        Sorted list of image paths

    Raises:
        ValueError: If the path does not exist or is an unsupported file
    """
    p = Path(path)
    if p.is_dir():
        return sorted(f for f in p.iterdir() if f.is_file() and validate_image_format(f.name))
    if p.is_file():
        if not validate_image_format(p.name):
            raise ValueError(f'Unsupported image format: {p}')
        return [p]
    raise ValueError(f'Path not found: {path}')
