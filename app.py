"""
Marker Coverage Service - Flask Application
Computer Vision service measuring how much of a photo the 3x3 color marker covers
"""

from flask import Flask, request, jsonify, g
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
import cv2
import numpy as np
import logging
import uuid
from dotenv import load_dotenv
import os
from typing import Dict, Optional, Tuple

# Import services
from config.marker_config import get_params
from services.marker_detection import MarkerDetectionService, DetectOptions
from utils.image_loader import load_image, decode_image

# Load environment variables
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create Flask app
app = Flask(__name__)
CORS(app)

# Determine if we're in production mode
is_production = os.getenv('FLASK_DEBUG', 'False').lower() != 'true'


# Request ID middleware for tracing
@app.before_request
def generate_request_id():
    """Generate or use existing request ID for tracing."""
    g.request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())
    logger.debug(f'[Request {g.request_id}] {request.method} {request.path}')


@app.after_request
def add_request_id_header(response):
    """Add request ID to response headers."""
    if hasattr(g, 'request_id'):
        response.headers['X-Request-ID'] = g.request_id
    return response


def sanitize_error_message(error: Exception) -> str:
    """
    Sanitize error messages for production.

    In production, returns generic messages to prevent information disclosure.
    In development, returns full error details for debugging.

    Args:
        error: Exception object

    Returns:
        Sanitized error message string
    """
    if is_production:
        return "An internal error occurred. Please try again later."
    else:
        return str(error)


# Rate limiting configuration
limiter = Limiter(
    app=app,
    key_func=get_remote_address,
    default_limits=["200 per hour", "20 per minute"],
    storage_uri="memory://",  # In-memory storage (use Redis for multi-instance)
    headers_enabled=True
)

# Configuration
app.config['MAX_CONTENT_LENGTH'] = 10 * 1024 * 1024  # 10MB max file size

# Initialize services
detection_service = MarkerDetectionService(get_params(os.getenv('MARKER_PRESET') or None))


@app.route('/health', methods=['GET'])
def health_check():
    """Health check endpoint"""
    return jsonify({
        'status': 'healthy',
        'service': 'marker-coverage-service',
        'opencv_version': cv2.__version__,
        'numpy_version': np.__version__
    })


def validate_detect_request(data: Dict) -> Tuple[bool, Optional[str], Optional[str]]:
    """
    Validate detect request.

    Args:
        data: Request JSON data

    Returns:
        Tuple of (is_valid, error_message, error_code)
    """
    if not isinstance(data, dict):
        return False, 'Request must be JSON object', 'INVALID_PARAMETER'

    if 'image_path' not in data:
        return False, 'image_path is required', 'MISSING_PARAMETER'

    if not isinstance(data['image_path'], str) or not data['image_path'].strip():
        return False, 'image_path must be a non-empty string', 'INVALID_PARAMETER'

    for flag in ('debug', 'include_artifacts'):
        if flag in data and not isinstance(data[flag], bool):
            return False, f'{flag} must be a boolean', 'INVALID_PARAMETER'

    return True, None, None


def _form_flag(name: str) -> bool:
    return request.form.get(name, 'false').lower() in ('1', 'true', 'yes')


@app.route('/detect', methods=['POST'])
@limiter.limit("10 per minute")  # Heavy image processing
def detect_marker():
    """
    Detect the 3x3 marker and report its coverage.

    Request (JSON):
    - image_path: Path to image (HTTP(S) URL or local path)
    - debug: Include diagnostics (default: false)
    - include_artifacts: Include base64 PNG debug artifacts (default: false)

    Request (multipart):
    - image: Image file; debug/include_artifacts as form fields

    Returns:
    - found, quad, coverage_percent, telemetry, reason_code
    - Processing time
    """
    request_id = getattr(g, 'request_id', 'unknown')

    try:
        if 'image' in request.files:
            upload = request.files['image']
            image_name = upload.filename or 'upload'
            debug = _form_flag('debug')
            include_artifacts = _form_flag('include_artifacts')
            try:
                image = decode_image(upload.read())
            except ValueError as e:
                return jsonify({
                    'success': False,
                    'error': str(e),
                    'error_code': 'IMAGE_LOAD_ERROR'
                }), 400
        else:
            data = request.get_json(silent=True)

            if not data:
                return jsonify({
                    'success': False,
                    'error': 'No JSON data or image file provided',
                    'error_code': 'MISSING_PARAMETER'
                }), 400

            is_valid, error_msg, error_code = validate_detect_request(data)
            if not is_valid:
                return jsonify({
                    'success': False,
                    'error': error_msg,
                    'error_code': error_code
                }), 400

            image_path = data['image_path']
            image_name = os.path.basename(image_path)
            debug = data.get('debug', False)
            include_artifacts = data.get('include_artifacts', False)

            try:
                image = load_image(image_path)
            except ValueError as e:
                logger.error(f'[Request {request_id}] Failed to load image: {e}')
                return jsonify({
                    'success': False,
                    'error': f'Failed to load image: {str(e)}',
                    'error_code': 'IMAGE_LOAD_ERROR'
                }), 400

        logger.info(f'[Request {request_id}] Detecting marker in {image_name}')

        options = DetectOptions(
            debug=debug,
            debug_artifacts=include_artifacts,
            label=os.path.splitext(image_name)[0]
        )
        result = detection_service.detect(image, options)

        return jsonify({
            'success': True,
            'data': result.to_dict(include_artifacts=include_artifacts)
        })

    except Exception as e:
        logger.error(f'[Request {request_id}] Error in detect_marker: {str(e)}', exc_info=True)
        return jsonify({
            'success': False,
            'error': sanitize_error_message(e),
            'error_code': 'INTERNAL_ERROR'
        }), 500


if __name__ == '__main__':
    port = int(os.getenv('PORT', 5000))
    debug = os.getenv('FLASK_DEBUG', 'False').lower() == 'true'

    logger.info(f'Starting Marker Coverage Service on port {port}')
    app.run(host='0.0.0.0', port=port, debug=debug)
