#!/usr/bin/env python3
"""
Photo Editor API Server
HTTP host shell around SessionController: one endpoint per user gesture
(load, switch module, apply, reset, export) plus image/preview serving.
"""

import os
import logging
import uuid
from dataclasses import asdict, replace
from io import BytesIO
from typing import Any, Dict
from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from werkzeug.utils import secure_filename

# --- Centralized Logging Configuration ---
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
    datefmt='%H:%M:%S'
)

from .errors import EditorError, ExportFailure, NoImageLoaded
from .models.module_state import ModuleKind
from .models.effect_parameters import BackgroundRemovalParameters, parse_hex_color, to_hex_color
from .services.image_service import format_file_size
from .services.session_controller import SessionController

app = Flask(__name__)
CORS(app)  # Enable CORS for frontend communication

# Configuration
MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "20")) * 1024 * 1024
app.config['MAX_CONTENT_LENGTH'] = MAX_CONTENT_LENGTH

logger = logging.getLogger(__name__)

# Session storage: session_id → SessionController
sessions: Dict[str, SessionController] = {}


def get_or_create_session(session_id: str = None) -> tuple:
    """Get existing session or create new one."""
    if session_id is None:
        session_id = str(uuid.uuid4())

    if session_id not in sessions:
        sessions[session_id] = SessionController()

    return session_id, sessions[session_id]


def lookup_session(session_id: str):
    return sessions.get(session_id) if session_id else None


def error_response(err: Exception):
    """Map editor errors onto HTTP status codes."""
    if isinstance(err, NoImageLoaded):
        status = 409
    elif isinstance(err, ExportFailure):
        status = 500
    else:
        status = 400
    return jsonify({'success': False, 'error': type(err).__name__, 'message': str(err)}), status


def parse_parameters(controller: SessionController, kind: ModuleKind, payload: Dict[str, Any]):
    """
    Merge request values over the module's defaults.
    Key colour arrives as '#RRGGBB'; invalid strings become white.
    """
    defaults = controller.default_parameters(kind)
    fields = {name: payload[name] for name in asdict(defaults) if name in payload}
    if kind is ModuleKind.BACKGROUND and 'key_color' in fields:
        fields['key_color'] = parse_hex_color(fields['key_color'])
    for name, value in fields.items():
        if name != 'key_color':
            fields[name] = int(value)
    return replace(defaults, **fields)


def serialize_parameters(params) -> Dict[str, Any]:
    data = asdict(params)
    if isinstance(params, BackgroundRemovalParameters):
        data['key_color'] = to_hex_color(params.key_color)
    return data


def png_response(controller: SessionController, buffer, **kwargs):
    data = controller.image_service.encode_png(buffer)
    return send_file(BytesIO(data), mimetype='image/png', **kwargs)


@app.route('/api/load-image', methods=['POST'])
def load_image():
    """Load an uploaded image into a (new or existing) session."""
    try:
        if 'image' not in request.files:
            return jsonify({'success': False, 'message': 'No image provided'}), 400

        file = request.files['image']
        if file.filename == '':
            return jsonify({'success': False, 'message': 'No file selected'}), 400

        session_id, controller = get_or_create_session(request.form.get('session_id'))
        filename = secure_filename(file.filename) or file.filename

        info = controller.load_image(file.read(), filename)
        logger.info(f"Session {session_id}: loaded {filename}")

        return jsonify({
            'success': True,
            'session_id': session_id,
            'width': info.width,
            'height': info.height,
            'original_width': info.original_width,
            'original_height': info.original_height,
            'file_size': format_file_size(info.file_size),
            'info': info.label,
            'message': f'Loaded {filename}'
        })

    except EditorError as e:
        logger.error(f"Image loading error: {e}")
        return error_response(e)


@app.route('/api/switch-module', methods=['POST'])
def switch_module():
    payload = request.get_json(silent=True) or {}
    controller = lookup_session(payload.get('session_id'))
    if controller is None:
        return jsonify({'success': False, 'message': 'Invalid session'}), 404

    try:
        target = ModuleKind(payload.get('module', 'preview'))
    except ValueError:
        return jsonify({'success': False, 'message': f"Unknown module: {payload.get('module')}"}), 400

    switched = controller.switch_module(target)
    return jsonify({
        'success': switched,
        'active_module': controller.active_module.value,
        'state': controller.state.value,
        'message': 'Switched' if switched else 'Load an image first'
    }), (200 if switched else 409)


@app.route('/api/apply', methods=['POST'])
def apply_effect():
    """Apply one module's effect and propagate it to the canonical image."""
    payload = request.get_json(silent=True) or {}
    controller = lookup_session(payload.get('session_id'))
    if controller is None:
        return jsonify({'success': False, 'message': 'Invalid session'}), 404

    try:
        kind = ModuleKind(payload.get('module'))
        params = parse_parameters(controller, kind, payload.get('parameters') or {})
        result = controller.apply(kind, params)
    except EditorError as e:
        logger.error(f"Apply error: {e}")
        return error_response(e)
    except (ValueError, TypeError) as e:
        logger.error(f"Bad apply request: {e}")
        return jsonify({'success': False, 'message': str(e)}), 400

    body = {
        'success': True,
        'module': kind.value,
        'width': result.width,
        'height': result.height,
        'parameters': serialize_parameters(params),
    }
    if kind is ModuleKind.RESIZE and controller.last_resize is not None:
        original, estimated = controller.last_resize.size_comparison
        body['original_size'] = original
        body['estimated_size'] = estimated
        body['estimated_bytes'] = controller.last_resize.estimated_bytes
    return jsonify(body)


@app.route('/api/reset', methods=['POST'])
def reset_module():
    payload = request.get_json(silent=True) or {}
    controller = lookup_session(payload.get('session_id'))
    if controller is None:
        return jsonify({'success': False, 'message': 'Invalid session'}), 404

    try:
        kind = ModuleKind(payload.get('module'))
        defaults = controller.reset(kind)
    except EditorError as e:
        return error_response(e)
    except ValueError as e:
        return jsonify({'success': False, 'message': str(e)}), 400

    return jsonify({'success': True, 'module': kind.value, 'defaults': serialize_parameters(defaults)})


@app.route('/api/pick-color', methods=['POST'])
def pick_color():
    """Key colour under a click in the background module's before view."""
    payload = request.get_json(silent=True) or {}
    controller = lookup_session(payload.get('session_id'))
    if controller is None:
        return jsonify({'success': False, 'message': 'Invalid session'}), 404

    try:
        rgb = controller.pick_key_color(int(payload.get('x', -1)), int(payload.get('y', -1)))
    except EditorError as e:
        return error_response(e)
    except (TypeError, ValueError):
        return jsonify({'success': False, 'message': 'x and y must be integers'}), 400
    return jsonify({'success': True, 'key_color': to_hex_color(rgb)})


@app.route('/api/image/<session_id>/<which>')
def serve_image(session_id, which):
    """
    Serve a buffer as PNG: 'canonical', or '<module>-before' / '<module>-after'.
    """
    controller = lookup_session(session_id)
    if controller is None:
        return jsonify({'error': 'Session not found'}), 404

    try:
        if which == 'canonical':
            return png_response(controller, controller.canonical_image)

        module, _, side = which.partition('-')
        if side not in ('before', 'after'):
            return jsonify({'error': f'Unknown image: {which}'}), 404
        before, after = controller.module_buffers(ModuleKind(module))
        return png_response(controller, before if side == 'before' else after)
    except EditorError as e:
        return error_response(e)
    except (KeyError, ValueError):
        return jsonify({'error': f'Image not available: {which}'}), 404


@app.route('/api/export/<session_id>')
def export_image(session_id):
    controller = lookup_session(session_id)
    if controller is None:
        return jsonify({'error': 'Session not found'}), 404

    try:
        exported = controller.export_current()
    except EditorError as e:
        logger.error(f"Export error: {e}")
        return error_response(e)

    return send_file(BytesIO(exported.data), mimetype=exported.mimetype,
                     as_attachment=True, download_name=exported.filename)


@app.route('/api/session/<session_id>')
def session_info(session_id):
    controller = lookup_session(session_id)
    if controller is None:
        return jsonify({'error': 'Session not found'}), 404

    info = controller.info
    return jsonify({
        'session_id': session_id,
        'state': controller.state.value,
        'active_module': controller.active_module.value,
        'info': info.label if info else None,
        'history': list(controller.history),
    })


@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'message': 'Photo Editor API is running',
        'active_sessions': len(sessions)
    })


@app.route('/api/clear-session', methods=['POST'])
def clear_session():
    """Clear a session and free memory."""
    session_id = (request.get_json(silent=True) or {}).get('session_id')
    if session_id and session_id in sessions:
        del sessions[session_id]
        return jsonify({'success': True, 'message': 'Session cleared'})
    return jsonify({'success': False, 'message': 'Session not found'}), 404


@app.errorhandler(413)
def too_large(e):
    """Handle file too large error."""
    return jsonify({'error': f'File too large. Maximum size is {MAX_CONTENT_LENGTH // (1024 * 1024)}MB.'}), 413


@app.errorhandler(500)
def internal_error(e):
    """Handle internal server error."""
    logger.error(f"Internal server error: {e}")
    return jsonify({'error': 'Internal server error'}), 500


def main():
    host = os.getenv("API_HOST", "127.0.0.1")
    port = int(os.getenv("API_PORT", "5000"))
    logger.info(f"Starting Photo Editor API on {host}:{port} (max upload {MAX_CONTENT_LENGTH // (1024 * 1024)}MB)")
    app.run(host=host, port=port, debug=False)


if __name__ == '__main__':
    main()
