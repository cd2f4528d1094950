"""Local HTTP server exposing the capture service and pattern management."""

import logging
from functools import wraps
from typing import Optional

from flask import Flask, jsonify, request

from .exceptions import (
    AuthenticationError,
    ErrorKind,
    InvalidPatternError,
    PatternNotFoundError,
    StorageError,
)
from .matcher import find_matching_patterns
from .models import BrowserVisit, CaptureFailure, CaptureRequest, format_timestamp, utc_now
from .patterns import PatternStore
from .service import CaptureService
from .storage import PatternStorage

logger = logging.getLogger(__name__)

MAX_BODY_BYTES = 1024 * 1024
MAX_URL_LENGTH = 2000
MAX_TITLE_LENGTH = 1000

STATUS_BY_KIND = {
    ErrorKind.INVALID_REQUEST: 400,
    ErrorKind.INVALID_PATTERN: 400,
    ErrorKind.AUTHENTICATION_FAILED: 401,
    ErrorKind.PATTERN_NOT_FOUND: 404,
    ErrorKind.PATTERN_DISABLED: 409,
    ErrorKind.EXTRACTION_EMPTY: 422,
    ErrorKind.TRANSFORMATION_FAILED: 502,
    ErrorKind.STORAGE_FAILED: 500,
}

# Pattern JSON key -> (PatternStore.update keyword, required type)
_PATTERN_FIELDS = {
    "name": ("name", str),
    "urlPattern": ("url_pattern", str),
    "prompt": ("prompt", str),
    "enabled": ("enabled", bool),
}


def _pattern_changes(data: dict) -> dict:
    """Map a pattern JSON body to update keywords. Raises ValueError on bad types."""
    changes = {}
    for key, (field, expected) in _PATTERN_FIELDS.items():
        if key not in data:
            continue
        value = data[key]
        if not isinstance(value, expected) or (expected is str and not value):
            kind = "a non-empty string" if expected is str else "a boolean"
            raise ValueError(f"{key} must be {kind}")
        changes[field] = value
    return changes


def _allowed_origin(origin: Optional[str]) -> bool:
    if not origin:
        return False
    return origin.startswith("http://localhost") or origin.startswith("chrome-extension://")


def bearer_token() -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    return header[len("Bearer "):].strip() or None


def _failure_response(failure: CaptureFailure):
    return jsonify(failure.to_dict()), STATUS_BY_KIND.get(failure.kind, 400)


def create_app(
    service: CaptureService,
    patterns: PatternStore,
    storage: Optional[PatternStorage] = None,
) -> Flask:
    """Flask application factory.

    Pattern edits made through the API are saved through storage when given.
    """
    app = Flask(__name__)
    # Matched URLs arrive in the path and contain "//"
    app.url_map.merge_slashes = False
    app.config["MAX_CONTENT_LENGTH"] = MAX_BODY_BYTES
    app.config["components"] = {
        "service": service,
        "patterns": patterns,
        "storage": storage,
    }

    def refresh():
        if storage is not None:
            storage.refresh(patterns)

    def persist():
        if storage is not None:
            storage.save(patterns)

    def require_token(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            try:
                service.authenticate(bearer_token())
            except AuthenticationError as e:
                logger.warning("Unauthorized %s %s", request.method, request.path)
                return _failure_response(CaptureFailure.from_exception(e))
            return view(*args, **kwargs)
        return wrapper

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if _allowed_origin(origin):
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET, POST, PUT, DELETE, OPTIONS"
            response.headers["Vary"] = "Origin"
        return response

    @app.before_request
    def log_request():
        logger.debug("%s %s", request.method, request.path)

    @app.errorhandler(StorageError)
    def storage_failed(e):
        logger.error("Storage failure on %s %s: %s", request.method, request.path, e)
        return _failure_response(CaptureFailure.from_exception(e))

    # --- Routes ---

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "timestamp": format_timestamp(utc_now())})

    @app.route("/api/content-processing", methods=["POST"])
    @require_token
    def content_processing():
        try:
            capture_request = CaptureRequest.from_dict(request.get_json(silent=True))
        except ValueError as e:
            return _failure_response(CaptureFailure(error=str(e)))
        if len(capture_request.url) > MAX_URL_LENGTH or len(capture_request.title) > MAX_TITLE_LENGTH:
            return _failure_response(CaptureFailure(error="Field too long"))

        result = service.capture(capture_request, bearer_token())
        if result.success:
            return jsonify(result.to_dict()), 200
        return _failure_response(result)

    @app.route("/api/browser-history", methods=["POST"])
    @require_token
    def browser_history():
        try:
            visit = BrowserVisit.from_dict(request.get_json(silent=True))
        except ValueError as e:
            return _failure_response(CaptureFailure(error=str(e)))
        if len(visit.url) > MAX_URL_LENGTH or len(visit.title) > MAX_TITLE_LENGTH:
            return _failure_response(CaptureFailure(error="Field too long"))
        entry = service.record_visit(visit)
        return jsonify({
            "success": True,
            "entry": {"id": entry.id, "timestamp": format_timestamp(entry.timestamp)},
        }), 201

    @app.route("/api/content-patterns", methods=["GET"])
    @require_token
    def list_patterns():
        refresh()
        return jsonify({"patterns": [p.to_dict() for p in patterns.all()]})

    @app.route("/api/content-patterns", methods=["POST"])
    @require_token
    def create_pattern():
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not all(k in data for k in ("name", "urlPattern", "prompt")):
            return jsonify({"error": "name, urlPattern and prompt are required"}), 400
        try:
            fields = _pattern_changes(data)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        refresh()
        try:
            pattern = patterns.create(**fields)
        except InvalidPatternError as e:
            return jsonify({"error": str(e)}), 400
        persist()
        logger.info("Created pattern %s (%s)", pattern.id, pattern.name)
        return jsonify({"pattern": pattern.to_dict()}), 201

    @app.route("/api/content-patterns/<pattern_id>", methods=["PUT"])
    @require_token
    def update_pattern(pattern_id):
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({"error": "Request body must be a JSON object"}), 400
        try:
            changes = _pattern_changes(data)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        refresh()
        try:
            pattern = patterns.update(pattern_id, **changes)
        except PatternNotFoundError as e:
            return jsonify({"error": str(e)}), 404
        except InvalidPatternError as e:
            return jsonify({"error": str(e)}), 400
        persist()
        logger.info("Updated pattern %s", pattern_id)
        return jsonify({"pattern": pattern.to_dict()})

    @app.route("/api/content-patterns/<pattern_id>", methods=["DELETE"])
    @require_token
    def delete_pattern(pattern_id):
        refresh()
        try:
            patterns.delete(pattern_id)
        except PatternNotFoundError as e:
            return jsonify({"error": str(e)}), 404
        persist()
        logger.info("Deleted pattern %s", pattern_id)
        return jsonify({"success": True})

    @app.route("/api/content-patterns/match", methods=["GET"])
    @app.route("/api/content-patterns/match/<path:url>", methods=["GET"])
    @require_token
    def match_patterns(url=None):
        url = request.args.get("url") or url
        if not url:
            return jsonify({"error": "url is required"}), 400
        refresh()
        matches = find_matching_patterns(url, patterns.all())
        return jsonify({"patterns": [p.to_dict() for p in matches]})

    return app
