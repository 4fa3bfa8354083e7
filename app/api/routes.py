"""
API routes for phase scheduling, customer schedules, delays and holidays.
"""
from flask import current_app, jsonify, request
from app.api import api_bp
from app.models import db
from app.scheduling.exceptions import InvalidTemplateError, StorageError, TemplateNotFoundError
from app.scheduling.factory import build_services
from app.logging_config import get_logger

logger = get_logger(__name__)

_TRUE_STRINGS = {"true", "1", "yes"}
_FALSE_STRINGS = {"false", "0", "no", ""}


def _services():
    return build_services(current_app.config)


def _as_bool(value, field_name):
    """Accept JSON booleans or the strings true/false; anything else is a 400."""
    if value is None or isinstance(value, bool):
        return bool(value)
    if isinstance(value, str) and value.strip().lower() in _TRUE_STRINGS:
        return True
    if isinstance(value, str) and value.strip().lower() in _FALSE_STRINGS:
        return False
    raise ValueError(f"{field_name} must be true or false")


def _error_response(exc, message):
    """Translate a scheduling failure into a JSON error response."""
    if isinstance(exc, ValueError):
        return jsonify({"error": str(exc)}), 400
    if isinstance(exc, TemplateNotFoundError):
        return jsonify({"error": str(exc)}), 404
    if isinstance(exc, InvalidTemplateError):
        return jsonify({"error": str(exc), "item_id": exc.item_id}), 422

    db.session.rollback()
    logger.error(message, error=str(exc), storage_error=isinstance(exc, StorageError), exc_info=True)
    return jsonify({
        "error": message,
        "details": str(exc)
    }), 500


@api_bp.route("/projects/<int:project_id>/phases/from-template", methods=["POST"])
def create_phases_from_template(project_id):
    """Generate dated phases and FS dependencies for a project from a phase template."""
    try:
        data = request.get_json(silent=True) or {}
        result = _services().phases.create_phases_from_template(
            project_id,
            data.get('project_start_date'),
            template_name=data.get('template_name'),
            publish_to_customer=_as_bool(data.get('publish_to_customer'), 'publish_to_customer'),
        )
        return jsonify({"success": True, "project_id": project_id, **result}), 201
    except Exception as exc:
        return _error_response(exc, "Failed to create phases from template")


@api_bp.route("/projects/<int:project_id>/phases/reconcile", methods=["POST"])
def reconcile_phase_dependencies(project_id):
    """Recreate template dependencies missing after a partial schedule generation."""
    try:
        data = request.get_json(silent=True) or {}
        created = _services().phases.reconcile_dependencies(project_id, template_name=data.get('template_name'))
        return jsonify({"success": True, "project_id": project_id, "dependencies": created}), 200
    except Exception as exc:
        return _error_response(exc, "Failed to reconcile phase dependencies")


@api_bp.route("/projects/<int:project_id>/schedule/sync", methods=["POST"])
def sync_project_schedule(project_id):
    """Republish the customer-facing schedule from published phases."""
    try:
        result = _services().sync.sync_project_schedule(project_id)
        return jsonify({"success": True, **result}), 200
    except Exception as exc:
        return _error_response(exc, "Failed to sync project schedule")


@api_bp.route("/projects/<int:project_id>/schedule", methods=["GET"])
def get_project_schedule(project_id):
    try:
        schedule = _services().sync.get_project_schedule(project_id)
        if schedule is None:
            return jsonify({"error": "Schedule not found"}), 404
        return jsonify(schedule), 200
    except Exception as exc:
        return _error_response(exc, "Failed to get project schedule")


@api_bp.route("/projects/<int:project_id>/schedule/shift", methods=["POST"])
def shift_project_schedule(project_id):
    """Shift every phase of a project by shift_days calendar days."""
    try:
        data = request.get_json(silent=True) or {}
        if data.get('shift_days') is None:
            return jsonify({"error": "shift_days is required"}), 400
        result = _services().delays.shift_project_schedule(project_id, data.get('shift_days'))
        return jsonify({"success": True, **result}), 200
    except Exception as exc:
        return _error_response(exc, "Failed to shift project schedule")


@api_bp.route("/exceptions/global", methods=["POST"])
def apply_global_exception():
    """Record a global delay (e.g. weather) and shift affected phases in every project."""
    try:
        data = request.get_json(silent=True) or {}
        for field in ('exception_date', 'reason', 'delay_days'):
            if data.get(field) in (None, ''):
                return jsonify({"error": f"{field} is required"}), 400

        result = _services().delays.apply_global_delay(
            data['exception_date'],
            data['reason'],
            data['delay_days'],
            exception_type=data.get('exception_type') or current_app.config.get("DEFAULT_EXCEPTION_TYPE", "weather"),
        )
        return jsonify({"success": True, **result}), 201
    except Exception as exc:
        return _error_response(exc, "Failed to apply global exception")


@api_bp.route("/exceptions/weather", methods=["GET"])
def list_weather_days():
    """Weather days between ?start= and ?end= (inclusive), keyed by date."""
    try:
        weather_days = _services().delays.list_weather_days(
            start=request.args.get('start'),
            end=request.args.get('end'),
        )
        return jsonify({"weather_days": weather_days}), 200
    except Exception as exc:
        return _error_response(exc, "Failed to load weather days")


@api_bp.route("/holidays/seed", methods=["POST"])
def seed_holidays():
    """Seed default holidays for the requested years (best-effort)."""
    try:
        data = request.get_json(silent=True) or {}
        years = data.get('years')
        if not years or not isinstance(years, list):
            return jsonify({"error": "years must be a non-empty list"}), 400
        inserted = _services().holidays.seed_default_holidays(years)
        return jsonify({"success": True, "inserted": inserted}), 200
    except Exception as exc:
        return _error_response(exc, "Failed to seed holidays")


@api_bp.route("/holidays", methods=["GET"])
def list_holidays():
    try:
        year = request.args.get('year', type=int)
        holidays = _services().holidays.list_holidays(year)
        return jsonify({"holidays": holidays, "total_count": len(holidays)}), 200
    except Exception as exc:
        return _error_response(exc, "Failed to list holidays")
