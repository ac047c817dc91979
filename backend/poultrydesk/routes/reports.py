# Overview: Flask API routes for reports; generate, list, fetch, download and delete PDFs.

from flask import Blueprint, request, jsonify, g, current_app, send_file

from ..decorators import require_auth
from ..services import report_service
from ..services.report_service import ReportError, ReportRenderError
from ..validation import ValidationError, NotFoundError


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.post("/<kind>")
@require_auth
def generate_report_route(kind: str):
    """
    Generate a PDF report.

    Body: {"start": ISO-8601, "end": ISO-8601}  (half-open range)
    Kinds: sales, expenses, egg_production, inventory, flocks, financial
    """
    data = request.get_json(silent=True) or {}
    try:
        report = report_service.generate_report(kind, g.user_id, data.get("start"), data.get("end"))
        return jsonify({"report": report.to_dict()}), 201
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ReportRenderError as e:
        return jsonify({"error": str(e)}), 502
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to generate %s report", kind)
        return jsonify({"error": "Internal server error"}), 500


@reports_bp.get("/")
@require_auth
def list_reports_route():
    reports = report_service.list_reports(g.user_id, kind=request.args.get("type"))
    return jsonify({"reports": [r.to_dict() for r in reports]}), 200


@reports_bp.get("/<int:report_id>")
@require_auth
def get_report_route(report_id: int):
    try:
        report = report_service.get_report(g.user_id, report_id)
        return jsonify({"report": report.to_dict()}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404


@reports_bp.get("/<int:report_id>/download")
@require_auth
def download_report_route(report_id: int):
    try:
        report = report_service.report_file(g.user_id, report_id)
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    return send_file(
        report.file_path,
        mimetype="application/pdf",
        as_attachment=True,
        download_name=report.name,
    )


@reports_bp.delete("/<int:report_id>")
@require_auth
def delete_report_route(report_id: int):
    try:
        report_service.delete_report(g.user_id, report_id)
        return jsonify({"deleted": True, "id": report_id}), 200
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except Exception:
        current_app.logger.exception("Failed to delete report")
        return jsonify({"error": "Internal server error"}), 500
