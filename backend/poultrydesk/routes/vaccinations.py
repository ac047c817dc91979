# Overview: Flask API routes for vaccinations; shared record CRUD plus on-demand reminders.

from flask import Blueprint, jsonify, g, request

from ..decorators import require_auth
from ..services.records_service import VACCINATIONS
from ..services.vaccination_service import send_due_reminders
from .records import register_record_routes


vaccinations_bp = Blueprint("vaccinations", __name__, url_prefix="/api/vaccinations")

register_record_routes(vaccinations_bp, VACCINATIONS, item_key="vaccination", list_key="vaccinations")


@vaccinations_bp.post("/reminders")
@require_auth
def send_reminders_route():
    """Send reminders for the caller's doses due within ?days= (default from config)."""
    sent = send_due_reminders(lead_days=request.args.get("days", type=int), user_id=g.user_id)
    return jsonify({"sent": sent}), 200
