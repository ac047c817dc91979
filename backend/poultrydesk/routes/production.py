# Overview: Flask API routes for egg production records; parses input and returns JSON responses.

from flask import Blueprint

from ..services.records_service import EGG_PRODUCTION
from .records import register_record_routes


production_bp = Blueprint("production", __name__, url_prefix="/api/egg-productions")

register_record_routes(production_bp, EGG_PRODUCTION, item_key="egg_production", list_key="egg_productions")
