# Overview: Flask API routes for expenses; parses input and returns JSON responses.

from flask import Blueprint

from ..services.records_service import EXPENSES
from .records import register_record_routes


expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")

register_record_routes(expenses_bp, EXPENSES, item_key="expense", list_key="expenses")
