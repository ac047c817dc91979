# Overview: Flask API routes for sales; parses input and returns JSON responses.

from flask import Blueprint

from ..services.records_service import SALES
from .records import register_record_routes


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

register_record_routes(sales_bp, SALES, item_key="sale", list_key="sales")
