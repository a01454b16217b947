from flask import Blueprint, jsonify, request

from staybook.services import PricingService

api_pricing_bp = Blueprint("api_pricing", __name__)


@api_pricing_bp.post("/quote")
def compute_pricing():
    payload = request.get_json(silent=True) or {}
    pricing = PricingService.compute_pricing(
        payload.get("base_price"),
        payload.get("nights"),
        payload.get("guest_count", 1),
    )
    return jsonify(pricing.to_dict())
