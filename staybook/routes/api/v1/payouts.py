from flask import Blueprint, jsonify, request

from staybook.services import PayoutService

api_payout_bp = Blueprint("api_payout", __name__)


@api_payout_bp.get("/<int:payout_id>")
def payout_details(payout_id):
    return jsonify(PayoutService.get_payout(payout_id).to_dict())


@api_payout_bp.patch("/<int:payout_id>/status")
def update_status(payout_id):
    payload = request.get_json(silent=True) or {}
    payout = PayoutService.update_status(payout_id, payload.get("status"), notes=payload.get("notes"))
    return jsonify({"id": payout.id, "status": payout.status})
