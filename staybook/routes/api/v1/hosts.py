from flask import Blueprint, current_app, jsonify, request

from staybook.extensions import limiter
from staybook.services import BalanceService, PayoutService

api_host_bp = Blueprint("api_host", __name__)


def _payout_rate_limit():
    return current_app.config["PAYOUT_RATE_LIMIT"]


@api_host_bp.get("/<int:host_id>/balance")
def payout_balance(host_id):
    balance = BalanceService.compute_balance(host_id)
    return jsonify({"host_id": host_id, "balance": balance.to_dict()})


@api_host_bp.get("/<int:host_id>/payouts")
def list_payouts(host_id):
    statuses = [item for item in request.args.get("status", "").split(",") if item.strip()]
    payouts = PayoutService.list_for_host(host_id, statuses=statuses)
    return jsonify([payout.to_dict() for payout in payouts])


@api_host_bp.post("/<int:host_id>/payouts")
@limiter.limit(_payout_rate_limit)
def create_payout(host_id):
    payload = request.get_json(silent=True) or {}
    payout = PayoutService.create_payout_request(host_id, payload)
    return jsonify(payout.to_dict()), 201
