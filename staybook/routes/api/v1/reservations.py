from flask import Blueprint, current_app, jsonify, request

from staybook.extensions import limiter
from staybook.services import ReservationService

api_reservation_bp = Blueprint("api_reservation", __name__)


def _reservation_rate_limit():
    return current_app.config["RESERVATION_RATE_LIMIT"]


@api_reservation_bp.post("")
@limiter.limit(_reservation_rate_limit)
def create_reservation():
    payload = request.get_json(silent=True) or {}
    reservation = ReservationService.create_reservation(
        listing_id=payload.get("listing_id"),
        guest_id=payload.get("guest_id"),
        check_in=payload.get("check_in"),
        check_out=payload.get("check_out"),
        guest_count=payload.get("guest_count", 1),
        special_requests=payload.get("special_requests"),
    )
    return jsonify(reservation.to_dict()), 201


@api_reservation_bp.get("/<int:reservation_id>")
def reservation_details(reservation_id):
    reservation = ReservationService.get_reservation(reservation_id)
    data = reservation.to_dict()
    data["history"] = [event.to_dict() for event in ReservationService.list_events(reservation_id)]
    return jsonify(data)


@api_reservation_bp.get("/confirmation/<string:confirmation_number>")
def reservation_by_confirmation(confirmation_number):
    reservation = ReservationService.get_by_confirmation_number(confirmation_number)
    return jsonify(reservation.to_dict())


@api_reservation_bp.patch("/<int:reservation_id>/status")
def update_status(reservation_id):
    payload = request.get_json(silent=True) or {}
    reservation = ReservationService.transition(
        reservation_id,
        payload.get("action") or payload.get("status"),
        expected_status=payload.get("expected_status"),
        notes=payload.get("notes"),
    )
    return jsonify({"id": reservation.id, "status": reservation.status})


@api_reservation_bp.patch("/<int:reservation_id>/dates")
def reschedule(reservation_id):
    payload = request.get_json(silent=True) or {}
    reservation = ReservationService.reschedule(reservation_id, payload.get("check_in"), payload.get("check_out"))
    return jsonify(reservation.to_dict())


@api_reservation_bp.get("/<int:reservation_id>/cancellation-quote")
def cancellation_quote(reservation_id):
    return jsonify(ReservationService.quote_cancellation(reservation_id).to_dict())


@api_reservation_bp.post("/<int:reservation_id>/cancel")
def cancel_reservation(reservation_id):
    payload = request.get_json(silent=True) or {}
    quote = ReservationService.cancel_reservation(
        reservation_id,
        reason=payload.get("reason"),
        expected_status=payload.get("expected_status"),
    )
    return jsonify({"id": reservation_id, "status": "cancelled", "quote": quote.to_dict()})


@api_reservation_bp.patch("/<int:reservation_id>/refund")
def update_refund(reservation_id):
    payload = request.get_json(silent=True) or {}
    reservation = ReservationService.update_refund_status(
        reservation_id, payload.get("status"), notes=payload.get("notes")
    )
    return jsonify({"id": reservation.id, "refund_status": reservation.refund_status})
