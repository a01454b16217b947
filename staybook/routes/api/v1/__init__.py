from flask import Blueprint

from staybook.routes.api.v1.hosts import api_host_bp
from staybook.routes.api.v1.listings import api_listing_bp
from staybook.routes.api.v1.payouts import api_payout_bp
from staybook.routes.api.v1.pricing import api_pricing_bp
from staybook.routes.api.v1.reservations import api_reservation_bp

api_v1_bp = Blueprint("api_v1", __name__)
api_v1_bp.register_blueprint(api_listing_bp, url_prefix="/listings")
api_v1_bp.register_blueprint(api_pricing_bp, url_prefix="/pricing")
api_v1_bp.register_blueprint(api_reservation_bp, url_prefix="/reservations")
api_v1_bp.register_blueprint(api_host_bp, url_prefix="/hosts")
api_v1_bp.register_blueprint(api_payout_bp, url_prefix="/payouts")
