from flask import Blueprint, render_template, current_app, flash
from sqlalchemy.exc import SQLAlchemyError
from nailstudio.models.service import Service

main_bp = Blueprint('main', __name__)


def _active_services():
    try:
        return Service.query.filter_by(is_active=True).order_by(Service.name).all()
    except SQLAlchemyError as e:
        current_app.logger.error(f"Error fetching services: {e}")
        flash('Failed to load services. Please try again.', 'danger')
        return []


@main_bp.route('/')
def index():
    """Landing page for the studio"""
    return render_template('main/index.html', services=_active_services()[:6])


@main_bp.route('/services')
def services():
    """Page displaying all active services"""
    return render_template('main/services.html', services=_active_services())
