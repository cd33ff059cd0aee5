# Import important modules and create app package
from flask import Flask, render_template
from flask_sqlalchemy import SQLAlchemy
from flask_login import LoginManager
from flask_migrate import Migrate
from flask_wtf.csrf import CSRFProtect
from datetime import datetime
import logging

# Initialize extensions
db = SQLAlchemy()
login_manager = LoginManager()
migrate = Migrate()
csrf = CSRFProtect()


def create_app(config_object=None):
    # Initialize app
    app = Flask(__name__)

    # Configure app
    from nailstudio.config import Config, check_required_settings
    app.config.from_object(config_object or Config)
    check_required_settings(app.config)

    app.logger.setLevel(getattr(logging, str(app.config['LOG_LEVEL']).upper(), logging.INFO))

    # Initialize extensions with app
    db.init_app(app)
    login_manager.init_app(app)
    login_manager.login_view = 'auth.login'
    login_manager.login_message = 'Please log in to access this page.'
    login_manager.session_protection = 'strong'
    migrate.init_app(app, db)
    csrf.init_app(app)

    # Register blueprints
    from nailstudio.auth.routes import auth_bp
    from nailstudio.booking.routes import booking_bp
    from nailstudio.admin.routes import admin_bp
    from nailstudio.api.routes import api_bp
    from nailstudio.main.routes import main_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(api_bp)
    app.register_blueprint(main_bp)

    # Bearer-token API has no cookie session to protect
    csrf.exempt(api_bp)

    # Session holder lifecycle and identity signal wiring
    from nailstudio.auth.session import init_session_holder
    init_session_holder(app)

    from nailstudio.utils.common import format_time, format_price
    app.jinja_env.filters['time12'] = format_time
    app.jinja_env.filters['price'] = format_price

    from nailstudio.cli import register_commands
    register_commands(app)

    # Add context processor for template variables
    @app.context_processor
    def inject_now():
        return {'now': datetime.utcnow()}

    @app.errorhandler(404)
    def not_found(error):
        return render_template('errors/404.html'), 404

    # Create database tables
    if app.config.get('AUTO_CREATE_TABLES'):
        with app.app_context():
            from nailstudio import models  # noqa: F401
            db.create_all()
            app.logger.info("Database tables created")

    return app
