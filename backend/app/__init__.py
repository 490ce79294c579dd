"""Flask application factory."""
from flask import Flask, jsonify
from flask_cors import CORS
from app.extensions import db, jwt
from app.config import Config
from app.services import encryption
from app.services.encryption import SecretCodecError


def create_app(config_class=Config):
    """Create and configure Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    jwt.init_app(app)
    encryption.init_app(app)

    # CORS for REST API
    CORS(app, resources={
        r"/api/*": {
            "origins": app.config['FRONTEND_URL'],
            "supports_credentials": True
        }
    })

    # Create all database tables on startup
    with app.app_context():
        # Import all models so SQLAlchemy knows about them
        from app.models import User, AdminCredential
        db.create_all()
        app.logger.info("Database tables created/verified")

    @app.errorhandler(SecretCodecError)
    def handle_codec_error(e):
        # Log the specific failure, show the client a generic one
        app.logger.error(f"{type(e).__name__}: {e}")
        return jsonify({'error': 'Credential operation failed'}), 500

    # Register blueprints
    from app.routes import auth, credentials
    app.register_blueprint(auth.bp)
    app.register_blueprint(credentials.bp)

    from app.cli import register_commands
    register_commands(app)

    return app
