import os
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from dotenv import load_dotenv

# Load environment variables (override=True ensures .env values take precedence)
load_dotenv(override=True)

# Initialize extensions
db = SQLAlchemy()
migrate = Migrate()


def create_app(test_config=None):
    """Application factory pattern."""
    app = Flask(__name__)

    # Configuration
    app.config['SECRET_KEY'] = os.environ.get('SECRET_KEY', 'dev-secret-key-change-me')
    app.config['SQLALCHEMY_DATABASE_URI'] = os.environ.get('DATABASE_URL', 'sqlite:///dev.db')
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = False
    app.config['SESSION_COOKIE_HTTPONLY'] = True
    app.config['SESSION_COOKIE_SAMESITE'] = 'Lax'

    # Places lookup (optional - search endpoints report "not configured" without it)
    app.config['GOOGLE_PLACES_API_KEY'] = os.environ.get('GOOGLE_PLACES_API_KEY')

    # Scoring and commit tuning
    app.config['CHOICE_LOCK_TIMEOUT'] = float(os.environ.get('CHOICE_LOCK_TIMEOUT', 5))
    app.config['RECENCY_HORIZON_DAYS'] = float(os.environ.get('RECENCY_HORIZON_DAYS', 30))

    if test_config:
        app.config.update(test_config)

    # Fix for postgres:// vs postgresql:// (some providers use older postgres:// format)
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('postgres://'):
        app.config['SQLALCHEMY_DATABASE_URI'] = app.config['SQLALCHEMY_DATABASE_URI'].replace(
            'postgres://', 'postgresql://', 1
        )

    # SQLite waits on its file lock for at most the commit timeout
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite'):
        engine_options = dict(app.config.get('SQLALCHEMY_ENGINE_OPTIONS') or {})
        connect_args = dict(engine_options.get('connect_args') or {})
        connect_args.setdefault('timeout', app.config['CHOICE_LOCK_TIMEOUT'])
        connect_args.setdefault('check_same_thread', False)
        engine_options['connect_args'] = connect_args
        app.config['SQLALCHEMY_ENGINE_OPTIONS'] = engine_options

    # Initialize extensions with app
    db.init_app(app)
    migrate.init_app(app, db)

    # Register blueprints
    from dining.routes.main import main_bp
    from dining.routes.api import api_bp
    app.register_blueprint(main_bp)
    app.register_blueprint(api_bp)

    # Import models so they're known to Flask-Migrate
    from dining import models

    @app.cli.command('init-db')
    def init_db():
        """Create all tables (development only - use `flask db upgrade` in production)."""
        db.create_all()
        print('Database tables created.')

    return app
