from flask import Flask
from flask_migrate import Migrate
from flask_login import LoginManager
from app.extensions import db
from app.config import Config
from app.middleware import setup_auth_middleware
from app.services import supabase_client
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler('app.log'),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger(__name__)

migrate = Migrate()
login_manager = LoginManager()
login_manager.login_view = 'auth.login'
login_manager.login_message = 'Please sign in to access the admin console.'


def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    supabase_client.init_app(app)

    # Setup user loader
    from app.models import Profile

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(Profile, user_id)

    # Register blueprints
    from app.blueprints import (
        admin,
        auth,
        banners,
        orders,
        pincodes,
        products,
        reviews,
    )

    # Blueprints use absolute routes.
    app.register_blueprint(auth.bp, url_prefix='/')
    app.register_blueprint(admin.bp, url_prefix='/')
    app.register_blueprint(products.bp, url_prefix='/')
    app.register_blueprint(banners.bp, url_prefix='/')
    app.register_blueprint(orders.bp, url_prefix='/')
    app.register_blueprint(reviews.bp, url_prefix='/')
    app.register_blueprint(pincodes.bp, url_prefix='/')

    # Setup authentication middleware (site-wide login protection)
    setup_auth_middleware(app)

    # Note: the schema is owned by the hosted database.
    # Use 'flask db upgrade' only against a local database.

    logger.info("Admin console initialized")
    return app
