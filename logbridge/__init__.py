import os
import logging
from logging.handlers import RotatingFileHandler

from flask import Flask, jsonify
from pymongo.errors import PyMongoError
from werkzeug.exceptions import HTTPException

from config import Config
from .errors import GatewayError
from .extensions import mongo, init_extensions, build_services
from .middleware import set_user_context

# Initialize logging
logger = logging.getLogger(__name__)


def setup_logging(app):
    """Configure application logging"""
    level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO'), logging.INFO)
    logging.getLogger('logbridge').setLevel(level)

    if not app.debug and not app.testing:
        log_dir = app.config['LOG_DIR']
        if not os.path.exists(log_dir):
            os.makedirs(log_dir)

        formatter = logging.Formatter(
            '%(asctime)s %(levelname)s: %(message)s [in %(pathname)s:%(lineno)d]'
        )

        # Main application log
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, 'logbridge.log'),
            maxBytes=10240000,
            backupCount=10
        )
        file_handler.setFormatter(formatter)
        file_handler.setLevel(logging.INFO)
        app.logger.addHandler(file_handler)
        logging.getLogger('logbridge').addHandler(file_handler)

        # Dedicated error log
        error_handler = RotatingFileHandler(
            os.path.join(log_dir, 'error.log'),
            maxBytes=10240000,
            backupCount=5
        )
        error_handler.setFormatter(formatter)
        error_handler.setLevel(logging.ERROR)
        app.logger.addHandler(error_handler)
        logging.getLogger('logbridge').addHandler(error_handler)

        # Audit trail
        audit_handler = RotatingFileHandler(
            os.path.join(log_dir, 'audit.log'),
            maxBytes=10240000,
            backupCount=10
        )
        audit_handler.setFormatter(logging.Formatter('%(asctime)s %(message)s'))
        logging.getLogger('logbridge.audit').addHandler(audit_handler)

        app.logger.setLevel(logging.INFO)
        app.logger.info('logbridge startup')


def init_mongodb(app):
    """Create MongoDB indexes"""
    with app.app_context():
        try:
            mongo.db.inputs.create_index([("id", 1)], unique=True)
            mongo.db.inputs.create_index([("configuration.stream_name", 1), ("configuration.region", 1)])
            mongo.db.users.create_index([("api_token_hash", 1)], unique=True)
            mongo.db.users.create_index([("username", 1)], unique=True)
            mongo.db.audit_logs.create_index([("timestamp", -1)])
        except PyMongoError as e:
            logger.error(f"Error creating/updating indexes: {str(e)}")


def register_error_handlers(app):
    """Render every failure as {"error": {"type", "message"}}"""
    @app.errorhandler(GatewayError)
    def gateway_error(error):
        app.logger.warning('%s: %s', error.kind, error.message)
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error):
        body = {"error": {"type": error.name.replace(' ', ''), "message": error.description}}
        return jsonify(body), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        app.logger.error('Unhandled error: %s', str(error), exc_info=error)
        body = {"error": {"type": "InternalError", "message": "An internal error occurred."}}
        return jsonify(body), 500


def create_app(config_class=Config, services=None):
    """Create and configure the Flask application"""
    app = Flask(__name__)

    # Load configuration
    app.config.from_object(config_class)

    # Setup logging first
    setup_logging(app)
    logger.info("Starting application initialization")

    try:
        if init_extensions(app):
            logger.info("Initializing MongoDB")
            init_mongodb(app)
        elif not app.testing:
            logger.warning("MONGO_URI is not set: no API users can authenticate and every route will answer 401")

        app.extensions['logbridge'] = services or build_services(app)

        logger.info("Registering blueprints")
        from logbridge.routes import aws
        app.register_blueprint(aws.bp, url_prefix=app.config['API_URL_PREFIX'])

        register_error_handlers(app)

        # Add middleware
        app.before_request(set_user_context)

        logger.info("Application initialization completed successfully")
        return app

    except Exception as e:
        logger.error(f"Error during application initialization: {str(e)}", exc_info=True)
        raise
