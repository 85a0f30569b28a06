from dotenv import load_dotenv
import os

# Load environment variables from .env file
load_dotenv()

from flask import Flask, request, jsonify, g, current_app
import uuid
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.exceptions import HTTPException as WerkzeugHTTPException # Renamed to avoid conflict
from tropicana_be.exceptions import AppException
from tropicana_be.error_codes import ErrorCodes
import logging
from pythonjsonlogger import jsonlogger
from marshmallow import ValidationError
from http import HTTPStatus

from .config import Config
from .extensions import limiter
from .routes.slots import slots_bp
from .services.slot_engine import SlotEngine
from .services.autospin_scheduler import AutoSpinScheduler
from .services.websocket_manager import WebSocketManager
from .utils.audit_logger import audit_spin_outcome


# Custom Logging Filter for Request ID
class RequestIdFilter(logging.Filter):
    def filter(self, record):
        try:
            record.request_id = g.get('request_id', 'N/A')
        except RuntimeError:
            # Autospin worker thread: no app context
            record.request_id = 'N/A'
        return True


def configure_logging(app):
    """JSON logs in production, plain logs in debug mode."""
    level = getattr(logging, app.config.get('LOG_LEVEL', 'INFO'), logging.INFO)
    if not app.debug:
        handler = logging.StreamHandler()
        formatter = jsonlogger.JsonFormatter(
            '%(asctime)s %(levelname)s %(request_id)s %(module)s %(funcName)s %(lineno)d %(message)s'
        )
        handler.setFormatter(formatter)
        handler.addFilter(RequestIdFilter())
        # Engine, scheduler and app.logger ('tropicana_be.app') all propagate here
        package_logger = logging.getLogger('tropicana_be')
        package_logger.handlers.clear()
        package_logger.addHandler(handler)
        package_logger.setLevel(level)
        app.logger.handlers.clear()
        app.logger.setLevel(level)
    else:
        # Basic logging for debug mode if not already configured
        if not app.logger.handlers:
            logging.basicConfig(level=logging.DEBUG)


def create_app(config_class=Config):
    """Application factory: wires the slot engine, autospin scheduler and socket layer."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    configure_logging(app)

    # --- CORS Setup ---
    allowed_origins = []

    # Development origins
    if app.debug:
        allowed_origins.extend([
            "http://localhost:8080",
            "http://127.0.0.1:8080",
            "http://localhost:5173",
            "http://127.0.0.1:5173"
        ])

    if app.config.get('CORS_ORIGINS_LIST'):
        allowed_origins.extend(app.config['CORS_ORIGINS_LIST'])

    if allowed_origins:
        CORS(app,
             origins=allowed_origins,
             methods=['GET', 'POST', 'OPTIONS'],
             allow_headers=['Content-Type'],
             expose_headers=['X-RateLimit-Limit', 'X-RateLimit-Remaining'],
             max_age=86400)
        app.logger.info(f"CORS configured for origins: {allowed_origins}")
    else:
        app.logger.warning("No CORS origins configured - API will reject cross-origin requests")

    if app.config.get("TESTING"):
        app.config['RATELIMIT_ENABLED'] = False
        app.config['RATELIMIT_DEFAULT_LIMITS_ENABLED'] = False
    else:
        app.config.setdefault('RATELIMIT_ENABLED', True)
        app.config.setdefault('RATELIMIT_DEFAULT_LIMITS', "2000 per day;500 per hour")

    limiter.init_app(app) # Rely entirely on app.config values set above

    # --- Game services ---
    engine = SlotEngine.from_config(app.config)
    engine.add_listener(audit_spin_outcome)
    scheduler = AutoSpinScheduler(
        engine,
        delay_seconds=app.config.get('AUTOSPIN_DELAY_SECONDS', 1.0),
        max_count=app.config.get('AUTOSPIN_MAX_COUNT', 100),
    )
    app.slot_engine = engine
    app.autospin_scheduler = scheduler

    socketio = SocketIO(app,
                        cors_allowed_origins=allowed_origins or None,
                        async_mode='threading',
                        logger=False,
                        engineio_logger=False)
    app.socketio = socketio
    app.websocket_manager = WebSocketManager(app, socketio)

    # --- Request ID Middleware ---
    @app.before_request
    def assign_request_id():
        g.request_id = request.headers.get('X-Request-ID') or str(uuid.uuid4())

    def error_response(request_id, error_code, status_message, details=None, action_button=None):
        return jsonify({
            'request_id': request_id,
            'status': False,
            'error_code': error_code,
            'status_message': status_message,
            'details': details if details is not None else {},
            'action_button': action_button
        })

    @app.errorhandler(ValidationError)
    def handle_validation_error(e):
        request_id = g.get('request_id', 'N/A')
        current_app.logger.warning(
            f"Request ID: {request_id} - Validation error: {e.messages} - Error Code: {ErrorCodes.VALIDATION_ERROR}"
        )
        return error_response(
            request_id, ErrorCodes.VALIDATION_ERROR, 'Input validation failed.', {'errors': e.messages}
        ), HTTPStatus.UNPROCESSABLE_ENTITY

    @app.errorhandler(WerkzeugHTTPException)
    def handle_werkzeug_http_exception(e):
        request_id = g.get('request_id', 'N/A')
        error_code = ErrorCodes.GENERIC_ERROR # Default
        if e.code == 404:
            error_code = ErrorCodes.NOT_FOUND
        elif e.code == 405:
            error_code = ErrorCodes.METHOD_NOT_ALLOWED
        elif e.code == 429:
            error_code = ErrorCodes.RATE_LIMITED
        elif e.code >= 500:
            error_code = ErrorCodes.INTERNAL_SERVER_ERROR

        current_app.logger.warning(
            f"Request ID: {request_id} - Werkzeug HTTPException: {e.code} - {e.name}: {e.description} - Error Code: {error_code}"
        )
        return error_response(
            request_id, error_code, e.name, {'path': request.path, 'description': e.description}
        ), e.code

    # --- Global Error Handler (catch-all for general exceptions) ---
    @app.errorhandler(Exception)
    def handle_global_exception(e):
        request_id = g.get('request_id', 'N/A')

        if isinstance(e, AppException):
            log = current_app.logger.error if e.status_code >= 500 else current_app.logger.warning
            log(
                f"Request ID: {request_id} - AppException: {e.error_code} - {e.status_message} - Details: {e.details}",
                exc_info=True if e.status_code >= 500 else False # Log stack trace for server errors
            )
            return error_response(
                request_id, e.error_code, e.status_message, e.details, e.action_button
            ), e.status_code

        if isinstance(e, WerkzeugHTTPException):
            return handle_werkzeug_http_exception(e)

        current_app.logger.critical(
            f"Request ID: {request_id} - Unhandled Critical Exception. Error Code: {ErrorCodes.INTERNAL_SERVER_ERROR}",
            exc_info=True
        )
        return error_response(
            request_id,
            ErrorCodes.INTERNAL_SERVER_ERROR,
            'An unexpected internal server error occurred. Please try again later.'
        ), HTTPStatus.INTERNAL_SERVER_ERROR

    @app.errorhandler(404) # Catches werkzeug.exceptions.NotFound
    def handle_flask_not_found(e):
        request_id = g.get('request_id', 'N/A')
        current_app.logger.warning(
            f"Request ID: {request_id} - HTTP 404 Not Found: {request.url} - Error Code: {ErrorCodes.NOT_FOUND}"
        )
        return error_response(
            request_id, ErrorCodes.NOT_FOUND, 'The requested resource was not found.', {'path': request.path}
        ), HTTPStatus.NOT_FOUND

    # --- Response Security Headers ---
    @app.after_request
    def add_security_headers(response):
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-Request-ID'] = g.get('request_id', 'N/A')

        default_csp = "default-src 'self'; object-src 'none'; frame-ancestors 'none'; base-uri 'self';"
        response.headers['Content-Security-Policy'] = os.getenv('CONTENT_SECURITY_POLICY', default_csp)

        if request.is_secure and not app.debug:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
        return response

    # Register Blueprints
    app.register_blueprint(slots_bp)

    log_production_warnings(app)

    return app, socketio


def log_production_warnings(app):
    if not app.debug and not app.testing:
        if app.config.get('RATELIMIT_STORAGE_URI') == 'memory://':
            app.logger.warning(
                "PERFORMANCE/SCALABILITY WARNING: RATELIMIT_STORAGE_URI is set to 'memory://'. "
                "This is not suitable for multi-process or multi-instance deployments. "
                "Consider using a persistent store like Redis (e.g., 'redis://localhost:6379/0')."
            )
        if app.config.get('SLOT_RNG_SEED') is not None:
            app.logger.critical(
                "SECURITY WARNING: SLOT_RNG_SEED is set; reel outcomes are reproducible."
            )


# Add main section to run the app
if __name__ == '__main__':
    app, socketio = create_app()
    socketio.run(app, host=os.getenv('HOST', '127.0.0.1'), port=int(os.getenv('PORT', '5000')),
                 debug=app.debug, allow_unsafe_werkzeug=True)
