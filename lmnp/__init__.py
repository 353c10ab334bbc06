import logging
import os
from datetime import timedelta

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from config import Config
from lmnp.errors import GenerationError, ServiceError

logger = logging.getLogger(__name__)


def create_app(config_class=Config, clock=None, scheduler=None):
    from lmnp.field_maps import load_field_map
    from lmnp.fillers import TemplateFiller
    from lmnp.reaper import FileReaper
    from lmnp.service import DeclarationService
    from lmnp.timers import start_timer
    from lmnp.tokens import DownloadTokenRegistry, utcnow

    # Initialize Flask app (generated files are only reachable through tokens)
    app = Flask(__name__, static_folder=None)

    # Load configuration
    app.config.from_object(config_class)
    logging.basicConfig(
        level=app.config['LOG_LEVEL'],
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    # Ensure the output folder exists
    os.makedirs(app.config['OUTPUT_DIR'], exist_ok=True)

    if not app.config.get('API_KEY'):
        logger.error("API_KEY is not set: /generate will answer 500 until it is configured")

    # Field maps are validated once, at startup
    field_map = load_field_map(app.config['FIELD_MAP_VERSION'], app.config.get('FIELD_MAP_PATH'))
    logger.info("Loaded field map %s (%d cells, %d PDF fields)",
                field_map.version, len(field_map.excel), len(field_map.pdf))

    filler = TemplateFiller.from_config(app.config, field_map)
    for kind, kind_filler in filler.fillers.items():
        if not os.path.isfile(kind_filler.template_path):
            logger.warning("%s template missing: %s", kind.value, kind_filler.template_path)

    retention = timedelta(milliseconds=app.config['RETENTION_MS'])
    scheduler = scheduler or start_timer
    registry = DownloadTokenRegistry(
        retention,
        expired_ttl=timedelta(milliseconds=app.config['EXPIRED_TOKEN_TTL_MS']),
        clock=clock or utcnow,
        scheduler=scheduler,
    )
    app.extensions['lmnp.service'] = DeclarationService(
        filler,
        registry,
        FileReaper(scheduler=scheduler),
        base_url=app.config['BASE_URL'],
        retention=retention,
    )

    # Register blueprints
    from lmnp.routes import main_bp
    app.register_blueprint(main_bp)

    # Register error handlers
    @app.errorhandler(ServiceError)
    def service_error(error):
        if error.status_code >= 500:
            logger.error("%s: %s", type(error).__name__, error)
        # template details stay in the logs
        message = GenerationError.message if isinstance(error, GenerationError) else error.message
        return jsonify({'ok': False, 'error': message}), error.status_code

    @app.errorhandler(HTTPException)
    def http_error(error):
        return jsonify({'ok': False, 'error': error.name}), error.code

    @app.errorhandler(Exception)
    def internal_error(error):
        logger.exception("Unhandled error")
        return jsonify({'ok': False, 'error': 'Erreur interne LMNP'}), 500

    return app
