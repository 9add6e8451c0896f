import os
import socket
import logging
from logging.handlers import RotatingFileHandler, SysLogHandler
from flask import Flask
from flask_sqlalchemy import SQLAlchemy


# Initialize extensions
db = SQLAlchemy()

LOG_DATE_FORMAT = '%Y%m%d %H:%M:%S'


class HostnameFilter(logging.Filter):
    """Tag every record with the host's fully qualified name."""

    hostname = socket.getfqdn()

    def filter(self, record):
        record.hostname = self.hostname
        return True


def configure_logging(app):
    """Configure application logging"""

    # Set log level based on environment
    log_level = logging.DEBUG if app.config.get('DEBUG', False) else logging.INFO
    handlers = []

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.addFilter(HostnameFilter())
    console_formatter = logging.Formatter(
        '%(asctime)s %(hostname)s: %(message)s',
        datefmt=LOG_DATE_FORMAT
    )
    console_handler.setFormatter(console_formatter)
    handlers.append(console_handler)

    # File handler
    log_dir = app.config.get('LOG_DIR')
    if log_dir:
        os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            os.path.join(log_dir, 'xtracycle.log'),
            maxBytes=10485760,  # 10MB
            backupCount=10
        )
        file_handler.setLevel(log_level)
        file_handler.addFilter(HostnameFilter())
        file_formatter = logging.Formatter(
            '[%(asctime)s] %(hostname)s %(levelname)s [%(name)s.%(funcName)s:%(lineno)d] %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        handlers.append(file_handler)

    # Configure root logger
    logging.basicConfig(level=log_level, handlers=handlers)

    # Syslog handler for operator notifications (facility cron)
    if app.config.get('SYSLOG_ENABLED', False):
        configure_syslog(app)

    app.logger.info(f"Logging configured (level: {logging.getLevelName(log_level)})")


def configure_syslog(app):
    """Attach a SysLogHandler to the notification logger."""
    from xtracycle.utils.notify import NOTIFY_LOGGER_NAME

    notify_logger = logging.getLogger(NOTIFY_LOGGER_NAME)
    for handler in list(notify_logger.handlers):
        if isinstance(handler, SysLogHandler):
            notify_logger.removeHandler(handler)
            handler.close()

    try:
        syslog_handler = SysLogHandler(
            address=app.config.get('SYSLOG_ADDRESS', '/dev/log'),
            facility=SysLogHandler.LOG_CRON
        )
    except OSError as e:
        app.logger.warning(f"System log unavailable, notifications go to the console only: {e}")
        return

    syslog_handler.ident = f"{app.config.get('SYSLOG_TAG', 'xtracycle')}: "
    syslog_handler.setFormatter(logging.Formatter('%(message)s'))
    notify_logger.addHandler(syslog_handler)


def create_app(config_name=None, with_scheduler=None):
    """
    Flask application factory

    Args:
        config_name: Key of xtracycle.config.config (default: FLASK_ENV)
        with_scheduler: Start the backup cycle scheduler; None decides from
            SCHEDULER_ENABLED and the reloader state
    """
    app = Flask(__name__)

    # Load configuration
    if config_name is None:
        config_name = os.environ.get('FLASK_ENV', 'production')

    from xtracycle.config import config
    app.config.from_object(config[config_name])

    # Configure logging
    configure_logging(app)

    # Ensure the SQLite directory exists
    database_uri = app.config['SQLALCHEMY_DATABASE_URI']
    if database_uri.startswith('sqlite:///') and ':memory:' not in database_uri:
        os.makedirs(os.path.dirname(database_uri.replace('sqlite:///', '')), exist_ok=True)

    # Initialize extensions
    db.init_app(app)

    # Register blueprints
    from xtracycle.routes import status_routes, runs_routes, backups_routes
    app.register_blueprint(status_routes.bp)
    app.register_blueprint(runs_routes.bp)
    app.register_blueprint(backups_routes.bp)

    # Health check endpoint
    @app.route('/health')
    def health():
        return {'status': 'healthy'}, 200

    # Create run history tables
    from xtracycle import models
    with app.app_context():
        db.create_all()

    if with_scheduler is None:
        # Development mode: only in the Flask reloader child process
        is_reloader_child = os.environ.get('WERKZEUG_RUN_MAIN') == 'true'
        if app.config.get('DEBUG', False):
            with_scheduler = app.config['SCHEDULER_ENABLED'] and is_reloader_child
        else:
            with_scheduler = app.config['SCHEDULER_ENABLED']

    if with_scheduler:
        from xtracycle.scheduler import init_scheduler, start_scheduler, stop_scheduler
        import atexit

        app.logger.info("Initializing backup cycle scheduler...")
        init_scheduler(app)
        start_scheduler()

        # Register cleanup function to stop scheduler on app shutdown
        atexit.register(stop_scheduler)
    else:
        app.logger.info("Backup cycle scheduler not started in this process")

    return app
