import os
import re
from dataclasses import dataclass
from typing import Optional

from xtracycle.cycle.errors import ConfigurationError


MAX_WEEKS_TO_KEEP = 52

INTEGER_PATTERN = re.compile(r"-?[0-9]+")


def _env_flag(name, default):
    return os.environ.get(name, default).lower() == 'true'


def _parse_int(value, option):
    """Parse a strict integer; bools, floats and non-digit strings are rejected."""
    if isinstance(value, bool):
        raise ConfigurationError(f"{option} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and INTEGER_PATTERN.fullmatch(value.strip()):
        return int(value.strip())
    raise ConfigurationError(f"{option} must be an integer, got {value!r}")


@dataclass(frozen=True)
class CycleConfig:
    """Validated settings of the weekly backup cycle."""
    base_dir: str
    full_backup_weekday: int
    weeks_to_keep: int
    open_files_limit: Optional[int] = None

    @classmethod
    def from_values(cls, base_dir, full_backup_weekday, weeks_to_keep, open_files_limit=None):
        """
        Validate raw settings (strings or ints) and build a CycleConfig.

        Raises:
            ConfigurationError: If any setting is missing or out of range
        """
        if not base_dir:
            raise ConfigurationError("Backup base directory is required")

        base_dir = os.path.abspath(str(base_dir))
        if not os.path.isdir(base_dir) or not os.access(base_dir, os.W_OK):
            raise ConfigurationError(f"Directory {base_dir} does not exist or is not writable.")

        if full_backup_weekday in (None, ''):
            raise ConfigurationError("Full backup weekday is required")
        weekday = _parse_int(full_backup_weekday, 'Full backup weekday')
        if not 1 <= weekday <= 7:
            raise ConfigurationError("Full backup weekday must be between 1 and 7")

        if weeks_to_keep in (None, ''):
            raise ConfigurationError("Number of weeks to keep is required")
        weeks = _parse_int(weeks_to_keep, 'Weeks to keep')
        if not 1 <= weeks <= MAX_WEEKS_TO_KEEP:
            raise ConfigurationError(f"Weeks to keep must be an integer between 1 and {MAX_WEEKS_TO_KEEP}.")

        limit = None
        if open_files_limit not in (None, ''):
            limit = _parse_int(open_files_limit, 'Open files limit')
            if limit < 1:
                raise ConfigurationError("Open files limit must be a positive integer")

        return cls(
            base_dir=base_dir,
            full_backup_weekday=weekday,
            weeks_to_keep=weeks,
            open_files_limit=limit
        )

    @classmethod
    def from_app_config(cls, app_config):
        return cls.from_values(
            app_config.get('BACKUP_BASE_DIR'),
            app_config.get('FULL_BACKUP_WEEKDAY'),
            app_config.get('WEEKS_TO_KEEP'),
            app_config.get('OPEN_FILES_LIMIT')
        )


class Config:
    """Base configuration"""

    # Backup cycle (validated into a CycleConfig before use)
    BACKUP_BASE_DIR = os.environ.get('BACKUP_BASE_DIR')
    FULL_BACKUP_WEEKDAY = os.environ.get('FULL_BACKUP_WEEKDAY')
    WEEKS_TO_KEEP = os.environ.get('WEEKS_TO_KEEP')
    OPEN_FILES_LIMIT = os.environ.get('OPEN_FILES_LIMIT')

    # xtrabackup
    XTRABACKUP_BINARY = os.environ.get('XTRABACKUP_BINARY') or 'xtrabackup'
    XTRABACKUP_OPTIONS = None

    # Database (run history and scheduler job store)
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:////data/xtracycle.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Logging
    LOG_DIR = os.environ.get('LOG_DIR') or '/data/logs'
    SYSLOG_ENABLED = _env_flag('SYSLOG_ENABLED', 'true')
    SYSLOG_ADDRESS = os.environ.get('SYSLOG_ADDRESS') or '/dev/log'
    SYSLOG_TAG = 'innobackup'

    # Scheduler
    SCHEDULER_ENABLED = _env_flag('SCHEDULER_ENABLED', 'false')
    BACKUP_SCHEDULE_CRON = os.environ.get('BACKUP_SCHEDULE_CRON') or '0 21 * * *'
    # None means the host's local timezone, which matches the local calendar
    SCHEDULER_TIMEZONE = os.environ.get('SCHEDULER_TIMEZONE')


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True
    SQLALCHEMY_ECHO = False

    # Use local data directory for development
    BASE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    DATA_DIR = os.path.join(BASE_DIR, 'data')
    SQLALCHEMY_DATABASE_URI = f'sqlite:///{os.path.join(DATA_DIR, "xtracycle.db")}'
    LOG_DIR = os.path.join(DATA_DIR, 'logs')
    SYSLOG_ENABLED = False


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False
    SQLALCHEMY_ECHO = False


class CliConfig(Config):
    """Cron command line configuration"""
    DEBUG = False
    SQLALCHEMY_ECHO = False

    # Run history and logs of the invoking user, unless overridden
    DATA_DIR = os.environ.get('XTRACYCLE_DATA_DIR') or os.path.join(
        os.path.expanduser('~'), '.local', 'share', 'xtracycle'
    )
    SQLALCHEMY_DATABASE_URI = (
        os.environ.get('DATABASE_URL') or f'sqlite:///{os.path.join(DATA_DIR, "xtracycle.db")}'
    )
    LOG_DIR = os.environ.get('LOG_DIR') or os.path.join(DATA_DIR, 'logs')
    SCHEDULER_ENABLED = False


class TestingConfig(Config):
    """Testing configuration"""
    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    LOG_DIR = None
    SYSLOG_ENABLED = False
    SCHEDULER_ENABLED = False
    SCHEDULER_TIMEZONE = 'UTC'


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'cli': CliConfig,
    'testing': TestingConfig,
    'default': ProductionConfig
}
