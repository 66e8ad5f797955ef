import os


class Config:
    """Base configuration"""

    # Backup job
    # JSON list or os.pathsep separated; paths are kept verbatim
    BACKUP_SOURCES = os.environ.get('BACKUP_SOURCES', '')
    BACKUP_DESTINATION = os.environ.get('BACKUP_DESTINATION') or '/data/backups'
    BACKUP_RETENTION_COUNT = os.environ.get('BACKUP_RETENTION_COUNT') or 10
    BACKUP_ARCHIVE_PREFIX = os.environ.get('BACKUP_ARCHIVE_PREFIX') or 'Backup'
    BACKUP_ARCHIVE_EXTENSION = os.environ.get('BACKUP_ARCHIVE_EXTENSION') or 'zip'
    BACKUP_LOG_FILENAME = os.environ.get('BACKUP_LOG_FILENAME') or 'BackupLog.txt'

    # Archiver (unset = in-process zip)
    ARCHIVER_EXECUTABLE = os.environ.get('ARCHIVER_EXECUTABLE')
    ARCHIVER_TIMEOUT = os.environ.get('ARCHIVER_TIMEOUT')

    # Notifications: desktop, log, none
    NOTIFIER = os.environ.get('NOTIFIER') or 'desktop'

    # Application log
    LOG_DIR = os.environ.get('LOG_DIR') or '/data/logs'


class DevelopmentConfig(Config):
    """Development configuration"""
    DEBUG = True

    # Use local data directory for development
    BASE_DIR = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    DATA_DIR = os.path.join(BASE_DIR, 'data')
    BACKUP_DESTINATION = os.environ.get('BACKUP_DESTINATION') or os.path.join(DATA_DIR, 'backups')
    LOG_DIR = os.path.join(DATA_DIR, 'logs')
    NOTIFIER = os.environ.get('NOTIFIER') or 'log'


class TestingConfig(Config):
    """Test configuration"""
    TESTING = True
    DEBUG = False
    BACKUP_SOURCES = ''
    BACKUP_DESTINATION = ''
    BACKUP_RETENTION_COUNT = 10
    ARCHIVER_EXECUTABLE = None
    ARCHIVER_TIMEOUT = None
    NOTIFIER = 'none'
    # None disables the rotating file handler
    LOG_DIR = None


class ProductionConfig(Config):
    """Production configuration"""
    DEBUG = False


# Configuration dictionary
config = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,
    'default': ProductionConfig
}
