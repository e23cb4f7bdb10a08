# config.py

import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name, default='False'):
    return os.environ.get(name, default).lower() in ('1', 'true', 'yes')


class Config:
    # Basic Flask configuration
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    DEBUG = _env_bool('FLASK_DEBUG')
    TESTING = False
    PORT = int(os.environ.get('PORT', 5001))

    # MongoDB holds API users, so requests are only authenticated when it is set.
    # Without it every API route answers 401 and inputs are kept in memory.
    MONGO_URI = os.environ.get('MONGO_URI')

    # Logging
    LOG_DIR = os.environ.get('LOG_DIR', 'logs')
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO').upper()

    # REST API
    API_URL_PREFIX = os.environ.get('API_URL_PREFIX', '/api/v1')

    # AWS call budget (seconds). Botocore retries are always disabled.
    AWS_CONNECT_TIMEOUT = float(os.environ.get('AWS_CONNECT_TIMEOUT', 5))
    AWS_READ_TIMEOUT = float(os.environ.get('AWS_READ_TIMEOUT', 10))
    AWS_OPERATION_TIMEOUT = float(os.environ.get('AWS_OPERATION_TIMEOUT', 30))
    AWS_ENDPOINT_URL = os.environ.get('AWS_ENDPOINT_URL') or None

    # Kinesis health check
    KINESIS_HEALTH_CHECK_MAX_RECORDS = int(os.environ.get('KINESIS_HEALTH_CHECK_MAX_RECORDS', 10))

    # Input registry: none, name, stream, name_and_stream
    INPUT_UNIQUENESS_POLICY = os.environ.get('INPUT_UNIQUENESS_POLICY', 'none')

    # Palo Alto syslog input
    PALO_ALTO_BIND_ADDRESS = os.environ.get('PALO_ALTO_BIND_ADDRESS', '0.0.0.0')
    PALO_ALTO_PORT = int(os.environ.get('PALO_ALTO_PORT', 5514))
    PALO_ALTO_TIMEZONE = os.environ.get('PALO_ALTO_TIMEZONE', 'UTC')
    SYSLOG_MAX_MESSAGE_SIZE = int(os.environ.get('SYSLOG_MAX_MESSAGE_SIZE', 2 * 1024 * 1024))
    SYSLOG_MAX_CONNECTIONS = int(os.environ.get('SYSLOG_MAX_CONNECTIONS', 50))


class TestingConfig(Config):
    TESTING = True
    MONGO_URI = None
    AWS_CONNECT_TIMEOUT = 1
    AWS_READ_TIMEOUT = 1
    AWS_OPERATION_TIMEOUT = 5
    AWS_ENDPOINT_URL = None
    INPUT_UNIQUENESS_POLICY = 'none'
