"""
Shared fixtures: a Flask app wired to fake AWS clients, and an API user.
"""
import os
from unittest.mock import Mock, patch

import pytest

from config import TestingConfig
from logbridge import create_app
from logbridge.aws import AWSService, CloudWatchService, KinesisService
from logbridge.extensions import ServiceContainer
from logbridge.inputs.registry import InputRegistry
from logbridge.models.user import User

CREDENTIALS = {
    'region': 'us-east-1',
    'aws_access_key_id': 'AKIAEXAMPLE',
    'aws_secret_access_key': 'super-secret-value',
}


@pytest.fixture
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    os.environ['AWS_ACCESS_KEY_ID'] = 'testing'
    os.environ['AWS_SECRET_ACCESS_KEY'] = 'testing'
    os.environ['AWS_SECURITY_TOKEN'] = 'testing'
    os.environ['AWS_SESSION_TOKEN'] = 'testing'
    os.environ['AWS_DEFAULT_REGION'] = 'us-east-1'


@pytest.fixture
def fake_client():
    """Stand-in boto3 client; call counts are asserted by tests."""
    return Mock()


@pytest.fixture
def client_factory(fake_client):
    factory = Mock()
    factory.client.return_value = fake_client
    return factory


@pytest.fixture
def input_registry():
    return InputRegistry()


@pytest.fixture
def services(client_factory, input_registry):
    return ServiceContainer(
        aws_service=AWSService(input_registry),
        cloudwatch_service=CloudWatchService(client_factory),
        kinesis_service=KinesisService(client_factory, operation_timeout=5, max_records=10),
        input_registry=input_registry
    )


@pytest.fixture
def app(services):
    return create_app(TestingConfig, services=services)


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def api_user():
    user = {'uuid': 'user-1', 'username': 'admin', 'permissions': ['aws:read', 'inputs:create', 'inputs:read']}
    with patch.object(User, 'get_by_api_token', side_effect=lambda token: user if token == 'good-token' else None):
        yield user


@pytest.fixture
def auth_headers(api_user):
    return {'Authorization': 'Bearer good-token'}
