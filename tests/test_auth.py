"""
Tests for API users and route permissions.
"""
import logging
from unittest.mock import patch

import pytest
from click.testing import CliRunner
from flask import Flask

from config import TestingConfig
from logbridge import create_app
from logbridge.models.user import User, hash_token
from logbridge.routes.aws import ROUTES


class TestUser:

    def test_token_is_hashed(self):
        assert hash_token('abc') != 'abc'
        assert hash_token('abc') == hash_token('abc')

    def test_no_database_means_no_user(self, app):
        with app.app_context():
            assert User.get_by_api_token('anything') is None

    def test_get_by_username_hides_token_hash(self):
        with patch('logbridge.models.user.mongo') as mongo:
            mongo.db.users.find_one.return_value = {'username': 'admin'}
            assert User.get_by_username('admin') == {'username': 'admin'}

        query, projection = mongo.db.users.find_one.call_args[0]
        assert query == {'username': 'admin'}
        assert projection['api_token_hash'] == 0

    @pytest.mark.parametrize('user, permission, expected', [
        ({'permissions': ['aws:read']}, 'aws:read', True),
        ({'permissions': ['aws:read']}, 'inputs:create', False),
        ({'permissions': ['*']}, 'inputs:create', True),
        (None, 'aws:read', False),
    ])
    def test_has_permission(self, user, permission, expected):
        assert User.has_permission(user, permission) is expected


class TestRouteTable:

    def test_every_route_requires_a_permission(self):
        assert all(route.permission for route in ROUTES)

    def test_only_input_creation_is_audited(self):
        audited = [route.rule for route in ROUTES if route.audit_event]
        assert audited == ['/aws/inputs']

    def test_routes_mounted_under_prefix(self, app):
        rules = {rule.rule for rule in app.url_map.iter_rules()}
        for route in ROUTES:
            assert f'/api/v1{route.rule}' in rules


class TestCreateUserCommand:

    @pytest.fixture
    def mongo_app(self):
        app = Flask(__name__)
        app.config['MONGO_URI'] = 'mongodb://localhost:27017/logbridge'
        return app

    def test_rejects_existing_username(self, mongo_app):
        from run import cli
        with patch('run.create_app', return_value=mongo_app), \
                patch.object(User, 'get_by_username', return_value={'username': 'admin'}), \
                patch.object(User, 'create') as create:
            result = CliRunner().invoke(cli, ['create-user', 'admin'])

        assert result.exit_code == 1
        assert 'already exists' in result.output
        create.assert_not_called()

    def test_prints_token_once(self, mongo_app):
        from run import cli
        with patch('run.create_app', return_value=mongo_app), \
                patch.object(User, 'get_by_username', return_value=None), \
                patch.object(User, 'create', return_value=('user-9', 'plain-token')) as create:
            result = CliRunner().invoke(cli, ['create-user', 'ops', '--permission', 'aws:read'])

        assert result.exit_code == 0
        assert result.output.count('plain-token') == 1
        create.assert_called_once_with('ops', ('aws:read',))

    def test_requires_mongo(self):
        from run import cli
        with patch('run.create_app', return_value=Flask(__name__)):
            result = CliRunner().invoke(cli, ['create-user', 'ops'])

        assert result.exit_code == 1
        assert 'MONGO_URI' in result.output


class TestStartupWithoutMongo:

    @pytest.fixture
    def restore_log_handlers(self):
        loggers = [logging.getLogger(name) for name in ('logbridge', 'logbridge.audit')]
        saved = [list(logger.handlers) for logger in loggers]
        yield
        for logger, handlers in zip(loggers, saved):
            for handler in logger.handlers[:]:
                if handler not in handlers:
                    logger.removeHandler(handler)
                    handler.close()

    def test_warns_that_requests_cannot_authenticate(self, tmp_path, caplog, restore_log_handlers):
        class ServingConfig(TestingConfig):
            TESTING = False
            LOG_DIR = str(tmp_path)

        caplog.set_level(logging.WARNING, logger='logbridge')
        app = create_app(ServingConfig)

        assert 'MONGO_URI is not set' in caplog.text
        response = app.test_client().get('/api/v1/aws/regions',
                                         headers={'Authorization': 'Bearer any-token'})
        assert response.status_code == 401
