"""Shared fixtures: an app on in-memory SQLite with one admin and one plain user."""
import pytest
from flask_jwt_extended import create_access_token

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from app import create_app
from app.config import Config
from app.extensions import db
from app.models.user import User

TEST_KEY = 'a' * 32


class TestConfig(Config):
    __test__ = False

    TESTING = True
    SECRET_KEY = 'test-secret-key-with-enough-length-for-hs256'
    JWT_SECRET_KEY = 'test-jwt-secret-key-with-enough-length-for-hs256'
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    ENCRYPTION_KEY = TEST_KEY
    ENCRYPTION_KEY_ID = 'k1'
    ENCRYPTION_PREVIOUS_KEYS = None


def make_app(**overrides):
    """Build an app from TestConfig with selected settings replaced."""
    config_class = type('OverriddenTestConfig', (TestConfig,), overrides)
    return create_app(config_class)


def add_user(email, role='user', password='password123'):
    user = User(email=email, username=email.split('@')[0], role=role)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


def auth_headers(user):
    return {'Authorization': f"Bearer {create_access_token(identity=str(user.id))}"}


@pytest.fixture
def app():
    app = make_app()
    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin_headers(app):
    return auth_headers(add_user('admin@example.com', role='admin'))


@pytest.fixture
def user_headers(app):
    return auth_headers(add_user('user@example.com'))
