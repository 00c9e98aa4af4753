import os
import sys
import time

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

# Ensure the backend root (containing the `gameprofile` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from gameprofile import create_app, db


def _generate_key_pair():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem


PRIVATE_KEY, PUBLIC_KEY = _generate_key_pair()
OTHER_PRIVATE_KEY, _ = _generate_key_pair()

CLIENT_ID = 'game-client'


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CLIENT_WHITELIST = [CLIENT_ID, 'game-server']
    AUTH_PUBLIC_KEY = PUBLIC_KEY.decode()
    AUTH_PUBLIC_KEY_PATH = None
    JWT_ALGORITHMS = ['RS256']
    JWT_LEEWAY_SECONDS = 0
    CORS_ORIGINS = '*'
    LOG_LEVEL = 'DEBUG'


def make_token(subject='alice', private_key=PRIVATE_KEY, expires_in=300, **claims):
    payload = {'iat': int(time.time()), 'exp': int(time.time()) + expires_in}
    if subject is not None:
        payload['sub'] = subject
    payload.update(claims)
    return jwt.encode(payload, private_key, algorithm='RS256')


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    # No app context stays pushed while requests run, so per-request state
    # (g, current_user) starts fresh on every call.
    with application.app_context():
        db.create_all()
    yield application
    with application.app_context():
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def session(flask_app):
    with flask_app.app_context():
        yield db.session


@pytest.fixture()
def auth_header():
    def _header(subject='alice', **kwargs):
        return {'Authorization': f'Bearer {make_token(subject, **kwargs)}'}
    return _header
