"""
Pytest configuration and fixtures for the Break The Code tests.
"""

import os

import pytest

# Set test environment before importing app
os.environ['DEBUG'] = 'false'

import app as app_module
from game import GameService
from ratelimit import RateLimiter
from rooms import ConnectionIndex, RoomRegistry


@pytest.fixture(scope='function')
def service():
    """A GameService with its own empty registry and connection index."""
    return GameService(RoomRegistry(), ConnectionIndex())


@pytest.fixture(scope='function')
def test_app(monkeypatch):
    """The Flask application wired to fresh game state."""
    app_module.app.config['TESTING'] = True
    app_module.app.config['SECRET_KEY'] = 'test-secret-key'
    monkeypatch.setattr(app_module, 'game', GameService())
    monkeypatch.setattr(app_module, 'limiter', RateLimiter())
    yield app_module.app


@pytest.fixture(scope='function')
def client(test_app):
    """Create a test client for HTTP requests."""
    return test_app.test_client()


@pytest.fixture(scope='function')
def make_socketio_client(test_app):
    """Factory for Socket.IO test clients; all are disconnected on teardown."""
    clients = []

    def factory():
        sio_client = app_module.socketio.test_client(test_app)
        clients.append(sio_client)
        return sio_client

    yield factory

    for sio_client in clients:
        if sio_client.is_connected():
            sio_client.disconnect()


@pytest.fixture(scope='function')
def socketio_client(make_socketio_client):
    """Create a Socket.IO test client."""
    return make_socketio_client()
