"""
Configuration settings for the Break The Code server.

This module centralizes all configuration constants and environment variables
to make the application easier to configure and maintain.
"""

import os
from typing import List

# =============================================================================
# Game Settings
# =============================================================================

DIGIT_COUNT: int = 4
"""Number of digits in a secret number or guess."""

MIN_NUMBER: int = 0
"""Minimum valid secret/guess value (inclusive). Sent zero-padded."""

MAX_NUMBER: int = 9999
"""Maximum valid secret/guess value (inclusive)."""

ROOM_CODE_LENGTH: int = 6
"""Length of generated room codes."""

MAX_PLAYERS: int = 2
"""Maximum number of players in a room."""

MIN_PLAYER_NAME_LENGTH: int = 2
MAX_PLAYER_NAME_LENGTH: int = 20

PLAYER_NAME_PATTERN: str = r'^[a-zA-Z0-9\s\-_]+$'
"""Allowed characters in a display name."""

# =============================================================================
# Room Cleanup Settings
# =============================================================================

ROOM_CLEANUP_INTERVAL_SECONDS: int = int(os.environ.get('ROOM_CLEANUP_INTERVAL_SECONDS', '1800'))
"""How often the stale-room sweep runs (default 30 minutes)."""

ROOM_MAX_AGE_SECONDS: int = int(os.environ.get('ROOM_MAX_AGE_SECONDS', '1800'))
"""Empty rooms older than this are removed by the sweep."""

# =============================================================================
# Rate Limiting
# =============================================================================

RATE_LIMIT_WINDOW_SECONDS: int = 60
"""Sliding window for per-connection action counting."""

CREATE_ROOM_LIMIT: int = 5
"""Maximum room creations per connection per window."""

JOIN_ROOM_LIMIT: int = 10
"""Maximum join/rejoin attempts per connection per window."""

GUESS_LIMIT: int = 10
"""Maximum guesses per connection per window."""

# =============================================================================
# Server Settings
# =============================================================================

DEBUG: bool = os.environ.get('DEBUG', 'false').lower() == 'true'
"""Enable debug mode. Set DEBUG=true in environment for development."""

HOST: str = os.environ.get('HOST', '0.0.0.0')
"""Host address to bind the server."""

PORT: int = int(os.environ.get('PORT', '3000'))
"""Port number for the server."""

SECRET_KEY: str = os.environ.get('SECRET_KEY', 'dev-secret-key-change-in-production')
"""Flask secret key for session management."""

VERSION: str = '1.0.0'

# =============================================================================
# CORS Settings
# =============================================================================

def get_cors_origins() -> List[str]:
    """
    Get allowed CORS origins from environment.

    Returns:
        List of allowed origin URLs, or ['*'] if not configured in debug mode.
    """
    origins = os.environ.get('CORS_ORIGINS', '')
    if not origins:
        if DEBUG:
            return ['*']
        return [f'http://localhost:{PORT}', f'http://127.0.0.1:{PORT}']
    return [o.strip() for o in origins.split(',') if o.strip()]

CORS_ORIGINS: List[str] = get_cors_origins()
"""List of allowed CORS origins for Socket.IO connections."""

# =============================================================================
# Logging Settings
# =============================================================================

LOG_LEVEL: str = os.environ.get('LOG_LEVEL', 'DEBUG' if DEBUG else 'INFO')
"""Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

LOG_FORMAT: str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
"""Format string for log messages."""
