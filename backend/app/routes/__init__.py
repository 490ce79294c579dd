"""Routes module initialization."""
from app.routes import auth, credentials

__all__ = ['auth', 'credentials']
