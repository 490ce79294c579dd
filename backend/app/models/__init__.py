"""Database models."""
from app.models.user import User
from app.models.admin_credential import AdminCredential, CREDENTIAL_TYPES

__all__ = ['User', 'AdminCredential', 'CREDENTIAL_TYPES']
