"""Services module initialization."""
from app.services import (
    encryption,
    credential_store
)

__all__ = [
    'encryption',
    'credential_store'
]
