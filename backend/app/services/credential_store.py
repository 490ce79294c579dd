"""Stored admin credentials: encrypt on write, decrypt on explicit read."""
import logging

from app.extensions import db
from app.models.admin_credential import AdminCredential, CREDENTIAL_TYPES
from app.services.encryption import SecretCodecError, get_codec

logger = logging.getLogger(__name__)


def _validate(name, value, credential_type):
    if not name or not name.strip():
        raise ValueError('Credential name required')
    if not value:
        raise ValueError('Credential value required')
    if credential_type not in CREDENTIAL_TYPES:
        raise ValueError(f"Invalid credential type: {credential_type}")


def save_credential(name, value, credential_type, description=None, created_by=None, codec=None):
    """Encrypt value and store it under name."""
    _validate(name, value, credential_type)
    codec = codec or get_codec()

    cred = AdminCredential(
        name=name.strip(),
        credential_type=credential_type,
        encrypted_value=codec.encrypt(value),
        description=description or None,
        created_by=created_by
    )
    db.session.add(cred)
    db.session.commit()

    logger.info(f"Saved credential '{cred.name}' ({credential_type})")
    return cred.to_dict()


def get_credential(name, codec=None):
    """Return credential metadata plus the decrypted value, or None."""
    cred = AdminCredential.query.filter_by(name=name).first()
    if not cred:
        return None

    codec = codec or get_codec()
    value = codec.decrypt(cred.encrypted_value)
    return cred.to_dict(value=value)


def get_all_credentials():
    """List credential metadata, newest first. Values are never included."""
    credentials = AdminCredential.query.order_by(
        AdminCredential.created_at.desc(), AdminCredential.id.desc()
    ).all()
    return [c.to_dict() for c in credentials]


def update_credential(credential_id, value, description=None, codec=None):
    """Replace the stored value. description=None leaves the description as is."""
    cred = db.session.get(AdminCredential, credential_id)
    if not cred:
        return None

    if not value:
        raise ValueError('Credential value required')

    codec = codec or get_codec()
    cred.encrypted_value = codec.encrypt(value)
    if description is not None:
        cred.description = description or None

    db.session.commit()
    logger.info(f"Updated credential '{cred.name}'")
    return cred.to_dict()


def delete_credential(credential_id):
    """Delete credential. Returns False if it does not exist."""
    cred = db.session.get(AdminCredential, credential_id)
    if not cred:
        return False

    db.session.delete(cred)
    db.session.commit()
    logger.info(f"Deleted credential '{cred.name}'")
    return True


def get_credential_value(name, codec=None):
    """Decrypted value only, or None if no such credential."""
    credential = get_credential(name, codec=codec)
    return credential['value'] if credential else None


def find_undecryptable(codec=None):
    """Names of credentials that no longer decrypt with the configured keys.

    Raises ConfigurationError when no key is configured, rather than reporting
    every row as broken.
    """
    codec = codec or get_codec()
    codec.key_provider.get_active_key()
    return [
        cred.name
        for cred in AdminCredential.query.order_by(AdminCredential.name).all()
        if not codec.is_valid_encrypted_data(cred.encrypted_value)
    ]


def rotate_credentials(codec=None):
    """Re-encrypt every credential not already under the active key.

    Returns the number of rows rewritten. Any row that fails to decrypt aborts
    the whole rotation and nothing is committed.
    """
    codec = codec or get_codec()
    active_key_id, _ = codec.key_provider.get_active_key()

    rotated = 0
    try:
        for cred in AdminCredential.query.all():
            if codec.key_id_of(cred.encrypted_value) == active_key_id:
                continue
            cred.encrypted_value = codec.rotate(cred.encrypted_value)
            rotated += 1
    except SecretCodecError:
        db.session.rollback()
        raise

    db.session.commit()
    logger.info(f"Rotated {rotated} credential(s) to key '{active_key_id}'")
    return rotated
