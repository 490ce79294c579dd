"""Admin credential model with an encrypted value."""
from app.extensions import db
from datetime import datetime

CREDENTIAL_TYPES = ('api_key', 'token', 'password', 'other')


class AdminCredential(db.Model):
    """Named secret (API key, token, password) stored encrypted."""
    __tablename__ = 'admin_credentials'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), unique=True, nullable=False)
    credential_type = db.Column(db.String(20), nullable=False, default='other')

    # Ciphertext from SecretCodec.encrypt(), stored verbatim
    encrypted_value = db.Column(db.Text, nullable=False)

    description = db.Column(db.Text)
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    creator = db.relationship('User', back_populates='credentials')

    def to_dict(self, value=None):
        """Serialize credential metadata. The secret is only included when passed in."""
        data = {
            'id': self.id,
            'name': self.name,
            'credential_type': self.credential_type,
            'description': self.description,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'updated_at': self.updated_at.isoformat() if self.updated_at else None,
        }
        if value is not None:
            data['value'] = value
        return data
