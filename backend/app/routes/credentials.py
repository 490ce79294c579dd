"""Admin credential management routes."""
from flask import Blueprint, request, jsonify
from flask_jwt_extended import get_jwt_identity
from sqlalchemy.exc import IntegrityError
from app.extensions import db
from app.models.admin_credential import AdminCredential, CREDENTIAL_TYPES
from app.routes.auth import admin_required
from app.services import credential_store

bp = Blueprint('credentials', __name__, url_prefix='/api/admin/credentials')


def _name_taken(name):
    return AdminCredential.query.filter_by(name=name).first() is not None


def _valid_description(description):
    return description is None or isinstance(description, str)


@bp.route('', methods=['GET'])
@admin_required
def get_credentials():
    """List all credentials (metadata only)."""
    return jsonify(credential_store.get_all_credentials())


@bp.route('', methods=['POST'])
@admin_required
def create_credential():
    """Encrypt and store a new credential."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'JSON object required'}), 400

    name = data.get('name')
    value = data.get('value')
    credential_type = data.get('credential_type', 'other')
    description = data.get('description')

    if not isinstance(name, str) or not isinstance(value, str):
        return jsonify({'error': 'name and value must be strings'}), 400
    name = name.strip()
    if not name or not value:
        return jsonify({'error': 'name and value required'}), 400
    if credential_type not in CREDENTIAL_TYPES:
        return jsonify({'error': 'Invalid credential type'}), 400
    if not _valid_description(description):
        return jsonify({'error': 'description must be a string'}), 400

    if _name_taken(name):
        return jsonify({'error': 'Credential name already exists'}), 409

    try:
        cred = credential_store.save_credential(
            name,
            value,
            credential_type,
            description=description,
            created_by=int(get_jwt_identity())
        )
    except IntegrityError:
        # Another request inserted the same name after the check above
        db.session.rollback()
        return jsonify({'error': 'Credential name already exists'}), 409
    return jsonify(cred), 201


@bp.route('/reveal/<string:name>', methods=['GET'])
@admin_required
def reveal_credential(name):
    """Get a credential including its decrypted value."""
    cred = credential_store.get_credential(name)
    if not cred:
        return jsonify({'error': 'Credential not found'}), 404
    return jsonify(cred)


@bp.route('/<int:cred_id>', methods=['PUT'])
@admin_required
def update_credential(cred_id):
    """Replace a credential's value and optionally its description."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({'error': 'JSON object required'}), 400

    value = data.get('value')
    description = data.get('description')
    if not value or not isinstance(value, str):
        return jsonify({'error': 'value required'}), 400
    if not _valid_description(description):
        return jsonify({'error': 'description must be a string'}), 400

    cred = credential_store.update_credential(cred_id, value, description=description)
    if not cred:
        return jsonify({'error': 'Credential not found'}), 404
    return jsonify(cred)


@bp.route('/<int:cred_id>', methods=['DELETE'])
@admin_required
def delete_credential(cred_id):
    """Delete credential."""
    if not credential_store.delete_credential(cred_id):
        return jsonify({'error': 'Credential not found'}), 404
    return '', 204
