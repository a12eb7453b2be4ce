from flask import Blueprint, request, jsonify
from flask_jwt_extended import current_user

from mathturo.schemas import ActivitySchema
from mathturo.services.activity import log_activity
from mathturo.utils.decorators import login_required

activity_bp = Blueprint('activity', __name__)


@activity_bp.route('', methods=['POST'])
@login_required
def record_activity():
    data = ActivitySchema().load(request.get_json(silent=True) or {})

    entry = log_activity(
        data['action'],
        user_id=current_user.id,
        entity_type=data.get('entity_type'),
        entity_id=data.get('entity_id'),
        details=data.get('details')
    )
    if entry is None:
        return jsonify({'message': 'Activity could not be recorded'}), 500

    return jsonify({'message': 'Activity recorded', 'activity': entry.to_dict()}), 201
