from flask import Blueprint, request, jsonify
from flask_jwt_extended import current_user

from mathturo import db
from mathturo.models import TutorialVideo, VideoView
from mathturo.schemas import VideoSchema, VideoViewSchema
from mathturo.services.activity import log_activity
from mathturo.utils.decorators import login_required, teacher_required
from mathturo.utils.helpers import bool_arg

videos_bp = Blueprint('videos', __name__)


def get_active_video(video_id):
    video = db.session.get(TutorialVideo, video_id)
    if not video or not video.is_active:
        return None
    return video


@videos_bp.route('', methods=['GET'])
@login_required
def get_videos():
    query = TutorialVideo.query.filter_by(is_active=True)

    category = request.args.get('category')
    if category and category != 'all':
        query = query.filter_by(category=category)
    if bool_arg('featured'):
        query = query.filter_by(is_featured=True)

    videos = query.order_by(TutorialVideo.order, TutorialVideo.id).all()
    return jsonify([v.to_dict() for v in videos]), 200


@videos_bp.route('/categories', methods=['GET'])
@login_required
def get_categories():
    rows = db.session.query(TutorialVideo.category) \
        .filter(TutorialVideo.is_active.is_(True)) \
        .distinct().order_by(TutorialVideo.category).all()
    return jsonify([row[0] for row in rows]), 200


@videos_bp.route('/<int:video_id>', methods=['GET'])
@login_required
def get_video(video_id):
    video = get_active_video(video_id)
    if not video:
        return jsonify({'message': 'Video not found'}), 404
    return jsonify(video.to_dict()), 200


@videos_bp.route('/<int:video_id>/view', methods=['POST'])
@login_required
def track_view(video_id):
    video = get_active_video(video_id)
    if not video:
        return jsonify({'message': 'Video not found'}), 404

    data = VideoViewSchema().load(request.get_json(silent=True) or {})
    view = VideoView(
        video_id=video.id,
        student_id=current_user.id,
        watch_duration=data['watch_duration'],
        completed=data['completed']
    )
    db.session.add(view)
    db.session.commit()

    return jsonify({'message': 'View recorded', 'view': view.to_dict()}), 201


@videos_bp.route('', methods=['POST'])
@teacher_required
def add_video():
    data = VideoSchema().load(request.get_json(silent=True) or {})

    video = TutorialVideo(created_by=current_user.id, **data)
    db.session.add(video)
    db.session.commit()
    log_activity('add_video', user_id=current_user.id, entity_type='tutorial_video',
                 entity_id=video.id, details={'title': video.title})

    return jsonify({'message': 'Video added', 'video': video.to_dict()}), 201


@videos_bp.route('/<int:video_id>', methods=['PUT'])
@teacher_required
def update_video(video_id):
    video = db.session.get(TutorialVideo, video_id)
    if not video:
        return jsonify({'message': 'Video not found'}), 404

    data = VideoSchema(partial=True).load(request.get_json(silent=True) or {})
    for field, value in data.items():
        setattr(video, field, value)

    db.session.commit()
    return jsonify({'message': 'Video updated', 'video': video.to_dict()}), 200


@videos_bp.route('/<int:video_id>', methods=['DELETE'])
@teacher_required
def delete_video(video_id):
    video = db.session.get(TutorialVideo, video_id)
    if not video:
        return jsonify({'message': 'Video not found'}), 404

    video.is_active = False
    db.session.commit()
    log_activity('delete_video', user_id=current_user.id, entity_type='tutorial_video',
                 entity_id=video.id)

    return jsonify({'message': 'Video removed'}), 200
