from flask import Blueprint, request, jsonify, g
from models import Log
from utils import log_action, services, admin_required

admin_bp = Blueprint('admin', __name__)

def _user_matches(user, term):
    term_l = term.lower()
    return (term_l in user.name.lower() or term_l in user.email.lower()
            or (user.student_code and term in user.student_code)
            or (user.teacher_code and term in user.teacher_code))

def _exam_matches(exam, term):
    term_l = term.lower()
    return term_l in exam.title.lower() or term_l in exam.subject.lower()

# API Routes
@admin_bp.route('/api/admin/stats', methods=['GET'])
@admin_required
def api_stats():
    svc = services()
    users = svc.auth.all_profiles()
    exams = svc.exams.all()
    return jsonify({'ok': True, 'stats': {
        'total_users': len(users),
        'teachers': sum(1 for u in users if u.role.value == 'TEACHER'),
        'students': sum(1 for u in users if u.role.value == 'STUDENT'),
        'total_exams': len(exams),
        'published_exams': sum(1 for e in exams if e.published),
    }})

@admin_bp.route('/api/admin/users', methods=['GET'])
@admin_required
def api_list_users():
    term = request.args.get('q', '').strip()
    users = services().auth.all_profiles()
    if term:
        users = [u for u in users if _user_matches(u, term)]
    return jsonify({'ok': True, 'users': [u.to_dict() for u in users]})

@admin_bp.route('/api/admin/users/<user_id>', methods=['DELETE'])
@admin_required
def api_delete_user(user_id):
    if user_id == g.profile.id:
        return jsonify({'ok': False, 'msg': 'cannot_delete_self'}), 400
    if not services().auth.delete_profile(user_id):
        return jsonify({'ok': False, 'msg': 'user_not_found'}), 404
    log_action('delete_user', {'user_id': user_id})
    return jsonify({'ok': True})

@admin_bp.route('/api/admin/exams', methods=['GET'])
@admin_required
def api_list_exams():
    term = request.args.get('q', '').strip()
    exams = services().exams.all()
    if term:
        exams = [e for e in exams if _exam_matches(e, term)]
    out = [{'id': e.id, 'title': e.title, 'subject': e.subject, 'teacher_id': e.teacher_id,
            'published': e.published, 'num_questions': len(e.questions),
            'created_at': e.created_at.isoformat()} for e in exams]
    return jsonify({'ok': True, 'exams': out})

@admin_bp.route('/api/admin/exams/<exam_id>', methods=['DELETE'])
@admin_required
def api_delete_exam(exam_id):
    removed = services().exams.delete(exam_id)
    log_action('admin_delete_exam', {'exam_id': exam_id, 'submissions_removed': removed})
    return jsonify({'ok': True, 'submissions_removed': removed})

@admin_bp.route('/api/admin/logs', methods=['GET'])
@admin_required
def api_view_logs():
    q = Log.query
    etype = request.args.get('event_type')
    uid = request.args.get('user_id')
    if etype:
        q = q.filter_by(event_type=etype)
    if uid:
        q = q.filter_by(who_user_id=uid)
    logs = q.order_by(Log.created_at.desc()).limit(2000).all()
    out = []
    for l in logs:
        out.append({
            "id": l.id,
            "who_user_id": l.who_user_id,
            "username": l.username,
            "role": l.role,
            "event_type": l.event_type,
            "meta": l.meta,
            "created_at": l.created_at.isoformat()
        })
    return jsonify({"ok": True, "logs": out})
