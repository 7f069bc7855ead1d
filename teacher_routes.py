from flask import Blueprint, request, jsonify, current_app, g
from errors import ValidationError
from export import results_csv, results_filename
from questions import new_question, question_to_dict
from submissions import submission_stats
from utils import log_action, payload, services, teacher_required

teacher_bp = Blueprint('teacher', __name__)

def _exam_summary(exam):
    return {
        'id': exam.id,
        'title': exam.title,
        'subject': exam.subject,
        'target_classrooms': exam.target_classrooms,
        'num_questions': len(exam.questions),
        'max_score': exam.max_score,
        'published': exam.published,
        'time_limit_minutes': exam.time_limit_minutes,
        'valid_from': exam.valid_from.isoformat() if exam.valid_from else None,
        'valid_until': exam.valid_until.isoformat() if exam.valid_until else None,
        'created_at': exam.created_at.isoformat(),
    }

def _publish_flag(d):
    value = d.get('publish', False)
    if isinstance(value, str):
        return value.lower() in ('1', 'true', 'yes')
    return bool(value)

# API Routes - Exam Management
@teacher_bp.route('/api/teacher/exams', methods=['GET'])
@teacher_required
def api_list_exams():
    exams = services().exams.for_teacher(g.profile.id)
    return jsonify({'ok': True, 'exams': [_exam_summary(e) for e in exams]})

@teacher_bp.route('/api/teacher/question_template', methods=['GET'])
@teacher_required
def api_question_template():
    qtype = request.args.get('type', 'MCQ')
    return jsonify({'ok': True, 'question': question_to_dict(new_question(qtype))})

@teacher_bp.route('/api/teacher/exams', methods=['POST'])
@teacher_required
def api_create_exam():
    d = payload()
    exam = services().exams.create(d.get('exam') or {}, g.profile.id, publish=_publish_flag(d))
    log_action('create_exam', {'exam_id': exam.id, 'published': exam.published})
    return jsonify({'ok': True, 'exam': exam.to_dict()}), 201

@teacher_bp.route('/api/teacher/exams/<exam_id>', methods=['GET'])
@teacher_required
def api_get_exam(exam_id):
    exam = services().exams.require_owned(exam_id, g.profile.id)
    return jsonify({'ok': True, 'exam': exam.to_dict()})

@teacher_bp.route('/api/teacher/exams/<exam_id>', methods=['PUT'])
@teacher_required
def api_replace_exam(exam_id):
    d = payload()
    exam = services().exams.replace(exam_id, d.get('exam') or {}, g.profile.id, publish=_publish_flag(d))
    log_action('update_exam', {'exam_id': exam.id, 'published': exam.published})
    return jsonify({'ok': True, 'exam': exam.to_dict()})

@teacher_bp.route('/api/teacher/exams/<exam_id>/publish', methods=['POST'])
@teacher_required
def api_publish_exam(exam_id):
    d = payload()
    if 'published' not in d:
        raise ValidationError('missing_published', field='published')
    published = d.get('published')
    if isinstance(published, str):
        published = published.lower() in ('1', 'true', 'yes')
    exam = services().exams.set_published(exam_id, g.profile.id, bool(published))
    log_action('publish_exam', {'exam_id': exam.id, 'published': exam.published})
    return jsonify({'ok': True, 'exam': _exam_summary(exam)})

@teacher_bp.route('/api/teacher/exams/<exam_id>', methods=['DELETE'])
@teacher_required
def api_delete_exam(exam_id):
    svc = services()
    svc.exams.require_owned(exam_id, g.profile.id)
    removed = svc.exams.delete(exam_id)
    log_action('delete_exam', {'exam_id': exam_id, 'submissions_removed': removed})
    return jsonify({'ok': True, 'submissions_removed': removed})

# API Routes - Results and Grading
@teacher_bp.route('/api/teacher/exams/<exam_id>/submissions', methods=['GET'])
@teacher_required
def api_exam_submissions(exam_id):
    svc = services()
    exam = svc.exams.require_owned(exam_id, g.profile.id)
    subs = svc.submissions.for_exam(exam.id)
    return jsonify({
        'ok': True,
        'exam': _exam_summary(exam),
        'submissions': [s.to_dict() for s in subs],
        'stats': submission_stats(subs),
    })

@teacher_bp.route('/api/teacher/submissions/<submission_id>/grade', methods=['POST'])
@teacher_required
def api_grade_submission(submission_id):
    svc = services()
    current = svc.submissions.get(submission_id)
    if current is None:
        return jsonify({'ok': False, 'msg': 'submission_not_found'}), 404
    svc.exams.require_owned(current.exam_id, g.profile.id)
    updated = svc.submissions.record_manual_score(submission_id, payload().get('manual_score'))
    log_action('grade_submission', {'submission_id': submission_id, 'manual_score': updated.manual_score,
                                    'total_score': updated.total_score})
    return jsonify({'ok': True, 'submission': updated.to_dict()})

@teacher_bp.route('/api/teacher/exams/<exam_id>/export.csv', methods=['GET'])
@teacher_required
def api_export_csv(exam_id):
    svc = services()
    exam = svc.exams.require_owned(exam_id, g.profile.id)
    subs = svc.submissions.for_exam(exam.id)
    body = results_csv(exam, subs).encode('utf-8')
    resp = current_app.response_class(body, mimetype='text/csv; charset=utf-8')
    resp.headers['Content-Disposition'] = f'attachment; filename={results_filename(exam)}'
    log_action('download_csv', {'exam_id': exam.id, 'rows': len(subs)})
    return resp
