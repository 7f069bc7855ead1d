import json
from flask import Blueprint, request, jsonify, Response, current_app, g
from availability import exam_status, ensure_can_enter, status_ticker, ExamStatus
from entities import utcnow
from errors import AlreadySubmitted, ValidationError
from utils import log_action, payload, services, student_required

student_bp = Blueprint('student', __name__)

def _visible_exams(svc, profile):
    """(exam, submission-or-None) for every published exam targeted at the student's classroom."""
    exams = svc.exams.for_classroom(profile.classroom)
    subs = {s.exam_id: s for s in svc.submissions.for_student(profile.id)}
    return [(e, subs.get(e.id)) for e in exams]

def _require_visible(svc, profile, exam_id):
    exam = svc.exams.get(exam_id)
    if not exam or not exam.published or profile.classroom not in exam.target_classrooms:
        return None
    return exam

def _answers_from(d):
    answers = d.get('answers', {})
    if not isinstance(answers, dict):
        raise ValidationError('bad_answers', field='answers')
    return answers

# API Routes
@student_bp.route('/api/student/exams', methods=['GET'])
@student_required
def api_student_exams():
    svc = services()
    now = utcnow()
    out = []
    for exam, sub in _visible_exams(svc, g.profile):
        status = exam_status(exam, sub, now)
        out.append({
            'id': exam.id,
            'title': exam.title,
            'description': exam.description,
            'subject': exam.subject,
            'num_questions': len(exam.questions),
            'time_limit_minutes': exam.time_limit_minutes,
            'valid_from': exam.valid_from.isoformat() if exam.valid_from else None,
            'valid_until': exam.valid_until.isoformat() if exam.valid_until else None,
            'status': status.value,
            'can_enter': status is ExamStatus.ACTIVE,
            'submission': {'total_score': sub.total_score, 'graded': sub.graded} if sub else None,
        })
    return jsonify({'ok': True, 'server_now': now.isoformat(), 'exams': out})

@student_bp.route('/api/student/exam_status_stream')
@student_required
def api_exam_status_stream():
    """Server-sent events with the status of every visible exam, once per tick."""
    app = current_app._get_current_object()
    svc = services()
    profile = g.profile
    interval = app.config['STATUS_TICK_SECONDS']
    limit = request.args.get('ticks', type=int)

    def load_entries():
        with app.app_context():
            return _visible_exams(svc, profile)

    def event_stream():
        for snapshot in status_ticker(load_entries, interval=interval, limit=limit):
            yield f"data: {json.dumps(snapshot)}\n\n"
    headers = {'Content-Type': 'text/event-stream', 'Cache-Control': 'no-cache', 'Connection': 'keep-alive'}
    return Response(event_stream(), headers=headers)

@student_bp.route('/api/student/exams/<exam_id>/start', methods=['POST'])
@student_required
def api_start_exam(exam_id):
    svc = services()
    profile = g.profile
    exam = _require_visible(svc, profile, exam_id)
    if not exam:
        return jsonify({'ok': False, 'msg': 'exam_not_found'}), 404
    attempt = svc.attempts.get(exam.id, profile.id)
    if attempt is None:
        # the list view may be stale; gate again against the clock right now
        ensure_can_enter(exam, svc.submissions.find(exam.id, profile.id), utcnow())
        attempt = svc.attempts.start(exam, profile)
        log_action('start_exam', {'exam_id': exam.id})
    return jsonify({
        'ok': True,
        'exam': exam.student_view(),
        'started_at': attempt.started_at.isoformat(),
        'remaining_seconds': attempt.remaining_seconds(),
        'answers': dict(attempt.answers),
    })

@student_bp.route('/api/student/exams/<exam_id>/answers', methods=['POST'])
@student_required
def api_save_answers(exam_id):
    svc = services()
    attempt = svc.attempts.get(exam_id, g.profile.id)
    if attempt is None:
        return jsonify({'ok': False, 'msg': 'attempt_not_found'}), 404
    saved = attempt.record_answers(_answers_from(payload()))
    return jsonify({'ok': True, 'answers': saved, 'remaining_seconds': attempt.remaining_seconds()})

@student_bp.route('/api/student/exams/<exam_id>/submit', methods=['POST'])
@student_required
def api_submit_exam(exam_id):
    svc = services()
    profile = g.profile
    answers = _answers_from(payload())
    attempt = svc.attempts.get(exam_id, profile.id)
    if attempt is None:
        if svc.submissions.find(exam_id, profile.id):
            raise AlreadySubmitted()
        return jsonify({'ok': False, 'msg': 'attempt_not_found'}), 404
    submission = attempt.submit(answers, trigger='manual')
    log_action('submit_exam', {'exam_id': exam_id, 'auto_score': submission.auto_score})
    return jsonify({'ok': True, 'submission_id': submission.id, 'auto_score': submission.auto_score,
                    'total_score': submission.total_score})

@student_bp.route('/api/student/submissions', methods=['GET'])
@student_required
def api_my_submissions():
    """Current student's submissions with their scores."""
    svc = services()
    out = []
    for s in svc.submissions.for_student(g.profile.id):
        exam = svc.exams.get(s.exam_id)
        out.append({
            'id': s.id,
            'exam_id': s.exam_id,
            'exam_title': exam.title if exam else s.exam_id,
            'max_score': exam.max_score if exam else None,
            'auto_score': s.auto_score,
            'manual_score': s.manual_score,
            'total_score': s.total_score,
            'graded': s.graded,
            'submitted_at': s.submitted_at.isoformat(),
        })
    return jsonify({'ok': True, 'submissions': out})
