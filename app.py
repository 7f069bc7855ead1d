import threading
from datetime import datetime, timezone
from flask import Flask, jsonify, has_app_context
from config import Config
from models import db
from auth import AuthService
from errors import ExamForgeError
from exams import ExamService
from logging_config import configure_logging
from store import SqlDocumentStore
from submissions import AttemptRegistry, SubmissionService
from utils import add_log, handle_error
from admin_routes import admin_bp
from auth_routes import auth_bp
from student_routes import student_bp
from teacher_routes import teacher_bp


class Services:
    """Everything the route layer needs, stored in app.extensions['examforge']."""

    def __init__(self, store, auth, exams, submissions, attempts):
        self.store = store
        self.auth = auth
        self.exams = exams
        self.submissions = submissions
        self.attempts = attempts


def create_app(overrides=None, store=None, timer_factory=threading.Timer):
    """Build the Flask app. ``store`` replaces the SQL document store (tests use the in-memory one)."""
    logger = configure_logging(Config.LOG_LEVEL)

    app = Flask(__name__)
    app.secret_key = Config.SECRET_KEY
    app.config['SQLALCHEMY_DATABASE_URI'] = Config.get_database_uri()
    app.config['SQLALCHEMY_TRACK_MODIFICATIONS'] = Config.SQLALCHEMY_TRACK_MODIFICATIONS
    app.config['STATUS_TICK_SECONDS'] = Config.STATUS_TICK_SECONDS
    app.config['ADMIN_EMAIL'] = Config.ADMIN_EMAIL
    if overrides:
        app.config.update(overrides)

    # Initialize database
    db.init_app(app)

    store = store or SqlDocumentStore()
    submissions = SubmissionService(store)

    def persist_attempt(attempt, answers, now):
        # timer-triggered hand-ins run outside any request
        def write():
            submission = submissions.submit(attempt.exam, attempt.student, answers, now)
            add_log(attempt.student.id, attempt.student.name, 'student', 'submission_recorded',
                    {'exam_id': attempt.exam.id, 'auto_score': submission.auto_score})
            return submission
        if has_app_context():
            return write()
        with app.app_context():
            return write()

    attempts = AttemptRegistry(
        persist_attempt,
        timer_factory=timer_factory,
        has_submission=lambda exam_id, student_id: submissions.find(exam_id, student_id) is not None,
    )
    app.extensions['examforge'] = Services(
        store=store,
        auth=AuthService(store, admin_email=app.config['ADMIN_EMAIL']),
        exams=ExamService(store, submissions, attempts),
        submissions=submissions,
        attempts=attempts,
    )

    # Register blueprints
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(student_bp)
    app.register_blueprint(teacher_bp)
    app.register_error_handler(ExamForgeError, handle_error)

    @app.route('/')
    def home():
        return jsonify({'ok': True, 'service': 'examforge'})

    # Server time endpoint (UTC) so clients can align their countdowns
    @app.route('/api/server_time')
    def server_time():
        now = datetime.now(timezone.utc)
        return jsonify({'ok': True, 'server_time_utc': now.isoformat()})

    with app.app_context():
        db.create_all()
    logger.info("ExamForge app ready (database: %s)", app.config['SQLALCHEMY_DATABASE_URI'].split(':', 1)[0])
    return app


# Run the application
if __name__ == '__main__':
    create_app().run(debug=True)
