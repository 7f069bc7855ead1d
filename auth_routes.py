from flask import Blueprint, jsonify, session
from errors import AuthError
from utils import add_log, payload, services, current_profile

auth_bp = Blueprint('auth', __name__)

def _start_session(profile):
    session.clear()
    session['user_id'] = profile.id
    session['role'] = profile.role.value
    session['name'] = profile.name

def _profile_json(profile):
    return {'ok': True, 'user': profile.to_dict()}

@auth_bp.route('/api/auth/register', methods=['POST'])
def api_register():
    d = payload()
    profile = services().auth.register(
        d.get('email', ''),
        d.get('password', ''),
        d.get('name', ''),
        role=d.get('role', 'STUDENT'),
        student_code=d.get('student_code'),
        teacher_code=d.get('teacher_code'),
        classroom=d.get('classroom'),
    )
    _start_session(profile)
    add_log(profile.id, profile.name, profile.role.value.lower(), 'register', {'email': profile.email})
    return jsonify(_profile_json(profile)), 201

@auth_bp.route('/api/auth/login', methods=['POST'])
def api_login():
    d = payload()
    email = d.get('email', '')
    try:
        profile = services().auth.login(email, d.get('password', ''))
    except AuthError as e:
        add_log(None, email, None, 'login_failed', {'reason': e.code})
        raise
    _start_session(profile)
    add_log(profile.id, profile.name, profile.role.value.lower(), 'login', {})
    return jsonify(_profile_json(profile))

@auth_bp.route('/api/auth/logout', methods=['POST'])
def api_logout():
    add_log(session.get('user_id'), session.get('name'), session.get('role'), 'logout', {})
    session.clear()
    return jsonify({'ok': True})

@auth_bp.route('/api/auth/me', methods=['GET'])
def api_me():
    return jsonify(_profile_json(current_profile()))
