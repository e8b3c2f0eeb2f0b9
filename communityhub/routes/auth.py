# Authentication routes: phone + one-time code over WhatsApp

from flask import Blueprint, current_app, jsonify, request, session
from flask_login import login_user, logout_user, current_user, login_required

from communityhub.functions import store
from communityhub.functions.errors import (
    AuthorizationFailure, CollaboratorFailure, NotFound, ValidationFailure
)
from communityhub.models.base import utcnow

auth_bp = Blueprint('auth', __name__)


def validate_phone(phone):
    # Phone numbers are stored as typed, 10 to 15 characters
    if not isinstance(phone, str):
        return False, 'phone is required'
    phone = phone.strip()
    if len(phone) < 10 or len(phone) > 15:
        return False, 'phone should be between 10 and 15 characters long'
    return True, ''


def validate_otp(otp):
    if not isinstance(otp, str) or len(otp) != 4:
        return False, 'otp should be exactly 4 characters long'
    return True, ''


@auth_bp.route('/api/auth/request-otp', methods=['POST'])
def request_otp():
    data = request.get_json(silent=True) or {}
    phone = data.get('phone')
    is_valid, msg = validate_phone(phone)
    if not is_valid:
        raise ValidationFailure(msg)
    phone = phone.strip()

    member = store.get_member_by_phone(phone)
    if not member:
        contact = current_app.config['JOIN_CONTACT_PHONE']
        raise NotFound(f'Phone number not registered. Contact our team on WhatsApp at {contact} to join.')
    if not member.is_active:
        raise AuthorizationFailure('This account has been deactivated')

    otp_store = current_app.extensions['communityhub.otp_store']
    code = otp_store.issue(phone)
    sender = current_app.extensions['communityhub.otp_sender']
    if not sender(phone, code):
        # Don't leave a code behind that the member never received
        otp_store.discard(phone)
        raise CollaboratorFailure('Failed to send OTP via WhatsApp. Please try again.')

    return jsonify({'message': 'OTP sent to your WhatsApp'})


@auth_bp.route('/api/auth/verify-otp', methods=['POST'])
def verify_otp():
    data = request.get_json(silent=True) or {}
    phone, otp = data.get('phone'), data.get('otp')
    for is_valid, msg in (validate_phone(phone), validate_otp(otp)):
        if not is_valid:
            raise ValidationFailure(msg)
    phone = phone.strip()

    otp_store = current_app.extensions['communityhub.otp_store']
    if not otp_store.verify(phone, otp):
        raise ValidationFailure('Invalid or expired OTP')

    member = store.get_member_by_phone(phone)
    if not member:
        raise NotFound('Member not found')
    if not member.is_active:
        raise AuthorizationFailure('This account has been deactivated')
    if member.first_login_at is None:
        # Set once: history before this instant stays hidden for the member
        store.update_member(member, first_login_at=utcnow())

    session.permanent = True
    login_user(member)
    current_app.logger.info('[AUTH] Member %s logged in', member.id)
    return jsonify(member.to_dict(private=True))


@auth_bp.route('/api/auth/me')
@login_required
def me():
    return jsonify(current_user.to_dict(private=True))


@auth_bp.route('/api/auth/logout', methods=['POST'])
def logout():
    # Logout handler
    logout_user()
    session.clear()
    return jsonify({'message': 'Logged out'})
