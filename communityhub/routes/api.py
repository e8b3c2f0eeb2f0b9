# API routes (members, moderation, chat settings, keywords, projects)

import csv
import io
import math
import os
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from urllib.parse import urlparse

from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required, current_user

from communityhub.functions import store, save_uploaded_file, upload_path, make_thumbnail
from communityhub.functions.errors import AuthorizationFailure, NotFound, ValidationFailure
from communityhub.functions.roles import (
    ROLE_MEMBER, ROLE_SUB_ADMIN, can_act_on, current_capabilities, is_primary_admin,
    moderator_required, primary_admin_required
)
from communityhub.models.base import utcnow
from communityhub.routes.auth import validate_phone
from communityhub.sockets.hub import get_hub, MEMBER_UPDATED, CHAT_SETTINGS_UPDATED

api_bp = Blueprint('api', __name__)

PHONE_COLUMNS = ('phone', 'phone number', 'phone_number', 'mobile')

# Upper bounds for admin-supplied durations, in hours
MAX_RESTRICT_HOURS = 24 * 365
MAX_DISAPPEAR_HOURS = 24 * 365

# Numeric(12, 2) holds values below 10^10
MAX_PROJECT_VALUE = Decimal('1e10')
MAX_PROJECTS_ADDED = 10000


# Helper functions
def _json():
    return request.get_json(silent=True) or {}


def _member_updated(member=None):
    if member is None:
        get_hub().broadcast(MEMBER_UPDATED)
    else:
        get_hub().broadcast(MEMBER_UPDATED, member=member.to_dict())


def _settings_updated(settings):
    get_hub().broadcast(CHAT_SETTINGS_UPDATED, settings=settings.to_dict())


def _protected_target(member_id, error):
    # Load a member an admin wants to act on; the primary admin is off limits to others
    target = store.require_member(member_id)
    if not can_act_on(current_capabilities(), target):
        raise AuthorizationFailure(error)
    return target


def _validate_new_member(name, phone):
    name = (name or '').strip() if isinstance(name, str) else ''
    if not name:
        return None, 'Missing name'
    is_valid, msg = validate_phone(phone)
    if not is_valid:
        return None, msg
    return {'name': name, 'phone': phone.strip()}, ''


def _is_valid_url(value):
    if not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ('http', 'https') and bool(parsed.netloc)


# --- MEMBERS ---

@api_bp.route('/api/members')
@login_required
def list_members():
    # Moderators see phone and restriction details, members the public profile
    private = current_capabilities().can_moderate
    return jsonify([m.to_dict(private=private) for m in store.list_members()])


@api_bp.route('/api/members/<member_id>', methods=['PATCH'])
@moderator_required
def update_member(member_id):
    target = _protected_target(member_id, 'Sub-admins cannot modify the primary admin')
    data = _json()

    fields = {}
    if 'name' in data:
        name = data['name'].strip() if isinstance(data['name'], str) else ''
        if not name:
            raise ValidationFailure('name cannot be empty')
        fields['name'] = name
    if 'phone' in data:
        is_valid, msg = validate_phone(data['phone'])
        if not is_valid:
            raise ValidationFailure(msg)
        if is_primary_admin(target) and data['phone'].strip() != target.phone:
            raise AuthorizationFailure("The primary admin's phone cannot be changed")
        fields['phone'] = data['phone'].strip()
    if 'isActive' in data:
        if not isinstance(data['isActive'], bool):
            raise ValidationFailure('isActive must be true or false')
        if is_primary_admin(target) and not data['isActive']:
            raise AuthorizationFailure('The primary admin cannot be deactivated')
        fields['is_active'] = data['isActive']
    if not fields:
        raise ValidationFailure('No valid fields to update')

    store.update_member(target, **fields)
    _member_updated(target)
    return jsonify(target.to_dict(private=True))


@api_bp.route('/api/members/bulk', methods=['POST'])
@moderator_required
def bulk_add_members():
    entries = _json().get('members')
    if not isinstance(entries, list) or not entries:
        raise ValidationFailure('members must be a non-empty list')

    valid = []
    for i, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict):
            raise ValidationFailure(f'Entry {i}: expected an object with name and phone')
        member, msg = _validate_new_member(entry.get('name'), entry.get('phone'))
        if member is None:
            raise ValidationFailure(f'Entry {i}: {msg}')
        valid.append(member)

    created = store.bulk_create_members(valid)
    _member_updated()
    return jsonify([m.to_dict(private=True) for m in created])


@api_bp.route('/api/members/csv-import', methods=['POST'])
@moderator_required
def csv_import_members():
    file = request.files.get('file')
    if not file or not file.filename:
        raise ValidationFailure('No CSV file uploaded')
    if not (file.filename.lower().endswith('.csv') or file.mimetype == 'text/csv'):
        raise ValidationFailure('Only CSV files are accepted')

    try:
        text = file.read().decode('utf-8-sig')
    except UnicodeDecodeError:
        raise ValidationFailure('CSV parse error: file is not valid UTF-8')

    reader = csv.DictReader(io.StringIO(text))
    if reader.fieldnames:
        reader.fieldnames = [h.strip().lower() for h in reader.fieldnames]

    members, errors = [], []
    try:
        for i, row in enumerate(reader, start=1):
            if not any((v or '').strip() for v in row.values() if isinstance(v, str)):
                continue
            name = (row.get('name') or '').strip()
            phone = next(((row.get(c) or '').strip() for c in PHONE_COLUMNS if (row.get(c) or '').strip()), '')
            if not name or not phone:
                errors.append(f'Row {i}: Missing name or phone')
                continue
            if len(phone) < 10 or len(phone) > 15:
                errors.append(f'Row {i}: Invalid phone number "{phone}"')
                continue
            members.append({'name': name, 'phone': phone})
    except csv.Error as e:
        raise ValidationFailure(f'CSV parse error: {e}')

    if not members:
        return jsonify({
            'error': "No valid members found in CSV. Ensure columns 'name' and 'phone' exist.",
            'errors': errors,
        }), 400

    created = store.bulk_create_members(members)
    _member_updated()
    return jsonify({
        'added': len(created),
        'skipped': len(members) - len(created),
        'errors': errors,
        'total': len(members),
    })


@api_bp.route('/api/members/<member_id>/restrict', methods=['POST'])
@moderator_required
def restrict_member(member_id):
    target = _protected_target(member_id, 'Sub-admins cannot restrict the primary admin')
    hours = _json().get('hours')
    if hours is None:
        hours = 1
    if isinstance(hours, bool):
        raise ValidationFailure('hours must be a number')
    try:
        hours = float(hours)
    except (TypeError, ValueError):
        raise ValidationFailure('hours must be a number')
    if not math.isfinite(hours) or hours <= 0 or hours > MAX_RESTRICT_HOURS:
        raise ValidationFailure(f'hours must be between 0 and {MAX_RESTRICT_HOURS}')

    store.update_member(target, restricted_until=utcnow() + timedelta(hours=hours))
    current_app.logger.info('[MODERATION] %s restricted %s for %sh', current_user.id, target.id, hours)
    _member_updated(target)
    return jsonify(target.to_dict(private=True))


@api_bp.route('/api/members/<member_id>/unrestrict', methods=['POST'])
@moderator_required
def unrestrict_member(member_id):
    target = _protected_target(member_id, 'Sub-admins cannot modify the primary admin')
    store.update_member(target, restricted_until=None)
    _member_updated(target)
    return jsonify(target.to_dict(private=True))


@api_bp.route('/api/members/<member_id>/make-sub-admin', methods=['POST'])
@primary_admin_required
def make_sub_admin(member_id):
    target = store.require_member(member_id)
    if is_primary_admin(target):
        raise ValidationFailure('Cannot change primary admin role')
    store.update_member(target, role=ROLE_SUB_ADMIN)
    _member_updated(target)
    return jsonify(target.to_dict(private=True))


@api_bp.route('/api/members/<member_id>/remove-sub-admin', methods=['POST'])
@primary_admin_required
def remove_sub_admin(member_id):
    target = store.require_member(member_id)
    if target.role != ROLE_SUB_ADMIN:
        raise ValidationFailure('Member is not a sub-admin')
    store.update_member(target, role=ROLE_MEMBER)
    _member_updated(target)
    return jsonify(target.to_dict(private=True))


@api_bp.route('/api/members/<member_id>', methods=['DELETE'])
@moderator_required
def delete_member(member_id):
    target = store.require_member(member_id)
    caps = current_capabilities()
    if is_primary_admin(target):
        raise AuthorizationFailure('Cannot delete the primary admin')
    if target.role == ROLE_SUB_ADMIN and not caps.is_primary_admin:
        raise AuthorizationFailure('Sub-admins cannot delete other sub-admins')
    store.delete_member(target)
    current_app.logger.info('[MODERATION] %s deleted member %s', caps.member_id, member_id)
    _member_updated()
    return jsonify({'success': True})


@api_bp.route('/api/members/profile-picture', methods=['POST'])
@login_required
def upload_profile_picture():
    file = request.files.get('file')
    if not file or not file.filename:
        raise ValidationFailure('No image file uploaded')

    cfg = current_app.config
    file_url = save_uploaded_file(file, cfg['IMAGE_EXTENSIONS'], cfg['UPLOAD_FOLDER'], prefix='profile-')
    if not file_url:
        raise ValidationFailure('Profile picture must be an image')
    filepath = upload_path(file_url, cfg['UPLOAD_FOLDER'])
    if not make_thumbnail(filepath, cfg['PROFILE_PICTURE_SIZE']):
        os.remove(filepath)
        raise ValidationFailure('Profile picture must be an image')

    member = current_user._get_current_object()
    store.update_member(member, profile_picture=file_url)
    _member_updated(member)
    return jsonify(member.to_dict(private=True))


@api_bp.route('/api/members/update-projects', methods=['POST'])
@login_required
def update_projects():
    # Members can only add to their own totals
    data = _json()
    projects_added = data.get('projectsAdded')
    value_added = data.get('valueAdded')
    project_link = data.get('projectLink')

    if isinstance(projects_added, bool) or not isinstance(projects_added, int):
        raise ValidationFailure('projectsAdded must be a whole number')
    if isinstance(value_added, bool) or not isinstance(value_added, (int, float, str)):
        raise ValidationFailure('valueAdded must be a number')
    try:
        value = Decimal(str(value_added))
        if not value.is_finite():
            raise ValidationFailure('valueAdded must be a number')
        if value >= MAX_PROJECT_VALUE:
            raise ValidationFailure(f'valueAdded must be below {MAX_PROJECT_VALUE:f}')
        value = value.quantize(Decimal('0.01'))
    except InvalidOperation:
        raise ValidationFailure('valueAdded must be a number')
    if projects_added < 0 or value < 0:
        raise ValidationFailure('Values cannot be negative')
    if projects_added > MAX_PROJECTS_ADDED:
        raise ValidationFailure(f'projectsAdded cannot exceed {MAX_PROJECTS_ADDED}')
    if projects_added == 0 and value == 0:
        raise ValidationFailure('Must add at least one project or some value')
    if not _is_valid_url(project_link):
        raise ValidationFailure('projectLink must be a valid URL')

    member = current_user._get_current_object()
    store.record_project_update(member, projects_added, value, project_link.strip())
    _member_updated(member)
    return jsonify(member.to_dict(private=True))


@api_bp.route('/api/members/<member_id>/project-updates')
@login_required
def project_updates(member_id):
    return jsonify([u.to_dict() for u in store.list_project_updates(member_id)])


@api_bp.route('/api/leaderboard')
@login_required
def leaderboard():
    top = store.leaderboard(current_app.config['LEADERBOARD_LIMIT'])
    return jsonify([m.to_dict() for m in top])


# --- COMMUNITY AND CHAT SETTINGS ---

@api_bp.route('/api/community-settings', methods=['PATCH'])
@moderator_required
def update_community_settings():
    name = _json().get('communityName')
    name = name.strip() if isinstance(name, str) else ''
    if not name or len(name) > 50:
        raise ValidationFailure('Community name must be between 1 and 50 characters')
    return jsonify(store.update_community_name(name).to_dict())


@api_bp.route('/api/chat-settings')
@login_required
def chat_settings():
    return jsonify(store.get_chat_settings().to_dict())


@api_bp.route('/api/chat-settings/toggle', methods=['POST'])
@moderator_required
def toggle_chat():
    settings = store.toggle_chat_setting('chat_disabled')
    _settings_updated(settings)
    return jsonify(settings.to_dict())


@api_bp.route('/api/chat-settings/disappear', methods=['PATCH'])
@moderator_required
def set_disappear_time():
    hours = _json().get('hours')
    if isinstance(hours, bool):
        raise ValidationFailure('hours must be a whole number')
    if hours in (None, 0, '0', ''):
        hours = None
    else:
        try:
            hours = int(hours)
        except (TypeError, ValueError, OverflowError):
            raise ValidationFailure('hours must be a whole number')
        if hours < 0 or hours > MAX_DISAPPEAR_HOURS:
            raise ValidationFailure(f'hours must be between 0 and {MAX_DISAPPEAR_HOURS}')
        hours = hours or None
    settings = store.update_chat_settings(disappear_after_hours=hours)
    _settings_updated(settings)
    return jsonify(settings.to_dict())


@api_bp.route('/api/chat-settings/toggle-file-send', methods=['POST'])
@moderator_required
def toggle_file_send():
    settings = store.toggle_chat_setting('member_file_send_disabled')
    _settings_updated(settings)
    return jsonify(settings.to_dict())


@api_bp.route('/api/chat-settings/toggle-phone-filter', methods=['POST'])
@moderator_required
def toggle_phone_filter():
    settings = store.toggle_chat_setting('phone_number_filter_enabled')
    _settings_updated(settings)
    return jsonify(settings.to_dict())


# --- BLOCKED KEYWORDS ---

def _keyword_from_body():
    keyword = _json().get('keyword')
    keyword = keyword.strip() if isinstance(keyword, str) else ''
    if not keyword:
        raise ValidationFailure('Keyword is required')
    return keyword


@api_bp.route('/api/blocked-keywords')
@moderator_required
def list_blocked_keywords():
    return jsonify([k.to_dict() for k in store.list_blocked_keywords()])


@api_bp.route('/api/blocked-keywords', methods=['POST'])
@moderator_required
def add_blocked_keyword():
    return jsonify(store.add_blocked_keyword(_keyword_from_body()).to_dict())


@api_bp.route('/api/blocked-keywords/<keyword_id>', methods=['PATCH'])
@moderator_required
def update_blocked_keyword(keyword_id):
    entry = store.update_blocked_keyword(keyword_id, _keyword_from_body())
    if entry is None:
        raise NotFound('Keyword not found')
    return jsonify(entry.to_dict())


@api_bp.route('/api/blocked-keywords/<keyword_id>', methods=['DELETE'])
@moderator_required
def remove_blocked_keyword(keyword_id):
    if not store.remove_blocked_keyword(keyword_id):
        raise NotFound('Keyword not found')
    return jsonify({'success': True})
