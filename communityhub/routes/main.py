# Chat routes (messages, reactions, notifications, uploads)

import os

from flask import Blueprint, current_app, jsonify, request, send_from_directory
from flask_login import login_required, current_user
from sqlalchemy.exc import SQLAlchemyError

from communityhub.extensions import db
from communityhub.functions import store, save_uploaded_file, is_image_file
from communityhub.functions.errors import (
    AuthorizationFailure, NotFound, PolicyRejection, ValidationFailure
)
from communityhub.functions.mentions import extract_mentions, resolve_fanout
from communityhub.functions.policy import (
    REJECTION_MESSAGES, check_file_message, check_text_message
)
from communityhub.functions.roles import (
    can_act_on, current_capabilities, moderator_required
)
from communityhub.functions.visibility import visible_messages
from communityhub.sockets.hub import (
    get_hub, get_presence, NEW_MESSAGE, MESSAGE_DELETED, MESSAGE_PINNED, NEW_REACTION, NOTIFICATION
)

main_bp = Blueprint('main', __name__)


# Helper functions
def _reject(reason):
    current_app.logger.info('[POLICY] Message from %s rejected: %s', current_user.id, reason)
    raise PolicyRejection(reason, REJECTION_MESSAGES[reason])


def _reply_target(reply_to_id):
    if not reply_to_id:
        return None
    return store.require_message(reply_to_id)


def _publish(msg, content, reply_to, roster=()):
    # Message is already stored: broadcast it, then fan out notifications.
    # Notifications are best effort, a failure here never fails the send.
    # `roster` is the member list the mentions were resolved against.
    hub = get_hub()
    hub.broadcast(NEW_MESSAGE, message=msg.to_dict())

    try:
        targets = resolve_fanout(content, roster, msg.sender_id, reply_to)
        for target in targets:
            notification = store.create_notification(target.recipient_id, msg.sender_id, msg.id, target.type)
            if notification is not None:
                hub.broadcast(NOTIFICATION, recipientId=target.recipient_id, notification=notification.to_dict())
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error('[NOTIFY] Notifications for message %s failed: %s', msg.id, e)


def _can_delete(actor, msg):
    # Sub-admins may not delete the primary admin's messages
    return can_act_on(actor, store.get_member(msg.sender_id))


@main_bp.route('/api/online-count')
@login_required
def online_count():
    return jsonify({'count': get_presence().online_count()})


@main_bp.route('/api/community-settings')
def community_settings():
    # Public: the login screen shows the community name
    return jsonify(store.get_community_settings().to_dict())


# --- MESSAGES ---

@main_bp.route('/api/messages')
@login_required
def list_messages():
    caps = current_capabilities()
    settings = store.get_chat_settings()
    messages = visible_messages(
        store.list_messages(),
        can_moderate=caps.can_moderate,
        first_login_at=current_user.first_login_at,
        disappear_after_hours=settings.disappear_after_hours,
    )
    return jsonify([m.to_dict() for m in messages])


@main_bp.route('/api/messages', methods=['POST'])
@login_required
def send_message():
    data = request.get_json(silent=True) or {}
    content = data.get('content')
    if not isinstance(content, str) or not content.strip():
        raise ValidationFailure('content is required')
    content = content.strip()

    caps = current_capabilities()
    settings = store.get_chat_settings()
    reason = check_text_message(caps, settings, store.list_blocked_keywords(), content)
    if reason:
        _reject(reason)

    reply_to = _reply_target(data.get('replyToId'))
    roster = store.list_members()
    mentioned = extract_mentions(content, roster, caps.member_id)
    msg = store.create_message(
        caps.member_id,
        content=content,
        message_type='text',
        reply_to_id=reply_to.id if reply_to else None,
        mentions=[m.name for m in mentioned],
    )
    _publish(msg, content, reply_to, roster)
    return jsonify(msg.to_dict())


@main_bp.route('/api/messages/upload', methods=['POST'])
@login_required
def upload_message_file():
    file = request.files.get('file')
    if not file or not file.filename:
        raise ValidationFailure('No file uploaded')

    caps = current_capabilities()
    reason = check_file_message(caps, store.get_chat_settings())
    if reason:
        _reject(reason)

    reply_to = _reply_target(request.form.get('replyToId'))
    cfg = current_app.config
    file_url = save_uploaded_file(file, cfg['MESSAGE_FILE_EXTENSIONS'], cfg['UPLOAD_FOLDER'])
    if not file_url:
        raise ValidationFailure('Only images and PDF files can be shared')

    message_type = 'image' if is_image_file(file.filename, cfg['IMAGE_EXTENSIONS']) else 'file'
    msg = store.create_message(
        caps.member_id,
        message_type=message_type,
        file_url=file_url,
        file_name=file.filename,
        reply_to_id=reply_to.id if reply_to else None,
    )
    _publish(msg, None, reply_to)
    return jsonify(msg.to_dict())


@main_bp.route('/api/messages/<message_id>/pin', methods=['POST'])
@moderator_required
def pin_message(message_id):
    msg = store.toggle_pin(message_id)
    if msg is None:
        raise NotFound('Message not found')
    get_hub().broadcast(MESSAGE_PINNED, messageId=msg.id, isPinned=msg.is_pinned)
    return jsonify({'success': True, 'isPinned': msg.is_pinned})


@main_bp.route('/api/messages/<message_id>', methods=['DELETE'])
@moderator_required
def delete_message(message_id):
    msg = store.require_message(message_id)
    if not _can_delete(current_capabilities(), msg):
        raise AuthorizationFailure('Sub-admins cannot delete primary admin messages')
    store.soft_delete_message(msg.id)
    get_hub().broadcast(MESSAGE_DELETED, messageId=msg.id)
    return jsonify({'success': True})


@main_bp.route('/api/messages/bulk-delete', methods=['POST'])
@moderator_required
def bulk_delete_messages():
    data = request.get_json(silent=True) or {}
    message_ids = data.get('messageIds')
    if not isinstance(message_ids, list) or not message_ids:
        raise ValidationFailure('No messages selected')

    caps = current_capabilities()
    deleted, skipped = [], 0
    for message_id in message_ids:
        msg = store.get_message(message_id)
        if msg is None or msg.is_deleted:
            continue
        if not _can_delete(caps, msg):
            skipped += 1
            continue
        store.soft_delete_message(msg.id)
        deleted.append(msg.id)

    get_hub().broadcast(MESSAGE_DELETED, messageIds=deleted)
    return jsonify({'success': True, 'deleted': len(deleted), 'skipped': skipped})


# --- REACTIONS ---

@main_bp.route('/api/reactions')
@login_required
def list_reactions():
    return jsonify([r.to_dict() for r in store.list_reactions()])


@main_bp.route('/api/reactions', methods=['POST'])
@login_required
def toggle_reaction():
    data = request.get_json(silent=True) or {}
    emoji = data.get('emoji')
    if not isinstance(emoji, str) or not emoji.strip():
        raise ValidationFailure('reaction not specified')
    msg = store.require_message(data.get('messageId'))

    action = store.toggle_reaction(msg.id, current_user.id, emoji.strip())
    get_hub().broadcast(NEW_REACTION, messageId=msg.id)
    return jsonify({'success': True, 'action': action})


# --- NOTIFICATIONS ---

@main_bp.route('/api/notifications')
@login_required
def list_notifications():
    return jsonify([n.to_dict() for n in store.list_notifications(current_user.id)])


@main_bp.route('/api/notifications/unread-count')
@login_required
def unread_notifications():
    return jsonify({'count': store.unread_notification_count(current_user.id)})


@main_bp.route('/api/notifications/mark-read', methods=['POST'])
@login_required
def mark_notifications_read():
    store.mark_notifications_read(current_user.id)
    return jsonify({'success': True})


# --- FILES ---

@main_bp.route('/uploads/<path:filename>')
@login_required
def uploaded_file(filename):
    # Serve uploaded file, flat folder only
    return send_from_directory(current_app.config['UPLOAD_FOLDER'], os.path.basename(filename))
