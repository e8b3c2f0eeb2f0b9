# Persistence operations used by routes and socket handlers
#
# Every function commits its own unit of work. Callers get model instances
# back and serialise them with to_dict().

import logging
import threading
from decimal import Decimal

from sqlalchemy import not_
from sqlalchemy.exc import IntegrityError

from communityhub.extensions import db
from communityhub.functions.errors import NotFound, ValidationFailure
from communityhub.functions.policy import normalize_keyword
from communityhub.models import (
    Member, ProjectUpdate, Message, Reaction, Notification,
    ChatSettings, CommunitySettings, BlockedKeyword
)
from communityhub.models.chat import SETTINGS_ID

logger = logging.getLogger(__name__)

# Serialises observe-then-mutate on reactions within this process; the
# unique constraint on (message_id, member_id) covers anything else.
_reaction_lock = threading.Lock()

REACTION_ADDED = 'added'
REACTION_REMOVED = 'removed'
REACTION_REPLACED = 'replaced'

CHAT_SETTING_FLAGS = ('chat_disabled', 'member_file_send_disabled', 'phone_number_filter_enabled')


# --- MEMBERS ---

def get_member(member_id):
    if not member_id:
        return None
    return db.session.get(Member, member_id)


def require_member(member_id):
    member = get_member(member_id)
    if member is None:
        raise NotFound('Member not found')
    return member


def get_member_by_phone(phone):
    return Member.query.filter_by(phone=phone).first()


def list_members():
    return Member.query.order_by(Member.name.asc()).all()


def create_member(name, phone, role='member', is_active=True):
    member = Member(name=name, phone=phone, role=role, is_active=is_active)
    db.session.add(member)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationFailure('Phone number already registered')
    return member


def update_member(member, **fields):
    for key, value in fields.items():
        setattr(member, key, value)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationFailure('Phone number already registered')
    return member


def delete_member(member):
    # Messages stay in history; everything else owned by the member goes
    Reaction.query.filter_by(member_id=member.id).delete()
    Notification.query.filter(
        (Notification.recipient_id == member.id) | (Notification.sender_id == member.id)
    ).delete(synchronize_session=False)
    db.session.delete(member)
    db.session.commit()


def bulk_create_members(entries):
    # Existing phones (and repeats within the batch) are skipped
    created = []
    seen = set()
    for entry in entries:
        phone = entry['phone']
        if phone in seen or get_member_by_phone(phone):
            continue
        seen.add(phone)
        member = Member(name=entry['name'], phone=phone, role='member', is_active=True)
        db.session.add(member)
        created.append(member)
    db.session.commit()
    return created


def leaderboard(limit):
    return Member.query.filter_by(is_active=True).order_by(
        Member.total_project_value.desc(), Member.name.asc()
    ).limit(limit).all()


def record_project_update(member, projects_added, value_added, project_link):
    value_added = Decimal(str(value_added))
    update = ProjectUpdate(
        member_id=member.id,
        projects_added=projects_added,
        value_added=value_added,
        project_link=project_link,
    )
    db.session.add(update)
    # Additive UPDATE so concurrent increments never overwrite each other
    Member.query.filter_by(id=member.id).update({
        Member.projects_completed: Member.projects_completed + projects_added,
        Member.total_project_value: Member.total_project_value + value_added,
    }, synchronize_session=False)
    db.session.commit()
    db.session.refresh(member)
    return update


def list_project_updates(member_id):
    return ProjectUpdate.query.filter_by(member_id=member_id).order_by(
        ProjectUpdate.created_at.desc()
    ).all()


# --- MESSAGES ---

def create_message(sender_id, content=None, message_type='text', file_url=None,
                   file_name=None, reply_to_id=None, mentions=None):
    if message_type == 'text':
        file_url = file_name = None
    else:
        content = None
    msg = Message(
        sender_id=sender_id,
        content=content,
        type=message_type,
        file_url=file_url,
        file_name=file_name,
        reply_to_id=reply_to_id,
        mentions=mentions or None,
    )
    db.session.add(msg)
    db.session.commit()
    return msg


def get_message(message_id):
    if not message_id:
        return None
    return db.session.get(Message, message_id)


def require_message(message_id):
    msg = get_message(message_id)
    if msg is None or msg.is_deleted:
        raise NotFound('Message not found')
    return msg


def soft_delete_message(message_id):
    # Active -> Deleted in one UPDATE; a deleted message is never left pinned
    updated = Message.query.filter_by(id=message_id).update(
        {Message.is_deleted: True, Message.is_pinned: False}, synchronize_session=False
    )
    db.session.commit()
    if not updated:
        return None
    msg = get_message(message_id)
    db.session.refresh(msg)
    return msg


def toggle_pin(message_id):
    updated = Message.query.filter_by(id=message_id, is_deleted=False).update(
        {Message.is_pinned: not_(Message.is_pinned)}, synchronize_session=False
    )
    db.session.commit()
    if not updated:
        return None
    msg = get_message(message_id)
    db.session.refresh(msg)
    return msg


def list_messages():
    return Message.query.filter_by(is_deleted=False).order_by(
        Message.created_at.asc(), Message.id.asc()
    ).all()


# --- REACTIONS ---

def _toggle_reaction_once(message_id, member_id, emoji):
    existing = Reaction.query.filter_by(message_id=message_id, member_id=member_id).first()
    if existing is not None:
        if existing.emoji == emoji:
            db.session.delete(existing)
            db.session.commit()
            return REACTION_REMOVED
        existing.emoji = emoji
        db.session.commit()
        return REACTION_REPLACED
    db.session.add(Reaction(message_id=message_id, member_id=member_id, emoji=emoji))
    db.session.commit()
    return REACTION_ADDED


def toggle_reaction(message_id, member_id, emoji):
    """Add, remove or replace a member's reaction on a message.

    Same emoji twice removes it; a different emoji replaces the old one.
    Returns one of 'added', 'removed' or 'replaced'.
    """
    with _reaction_lock:
        try:
            return _toggle_reaction_once(message_id, member_id, emoji)
        except IntegrityError:
            # Another writer inserted first; re-read and apply the toggle to its row
            db.session.rollback()
            logger.info('[REACTION] Retrying toggle for message %s member %s', message_id, member_id)
            return _toggle_reaction_once(message_id, member_id, emoji)


def list_reactions(message_id=None):
    query = Reaction.query
    if message_id is not None:
        query = query.filter_by(message_id=message_id)
    return query.all()


# --- SETTINGS ---

def get_chat_settings():
    settings = db.session.get(ChatSettings, SETTINGS_ID)
    if settings is None:
        settings = ChatSettings(id=SETTINGS_ID)
        db.session.add(settings)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            settings = db.session.get(ChatSettings, SETTINGS_ID)
    return settings


def update_chat_settings(**fields):
    settings = get_chat_settings()
    for key, value in fields.items():
        setattr(settings, key, value)
    db.session.commit()
    return settings


def toggle_chat_setting(flag):
    if flag not in CHAT_SETTING_FLAGS:
        raise ValueError(f'unknown chat setting {flag}')
    get_chat_settings()
    column = getattr(ChatSettings, flag)
    ChatSettings.query.filter_by(id=SETTINGS_ID).update({column: not_(column)}, synchronize_session=False)
    db.session.commit()
    settings = get_chat_settings()
    db.session.refresh(settings)
    return settings


def get_community_settings():
    settings = db.session.get(CommunitySettings, SETTINGS_ID)
    if settings is None:
        settings = CommunitySettings(id=SETTINGS_ID)
        db.session.add(settings)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            settings = db.session.get(CommunitySettings, SETTINGS_ID)
    return settings


def update_community_name(name):
    settings = get_community_settings()
    settings.community_name = name
    db.session.commit()
    return settings


# --- BLOCKED KEYWORDS ---

def list_blocked_keywords():
    return BlockedKeyword.query.order_by(BlockedKeyword.created_at.asc()).all()


def add_blocked_keyword(keyword):
    entry = BlockedKeyword(keyword=normalize_keyword(keyword))
    db.session.add(entry)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationFailure('Keyword already blocked')
    return entry


def update_blocked_keyword(keyword_id, keyword):
    entry = db.session.get(BlockedKeyword, keyword_id)
    if entry is None:
        return None
    entry.keyword = normalize_keyword(keyword)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise ValidationFailure('Keyword already blocked')
    return entry


def remove_blocked_keyword(keyword_id):
    deleted = BlockedKeyword.query.filter_by(id=keyword_id).delete()
    db.session.commit()
    return bool(deleted)


# --- NOTIFICATIONS ---

def create_notification(recipient_id, sender_id, message_id, notification_type):
    notification = Notification(
        recipient_id=recipient_id,
        sender_id=sender_id,
        message_id=message_id,
        type=notification_type,
    )
    db.session.add(notification)
    try:
        db.session.commit()
    except IntegrityError:
        # Already notified for this message
        db.session.rollback()
        return None
    return notification


def list_notifications(recipient_id):
    return Notification.query.filter_by(recipient_id=recipient_id).order_by(
        Notification.created_at.desc()
    ).all()


def mark_notifications_read(recipient_id):
    Notification.query.filter_by(recipient_id=recipient_id, is_read=False).update(
        {Notification.is_read: True}, synchronize_session=False
    )
    db.session.commit()


def unread_notification_count(recipient_id):
    return Notification.query.filter_by(recipient_id=recipient_id, is_read=False).count()
