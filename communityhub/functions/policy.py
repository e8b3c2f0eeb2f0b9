# Moderation checks run before a message is stored
#
# Pure functions: the caller passes the sender's capabilities, the chat
# settings snapshot and the blocked keyword list. Each check returns None
# when the message may go out, otherwise a rejection reason code.

import re

from communityhub.models.base import utcnow

REASON_RESTRICTED = 'restricted'
REASON_CHAT_DISABLED = 'chat_disabled'
REASON_BLOCKED_KEYWORD = 'blocked_keyword'
REASON_PHONE_NUMBER = 'phone_number'
REASON_FILE_SHARING_DISABLED = 'file_sharing_disabled'

REJECTION_MESSAGES = {
    REASON_RESTRICTED: 'You are restricted from sending messages',
    REASON_CHAT_DISABLED: 'Chat is disabled',
    REASON_BLOCKED_KEYWORD: 'Your message contains a restricted word and cannot be sent.',
    REASON_PHONE_NUMBER: 'Sharing phone numbers is not allowed in this chat.',
    REASON_FILE_SHARING_DISABLED: 'File sharing is currently disabled for members.',
}

# Digit groupings that look like a phone number. Deliberately broad.
PHONE_PATTERNS = [
    re.compile(r'\b\d{10,13}\b', re.ASCII),
    re.compile(r'\b\d{3}[\s\-.]\d{3}[\s\-.]\d{4}\b', re.ASCII),
    re.compile(r'\+\d{1,3}[\s\-]?\d{6,12}\b', re.ASCII),
    re.compile(r'\b\d{4}[\s\-]\d{3}[\s\-]\d{3}\b', re.ASCII),
    re.compile(r'\b\d{5}[\s\-]\d{5}\b', re.ASCII),
]
_SEPARATORS = re.compile(r'[\s\-().+]')
_LONG_DIGIT_RUN = re.compile(r'\d{10,}', re.ASCII)


def contains_phone_number(text):
    if not text:
        return False
    if any(p.search(text) for p in PHONE_PATTERNS):
        return True
    return _LONG_DIGIT_RUN.search(_SEPARATORS.sub('', text)) is not None


def normalize_keyword(keyword):
    return (keyword or '').strip().lower()


def find_blocked_keyword(content, keywords):
    """Return the first blocked keyword contained in ``content``, or None.

    ``keywords`` may be plain strings or objects with a ``keyword`` attribute;
    both are compared in their normalised (trimmed, lower-case) form.
    """
    lowered = (content or '').lower()
    for entry in keywords:
        keyword = normalize_keyword(getattr(entry, 'keyword', entry))
        if keyword and keyword in lowered:
            return keyword
    return None


def _is_restricted(sender, now):
    until = sender.restricted_until
    return until is not None and until > now


def _gate(sender, settings, now):
    # Checks shared by text and file messages
    if _is_restricted(sender, now):
        return REASON_RESTRICTED
    if settings.chat_disabled and not sender.can_moderate:
        return REASON_CHAT_DISABLED
    return None


def check_text_message(sender, settings, keywords, content, now=None):
    reason = _gate(sender, settings, now or utcnow())
    if reason:
        return reason
    if sender.can_moderate:
        return None
    if find_blocked_keyword(content, keywords):
        return REASON_BLOCKED_KEYWORD
    if settings.phone_number_filter_enabled and contains_phone_number(content):
        return REASON_PHONE_NUMBER
    return None


def check_file_message(sender, settings, now=None):
    reason = _gate(sender, settings, now or utcnow())
    if reason:
        return reason
    if settings.member_file_send_disabled and not sender.can_moderate:
        return REASON_FILE_SHARING_DISABLED
    return None
