# Which messages a given viewer gets to see

from datetime import timedelta

from communityhub.models.base import utcnow


def visible_messages(messages, can_moderate, first_login_at, disappear_after_hours, now=None):
    """Filter ``messages`` down to what one viewer may read.

    Deleted messages are dropped for everyone. With a disappearing window,
    non-pinned messages older than the window are dropped. Members (not
    moderators) also lose non-pinned messages created before their first
    login. The result is ordered by creation time.
    """
    now = now or utcnow()
    window_start = None
    if disappear_after_hours:
        try:
            window_start = now - timedelta(hours=disappear_after_hours)
        except OverflowError:
            # Window reaches back past datetime.min: nothing is old enough to hide
            window_start = None
    history_start = None if can_moderate else first_login_at

    visible = []
    for msg in messages:
        if msg.is_deleted:
            continue
        if not msg.is_pinned:
            if window_start is not None and msg.created_at < window_start:
                continue
            if history_start is not None and msg.created_at < history_start:
                continue
        visible.append(msg)
    visible.sort(key=lambda m: m.created_at)
    return visible


def pinned_lane(messages):
    return [m for m in messages if m.is_pinned and not m.is_deleted]
