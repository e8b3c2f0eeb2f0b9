# Role checks, evaluated once per request and passed down

from collections import namedtuple
from functools import wraps

from flask import current_app
from flask_login import current_user, login_required

from communityhub.functions.errors import AuthorizationFailure

ROLE_ADMIN = 'admin'
ROLE_SUB_ADMIN = 'sub-admin'
ROLE_MEMBER = 'member'
MODERATOR_ROLES = (ROLE_ADMIN, ROLE_SUB_ADMIN)

Capabilities = namedtuple('Capabilities', [
    'member_id', 'role', 'can_moderate', 'is_primary_admin', 'restricted_until'
])


def is_primary_admin(member, primary_admin_phone=None):
    if member is None:
        return False
    if primary_admin_phone is None:
        primary_admin_phone = current_app.config['PRIMARY_ADMIN_PHONE']
    return member.phone == primary_admin_phone


def capabilities_for(member, primary_admin_phone=None):
    return Capabilities(
        member_id=member.id,
        role=member.role,
        can_moderate=member.role in MODERATOR_ROLES,
        is_primary_admin=member.role == ROLE_ADMIN and is_primary_admin(member, primary_admin_phone),
        restricted_until=member.restricted_until,
    )


def current_capabilities():
    return capabilities_for(current_user._get_current_object())


def can_act_on(actor, target, primary_admin_phone=None):
    # Nobody but the primary admin touches the primary admin
    if is_primary_admin(target, primary_admin_phone):
        return actor.is_primary_admin
    return True


def moderator_required(view):
    # Admin or sub-admin
    @wraps(view)
    @login_required
    def wrapper(*args, **kwargs):
        if not current_capabilities().can_moderate:
            raise AuthorizationFailure('Admin only')
        return view(*args, **kwargs)
    return wrapper


def primary_admin_required(view):
    @wraps(view)
    @login_required
    def wrapper(*args, **kwargs):
        if not current_capabilities().is_primary_admin:
            raise AuthorizationFailure('Primary admin only')
        return view(*args, **kwargs)
    return wrapper
