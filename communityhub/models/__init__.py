# Models package
# Import all models here for convenience

from communityhub.models.member import Member, ProjectUpdate
from communityhub.models.chat import ChatSettings, CommunitySettings, BlockedKeyword
from communityhub.models.content import Message, Reaction, Notification

__all__ = [
    'Member', 'ProjectUpdate',
    'ChatSettings', 'CommunitySettings', 'BlockedKeyword',
    'Message', 'Reaction', 'Notification'
]
