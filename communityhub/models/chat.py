# Chat-wide settings and moderation models
from communityhub.extensions import db
from communityhub.models.base import new_id, utcnow, iso

SETTINGS_ID = 'global'


class ChatSettings(db.Model):
    # Singleton row, created lazily with defaults
    __tablename__ = 'chat_settings'

    id = db.Column(db.String(20), primary_key=True, default=SETTINGS_ID)
    chat_disabled = db.Column(db.Boolean, nullable=False, default=False)
    disappear_after_hours = db.Column(db.Integer, nullable=True)  # None = messages never disappear
    member_file_send_disabled = db.Column(db.Boolean, nullable=False, default=False)
    phone_number_filter_enabled = db.Column(db.Boolean, nullable=False, default=False)

    def to_dict(self):
        return {
            'id': self.id,
            'chatDisabled': self.chat_disabled,
            'disappearAfterHours': self.disappear_after_hours,
            'memberFileSendDisabled': self.member_file_send_disabled,
            'phoneNumberFilterEnabled': self.phone_number_filter_enabled,
        }


class CommunitySettings(db.Model):
    # Singleton row holding the community display name
    __tablename__ = 'community_settings'

    id = db.Column(db.String(20), primary_key=True, default=SETTINGS_ID)
    community_name = db.Column(db.String(50), nullable=False, default='Community Hub')

    def to_dict(self):
        return {'id': self.id, 'communityName': self.community_name}


class BlockedKeyword(db.Model):
    # Lower-cased, trimmed substring that non-moderators cannot send
    __tablename__ = 'blocked_keywords'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    keyword = db.Column(db.String(200), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {'id': self.id, 'keyword': self.keyword, 'createdAt': iso(self.created_at)}
