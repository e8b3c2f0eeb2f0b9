# Content-related models: messages, reactions, notifications

from communityhub.extensions import db
from communityhub.models.base import new_id, utcnow, iso


class Message(db.Model):
    # Chat message. Text messages carry content, image/file messages a file reference
    __tablename__ = 'messages'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    # No FK: history outlives members removed by an admin
    sender_id = db.Column(db.String(36), nullable=False, index=True)
    content = db.Column(db.Text, nullable=True)
    type = db.Column(db.String(20), nullable=False, default='text')  # 'text', 'image', 'file'
    file_url = db.Column(db.String(500), nullable=True)
    file_name = db.Column(db.String(200), nullable=True)
    is_pinned = db.Column(db.Boolean, nullable=False, default=False)
    is_deleted = db.Column(db.Boolean, nullable=False, default=False)
    # Reply target (self-referential FK to another message)
    reply_to_id = db.Column(db.String(36), db.ForeignKey('messages.id'), nullable=True)
    mentions = db.Column(db.JSON, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    # Relationships
    reactions = db.relationship('Reaction', backref='message', lazy=True, cascade='all, delete-orphan')

    def to_dict(self):
        return {
            'id': self.id,
            'senderId': self.sender_id,
            'content': self.content,
            'type': self.type,
            'fileUrl': self.file_url,
            'fileName': self.file_name,
            'isPinned': self.is_pinned,
            'isDeleted': self.is_deleted,
            'replyToId': self.reply_to_id,
            'mentions': self.mentions,
            'createdAt': iso(self.created_at),
        }


class Reaction(db.Model):
    # One emoji per member per message
    __tablename__ = 'reactions'
    __table_args__ = (db.UniqueConstraint('message_id', 'member_id', name='uq_reaction_message_member'),)

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    message_id = db.Column(db.String(36), db.ForeignKey('messages.id'), nullable=False)
    member_id = db.Column(db.String(36), db.ForeignKey('members.id'), nullable=False)
    emoji = db.Column(db.String(50), nullable=False)

    def to_dict(self):
        return {
            'id': self.id,
            'messageId': self.message_id,
            'memberId': self.member_id,
            'emoji': self.emoji,
        }


class Notification(db.Model):
    # Reply/mention notification for a single recipient
    __tablename__ = 'notifications'
    __table_args__ = (
        db.UniqueConstraint('recipient_id', 'message_id', 'type', name='uq_notification_recipient_message_type'),
    )

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    recipient_id = db.Column(db.String(36), db.ForeignKey('members.id'), nullable=False, index=True)
    sender_id = db.Column(db.String(36), db.ForeignKey('members.id'), nullable=False)
    message_id = db.Column(db.String(36), db.ForeignKey('messages.id'), nullable=False)
    type = db.Column(db.String(20), nullable=False)  # 'reply', 'mention'
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'recipientId': self.recipient_id,
            'senderId': self.sender_id,
            'messageId': self.message_id,
            'type': self.type,
            'isRead': self.is_read,
            'createdAt': iso(self.created_at),
        }
