# Member-related models

from decimal import Decimal
from flask_login import UserMixin
from communityhub.extensions import db
from communityhub.models.base import new_id, utcnow, iso


class Member(UserMixin, db.Model):
    # Community member, identified by phone for OTP login
    __tablename__ = 'members'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    name = db.Column(db.String(150), nullable=False)
    phone = db.Column(db.String(15), unique=True, nullable=False)
    role = db.Column(db.String(20), nullable=False, default='member')  # 'admin', 'sub-admin', 'member'
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    restricted_until = db.Column(db.DateTime, nullable=True)
    profile_picture = db.Column(db.String(300), nullable=True)

    # Project stats, only ever increased through ProjectUpdate records
    projects_completed = db.Column(db.Integer, nullable=False, default=0)
    total_project_value = db.Column(db.Numeric(12, 2), nullable=False, default=Decimal('0'))

    # Visibility cutoff for chat history
    first_login_at = db.Column(db.DateTime, nullable=True)

    project_updates = db.relationship('ProjectUpdate', backref='member', lazy=True,
                                      cascade='all, delete-orphan')

    def to_dict(self, private=False):
        data = {
            'id': self.id,
            'name': self.name,
            'role': self.role,
            'isActive': self.is_active,
            'profilePicture': self.profile_picture,
            'projectsCompleted': self.projects_completed,
            'totalProjectValue': str(self.total_project_value or Decimal('0')),
        }
        if private:
            # Phone and moderation state are only shown to the member and to moderators
            data.update({
                'phone': self.phone,
                'restrictedUntil': iso(self.restricted_until),
                'firstLoginAt': iso(self.first_login_at),
            })
        return data


class ProjectUpdate(db.Model):
    # Audit trail of a member's own project stat increments
    __tablename__ = 'project_updates'

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    member_id = db.Column(db.String(36), db.ForeignKey('members.id'), nullable=False)
    projects_added = db.Column(db.Integer, nullable=False)
    value_added = db.Column(db.Numeric(12, 2), nullable=False)
    project_link = db.Column(db.String(500), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'memberId': self.member_id,
            'projectsAdded': self.projects_added,
            'valueAdded': str(self.value_added),
            'projectLink': self.project_link,
            'createdAt': iso(self.created_at),
        }
