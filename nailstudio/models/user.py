from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from datetime import datetime
from nailstudio import db, login_manager


class User(UserMixin, db.Model):
    """Identity record: the credentials behind a customer or admin profile"""
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    # Relationships
    profile = db.relationship('UserProfile', backref='user', uselist=False, cascade='all, delete-orphan')
    appointments = db.relationship('Appointment', backref='user', lazy='dynamic')

    def __init__(self, email, password):
        self.email = email
        self.set_password(password)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def get_full_name(self):
        if self.profile and self.profile.full_name:
            return self.profile.full_name
        return self.email

    def __repr__(self):
        return f'<User {self.email}>'


class UserProfile(db.Model):
    __tablename__ = 'user_profiles'

    id = db.Column(db.Integer, db.ForeignKey('users.id'), primary_key=True)
    full_name = db.Column(db.String(100), nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def __init__(self, id=None, full_name=None, phone=None, is_admin=False):
        self.id = id
        self.full_name = full_name
        self.phone = phone
        self.is_admin = is_admin

    def __repr__(self):
        return f'<UserProfile {self.id}: {self.full_name}>'


@login_manager.user_loader
def load_user(id):
    user = db.session.get(User, int(id))
    if user is None:
        # The session points at an identity that no longer exists
        from nailstudio.auth.session import identity_deleted
        from flask import current_app
        identity_deleted.send(current_app._get_current_object(), user_id=id)
    return user
