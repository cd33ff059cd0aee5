from nailstudio import db
from datetime import datetime
import json
from nailstudio.utils.json_utils import DecimalEncoder

ENTITY_LABELS = {
    'appointment': 'Appointment',
    'service': 'Service',
    'time_slot': 'Time slot',
    'user': 'User',
    'login': 'Sign-in',
    'logout': 'Sign-out',
}


def _serialize_details(details):
    if details is None or isinstance(details, str):
        return details
    return json.dumps(details, cls=DecimalEncoder, sort_keys=True)


class AuditLog(db.Model):
    """Who booked, cancelled or changed what in the studio, and from where"""
    __tablename__ = 'audit_logs'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, index=True)
    action = db.Column(db.String(50), nullable=False)  # create, update, delete, cancel, perform, attempt
    entity_type = db.Column(db.String(50), nullable=False, index=True)
    entity_id = db.Column(db.Integer, nullable=True)
    details = db.Column(db.Text, nullable=True)  # JSON
    ip_address = db.Column(db.String(50), nullable=True)

    user = db.relationship('User', backref=db.backref('audit_logs', lazy='dynamic'))

    def __init__(self, action, entity_type, user_id=None, entity_id=None, details=None, ip_address=None):
        self.action = action
        self.entity_type = entity_type
        self.user_id = user_id
        self.entity_id = entity_id
        self.details = _serialize_details(details)
        self.ip_address = ip_address

    @property
    def entity_label(self):
        label = ENTITY_LABELS.get(self.entity_type, self.entity_type.replace('_', ' ').capitalize())
        return f'{label} #{self.entity_id}' if self.entity_id else label

    def get_details_dict(self):
        if not self.details:
            return {}
        try:
            details = json.loads(self.details)
        except ValueError:
            return {'raw': self.details}
        return details if isinstance(details, dict) else {'value': details}

    @property
    def summary(self):
        """One line of key: value pairs for the audit page"""
        parts = []
        for key, value in self.get_details_dict().items():
            if isinstance(value, dict):
                value = ', '.join(f'{k}={v}' for k, v in value.items())
            elif isinstance(value, list):
                value = ', '.join(str(v) for v in value)
            parts.append(f"{key.replace('_', ' ')}: {value}")
        return '; '.join(parts)

    @classmethod
    def for_entity(cls, entity_type, entity_id=None):
        query = cls.query.filter_by(entity_type=entity_type)
        if entity_id is not None:
            query = query.filter_by(entity_id=entity_id)
        return query

    def __repr__(self):
        return f'<AuditLog {self.action} {self.entity_label}>'
