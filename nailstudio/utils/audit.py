from flask import request, current_app, has_request_context
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError
from nailstudio.models.audit import AuditLog
from nailstudio import db


def log_audit(action, entity_type, entity_id=None, details=None, user_id=None):
    """
    Log an audit entry

    Parameters:
    - action: The action performed (e.g., 'create', 'update', 'cancel')
    - entity_type: The type of entity affected (e.g., 'appointment', 'time_slot')
    - entity_id: ID of the affected entity (optional)
    - details: Additional details about the action (optional)
    - user_id: Acting user, defaults to the logged in user (optional)

    Returns True when the entry was stored. Failures are logged, never raised,
    so a broken audit trail cannot undo the action it describes.
    """
    ip_address = None
    if has_request_context():
        ip_address = request.remote_addr
        if user_id is None and current_user and current_user.is_authenticated:
            user_id = current_user.id

    try:
        audit_entry = AuditLog(
            user_id=user_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            details=details,
            ip_address=ip_address
        )

        db.session.add(audit_entry)
        db.session.commit()

        return True
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to log audit entry: {e}")
        return False
