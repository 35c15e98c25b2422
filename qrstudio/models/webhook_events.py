import uuid
from ..extensions import db
from ..utils.clock import utcnow


class WebhookEvent(db.Model):
    __tablename__ = 'webhook_events'

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    event_id = db.Column(db.String(255), unique=True, nullable=False, index=True)  # svix-id, used for idempotency
    event_type = db.Column(db.String(100), nullable=False, index=True)  # e.g. user.created, user.deleted
    payload = db.Column(db.Text, nullable=False)
    signature = db.Column(db.String(1024), nullable=True)
    processed = db.Column(db.Boolean, default=False, nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    processed_at = db.Column(db.DateTime, nullable=True)
    error_message = db.Column(db.Text, nullable=True)

    external_user_id = db.Column(db.String(255), nullable=True, index=True)

    def __repr__(self):
        return f"<WebhookEvent {self.event_id} - {self.event_type}>"
