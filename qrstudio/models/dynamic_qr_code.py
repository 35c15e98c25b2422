import uuid
from ..extensions import db
from ..utils.clock import utcnow


class DynamicQRCode(db.Model):
    __tablename__ = "dynamic_qr_codes"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    qr_code_id = db.Column(db.String(36), db.ForeignKey("qr_codes.id"), unique=True, nullable=False)
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    # Public path segment of the scan URL; fixed for the life of the record
    unique_id = db.Column(db.String(64), unique=True, nullable=False, index=True)
    destination_url = db.Column(db.String(2048), nullable=False)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)
    deleted_at = db.Column(db.DateTime, nullable=True)

    qr_code = db.relationship("QRCode", backref=db.backref("dynamic", uselist=False, lazy=True))

    def is_expired(self, now) -> bool:
        return now >= self.expires_at

    def __repr__(self):
        return f"<DynamicQRCode {self.unique_id}>"
