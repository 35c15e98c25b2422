import uuid
from ..extensions import db
from ..utils.clock import utcnow


class QRCode(db.Model):
    __tablename__ = "qr_codes"

    id = db.Column(db.String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    name = db.Column(db.String(255), nullable=False)
    # Static: the destination itself. Dynamic: the generated scan URL.
    url = db.Column(db.String(2048), nullable=False)
    is_dynamic = db.Column(db.Boolean, nullable=False, default=False)
    # Presentation document; echoes url/isDynamic but is never read back for them
    settings = db.Column(db.JSON, nullable=False, default=dict)

    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    deleted_at = db.Column(db.DateTime, nullable=True)

    user = db.relationship("User", backref=db.backref("qr_codes", lazy=True))

    def __repr__(self):
        return f"<QRCode {self.id} dynamic={self.is_dynamic}>"
