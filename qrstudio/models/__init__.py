from .user import User
from .qr_code import QRCode
from .dynamic_qr_code import DynamicQRCode
from .webhook_events import WebhookEvent

__all__ = ["User", "QRCode", "DynamicQRCode", "WebhookEvent"]
