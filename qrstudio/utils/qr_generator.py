import base64
import binascii
import io

import qrcode
from PIL import Image, ImageColor, UnidentifiedImageError
from flask import current_app
from qrcode.image.styledpil import StyledPilImage
from qrcode.image.styles.colormasks import SolidFillColorMask
from qrcode.image.styles.moduledrawers.pil import (
    CircleModuleDrawer,
    GappedSquareModuleDrawer,
    RoundedModuleDrawer,
    SquareModuleDrawer,
)

# Browser dot styles mapped to the closest PIL drawer
DRAWERS = {
    "square": SquareModuleDrawer,
    "dots": CircleModuleDrawer,
    "rounded": RoundedModuleDrawer,
    "extra-rounded": RoundedModuleDrawer,
    "classy": GappedSquareModuleDrawer,
    "classy-rounded": RoundedModuleDrawer,
}


def _rgb(value, default):
    if not value:
        return default
    try:
        return ImageColor.getrgb(value)[:3]
    except ValueError:
        return default


def _decode_logo(logo_url):
    """Only data URIs are embedded; remote logos go through fetch_logo first."""
    if not logo_url or not logo_url.startswith("data:") or "," not in logo_url:
        return None
    try:
        logo_bytes = base64.b64decode(logo_url.split(",", 1)[1])
        return Image.open(io.BytesIO(logo_bytes))
    except (binascii.Error, ValueError, UnidentifiedImageError) as e:
        current_app.logger.warning(f"Logo data embedding failed: {e}")
        return None


def render_qr_png(data: str, settings: dict | None = None) -> bytes:
    """
    Render ``data`` as a PNG using the colors, dot style and logo from a
    saved settings document.
    """
    settings = settings or {}

    fill_rgb = _rgb(settings.get("dotsColor"), (0, 0, 0))
    if settings.get("isTransparent"):
        back_rgb = (255, 255, 255)
    else:
        back_rgb = _rgb(settings.get("backgroundColor"), (255, 255, 255))

    drawer_cls = DRAWERS.get(str(settings.get("dotsType", "square")).lower(), SquareModuleDrawer)

    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_H,
        box_size=10,
        border=4,
    )
    qr.add_data(data)
    qr.make(fit=True)

    qr_img = qr.make_image(
        image_factory=StyledPilImage,
        module_drawer=drawer_cls(),
        color_mask=SolidFillColorMask(back_color=back_rgb, front_color=fill_rgb),
    ).convert("RGB")

    logo_img = _decode_logo(settings.get("logoUrl"))
    if logo_img:
        qr_w, qr_h = qr_img.size
        try:
            ratio = float(settings.get("logoSize") or 0.25)
        except (TypeError, ValueError):
            ratio = 0.25
        size = int(qr_w * min(max(ratio, 0.1), 0.4))
        logo_img = logo_img.resize((size, size))

        pos = ((qr_w - size) // 2, (qr_h - size) // 2)
        if logo_img.mode == "RGBA":
            qr_img.paste(logo_img, pos, logo_img)
        else:
            qr_img.paste(logo_img.convert("RGB"), pos)

    buf = io.BytesIO()
    qr_img.save(buf, format="PNG")
    return buf.getvalue()
