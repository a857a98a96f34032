"""Label image generation: QR code with the human-readable code underneath."""

import logging
import uuid
from pathlib import Path

import qrcode
from PIL import Image, ImageDraw, ImageFont
from qrcode.constants import ERROR_CORRECT_M

from gbprint.exceptions import RenderError

logger = logging.getLogger(__name__)

# Sized for 62mm continuous tape at 300 dpi
DEFAULT_QR_SIZE = 720
DEFAULT_FONT_SIZE = 140
DEFAULT_PADDING = 15

MONOSPACE_FONTS = (
    "DejaVuSansMono.ttf",
    "/usr/share/fonts/truetype/dejavu/DejaVuSansMono.ttf",
    "LiberationMono-Regular.ttf",
    "Menlo.ttc",
    "consola.ttf",
)


def generate_qr_code(data: str, size: int = DEFAULT_QR_SIZE, border: int = 1) -> Image.Image:
    """Generate a QR code image.

    Args:
        data: Data to encode in QR code.
        size: Output image size in pixels (square).
        border: Quiet zone width in modules.

    Returns:
        Image.Image: Grayscale QR code image.
    """
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_M,
        box_size=10,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white").get_image().convert("L")

    # Resize if needed; nearest keeps module edges sharp for thermal printing
    if img.size[0] != size:
        img = img.resize((size, size), Image.NEAREST)

    return img


def load_font(size: int) -> ImageFont.ImageFont:
    """Load a monospace font, falling back to Pillow's bundled font.

    Args:
        size: Font size in pixels.

    Returns:
        ImageFont.ImageFont: Loaded font.
    """
    for name in MONOSPACE_FONTS:
        try:
            return ImageFont.truetype(name, size)
        except OSError:
            continue
    logger.debug("No monospace TrueType font found, using Pillow default font")
    return ImageFont.load_default(size=size)


def add_caption(
    image: Image.Image,
    text: str,
    font_size: int = DEFAULT_FONT_SIZE,
    padding: int = DEFAULT_PADDING,
) -> Image.Image:
    """Place text centered beneath an image.

    Args:
        image: Source image (drawn at the top).
        text: Caption text.
        font_size: Caption font size in pixels.
        padding: Space above and below the caption.

    Returns:
        Image.Image: New image, taller by font_size + 2 * padding.
    """
    text_height = font_size + padding * 2
    canvas = Image.new("L", (image.width, image.height + text_height), color=255)
    canvas.paste(image, (0, 0))

    draw = ImageDraw.Draw(canvas)
    font = load_font(font_size)
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = (canvas.width - (right - left)) / 2 - left
    y = image.height + padding + (font_size - (bottom - top)) / 2 - top
    draw.text((x, y), text, fill=0, font=font)

    return canvas


class LabelRenderer:
    """Renders label PNGs into a working directory."""

    def __init__(
        self,
        output_dir: Path,
        qr_size: int = DEFAULT_QR_SIZE,
        font_size: int = DEFAULT_FONT_SIZE,
        padding: int = DEFAULT_PADDING,
    ):
        """Initialize the renderer.

        Args:
            output_dir: Directory where label images are written.
            qr_size: QR code edge length in pixels.
            font_size: Caption font size in pixels.
            padding: Space around the caption.
        """
        self.output_dir = Path(output_dir)
        self.qr_size = qr_size
        self.font_size = font_size
        self.padding = padding

    def render(self, payload: str, human_code: str) -> Path:
        """Render one label.

        Args:
            payload: Data encoded in the QR code.
            human_code: Text printed beneath the QR code.

        Returns:
            Path: Path of the written PNG.

        Raises:
            RenderError: If the image cannot be generated or written.
        """
        path = self.output_dir / f"{uuid.uuid4()}.png"
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            image = generate_qr_code(payload, size=self.qr_size)
            image = add_caption(image, human_code, self.font_size, self.padding)
            image.save(path, format="PNG")
        except Exception as err:
            if path.exists():
                path.unlink()
            raise RenderError(f"Could not render label {human_code}: {err}") from err

        logger.debug(f"Rendered label {human_code} to {path}")
        return path
