"""
Pass artwork rendered with Pillow.

Loyalty cards show a 5 x 2 stamp grid on a black band over a white strip;
gift cards show the remaining balance. Static logo and icon files are read
from ``WALLET_ASSETS_DIR`` when present, otherwise a plain placeholder is
drawn.
"""

import logging
from decimal import Decimal
from io import BytesIO
from pathlib import Path

from django.conf import settings
from PIL import Image, ImageDraw, ImageFont

from apps.loyalty.rewards import stamp_progress, STAMPS_PER_CARD

logger = logging.getLogger(__name__)

BACKGROUND_WIDTH = 390
BACKGROUND_HEIGHT = 234
STAMPS_PER_ROW = 5
STAMP_ROWS = 2

BLACK = (0, 0, 0, 255)
WHITE = (255, 255, 255, 255)
GREY = (102, 102, 102, 255)
STAMP_FILLED = (200, 30, 45, 255)

ICON_SIZE = 87
LOGO_SIZE = (160, 50)


def _to_png(image):
    buffer = BytesIO()
    image.save(buffer, format='PNG')
    return buffer.getvalue()


def _font(size):
    return ImageFont.load_default(size=size)


def _split_canvas(top_ratio):
    image = Image.new('RGBA', (BACKGROUND_WIDTH, BACKGROUND_HEIGHT), WHITE)
    top_height = int(BACKGROUND_HEIGHT * top_ratio)
    draw = ImageDraw.Draw(image)
    draw.rectangle([0, 0, BACKGROUND_WIDTH, top_height], fill=BLACK)
    return image, draw, top_height


def render_loyalty_background(points_balance):
    """
    PNG stamp card for ``points_balance``.

    Collected stamps are filled, the rest are outlined.
    """
    collected = stamp_progress(points_balance)['current']
    image, draw, top_height = _split_canvas(0.7)

    grid_top = 20
    grid_bottom_padding = 25
    side_padding = 20
    cell_width = (BACKGROUND_WIDTH - 2 * side_padding) / STAMPS_PER_ROW
    cell_height = (top_height - grid_top - grid_bottom_padding) / STAMP_ROWS
    stamp_size = max(25, min(cell_width * 0.65, cell_height * 0.65, 40))

    for row in range(STAMP_ROWS):
        for column in range(STAMPS_PER_ROW):
            position = row * STAMPS_PER_ROW + column + 1
            center_x = side_padding + column * cell_width + cell_width / 2
            center_y = grid_top + row * cell_height + cell_height / 2
            box = [
                center_x - stamp_size / 2,
                center_y - stamp_size / 2,
                center_x + stamp_size / 2,
                center_y + stamp_size / 2,
            ]
            if position <= collected:
                draw.ellipse(box, fill=STAMP_FILLED, outline=WHITE, width=2)
            else:
                draw.ellipse(box, outline=WHITE, width=2)

    caption = f"{collected}/{STAMPS_PER_CARD} stamps"
    draw.text(
        (BACKGROUND_WIDTH / 2, top_height + (BACKGROUND_HEIGHT - top_height) / 2),
        caption,
        fill=BLACK,
        font=_font(18),
        anchor='mm',
    )
    return _to_png(image)


def render_gift_card_background(balance_mxn):
    """PNG with the balance printed under a black band."""
    balance = Decimal(balance_mxn or 0)
    image, draw, top_height = _split_canvas(0.6)

    logo = load_asset('logo.png')
    if logo is not None:
        with Image.open(BytesIO(logo)) as source:
            mark = source.convert('RGBA')
            mark.thumbnail((80, 80))
            image.alpha_composite(
                mark,
                ((BACKGROUND_WIDTH - mark.width) // 2, (top_height - mark.height) // 2),
            )

    bottom_height = BACKGROUND_HEIGHT - top_height
    balance_y = top_height + bottom_height * 0.4
    draw.text((BACKGROUND_WIDTH / 2, balance_y), f"${balance:.2f}", fill=BLACK, font=_font(40), anchor='mm')
    draw.text((BACKGROUND_WIDTH / 2, balance_y + 30), 'MXN', fill=GREY, font=_font(16), anchor='mm')
    return _to_png(image)


def render_placeholder_icon(size=ICON_SIZE):
    image = Image.new('RGBA', (size, size), BLACK)
    draw = ImageDraw.Draw(image)
    draw.text((size / 2, size / 2), 'V', fill=WHITE, font=_font(int(size * 0.6)), anchor='mm')
    return _to_png(image)


def render_placeholder_logo():
    image = Image.new('RGBA', LOGO_SIZE, (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    draw.text((0, LOGO_SIZE[1] / 2), 'Vigo Coffee', fill=WHITE, font=_font(24), anchor='lm')
    return _to_png(image)


def load_asset(filename):
    """Bytes of ``filename`` in ``WALLET_ASSETS_DIR``, or None."""
    path = Path(settings.WALLET_ASSETS_DIR) / filename
    try:
        return path.read_bytes()
    except OSError:
        logger.debug("Wallet asset %s not found", path)
        return None


def branding_images():
    """icon.png, icon@2x.png and logo.png for a pass bundle."""
    logo = load_asset('logo.png') or render_placeholder_logo()
    icon = load_asset('icon.png') or load_asset('logo.png') or render_placeholder_icon()
    return {
        'icon.png': icon,
        'icon@2x.png': icon,
        'logo.png': logo,
    }
