"""Colorbar rendering for value colormaps."""

import logging

import numpy as np
from PIL import Image, ImageDraw, ImageFont

from .types import OrientationType

# Module logger
logger = logging.getLogger(__name__)

# Gray drawn where the colormap hides values
HIDDEN_GRAY = 0.33


def text_size(caption, font):
    """Return text width and height in pixels."""
    dummy_img = Image.new("L", (1, 1))
    draw = ImageDraw.Draw(dummy_img)
    bbox = draw.textbbox((0, 0), caption, font=font, anchor="lt")
    text_width = bbox[2] - bbox[0]
    text_height = bbox[3] - bbox[1]
    return text_width, text_height


def load_font(font_file=None, size=12):
    """Load a TrueType font, falling back to PIL's default font."""
    if font_file is not None:
        try:
            return ImageFont.truetype(font_file, size)
        except OSError:
            logger.warning("load_font: cannot read %s, using default font", font_file)
    return ImageFont.load_default(size)


def colorbar_values(colormap, n_steps):
    """Return ``n_steps`` values evenly spanning the colormap's range."""
    vmin, vmax = colormap.value_range
    return np.linspace(vmin, vmax, n_steps)


def get_colorbar_label_positions(font, labels, colorbar_rect, orientation=OrientationType.HORIZONTAL):
    """Return label positions for a colorbar.

    ``labels`` holds ``lower``, ``middle`` and ``upper`` captions; the lower
    label sits at the minimum end (left, or bottom when vertical).
    """
    positions = {}
    cb_x, cb_y, cb_width, cb_height = colorbar_rect
    cb_labels_gap = 5

    if orientation == OrientationType.HORIZONTAL:
        label_y = cb_y + cb_height + cb_labels_gap
        w, _ = text_size(labels["upper"], font)
        positions["upper"] = (cb_x + cb_width - w, label_y)
        positions["lower"] = (cb_x, label_y)
        w, _ = text_size(labels["middle"], font)
        positions["middle"] = (cb_x + cb_width // 2 - w // 2, label_y)
    else:
        label_x = cb_x + cb_width + cb_labels_gap
        positions["upper"] = (label_x, cb_y)
        _, h = text_size(labels["lower"], font)
        positions["lower"] = (label_x, cb_y + cb_height - 1.5 * h)
        _, h = text_size(labels["middle"], font)
        positions["middle"] = (label_x, cb_y + cb_height // 2 - h // 2)
    return positions


def colorbar_image(
    colormap,
    orientation=OrientationType.HORIZONTAL,
    colorbar_scale=1,
    font_file=None,
    label_format="{:.2f}",
):
    """Render a colormap's palette over its range as a labeled PIL image.

    Values inside the colormap's hide zone are drawn gray. Transparent
    palette entries are blended over black.

    Parameters
    ----------
    colormap : ColorMap
        Colormap to draw; its range and threshold are used as-is.
    orientation : OrientationType, optional
        Horizontal (minimum on the left) or vertical (minimum at the bottom).
    colorbar_scale : float, optional
        Scale factor for the bar and font size. Default 1.
    font_file : str, optional
        TrueType font to use for the labels.
    label_format : str, optional
        Format applied to the minimum, midpoint and maximum labels.

    Returns
    -------
    PIL.Image.Image
        RGB image of the colorbar and its labels.
    """
    cwidth = int(200 * colorbar_scale)
    cheight = int(30 * colorbar_scale)

    values = colorbar_values(colormap, cwidth)
    rgba = colormap.get_colors(values)
    colors = rgba[:, :3] * rgba[:, 3:4]
    if colormap.threshold_active:
        lo, hi = colormap.threshold
        colors[(values >= lo) & (values <= hi), :] = HIDDEN_GRAY
    img_bar = np.uint8(np.clip(np.tile(colors, (cheight, 1, 1)), 0.0, 1.0) * 255)

    pad_top, pad_left = 3, 10
    img_buf = np.zeros((cheight + 2 * pad_top, cwidth + 2 * pad_left, 3), dtype=np.uint8)
    img_buf[pad_top : cheight + pad_top, pad_left : cwidth + pad_left, :] = img_bar
    image = Image.fromarray(img_buf)

    font = load_font(font_file, int(12 * colorbar_scale))
    vmin, vmax = colormap.value_range
    labels = {
        "lower": label_format.format(vmin),
        "middle": label_format.format(0.5 * (vmin + vmax)),
        "upper": label_format.format(vmax),
    }
    caption_sizes = [text_size(caption, font) for caption in labels.values()]
    max_caption_width = int(max(size[0] for size in caption_sizes))
    max_caption_height = int(max(size[1] for size in caption_sizes))

    if orientation == OrientationType.VERTICAL:
        image = image.rotate(90, expand=True)
        new_image = Image.new("RGB", (image.width + max_caption_width, image.height), (0, 0, 0))
        new_image.paste(image, (0, 0))
        image = new_image
        colorbar_rect = (pad_top, pad_left, cheight, cwidth)
    else:
        new_image = Image.new("RGB", (image.width, image.height + max_caption_height * 2), (0, 0, 0))
        new_image.paste(image, (0, 0))
        image = new_image
        colorbar_rect = (pad_left, pad_top, cwidth, cheight)

    positions = get_colorbar_label_positions(font, labels, colorbar_rect, orientation)
    draw = ImageDraw.Draw(image)
    for key, position in positions.items():
        draw.text((int(position[0]), int(position[1])), labels[key], fill=(220, 220, 220), font=font)
    return image
