"""
Debug overlays for the relative layout map.

Paints each mapped element's box onto a target image (blue for text,
green for images) so an alignment can be checked by eye.  These images
are for inspection only.
"""

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont

from core.page.models import Rect
from trimming.mapping.models import ElementKind, MappingConfig, RelativeMap

logger = logging.getLogger(__name__)

KIND_COLORS: Dict[ElementKind, Tuple[int, int, int]] = {
    ElementKind.TEXT: (40, 80, 230),
    ElementKind.IMAGE: (40, 180, 60),
}


def _load_font(size: int = 11):
    try:
        return ImageFont.truetype(
            "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf", size
        )
    except (OSError, IOError):
        return ImageFont.load_default()


def crop_image(image: Image.Image, rect: Rect) -> Image.Image:
    """Cut *rect* (pixel space, top-left origin) out of *image*."""
    box = (
        int(rect.x),
        int(rect.y),
        int(rect.x + rect.width),
        int(rect.y + rect.height),
    )
    return image.crop(box)


def draw_relative_map(
    image: Image.Image,
    relative_map: RelativeMap,
    config: Optional[MappingConfig] = None,
    line_width: int = 2,
    labels: bool = False,
) -> Tuple[Image.Image, int]:
    """
    Draw every element of *relative_map* scaled to *image*.

    Elements whose centre lies more than ``config.overlay_margin`` outside
    [0, 1] are skipped; boxes are clipped to the canvas.

    Returns:
        ``(annotated_image, boxes_drawn)``
    """
    cfg = config or MappingConfig()
    img = image.convert("RGB").copy()
    draw = ImageDraw.Draw(img, "RGBA")
    font = _load_font() if labels else None
    width, height = img.size
    lo, hi = -cfg.overlay_margin, 1.0 + cfg.overlay_margin

    drawn = 0
    for elem in relative_map.elements:
        if not (lo <= elem.relative_x <= hi and lo <= elem.relative_y <= hi):
            continue

        box = elem.pixel_box(width, height)
        x0 = max(0, min(int(box.x), width - 1))
        y0 = max(0, min(int(box.y), height - 1))
        x1 = max(0, min(int(box.x + box.width), width - 1))
        y1 = max(0, min(int(box.y + box.height), height - 1))
        if x1 <= x0 or y1 <= y0:
            continue

        color = KIND_COLORS[elem.kind]
        draw.rectangle([x0, y0, x1, y1], outline=color, width=line_width)
        drawn += 1

        if font is not None and elem.text is not None:
            draw.text((x0, max(0, y0 - 12)), elem.text.text[:24], fill=color, font=font)

    logger.debug("Drew %d boxes on %dx%d image", drawn, width, height)
    return img, drawn


def save_debug_images(
    image: Image.Image,
    relative_map: RelativeMap,
    output_dir: str,
    stem: str,
    crop: Optional[Rect] = None,
    config: Optional[MappingConfig] = None,
) -> Dict[str, Path]:
    """
    Save ``<stem>_relmap.png`` (and ``<stem>_cropped.png`` when a crop is
    given) into *output_dir*.

    When *crop* is set the overlay is drawn on the cropped image,
    otherwise on the full image.

    Returns:
        Mapping of ``"relmap"`` / ``"cropped"`` to the written paths.
    """
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)
    written: Dict[str, Path] = {}

    canvas = image
    if crop is not None:
        canvas = crop_image(image, crop)
        path = out / f"{stem}_cropped.png"
        canvas.save(str(path))
        written["cropped"] = path
        logger.debug("Cropped image saved: %s", path)

    annotated, drawn = draw_relative_map(canvas, relative_map, config)
    path = out / f"{stem}_relmap.png"
    annotated.save(str(path))
    written["relmap"] = path
    logger.info(
        "Relative map overlay (%d boxes, %s image) saved: %s",
        drawn,
        "cropped" if crop is not None else "full",
        path,
    )
    return written
