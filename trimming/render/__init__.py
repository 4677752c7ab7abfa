"""Debug rendering of relative maps."""

from .overlay import crop_image, draw_relative_map, save_debug_images

__all__ = ["crop_image", "draw_relative_map", "save_debug_images"]
