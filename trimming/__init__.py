"""
printtrim trimming pipeline.

Printer's-mark removal, crop-box detection, relative layout mapping and
alignment of that layout with a scanned or rasterized page.
"""

from .pipeline import PageTrimResult, TrimConfig, TrimPipeline, TrimResult

__all__ = [
    "TrimConfig",
    "TrimPipeline",
    "TrimResult",
    "PageTrimResult",
]
