"""PyMuPDF helpers for the trimming pipeline."""
