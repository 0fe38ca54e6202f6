"""TextExtract Pro backend.

Image-to-text extraction service built on the OCR.space API with a local
Tesseract fallback, heuristic text cleanup, per-user usage limits, and the
blog and sitemap content served alongside the web client.
"""
