"""Invoice OCR extraction service.

Turns a recognized invoice image into a normalized invoice record by
trying OCR providers in priority order and parsing whatever each one
returns: structured fields, layout markdown, or raw recognized text.
"""
