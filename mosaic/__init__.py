"""
Mosaic - Collaborative photo mosaic engine.

A source image is pixelized into a color grid. Participants join a canvas
by room code, receive a target color, and fill grid cells with photos
whose dominant color matches. The engine provides:
- Image pixelization and color validation
- Canvas lifecycle and block assignment
- Photo submission and review
- Publishing completed canvases to a public feed
"""

__version__ = "0.1.0"
