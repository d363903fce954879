"""
FingerAuth Application

A demo fingerprint enrollment and authentication service using:
- Pillow for decoding, grayscale conversion and resizing
- NumPy for pixel-wise similarity scoring
- FastAPI for RESTful API
"""

__version__ = "1.0.0"
