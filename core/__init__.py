"""
Core shared components for the Waitly platform: the exception hierarchy and
the DRF exception handler used by every app.
"""

__version__ = "1.0.0"
