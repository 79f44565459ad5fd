"""
corsgate - CORS policy enforcement for an HTTP reverse proxy.
"""

__version__ = "1.0.0"
