"""
Reverse proxy integration of the CORS policy.
"""

from .transaction import Transaction, TransactionContext
from .preflight import DeliveryMode, PreflightResponder
from .policy import CorsPolicy
from .upstream import UpstreamClient
from .middleware import CORSProxyMiddleware

__all__ = [
    "Transaction",
    "TransactionContext",
    "DeliveryMode",
    "PreflightResponder",
    "CorsPolicy",
    "UpstreamClient",
    "CORSProxyMiddleware",
]
