# backend/asset_diary/middleware/__init__.py
"""
ASGI middleware.

Usage:
    from asset_diary.middleware import CorrelationIdMiddleware

    app.add_middleware(CorrelationIdMiddleware)
"""

from asset_diary.middleware.correlation import CorrelationIdMiddleware

__all__ = ["CorrelationIdMiddleware"]
