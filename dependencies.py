"""
FastAPI dependency providers.

All injectable dependencies are defined here as plain functions used with
FastAPI's Depends() system.
"""

from __future__ import annotations

from fastapi import Request

from services.analytics_service import AnalyticsService


def get_analytics_service(request: Request) -> AnalyticsService:
    """Return the AnalyticsService built at startup."""
    return request.app.state.analytics
