"""
Analytics endpoints.

Tracking (called by public profile pages, keyed by the profile's public uuid):
  POST /api/v1/track/{public_id}/qr-scan
  POST /api/v1/track/{public_id}/social/{platform}
  POST /api/v1/track/{public_id}/custom-link/{link_index}

Tracking always answers 204: unknown and deactivated profiles are ignored
without telling the caller.

Dashboards (keyed by the profile id):
  GET /api/v1/profiles/{subject_id}/clicks?bucket=5min&window=30&offset=0
  GET /api/v1/profiles/{subject_id}/summary

Authentication of dashboard reads belongs to the surrounding application.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response, status

from dependencies import get_analytics_service
from schemas.dto.requests.analytics import ClickSeriesQuery
from schemas.dto.responses.analytics import ClickSeriesResponse, SummaryStatsResponse
from schemas.dto.responses.common import ErrorResponse
from services.analytics_service import AnalyticsService

router = APIRouter(
    prefix="/api/v1",
    tags=["analytics"],
    responses={
        400: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)

Analytics = Annotated[AnalyticsService, Depends(get_analytics_service)]


@router.post("/track/{public_id}/qr-scan", status_code=status.HTTP_204_NO_CONTENT)
async def track_qr_scan(public_id: str, analytics: Analytics) -> Response:
    await analytics.record_qr_scan(public_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/track/{public_id}/social/{platform}", status_code=status.HTTP_204_NO_CONTENT
)
async def track_social_click(
    public_id: str, platform: str, analytics: Analytics
) -> Response:
    await analytics.record_social_click(public_id, platform)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/track/{public_id}/custom-link/{link_index}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def track_custom_link_click(
    public_id: str, link_index: int, analytics: Analytics
) -> Response:
    await analytics.record_custom_link_click(public_id, link_index)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/profiles/{subject_id}/clicks",
    response_model=ClickSeriesResponse,
    responses={404: {"model": ErrorResponse}, 504: {"model": ErrorResponse}},
)
async def get_click_series(
    subject_id: str,
    query: Annotated[ClickSeriesQuery, Query()],
    analytics: Analytics,
) -> ClickSeriesResponse:
    """
    Click series for one profile, bucketed by ``bucket``.

    ``window`` and ``offset`` use the bucket's window unit: minutes for
    ``minute`` and ``5min``, hours for ``hour``, days for ``day`` and whole
    periods for ``week``, ``month`` and ``year``. ``offset=0`` is the window
    ending now; dashboards page backwards by adding the window length to the
    offset.
    Malformed or out-of-range parameters answer 400 with
    ``invalid_window_parameters``.
    """
    return await analytics.get_click_series(
        subject_id, query.bucket, query.window, query.offset
    )


@router.get(
    "/profiles/{subject_id}/summary",
    response_model=SummaryStatsResponse,
    responses={404: {"model": ErrorResponse}, 504: {"model": ErrorResponse}},
)
async def get_summary(subject_id: str, analytics: Analytics) -> SummaryStatsResponse:
    return await analytics.get_summary(subject_id)
