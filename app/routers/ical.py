"""
External calendar (iCal) endpoints

- register feeds per room
- trigger a sync of one feed, of all active feeds, or of overdue feeds only
- status view for operators (last outcome and error per feed)
"""

from fastapi import APIRouter, Depends, Request, status
from datetime import datetime
from typing import List

from ..config import settings
from ..domain import ICalConfig, SyncResult
from ..schemas.ical import (
    ICalConfigCreate, ICalConfigResponse, ICalStatusItem,
    SyncBatchResponse, SyncResultResponse,
)
from ..services.availability_store import SqlAlchemyAvailabilityStore
from ..services.exceptions import NotFoundError
from ..services.ical_sync_service import ICalSyncService, pending_configs
from ..services.feed_fetcher import FeedFetcher
from ..utils.dependencies import get_feed_fetcher, get_store, get_sync_service
from ..utils.rate_limiter import limiter, get_rate_limit

router = APIRouter(prefix="/api/ical", tags=["Calendar Sync"])


def to_config_response(config: ICalConfig) -> ICalConfigResponse:
    return ICalConfigResponse(
        id=config.id,
        room_id=config.room_id,
        room_name=config.room_name,
        platform=config.platform,
        ical_url=config.ical_url,
        is_active=config.is_active,
        sync_interval_hours=config.sync_interval_hours,
        last_sync_at=config.last_sync_at,
        last_sync_status=config.last_sync_status.value if config.last_sync_status else None,
    )


def to_batch_response(results: List[SyncResult]) -> SyncBatchResponse:
    succeeded = sum(1 for r in results if r.success)
    return SyncBatchResponse(
        total=len(results),
        succeeded=succeeded,
        failed=len(results) - succeeded,
        results=[SyncResultResponse.model_validate(r) for r in results],
    )


@router.get("/configs", response_model=List[ICalConfigResponse])
async def list_configs(store: SqlAlchemyAvailabilityStore = Depends(get_store)):
    return [to_config_response(c) for c in store.list_configs()]


@router.post("/configs", response_model=ICalConfigResponse, status_code=status.HTTP_201_CREATED)
async def create_config(
    payload: ICalConfigCreate,
    store: SqlAlchemyAvailabilityStore = Depends(get_store),
    fetcher: FeedFetcher = Depends(get_feed_fetcher),
):
    """Attach a feed to a room. The URL host must be on the allow-list."""
    fetcher.validate_url(payload.ical_url)
    config = store.create_config(
        room_id=payload.room_id,
        ical_url=payload.ical_url,
        platform=payload.platform,
        sync_interval_hours=payload.sync_interval_hours,
        is_active=payload.is_active,
    )
    return to_config_response(config)


@router.post("/sync", response_model=SyncBatchResponse)
@limiter.limit(get_rate_limit("ical_sync"))
async def sync_all_feeds(
    request: Request,
    service: ICalSyncService = Depends(get_sync_service),
):
    """Sync every active feed now."""
    return to_batch_response(await service.sync_active())


@router.post("/sync/pending", response_model=SyncBatchResponse)
@limiter.limit(get_rate_limit("ical_sync"))
async def sync_pending_feeds(
    request: Request,
    service: ICalSyncService = Depends(get_sync_service),
):
    """Sync only the feeds whose interval has elapsed."""
    return to_batch_response(await service.sync_pending())


@router.post("/configs/{config_id}/sync", response_model=SyncResultResponse)
@limiter.limit(get_rate_limit("ical_sync"))
async def sync_one_feed(
    request: Request,
    config_id: str,
    store: SqlAlchemyAvailabilityStore = Depends(get_store),
    service: ICalSyncService = Depends(get_sync_service),
):
    config = store.get_config(config_id)
    if config is None:
        raise NotFoundError(f"Calendar config {config_id} not found")
    result = await service.sync_one(config)
    return SyncResultResponse.model_validate(result)


@router.get("/status", response_model=List[ICalStatusItem])
async def sync_status(store: SqlAlchemyAvailabilityStore = Depends(get_store)):
    """Health of every feed as of its last sync."""
    configs = store.list_configs()
    overdue = {
        c.id for c in pending_configs(
            [c for c in configs if c.is_active],
            now=datetime.utcnow(),
            default_interval_hours=settings.ical_default_sync_interval_hours,
        )
    }

    items = []
    for config in configs:
        base = to_config_response(config).model_dump()
        items.append(ICalStatusItem(
            **base,
            **store.get_config_status(config.id),
            is_overdue=config.id in overdue,
        ))
    return items
