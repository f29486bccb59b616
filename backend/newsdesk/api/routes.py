"""
FastAPI routes for the Newsdesk API.
"""

import hashlib
import json
from datetime import date, timedelta
from typing import Annotated, Any, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from newsdesk.config import Settings
from newsdesk.models.domain import StoredArticle
from newsdesk.services.ingestion.circuit_breaker import CircuitBreaker
from newsdesk.services.ingestion.observers import ARTICLES_CACHE_VERSION_KEY, LATEST_ARTICLES_KEY
from newsdesk.services.ingestion.rate_gate import RateGate
from newsdesk.services.ingestion.repository import SORTABLE_COLUMNS, ArticleRepository
from newsdesk.services.ingestion.state_store import StateStore
from newsdesk.sources import PROVIDERS

logger = structlog.get_logger(__name__)
router = APIRouter()


def get_repository(request: Request) -> ArticleRepository:
    return request.app.state.repository


def get_store(request: Request) -> StateStore:
    return request.app.state.store


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


RepositoryDep = Annotated[ArticleRepository, Depends(get_repository)]
StoreDep = Annotated[StateStore, Depends(get_store)]
SettingsDep = Annotated[Settings, Depends(get_app_settings)]


def success_response(data: Any, message: str, meta: Optional[dict] = None) -> dict:
    """Standard response envelope."""
    body = {"success": True, "message": message, "data": data}
    if meta:
        body["meta"] = meta
    return body


# ============================================================================
# Article Routes
# ============================================================================


@router.get("/articles")
async def list_articles(
    repository: RepositoryDep,
    store: StoreDep,
    settings: SettingsDep,
    title: Optional[str] = None,
    source: Optional[str] = None,
    author: Optional[str] = None,
    published_on: Optional[date] = None,
    sort: str = "-published_at",
    page: int = Query(default=1, ge=1),
    per_page: Optional[int] = Query(default=None, ge=1),
):
    """
    List stored articles.

    Filters: title and author match substrings, source matches exactly,
    published_on matches the UTC publication day. Sort by title, source or
    published_at, prefixed with "-" for descending order.
    """
    if sort.lstrip("-") not in SORTABLE_COLUMNS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Sort must be one of: {', '.join(sorted(SORTABLE_COLUMNS))}",
        )

    per_page = min(per_page or settings.default_page_size, settings.max_page_size)
    params = {
        "title": title,
        "source": source,
        "author": author,
        "published_on": published_on.isoformat() if published_on else None,
        "sort": sort,
        "page": page,
        "per_page": per_page,
    }

    version = await store.get(ARTICLES_CACHE_VERSION_KEY, 0)
    cache_key = _page_cache_key(params, version)

    cached = await store.get(cache_key)
    if cached is None:
        articles, total = await repository.query(
            title=title,
            source=source,
            author=author,
            published_on=published_on,
            sort=sort,
            page=page,
            per_page=per_page,
        )
        cached = {
            "data": [a.model_dump(mode="json") for a in articles],
            "meta": {
                "page": page,
                "per_page": per_page,
                "total": total,
                "last_page": max((total + per_page - 1) // per_page, 1),
            },
        }
        if settings.articles_cache_ttl_seconds:
            await store.put(
                cache_key,
                cached,
                ttl=timedelta(seconds=settings.articles_cache_ttl_seconds),
            )

    return success_response(cached["data"], "Articles retrieved successfully.", cached["meta"])


@router.get("/articles/latest")
async def latest_articles(store: StoreDep):
    """Articles from the most recent ingestion batch, as cached by the observer."""
    cached = await store.get(LATEST_ARTICLES_KEY, [])
    articles = [StoredArticle.model_validate(a).model_dump(mode="json") for a in cached]
    return success_response(articles, "Latest articles retrieved.")


# ============================================================================
# Source Routes
# ============================================================================


@router.get("/sources/health")
async def sources_health(store: StoreDep, settings: SettingsDep):
    """Circuit breaker state and current rate window for every known source."""
    rate_gate = RateGate(store)
    sources = []

    for name in PROVIDERS:
        source_settings = settings.source(name)
        circuit = await CircuitBreaker(name, store).state()
        window = await rate_gate.status(name)
        sources.append({
            "name": name,
            "configured": bool(source_settings.api_key) and source_settings.enabled,
            "circuit": circuit.model_dump(mode="json"),
            "rate_window": window.model_dump(mode="json") if window else None,
            "rate_limit": (
                source_settings.rate_limit.model_dump() if source_settings.rate_limit else None
            ),
        })

    return success_response(sources, "Source health retrieved.")


def _page_cache_key(params: dict, version: int) -> str:
    encoded = json.dumps({**params, "version": version}, sort_keys=True)
    return "articles_page:" + hashlib.md5(encoded.encode()).hexdigest()
