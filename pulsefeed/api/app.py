"""
Read API
========

Read-only HTTP API over the record store (aiohttp.web).

    GET /api/updates?category=&limit=        records, newest first
    GET /api/categories                      distinct category values
    GET /api/updates/category/{category}     records in one category

Responses are JSON arrays; failures return {"error": "..."}.
"""

from typing import Optional

from aiohttp import web

from ..config.settings import ApiSettings, PulseFeedSettings, get_settings
from ..storage.base import RecordStore
from ..utils.logging import get_api_logger
from ..utils.validators import validate_category, validate_limit
from .security import json_error, json_response, security_middleware

logger = get_api_logger()

CATEGORIES_LIMIT = 100


class ReadAPI:
    """Request handlers for the read API."""

    def __init__(self, store: RecordStore, settings: ApiSettings):
        self.store = store
        self.settings = settings

    def _limit(self, request: web.Request) -> int:
        return validate_limit(
            request.query.get("limit"),
            default=self.settings.default_limit,
            maximum=self.settings.max_limit,
        )

    async def _records_response(self, category: Optional[str], limit: int) -> web.Response:
        try:
            records = await self.store.list_records(category=category, limit=limit)
        except Exception as e:
            logger.error(f"Error fetching updates: {e}", exc_info=True)
            return json_error(500, "Failed to fetch updates")
        return json_response([record.to_document() for record in records])

    async def get_updates(self, request: web.Request) -> web.Response:
        """GET /api/updates"""
        raw_category = request.query.get("category")
        category = None
        if raw_category:
            category = validate_category(raw_category)
            if category is None:
                return json_error(400, "Invalid category")

        return await self._records_response(category, self._limit(request))

    async def get_categories(self, request: web.Request) -> web.Response:
        """GET /api/categories"""
        try:
            categories = await self.store.list_categories(limit=CATEGORIES_LIMIT)
        except Exception as e:
            logger.error(f"Error fetching categories: {e}", exc_info=True)
            return json_error(500, "Failed to fetch categories")
        return json_response(categories)

    async def get_updates_by_category(self, request: web.Request) -> web.Response:
        """GET /api/updates/category/{category}"""
        category = validate_category(request.match_info.get("category"))
        if category is None:
            return json_error(400, "Invalid category")

        return await self._records_response(category, self._limit(request))

    async def preflight(self, request: web.Request) -> web.Response:
        response = web.Response(status=204)
        response.headers["Access-Control-Allow-Methods"] = "GET, OPTIONS"
        response.headers["Access-Control-Allow-Headers"] = "Content-Type"
        return response


def create_app(store: RecordStore, settings: Optional[PulseFeedSettings] = None) -> web.Application:
    """Build the read API application."""
    settings = settings or get_settings()
    api = ReadAPI(store, settings.api)

    app = web.Application(middlewares=[security_middleware(settings.api)])
    app.router.add_get("/api/updates", api.get_updates)
    app.router.add_get("/api/categories", api.get_categories)
    app.router.add_get("/api/updates/category/{category}", api.get_updates_by_category)
    app.router.add_route("OPTIONS", "/api/{tail:.*}", api.preflight)

    async def close_store(app: web.Application) -> None:
        await store.close()

    app.on_cleanup.append(close_store)
    return app
