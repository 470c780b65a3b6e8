"""Typed CRM endpoint wrappers over the request gateway.

Each method is one round trip; errors propagate unchanged so callers
(list loaders, recovery flows) decide how to degrade.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import structlog

from src.crm_client.gateway.client import RequestGateway
from src.crm_client.loaders.schemas import Page

logger = structlog.get_logger(__name__)

CLIENTS_PATH = "/clients"
PROJECTS_PATH = "/projects"
TASKS_PATH = "/tasks"
ME_PATH = "/auth/me"


def _item_path(collection: str, item_id: str) -> str:
    return f"{collection}/{quote(item_id, safe='')}"


class CrmApi:
    """CRM resource calls.

    Args:
        gateway: The shared request gateway.
    """

    def __init__(self, gateway: RequestGateway) -> None:
        self._gateway = gateway

    @property
    def gateway(self) -> RequestGateway:
        return self._gateway

    async def me(self) -> Any:
        """GET /auth/me -- the signed-in user's profile."""
        response = await self._gateway.get(ME_PATH)
        return response.json()

    async def list_page(
        self,
        path: str,
        q: str | None = None,
        cursor: str | None = None,
        limit: int | None = None,
        **filters: Any,
    ) -> Page[dict[str, Any]]:
        """GET a cursor-paginated collection.

        Empty ``q``/``cursor`` are omitted from the query string; the cursor
        is otherwise sent verbatim.
        """
        params: dict[str, Any] = {
            "q": q or None,
            "cursor": cursor or None,
            "limit": limit,
            **filters,
        }
        response = await self._gateway.get(path, params=params)
        page = Page.from_payload(response.json())
        logger.debug(
            "crm_api.page_loaded",
            path=path,
            count=len(page.items),
            has_more=page.next_cursor is not None,
        )
        return page

    async def clients_list(
        self, q: str | None = None, cursor: str | None = None, limit: int | None = None
    ) -> Page[dict[str, Any]]:
        return await self.list_page(CLIENTS_PATH, q=q, cursor=cursor, limit=limit)

    async def projects_list(
        self, q: str | None = None, cursor: str | None = None, limit: int | None = None
    ) -> Page[dict[str, Any]]:
        return await self.list_page(PROJECTS_PATH, q=q, cursor=cursor, limit=limit)

    async def tasks_list(
        self,
        q: str | None = None,
        cursor: str | None = None,
        limit: int | None = None,
        project_id: str | None = None,
    ) -> Page[dict[str, Any]]:
        return await self.list_page(
            TASKS_PATH, q=q, cursor=cursor, limit=limit, projectId=project_id
        )

    # ── Projects ──────────────────────────────────────────────────────────

    async def create_project(self, data: dict[str, Any]) -> Any:
        response = await self._gateway.post(PROJECTS_PATH, json=data)
        return response.json()

    async def update_project(self, project_id: str, data: dict[str, Any]) -> Any:
        response = await self._gateway.patch(_item_path(PROJECTS_PATH, project_id), json=data)
        return response.json()

    async def remove_project(self, project_id: str) -> None:
        await self._gateway.delete(_item_path(PROJECTS_PATH, project_id))
        logger.info("crm_api.project_removed", project_id=project_id)

    # ── Tasks ─────────────────────────────────────────────────────────────

    async def create_task(self, data: dict[str, Any]) -> Any:
        response = await self._gateway.post(TASKS_PATH, json=data)
        return response.json()

    async def update_task(self, task_id: str, data: dict[str, Any]) -> Any:
        response = await self._gateway.patch(_item_path(TASKS_PATH, task_id), json=data)
        return response.json()

    async def remove_task(self, task_id: str) -> None:
        await self._gateway.delete(_item_path(TASKS_PATH, task_id))
        logger.info("crm_api.task_removed", task_id=task_id)
