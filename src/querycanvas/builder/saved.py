"""
Load/Save Query Dialog.

The dialog re-fetches the saved visual queries of a workspace every time it is
opened; searching filters that list locally.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional

import structlog
from aiohttp import ClientError

from querycanvas.api.transport import ApiError, AsyncHttpClient
from querycanvas.api.visual_queries import (
    delete_query,
    list_saved_queries,
    save_query,
)
from querycanvas.builder.models import SavedVisualQuery, VisualQueryConfig
from querycanvas.builder.notify import Notifier

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class QueryDetails:
    columns: int
    filters: int
    aggregations: int
    group_by: int
    limit: Optional[int]


def details(query: SavedVisualQuery) -> QueryDetails:
    cfg = query.config
    return QueryDetails(
        columns=len(cfg.columns),
        filters=len(cfg.filters.conditions),
        aggregations=len(cfg.aggregations),
        group_by=len(cfg.group_by),
        limit=cfg.limit,
    )


def _message(e: Exception) -> str:
    return e.message if isinstance(e, ApiError) else str(e)


class LoadQueryDialog:
    def __init__(
        self,
        workspace_id: str,
        on_load: Optional[Callable[[SavedVisualQuery], None]] = None,
        client: Optional[AsyncHttpClient] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.workspace_id = workspace_id
        self.on_load = on_load
        self.client = client
        self.notifier = notifier or Notifier()

        self.is_open = False
        self.loading = False
        self.error: Optional[str] = None
        self.queries: List[SavedVisualQuery] = []
        self.search_query = ""
        self.selected_id: Optional[str] = None

    async def open(self) -> List[SavedVisualQuery]:
        self.is_open = True
        self.loading = True
        self.error = None
        try:
            self.queries = await list_saved_queries(
                self.workspace_id, client=self.client
            )
            logger.info(
                "saved_queries_loaded",
                workspace_id=self.workspace_id,
                count=len(self.queries),
            )
        except (RuntimeError, ValueError, ClientError) as e:
            self.error = _message(e)
            logger.error(
                "saved_queries_failed", workspace_id=self.workspace_id, error=self.error
            )
            self.notifier.error(f"Failed to load queries: {self.error}")
        finally:
            self.loading = False
        return self.filtered_queries

    def close(self):
        self.is_open = False
        self.selected_id = None

    @property
    def filtered_queries(self) -> List[SavedVisualQuery]:
        if not self.search_query.strip():
            return list(self.queries)
        return [q for q in self.queries if q.matches(self.search_query)]

    def search(self, text: str) -> List[SavedVisualQuery]:
        self.search_query = text or ""
        return self.filtered_queries

    def toggle(self, query_id: str) -> Optional[str]:
        self.selected_id = None if self.selected_id == query_id else query_id
        return self.selected_id

    @property
    def selected(self) -> Optional[SavedVisualQuery]:
        return next((q for q in self.queries if q.id == self.selected_id), None)

    def load(self, query: SavedVisualQuery):
        if self.on_load is not None:
            self.on_load(query)
        self.close()
        self.notifier.success(f"Loaded query: {query.name}")

    async def save(
        self,
        name: str,
        config: VisualQueryConfig,
        connection_id: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[List[str]] = None,
    ) -> Optional[SavedVisualQuery]:
        """Save ``config`` under ``name``; a blank name raises ValueError"""
        if not name or not name.strip():
            raise ValueError("Query name is required")
        try:
            saved = await save_query(
                self.workspace_id,
                connection_id,
                name,
                config,
                description=description,
                tags=tags,
                client=self.client,
            )
        except (RuntimeError, ClientError) as e:
            logger.error("save_query_failed", name=name, error=_message(e))
            self.notifier.error(f"Failed to save query: {_message(e)}")
            return None

        if saved is not None:
            self.queries = [q for q in self.queries if q.id != saved.id] + [saved]
        self.notifier.success(f"Saved query: {name.strip()}")
        return saved

    async def delete(self, query_id: str) -> bool:
        try:
            await delete_query(query_id, client=self.client)
        except (RuntimeError, ClientError) as e:
            logger.error("delete_query_failed", query_id=query_id, error=_message(e))
            self.notifier.error(f"Failed to delete query: {_message(e)}")
            return False

        self.queries = [q for q in self.queries if q.id != query_id]
        if self.selected_id == query_id:
            self.selected_id = None
        self.notifier.success("Query deleted")
        return True
