"""
SQL Preview - server-side SQL generation for the current visual query.

``refresh`` re-derives the preview for a config. Only the response of the
most recent request may update the preview; older ones are dropped.
"""

from enum import StrEnum
from typing import Optional

import structlog
from aiohttp import ClientError

from querycanvas.api.transport import ApiError, AsyncHttpClient
from querycanvas.api.visual_queries import generate_sql
from querycanvas.builder.models import VisualQueryConfig
from querycanvas.builder.notify import Notifier

logger = structlog.get_logger(__name__)

PLACEHOLDER_SQL = "-- Select tables to start building your query"
ERROR_PREFIX = "-- Error generating SQL: "
DEFAULT_ERROR = "Failed to generate SQL"


class Complexity(StrEnum):
    SIMPLE = "Simple"
    MODERATE = "Moderate"
    COMPLEX = "Complex"


def complexity_score(config: VisualQueryConfig) -> int:
    return sum(
        (
            len(config.tables) > 1,
            len(config.joins) > 0,
            len(config.filters.conditions) > 0,
            len(config.aggregations) > 0,
            len(config.group_by) > 0,
            len(config.having.conditions) > 0,
        )
    )


def complexity(config: VisualQueryConfig) -> Optional[Complexity]:
    score = complexity_score(config)
    if score == 0:
        return None
    if score <= 2:
        return Complexity.SIMPLE
    if score <= 4:
        return Complexity.MODERATE
    return Complexity.COMPLEX


class SqlPreview:
    def __init__(
        self,
        connection_id: str,
        client: Optional[AsyncHttpClient] = None,
        notifier: Optional[Notifier] = None,
    ):
        self.connection_id = connection_id
        self.client = client
        self.notifier = notifier or Notifier()
        self.config: Optional[VisualQueryConfig] = None
        self.sql = ""
        self.error: Optional[str] = None
        self.loading = False
        self._generation = 0

    @property
    def complexity(self) -> Optional[Complexity]:
        return complexity(self.config) if self.config is not None else None

    @property
    def can_copy(self) -> bool:
        return not self.loading and self.error is None and not self.sql.startswith("--")

    async def refresh(
        self, config: VisualQueryConfig, connection_id: Optional[str] = None
    ) -> str:
        self.config = config
        if connection_id is not None:
            self.connection_id = connection_id
        self._generation += 1
        generation = self._generation

        if not config.tables:
            self.sql = PLACEHOLDER_SQL
            self.error = None
            self.loading = False
            return self.sql

        self.loading = True
        self.error = None
        try:
            sql = await generate_sql(self.connection_id, config, client=self.client)
        except (ApiError, RuntimeError, ValueError, ClientError) as e:
            if isinstance(e, ApiError):
                message = e.detail or DEFAULT_ERROR
            else:
                message = str(e) or DEFAULT_ERROR
            if generation != self._generation:
                logger.debug("stale_sql_error_dropped", error=message)
                return self.sql
            logger.warning(
                "sql_generation_failed",
                connection_id=self.connection_id,
                error=message,
            )
            self.error = message
            self.sql = ERROR_PREFIX + message
            self.loading = False
            return self.sql

        if generation != self._generation:
            logger.debug(
                "stale_sql_dropped", generation=generation, latest=self._generation
            )
            return self.sql

        self.sql = sql
        self.loading = False
        logger.info(
            "sql_generated",
            tables=len(config.tables),
            complexity=str(self.complexity) if self.complexity else None,
        )
        return self.sql

    def copy(self) -> Optional[str]:
        """The SQL text to put on the clipboard, if there is any"""
        if not self.can_copy:
            self.notifier.error("Failed to copy SQL")
            return None
        self.notifier.success("SQL copied to clipboard")
        return self.sql
