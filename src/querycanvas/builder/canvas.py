"""
Visual Builder - canvas tables and the join graph between them.

The builder exclusively owns the ``TableNode`` and ``JoinEdge`` collections of
one session. Every successful mutation is reported through ``on_query_change``,
the only channel by which the canvas reaches the SQL preview.

Mutations are synchronous. Join suggestions are fetched by awaiting
``refresh_suggestions()``, which only calls the server when the set of table
names has changed since the last request.
"""

from typing import Callable, List, NamedTuple, Optional

import structlog
from aiohttp import ClientError

from querycanvas.api.transport import AsyncHttpClient
from querycanvas.api.visual_queries import get_join_suggestions
from querycanvas.builder.ids import IdGenerator
from querycanvas.builder.models import (
    JoinEdge,
    JoinSuggestion,
    JoinType,
    Position,
    TableNode,
    TableSchema,
    VisualQueryConfig,
)
from querycanvas.builder.notify import Notifier
from querycanvas.config import settings

logger = structlog.get_logger(__name__)

# grid layout of dropped tables
GRID_COLUMNS = 3
GRID_ORIGIN = 50
GRID_DX = 280
GRID_DY = 250


class QueryChange(NamedTuple):
    tables: List[TableNode]
    joins: List[JoinEdge]


def grid_position(count: int) -> Position:
    return Position(
        x=GRID_ORIGIN + (count % GRID_COLUMNS) * GRID_DX,
        y=GRID_ORIGIN + (count // GRID_COLUMNS) * GRID_DY,
    )


class VisualBuilder:
    def __init__(
        self,
        connection_id: str,
        tables: List[TableSchema],
        on_query_change: Optional[Callable[[QueryChange], None]] = None,
        notifier: Optional[Notifier] = None,
        client: Optional[AsyncHttpClient] = None,
        ids: Optional[IdGenerator] = None,
    ):
        self.connection_id = connection_id
        self.schemas = list(tables)
        self.on_query_change = on_query_change
        self.notifier = notifier or Notifier()
        self.client = client
        self.ids = ids or IdGenerator()

        self.tables: List[TableNode] = []
        self.joins: List[JoinEdge] = []
        self.suggestions: List[JoinSuggestion] = []
        self.loading_suggestions = False

        self._generation = 0
        self._suggested_for: Optional[frozenset] = None

    @property
    def table_names(self) -> List[str]:
        return [t.table_name for t in self.tables]

    def get_table_schema(self, name: str) -> Optional[TableSchema]:
        return next((t for t in self.schemas if t.name == name), None)

    def _changed(self):
        if self.on_query_change is not None:
            self.on_query_change(QueryChange(list(self.tables), list(self.joins)))

    def add_table(self, name: str) -> Optional[TableNode]:
        if self.get_table_schema(name) is None:
            logger.debug("drop_ignored_unknown_table", table=name)
            return None

        if name in self.table_names:
            self.notifier.warning(f'Table "{name}" is already on the canvas')
            return None

        node = TableNode(
            id=self.ids.next("table"),
            table_name=name,
            position=grid_position(len(self.tables)),
        )
        self.tables = [*self.tables, node]
        logger.info("table_added", table=name, node_id=node.id)
        self.notifier.success(f'Added table "{name}"')
        self._changed()
        return node

    def remove_table(self, node_id: str) -> bool:
        node = next((t for t in self.tables if t.id == node_id), None)
        if node is None:
            return False

        self.tables = [t for t in self.tables if t.id != node_id]
        name = node.table_name
        self.joins = [
            j for j in self.joins if j.from_table != name and j.to_table != name
        ]
        logger.info("table_removed", table=name, joins=len(self.joins))
        self.notifier.success(f'Removed table "{name}"')
        self._changed()
        return True

    def find_join(
        self, from_table: str, from_column: str, to_table: str, to_column: str
    ) -> Optional[JoinEdge]:
        return next(
            (
                j
                for j in self.joins
                if j.same_endpoints(from_table, from_column, to_table, to_column)
            ),
            None,
        )

    def add_join(
        self,
        from_table: str,
        to_table: str,
        from_column: str,
        to_column: str,
        join_type: JoinType = JoinType.INNER,
    ) -> Optional[JoinEdge]:
        if self.find_join(from_table, from_column, to_table, to_column) is not None:
            self.notifier.warning("This join already exists")
            return None

        join = JoinEdge(
            id=self.ids.next("join"),
            from_table=from_table,
            from_column=from_column,
            to_table=to_table,
            to_column=to_column,
            join_type=JoinType(join_type),
        )
        self.joins = [*self.joins, join]
        logger.info(
            "join_added",
            join=f"{from_table}.{from_column} -> {to_table}.{to_column}",
            join_type=join.join_type.value,
        )
        self.notifier.success(f"Added {join.join_type.value} join")
        self._changed()
        return join

    def apply_suggestion(self, suggestion: JoinSuggestion) -> Optional[JoinEdge]:
        return self.add_join(
            suggestion.from_table,
            suggestion.to_table,
            suggestion.from_column,
            suggestion.to_column,
            suggestion.join_type,
        )

    def remove_join(self, join_id: str) -> bool:
        if not any(j.id == join_id for j in self.joins):
            return False
        self.joins = [j for j in self.joins if j.id != join_id]
        self.notifier.success("Removed join")
        self._changed()
        return True

    def update_join_type(self, join_id: str, join_type: JoinType) -> bool:
        if not any(j.id == join_id for j in self.joins):
            return False
        join_type = JoinType(join_type)
        self.joins = [
            j.model_copy(update={"join_type": join_type}) if j.id == join_id else j
            for j in self.joins
        ]
        self._changed()
        return True

    @property
    def suggestions_stale(self) -> bool:
        return self._suggested_for != frozenset(self.table_names)

    async def refresh_suggestions(self, force: bool = False) -> List[JoinSuggestion]:
        names = self.table_names
        if not force and not self.suggestions_stale:
            return self.suggestions

        self._suggested_for = frozenset(names)
        self._generation += 1
        generation = self._generation

        if len(names) < 2:
            self.suggestions = []
            self.loading_suggestions = False
            return self.suggestions

        self.loading_suggestions = True
        try:
            result = await get_join_suggestions(
                self.connection_id, names, client=self.client
            )
        except (RuntimeError, ValueError, ClientError) as e:
            logger.error("join_suggestions_failed", tables=names, error=str(e))
            if generation == self._generation:
                self.suggestions = []
                self.loading_suggestions = False
                self.notifier.error("Failed to fetch join suggestions")
            return self.suggestions

        if generation != self._generation:
            logger.debug(
                "stale_suggestions_dropped",
                generation=generation,
                latest=self._generation,
            )
            return self.suggestions

        self.loading_suggestions = False
        self.suggestions = result
        logger.info("join_suggestions_loaded", count=len(result))
        return self.suggestions

    def load(self, config: VisualQueryConfig):
        """Replace the canvas with the tables and joins of a saved query"""
        self.tables = list(config.tables)
        self.joins = list(config.joins)
        self._changed()

    def config(self, base: Optional[VisualQueryConfig] = None) -> VisualQueryConfig:
        if base is None:
            cfg = settings.instance().builder if settings.instance() else None
            base = VisualQueryConfig(limit=(cfg or settings.Builder()).default_limit)
        return base.model_copy(
            update={"tables": list(self.tables), "joins": list(self.joins)}
        )
