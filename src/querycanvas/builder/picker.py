from typing import Callable, List, Optional

import structlog

from querycanvas.api.schema import SchemaProvider
from querycanvas.builder.models import TableSchema

logger = structlog.get_logger(__name__)


class TablePicker:
    """Filter and select one table of a connection's schema."""

    def __init__(
        self,
        provider: SchemaProvider,
        on_table_select: Optional[Callable[[str], None]] = None,
    ):
        self.provider = provider
        self.on_table_select = on_table_select
        self.search_query = ""
        self.selected_table: Optional[str] = None

    async def load(self) -> List[TableSchema]:
        return await self.provider.fetch()

    @property
    def loading(self) -> bool:
        return self.provider.loading

    @property
    def filtered_tables(self) -> List[TableSchema]:
        needle = self.search_query.lower()
        return [t for t in self.provider.tables if needle in t.name.lower()]

    def search(self, text: str) -> List[TableSchema]:
        self.search_query = text or ""
        return self.filtered_tables

    def select(self, name: str) -> bool:
        if self.provider.get_table(name) is None:
            logger.warning("unknown_table_selected", table=name)
            return False
        self.selected_table = name
        if self.on_table_select is not None:
            self.on_table_select(name)
        return True

    @property
    def selected_schema(self) -> Optional[TableSchema]:
        if self.selected_table is None:
            return None
        return self.provider.get_table(self.selected_table)
