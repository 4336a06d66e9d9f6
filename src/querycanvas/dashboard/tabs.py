"""
Dashboard tabs.

A dashboard can split its cards over several ordered tabs. Exactly one tab is
active while any exist; removing the active tab activates the first remaining
one. The default tab and tabs that still hold cards cannot be removed.
"""

from typing import Iterable, List, Optional

import structlog
from pydantic import Field

from querycanvas.builder.ids import IdGenerator
from querycanvas.builder.models import WireModel
from querycanvas.builder.notify import Notifier

logger = structlog.get_logger(__name__)

MAX_TABS = 10


class DashboardTab(WireModel):
    id: str
    name: str
    description: Optional[str] = None
    card_ids: List[str] = Field(default_factory=list)
    icon: Optional[str] = None
    order: int = 0
    is_default: bool = False


def _required(name: Optional[str]) -> str:
    if not name or not name.strip():
        raise ValueError("Tab name is required")
    return name.strip()


def _strip(text: Optional[str]) -> Optional[str]:
    return text.strip() if text is not None else None


class DashboardTabs:
    def __init__(
        self,
        tabs: Iterable[DashboardTab] = (),
        max_tabs: int = MAX_TABS,
        notifier: Optional[Notifier] = None,
        ids: Optional[IdGenerator] = None,
    ):
        self.tabs: List[DashboardTab] = sorted(tabs, key=lambda t: t.order)
        self.max_tabs = max_tabs
        self.notifier = notifier or Notifier()
        self.ids = ids or IdGenerator()
        default = next((t for t in self.tabs if t.is_default), None)
        first = default or (self.tabs[0] if self.tabs else None)
        self.active_tab_id: Optional[str] = first.id if first else None

    def get(self, tab_id: str) -> Optional[DashboardTab]:
        return next((t for t in self.tabs if t.id == tab_id), None)

    @property
    def active_tab(self) -> Optional[DashboardTab]:
        if self.active_tab_id is None:
            return None
        return self.get(self.active_tab_id)

    @property
    def can_add(self) -> bool:
        return len(self.tabs) < self.max_tabs

    def activate(self, tab_id: str) -> bool:
        if self.get(tab_id) is None:
            return False
        self.active_tab_id = tab_id
        return True

    def _replace(self, tab: DashboardTab):
        self.tabs = [tab if t.id == tab.id else t for t in self.tabs]

    def _renumber(self):
        self.tabs = [
            t if t.order == i else t.model_copy(update={"order": i})
            for i, t in enumerate(self.tabs)
        ]

    def add(
        self,
        name: str,
        description: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> Optional[DashboardTab]:
        """Append a new empty tab and make it active"""
        name = _required(name)
        if not self.can_add:
            self.notifier.error(f"Maximum of {self.max_tabs} tabs allowed")
            return None

        tab = DashboardTab(
            id=self.ids.next("tab"),
            name=name,
            description=_strip(description),
            icon=icon,
            order=len(self.tabs),
        )
        self.tabs = [*self.tabs, tab]
        self.active_tab_id = tab.id
        logger.info("tab_added", tab_id=tab.id, name=name)
        self.notifier.success(f'Tab "{name}" created')
        return tab

    def remove(self, tab_id: str) -> bool:
        tab = self.get(tab_id)
        if tab is None:
            return False
        if tab.is_default:
            self.notifier.error("Cannot delete the default tab")
            return False
        if tab.card_ids:
            self.notifier.error(
                f"Cannot delete tab with {len(tab.card_ids)} cards. "
                "Move or delete cards first."
            )
            return False

        self.tabs = [t for t in self.tabs if t.id != tab_id]
        self._renumber()
        if self.active_tab_id == tab_id:
            self.active_tab_id = self.tabs[0].id if self.tabs else None
        logger.info("tab_removed", tab_id=tab_id)
        self.notifier.success(f'Tab "{tab.name}" deleted')
        return True

    def rename(
        self, tab_id: str, name: str, description: Optional[str] = None
    ) -> Optional[DashboardTab]:
        name = _required(name)
        tab = self.get(tab_id)
        if tab is None:
            return None
        tab = tab.model_copy(update={"name": name, "description": _strip(description)})
        self._replace(tab)
        self.notifier.success("Tab updated")
        return tab

    def reorder(self, tab_ids: List[str]) -> List[DashboardTab]:
        """Put the tabs in the order of ``tab_ids``, which must name each tab once"""
        if sorted(tab_ids) != sorted(t.id for t in self.tabs):
            raise ValueError("Reorder must list every tab exactly once")
        by_id = {t.id: t for t in self.tabs}
        self.tabs = [by_id[i] for i in tab_ids]
        self._renumber()
        return list(self.tabs)

    def add_card(self, tab_id: str, card_id: str) -> bool:
        tab = self.get(tab_id)
        if tab is None or card_id in tab.card_ids:
            return False
        self._replace(tab.model_copy(update={"card_ids": [*tab.card_ids, card_id]}))
        return True

    def remove_card(self, tab_id: str, card_id: str) -> bool:
        tab = self.get(tab_id)
        if tab is None or card_id not in tab.card_ids:
            return False
        self._replace(
            tab.model_copy(
                update={"card_ids": [c for c in tab.card_ids if c != card_id]}
            )
        )
        return True

    def tab_of(self, card_id: str) -> Optional[DashboardTab]:
        return next((t for t in self.tabs if card_id in t.card_ids), None)
