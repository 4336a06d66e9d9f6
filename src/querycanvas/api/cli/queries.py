#
#  Copyright (C) 2017-2025 Dremio Corporation
#
#  Licensed under the Apache License, Version 2.0 (the "License");
#  you may not use this file except in compliance with the License.
#  You may obtain a copy of the License at
#
#      http://www.apache.org/licenses/LICENSE-2.0
#
#  Unless required by applicable law or agreed to in writing, software
#  distributed under the License is distributed on an "AS IS" BASIS,
#  WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
#  See the License for the specific language governing permissions and
#  limitations under the License.
#

from typing import Annotated, Optional, List
from typer import Option, Argument, Typer, BadParameter, Exit
import asyncio
from rich import print as pp
from rich.table import Table

from querycanvas.api.schema import SchemaProvider
from querycanvas.builder.canvas import VisualBuilder
from querycanvas.builder.models import Confidence
from querycanvas.builder.notify import Notifier
from querycanvas.builder.preview import SqlPreview
from querycanvas.builder.saved import LoadQueryDialog
from querycanvas.config import settings

app = Typer(
    no_args_is_help=True,
    name="queries",
    help="Saved visual queries and SQL generation",
    context_settings=dict(help_option_names=["-h", "--help"]),
)


def _workspace(workspace_id: Optional[str]) -> str:
    api = settings.instance().api
    if workspace_id is None and api is not None:
        workspace_id = api.workspace_id
    if workspace_id is None:
        raise BadParameter("--workspace-id is required when api.workspace_id is unset")
    return workspace_id


@app.command("list")
def qlist(
    workspace_id: Annotated[
        Optional[str], Option(help="Workspace to list, defaults to api.workspace_id")
    ] = None,
    search: Annotated[
        Optional[str], Option(help="Filter by name, description or tag")
    ] = None,
):
    notifier = Notifier()
    dialog = LoadQueryDialog(_workspace(workspace_id), notifier=notifier)
    asyncio.run(dialog.open())
    if dialog.error is not None:
        pp(f"[red]{notifier.last.message}[/red]")
        raise Exit(1)

    table = Table("id", "name", "tags", "updated")
    for q in dialog.search(search or ""):
        table.add_row(q.id, q.name, ", ".join(q.tags or []), q.updated_at.isoformat())
    pp(table)


async def build_sql(connection_id: str, tables: List[str]) -> SqlPreview:
    """Place ``tables`` on a canvas, apply high confidence joins and render SQL"""
    notifier = Notifier()
    provider = SchemaProvider(connection_id)
    await provider.fetch()

    builder = VisualBuilder(connection_id, provider.tables, notifier=notifier)
    for name in tables:
        if builder.add_table(name) is None and provider.get_table(name) is None:
            raise BadParameter(f"Table {name} not found in connection {connection_id}")

    for suggestion in await builder.refresh_suggestions():
        if suggestion.confidence == Confidence.HIGH:
            builder.apply_suggestion(suggestion)

    preview = SqlPreview(connection_id, notifier=notifier)
    await preview.refresh(builder.config())
    return preview


@app.command("sql")
def qsql(
    connection_id: Annotated[str, Argument(help="The connection to query")],
    tables: Annotated[List[str], Argument(help="Tables to place on the canvas")],
):
    preview = asyncio.run(build_sql(connection_id, tables))
    pp(preview.sql)
    if preview.complexity is not None:
        pp(f"Complexity: {preview.complexity}")
    if preview.error is not None:
        raise Exit(1)
