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

from typing import Annotated, Optional
from typer import Option, Argument, Typer
import asyncio
from rich import print as pp
from rich.table import Table

from querycanvas.api.schema import SchemaProvider

app = Typer(
    no_args_is_help=True,
    name="tables",
    help="Browse the tables of a connection",
    context_settings=dict(help_option_names=["-h", "--help"]),
)


@app.command("list")
def tlist(
    connection_id: Annotated[str, Argument(help="The connection to browse")],
    search: Annotated[
        Optional[str], Option(help="Only tables whose name or columns match")
    ] = None,
    columns: Annotated[bool, Option(help="Show the columns of each table")] = False,
):
    provider = SchemaProvider(connection_id)
    asyncio.run(provider.fetch())

    table = Table("table", "schema", "columns", "rows")
    for t in provider.search(search or ""):
        cols = (
            ", ".join(
                f"{c.name}{' (PK)' if c.is_primary_key else ''}"
                f"{' (FK)' if c.is_foreign_key else ''}"
                for c in t.columns
            )
            if columns
            else str(len(t.columns))
        )
        table.add_row(
            t.name,
            t.schema_name or "",
            cols,
            "" if t.row_count is None else str(t.row_count),
        )
    pp(table)
