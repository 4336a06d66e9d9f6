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

import logging
from pathlib import Path
from typing import Annotated, Optional

from click import Choice
from rich import print as pp
from typer import Option, Typer
from yaml import dump

from querycanvas import log
from querycanvas.api.cli import queries, tables
from querycanvas.config import settings

app = Typer(
    no_args_is_help=True,
    context_settings=dict(help_option_names=["-h", "--help"]),
)


@app.callback()
def main(
    config_file: Annotated[
        Optional[Path],
        Option("-c", "--cfg", help="The config yaml for various options"),
    ] = None,
    log_level: Annotated[
        Optional[str],
        Option(
            help="The log level", click_type=Choice(list(logging._nameToLevel.keys()))
        ),
    ] = "WARNING",
    json_logs: Annotated[Optional[bool], Option(help="Enable JSON logs")] = False,
):
    log.set_level(log_level, json=json_logs)
    if config_file is not None:
        settings.configure(config_file, force=True)


tc = Typer(
    context_settings=dict(help_option_names=["-h", "--help"]),
    name="config",
    help="Configuration management",
)


@tc.command("show", help="Show the current configuration")
def show_config(
    show_filename: Annotated[
        bool, Option(help="Show the filename for default config file")
    ] = False,
):
    dc = settings.default_config()
    pp(f"Default config file: {dc!s} (exists = {dc.exists()!s})")
    if not show_filename:
        pp(
            dump(
                settings.instance().model_dump(
                    exclude_none=True, mode="json", exclude_unset=True, by_alias=True
                )
            )
        )


@tc.command("create", help="Create a default configuration file")
def create_config(
    uri: Annotated[str, Option(help="Base URL of the BI API")],
    token: Annotated[
        Optional[str],
        Option(help="Bearer token. If it starts with @ the rest is a filename"),
    ] = None,
    workspace_id: Annotated[
        Optional[str], Option(help="Default workspace for saved queries")
    ] = None,
    dry_run: Annotated[
        bool, Option(help="Dry run, do not overwrite the config file. Just print it")
    ] = False,
):
    api = settings.Api.model_validate(
        {"uri": uri, "token": token, "workspace_id": workspace_id}
    )
    settings.configure(settings.default_config(), force=True)
    settings.instance().api = api
    if (d := settings.write_settings(dry_run=dry_run)) is not None and dry_run:
        pp(d)
    elif not dry_run:
        pp(f"Created default config file: {settings.default_config()!s}")


app.add_typer(tc)
app.add_typer(tables.app)
app.add_typer(queries.app)


def cli():
    app()


if __name__ == "__main__":
    cli()
