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
from enum import StrEnum
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from pydantic import BaseModel, Field

from querycanvas import log
from querycanvas.api.transport import AsyncHttpClient, BiAsyncHttpClient
from querycanvas.config import settings
from querycanvas.dashboard.export import ExportJob, ExportOptions


class Frequency(StrEnum):
    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


class ReportFormat(StrEnum):
    PDF = "PDF"
    PNG = "PNG"
    CSV = "CSV"


class Insights(BaseModel):
    insights: List[str] = Field(default_factory=list)


def _dashboard(dashboard_id: str) -> str:
    return f"/api/dashboards/{quote(dashboard_id, safe='')}"


async def schedule_report(
    dashboard_id: str,
    email: str,
    frequency: Frequency = Frequency.WEEKLY,
    format: ReportFormat = ReportFormat.PDF,
    client: Optional[AsyncHttpClient] = None,
):
    if not email or not email.strip():
        raise ValueError("Please enter an email address")
    client = client or BiAsyncHttpClient()
    await client.post(
        f"{_dashboard(dashboard_id)}/schedule",
        body={
            "frequency": Frequency(frequency).value,
            "email": email.strip(),
            "format": ReportFormat(format).value,
        },
    )
    log.logger(__name__).info(
        "report_scheduled", dashboard_id=dashboard_id, frequency=str(frequency)
    )


def explain_context(title: str) -> str:
    return (
        f'Analyze the dataset for "{title}". '
        "Focus on trends, outliers, and key takeaways."
    )


async def explain_data(
    data: List[Dict[str, Any]],
    title: Optional[str] = None,
    context: Optional[str] = None,
    client: Optional[AsyncHttpClient] = None,
) -> List[str]:
    """Ask the AI endpoint for insights on the first rows of ``data``"""
    cfg = settings.instance().ai if settings.instance() else None
    max_rows = (cfg or settings.Ai()).max_explain_rows
    client = client or BiAsyncHttpClient()
    if context is None:
        context = explain_context(title or "this chart")
    result = await client.post(
        "/api/ai/explain",
        body={"data": list(data[:max_rows]), "context": context},
        deser=Insights,
    )
    return list(result.insights) if result is not None else []


async def start_export(
    dashboard_id: str,
    options: Optional[ExportOptions] = None,
    client: Optional[AsyncHttpClient] = None,
) -> ExportJob:
    client = client or BiAsyncHttpClient()
    options = options or ExportOptions()
    return await client.post(
        f"{_dashboard(dashboard_id)}/export", body=options.to_wire(), deser=ExportJob
    )


async def get_export_status(
    dashboard_id: str, export_id: str, client: Optional[AsyncHttpClient] = None
) -> ExportJob:
    client = client or BiAsyncHttpClient()
    return await client.get(
        f"{_dashboard(dashboard_id)}/export/{quote(export_id, safe='')}",
        deser=ExportJob,
    )
