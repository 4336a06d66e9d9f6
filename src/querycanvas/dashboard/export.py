"""
Dashboard export jobs.

An export is started remotely and then polled until it reaches a terminal
status. Polling stops on ``completed``/``failed``, on cancellation (the owning
dialog closing), or after ``max_attempts`` checks, which yields ``timed_out``.
"""

import asyncio
from enum import StrEnum
from typing import Awaitable, Callable, Optional

import structlog
from aiohttp import ClientError
from pydantic import Field

from querycanvas.builder.models import WireModel
from querycanvas.builder.notify import Notifier
from querycanvas.config import settings

logger = structlog.get_logger(__name__)


class ExportFormat(StrEnum):
    PDF = "pdf"
    PNG = "png"
    PPTX = "pptx"
    XLSX = "xlsx"


class PageOrientation(StrEnum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


class PageSize(StrEnum):
    A4 = "A4"
    A3 = "A3"
    LETTER = "Letter"
    LEGAL = "Legal"
    TABLOID = "Tabloid"
    CUSTOM = "Custom"


class ExportQuality(StrEnum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ExportStatus(StrEnum):
    IDLE = "idle"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def terminal(self) -> bool:
        return self in (
            ExportStatus.COMPLETED,
            ExportStatus.FAILED,
            ExportStatus.TIMED_OUT,
        )


class ExportOptions(WireModel):
    format: ExportFormat = ExportFormat.PDF
    orientation: PageOrientation = PageOrientation.LANDSCAPE
    page_size: PageSize = PageSize.A4
    custom_width: Optional[float] = None
    custom_height: Optional[float] = None
    quality: ExportQuality = ExportQuality.HIGH
    include_filters: bool = True
    include_timestamp: bool = True
    include_data_tables: bool = False
    title: Optional[str] = None
    subtitle: Optional[str] = None
    footer_text: Optional[str] = None
    watermark: Optional[str] = None
    resolution: int = Field(default=300, gt=0)
    card_ids: list[str] = Field(default_factory=list)
    current_tab_only: bool = False


class ExportJob(WireModel):
    export_id: str
    status: ExportStatus = ExportStatus.PROCESSING
    progress: int = Field(default=0, ge=0, le=100)
    download_url: Optional[str] = None
    error: Optional[str] = None
    file_size: Optional[int] = None
    estimated_time: Optional[int] = None


StatusCheck = Callable[[str], Awaitable[ExportJob]]


class ExportPoller:
    def __init__(
        self,
        check_status: StatusCheck,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        notifier: Optional[Notifier] = None,
    ):
        cfg = settings.instance().export if settings.instance() else None
        cfg = cfg or settings.Export()
        self.check_status = check_status
        self.interval = interval if interval is not None else cfg.poll_interval
        self.max_attempts = (
            max_attempts if max_attempts is not None else cfg.max_attempts
        )
        self.notifier = notifier or Notifier()
        self.job: Optional[ExportJob] = None
        self.attempts = 0
        self._cancelled = asyncio.Event()

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    async def _wait(self) -> bool:
        """Sleep one interval; False if cancelled meanwhile"""
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=self.interval)
            return False
        except asyncio.TimeoutError:
            return True

    async def poll(self, job: ExportJob) -> ExportJob:
        self.job = job
        self.attempts = 0
        if job.status.terminal or job.status == ExportStatus.IDLE:
            return job

        while self.attempts < self.max_attempts:
            if not await self._wait():
                logger.info("export_poll_cancelled", export_id=job.export_id)
                return self.job
            self.attempts += 1
            try:
                self.job = await self.check_status(job.export_id)
            except (RuntimeError, ClientError) as e:
                logger.error(
                    "export_status_failed", export_id=job.export_id, error=str(e)
                )
                self.notifier.error("Failed to check export status")
                self.job = self.job.model_copy(
                    update={"status": ExportStatus.FAILED, "error": str(e)}
                )
                return self.job

            if self.job.status == ExportStatus.COMPLETED:
                self.notifier.success("Export completed!")
                return self.job
            if self.job.status == ExportStatus.FAILED:
                self.notifier.error(f"Export failed: {self.job.error}")
                return self.job

        logger.warning(
            "export_timed_out", export_id=job.export_id, attempts=self.attempts
        )
        self.job = self.job.model_copy(
            update={
                "status": ExportStatus.TIMED_OUT,
                "error": f"Export did not finish after {self.attempts} checks",
            }
        )
        self.notifier.error("Export timed out")
        return self.job
