"""Per-session verification state for a front end.

Holds what a report view needs: the reasoning log of the latest run, the
report or error it ended with, and whether a run is in flight. Starting a
new run clears the previous log, report and error.
"""

from typing import Literal, Optional

from ..errors import RunAbortedError
from ..schemas.evidence import MediaFile
from ..schemas.outputs import Report
from .run import LogListener, RunLog, VerificationPipeline, pipeline as default_pipeline

PaneState = Literal["idle", "loading", "error", "report"]


class RunInProgressError(RuntimeError):
    pass


class VerificationSession:
    def __init__(self, pipeline: Optional[VerificationPipeline] = None, listener: Optional[LogListener] = None):
        self.pipeline = pipeline or default_pipeline
        self.log = RunLog(listener)
        self.report: Optional[Report] = None
        self.error: Optional[str] = None
        self.is_loading = False

    @property
    def state(self) -> PaneState:
        if self.report is not None:
            return "report"
        if self.is_loading:
            return "loading"
        if self.error is not None:
            return "error"
        return "idle"

    def run(self, media: MediaFile, claimed_timestamp: Optional[str], location_context: str) -> Optional[Report]:
        """Run one verification; returns the report, or None with self.error set."""
        if self.is_loading:
            raise RunInProgressError("A verification run is already in progress")

        self.is_loading = True
        self.log.clear()
        self.report = None
        self.error = None
        try:
            self.report = self.pipeline.run(media, claimed_timestamp, location_context, log=self.log)
        except RunAbortedError as e:
            self.error = e.message
        finally:
            self.is_loading = False
        return self.report
