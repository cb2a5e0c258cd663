"""Five-phase verification pipeline.

Phases run strictly in order because each prompt embeds the previous
phase's output:

1. clue extraction          (media -> free-text clues)
2. grounded geolocation     (clues -> LocationEstimate + sources; region fallback)
3. satellite retrieval      (coordinates -> SatelliteResult; degrades, never aborts)
4. time determination       (media + location -> TimeEstimate; "error" fallback)
5. report synthesis         (everything -> Report; malformed reply is fatal)

Progress is reported through a RunLog as ordered, append-only entries.
"""

from datetime import date
from typing import Callable, List, Optional, Tuple

from ..errors import RunAbortedError
from ..llm.chronology import run_time_determination
from ..llm.clues import run_clue_extraction
from ..llm.geolocate import run_geolocation
from ..llm.synthesis import run_report_synthesis
from ..log import get_logger
from ..mlops.tracing import tracer
from ..satellite.imagery import ImageryClient, imagery_client
from ..schemas.evidence import EvidenceBundle, MediaFile
from ..schemas.outputs import LogEntry, LogKind, Report

logger = get_logger("pipeline")

LogListener = Callable[[LogEntry], None]


class RunLog:
    """Append-only reasoning log for one run."""

    def __init__(self, listener: Optional[LogListener] = None):
        self._entries: List[LogEntry] = []
        self._listener = listener

    def add(self, kind: LogKind, message: str) -> LogEntry:
        entry = LogEntry(kind=kind, message=message)
        self._entries.append(entry)
        if self._listener is not None:
            self._listener(entry)
        return entry

    def info(self, message: str) -> LogEntry:
        return self.add("info", message)

    def processing(self, message: str) -> LogEntry:
        return self.add("processing", message)

    def success(self, message: str) -> LogEntry:
        return self.add("success", message)

    def warning(self, message: str) -> LogEntry:
        return self.add("warning", message)

    def error(self, message: str) -> LogEntry:
        return self.add("error", message)

    def clear(self):
        self._entries = []

    @property
    def entries(self) -> Tuple[LogEntry, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


def _excerpt(text: str, limit: int) -> str:
    text = " ".join(text.split())
    return text if len(text) <= limit else f"{text[:limit]}..."


class VerificationPipeline:
    def __init__(self, imagery: Optional[ImageryClient] = None):
        self.imagery = imagery or imagery_client

    def run(
        self,
        media: MediaFile,
        claimed_timestamp: Optional[str],
        location_context: str,
        log: Optional[RunLog] = None,
    ) -> Report:
        """
        Run all phases for one image and return the final Report.

        Raises RunAbortedError (after appending an "error" entry) on any
        unrecovered failure; no partial report is returned.
        """
        log = log if log is not None else RunLog()
        bundle = EvidenceBundle(claimed_timestamp=claimed_timestamp or None)
        phase = 0
        logger.info(f"Verification run started: region={location_context!r} claimed={claimed_timestamp!r}")

        try:
            log.info("Starting forensic analysis...")
            log.info(f"Known region: {location_context}")
            if bundle.claimed_timestamp:
                log.info("Mode: VERIFICATION of claimed timestamp")
            else:
                log.info("Mode: DETERMINATION - timestamp will be estimated from visual evidence")

            phase = 1
            log.processing("PHASE 1: Extracting visual clues...")
            with tracer.span("phase_1.clues", span_type="LLM", inputs={"region": location_context}) as span:
                bundle.raw_clues = run_clue_extraction(media, location_context)
                tracer.record(span, {"clues": bundle.raw_clues})
            log.success(f"Visual clues extracted: {_excerpt(bundle.raw_clues, 150)}")

            phase = 2
            log.processing("PHASE 2: Geolocating with web search grounding...")
            with tracer.span("phase_2.geolocate", span_type="LLM") as span:
                bundle.location, bundle.grounding_sources = run_geolocation(bundle.raw_clues, location_context)
                tracer.record(span, bundle.location.model_dump(by_alias=True))
            location = bundle.location
            log.success(f"Location identified: {location.address or 'Unknown'}")
            log.info(f"Location confidence: {location.confidence_score}% ({location.accuracy_tier})")
            if bundle.grounding_sources:
                log.success(f"Found {len(bundle.grounding_sources)} grounding sources")

            phase = 3
            if location is not None:
                log.processing("PHASE 3: Fetching Copernicus satellite imagery...")
                with tracer.span("phase_3.satellite", span_type="RETRIEVER") as span:
                    bundle.satellite_data = self.imagery.search(
                        location.latitude,
                        location.longitude,
                        self._claimed_date(bundle, log),
                    )
                    tracer.record(span, {"available": bundle.satellite_data.available, "count": bundle.satellite_data.count})
                satellite = bundle.satellite_data
                if satellite.available:
                    log.success(f"Found {satellite.count} satellite images")
                    for image in satellite.imagery[:3]:
                        log.info(f"Image from {image.date[:10]} - {image.cloud_cover:g}% cloud cover")
                else:
                    log.warning("No recent satellite imagery available for this location")

            phase = 4
            log.processing("PHASE 4: Analyzing shadows and lighting for time determination...")
            with tracer.span("phase_4.time", span_type="LLM") as span:
                bundle.time_estimate = run_time_determination(media, location, bundle.claimed_date)
                tracer.record(span, bundle.time_estimate.model_dump(by_alias=True))
            estimate = bundle.time_estimate
            if estimate.is_determined:
                log.success(f"Time estimate: {estimate.time_of_day_range}")
                log.info(f"Time confidence: {estimate.confidence_score}% (method: {estimate.primary_method})")
                log.info(_excerpt(estimate.reasoning, 100))
            else:
                log.warning("Could not determine time from visual evidence")

            phase = 5
            log.processing("PHASE 5: Generating final forensic report with extended reasoning...")
            with tracer.span("phase_5.report", span_type="LLM") as span:
                report = run_report_synthesis(media, bundle)
                tracer.record(span, {"verdict": report.verdict, "confidence": report.confidence_score})

        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.exception(f"Verification run aborted in phase {phase}")
            log.error(f"Verification failed: {message}")
            raise RunAbortedError(message, phase=phase) from e

        logger.info(f"Verification run finished: {report.verdict} ({report.confidence_score}%)")
        log.success("Verification complete! Report generated.")
        log.info(f"Verdict: {report.verdict} ({report.confidence_score}% confidence)")
        return report

    @staticmethod
    def _claimed_date(bundle: EvidenceBundle, log: RunLog) -> Optional[date]:
        if not bundle.claimed_date:
            return None
        try:
            return date.fromisoformat(bundle.claimed_date)
        except ValueError:
            log.warning(f"Claimed timestamp {bundle.claimed_timestamp!r} has no usable date; searching recent imagery")
            return None


pipeline = VerificationPipeline()
