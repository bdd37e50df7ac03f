from __future__ import annotations

import logging
import time

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse

from continuo.logging_utils import (
    clear_request_context,
    configure_logging,
    current_request_id,
    log_event,
    new_request_id,
    request_elapsed_ms,
    set_request_context,
)
from continuo.models import (
    AnalysisPayload,
    AnalyzeRequest,
    AnalyzeResponse,
    RealizedVoicingPayload,
    RealizeRequest,
    RealizeResponse,
    ScoreBreakdownPayload,
    VoiceRangesPayload,
)
from continuo.services.analysis import analyze_realization
from continuo.services.realizer import NoValidVoicingError, realize_progression_detailed

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Basso Continuo")


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or new_request_id()
    request.state.request_id = request_id
    set_request_context(request_id=request_id, route=request.url.path, method=request.method)
    started = time.perf_counter()
    status_code = 500
    log_event(logger, "request_started")
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["X-Request-ID"] = request_id
        return response
    finally:
        log_event(logger, "request_completed", status_code=status_code, duration_ms=request_elapsed_ms(started))
        clear_request_context()


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    # Runs outside the middleware, after the request context was cleared.
    request_id = getattr(request.state, "request_id", None) or new_request_id()
    logger.error(
        "unhandled_exception",
        exc_info=exc,
        extra={"event": "unhandled_exception", "request_id": request_id, "error_type": type(exc).__name__},
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Realization service error. Please try again.", "request_id": request_id},
        headers={"X-Request-ID": request_id},
    )


def _handle_no_valid_voicing(exc: NoValidVoicingError) -> HTTPException:
    log_event(logger, "request_failed", level=logging.WARNING, action="Realization", chord_index=exc.chord_index, reason=str(exc))
    return HTTPException(
        status_code=422,
        detail={
            "message": f"Realization failed: chord {exc.chord_index} cannot be voiced within the configured ranges. "
            "Adjust its chord tones or widen the voice ranges and try again.",
            "chord_index": exc.chord_index,
            "request_id": current_request_id(),
        },
    )


@app.get("/api/voice-ranges", response_model=VoiceRangesPayload)
def voice_ranges_endpoint():
    return VoiceRangesPayload()


@app.post("/api/realize", response_model=RealizeResponse)
def realize_endpoint(payload: RealizeRequest):
    ranges = payload.voice_ranges.to_voice_ranges()
    chords = [chord.to_chord_spec() for chord in payload.chords]
    try:
        realized = realize_progression_detailed(chords, ranges)
    except NoValidVoicingError as exc:
        raise _handle_no_valid_voicing(exc) from exc

    report = analyze_realization([step.voicing for step in realized], ranges)
    return RealizeResponse(
        voicings=[
            RealizedVoicingPayload.from_voicing(
                step.voicing,
                ScoreBreakdownPayload(**step.breakdown.as_floats()),
                step.candidate_count,
            )
            for step in realized
        ],
        analysis=AnalysisPayload.from_report(report),
    )


@app.post("/api/analyze", response_model=AnalyzeResponse)
def analyze_endpoint(payload: AnalyzeRequest):
    report = analyze_realization(
        [voicing.to_voicing() for voicing in payload.voicings],
        payload.voice_ranges.to_voice_ranges(),
    )
    if not report.clean:
        log_event(
            logger,
            "analysis_issues_found",
            level=logging.WARNING,
            parallel_count=len(report.parallel_warnings),
            structural_count=len(report.structural_errors),
        )
    return AnalyzeResponse(analysis=AnalysisPayload.from_report(report))
