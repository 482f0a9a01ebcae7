import logging
import threading
import typing as t

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from journal import config
from journal.analysis import analyze_emotion
from journal.errors import JournalError, RateLimitError, ValidationError
from journal.llm import LLMClient
from journal.models import (
    AnalyzeRequest,
    Cycle,
    EmotionData,
    SessionInfo,
    SessionRecordRequest,
    WeeklyReport,
    WeeklyReportRequest,
)
from journal.rate_limit import RateLimiter
from journal.reports import build_report
from journal.storage import JsonFileStorage, safe_name
from journal.tracker import SESSIONS_PER_CYCLE, EmotionTracker
from journal.validation import client_identifier

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("journal.api")

app = FastAPI(title="Emotion Journal")

# === CORS Setup ===
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ----- Dependencies -----

_llm_client: t.Optional[LLMClient] = None
_rate_limiter = RateLimiter()
# one write lock per client, shared by every tracker built for it
_tracker_locks: t.Dict[str, threading.Lock] = {}
_tracker_locks_guard = threading.Lock()


def get_llm() -> LLMClient:
    global _llm_client
    if _llm_client is None:
        _llm_client = LLMClient.from_config()
    return _llm_client


def get_rate_limiter() -> RateLimiter:
    return _rate_limiter


def get_tracker(client_id: str) -> EmotionTracker:
    if not client_id or safe_name(client_id) != client_id:
        raise ValidationError("client_id may only contain letters, digits, '-' and '_'")
    with _tracker_locks_guard:
        lock = _tracker_locks.setdefault(client_id, threading.Lock())
    return EmotionTracker(JsonFileStorage(config.DATA_DIR, client_id), lock=lock)


# ----- Error rendering -----

@app.exception_handler(JournalError)
def journal_error_handler(request: Request, exc: JournalError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s (%s)", request.method, request.url.path, exc.message, exc.details)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
def request_validation_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        details.append({"field": ".".join(loc), "message": err.get("msg", "")})
    return JSONResponse(status_code=400, content=ValidationError(details=details).to_dict())


@app.exception_handler(Exception)
def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    # only development builds expose the raw message
    message = str(exc) if config.ENVIRONMENT == "development" else "服务器内部错误"
    return JSONResponse(status_code=500, content={"error": message, "code": "INTERNAL_ERROR"})


# ----- Routes -----

@app.get("/")
def health_check():
    return {"status": "ok"}


@app.post("/analyze-emotion", response_model=EmotionData)
def analyze(
    req: AnalyzeRequest,
    request: Request,
    llm: LLMClient = Depends(get_llm),
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    identifier = client_identifier(request)
    if not limiter.allow(identifier, config.RATE_LIMIT_MAX_REQUESTS, config.RATE_LIMIT_WINDOW_MS):
        raise RateLimitError()
    return analyze_emotion(req.text, llm)


@app.post("/generate-weekly-report", response_model=WeeklyReport)
def generate_weekly_report(req: WeeklyReportRequest, llm: LLMClient = Depends(get_llm)):
    return build_report(req.records, llm)


@app.get("/sessions/{client_id}/cycle", response_model=Cycle)
def current_cycle(tracker: EmotionTracker = Depends(get_tracker)):
    return tracker.get_current_cycle()


@app.get("/sessions/{client_id}/records")
def list_records(tracker: EmotionTracker = Depends(get_tracker)):
    records = tracker.get_all_records()
    return {"records": [r.to_json_dict() for r in records], "count": len(records)}


@app.post("/sessions/{client_id}/records", response_model=SessionInfo)
def save_record(emotion_data: SessionRecordRequest, tracker: EmotionTracker = Depends(get_tracker)):
    # the client saves only after the user has picked benefits
    return tracker.save_record(emotion_data)


@app.get("/sessions/{client_id}/recent")
def recent_records(tracker: EmotionTracker = Depends(get_tracker)):
    records = tracker.get_recent_seven_records()
    return {
        "records": [r.to_json_dict() for r in records],
        "count": len(records),
        "ready": len(records) == SESSIONS_PER_CYCLE,
    }


@app.post("/sessions/{client_id}/cycles", response_model=Cycle)
def start_new_cycle(tracker: EmotionTracker = Depends(get_tracker)):
    return tracker.start_new_cycle()


@app.delete("/sessions/{client_id}")
def clear_sessions(tracker: EmotionTracker = Depends(get_tracker)):
    tracker.clear_all_data()
    return {"ok": True}
