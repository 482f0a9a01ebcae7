"""Session tracking for the 7-session emotion cycle.

The tracker owns two storage keys: an append-only list of records and the
current cycle. A cycle accepts sessions 1..7; the save after session 7 first
rolls over to a new cycle and then records session 1 of it.
"""
import json
import logging
import threading
import typing as t
from datetime import datetime, timezone

from pydantic import ValidationError as ModelValidationError

from .errors import StorageError
from .models import Cycle, EmotionData, EmotionRecord, EmotionTrend, SessionInfo
from .storage import Storage

logger = logging.getLogger(__name__)

RECORDS_KEY = "emotion_records"
CURRENT_CYCLE_KEY = "current_emotion_cycle"

SESSIONS_PER_CYCLE = 7
NEUTRAL_EMOTION = "平静"

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_timestamp(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> t.Optional[datetime]:
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def advance_cycle(cycle: Cycle, now: datetime) -> Cycle:
    """Return the cycle the next session belongs to.

    A cycle with fewer than 7 sessions is returned as is; a full one is
    replaced by the next, empty cycle.
    """
    if cycle.session_count < SESSIONS_PER_CYCLE:
        return cycle
    return Cycle(cycle_number=cycle.cycle_number + 1, session_count=0, start_date=iso_timestamp(now))


def analyze_emotion_trends(records: t.Sequence[EmotionRecord]) -> t.List[EmotionTrend]:
    trends = []
    for index, record in enumerate(records):
        words = record.emotion_data.emotion_words
        dominant = words[0].word if words else NEUTRAL_EMOTION
        intensity = sum(w.count for w in words)
        trends.append(EmotionTrend(
            # position, not the stored session number, orders the chart
            session=index + 1,
            dominant_emotion=dominant,
            intensity=min(intensity * 10, 100),
            date=short_date(record.timestamp),
        ))
    return trends


def short_date(timestamp: str) -> str:
    """zh-CN short date, e.g. 2024/1/5."""
    dt = parse_timestamp(timestamp)
    if dt is None:
        return str(timestamp)
    return f"{dt.year}/{dt.month}/{dt.day}"


class EmotionTracker:
    """Record log and cycle for one client.

    Writes hold ``lock`` for the whole read-modify-write. Trackers built over
    the same storage must share one lock, otherwise concurrent saves can lose
    records or reuse a session number.
    """

    def __init__(
        self,
        storage: Storage,
        clock: t.Optional[t.Callable[[], datetime]] = None,
        lock: t.Optional[threading.Lock] = None,
    ):
        self._storage = storage
        self._clock = clock or utc_now
        self._lock = lock or threading.Lock()

    # ----- reads -----

    def _load_raw_records(self) -> t.List[dict]:
        stored = self._storage.get(RECORDS_KEY)
        if not stored:
            return []
        try:
            data = json.loads(stored)
        except ValueError as e:
            raise StorageError(f"corrupt {RECORDS_KEY}: {e}") from e
        if not isinstance(data, list):
            raise StorageError(f"corrupt {RECORDS_KEY}: expected a list")
        return data

    def get_all_records(self) -> t.List[EmotionRecord]:
        try:
            raw = self._load_raw_records()
        except StorageError:
            logger.exception("failed to load emotion records")
            return []
        records = []
        for item in raw:
            if not isinstance(item, dict):
                continue
            item = dict(item)
            if not item.get("cycleNumber"):
                item["cycleNumber"] = 1
            try:
                records.append(EmotionRecord.model_validate(item))
            except ModelValidationError as e:
                logger.warning("skipping unreadable record %r: %s", item.get("id"), e)
        return records

    def get_current_cycle(self) -> Cycle:
        try:
            stored = self._storage.get(CURRENT_CYCLE_KEY)
            if stored:
                return Cycle.model_validate_json(stored)
        except (StorageError, ModelValidationError):
            logger.exception("failed to load current cycle, using default")
        return Cycle(cycle_number=1, session_count=0, start_date=iso_timestamp(self._clock()))

    # ----- writes -----

    def _write_cycle(self, cycle: Cycle) -> None:
        self._storage.set(CURRENT_CYCLE_KEY, json.dumps(cycle.to_json_dict(), ensure_ascii=False))

    @staticmethod
    def _next_id(raw_records: t.List[dict], now: datetime) -> str:
        candidate = int(now.timestamp() * 1000)
        for item in raw_records:
            rid = str(item.get("id", "")) if isinstance(item, dict) else ""
            if rid.isdigit() and int(rid) >= candidate:
                candidate = int(rid) + 1
        return str(candidate)

    def save_record(self, emotion_data: EmotionData) -> SessionInfo:
        """Append a record for a finished session and advance the cycle.

        ``emotion_data`` must already carry the user's selected benefits;
        records are never rewritten after this call.
        """
        with self._lock:
            return self._save_record(emotion_data)

    def _save_record(self, emotion_data: EmotionData) -> SessionInfo:
        now = self._clock()
        try:
            raw_records = self._load_raw_records()
            cycle = self.get_current_cycle()
            current = advance_cycle(cycle, now)
            if current is not cycle:
                logger.info(
                    "cycle %d finished with %d sessions, starting cycle %d",
                    cycle.cycle_number, cycle.session_count, current.cycle_number,
                )
                self._write_cycle(current)

            session_number = current.session_count + 1
            record = EmotionRecord(
                id=self._next_id(raw_records, now),
                timestamp=iso_timestamp(now),
                emotion_data=emotion_data,
                session_number=session_number,
                cycle_number=current.cycle_number,
            )
            raw_records.append(record.to_json_dict())
            self._storage.set(RECORDS_KEY, json.dumps(raw_records, ensure_ascii=False))
            self._write_cycle(current.model_copy(update={"session_count": session_number}))
        except StorageError:
            logger.exception("failed to save emotion record")
            return SessionInfo(
                session_number=1,
                should_generate_report=False,
                cycle_number=1,
                start_time=iso_timestamp(now),
            )

        should_report = session_number == SESSIONS_PER_CYCLE
        logger.info(
            "saved cycle %d session %d%s",
            current.cycle_number, session_number, " (weekly report due)" if should_report else "",
        )
        return SessionInfo(
            session_number=session_number,
            should_generate_report=should_report,
            cycle_number=current.cycle_number,
            start_time=iso_timestamp(now),
        )

    def get_recent_seven_records(self) -> t.List[EmotionRecord]:
        """Records for the weekly report.

        While the current cycle is incomplete this is its records so far
        (fewer than 7). Otherwise it is the latest cycle holding at least 7
        records, oldest first. If no cycle ever reached 7 the last 7 records
        are returned even if they span cycles.
        """
        records = self.get_all_records()
        cycle = self.get_current_cycle()

        if cycle.session_count < SESSIONS_PER_CYCLE:
            return [r for r in records if r.cycle_number == cycle.cycle_number]

        by_cycle: t.Dict[int, t.List[EmotionRecord]] = {}
        for r in records:
            by_cycle.setdefault(r.cycle_number, []).append(r)

        for cycle_number in sorted(by_cycle, reverse=True):
            cycle_records = by_cycle[cycle_number]
            if len(cycle_records) >= SESSIONS_PER_CYCLE:
                cycle_records.sort(key=lambda r: parse_timestamp(r.timestamp) or _EPOCH)
                return cycle_records[:SESSIONS_PER_CYCLE]

        return records[-SESSIONS_PER_CYCLE:]

    def start_new_cycle(self) -> Cycle:
        with self._lock:
            current = self.get_current_cycle()
            new_cycle = Cycle(
                cycle_number=current.cycle_number + 1,
                session_count=0,
                start_date=iso_timestamp(self._clock()),
            )
            try:
                self._write_cycle(new_cycle)
            except StorageError:
                logger.exception("failed to start a new cycle")
                return current
        logger.info("started cycle %d on request", new_cycle.cycle_number)
        return new_cycle

    def clear_all_data(self) -> None:
        with self._lock:
            self._storage.remove(RECORDS_KEY)
            self._storage.remove(CURRENT_CYCLE_KEY)
