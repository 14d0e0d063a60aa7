"""Recover a structured monthly plan from free-form model output.

The model is asked for strict JSON but regularly answers with truncated
JSON, markdown, or plain prose. ``extract_all_structured_data`` walks an
ordered chain of strategies, each tagged with a coarse confidence tier:

* 90 - the whole response (or its outermost ``{...}``) parsed as plan JSON;
  when it has no weeks the later tiers still supply them
* 60 - a weekly breakdown was recovered with pattern matching
* 30 - nothing usable; a placeholder week keeps downstream code working

A strategy that raises only records a parsing error; the extractor itself
never raises.
"""
from __future__ import annotations

import json
import logging
import math
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from pydantic import ValidationError

from monthplan.services.plan_schema import (
    DAYS_OF_WEEK,
    DetectedFormat,
    ExtractionMetadata,
    StructuredAIResponse,
    TaskDescription,
    WeeklyBreakdown,
    canonical_day,
)

logger = logging.getLogger(__name__)

JSON_CONFIDENCE = 90
PATTERN_CONFIDENCE = 60
TEXT_CONFIDENCE = 30

CRITICAL_FIELDS = ("monthly_summary",)

DEFAULT_TASK_HOURS = 2.0
DEFAULT_START_HOUR = 9
MIN_TASK_DESCRIPTION_LENGTH = 10
SUMMARY_PARAGRAPH_MIN_LENGTH = 50
SUMMARY_MAX_LENGTH = 200


@dataclass(frozen=True)
class ExtractionResult:
    raw_content: str
    structured_data: StructuredAIResponse
    metadata: ExtractionMetadata


@dataclass
class StrategyResult:
    """Fields a strategy recovered and whether it earned its confidence tier."""

    fields: Dict[str, Any]
    succeeded: bool
    note: Optional[str] = None
    # False lets a terminal strategy hand off to the later tiers.
    complete: bool = True
    missing_fields: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ExtractionStrategy:
    label: str
    confidence: int
    note: str
    extract: Callable[[str, Dict[str, Any]], StrategyResult]
    terminal: bool = False


def detect_format(raw_response: str) -> DetectedFormat:
    """Classify a response as json, mixed (structured-looking but broken) or text."""
    try:
        trimmed = raw_response.strip()
    except AttributeError:
        return "text"

    if trimmed.startswith("{") or trimmed.startswith("["):
        try:
            json.loads(trimmed)
            return "json"
        except Exception:
            return "mixed"

    if '"' in trimmed and ":" in trimmed:
        return "mixed"

    return "text"


def extract_all_structured_data(raw_response: str) -> ExtractionResult:
    """Run every strategy in order and return the best structure recovered."""
    raw = raw_response if isinstance(raw_response, str) else ""
    detected_format = detect_format(raw)
    structured: Dict[str, Any] = {}
    confidence = 0
    notes: List[str] = []
    parsing_errors: List[str] = []
    reported_missing: List[str] = []

    for strategy in EXTRACTION_STRATEGIES:
        try:
            result = strategy.extract(raw, structured)
        except Exception as exc:
            parsing_errors.append(f"{strategy.label} failed: {_describe_error(exc)}")
            logger.debug("Extraction strategy %s failed", strategy.label, exc_info=True)
            continue

        structured.update(result.fields)
        reported_missing.extend(name for name in result.missing_fields if name not in reported_missing)
        if not result.succeeded:
            continue

        confidence = max(confidence, strategy.confidence)
        note = strategy.note if result.note is None else result.note
        if note:
            notes.append(note)
        if strategy.terminal and result.complete:
            break

    missing_fields = [name for name in CRITICAL_FIELDS if not structured.get(name)]
    missing_fields.extend(name for name in reported_missing if name not in missing_fields)
    metadata = ExtractionMetadata(
        confidence=confidence,
        detected_format=detected_format,
        extraction_notes="; ".join(notes),
        parsing_errors=parsing_errors,
        missing_fields=missing_fields,
    )
    if confidence < JSON_CONFIDENCE:
        logger.warning(
            "Model response needed fallback extraction (format=%s, confidence=%s, errors=%s)",
            detected_format,
            confidence,
            len(parsing_errors),
        )
    return ExtractionResult(
        raw_content=raw,
        structured_data=StructuredAIResponse(**structured),
        metadata=metadata,
    )


# ---------------------------------------------------------------------------
# Tier 1: strict JSON
# ---------------------------------------------------------------------------


def _extract_strict_json(raw: str, _current: Dict[str, Any]) -> StrategyResult:
    payload = _load_json_object(raw)
    if not isinstance(payload, dict):
        raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
    try:
        parsed = StructuredAIResponse.model_validate(payload)
    except ValidationError as exc:
        raise ValueError(f"JSON does not match the plan shape ({exc.error_count()} validation errors)") from exc
    fields = {name: getattr(parsed, name) for name in parsed.model_fields_set}
    if not parsed.weekly_breakdown:
        fields.pop("weekly_breakdown", None)
        return StrategyResult(fields=fields, succeeded=True, complete=False, missing_fields=["weekly_breakdown"])
    return StrategyResult(fields=fields, succeeded=True)


def _load_json_object(raw: str) -> Any:
    text = raw.strip()
    try:
        return json.loads(text)
    except ValueError:
        start = text.find("{")
        end = text.rfind("}")
        if start == -1 or end <= start:
            raise
        return json.loads(text[start : end + 1])


# ---------------------------------------------------------------------------
# Tier 2: pattern extraction
# ---------------------------------------------------------------------------

_JSON_SUMMARY = re.compile(r'"monthly_summary"\s*:\s*"((?:[^"\\]|\\.)*)"', re.S)
_SUMMARY_PATTERNS: Tuple[Tuple[re.Pattern[str], int], ...] = (
    (re.compile(r"\b(?:monthly summary|overview|summary)\b\s*[:\-]?[ \t]*\n?[ \t]*([^\n]+)", re.I), 10),
    (re.compile(r"\b(?:for this month|this month)\b\s*[:,]?[ \t]*([^\n]+)", re.I), 20),
    (re.compile(r"^[ \t]*([A-Z][^.!?\n]*[.!?])", re.M), 20),
)
_PERSONALIZATION = re.compile(r"personalization[_\s]notes?\s*[:\-]?[ \t]*([^\n]+)", re.I)

_WEEKLY_FRAGMENT = re.compile(r'"weekly_breakdown"\s*:\s*\[')
_WEEK_MARKER = re.compile(r"\bweek\s*(\d{1,2})\b", re.I)
_WEEK_HEADING = re.compile(r"^[ \t#*>_-]*week\s*(\d{1,2})\b", re.I | re.M)
_WEEK_CONTENT_HINT = re.compile(r"\b(?:focus|goals?)\b", re.I)
_FOCUS_LINE = re.compile(r"\bfocus\b[*_]*\s*[:\-]?[ \t]*([^\n]*)", re.I)
_GOALS_HEADING = re.compile(r"^[ \t#*>_-]*goals?\b[*_]*[ \t]*[:\-]?[ \t]*(.*)$", re.I | re.M)
_SECTION_BREAK = re.compile(r"^[ \t#*>_-]*(?:focus|goals?)\b", re.I)
_LIST_ITEM = re.compile(r"^\s*(?:[-*•]|\d+[.)])\s*(.+?)\s*$")
_DAY_HEADING = re.compile(
    r"^[ \t#*>_-]*(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b[*_]*[ \t]*"
    r"(?:\([^)\n]*\))?[ \t]*[:\-–]?[ \t]*(.*)$",
    re.I,
)

_DURATION = r"(\d+(?:\.\d+)?)\s*(h|hrs?|hours?|m|mins?|minutes?)"
_TASK_LINE_PATTERNS: Tuple[re.Pattern[str], ...] = (
    re.compile(rf"^\s*[-*•]\s*(.+?)(?:\s*\({_DURATION}\))?\s*$", re.I),
    re.compile(rf"^\s*\d+[.)]\s*(.+?)(?:\s*\({_DURATION}\))?\s*$", re.I),
    re.compile(rf"^\s*(.+?)\s*\({_DURATION}\)\s*$", re.I),
)

_FRAGMENT_TRIM = " \t\"',:*#_"


def _extract_by_patterns(raw: str, current: Dict[str, Any]) -> StrategyResult:
    fields: Dict[str, Any] = {}

    summary = None if current.get("monthly_summary") else extract_monthly_summary(raw)
    if summary:
        fields["monthly_summary"] = summary

    breakdown = extract_weekly_breakdown(raw)
    if breakdown:
        fields["weekly_breakdown"] = breakdown

    personalization = None if current.get("personalization_notes") else _PERSONALIZATION.search(raw)
    if personalization:
        note = _clean_fragment(personalization.group(1))
        if note:
            fields["personalization_notes"] = [note]

    return StrategyResult(fields=fields, succeeded=bool(breakdown))


def extract_monthly_summary(raw: str) -> Optional[str]:
    """Find the plan summary; None when nothing summary-like exists."""
    json_match = _JSON_SUMMARY.search(raw)
    if json_match:
        summary = _decode_json_string(json_match.group(1)).strip()
        if summary:
            return summary

    for pattern, min_length in _SUMMARY_PATTERNS:
        match = pattern.search(raw)
        if not match:
            continue
        candidate = _clean_fragment(match.group(1))
        if len(candidate) >= min_length:
            return candidate

    paragraphs = [p.strip() for p in re.split(r"\n\s*\n", raw) if len(p.strip()) > SUMMARY_PARAGRAPH_MIN_LENGTH]
    if paragraphs:
        first = paragraphs[0]
        if len(first) > SUMMARY_MAX_LENGTH:
            return first[:SUMMARY_MAX_LENGTH] + "..."
        return first

    return None


def extract_weekly_breakdown(raw: str) -> List[WeeklyBreakdown]:
    """Recover weeks from a JSON fragment, else from 'Week N' sections of prose."""
    weeks = _breakdown_from_json_fragment(raw)
    if weeks:
        return [week.with_all_days() for week in weeks]

    breakdown: List[WeeklyBreakdown] = []
    for week_number, section in _week_sections(raw).items():
        breakdown.append(
            WeeklyBreakdown(
                week=week_number,
                focus=_week_focus(section, week_number),
                goals=_week_goals(section),
                daily_tasks=_daily_tasks(section),
            )
        )
    return breakdown


def _breakdown_from_json_fragment(raw: str) -> List[WeeklyBreakdown]:
    match = _WEEKLY_FRAGMENT.search(raw)
    if not match:
        return []

    decoder = json.JSONDecoder()
    try:
        items, _ = decoder.raw_decode(raw, match.end() - 1)
    except (ValueError, RecursionError):
        items = _salvage_json_objects(raw, match.end(), decoder)

    weeks: List[WeeklyBreakdown] = []
    seen: set[int] = set()
    for item in items if isinstance(items, list) else []:
        try:
            week = WeeklyBreakdown.model_validate(item)
        except ValidationError:
            logger.debug("Skipping malformed week entry in weekly_breakdown fragment")
            continue
        if week.week in seen:
            continue
        seen.add(week.week)
        weeks.append(week)
    return weeks


def _salvage_json_objects(raw: str, position: int, decoder: json.JSONDecoder) -> List[Any]:
    """Decode the complete objects at the head of a truncated JSON array."""
    items: List[Any] = []
    length = len(raw)
    while position < length:
        while position < length and raw[position] in " \t\r\n,":
            position += 1
        if position >= length or raw[position] != "{":
            break
        try:
            item, position = decoder.raw_decode(raw, position)
        except (ValueError, RecursionError):
            break
        items.append(item)
    return items


def _week_sections(raw: str) -> Dict[int, str]:
    """Text following each 'Week N' marker, grouped by week number in discovery order."""
    markers = list(_WEEK_HEADING.finditer(raw)) or list(_WEEK_MARKER.finditer(raw))
    grouped: Dict[int, List[str]] = {}
    for index, marker in enumerate(markers):
        week_number = int(marker.group(1))
        if week_number < 1:
            continue
        end = markers[index + 1].start() if index + 1 < len(markers) else len(raw)
        grouped.setdefault(week_number, []).append(raw[marker.end() : end])

    sections: Dict[int, str] = {}
    for week_number, parts in grouped.items():
        section = "\n".join(parts)
        if _WEEK_CONTENT_HINT.search(section):
            sections[week_number] = section
    return sections


def _week_focus(section: str, week_number: int) -> str:
    match = _FOCUS_LINE.search(section)
    if match:
        focus = _clean_fragment(match.group(1))
        if focus:
            return focus
    heading_rest = _clean_fragment(section.split("\n", 1)[0])
    if heading_rest and not _WEEK_CONTENT_HINT.match(heading_rest):
        return heading_rest
    return f"Week {week_number} focus"


def _week_goals(section: str) -> List[str]:
    match = _GOALS_HEADING.search(section)
    if not match:
        return []

    goals: List[str] = []
    inline = _clean_fragment(match.group(1))
    if inline:
        goals.extend(part for part in (_clean_fragment(p) for p in re.split(r"[;,]", inline)) if part)

    for line in section[match.end() :].splitlines():
        if not line.strip():
            if goals:
                break
            continue
        item = _LIST_ITEM.match(line)
        if not item or _DAY_HEADING.match(line):
            break
        goal = _clean_fragment(item.group(1))
        if goal:
            goals.append(goal)
    return goals


def _daily_tasks(section: str) -> Dict[str, List[TaskDescription]]:
    blocks: Dict[str, List[str]] = {}
    current_day: Optional[str] = None
    for line in section.splitlines():
        heading = _DAY_HEADING.match(line)
        if heading:
            current_day = canonical_day(heading.group(1))
            lines = blocks.setdefault(current_day, [])
            remainder = heading.group(2).strip()
            if remainder:
                lines.append(remainder)
            continue
        if _SECTION_BREAK.match(line):
            current_day = None
            continue
        if current_day and line.strip():
            blocks[current_day].append(line)

    return {day: parse_task_lines(blocks.get(day, []), day) for day in DAYS_OF_WEEK}


def parse_task_lines(lines: List[str], day: str) -> List[TaskDescription]:
    """Turn list-like lines under a day heading into tasks; never returns an empty list."""
    tasks: List[TaskDescription] = []
    for line in lines:
        for pattern in _TASK_LINE_PATTERNS:
            match = pattern.match(line)
            if not match:
                continue
            description = _clean_fragment(match.group(1))
            if len(description) <= MIN_TASK_DESCRIPTION_LENGTH:
                continue
            hours = _duration_hours(match.group(2), match.group(3))
            end_hour = min(23, DEFAULT_START_HOUR + max(1, math.ceil(hours)))
            tasks.append(
                TaskDescription(
                    task_description=description,
                    focus_area="General",
                    start_time=f"{DEFAULT_START_HOUR:02d}:00",
                    end_time=f"{end_hour:02d}:00",
                    difficulty_level=_difficulty_for_hours(hours),
                    scheduling_reason=f"Scheduled for {day}",
                )
            )
            break

    if not tasks:
        tasks.append(
            TaskDescription(
                task_description=f"Complete {day} objectives",
                focus_area="General",
                start_time="09:00",
                end_time="11:00",
                difficulty_level="moderate",
                scheduling_reason=f"Default task for {day}",
            )
        )
    return tasks


def _duration_hours(amount: Optional[str], unit: Optional[str]) -> float:
    if not amount:
        return DEFAULT_TASK_HOURS
    value = float(amount)
    if unit and unit.lower().startswith("m"):
        return value / 60
    return value


def _difficulty_for_hours(hours: float) -> str:
    if hours <= 1:
        return "simple"
    if hours <= 3:
        return "moderate"
    return "advanced"


# ---------------------------------------------------------------------------
# Tier 3: text-analysis fallback
# ---------------------------------------------------------------------------


def _extract_by_text_analysis(_raw: str, current: Dict[str, Any]) -> StrategyResult:
    if current.get("weekly_breakdown"):
        return StrategyResult(fields={}, succeeded=True, note="")
    return StrategyResult(fields={"weekly_breakdown": default_weekly_breakdown()}, succeeded=True)


_DEFAULT_WEEK_TASKS: Tuple[Tuple[str, str, str, str, str, str], ...] = (
    ("Plan week objectives", "Planning", "09:00", "10:00", "simple", "Weekly planning session"),
    ("Focus on primary goals", "Core Objectives", "09:00", "11:00", "moderate", "Main goal work"),
    ("Progress review and adjustment", "Review", "09:00", "10:00", "simple", "Mid-week check-in"),
    ("Continue core objectives", "Core Objectives", "09:00", "11:00", "moderate", "Goal progression"),
    ("Weekly completion and review", "Review", "09:00", "10:00", "simple", "End-of-week assessment"),
    ("Rest and reflection", "Personal", "10:00", "11:00", "simple", "Weekend recovery"),
    ("Plan next week", "Planning", "19:00", "20:00", "simple", "Weekly preparation"),
)


def default_weekly_breakdown() -> List[WeeklyBreakdown]:
    """Placeholder week (one task per day) used when nothing could be recovered."""
    daily_tasks = {
        day: [
            TaskDescription(
                task_description=description,
                focus_area=focus_area,
                start_time=start,
                end_time=end,
                difficulty_level=difficulty,
                scheduling_reason=reason,
            )
        ]
        for day, (description, focus_area, start, end, difficulty, reason) in zip(DAYS_OF_WEEK, _DEFAULT_WEEK_TASKS)
    }
    return [
        WeeklyBreakdown(
            week=1,
            focus="Foundation and Planning",
            goals=["Set up weekly structure", "Establish core habits"],
            daily_tasks=daily_tasks,
        )
    ]


EXTRACTION_STRATEGIES: Tuple[ExtractionStrategy, ...] = (
    ExtractionStrategy(
        label="JSON parsing",
        confidence=JSON_CONFIDENCE,
        note="Successfully parsed as JSON",
        extract=_extract_strict_json,
        terminal=True,
    ),
    ExtractionStrategy(
        label="Pattern extraction",
        confidence=PATTERN_CONFIDENCE,
        note="Partially extracted using pattern matching",
        extract=_extract_by_patterns,
    ),
    ExtractionStrategy(
        label="Text analysis",
        confidence=TEXT_CONFIDENCE,
        note="Basic text analysis fallback",
        extract=_extract_by_text_analysis,
    ),
)


def _clean_fragment(value: str) -> str:
    return value.strip().strip(_FRAGMENT_TRIM).strip()


def _decode_json_string(body: str) -> str:
    try:
        return json.loads(f'"{body}"')
    except ValueError:
        return body


def _describe_error(exc: Exception) -> str:
    message = str(exc)
    return message or type(exc).__name__
