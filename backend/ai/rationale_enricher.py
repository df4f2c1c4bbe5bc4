"""Optional AI rewording of suggestion rationales.

The classifier's baseline rationale is always a valid answer. A provider, when
configured, gets one short prompt under a hard timeout; anything other than a
non-empty reply falls back to the baseline.
"""
from __future__ import annotations

import asyncio
import json
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass

from ai.providers import AIProvider, get_provider
from config import settings
from models.habit import PreviewChange
from models.schedule import EveryNDaysSchedule, TimesPerWeekSchedule
from services.schedule_transforms import format_number

logger = logging.getLogger(__name__)

SOURCE_AI = "ai"
SOURCE_CACHE = "cache"
SOURCE_BASELINE = "baseline"

DEFAULT_TIMEOUT_SECONDS = 3.0
DEFAULT_CACHE_MAX_ENTRIES = 512
RATIONALE_MAX_TOKENS = 150
RATIONALE_TEMPERATURE = 0.7


@dataclass(frozen=True)
class RationaleRequest:
    classification: str
    adherence7: float
    adherence30: float
    streak: int
    baseline_rationale: str
    preview: PreviewChange | None = None


@dataclass(frozen=True)
class EnhancedRationale:
    rationale: str
    is_ai_enhanced: bool
    source: str

    def to_dict(self) -> dict:
        return {
            "rationale": self.rationale,
            "is_ai_enhanced": self.is_ai_enhanced,
            "source": self.source,
        }


_cache_lock = threading.Lock()
_rationale_cache: OrderedDict[tuple, str] = OrderedDict()


def _cache_key(request: RationaleRequest) -> tuple:
    preview = request.preview
    preview_key = json.dumps(preview.to_dict(), sort_keys=True) if preview is not None else None
    return (
        request.classification,
        float(request.adherence7),
        float(request.adherence30),
        int(request.streak),
        preview_key,
    )


def _cache_get(key: tuple) -> str | None:
    with _cache_lock:
        return _rationale_cache.get(key)


def _cache_put(key: tuple, text: str, max_entries: int) -> None:
    if max_entries <= 0:
        return
    with _cache_lock:
        _rationale_cache[key] = text
        _rationale_cache.move_to_end(key)
        while len(_rationale_cache) > max_entries:
            _rationale_cache.popitem(last=False)


def clear_rationale_cache() -> None:
    with _cache_lock:
        _rationale_cache.clear()


def rationale_cache_size() -> int:
    with _cache_lock:
        return len(_rationale_cache)


def _preview_phrases(preview: PreviewChange | None) -> list[str]:
    if preview is None:
        return []
    changes: list[str] = []
    schedule = preview.schedule
    if isinstance(schedule, TimesPerWeekSchedule) and schedule.count:
        changes.append(f"change frequency to {schedule.count}x per week")
    elif isinstance(schedule, EveryNDaysSchedule) and schedule.interval_days:
        changes.append(f"change to every {schedule.interval_days} days")
    if preview.target_num is not None:
        changes.append(f"adjust target to {format_number(preview.target_num)}")
    return changes


def build_prompt(request: RationaleRequest) -> str:
    changes = _preview_phrases(request.preview)
    preview_context = f" The proposed adjustment would {' and '.join(changes)}." if changes else ""
    return (
        "You are a supportive habit coach. Based on this habit performance data, provide a brief "
        "2-3 sentence rationale explaining the recommendation in an encouraging, actionable way.\n\n"
        f"Classification: {request.classification}\n"
        f"7-day adherence: {format_number(request.adherence7)}%\n"
        f"30-day adherence: {format_number(request.adherence30)}%\n"
        f"Current streak: {request.streak} days{preview_context}\n\n"
        "Keep the response concise, positive, and focused on helping the user succeed. "
        "Do not use markdown formatting."
    )


def _baseline(request: RationaleRequest) -> EnhancedRationale:
    return EnhancedRationale(rationale=request.baseline_rationale, is_ai_enhanced=False, source=SOURCE_BASELINE)


async def build_enhanced_rationale(
    request: RationaleRequest,
    provider: AIProvider | None = None,
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
    *,
    model: str | None = None,
    cache_max_entries: int = DEFAULT_CACHE_MAX_ENTRIES,
) -> EnhancedRationale:
    """Reword the baseline rationale through `provider`, never failing.

    Only AI replies are cached, so a provider configured later still gets a
    chance to enhance inputs that previously fell back to the baseline.
    """
    key = _cache_key(request)
    cached = _cache_get(key)
    if cached is not None:
        return EnhancedRationale(rationale=cached, is_ai_enhanced=True, source=SOURCE_CACHE)

    if provider is None:
        return _baseline(request)

    prompt = build_prompt(request)
    try:
        result = await asyncio.wait_for(
            provider.complete(
                prompt,
                model=model,
                max_tokens=RATIONALE_MAX_TOKENS,
                temperature=RATIONALE_TEMPERATURE,
                timeout=timeout_seconds,
            ),
            timeout=timeout_seconds,
        )
    except asyncio.TimeoutError:
        logger.warning("Rationale enrichment timed out after %.1fs; using baseline", timeout_seconds)
        return _baseline(request)
    except Exception as e:
        logger.warning(f"Rationale enrichment failed; using baseline: {e}")
        return _baseline(request)

    content = str((result or {}).get("content") or "").strip()
    if not content:
        logger.warning("Rationale enrichment returned empty content; using baseline")
        return _baseline(request)

    _cache_put(key, content, cache_max_entries)
    return EnhancedRationale(rationale=content, is_ai_enhanced=True, source=SOURCE_AI)


def provider_from_settings(app_settings=None) -> AIProvider | None:
    """Build the configured provider, or None when enrichment is off or unkeyed."""
    if app_settings is None:
        app_settings = settings
    if not app_settings.RATIONALE_AI_ENABLED:
        return None
    api_key = app_settings.rationale_api_key()
    if not api_key:
        return None
    provider_name = (app_settings.RATIONALE_AI_PROVIDER or "").strip().lower()
    try:
        return get_provider(provider_name, api_key, app_settings.RATIONALE_AI_MODEL)
    except ValueError as e:
        logger.warning(f"Rationale provider unavailable: {e}")
        return None
