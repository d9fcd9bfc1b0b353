"""Render memory records as flat searchable text, one string per memory."""

import json
from typing import Any, Dict, Mapping


def _format_semantic(record: Mapping[str, Any]) -> str:
    text = record.get("fact") or record.get("content") or ""
    if record.get("category"):
        text = f"{record['category']}: {text}"
    if record.get("source"):
        text += f" (source: {record['source']})"
    return text


def _format_episodic(record: Mapping[str, Any]) -> str:
    text = record.get("event") or record.get("content") or ""
    context = record.get("context") or {}
    if isinstance(context, dict):
        parts = [
            f"{key}: {context[key]}" for key in ("who", "what", "where", "why") if context.get(key)
        ]
        if parts:
            text += f" ({', '.join(parts)})"
    return text


def _format_procedural(record: Mapping[str, Any]) -> str:
    pattern = record.get("pattern") or record.get("content") or ""
    text = f"{pattern}: {record.get('action') or ''}"
    if record.get("trigger"):
        text += f" (trigger: {record['trigger']})"
    success_rate = record.get("successRate")
    if isinstance(success_rate, (int, float)):
        text += f" (success rate: {success_rate * 100:.0f}%)"
    return text


def _format_prospective(record: Mapping[str, Any]) -> str:
    text = record.get("intention") or record.get("content") or ""
    if record.get("triggerContext"):
        text += f" (trigger: {record['triggerContext']})"
    if record.get("status"):
        text += f" (status: {record['status']})"
    return text


def _format_emotional(record: Mapping[str, Any]) -> str:
    tag = record.get("tag") or {}
    text = f"{tag.get('emotion', 'neutral')} ({tag.get('intensity', 'low')})"
    if record.get("context"):
        text += f": {record['context']}"
    return text


_FORMATTERS = {
    "semantic": _format_semantic,
    "episodic": _format_episodic,
    "procedural": _format_procedural,
    "prospective": _format_prospective,
    "emotional": _format_emotional,
}


def render_memory_text(record: Dict[str, Any]) -> str:
    """
    Render one on-disk memory record (camelCase keys) as searchable text.

    Examples:
        semantic    -> "preferences: User prefers dark mode (source: chat)"
        episodic    -> "Deployed v2 (what: release, where: prod)"
        emotional   -> "joy (high): shipped the feature"
    """
    formatter = _FORMATTERS.get(record.get("type", ""))
    if formatter is None:
        return json.dumps(record, sort_keys=True, ensure_ascii=False)
    return formatter(record)
