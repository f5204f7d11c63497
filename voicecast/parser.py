"""Parse annotated scripts into ordered speech segments.

Script format: plain text with speaker tags ``[Name]:`` or
``[Name, emotion]:``. Everything after a tag, up to the next tag or the end
of the text, is spoken by that tag's speaker. Text before the first tag
belongs to the narrator.
"""

import re

from voicecast.constants import NARRATOR_SPEAKER
from voicecast.models import Segment

# [Name]: or [Name, emotion]:
_TAG_RE = re.compile(r"\[([^,\]]+)(,\s*([^\]]+))?\]:")

_OPEN_QUOTES = ('"', "“")
_CLOSE_QUOTES = ('"', "”")


def _tag_fields(match: re.Match) -> tuple[str, str | None] | None:
    """Return (speaker, emotion) for a usable tag, None for a pseudo-tag.

    Empty names or empty emotions do not count as tags; the bracket text then
    stays part of the surrounding segment.
    """
    speaker = match.group(1).strip()
    if not speaker:
        return None
    emotion = match.group(3)
    if emotion is None:
        return speaker, None
    emotion = emotion.strip().lower()
    if not emotion:
        return None
    return speaker, emotion


def _clean_text(text: str) -> str:
    """Trim whitespace and drop one pair of wrapping double quotes."""
    text = text.strip()
    if (
        len(text) >= 2
        and text[0] in _OPEN_QUOTES
        and text[-1] in _CLOSE_QUOTES
        and not any(q in text[1:-1] for q in _OPEN_QUOTES + _CLOSE_QUOTES)
    ):
        text = text[1:-1].strip()
    return text


def parse_script(text: str) -> list[Segment]:
    """Parse script text into a list of Segments in script order."""
    tags = []
    for match in _TAG_RE.finditer(text):
        fields = _tag_fields(match)
        if fields is not None:
            tags.append((match.start(), match.end(), fields))

    # (speaker, emotion, start, end) spans covering the text
    spans = []
    first_start = tags[0][0] if tags else len(text)
    spans.append((NARRATOR_SPEAKER, None, 0, first_start))
    for i, (_, end, (speaker, emotion)) in enumerate(tags):
        next_start = tags[i + 1][0] if i + 1 < len(tags) else len(text)
        spans.append((speaker, emotion, end, next_start))

    segments = []
    for speaker, emotion, start, end in spans:
        spoken = _clean_text(text[start:end])
        if not spoken:
            continue
        index = len(segments)
        segments.append(Segment(
            id=f"seg_{index + 1:04d}",
            index=index,
            speaker=speaker,
            text=spoken,
            emotion=emotion,
        ))
    return segments


def render_script(segments: list[Segment]) -> str:
    """Render segments back into tagged script text."""
    lines = []
    for seg in segments:
        if seg.emotion:
            lines.append(f"[{seg.speaker}, {seg.emotion}]: {seg.text}")
        else:
            lines.append(f"[{seg.speaker}]: {seg.text}")
    return "\n".join(lines)


def speakers(segments: list[Segment]) -> list[str]:
    """Unique speakers in order of first appearance."""
    seen = []
    for seg in segments:
        if seg.speaker not in seen:
            seen.append(seg.speaker)
    return seen
