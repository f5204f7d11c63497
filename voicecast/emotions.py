"""Emotion label → synthesis parameter mapping.

Each label maps to (stability, similarity_boost, style, use_speaker_boost).
Lower stability means a more variable, expressive delivery; higher style
exaggerates the speaking style; speaker boost sharpens clarity.
"""

from voicecast.constants import BOOST_INTENSITY_THRESHOLD, MAX_INTENSITY
from voicecast.models import Archetype, EmotionCategory, EmotionParameters

C = EmotionCategory

EMOTIONS: dict[str, tuple[EmotionCategory, tuple[float, float, float, bool]]] = {
    # Primary
    "anger":         (C.PRIMARY, (0.3, 0.8, 0.7, True)),
    "angry":         (C.PRIMARY, (0.3, 0.8, 0.7, True)),
    "fear":          (C.PRIMARY, (0.2, 0.9, 0.6, True)),
    "fearful":       (C.PRIMARY, (0.2, 0.9, 0.6, True)),
    "joy":           (C.PRIMARY, (0.7, 0.6, 0.5, False)),
    "happy":         (C.PRIMARY, (0.7, 0.6, 0.5, False)),
    "sadness":       (C.PRIMARY, (0.4, 0.8, 0.4, True)),
    "sad":           (C.PRIMARY, (0.4, 0.8, 0.4, True)),
    "surprise":      (C.PRIMARY, (0.1, 0.7, 0.8, False)),
    "surprised":     (C.PRIMARY, (0.1, 0.7, 0.8, False)),
    "disgust":       (C.PRIMARY, (0.5, 0.8, 0.6, True)),

    # Romantic / seductive
    "seductive":     (C.ROMANTIC, (0.6, 0.7, 0.8, True)),
    "passionate":    (C.ROMANTIC, (0.4, 0.6, 0.9, True)),
    "lustful":       (C.ROMANTIC, (0.5, 0.7, 0.8, True)),
    "loving":        (C.ROMANTIC, (0.8, 0.6, 0.6, False)),
    "tender":        (C.ROMANTIC, (0.8, 0.7, 0.5, False)),
    "intimate":      (C.ROMANTIC, (0.7, 0.8, 0.7, True)),
    "flirtatious":   (C.ROMANTIC, (0.6, 0.5, 0.7, False)),
    "alluring":      (C.ROMANTIC, (0.6, 0.7, 0.8, True)),
    "tempting":      (C.ROMANTIC, (0.5, 0.7, 0.8, True)),

    # Power / dominance
    "dominant":      (C.POWER, (0.8, 0.8, 0.7, True)),
    "commanding":    (C.POWER, (0.9, 0.8, 0.6, True)),
    "authoritative": (C.POWER, (0.8, 0.8, 0.5, True)),
    "submissive":    (C.POWER, (0.6, 0.9, 0.4, True)),
    "defiant":       (C.POWER, (0.4, 0.7, 0.8, True)),
    "rebellious":    (C.POWER, (0.3, 0.7, 0.8, True)),
    "furious":       (C.POWER, (0.2, 0.8, 0.9, True)),
    "rage":          (C.POWER, (0.1, 0.8, 1.0, True)),

    # Fear / vulnerability
    "vulnerable":    (C.FEAR, (0.5, 0.9, 0.3, True)),
    "innocent":      (C.FEAR, (0.8, 0.6, 0.3, False)),
    "naive":         (C.FEAR, (0.7, 0.7, 0.4, False)),
    "confused":      (C.FEAR, (0.3, 0.8, 0.5, True)),
    "hesitant":      (C.FEAR, (0.4, 0.8, 0.4, True)),
    "uncertain":     (C.FEAR, (0.3, 0.8, 0.4, True)),
    "terrified":     (C.FEAR, (0.1, 0.9, 0.8, True)),
    "nervous":       (C.FEAR, (0.3, 0.8, 0.5, True)),
    "gentle":        (C.FEAR, (0.8, 0.7, 0.3, False)),

    # Supernatural / creature
    "predatory":     (C.SUPERNATURAL, (0.7, 0.8, 0.8, True)),
    "bloodthirsty":  (C.SUPERNATURAL, (0.5, 0.8, 0.9, True)),
    "feral":         (C.SUPERNATURAL, (0.2, 0.7, 0.9, True)),
    "otherworldly":  (C.SUPERNATURAL, (0.6, 0.6, 0.7, False)),
    "magical":       (C.SUPERNATURAL, (0.5, 0.5, 0.6, False)),
    "ethereal":      (C.SUPERNATURAL, (0.7, 0.5, 0.5, False)),
    "ancient":       (C.SUPERNATURAL, (0.9, 0.8, 0.4, True)),
    "immortal":      (C.SUPERNATURAL, (0.8, 0.7, 0.3, True)),
    "hungry":        (C.SUPERNATURAL, (0.4, 0.8, 0.8, True)),

    # Dark / gothic
    "menacing":      (C.DARK, (0.7, 0.8, 0.8, True)),
    "sinister":      (C.DARK, (0.6, 0.8, 0.7, True)),
    "brooding":      (C.DARK, (0.6, 0.8, 0.5, True)),
    "tormented":     (C.DARK, (0.4, 0.8, 0.6, True)),
    "haunted":       (C.DARK, (0.5, 0.8, 0.6, True)),
    "melancholic":   (C.DARK, (0.6, 0.8, 0.4, True)),
    "vengeful":      (C.DARK, (0.5, 0.8, 0.8, True)),
    "malicious":     (C.DARK, (0.6, 0.8, 0.7, True)),
    "cold":          (C.DARK, (0.8, 0.8, 0.4, True)),

    # Complex / layered
    "bittersweet":   (C.COMPLEX, (0.6, 0.8, 0.5, True)),
    "conflicted":    (C.COMPLEX, (0.4, 0.8, 0.6, True)),
    "yearning":      (C.COMPLEX, (0.5, 0.8, 0.6, True)),
    "desperate":     (C.COMPLEX, (0.3, 0.9, 0.8, True)),
    "obsessed":      (C.COMPLEX, (0.4, 0.9, 0.9, True)),
    "possessive":    (C.COMPLEX, (0.6, 0.8, 0.8, True)),
    "nostalgic":     (C.COMPLEX, (0.7, 0.7, 0.4, False)),
    "resigned":      (C.COMPLEX, (0.7, 0.8, 0.3, True)),

    # Social / interpersonal
    "jealous":       (C.SOCIAL, (0.4, 0.8, 0.7, True)),
    "envious":       (C.SOCIAL, (0.5, 0.8, 0.6, True)),
    "protective":    (C.SOCIAL, (0.7, 0.8, 0.6, True)),
    "territorial":   (C.SOCIAL, (0.6, 0.8, 0.7, True)),
    "loyal":         (C.SOCIAL, (0.8, 0.7, 0.5, True)),
    "betrayed":      (C.SOCIAL, (0.4, 0.9, 0.7, True)),
    "grateful":      (C.SOCIAL, (0.7, 0.7, 0.5, False)),
    "suspicious":    (C.SOCIAL, (0.6, 0.8, 0.5, True)),

    # Energy / intensity
    "energetic":     (C.ENERGY, (0.5, 0.6, 0.7, False)),
    "enthusiastic":  (C.ENERGY, (0.6, 0.6, 0.7, False)),
    "excited":       (C.ENERGY, (0.4, 0.6, 0.8, False)),
    "calm":          (C.ENERGY, (0.9, 0.7, 0.3, False)),
    "serene":        (C.ENERGY, (0.9, 0.6, 0.2, False)),
    "restless":      (C.ENERGY, (0.3, 0.7, 0.6, True)),
    "tired":         (C.ENERGY, (0.8, 0.7, 0.2, False)),
    "playful":       (C.ENERGY, (0.5, 0.6, 0.7, False)),

    # Communication / expression
    "whispering":    (C.EXPRESSION, (0.8, 0.9, 0.3, True)),
    "shouting":      (C.EXPRESSION, (0.2, 0.7, 0.9, True)),
    "pleading":      (C.EXPRESSION, (0.4, 0.9, 0.7, True)),
    "demanding":     (C.EXPRESSION, (0.6, 0.8, 0.8, True)),
    "sarcastic":     (C.EXPRESSION, (0.7, 0.7, 0.6, True)),
    "mocking":       (C.EXPRESSION, (0.6, 0.7, 0.7, True)),
    "teasing":       (C.EXPRESSION, (0.6, 0.6, 0.7, False)),
    "sobbing":       (C.EXPRESSION, (0.2, 0.9, 0.7, True)),

    # Neutral
    "neutral":       (C.NEUTRAL, (0.7, 0.7, 0.5, False)),
    "speaking":      (C.NEUTRAL, (0.7, 0.7, 0.5, False)),
}

# Neutral delivery per archetype, used for unknown or missing labels
ARCHETYPE_BASELINES: dict[Archetype, tuple[float, float, float, bool]] = {
    Archetype.HUMAN:    (0.7, 0.7, 0.5, False),
    Archetype.NARRATOR: (0.8, 0.7, 0.2, False),
    Archetype.VAMPIRE:  (0.4, 0.8, 0.7, True),
    Archetype.WEREWOLF: (0.7, 0.8, 0.3, True),
    Archetype.FAIRY:    (0.3, 0.8, 0.8, False),
}


def _normalize(emotion: str | None) -> str:
    return (emotion or "").strip().lower()


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def emotion_parameters(
    archetype: Archetype,
    emotion: str | None = None,
    intensity: float = 1.0,
) -> EmotionParameters:
    """Return synthesis parameters for a labelled line.

    Unknown, empty and neutral labels fall back to the archetype's baseline.
    Intensity (clamped to 0..2) scales style, trades away stability above 1.0
    and forces speaker boost past BOOST_INTENSITY_THRESHOLD.
    """
    label = _normalize(emotion)
    entry = EMOTIONS.get(label)
    if entry is None or entry[0] is EmotionCategory.NEUTRAL:
        stability, similarity, style, boost = ARCHETYPE_BASELINES[Archetype(archetype)]
    else:
        stability, similarity, style, boost = entry[1]

    intensity = _clamp(float(intensity), 0.0, MAX_INTENSITY)
    return EmotionParameters(
        stability=_clamp(stability * (1.5 - 0.5 * intensity)),
        similarity_boost=_clamp(similarity),
        style=_clamp(style * intensity),
        use_speaker_boost=boost or intensity > BOOST_INTENSITY_THRESHOLD,
    )


def available_emotions() -> list[str]:
    return sorted(EMOTIONS)


def emotion_category(emotion: str | None) -> EmotionCategory | None:
    """Category of a known label, None when the label is unknown."""
    entry = EMOTIONS.get(_normalize(emotion))
    return entry[0] if entry else None


def emotion_info() -> dict:
    """Catalogue summary: totals and labels grouped by category."""
    categories: dict[str, list[str]] = {}
    for label in available_emotions():
        categories.setdefault(EMOTIONS[label][0].value, []).append(label)
    return {
        "total_emotions": len(EMOTIONS),
        "categories": categories,
        "intensity_range": [0.0, MAX_INTENSITY],
        "archetypes": [a.value for a in Archetype],
    }
