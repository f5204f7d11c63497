"""Character voice assignment."""

import json
import logging
import os
import re
import threading

from voicecast.constants import DEFAULT_GENDER, DEFAULT_VOICE_REF
from voicecast.models import Archetype, Gender, VoiceIdentity, VoiceType

logger = logging.getLogger(__name__)

# Creature words win over title words: "Lord Fang the Werewolf" is a werewolf.
STRONG_ARCHETYPE_KEYWORDS = [
    (Archetype.VAMPIRE, ("vampire",)),
    (Archetype.WEREWOLF, ("werewolf", "wolf", "lycan")),
    (Archetype.FAIRY, ("fairy", "faerie", "fae", "pixie", "sprite")),
]
WEAK_ARCHETYPE_KEYWORDS = [
    (Archetype.VAMPIRE, ("lord", "count", "baron")),
    (Archetype.WEREWOLF, ("alpha", "pack", "beast")),
]

FEMALE_WORDS = frozenset({
    "lady", "miss", "mrs", "ms", "duchess", "countess", "princess", "queen",
    "girl", "woman", "mother", "sister", "daughter", "maiden", "witch",
    "she", "her",
    "arabella", "victoria", "elizabeth", "catherine", "charlotte", "isabella",
    "sophia", "elena", "maria", "anna", "emma", "olivia", "lucy", "mina",
    "clara", "rose", "luna", "ivy",
})
MALE_WORDS = frozenset({
    "lord", "king", "prince", "mr", "sir", "duke", "count", "baron",
    "boy", "man", "father", "brother", "son", "master", "he", "his",
    "dracula", "vlad", "james", "john", "william", "henry", "edward",
    "jonathan", "arthur", "marcus", "lucien", "damien", "victor", "thomas",
})

_TOKEN_RE = re.compile(r"[a-z']+")


def load_cast(script_path: str) -> dict:
    """Load .cast.json sidecar file if it exists.

    Returns cast dict or empty dict if not found or malformed.
    """
    base = os.path.splitext(script_path)[0]
    cast_path = base + ".cast.json"
    if not os.path.exists(cast_path):
        return {}
    try:
        with open(cast_path) as f:
            data = json.load(f)
    except json.JSONDecodeError:
        logger.warning("Malformed cast file: %s, using inferred voices", cast_path)
        return {}
    if not isinstance(data, dict):
        logger.warning("Cast file %s is not a JSON object, ignoring", cast_path)
        return {}
    return clean_cast(data, cast_path)


def clean_cast(data: dict, source: str = "cast") -> dict:
    """Drop cast entries that are not JSON objects, warning about each."""
    cleaned = dict(data)
    entries = data.get("cast", {})
    if not isinstance(entries, dict):
        logger.warning("%s: 'cast' is not an object, ignoring it", source)
        entries = {}
    cleaned["cast"] = {}
    for name, info in entries.items():
        if not isinstance(info, dict):
            logger.warning("%s: cast entry for %r is not an object, ignoring it",
                           source, name)
            continue
        aliases = info.get("aliases")
        if aliases is not None and not isinstance(aliases, list):
            logger.warning("%s: aliases for %r are not a list, ignoring them",
                           source, name)
            info = {k: v for k, v in info.items() if k != "aliases"}
        cleaned["cast"][name] = info
    if not isinstance(data.get("narrator", {}), dict):
        logger.warning("%s: 'narrator' is not an object, ignoring it", source)
        cleaned.pop("narrator")
    return cleaned


def infer_archetype(name: str) -> Archetype:
    """Guess a character's archetype from whole words in its name.

    Plurals count ("Vampires"), but "Wolfgang" is not a wolf.
    """
    tokens = set(_TOKEN_RE.findall(name.lower()))
    tokens |= {t[:-1] for t in tokens if t.endswith("s")}
    for keywords in (STRONG_ARCHETYPE_KEYWORDS, WEAK_ARCHETYPE_KEYWORDS):
        for archetype, words in keywords:
            if tokens.intersection(words):
                return archetype
    return Archetype.HUMAN


def infer_gender(name: str) -> Gender:
    """Guess gender from name tokens; ties and misses use DEFAULT_GENDER."""
    tokens = _TOKEN_RE.findall(name.lower())
    female = sum(1 for t in tokens if t in FEMALE_WORDS)
    male = sum(1 for t in tokens if t in MALE_WORDS)
    if female > male:
        return Gender.FEMALE
    if male > female:
        return Gender.MALE
    return _default_gender()


def _default_gender() -> Gender:
    try:
        return Gender(DEFAULT_GENDER)
    except ValueError:
        logger.warning("Unknown default gender %r, using male", DEFAULT_GENDER)
        return Gender.MALE


def _normalize(speaker: str) -> str:
    return speaker.strip().lower()


class VoiceRegistry:
    """Assigns each speaker one voice identity and remembers it.

    Priority: narrator rule → cast file pin → keyword inference. Identities
    are memoized by normalized speaker name, so "Lady Mira" and " lady mira"
    share a voice for the registry's lifetime.
    """

    def __init__(
        self,
        voice_map: dict,
        cast: dict | None = None,
        default_voice_ref: str = DEFAULT_VOICE_REF,
    ) -> None:
        self.voice_map = {VoiceType(k): v for k, v in voice_map.items()}
        self.cast = clean_cast(cast) if cast else {}
        self.default_voice_ref = default_voice_ref
        self._cache: dict[str, VoiceIdentity] = {}
        self._speakers: dict[str, str] = {}
        self._lock = threading.Lock()

    def assign(self, speaker: str) -> VoiceIdentity:
        key = self._resolve_alias(_normalize(speaker))
        with self._lock:
            identity = self._cache.get(key)
            if identity is None:
                identity = self._build(key)
                self._cache[key] = identity
            self._speakers.setdefault(speaker, key)
            return identity

    def assignments(self) -> dict[str, VoiceIdentity]:
        """Speaker name (as first seen) → assigned identity."""
        with self._lock:
            return {name: self._cache[key] for name, key in self._speakers.items()}

    def _resolve_alias(self, key: str) -> str:
        """Resolve a speaker name through alias mappings in cast data."""
        for primary_name, info in self.cast.get("cast", {}).items():
            aliases = info.get("aliases", [])
            if key in [_normalize(str(a)) for a in aliases]:
                return _normalize(primary_name)
        return key

    def _cast_entry(self, key: str) -> dict:
        for name, info in self.cast.get("cast", {}).items():
            if _normalize(name) == key:
                return info
        return {}

    def _build(self, key: str) -> VoiceIdentity:
        if "narrator" in key:
            pinned = self.cast.get("narrator", {}).get("voice")
            return VoiceIdentity(
                archetype=Archetype.NARRATOR,
                gender=None,
                voice_type=VoiceType.NARRATOR,
                voice_ref=pinned or self._lookup(VoiceType.NARRATOR, key),
            )

        entry = self._cast_entry(key)
        archetype = _cast_enum(Archetype, entry.get("archetype"), key)
        if archetype is None or archetype is Archetype.NARRATOR:
            archetype = infer_archetype(key)
        gender = _cast_enum(Gender, entry.get("gender"), key) or infer_gender(key)

        voice_type = VoiceType.for_character(archetype, gender)
        voice_ref = entry.get("voice") or self._lookup(voice_type, key)
        logger.debug("Assigned %s to %r (%s)", voice_type.value, key, voice_ref)
        return VoiceIdentity(archetype, gender, voice_type, voice_ref)

    def _lookup(self, voice_type: VoiceType, key: str) -> str:
        voice_ref = self.voice_map.get(voice_type)
        if not voice_ref:
            logger.warning(
                "No voice configured for %s (speaker %r), using fallback %s",
                voice_type.value, key, self.default_voice_ref,
            )
            return self.default_voice_ref
        return voice_ref


def _cast_enum(enum_cls, value, key):
    if not value:
        return None
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        logger.warning("Ignoring unknown %s %r for %r in cast file",
                       enum_cls.__name__.lower(), value, key)
        return None
