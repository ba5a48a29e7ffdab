"""Collection names, record helpers and key generation for MySky records.

Blog posts use the standard.site lexicons; everything else lives in the
``space.myspace`` namespace.
"""
import re
import secrets
import string
import time
from datetime import datetime, timezone

# standard.site lexicons
PUBLICATION = "site.standard.publication"
DOCUMENT = "site.standard.document"
CONTENT_MARKDOWN = "site.standard.content.markdown"
CONTENT_HTML = "site.standard.content.html"
THEME_COLOR_RGB = "site.standard.theme.color#rgb"

# MySpace lexicons
PROFILE = "space.myspace.profile"
TOP_FRIENDS = "space.myspace.topFriends"
COMMENT = "space.myspace.comment"
BULLETIN = "space.myspace.bulletin"
PHOTO_ALBUM = "space.myspace.photoAlbum"
PHOTO = "space.myspace.photo"

SELF_RKEY = "self"

DOCUMENT_VISIBILITIES = ("public", "friends", "draft")
ALBUM_VISIBILITIES = ("public", "friends", "private")

# Tom, everyone's first friend
TOM_DID = "did:plc:z72i7hdynmk6r22z27h6tvur"  # tom.bsky.social

MAX_TOP_FRIENDS = 8

MOODS = (
    "accomplished", "aggravated", "amused", "angry", "annoyed", "anxious",
    "apathetic", "artistic", "awake", "bitchy", "blah", "blank", "bored",
    "bouncy", "busy", "calm", "cheerful", "chipper", "cold", "complacent",
    "confused", "contemplative", "content", "cranky", "crappy", "crazy",
    "creative", "crushed", "curious", "cynical", "depressed", "determined",
    "devious", "dirty", "disappointed", "discontent", "distressed", "dorky",
    "drained", "drunk", "ecstatic", "embarrassed", "energetic", "enraged",
    "enthralled", "envious", "exanimate", "excited", "exhausted", "flirty",
    "frustrated", "full", "geeky", "giddy", "giggly", "gloomy", "good",
    "grateful", "groggy", "grumpy", "guilty", "happy", "high", "hopeful",
    "horny", "hot", "hungry", "hyper", "impressed", "indescribable",
    "indifferent", "infuriated", "intimidated", "irate", "irritated",
    "jealous", "jubilant", "lazy", "lethargic", "listless", "lonely", "loved",
    "melancholy", "mellow", "mischievous", "moody", "morose", "naughty",
    "nauseated", "nerdy", "nervous", "nostalgic", "numb", "okay",
    "optimistic", "peaceful", "pensive", "pessimistic", "pissed off",
    "pleased", "predatory", "productive", "quixotic", "recumbent",
    "refreshed", "rejected", "rejuvenated", "relaxed", "relieved", "restless",
    "rushed", "sad", "satisfied", "scared", "shocked", "sick", "silly",
    "sleepy", "sore", "stressed", "surprised", "sympathetic", "thankful",
    "thirsty", "thoughtful", "tired", "touched", "uncomfortable", "weird",
    "working", "worried",
)

_MARKDOWN_CHARS_RE = re.compile(r"[#*_`~\[\]()]")
_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")
_FRACTION_RE = re.compile(r"(?<=:\d{2})\.(\d+)")
_BASE36 = string.digits + string.ascii_lowercase


def rgb(r: int, g: int, b: int) -> dict:
    return {"$type": THEME_COLOR_RGB, "r": r, "g": g, "b": b}


def slugify(title: str) -> str:
    """Lowercase, collapse non-alphanumerics to dashes, trim, cap at 100 chars."""
    slug = _NON_SLUG_RE.sub("-", title.lower()).strip("-")
    return slug[:100]


def strip_markdown(text: str) -> str:
    return _MARKDOWN_CHARS_RE.sub("", text).strip()


def to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def _now_ms() -> int:
    return int(time.time() * 1000)


def generate_document_rkey(title: str) -> str:
    return f"{slugify(title)}-{to_base36(_now_ms())}"


def generate_rkey() -> str:
    """Time-prefixed random key for albums and photos."""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return to_base36(_now_ms()) + suffix


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_iso(value) -> datetime:
    """Parse an ISO-8601 timestamp into an aware datetime; unparseable values sort oldest."""
    if not isinstance(value, str) or not value:
        return datetime.min.replace(tzinfo=timezone.utc)
    # fromisoformat before 3.11 only takes 3 or 6 fractional digits
    value = _FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value.replace("Z", "+00:00"), count=1)
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return datetime.min.replace(tzinfo=timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def at_uri(did: str, collection: str, rkey: str) -> str:
    return f"at://{did}/{collection}/{rkey}"


def get_rkey_from_uri(uri: str) -> str:
    return uri.split("/")[-1]
