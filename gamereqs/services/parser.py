"""Heuristic parser for free-text PC requirement blocks.

Store pages and catalog APIs publish requirements as loosely formatted HTML
("<strong>Processor:</strong> Intel Core i5<br>..."). This module turns one
such block into a :class:`RequirementRecord`.

The text is first split into labeled segments ("Processor: ...",
"Memory: ...") so that a value always ends where the next field label starts.
Each field is then extracted by an ordered list of rules, most specific first:
an explicit label, then a vendor or quantity scan over unlabeled text. The
first rule producing a sane candidate wins; candidates that look like markup
artifacts or placeholders are treated as "not found".
"""

import re
from dataclasses import dataclass

import structlog
from bs4 import BeautifulSoup

from ..models.requirements import RequirementRecord

log = structlog.stdlib.get_logger()

MIN_TEXT_LENGTH = 5
MAX_COMPONENT_LENGTH = 200
MAX_OS_LENGTH = 100

PLACEHOLDER_PHRASES = (
    "no requirements specified",
    "no requirements",
    "not specified",
    "not available",
    "unknown",
    "n/a",
    "tbd",
    "tba",
    "لا توجد متطلبات",
    "غير محدد",
    "غير متوفر",
    "غير موجود",
    "keine angaben",
    "non spécifié",
    "sin especificar",
    "не указано",
)

TIER_HEADINGS = (
    "minimum system requirements",
    "recommended system requirements",
    "minimum requirements",
    "recommended requirements",
    "system requirements",
    "requirements",
    "minimum",
    "recommended",
)

# Label text -> field it introduces. ``None`` marks tier headings, "other"
# marks attributes we do not extract but must stop at.
FIELD_LABELS: dict[str, str | None] = {
    "processor": "cpu",
    "cpu": "cpu",
    "graphics card": "gpu",
    "video card": "gpu",
    "graphics": "gpu",
    "video": "gpu",
    "gpu": "gpu",
    "system memory": "ram",
    "memory": "ram",
    "ram": "ram",
    "hard disk space": "storage",
    "hard drive": "storage",
    "hard disk": "storage",
    "disk space": "storage",
    "available space": "storage",
    "storage": "storage",
    "hdd": "storage",
    "ssd": "storage",
    "operating system": "os",
    "os": "os",
    "video memory": "other",
    "graphics memory": "other",
    "vram": "other",
    "directx": "other",
    "network": "other",
    "sound card": "other",
    "sound": "other",
    "additional notes": "other",
    "vr support": "other",
    "notes": "other",
    "note": "other",
    "minimum": None,
    "recommended": None,
}

_LABEL_RE = re.compile(
    r"\b("
    + "|".join(
        re.escape(label).replace(r"\ ", r"\s+")
        for label in sorted(FIELD_LABELS, key=len, reverse=True)
    )
    + r")\s*:",
    re.IGNORECASE,
)

_CPU_VENDOR_RE = re.compile(
    r"\b(?:intel(?!\s+(?:hd|uhd|iris|arc)\b)|amd(?!\s+radeon)|core\s*i[3579]|core\s*2\s*(?:duo|quad)"
    r"|ryzen|pentium|celeron|xeon|athlon|phenom|threadripper)\b[^\n]*",
    re.IGNORECASE,
)
_GPU_VENDOR_RE = re.compile(
    r"\b(?:nvidia|geforce|gtx|rtx|radeon|rx\s*\d|quadro|intel\s+(?:hd|uhd|iris|arc))\b[^\n]*",
    re.IGNORECASE,
)
_OS_VENDOR_RE = re.compile(
    r"\b(?:windows|win\s?\d{1,2}|mac\s?os(?:\s?x)?|macos|os\s?x|linux|ubuntu|steamos|debian|fedora)\b[^\n]{0,50}",
    re.IGNORECASE,
)

# Words that belong to a different field; a value is cut where one appears.
_FOREIGN_KEYWORDS: dict[str, re.Pattern[str]] = {
    "cpu": re.compile(
        r"\b(?:graphics|video\s+card|gpu|memory|ram|storage|hard\s+(?:drive|disk)|disk\s+space"
        r"|directx|operating\s+system|os|nvidia|geforce|gtx|rtx)\b",
        re.IGNORECASE,
    ),
    "gpu": re.compile(
        r"\b(?:processor|cpu|system\s+memory|ram|storage|hard\s+(?:drive|disk)|disk\s+space"
        r"|directx|operating\s+system|os)\b",
        re.IGNORECASE,
    ),
    "os": re.compile(
        r"\b(?:processor|cpu|graphics|video\s+card|gpu|memory|ram|storage|hard\s+(?:drive|disk)|directx)\b",
        re.IGNORECASE,
    ),
}

_QUANTITY = r"(?<![A-Za-z0-9.])(\d+(?:[.,]\d+)?)\s*(gb|mb|tb)?\b"
_QUANTITY_RE = re.compile(_QUANTITY, re.IGNORECASE)
_RAM_SCAN_RE = re.compile(
    _QUANTITY + r"\s*(?:of\s+)?(?:system\s+)?(?:ram|memory)\b",
    re.IGNORECASE,
)
_STORAGE_SCAN_RE = re.compile(
    r"(?<![A-Za-z0-9.])(\d+(?:[.,]\d+)?)\s*(gb|mb|tb)\b\s*(?:of\s+)?(?:free\s+|available\s+)?"
    r"(?:hard\s+drive\s+|disk\s+)?(?:space|storage|available|required)",
    re.IGNORECASE,
)

_BLOCK_TAGS = ["li", "p", "div", "tr", "ul", "ol", "h1", "h2", "h3", "h4"]
_TRAILING_JUNK = " ,;:/|-–(\t"


@dataclass(frozen=True)
class Segment:
    """A run of text introduced by a field label, or unlabeled text."""
    field: str | None
    text: str


def parse_requirement_text(raw: str | None) -> RequirementRecord:
    """Parse one requirement block into a record.

    Args:
        raw: HTML or plain text describing one tier of requirements

    Returns:
        RequirementRecord with ``None`` for every field the text does not state
    """
    if not raw or not isinstance(raw, str):
        return RequirementRecord()

    text = strip_markup(raw)
    if len(text) < MIN_TEXT_LENGTH or is_boilerplate(text):
        log.debug("Requirement text has no usable content", length=len(text))
        return RequirementRecord()

    segments = split_segments(text)
    ram = extract_ram(segments)
    storage = extract_storage(segments)

    return RequirementRecord(
        cpu=extract_cpu(segments),
        gpu=extract_gpu(segments),
        ram=ram[0] if ram else None,
        ram_gb=ram[1] if ram else None,
        storage=storage[0] if storage else None,
        storage_gb=storage[1] if storage else None,
        os=extract_os(segments),
    )


def strip_markup(raw: str) -> str:
    """Remove HTML markup, keeping line structure.

    Line-break and block tags become newlines, entities are decoded, runs of
    spaces collapse to one and blank lines are dropped.
    """
    text = raw
    if "<" in raw or "&" in raw:
        soup = BeautifulSoup(raw, "html.parser")
        for br in soup.find_all("br"):
            br.replace_with("\n")
        for block in soup.find_all(_BLOCK_TAGS):
            block.append("\n")
        for cell in soup.find_all(["td", "th"]):
            cell.append(" ")
        text = soup.get_text()

    text = re.sub(r"[^\S\n]+", " ", text)
    text = re.sub(r" ?\n[\s]*", "\n", text)
    return text.strip()


def is_boilerplate(text: str) -> bool:
    """Return True if nothing but placeholder phrases and tier headings remain."""
    remainder = text.lower()
    for phrase in sorted(PLACEHOLDER_PHRASES + TIER_HEADINGS, key=len, reverse=True):
        remainder = remainder.replace(phrase, " ")
    return len(re.sub(r"[\W_]+", "", remainder)) < MIN_TEXT_LENGTH


def is_placeholder(value: str) -> bool:
    normalized = re.sub(r"\s+", " ", value).strip(" .:-").lower()
    return not normalized or normalized in PLACEHOLDER_PHRASES


def split_segments(text: str) -> list[Segment]:
    """Split text at field labels such as ``Processor:`` or ``Memory:``."""
    matches = list(_LABEL_RE.finditer(text))
    if not matches:
        return [Segment(None, text)]

    segments: list[Segment] = []
    lead = text[:matches[0].start()].strip()
    if lead:
        segments.append(Segment(None, lead))

    for index, match in enumerate(matches):
        end = matches[index + 1].start() if index + 1 < len(matches) else len(text)
        label = re.sub(r"\s+", " ", match.group(1).lower())
        segments.append(Segment(FIELD_LABELS[label], text[match.end():end].strip()))

    return segments


def labeled_values(segments: list[Segment], field: str) -> list[str]:
    """First line of every segment explicitly labeled as ``field``."""
    values = []
    for segment in segments:
        if segment.field != field:
            continue
        lines = [line.strip() for line in segment.text.split("\n") if line.strip()]
        if lines:
            values.append(lines[0])
    return values


def unlabeled_text(segments: list[Segment], field: str) -> str:
    """Text that may mention ``field`` without a label: lead text and tier sections."""
    return "\n".join(s.text for s in segments if s.field is None or s.field == field)


def cut_at_foreign_keyword(value: str, field: str) -> str:
    pattern = _FOREIGN_KEYWORDS.get(field)
    if pattern is None:
        return value
    match = pattern.search(value)
    return value[:match.start()] if match else value


def clean_component(candidate: str, field: str, max_length: int = MAX_COMPONENT_LENGTH) -> str | None:
    """Sanity-check a CPU or GPU candidate; ``None`` when it fails."""
    value = cut_at_foreign_keyword(candidate, field)
    value = re.sub(r"\s+", " ", value).strip().rstrip(_TRAILING_JUNK).strip()
    lowered = value.lower()
    if "http" in lowered or "href" in lowered:
        return None
    if len(value) <= 5 or is_placeholder(value):
        return None
    return value[:max_length].rstrip()


def extract_cpu(segments: list[Segment]) -> str | None:
    for candidate in labeled_values(segments, "cpu"):
        cpu = clean_component(candidate, "cpu")
        if cpu:
            return cpu

    match = _CPU_VENDOR_RE.search(unlabeled_text(segments, "cpu"))
    if match:
        return clean_component(match.group(0), "cpu")
    return None


def extract_gpu(segments: list[Segment]) -> str | None:
    for candidate in labeled_values(segments, "gpu"):
        gpu = clean_component(candidate, "gpu")
        if gpu:
            return gpu

    match = _GPU_VENDOR_RE.search(unlabeled_text(segments, "gpu"))
    if match:
        return clean_component(match.group(0), "gpu")
    return None


def extract_os(segments: list[Segment]) -> str | None:
    candidates = labeled_values(segments, "os")
    match = _OS_VENDOR_RE.search(unlabeled_text(segments, "os"))
    if match:
        candidates.append(match.group(0))

    for candidate in candidates:
        value = cut_at_foreign_keyword(candidate, "os")
        value = re.sub(r"\s+", " ", value).strip().rstrip(_TRAILING_JUNK).strip()
        if len(value) > 3 and "http" not in value.lower() and not is_placeholder(value):
            return value[:MAX_OS_LENGTH].rstrip()
    return None


def extract_ram(segments: list[Segment]) -> tuple[str, float] | None:
    for candidate in labeled_values(segments, "ram"):
        quantity = parse_quantity(candidate)
        if quantity:
            return quantity

    match = _RAM_SCAN_RE.search(unlabeled_text(segments, "ram"))
    if match:
        return normalize_quantity(match.group(1), match.group(2))
    return None


def extract_storage(segments: list[Segment]) -> tuple[str, float] | None:
    for candidate in labeled_values(segments, "storage"):
        quantity = parse_quantity(candidate)
        if quantity:
            return quantity

    match = _STORAGE_SCAN_RE.search(unlabeled_text(segments, "storage"))
    if match:
        return normalize_quantity(match.group(1), match.group(2))
    return None


def parse_quantity(text: str | None) -> tuple[str, float] | None:
    """Find the first size in ``text`` and normalize it.

    Returns:
        ``(display, gigabytes)`` such as ``("8 GB", 8.0)``, or None
    """
    if not text:
        return None
    match = _QUANTITY_RE.search(text)
    if not match:
        return None
    return normalize_quantity(match.group(1), match.group(2))


def normalize_quantity(number: str, unit: str | None) -> tuple[str, float] | None:
    """Give a quantity an explicit unit and derive its size in GB.

    A missing unit means GB. MB values of 1024 or more are shown in GB;
    smaller ones keep the MB unit.
    """
    value = _to_float(number)
    if value is None:
        return None

    unit = (unit or "gb").lower()
    if unit == "mb":
        gigabytes = value / 1024
        if value >= 1024:
            return f"{_format_number(gigabytes)} GB", round(gigabytes, 3)
        return f"{_format_number(value)} MB", round(gigabytes, 3)
    if unit == "tb":
        return f"{_format_number(value)} TB", value * 1024
    return f"{_format_number(value)} GB", value


def size_to_gb(text: str | None) -> float | None:
    """Gigabytes for a size string like ``"57.2 GB"`` or ``"512 MB"``."""
    quantity = parse_quantity(text)
    return quantity[1] if quantity else None


def _to_float(number: str) -> float | None:
    if "," in number:
        whole, _, fraction = number.partition(",")
        # "1,024" is a thousands separator, "57,2" a decimal comma
        number = whole + fraction if len(fraction) == 3 else f"{whole}.{fraction}"
    try:
        return float(number)
    except ValueError:
        return None


def _format_number(value: float) -> str:
    return f"{round(value, 2):g}"
