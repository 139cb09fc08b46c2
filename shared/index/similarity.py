import math
import re

_HEADING_PATTERN = re.compile(r"^#\s+(.+)$", re.MULTILINE)


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity of two vectors, 0.0 if either has zero magnitude.

    Raises:
        ValueError: If the vectors differ in length.
    """
    if len(a) != len(b):
        raise ValueError("Vectors must have the same length")
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


def extract_title(content: str) -> str | None:
    """Return the text of the first markdown "# " heading, if any."""
    match = _HEADING_PATTERN.search(content)
    return match.group(1).strip() if match else None
