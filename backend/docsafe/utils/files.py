import re
import secrets
import string
from datetime import datetime, timezone
from typing import Optional

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9.-]")
_REPEATED_UNDERSCORES = re.compile(r"_{2,}")
_ALPHABET = string.ascii_lowercase + string.digits

SIZE_UNITS = ["B", "KB", "MB", "GB", "TB"]


def clean_filename(original_name: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", original_name)
    cleaned = _REPEATED_UNDERSCORES.sub("_", cleaned)
    return cleaned.lower()


def generate_storage_path(original_name: str, owner_id: str, now: Optional[datetime] = None) -> str:
    """Build `owner/yyyy/mm/epochms_rand_name`, unique per upload."""
    now = now or datetime.now(timezone.utc)
    timestamp = int(now.timestamp() * 1000)
    random_id = "".join(secrets.choice(_ALPHABET) for _ in range(6))
    return f"{owner_id}/{now.year}/{now.month:02d}/{timestamp}_{random_id}_{clean_filename(original_name)}"


def format_storage_size(num_bytes: int) -> str:
    if num_bytes <= 0:
        return "0 B"
    value = float(num_bytes)
    index = 0
    while value >= 1024 and index < len(SIZE_UNITS) - 1:
        value /= 1024
        index += 1
    value = round(value, 2)
    # 1.50 -> "1.5", 2.00 -> "2"
    return f"{value:g} {SIZE_UNITS[index]}"
