"""Binary file detection for the sync walker."""

from pathlib import Path

# Extensions never worth reading: media, archives, compiled output, databases.
BINARY_EXTENSIONS = frozenset(
    {
        ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp", ".tiff", ".psd",
        ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx", ".odt", ".ods",
        ".zip", ".tar", ".gz", ".tgz", ".rar", ".7z", ".bz2", ".xz", ".jar",
        ".exe", ".dll", ".so", ".dylib", ".bin", ".a", ".lib",
        ".mp3", ".mp4", ".avi", ".mov", ".wav", ".flac", ".mkv", ".webm", ".ogg",
        ".pyc", ".pyo", ".class", ".o", ".obj", ".wasm",
        ".ttf", ".otf", ".woff", ".woff2", ".eot",
        ".db", ".sqlite", ".sqlite3", ".parquet", ".arrow", ".npy", ".pkl",
    }
)

_TEXT_BYTES = bytes(range(32, 127)) + b"\t\n\r\f\b"

# Share of non-text bytes above which a sample counts as binary.
NON_TEXT_THRESHOLD = 0.30


def is_binary_extension(path: str | Path) -> bool:
    """Check if file extension indicates binary content."""
    return Path(path).suffix.lower() in BINARY_EXTENSIONS


def is_binary_content(content: bytes, sample_size: int = 8192) -> bool:
    """Detect binary content from a leading sample.

    A NUL byte is decisive. Otherwise the sample is binary when more than
    NON_TEXT_THRESHOLD of it falls outside printable ASCII and common
    whitespace. UTF-8 text that decodes cleanly is never binary.
    """
    if not content:
        return False

    sample = content[:sample_size]
    if b"\x00" in sample:
        return True

    try:
        sample.decode("utf-8")
        return False
    except UnicodeDecodeError as e:
        # A multibyte sequence cut by the sample boundary is still text.
        if e.start >= len(sample) - 3:
            return False

    non_text = len(sample.translate(None, _TEXT_BYTES))
    return non_text / len(sample) > NON_TEXT_THRESHOLD


def detect_binary(path: str | Path, content: bytes) -> bool:
    """Check extension first, then fall back to content analysis."""
    return is_binary_extension(path) or is_binary_content(content)
