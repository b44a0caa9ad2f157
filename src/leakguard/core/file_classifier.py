"""
File classification for the scan pipeline.

Decides, before any pattern runs, whether a file is binary (skipped), which
text encoding to decode it with, and whether it is large enough that it
should be streamed line by line instead of read into memory.
"""

import codecs
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DETECTION_BUFFER_SIZE = 8 * 1024
DEFAULT_STREAM_THRESHOLD_BYTES = 10 * 1024 * 1024
BINARY_CONTROL_RATIO = 0.3

BINARY_EXTENSIONS: frozenset[str] = frozenset([
    # Images
    ".png", ".jpg", ".jpeg", ".gif", ".bmp", ".ico", ".webp", ".tiff", ".tif",
    # Video and audio
    ".mp4", ".avi", ".mov", ".wmv", ".flv", ".mkv", ".webm", ".m4v",
    ".mp3", ".wav", ".flac", ".aac", ".ogg", ".wma", ".m4a",
    # Archives
    ".zip", ".tar", ".gz", ".bz2", ".7z", ".rar", ".xz", ".tgz",
    # Executables and objects
    ".exe", ".dll", ".so", ".dylib", ".bin", ".app", ".deb", ".rpm",
    ".pyc", ".class", ".o", ".a", ".lib", ".jar", ".war",
    # Binary documents
    ".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx",
    # Databases
    ".db", ".sqlite", ".sqlite3", ".mdb",
    # Fonts
    ".ttf", ".otf", ".woff", ".woff2", ".eot",
])

# Longest BOMs first so UTF-32 LE is not mistaken for UTF-16 LE
_BOMS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF32_LE, "utf-32"),
    (codecs.BOM_UTF32_BE, "utf-32"),
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)

# Bytes that do not occur in text files besides whitespace controls
_TEXT_CONTROLS = {0x08, 0x09, 0x0A, 0x0C, 0x0D, 0x1B}


@dataclass(frozen=True)
class FileClassification:
    """
    Verdict for one file.

    Attributes:
        path: Classified path
        is_binary: True if the file should be skipped
        encoding: Codec name to decode the file with (None for binary files)
        size_bytes: File size at classification time
        should_stream: True if the file should be read line by line
    """

    path: Path
    is_binary: bool
    encoding: str | None
    size_bytes: int
    should_stream: bool


class FileClassifierInterface(ABC):
    """Abstract interface for binary/encoding classification."""

    @abstractmethod
    def classify(self, path: Path) -> FileClassification:
        """
        Classify a file.

        Raises:
            OSError: If the file cannot be stat'ed or read
        """
        pass


class DefaultFileClassifier(FileClassifierInterface):
    """
    Extension and content-sniffing classifier.

    A file is binary when its extension is a known binary format, or when
    the first 8 KiB contain a NUL byte (without a UTF-16/32 BOM) or are more
    than 30% non-text control bytes. Text files are decoded as UTF-8 when the
    sample is valid UTF-8, otherwise as latin-1.
    """

    def __init__(
        self,
        stream_threshold_bytes: int = DEFAULT_STREAM_THRESHOLD_BYTES,
        binary_extensions: frozenset[str] = BINARY_EXTENSIONS,
    ):
        self._stream_threshold_bytes = stream_threshold_bytes
        self._binary_extensions = binary_extensions

    def classify(self, path: Path) -> FileClassification:
        path = Path(path)
        size_bytes = path.stat().st_size
        should_stream = size_bytes > self._stream_threshold_bytes

        if path.suffix.lower() in self._binary_extensions:
            return FileClassification(path, True, None, size_bytes, False)

        with open(path, "rb") as f:
            sample = f.read(DETECTION_BUFFER_SIZE)

        encoding = detect_encoding(sample, complete=size_bytes <= len(sample))
        if encoding is None:
            logger.debug(f"Classified as binary: {path}")
            return FileClassification(path, True, None, size_bytes, False)

        return FileClassification(path, False, encoding, size_bytes, should_stream)


def detect_encoding(sample: bytes, complete: bool = False) -> str | None:
    """
    Detect the text encoding of a byte sample.

    Args:
        sample: Leading bytes of a file
        complete: True if the sample is the whole file

    Returns:
        Codec name, or None if the sample looks binary
    """
    for bom, encoding in _BOMS:
        if sample.startswith(bom):
            return encoding

    if not sample:
        return "utf-8"

    if b"\x00" in sample:
        return None

    controls = sum(1 for byte in sample if byte < 0x20 and byte not in _TEXT_CONTROLS)
    if controls / len(sample) > BINARY_CONTROL_RATIO:
        return None

    try:
        codecs.getincrementaldecoder("utf-8")().decode(sample, final=complete)
        return "utf-8"
    except UnicodeDecodeError:
        return "latin-1"
