import enum
import logging
import threading
from pathlib import Path
from typing import Dict, Optional

from opencc import OpenCC

from radar_panel import settings
from radar_panel.local.errors import LogUnavailable

log = logging.getLogger(__name__)


class ScriptVariant(str, enum.Enum):
    """Script variants the workload log can be rendered in."""
    SIMPLIFIED = "zh-cn"
    TRADITIONAL = "zh-tw"

    @classmethod
    def parse(cls, value: Optional[str]) -> "ScriptVariant":
        """Maps a request value such as 'zh-TW' onto a variant. Raises ValueError if unknown."""
        if value is None or value == "":
            return cls(settings.DEFAULT_SCRIPT_VARIANT)
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown script variant '{value}'. Expected 'zh-cn' or 'zh-tw'.") from None


# OpenCC conversion profiles producing each variant.
_CONVERSIONS = {
    ScriptVariant.TRADITIONAL: "s2tw",
    ScriptVariant.SIMPLIFIED: "tw2s",
}
_converters: Dict[ScriptVariant, OpenCC] = {}
_converters_lock = threading.Lock()


def _get_converter(variant: ScriptVariant) -> OpenCC:
    with _converters_lock:
        if variant not in _converters:
            _converters[variant] = OpenCC(_CONVERSIONS[variant])
        return _converters[variant]


def convert(text: str, variant: ScriptVariant) -> str:
    """
    Converts text into the given script variant.
    Text already written in the target variant comes back unchanged.
    """
    if not text:
        return text
    return _get_converter(variant).convert(text)


def clear_log(path: Path) -> None:
    """Truncates the workload log to empty, creating it if needed."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb"):
        pass
    log.debug(f"Cleared workload log '{path}'.")


class LogTranscoder:
    """Reads the raw workload log and renders it as text in a script variant."""

    def __init__(
        self,
        path: Path,
        encoding: str = settings.LOG_ENCODING,
        empty_message: str = settings.LOG_NOT_STARTED_MESSAGE,
    ) -> None:
        self.path = Path(path)
        self.encoding = encoding
        self.empty_message = empty_message

    def read(self, variant: ScriptVariant = ScriptVariant.SIMPLIFIED) -> str:
        """
        Decodes the captured log and converts it to the requested variant.

        :param variant: The script variant to render.
        :return: The log text, or the 'not yet started' message if it is blank.
        :raises LogUnavailable: If the log file has not been created yet.
        """
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            raise LogUnavailable(settings.LOG_NOT_CREATED_MESSAGE) from None

        text = raw.decode(self.encoding, errors="replace")
        if not text.strip():
            text = self.empty_message
        return convert(text, variant)
