# Файл: dms_data_client/utils/badwords.py
"""
Фильтр нецензурной лексики для текстовых загрузок.

Словари загружаются один раз при старте и дальше не меняются: фильтр получает
их по ссылке и хранит как неизменяемое отображение ``язык -> frozenset слов``.
"""

import json
import logging
import re
from importlib import resources
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Iterable, Optional

logger = logging.getLogger(__name__)

# Символы, которые вырезаются до разбиения на слова
_STRIP_RE = re.compile(r"[.,'|!?]")
_SPLIT_RE = re.compile(r"\s+")
MASK = "*****"

TEXT_CONTENT_TYPES = frozenset({
    "text/plain",
    "application/json",
    "application/xml",
    "text/xml",
    "application/rtf",
    "text/rtf",
    "application/msword",
})


def is_text_content_type(content_type: Optional[str]) -> bool:
    """Проверяет MIME-тип без параметров (``; charset=...`` отбрасывается)."""
    if not content_type:
        return False
    return content_type.split(";", 1)[0].strip().lower() in TEXT_CONTENT_TYPES


class BadWordFilter:
    def __init__(self, blocklists: Mapping[str, Iterable[str]]):
        self._blocklists = MappingProxyType(
            {lang: frozenset(w.strip().lower() for w in words) for lang, words in blocklists.items()}
        )

    @property
    def languages(self) -> frozenset:
        return frozenset(self._blocklists)

    def check(self, word: str, lang: str) -> bool:
        words = self._blocklists.get(lang)
        if not words:
            return False
        return word.strip().lower() in words

    def filter_text(self, text: str, lang: str) -> str:
        """
        Маскирует запрещенные слова: ``first + "*****" + last``.
        Текст приводится к нижнему регистру, пунктуация ``. , ' | ! ?`` вырезается,
        слова склеиваются одним пробелом. Повторный вызов ничего не меняет.
        """
        tokens = _SPLIT_RE.split(_STRIP_RE.sub("", text).lower())
        return " ".join(self._mask(t) if self.check(t, lang) else t for t in tokens)

    @staticmethod
    def _mask(word: str) -> str:
        return f"{word[0]}{MASK}{word[-1]}"


def load_badwords(path: Optional[str] = None) -> BadWordFilter:
    """Читает словари из JSON вида ``{"en": [...], ...}``; по умолчанию берет встроенный."""
    if path:
        raw = Path(path).read_text(encoding="utf-8")
    else:
        raw = resources.files("dms_data_client.data").joinpath("badwords.json").read_text(encoding="utf-8")
    data = json.loads(raw)
    logger.info(f"Loaded bad-word lists for languages: {sorted(data)}")
    return BadWordFilter(data)
