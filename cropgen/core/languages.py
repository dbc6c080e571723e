import logging
from dataclasses import dataclass, asdict
from typing import Dict, List, Optional

logger = logging.getLogger("cropgen.languages")


@dataclass(frozen=True)
class LanguageDescriptor:
    code: str
    name: str
    backend_key: str
    instruction: str
    supported: bool = True

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)


_LANGUAGES = (
    LanguageDescriptor("en", "English", "english", "Generate in English language"),
    LanguageDescriptor("hi", "Hindi", "hindi", "Generate in Hindi language (हिंदी भाषा में तैयार करें)"),
    LanguageDescriptor("mr", "Marathi", "marathi", "Generate in Marathi language (मराठी भाषेत तयार करा)"),
    LanguageDescriptor("gu", "Gujarati", "gujarati", "Generate in Gujarati language (ગુજરાતી ભાષામાં બનાવો)"),
    LanguageDescriptor("bn", "Bengali", "bengali", "Generate in Bengali language (বাংলা ভাষায় তৈরি করুন)"),
    LanguageDescriptor("ta", "Tamil", "tamil", "Generate in Tamil language (தமிழ் மொழியில் உருவாக்கவும்)"),
    LanguageDescriptor("ur", "Urdu", "urdu", "Generate in Urdu language (اردو زبان میں بنائیں)"),
    LanguageDescriptor("fr", "French", "french", "Generate in French language (Générer en français)"),
    LanguageDescriptor("de", "German", "german", "Generate in German language (Auf Deutsch generieren)"),
    LanguageDescriptor("es", "Spanish", "spanish", "Generate in Spanish language (Generar en español)"),
)

DEFAULT_LANGUAGE = _LANGUAGES[0]

_BY_CODE = {lang.code: lang for lang in _LANGUAGES}
_BY_BACKEND_KEY = {lang.backend_key: lang for lang in _LANGUAGES}
_BY_NAME = {lang.name.lower(): lang for lang in _LANGUAGES}


def resolve_language(value: Optional[str]) -> LanguageDescriptor:
    """Map a code ("hi"), backend key ("hindi") or display name ("Hindi") to a descriptor.

    Matching is case-insensitive. Anything unrecognised resolves to English.
    """
    if not value:
        return DEFAULT_LANGUAGE

    key = value.strip().lower()
    for table in (_BY_CODE, _BY_BACKEND_KEY, _BY_NAME):
        if key in table:
            return table[key]

    logger.warning("Unknown language %r, defaulting to English", value)
    return DEFAULT_LANGUAGE


def supported_languages() -> List[LanguageDescriptor]:
    return list(_LANGUAGES)
