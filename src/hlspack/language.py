"""Language tag normalization for HLS renditions.

ffprobe reports stream languages as ISO 639-2 codes (bibliographic "ger" or
terminological "deu"). The LANGUAGE attribute of #EXT-X-MEDIA should be an
RFC 5646 tag, which prefers the ISO 639-1 two-letter code where one exists.
This module converts between the two and provides display names for the
NAME attribute.
"""

import logging

logger = logging.getLogger(__name__)

UNDEFINED = "und"

# ISO 639-2/B (3-letter bibliographic) to ISO 639-1 (2-letter) mapping
# This covers the most common languages in video files
_ISO_639_2B_TO_639_1: dict[str, str] = {
    "alb": "sq",  # Albanian
    "ara": "ar",  # Arabic
    "arm": "hy",  # Armenian
    "baq": "eu",  # Basque
    "ben": "bn",  # Bengali
    "bul": "bg",  # Bulgarian
    "cat": "ca",  # Catalan
    "chi": "zh",  # Chinese
    "cze": "cs",  # Czech
    "dan": "da",  # Danish
    "dut": "nl",  # Dutch
    "eng": "en",  # English
    "est": "et",  # Estonian
    "fin": "fi",  # Finnish
    "fre": "fr",  # French
    "geo": "ka",  # Georgian
    "ger": "de",  # German
    "gle": "ga",  # Irish
    "glg": "gl",  # Galician
    "gre": "el",  # Greek
    "heb": "he",  # Hebrew
    "hin": "hi",  # Hindi
    "hrv": "hr",  # Croatian
    "hun": "hu",  # Hungarian
    "ice": "is",  # Icelandic
    "ind": "id",  # Indonesian
    "ita": "it",  # Italian
    "jpn": "ja",  # Japanese
    "kor": "ko",  # Korean
    "lat": "la",  # Latin
    "lav": "lv",  # Latvian
    "lit": "lt",  # Lithuanian
    "mac": "mk",  # Macedonian
    "may": "ms",  # Malay
    "nor": "no",  # Norwegian
    "per": "fa",  # Persian
    "pol": "pl",  # Polish
    "por": "pt",  # Portuguese
    "rum": "ro",  # Romanian
    "rus": "ru",  # Russian
    "slo": "sk",  # Slovak
    "slv": "sl",  # Slovenian
    "spa": "es",  # Spanish
    "srp": "sr",  # Serbian
    "swe": "sv",  # Swedish
    "tam": "ta",  # Tamil
    "tel": "te",  # Telugu
    "tgl": "tl",  # Tagalog
    "tha": "th",  # Thai
    "tur": "tr",  # Turkish
    "ukr": "uk",  # Ukrainian
    "urd": "ur",  # Urdu
    "vie": "vi",  # Vietnamese
    "wel": "cy",  # Welsh
}

# ISO 639-2/T (terminological) to ISO 639-2/B (bibliographic) mapping
# These are the languages where the codes differ
_ISO_639_2T_TO_639_2B: dict[str, str] = {
    "ces": "cze",  # Czech
    "cym": "wel",  # Welsh
    "deu": "ger",  # German
    "ell": "gre",  # Greek
    "eus": "baq",  # Basque
    "fas": "per",  # Persian
    "fra": "fre",  # French
    "hye": "arm",  # Armenian
    "isl": "ice",  # Icelandic
    "kat": "geo",  # Georgian
    "mkd": "mac",  # Macedonian
    "msa": "may",  # Malay
    "nld": "dut",  # Dutch
    "ron": "rum",  # Romanian
    "slk": "slo",  # Slovak
    "sqi": "alb",  # Albanian
    "zho": "chi",  # Chinese
}

_ISO_639_1_TO_639_2B: dict[str, str] = {v: k for k, v in _ISO_639_2B_TO_639_1.items()}

# English display names keyed by ISO 639-2/B
_LANGUAGE_NAMES: dict[str, str] = {
    "ara": "Arabic",
    "ben": "Bengali",
    "chi": "Chinese",
    "cze": "Czech",
    "dan": "Danish",
    "dut": "Dutch",
    "eng": "English",
    "fin": "Finnish",
    "fre": "French",
    "ger": "German",
    "gre": "Greek",
    "heb": "Hebrew",
    "hin": "Hindi",
    "hun": "Hungarian",
    "ind": "Indonesian",
    "ita": "Italian",
    "jpn": "Japanese",
    "kor": "Korean",
    "may": "Malay",
    "nor": "Norwegian",
    "pol": "Polish",
    "por": "Portuguese",
    "rum": "Romanian",
    "rus": "Russian",
    "spa": "Spanish",
    "swe": "Swedish",
    "tgl": "Tagalog",
    "tha": "Thai",
    "tur": "Turkish",
    "ukr": "Ukrainian",
    "vie": "Vietnamese",
    "und": "Unknown",
    "mul": "Multiple",
    "zxx": "No linguistic content",
}

_SPECIAL_CODES = frozenset(("und", "mis", "mul", "zxx"))


def to_bibliographic(code: str | None) -> str:
    """Normalize any ISO 639 code to ISO 639-2/B.

    Args:
        code: ISO 639-1, 639-2/B or 639-2/T code. None or empty maps to "und".

    Returns:
        ISO 639-2/B code, the input unchanged if it is an unknown 3-letter
        code, or "und" for unrecognized input.
    """
    if not code:
        return UNDEFINED
    code = code.lower().strip()
    if code in _SPECIAL_CODES:
        return code
    if len(code) == 2:
        if code in _ISO_639_1_TO_639_2B:
            return _ISO_639_1_TO_639_2B[code]
        logger.debug("Unknown ISO 639-1 code '%s', using 'und'", code)
        return UNDEFINED
    if len(code) == 3:
        return _ISO_639_2T_TO_639_2B.get(code, code)
    logger.debug("Unrecognized language code format '%s', using 'und'", code)
    return UNDEFINED


def to_playlist_language(code: str | None) -> str:
    """Convert a stream language code to an RFC 5646 tag for playlists.

    Examples:
        >>> to_playlist_language("eng")
        'en'
        >>> to_playlist_language("deu")
        'de'
        >>> to_playlist_language(None)
        'und'
    """
    code_2b = to_bibliographic(code)
    return _ISO_639_2B_TO_639_1.get(code_2b, code_2b)


def get_language_name(code: str | None) -> str:
    """Get the English display name for a language code.

    Args:
        code: Language code (any ISO 639 format).

    Returns:
        English name of the language, or the upper-cased code if unknown.
    """
    code_2b = to_bibliographic(code)
    return _LANGUAGE_NAMES.get(code_2b, code_2b.upper())


def languages_match(code1: str | None, code2: str | None) -> bool:
    """Check if two language codes represent the same language.

    This comparison is standard-agnostic: "de", "ger", and "deu" all match.
    """
    return to_bibliographic(code1) == to_bibliographic(code2)
