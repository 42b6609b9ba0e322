from typing import Optional

# ===========================
# Subtitle Language Names
# ===========================
LANGUAGE_NAMES = {
    "eng": "English",
    "spa": "Spanish",
    "fra": "French",
    "fre": "French",
    "deu": "German",
    "ger": "German",
    "ita": "Italian",
    "por": "Portuguese",
    "pob": "Portuguese (BR)",
    "rus": "Russian",
    "jpn": "Japanese",
    "kor": "Korean",
    "zho": "Chinese",
    "chi": "Chinese",
    "ara": "Arabic",
    "hin": "Hindi",
    "tur": "Turkish",
    "pol": "Polish",
    "nld": "Dutch",
    "dut": "Dutch",
    "ell": "Greek",
    "gre": "Greek",
    "swe": "Swedish",
    "dan": "Danish",
    "fin": "Finnish",
    "nor": "Norwegian",
    "heb": "Hebrew",
    "ces": "Czech",
    "hun": "Hungarian",
    "ron": "Romanian",
    "tha": "Thai",
    "vie": "Vietnamese",
    "ind": "Indonesian",
}


# ===========================
# Language Name Lookup
# ===========================
def get_language_name(code: Optional[str]) -> str:
    if not code:
        return "Unknown"
    return LANGUAGE_NAMES.get(code.lower(), code)
