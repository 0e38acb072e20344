"""
Supplier abbreviation dictionary.

Supplier descriptions use Portuguese trade abbreviations ("DRT", "P/CH",
"ELECTROV."). They are expanded before the description is sent to the
text-generation service.
"""

import re
from types import MappingProxyType
from typing import Mapping

DEFAULT_ABBREVIATIONS: Mapping[str, str] = MappingProxyType({
    "DRT": "Derecho",
    "ESQ": "Izquierdo",
    "ELECT": "Eléctrico",
    "LAT": "Lateral",
    "TERM": "Térmico",
    "ESP": "Retrovisor",
    "L/V": "Elevalunas",
    "FRT": "Delantero",
    "COMANDO": "Mando",
    "TRAS": "Trasero",
    "P/CH": "Parachoques",
    "G/LAMAS": "Aleta",
    "V/ESP": "Cristal Retrovisor",
    "SUP": "Superior",
    "C/FURO": "Con antiniebla",
    "S/FURO": "Sin antiniebla",
    "S/LAMPADA": "Sin bombilla",
    "ELECTROV.": "Electroventilador",
    "ELETROV.C/AC": "Electroventilador con aire ac",
    "INF": "Inferior",
    "CEN": "Central",
    "C/LV FAR": "Con lavafaros",
    "FUMADO": "Ahumado",
    "*CAPA": "Carcasa",
    "CONV": "Convexo",
    "ASF": "Asférico",
    "REB": "Abatible",
    "C/CONF": "Confort",
    "FAROLIM": "Piloto",
    "PUNHO": "Maneta",
    "VW": "Volkswagen",
    "C/C": "Manual",
    "P/P": "Para pintar",
})

# Keys containing these characters are replaced anywhere, without word boundaries
_SPECIAL_CHARS = re.compile(r"[/*.]")


def expand_abbreviations(text: str, dictionary: Mapping[str, str] = DEFAULT_ABBREVIATIONS) -> str:
    """
    Replace supplier abbreviations, case-insensitively.

    Keys with "/", "*" or "." are applied first as plain substrings, in
    dictionary order; the rest only as whole words.
    """
    if not text:
        return text or ""

    special = [(k, v) for k, v in dictionary.items() if _SPECIAL_CHARS.search(k)]
    normal = [(k, v) for k, v in dictionary.items() if not _SPECIAL_CHARS.search(k)]

    result = text
    for key, value in special:
        result = re.sub(re.escape(key), lambda _m, v=value: v, result, flags=re.IGNORECASE)
    for key, value in normal:
        result = re.sub(
            rf"\b{re.escape(key)}\b", lambda _m, v=value: v, result, flags=re.IGNORECASE
        )
    return result
