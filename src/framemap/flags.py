"""Flag glyphs and flag image URLs keyed by ISO3."""

from __future__ import annotations


_FLAGCDN_URL = "https://flagcdn.com/w{width}/{iso2}.png"
_REGIONAL_INDICATOR_OFFSET = 0x1F1E6 - ord("A")

ISO3_TO_ISO2: dict[str, str] = {
    "ZAF": "za", "DZA": "dz", "AGO": "ao", "BEN": "bj", "BWA": "bw", "BFA": "bf",
    "BDI": "bi", "CMR": "cm", "CPV": "cv", "COM": "km", "COG": "cg", "CIV": "ci",
    "DJI": "dj", "EGY": "eg", "ERI": "er", "SWZ": "sz", "ETH": "et", "GAB": "ga",
    "GMB": "gm", "GHA": "gh", "GIN": "gn", "GNQ": "gq", "GNB": "gw", "KEN": "ke",
    "LSO": "ls", "LBR": "lr", "LBY": "ly", "MDG": "mg", "MWI": "mw", "MLI": "ml",
    "MAR": "ma", "MUS": "mu", "MRT": "mr", "MOZ": "mz", "NAM": "na", "NER": "ne",
    "NGA": "ng", "UGA": "ug", "COD": "cd", "CAF": "cf", "RWA": "rw", "ESH": "eh",
    "STP": "st", "SEN": "sn", "SYC": "sc", "SLE": "sl", "SOM": "so", "SDN": "sd",
    "SSD": "ss", "TZA": "tz", "TCD": "td", "TGO": "tg", "TUN": "tn", "ZMB": "zm",
    "ZWE": "zw",
}


def iso2_for(iso3: str) -> str | None:
    return ISO3_TO_ISO2.get(iso3.strip().upper())


def flag_emoji(iso3: str) -> str:
    """Regional-indicator flag for an ISO3 code, or '' when unknown."""
    iso2 = iso2_for(iso3)
    if iso2 is None:
        return ""
    return "".join(chr(ord(ch) + _REGIONAL_INDICATOR_OFFSET) for ch in iso2.upper())


def flag_url(iso3: str, *, width: int = 40) -> str | None:
    iso2 = iso2_for(iso3)
    if iso2 is None:
        return None
    return _FLAGCDN_URL.format(width=int(width), iso2=iso2)


def with_flag(iso3: str, text: str) -> str:
    glyph = flag_emoji(iso3)
    return f"{glyph} {text}" if glyph else text


def strip_flag(text: str) -> str:
    """Drop leading flag glyphs, for fonts without emoji coverage."""
    return text.lstrip("".join(chr(0x1F1E6 + i) for i in range(26))).strip()
