"""
Static region taxonomy for the Japan place database.

Three lookup tables drive every region decision in the service:

- ``REGIONS``: region code -> center coordinate, Korean label, Japanese name, tier
- ``DESTINATION_TO_REGION``: destination name (Korean / English / Japanese) -> region code
- ``AREA_TO_REGIONS``: broad area name (큐슈, kansai, ...) -> region codes

``RegionTaxonomy`` wraps them in an immutable index. Keys are sorted once by
descending length so that the longest matching key always wins, e.g.
"구마모토시" is matched before "구마모토" and "東京都" before "京都".
"""

import logging
import re
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel

from tripcontext.utils.geo import haversine_km

logger = logging.getLogger(__name__)

DEFAULT_MATCH_RADIUS_KM = 50.0
MIN_SUBSTRING_KEY_LENGTH = 2

_HANGUL_RE = re.compile(r"[가-힣]")
_KANJI_KANA_KEY_RE = re.compile(r"^[\u3040-\u30ff\u4e00-\u9fff]+$")


class Region(BaseModel):
    code: str
    center: Tuple[float, float]
    label: str
    name_ja: Optional[str] = None
    tier: int = 5

    model_config = {"frozen": True}


def _region(code: str, lat: float, lon: float, tier: int, label: str, name_ja: str) -> Region:
    return Region(code=code, center=(lat, lon), tier=tier, label=label, name_ja=name_ja)


REGIONS: Dict[str, Region] = {r.code: r for r in [
    # Tier 1: major cities
    _region("osaka", 34.69, 135.5, 1, "오사카", "大阪"),
    _region("tokyo", 35.68, 139.69, 1, "도쿄", "東京"),
    _region("kyoto", 35.01, 135.77, 1, "교토", "京都"),
    # Tier 2
    _region("fukuoka", 33.59, 130.4, 2, "후쿠오카", "福岡"),
    _region("okinawa", 26.33, 127.8, 2, "오키나와", "沖縄"),
    _region("sapporo", 43.06, 141.35, 2, "삿포로", "札幌"),
    _region("kobe", 34.69, 135.2, 2, "고베", "神戸"),
    _region("nara", 34.69, 135.8, 2, "나라", "奈良"),
    # Tier 3
    _region("nagoya", 35.18, 136.91, 3, "나고야", "名古屋"),
    _region("hiroshima", 34.4, 132.46, 3, "히로시마", "広島"),
    _region("hakone", 35.23, 139.11, 3, "하코네", "箱根"),
    _region("yokohama", 35.44, 139.64, 3, "요코하마", "横浜"),
    _region("kanazawa", 36.56, 136.66, 3, "가나자와", "金沢"),
    _region("beppu", 33.28, 131.49, 3, "벳푸", "別府"),
    _region("kamakura", 35.32, 139.55, 3, "가마쿠라", "鎌倉"),
    _region("nikko", 36.75, 139.6, 3, "닛코", "日光"),
    # Tier 4: Kyushu, Shikoku, Chubu
    _region("kumamoto", 32.79, 130.74, 4, "구마모토", "熊本"),
    _region("nagasaki", 32.75, 129.88, 4, "나가사키", "長崎"),
    _region("kagoshima", 31.6, 130.56, 4, "가고시마", "鹿児島"),
    _region("matsuyama", 33.84, 132.77, 4, "마츠야마", "松山"),
    _region("takamatsu", 34.34, 134.05, 4, "타카마츠", "高松"),
    _region("takayama", 36.14, 137.25, 4, "다카야마", "高山"),
    _region("hakodate", 41.77, 140.73, 4, "하코다테", "函館"),
    _region("sendai", 38.27, 140.87, 4, "센다이", "仙台"),
    _region("kawaguchiko", 35.5, 138.76, 4, "카와구치코", "河口湖"),
    # Tier 5: small / specialty destinations
    _region("aso", 32.88, 131.1, 5, "아소", "阿蘇"),
    _region("yufuin", 33.27, 131.37, 5, "유후인", "由布院"),
    _region("miyajima", 34.3, 132.32, 5, "미야지마", "宮島"),
    _region("naoshima", 34.46, 133.99, 5, "나오시마", "直島"),
    _region("shirakawago", 36.26, 136.91, 5, "시라카와고", "白川郷"),
    _region("otaru", 43.19, 141.0, 5, "오타루", "小樽"),
    _region("noboribetsu", 42.46, 141.17, 5, "노보리베츠", "登別"),
    _region("atami", 35.1, 139.07, 5, "아타미", "熱海"),
    _region("miyazaki", 31.91, 131.42, 5, "미야자키", "宮崎"),
    _region("takachiho", 32.72, 131.31, 5, "타카치호", "高千穂"),
    _region("shimoda", 34.68, 138.95, 5, "시모다", "下田"),
    _region("kinosaki", 35.63, 134.81, 5, "기노사키", "城崎"),
    _region("ibusuki", 31.23, 130.64, 5, "이부스키", "指宿"),
]}

# Korean first: the first Hangul key of a region becomes its display name.
DESTINATION_TO_REGION: Dict[str, str] = {
    "오사카": "osaka", "오사카시": "osaka", "osaka": "osaka",
    "교토": "kyoto", "교토시": "kyoto", "kyoto": "kyoto",
    "도쿄": "tokyo", "도쿄도": "tokyo", "tokyo": "tokyo",
    "후쿠오카": "fukuoka", "후쿠오카시": "fukuoka", "fukuoka": "fukuoka", "하카타": "fukuoka",
    "나라": "nara", "나라시": "nara", "nara": "nara",
    "고베": "kobe", "고베시": "kobe", "kobe": "kobe",
    "오키나와": "okinawa", "okinawa": "okinawa", "나하": "okinawa",
    "삿포로": "sapporo", "sapporo": "sapporo",
    "나고야": "nagoya", "nagoya": "nagoya",
    "히로시마": "hiroshima", "hiroshima": "hiroshima",
    "하코네": "hakone", "hakone": "hakone",
    "요코하마": "yokohama", "yokohama": "yokohama",
    "가나자와": "kanazawa", "kanazawa": "kanazawa",
    "벳푸": "beppu", "beppu": "beppu",
    "가마쿠라": "kamakura", "kamakura": "kamakura",
    "닛코": "nikko", "nikko": "nikko",
    "구마모토": "kumamoto", "구마모토시": "kumamoto", "kumamoto": "kumamoto",
    "나가사키": "nagasaki", "나가사키시": "nagasaki", "nagasaki": "nagasaki",
    "가고시마": "kagoshima", "가고시마시": "kagoshima", "kagoshima": "kagoshima",
    "마츠야마": "matsuyama", "matsuyama": "matsuyama",
    "타카마츠": "takamatsu", "takamatsu": "takamatsu",
    "다카야마": "takayama", "takayama": "takayama",
    "하코다테": "hakodate", "hakodate": "hakodate",
    "센다이": "sendai", "sendai": "sendai",
    "카와구치코": "kawaguchiko", "가와구치코": "kawaguchiko", "kawaguchiko": "kawaguchiko",
    "아소": "aso", "아소산": "aso", "aso": "aso",
    "유후인": "yufuin", "yufuin": "yufuin",
    "미야지마": "miyajima", "miyajima": "miyajima",
    "나오시마": "naoshima", "naoshima": "naoshima",
    "시라카와고": "shirakawago", "shirakawago": "shirakawago",
    "오타루": "otaru", "otaru": "otaru",
    "노보리베츠": "noboribetsu", "noboribetsu": "noboribetsu",
    "아타미": "atami", "atami": "atami",
    "미야자키": "miyazaki", "miyazaki": "miyazaki",
    "타카치호": "takachiho", "takachiho": "takachiho",
    "시모다": "shimoda", "shimoda": "shimoda",
    "기노사키": "kinosaki", "kinosaki": "kinosaki",
    "이부스키": "ibusuki", "ibusuki": "ibusuki",
    # Japanese script
    "大阪": "osaka", "東京": "tokyo", "東京都": "tokyo", "京都": "kyoto",
    "福岡": "fukuoka", "博多": "fukuoka", "沖縄": "okinawa", "那覇": "okinawa",
    "札幌": "sapporo", "神戸": "kobe", "奈良": "nara", "名古屋": "nagoya",
    "広島": "hiroshima", "箱根": "hakone", "横浜": "yokohama", "金沢": "kanazawa",
    "別府": "beppu", "鎌倉": "kamakura", "日光": "nikko", "熊本": "kumamoto",
    "長崎": "nagasaki", "鹿児島": "kagoshima", "松山": "matsuyama", "高松": "takamatsu",
    "高山": "takayama", "函館": "hakodate", "仙台": "sendai", "河口湖": "kawaguchiko",
    "阿蘇": "aso", "由布院": "yufuin", "湯布院": "yufuin", "宮島": "miyajima",
    "直島": "naoshima", "白川郷": "shirakawago", "小樽": "otaru", "登別": "noboribetsu",
    "熱海": "atami", "宮崎": "miyazaki", "高千穂": "takachiho", "下田": "shimoda",
    "城崎": "kinosaki", "指宿": "ibusuki",
}

_KYUSHU = ("fukuoka", "kumamoto", "nagasaki", "kagoshima", "beppu", "miyazaki", "aso", "yufuin", "takachiho", "ibusuki")
_SHIKOKU = ("matsuyama", "takamatsu", "naoshima")
_HOKKAIDO = ("sapporo", "hakodate", "otaru", "noboribetsu")
_KANSAI = ("osaka", "kyoto", "kobe", "nara")
_KANTO = ("tokyo", "yokohama", "kamakura", "hakone", "nikko")
_CHUBU = ("nagoya", "kanazawa", "takayama", "shirakawago", "kawaguchiko")

AREA_TO_REGIONS: Dict[str, Tuple[str, ...]] = {
    "큐슈": _KYUSHU,
    "북큐슈": ("fukuoka", "kumamoto", "nagasaki", "beppu", "yufuin"),
    "남큐슈": ("kagoshima", "miyazaki", "ibusuki"),
    "kyushu": _KYUSHU,
    "시코쿠": _SHIKOKU,
    "shikoku": _SHIKOKU,
    "홋카이도": _HOKKAIDO,
    "hokkaido": _HOKKAIDO,
    "간사이": _KANSAI,
    "kansai": _KANSAI,
    "관서": _KANSAI,
    "간토": _KANTO,
    "kanto": _KANTO,
    "관동": _KANTO,
    "주부": _CHUBU,
    "chubu": _CHUBU,
    "도호쿠": ("sendai",),
    "tohoku": ("sendai",),
    "이즈": ("atami", "shimoda"),
}


class _Key:
    __slots__ = ("key", "lower", "is_area", "is_japanese")

    def __init__(self, key: str, is_area: bool):
        self.key = key
        self.lower = key.lower()
        self.is_area = is_area
        self.is_japanese = bool(_KANJI_KANA_KEY_RE.match(key))


def _by_length(keys: Iterable[_Key]) -> List[_Key]:
    # sorted() is stable: equal-length keys keep table order
    return sorted(keys, key=lambda k: len(k.key), reverse=True)


class RegionTaxonomy:
    """Immutable lookup index over the region tables."""

    def __init__(
        self,
        regions: Mapping[str, Region] = REGIONS,
        destination_names: Mapping[str, str] = DESTINATION_TO_REGION,
        area_groups: Mapping[str, Sequence[str]] = AREA_TO_REGIONS,
        match_radius_km: float = DEFAULT_MATCH_RADIUS_KM,
    ):
        self.match_radius_km = match_radius_km
        self._regions: Dict[str, Region] = dict(regions)

        # Entries pointing at unknown region codes are dropped
        self._destinations: Dict[str, str] = {
            name: code for name, code in destination_names.items() if code in self._regions
        }
        self._areas: Dict[str, Tuple[str, ...]] = {}
        for name, codes in area_groups.items():
            known = tuple(dict.fromkeys(c for c in codes if c in self._regions))
            if known:
                self._areas[name] = known

        self._destinations_lower: Dict[str, str] = {}
        for name, code in self._destinations.items():
            self._destinations_lower.setdefault(name.lower(), code)
        self._areas_lower: Dict[str, Tuple[str, ...]] = {}
        for name, codes in self._areas.items():
            self._areas_lower.setdefault(name.lower(), codes)

        self._destination_keys = _by_length(_Key(k, False) for k in self._destinations)
        self._area_keys = _by_length(_Key(k, True) for k in self._areas)
        self._scan_keys = self._destination_keys + self._area_keys

        self._display_names: Dict[str, str] = {}
        for name, code in self._destinations.items():
            if _HANGUL_RE.search(name) and code not in self._display_names:
                self._display_names[code] = name

    # -- regions -----------------------------------------------------------

    def has_region(self, code: Optional[str]) -> bool:
        return bool(code) and code in self._regions

    def get_region(self, code: str) -> Optional[Region]:
        return self._regions.get(code)

    def region_codes(self) -> List[str]:
        return list(self._regions)

    def region_center(self, code: str) -> Optional[Tuple[float, float]]:
        region = self._regions.get(code)
        return region.center if region else None

    def display_name(self, code: str) -> str:
        return self._display_names.get(code, code)

    def classify(self, lat: float, lon: float, threshold_km: Optional[float] = None) -> Optional[str]:
        """Nearest region whose center lies within the threshold, else None."""
        if lat is None or lon is None:
            return None
        threshold = self.match_radius_km if threshold_km is None else threshold_km
        best, best_dist = None, float("inf")
        for code, region in self._regions.items():
            d = haversine_km(lat, lon, region.center[0], region.center[1])
            if d < best_dist:
                best, best_dist = code, d
        return best if best_dist <= threshold else None

    # -- names -------------------------------------------------------------

    def destination_to_region(self, name: str) -> Optional[str]:
        """Exact lookup, then the longest dictionary key contained in the name."""
        if not name:
            return None
        lower = name.lower()
        code = self._destinations.get(name) or self._destinations_lower.get(lower)
        if code:
            return code
        for k in self._destination_keys:
            if len(k.key) >= MIN_SUBSTRING_KEY_LENGTH and k.lower in lower:
                return self._destinations[k.key]
        return None

    def area_exact(self, name: str) -> Optional[Tuple[str, ...]]:
        if not name:
            return None
        return self._areas.get(name) or self._areas_lower.get(name.lower())

    def area_substring(self, name: str) -> Optional[Tuple[str, ...]]:
        """Longest area key that contains, or is contained by, the name."""
        if not name:
            return None
        lower = name.lower()
        for k in self._area_keys:
            if len(k.key) >= MIN_SUBSTRING_KEY_LENGTH and (k.lower in lower or lower in k.lower):
                return self._areas[k.key]
        return None

    def area_to_regions(self, name: str) -> Optional[Tuple[str, ...]]:
        return self.area_exact(name) or self.area_substring(name)

    def area_groups(self) -> Dict[str, Tuple[str, ...]]:
        return dict(self._areas)

    def regions_for_key(self, key: str) -> Tuple[str, ...]:
        """Regions behind a dictionary or area key returned by ``scan_text``."""
        if key in self._areas:
            return self._areas[key]
        code = self._destinations.get(key)
        return (code,) if code else ()

    def scan_text(self, text: str) -> List[str]:
        """Every destination key, then every area key, contained in free text.

        Keys are checked longest first and nested keys are reported too
        ("북큐슈" also yields "큐슈"). Only kanji/kana names skip a match that
        lies entirely inside a longer kanji/kana name, so "東京都" does not
        also yield "京都".
        """
        if not text or not isinstance(text, str):
            return []
        lowered = text.strip().lower()
        kanji_masked = lowered
        found: List[str] = []
        for k in self._scan_keys:
            if k.is_japanese:
                if k.lower not in kanji_masked:
                    continue
                kanji_masked = kanji_masked.replace(k.lower, "\x00" * len(k.lower))
            elif k.lower not in lowered:
                continue
            if k.key not in found:
                found.append(k.key)
        return found


# Shared default instance
taxonomy = RegionTaxonomy()

def get_taxonomy() -> RegionTaxonomy:
    """Get the shared taxonomy instance"""
    return taxonomy
