from typing import List, Sequence

from tripcontext.models.place_models import PlaceRecord

CONTEXT_HEADER = "## 참고 장소 (아래를 우선 반영해 일정을 만들어주세요. rag_id를 반드시 함께 반환하세요)"

class ContextFormatter:
    """Render retrieved places as the prompt context block"""

    @staticmethod
    def format_place_line(place: PlaceRecord) -> str:
        """One line per place, keyed by rag_id so generated items can point back to it"""
        desc = place.description or ""
        tag_str = f" 태그: {', '.join(place.tags)}" if place.tags else ""
        extra = " ".join(v for v in (place.price_range, place.opening_hours) if v)
        extra_str = f" {extra}" if extra else ""
        return f"- [rag_id:{place.id}] [{place.region}] {place.name_ko} ({place.type}): {desc}{tag_str}{extra_str}"

    @staticmethod
    def format_context_text(places: Sequence[PlaceRecord]) -> str:
        if not places:
            return ""
        lines: List[str] = [CONTEXT_HEADER, ""]
        lines.extend(ContextFormatter.format_place_line(p) for p in places)
        return "\n".join(lines)
