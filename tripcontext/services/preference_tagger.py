from typing import List, Optional, Sequence, Tuple

# (keywords, tag): the tag is added when any keyword occurs in the preference text
PREFERENCE_TO_TAGS: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("현지인", "로컬", "로컬맛집", "맛집"), "현지인맛집"),
    (("가성비", "저렴", "싸게", "알뜰"), "가성비"),
    (("아이", "아이랑", "아이와", "가족", "키즈"), "아이동반"),
    (("데이트", "커플", "둘이"), "데이트"),
    (("혼밥", "혼자", "1인"), "혼밥"),
    (("쇼핑", "쇼핑몰", "기념품"), "쇼핑"),
    (("야경", "밤", "야경명소"), "야경"),
    (("역사", "사찰", "신사", "전통"), "역사"),
)


class PreferenceTagger:
    """Keyword classifier from free-text preferences to place tags."""

    def __init__(self, rules: Sequence[Tuple[Sequence[str], str]] = PREFERENCE_TO_TAGS):
        self.rules = [(tuple(k.lower() for k in keywords), tag) for keywords, tag in rules]

    def tags_for(self, preferences: Optional[str]) -> List[str]:
        if not preferences or not isinstance(preferences, str):
            return []
        text = preferences.strip().lower()
        if not text:
            return []
        tags: List[str] = []
        for keywords, tag in self.rules:
            if tag not in tags and any(kw in text for kw in keywords):
                tags.append(tag)
        return tags
