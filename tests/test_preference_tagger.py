import pytest

from tripcontext.services.preference_tagger import PreferenceTagger


@pytest.fixture
def tagger():
    return PreferenceTagger()


def test_budget_and_kids(tagger):
    assert tagger.tags_for("가성비 있게 아이랑 갈만한 곳") == ["가성비", "아이동반"]


def test_rule_tag_added_once(tagger):
    assert tagger.tags_for("로컬 맛집, 현지인 많은 곳") == ["현지인맛집"]


def test_tags_follow_rule_order(tagger):
    assert tagger.tags_for("야경 보고 쇼핑하고 혼자 다니기") == ["혼밥", "쇼핑", "야경"]


def test_keywords_match_case_insensitively():
    tagger = PreferenceTagger(rules=[(("Night View",), "야경")])
    assert tagger.tags_for("great NIGHT VIEW spots") == ["야경"]


@pytest.mark.parametrize("text", [None, "", "   ", 42, "그냥 아무데나"])
def test_no_tags(tagger, text):
    assert tagger.tags_for(text) == []
