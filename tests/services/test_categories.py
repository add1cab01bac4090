from src.services.categories import CATEGORY_RULES, classify_themes


def test_military_themes_classify_as_war() -> None:
    assert classify_themes(["MILITARY_ACTIVITY", "TERROR"]) == "war"


def test_matching_is_case_insensitive_substring() -> None:
    assert classify_themes(["wb_2445_inflation"]) == "economy"
    assert classify_themes(["Soccer_League"]) == "sports"


def test_rule_order_decides_between_categories() -> None:
    # crime and politics both match; crime is declared first.
    assert classify_themes(["PROTEST", "ARREST"]) == "crime"
    assert classify_themes(["ARREST", "PROTEST"]) == "crime"
    # war outranks everything, regardless of theme position.
    assert classify_themes(["EARTHQUAKE", "ARMS_TRADE"]) == "war"


def test_no_match_returns_none() -> None:
    assert classify_themes(["WEATHER", "HEALTH"]) is None
    assert classify_themes([]) is None
    assert classify_themes([""]) is None


def test_short_keywords_match_inside_longer_tags() -> None:
    # "AI" is a plain substring rule, so unrelated tags containing it still match tech.
    assert classify_themes(["RAILWAYS"]) == "tech"


def test_classification_is_deterministic() -> None:
    themes = ["GOVERNMENT", "MUSIC", "JOBS"]
    assert {classify_themes(themes) for _ in range(5)} == {"politics"}


def test_category_order_is_fixed() -> None:
    assert tuple(category for category, _ in CATEGORY_RULES) == (
        "war",
        "crime",
        "politics",
        "entertainment",
        "disaster",
        "sports",
        "tech",
        "economy",
    )


def test_custom_rules_are_honored() -> None:
    rules = [("first", ["ALPHA"]), ("second", ["ALPHA", "BETA"])]
    assert classify_themes(["beta"], rules) == "second"
    assert classify_themes(["alphabet"], rules) == "first"
