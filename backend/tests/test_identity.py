from services.identity import make_place_key


def test_key_ignores_case_and_whitespace():
    assert make_place_key("Seoul", "KR") == make_place_key(" seoul  ", "kr")
    assert make_place_key("New   York", "US") == make_place_key("new york", " us ")


def test_key_discriminates_country():
    assert make_place_key("Seoul", "KR") != make_place_key("Seoul", "US")


def test_missing_country_is_empty_string():
    assert make_place_key("Paris", None) == "paris|"
    assert make_place_key("Paris", "") == make_place_key("Paris", None)
    assert make_place_key("Paris", None) != make_place_key("Paris", "FR")


def test_key_format():
    assert make_place_key("Seoul", "KR") == "seoul|kr"
