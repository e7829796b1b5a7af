import pytest

from essembi_teams.text import first_line, normalize_line_breaks, strip_markup


@pytest.mark.parametrize("value", ["", "plain", "  padded  ", "a<br />b"])
def test_values_without_line_breaks_are_unchanged(value):
    assert normalize_line_breaks(value) == value


def test_crlf_becomes_rich_text_break():
    assert normalize_line_breaks("a\r\nb") == "a<br />b"


def test_normalizing_twice_is_the_same_as_once():
    once = normalize_line_breaks("a\r\nb")
    assert normalize_line_breaks(once) == once


def test_segments_are_trimmed_and_all_break_styles_split():
    assert normalize_line_breaks(" one \r two\n three\r\nfour ") == "one<br />two<br />three<br />four"


def test_first_line_skips_blank_lines():
    assert first_line("\r\n\nhello\nworld") == "hello"
    assert first_line("") is None
    assert first_line(None) is None


def test_strip_markup():
    assert strip_markup("<p>Printer <b>on fire</b></p>") == "Printer on fire"
    assert strip_markup("<at>Essembi</at> help") == "Essembi help"
    assert strip_markup(None) == ""


def test_strip_markup_keeps_line_structure():
    assert strip_markup("<div>Printer jam<br>Floor 3</div>") == "Printer jam\nFloor 3"
    assert strip_markup("<p>one</p><p>two</p>") == "one\ntwo"
