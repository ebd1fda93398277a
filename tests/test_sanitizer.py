import random

from core.sanitizer import sanitize


def test_strips_color_codes():
    assert sanitize("\x1B[32mactive\x1B[0m") == "active"


def test_strips_cursor_and_osc_sequences():
    raw = "\x1b[2K\x1b[1Galice\x1b]0;title\x07 ok\x1b[?25h"
    assert sanitize(raw) == "alice ok"


def test_normalises_line_endings():
    assert sanitize("a\r\nb\rc\n") == "a\nb\nc\n"


def test_removes_control_characters_but_keeps_newlines():
    assert sanitize("a\x00b\x07c\x7f\x85d\ne") == "abcd\ne"


def test_tabs_become_spaces_unless_kept():
    assert sanitize("a\tb") == "a b"
    assert sanitize("a\tb", keep_tabs=True) == "a\tb"


def test_empty_input():
    assert sanitize("") == ""
    assert sanitize(None) == ""


def test_clean_text_is_unchanged():
    text = "Name   Remote IP\nalice  1.2.3.4:1194\n"
    assert sanitize(text) == text


def test_idempotent_on_random_input():
    rng = random.Random(42)
    pool = ["\x1b", "[", "]", "0", "3", "2", "m", ";", "\r", "\n", "\t", "\x07", "\x9b", "a", "Z", " ", "\\", "\x00", "é"]
    for _ in range(3000):
        raw = "".join(rng.choice(pool) for _ in range(rng.randint(0, 30)))
        once = sanitize(raw)
        assert sanitize(once) == once, repr(raw)
        tabbed = sanitize(raw, keep_tabs=True)
        assert sanitize(tabbed, keep_tabs=True) == tabbed, repr(raw)
