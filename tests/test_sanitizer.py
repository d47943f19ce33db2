from olms.utils import sanitize_input


def test_sanitize_removes_script_tags():
    s = "<script>alert(1)</script>Bob"
    out = sanitize_input(s)
    assert "script" not in out.lower()
    assert "bob" in out.lower()


def test_sanitize_strips_allow_listed_tags_too():
    assert sanitize_input("Use <b>18k</b> <a href='x'>gold</a>") == "Use 18k gold"


def test_sanitize_keeps_punctuation_verbatim():
    for text in ("Smith & Sons; est. 1990 -- Ltd", "Use 2 < 3 prongs; R&D ok", "a > b"):
        assert sanitize_input(text) == text


def test_sanitize_none_is_empty():
    assert sanitize_input(None) == ""
