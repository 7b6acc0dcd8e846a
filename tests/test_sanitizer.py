from catalog.utils import sanitize_input


def test_sanitize_removes_script_tags():
    s = "<script>alert(1)</script>Bob"
    out = sanitize_input(s)
    assert "script" not in out.lower()
    assert "bob" in out.lower()


def test_sanitize_keeps_ampersand_and_trims():
    assert sanitize_input("  Tom & Jerry \x00 ") == "Tom & Jerry"


def test_sanitize_none_is_empty():
    assert sanitize_input(None) == ""
