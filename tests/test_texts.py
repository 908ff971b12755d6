from texts_ui import contact_link, escape_md


def test_escape_md_covers_legacy_markdown_specials():
    assert escape_md("a_b*c`d[e") == "a\\_b\\*c\\`d\\[e"
    assert escape_md(None) == ""


def test_contact_link_prefers_username():
    assert contact_link({"user_id": 5, "username": "dana_x", "name": "Dana"}) == "@dana\\_x"


def test_contact_link_label_cannot_close_early():
    link = contact_link({"user_id": 5, "name": "Dana [admin]"})
    assert link == "[Dana (admin)](tg://user?id=5)"
