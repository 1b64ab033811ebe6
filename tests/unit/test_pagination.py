from field_dispatch.core.pagination import Page, decode_cursor, encode_cursor, next_cursor, paginate


def test_cursor_decodes_offset():
    assert decode_cursor(encode_cursor(123)) == 123


def test_garbage_cursor_starts_from_beginning():
    assert decode_cursor("%%%not-base64") == 0
    assert decode_cursor(None) == 0


def test_paginate_bounds():
    page = paginate(limit=1000, cursor=None, default_limit=20, max_limit=50)
    assert page.limit == 50
    assert page.offset == 0


def test_next_cursor_only_when_extra_row_fetched():
    page = Page(limit=10, offset=20)
    assert next_cursor(page, 10) is None
    assert decode_cursor(next_cursor(page, 11)) == 30
