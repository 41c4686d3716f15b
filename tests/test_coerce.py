from src.relife.coerce import try_parse_json

def test_strict_parse_object():
    r = try_parse_json('{"text": "ok", "routes": []}')
    assert r.ok
    assert r.value == {"text": "ok", "routes": []}
    assert r.error is None

def test_not_json_is_an_error_value_not_an_exception():
    r = try_parse_json("not json")
    assert not r.ok
    assert r.value is None
    assert "json parse failed" in r.error

def test_empty_and_none():
    assert try_parse_json(None).error == "empty text"
    assert try_parse_json("   ").error == "empty text"

def test_strict_mode_rejects_code_fence():
    assert not try_parse_json('```json\n{"a": 1}\n```').ok

def test_lenient_mode_strips_code_fence():
    r = try_parse_json('```json\n{"a": 1}\n```', lenient=True)
    assert r.ok
    assert r.value == {"a": 1}

def test_lenient_mode_slices_braces():
    r = try_parse_json('Here you go: {"a": [1, 2]} hope it helps', lenient=True)
    assert r.value == {"a": [1, 2]}

def test_lenient_mode_still_fails_without_object():
    r = try_parse_json("no braces at all", lenient=True)
    assert not r.ok
    assert r.error == "no JSON object found in text"

def test_non_object_json_is_still_parsed():
    r = try_parse_json("[1, 2, 3]")
    assert r.ok
    assert r.value == [1, 2, 3]
