import json

from reconforge.toolkit.httpx_parser import is_parse_error, parse_jsonl, render_text


def test_record_count_matches_non_empty_lines():
    lines = [
        json.dumps({"url": "https://a.example.test", "status_code": 200, "title": "A"}),
        "not json at all",
        "",
        json.dumps({"url": "https://b.example.test", "status_code": 404}),
        "[1, 2, 3]",
        "{\"truncated\": ",
    ]
    records = parse_jsonl("\n".join(lines) + "\n")

    assert len(records) == 5
    assert [is_parse_error(r) for r in records] == [False, True, False, True, True]
    assert records[1]["raw"] == "not json at all"
    assert records[4]["raw"] == "{\"truncated\": "


def test_empty_output_yields_no_records():
    assert parse_jsonl("") == []
    assert parse_jsonl("\n\n") == []


def test_crlf_lines_keep_clean_raw_text():
    records = parse_jsonl("garbage\r\n")
    assert records == [{"_parseError": True, "raw": "garbage"}]


def test_render_text():
    records = [
        {"url": "https://a.example.test", "status_code": 200, "title": "Home", "content_length": 12, "ip": "10.0.0.1"},
        {"input": "b.example.test", "host": "10.0.0.2"},
        {"_parseError": True, "raw": "oops"},
    ]

    text = render_text(records)

    assert "url: https://a.example.test\nstatus: 200\ntitle: Home\ncontent_length: 12\nip: 10.0.0.1\n---" in text
    assert "url: b.example.test" in text
    assert "ip: 10.0.0.2" in text
    assert text.endswith("PARSE_ERROR: oops")
