import pytest

from podstudio.core.tabular import (
    ColumnLayout,
    is_absolute_url,
    map_rows,
    parse_delimited,
    tokenize_line,
)


def _row(name="", brief="", prompt="", refs=()):
    row = [""] * 20
    row[0] = name
    row[1] = brief
    row[11] = prompt
    for offset, url in enumerate(refs):
        row[15 + offset] = url
    return ",".join(row)


def test_quoted_field_keeps_delimiter():
    assert parse_delimited('Name,"a, b",url') == [["Name", "a, b", "url"]]


def test_single_quotes_and_whitespace_are_trimmed():
    assert tokenize_line("  one , 'two, three' ,four  ") == ["one", "two, three", "four"]


def test_quote_inside_unquoted_field_is_literal():
    assert tokenize_line('5" tall,it"s fine') == ['5" tall', 'it"s fine']


def test_quote_that_does_not_wrap_the_field_is_literal():
    assert tokenize_line('"ab"cd,e') == ['"ab"cd', "e"]


def test_empty_fields_are_kept_in_position():
    assert tokenize_line("a,,c") == ["a", "", "c"]


def test_blank_lines_are_skipped_and_crlf_supported():
    text = "h1,h2\r\n\r\n   \nx,y\r\n"
    assert parse_delimited(text) == [["h1", "h2"], ["x", "y"]]


def test_header_is_discarded_and_nameless_rows_skipped():
    text = "\n".join(["Name,Brief", "First,one", ",orphan brief", "Second,two"])
    jobs = map_rows(parse_delimited(text))
    assert [job.name for job in jobs] == ["First", "Second"]


def test_prompt_prefers_column_l_then_column_b():
    text = "\n".join(
        [
            _row("header"),
            _row("A", brief="brief a", prompt="custom a"),
            _row("B", brief="brief b"),
            _row("C"),
        ]
    )
    jobs = map_rows(parse_delimited(text))
    assert [job.custom_prompt for job in jobs] == ["custom a", "brief b", None]


def test_short_rows_yield_five_empty_slots():
    jobs = map_rows([["header"], ["Only a name"]])
    assert len(jobs) == 1
    assert jobs[0].reference_urls == [None, None, None, None, None]


def test_reference_slots_keep_column_positions():
    text = "\n".join(
        [
            _row("header"),
            _row("A", refs=("", "https://cdn.example.com/2.png", "not a url", "ftp://x/y.png", "http://e.com/5.jpg")),
        ]
    )
    (job,) = map_rows(parse_delimited(text))
    assert job.reference_urls == [
        None,
        "https://cdn.example.com/2.png",
        None,
        None,
        "http://e.com/5.jpg",
    ]


def test_layout_is_injectable():
    layout = ColumnLayout(name=1, prompt=2, prompt_fallback=3, references=(4, 5, 6, 7, 8))
    rows = [["h"] * 9, ["ignored", "Job", "", "fallback", "https://a.com/1.png", "", "", "", ""]]
    (job,) = map_rows(rows, layout)
    assert job.name == "Job"
    assert job.custom_prompt == "fallback"
    assert job.reference_urls[0] == "https://a.com/1.png"


def test_layout_requires_five_reference_columns():
    with pytest.raises(ValueError):
        ColumnLayout(references=(15, 16))


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("https://example.com/a.png", True),
        ("http://example.com", True),
        ("example.com/a.png", False),
        ("https://", False),
        ("mailto:someone@example.com", False),
        ("", False),
        ("http://[oops", False),
    ],
)
def test_absolute_url_detection(value, expected):
    assert is_absolute_url(value) is expected


def test_malformed_url_leaves_slot_empty_and_keeps_other_jobs():
    text = "\n".join(
        [
            _row("header"),
            _row("Job A", refs=("http://[oops", "https://cdn.example.com/2.png")),
            _row("Job B"),
        ]
    )
    jobs = map_rows(parse_delimited(text))
    assert [job.name for job in jobs] == ["Job A", "Job B"]
    assert jobs[0].reference_urls[:2] == [None, "https://cdn.example.com/2.png"]
