import pytest

from docs_mcp.src.services.text import normalize_text


def test_empty_body() -> None:
    assert normalize_text("") == ""
    assert normalize_text(None) == ""


def test_strips_fences_tags_and_inline_code() -> None:
    body = (
        "# Title\n\n"
        "Some **bold** text with `inline()` code.\n\n"
        "```ts\nconst secret = 1;\n```\n\n"
        '<Callout type="info">Careful</Callout>\n'
        "- [link](/docs/x)!\n"
    )

    text = normalize_text(body)

    assert "secret" not in text
    assert "inline" not in text
    assert "Callout" not in text
    assert text == "Title Some bold text with code. Careful link /docs/x"


def test_collapses_whitespace() -> None:
    assert normalize_text("  a\n\n\tb   c  ") == "a b c"


@pytest.mark.parametrize(
    "body",
    [
        "plain words only",
        "# Heading\n\n> quote with `code` and <b>tag</b>",
        "unbalanced ``` fence and a stray ` tick",
        "arrows -> and > < brackets",
    ],
)
def test_is_idempotent(body: str) -> None:
    once = normalize_text(body)

    assert normalize_text(once) == once
