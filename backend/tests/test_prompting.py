from newsrelay.models.schemas import SearchMatch, Turn
from newsrelay.services.prompting import (
    NO_CONTEXT_MARKER,
    build_context,
    compose_prompt,
    render_history,
    render_prompt_body,
)


def _match(text: str, score: float) -> SearchMatch:
    return SearchMatch(id=text, score=score, payload={"maintext": text})


def test_context_orders_passages_by_score():
    matches = [_match("low", 0.2), _match("high", 0.9), _match("mid", 0.5)]

    assert build_context(matches, max_chars=1000) == "high\n\nmid\n\nlow"


def test_context_drops_lowest_ranked_first():
    matches = [_match("a" * 10, 0.9), _match("b" * 10, 0.8), _match("c" * 10, 0.1)]

    context = build_context(matches, max_chars=25)

    assert context == "a" * 10 + "\n\n" + "b" * 10


def test_overlong_top_passage_is_cut():
    context = build_context([_match("x" * 50, 0.9)], max_chars=20)

    assert context == "x" * 20


def test_empty_or_textless_matches_yield_marker():
    assert build_context([], max_chars=100) == NO_CONTEXT_MARKER
    assert build_context([SearchMatch(score=0.5, payload={})], max_chars=100) == NO_CONTEXT_MARKER


def test_payload_text_field_is_fallback():
    match = SearchMatch(score=0.5, payload={"text": "from ingestion"})

    assert build_context([match], max_chars=100) == "from ingestion"


def test_history_is_role_labeled_in_order():
    turns = [Turn(user="q1", bot="a1"), Turn(user="q2", bot="a2")]

    assert render_history(turns) == "user: q1\nassistant: a1\nuser: q2\nassistant: a2"


def test_prompt_body_contains_all_sections():
    prompt = compose_prompt("What now?", "Ceasefire talks resumed.", [Turn(user="hi", bot="hello")])
    body = render_prompt_body(prompt)

    assert "Context:\nCeasefire talks resumed." in body
    assert "user: hi\nassistant: hello" in body
    assert body.index("Chat History") < body.index("User Question:\nWhat now?")
    assert prompt.system_instruction.startswith("You are an AI-powered news analyst")


def test_prompt_body_without_history():
    body = render_prompt_body(compose_prompt("q", NO_CONTEXT_MARKER, []))

    assert "(no previous messages)" in body
