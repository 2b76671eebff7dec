"""Pure prompt assembly: ranked context, role-labeled history, and the user query."""

from __future__ import annotations

from newsrelay.models.schemas import PromptSpec, SearchMatch, Turn

NO_CONTEXT_MARKER = "No relevant news articles found."

PASSAGE_SEPARATOR = "\n\n"

NEWS_ANALYST_INSTRUCTION = """\
You are an AI-powered news analyst and reporter. Your job is to deliver crisp, \
well-contextualized, and fact-based reports in response to user questions, with clarity, \
precision, and adaptability to the topic and tone of the query.

Your outputs should:
- Lead with the key insight or headline. Prioritize what matters most.
- Support it with relevant, factual, and timely detail drawn from the provided context.
- Adapt tone and format to the topic and to how the user frames the question.
- Avoid fluff, hype, or speculation. No opinions, just clear reporting with intelligent framing.

If the question involves a very recent event, summarize the latest developments and add \
any necessary background. If the context has no recent news on the topic, say so briefly \
and add relevant synthesis from general knowledge. If the topic is clearly unrelated to \
news, reply: "I'm a news-focused AI. Please ask about current events, recent developments, \
or major topics in the news."

Format: at most 2-3 concise paragraphs in a neutral, context-aware tone."""


def rank_passages(matches: list[SearchMatch]) -> list[SearchMatch]:
    """Order matches by descending similarity score; ties keep index order."""
    return sorted(matches, key=lambda match: match.score, reverse=True)


def build_context(matches: list[SearchMatch], max_chars: int) -> str:
    """Join ranked passage texts, dropping the lowest-ranked first to fit `max_chars`."""
    texts = [match.text.strip() for match in rank_passages(matches)]
    texts = [text for text in texts if text]
    if not texts:
        return NO_CONTEXT_MARKER

    selected: list[str] = []
    used = 0
    for text in texts:
        extra = len(text) + (len(PASSAGE_SEPARATOR) if selected else 0)
        if used + extra > max_chars:
            break
        selected.append(text)
        used += extra

    if not selected:
        # The top passage alone is over budget.
        return texts[0][:max_chars]
    return PASSAGE_SEPARATOR.join(selected)


def render_history(turns: list[Turn]) -> str:
    lines: list[str] = []
    for turn in turns:
        lines.append(f"user: {turn.user}")
        lines.append(f"assistant: {turn.bot}")
    return "\n".join(lines)


def compose_prompt(
    query: str,
    context: str,
    history: list[Turn],
    system_instruction: str = NEWS_ANALYST_INSTRUCTION,
) -> PromptSpec:
    return PromptSpec(
        system_instruction=system_instruction,
        context=context,
        history=render_history(history),
        query=query,
    )


def render_prompt_body(prompt: PromptSpec) -> str:
    """Text sent as the user content; the system instruction travels separately."""
    history = prompt.history or "(no previous messages)"
    return (
        f"Context:\n{prompt.context}\n\n"
        f"Chat History:\n{history}\n\n"
        f"User Question:\n{prompt.query}\n\n"
        "Answer:"
    )
