"""Terminal category picker (prompt_toolkit-based).

Kept apart from the review command so it can be driven with pipe input in
tests. The prompt is pre-filled with the current category; Enter accepts it,
Tab or Enter completes a typed prefix, Down opens the completion menu and Esc
ends the review.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggest, Suggestion
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.styles import Style
from prompt_toolkit.validation import ValidationError, Validator

from .transactions import Transaction


class _PrefixSuggest(AutoSuggest):
    def __init__(self, vocab: Sequence[str]) -> None:
        self._vocab = list(vocab)

    def get_suggestion(self, buffer, document):
        match = best_prefix_match(self._vocab, document.text)
        if match is None:
            return None
        return Suggestion(match[len(document.text) :])


def best_prefix_match(vocab: Iterable[str], text: str) -> str | None:
    """Return the first entry ``text`` is a strict, case-insensitive prefix of."""

    if not text:
        return None
    lower = text.lower()
    for w in vocab:
        wl = w.lower()
        if wl == lower:
            return None
        if wl.startswith(lower):
            return w
    return None


class _KnownCategory(Validator):
    def __init__(self, known: Iterable[str]) -> None:
        self._known = {k.lower() for k in known}

    def validate(self, document) -> None:
        if document.text.strip().lower() not in self._known:
            raise ValidationError(message="Pick a category from the list (Esc to stop)")


def select_category(
    categories: Sequence[str] | Iterable[str],
    *,
    default: str,
    message: str = "Category (Enter to accept • Esc to stop): ",
    session: PromptSession | None = None,
) -> str | None:
    """Prompt for one of ``categories``; returns ``None`` when Esc is pressed."""

    words = list(categories)
    canonical = {w.lower(): w for w in words}

    kb = KeyBindings()

    @kb.add("escape", eager=True)
    def _(event) -> None:  # pragma: no cover - exercised via pipe input
        event.app.exit(result=None)

    @kb.add("down", eager=True)
    def _(event) -> None:  # pragma: no cover - integration path
        b = event.app.current_buffer
        if b.complete_state is None:
            b.start_completion(select_first=True)
        else:
            b.complete_next()

    @kb.add("tab", eager=True)
    def _(event) -> None:  # pragma: no cover - exercised via pipe input
        b = event.app.current_buffer
        cand = best_prefix_match(words, b.document.text)
        if cand:
            b.insert_text(cand[len(b.document.text) :])
        elif b.complete_state is None:
            b.start_completion(select_first=True)
        else:
            b.complete_next()

    @kb.add("enter", eager=True)
    def _(event) -> None:  # pragma: no cover - exercised via pipe input
        b = event.app.current_buffer
        cs = b.complete_state
        if cs is not None and cs.current_completion is not None:
            b.apply_completion(cs.current_completion)
        else:
            # Suggestions render asynchronously; recompute so headless input
            # behaves like an interactive terminal.
            cand = best_prefix_match(words, b.document.text)
            if cand:
                b.insert_text(cand[len(b.document.text) :])
        b.validate_and_handle()

    if session is None:
        sess: PromptSession = PromptSession(key_bindings=kb)
    else:
        sess = PromptSession(
            input=getattr(session, "input", None),
            output=getattr(session, "output", None),
            key_bindings=kb,
        )

    result = sess.prompt(
        message,
        default=default,
        completer=WordCompleter(words, ignore_case=True, match_middle=True, sentence=False),
        auto_suggest=_PrefixSuggest(words),
        validator=_KnownCategory(words),
        validate_while_typing=False,
        style=Style.from_dict({"auto-suggestion": "fg:#888888"}),
    )
    if result is None:
        return None
    return canonical.get(result.strip().lower(), result.strip())


def format_transaction_line(tx: Transaction) -> str:
    """One-line summary shown above the picker."""

    return f"{tx.date}  {tx.amount:>10.2f}  {tx.description[:60]:<60}  [{tx.category}]"


__all__ = ["best_prefix_match", "format_transaction_line", "select_category"]
