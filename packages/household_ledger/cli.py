# ruff: noqa: I001
"""CLI for the ``household_ledger`` package.

This module exposes callable command handlers (``cmd_import_statement``,
``cmd_correct`` ...) and a Typer-based console interface. Environment
variables (notably ``DATABASE_URL``) are loaded from a local ``.env`` using
``python-dotenv`` before delegating to command logic. Business logic lives in
``household_ledger.api`` and related modules.

Handlers print ``Error: ...`` to stderr and return ``1`` on failure; the Typer
wrappers turn the return value into the process exit code.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from prompt_toolkit import PromptSession
from typer.models import OptionInfo

from db.client import session_scope
from .config import Settings, load_settings
from .context import CategorizationContext
from .logging_setup import configure_logging
from .rules import InMemoryRuleStore, SqlRuleStore


# ---- Small module-level helpers used by CLI commands -------------------------


def _settings(database_url: str | None) -> Settings:
    settings = load_settings()
    if database_url:
        settings = settings.model_copy(update={"database_url": database_url})
    return settings


def _db_context(settings: Settings) -> CategorizationContext:
    """Context backed by the SQL rule store and the stored taxonomy."""

    from .persistence import load_categories

    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is not set; pass --database-url or set it in .env")
    with session_scope(database_url=settings.database_url) as session:
        categories = load_categories(session)
    return CategorizationContext(
        SqlRuleStore(database_url=settings.database_url),
        categories=categories,
        settings=settings,
    )


# ---- Command handlers ---------------------------------------------------------


def cmd_import_statement(
    file: str,
    *,
    persist: bool = False,
    database_url: str | None = None,
) -> int:
    """Import a statement and print one line per transaction.

    Output lines are ``"<id>\\t<date>\\t<amount>\\t<category>\\t<description>"``.
    Row-level parse errors go to stderr as warnings; the import still
    succeeds when at least one row was read. With ``persist`` the batch and
    its transactions are written to the database and learned rules are read
    from it.
    """

    from .api import import_statement
    from .ingest.workbook import StatementReadError, UnsupportedStatementError

    settings = _settings(database_url)
    try:
        if persist:
            context = _db_context(settings)
        else:
            context = CategorizationContext(InMemoryRuleStore(), settings=settings)
    except Exception as e:
        print(f"Error: failed to load categorization context: {e}", file=sys.stderr)
        return 1

    try:
        outcome = import_statement(file, context)
    except FileNotFoundError:
        print(f"Error: File not found: {file}", file=sys.stderr)
        return 1
    except PermissionError:
        print(f"Error: Permission denied: {file}", file=sys.stderr)
        return 1
    except (UnsupportedStatementError, StatementReadError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for message in outcome.batch.errors:
        print(f"Warning: {message}", file=sys.stderr)
    if outcome.batch.status == "error":
        print(f"Error: no transactions imported from {file}", file=sys.stderr)
        return 1

    if persist:
        try:
            from .persistence import save_import

            with session_scope(database_url=settings.database_url) as session:
                save_import(session, outcome.batch, outcome.transactions)
        except Exception as e:
            print(f"Error: persistence failed: {e}", file=sys.stderr)
            return 1

    for tx in outcome.transactions:
        print(f"{tx.id}\t{tx.date}\t{tx.amount}\t{tx.category}\t{tx.description}")
    print(
        f"Imported {outcome.batch.transaction_count} transaction(s) "
        f"({outcome.batch.period_start} to {outcome.batch.period_end}); "
        f"import id {outcome.batch.id}"
    )
    return 0


def cmd_correct(transaction_id: str, category: str, *, database_url: str | None = None) -> int:
    """Change one stored transaction's category and learn from it."""

    from .api import correct_category
    from .categories import normalize_code
    from .persistence import get_transaction, update_transactions

    settings = _settings(database_url)
    try:
        context = _db_context(settings)
    except Exception as e:
        print(f"Error: failed to load categorization context: {e}", file=sys.stderr)
        return 1

    code = normalize_code(category)
    if code not in context.categories:
        print(f"Error: Unknown category: {category}", file=sys.stderr)
        return 1

    try:
        with session_scope(database_url=settings.database_url) as session:
            tx = get_transaction(session, transaction_id)
        if tx is None:
            print(f"Error: Transaction not found: {transaction_id}", file=sys.stderr)
            return 1
        updated = correct_category(context, tx, code)
        with session_scope(database_url=settings.database_url) as session:
            update_transactions(session, [updated])
    except Exception as e:
        print(f"Error: correction failed: {e}", file=sys.stderr)
        return 1

    print(f"{updated.id}\t{tx.category} -> {updated.category}")
    return 0


def cmd_review(
    import_id: str,
    *,
    database_url: str | None = None,
    session: PromptSession | None = None,
) -> int:
    """Walk through an import's transactions and correct categories interactively.

    Esc stops the review; corrections made so far are saved.
    """

    from .api import correct_category
    from .persistence import list_transactions, update_transactions
    from .term_ui import format_transaction_line, select_category

    settings = _settings(database_url)
    try:
        context = _db_context(settings)
        with session_scope(database_url=settings.database_url) as s:
            transactions = list_transactions(s, import_id=import_id)
    except Exception as e:
        print(f"Error: failed to load import {import_id}: {e}", file=sys.stderr)
        return 1
    if not transactions:
        print(f"Error: No transactions for import: {import_id}", file=sys.stderr)
        return 1

    codes = list(context.categories)
    changed = []
    for tx in transactions:
        print(format_transaction_line(tx))
        choice = select_category(codes, default=tx.category, session=session)
        if choice is None:
            break
        if choice != tx.category:
            changed.append(correct_category(context, tx, choice))

    if changed:
        try:
            with session_scope(database_url=settings.database_url) as s:
                update_transactions(s, changed)
        except Exception as e:
            print(f"Error: failed to save corrections: {e}", file=sys.stderr)
            return 1
    print(f"Saved {len(changed)} correction(s)")
    return 0


def cmd_recategorize(*, database_url: str | None = None, import_id: str | None = None) -> int:
    """Re-run categorization on stored transactions that were not edited by hand."""

    from .persistence import list_transactions, update_transactions
    from .transactions import recategorize_transactions

    settings = _settings(database_url)
    try:
        context = _db_context(settings)
        with session_scope(database_url=settings.database_url) as session:
            transactions = list_transactions(session, import_id=import_id)
            updated, changed = recategorize_transactions(context, transactions)
            update_transactions(session, updated)
    except Exception as e:
        print(f"Error: recategorization failed: {e}", file=sys.stderr)
        return 1
    print(f"Recategorized {changed} of {len(updated)} transaction(s)")
    return 0


def cmd_learn_all(*, database_url: str | None = None) -> int:
    """Learn from every manual correction, then apply learned rules."""

    from .learning import learn_from_all_corrections
    from .persistence import list_transactions, update_transactions

    settings = _settings(database_url)
    try:
        context = _db_context(settings)
        with session_scope(database_url=settings.database_url) as session:
            transactions = list_transactions(session)
        result = learn_from_all_corrections(context, transactions)
        with session_scope(database_url=settings.database_url) as session:
            update_transactions(session, result.transactions)
    except Exception as e:
        print(f"Error: learning failed: {e}", file=sys.stderr)
        return 1
    print(
        f"Created {result.rules_created} rule(s); "
        f"updated {result.transactions_updated} transaction(s)"
    )
    return 0


def cmd_rules_list(*, database_url: str | None = None) -> int:
    from .learning import list_learned_rules

    try:
        context = _db_context(_settings(database_url))
        rules = list_learned_rules(context)
    except Exception as e:
        print(f"Error: failed to list rules: {e}", file=sys.stderr)
        return 1
    for r in rules:
        state = "on" if r.is_active else "off"
        print(f"{r.id}\t{state}\t{r.priority}\t{r.hits}\t{r.category_id}\t{r.pattern}")
    return 0


def cmd_rules_set_active(rule_id: str, active: bool, *, database_url: str | None = None) -> int:
    from .learning import set_rule_active

    try:
        context = _db_context(_settings(database_url))
        rule = set_rule_active(context, rule_id, active)
    except Exception as e:
        print(f"Error: failed to update rule: {e}", file=sys.stderr)
        return 1
    if rule is None:
        print(f"Error: Rule not found: {rule_id}", file=sys.stderr)
        return 1
    print(f"Rule {rule_id} {'enabled' if active else 'disabled'}")
    return 0


def cmd_rules_delete(rule_id: str, *, database_url: str | None = None) -> int:
    from .learning import delete_rule

    try:
        context = _db_context(_settings(database_url))
        deleted = delete_rule(context, rule_id)
    except Exception as e:
        print(f"Error: failed to delete rule: {e}", file=sys.stderr)
        return 1
    if not deleted:
        print(f"Error: Rule not found: {rule_id}", file=sys.stderr)
        return 1
    print(f"Rule {rule_id} deleted")
    return 0


def cmd_rules_clear(*, database_url: str | None = None) -> int:
    from .learning import clear_all_rules

    try:
        context = _db_context(_settings(database_url))
        n = clear_all_rules(context)
    except Exception as e:
        print(f"Error: failed to clear rules: {e}", file=sys.stderr)
        return 1
    print(f"Deleted {n} rule(s)")
    return 0


def cmd_seed_categories(*, database_url: str | None = None) -> int:
    from .persistence import seed_default_categories

    settings = _settings(database_url)
    if not settings.database_url:
        print("Error: DATABASE_URL is not set in the environment.", file=sys.stderr)
        return 1
    try:
        with session_scope(database_url=settings.database_url) as session:
            n = seed_default_categories(session)
    except Exception as e:
        print(f"Error: seeding categories failed: {e}", file=sys.stderr)
        return 1
    print(f"Inserted {n} categor{'y' if n == 1 else 'ies'}")
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import bank statements, categorize transactions and learn from corrections. "
        "Loads DATABASE_URL from a local .env before running."
    ),
)
rules_app = typer.Typer(no_args_is_help=True, help="Manage learned categorization rules.")
app.add_typer(rules_app, name="rules")

# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults). Typer inspects them when used as default values below.
FILE_OPTION: OptionInfo = typer.Option(
    ...,
    "--file",
    help="Path to a bank statement (.xlsx, .xlsm or .csv)",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files
)
DATABASE_URL_OPTION: OptionInfo = typer.Option(
    None, "--database-url", help="Override DATABASE_URL (falls back to env var)."
)


@app.command("import-statement")
def import_statement_cmd(
    file: Annotated[Path, FILE_OPTION],
    *,
    persist: bool = typer.Option(False, help="Persist the import batch and transactions."),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Parse, categorize and print a statement; optionally persist it."""

    raise typer.Exit(cmd_import_statement(str(file), persist=persist, database_url=database_url))


@app.command("correct")
def correct_cmd(
    transaction_id: str = typer.Option(..., "--transaction-id", help="Transaction id"),
    category: str = typer.Option(..., "--category", help="New category code"),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Correct a transaction's category and learn a rule from it."""

    raise typer.Exit(cmd_correct(transaction_id, category, database_url=database_url))


@app.command("review")
def review_cmd(
    import_id: str = typer.Option(..., "--import-id", help="Import batch id"),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Review an import's categories interactively."""

    raise typer.Exit(cmd_review(import_id, database_url=database_url))


@app.command("recategorize")
def recategorize_cmd(
    import_id: str | None = typer.Option(None, "--import-id", help="Limit to one import"),
    database_url: str | None = DATABASE_URL_OPTION,
) -> None:
    """Re-run categorization on transactions not edited by hand."""

    raise typer.Exit(cmd_recategorize(database_url=database_url, import_id=import_id))


@app.command("learn-all")
def learn_all_cmd(database_url: str | None = DATABASE_URL_OPTION) -> None:
    """Learn from all manual corrections and apply the learned rules."""

    raise typer.Exit(cmd_learn_all(database_url=database_url))


@app.command("seed-categories")
def seed_categories_cmd(database_url: str | None = DATABASE_URL_OPTION) -> None:
    """Insert the default category taxonomy."""

    raise typer.Exit(cmd_seed_categories(database_url=database_url))


@rules_app.command("list")
def rules_list_cmd(database_url: str | None = DATABASE_URL_OPTION) -> None:
    raise typer.Exit(cmd_rules_list(database_url=database_url))


@rules_app.command("enable")
def rules_enable_cmd(
    rule_id: str, database_url: str | None = DATABASE_URL_OPTION
) -> None:
    raise typer.Exit(cmd_rules_set_active(rule_id, True, database_url=database_url))


@rules_app.command("disable")
def rules_disable_cmd(
    rule_id: str, database_url: str | None = DATABASE_URL_OPTION
) -> None:
    raise typer.Exit(cmd_rules_set_active(rule_id, False, database_url=database_url))


@rules_app.command("delete")
def rules_delete_cmd(
    rule_id: str, database_url: str | None = DATABASE_URL_OPTION
) -> None:
    raise typer.Exit(cmd_rules_delete(rule_id, database_url=database_url))


@rules_app.command("clear")
def rules_clear_cmd(database_url: str | None = DATABASE_URL_OPTION) -> None:
    """Delete every learned rule."""

    raise typer.Exit(cmd_rules_clear(database_url=database_url))


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()


if __name__ == "__main__":  # pragma: no cover - exercised via console script
    # Running as a module: `python -m household_ledger.cli`
    app()
