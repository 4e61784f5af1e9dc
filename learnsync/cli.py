"""
Command-line interface for learnsync.

Usage:
    learnsync sync                      # pull everything, push pending changes
    learnsync watch                     # keep pushing in the background
    learnsync add "Haus" "house" --tags "nouns, a1"
    learnsync next [--tag nouns]
    learnsync answer QUESTION_ID "house"
    learnsync game [--tag nouns]
    learnsync progress [--tag nouns]
    learnsync tags
    learnsync delete QUESTION_ID
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from typing import Optional, Sequence

from pydantic import ValidationError

from learnsync.config import Settings
from learnsync.context import AppContext
from learnsync.errors import LearnSyncError
from learnsync.progress import build_progress_report, list_tags
from learnsync.schemas import Question
from learnsync.selection import build_game_batch, next_revision_question


def _format_question(question: Question) -> str:
    tags = f" [{', '.join(question.tags)}]" if question.tags else ""
    return f"{question.id}  {question.prompt}  (score {question.score:.1f}){tags}"


async def _push_pending(ctx: AppContext) -> None:
    report = await ctx.coordinator.background_sync()
    if not report.ok:
        print("Changes saved locally; remote sync will retry later.")


# ---- Commands ----

async def cmd_sync(ctx: AppContext, args: argparse.Namespace) -> int:
    pulled = await ctx.start_session(background=False)
    report = await ctx.coordinator.background_sync()
    print(f"Pull: {'ok' if pulled else 'failed'}")
    print(f"Pushed {report.questions_pushed} questions, {report.attempts_pushed} attempts")
    return 0 if pulled and report.ok else 1


async def cmd_watch(ctx: AppContext, args: argparse.Namespace) -> int:
    await ctx.start_session(background=True)
    print(f"Syncing every {ctx.background.interval:.0f}s. Press Ctrl+C to stop.")
    await asyncio.Event().wait()
    return 0


async def cmd_add(ctx: AppContext, args: argparse.Namespace) -> int:
    question = await ctx.coordinator.create_question(
        prompt=args.prompt,
        answer=args.answer,
        description=args.description,
        tags=args.tags,
    )
    print(f"Added {_format_question(question)}")
    return 0


async def cmd_next(ctx: AppContext, args: argparse.Namespace) -> int:
    question = await next_revision_question(ctx.replica, tag=args.tag)
    if question is None:
        print("All caught up - nothing to review.")
        return 0
    print(_format_question(question))
    if question.description:
        print(f"  hint: {question.description}")
    return 0


async def cmd_answer(ctx: AppContext, args: argparse.Namespace) -> int:
    result = await ctx.coordinator.submit_answer(args.question_id, args.answer)
    if result.correct:
        print(f"Correct! New score: {result.new_score:.1f}")
    else:
        print(f"Incorrect. Correct answer: {result.correct_answer} (score {result.new_score:.1f})")
    await _push_pending(ctx)
    return 0


async def cmd_game(ctx: AppContext, args: argparse.Namespace) -> int:
    batch = await build_game_batch(ctx.replica, tag=args.tag)
    if not batch:
        print("Nothing to play - add some questions first.")
        return 0
    for position, question in enumerate(batch, start=1):
        print(f"{position:2d}. {_format_question(question)}")
    return 0


async def cmd_progress(ctx: AppContext, args: argparse.Namespace) -> int:
    report = await build_progress_report(ctx.replica, tag=args.tag)
    print(f"Questions: {report.total}")
    print(f"Learned:   {report.learned}")
    print(f"Difficult: {report.difficult}")
    print(f"Progress:  {report.progress_percent}%")
    return 0


async def cmd_tags(ctx: AppContext, args: argparse.Namespace) -> int:
    for tag in await list_tags(ctx.replica):
        print(tag)
    return 0


async def cmd_delete(ctx: AppContext, args: argparse.Namespace) -> int:
    remote_ok = await ctx.coordinator.delete_question(args.question_id)
    print("Deleted." if remote_ok else "Deleted locally; remote delete failed.")
    return 0


COMMANDS = {
    "sync": cmd_sync,
    "watch": cmd_watch,
    "add": cmd_add,
    "next": cmd_next,
    "answer": cmd_answer,
    "game": cmd_game,
    "progress": cmd_progress,
    "tags": cmd_tags,
    "delete": cmd_delete,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="learnsync", description="Offline-first flashcards")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("sync", help="Pull all questions and push pending changes")
    subparsers.add_parser("watch", help="Run the background sync loop")

    add = subparsers.add_parser("add", help="Add a question")
    add.add_argument("prompt")
    add.add_argument("answer")
    add.add_argument("--description", default=None)
    add.add_argument("--tags", default="", help="Comma-separated tags")

    answer = subparsers.add_parser("answer", help="Answer a question")
    answer.add_argument("question_id")
    answer.add_argument("answer")

    for name, help_text in (
        ("next", "Show the next revision question"),
        ("game", "Build a game batch"),
        ("progress", "Show learning progress"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("--tag", default=None)

    subparsers.add_parser("tags", help="List tags")

    delete = subparsers.add_parser("delete", help="Delete a question")
    delete.add_argument("question_id")

    return parser


async def run(args: argparse.Namespace, settings: Settings) -> int:
    async with AppContext.from_settings(settings) as ctx:
        return await COMMANDS[args.command](ctx, args)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = Settings()
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=settings.log_level.upper(),
        )
        return asyncio.run(run(args, settings))
    except KeyboardInterrupt:
        return 0
    except ValidationError as exc:
        print(f"Invalid input: {exc}", file=sys.stderr)
        return 2
    except (LearnSyncError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
