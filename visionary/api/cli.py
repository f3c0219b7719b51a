"""
Interactive command-line adapter for Visionary.

Commands mirror the HTTP API and operate on the process-wide orchestrator:

    generate <prompt>       regenerate              edit [instruction]
    set-edit <instruction>  suggest                 apply <tier> <n>
    undo                    reset                   upload <path>
    history list            history load <index>    history clear
    download [directory]    status                  help
    exit

A single asyncio loop runs for the whole session so that the background
prompt refinement started by `generate` keeps running while the next command
is typed.
"""
from dotenv import load_dotenv

load_dotenv()

import argparse
import asyncio
import shlex
import sys
import threading
from typing import List, Optional

from .. import config
from ..agent.orchestrator import Orchestrator
from ..agent.runtime import create_orchestrator
from ..errors import VisionaryError
from ..models import OrchestratorState

HELP_TEXT = """
Commands:
  generate <prompt>       Generate a new image
  regenerate              Generate again from the current prompt
  edit [instruction]      Edit the current image (default: the saved edit prompt)
  set-edit <instruction>  Save an edit prompt for a later `edit`
  suggest                 Suggest edits for the current image
  apply <tier> <n>        Use suggestion n of a tier (e.g. apply creative 2)
  undo                    Revert the last edit
  reset                   Clear the workspace (history is kept)
  upload <path>           Load an image file from disk
  history list            List history entries
  history load <index>    Load a history entry
  history clear           Delete the history
  download [directory]    Save the current image
  status                  Show the current state
  help                    Show this help
  exit                    Quit
"""


def print_suggestions(state: OrchestratorState):
    """Print prompt refinements and edit suggestions, numbered per tier."""
    if state.prompt_refinements:
        refinements = state.prompt_refinements
        for tier in ("basic", "intermediate", "advanced"):
            print(f"\n{tier.capitalize()} refinements:")
            for i, item in enumerate(getattr(refinements, tier), 1):
                print(f"  {i}. {item.title}")
                print(f"     {item.description}")

    if state.edit_suggestions:
        suggestions = state.edit_suggestions
        for tier, heading in (
            ("creative", "Creative enhancements"),
            ("style", "Style changes"),
            ("improvements", "Technical improvements"),
        ):
            print(f"\n{heading}:")
            for i, item in enumerate(getattr(suggestions, tier), 1):
                print(f"  {i}. {item.title}")
                print(f"     {item.description}")


def print_status(orchestrator: Orchestrator):
    state = orchestrator.snapshot()
    image = state.mime_type if state.has_image else "none"
    print(f"Image: {image}{' (uploaded)' if state.is_uploaded_image else ''}")
    print(f"Status: {state.status.value}{' (refining prompt)' if state.refining else ''}")
    print(f"Undo steps: {state.undo_depth}")
    print(f"History entries: {state.history_length}")
    if state.error:
        print(f"Last error: {state.error}")
    for warning in state.warnings:
        print(f"Warning: {warning}")
    print_suggestions(state)


def print_warnings(orchestrator: Orchestrator):
    for warning in orchestrator.warnings:
        print(f"Warning: {warning}")


async def handle_command(orchestrator: Orchestrator, line: str) -> bool:
    """
    Run one command line against `orchestrator`.

    Returns False when the session should end. Application errors are printed
    and never end the session.
    """
    try:
        parts = shlex.split(line)
    except ValueError as e:
        print(f"Error: {e}")
        return True
    if not parts:
        return True

    command, args = parts[0].lower(), parts[1:]
    text = " ".join(args)

    try:
        if command in ("exit", "quit"):
            return False

        elif command == "help":
            print(HELP_TEXT)

        elif command == "generate":
            await orchestrator.generate(text)
            print("Image generated. Refining your prompt in the background...")
            print_warnings(orchestrator)

        elif command == "regenerate":
            await orchestrator.regenerate()
            print("Image generated. Refining your prompt in the background...")
            print_warnings(orchestrator)

        elif command == "edit":
            await orchestrator.edit(text or None)
            print("Image edited.")
            print_warnings(orchestrator)
            print_suggestions(orchestrator.snapshot())

        elif command == "set-edit":
            orchestrator.set_edit_prompt(text)
            print("Edit prompt saved.")

        elif command == "apply":
            if len(args) != 2 or not args[1].isdigit() or int(args[1]) < 1:
                print("Usage: apply <tier> <n>")
                return True
            await orchestrator.apply_suggestion(args[0], int(args[1]) - 1)
            print("Suggestion applied.")
            print_warnings(orchestrator)
            print_suggestions(orchestrator.snapshot())

        elif command == "suggest":
            await orchestrator.suggest()
            print_suggestions(orchestrator.snapshot())

        elif command == "undo":
            if orchestrator.undo():
                print("Reverted to the previous image state.")
            else:
                print("Nothing to undo.")

        elif command == "reset":
            orchestrator.reset()
            print("Workspace cleared.")

        elif command == "upload":
            if not args:
                print("Usage: upload <path>")
                return True
            await orchestrator.upload_file(text)
            print("Image uploaded. Analyzing your image for creative suggestions...")
            print_warnings(orchestrator)
            print_suggestions(orchestrator.snapshot())

        elif command == "history":
            await handle_history(orchestrator, args)

        elif command == "download":
            path = orchestrator.download(text or config.DOWNLOAD_DIR)
            print(f"Saved {path}")

        elif command == "status":
            print_status(orchestrator)

        else:
            print(f"Unknown command: {command}. Type 'help' for a list of commands.")

    except VisionaryError as e:
        print(f"{e.title}: {e.message}")

    return True


async def handle_history(orchestrator: Orchestrator, args: List[str]):
    action = args[0].lower() if args else "list"

    if action == "list":
        entries = orchestrator.history.list()
        if not entries:
            print("History is empty.")
        for i, entry in enumerate(entries):
            print(f"{i}: {entry[:48]}... ({len(entry)} chars)")

    elif action == "load":
        if len(args) < 2 or not args[1].lstrip("-").isdigit():
            print("Usage: history load <index>")
            return
        await orchestrator.load_history(int(args[1]))
        print("Image loaded. Analyzing your image for creative suggestions...")
        print_suggestions(orchestrator.snapshot())

    elif action == "clear":
        orchestrator.history.clear()
        print("History cleared.")

    else:
        print("Usage: history list | history load <index> | history clear")


async def read_line(prompt: str) -> str:
    """Read one line from stdin on a daemon thread that never delays shutdown."""
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def settle(line, error):
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(line)

    def reader():
        try:
            line = input(prompt)
        except (EOFError, OSError) as e:
            loop.call_soon_threadsafe(settle, None, e)
        else:
            loop.call_soon_threadsafe(settle, line, None)

    threading.Thread(target=reader, name="visionary-stdin", daemon=True).start()
    return await future


async def run(orchestrator: Orchestrator):
    """Read commands from stdin until `exit` or EOF."""
    print("Visionary started. (Type 'help' for commands, 'exit' to quit)")
    print_warnings(orchestrator)
    print("-" * 60)

    while True:
        try:
            line = await read_line("visionary> ")
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print("\nOperation cancelled by user.")
            break

        if not await handle_command(orchestrator, line.strip()):
            break

    if orchestrator.refining:
        print("Waiting for prompt refinement to finish...")
        await orchestrator.wait_for_refinement()
    print("Shutting down.")


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(prog="visionary", description=__doc__.splitlines()[1])
    parser.add_argument("--history-file", default=None, help="path of the history storage file")
    parser.add_argument("--log-level", default=None, help="logging level (default: $LOG_LEVEL or INFO)")
    args = parser.parse_args(argv)

    config.configure_logging(args.log_level)
    orchestrator = create_orchestrator(history_path=args.history_file)

    try:
        asyncio.run(run(orchestrator))
    except KeyboardInterrupt:
        print("\nOperation cancelled by user.")
        return 130
    return 0


if __name__ == "__main__":
    sys.exit(main())
