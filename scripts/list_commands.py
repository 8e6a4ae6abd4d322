#!/usr/bin/env python3
"""
ScriptMenu Command Listing Script.

Prints the command tree built from a scripts directory, optionally runs one
command or keeps watching the directory.
Requires Python 3.11+.

Usage:
    python scripts/list_commands.py
    python scripts/list_commands.py --directory ~/scripts --run Examples/Hello_World.py
    python scripts/list_commands.py --watch
"""

import argparse
import sys
import threading
from pathlib import Path

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

from commands.models import Group, Leaf, CommandNode
from commands.synchronizer import SyncStats, TreeSynchronizer
from scripting.bootstrap import ensure_scripts_directory
from scripting.interpreters import InterpreterRegistry
from scripting.runner import ScriptRunner
from utils.config import get_settings
from utils.errors import ScriptExecutionFailed, UnsupportedScriptType
from utils.logger import configure_logging, get_logger
from watcher.directory_watcher import DirectoryWatcher


configure_logging()
logger = get_logger("list_commands")


def render(node: CommandNode, depth: int = 0) -> list[str]:
    """Render a node and its children as indented lines."""
    indent = "  " * depth
    match node:
        case Leaf():
            return [f"{indent}{node.name}"]
        case Group():
            lines = [f"{indent}{node.name}/"] if depth else []
            for child in node.children:
                lines.extend(render(child, depth + 1))
            return lines


def print_tree(synchronizer: TreeSynchronizer) -> None:
    with synchronizer.lock:
        lines = render(synchronizer.root)
    print(f"{synchronizer.root_path}:")
    for line in lines or ["  (no scripts)"]:
        print(line)


def main() -> None:
    """Main entry point."""
    settings = get_settings()

    parser = argparse.ArgumentParser(
        description="List the scripts command tree"
    )
    parser.add_argument(
        "--directory",
        type=Path,
        default=settings.scripts.directory,
        help="Scripts directory (default: %(default)s)",
    )
    parser.add_argument(
        "--run",
        metavar="PATH",
        default=None,
        help="Run the command at PATH, relative to the scripts directory",
    )
    parser.add_argument(
        "--watch",
        action="store_true",
        help="Keep running and print the tree again after every change",
    )

    args = parser.parse_args()

    ensure_scripts_directory(args.directory, seed_examples=settings.scripts.seed_examples)
    if not args.directory.is_dir():
        print(f"Error: Not a directory: {args.directory}")
        sys.exit(1)

    registry = InterpreterRegistry.default()
    runner = ScriptRunner(registry, config=settings)
    watcher = DirectoryWatcher() if args.watch else None
    synchronizer = TreeSynchronizer(
        args.directory,
        extensions=registry.extensions(),
        leaf_action=runner.run,
        watcher=watcher,
        ignore_patterns=settings.scripts.ignore_patterns,
    )
    synchronizer.synchronize()

    if args.run is not None:
        node = synchronizer.root.find(args.run)
        if not isinstance(node, Leaf):
            print(f"Error: No such script: {args.run}")
            sys.exit(1)
        try:
            node.invoke()
        except (UnsupportedScriptType, ScriptExecutionFailed) as e:
            print(f"Error: {e}")
            sys.exit(1)
        return

    print_tree(synchronizer)
    if watcher is None:
        return

    def _on_change(stats: SyncStats) -> None:
        print(f"\n+{stats.added} -{stats.removed}")
        print_tree(synchronizer)

    synchronizer.add_listener(_on_change)
    watcher.set_callback(synchronizer.synchronize)
    if not watcher.start():
        print("Error: Could not start watching")
        sys.exit(1)

    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        print("\nStopped")
    finally:
        watcher.stop()


if __name__ == "__main__":
    main()
