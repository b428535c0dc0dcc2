"""
Interactive harness for testing vault-assign-mcp without MCP integration.

Usage:
    python harness.py <VAULT_ROOT> [--exclude .git,.obsidian]

Drops you into an interactive REPL where you can call the handlers directly.
Also runs a quick smoke test on startup to verify parsing/indexing works.
"""

import sys
import json
from collections import Counter
from pathlib import Path

# Add src/ to path so imports work
sys.path.insert(0, str(Path(__file__).parent / "src"))

from api.handlers import (
    handle_assign,
    handle_cascade,
    handle_normalize_file,
    handle_normalize_line,
    handle_owned_tasks,
    handle_owner,
    handle_tree,
)
from cache.task_index import TaskIndex
from cascade.resolver import resolve_effective
from parsers.task_parser import alias_map


def smoke_test(index: TaskIndex) -> None:
    """Quick automated checks after initialization."""
    st = index.status()
    print("\n=== Smoke Test ===")
    print(f"  Vault root:     {st['vault_root']}")
    print(f"  Files indexed:  {st['files_indexed']}")
    print(f"  Items indexed:  {st['items_indexed']}")
    print(f"  Tasks indexed:  {st['tasks_indexed']}")
    print(f"  Exclude dirs:   {st['exclude_dirs']}")

    # Effective owners across the vault
    owners: Counter = Counter()
    explicit = 0
    for tree in index.trees():
        amap = alias_map(tree.lines)
        for node in tree.all_nodes():
            if not node.is_task:
                continue
            if amap.get(node.line0):
                explicit += 1
            owners[resolve_effective(node, amap, tree.parent_of) or "(unassigned)"] += 1

    print(f"\n  Explicitly assigned tasks: {explicit}")
    print("  Effective owners:")
    for alias, count in owners.most_common(10):
        print(f"    {alias:24s} {count}")

    print("\n=== Smoke Test Complete ===\n")


def repl(index: TaskIndex) -> None:
    """Simple REPL for interactive exploration."""
    print("Interactive mode. Type 'help' for commands, 'quit' to exit.\n")

    commands = {
        "help":      "Show this help",
        "status":    "Show index status",
        "files":     "List indexed files",
        "tree":      "List-item tree of a file. Usage: tree <file>",
        "owner":     "Effective owner. Usage: owner <file> <line>",
        "owned":     "Tasks owned by a member. Usage: owned <alias>",
        "assign":    "Assign and cascade. Usage: assign <file> <line> [alias]",
        "cascade":   "Cascade an external change. Usage: cascade <file> <line> <old_alias> [new_alias]",
        "normalize": "Canonicalise every task line of a file. Usage: normalize <file>",
        "line":      "Canonicalise one line. Usage: line <text>",
        "quit":      "Exit",
    }

    def show(result) -> None:
        print(json.dumps(result, indent=2, default=str, ensure_ascii=False))

    while True:
        try:
            line = input("vault-assign> ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not line:
            continue

        parts = line.split()
        cmd = parts[0].lower()

        if cmd == "quit" or cmd == "exit":
            break

        elif cmd == "help":
            for k, v in commands.items():
                print(f"  {k:12s} {v}")

        elif cmd == "status":
            show(index.status())

        elif cmd == "files":
            for path in index.files():
                print(f"  {path}")

        elif cmd == "tree":
            if len(parts) < 2:
                print("Usage: tree <file>")
                continue
            show(handle_tree(index, file_path=parts[1]))

        elif cmd == "owner":
            if len(parts) < 3:
                print("Usage: owner <file> <line>")
                continue
            show(handle_owner(index, file_path=parts[1], line=int(parts[2])))

        elif cmd == "owned":
            if len(parts) < 2:
                print("Usage: owned <alias>")
                continue
            results = handle_owned_tasks(index, alias=parts[1])
            print(f"Found {len(results)} tasks:")
            for t in results:
                marker = "*" if t["explicit"] else " "
                print(f"  {marker} {t['file_path']}:{t['line']}  {t['text']}")

        elif cmd == "assign":
            if len(parts) < 3:
                print("Usage: assign <file> <line> [alias]")
                continue
            alias = parts[3] if len(parts) > 3 else None
            show(handle_assign(index, file_path=parts[1], line=int(parts[2]), alias=alias))

        elif cmd == "cascade":
            if len(parts) < 4:
                print("Usage: cascade <file> <line> <old_alias> [new_alias]")
                continue
            new_alias = parts[4] if len(parts) > 4 else None
            show(handle_cascade(
                index, file_path=parts[1], line=int(parts[2]), alias=new_alias, old_alias=parts[3]
            ))

        elif cmd == "normalize":
            if len(parts) < 2:
                print("Usage: normalize <file>")
                continue
            show(handle_normalize_file(index, file_path=parts[1]))

        elif cmd == "line":
            text = line[len(parts[0]):].strip()
            show(handle_normalize_line(line=text))

        else:
            print(f"Unknown command: {cmd}. Type 'help' for available commands.")


def main():
    if len(sys.argv) < 2:
        print("Usage: python harness.py <VAULT_ROOT> [--exclude .git,.obsidian]")
        sys.exit(1)

    vault_root = Path(sys.argv[1]).resolve()
    if not vault_root.is_dir():
        print(f"Error: {vault_root} is not a directory")
        sys.exit(1)

    exclude_dirs = {".git", ".obsidian", "node_modules", ".trash"}
    for i, arg in enumerate(sys.argv[2:]):
        if arg == "--exclude" and i + 1 < len(sys.argv) - 2:
            exclude_dirs = set(sys.argv[i + 3].split(","))

    print(f"Initializing index from: {vault_root}")
    print(f"Exclude dirs: {exclude_dirs}")

    index = TaskIndex()
    index.initialize(vault_root, exclude_dirs)

    smoke_test(index)
    repl(index)

    print("Done.")


if __name__ == "__main__":
    main()
