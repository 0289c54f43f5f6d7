#!/usr/bin/env python3
"""
Folio - Block-Based Workspace Editor

Command-line entry point. Opens a workspace through a session (cache first,
then the configured document store), applies one edit, and flushes pending
writes before exiting.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, Set

from folio.config import ConfigManager, get_config
from folio.errors import FolioError
from folio.models import BlockType, Page
from folio.persistence import LocalCache, build_persistence
from folio.workspace import WorkspaceSession


def setup_logging(settings: Optional[ConfigManager] = None):
    """Configure logging for the application."""
    settings = settings or get_config()
    level = getattr(logging, settings.get("logging.level", "INFO").upper())
    format_str = settings.get("logging.format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    log_file = settings.log_filename

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler(log_file)
        ]
    )


def render_tree(pages: List[Page]) -> List[str]:
    """
    Render the page tree as indented lines.

    Args:
        pages: Every page of the workspace

    Returns:
        One line per page, children indented under their parent
    """
    by_id = {page.id: page for page in pages}
    lines: List[str] = []
    seen: Set[str] = set()

    def visit(page: Page, depth: int):
        if page.id in seen:
            return
        seen.add(page.id)
        marker = "*" if page.is_favorite else " "
        lines.append(f"{'  ' * depth}{marker} {page.title} [{page.id}]")
        if not page.is_expanded and depth > 0:
            return
        for child_id in page.child_ids:
            child = by_id.get(child_id)
            if child is not None:
                visit(child, depth + 1)

    for page in pages:
        if page.parent_id is None or page.parent_id not in by_id:
            visit(page, 0)
    return lines


def render_page(page: Page) -> List[str]:
    """Render a page's blocks as plain text lines."""
    lines = []
    for block in page.blocks:
        if block.type == BlockType.TODO:
            lines.append(f"[{'x' if block.checked else ' '}] {block.content}")
        elif block.type in (BlockType.PAGE, BlockType.PAGE_LINK):
            lines.append(f"-> {block.content} ({block.page_id})")
        elif block.type == BlockType.DIVIDER:
            lines.append("---")
        elif block.type.value.startswith("h"):
            lines.append(f"{'#' * int(block.type.value[1:])} {block.content}")
        else:
            lines.append(block.content)
    return lines


def rename_page(session: WorkspaceSession, page_id: str, title: str) -> bool:
    """Retitle a page by rewriting (or adding) its top heading."""
    if not session.select_page(page_id):
        return False
    page = session.active_page
    heading = next((block for block in page.blocks if block.type == BlockType.HEADING1), None)
    if heading is not None:
        return session.update_block(heading.id, content=title)
    session.insert_block(-1, BlockType.HEADING1, title)
    return True


async def run_command(args: argparse.Namespace, settings: ConfigManager) -> int:
    """
    Open the workspace, run the requested command and settle pending writes.

    Returns:
        Process exit code
    """
    persistence = build_persistence(settings, backend=args.backend)
    cache = LocalCache(settings.cache_directory)
    session = WorkspaceSession.open(args.workspace, persistence, cache=cache, settings=settings)
    exit_code = 0

    try:
        result = await session.load()
        logging.info(f"Opened workspace {args.workspace} from {result.source}")

        if args.command == "tree":
            print("\n".join(render_tree(list(session.pages))))

        elif args.command == "show":
            page = session.get_page(args.page_id)
            if page is None:
                print(f"No page {args.page_id}")
                exit_code = 1
            else:
                print("\n".join(render_page(page)))

        elif args.command == "add":
            new_id = session.add_page(args.parent)
            if args.title:
                rename_page(session, new_id, args.title)
            print(new_id)

        elif args.command == "delete":
            deleted = session.delete_page(args.page_id)
            print(f"Deleted {len(deleted)} pages" if deleted else f"No page {args.page_id}")
            exit_code = 0 if deleted else 1

        elif args.command == "rename":
            if not rename_page(session, args.page_id, args.title):
                print(f"No page {args.page_id}")
                exit_code = 1

        elif args.command == "append":
            if not session.select_page(args.page_id):
                print(f"No page {args.page_id}")
                exit_code = 1
            else:
                session.insert_block(len(session.active_page.blocks) - 1, BlockType(args.type), args.text)

        elif args.command in ("favorite", "expand"):
            toggle = session.toggle_favorite if args.command == "favorite" else session.toggle_expand
            if not toggle(args.page_id):
                print(f"No page {args.page_id}")
                exit_code = 1

    except FolioError as e:
        logging.error(f"Command {args.command} failed: {e}")
        print(f"\n{e}")
        exit_code = 1

    finally:
        await session.close(flush=True)
        await persistence.close()

    return exit_code


def parse_arguments(argv: Optional[List[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Folio - Block-Based Workspace Editor",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py tree                              # Show the page tree of the default workspace
  python main.py add --parent 1 --title "Notes"    # Create a sub-page of page 1
  python main.py append 2 "Deep Work" --type todo  # Add a todo to page 2
  python main.py --backend memory tree             # Try things out without touching the database
        """
    )

    parser.add_argument(
        "--workspace",
        default="default",
        help="Workspace to open (default: default)"
    )

    parser.add_argument(
        "--backend",
        choices=["duckdb", "http", "memory"],
        help="Document store to use (default: from config.yaml)"
    )

    parser.add_argument(
        "--config",
        help="Path to the configuration file (default: config.yaml)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version="Folio 0.1.0"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("tree", help="Print the page tree")

    show = commands.add_parser("show", help="Print the blocks of a page")
    show.add_argument("page_id")

    add = commands.add_parser("add", help="Create a new page")
    add.add_argument("--parent", help="Parent page id (default: workspace root)")
    add.add_argument("--title", help="Title of the new page")

    delete = commands.add_parser("delete", help="Delete a page and all its sub-pages")
    delete.add_argument("page_id")

    rename = commands.add_parser("rename", help="Change the title of a page")
    rename.add_argument("page_id")
    rename.add_argument("title")

    append = commands.add_parser("append", help="Append a block to a page")
    append.add_argument("page_id")
    append.add_argument("text")
    append.add_argument(
        "--type",
        default=BlockType.TEXT.value,
        choices=[t.value for t in BlockType if t not in (BlockType.PAGE, BlockType.PAGE_LINK)],
        help="Block type (default: text)"
    )

    favorite = commands.add_parser("favorite", help="Toggle a page's favorite flag")
    favorite.add_argument("page_id")

    expand = commands.add_parser("expand", help="Toggle whether a page's sub-pages are shown")
    expand.add_argument("page_id")

    return parser.parse_args(argv)


def load_settings(args: argparse.Namespace) -> ConfigManager:
    """Use the file named by --config, or the global configuration."""
    if args.config:
        return ConfigManager(args.config)
    return get_config()


def main():
    """Main entry point."""
    args = parse_arguments()
    settings = load_settings(args)
    setup_logging(settings)

    try:
        exit_code = asyncio.run(run_command(args, settings))
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        print("\nInterrupted.")
        exit_code = 130
    except Exception as e:
        logging.error(f"Folio failed: {e}")
        print(f"\nFolio failed: {e}")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
