"""
MyTabs CLI - administration of the tab library from the shell.

Every command runs against the same store the web frontend uses, so changes
made here go through the same per-tab update queue and validation.
"""

import argparse
import sys
from pathlib import Path
from typing import Optional

import anyio
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from mytabs.core.config import ensure_directories, load_config
from mytabs.core.output import log, setup_from_config
from mytabs.domain.tabs import (
    TabStore,
    TabStoreError,
    UpdateTabInfo,
    get_extension,
)

console = Console()


def format_validation_error(error: ValidationError) -> str:
    """One 'field: message' line per validation issue."""
    lines = []
    for issue in error.errors():
        field = ".".join(str(part) for part in issue["loc"])
        lines.append(f"{field}: {issue['msg']}")
    return "\n".join(lines)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mytabs",
        description="MyTabs - self-hosted guitar and bass tab manager",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    subparsers = parser.add_subparsers(dest="subcommand", required=True)

    subparsers.add_parser("list", help="List all tabs, newest first")

    show_parser = subparsers.add_parser("show", help="Show a tab with its audio and videos")
    show_parser.add_argument("id")

    new_parser = subparsers.add_parser("new", help="Upload a new tab file")
    new_parser.add_argument("file", type=Path)
    new_parser.add_argument("--title", help="Defaults to the file name")
    new_parser.add_argument("--artist", default="Unknown")

    edit_parser = subparsers.add_parser("edit", help="Change title, artist or visibility")
    edit_parser.add_argument("id")
    edit_parser.add_argument("--title", required=True)
    edit_parser.add_argument("--artist", default="")
    edit_parser.add_argument("--public", action="store_true")

    replace_parser = subparsers.add_parser("replace", help="Replace the tab file")
    replace_parser.add_argument("id")
    replace_parser.add_argument("file", type=Path)

    delete_parser = subparsers.add_parser("delete", help="Move a tab to deleted/")
    delete_parser.add_argument("id")

    fav_parser = subparsers.add_parser("fav", help="Mark or unmark a favorite")
    fav_parser.add_argument("id")
    fav_parser.add_argument("state", choices=["on", "off"])

    audio_add = subparsers.add_parser("audio-add", help="Attach an audio file")
    audio_add.add_argument("id")
    audio_add.add_argument("file", type=Path)

    audio_remove = subparsers.add_parser("audio-remove", help="Remove an audio file")
    audio_remove.add_argument("id")
    audio_remove.add_argument("filename")

    youtube_add = subparsers.add_parser("youtube-add", help="Link a YouTube video")
    youtube_add.add_argument("id")
    youtube_add.add_argument("video_id")

    youtube_remove = subparsers.add_parser("youtube-remove", help="Unlink a YouTube video")
    youtube_remove.add_argument("id")
    youtube_remove.add_argument("video_id")

    return parser


def print_tab_list(tabs) -> None:
    table = Table(title=f"{len(tabs)} tabs")
    table.add_column("ID", justify="right")
    table.add_column("Title")
    table.add_column("Artist")
    table.add_column("File")
    table.add_column("Created")
    table.add_column("Public")
    table.add_column("Fav")
    for tab in tabs:
        table.add_row(
            tab.id,
            tab.title,
            tab.artist,
            tab.original_filename or tab.filename,
            tab.created_at[:10],
            "yes" if tab.public else "",
            "*" if tab.fav else "",
        )
    console.print(table)


def print_document(config) -> None:
    tab = config.tab
    console.print(
        f"[bold]{escape(tab.title)}[/bold] - {escape(tab.artist or 'Unknown artist')} (#{tab.id})"
    )
    console.print(f"File: {tab.filename} (uploaded as {escape(tab.original_filename)})")
    console.print(f"Created: {tab.created_at}  Public: {tab.public}  Fav: {tab.fav}")

    if config.audio:
        console.print("Audio:")
        for audio in config.audio:
            console.print(
                f"  {escape(audio.filename)}  ({audio.sync_method}) offset={audio.simple_sync}"
            )
    if config.youtube:
        console.print("YouTube:")
        for video in config.youtube:
            console.print(
                f"  {escape(video.video_id)}  ({video.sync_method}) offset={video.simple_sync}"
            )


async def execute(args: argparse.Namespace, store: TabStore) -> int:
    """Run one parsed command against store. Returns the exit code."""
    command = args.subcommand

    if command == "list":
        print_tab_list(await store.list_tabs())

    elif command == "show":
        print_document(await store.read_document(args.id))

    elif command == "new":
        data = await anyio.Path(args.file).read_bytes()
        title = (args.title or args.file.name).strip()
        config = await store.create_tab(
            data, get_extension(args.file.name), title, args.artist.strip(), args.file.name
        )
        log(f"Created tab {config.tab.id}: {config.tab.title}")

    elif command == "edit":
        data = UpdateTabInfo(title=args.title, artist=args.artist, public=args.public)
        await store.update_tab_info(args.id, data)
        log(f"Updated tab {args.id}")

    elif command == "replace":
        data = await anyio.Path(args.file).read_bytes()
        await store.replace_tab_file(
            args.id, data, get_extension(args.file.name), args.file.name
        )
        log(f"Replaced file of tab {args.id}")

    elif command == "delete":
        await store.delete_tab(args.id)
        log(f"Deleted tab {args.id}")

    elif command == "fav":
        fav = args.state == "on"
        await store.set_favorite(args.id, fav)
        log(f"Marked tab {args.id} as favorite" if fav else f"Unmarked tab {args.id} as favorite")

    elif command == "audio-add":
        data = await anyio.Path(args.file).read_bytes()
        filename = await store.add_audio(args.id, data, args.file.name)
        log(f"Added {filename} to tab {args.id}")

    elif command == "audio-remove":
        await store.remove_audio(args.id, args.filename)
        log(f"Removed {args.filename} from tab {args.id}")

    elif command == "youtube-add":
        await store.add_youtube(args.id, args.video_id)
        log(f"Linked {args.video_id} to tab {args.id}")

    elif command == "youtube-remove":
        await store.remove_youtube(args.id, args.video_id)
        log(f"Unlinked {args.video_id} from tab {args.id}")

    return 0


def run(argv: Optional[list[str]] = None, store: Optional[TabStore] = None) -> int:
    """Parse argv and run the command. Returns the exit code."""
    args = build_parser().parse_args(argv)

    if store is None:
        config = load_config()
        ensure_directories(config)
        setup_from_config(config.log_file_path, config.logging)
        store = TabStore.from_config(config)

    try:
        return anyio.run(execute, args, store)
    except ValidationError as e:
        log(format_validation_error(e), level="error")
    except (TabStoreError, ValueError, OSError) as e:
        log(str(e), level="error")
    return 1


def main() -> None:
    """Main entry point for the mytabs command."""
    sys.exit(run())


if __name__ == "__main__":
    main()
