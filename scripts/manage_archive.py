#!/usr/bin/env python3
"""
Maintain a ConvoKeep archive from the command line.

Usage:
    python scripts/manage_archive.py import <file.json|export.zip>
    python scripts/manage_archive.py export [--output FILE]
    python scripts/manage_archive.py tags [--rename OLD NEW | --delete TAG]
    python scripts/manage_archive.py stats

Environment:
    CONVOKEEP_DATABASE_URL selects the archive (or use --database-url).
"""

import argparse
import json
import logging
import sys
import zipfile
from pathlib import Path
from typing import Any, List

from convokeep.config import DATABASE_URL, LOG_LEVEL
from convokeep.db.importers.errors import ConvoKeepError, get_user_friendly_error_message
from convokeep.db.storage_manager import StorageManager

logger = logging.getLogger(__name__)


def load_json_file(path: Path) -> Any:
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {path}: {e}")


def load_zip_file(path: Path) -> List[Any]:
    """Parse every .json member of a zip export."""
    payloads = []
    try:
        with zipfile.ZipFile(path, 'r') as zip_ref:
            for name in sorted(zip_ref.namelist()):
                if not name.lower().endswith('.json') or name.startswith('__MACOSX/'):
                    continue
                try:
                    payloads.append(json.loads(zip_ref.read(name).decode('utf-8')))
                except (json.JSONDecodeError, UnicodeDecodeError) as e:
                    logger.warning(f"Skipping {name}: {e}")
    except zipfile.BadZipFile:
        raise ValueError(f"Invalid or corrupted zip file: {path}")

    if not payloads:
        raise ValueError(f"No JSON files found in {path}")
    return payloads


def report_progress(percent: int, processed: int, total: int):
    logger.info(f"Stored {processed}/{total} ({percent}%)")


def import_file(manager: StorageManager, path: Path) -> int:
    """Import a JSON file or zip of JSON files. Returns the number stored."""
    payloads = load_zip_file(path) if path.suffix.lower() == '.zip' else [load_json_file(path)]

    stored = 0
    for payload in payloads:
        if manager.backup_service.is_backup(payload):
            result = manager.import_backup(payload, on_progress=report_progress)
        else:
            result = manager.store_conversations(payload, on_progress=report_progress)

        logger.info(str(result))
        for error in result.errors:
            logger.warning(error)
        stored += result.total_stored

    return stored


def export_archive(manager: StorageManager, output: Path = None) -> Path:
    backup = manager.export_backup()
    output = output or Path(manager.backup_service.export_filename())
    with open(output, 'w', encoding='utf-8') as f:
        json.dump(backup, f, indent=2, ensure_ascii=False)
    logger.info(f"Exported {backup['conversation_count']} conversations to {output}")
    return output


def manage_tags(manager: StorageManager, args) -> int:
    if args.rename:
        old_tag, new_tag = args.rename
        count = manager.rename_tag(old_tag, new_tag)
        logger.info(f"Renamed '{old_tag}' to '{new_tag}' on {count} conversations")
        return count
    if args.delete:
        count = manager.delete_tag(args.delete)
        logger.info(f"Removed '{args.delete}' from {count} conversations")
        return count

    tag_counts = manager.get_all_tags()
    if not tag_counts:
        logger.info("No tags in archive")
    for tag_count in tag_counts:
        print(f"{tag_count.count:6d}  {tag_count.tag}")
    return len(tag_counts)


def show_stats(manager: StorageManager) -> dict:
    stats = {
        'total': manager.get_conversations({'count_only': True}),
        'chatgpt': manager.get_conversations({'source': 'gpt', 'count_only': True}),
        'claude': manager.get_conversations({'source': 'claude', 'count_only': True}),
        'starred': manager.get_conversations({'starred': True, 'count_only': True}),
        'archived': manager.get_conversations({'archived': True, 'count_only': True}),
        'tags': len(manager.get_all_tags()),
        'schema_revision': manager.connector.get_schema_version(),
    }
    for key, value in stats.items():
        print(f"{key:>16}: {value}")
    return stats


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Maintain a ConvoKeep conversation archive')
    parser.add_argument(
        '--database-url',
        default=DATABASE_URL,
        help='SQLAlchemy database URL (default: CONVOKEEP_DATABASE_URL env var)'
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    import_parser = subparsers.add_parser('import', help='Import a chat export or backup')
    import_parser.add_argument('path', type=Path, help='JSON file or zip of JSON files')

    export_parser = subparsers.add_parser('export', help='Write a backup of the whole archive')
    export_parser.add_argument('--output', type=Path, help='Output file (default: dated filename)')

    tags_parser = subparsers.add_parser('tags', help='List, rename or delete tags')
    tag_action = tags_parser.add_mutually_exclusive_group()
    tag_action.add_argument('--rename', nargs=2, metavar=('OLD', 'NEW'), help='Rename a tag everywhere')
    tag_action.add_argument('--delete', metavar='TAG', help='Remove a tag everywhere')

    subparsers.add_parser('stats', help='Show archive statistics')
    return parser


def main(argv=None) -> int:
    """Main entry point."""
    logging.basicConfig(
        level=LOG_LEVEL,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )
    args = build_parser().parse_args(argv)
    manager = StorageManager(args.database_url)

    try:
        if args.command == 'import':
            import_file(manager, args.path)
        elif args.command == 'export':
            export_archive(manager, args.output)
        elif args.command == 'tags':
            manage_tags(manager, args)
        elif args.command == 'stats':
            show_stats(manager)
    except ConvoKeepError as e:
        logger.error(get_user_friendly_error_message(e))
        return 1
    except (OSError, ValueError) as e:
        logger.error(str(e))
        return 1
    finally:
        manager.close()

    return 0


if __name__ == '__main__':
    sys.exit(main())
