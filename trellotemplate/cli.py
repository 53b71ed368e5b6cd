"""CLI entry point for copying Trello template lists."""

from __future__ import annotations

import logging
import sys

from trellotemplate import console
from trellotemplate.config import load_config, load_env_file
from trellotemplate.copier import TemplateCopier
from trellotemplate.exceptions import EmptyTemplateError, TemplateCopyError, TrelloAPIError
from trellotemplate.logging_config import setup_logging
from trellotemplate.resolver import BoardResolver
from trellotemplate.template_filter import filter_template_lists, sort_by_position
from trellotemplate.trello_client import TrelloClient

logger = logging.getLogger("trellotemplate.cli")

__doc__ = """
trellotemplate - Copy template lists from one Trello board to many

Usage:
    # Describe the run in appsettings.json
    {
        "TrelloApiKey": "your-key",
        "TrelloUserToken": "your-token",
        "TemplateBoard": "Sprint Template",
        "TargetListNames": ["Backlog", "Doing", "Done"],
        "IgnoreTargetLists": false,
        "DestinationBoardNames": ["Team A", "Team B"],
        "CopyCards": true
    }

    # Run the copy (shows the plan and waits for 'y')
    trellotemplate

    # Preview the plan and destination lookups without changing anything
    trellotemplate --dry-run

    # Use another configuration file
    trellotemplate --config path/to/settings.json

Options:
    --config PATH      Configuration file (default: appsettings.json)
    --dry-run, -n      Show the plan and exit
    --verbose, -v      Debug logging
    --quiet, -q        Errors only
    --log-level LEVEL  DEBUG, INFO, WARNING or ERROR
    --log-file PATH    Also write logs to PATH

Credentials can also come from TRELLO_API_KEY and TRELLO_TOKEN (or a .env file).
"""


def _option_value(flag: str) -> str | None:
    if flag not in sys.argv:
        return None
    idx = sys.argv.index(flag)
    if idx + 1 >= len(sys.argv):
        logger.error(f"❌ Error: {flag} requires a value")
        sys.exit(1)
    return sys.argv[idx + 1]


def run(config_path: str | None = None, dry_run: bool = False) -> int:
    """Run the whole copy workflow. Returns the process exit code."""
    config = load_config(config_path)
    logger.info("Application starting")

    client = TrelloClient(config.api_key, config.token)
    me = client.authenticate()
    logger.info(f"🔑 Logged in as {me.get('fullName') or me.get('username')}")

    resolver = BoardResolver(client, console.choose_board)
    template_board = resolver.resolve_template(config.template_board)

    board = client.get_board(template_board["id"])
    all_lists = sort_by_position(client.get_lists(template_board["id"]))
    if not all_lists:
        raise EmptyTemplateError(f"No lists will be copied from {config.template_board}")

    console.show_plan(
        board,
        all_lists,
        config.target_list_names,
        config.ignore_target_lists,
        config.destination_board_names,
        copy_cards=config.copy_cards,
    )
    template_lists = filter_template_lists(
        all_lists, config.target_list_names, config.ignore_target_lists
    )

    if dry_run:
        resolution = resolver.resolve_destinations(config.destination_board_names)
        logger.info(f"Found {len(resolution.found)} out of {resolution.requested} boards")
        logger.info("🔍 Dry run - nothing was changed")
        return 0

    if not console.confirm():
        logger.info("Exiting program")
        return 0

    resolution = resolver.resolve_destinations(config.destination_board_names)
    logger.info(f"Found {len(resolution.found)} out of {resolution.requested} boards")
    logger.info("📋 Starting to copy lists")

    copier = TemplateCopier(
        client,
        copy_cards=config.copy_cards,
        spacer_name=config.spacer_list_name,
        max_workers=config.max_parallel_boards,
        label_policy=config.label_policy,
        member_policy=config.member_policy,
    )
    copier.prepare(template_lists)
    results = copier.copy_to_boards(resolution.found, template_lists)

    failed = [result for result in results if not result.ok]
    mismatched = sum(len(result.mismatches) for result in results)

    logger.info(f"Done! {len(results) - len(failed)}/{len(results)} boards copied")
    if mismatched:
        logger.warning(f"⚠️  {mismatched} lists need manual fixes (card counts differ)")
    for result in failed:
        logger.error(f"❌ {result.board.get('name')}: {result.error}")
        if result.spacer_list_id:
            logger.warning(
                f"{result.board.get('name')} was left with the spacer list and "
                f"{len(result.list_id_map)} copied lists; remove them before re-running"
            )

    return 1 if failed else 0


def main() -> None:
    if "--help" in sys.argv or "-h" in sys.argv:
        print(__doc__)
        sys.exit(0)

    log_level = "INFO"
    if "--verbose" in sys.argv or "-v" in sys.argv:
        log_level = "DEBUG"
    elif "--quiet" in sys.argv or "-q" in sys.argv:
        log_level = "ERROR"
    elif "--log-level" in sys.argv:
        log_level = (_option_value("--log-level") or log_level).upper()

    setup_logging(log_level, _option_value("--log-file"))
    load_env_file()

    config_path = _option_value("--config")
    dry_run = "--dry-run" in sys.argv or "-n" in sys.argv

    try:
        exit_code = run(config_path, dry_run=dry_run)
    except (TemplateCopyError, TrelloAPIError) as e:
        logger.error(f"❌ {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.error("Interrupted")
        sys.exit(130)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
