#!/usr/bin/env python3
"""
issuesmonitor CLI - Main entry point

Self-assigns a Redmine issue, times the work until Ctrl+C and appends the
session to ./data/<your_host_name>.

Usage:
    issuesmonitor start --project-id=632 --issue-id=111 --redmine-base-url=https://redmine.com --api-key=<key>
    issuesmonitor report --format csv
"""

import click
import sys
import logging

from issuesmonitor.connectors.redmine_api import RedmineConnector
from issuesmonitor.errors import LogReadError, PersistenceError, RemoteError, ValidationError
from issuesmonitor.session.controller import SessionController
from issuesmonitor.session.record import IssueType, SessionRecord
from issuesmonitor.storage.log_reader import format_results, read_records, summarize
from issuesmonitor.storage.log_writer import LogWriter, default_log_path
from issuesmonitor.utils import flags
from issuesmonitor.utils.config import ConfigLoader, DEFAULT_CONFIG_PATH
from issuesmonitor.utils.formatting import commit_message_suggestion

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@click.group()
@click.version_option(version=VERSION)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
def cli(verbose: bool):
    """Redmine issue work timer.

    The issue is self assigned and the time spent on it is written to
    "./data/<your_host_name>".
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s'
    )


@cli.command()
@click.option('--project-id', help=flags.PROJECT_ID.usage)
@click.option('--issue-id', help=flags.ISSUE_ID.usage)
@click.option('--api-key', envvar='REDMINE_API_KEY', help=flags.API_KEY.usage)
@click.option('--redmine-base-url', help=flags.REDMINE_BASE_URL.usage)
@click.option('--estimated-time', help=f"{flags.ESTIMATED_TIME.usage}, used when the issue has none")
@click.option('--type', 'issue_type', help=f"{flags.ISSUE_TYPE.usage}, used when the issue has no classification")
@click.option('--config', 'config_path', default=DEFAULT_CONFIG_PATH, show_default=True, help='YAML config file')
@click.pass_context
def start(ctx, project_id, issue_id, api_key, redmine_base_url, estimated_time, issue_type, config_path):
    """Self-assign an issue and time the work on it until Ctrl+C."""
    config = ConfigLoader(config_path).load()

    try:
        values = flags.validate_flags({
            flags.PROJECT_ID.name: project_id,
            flags.ISSUE_ID.name: issue_id,
            flags.API_KEY.name: api_key or config.redmine_api_key or None,
            flags.REDMINE_BASE_URL.name: redmine_base_url or config.redmine_base_url or None,
            flags.ESTIMATED_TIME.name: estimated_time,
            flags.ISSUE_TYPE.name: issue_type,
        })
    except ValidationError as e:
        click.echo(ctx.get_help(), err=True)
        for problem in e.problems:
            click.echo(f"❌ {problem}", err=True)
        sys.exit(1)

    record = SessionRecord(
        project_id=values[flags.PROJECT_ID.name],
        issue_id=int(values[flags.ISSUE_ID.name]),
    )
    connector = RedmineConnector(
        api_key=values[flags.API_KEY.name],
        base_url=values[flags.REDMINE_BASE_URL.name],
        timeout=config.redmine_timeout,
    )
    controller = SessionController(connector, LogWriter(data_dir=config.data_dir))

    click.echo(f"⏱️  Timing issue #{record.issue_id}, press Ctrl+C when done")
    try:
        controller.run(
            record,
            fallback_estimate=flags.parse_duration_hours(values[flags.ESTIMATED_TIME.name]),
            fallback_type=IssueType.from_name(values[flags.ISSUE_TYPE.name]),
        )
    except RemoteError as e:
        click.echo(f"❌ error {e}", err=True)
        sys.exit(1)
    except PersistenceError as e:
        click.echo(f"❌ error {e}", err=True)
        click.echo("💾 Unsaved session record, append it manually:", err=True)
        click.echo(e.record.to_json_line(), err=True)
        sys.exit(1)

    click.echo(f"✅ Spent {record.spent_hours:.4f}h on issue #{record.issue_id}")
    click.echo(commit_message_suggestion(record))


@cli.command()
@click.option('--file', 'log_file', type=click.Path(dir_okay=False), help='Log file (defaults to ./data/<host name>)')
@click.option('--format', type=click.Choice(['table', 'json', 'csv']), default='table', help='Output format')
@click.option('--raw', is_flag=True, help='Print every session instead of per-issue totals')
def report(log_file, format, raw):
    """Summarize the sessions recorded on this host."""
    path = log_file or default_log_path()

    try:
        records = list(read_records(path))
    except FileNotFoundError:
        click.echo(f"❌ No session log at {path}", err=True)
        sys.exit(1)
    except (LogReadError, OSError) as e:
        click.echo(f"❌ Could not read session log: {e}", err=True)
        sys.exit(1)

    if raw:
        for record in records:
            click.echo(record.to_json_line())
        return

    if not records:
        click.echo(f"No sessions recorded in {path}")
        return

    click.echo(format_results(summarize(records), format=format))


if __name__ == "__main__":
    cli()
