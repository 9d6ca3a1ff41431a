"""
Command-line entry points for running the bot's tasks on a repository.

    repo-hygiene stale [OWNER/REPO]
    repo-hygiene auto-label NUMBER [OWNER/REPO]
    repo-hygiene sync-labels [OWNER/REPO]
    repo-hygiene pr-title NUMBER --title TITLE --sha SHA [OWNER/REPO]

The repository defaults to $GITHUB_REPOSITORY, as set in GitHub Actions.
"""

import logging
import sys

import click

from repo_hygiene import init_sentry, logger, settings
from repo_hygiene.config import ConfigurationError, get_repo_config, load_config
from repo_hygiene.host import DryRunHost, GitHubHost
from repo_hygiene.tasks.github_work import synchronize_labels
from repo_hygiene.tasks.labeling import classify_item
from repo_hygiene.tasks.pr_title import validate_pr_title
from repo_hygiene.tasks.stale import StaleAction, process_stale_items
from repo_hygiene.utils import HostCallFailure, parse_repo_name

repo_argument = click.argument("repo", envvar="GITHUB_REPOSITORY")


class Context:
    """What the group's options decided, for the subcommands."""
    def __init__(self, config_path, dry_run):
        self.config_path = config_path or settings.REPO_HYGIENE_CONFIG
        self.dry_run = dry_run
        self.host = DryRunHost() if dry_run else GitHubHost()

    def config_for(self, owner, repo):
        if self.config_path:
            return load_config(self.config_path)
        return get_repo_config(owner, repo)

    def report_dry_run(self):
        if not self.dry_run:
            return
        if not self.host.action_calls:
            click.echo("Dry run: nothing would be changed.")
            return
        click.echo("Dry run: these changes would be made:")
        for name, kwargs in self.host.action_calls:
            args = ", ".join(f"{k}={v!r}" for k, v in kwargs.items() if k not in ("owner", "repo"))
            click.echo(f"  {name}({args})")


pass_context = click.make_pass_decorator(Context)


def _split_repo(repo):
    try:
        return parse_repo_name(repo)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="REPO") from exc


@click.group()
@click.option(
    "--config", "config_path",
    type=click.Path(dir_okay=False),
    help="A local YAML config file to use instead of the repository's own. Defaults to $REPO_HYGIENE_CONFIG.",
)
@click.option("--dry-run", is_flag=True, help="Only show what would be changed.")
@click.option("-v", "--verbose", is_flag=True, help="Log debugging details.")
@click.version_option(package_name="repo-hygiene")
@click.pass_context
def cli(ctx, config_path, dry_run, verbose):
    """
    Keep a GitHub repository tidy: stale items, labels, and PR titles.
    """
    if verbose:
        logger.setLevel(logging.DEBUG)
        for handler in logger.handlers:
            handler.setLevel(logging.DEBUG)
    init_sentry()
    ctx.obj = Context(config_path, dry_run)


@cli.command()
@repo_argument
@pass_context
def stale(context, repo):
    """Mark inactive issues and pull requests stale, and close them later."""
    owner, name = _split_repo(repo)
    config = context.config_for(owner, name)
    result = process_stale_items(context.host, config.stale, owner, name)
    context.report_dry_run()
    click.echo(
        f"{result.repo}: marked {len(result.numbers_with(StaleAction.MARK_STALE))}, "
        f"unmarked {len(result.numbers_with(StaleAction.UNMARK))}, "
        f"closed {len(result.numbers_with(StaleAction.CLOSE))}"
    )
    if not result.ok:
        for number, tb in sorted(result.errors.items()):
            click.echo(f"Error processing #{number}:\n{tb}", err=True)
        sys.exit(1)


@cli.command("auto-label")
@click.argument("number", type=int)
@repo_argument
@click.option("--content", default=None, help="The body text to classify. Fetched if not given.")
@click.option("--title", default=None, help="The title to classify. Fetched if not given.")
@click.option("--pr", "is_pr", is_flag=True, help="The item is a pull request. Found out if the item is fetched.")
@pass_context
def auto_label(context, number, repo, content, title, is_pr):
    """Add labels to an issue or pull request based on the rules."""
    owner, name = _split_repo(repo)
    config = context.config_for(owner, name)
    issue = None
    if content is None or title is None:
        issue = context.host.get_issue(owner, name, number)
        if content is None:
            content = issue.get("body") or ""
        if title is None:
            title = issue.get("title")
        is_pr = is_pr or "pull_request" in issue
    added = classify_item(
        context.host, config.labels, owner, name, number, content, title=title, is_pr=is_pr, issue=issue,
    )
    context.report_dry_run()
    if added:
        click.echo(f"Labels added to #{number}: {', '.join(added)}")
    else:
        click.echo(f"No labels to add to #{number}")


@cli.command("sync-labels")
@repo_argument
@pass_context
def sync_labels(context, repo):
    """Create any configured labels the repository doesn't have."""
    owner, name = _split_repo(repo)
    config = context.config_for(owner, name)
    created = synchronize_labels(context.host, config.labels, owner, name)
    context.report_dry_run()
    click.echo(f"Created {len(created)} labels in {owner}/{name}")


@cli.command("pr-title")
@click.argument("number", type=int)
@repo_argument
@click.option("--title", required=True, help="The pull request title.")
@click.option("--sha", required=True, help="The head commit to put the status on.")
@pass_context
def pr_title(context, number, repo, title, sha):
    """Check that a pull request title follows the conventional commit format."""
    owner, name = _split_repo(repo)
    config = context.config_for(owner, name)
    result = validate_pr_title(context.host, config.pr_title, owner, name, number, title, sha)
    context.report_dry_run()
    click.echo(result.message)
    if not result.valid:
        for error in result.errors:
            click.echo(f"  {error}", err=True)
        sys.exit(1)


def main():
    try:
        cli()   # pylint: disable=no-value-for-parameter
    except (ConfigurationError, HostCallFailure) as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(2)


if __name__ == "__main__":
    main()
