"""Typer-based CLI for GroupCode cross-file code groups."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from . import __version__, config, config_manager
from .hierarchy import (
    build_hierarchy_tree,
    count_groups_in_node,
    get_functionalities_at_level,
    get_hierarchy_depth,
    is_valid_hierarchy,
    iter_tree,
)
from .languages import format_group_comment, get_file_type, is_supported_file_type
from .models import HierarchyNode, RefactoringIssueType, RefactoringSeverity
from .parser import CommentScanner
from .patterns import PatternAnalyzer
from .refactoring import GroupRefactoringAnalyzer, RefactoringConfig, generate_report
from .storage import (
    AnnotationStore,
    Corpus,
    InvalidWorkspaceError,
    get_functionality_groups,
    group_by_functionality,
    replace_file_groups,
)

logger = logging.getLogger(__name__)

console = Console()

app = typer.Typer(
    help="🏷️  GroupCode: organize code by functionality with @group comments.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

config_app = typer.Typer(
    help="⚙️  Configuration: show, set, and reset settings.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
app.add_typer(config_app, name="config")

_SEVERITY_STYLE = {
    RefactoringSeverity.INFO: "cyan",
    RefactoringSeverity.WARNING: "yellow",
    RefactoringSeverity.ERROR: "red",
}


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"GroupCode CLI v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging."),
):
    """GroupCode CLI: find and analyze functionality groups across files."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _open_store(workspace: Path) -> AnnotationStore:
    try:
        return AnnotationStore(workspace.resolve())
    except InvalidWorkspaceError as exc:
        raise typer.BadParameter(str(exc)) from exc


def _load_corpus(store: AnnotationStore) -> Corpus:
    corpus = store.load()
    if corpus is None:
        raise typer.BadParameter(
            f"No code groups saved for '{store.workspace_path}'. Run 'groupcode scan' first."
        )
    return corpus


_WORKSPACE_ARG = typer.Argument(
    Path("."), exists=True, file_okay=False, help="Workspace root."
)


def _rescan_file(store: AnnotationStore, file_path: Path) -> Corpus:
    file_path = file_path.resolve()
    file_type = get_file_type(str(file_path))
    if not is_supported_file_type(file_type):
        raise typer.BadParameter(f"Unsupported file type '{file_type}'.")
    groups = CommentScanner().scan_file(file_path)
    logger.debug("Re-scanned %s: %d groups", file_path, len(groups))
    return replace_file_groups(store.load() or {}, str(file_path), file_type, groups)


@app.command("scan")
def scan(
    workspace: Path = _WORKSPACE_ARG,
    no_gitignore: bool = typer.Option(False, "--no-gitignore", help="Scan files ignored by .gitignore too."),
    single_file: Optional[Path] = typer.Option(
        None, "--file", "-f", exists=True, dir_okay=False,
        help="Re-scan one file and merge it into the saved groups.",
    ),
):
    """Scan a workspace for @group comments and save them."""
    store = _open_store(workspace)
    if single_file is not None:
        corpus = _rescan_file(store, single_file)
    else:
        scan_cfg = config_manager.load_scan_config()
        corpus = CommentScanner().scan_workspace(
            store.workspace_path,
            respect_gitignore=scan_cfg["respect_gitignore"] and not no_gitignore,
            extra_skip_dirs=scan_cfg["extra_skip_dirs"],
        )
    index = store.save(corpus)

    total = sum(len(groups) for groups in corpus.values())
    console.print(f"[green]✓[/green] Found {total} code groups in {len(corpus)} file types.")
    console.print(f"  [dim]Functionalities[/dim] {index.total_functionalities}")
    console.print(f"  [dim]Saved to[/dim]        {escape(str(store.groups_path))}", highlight=False)


@app.command("groups")
def list_groups(
    workspace: Path = _WORKSPACE_ARG,
    level: Optional[int] = typer.Option(None, "--level", "-l", min=1, help="Only names at this hierarchy level."),
):
    """List every functionality with its occurrence and file counts."""
    store = _open_store(workspace)
    by_name = group_by_functionality(_load_corpus(store))
    if level is not None:
        wanted = get_functionalities_at_level((g for groups in by_name.values() for g in groups), level)
        by_name = {name: groups for name, groups in by_name.items() if name in wanted}
    if not by_name:
        typer.echo("No code groups found.")
        raise typer.Exit(code=0)

    table = Table(title="Code Groups", title_style="bold cyan")
    table.add_column("Functionality", style="yellow")
    table.add_column("Occurrences", justify="right")
    table.add_column("Files", justify="right")
    for name in sorted(by_name):
        groups = by_name[name]
        files = {g.file_path for g in groups}
        table.add_row(escape(name), str(len(groups)), str(len(files)))
    console.print(table)


@app.command("show")
def show_group(
    functionality: str = typer.Argument(..., help="Functionality name (case-insensitive)."),
    workspace: Path = _WORKSPACE_ARG,
):
    """Show where a functionality is defined."""
    store = _open_store(workspace)
    matches = get_functionality_groups(_load_corpus(store), functionality)
    if not matches:
        raise typer.BadParameter(f"Functionality '{functionality}' not found.")

    for file_type, groups in sorted(matches.items()):
        console.print(f"[bold]{escape(file_type)}[/bold]")
        for group in groups:
            location = f"{store.to_relative(group.file_path)}:{group.first_line}"
            line = f"  {escape(location)}  [dim]({len(group.line_numbers)} lines)[/dim]"
            if group.description:
                line += f"  {escape(group.description)}"
            console.print(line, highlight=False)


def _add_tree_nodes(branch: Tree, nodes: Dict[str, HierarchyNode], depth: Optional[int] = None) -> None:
    for name in sorted(nodes):
        node = nodes[name]
        child = branch.add(f"{escape(node.name)} [dim]({count_groups_in_node(node)})[/dim]")
        if depth is None or node.level < depth:
            _add_tree_nodes(child, node.children, depth)


@app.command("tree")
def show_tree(
    workspace: Path = _WORKSPACE_ARG,
    depth: Optional[int] = typer.Option(None, "--depth", "-d", min=1, help="Show at most this many levels."),
):
    """Show functionalities as a hierarchy (``A > B > C``)."""
    store = _open_store(workspace)
    all_groups = [g for groups in _load_corpus(store).values() for g in groups]
    roots = build_hierarchy_tree(all_groups)
    if not roots:
        typer.echo("No code groups found.")
        raise typer.Exit(code=0)

    tree = Tree("[bold cyan]Functionalities[/bold cyan]")
    _add_tree_nodes(tree, roots, depth)
    console.print(tree)
    node_count = sum(1 for _ in iter_tree(roots))
    console.print(f"[dim]{node_count} nodes, max depth {get_hierarchy_depth(all_groups)}[/dim]")


def _analyzer_config(checks: Optional[List[str]]) -> RefactoringConfig:
    refactoring_cfg = RefactoringConfig.from_dict(config_manager.load_refactoring_config())
    if checks:
        try:
            refactoring_cfg.enabled_checks = [RefactoringIssueType(c) for c in checks]
        except ValueError as exc:
            valid = ", ".join(t.value for t in RefactoringIssueType)
            raise typer.BadParameter(f"{exc}. Valid checks: {valid}") from exc
    return refactoring_cfg


@app.command("analyze")
def analyze(
    workspace: Path = _WORKSPACE_ARG,
    check: Optional[List[str]] = typer.Option(None, "--check", "-c", help="Run only these checks (repeatable)."),
    report: bool = typer.Option(False, "--report", help="Print a Markdown report instead of a table."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Write the Markdown report to a file."),
):
    """Suggest refactorings for duplicate, stale, or badly sized groups."""
    store = _open_store(workspace)
    by_name = group_by_functionality(_load_corpus(store))
    analyzer = GroupRefactoringAnalyzer(config=_analyzer_config(check))
    issues = analyzer.analyze_groups(by_name)

    if report or output:
        markdown = generate_report(issues)
        if output:
            output.write_text(markdown, encoding="utf-8")
            typer.echo(f"Report written to {output}")
        else:
            typer.echo(markdown)
        return

    if not issues:
        console.print("[green]✓[/green] No refactoring issues found.")
        return

    table = Table(title=f"Refactoring Issues ({len(issues)})", title_style="bold cyan")
    table.add_column("Severity")
    table.add_column("Type")
    table.add_column("Group", style="yellow")
    table.add_column("Message")
    for issue in issues:
        style = _SEVERITY_STYLE.get(issue.severity, "white")
        table.add_row(
            f"[{style}]{issue.severity.value}[/{style}]",
            issue.type.value,
            escape(issue.group_name),
            escape(issue.message),
        )
    console.print(table)


@app.command("suggest")
def suggest(
    workspace: Path = _WORKSPACE_ARG,
    name: Optional[str] = typer.Option(None, "--name", "-n", help="Check a new group name against existing ones."),
    report: bool = typer.Option(False, "--report", help="Print a Markdown report instead of a table."),
):
    """Suggest consolidated or hierarchical names for existing groups."""
    store = _open_store(workspace)
    groups = [g for groups in _load_corpus(store).values() for g in groups]
    analyzer = PatternAnalyzer()

    if name:
        match = analyzer.find_matching_group(name, groups)
        hierarchy = analyzer.get_suggested_name(name, groups)
        if match:
            console.print(f"Existing group: [yellow]{escape(match)}[/yellow]")
        if hierarchy:
            console.print(f"Suggested hierarchy: [yellow]{escape(hierarchy)}[/yellow]")
        if not match and not hierarchy:
            console.print(f"[green]✓[/green] '{escape(name)}' does not match any existing group.")
        return

    if report:
        typer.echo(analyzer.generate_report(groups))
        return

    suggestions = analyzer.analyze_patterns(groups).all
    if not suggestions:
        console.print("[green]✓[/green] No naming suggestions.")
        return

    table = Table(title=f"Naming Suggestions ({len(suggestions)})", title_style="bold cyan")
    table.add_column("Type")
    table.add_column("Group", style="yellow")
    table.add_column("Suggested", style="green")
    table.add_column("Confidence", justify="right")
    for s in suggestions:
        table.add_row(
            s.type.value,
            escape(s.original_name),
            escape(s.suggested_name),
            f"{round(s.confidence * 100)}%",
        )
    console.print(table)


@app.command("comment")
def comment(
    functionality: str = typer.Argument(..., help="Group name, e.g. 'Auth > Login'."),
    file_type: str = typer.Option("js", "--file-type", "-t", help="Target file extension."),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Optional description."),
    tag: Optional[List[str]] = typer.Option(None, "--tag", help="Tag to append (repeatable)."),
):
    """Print a ready-to-paste @group comment for a file type."""
    if not is_valid_hierarchy(functionality):
        raise typer.BadParameter(
            f"Invalid group name '{functionality}'. Use letters, digits, spaces, '-' or '_' between '>'."
        )
    typer.echo(format_group_comment(functionality, description, tag, file_type))


# ===================================================================
# Config
# ===================================================================

def _split_setting(name: str):
    section, _, key = name.partition(".")
    if not key:
        raise typer.BadParameter("Use SECTION.KEY, e.g. refactoring.similarity_threshold")
    return section, key


@config_app.command("show")
def config_show():
    """Show the effective configuration."""
    console.print(f"[dim]Config file[/dim] {escape(str(config.CONFIG_FILE))}", highlight=False)
    for section, values in (
        ("refactoring", config_manager.load_refactoring_config()),
        ("scan", config_manager.load_scan_config()),
    ):
        table = Table(title=escape(f"[{section}]"), title_style="bold cyan", show_header=False)
        table.add_column(style="yellow")
        table.add_column()
        for key, value in values.items():
            table.add_row(key, escape(str(value)))
        console.print(table)


@config_app.command("set")
def config_set(
    name: str = typer.Argument(..., help="Setting as SECTION.KEY."),
    value: str = typer.Argument(..., help="New value; lists are comma-separated."),
):
    """Persist a single setting."""
    section, key = _split_setting(name)
    try:
        parsed = config_manager.parse_setting_value(section, key, value)
    except KeyError as exc:
        raise typer.BadParameter(f"Unknown setting '{name}'.") from exc
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    if not config_manager.save_setting(section, key, parsed):
        typer.echo(f"Could not write {config.CONFIG_FILE}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Set {section}.{key} = {parsed!r}")


@config_app.command("reset")
def config_reset(section: str = typer.Argument(..., help="Section to reset: refactoring or scan.")):
    """Restore a section to its defaults."""
    if section not in ("refactoring", "scan"):
        raise typer.BadParameter(f"Unknown section '{section}'.")
    if not config_manager.reset_section(section):
        typer.echo(f"Could not write {config.CONFIG_FILE}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Reset [{section}] to defaults.")


if __name__ == "__main__":
    app()
