"""Help texts for the sync commands and the command-line entry point."""

from __future__ import annotations

import sys
from typing import Sequence, TextIO

_OVERVIEW = (
    "Sync module",
    "",
    "Usage:",
    "  iflowkit sync <command> [args]",
    "",
    "Commands:",
    "  init   Initialize a Git repository for a CPI IntegrationPackage and export DEV artifacts",
    "  pull   Refresh local repo from CPI (based on current branch) and push CPI state to that branch",
    "  push   Push local changes to git and update CPI tenant (based on current branch)",
    "  deliver Promote changes between environment branches and update the target tenant",
    "  compare Show IntegrationPackage differences between current branch and an environment branch",
    "  deploy Inspect local deployment records (status/remaining work)",
    "",
    "Help:",
    "  iflowkit help sync",
    "  iflowkit help sync init",
    "  iflowkit help sync pull",
    "  iflowkit help sync push",
    "  iflowkit help sync deliver",
    "  iflowkit help sync compare",
    "  iflowkit help sync deploy",
    "",
)

_COMPARE = (
    "Compare IntegrationPackage content between branches",
    "",
    "Usage:",
    "  iflowkit sync compare --to qas|prd",
    "",
    "What it does:",
    "  - Compares the current branch with origin/<to> using git diff (IntegrationPackage/ only)",
    "  - Applies ignore patterns from .iflowkit/ignore (plus built-in defaults)",
    "  - Prints a summary list: Kind - ObjectId",
    "",
    "Rules:",
    "  - --to qas: only when cpiTenantLevels=3",
    "  - --to prd: when cpiTenantLevels=2 or 3",
    "",
)

_DELIVER = (
    "Promote changes between environments (branch merge + tenant update)",
    "",
    "Usage:",
    "  iflowkit sync deliver --to qas|prd [--message <commitMessage>]",
    "",
    "Rules:",
    "  - --to qas: only when cpiTenantLevels=3 (DEV -> QAS)",
    "  - --to prd: when cpiTenantLevels=3 (QAS -> PRD) or cpiTenantLevels=2 (DEV -> PRD)",
    "  - PRD safety: --to prd is mandatory (this flag is the confirmation)",
    "  - Compares tenant vs target branch using .iflowkit/ignore; if different, the command fails",
    "  - If origin/qas or origin/prd does not exist, it is bootstrapped from the tenant (init transport + tag)",
    "  - Writes a transport record (*.transport.json) with transportType=deliver under .iflowkit/transports/<tenant>/",
    "  - On success, creates and pushes a git tag named <transportId> on the target branch",
    "",
)

_PULL = (
    "Refresh local repo from CPI and push CPI state to Git",
    "",
    "Usage:",
    "  iflowkit sync pull [--to dev|qas|prd] [--message <commitMessage>]",
    "",
    "What it does:",
    "  - Must be executed inside an existing sync repo (finds .iflowkit/package.json)",
    "  - Allowed branch: dev, qas (only when cpiTenantLevels=3), prd",
    "  - Reads the IntegrationPackage from the mapped tenant and re-exports to IntegrationPackage/",
    "  - Commits and pushes the CPI state to origin/<current-branch>",
    "  - PRD safety: must pass --to prd",
    "  - Writes a transport record (*.transport.json) with transportType=pull",
    "",
)

_DEPLOY = (
    "Inspect deployment records",
    "",
    "Usage:",
    "  iflowkit sync deploy status [--env dev|qas|prd] [--transport <transportId>]",
    "",
    "Notes:",
    "  - Reads local records under .iflowkit/transports/",
    "  - By default, shows the most recent record",
    "",
)

_INIT = (
    "Initialize a sync repository from DEV tenant",
    "",
    "Usage:",
    "  iflowkit sync init --id <packageId> [--dir <parentPath>]",
    "",
    "Notes:",
    "  - Uses DEV tenant only (no --env)",
    "  - If --dir is provided, the repo is created under <parentPath>/<packageId>",
    "  - Creates a private repo on GitHub/GitLab when possible",
    "  - Pushes exported content to branch 'dev'",
    "  - Writes sync metadata to .iflowkit/package.json",
    "  - Writes/updates .gitignore (does not ignore .iflowkit/transports)",
    "",
    "Examples:",
    "  iflowkit sync init --id com.iflowkit.cpi.email",
    "",
)

_PUSH = (
    "Push local changes to Git and update CPI tenant",
    "",
    "Usage:",
    "  iflowkit sync push [--to dev|qas|prd] [--message <commitMessage>]",
    "",
    "What it does:",
    "  - Finds .iflowkit/package.json by walking up from current directory",
    "  - Detects local changes via git diff (including untracked files)",
    "  - Commits and pushes the current branch to origin",
    "  - Updates the mapped CPI tenant only for changed artifacts under IntegrationPackage/",
    "  - PRD safety: must pass --to prd",
    "  - Deploys updated iFlows after upload",
    "  - Uses .iflowkit/transports/<tenant>/index.json and *.transport.json records as retry state after CPI failures",
    "  - On environment branches (dev/qas/prd), creates and pushes a git tag named <transportId>",
    "",
    "Branch rules:",
    "  - Environment branches: dev, qas (only when cpiTenantLevels=3), prd",
    "  - Work branches: feature/*, bugfix/* (mapped to DEV tenant)",
    "",
    "Examples:",
    "  iflowkit sync push",
    '  iflowkit sync push --message "Update iFlow step"',
    "",
)

_TOPICS = {
    "init": _INIT,
    "push": _PUSH,
    "pull": _PULL,
    "deploy": _DEPLOY,
    "deliver": _DELIVER,
    "compare": _COMPARE,
}

_HELP_FLAGS = frozenset({"-h", "-help", "--help"})


def print_help(path: Sequence[str] | None = None, out: TextIO | None = None) -> None:
    """Write the help for the command named by ``path[0]``, or the overview."""
    out = sys.stdout if out is None else out
    lines = _TOPICS.get(path[0], _OVERVIEW) if path else _OVERVIEW
    for line in lines:
        out.write(line + "\n")


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point of the ``sync`` command line; returns the exit status.

    Only help output is offered here: ``help [command]`` and
    ``<command> --help`` print the matching text.
    """
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print_help(None)
        return 0

    command = args[0]
    if command == "help" or command in _HELP_FLAGS:
        print_help(args[1:])
        return 0

    if command in _TOPICS:
        print_help(args)
        if any(arg in _HELP_FLAGS for arg in args[1:]):
            return 0
        sys.stderr.write(f"unsupported sync command: {command}\n")
        return 2

    print_help(args)
    sys.stderr.write(f"unknown sync command: {command}\n")
    return 1