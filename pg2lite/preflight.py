"""Preflight - validate tools and inputs before anything destructive happens."""

from __future__ import annotations

import logging

from pg2lite.commands import is_available, split_command
from pg2lite.config import Settings
from pg2lite.models import PreflightIssue, PreflightResult, PreflightSeverity

logger = logging.getLogger("pg2lite.preflight")


# ---------------------------------------------------------------------------
# Individual checks
# ---------------------------------------------------------------------------


def check_config(settings: Settings) -> list[PreflightIssue]:
    return [
        PreflightIssue(severity=PreflightSeverity.BLOCKING, component="config", message=err)
        for err in settings.validate()
    ]


def required_tools(settings: Settings, needs_dump: bool) -> list[str]:
    """Executables the configured flow will invoke."""
    tools = []
    if needs_dump:
        tools.append(settings.pg_dump_bin)
    if settings.remote:
        for command in (settings.wrangler_cmd, settings.drizzle_kit_cmd):
            argv = split_command(command)
            if argv:
                tools.append(argv[0])
    else:
        tools.append(settings.sqlite_bin)
    # Keep order, drop duplicates (both remote commands usually start with npx)
    return list(dict.fromkeys(tools))


def check_tools(tools: list[str]) -> list[PreflightIssue]:
    issues: list[PreflightIssue] = []
    for tool in tools:
        if not is_available(tool):
            issues.append(
                PreflightIssue(
                    severity=PreflightSeverity.BLOCKING,
                    component="tools",
                    message=f"{tool} is not installed.",
                )
            )
    return issues


def check_dump_source(settings: Settings) -> list[PreflightIssue]:
    """The local flow may reuse a dump, but only one that exists."""
    if settings.source_url:
        if not settings.remote and settings.dump_file.exists() and not settings.reset:
            return [
                PreflightIssue(
                    severity=PreflightSeverity.WARNING,
                    component="dump",
                    message=f"Existing dump {settings.dump_file} will be replaced",
                )
            ]
        return []
    if settings.remote:
        # Reported by check_config
        return []
    if settings.reset or not settings.dump_file.exists():
        return [
            PreflightIssue(
                severity=PreflightSeverity.BLOCKING,
                component="dump",
                message=f"No connection string given and no dump file at {settings.dump_file}",
            )
        ]
    return []


def check_schema_file(settings: Settings) -> list[PreflightIssue]:
    if settings.remote or settings.schema_file.is_file():
        return []
    return [
        PreflightIssue(
            severity=PreflightSeverity.BLOCKING,
            component="schema",
            message=f"SQLite schema file '{settings.schema_file}' not found.",
        )
    ]


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


def run_preflight(settings: Settings) -> PreflightResult:
    """Execute all preflight checks and return an aggregate result."""
    issues: list[PreflightIssue] = []
    issues.extend(check_config(settings))
    issues.extend(check_dump_source(settings))
    issues.extend(check_tools(required_tools(settings, needs_dump=bool(settings.source_url))))
    issues.extend(check_schema_file(settings))

    for issue in issues:
        if issue.severity == PreflightSeverity.BLOCKING:
            logger.error("Preflight [%s]: %s", issue.component, issue.message)
        else:
            logger.warning("Preflight [%s]: %s", issue.component, issue.message)

    passed = not any(i.severity == PreflightSeverity.BLOCKING for i in issues)
    return PreflightResult(passed=passed, issues=issues)
