"""Lint hand-edited report files for layouts left over from older dialects."""

from __future__ import annotations

import argparse
import re
import sys
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from pydantic import BaseModel, Field
from typing_extensions import Literal

from .utils import MAX_DISPLAY_HOUR

Severity = Literal["error", "warning", "info"]

VALIDATION_RULES: Dict[str, str] = {
    "header-format": "report header line layout",
    "separator-line": "legacy ===== section separators",
    "location-subsection": "legacy ### [home] location subsections",
    "schedule-item-format": "PLAN/RESULT item layout",
    "time-format": "schedule times within 00:00-36:00",
    "todo-list-marker": "TODO items use '-' as list marker",
    "todo-inline-project": "project code inside a TODO line",
    "todo-deadline-format": "parenthesised deadlines",
    "nested-todo": "indented TODO items",
    "project-only-line": "lines holding only a project name",
    "required-sections": "header, PLAN and RESULT are present",
}

HEADER_PATTERN = re.compile(r"^#\s+\[日報\]\s+.+\s+\d{4}-\d{2}-\d{2}")
SEPARATOR_PATTERN = re.compile(r"^=+$")
SECTION_PATTERNS = {
    "plan": re.compile(r"^##\s+\[PLAN\]", re.IGNORECASE),
    "result": re.compile(r"^##\s+\[RESULT\]", re.IGNORECASE),
    "todo": re.compile(r"^##\s+\[TODO\]", re.IGNORECASE),
    "note": re.compile(r"^##\s+\[NOTE\]", re.IGNORECASE),
}
OTHER_SECTION_PATTERN = re.compile(r"^##\s+")
LOCATION_PATTERN = re.compile(r"^###\s+\[(?:home|office|remote)\]", re.IGNORECASE)
SCHEDULE_LINE_PATTERN = re.compile(r"^\*\s+\d{2}:\d{2}")
SCHEDULE_TASK_PATTERN = re.compile(r"^\*\s+(\d{2}:\d{2})\s+\[([^\]]+)\]\s+(.+)$")
SCHEDULE_END_PATTERN = re.compile(r"^\*\s+(\d{2}:\d{2})\s*$")
TODO_START_PATTERN = re.compile(r"^[-*]\s+\[")
TODO_PATTERN = re.compile(r"^[-*]\s+\[([xX\s*\-])\]\s*(.*)$")
INLINE_PROJECT_PATTERN = re.compile(r"^\[([^\]]+)\]\s+(.*)$")
PAREN_DEADLINE_PATTERN = re.compile(r"[（(]([^）)]+)[）)]")
DEADLINE_WORD_PATTERN = re.compile(r"\d|月|末|頭|中旬")
NESTED_TODO_PATTERN = re.compile(r"^\s{2,}[-*]\s+\[")
PROJECT_ONLY_PATTERN = re.compile(r"^-\s+\[([^\]]+)\]\s+(\S+)\s*$")
STATUS_CHAR_PATTERN = re.compile(r"[xX\s*\-]")
FILE_DATE_PATTERN = re.compile(r"(\d{4}-\d{2}-\d{2})\.md$")


class ValidationIssue(BaseModel):
    line: int
    severity: Severity
    code: str
    message: str
    suggestion: Optional[str] = None


class ValidationSummary(BaseModel):
    errors: int = 0
    warnings: int = 0
    infos: int = 0


class ValidationResult(BaseModel):
    file: str
    date: str
    is_valid: bool
    issues: List[ValidationIssue] = Field(default_factory=list)
    summary: ValidationSummary = Field(default_factory=ValidationSummary)


def validate_report(
    content: str,
    file_path: str,
    *,
    strict: bool = False,
    skip_rules: Iterable[str] = (),
) -> ValidationResult:
    """Check report text line by line.

    Errors make the file invalid; with ``strict`` warnings do as well. Rules
    named in ``skip_rules`` are not evaluated.
    """
    skip = set(skip_rules)
    issues: List[ValidationIssue] = []

    def report(line: int, severity: Severity, code: str, message: str, suggestion: Optional[str] = None) -> None:
        if code not in skip:
            issues.append(
                ValidationIssue(line=line, severity=severity, code=code, message=message, suggestion=suggestion)
            )

    date_match = FILE_DATE_PATTERN.search(file_path)
    lines = content.replace("\r\n", "\n").split("\n")
    section = ""
    has_header = False
    seen = set()

    for index, line in enumerate(lines):
        line_no = index + 1

        if index == 0:
            if HEADER_PATTERN.match(line):
                has_header = True
            else:
                report(
                    line_no, "error", "header-format", "header line is malformed",
                    "expected: # [日報] <name> <YYYY-MM-DD>",
                )

        if SEPARATOR_PATTERN.match(line):
            report(line_no, "warning", "separator-line", "legacy section separator line", "remove this line")

        matched_section = next((name for name, pattern in SECTION_PATTERNS.items() if pattern.match(line)), None)
        if matched_section:
            section = matched_section
            seen.add(section)
            continue
        if OTHER_SECTION_PATTERN.match(line):
            section = "other"
            continue

        if section in ("plan", "result"):
            if LOCATION_PATTERN.match(line):
                report(
                    line_no, "warning", "location-subsection", "legacy location subsection",
                    "remove this line; locations are no longer tracked",
                )
                continue
            if SCHEDULE_LINE_PATTERN.match(line):
                task_match = SCHEDULE_TASK_PATTERN.match(line)
                if not task_match and not SCHEDULE_END_PATTERN.match(line):
                    report(
                        line_no, "warning", "schedule-item-format", "schedule item is malformed",
                        "expected: * HH:MM [PROJECT] task, or * HH:MM for an end time",
                    )
                elif task_match:
                    hours, minutes = (int(part) for part in task_match.group(1).split(":"))
                    if hours > MAX_DISPLAY_HOUR or minutes > 59:
                        report(
                            line_no, "error", "time-format", f"invalid time: {task_match.group(1)}",
                            "times must lie between 00:00 and 36:00",
                        )

        if section == "todo":
            if line.startswith("###"):
                continue

            if TODO_START_PATTERN.match(line):
                if line.startswith("*"):
                    report(line_no, "info", "todo-list-marker", "TODO uses '*' as list marker", "prefer '-'")
                todo_match = TODO_PATTERN.match(line)
                if todo_match:
                    body = todo_match.group(2)
                    inline = INLINE_PROJECT_PATTERN.match(body)
                    if inline:
                        report(
                            line_no, "warning", "todo-inline-project", "project code inside the TODO line",
                            f"group it under a '### {inline.group(1)}' header",
                        )
                    paren = PAREN_DEADLINE_PATTERN.search(body)
                    if paren and DEADLINE_WORD_PATTERN.search(paren.group(1)):
                        report(
                            line_no, "warning", "todo-deadline-format",
                            f"parenthesised deadline: {paren.group(0)}", "use @YYYY-MM-DD",
                        )

            if NESTED_TODO_PATTERN.match(line):
                report(line_no, "warning", "nested-todo", "nested TODO item", "flatten the list")

            project_only = PROJECT_ONLY_PATTERN.match(line)
            if project_only and not STATUS_CHAR_PATTERN.search(project_only.group(1)):
                report(
                    line_no, "info", "project-only-line", "line may hold only a project name",
                    "ignore if intentional",
                )

    if not has_header:
        report(1, "error", "required-sections", "report header is missing")
    if "plan" not in seen:
        report(1, "warning", "required-sections", "PLAN section is missing", "add a ## [PLAN] section")
    if "result" not in seen:
        report(1, "warning", "required-sections", "RESULT section is missing", "add a ## [RESULT] section")

    summary = ValidationSummary(
        errors=sum(1 for issue in issues if issue.severity == "error"),
        warnings=sum(1 for issue in issues if issue.severity == "warning"),
        infos=sum(1 for issue in issues if issue.severity == "info"),
    )
    is_valid = summary.errors == 0 and (not strict or summary.warnings == 0)
    return ValidationResult(
        file=file_path,
        date=date_match.group(1) if date_match else "unknown",
        is_valid=is_valid,
        issues=issues,
        summary=summary,
    )


_COLORS = {
    "reset": "\x1b[0m",
    "red": "\x1b[31m",
    "yellow": "\x1b[33m",
    "blue": "\x1b[34m",
    "green": "\x1b[32m",
    "dim": "\x1b[2m",
}
_SEVERITY_STYLE = {"error": ("red", "✗"), "warning": ("yellow", "⚠"), "info": ("blue", "ℹ")}


def _palette(color: bool) -> Dict[str, str]:
    return dict(_COLORS) if color else {key: "" for key in _COLORS}


def format_validation_result(result: ValidationResult, *, color: bool = True, verbose: bool = False) -> str:
    c = _palette(color)
    icon = f"{c['green']}✓{c['reset']}" if result.is_valid else f"{c['red']}✗{c['reset']}"
    lines = [f"{icon} {result.file}"]
    if not result.issues:
        return lines[0]

    for issue in result.issues:
        if issue.severity == "info" and not verbose:
            continue
        tone, mark = _SEVERITY_STYLE[issue.severity]
        lines.append(f"  {c[tone]}{mark}{c['reset']} {c['dim']}L{issue.line}{c['reset']} [{issue.code}] {issue.message}")
        if verbose and issue.suggestion:
            lines.append(f"    {c['dim']}→ {issue.suggestion}{c['reset']}")

    parts = []
    if result.summary.errors:
        parts.append(f"{c['red']}{result.summary.errors} error(s){c['reset']}")
    if result.summary.warnings:
        parts.append(f"{c['yellow']}{result.summary.warnings} warning(s){c['reset']}")
    if verbose and result.summary.infos:
        parts.append(f"{c['blue']}{result.summary.infos} info(s){c['reset']}")
    if parts:
        lines.append(f"  {c['dim']}──{c['reset']} {', '.join(parts)}")
    return "\n".join(lines)


def format_validation_summary(results: Sequence[ValidationResult], *, color: bool = True) -> str:
    c = _palette(color)
    valid = sum(1 for result in results if result.is_valid)
    invalid = len(results) - valid
    lines = [
        "",
        "=" * 63,
        "Validation summary",
        "-" * 63,
        f"Files: {len(results)}",
        f"  {c['green']}✓ valid: {valid}{c['reset']}",
    ]
    if invalid:
        lines.append(f"  {c['red']}✗ invalid: {invalid}{c['reset']}")
    lines.append(f"Errors: {c['red']}{sum(r.summary.errors for r in results)}{c['reset']}")
    lines.append(f"Warnings: {c['yellow']}{sum(r.summary.warnings for r in results)}{c['reset']}")
    lines.append("=" * 63)
    return "\n".join(lines)


def collect_report_files(paths: Iterable[str]) -> List[Path]:
    files: List[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.is_dir():
            files.extend(sorted(p for p in path.rglob("*.md") if FILE_DATE_PATTERN.search(p.name)))
        elif path.is_file():
            files.append(path)
    return files


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mdjournal-validate", description="Lint daily report Markdown files")
    parser.add_argument("paths", nargs="+", help="report files or directories to scan")
    parser.add_argument("--strict", action="store_true", help="treat warnings as errors")
    parser.add_argument("--skip", action="append", default=[], choices=sorted(VALIDATION_RULES), help="rule to skip")
    parser.add_argument("--verbose", "-v", action="store_true", help="show info issues and suggestions")
    parser.add_argument("--no-color", action="store_true")
    parser.add_argument("--quiet", "-q", action="store_true", help="only print files with issues")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    color = not args.no_color and sys.stdout.isatty()
    files = collect_report_files(args.paths)
    if not files:
        print("no report files found", file=sys.stderr)
        return 1

    results = []
    for path in files:
        result = validate_report(
            path.read_text(encoding="utf-8"), str(path), strict=args.strict, skip_rules=args.skip
        )
        results.append(result)
        if args.quiet and result.is_valid and not result.issues:
            continue
        print(format_validation_result(result, color=color, verbose=args.verbose))

    print(format_validation_summary(results, color=color))
    return 0 if all(result.is_valid for result in results) else 1


if __name__ == "__main__":
    sys.exit(main())
