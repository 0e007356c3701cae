from __future__ import annotations

import argparse
import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from sheet_reconciler import __version__ as TOOL_VERSION
from sheet_reconciler.classifier import Recommendation, classify
from sheet_reconciler.contracts import build_run_summary, stamp_contract
from sheet_reconciler.engine import validate
from sheet_reconciler.keywords import KeywordSet
from sheet_reconciler.ledger import ValidationResult
from sheet_reconciler.modes import MODE_INFO, ValidationRequest, parse_mode, request_from_dict, request_to_dict
from sheet_reconciler.numeric import format_number
from sheet_reconciler.table import as_rows, cell_ref

EXIT_SUCCESS = 0
EXIT_COMMAND_ERROR = 1
EXIT_PARSE_FAILED = 2
EXIT_ISSUES = 3

TOOL_NAME = "sheet-reconciler"

STARTER_REQUEST = {
    "mode": "vertical_group",
    "header_row": 1,
    "end_row": None,
    "start_col": 1,
    "end_col": None,
    "name_col": 1,
    "direction": "bottom",
    "keywords": {"trigger": "小計,合計,Subtotal,Total", "exclude": "總計,Grand Total"},
    "table": [
        ["Item", "Q1", "Q2"],
        ["Rent", 1200, 1200],
        ["Utilities", 300, 280],
        ["Subtotal", 1500, 1480],
    ],
}


class CliError(Exception):
    def __init__(self, message: str, code: int = EXIT_COMMAND_ERROR) -> None:
        super().__init__(message)
        self.code = code


class ReconcilerArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:
        raise CliError(message, EXIT_COMMAND_ERROR)


def eprint(message: str) -> None:
    print(message, file=sys.stderr)


def emit_human(message: str, *, quiet: bool = False) -> None:
    if not quiet:
        eprint(message)


def json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True)


def timestamp_token() -> str:
    override = os.environ.get("SHEET_RECONCILER_OUTPUT_STAMP")
    if override:
        return override
    return datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def default_output_dir(input_path: Path) -> Path:
    return Path.cwd() / "sheet-reconciler-output" / f"{input_path.stem}-{timestamp_token()}"


def determine_output_dir(args: argparse.Namespace, input_path: Path) -> Path:
    if getattr(args, "out_dir", None):
        return Path(args.out_dir)
    return default_output_dir(input_path)


def write_text(path: Path, payload: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(payload, encoding="utf-8")


def write_json(path: Path, payload: Any) -> None:
    write_text(path, json_dumps(payload))


def classify_backend_exception(exc: Exception) -> int:
    if isinstance(exc, CliError):
        return exc.code
    if isinstance(exc, FileNotFoundError):
        return EXIT_COMMAND_ERROR
    if isinstance(exc, (ValueError, UnicodeDecodeError)):
        return EXIT_PARSE_FAILED
    return EXIT_COMMAND_ERROR


def read_json(path: Path) -> Any:
    if not path.exists():
        raise CliError(f"File not found: {path}", EXIT_COMMAND_ERROR)
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CliError(f"Could not parse JSON in {path}: {exc}", EXIT_PARSE_FAILED) from exc


def extract_table(payload: Any, source: Path) -> list[list[Any]]:
    table = payload.get("table") if isinstance(payload, dict) else payload
    if not isinstance(table, list) or not all(row is None or isinstance(row, list) for row in table):
        raise CliError(f"{source} does not contain a table (a JSON array of rows)", EXIT_PARSE_FAILED)
    return as_rows(table)


def mode_label(mode_value: str | None) -> str:
    if mode_value is None:
        return "[none]"
    info = MODE_INFO[parse_mode(mode_value)]
    return f"{info['name']} [{mode_value}]"


def build_validation_report(
    *,
    request: ValidationRequest,
    table: list[list[Any]],
    result: ValidationResult,
    input_path: Path,
    output_path: Path | None,
) -> dict[str, Any]:
    bounds = request.range.resolve(table)
    discrepancies = [
        {
            **record.to_dict(),
            "row": record.row + 1,
            "col": record.col + 1,
            "cell": cell_ref(record.row, record.col),
        }
        for record in result.discrepancies
    ]
    corrections = [
        {"row": row + 1, "col": col + 1, "cell": cell_ref(row, col), "value": value}
        for (row, col), value in result.corrections.items()
    ]
    summary = {
        "count": result.count,
        "total_difference": result.total_difference,
        "has_discrepancies": result.has_discrepancies,
    }
    payload = {
        "mode": request.mode.value,
        "request": request_to_dict(request),
        "range": {
            "header_row": bounds.header_row + 1,
            "end_row": bounds.end_row,
            "start_col": bounds.start_col + 1,
            "end_col": bounds.end_col,
        },
        "summary": summary,
        "discrepancies": discrepancies,
        "corrections": corrections,
        "run_summary": build_run_summary(
            tool=TOOL_NAME,
            command="validate",
            input_path=input_path,
            status="discrepancies" if result.has_discrepancies else "ok",
            output_path=output_path,
            metrics={
                "discrepancies": result.count,
                "total_difference": result.total_difference,
                "rows_in_range": len(bounds.data_rows),
                "columns_in_range": len(bounds.columns),
            },
            warnings=list(result.warnings),
        ),
    }
    return stamp_contract("reconciler.validate", payload, tool_version=TOOL_VERSION)


def build_detection_report(
    *,
    recommendation: Recommendation,
    input_path: Path,
    output_path: Path | None,
) -> dict[str, Any]:
    payload = recommendation.to_dict()
    payload.update(
        {
            "run_summary": build_run_summary(
                tool=TOOL_NAME,
                command="detect",
                input_path=input_path,
                status="ok" if recommendation.mode else "insufficient_data",
                output_path=output_path,
                metrics={
                    "confidence": recommendation.confidence,
                    "keyword_hits": len(recommendation.profile.keyword_hits),
                    "indented_rows": len(recommendation.profile.indented_rows),
                    "numeric_columns": len(recommendation.profile.numeric_columns),
                },
            ),
        }
    )
    return stamp_contract("reconciler.detect", payload, tool_version=TOOL_VERSION)


def render_validation_text(report: dict[str, Any], *, verbose: bool = False) -> str:
    summary = report.get("summary", {})
    bounds = report.get("range", {})
    total = summary.get("total_difference", 0)
    lines = [
        "sheet-reconciler validate",
        f"Mode: {mode_label(report.get('mode'))}",
        f"Rows: {bounds.get('header_row', 1) + 1}-{bounds.get('end_row', 0)} (header row {bounds.get('header_row', 1)})",
        f"Columns: {bounds.get('start_col', 1)}-{bounds.get('end_col', 0)}",
        f"Discrepancies: {summary.get('count', 0)}",
        f"Total difference: {'+' if total >= 0 else ''}{format_number(total)}",
    ]
    if verbose:
        for item in report.get("discrepancies", []):
            lines.append(f"  {item['cell']}: {item['message']}")
    for warning in report.get("run_summary", {}).get("warnings", []):
        lines.append(f"Warning: {warning}")
    return "\n".join(lines) + "\n"


def render_detection_text(report: dict[str, Any]) -> str:
    lines = [
        "sheet-reconciler detect",
        f"Recommended mode: {mode_label(report.get('mode'))}",
        f"Confidence: {report.get('confidence', 0)}",
    ]
    reasons = report.get("reasons", [])
    if reasons:
        lines.append("Reasons:")
        lines.extend(f"  - {reason}" for reason in reasons)
    scores = report.get("scores", {})
    if scores:
        lines.append("Scores:")
        lines.extend(f"  {mode}: {format_number(score)}" for mode, score in scores.items())
    return "\n".join(lines) + "\n"


def build_parser() -> argparse.ArgumentParser:
    parser = ReconcilerArgumentParser(prog=TOOL_NAME, description="Check declared subtotals and totals in spreadsheet tables.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    validate_cmd = subparsers.add_parser("validate", help="Reconcile a table against a request document.")
    validate_cmd.add_argument("input", help="Request JSON path (may embed the table under 'table')")
    validate_cmd.add_argument("--table", help="Table JSON path, overriding any embedded table")
    validate_cmd.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    validate_cmd.add_argument("--output", help="Explicit report output path")
    validate_cmd.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    validate_cmd.add_argument("--dry-run", action="store_true", help="Do not write the report file")
    validate_cmd.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")
    validate_cmd.add_argument("-v", "--verbose", action="store_true", help="List every discrepancy")

    detect = subparsers.add_parser("detect", help="Recommend a validation mode for a table.")
    detect.add_argument("input", help="Table JSON path (array of rows, or an object with 'table')")
    detect.add_argument("--header-row", type=int, default=1, help="One-based header row number")
    detect.add_argument("--trigger", help="Comma-separated trigger keywords (defaults to the built-in list)")
    detect.add_argument("-o", "--out", dest="out_dir", help="Output directory")
    detect.add_argument("--output", help="Explicit report output path")
    detect.add_argument("--json", action="store_true", help="Write machine JSON to stdout")
    detect.add_argument("--dry-run", action="store_true", help="Do not write the report file")
    detect.add_argument("-q", "--quiet", action="store_true", help="Minimal human logs")

    config = subparsers.add_parser("config", help="Generate a starter request document.")
    config_subparsers = config.add_subparsers(dest="config_command", required=True)
    config_init = config_subparsers.add_parser("init", help="Write a starter request file.")
    config_init.add_argument("--path", default="sheet-reconciler-request.json", help="Request output path")

    explain = subparsers.add_parser("explain", help="Explain a validation mode.")
    explain.add_argument("mode", help="Mode name, e.g. vertical_group")
    explain.add_argument("--json", action="store_true", help="Write machine JSON to stdout")

    subparsers.add_parser("version", help="Print version")
    return parser


def maybe_emit_json_stdout(payload: Any, enabled: bool) -> None:
    if enabled:
        print(json_dumps(payload))


def report_path_for(args: argparse.Namespace, input_path: Path) -> Path | None:
    if args.dry_run:
        return None
    if args.output:
        return Path(args.output)
    return determine_output_dir(args, input_path) / "report.json"


def run_validate(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    try:
        payload = read_json(input_path)
        if not isinstance(payload, dict):
            raise CliError(f"{input_path} must hold a JSON object describing the request", EXIT_PARSE_FAILED)
        request = request_from_dict(payload)
        table_path = Path(args.table) if args.table else input_path
        table = extract_table(read_json(table_path) if args.table else payload, table_path)

        result = validate(table, request)
        report_path = report_path_for(args, input_path)
        report = build_validation_report(
            request=request,
            table=table,
            result=result,
            input_path=input_path,
            output_path=report_path,
        )
        if report_path is not None:
            write_json(report_path, report)
        if args.json:
            maybe_emit_json_stdout(report, True)
        else:
            emit_human(render_validation_text(report, verbose=args.verbose).rstrip(), quiet=args.quiet)
            if report_path is not None:
                emit_human(f"Report written: {report_path}", quiet=args.quiet)
        return EXIT_ISSUES if result.has_discrepancies else EXIT_SUCCESS
    except Exception as exc:
        eprint(str(exc))
        return classify_backend_exception(exc)


def run_detect(args: argparse.Namespace) -> int:
    input_path = Path(args.input)
    try:
        if args.header_row < 1:
            raise CliError("--header-row is one-based and must be >= 1", EXIT_COMMAND_ERROR)
        table = extract_table(read_json(input_path), input_path)
        keywords = KeywordSet.from_text(args.trigger) if args.trigger else None
        recommendation = classify(table, args.header_row - 1, keywords)

        report_path = report_path_for(args, input_path)
        report = build_detection_report(
            recommendation=recommendation,
            input_path=input_path,
            output_path=report_path,
        )
        if report_path is not None:
            write_json(report_path, report)
        if args.json:
            maybe_emit_json_stdout(report, True)
        else:
            emit_human(render_detection_text(report).rstrip(), quiet=args.quiet)
            if report_path is not None:
                emit_human(f"Report written: {report_path}", quiet=args.quiet)
        return EXIT_SUCCESS if recommendation.confidence > 0 else EXIT_ISSUES
    except Exception as exc:
        eprint(str(exc))
        return classify_backend_exception(exc)


def run_config_init(args: argparse.Namespace) -> int:
    config_path = Path(args.path)
    if config_path.exists():
        eprint(f"Refusing to overwrite existing config: {config_path}")
        return EXIT_COMMAND_ERROR
    write_json(config_path, STARTER_REQUEST)
    emit_human(f"Request written: {config_path}")
    return EXIT_SUCCESS


def run_explain(args: argparse.Namespace) -> int:
    try:
        mode = parse_mode(args.mode)
    except ValueError as exc:
        eprint(str(exc))
        return EXIT_COMMAND_ERROR
    info = MODE_INFO[mode]
    payload = {"mode": mode.value, "name": info["name"], "description": info["description"]}
    if args.json:
        maybe_emit_json_stdout(payload, True)
    else:
        print(
            "\n".join(
                [
                    f"Mode: {mode.value}",
                    f"Name: {payload['name']}",
                    f"What it checks: {payload['description']}",
                ]
            )
        )
    return EXIT_SUCCESS


def run_version() -> int:
    print(TOOL_VERSION)
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    try:
        parser = build_parser()
        args = parser.parse_args(argv)
        if args.command == "validate":
            return run_validate(args)
        if args.command == "detect":
            return run_detect(args)
        if args.command == "config":
            if args.config_command == "init":
                return run_config_init(args)
        if args.command == "explain":
            return run_explain(args)
        if args.command == "version":
            return run_version()
        raise CliError(f"Unknown command: {args.command}", EXIT_COMMAND_ERROR)
    except CliError as exc:
        eprint(str(exc))
        return exc.code


if __name__ == "__main__":
    raise SystemExit(main())
