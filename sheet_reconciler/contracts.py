"""Shared versioned contracts for sheet-reconciler JSON outputs."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Any

CONTRACT_VERSIONS = {
    "reconciler.validate": "1.0.0",
    "reconciler.detect": "1.0.0",
}

# top-level payload sections each contract guarantees to consumers
CONTRACT_SECTIONS = {
    "reconciler.validate": ("mode", "request", "range", "summary", "discrepancies", "corrections"),
    "reconciler.detect": ("mode", "confidence", "reasons", "scores", "profile"),
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def build_contract(name: str) -> dict[str, Any]:
    return {
        "name": name,
        "version": CONTRACT_VERSIONS[name],
        "sections": list(CONTRACT_SECTIONS[name]),
    }


def stamp_contract(name: str, payload: dict[str, Any], *, tool_version: str) -> dict[str, Any]:
    """Attach contract metadata to a report payload that carries every guaranteed section."""
    missing = [section for section in CONTRACT_SECTIONS[name] if section not in payload]
    if missing:
        raise ValueError(f"{name} payload is missing section(s): {', '.join(missing)}")
    contract = build_contract(name)
    payload["contract"] = contract
    payload["schema_version"] = contract["version"]
    payload["tool_version"] = tool_version
    return payload


def build_run_summary(
    *,
    tool: str,
    command: str,
    input_path: Path | None,
    status: str = "ok",
    output_path: Path | None = None,
    metrics: dict[str, Any] | None = None,
    warnings: list[str] | None = None,
) -> dict[str, Any]:
    return {
        "tool": tool,
        "command": command,
        "status": status,
        "generated_at": utc_now_iso(),
        "input_file": str(input_path) if input_path else None,
        "output_file": str(output_path) if output_path else None,
        "warnings_count": len(warnings or []),
        "warnings": list(warnings or []),
        "metrics": metrics or {},
    }
