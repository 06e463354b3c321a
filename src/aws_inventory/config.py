from __future__ import annotations

import argparse
import json
import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from .util.errors import ConfigError
from .util.time import utc_now_iso

# --------
# Defaults
# --------
DEFAULT_OUTDIR = "out"
DEFAULT_FORMATS = ("triples",)
DEFAULT_WORKERS = 4
OUTPUT_FORMATS = {"triples", "jsonl"}
GRAPH_COMMANDS = {"infra", "access"}
ALLOWED_CONFIG_KEYS = {
    "snapshot",
    "region",
    "regions",
    "outdir",
    "formats",
    "dedupe",
    "summary",
    "workers",
    "json_logs",
    "log_level",
}
BOOL_CONFIG_KEYS = {"dedupe", "summary", "json_logs"}
INT_CONFIG_KEYS = {"workers"}
PATH_CONFIG_KEYS = {"snapshot", "outdir"}
STR_CONFIG_KEYS = {"region", "log_level"}
LIST_CONFIG_KEYS = {"regions", "formats"}


@dataclass(frozen=True)
class RunConfig:
    # Input
    snapshot: Optional[Path] = None
    region: Optional[str] = None
    regions: Optional[List[str]] = None

    # Output
    outdir: Path = Path(DEFAULT_OUTDIR)
    formats: Tuple[str, ...] = DEFAULT_FORMATS
    dedupe: bool = False
    summary: bool = True

    # Performance
    workers: int = DEFAULT_WORKERS

    # Logging
    json_logs: bool = False
    log_level: str = "INFO"

    # Internal/derived
    started_at: str = field(default_factory=utc_now_iso)


def _parse_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigError(f"Failed to parse config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("Top-level config must be an object")
    return data


def _env_str(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def _env_bool(name: str) -> Optional[bool]:
    raw = _env_str(name)
    if raw is None:
        return None
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_int(name: str) -> Optional[int]:
    raw = _env_str(name)
    if raw is None:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _coerce_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        raw = value.strip().lower()
        if raw in {"1", "true", "yes", "on"}:
            return True
        if raw in {"0", "false", "no", "off"}:
            return False
    raise ConfigError(f"Config field '{key}' must be a boolean")


def _coerce_int(key: str, value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value)
        except ValueError:
            pass
    raise ConfigError(f"Config field '{key}' must be an integer")


def _coerce_list(key: str, value: Any) -> List[str]:
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return [v.strip() for v in value if v.strip()]
    raise ConfigError(f"Config field '{key}' must be a list of strings or comma-separated string")


def _normalize_config_file(data: Dict[str, Any]) -> Dict[str, Any]:
    unknown = sorted(set(data.keys()) - ALLOWED_CONFIG_KEYS)
    if unknown:
        warnings.warn(f"Unknown config keys ignored: {', '.join(unknown)}")
    normalized: Dict[str, Any] = {}
    for key, value in data.items():
        if key not in ALLOWED_CONFIG_KEYS or value is None:
            continue
        if key in LIST_CONFIG_KEYS:
            normalized[key] = _coerce_list(key, value)
        elif key in BOOL_CONFIG_KEYS:
            normalized[key] = _coerce_bool(key, value)
        elif key in INT_CONFIG_KEYS:
            normalized[key] = _coerce_int(key, value)
        elif key in PATH_CONFIG_KEYS:
            if not isinstance(value, (str, Path)):
                raise ConfigError(f"Config field '{key}' must be a string path")
            normalized[key] = value
        elif key in STR_CONFIG_KEYS:
            if not isinstance(value, str):
                raise ConfigError(f"Config field '{key}' must be a string")
            normalized[key] = value
    return normalized


def _compact_dict(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Drop keys with None values so they don't override lower-precedence config.
    """
    return {k: v for k, v in data.items() if v is not None}


def _merge_dicts(a: Dict[str, Any], b: Dict[str, Any]) -> Dict[str, Any]:
    """
    Shallow merge: values in b override a.
    """
    merged = dict(a)
    merged.update(b)
    return merged


def _split_csv(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, list):
        return [str(v).strip() for v in value if str(v).strip()]
    return [v.strip() for v in str(value).split(",") if v.strip()]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="aws-inv", description="Build AWS inventory graphs from snapshots")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", type=Path, help="Optional YAML/JSON config file")
        p.add_argument(
            "--json-logs",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Enable JSON logs",
        )
        p.add_argument("--log-level", default=None, help="Log level (INFO, DEBUG, ...)")

    def add_build(p: argparse.ArgumentParser) -> None:
        add_common(p)
        p.add_argument("--snapshot", type=Path, default=None, help="Snapshot file (JSON or YAML)")
        p.add_argument("--region", default=None, help="Region of a single-region snapshot")
        p.add_argument("--regions", default=None, help="Comma-separated regions to build from a multi-region snapshot")
        p.add_argument("--outdir", type=Path, default=None, help=f"Output directory (default {DEFAULT_OUTDIR})")
        p.add_argument(
            "--formats",
            default=None,
            help="Comma-separated output formats: triples, jsonl (default triples)",
        )
        p.add_argument(
            "--dedupe",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Drop exact duplicate triples",
        )
        p.add_argument(
            "--summary",
            action=argparse.BooleanOptionalAction,
            default=None,
            help="Write a per-graph summary JSON (default on)",
        )
        p.add_argument("--workers", type=int, default=None, help=f"Max parallel region builds (default {DEFAULT_WORKERS})")

    add_build(subparsers.add_parser("infra", help="Build the region/vpc/subnet/instance graph"))
    add_build(subparsers.add_parser("access", help="Build the IAM users/roles/groups/policies graph"))
    add_common(subparsers.add_parser("kinds", help="List registered entity kinds and their properties"))
    return parser


def load_run_config(
    args: Optional[argparse.Namespace] = None,
    argv: Optional[list[str]] = None,
) -> Tuple[str, RunConfig]:
    """
    Build RunConfig by merging defaults, optional config file, env vars, and CLI args.
    Precedence (low -> high): defaults < config file < env < CLI.

    Returns:
      (command, RunConfig) where command is infra|access|kinds
    """
    ns = args if args is not None else build_parser().parse_args(argv)
    command = ns.command

    base: Dict[str, Any] = {
        "snapshot": None,
        "region": None,
        "regions": None,
        "outdir": DEFAULT_OUTDIR,
        "formats": list(DEFAULT_FORMATS),
        "dedupe": False,
        "summary": True,
        "workers": DEFAULT_WORKERS,
        "json_logs": False,
        "log_level": "INFO",
    }

    file_cfg: Dict[str, Any] = {}
    if getattr(ns, "config", None):
        file_cfg = _normalize_config_file(_parse_config_file(Path(ns.config)))

    env_cfg: Dict[str, Any] = _compact_dict(
        {
            "snapshot": _env_str("AWS_INV_SNAPSHOT"),
            "region": _env_str("AWS_INV_REGION"),
            "regions": _split_csv(_env_str("AWS_INV_REGIONS")),
            "outdir": _env_str("AWS_INV_OUTDIR"),
            "formats": _split_csv(_env_str("AWS_INV_FORMATS")),
            "dedupe": _env_bool("AWS_INV_DEDUPE"),
            "summary": _env_bool("AWS_INV_SUMMARY"),
            "workers": _env_int("AWS_INV_WORKERS"),
            "json_logs": _env_bool("AWS_INV_JSON_LOGS"),
            "log_level": _env_str("AWS_INV_LOG_LEVEL"),
        }
    )

    cli_cfg: Dict[str, Any] = _compact_dict(
        {
            "snapshot": getattr(ns, "snapshot", None),
            "region": getattr(ns, "region", None),
            "regions": _split_csv(getattr(ns, "regions", None)),
            "outdir": getattr(ns, "outdir", None),
            "formats": _split_csv(getattr(ns, "formats", None)),
            "dedupe": getattr(ns, "dedupe", None),
            "summary": getattr(ns, "summary", None),
            "workers": getattr(ns, "workers", None),
            "json_logs": getattr(ns, "json_logs", None),
            "log_level": getattr(ns, "log_level", None),
        }
    )

    merged = _merge_dicts(base, _merge_dicts(file_cfg, _merge_dicts(env_cfg, cli_cfg)))

    formats = tuple(f.lower() for f in (merged.get("formats") or DEFAULT_FORMATS))
    bad = sorted(set(formats) - OUTPUT_FORMATS)
    if bad:
        raise ConfigError(f"Unknown output formats: {', '.join(bad)} (expected {', '.join(sorted(OUTPUT_FORMATS))})")

    workers = int(merged["workers"]) if merged.get("workers") is not None else DEFAULT_WORKERS
    if workers < 1:
        raise ConfigError("workers must be >= 1")

    snapshot = Path(merged["snapshot"]) if merged.get("snapshot") else None
    if command in GRAPH_COMMANDS and snapshot is None:
        raise ConfigError(f"{command} requires --snapshot (or AWS_INV_SNAPSHOT / config 'snapshot')")

    cfg = RunConfig(
        snapshot=snapshot,
        region=str(merged["region"]) if merged.get("region") else None,
        regions=list(merged["regions"]) if merged.get("regions") else None,
        outdir=Path(merged.get("outdir") or DEFAULT_OUTDIR),
        formats=formats,
        dedupe=bool(merged["dedupe"]),
        summary=bool(merged["summary"]),
        workers=workers,
        json_logs=bool(merged["json_logs"]),
        log_level=str(merged.get("log_level") or "INFO").upper(),
    )
    return command, cfg


def dump_config(cfg: RunConfig) -> Dict[str, Any]:
    return {
        "snapshot": str(cfg.snapshot) if cfg.snapshot else None,
        "region": cfg.region,
        "regions": cfg.regions,
        "outdir": str(cfg.outdir),
        "formats": list(cfg.formats),
        "dedupe": cfg.dedupe,
        "summary": cfg.summary,
        "workers": cfg.workers,
        "json_logs": cfg.json_logs,
        "log_level": cfg.log_level,
        "started_at": cfg.started_at,
    }
