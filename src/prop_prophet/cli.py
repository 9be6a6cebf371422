"""CLI entrypoint for prop-prophet."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

from prop_prophet.alerts import mark_sent, pending_alerts
from prop_prophet.ease import EaseIndex, parse_ease_text
from prop_prophet.errors import CLIError, ProphetError
from prop_prophet.feeds import load_json_feed, load_or_fetch_feed
from prop_prophet.ledger import (
    aggregate,
    carry_over,
    committable,
    merge,
    render_record_markdown,
    resolve,
)
from prop_prophet.pipeline import run_pipeline
from prop_prophet.recent_form import RecentFormIndex
from prop_prophet.runtime_config import (
    RuntimeConfig,
    load_runtime_config,
    set_current_runtime_config,
)
from prop_prophet.settings import Settings
from prop_prophet.storage import LedgerStore, atomic_write_text
from prop_prophet.time_utils import iso_z, local_date, parse_iso_z, resolve_zone, utc_now

logger = logging.getLogger(__name__)

EASE_CACHE_FILENAME = "ease_rankings.json"


def _runtime(args: argparse.Namespace) -> tuple[RuntimeConfig, Settings]:
    config_path = Path(args.config) if args.config else None
    try:
        runtime = load_runtime_config(config_path)
    except RuntimeError as exc:
        raise CLIError(str(exc)) from exc
    set_current_runtime_config(runtime)
    data_dir = Path(args.data_dir) if args.data_dir else None
    return runtime.with_data_dir(data_dir), Settings.from_runtime(data_dir=data_dir)


def _now(raw: str | None) -> datetime:
    if not raw:
        return utc_now()
    parsed = parse_iso_z(raw)
    if parsed is None:
        raise CLIError(f"invalid --now timestamp: {raw}")
    return parsed


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False) + "\n"


def _projection_rows(payload: Any) -> list[Any]:
    if isinstance(payload, dict):
        payload = payload.get("players", [])
    if not isinstance(payload, list):
        raise CLIError("projection feed must be a JSON list of rows")
    return payload


def _load_ease(args: argparse.Namespace, settings: Settings) -> EaseIndex | None:
    if args.ease:
        return EaseIndex.load(Path(args.ease))
    url = args.ease_url or settings.ease_url
    if url:
        feed = load_or_fetch_feed(
            url,
            cache_path=settings.feed_cache_dir / EASE_CACHE_FILENAME,
            timeout_s=settings.feeds_timeout_s,
            retries=settings.feeds_retries,
        )
        if not isinstance(feed.data, dict):
            raise CLIError(f"ease feed must be a JSON object: {feed.source}")
        return EaseIndex.from_table(feed.data)
    cache = settings.feed_cache_dir / EASE_CACHE_FILENAME
    if cache.exists():
        logger.warning("no ease source given, using cached table %s", cache)
        return EaseIndex.load(cache)
    return None


def _load_form(path: str | None) -> RecentFormIndex | None:
    if not path:
        return None
    return RecentFormIndex.from_feed(load_json_feed(Path(path)))


def _cmd_score(args: argparse.Namespace) -> int:
    runtime, settings = _runtime(args)
    tz = resolve_zone(settings.timezone)
    now = _now(args.now)
    rows = _projection_rows(load_json_feed(Path(args.projections)))
    odds = load_json_feed(Path(args.odds))
    ease_index = _load_ease(args, settings)
    form_index = _load_form(args.form)

    picks = run_pipeline(
        rows,
        odds,
        ease_index=ease_index,
        form_index=form_index,
        settings=runtime.scoring,
        now=now,
        tz=tz,
        with_rationale=args.explain,
    )
    output: dict[str, Any] = {
        "generated_at_utc": iso_z(now),
        "count": len(picks),
        "picks": [pick.to_dict() for pick in picks],
    }

    if args.commit:
        store = LedgerStore(settings.data_dir)
        with store.lock():
            ledger = store.load_history()
            if form_index is not None:
                ledger = resolve(ledger, form_index, today=local_date(now, tz), now=now).ledger
            carried = carry_over(
                store.load_snapshot(),
                picks,
                now,
                post_minutes=settings.commit_post_tip_minutes,
            )
            window_picks = committable(
                [*picks, *carried],
                now,
                pre_minutes=settings.commit_pre_tip_minutes,
                post_minutes=settings.commit_post_tip_minutes,
            )
            report = merge(ledger, window_picks, tz=tz, now=now)
            sent = store.load_alerts()
            alerts = pending_alerts(window_picks, sent, tz=tz, now=now)
            store.save_history(report.ledger)
            store.save_alerts(mark_sent(sent, [key for key, _ in alerts], now=now))
            store.save_snapshot([*picks, *carried], generated_at_utc=iso_z(now))
        output["committed"] = {
            "eligible": len(window_picks),
            "carried": len(carried),
            "added": report.added,
            "updated": report.updated,
        }
        output["alerts"] = [pick.to_dict() | {"alert_key": key} for key, pick in alerts]

    if args.out:
        atomic_write_text(Path(args.out), _dump(output))
        print(f"picks={len(picks)} out={args.out}")
    else:
        sys.stdout.write(_dump(output))
    return 0


def _cmd_resolve(args: argparse.Namespace) -> int:
    _, settings = _runtime(args)
    tz = resolve_zone(settings.timezone)
    now = _now(args.now)
    form_index = _load_form(args.form)
    if form_index is None:
        raise CLIError("--form is required")
    store = LedgerStore(settings.data_dir)
    with store.lock():
        report = resolve(store.load_history(), form_index, today=local_date(now, tz), now=now)
        store.save_history(report.ledger)
    sys.stdout.write(
        _dump({"resolved": report.resolved, "pending": report.still_pending})
    )
    return 0


def _cmd_record(args: argparse.Namespace) -> int:
    _, settings = _runtime(args)
    ledger = LedgerStore(settings.data_dir).load_history()
    stats = aggregate(ledger)
    pending = sum(1 for record in ledger if record.is_pending)
    if args.json:
        sys.stdout.write(_dump({"stats": stats, "pending": pending}))
    else:
        sys.stdout.write(render_record_markdown(stats, pending=pending))
    return 0


def _cmd_ease_build(args: argparse.Namespace) -> int:
    chunks: list[str] = []
    for raw in args.raw:
        path = Path(raw)
        if not path.exists():
            raise FileNotFoundError(f"missing ease chunk: {path}")
        chunks.append(path.read_text(encoding="utf-8"))
    table = parse_ease_text(chunks)
    if not table:
        raise CLIError("no ease rows found in the supplied text")
    atomic_write_text(Path(args.out), _dump(table))
    print(f"positions={','.join(sorted(table))} out={args.out}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="prop-prophet")
    parser.add_argument("--config", default="", help="Path to runtime TOML config")
    parser.add_argument("--data-dir", default="", help="Override the data directory")
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    subparsers = parser.add_subparsers(dest="command")

    score = subparsers.add_parser("score", help="Score and tier today's props")
    score.set_defaults(func=_cmd_score)
    score.add_argument("--projections", required=True)
    score.add_argument("--odds", required=True)
    score.add_argument("--ease", default="")
    score.add_argument("--ease-url", default="")
    score.add_argument("--form", default="")
    score.add_argument("--now", default="")
    score.add_argument("--out", default="")
    score.add_argument("--commit", action="store_true")
    score.add_argument("--explain", action="store_true")

    resolve_cmd = subparsers.add_parser("resolve", help="Resolve pending ledger picks")
    resolve_cmd.set_defaults(func=_cmd_resolve)
    resolve_cmd.add_argument("--form", required=True)
    resolve_cmd.add_argument("--now", default="")

    record = subparsers.add_parser("record", help="Show the win/loss record")
    record.set_defaults(func=_cmd_record)
    record.add_argument("--json", action="store_true")

    ease_build = subparsers.add_parser("ease-build", help="Build the ease table from raw text")
    ease_build.set_defaults(func=_cmd_ease_build)
    ease_build.add_argument("--raw", nargs="+", required=True)
    ease_build.add_argument("--out", required=True)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 0
    try:
        return int(func(args))
    except (ProphetError, FileNotFoundError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
