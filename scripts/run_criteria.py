from __future__ import annotations

import argparse
import dataclasses
import json
import logging
from pathlib import Path
from typing import Any, Mapping, Sequence

from heatcheck.config import AnalyticsConfig, load_dotenv
from heatcheck.criteria import FeatureContext, evaluate_criteria_batch, load_criteria

logger = logging.getLogger("run_criteria")


def load_json_list(path: str) -> list[dict]:
    json_path = Path(path)
    if not json_path.exists():
        raise SystemExit(f"File not found: {json_path}")
    payload = json.loads(json_path.read_text(encoding="utf-8"))
    if isinstance(payload, dict):
        payload = payload.get("data", [])
    if not isinstance(payload, list):
        raise ValueError(f"{json_path} must hold a JSON list")
    return payload


def run(
    criteria_rows: Sequence[Mapping[str, Any]],
    context_rows: Sequence[Mapping[str, Any]],
    config: AnalyticsConfig | None = None,
    matched_at: str | None = None,
) -> list[dict]:
    criteria = load_criteria(criteria_rows)
    contexts = [FeatureContext.from_mapping(row) for row in context_rows]
    matches = evaluate_criteria_batch(criteria, contexts, matched_at=matched_at, config=config)
    logger.info("%d matches from %d criteria x %d contexts", len(matches), len(criteria), len(contexts))
    return [dataclasses.asdict(match) for match in matches]


def main() -> int:
    parser = argparse.ArgumentParser(description="Evaluate saved research criteria against feature contexts.")
    parser.add_argument("--criteria", required=True, help="JSON file with a list of criteria.")
    parser.add_argument("--contexts", required=True, help="JSON file with a list of feature contexts.")
    parser.add_argument("--workers", type=int, default=None, help="Thread count for large batches.")
    parser.add_argument("--matched-at", default=None, help="Timestamp stamped on matches (default now, UTC).")
    parser.add_argument("--output", default=None, help="Optional JSON output path.")
    parser.add_argument("--log-level", default=None, help="Logging level.")
    args = parser.parse_args()

    load_dotenv()
    config = AnalyticsConfig.from_env()
    if args.workers is not None:
        config = dataclasses.replace(config, batch_workers=args.workers)
    logging.basicConfig(level=(args.log_level or config.log_level).upper(), format="%(levelname)s %(name)s: %(message)s")

    matches = run(load_json_list(args.criteria), load_json_list(args.contexts), config, args.matched_at)
    text = json.dumps(matches, indent=2)
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"Wrote {len(matches)} matches to {args.output}")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
