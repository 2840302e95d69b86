from __future__ import annotations

import argparse
import json
import re
import sys
from pathlib import Path

from pydantic import ValidationError

from timingbot import __version__
from timingbot.config import Settings, load_settings, validate_config
from timingbot.decision import RiskProfile
from timingbot.engine import evaluate
from timingbot.errors import ConfigError, TimingBotError
from timingbot.live import (
    CollectingNotifier,
    MonitorRunner,
    ReplayPriceFeed,
    StaticFearGreedFeed,
    StaticNewsFeed,
)
from timingbot.utils.io import read_news, read_prices
from timingbot.utils.log import setup_logger


class SafeHelpFormatter(argparse.ArgumentDefaultsHelpFormatter, argparse.RawTextHelpFormatter):
    """Help formatter that escapes bare '%' to avoid ValueError in argparse."""

    def _expand_help(self, action):
        params = dict(vars(action), prog=self._prog)
        help_text = self._get_help_string(action) or ""
        # Bare '%' would be read as a formatting placeholder; '%(foo)s' is kept.
        help_text = re.sub(r"%(?!\()", "%%", help_text)
        return help_text % params


def _fear_greed(value: str) -> int:
    try:
        v = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid fear & greed value: {value!r}") from exc
    if not (0 <= v <= 100):
        raise argparse.ArgumentTypeError("fear & greed must be in [0, 100]")
    return v


def _load_settings(args: argparse.Namespace) -> Settings:
    settings = load_settings(args.config)
    if getattr(args, "profile", None):
        settings = settings.model_copy(update={"risk_profile": RiskProfile(args.profile)})
    return settings


def _dump(data: dict) -> str:
    return json.dumps(data, ensure_ascii=False, default=str)


def cmd_evaluate(args: argparse.Namespace) -> int:
    try:
        settings = _load_settings(args)
        prices = read_prices(args.prices)
        news = read_news(args.news) if args.news else None
    except (ConfigError, ValidationError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    notify = settings.notify
    try:
        result = evaluate(
            prices,
            args.fear_greed,
            news,
            risk_profile=settings.risk_profile,
            notify_thresholds=(notify.buy_threshold, notify.sell_threshold),
            only_strong_signals=notify.only_strong_signals,
            min_score_delta=notify.min_score_delta,
            price_change_pct_24h=args.change_24h,
            scoring=settings.scoring,
            min_history=settings.history.min_points,
        )
    except TimingBotError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2
    print(json.dumps(result.to_dict(), indent=2, ensure_ascii=False, default=str))
    return 0 if result.ok else 1


def cmd_replay(args: argparse.Namespace) -> int:
    try:
        settings = _load_settings(args)
        prices = read_prices(args.prices)
        news = read_news(args.news) if args.news else None
    except (ConfigError, ValidationError, ValueError, OSError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    feed = ReplayPriceFeed(prices, lookback=args.lookback)
    notifier = CollectingNotifier()
    runner = MonitorRunner(
        settings,
        feed,
        notifier,
        fear_greed_feed=StaticFearGreedFeed(args.fear_greed),
        news_feed=StaticNewsFeed(news) if news is not None else None,
    )
    try:
        while not feed.exhausted:
            runner.run_cycle()
    except TimingBotError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    for result in notifier:
        decision, scores = result.decision, result.scores
        print(
            _dump(
                {
                    "price": decision.price,
                    "action": decision.action.value,
                    "confidence": decision.confidence,
                    "buy_score": scores.buy_score,
                    "sell_score": scores.sell_score,
                    "reason": result.gate_reason,
                }
            )
        )
    summary = {
        "points": len(feed),
        "cycles": runner.cycles,
        "alerts": len(notifier),
        "final_state": runner.status()["state"],
    }
    print(_dump({"summary": summary}))
    return 0


def cmd_validate_config(args: argparse.Namespace) -> int:
    ok, details = validate_config(args.yaml)
    if ok:
        print(details.get("message", "OK"))
        return 0
    print(details.get("error", "Invalid config"), file=sys.stderr)
    return 2


def add_validate_subparser(sub: argparse._SubParsersAction) -> None:
    """Attach ``validate`` subcommands to the top level parser."""

    p = sub.add_parser("validate", help="validation utilities")
    sp = p.add_subparsers(dest="validate_cmd")
    sp.required = True

    v = sp.add_parser("config", help="validate a settings file")
    v.add_argument("--yaml", required=True, help="path to the YAML/JSON settings file")
    v.set_defaults(func=cmd_validate_config)


def _add_input_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--prices", type=Path, required=True, help="CSV/JSON price history, oldest first")
    parser.add_argument("--fear-greed", dest="fear_greed", type=_fear_greed, default=None)
    parser.add_argument("--news", type=Path, default=None, help="JSON file with news items")
    parser.add_argument("--config", type=Path, default=None, help="YAML/JSON settings file")
    parser.add_argument(
        "--profile",
        choices=[p.value for p in RiskProfile],
        default=None,
        help="override settings.risk_profile",
    )


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="timingbot",
        description="Market timing engine: conviction scores, actions and alerts",
        formatter_class=SafeHelpFormatter,
    )
    p.add_argument("--version", action="version", version=f"timingbot {__version__}")
    p.add_argument("--log-level", default="WARNING", help="logging level")
    sub = p.add_subparsers(dest="command")

    # evaluate ------------------------------------------------------------
    p_ev = sub.add_parser(
        "evaluate",
        help="Score the latest point of a price history once",
        formatter_class=SafeHelpFormatter,
    )
    _add_input_args(p_ev)
    p_ev.add_argument(
        "--change-24h",
        dest="change_24h",
        type=float,
        default=0.0,
        help="24h price change in % (news divergence check)",
    )
    p_ev.set_defaults(func=cmd_evaluate)

    # replay --------------------------------------------------------------
    p_rp = sub.add_parser(
        "replay",
        help="Feed a price history point by point through the monitor",
        formatter_class=SafeHelpFormatter,
    )
    _add_input_args(p_rp)
    p_rp.add_argument(
        "--lookback",
        type=int,
        default=96,
        help="points per 24h used for the price change",
    )
    p_rp.set_defaults(func=cmd_replay)

    add_validate_subparser(sub)
    return p


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logger(args.log_level)
    if not hasattr(args, "func"):
        parser.print_help()
        return 2
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
