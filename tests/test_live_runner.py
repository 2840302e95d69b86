import pytest
import structlog

from timingbot.config import Settings
from timingbot.decision import Action
from timingbot.errors import FeedError, InvalidInputError
from timingbot.live import (
    CollectingNotifier,
    LogNotifier,
    MonitorRunner,
    PriceHistory,
    PriceQuote,
    ReplayPriceFeed,
    StaticFearGreedFeed,
    StaticNewsFeed,
)
from timingbot.utils.log import setup_logger


def _init_logger() -> None:
    structlog.reset_defaults()
    setup_logger()


def _capitulation() -> list[float]:
    return [100.0 - 0.1 * i for i in range(59)] + [80.0]


class FailingFeed:
    def fetch(self):
        raise FeedError("upstream down")


class BrokenNotifier:
    def send(self, result):
        raise RuntimeError("transport closed")


def _runner(prices, notifier=None, **kwargs) -> MonitorRunner:
    if notifier is None:
        notifier = CollectingNotifier()
    return MonitorRunner(Settings(), ReplayPriceFeed(prices), notifier, **kwargs)


def test_price_history_bounded():
    h = PriceHistory(max_len=3)
    h.extend([1.0, 2.0, 3.0, 4.0])
    assert h.values() == [2.0, 3.0, 4.0]
    assert h.last == 4.0
    assert len(h) == 3
    with pytest.raises(InvalidInputError):
        h.append(-1.0)


def test_replay_feed_change_and_exhaustion():
    feed = ReplayPriceFeed([100.0, 110.0, 121.0], lookback=2)
    assert feed.fetch() == PriceQuote(100.0, 0.0)
    assert feed.fetch().change_24h == 0.0
    assert feed.fetch().change_24h == pytest.approx(21.0)
    assert feed.exhausted
    with pytest.raises(FeedError):
        feed.fetch()


def test_warm_up_cycles_skip_until_history_is_filled():
    notifier = CollectingNotifier()
    runner = _runner(_capitulation(), notifier, fear_greed_feed=StaticFearGreedFeed(10))
    results = [runner.run_cycle() for _ in range(60)]
    assert all(r.status == "insufficient_history" for r in results[:49])
    assert results[49].ok
    final = results[-1]
    assert final.decision.action is Action.BUY_STRONG
    assert final.notify
    assert notifier.sent[-1] is final
    assert runner.gate.state == final.state
    assert runner.cycles == 60


def test_fetch_failure_aborts_cycle(capfd):
    _init_logger()
    runner = MonitorRunner(Settings(), FailingFeed(), CollectingNotifier())
    assert runner.run_cycle() is None
    assert len(runner.history) == 0
    out, err = capfd.readouterr()
    assert "cycle_aborted" in (out + err)
    assert "fetch_failed" in (out + err)


def test_missing_quote_aborts_cycle(capfd):
    _init_logger()

    class NoQuoteFeed:
        def fetch(self):
            return None

    runner = MonitorRunner(Settings(), NoQuoteFeed(), CollectingNotifier())
    runner.run(max_steps=2, sleep=lambda _: None)
    assert runner.cycles == 2
    assert len(runner.history) == 0
    assert runner.last_result is None
    out, err = capfd.readouterr()
    assert (out + err).count("cycle_aborted") == 2
    assert "fetch_failed" in (out + err)


def test_raising_classifier_does_not_stop_loop(capfd):
    _init_logger()

    class BackendDown:
        def classify(self, items, price_change_pct_24h=0.0):
            raise RuntimeError("model backend unavailable")

    runner = _runner(
        [100.0] * 60,
        news_feed=StaticNewsFeed(["Bitcoin rally"]),
        classifier=BackendDown(),
        history=PriceHistory(200),
    )
    runner.history.extend([100.0] * 49)
    runner.run(max_steps=2, sleep=lambda _: None)
    assert runner.cycles == 2
    assert len(runner.history) == 49
    out, err = capfd.readouterr()
    assert "model backend unavailable" in (out + err)
    assert "cycle_failed" in (out + err)


def test_invalid_input_leaves_history_untouched():
    runner = _runner([100.0] * 5, fear_greed_feed=StaticFearGreedFeed(150))
    with pytest.raises(InvalidInputError):
        runner.run_cycle()
    assert len(runner.history) == 0
    assert runner.gate.state.action is Action.HOLD


def test_optional_feed_failure_aborts_before_history_changes():
    runner = _runner([100.0] * 5, fear_greed_feed=FailingFeed())
    assert runner.run_cycle() is None
    assert len(runner.history) == 0


def test_reentrant_cycle_refused(capfd):
    _init_logger()
    runner = _runner([100.0] * 5)

    class NestedFeed:
        def __init__(self):
            self.inner = None

        def fetch(self):
            self.inner = runner.run_cycle()
            return 20

    nested = NestedFeed()
    runner.fear_greed_feed = nested
    assert runner.run_cycle() is not None
    assert nested.inner is None
    out, err = capfd.readouterr()
    assert "cycle_reentrant" in (out + err)


def test_notifier_error_does_not_undo_state(capfd):
    _init_logger()
    runner = _runner(_capitulation(), BrokenNotifier(), fear_greed_feed=StaticFearGreedFeed(10))
    for _ in range(60):
        result = runner.run_cycle()
    assert result.notify
    assert runner.gate.state.action is Action.BUY_STRONG
    out, err = capfd.readouterr()
    assert "notifier_error" in (out + err)


def test_news_feed_reaches_engine():
    news = ["Exchange hack drains wallets"]
    runner = _runner([100.0] * 60, news_feed=StaticNewsFeed(news))
    for _ in range(60):
        result = runner.run_cycle()
    assert result.sentiment.impact.value == "CRITICAL_NEGATIVE"


def test_pause_resume_and_status(capfd):
    _init_logger()
    runner = _runner([100.0] * 10, run_id="run_test")
    runner.pause()
    runner.run(max_steps=3, sleep=lambda _: None)
    assert runner.cycles == 0
    runner.resume()
    runner.run(max_steps=2, sleep=lambda _: None)
    assert runner.cycles == 2

    status = runner.status()
    assert status["run_id"] == "run_test"
    assert status["paused"] is False
    assert status["history_length"] == 2
    assert status["last_price"] == 100.0
    assert status["state"]["action"] == "HOLD"
    assert status["last_result"]["status"] == "insufficient_history"
    out, err = capfd.readouterr()
    assert "monitor_paused" in (out + err)
    assert "monitor_resumed" in (out + err)


def test_run_survives_engine_errors(capfd):
    _init_logger()

    class BadPriceFeed:
        def fetch(self):
            return PriceQuote(price=100.0)

    runner = MonitorRunner(Settings(), BadPriceFeed(), CollectingNotifier(), fear_greed_feed=StaticFearGreedFeed(150))
    sleeps = []
    runner.run(max_steps=2, sleep=sleeps.append)
    assert runner.cycles == 2
    assert sleeps == [900.0]
    out, err = capfd.readouterr()
    assert '"event": "error"' in (out + err)


def test_keyboard_interrupt_ends_loop(capfd):
    _init_logger()
    runner = _runner([100.0] * 10)

    def interrupt(_):
        raise KeyboardInterrupt

    runner.run(sleep=interrupt)
    assert runner.cycles == 1
    out, err = capfd.readouterr()
    assert "keyboard_interrupt" in (out + err)


def test_log_notifier_emits_alert(capfd):
    _init_logger()
    runner = _runner(_capitulation(), LogNotifier(), fear_greed_feed=StaticFearGreedFeed(10))
    for _ in range(60):
        runner.run_cycle()
    out, err = capfd.readouterr()
    assert '"event": "alert"' in (out + err)
    assert "BUY_STRONG" in (out + err)
