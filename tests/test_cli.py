import io
import re
from pathlib import Path

import pytest

from tickbus.cli import build_parser, main
from tickbus.core import log

ROOT = Path(__file__).resolve().parents[1]
UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")
TIME_RE = re.compile(r"^\d{1,2}:\d{2}:\d{2} [AP]M$")


@pytest.fixture(autouse=True)
def _restore_logging():
    # main() re-binds the root handler to the captured stderr
    yield
    log.setup(force=True)


def test_parser_defaults():
    args = build_parser().parse_args(["mediatr"])
    assert args.interval == 1.0
    assert args.max_ticks is None
    assert args.policy == "propagate"
    assert args.wiring is None


def test_variant_is_required():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_simple_reads_stdin(monkeypatch, capsys):
    monkeypatch.setattr("sys.stdin", io.StringIO("hi"))
    assert main(["--log-level", "WARNING", "simple", "--presses", "5"]) == 0
    assert capsys.readouterr().out.splitlines() == ["H was pressed.", "I was pressed."]


def test_service_prints_long_times(capsys):
    assert main(["--log-level", "WARNING", "service", "--interval", "0", "--max-ticks", "2"]) == 0
    lines = capsys.readouterr().out.splitlines()
    assert 2 <= len(lines) <= 4
    assert all(TIME_RE.match(x) for x in lines)


def test_mediatr_prints_guids(capsys):
    assert main(["--log-level", "WARNING", "mediatr", "--interval", "0", "--max-ticks", "3"]) == 0
    out = capsys.readouterr().out.splitlines()
    guids = [x for x in out if UUID_RE.match(x)]
    assert len(guids) == 3 == len(set(guids))
    assert all(UUID_RE.match(x) or TIME_RE.match(x) for x in out)


def test_mediatr_with_wiring_file(capsys):
    wiring = str(ROOT / "configs" / "mediatr.yaml")
    assert main(["--log-level", "WARNING", "mediatr", "--wiring", wiring, "--interval", "0", "--max-ticks", "2"]) == 0
    guids = [x for x in capsys.readouterr().out.splitlines() if UUID_RE.match(x)]
    assert len(set(guids)) == 2


def test_bad_wiring_exits_with_error_code(tmp_path):
    p = tmp_path / "bad.yaml"
    p.write_text("handlers:\n  - {module: nope, class: Nope}\n", encoding="utf-8")
    assert main(["--log-level", "CRITICAL", "mediatr", "--wiring", str(p), "--max-ticks", "1"]) == 2


def test_metrics_interval_is_read_from_dotenv(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("METRICS_INTERVAL=2.5\n", encoding="utf-8")
    monkeypatch.chdir(tmp_path)
    # recorded as absent so whatever .env loads is removed again afterwards
    monkeypatch.setenv("METRICS_INTERVAL", "")
    monkeypatch.delenv("METRICS_INTERVAL")
    started = []
    monkeypatch.setattr("tickbus.cli.start_exporter", lambda interval_sec: started.append(interval_sec))

    assert main(["--log-level", "WARNING", "service", "--interval", "0", "--max-ticks", "1"]) == 0
    assert started == [2.5]


def test_flag_overrides_metrics_interval_env(monkeypatch):
    monkeypatch.setenv("METRICS_INTERVAL", "9")
    started = []
    monkeypatch.setattr("tickbus.cli.start_exporter", lambda interval_sec: started.append(interval_sec))
    assert main(["--log-level", "WARNING", "--metrics-interval", "0", "service", "--interval", "0", "--max-ticks", "1"]) == 0
    assert started == []


def test_zero_max_ticks_prints_nothing(capsys):
    assert main(["--log-level", "WARNING", "mediatr", "--max-ticks", "0"]) == 0
    assert capsys.readouterr().out == ""


def test_negative_max_ticks_is_rejected():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["service", "--max-ticks", "-1"])
