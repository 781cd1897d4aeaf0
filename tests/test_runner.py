import json
from concurrent.futures import as_completed

import pytest
import yaml
from junitparser import JUnitXml

from codequest.config import load_config
from codequest.runner import Runner


@pytest.fixture
def config(challenges_yaml):
    return load_config(challenges_yaml)


@pytest.fixture
def heading_submissions(write_submission):
    good = write_submission(
        "good.yaml",
        """\
        challengeSlug: heading
        code:
          html: "<h1>Hello world</h1>"
        """,
    )
    half = write_submission(
        "half.yaml",
        """\
        challengeSlug: heading
        code:
          html: "<h1>Goodbye</h1>"
        """,
    )
    return [good, half]


def test_runner_creates_run_directory(tmp_path, config, heading_submissions):
    runner = Runner(config=config, output_dir=tmp_path / "runs")
    run_dir = runner.execute(heading_submissions)

    assert run_dir.parent == tmp_path / "runs"
    assert (run_dir / "results.json").exists()
    assert (run_dir / "junit.xml").exists()
    assert (run_dir / "meta.yaml").exists()
    assert (run_dir / "debug.log").exists()
    assert (run_dir / "submissions" / "000-good" / "debug.log").exists()
    assert (run_dir / "submissions" / "001-half" / "debug.log").exists()


def test_runner_captures_results(tmp_path, config, heading_submissions):
    runner = Runner(config=config, output_dir=tmp_path / "runs")
    run_dir = runner.execute(heading_submissions)

    assert [a.name for a in runner.attempts] == ["good", "half"]
    good, half = runner.attempts
    assert good.result.score == 100
    assert good.summary.is_completed is True
    assert good.summary.xp_earned == 50
    assert half.result.score == 50
    assert half.summary.is_completed is False
    assert half.summary.xp_earned == 0

    results = json.loads((run_dir / "results.json").read_text(encoding="utf-8"))
    first = results["submissions"][0]
    assert first["name"] == "good"
    assert first["challenge"] == "heading"
    assert first["evaluation"]["score"] == 100
    assert first["evaluation"]["testResults"][0]["message"] == "✅ Element 'h1' found"
    assert first["attempt"]["isCompleted"] is True

    heading = results["challenges"]["heading"]
    assert heading["attempts"] == 2
    assert heading["completed"] == 1
    assert heading["score_stats"]["avg"] == 75.0


def test_runner_writes_meta(tmp_path, config, heading_submissions):
    runner = Runner(config=config, output_dir=tmp_path / "runs")
    run_dir = runner.execute(heading_submissions)

    meta = yaml.safe_load((run_dir / "meta.yaml").read_text())
    assert meta["run_id"] == run_dir.name
    assert meta["challenges"] == ["heading"]
    assert meta["submissions"] == 2
    assert "interrupted" not in meta


def test_runner_writes_junit(tmp_path, config, heading_submissions):
    runner = Runner(config=config, output_dir=tmp_path / "runs")
    run_dir = runner.execute(heading_submissions)

    xml = JUnitXml.fromfile(str(run_dir / "junit.xml"))
    suites = list(xml)
    assert [s.name for s in suites] == ["good / heading", "half / heading"]
    assert suites[0].failures == 0
    assert suites[1].failures == 1


def test_runner_logs_rule_checks(tmp_path, config, heading_submissions):
    runner = Runner(config=config, output_dir=tmp_path / "runs")
    run_dir = runner.execute(heading_submissions)

    main_log = (run_dir / "debug.log").read_text()
    assert "Grading 'good' against challenge 'heading'" in main_log
    attempt_log = (run_dir / "submissions" / "001-half" / "debug.log").read_text()
    assert "score 50" in attempt_log


def test_runner_parallel_keeps_submission_order(tmp_path, config, write_submission):
    paths = [
        write_submission(
            f"user{i}.yaml",
            f"""\
            challengeSlug: heading
            code:
              html: "<h1>Hello {i}</h1>"
            """,
        )
        for i in range(6)
    ]
    runner = Runner(config=config, output_dir=tmp_path / "runs", parallel=3)
    runner.execute(paths)

    assert [a.name for a in runner.attempts] == [f"user{i}" for i in range(6)]
    assert all(a.result.score == 100 for a in runner.attempts)


def test_runner_prints_progress(tmp_path, config, heading_submissions, capsys):
    Runner(config=config, output_dir=tmp_path / "runs").execute(heading_submissions)

    out = capsys.readouterr().out
    assert "Grading 2 submission(s) with parallelism 1..." in out
    assert "PASS  good -> heading (2/2 rules, score 100)" in out
    assert "FAIL  half -> heading (1/2 rules, score 50)" in out


def test_runner_challenge_filter_skips_other_challenges(
    tmp_path, config, heading_submissions, write_submission
):
    styled = write_submission(
        "styled.yaml",
        """\
        challengeSlug: styled
        code:
          css: ".box { color: red; }"
        """,
    )
    runner = Runner(
        config=config, output_dir=tmp_path / "runs", challenge_filter="styled"
    )
    runner.execute([*heading_submissions, styled])

    assert [a.name for a in runner.attempts] == ["styled"]
    assert runner.attempts[0].result.score == 100


def test_runner_challenge_filter_is_default_slug(tmp_path, config, write_submission):
    unnamed = write_submission("unnamed.yaml", "code:\n  css: '.box { color: red; }'\n")
    runner = Runner(
        config=config, output_dir=tmp_path / "runs", challenge_filter="styled"
    )
    runner.execute([unnamed])

    assert runner.attempts[0].challenge == "styled"


def test_runner_unknown_filter(tmp_path, config, heading_submissions):
    runner = Runner(config=config, output_dir=tmp_path / "runs", challenge_filter="nope")
    with pytest.raises(ValueError, match="unknown challenge 'nope'"):
        runner.execute(heading_submissions)
    assert not (tmp_path / "runs").exists()


def test_runner_submission_without_slug(tmp_path, config, write_submission):
    unnamed = write_submission("unnamed.yaml", "code:\n  html: '<h1>x</h1>'\n")
    runner = Runner(config=config, output_dir=tmp_path / "runs")
    with pytest.raises(ValueError, match="no challengeSlug"):
        runner.execute([unnamed])


def test_runner_submission_with_unknown_slug(tmp_path, config, write_submission):
    stray = write_submission("stray.yaml", "challengeSlug: missing\ncode: {}\n")
    runner = Runner(config=config, output_dir=tmp_path / "runs")
    with pytest.raises(ValueError, match="unknown challenge 'missing'"):
        runner.execute([stray])


def test_runner_default_parallel(tmp_path, config):
    runner = Runner(config=config, output_dir=tmp_path / "runs")
    assert runner.parallel == 1
    assert runner.interrupted is False
    assert runner.attempts == []


def test_runner_interrupt_saves_partial_results(
    mocker, tmp_path, config, write_submission
):
    paths = [
        write_submission(
            f"user{i}.yaml",
            f"""\
            challengeSlug: heading
            code:
              html: "<h1>Hello {i}</h1>"
            """,
        )
        for i in range(3)
    ]

    original_as_completed = as_completed

    def mock_as_completed(futures):
        """Yield one completed future then raise KeyboardInterrupt."""
        iterator = original_as_completed(futures)
        yield next(iterator)
        raise KeyboardInterrupt()

    mocker.patch("codequest.runner.as_completed", side_effect=mock_as_completed)

    runner = Runner(config=config, output_dir=tmp_path / "runs")
    run_dir = runner.execute(paths)

    assert runner.interrupted is True
    assert 1 <= len(runner.attempts) <= 3
    assert (run_dir / "results.json").exists()
    assert (run_dir / "junit.xml").exists()

    meta = yaml.safe_load((run_dir / "meta.yaml").read_text())
    assert meta["interrupted"] is True
