from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import yaml

from codequest.config import (
    ChallengeConfig,
    CurriculumConfig,
    SubmissionFile,
    load_submission,
)
from codequest.evaluator import EvaluationResult, evaluate
from codequest.metrics import AttemptSummary, aggregate_attempts, summarize_attempt
from codequest.verbose import setup_logger


@dataclass
class GradedAttempt:
    index: int
    name: str
    path: str
    challenge: str
    result: EvaluationResult
    summary: AttemptSummary

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "path": self.path,
            "challenge": self.challenge,
            "evaluation": self.result.to_dict(),
            "attempt": self.summary.to_dict(),
        }


@dataclass
class _Job:
    index: int
    path: Path
    submission: SubmissionFile
    challenge: ChallengeConfig


class Runner:
    """Grades a batch of submission files against a challenge set."""

    def __init__(
        self,
        config: CurriculumConfig,
        output_dir: Path,
        challenge_filter: str | None = None,
        verbose: bool = False,
        parallel: int = 1,
    ):
        self.config = config
        self.output_dir = output_dir
        self.challenge_filter = challenge_filter
        self.verbose = verbose
        self.parallel = parallel
        self.interrupted = False
        self.attempts: list[GradedAttempt] = []

    def _plan(self, submissions: list[Path]) -> list[_Job]:
        """Load every submission and resolve its challenge before grading starts."""
        if self.challenge_filter is not None:
            try:
                self.config.get(self.challenge_filter)
            except KeyError:
                raise ValueError(
                    f"unknown challenge '{self.challenge_filter}'"
                ) from None

        jobs: list[_Job] = []
        for path in submissions:
            submission = load_submission(path)
            slug = submission.challenge_slug or self.challenge_filter
            if slug is None:
                raise ValueError(
                    f"{path}: no challengeSlug in submission and no --challenge given"
                )
            if self.challenge_filter is not None and slug != self.challenge_filter:
                continue
            try:
                challenge = self.config.get(slug)
            except KeyError:
                raise ValueError(f"{path}: unknown challenge '{slug}'") from None
            jobs.append(
                _Job(index=len(jobs), path=path, submission=submission, challenge=challenge)
            )
        return jobs

    def execute(self, submissions: list[Path]) -> Path:
        """Grade all submissions. Returns the run directory."""
        jobs = self._plan(submissions)

        run_id = datetime.now(timezone.utc).strftime("%Y-%m-%d_%H%M%S")
        run_dir = self.output_dir / run_id
        run_dir.mkdir(parents=True, exist_ok=True)

        logger = setup_logger(
            run_dir / "debug.log", verbose=self.verbose, logger_name="codequest_main"
        )
        logger.debug("Starting grading run")

        print(f"Grading {len(jobs)} submission(s) with parallelism {self.parallel}...")

        graded: list[GradedAttempt] = []
        with ThreadPoolExecutor(max_workers=self.parallel) as executor:
            future_to_job = {
                executor.submit(self._grade, job, run_dir, logger): job for job in jobs
            }

            completed_count = 0
            try:
                for future in as_completed(future_to_job):
                    job = future_to_job[future]
                    attempt = future.result()
                    graded.append(attempt)

                    completed_count += 1
                    status = "PASS" if attempt.summary.is_completed else "FAIL"
                    print(
                        f"  [{completed_count}/{len(future_to_job)}] {status}  "
                        f"{attempt.name} -> {job.challenge.slug} "
                        f"({attempt.summary.tests_passed}/{attempt.summary.total_tests} rules, "
                        f"score {attempt.result.score})"
                    )
            except KeyboardInterrupt:
                self.interrupted = True
                logger.warning(
                    "Run interrupted by user (Ctrl+C). Cancelling pending submissions and saving partial results..."
                )

                cancelled_count = 0
                for future in future_to_job:
                    # this only cancels submissions not yet started
                    if future.cancel():
                        cancelled_count += 1
                logger.info(f"Cancelled {cancelled_count} pending submission(s).")

                collected = {a.index for a in graded}
                for future, job in future_to_job.items():
                    if job.index in collected:
                        continue
                    if future.done() and not future.cancelled():
                        try:
                            graded.append(future.result(timeout=0))
                        except Exception as e:
                            logger.debug(f"Failed to collect result for {job.path}: {e}")

        graded.sort(key=lambda a: a.index)
        self.attempts = graded
        self._write_results(run_dir, graded)

        logger.debug(f"Grading run finished: {len(graded)}/{len(jobs)} graded")
        return run_dir

    def _grade(
        self, job: _Job, run_dir: Path, logger: logging.Logger
    ) -> GradedAttempt:
        """Evaluate one submission against its challenge."""
        name = job.submission.name or job.path.stem
        challenge = job.challenge

        # note: logger name must be unique per submission to avoid handler collision
        attempt_logger = setup_logger(
            debug_file=run_dir / "submissions" / f"{job.index:03d}-{name}" / "debug.log",
            verbose=self.verbose,
            logger_name=f"codequest_{challenge.slug}_{job.index}",
        )
        logger.debug(f"Grading '{name}' against challenge '{challenge.slug}'")

        result = evaluate(
            job.submission.code,
            challenge.rules,
            challenge.solution,
            logger=attempt_logger,
        )
        summary = summarize_attempt(result, xp_reward=challenge.xp_reward)

        attempt_logger.debug(
            f"'{name}' on '{challenge.slug}': {summary.tests_passed}/{summary.total_tests} "
            f"rules passed, score {result.score}, completed={summary.is_completed}"
        )

        return GradedAttempt(
            index=job.index,
            name=name,
            path=str(job.path),
            challenge=challenge.slug,
            result=result,
            summary=summary,
        )

    def _write_results(self, run_dir: Path, graded: list[GradedAttempt]) -> None:
        """Write results.json, junit.xml and meta.yaml to the run directory."""
        from codequest.reporting.junit import write_junit

        submissions = [a.to_dict() for a in graded]
        challenges = {
            slug: agg.to_dict() for slug, agg in aggregate_attempts(graded).items()
        }
        (run_dir / "results.json").write_text(
            json.dumps(
                {"submissions": submissions, "challenges": challenges},
                indent=2,
                ensure_ascii=False,
            ),
            encoding="utf-8",
        )

        write_junit(run_dir, submissions)

        try:
            import importlib.metadata

            codequest_version = importlib.metadata.version("codequest")
        except Exception:
            codequest_version = "unknown"

        meta: dict[str, Any] = {
            "run_id": run_dir.name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "challenges": list(challenges),
            "submissions": len(submissions),
            "codequest_version": codequest_version,
        }
        if self.interrupted:
            meta["interrupted"] = True

        (run_dir / "meta.yaml").write_text(yaml.dump(meta, default_flow_style=False))
