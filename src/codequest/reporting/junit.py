from __future__ import annotations

from pathlib import Path
from typing import Any

from junitparser import Failure, JUnitXml, TestCase, TestSuite


def write_junit(run_dir: Path, submissions: list[dict[str, Any]]) -> Path:
    """Write junit.xml from graded submission dicts, return path."""
    xml = JUnitXml()

    for submission in submissions:
        evaluation = submission.get("evaluation", {})
        attempt = submission.get("attempt", {})
        challenge = submission.get("challenge", "")

        suite = TestSuite(f"{submission['name']} / {challenge}")

        suite.add_property("score", str(evaluation.get("score", 0)))
        suite.add_property("total_points", str(evaluation.get("totalPoints", 0)))
        suite.add_property("earned_points", str(evaluation.get("earnedPoints", 0)))
        suite.add_property("xp_earned", str(attempt.get("xpEarned", 0)))
        suite.add_property("is_completed", str(attempt.get("isCompleted", False)))

        # Test cases: one per rule
        for rule in evaluation.get("testResults", []):
            case = TestCase(rule["description"])
            case.classname = f"{challenge}.{rule['kind']}"
            if not rule.get("passed", False):
                case.result = Failure(rule.get("message", ""))
            suite.add_testcase(case)

        # Use append (not +=) to preserve properties
        xml.append(suite)

    junit_path = run_dir / "junit.xml"
    xml.write(str(junit_path), pretty=True)
    return junit_path


def generate_report(run_dir: Path) -> Path:
    """Render junit.xml → report.html using Jinja2 template, return path."""
    import json

    import yaml
    from jinja2 import Environment, FileSystemLoader

    junit_path = run_dir / "junit.xml"
    report_path = run_dir / "report.html"

    meta: dict = {}
    meta_path = run_dir / "meta.yaml"
    if meta_path.exists():
        meta = yaml.safe_load(meta_path.read_text()) or {}

    # Per-submission feedback and analysis live in results.json when present
    feedback_by_suite: dict[str, dict[str, Any]] = {}
    results_path = run_dir / "results.json"
    if results_path.exists():
        results = json.loads(results_path.read_text(encoding="utf-8"))
        for submission in results.get("submissions", []):
            key = f"{submission['name']} / {submission['challenge']}"
            evaluation = submission.get("evaluation", {})
            feedback_by_suite[key] = {
                "feedback": evaluation.get("feedback", []),
                "analysis": evaluation.get("codeAnalysis", {}),
            }

    xml = JUnitXml.fromfile(str(junit_path))

    suites = []
    for suite in xml:
        cases = []
        for case in suite:
            result = None
            if case.result:
                result = {
                    "status": type(case.result[0]).__name__,
                    "message": case.result[0].message or "",
                }
            cases.append(
                {"name": case.name, "classname": case.classname, "result": result}
            )

        props = {p.name: p.value for p in suite.properties()}
        extra = feedback_by_suite.get(suite.name, {})

        suites.append(
            {
                "name": suite.name,
                "tests": suite.tests,
                "failures": suite.failures,
                "properties": props,
                "cases": cases,
                "feedback": extra.get("feedback", []),
                "analysis": extra.get("analysis", {}),
            }
        )

    # Group suites by challenge (preserving insertion order)
    challenge_groups: dict[str, list] = {}
    for s in suites:
        parts = s["name"].split(" / ", 1)
        challenge = parts[1] if len(parts) == 2 else s["name"]
        challenge_groups.setdefault(challenge, []).append(s)

    # Highest score first within each challenge
    for group in challenge_groups.values():
        group.sort(key=lambda s: float(s["properties"].get("score", -1)), reverse=True)

    scores = []
    for s in suites:
        raw = s["properties"].get("score")
        if raw is not None:
            try:
                scores.append(float(raw))
            except (ValueError, TypeError):
                pass
    avg_score = round(sum(scores) / len(scores), 1) if scores else None
    completed = sum(1 for s in suites if s["properties"].get("is_completed") == "True")

    tmpl_dir = Path(__file__).parent / "templates"
    env = Environment(loader=FileSystemLoader(str(tmpl_dir)), autoescape=True)
    template = env.get_template("report.html.j2")

    html = template.render(
        challenges=list(challenge_groups.items()),
        total_submissions=len(suites),
        total_completed=completed,
        total_tests=sum(s["tests"] for s in suites),
        total_failures=sum(s["failures"] for s in suites),
        avg_score=avg_score,
        run_dir=str(run_dir),
        meta=meta,
    )
    report_path.write_text(html, encoding="utf-8")
    return report_path
