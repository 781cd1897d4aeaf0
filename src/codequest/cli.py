from __future__ import annotations

import json
from pathlib import Path

import typer

app = typer.Typer(name="codequest", help="Grade HTML/CSS/JS challenge submissions")
schema_app = typer.Typer(name="schema", help="Generate schema tooling")
app.add_typer(schema_app, name="schema")


def _load_challenges(challenges: str):
    import yaml
    from pydantic import ValidationError

    from codequest.config import load_config

    config_path = Path(challenges)
    if not config_path.exists():
        typer.echo(f"Error: challenge file not found: {challenges}", err=True)
        raise typer.Exit(1)

    try:
        return load_config(config_path)
    except (ValidationError, yaml.YAMLError) as e:
        typer.echo(f"Error: invalid challenge file {challenges}:\n{e}", err=True)
        raise typer.Exit(1)


@app.command()
def check(
    challenges: str = typer.Argument(help="Path to challenge YAML"),
    submission: str = typer.Argument(help="Path to submission YAML/JSON"),
    challenge: str | None = typer.Option(
        None, help="Challenge slug, when the submission does not name one"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log each rule check to stderr"
    ),
):
    """Evaluate one submission and print the result as JSON."""
    import logging
    import sys

    import yaml
    from pydantic import ValidationError

    from codequest.config import load_submission
    from codequest.evaluator import evaluate
    from codequest.metrics import summarize_attempt

    config = _load_challenges(challenges)

    submission_path = Path(submission)
    if not submission_path.exists():
        typer.echo(f"Error: submission file not found: {submission}", err=True)
        raise typer.Exit(1)
    try:
        submission_file = load_submission(submission_path)
    except (ValidationError, ValueError, OSError, yaml.YAMLError) as e:
        typer.echo(f"Error: invalid submission {submission}: {e}", err=True)
        raise typer.Exit(1)

    slug = challenge or submission_file.challenge_slug
    if slug is None:
        typer.echo(
            "Error: submission names no challenge; pass --challenge", err=True
        )
        raise typer.Exit(1)
    try:
        target = config.get(slug)
    except KeyError:
        typer.echo(f"Error: unknown challenge '{slug}'", err=True)
        raise typer.Exit(1)

    logger = logging.getLogger("codequest_check")
    logger.handlers.clear()
    logger.propagate = False
    if verbose:
        logger.setLevel(logging.DEBUG)
        logger.addHandler(logging.StreamHandler(sys.stderr))
    else:
        logger.addHandler(logging.NullHandler())

    result = evaluate(submission_file.code, target.rules, target.solution, logger=logger)
    summary = summarize_attempt(result, xp_reward=target.xp_reward)

    payload = {
        **result.to_dict(),
        **summary.to_dict(),
        "challengeSlug": target.slug,
    }
    typer.echo(json.dumps(payload, indent=2, ensure_ascii=False))


@app.command()
def run(
    challenges: str = typer.Argument(help="Path to challenge YAML"),
    submissions: list[str] = typer.Argument(help="Submission files to grade"),
    challenge: str | None = typer.Option(
        None, help="Grade only this challenge (also the default for unnamed submissions)"
    ),
    output_dir: str = typer.Option("runs", help="Output directory for run results"),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output to terminal"
    ),
    parallel: int = typer.Option(
        1, "--parallel", "-p", min=1, max=100, help="Number of submissions graded in parallel"
    ),
    no_open: bool = typer.Option(
        False, "--no-open", help="Do not open report.html in browser after run"
    ),
):
    """Grade a batch of submissions and write a run directory with reports."""
    import yaml
    from pydantic import ValidationError

    from codequest.reporting.junit import generate_report
    from codequest.runner import Runner

    config = _load_challenges(challenges)

    runner = Runner(
        config=config,
        output_dir=Path(output_dir),
        challenge_filter=challenge,
        verbose=verbose,
        parallel=parallel,
    )

    try:
        run_dir = runner.execute([Path(s) for s in submissions])
    except (ValueError, ValidationError, OSError, yaml.YAMLError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if runner.interrupted:
        typer.echo("Run interrupted. Saving partial results...")

    typer.echo("Generating report...")
    report_path = generate_report(run_dir)

    if runner.interrupted:
        typer.echo(f"Partial run saved: {run_dir}")
    else:
        typer.echo(f"Run complete: {run_dir}")
    typer.echo(f"Report: {report_path}")
    if not verbose:
        typer.echo(f"Debug log: {run_dir / 'debug.log'}")

    if not no_open:
        import webbrowser

        webbrowser.open(report_path.resolve().as_uri())

    # Exit with non-zero if any submission fell short or run was interrupted
    if runner.interrupted:
        raise typer.Exit(1)
    if any(not a.summary.is_completed for a in runner.attempts):
        raise typer.Exit(1)


@app.command()
def report(
    run_dir: str = typer.Argument(help="Path to run output directory"),
    open_report: bool = typer.Option(
        False, "--open", help="Open report.html in browser after generating"
    ),
):
    """Regenerate HTML report from a previous run."""
    from codequest.reporting.junit import generate_report

    run_path = Path(run_dir)
    if not run_path.exists() or not (run_path / "junit.xml").exists():
        typer.echo(f"Error: not a valid run directory: {run_dir}", err=True)
        raise typer.Exit(1)

    report_path = generate_report(run_path)
    typer.echo(f"Report generated: {report_path}")

    if open_report:
        import webbrowser

        webbrowser.open(report_path.resolve().as_uri())


@app.command()
def init(
    dir: str = typer.Option(
        "codequest", "--dir", help="Directory to initialize the challenge project in"
    ),
):
    """Initialize a new challenge project with an example challenge and submission."""
    project_dir = Path(dir)
    project_dir.mkdir(parents=True, exist_ok=True)

    example = project_dir / "challenges.yaml"
    if example.exists():
        typer.echo(f"challenges.yaml already exists in {dir}, skipping.")
        return

    example.write_text("""\
challenges:
  - slug: hello-heading
    title: "Say hello with a heading"
    xp_reward: 50
    rules:
      - kind: element_exists
        description: "Page has an h1 heading"
        selector: h1
        points: 40
      - kind: element_text_contains
        description: "Heading says hello"
        selector: h1
        expected: Hello
        points: 30
      - kind: css_property
        description: "Heading is blue"
        selector: h1
        property: color
        expected: blue
        points: 30
    solution:
      html: "<h1>Hello, World!</h1>"
      css: "h1 { color: blue; }"
""")

    submissions = project_dir / "submissions"
    submissions.mkdir(parents=True, exist_ok=True)
    (submissions / "sample.yaml").write_text("""\
challengeSlug: hello-heading
code:
  html: "<h1>Hello there</h1>"
  css: "h1 { color: blue; }"
""")

    typer.echo(f"Initialized challenge project in {dir}:")
    typer.echo("  challenges.yaml          - example challenge set")
    typer.echo("  submissions/sample.yaml  - example submission")


@schema_app.command("generate")
def schema_generate(
    dir: str = typer.Option(
        "codequest", "--dir", help="Project directory for default schema/doc outputs"
    ),
    out: str | None = typer.Option(
        None,
        help="Output path for JSON Schema (defaults to <dir>/schemas/codequest.schema.json)",
    ),
    doc: str | None = typer.Option(
        None, help="Output path for schema docs (defaults to <dir>/docs/schema.md)"
    ),
):
    """Generate JSON Schema and docs for the challenge YAML format."""
    from codequest.schema import write_json_schema, write_schema_doc

    project_dir = Path(dir)
    out_path = (
        Path(out)
        if out is not None
        else project_dir / "schemas" / "codequest.schema.json"
    )
    doc_path = Path(doc) if doc is not None else project_dir / "docs" / "schema.md"
    write_json_schema(out_path)
    write_schema_doc(doc_path)
    typer.echo(f"Wrote schema: {out_path}")
    typer.echo(f"Wrote docs: {doc_path}")
