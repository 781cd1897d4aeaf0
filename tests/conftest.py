"""Pytest configuration and fixtures."""

import logging
import textwrap
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def cleanup_loggers():
    """Clean up codequest loggers after each test to prevent name collisions."""
    yield

    loggers_to_remove = [
        name
        for name in logging.Logger.manager.loggerDict.keys()
        if name.startswith("codequest")
    ]

    for name in loggers_to_remove:
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
        del logging.Logger.manager.loggerDict[name]


@pytest.fixture
def challenges_yaml(tmp_path):
    """Write a two-challenge set and return its path."""
    path = tmp_path / "challenges.yaml"
    path.write_text(
        textwrap.dedent("""\
            challenges:
              - slug: heading
                title: Heading
                xp_reward: 50
                rules:
                  - kind: element_exists
                    description: has h1
                    selector: h1
                    points: 50
                  - kind: element_text_contains
                    description: says hello
                    selector: h1
                    expected: Hello
                    points: 50
                solution:
                  html: "<h1>Hello</h1>"
              - slug: styled
                xp_reward: 20
                rules:
                  - kind: css_property
                    description: red box
                    selector: .box
                    property: color
                    expected: red
                    points: 100
        """)
    )
    return path


@pytest.fixture
def write_submission(tmp_path):
    """Helper that writes a submission YAML and returns its path."""

    def _write(name: str, content: str) -> Path:
        directory = tmp_path / "submissions"
        directory.mkdir(exist_ok=True)
        p = directory / name
        p.write_text(textwrap.dedent(content))
        return p

    return _write
