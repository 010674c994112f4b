"""Shared test fixtures for slidecompose tests."""

from concurrent.futures import Executor, Future

import pytest
import yaml


class ImmediateExecutor(Executor):
    """Runs each task inline so job tests are deterministic."""

    def submit(self, fn, *args, **kwargs):
        future = Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except Exception as e:
            future.set_exception(e)
        return future


@pytest.fixture
def immediate_executor():
    return ImmediateExecutor()


@pytest.fixture
def raw_sections():
    """Three raw sections, 5 + 10 + 8 seconds."""
    return [
        {"type": "title", "title": "Launch Day", "subtitle": "v2.0", "duration": 5},
        {
            "type": "bullet_points",
            "title": "Highlights",
            "points": ["Faster", "Cheaper", "Smaller"],
            "duration": 10,
        },
        {
            "type": "results",
            "title": "Numbers",
            "results": [
                {"metric": "Latency", "value": "-40%"},
                {"metric": "Cost", "value": 12, "icon": "💰"},
                {"metric": "Uptime", "value": "99.9%"},
            ],
            "duration": 8,
        },
    ]


@pytest.fixture
def write_manifest(tmp_path):
    """Write a manifest dict to a YAML file under tmp_path, return its path."""
    def _write(content: dict, name: str = "video.yaml") -> str:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(content, sort_keys=False, allow_unicode=True))
        return str(path)
    return _write
