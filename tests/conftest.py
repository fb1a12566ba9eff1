"""Shared test fixtures for jot."""

import os
import tempfile

import pytest


@pytest.fixture
def tmp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as d:
        yield d


@pytest.fixture
def tmp_config_file(tmp_dir):
    """Create a temporary YAML config file."""
    import yaml

    config_data = {
        "paths": {"data_dir": os.path.join(tmp_dir, "data")},
        "notes": {"directory": os.path.join(tmp_dir, "notes"), "watch": False},
        "backends": {"keep": {"refresh_interval": 30}},
    }
    config_path = os.path.join(tmp_dir, "config.yaml")
    with open(config_path, "w") as f:
        yaml.dump(config_data, f)
    return config_path


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


def write_note_file(directory, filename, note_id, body="Body text\n", author="alice", created=None, extra=""):
    """Write a hand-edited style note file and return its path."""
    created = created or "2021-06-30T04:01:55Z"
    text = f"---\nid: {note_id}\nauthor: {author}\ncreated: {created}\n{extra}---\n{body}"
    path = os.path.join(directory, filename)
    with open(path, "w") as f:
        f.write(text)
    return path


@pytest.fixture
def notes_dir(tmp_dir):
    """A notes directory holding two well-formed notes on consecutive days."""
    directory = os.path.join(tmp_dir, "notes")
    os.makedirs(directory)
    write_note_file(directory, "2021-06-30.md", 1625025715, body="first entry about gardening\n")
    write_note_file(
        directory,
        "2021-07-01.md",
        1625113859,
        body="second entry, plants watered\n",
        created="2021-07-01T04:30:59Z",
        extra="title: Thursday\ntags: [garden, daily]\n",
    )
    return directory


@pytest.fixture
def note_writer():
    return write_note_file
