"""Tests for metarepo.core.workdir module."""

import os
import threading
from pathlib import Path

import pytest

from metarepo.core.workdir import working_directory


class TestWorkingDirectory:

    def test_switches_and_restores(self, tmp_path):
        original = Path.cwd()
        with working_directory(tmp_path) as cwd:
            assert Path.cwd() == tmp_path.resolve()
            assert cwd == tmp_path.absolute()
        assert Path.cwd() == original

    def test_creates_missing_directory(self, tmp_path):
        target = tmp_path / "a" / "b"
        with working_directory(target):
            assert Path.cwd() == target.resolve()
        assert target.is_dir()
        assert list(target.iterdir()) == []

    def test_restores_on_error(self, tmp_path):
        original = Path.cwd()
        with pytest.raises(RuntimeError):
            with working_directory(tmp_path):
                raise RuntimeError("boom")
        assert Path.cwd() == original

    def test_nested_scopes(self, tmp_path):
        outer = tmp_path / "outer"
        inner = tmp_path / "inner"
        original = Path.cwd()
        with working_directory(outer):
            with working_directory(inner):
                assert Path.cwd() == inner.resolve()
            assert Path.cwd() == outer.resolve()
        assert Path.cwd() == original

    def test_relative_path_resolved_against_current_dir(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        with working_directory(Path("sub")) as cwd:
            assert cwd == tmp_path.absolute() / "sub"

    def test_scopes_are_serialized_across_threads(self, tmp_path):
        observed = []

        def worker(name):
            target = tmp_path / name
            with working_directory(target):
                # Nobody else may chdir while this scope is held
                for _ in range(50):
                    observed.append(Path(os.getcwd()) == target.resolve())

        threads = [threading.Thread(target=worker, args=(f"t{i}",)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert observed and all(observed)
