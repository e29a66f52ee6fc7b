"""Run log collection and retention."""

import os
import time
from unittest.mock import patch

from scanbridge.logs import clean_old_logs, copy_run_log, find_run_log, log_file_name


def _age(path, seconds_ago):
    t = time.time() - seconds_ago
    os.utime(path, (t, t))


class TestLogFileName:
    def test_name_parts(self):
        name = log_file_name(["/work/proj", "/work/lib"], "sast", 1700000000123)
        assert name == "proj_lib-sast-1700000000123.log"

    def test_default_timestamp(self):
        name = log_file_name(["/work/proj"], "iac")
        assert name.startswith("proj-iac-")
        assert name.endswith(".log")


class TestCopyRunLog:
    def test_no_log_is_noop(self, tmp_path):
        run_dir = tmp_path / "run"
        run_dir.mkdir()
        (run_dir / "request").write_text("scans: []")
        assert copy_run_log(run_dir, tmp_path / "logs", ["/p"], "sast") is None
        assert not (tmp_path / "logs").exists()

    def test_log_found_case_insensitively(self, tmp_path):
        run_dir = tmp_path / "run"
        run_dir.mkdir()
        (run_dir / "request").write_text("scans: []")
        (run_dir / "AnalyzerLOG.txt").write_text("details")
        assert find_run_log(run_dir).name == "AnalyzerLOG.txt"

    def test_copies_into_logs_dir(self, tmp_path):
        run_dir = tmp_path / "run"
        run_dir.mkdir()
        (run_dir / "am.log").write_text("details")
        target = copy_run_log(run_dir, tmp_path / "logs", ["/work/proj"], "secrets")
        assert target.parent == tmp_path / "logs"
        assert target.name.startswith("proj-secrets-")
        assert target.read_text() == "details"

    def test_missing_run_directory(self, tmp_path):
        assert find_run_log(tmp_path / "gone") is None


class TestRetention:
    def test_keeps_newest(self, tmp_path):
        for i in range(6):
            path = tmp_path / f"{i}.log"
            path.write_text(str(i))
            _age(path, 100 - i)
        removed = clean_old_logs(tmp_path, keep=3)
        assert removed == 3
        assert sorted(p.name for p in tmp_path.iterdir()) == ["3.log", "4.log", "5.log"]

    def test_under_cap_untouched(self, tmp_path):
        for i in range(2):
            (tmp_path / f"{i}.log").write_text("x")
        assert clean_old_logs(tmp_path, keep=5) == 0
        assert len(list(tmp_path.iterdir())) == 2

    def test_tolerates_concurrent_deletion(self, tmp_path):
        for i in range(4):
            path = tmp_path / f"{i}.log"
            path.write_text("x")
            _age(path, 100 - i)
        real_remove = os.remove

        def racing_remove(path):
            real_remove(path)
            if str(path).endswith("0.log"):
                raise FileNotFoundError(path)

        with patch("scanbridge.logs.os.remove", side_effect=racing_remove):
            removed = clean_old_logs(tmp_path, keep=2)
        assert removed == 1
        assert sorted(p.name for p in tmp_path.iterdir()) == ["2.log", "3.log"]

    def test_retention_applied_on_copy(self, tmp_path):
        logs = tmp_path / "logs"
        logs.mkdir()
        for i in range(3):
            path = logs / f"old-{i}.log"
            path.write_text("x")
            _age(path, 1000 - i)
        run_dir = tmp_path / "run"
        run_dir.mkdir()
        (run_dir / "run.log").write_text("new")
        target = copy_run_log(run_dir, logs, ["/p"], "eos", keep=2)
        names = sorted(p.name for p in logs.iterdir())
        assert len(names) == 2
        assert target.name in names
        assert "old-2.log" in names
