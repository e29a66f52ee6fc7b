"""Shared fixtures for scanbridge tests."""

import json
import os
import sys
from pathlib import Path

import pytest

from scanbridge.analyzer import AnalyzerManager
from scanbridge.config import Settings, StaticCredentials
from scanbridge.ports import ConnectionDetails
from scanbridge.resource import Resource


# A stand-in for the analyzer binary. It reads the request file, records the
# call, writes a log into AM_LOG_DIRECTORY and answers according to FAKE_*
# environment variables.
FAKE_ANALYZER = '''#!{python}
import json
import os
import shutil
import sys
import time

import yaml

args = sys.argv[1:]
request_path = args[1] if args[0] == "zd" else args[-1]
with open(request_path) as f:
    request = yaml.safe_load(f)

record = os.environ.get("FAKE_RECORD")
if record:
    with open(record, "a") as f:
        f.write(json.dumps({{
            "args": args,
            "request": request,
            "directory": os.path.dirname(request_path),
            "token": os.environ.get("JF_TOKEN"),
            "platform_url": os.environ.get("JF_PLATFORM_URL"),
            "log_dir": os.environ.get("AM_LOG_DIRECTORY"),
        }}) + "\\n")

log_dir = os.environ.get("AM_LOG_DIRECTORY")
if log_dir:
    with open(os.path.join(log_dir, "analyzer-run.log"), "w") as f:
        f.write("analyzer log for " + args[0] + "\\n")

pid_file = os.environ.get("FAKE_PID")
if pid_file:
    with open(pid_file, "w") as f:
        f.write(str(os.getpid()))

sleep = float(os.environ.get("FAKE_SLEEP", "0"))
if sleep:
    time.sleep(sleep)

print("fake analyzer output")
code = int(os.environ.get("FAKE_EXIT", "0"))
if code == 0 and not os.environ.get("FAKE_NO_OUTPUT"):
    output = request["scans"][0]["output"]
    response = os.environ.get("FAKE_RESPONSE")
    if response:
        shutil.copyfile(response, output)
    else:
        with open(output, "w") as f:
            json.dump({{"runs": []}}, f)
sys.exit(code)
'''


def sarif_result(rule_id, uri, start_line=1, start_col=1, end_line=1, end_col=5, *,
                 level="error", message="issue", **extra):
    result = {
        "ruleId": rule_id,
        "level": level,
        "message": {"text": message},
        "locations": [{
            "physicalLocation": {
                "artifactLocation": {"uri": uri},
                "region": {
                    "startLine": start_line, "startColumn": start_col,
                    "endLine": end_line, "endColumn": end_col,
                },
            },
        }],
    }
    result.update(extra)
    return result


def sarif_doc(results, rules=None):
    return {
        "runs": [{
            "tool": {"driver": {"name": "fake", "rules": rules or []}},
            "results": results,
        }],
    }


@pytest.fixture
def settings(tmp_path):
    return Settings(
        home=tmp_path / "home",
        timeout=20.0,
        poll_interval=0.05,
        keep_logs=5,
    )


@pytest.fixture
def fake_binary(settings):
    if sys.platform == "win32":
        pytest.skip("fake analyzer relies on a shebang script")
    path = settings.issues_dir / "analyzerManager" / "test" / "analyzerManager"
    path.parent.mkdir(parents=True)
    path.write_text(FAKE_ANALYZER.format(python=sys.executable))
    path.chmod(0o755)
    return path


@pytest.fixture
def fake_env(tmp_path):
    return {
        "PATH": os.environ.get("PATH", ""),
        "FAKE_RECORD": str(tmp_path / "calls.jsonl"),
    }


@pytest.fixture
def credentials():
    return StaticCredentials(ConnectionDetails(url="https://platform.example", access_token="tok-123"))


@pytest.fixture
def analyzer(settings, fake_binary, fake_env, credentials):
    resource = Resource("", fake_binary)
    return AnalyzerManager(settings, credentials, resource=resource, environ=fake_env)


@pytest.fixture
def respond(tmp_path, fake_env):
    """Make the fake analyzer answer with the given response document."""
    def _respond(doc):
        path = tmp_path / "canned-response.json"
        path.write_text(json.dumps(doc))
        fake_env["FAKE_RESPONSE"] = str(path)
        return path
    return _respond


@pytest.fixture
def calls(fake_env):
    """Read the calls recorded by the fake analyzer."""
    def _calls():
        path = Path(fake_env["FAKE_RECORD"])
        if not path.exists():
            return []
        return [json.loads(line) for line in path.read_text().splitlines() if line]
    return _calls


@pytest.fixture
def project(tmp_path):
    root = tmp_path / "proj"
    root.mkdir()
    (root / "a.py").write_text("print('hello')\n")
    return root
