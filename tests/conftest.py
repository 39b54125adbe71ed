import os
import pytest

from bkf_mysql.launcher import config_file_path

SAMPLE_YAML = """\
production:
  host: db.example.com
  username: app
  password: secret
  database: appdb
staging:
  host: staging-db.example.com
  port: 3307
  username: app_staging
  password: staging-secret
  database: appdb_staging
"""


@pytest.fixture
def sample_yaml():
    return SAMPLE_YAML


@pytest.fixture
def provisioning(tmp_path, monkeypatch):
    """Provisioning tree under tmp_path, wired up through BKF_PROVISIONING_PATH"""
    root = str(tmp_path / "provisioning")
    monkeypatch.setenv("BKF_PROVISIONING_PATH", root)
    monkeypatch.delenv("MYSQL_EXECUTABLE", raising=False)

    def write(project, environment, contents=SAMPLE_YAML):
        path = config_file_path(project, environment, root)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        mode = "wb" if isinstance(contents, bytes) else "w"
        with open(path, mode) as f:
            f.write(contents)
        return path

    write.root = root
    return write


class FakeClient:
    """Stands in for subprocess.Popen; records argv and exits with `returncode`"""

    def __init__(self):
        self.commands = []
        self.returncode = 0

    def __call__(self, cmd):
        self.commands.append(cmd)
        return self

    def wait(self):
        return self.returncode


@pytest.fixture
def fake_client(monkeypatch):
    from bkf_mysql import launcher

    client = FakeClient()
    monkeypatch.setattr(launcher.subprocess, "Popen", client)
    return client
