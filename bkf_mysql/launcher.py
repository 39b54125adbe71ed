import logging
import os
import signal
import subprocess
from typing import List, Mapping, Optional

from sqlalchemy.engine import URL

from bkf_mysql.database_config import ConnectionParameters, parse

logger = logging.getLogger(__name__)

DEFAULT_PROVISIONING_PATH = "/home/vagrant/workspace/bankfacil/provisioning"
DEFAULT_MYSQL_EXECUTABLE = "mysql"

PROVISIONING_PATH_VAR = "BKF_PROVISIONING_PATH"
MYSQL_EXECUTABLE_VAR = "MYSQL_EXECUTABLE"

DEPLOY_DIR = os.path.join("application", "roles", "app", "files", "deploy")
CONFIG_FILE = os.path.join("config", "database.yml")

PASSWORD_MASK = "***"


class SpawnError(Exception):
    def __init__(self, executable: str, reason: str):
        self.executable = executable
        super().__init__(f"Could not run {executable}: {reason}")


def provisioning_root(environ: Optional[Mapping[str, str]] = None,
                      default: str = DEFAULT_PROVISIONING_PATH) -> str:
    environ = os.environ if environ is None else environ
    return environ.get(PROVISIONING_PATH_VAR, default)


def mysql_executable(environ: Optional[Mapping[str, str]] = None,
                     default: str = DEFAULT_MYSQL_EXECUTABLE) -> str:
    environ = os.environ if environ is None else environ
    return environ.get(MYSQL_EXECUTABLE_VAR, default)


def config_file_path(project: str, environment: str, root: str) -> str:
    return os.path.join(root, DEPLOY_DIR, project, environment, CONFIG_FILE)


def read_config_from_file(path: str, environment: str) -> ConnectionParameters:
    """Read database.yml and resolve `environment` from it.

    OSError, UnicodeDecodeError and ConfigError are left to the caller.
    """
    logger.debug(f"Reading database config from {path}")
    with open(path, "r", encoding="utf-8") as f:
        contents = f.read()
    return parse(contents, environment)


def connection_url(params: ConnectionParameters) -> URL:
    return URL.create(
        "mysql",
        username=params.username,
        password=params.password,
        host=params.host,
        port=params.port,
        database=params.database,
    )


def build_command(executable: str, params: ConnectionParameters) -> List[str]:
    return [
        executable,
        "--host", params.host,
        "--port", str(params.port),
        "--user", params.username,
        "--database", params.database,
        f"--password={params.password}",
    ]


def masked_command(cmd: List[str]) -> str:
    return " ".join(
        f"--password={PASSWORD_MASK}" if arg.startswith("--password=") else arg
        for arg in cmd
    )


def spawn_mysql(params: ConnectionParameters,
                environ: Optional[Mapping[str, str]] = None) -> int:
    """Run the mysql client on the caller's terminal and wait for it to exit.

    Returns the client's exit code. Raises SpawnError if it cannot be started.
    """
    exe = mysql_executable(environ)
    cmd = build_command(exe, params)

    logger.debug(f"Running: {masked_command(cmd)}")
    try:
        child = subprocess.Popen(cmd)
    except OSError as e:
        raise SpawnError(exe, e.strerror or str(e)) from e

    # Ctrl-C belongs to the client session; the client keeps the default handler
    previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
    try:
        rc = child.wait()
    finally:
        signal.signal(signal.SIGINT, previous)

    logger.debug(f"{exe} exited with code {rc}")
    return rc
