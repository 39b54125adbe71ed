"""
Database config - Decodes one environment of a Rails-style database.yml
into the parameters needed to launch a mysql client.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_PORT = 3306
REQUIRED_KEYS = ("host", "username", "password", "database")


class ConfigError(Exception):
    description = "Configuration error"


class MalformedConfigError(ConfigError):
    description = "YAML parsing error"

    def __init__(self, diagnostic: str):
        self.diagnostic = diagnostic
        super().__init__(f"YAML parsing error: {diagnostic}")


class EnvironmentNotFoundError(ConfigError):
    description = "Requested environment not found on the YAML file"

    def __init__(self, environment: str):
        self.environment = environment
        super().__init__(f"Environment {environment} not present")


class KeyMissingError(ConfigError):
    description = "Required key not found for environment"

    def __init__(self, key: str, environment: str):
        self.key = key
        self.environment = environment
        super().__init__(f"Required key '{key}' not found for environment '{environment}'")


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader with YAML 1.2 scalars.

    Only `true`/`false` are booleans. Dates and sexagesimal numbers stay
    strings, so `password: off` or `password: 12:30` read as written.
    """


_REPLACED_TAGS = (
    "tag:yaml.org,2002:bool",
    "tag:yaml.org,2002:int",
    "tag:yaml.org,2002:float",
    "tag:yaml.org,2002:timestamp",
)

ConfigLoader.yaml_implicit_resolvers = {
    first: [(tag, regexp) for tag, regexp in resolvers if tag not in _REPLACED_TAGS]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

ConfigLoader.add_implicit_resolver(
    "tag:yaml.org,2002:bool",
    re.compile(r"^(?:true|false)$"),
    list("tf"))

ConfigLoader.add_implicit_resolver(
    "tag:yaml.org,2002:int",
    re.compile(r"^(?:[-+]?[0-9]+|0x[0-9a-fA-F]+|0o[0-7]+)$"),
    list("-+0123456789"))

ConfigLoader.add_implicit_resolver(
    "tag:yaml.org,2002:float",
    re.compile(r"""^(?:[-+]?(?:[0-9][0-9_]*)\.[0-9_]*(?:[eE][-+][0-9]+)?
                    |\.[0-9][0-9_]*(?:[eE][-+][0-9]+)?
                    |[-+]?\.(?:inf|Inf|INF)
                    |\.(?:nan|NaN|NAN))$""", re.X),
    list("-+0123456789."))


def _construct_int(loader, node):
    value = loader.construct_scalar(node)
    if value.startswith("0x"):
        return int(value[2:], 16)
    if value.startswith("0o"):
        return int(value[2:], 8)
    # leading zeros are decimal, not YAML 1.1 octal
    return int(value, 10)


ConfigLoader.add_constructor("tag:yaml.org,2002:int", _construct_int)


def _as_port(value: Any) -> int:
    # bool is an int subclass but `port: true` is not a port
    if not isinstance(value, int) or isinstance(value, bool):
        return DEFAULT_PORT
    port = value & 0xFFFF
    if port != value:
        logger.warning(f"Port {value} is outside 0..65535, using {port}")
    return port


@dataclass(frozen=True)
class ConnectionParameters:
    host: str
    username: str
    password: str = field(repr=False)
    database: str
    port: int = DEFAULT_PORT

    @classmethod
    def from_mapping(cls, section: Any, environment: str) -> "ConnectionParameters":
        """Validate and decode an environment section in a single pass"""
        if not isinstance(section, dict):
            section = {}

        values = {}
        for key in REQUIRED_KEYS:
            value = section.get(key)
            if not isinstance(value, str):
                raise KeyMissingError(key, environment)
            values[key] = value

        return cls(port=_as_port(section.get("port")), **values)


def _first_document(text: str) -> Optional[Any]:
    # The whole stream must parse; only the first document is consulted
    documents = list(yaml.load_all(text, Loader=ConfigLoader))
    if not documents:
        raise MalformedConfigError("no YAML document found")
    return documents[0]


def parse(text: str, environment: str) -> ConnectionParameters:
    """Resolve the connection parameters for `environment` from YAML text.

    Raises MalformedConfigError, EnvironmentNotFoundError or KeyMissingError.
    """
    try:
        doc = _first_document(text)
    except yaml.YAMLError as e:
        raise MalformedConfigError(str(e)) from e

    if not isinstance(doc, dict) or environment not in doc:
        raise EnvironmentNotFoundError(environment)

    return ConnectionParameters.from_mapping(doc[environment], environment)
