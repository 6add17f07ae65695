"""Config."""

# fmt:off

from collections import namedtuple
import os
from typing import Any, Dict, MutableMapping, Optional, Union


DEFAULT_MONGODB_URI = 'mongodb://localhost:27017/test'


class ConfigValidationError(Exception):
    pass


ConfigParamSpec = namedtuple('ConfigParamSpec', 'default env_adapter description')


def _env_bool(value: str) -> bool:
    return value.strip().lower() not in ('', '0', 'false', 'no', 'off')


class Config(Dict[str, Optional[Union[bool, int, str]]]):
    SPEC = {
        'DEBUG': ConfigParamSpec(
            False, _env_bool, 'debug mode (set to "" or unset to disable)'
        ),
        'MONGODB_AUTH_SOURCE_DB': ConfigParamSpec(
            None, str, 'The database to authenticate on, if not given in the URI'
        ),
        'MONGODB_SERVER_SELECTION_TIMEOUT_MS': ConfigParamSpec(
            30000, int, 'How long to wait for a reachable MongoDB server'
        ),
        'MONGODB_URI': ConfigParamSpec(
            DEFAULT_MONGODB_URI, str, 'MongoDB URI; the database to profile is taken from its path'
        ),
    }

    def __init__(self) -> None:
        super().__init__([(name, spec.default) for name, spec in self.SPEC.items()])

    def update_from_env(self, env: Optional[MutableMapping[str, str]] = None) -> None:
        if env is None:
            env = os.environ
        for name, spec in self.SPEC.items():
            if name in env:
                self[name] = spec.env_adapter(env[name])

    def __setitem__(self, key: str, val: Any) -> None:
        if key not in self.SPEC:
            raise ConfigValidationError(f'{key} is not a valid configuration parameter')
        else:
            super().__setitem__(key, val)

    def update(self, *args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        for key, val in dict(*args, **kwargs).items():
            self[key] = val

    def loggable(self) -> Dict[str, Any]:
        """Get a copy of the config that is safe to write to the log."""
        ret = dict(self)
        ret['MONGODB_URI'] = redact_uri(str(self['MONGODB_URI']))
        return ret


def redact_uri(uri: str) -> str:
    """Replace the password in a MongoDB URI, if any, with 'REDACTED'."""
    scheme, sep, rest = uri.partition('://')
    if not sep:
        return uri
    creds, at, hosts = rest.rpartition('@')
    if not at or ':' not in creds:
        return uri
    user = creds.split(':', 1)[0]
    return f'{scheme}://{user}:REDACTED@{hosts}'
