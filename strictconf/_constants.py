"""Common literal values shared across strictconf.

These constants keep the dataclass metadata keys and the environment variable
naming rule centralized so the shape validator, decoder, env overlay, and tests
agree on the same spelling. Intended for internal use within strictconf.

Examples
--------
>>> from strictconf import _constants
>>> _constants.YAML_TAG_KEY
'yaml'
>>> bool(_constants.ENV_VAR_RE.fullmatch("APP_PORT"))
True
>>> bool(_constants.ENV_VAR_RE.fullmatch("app_port"))
False
"""

import re

YAML_TAG_KEY = "yaml"
ENV_TAG_KEY = "env"

ENV_VAR_PATTERN = r"^[A-Z_][A-Z0-9_]*$"
ENV_VAR_RE = re.compile(ENV_VAR_PATTERN)

ENV_NULL = "null"

FLOAT32_MAX = 3.4028234663852886e38
