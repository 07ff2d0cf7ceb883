"""
Diamond DAO Constants

Fixed governance and diamond-cut parameters, plus the handful of settings that
may be overridden from a local .env file (state/config paths and logging).
"""
import re
from dotenv import dotenv_values

# Read once at import; values are strings, missing keys fall back below
_config = dotenv_values(".env")

LOG_MAX_FILE_SIZE = 10 * 1024 * 1024 # 10MB
LOG_BACKUP_COUNT = 5

# ==================================================================================
# GOVERNANCE PARAMETERS
# ==================================================================================
# Identities are 20-byte account addresses; the all-zero address is never a signer.
NULL_ADDRESS = '0x' + '00' * 20

# Window after creation during which a cut proposal accepts votes.
DEFAULT_PROPOSAL_EXPIRATION_SECONDS = 7 * 24 * 60 * 60  # 7 days

# First id handed out by a fresh proposal store.
FIRST_PROPOSAL_ID = 1

# ==================================================================================
# DIAMOND CUT PARAMETERS
# ==================================================================================
SELECTOR_BYTES = 4

# Facet cut action numbering follows the diamond standard (Add, Replace, Remove).
FACET_CUT_ADD = 0
FACET_CUT_REPLACE = 1
FACET_CUT_REMOVE = 2

# ==================================================================================
# VALIDATION PATTERNS
# ==================================================================================
# Regex pattern for validating hexadecimal strings
VALID_HEX_PATTERN = re.compile(r'^[0-9a-fA-F]*$')

# Function selectors are 0x-prefixed 4-byte hex strings
VALID_SELECTOR_PATTERN = re.compile(r'^0x[0-9a-fA-F]{8}$')

# ==================================================================================
# STATE FILE
# ==================================================================================
STATE_FORMAT_VERSION = 1

# ==================================================================================
# ENVIRONMENT-BACKED SETTINGS
# ==================================================================================
class ConfigString(str):
    """str value from .env that remembers the built-in default."""

    def __new__(cls, value, default):
        obj = super().__new__(cls, value)
        obj._default = default
        return obj

    def default(self):
        return self._default

class ConfigBool(int):
    """Boolean value from .env that remembers the built-in default."""

    def __new__(cls, value, default):
        obj = super().__new__(cls, bool(value))
        obj._default = default
        return obj

    def default(self):
        return self._default

    def __repr__(self):
        return repr(int(self) != 0)

    __str__ = __repr__

    def __eq__(self, other):
        return (int(self) != 0) == other

    def __hash__(self):
        return hash(int(self) != 0)

_BOOL_LITERALS = {"true": True, "false": False}

def parse_bool(raw):
    """Map "true"/"false" in any case to bool; anything else is returned as is."""
    if isinstance(raw, str):
        return _BOOL_LITERALS.get(raw.strip().casefold(), raw)
    return raw

def _setting(key, fallback):
    raw = _config.get(key)
    if raw is None:
        raw = fallback
    value, default = parse_bool(raw), parse_bool(fallback)
    if isinstance(value, bool):
        return ConfigBool(value, default)
    return ConfigString(raw, default)

DIAMOND_DAO_STATE_FILE = _setting('DIAMOND_DAO_STATE_FILE', 'diamond_dao_state.json')
DIAMOND_DAO_CONFIG_FILE = _setting('DIAMOND_DAO_CONFIG_FILE', 'diamond_dao.toml')

LOG_LEVEL = _setting('LOG_LEVEL', 'INFO')
LOG_FORMAT = _setting('LOG_FORMAT', '%(asctime)s - %(levelname)s - %(name)s - %(message)s')
LOG_DATE_FORMAT = _setting('LOG_DATE_FORMAT', '%Y-%m-%dT%H:%M:%S')
LOG_CONSOLE_HIGHLIGHTING = _setting('LOG_CONSOLE_HIGHLIGHTING', 'True')
LOG_FILE_OUTPUT = _setting('LOG_FILE_OUTPUT', 'False')
