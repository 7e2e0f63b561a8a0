"""Application-wide constants for iam-policy-eval.

Constants that define IAM grammar values and application behavior.
For user-configurable settings, see config.py.
"""

from platformdirs import user_config_dir

# ============================================================================
# Application Directories
# ============================================================================

APP_NAME: str = "iam-policy-eval"

# OS-specific config directory for the optional config.json.
#
# Platform-specific paths:
# - macOS: ~/Library/Application Support/iam-policy-eval/
# - Linux: ~/.config/iam-policy-eval/
CONFIG_DIR: str = user_config_dir(APP_NAME)
CONFIG_FILE_NAME: str = "config.json"

# ============================================================================
# Policy Language Versions
# ============================================================================

# Earlier version of the policy language. Policy variables are treated
# as literal strings under this version.
VERSION_2008_10_17: str = "2008-10-17"

# Current version of the policy language.
VERSION_2012_10_17: str = "2012-10-17"

SUPPORTED_POLICY_VERSIONS: frozenset[str] = frozenset({VERSION_2008_10_17, VERSION_2012_10_17})

# IAM treats a document without a Version element as the 2008 grammar
DEFAULT_POLICY_VERSION: str = VERSION_2008_10_17

# ============================================================================
# Policy Grammar
# ============================================================================

# Top-level elements of a policy document
POLICY_ELEMENTS: frozenset[str] = frozenset({"Version", "Id", "Statement"})

# Elements allowed inside a statement
STATEMENT_ELEMENTS: frozenset[str] = frozenset(
    {
        "Sid",
        "Effect",
        "Principal",
        "NotPrincipal",
        "Action",
        "NotAction",
        "Resource",
        "NotResource",
        "Condition",
    }
)

# Effect literals are case-sensitive
EFFECTS: tuple[str, ...] = ("Allow", "Deny")

# Wildcard accepted in Action, Resource and Principal elements
WILDCARD: str = "*"

# Keys of a Principal object, mapped to the PrincipalBlock field name
PRINCIPAL_TYPES: dict[str, str] = {
    "AWS": "aws",
    "CanonicalUser": "canonical_user",
    "Federated": "federated",
    "Service": "service",
}

# ============================================================================
# Condition Operators
# ============================================================================

# Suffix making an operator vacuously true when the context key is absent
IF_EXISTS_SUFFIX: str = "IfExists"

# Set-operator prefixes for multi-valued context keys.
# "ForAnyValues:" is accepted as an alias of the documented "ForAnyValue:".
FOR_ALL_VALUES_PREFIX: str = "ForAllValues:"
FOR_ANY_VALUE_PREFIXES: tuple[str, ...] = ("ForAnyValue:", "ForAnyValues:")

# ============================================================================
# ARN Structure
# ============================================================================

ARN_PREFIX: str = "arn:"

# arn:partition:service:region:account:resource
ARN_MIN_SEGMENTS: int = 6

# Account IDs are 12 decimal digits
ACCOUNT_ID_LENGTH: int = 12

# ============================================================================
# Logging
# ============================================================================

# Root logger name; components log under "<root>.<component>"
LOGGER_NAME: str = APP_NAME

DEFAULT_LOG_LEVEL: str = "WARNING"
