"""
Git extraction constants.

Contains the log format, limits, and metadata names used when reading
repositories through the git executable.
"""

# Display-only prefix of the full hash
SHORT_HASH_LENGTH = 7

# Directory (or file, for worktrees and submodules) that marks a repository root
GIT_METADATA_NAME = ".git"

# Safety cap on recursion when no max depth is configured
HARD_MAX_DEPTH = 32

# Seconds before a single git invocation is abandoned
GIT_COMMAND_TIMEOUT = 120

# git log record layout: RS starts a commit, US separates header fields.
# %B is the raw message; numstat lines follow the last separator.
RECORD_SEPARATOR = "\x1e"
FIELD_SEPARATOR = "\x1f"
LOG_FIELDS = ["%H", "%an", "%ae", "%cn", "%ce", "%cI", "%B"]
LOG_FORMAT = "%x1e" + "%x1f".join(LOG_FIELDS) + "%x1f"

# numstat marks binary files with "-" for both counts
BINARY_NUMSTAT_MARKER = "-"

# Remote consulted for owner/name resolution
DEFAULT_REMOTE = "origin"
