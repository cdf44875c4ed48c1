"""Global configuration constants for the ZAO Nexus link toolkit."""

from __future__ import annotations

# Maximum number of tags a single link may carry after any tagging pass.
MAX_TAGS_PER_LINK: int = 10

# A category name becomes a tag when this share of its keywords match...
KEYWORD_MATCH_THRESHOLD: float = 0.7
# ...or when at least this many of them match.
KEYWORD_MATCH_MIN_COUNT: int = 3

# Individual keywords longer than this (or containing a space) become tags.
SIGNIFICANT_KEYWORD_LENGTH: int = 5

# Path segments must be longer than this to be used as a tag.
MIN_PATH_TAG_LENGTH: int = 3

# Upper bound on the co-occurrence list kept per registry entry.
RELATED_TAG_LIMIT: int = 5

DEFAULT_CATEGORY: str = "Uncategorized"
DEFAULT_SUBCATEGORY: str = "General"

DOCUMENT_VERSION: str = "1.0"

# Used when neither --data nor NEXUS_DATA_FILE is supplied.
DEFAULT_DATA_FILE: str = "links.json"
