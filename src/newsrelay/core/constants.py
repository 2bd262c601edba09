"""Application-wide constants.

These are fixed values that don't change between environments.
For configurable values, see config.py Settings and PipelineConfig.
"""

# ─────────────────────────────────────────────────────────────
# Discord webhook limits (platform constraints)
# ─────────────────────────────────────────────────────────────
DISCORD_MAX_EMBEDS_PER_MESSAGE = 10
DISCORD_MAX_TITLE_LENGTH = 256
DISCORD_MAX_DESCRIPTION_LENGTH = 4096
DISCORD_MAX_TOTAL_CHARACTERS = 6000
DISCORD_HTTP_TIMEOUT = 30.0

# ─────────────────────────────────────────────────────────────
# Text handling
# ─────────────────────────────────────────────────────────────
ELLIPSIS = "..."
HTTP_URL_PATTERN = r"^https?://.*"

# ─────────────────────────────────────────────────────────────
# Language detection
# ─────────────────────────────────────────────────────────────
# A foreign language is only rejected above this detector confidence
LANGUAGE_REJECT_CONFIDENCE = 0.90

# ─────────────────────────────────────────────────────────────
# Feed acquisition
# ─────────────────────────────────────────────────────────────
RSS_CONNECT_TIMEOUT = 10.0
RSS_READ_TIMEOUT = 15.0
