"""
proxylogger.constants — Shared Constants
==========================================

Channel names, topics and embed presentation values.  Import from here
instead of duplicating literals in services and cogs.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Per-server channel layout
# ---------------------------------------------------------------------------
CHAT_CHANNEL = "chat-logs"
COMMANDS_CHANNEL = "commands"
JOIN_LEAVE_CHANNEL = "join-leave"

# Creation order matters only for how the channels appear in the category.
SERVER_CHANNELS: tuple[str, ...] = (CHAT_CHANNEL, COMMANDS_CHANNEL, JOIN_LEAVE_CHANNEL)

CHANNEL_TOPICS: dict[str, str] = {
    CHAT_CHANNEL: "Player chat logs - Automatically created by ProxyLogger",
    COMMANDS_CHANNEL: "Player command logs - Automatically created by ProxyLogger",
    JOIN_LEAVE_CHANNEL: "Player join/leave logs - Automatically created by ProxyLogger",
}
DEFAULT_TOPIC = "Automatically created by ProxyLogger"

AUDIT_REASON = "ProxyLogger: per-server log channels"

# Seconds between reconciliation passes
RECONCILE_INTERVAL_SECONDS = 120

# ---------------------------------------------------------------------------
# Embed presentation
# ---------------------------------------------------------------------------
# Headline substrings that mark a join (anything else on JOIN_LEAVE is a leave)
JOIN_MARKERS: tuple[str, ...] = ("JOINED", "SERVER JOIN", " joined")

DIFF_FENCE = "```diff\n"
DIFF_FENCE_DECORATED = "\U0001f4dc **Log Details:**\n```diff\n"  # 📜

FOOTER_TIME_FORMAT = "%b %d %Y %H:%M UTC"

DIVIDERS: tuple[str, ...] = (
    "✧･ﾟ: *✧･ﾟ:* *:･ﾟ✧*:･ﾟ✧･ﾟ:* *:･ﾟ✧*:･ﾟ✧",
    "♡ ♡ ♡ ♡ ♡ ♡ ♡ ♡ ♡ ♡ ♡ ♡ ♡ ♡ ♡ ♡ ♡ ♡",
    "✿｡.:* ☆:**:.｡✿｡.:* ☆:**:.｡✿｡.:* ☆:**:.｡",
    "｡ﾟ•┈୨♡୧┈•ﾟ｡ﾟ•┈୨♡୧┈•ﾟ｡ﾟ•┈୨♡୧┈•ﾟ｡ﾟ•",
    "⋆｡°✩⋆｡˚✩⋆｡°✩⋆｡˚✩⋆｡°✩⋆｡˚✩⋆｡°✩⋆｡˚✩",
    "༺♡༻༺♡༻༺♡༻༺♡༻༺♡༻༺♡༻༺♡༻",
    "✦───✿✿✿───✦───✿✿✿───✦───✿✿✿───✦",
    "╔══ஓ๑♡๑ஓ══╗╔══ஓ๑♡๑ஓ══╗╔══ஓ๑♡๑ஓ══╗",
)
