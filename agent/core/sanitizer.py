from __future__ import annotations

import re


_TAG_RE = re.compile(r"<.*?>")
_SPEAKER_RE = re.compile(r"^You:\s*")
_REPLY_LABEL_RE = re.compile(r"^(?:Assistant:|AI:)")


def clean_message(message: str) -> str:
    """Drop markup and a leading ``You:`` label from a chat message."""
    if not message:
        return ""
    without_tags = _TAG_RE.sub("", message)
    return _SPEAKER_RE.sub("", without_tags, count=1).strip()


def strip_reply_label(reply: str) -> str:
    if not reply:
        return ""
    return _REPLY_LABEL_RE.sub("", reply, count=1).strip()
