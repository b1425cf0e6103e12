import re

SECONDS_RE = re.compile(r'^(\d+)s$')
CLOCK_RE = re.compile(r'^(\d+):(\d{2})$')
MIN_SEC_RE = re.compile(r'^(\d+)m\s*(?:(\d+)s)?$')
BARE_RE = re.compile(r'^(\d+)$')


def parse_duration(text: str) -> int:
    """Seconds for '60s', '1:30', '1m 30s', '1m30s', '2m' or '45'; 0 when unrecognized."""
    s = (text or "").strip()
    m = SECONDS_RE.match(s)
    if m: return int(m.group(1))
    m = CLOCK_RE.match(s)
    if m: return int(m.group(1)) * 60 + int(m.group(2))
    m = MIN_SEC_RE.match(s)
    if m: return int(m.group(1)) * 60 + int(m.group(2) or 0)
    m = BARE_RE.match(s)
    if m: return int(m.group(1))
    return 0


def format_human(seconds: int) -> str:
    mins, secs = divmod(int(seconds), 60)
    if mins == 0: return f"{secs}s"
    if secs == 0: return f"{mins}m"
    return f"{mins}m {secs}s"


def format_clock(seconds: int) -> str:
    mins, secs = divmod(int(seconds), 60)
    return f"{mins}:{secs:02d}"
