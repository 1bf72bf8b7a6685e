from datetime import UTC, datetime


def one_liner(s: str, cut_len: int | None = None) -> str:
    s = s.replace("\n", " ")
    while "  " in s:
        s = s.replace("  ", " ")
    return s[:cut_len] if cut_len else s


def utcnow() -> datetime:
    return datetime.now(UTC)
