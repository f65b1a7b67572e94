"""
Lexical classifier for inbound chat text.

Pure functions, no I/O. Order of checks:

1. leading "/"                 -> COMMAND (wins even if digits follow)
2. CONNECT-XXXXXX              -> CONNECTION_CODE (case-insensitive)
3. "<keyword> <amount> [note]" -> TRANSACTION candidate
4. anything else               -> UNKNOWN
"""

import re
from decimal import Decimal

from chat_ledger.models.connection_code import CODE_PREFIX, CODE_LENGTH
from chat_ledger.money import to_money
from chat_ledger.schemas.message import (
    Candidate,
    Classification,
    CommandName,
    MessageKind,
)


COMMAND_SENTINEL = "/"

# Surface command -> canonical command. Keys are lower-case.
COMMAND_ALIASES: dict[str, CommandName] = {
    "/help": CommandName.HELP,
    "/ช่วยเหลือ": CommandName.HELP,
    "/status": CommandName.STATUS,
    "/สถานะ": CommandName.STATUS,
    "/shortcuts": CommandName.SHORTCUTS,
    "/คำสั่ง": CommandName.SHORTCUTS,
    "/categories": CommandName.CATEGORIES,
    "/หมวดหมู่": CommandName.CATEGORIES,
    "/today": CommandName.SUMMARY_TODAY,
    "/ยอดวันนี้": CommandName.SUMMARY_TODAY,
    "/week": CommandName.SUMMARY_WEEK,
    "/ยอดสัปดาห์": CommandName.SUMMARY_WEEK,
    "/month": CommandName.SUMMARY_MONTH,
    "/ยอดเดือนนี้": CommandName.SUMMARY_MONTH,
    "/all": CommandName.SUMMARY_ALL,
    "/ยอดรวม": CommandName.SUMMARY_ALL,
    "/stats": CommandName.STATS,
    "/สถิติ": CommandName.STATS,
    "/cancel": CommandName.CANCEL,
    "/undo": CommandName.CANCEL,
    "/ยกเลิก": CommandName.CANCEL,
    "/recent": CommandName.RECENT,
    "/รายการล่าสุด": CommandName.RECENT,
    "/record": CommandName.RECORD,
    "/บันทึก": CommandName.RECORD,
    "/clear": CommandName.CLEAR,
    "/เคลียร์ยอด": CommandName.CLEAR,
    "/rename": CommandName.RENAME_GROUP,
    "/ชื่อกลุ่ม": CommandName.RENAME_GROUP,
    "/unlink": CommandName.DELETE_GROUP,
    "/ลบกลุ่ม": CommandName.DELETE_GROUP,
}

CONNECTION_CODE_PATTERN = re.compile(
    rf"{re.escape(CODE_PREFIX)}[A-Z0-9]{{{CODE_LENGTH}}}",
    re.IGNORECASE,
)

# keyword: shortest leading text that is followed by an amount token,
#          so multi-word keywords ("ค่า ไฟ 500") still resolve.
# amount:  digit groups joined by single commas, up to 2 decimals.
# note:    everything after the amount, optional.
CANDIDATE_PATTERN = re.compile(
    r"(?P<keyword>\S.*?)\s+"
    r"(?P<amount>\d+(?:,\d+)*(?:\.\d{1,2})?)"
    r"(?:\s+(?P<note>.*))?",
    re.DOTALL,
)

DIGIT_PATTERN = re.compile(r"\d")


def parse_candidate(text: str) -> Candidate | None:
    """
    Split "<keyword> <amount> [note]" into its parts.

    Returns None when there is no amount token or the amount is
    not strictly positive.
    """
    match = CANDIDATE_PATTERN.fullmatch(text.strip())
    if not match:
        return None

    amount = to_money(Decimal(match.group("amount").replace(",", "")))
    if amount <= 0:
        return None

    note = (match.group("note") or "").strip() or None
    return Candidate(
        keyword=match.group("keyword").strip(),
        amount=amount,
        note=note,
    )


def looks_like_amount(text: str) -> bool:
    """True if the text contains any digit at all."""
    return bool(DIGIT_PATTERN.search(text))


def parse_command(text: str) -> tuple[CommandName, str | None]:
    """Map "/name rest of line" to (canonical command, argument)."""
    parts = text.split(None, 1)
    name = parts[0].lower()
    argument = parts[1].strip() if len(parts) > 1 else None
    return COMMAND_ALIASES.get(name, CommandName.UNKNOWN), argument or None


def classify(text: str) -> Classification:
    """Classify raw message text. Deterministic for every input."""
    text = (text or "").strip()

    if not text:
        return Classification(kind=MessageKind.UNKNOWN, raw_text=text)

    if text.startswith(COMMAND_SENTINEL):
        command, argument = parse_command(text)
        return Classification(
            kind=MessageKind.COMMAND,
            raw_text=text,
            command=command,
            command_argument=argument,
        )

    if CONNECTION_CODE_PATTERN.fullmatch(text):
        return Classification(
            kind=MessageKind.CONNECTION_CODE,
            raw_text=text,
            connection_code=text.upper(),
        )

    candidate = parse_candidate(text)
    if candidate is not None:
        return Classification(
            kind=MessageKind.TRANSACTION,
            raw_text=text,
            candidate=candidate,
            looks_like_amount=True,
        )

    return Classification(
        kind=MessageKind.UNKNOWN,
        raw_text=text,
        looks_like_amount=looks_like_amount(text),
    )
