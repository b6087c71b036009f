from __future__ import annotations

import re
from collections.abc import Callable
from typing import Optional

from ..errors import MalformedParameterList, UnsupportedEntityOperation
from ..models import (
    Book,
    EntityType,
    Issue,
    MailServerInfo,
    Member,
    OperationType,
    Payload,
)

_VALUES_FRAGMENT_RE = re.compile(r"\bVALUES\s*\((?P<values>.*)\)", re.DOTALL)

# One item of a values list: a quoted literal ('' escapes a quote) or a bare
# token, followed by a comma or the end of the fragment.
_VALUE_ITEM_RE = re.compile(
    r"\s*(?:'(?P<quoted>(?:[^']|'')*)'|(?P<bare>[^,']*?))\s*(?P<sep>,|$)",
    re.DOTALL,
)

# (min, max) number of INSERT values per entity, in positional field order.
_INSERT_ARITY = {
    EntityType.BOOK: (4, 5),        # ID, TITLE, AUTHOR, PUBLISHER[, ISAVAIL]
    EntityType.MEMBER: (4, 4),      # ID, NAME, MOBILE, EMAIL
    EntityType.ISSUE: (2, 4),       # BOOKID, MEMBERID[, ISSUETIME, RENEW_COUNT]
    EntityType.MAIL_SERVER_INFO: (5, 5),  # HOST, PORT, USER, PASSWORD, TLS
}

Rule = Callable[[str, Optional[int]], Payload]


def split_values(fragment: str) -> list[Optional[str]]:
    """
    Tokenise the inside of a ``VALUES(...)`` fragment.

    Quotes are stripped; a bare ``NULL`` decodes to None.

    Raises:
        MalformedParameterList: If the fragment is not a comma separated list
    """
    values: list[Optional[str]] = []
    pos = 0
    while True:
        match = _VALUE_ITEM_RE.match(fragment, pos)
        if match is None:
            raise MalformedParameterList(f"cannot tokenise values list at offset {pos}: {fragment!r}")

        quoted = match.group("quoted")
        if quoted is not None:
            values.append(quoted.replace("''", "'"))
        else:
            bare = match.group("bare").strip()
            values.append(None if bare.upper() == "NULL" else bare)

        if not match.group("sep"):
            return values
        pos = match.end()


def extract_field(statement: str, key: str) -> Optional[str]:
    """
    Return the value of the first ``KEY='VALUE'`` (or ``KEY=bare``) in the statement.

    Quoted literals are consumed as opaque tokens, so ``KEY=`` text inside a
    value never matches. The key is matched case-insensitively on a word
    boundary, so ``ID`` never matches inside ``BOOKID``. Returns None when the
    key is absent.
    """
    pattern = re.compile(
        r"'(?:[^']|'')*'"
        rf"|(?<![\w.])(?P<key>{re.escape(key)})\s*=\s*(?:'(?P<quoted>(?:[^']|'')*)'|(?P<bare>[^\s,')]+))",
        re.IGNORECASE,
    )
    for match in pattern.finditer(statement):
        if match.group("key") is None:
            continue
        quoted = match.group("quoted")
        if quoted is not None:
            return quoted.replace("''", "'")
        return match.group("bare")
    return None


def _require_field(statement: str, key: str) -> str:
    value = extract_field(statement, key)
    if not value:
        raise MalformedParameterList(f"required key {key} missing or empty")
    return value


def _as_flag(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return value.strip().lower() in ("1", "true")


def _insert_values(statement: str, entity_type: EntityType) -> list[Optional[str]]:
    match = _VALUES_FRAGMENT_RE.search(statement)
    if match is None:
        raise MalformedParameterList("INSERT statement has no VALUES(...) fragment")

    values = split_values(match.group("values"))
    low, high = _INSERT_ARITY[entity_type]
    if not low <= len(values) <= high:
        raise MalformedParameterList(
            f"{entity_type.value} INSERT expects {low}-{high} values, got {len(values)}"
        )
    if not values[0]:
        raise MalformedParameterList(f"{entity_type.value} INSERT has an empty identifier")
    # Pad optional trailing slots so rules can index positionally.
    return values + [None] * (high - len(values))


# INSERT rules: positional mapping of the values list.

def _insert_book(statement: str, timestamp: Optional[int]) -> Book:
    id_, title, author, publisher, available = _insert_values(statement, EntityType.BOOK)
    return Book(
        id=id_,
        title=title,
        author=author,
        publisher=publisher,
        is_available=bool(_as_flag(available)),
    )


def _insert_member(statement: str, timestamp: Optional[int]) -> Member:
    id_, name, mobile, email = _insert_values(statement, EntityType.MEMBER)
    return Member(id=id_, name=name, mobile=mobile, email=email)


def _insert_issue(statement: str, timestamp: Optional[int]) -> Issue:
    # A fresh issue always starts unrenewed at the time it was logged.
    book_id, member_id, _, _ = _insert_values(statement, EntityType.ISSUE)
    return Issue(book_id=book_id, member_id=member_id, renew_count="0", issued_at=timestamp or 0)


def _insert_mail_server_info(statement: str, timestamp: Optional[int]) -> MailServerInfo:
    host, port, username, password, tls = _insert_values(statement, EntityType.MAIL_SERVER_INFO)
    try:
        port_number = int(port) if port is not None else None
    except ValueError:
        raise MalformedParameterList(f"MAIL_SERVER_INFO port is not an integer: {port!r}") from None
    return MailServerInfo(
        host=host,
        port=port_number,
        username=username,
        password=password,
        use_tls=bool(_as_flag(tls)),
    )


# UPDATE rules: independent KEY='VALUE' lookups, absent keys stay unset.

def _update_book(statement: str, timestamp: Optional[int]) -> Book:
    return Book(
        id=_require_field(statement, "ID"),
        title=extract_field(statement, "TITLE"),
        author=extract_field(statement, "AUTHOR"),
        publisher=extract_field(statement, "PUBLISHER"),
        is_available=_as_flag(extract_field(statement, "isAvail")),
    )


def _update_member(statement: str, timestamp: Optional[int]) -> Member:
    return Member(
        id=_require_field(statement, "ID"),
        name=extract_field(statement, "NAME"),
        mobile=extract_field(statement, "MOBILE"),
        email=extract_field(statement, "EMAIL"),
    )


def _update_issue(statement: str, timestamp: Optional[int]) -> Issue:
    return Issue(
        book_id=_require_field(statement, "BOOKID"),
        member_id=extract_field(statement, "MEMBERID"),
        renew_count=extract_field(statement, "renew_count"),
        issued_at=timestamp or 0,
    )


def _update_mail_server_info(statement: str, timestamp: Optional[int]) -> MailServerInfo:
    raise UnsupportedEntityOperation("MAIL_SERVER_INFO is never updated")


# DELETE rules: identity (and BOOK display fields) only.

def _delete_book(statement: str, timestamp: Optional[int]) -> Book:
    return Book(
        id=_require_field(statement, "ID"),
        title=extract_field(statement, "TITLE"),
        author=extract_field(statement, "AUTHOR"),
        publisher=extract_field(statement, "PUBLISHER"),
    )


def _delete_member(statement: str, timestamp: Optional[int]) -> Member:
    return Member(id=_require_field(statement, "ID"))


def _delete_issue(statement: str, timestamp: Optional[int]) -> Issue:
    return Issue(book_id=_require_field(statement, "BOOKID"))


def _delete_mail_server_info(statement: str, timestamp: Optional[int]) -> MailServerInfo:
    return MailServerInfo()


RULES: dict[tuple[OperationType, EntityType], Rule] = {
    (OperationType.INSERT, EntityType.BOOK): _insert_book,
    (OperationType.INSERT, EntityType.MEMBER): _insert_member,
    (OperationType.INSERT, EntityType.ISSUE): _insert_issue,
    (OperationType.INSERT, EntityType.MAIL_SERVER_INFO): _insert_mail_server_info,
    (OperationType.UPDATE, EntityType.BOOK): _update_book,
    (OperationType.UPDATE, EntityType.MEMBER): _update_member,
    (OperationType.UPDATE, EntityType.ISSUE): _update_issue,
    (OperationType.UPDATE, EntityType.MAIL_SERVER_INFO): _update_mail_server_info,
    (OperationType.DELETE, EntityType.BOOK): _delete_book,
    (OperationType.DELETE, EntityType.MEMBER): _delete_member,
    (OperationType.DELETE, EntityType.ISSUE): _delete_issue,
    (OperationType.DELETE, EntityType.MAIL_SERVER_INFO): _delete_mail_server_info,
}


def build_payload(
    operation_type: OperationType,
    entity_type: EntityType,
    statement: str,
    timestamp: Optional[int] = None,
) -> Payload:
    """
    Extract the typed payload for one classified statement.

    Raises:
        MalformedParameterList: On a bad values list or a missing required key
        UnsupportedEntityOperation: For pairs that are never converted
    """
    try:
        rule = RULES[(operation_type, entity_type)]
    except KeyError:
        raise UnsupportedEntityOperation(
            f"no rule for {operation_type.value} {entity_type.value}"
        ) from None
    return rule(statement, timestamp)
