from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Iterable, List, Set, Union

POLICY_VERSION = "2012-10-17"

READ_ACTIONS = ["s3:GetObject"]
READ_WRITE_ACTIONS = ["s3:GetObject", "s3:PutObject", "s3:DeleteObject"]

_READ = {"s3:GetObject", "s3:*", "*"}
_WRITE = {"s3:PutObject", "s3:DeleteObject", "s3:*", "*"}


@dataclass(frozen=True)
class Private:
    access = "private"


@dataclass(frozen=True)
class PublicRead:
    access = "public-read"


@dataclass(frozen=True)
class PublicReadWrite:
    access = "public-read-write"


@dataclass(frozen=True)
class Custom:
    raw: str
    access = "custom"


BucketPolicy = Union[Private, PublicRead, PublicReadWrite, Custom]

_CANNED = {
    "private": Private(),
    "public-read": PublicRead(),
    "public-read-write": PublicReadWrite(),
}


def policy_for_access(access: str) -> BucketPolicy:
    try:
        return _CANNED[(access or "").strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown access level: {access!r}") from None


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Iterable):
        return [str(v) for v in value]
    return []


def _allowed_actions(statements: Any) -> Set[str]:
    if isinstance(statements, dict):
        statements = [statements]
    actions: Set[str] = set()
    for st in statements or []:
        if not isinstance(st, dict):
            continue
        if str(st.get("Effect", "Allow")) != "Allow":
            continue
        actions.update(_as_list(st.get("Action")))
    return actions


def parse_policy(document: str) -> BucketPolicy:
    """
    Classify a raw policy document.

    Empty or unparseable -> Private. Allowed actions including write or delete
    -> PublicReadWrite; including read only -> PublicRead; any other valid JSON
    -> Custom(raw).
    """
    raw = (document or "").strip()
    if not raw:
        return Private()
    try:
        parsed = json.loads(raw)
    except ValueError:
        return Private()
    if not isinstance(parsed, dict):
        return Custom(raw)

    actions = _allowed_actions(parsed.get("Statement"))
    if actions & _WRITE:
        return PublicReadWrite()
    if actions & _READ:
        return PublicRead()
    return Custom(raw)


def render_policy(bucket: str, policy: BucketPolicy) -> str:
    """Serialize a policy variant. Private renders as "" (no policy)."""
    if isinstance(policy, Custom):
        return policy.raw
    if isinstance(policy, PublicRead):
        actions = READ_ACTIONS
    elif isinstance(policy, PublicReadWrite):
        actions = READ_WRITE_ACTIONS
    else:
        return ""

    return json.dumps(
        {
            "Version": POLICY_VERSION,
            "Statement": [
                {
                    "Effect": "Allow",
                    "Principal": {"AWS": ["*"]},
                    "Action": list(actions),
                    "Resource": [f"arn:aws:s3:::{bucket}/*"],
                }
            ],
        }
    )
