"""Signed deletion plans.

A plan is an immutable, tamper-evident declaration of which repositories
an operation targets, who authorized it and when. The fingerprint is a
SHA-256 over a canonical JSON projection of every field except the
fingerprint and signature; the signature is an HMAC-SHA256 over the
fingerprint using the installation's local secret.
"""

import hashlib
import hmac
import json
import logging
import os
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

logger = logging.getLogger(__name__)

SCHEMA_VERSION = "v1"
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


class PlanError(Exception):
    """Plan construction or plan file error."""

    pass


class PlanValidationError(PlanError):
    """A plan failed one or more validation checks.

    Attributes:
        reasons: Every failed check, in evaluation order
    """

    def __init__(self, reasons: list[str]) -> None:
        self.reasons = list(reasons)
        super().__init__("plan validation failed: " + "; ".join(self.reasons))


def _text(data: dict[str, Any], key: str) -> str:
    """String field of a plan object; a missing or null value reads as empty."""
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise PlanError(f"plan field '{key}' must be a string, got {value!r}")
    return value


def format_timestamp(when: datetime) -> str:
    """RFC 3339 UTC timestamp with second precision."""
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return when.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class RepoRecord:
    """One targeted repository as it looked when the plan was made."""

    owner: str
    name: str
    full_name: str = ""
    description: str = ""
    is_private: bool = False
    is_fork: bool = False
    is_archived: bool = False
    updated_at: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "name": self.name,
            "fullName": self.full_name,
            "description": self.description,
            "isPrivate": self.is_private,
            "isFork": self.is_fork,
            "isArchived": self.is_archived,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RepoRecord":
        if not isinstance(data, dict):
            raise PlanError(f"plan repository entries must be objects, got {data!r}")
        return cls(
            owner=_text(data, "owner"),
            name=_text(data, "name"),
            full_name=_text(data, "fullName"),
            description=_text(data, "description"),
            is_private=bool(data.get("isPrivate", False)),
            is_fork=bool(data.get("isFork", False)),
            is_archived=bool(data.get("isArchived", False)),
            updated_at=_text(data, "updatedAt"),
        )

    @property
    def visibility(self) -> str:
        return "private" if self.is_private else "public"


def _normalize_record(record: RepoRecord) -> RepoRecord:
    owner = record.owner.strip()
    name = record.name.strip()
    full_name = record.full_name.strip()
    if not full_name:
        if not owner or not name:
            raise PlanError(
                f"Repository record needs a full name or owner and name: {record!r}"
            )
        full_name = f"{owner}/{name}"
    if not owner or not name:
        head, sep, tail = full_name.partition("/")
        if not sep or not head or not tail:
            raise PlanError(f"Invalid repository full name: {full_name!r}")
        owner = owner or head
        name = name or tail
    return replace(record, owner=owner, name=name, full_name=full_name)


def _sorted_unique(records: Iterable[RepoRecord]) -> list[RepoRecord]:
    seen: set[str] = set()
    unique = []
    for record in sorted(records, key=lambda r: r.full_name):
        if record.full_name in seen:
            logger.debug("Dropping duplicate plan target %s", record.full_name)
            continue
        seen.add(record.full_name)
        unique.append(record)
    return unique


@dataclass
class DeletionPlan:
    """A signed plan. Treat as immutable once signed.

    Attributes:
        schema_version: Plan format version ("v1")
        created_at: RFC 3339 UTC creation timestamp
        actor: Account that authorized the plan
        host: Hosting provider host (e.g. github.com)
        repos: Target records, sorted by full name, de-duplicated
        count: Always len(repos)
        fingerprint: SHA-256 of the canonical projection
        signature: HMAC-SHA256 of the fingerprint
        tool_version: gh-manager version that produced the plan
    """

    schema_version: str
    created_at: str
    actor: str
    host: str
    repos: list[RepoRecord] = field(default_factory=list)
    count: int = 0
    fingerprint: str = ""
    signature: str = ""
    tool_version: str = ""

    @classmethod
    def create(
        cls,
        actor: str,
        host: str,
        tool_version: str,
        repos: Iterable[RepoRecord],
        now: datetime,
    ) -> "DeletionPlan":
        """Build an unsigned plan from a selection of repositories."""
        records = _sorted_unique(_normalize_record(r) for r in repos)
        plan = cls(
            schema_version=SCHEMA_VERSION,
            created_at=format_timestamp(now),
            actor=actor,
            host=host,
            repos=records,
            count=len(records),
            tool_version=tool_version,
        )
        if plan.count != len(plan.repos):
            raise PlanError("plan count does not match its repositories")
        return plan

    def canonical_bytes(self) -> bytes:
        """Canonical projection used for fingerprinting.

        Record order is normalized so a reordered file hashes the same.
        """
        canon = {
            "schemaVersion": self.schema_version,
            "createdAt": self.created_at,
            "actor": self.actor,
            "host": self.host,
            "repos": [
                r.to_dict() for r in sorted(self.repos, key=lambda r: r.full_name)
            ],
            "count": self.count,
            "toolVersion": self.tool_version,
        }
        return json.dumps(canon, separators=(",", ":"), ensure_ascii=False).encode(
            "utf-8"
        )

    def compute_fingerprint(self) -> str:
        return hashlib.sha256(self.canonical_bytes()).hexdigest()

    def sign(self, secret: bytes) -> None:
        """Compute and store the fingerprint and its HMAC signature."""
        if not secret:
            raise PlanError("empty signing secret")
        self.fingerprint = self.compute_fingerprint()
        self.signature = _hmac_hex(secret, self.fingerprint)

    def validation_errors(self, secret: bytes) -> list[str]:
        """Run every validation check and return the reasons that failed."""
        reasons = []
        if self.schema_version != SCHEMA_VERSION:
            reasons.append(f"unsupported schemaVersion: {self.schema_version}")
        if self.count != len(self.repos):
            reasons.append(f"count mismatch: count={self.count} repos={len(self.repos)}")
        try:
            datetime.strptime(self.created_at, TIMESTAMP_FORMAT)
        except (TypeError, ValueError) as e:
            reasons.append(f"invalid createdAt: {e}")

        expected_fingerprint = self.compute_fingerprint()
        if self.fingerprint != expected_fingerprint:
            reasons.append("fingerprint mismatch")

        if not secret:
            reasons.append("empty signing secret")
        else:
            # Against the recomputed fingerprint, not the stored one.
            expected_signature = _hmac_hex(secret, expected_fingerprint)
            if not hmac.compare_digest(
                expected_signature.encode("ascii"),
                self.signature.lower().encode("utf-8"),
            ):
                reasons.append("invalid signature")
        return reasons

    def validate(self, secret: bytes) -> None:
        """Raise PlanValidationError listing every failed check."""
        reasons = self.validation_errors(secret)
        if reasons:
            raise PlanValidationError(reasons)

    def find_repo(self, full_name: str) -> RepoRecord | None:
        for repo in self.repos:
            if repo.full_name == full_name:
                return repo
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "schemaVersion": self.schema_version,
            "createdAt": self.created_at,
            "actor": self.actor,
            "host": self.host,
            "repos": [r.to_dict() for r in self.repos],
            "count": self.count,
            "fingerprint": self.fingerprint,
            "signature": self.signature,
            "toolVersion": self.tool_version,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DeletionPlan":
        repos = data.get("repos") or []
        if not isinstance(repos, list):
            raise PlanError("plan 'repos' must be a list")
        count = data.get("count") or 0
        if isinstance(count, bool) or not isinstance(count, int):
            raise PlanError(f"plan 'count' must be an integer, got {count!r}")
        return cls(
            schema_version=_text(data, "schemaVersion"),
            created_at=_text(data, "createdAt"),
            actor=_text(data, "actor"),
            host=_text(data, "host"),
            repos=[RepoRecord.from_dict(r) for r in repos],
            count=count,
            fingerprint=_text(data, "fingerprint"),
            signature=_text(data, "signature"),
            tool_version=_text(data, "toolVersion"),
        )


def _hmac_hex(secret: bytes, fingerprint: str) -> str:
    return hmac.new(secret, fingerprint.encode("utf-8"), hashlib.sha256).hexdigest()


def write_plan(path: Path | str, plan: DeletionPlan) -> None:
    """Write a plan as indented JSON readable only by the owner."""
    path = Path(path)
    content = json.dumps(plan.to_dict(), indent=2, ensure_ascii=False) + "\n"
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(content)
    logger.debug("Wrote plan %s (%d repos)", path, plan.count)


def read_plan(path: Path | str) -> DeletionPlan:
    """Read a plan file. Validation is the caller's responsibility."""
    path = Path(path)
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise PlanError(f"Invalid plan file {path}: {e}") from e
    except OSError as e:
        raise PlanError(f"Cannot read plan file {path}: {e}") from e

    if not isinstance(data, dict):
        raise PlanError(f"Invalid plan file {path}: expected a JSON object")
    return DeletionPlan.from_dict(data)
