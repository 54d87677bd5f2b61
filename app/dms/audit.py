from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable, Iterable, Iterator, Mapping
from datetime import datetime, timezone

from app.dms.errors import ValidationError
from app.dms.models import AuditEntry

logger = logging.getLogger(__name__)

AuditPredicate = Callable[[AuditEntry], bool]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditQuery:
    """
    Result of `AuditRecorder.query`.

    Bound to the log as it was when the query was made. Each iteration walks
    that snapshot again, most recent first.
    """

    def __init__(self, snapshot: tuple[AuditEntry, ...], predicate: AuditPredicate | None) -> None:
        self._snapshot = snapshot
        self._predicate = predicate

    def __iter__(self) -> Iterator[AuditEntry]:
        for entry in reversed(self._snapshot):
            if self._predicate is None or self._predicate(entry):
                yield entry


class AuditRecorder:
    """Process-wide, append-only audit log."""

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = _utcnow,
        request_id_provider: Callable[[], str | None] | None = None,
    ) -> None:
        self._entries: list[AuditEntry] = []
        self._lock = threading.Lock()
        self._clock = clock
        self._request_id_provider = request_id_provider

    def record(
        self,
        *,
        actor: str,
        actor_role: str,
        action: str,
        target: str,
        context: Mapping[str, object] | None = None,
        regulatory_mapping: Iterable[str] = (),
        signature_captured: bool = False,
        request_id: str | None = None,
    ) -> AuditEntry:
        """
        Append-only audit event helper.
        """
        actor = (actor or "").strip()
        action = (action or "").strip()
        if not actor:
            raise ValidationError("Audit entry requires an actor.")
        if not action:
            raise ValidationError("Audit entry requires an action.")

        rid = request_id or (self._request_id_provider() if self._request_id_provider else None)
        ctx = {str(k): "" if v is None else str(v) for k, v in (context or {}).items()}
        with self._lock:
            entry = AuditEntry(
                id=uuid.uuid4().hex,
                sequence=len(self._entries) + 1,
                timestamp=self._clock(),
                actor=actor,
                actor_role=(actor_role or "").strip(),
                action=action,
                target=target,
                context=ctx,
                regulatory_mapping=frozenset(regulatory_mapping),
                signature_captured=signature_captured,
                request_id=rid,
            )
            self._entries.append(entry)
        logger.debug("audit %s target=%s actor=%s seq=%s", action, target, actor, entry.sequence)
        return entry

    def query(self, predicate: AuditPredicate | None = None) -> AuditQuery:
        with self._lock:
            snapshot = tuple(self._entries)
        return AuditQuery(snapshot, predicate)

    def trail(self, limit: int | None = None) -> list[AuditEntry]:
        entries = self.query()
        if limit is None or limit <= 0:
            return list(entries)
        out: list[AuditEntry] = []
        for entry in entries:
            if len(out) >= limit:
                break
            out.append(entry)
        return out

    def for_target(self, target: str) -> list[AuditEntry]:
        return list(self.query(lambda e: e.target == target))

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
