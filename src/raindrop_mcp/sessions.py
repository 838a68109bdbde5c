import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from .server import RaindropRegistry

logger = logging.getLogger(__name__)

STREAMABLE = "streamable"
SSE = "sse"


@dataclass
class Session:
    id: str
    kind: str
    registry: RaindropRegistry
    transport: Any
    created: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class SessionStore:
    """In-memory map of live HTTP sessions; nothing survives a restart."""

    def __init__(self):
        self._sessions: Dict[str, Session] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def __iter__(self) -> Iterator[Session]:
        return iter(list(self._sessions.values()))

    def add(self, session: Session) -> None:
        self._sessions[session.id] = session
        logger.info("Session %s opened (%s)", session.id, session.kind)

    def get(self, session_id: Optional[str]) -> Optional[Session]:
        if not session_id:
            return None
        return self._sessions.get(session_id)

    def remove(self, session_id: str) -> Optional[Session]:
        session = self._sessions.pop(session_id, None)
        if session is not None:
            logger.info("Session %s closed (%s)", session.id, session.kind)
        return session

    def counts(self) -> Dict[str, int]:
        counts = {STREAMABLE: 0, SSE: 0}
        for session in self._sessions.values():
            counts[session.kind] = counts.get(session.kind, 0) + 1
        counts["total"] = len(self._sessions)
        return counts

    def describe(self) -> List[Dict[str, Any]]:
        return [
            {"id": s.id, "kind": s.kind, "created": s.created.isoformat()}
            for s in self._sessions.values()
        ]
