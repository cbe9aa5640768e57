import asyncio
import json
from typing import AsyncGenerator, Optional

from fintable.models.session import SessionSnapshot, SessionState
from fintable.schemas.sse_schemas import SSEEvent, SSEEventType
from fintable.services.session.state_machine import ExtractionSession
from fintable.utils.logging import get_logger

LOGGER = get_logger(__name__)


class SSEManager:
    """Streams session snapshots as server-sent events.

    The current snapshot is always sent first. While a step is running every
    change is pushed, with heartbeats in between; the stream ends once the
    session is idle again.
    """

    def __init__(self, heartbeat_interval: float = 15.0):
        self.heartbeat_interval = heartbeat_interval

    async def stream_session_events(self, session: ExtractionSession) -> AsyncGenerator[str, None]:
        queue = session.subscribe()
        try:
            snapshot = session.snapshot()
            yield self._format_sse(self._create_snapshot_event(snapshot, previous_state=None))
            previous_state = snapshot.state

            while snapshot.is_busy:
                try:
                    snapshot = await asyncio.wait_for(queue.get(), timeout=self.heartbeat_interval)
                except asyncio.TimeoutError:
                    yield self._format_sse(SSEEvent(
                        event_type=SSEEventType.HEARTBEAT,
                        session_id=session.session_id,
                        data={"message": "keep-alive"},
                    ))
                    continue

                yield self._format_sse(self._create_snapshot_event(snapshot, previous_state))
                previous_state = snapshot.state

        except asyncio.CancelledError:
            LOGGER.info(f"SSE connection cancelled for session {session.session_id}")
            raise
        finally:
            session.unsubscribe(queue)

    def _create_snapshot_event(
        self, snapshot: SessionSnapshot, previous_state: Optional[SessionState]
    ) -> SSEEvent:
        if snapshot.state == SessionState.ERROR:
            event_type = SSEEventType.SESSION_FAILED
        elif snapshot.state == previous_state:
            event_type = SSEEventType.SESSION_PROGRESS
        else:
            event_type = SSEEventType.SESSION_STATE

        return SSEEvent(
            event_type=event_type,
            session_id=snapshot.session_id,
            data=snapshot.to_json_dict(),
        )

    def _format_sse(self, event: SSEEvent) -> str:
        """Format an SSEEvent as a raw SSE message."""
        data = event.model_dump(mode="json")
        return f"event: {data['event_type']}\ndata: {json.dumps(data, ensure_ascii=False)}\n\n"
