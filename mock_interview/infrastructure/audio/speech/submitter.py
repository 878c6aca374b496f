"""
Chunked, best-effort submission of audio chunks to a transcriber.
"""
import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait as wait_futures
from typing import Optional, Set

from ....config import MIN_CHUNK_BYTES, MAX_IN_FLIGHT_CHUNKS
from ...data.recordings import AudioChunk, TranscriptAccumulator, TranscriptSegment

logger = logging.getLogger("transcription_submitter")


class ChunkedTranscriptionSubmitter:
    """
    Sends audio chunks to a transcriber on a bounded worker pool and merges
    the returned text into a TranscriptAccumulator.

    Text is appended in completion order. A failed chunk is logged and
    dropped, never retried, so a lost chunk shortens the transcript instead
    of interrupting the interview. Each chunk is tied to the accumulator
    generation it was submitted under, so a late result never lands in the
    transcript of a newer recording.
    """

    def __init__(self,
                 transcriber,
                 accumulator: Optional[TranscriptAccumulator] = None,
                 min_chunk_bytes: int = MIN_CHUNK_BYTES,
                 max_in_flight: int = MAX_IN_FLIGHT_CHUNKS,
                 event_bus=None,
                 session_id: str = "recording"):
        self.transcriber = transcriber
        self.accumulator = accumulator if accumulator is not None else TranscriptAccumulator()
        self.min_chunk_bytes = min_chunk_bytes
        self.event_bus = event_bus
        self.session_id = session_id
        self.dropped_count = 0
        self.failed_count = 0

        self._executor = ThreadPoolExecutor(max_workers=max(1, max_in_flight),
                                            thread_name_prefix="transcribe")
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()

    @property
    def in_flight(self) -> int:
        with self._lock:
            return len(self._pending)

    def submit(self, chunk: AudioChunk) -> "Future[Optional[TranscriptSegment]]":
        """
        Submit one chunk for transcription.

        Returns:
            Future resolving to the merged TranscriptSegment, or None when the
            chunk was too small, failed, or produced no text
        """
        if chunk.size < self.min_chunk_bytes:
            logger.debug(f"Skipping chunk {chunk.sequence}: {chunk.size} bytes below {self.min_chunk_bytes}")
            self.dropped_count += 1
            skipped: Future = Future()
            skipped.set_result(None)
            return skipped

        future = self._executor.submit(self._transcribe, chunk, self.accumulator.generation)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._discard)
        return future

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def _transcribe(self, chunk: AudioChunk, generation: int) -> Optional[TranscriptSegment]:
        try:
            text = self.transcriber.transcribe(chunk.data, chunk.mime_type)
        except Exception as e:
            with self._lock:
                self.failed_count += 1
            logger.error(f"Chunk {chunk.sequence} transcription failed: {e}")
            self._emit_error(e)
            return None

        text = (text or "").strip()
        if not text:
            logger.debug(f"Chunk {chunk.sequence} returned no text")
            return None

        segment = TranscriptSegment(text=text, sequence=chunk.sequence)
        if not self.accumulator.append(segment, generation):
            logger.info(f"Discarding chunk {chunk.sequence} from an earlier recording: {text}")
            return None
        logger.info(f"Chunk {chunk.sequence} transcribed: {text}")
        self._emit_transcribed(segment)
        return segment

    def wait(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for in-flight submissions.

        Returns:
            True if nothing is left in flight
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                pending = set(self._pending)
            if not pending:
                return True
            remaining = None if deadline is None else deadline - time.monotonic()
            if remaining is not None and remaining <= 0:
                return False
            wait_futures(pending, timeout=remaining)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)

    def _emit_transcribed(self, segment: TranscriptSegment) -> None:
        if self.event_bus is None:
            return
        from ....interview.events import ChunkTranscribedEvent
        self.event_bus.emit(ChunkTranscribedEvent(
            self.session_id, time.time(), segment.sequence, segment.text
        ))

    def _emit_error(self, error: Exception) -> None:
        if self.event_bus is None:
            return
        from ....interview.events import ErrorOccurredEvent
        self.event_bus.emit(ErrorOccurredEvent(
            self.session_id, time.time(), type(error).__name__, str(error), "transcription"
        ))
