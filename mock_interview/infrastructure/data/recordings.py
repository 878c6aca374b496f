"""
Recording data structures.
Audio chunks produced by a capture session and the transcript they build up.
"""
import threading
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class AudioChunk:
    """A bounded slice of recorded audio, submitted once for transcription."""
    data: bytes
    mime_type: str
    captured_at_ms: int
    sequence: int

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class TranscriptSegment:
    """Text returned for one chunk."""
    text: str
    sequence: int


@dataclass
class TranscriptAccumulator:
    """
    Running transcript for one recording.

    Segments are appended in completion order, which is not necessarily
    the order the chunks were captured in. ``ordered_text`` rebuilds the
    capture order from the segment sequence numbers.

    ``generation`` counts resets. A segment stamped with an older generation
    belongs to a previous recording and is refused.
    """
    segments: List[TranscriptSegment] = field(default_factory=list)
    merged_text: str = ""
    generation: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def append(self, segment: TranscriptSegment, generation: Optional[int] = None) -> bool:
        """
        Merge a segment into the transcript.

        Returns:
            False if the segment was empty or from an earlier recording
        """
        text = segment.text.strip()
        if not text:
            return False
        with self._lock:
            if generation is not None and generation != self.generation:
                return False
            self.segments.append(TranscriptSegment(text=text, sequence=segment.sequence))
            self.merged_text = f"{self.merged_text} {text}".strip()
            return True

    def reset(self) -> int:
        """Start a new recording. Returns the new generation."""
        with self._lock:
            self.segments = []
            self.merged_text = ""
            self.generation += 1
            return self.generation

    def ordered_text(self) -> str:
        with self._lock:
            ordered = sorted(self.segments, key=lambda s: s.sequence)
        return " ".join(s.text for s in ordered)

    def __len__(self) -> int:
        return len(self.segments)
