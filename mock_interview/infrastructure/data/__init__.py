"""
Data structures for recordings and their transcripts.
"""

from .recordings import AudioChunk, TranscriptSegment, TranscriptAccumulator

__all__ = [
    'AudioChunk',
    'TranscriptSegment',
    'TranscriptAccumulator'
]
