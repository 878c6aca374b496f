import threading

from mock_interview.errors import TranscriptionError
from mock_interview.infrastructure.audio.speech import ChunkedTranscriptionSubmitter
from mock_interview.infrastructure.data import AudioChunk, TranscriptAccumulator, TranscriptSegment
from mock_interview.interview.events import EventType
from mock_interview.interview.testing import MockTranscriber


def chunk(sequence, size=400, mime_type="audio/wav"):
    return AudioChunk(data=b"\x00" * size, mime_type=mime_type, captured_at_ms=0, sequence=sequence)


def test_chunk_below_minimum_resolves_none_without_request():
    transcriber = MockTranscriber(default="text")
    submitter = ChunkedTranscriptionSubmitter(transcriber)

    future = submitter.submit(chunk(0, size=150))

    assert future.done()
    assert future.result() is None
    assert transcriber.calls == []
    submitter.shutdown()


def test_transcribed_text_is_merged():
    transcriber = MockTranscriber(["hello there"])
    submitter = ChunkedTranscriptionSubmitter(transcriber)

    segment = submitter.submit(chunk(0)).result(timeout=5)

    assert segment == TranscriptSegment(text="hello there", sequence=0)
    assert submitter.accumulator.merged_text == "hello there"
    assert transcriber.calls == [{"size": 400, "mime_type": "audio/wav"}]
    submitter.shutdown()


def test_failed_chunk_is_dropped_not_retried(events):
    bus, seen = events
    transcriber = MockTranscriber([TranscriptionError("503 from speech API"), "second part"])
    submitter = ChunkedTranscriptionSubmitter(transcriber, max_in_flight=1, event_bus=bus)

    first = submitter.submit(chunk(0))
    second = submitter.submit(chunk(1))

    assert first.result(timeout=5) is None
    assert second.result(timeout=5).text == "second part"
    assert submitter.wait(5)
    assert submitter.accumulator.merged_text == "second part"
    assert submitter.failed_count == 1
    assert len(transcriber.calls) == 2
    types = [e.event_type for e in seen]
    assert EventType.ERROR_OCCURRED in types
    assert EventType.CHUNK_TRANSCRIBED in types
    submitter.shutdown()


def test_empty_text_is_dropped():
    submitter = ChunkedTranscriptionSubmitter(MockTranscriber(["   "]))

    assert submitter.submit(chunk(0)).result(timeout=5) is None
    assert len(submitter.accumulator) == 0
    submitter.shutdown()


class BlockingTranscriber:
    def __init__(self):
        self.release = threading.Event()

    def transcribe(self, data, mime_type):
        self.release.wait(5)
        return "late"


def test_wait_reports_in_flight_work():
    transcriber = BlockingTranscriber()
    submitter = ChunkedTranscriptionSubmitter(transcriber, max_in_flight=2)
    submitter.submit(chunk(0))

    assert submitter.in_flight == 1
    assert not submitter.wait(0.05)

    transcriber.release.set()
    assert submitter.wait(5)
    assert submitter.in_flight == 0
    assert submitter.accumulator.merged_text == "late"
    submitter.shutdown()


def test_accumulator_keeps_completion_order_and_rebuilds_capture_order():
    accumulator = TranscriptAccumulator()
    for sequence, text in [(2, "three"), (0, "one"), (1, "two")]:
        accumulator.append(TranscriptSegment(text=text, sequence=sequence))

    assert accumulator.merged_text == "three one two"
    assert accumulator.ordered_text() == "one two three"

    accumulator.reset()
    assert accumulator.merged_text == ""
    assert len(accumulator) == 0


def test_result_from_before_a_reset_is_discarded():
    transcriber = BlockingTranscriber()
    submitter = ChunkedTranscriptionSubmitter(transcriber)
    future = submitter.submit(chunk(0))

    assert submitter.accumulator.reset() == 1
    transcriber.release.set()

    assert future.result(timeout=5) is None
    assert submitter.accumulator.merged_text == ""
    submitter.shutdown()


def test_accumulator_refuses_stale_generation():
    accumulator = TranscriptAccumulator()
    accumulator.reset()

    assert not accumulator.append(TranscriptSegment(text="old", sequence=0), generation=0)
    assert accumulator.append(TranscriptSegment(text="new", sequence=0), generation=1)
    assert accumulator.merged_text == "new"


def test_failures_are_counted_across_workers():
    transcriber = MockTranscriber([TranscriptionError("quota")] * 20)
    submitter = ChunkedTranscriptionSubmitter(transcriber, max_in_flight=4)
    for sequence in range(20):
        submitter.submit(chunk(sequence))

    assert submitter.wait(5)
    assert submitter.failed_count == 20
    submitter.shutdown()
