import asyncio

import pytest

from echolingo.services.playback import ReviewSession, StartOutcome, Track
from tests.conftest import FIXED_NOW, FakeNarrator, make_record, wait_for

RECENT = "2024-05-01T11:00:00.000Z"


def _words(count: int = 3) -> list[dict]:
    return [{"id": f"w{index}", "word": f"word{index}", "meaningZh": f"詞{index}"} for index in range(1, count + 1)]


def _sentences() -> list[dict]:
    return [
        {"id": "s1", "sentence": "今日は雨です。", "romaji": "kyou wa ame desu", "meaningZh": "今天下雨"},
        {"id": "s2", "sentence": "明日は晴れです。", "romaji": "ashita wa hare desu", "meaningZh": "明天晴天"},
    ]


def _session(record, narrator, **kwargs) -> ReviewSession:
    return ReviewSession(lambda: record, narrator, clock=lambda: FIXED_NOW, **kwargs)


def _levels(items) -> dict[str, int]:
    return {item.id: item.level for item in items}


@pytest.mark.asyncio
async def test_full_run_advances_every_item() -> None:
    record = make_record(words=_words(), sentences=_sentences())
    narrator = FakeNarrator()
    mutations = []
    session = _session(record, narrator, on_mutate=mutations.append)

    assert session.start(Track.VOCABULARY) is StartOutcome.STARTED
    await session.wait_until_idle()

    assert narrator.calls == ["w1", "w2", "w3"]
    assert _levels(record.vocabulary) == {"w1": 1, "w2": 1, "w3": 1}
    assert all(item.last_reviewed_at == "2024-05-01T12:00:00.000Z" for item in record.vocabulary)
    assert len(mutations) == 3
    snapshot = session.snapshot(Track.VOCABULARY)
    assert not snapshot.running
    assert snapshot.length == 0
    assert narrator.halt_calls == 0


@pytest.mark.asyncio
async def test_empty_group_leaves_tracks_untouched() -> None:
    words = [dict(word, level=2, lastReviewedAt=RECENT) for word in _words(2)]
    record = make_record(words=words, sentences=_sentences())
    narrator = FakeNarrator()
    narrator.hold()
    session = _session(record, narrator)

    session.start(Track.SENTENCES, "all")
    await wait_for(lambda: narrator.calls == ["s1"])

    assert session.start(Track.VOCABULARY, "due") is StartOutcome.EMPTY
    assert session.sentences.state.running
    assert not session.vocabulary.state.running
    assert narrator.halt_calls == 0
    assert not narrator.tokens[0].cancelled

    session.stop_all()
    await session.wait_until_idle()


@pytest.mark.asyncio
async def test_queue_is_a_snapshot_of_the_group() -> None:
    record = make_record(words=_words(2))
    narrator = FakeNarrator()
    narrator.hold()
    session = _session(record, narrator)

    session.start(Track.VOCABULARY, "all")
    await wait_for(lambda: narrator.calls == ["w1"])
    record.vocabulary.insert(0, record.vocabulary[0].model_copy(update={"id": "late", "word": "late"}))

    assert session.snapshot(Track.VOCABULARY).length == 2
    narrator.release()
    await session.wait_until_idle()

    assert narrator.calls == ["w1", "w2"]
    assert _levels(record.vocabulary) == {"late": 0, "w1": 1, "w2": 1}


@pytest.mark.asyncio
async def test_skip_clamps_to_queue_bounds() -> None:
    record = make_record(words=_words())
    narrator = FakeNarrator()
    narrator.hold()
    session = _session(record, narrator)
    session.start(Track.VOCABULARY)
    await wait_for(lambda: narrator.calls == ["w1"])

    assert session.skip(Track.VOCABULARY, -5)
    assert session.snapshot(Track.VOCABULARY).cursor == 0
    assert session.skip(Track.VOCABULARY, 10)
    assert session.snapshot(Track.VOCABULARY).cursor == 2

    await wait_for(lambda: narrator.calls[-1] == "w3")
    session.stop(Track.VOCABULARY)
    await session.wait_until_idle()

    assert narrator.halt_calls == 1
    assert _levels(record.vocabulary) == {"w1": 0, "w2": 0, "w3": 0}


@pytest.mark.asyncio
async def test_skip_mid_item_never_advances_it() -> None:
    record = make_record(words=_words())
    narrator = FakeNarrator()
    narrator.hold()
    session = _session(record, narrator)
    session.start(Track.VOCABULARY)
    await wait_for(lambda: narrator.calls == ["w1"])

    session.skip(Track.VOCABULARY, 1)
    assert narrator.tokens[0].cancelled
    await wait_for(lambda: narrator.calls == ["w1", "w2"])

    narrator.release()
    await session.wait_until_idle()

    assert narrator.calls == ["w1", "w2", "w3"]
    assert _levels(record.vocabulary) == {"w1": 0, "w2": 1, "w3": 1}


@pytest.mark.asyncio
async def test_skip_ignored_when_not_running() -> None:
    session = _session(make_record(words=_words()), FakeNarrator())
    assert session.skip(Track.VOCABULARY, 1) is False


@pytest.mark.asyncio
async def test_stop_invalidates_running_loop() -> None:
    record = make_record(words=_words())
    narrator = FakeNarrator()
    narrator.hold()
    mutations = []
    session = _session(record, narrator, on_mutate=mutations.append)
    session.start(Track.VOCABULARY)
    await wait_for(lambda: narrator.calls == ["w1"])

    session.stop(Track.VOCABULARY)
    narrator.release()
    await session.wait_until_idle()

    assert narrator.calls == ["w1"]
    assert narrator.halt_calls == 1
    assert mutations == []
    assert _levels(record.vocabulary) == {"w1": 0, "w2": 0, "w3": 0}
    assert not session.snapshot(Track.VOCABULARY).running


@pytest.mark.asyncio
async def test_starting_one_track_stops_the_other() -> None:
    record = make_record(words=_words(), sentences=_sentences())
    narrator = FakeNarrator()
    narrator.hold()
    session = _session(record, narrator)
    session.start(Track.VOCABULARY)
    await wait_for(lambda: narrator.calls == ["w1"])

    assert session.start(Track.SENTENCES) is StartOutcome.STARTED
    assert not session.vocabulary.state.running
    assert narrator.tokens[0].cancelled
    assert narrator.halt_calls == 0
    assert session.active_track is session.sentences

    await wait_for(lambda: narrator.calls == ["w1", "s1"])
    narrator.release()
    await session.wait_until_idle()

    assert _levels(record.sentences) == {"s1": 1, "s2": 1}
    assert _levels(record.vocabulary) == {"w1": 0, "w2": 0, "w3": 0}


@pytest.mark.asyncio
async def test_pause_and_resume() -> None:
    record = make_record(words=_words(2))
    narrator = FakeNarrator()
    narrator.hold()
    progress = []
    session = _session(record, narrator, on_progress=progress.append)
    session.start(Track.VOCABULARY)
    await wait_for(lambda: narrator.calls == ["w1"])

    assert session.pause(Track.VOCABULARY)
    assert not session.pause(Track.VOCABULARY)
    assert narrator.pause_calls == 1
    assert progress[-1].paused
    assert session.snapshot(Track.VOCABULARY).current_id == "w1"

    assert session.toggle_pause(Track.VOCABULARY) is False
    assert narrator.resume_calls == 1

    narrator.release()
    await session.wait_until_idle()
    assert _levels(record.vocabulary) == {"w1": 1, "w2": 1}
    assert not progress[-1].running


@pytest.mark.asyncio
async def test_paused_loop_waits_before_next_item() -> None:
    record = make_record(words=_words(2))
    narrator = FakeNarrator()
    narrator.hold()
    session = _session(record, narrator)
    session.start(Track.VOCABULARY)
    await wait_for(lambda: narrator.calls == ["w1"])

    session.pause(Track.VOCABULARY)
    narrator.release()
    await wait_for(lambda: session.snapshot(Track.VOCABULARY).cursor == 1)
    assert narrator.calls == ["w1"]

    session.resume(Track.VOCABULARY)
    await session.wait_until_idle()
    assert narrator.calls == ["w1", "w2"]


@pytest.mark.asyncio
async def test_stop_while_paused_reopens_narrator() -> None:
    record = make_record(words=_words(2))
    narrator = FakeNarrator()
    narrator.hold()
    session = _session(record, narrator)
    session.start(Track.VOCABULARY)
    await wait_for(lambda: narrator.calls == ["w1"])
    session.pause(Track.VOCABULARY)

    session.stop(Track.VOCABULARY, stop_playback=False)
    await session.wait_until_idle()

    assert narrator.resume_calls == 1
    assert narrator.halt_calls == 0


@pytest.mark.asyncio
async def test_pause_ignored_when_not_running() -> None:
    session = _session(make_record(words=_words()), FakeNarrator())
    assert session.pause(Track.VOCABULARY) is False
    assert session.toggle_pause(Track.VOCABULARY) is False


@pytest.mark.asyncio
async def test_segment_failures_are_reported() -> None:
    record = make_record(words=[{"id": "w1", "word": "apple", "meaningZh": "蘋果"}])
    notices = []
    session = _session(record, FakeNarrator(failures=("no voice",)), on_notice=notices.append)

    session.start(Track.VOCABULARY)
    await session.wait_until_idle()

    assert notices == ["Could not speak 1 segment(s) of apple"]
    assert record.vocabulary[0].level == 1


@pytest.mark.asyncio
async def test_preview_never_touches_levels() -> None:
    record = make_record(words=_words(1))
    narrator = FakeNarrator()
    mutations = []
    session = _session(record, narrator, on_mutate=mutations.append)

    report = await session.preview(record.vocabulary[0])

    assert report.item_id == "w1"
    assert report.ok
    assert record.vocabulary[0].level == 0
    assert mutations == []


@pytest.mark.asyncio
async def test_start_cancels_running_preview() -> None:
    record = make_record(words=_words(1))
    narrator = FakeNarrator()
    narrator.hold()
    session = _session(record, narrator)

    preview = asyncio.create_task(session.preview(record.vocabulary[0]))
    await wait_for(lambda: narrator.calls == ["w1"])
    session.start(Track.VOCABULARY)

    report = await preview
    assert report.cancelled
    session.stop_all()
    await session.wait_until_idle()
