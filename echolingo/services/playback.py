"""Review playback: one queue state machine per track.

A :class:`ReviewSession` owns the vocabulary and sentence tracks. Each
:class:`ReviewTrack` freezes a snapshot of the selected items on ``start``
and narrates them one by one in a background task. Every ``start``, ``skip``
and ``stop`` bumps the track's ``run_id`` so an older drive loop notices it is
stale after its next await and leaves without touching anything.
"""
from __future__ import annotations

import asyncio
import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional, Protocol, Union

from loguru import logger

from echolingo.core.cancellation import CancellationToken
from echolingo.core.grouping import GROUP_DUE, select_group
from echolingo.core.srs.intervals import advance
from echolingo.schemas.records import SentenceItem, SpeechProfile, UserDataRecord, VocabularyItem
from echolingo.services.speech import NarrationReport
from echolingo.utils.timestamps import utc_now

StudyItem = Union[VocabularyItem, SentenceItem]


class Track(str, Enum):
    VOCABULARY = "vocabulary"
    SENTENCES = "sentences"


class StartOutcome(str, Enum):
    STARTED = "started"
    EMPTY = "empty"


@dataclass
class ReviewQueueState:
    """Mutable queue state for one track."""

    queue: list[StudyItem] = field(default_factory=list)
    cursor: int = 0
    running: bool = False
    paused: bool = False
    run_id: int = 0

    @property
    def current(self) -> Optional[StudyItem]:
        if 0 <= self.cursor < len(self.queue):
            return self.queue[self.cursor]
        return None


@dataclass(frozen=True)
class QueueSnapshot:
    """Read-only progress view for display."""

    track: Track
    cursor: int
    length: int
    running: bool
    paused: bool
    current_id: Optional[str] = None


class ReviewNarrator(Protocol):
    async def narrate(
        self, item: StudyItem, profile: SpeechProfile, token: CancellationToken
    ) -> NarrationReport:  # pragma: no cover - interface definition
        ...

    def pause_all(self) -> None:  # pragma: no cover - interface definition
        ...

    def resume_all(self) -> None:  # pragma: no cover - interface definition
        ...

    def halt(self) -> None:  # pragma: no cover - interface definition
        ...


class ReviewTrack:
    """Queue, cursor and drive loop for one track."""

    def __init__(self, track: Track, session: "ReviewSession") -> None:
        self.track = track
        self.state = ReviewQueueState()
        self._session = session
        # Set while not paused; the drive loop waits on it instead of polling.
        self._unpaused = asyncio.Event()
        self._unpaused.set()
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None

    def live_items(self, record: UserDataRecord) -> list[StudyItem]:
        return record.vocabulary if self.track is Track.VOCABULARY else record.sentences

    def is_current(self, run_id: int) -> bool:
        return self.state.running and self.state.run_id == run_id

    def snapshot(self) -> QueueSnapshot:
        current = self.state.current if self.state.running else None
        return QueueSnapshot(
            track=self.track,
            cursor=self.state.cursor,
            length=len(self.state.queue),
            running=self.state.running,
            paused=self.state.paused,
            current_id=current.id if current else None,
        )

    # ------------------------------------------------------------ transitions

    def select(self, group_key: Optional[str]) -> list[StudyItem]:
        record = self._session.record()
        return select_group(self.live_items(record), group_key, self._session.clock())

    def begin(self, items: list[StudyItem]) -> None:
        state = self.state
        state.queue = [item.model_copy(deep=True) for item in items]
        state.cursor = 0
        state.running = True
        state.paused = False
        state.run_id += 1
        self._unpaused.set()
        self._cancel_item()
        self._launch()
        self._session._report_progress(self)

    def pause(self) -> bool:
        if not self.state.running or self.state.paused:
            return False
        self.state.paused = True
        self._unpaused.clear()
        self._session.narrator.pause_all()
        self._session._report_progress(self)
        return True

    def resume(self) -> bool:
        if not self.state.running or not self.state.paused:
            return False
        self.state.paused = False
        self._unpaused.set()
        self._session.narrator.resume_all()
        self._session._report_progress(self)
        return True

    def toggle_pause(self) -> bool:
        """Flip pause; returns the new ``paused`` value."""
        if self.state.paused:
            self.resume()
        else:
            self.pause()
        return self.state.paused

    def skip(self, step: int) -> bool:
        state = self.state
        if not state.running or not state.queue:
            return False
        state.cursor = max(0, min(state.cursor + step, len(state.queue) - 1))
        was_paused = state.paused
        state.paused = False
        self._unpaused.set()
        state.run_id += 1
        self._cancel_item()
        if was_paused:
            self._session.narrator.resume_all()
        self._launch()
        self._session._report_progress(self)
        return True

    def stop(self, stop_playback: bool = True) -> None:
        state = self.state
        was_paused = state.paused
        state.queue = []
        state.cursor = 0
        state.running = False
        state.paused = False
        state.run_id += 1
        self._unpaused.set()
        self._cancel_item()
        if stop_playback:
            self._session.narrator.halt()
        elif was_paused:
            self._session.narrator.resume_all()
        self._session._report_progress(self)

    # -------------------------------------------------------------- internals

    def _cancel_item(self) -> None:
        if self._token is not None:
            self._token.cancel()
            self._token = None

    def _launch(self) -> None:
        run_id = self.state.run_id
        task = asyncio.create_task(self._drive(run_id), name=f"review-{self.track.value}-{run_id}")
        self._task = task
        self._session._track_task(task)

    async def _drive(self, run_id: int) -> None:
        session = self._session
        try:
            while self.is_current(run_id) and self.state.cursor < len(self.state.queue):
                if self.state.paused:
                    await self._unpaused.wait()
                    continue

                item = self.state.queue[self.state.cursor]
                token = CancellationToken()
                self._token = token
                report = await session.narrator.narrate(item, session.record().speech, token)
                if self._token is token:
                    self._token = None

                if not self.is_current(run_id) or token.cancelled:
                    logger.debug("Stale review iteration abandoned", track=self.track.value, run_id=run_id)
                    return

                if report.failures:
                    session._notice(
                        f"Could not speak {len(report.failures)} segment(s) of {_label(item)}"
                    )
                self._mark_reviewed(item)
                self.state.cursor += 1
                session._report_progress(self)

            if self.is_current(run_id):
                logger.info("Review finished", track=self.track.value, items=len(self.state.queue))
                self.stop(stop_playback=False)
        except Exception:
            logger.exception("Review loop failed", track=self.track.value, run_id=run_id)
            if self.is_current(run_id):
                self.stop(stop_playback=False)

    def _mark_reviewed(self, item: StudyItem) -> None:
        record = self._session.record()
        items = self.live_items(record)
        for index, live in enumerate(items):
            if live.id == item.id:
                items[index] = advance(live, now=self._session.clock())
                self._session._mutated(record)
                return
        logger.debug("Reviewed item no longer present", track=self.track.value, item_id=item.id)


def _label(item: StudyItem) -> str:
    return item.word if isinstance(item, VocabularyItem) else item.sentence


class ReviewSession:
    """Both review tracks for one learner; at most one runs at a time."""

    def __init__(
        self,
        record: Callable[[], UserDataRecord],
        narrator: ReviewNarrator,
        *,
        clock: Callable[[], dt.datetime] = utc_now,
        on_mutate: Optional[Callable[[UserDataRecord], None]] = None,
        on_notice: Optional[Callable[[str], None]] = None,
        on_progress: Optional[Callable[[QueueSnapshot], None]] = None,
    ) -> None:
        self.record = record
        self.narrator = narrator
        self.clock = clock
        self.on_mutate = on_mutate
        self.on_notice = on_notice
        self.on_progress = on_progress
        self.tracks = {
            Track.VOCABULARY: ReviewTrack(Track.VOCABULARY, self),
            Track.SENTENCES: ReviewTrack(Track.SENTENCES, self),
        }
        self._tasks: set[asyncio.Task] = set()
        self._preview_token: Optional[CancellationToken] = None

    def track(self, track: Union[Track, str]) -> ReviewTrack:
        return self.tracks[Track(track)]

    @property
    def vocabulary(self) -> ReviewTrack:
        return self.tracks[Track.VOCABULARY]

    @property
    def sentences(self) -> ReviewTrack:
        return self.tracks[Track.SENTENCES]

    @property
    def active_track(self) -> Optional[ReviewTrack]:
        for review in self.tracks.values():
            if review.state.running:
                return review
        return None

    def start(self, track: Union[Track, str], group_key: Optional[str] = GROUP_DUE) -> StartOutcome:
        """Freeze the group's items and begin narrating them.

        An empty group leaves both tracks exactly as they were.
        """
        target = self.track(track)
        items = target.select(group_key)
        if not items:
            logger.info("Nothing to review", track=target.track.value, group=group_key)
            return StartOutcome.EMPTY

        for other in self.tracks.values():
            if other is not target and other.state.running:
                other.stop(stop_playback=False)
        self.cancel_preview()
        target.begin(items)
        logger.info("Review started", track=target.track.value, group=group_key, items=len(items))
        return StartOutcome.STARTED

    def pause(self, track: Union[Track, str]) -> bool:
        return self.track(track).pause()

    def resume(self, track: Union[Track, str]) -> bool:
        return self.track(track).resume()

    def toggle_pause(self, track: Union[Track, str]) -> bool:
        return self.track(track).toggle_pause()

    def skip(self, track: Union[Track, str], step: int) -> bool:
        return self.track(track).skip(step)

    def stop(self, track: Union[Track, str], stop_playback: bool = True) -> None:
        self.track(track).stop(stop_playback)

    def stop_all(self, stop_playback: bool = True) -> None:
        for review in self.tracks.values():
            if review.state.running:
                review.stop(stop_playback=False)
        self.cancel_preview()
        if stop_playback:
            self.narrator.halt()

    def snapshot(self, track: Union[Track, str]) -> QueueSnapshot:
        return self.track(track).snapshot()

    async def preview(self, item: StudyItem) -> NarrationReport:
        """Narrate one item outside any queue; never touches review levels."""
        self.cancel_preview()
        token = CancellationToken()
        self._preview_token = token
        try:
            return await self.narrator.narrate(item, self.record().speech, token)
        finally:
            if self._preview_token is token:
                self._preview_token = None

    def cancel_preview(self) -> None:
        if self._preview_token is not None:
            self._preview_token.cancel()
            self._preview_token = None

    async def wait_until_idle(self) -> None:
        """Wait for every drive loop started so far to return."""
        while self._tasks:
            await asyncio.wait(set(self._tasks))

    async def aclose(self) -> None:
        self.stop_all(stop_playback=True)
        await self.wait_until_idle()

    # -------------------------------------------------------------- callbacks

    def _track_task(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _mutated(self, record: UserDataRecord) -> None:
        if self.on_mutate:
            self.on_mutate(record)

    def _notice(self, message: str) -> None:
        logger.info("Review notice", message=message)
        if self.on_notice:
            self.on_notice(message)

    def _report_progress(self, review: ReviewTrack) -> None:
        if self.on_progress:
            self.on_progress(review.snapshot())


__all__ = [
    "Track",
    "StartOutcome",
    "ReviewQueueState",
    "QueueSnapshot",
    "ReviewTrack",
    "ReviewSession",
]
