"""Speech backends and the narrator that drives them.

Two interchangeable backends implement :class:`SpeechBackend`: the local
system voice (pyttsx3) and hosted audio (OpenAI speech played through
sounddevice). The :class:`Narrator` picks one per the learner's profile and
falls back to the local voice whenever the hosted path fails.
"""
from __future__ import annotations

import asyncio
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Protocol, Sequence, Union

import numpy as np
from loguru import logger

from echolingo.core.cancellation import CancellationToken, OperationCancelled
from echolingo.core.narration import INTER_SEGMENT_PAUSE_SECONDS, Segment, compose
from echolingo.schemas.records import SentenceItem, SpeechProfile, VocabularyItem
from echolingo.services.tts import PCM_SAMPLE_RATE, OpenAISpeechClient
from echolingo.utils.exceptions import SpeechBackendError, SpeechProviderError


class SpeechBackend(Protocol):
    """Protocol shared by speech backend implementations."""

    name: str

    async def speak(self, segment: Segment, token: CancellationToken) -> None:  # pragma: no cover - interface definition
        """Speak ``segment``; return promptly once ``token`` is cancelled."""

    def pause(self) -> None:  # pragma: no cover - interface definition
        """Pause in place (or interrupt, if the engine cannot pause)."""

    def resume(self) -> None:  # pragma: no cover - interface definition
        """Continue after :meth:`pause`."""

    def stop(self) -> None:  # pragma: no cover - interface definition
        """Silence whatever is sounding."""


class AudioPlayer(Protocol):
    """Plays raw hosted audio."""

    async def play(self, audio: bytes, *, volume: float, token: CancellationToken) -> None:  # pragma: no cover - interface definition
        ...

    def pause(self) -> None:  # pragma: no cover - interface definition
        ...

    def resume(self) -> None:  # pragma: no cover - interface definition
        ...

    def stop(self) -> None:  # pragma: no cover - interface definition
        ...


# ---------------------------------------------------------------------------
# local voice


def _default_engine_factory() -> Any:
    import pyttsx3

    return pyttsx3.init()


class LocalVoiceBackend:
    """System voice through pyttsx3, run in a worker thread.

    pyttsx3 cannot pause mid-utterance, so pausing interrupts the current
    segment and it is spoken again from the start on resume.
    """

    name = "local"
    BASE_WORDS_PER_MINUTE = 200

    def __init__(self, engine_factory: Optional[Callable[[], Any]] = None) -> None:
        self._engine_factory = engine_factory or _default_engine_factory
        self._engine: Any = None
        self._engine_lock = threading.Lock()
        self._resumed = asyncio.Event()
        self._resumed.set()
        self._voice_cache: dict[str, Optional[str]] = {}

    def _get_engine(self) -> Any:
        if self._engine is None:
            try:
                self._engine = self._engine_factory()
            except (ImportError, OSError, RuntimeError) as exc:
                raise SpeechBackendError(f"local speech engine unavailable: {exc}") from exc
        return self._engine

    def _pick_voice(self, engine: Any, bucket: str) -> Optional[str]:
        if bucket in self._voice_cache:
            return self._voice_cache[bucket]
        chosen = None
        for voice in engine.getProperty("voices") or []:
            languages = " ".join(str(lang).lower() for lang in (getattr(voice, "languages", None) or []))
            haystack = " ".join(
                [(getattr(voice, "id", "") or "").lower(), (getattr(voice, "name", "") or "").lower(), languages]
            )
            if bucket in haystack:
                chosen = voice.id
                break
        self._voice_cache[bucket] = chosen
        return chosen

    def _say(self, segment: Segment) -> None:
        with self._engine_lock:
            engine = self._get_engine()
            engine.setProperty("rate", round(self.BASE_WORDS_PER_MINUTE * segment.rate))
            engine.setProperty("volume", segment.local_volume)
            # pyttsx3 exposes no portable pitch control
            voice = segment.local_voice or self._pick_voice(engine, segment.bucket)
            if voice:
                engine.setProperty("voice", voice)
            engine.say(segment.text)
            engine.runAndWait()

    def _interrupt(self) -> None:
        if self._engine is not None:
            self._engine.stop()

    async def speak(self, segment: Segment, token: CancellationToken) -> None:
        while not token.cancelled:
            try:
                await token.run(self._resumed.wait())
            except OperationCancelled:
                return

            unregister = token.add_callback(self._interrupt)
            try:
                await token.run(asyncio.to_thread(self._say, segment))
            except OperationCancelled:
                return
            except (RuntimeError, OSError) as exc:
                raise SpeechBackendError(f"local speech failed: {exc}") from exc
            finally:
                unregister()

            if self._resumed.is_set():
                return
            # interrupted by pause(): say it again once resumed

    def pause(self) -> None:
        self._resumed.clear()
        self._interrupt()

    def resume(self) -> None:
        self._resumed.set()

    def stop(self) -> None:
        self._resumed.set()
        self._interrupt()


# ---------------------------------------------------------------------------
# hosted audio


class SoundDevicePlayer:
    """Stream 16-bit PCM through sounddevice; pausing holds the position."""

    def __init__(self, sample_rate: int = PCM_SAMPLE_RATE) -> None:
        self.sample_rate = sample_rate
        self._paused = threading.Event()
        self._stream: Any = None

    @staticmethod
    def decode_pcm(audio: bytes, volume: float) -> np.ndarray:
        usable = audio[: len(audio) - len(audio) % 2]
        samples = np.frombuffer(usable, dtype="<i2").astype(np.float32) / 32768.0
        return samples * float(volume)

    async def play(self, audio: bytes, *, volume: float, token: CancellationToken) -> None:
        if token.cancelled or not audio:
            return

        try:
            import sounddevice as sd
        except OSError as exc:
            raise SpeechBackendError(f"audio output unavailable: {exc}") from exc

        samples = self.decode_pcm(audio, volume)
        loop = asyncio.get_running_loop()
        finished = asyncio.Event()
        position = 0

        def fill(outdata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:
            nonlocal position
            if self._paused.is_set():
                outdata.fill(0)
                return
            chunk = samples[position:position + frames]
            outdata[: len(chunk), 0] = chunk
            outdata[len(chunk):, 0] = 0
            position += len(chunk)
            if position >= len(samples):
                raise sd.CallbackStop()

        try:
            stream = sd.OutputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="float32",
                callback=fill,
                finished_callback=lambda: loop.call_soon_threadsafe(finished.set),
            )
        except (sd.PortAudioError, OSError) as exc:
            raise SpeechBackendError(f"audio output unavailable: {exc}") from exc

        self._stream = stream
        unregister = token.add_callback(stream.abort)
        try:
            with stream:
                await token.run(finished.wait())
        except OperationCancelled:
            return
        except sd.PortAudioError as exc:
            raise SpeechBackendError(f"audio playback failed: {exc}") from exc
        finally:
            unregister()
            self._stream = None

    def pause(self) -> None:
        self._paused.set()

    def resume(self) -> None:
        self._paused.clear()

    def stop(self) -> None:
        self._paused.clear()
        if self._stream is not None:
            self._stream.abort()


class HostedVoiceBackend:
    """Fetch audio from the hosted provider and play it locally."""

    name = "hosted"

    def __init__(self, client: OpenAISpeechClient, player: AudioPlayer) -> None:
        self.client = client
        self.player = player

    @property
    def available(self) -> bool:
        return self.client.configured

    async def speak(self, segment: Segment, token: CancellationToken) -> None:
        if not self.available:
            raise SpeechBackendError("hosted speech is not configured")
        try:
            audio = await token.run(
                self.client.synthesize(
                    segment.text,
                    voice=segment.hosted_voice,
                    speed=segment.rate,
                    response_format="pcm",
                )
            )
        except OperationCancelled:
            return
        except SpeechProviderError as exc:
            raise SpeechBackendError(exc.message, exc.details) from exc
        await self.player.play(audio, volume=segment.hosted_volume, token=token)

    def pause(self) -> None:
        self.player.pause()

    def resume(self) -> None:
        self.player.resume()

    def stop(self) -> None:
        self.player.stop()


# ---------------------------------------------------------------------------
# narrator


@dataclass
class NarrationReport:
    """Outcome of narrating one item."""

    item_id: Optional[str] = None
    segments: int = 0
    spoken: int = 0
    fallbacks: int = 0
    failures: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        return not self.failures and not self.cancelled


class Narrator:
    """Speak composed segments with hosted-to-local fallback."""

    FALLBACK_NOTICE_INTERVAL_SECONDS = 4.0

    def __init__(
        self,
        local: SpeechBackend,
        hosted: Optional[SpeechBackend] = None,
        *,
        pause_seconds: float = INTER_SEGMENT_PAUSE_SECONDS,
        on_notice: Optional[Callable[[str], None]] = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.local = local
        self.hosted = hosted
        self.pause_seconds = pause_seconds
        self.on_notice = on_notice
        self._monotonic = monotonic
        self._last_fallback_notice: Optional[float] = None
        self._gate = asyncio.Event()
        self._gate.set()

    @property
    def backends(self) -> list[SpeechBackend]:
        return [backend for backend in (self.local, self.hosted) if backend is not None]

    async def narrate(
        self,
        item: Union[VocabularyItem, SentenceItem],
        profile: SpeechProfile,
        token: CancellationToken,
    ) -> NarrationReport:
        """Compose ``item`` and speak it segment by segment."""
        return await self.speak(compose(item, profile), engine=profile.engine, token=token, item_id=item.id)

    async def speak(
        self,
        segments: Sequence[Segment],
        *,
        engine: str,
        token: CancellationToken,
        item_id: Optional[str] = None,
    ) -> NarrationReport:
        report = NarrationReport(item_id=item_id, segments=len(segments))
        for segment in segments:
            if token.cancelled:
                break
            try:
                await token.run(self._gate.wait())
            except OperationCancelled:
                break
            await self._speak_segment(segment, engine, token, report)
            if not await token.sleep(self.pause_seconds):
                break
        report.cancelled = token.cancelled
        return report

    async def _speak_segment(
        self,
        segment: Segment,
        engine: str,
        token: CancellationToken,
        report: NarrationReport,
    ) -> None:
        if engine == "hosted" and self.hosted is not None:
            try:
                await self.hosted.speak(segment, token)
            except (SpeechBackendError, OSError, RuntimeError) as exc:
                reason = exc.message if isinstance(exc, SpeechBackendError) else str(exc)
                report.fallbacks += 1
                logger.warning("Hosted speech failed, falling back to local voice", error=reason)
                self._notify_fallback(reason)
            else:
                if not token.cancelled:
                    report.spoken += 1
                return

        if token.cancelled:
            return
        try:
            await self.local.speak(segment, token)
        except SpeechBackendError as exc:
            # A failed segment counts as done so one bad voice never stalls a session.
            report.failures.append(exc.message)
            logger.warning("Local speech failed, skipping segment", lang=segment.lang, error=exc.message)
            return
        if not token.cancelled:
            report.spoken += 1

    def _notify_fallback(self, detail: str) -> None:
        now = self._monotonic()
        if (
            self._last_fallback_notice is not None
            and now - self._last_fallback_notice < self.FALLBACK_NOTICE_INTERVAL_SECONDS
        ):
            return
        self._last_fallback_notice = now
        if self.on_notice:
            self.on_notice(f"Hosted speech unavailable, using the local voice: {detail}")

    def pause_all(self) -> None:
        self._gate.clear()
        for backend in self.backends:
            backend.pause()

    def resume_all(self) -> None:
        self._gate.set()
        for backend in self.backends:
            backend.resume()

    def halt(self) -> None:
        self._gate.set()
        for backend in self.backends:
            backend.stop()


__all__ = [
    "SpeechBackend",
    "AudioPlayer",
    "LocalVoiceBackend",
    "SoundDevicePlayer",
    "HostedVoiceBackend",
    "NarrationReport",
    "Narrator",
]
