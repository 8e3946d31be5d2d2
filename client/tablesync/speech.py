"""Speech queue: one utterance at a time, in order, never overlapping."""

from __future__ import annotations

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from collections import deque
from typing import Optional

logger = logging.getLogger(__name__)

# Pause between utterances so the synthesizer does not clip the next one
SPEECH_COOLDOWN = float(os.getenv("TABLESYNC_SPEECH_COOLDOWN", "0.3"))


class SpeechSynthesizer(ABC):
    """Speaks one utterance; ``speak`` returns when playback finished."""

    @abstractmethod
    async def speak(self, text: str) -> None: ...

    def stop(self) -> None:
        """Halt the utterance in flight, if any."""


class LoggingSynthesizer(SpeechSynthesizer):
    """Headless synthesizer that writes utterances to the log."""

    def __init__(self, name: str = "tablesync.speech.say") -> None:
        self._logger = logging.getLogger(name)

    async def speak(self, text: str) -> None:
        self._logger.info("%s", text)


class SpeechQueue:
    """FIFO of pending utterances drained by a single asyncio worker.

    ``enqueue`` is synchronous and safe to call from any snapshot handler
    running on the event loop.  The next utterance starts only after the
    previous one completed (or failed) and the cooldown elapsed.
    """

    def __init__(self, synthesizer: SpeechSynthesizer, cooldown: float = SPEECH_COOLDOWN) -> None:
        self._synthesizer = synthesizer
        self.cooldown = cooldown
        self._pending: deque[str] = deque()
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._task: Optional[asyncio.Task] = None
        self.speaking = False

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def pending(self) -> list[str]:
        return list(self._pending)

    def enqueue(self, text: str) -> None:
        if not text:
            return
        self._pending.append(text)
        self._idle.clear()
        self._wakeup.set()
        if self._task is None or self._task.done():
            self._task = asyncio.get_running_loop().create_task(self._loop())

    def stop(self) -> None:
        """Drop everything pending and cut off the current utterance."""
        dropped = len(self._pending)
        self._pending.clear()
        if self._task and not self._task.done():
            self._task.cancel()
        self._task = None
        if self.speaking:
            try:
                self._synthesizer.stop()
            except Exception:
                logger.warning("Synthesizer stop failed", exc_info=True)
        self.speaking = False
        self._idle.set()
        if dropped:
            logger.debug("Speech queue stopped, dropped %d utterance(s)", dropped)

    async def join(self) -> None:
        """Wait until nothing is pending or in flight."""
        await self._idle.wait()

    async def _loop(self) -> None:
        try:
            while True:
                if not self._pending:
                    self._idle.set()
                    self._wakeup.clear()
                    await self._wakeup.wait()
                    continue

                text = self._pending.popleft()
                self.speaking = True
                try:
                    await self._synthesizer.speak(text)
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("Speech synthesis failed for %r", text)
                finally:
                    self.speaking = False

                if self.cooldown > 0:
                    await asyncio.sleep(self.cooldown)
        except asyncio.CancelledError:
            pass
