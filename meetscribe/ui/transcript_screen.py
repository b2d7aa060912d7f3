"""Rich live view of a recording session: state, elapsed time, level and transcript."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np
from pubsub import pub
from rich.align import Align
from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..audio.visualizer import LEVEL_TOPIC
from ..models.events import SessionEvent
from ..models.session import SessionResult, SessionState
from ..models.transcription import TranscriptSegment
from ..services.recording_controller import (
    ERROR_TOPIC,
    SEGMENT_TOPIC,
    STATE_TOPIC,
    RecordingSessionController,
)
from .keyboard_input import create_input_handler

logger = logging.getLogger(__name__)

_STATE_STYLES = {
    SessionState.IDLE.value: ("⏹️  IDLE", "bold yellow"),
    SessionState.ACTIVE.value: ("🔴 RECORDING", "bold red"),
    SessionState.PAUSED.value: ("⏸️  PAUSED", "bold cyan"),
    SessionState.STOPPING.value: ("⏳ STOPPING", "bold magenta"),
}


@dataclass
class ScreenStatus:
    """What the screen currently shows."""
    state: str = SessionState.IDLE.value
    session_id: Optional[str] = None
    peak_level: float = 0.0
    segments_received: int = 0
    failed_segments: int = 0
    full_text: str = ""
    errors: List[str] = field(default_factory=list)


class TranscriptScreen:
    """Terminal recording interface driven by the session controller's events."""

    def __init__(self, controller: RecordingSessionController, console: Optional[Console] = None):
        self.controller = controller
        self.console = console or Console()
        self.status = ScreenStatus()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._done: Optional[asyncio.Event] = None

        pub.subscribe(self._on_level, LEVEL_TOPIC)
        pub.subscribe(self._on_state, STATE_TOPIC)
        pub.subscribe(self._on_error, ERROR_TOPIC)
        pub.subscribe(self._on_segment, SEGMENT_TOPIC)

    # Event handlers (all run on the event loop thread)

    def _on_level(self, samples: np.ndarray) -> None:
        self.status.peak_level = float(np.abs(samples).max()) if samples.size else 0.0

    def _on_state(self, event: SessionEvent) -> None:
        self.status.state = event.state
        self.status.session_id = event.session_id
        if event.state == SessionState.IDLE.value and self._done is not None:
            self._done.set()

    def _on_error(self, event: SessionEvent) -> None:
        self.status.errors.append(event.error)
        self.status.errors = self.status.errors[-3:]

    def _on_segment(self, segment: TranscriptSegment, full_text: str) -> None:
        self.status.segments_received += 1
        if segment.is_error_fallback:
            self.status.failed_segments += 1
        self.status.full_text = full_text

    # Rendering

    def render(self) -> Layout:
        layout = Layout()
        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="main", ratio=1),
            Layout(name="footer", size=3),
        )
        layout["main"].split_row(
            Layout(name="audio_panel", ratio=1),
            Layout(name="transcript_panel", ratio=2),
        )

        label, style = _STATE_STYLES.get(self.status.state, (self.status.state, "bold"))
        header = Text.assemble(
            ("🎙️  MeetScribe", "bold blue"), "  |  ", (label, style),
            "  |  ", f"Session: {self.status.session_id or 'None'}",
        )
        layout["header"].update(Panel(Align.center(header), style="bright_blue"))

        audio_table = Table(title="🎵 Audio Monitor", show_header=True, header_style="bold magenta")
        audio_table.add_column("Metric", style="cyan")
        audio_table.add_column("Value", style="white")
        elapsed = self.controller.elapsed_seconds
        audio_table.add_row("Elapsed", f"{elapsed // 60:02d}:{elapsed % 60:02d}")
        audio_table.add_row("Segments", str(self.status.segments_received))
        audio_table.add_row("Failed", str(self.status.failed_segments))
        audio_table.add_row("Uploads in flight", str(self.controller.pending_upload_count))
        peak_bar = "█" * int(self.status.peak_level * 20)
        audio_table.add_row("Level", f"{peak_bar:<20} {self.status.peak_level:.2f}")
        for error in self.status.errors:
            audio_table.add_row(Text("Error", style="red"), Text(error[:60], style="red"))
        layout["audio_panel"].update(Panel(audio_table, border_style="green"))

        if self.status.full_text:
            transcript = Text(self.status.full_text[-2000:], style="white")
        else:
            transcript = Text("Listening... the transcript appears here.", style="dim white italic")
        layout["transcript_panel"].update(Panel(transcript, title="📝 Transcript", border_style="blue"))

        controls = Text.assemble(
            ("Controls: ", "bold"),
            ("P", "bold cyan"), " Pause/Resume  ",
            ("S", "bold yellow"), " Stop  ",
            ("Ctrl+C", "bold red"), " Stop",
        )
        layout["footer"].update(Panel(Align.center(controls), style="bright_black"))
        return layout

    # Control

    def handle_key_input(self, key: str) -> bool:
        """Keyboard-thread callback. Returns False once a stop was requested."""
        if key == 'p':
            self._loop.call_soon_threadsafe(self._toggle_pause)
            return True
        if key in ('s', 'q'):
            self._loop.call_soon_threadsafe(self._request_stop)
            return False
        logger.debug(f"Unhandled key: '{key}'")
        return True

    def _toggle_pause(self) -> None:
        if self.controller.state is SessionState.ACTIVE:
            self._loop.create_task(self.controller.pause())
        elif self.controller.state is SessionState.PAUSED:
            self._loop.create_task(self.controller.resume())

    def _request_stop(self) -> None:
        if self.controller.state.in_progress and self.controller.stop_task is None:
            self.controller.stop_task = self._loop.create_task(self.controller.stop())

    async def run(self, title: Optional[str] = None,
                  duration: Optional[float] = None) -> Optional[SessionResult]:
        """Record until stopped by key, by ``duration`` or by a forced stop.

        Returns:
            The session result, or None if recording never started
        """
        self._loop = asyncio.get_running_loop()
        self._done = asyncio.Event()

        if not await self.controller.start(title=title):
            self.console.print(f"❌ Could not start recording: {'; '.join(self.status.errors)}",
                               style="bold red")
            return None

        input_handler = create_input_handler(self.handle_key_input)
        input_handler.start()
        if duration:
            self._loop.call_later(duration, self._request_stop)

        try:
            with Live(self.render(), console=self.console, refresh_per_second=10, screen=True) as live:
                while not self._done.is_set():
                    live.update(self.render())
                    try:
                        await asyncio.wait_for(self._done.wait(), timeout=0.1)
                    except asyncio.TimeoutError:
                        pass
        finally:
            input_handler.stop()
            if self.controller.state.in_progress:
                self._request_stop()
            if self.controller.stop_task is not None:
                await self.controller.stop_task

        result = self.controller.last_result
        if result is not None:
            self._print_result(result)
        return result

    def _print_result(self, result: SessionResult) -> None:
        style = "bold green" if result.complete else "bold yellow"
        self.console.print(
            f"✅ Session {result.session_id}: {result.segment_count} segments, "
            f"{result.elapsed_seconds}s, saved={result.persisted}",
            style=style,
        )
        for error in result.errors:
            self.console.print(f"⚠️  {error}", style="yellow")
        if result.transcript:
            self.console.print(Panel(result.transcript, title="📝 Transcript", border_style="blue"))
