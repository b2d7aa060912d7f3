"""Single-key controls for the recording screen."""

import sys
import threading
import logging
from typing import Callable, Optional

logger = logging.getLogger(__name__)

KeyCallback = Callable[[str], bool]


class KeyboardInputHandler:
    """Reads single keypresses on a daemon thread and hands them to a callback.

    The callback returns False to end the loop.
    """

    def __init__(self, callback: KeyCallback, poll_interval: float = 0.1):
        """Initialize keyboard handler.

        Args:
            callback: Receives the lower-cased key; return False to quit
            poll_interval: Seconds to wait for input before re-checking for shutdown
        """
        self.callback = callback
        self.poll_interval = poll_interval
        self.stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self.thread is not None and self.thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self.stop_event.clear()
        self.thread = threading.Thread(target=self._input_loop, daemon=True, name="KeyboardInput")
        self.thread.start()
        logger.info("Keyboard input handler started")

    def stop(self) -> None:
        self.stop_event.set()
        if self.thread and self.thread is not threading.current_thread():
            self.thread.join(timeout=1.0)
        logger.info("Keyboard input handler stopped")

    def _input_loop(self) -> None:
        while not self.stop_event.is_set():
            key = self._get_key()
            if not key:
                continue
            logger.debug(f"Key detected: '{key}'")
            if not self.callback(key):
                logger.info("Callback asked to quit, ending input loop")
                break
        logger.info("Keyboard input loop ended")

    def _get_key(self) -> Optional[str]:
        if sys.platform == "win32":
            return self._get_key_windows()
        return self._get_key_unix()

    def _get_key_windows(self) -> Optional[str]:
        import msvcrt

        if msvcrt.kbhit():
            return msvcrt.getch().decode('utf-8', errors='ignore').lower()
        self.stop_event.wait(self.poll_interval)
        return None

    def _get_key_unix(self) -> Optional[str]:
        import select
        import termios
        import tty

        if not sys.stdin.isatty():
            self.stop_event.wait(self.poll_interval)
            return None

        fd = sys.stdin.fileno()
        old_settings = termios.tcgetattr(fd)
        try:
            # cbreak keeps Ctrl+C working, unlike raw mode
            tty.setcbreak(fd)
            if select.select([sys.stdin], [], [], self.poll_interval)[0]:
                return sys.stdin.read(1).lower()
        finally:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_settings)
        return None


def create_input_handler(callback: KeyCallback) -> KeyboardInputHandler:
    """Create the keyboard handler for the current platform."""
    return KeyboardInputHandler(callback)
