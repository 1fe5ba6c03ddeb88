"""Line logger for navigation events.

Each entry is one line, ``[iso timestamp] message | {json data}``, echoed to
stdout, appended to an optional log file and handed to an optional callback.
"""

import json
from datetime import datetime
from typing import Optional, Callable


def format_line(message: str, data: Optional[dict] = None,
                at: Optional[datetime] = None) -> str:
    line = f"[{(at or datetime.now()).isoformat()}] {message}"
    if data:
        # Fixes, enums and routes fall back to their str()
        line += f" | {json.dumps(data, default=str)}"
    return line


class Logger:
    """Logs navigation events to stdout, a file and/or a callback.

    Usable as a context manager; the log file is closed on exit.
    """

    def __init__(self, log_path: Optional[str] = None, callback: Optional[Callable] = None,
                 echo: bool = True, title: Optional[str] = None):
        self.log_path = log_path
        self.callback = callback
        self.echo = echo
        self.file = None
        if log_path:
            self.file = open(log_path, "a")
            self._write_header(title)

    def _write_header(self, title: Optional[str]):
        rule = "=" * 60
        lines = [rule, f"Wayfinder Log - {datetime.now().isoformat()}"]
        if title:
            lines.append(title)
        lines.append(rule)
        self.file.write("\n" + "\n".join(lines) + "\n\n")
        self.file.flush()

    def log(self, message: str, data: Optional[dict] = None) -> str:
        """Log a message with optional structured data"""
        line = format_line(message, data)
        if self.echo:
            print(line)
        if self.file:
            self.file.write(line + "\n")
            self.file.flush()
        if self.callback:
            self.callback(message, data)
        return line

    def close(self):
        if self.file:
            self.file.close()
            self.file = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
