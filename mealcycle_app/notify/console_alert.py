"""Terminal alert sink."""

import json
import sys
from datetime import datetime, timezone
from typing import IO, Optional

from .base import AlertSink, AlertUrgency

BELL = "\a"


class ConsoleAlertSink(AlertSink):
    """Rings the terminal bell as the tone and prints the alert."""

    def __init__(
        self,
        name: str = "console",
        stream: Optional[IO[str]] = None,
        output_format: str = "pretty",
        tone: bool = True
    ):
        super().__init__(name)
        self.stream = stream or sys.stdout
        self.output_format = output_format
        self.tone = tone

    def emit_alert(self, title: str, body: str, urgency: AlertUrgency) -> None:
        try:
            output = self._format_alert(title, body, urgency)
            if self.tone:
                output = BELL + output
            print(output, file=self.stream, flush=True)
            self._alert_count += 1

            self.logger.info(
                "Alert printed",
                sink=self.name,
                title=title,
                urgency=urgency.value
            )

        except Exception as e:
            self._error_count += 1
            self.logger.error(
                "Failed to print alert",
                sink=self.name,
                title=title,
                error=str(e)
            )

    def _format_alert(self, title: str, body: str, urgency: AlertUrgency) -> str:
        """Format alert for terminal output."""
        timestamp = datetime.now(timezone.utc).isoformat()
        if self.output_format == "pretty":
            marker = "!!" if urgency is AlertUrgency.HIGH else "--"
            return f"[{timestamp}] {marker} {title} {body}"
        return json.dumps({
            "title": title,
            "body": body,
            "urgency": urgency.value,
            "timestamp": timestamp,
        })

    def health_check(self) -> bool:
        """Check if the stream is available."""
        try:
            return self.stream.writable()
        except Exception:
            return False
