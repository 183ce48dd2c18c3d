"""JSON-lines alert log."""

import fcntl
import json
from datetime import datetime, timezone
from pathlib import Path

from .base import AlertSink, AlertUrgency


class FileAlertSink(AlertSink):
    """Appends each alert as one JSON line, e.g. for a companion app to tail."""

    def __init__(self, output_path: str, name: str = "file", create_dirs: bool = True):
        super().__init__(name)
        self.output_path = Path(output_path)

        if create_dirs:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)

    def emit_alert(self, title: str, body: str, urgency: AlertUrgency) -> None:
        record = {
            "title": title,
            "body": body,
            "urgency": urgency.value,
            "emitted_at": datetime.now(timezone.utc).isoformat(),
        }

        try:
            with open(self.output_path, "a", encoding="utf-8") as f:
                fcntl.flock(f.fileno(), fcntl.LOCK_EX)
                try:
                    f.write(json.dumps(record) + "\n")
                    f.flush()
                finally:
                    fcntl.flock(f.fileno(), fcntl.LOCK_UN)
            self._alert_count += 1

            self.logger.info(
                "Alert written to file",
                sink=self.name,
                title=title,
                output_path=str(self.output_path)
            )

        except OSError as e:
            self._error_count += 1
            self.logger.warning(
                "Alert file error",
                sink=self.name,
                output_path=str(self.output_path),
                error=str(e)
            )

    def health_check(self) -> bool:
        """Check if the output directory is writable."""
        return self.output_path.parent.exists()
