"""
Structured logging for the local storage engine.
Only identifiers and sizes are logged, never stored values.
"""

import logging
from typing import Any, Dict, List


class StructuredLogger:
    """Structured logger for store, router and maintenance operations."""

    def __init__(self, name: str = "devstore"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def set_debug(self, enabled: bool) -> None:
        self.logger.setLevel(logging.DEBUG if enabled else logging.INFO)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None, level: int = logging.DEBUG):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.log(level, message)

    def log_kv_operation(self, operation: str, namespace: str, key: str, status: str = "success", details: Dict[str, Any] = None):
        """Log a KV-specific operation."""
        log_details = {"namespace": namespace, "key": key}
        if details:
            log_details.update(details)

        self.log_operation(f"kv.{operation}", status, log_details)

    def log_object_operation(self, operation: str, bucket: str, key: str, status: str = "success", details: Dict[str, Any] = None):
        """Log an object store operation."""
        log_details = {"bucket": bucket, "key": key}
        if details:
            log_details.update(details)

        self.log_operation(f"object.{operation}", status, log_details)

    def log_stream_operation(self, operation: str, stream_id: str, status: str = "success", details: Dict[str, Any] = None):
        """Log a stream operation."""
        log_details = {"stream_id": stream_id}
        if details:
            log_details.update(details)

        self.log_operation(f"stream.{operation}", status, log_details)

    def log_vector_operation(self, operation: str, name: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log a vector operation."""
        log_details = {"name": name}
        if details:
            log_details.update(details)

        self.log_operation(f"vector.{operation}", status, log_details)

    def log_maintenance(self, operation: str, paths: List[str], status: str = "success", details: Dict[str, Any] = None):
        """Log a maintenance pass. Always emitted at INFO."""
        log_details = {"project_count": len(paths)}
        if details:
            log_details.update(details)

        self.log_operation(f"maintenance.{operation}", status, log_details, level=logging.INFO)

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()
