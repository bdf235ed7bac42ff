"""
Structured logging for ingestion, indexing and persistence operations.
"""

import logging
from typing import Any, Dict, Optional


class StructuredLogger:
    """Structured logger for vector core operations."""

    def __init__(self, name: str = "vectorcore", level: int = logging.INFO):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(level)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str = "success",
                      details: Optional[Dict[str, Any]] = None,
                      duration_ms: Optional[float] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if duration_ms is not None:
            message += f", Duration: {duration_ms:.2f}ms"
        if details:
            message += f", Details: {details}"

        if status in ("success", "completed"):
            self.logger.info(message)
        elif status in ("error", "failed"):
            self.logger.error(message)
        else:
            self.logger.warning(message)

    def log_vector_operation(self, operation: str, record_id: str = None,
                             details: Dict[str, Any] = None, status: str = "success"):
        """Log an index operation."""
        log_details = {}
        if record_id is not None:
            log_details["record_id"] = record_id
        if details:
            log_details.update(details)

        self.log_operation(f"vector.{operation}", status, log_details)

    def log_batch_progress(self, batch_number: int, total_batches: int, batch_size: int):
        """Log the start of an embedding batch."""
        self.log_operation("embedding.batch", "success", {
            "batch": f"{batch_number}/{total_batches}",
            "chunks": batch_size,
        })

    def log_embedding_retry(self, chunk_id: str, attempt: int, max_retries: int, error: Any):
        """Log a failed embedding attempt that will be retried."""
        self.log_operation("embedding.retry", "retrying", {
            "chunk_id": chunk_id,
            "attempt": f"{attempt}/{max_retries}",
            "error": str(error)[:100],
        })

    def log_embedding_fallback(self, chunk_id: str, max_retries: int, error: Any):
        """Log a chunk that degraded to the sentinel vector."""
        self.log_operation("embedding.fallback", "failed", {
            "chunk_id": chunk_id,
            "attempts": max_retries,
            "error": str(error)[:100],
        })

    def log_persistence_operation(self, operation: str, store_name: str, collection_name: str,
                                  status: str = "success", details: Dict[str, Any] = None):
        """Log a durable store operation."""
        log_details = {"store": store_name, "collection": collection_name}
        if details:
            log_details.update(details)

        self.log_operation(f"persistence.{operation}", status, log_details)

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


def get_logger(name: str, level: int = logging.INFO) -> StructuredLogger:
    """Get a structured logger instance."""
    return StructuredLogger(name, level)


# Global logger instance
logger = StructuredLogger()
