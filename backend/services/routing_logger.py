"""JSON Lines log of intent routing decisions."""
import json
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from config import ROUTING_LOG_PATH

logger = logging.getLogger(__name__)


class RoutingLogger:
    """Appends one JSON object per routed message to a log file."""

    def __init__(self, log_file_path: str = ROUTING_LOG_PATH):
        """
        Open (or create) the routing log.

        Args:
            log_file_path: Path of the .jsonl file; parent directories are created
        """
        self.log_file_path = Path(log_file_path)
        self.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._file = open(self.log_file_path, "a", encoding="utf-8")
        logger.info(f"RoutingLogger writing to {self.log_file_path}")

    def log_routing_decision(
        self,
        query: str,
        intent: str,
        rule_triggered: str,
        use_ai: bool,
        latency_ms: int,
        entity: Optional[str] = None,
        model_used: Optional[str] = None,
        conversation_id: Optional[str] = None,
        outcome: str = "answered"
    ) -> Dict[str, Any]:
        """
        Write one routing decision.

        Args:
            query: The customer message
            intent: Classified intent category
            rule_triggered: Rule that produced the classification
            use_ai: Whether the external model was consulted
            latency_ms: End-to-end handling time
            entity: Extracted order number / product name / policy type
            model_used: Model name when use_ai is true
            conversation_id: Conversation the turn was stored in
            outcome: "answered", "rate_limited" or "error"

        Returns:
            The logged entry
        """
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "query": query,
            "intent": intent,
            "rule_triggered": rule_triggered,
            "entity": entity,
            "use_ai": use_ai,
            "model_used": model_used,
            "latency_ms": latency_ms,
            "conversation_id": conversation_id,
            "outcome": outcome,
        }

        with self._lock:
            if self._file.closed:
                logger.warning("RoutingLogger is closed, dropping entry")
                return entry
            self._file.write(json.dumps(entry, ensure_ascii=False) + "\n")
            self._file.flush()

        logger.debug(f"Logged routing decision: intent={intent}, outcome={outcome}")
        return entry

    def close(self) -> None:
        with self._lock:
            if not self._file.closed:
                self._file.close()
