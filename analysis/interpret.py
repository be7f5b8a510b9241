from typing import List, Optional, Sequence

from config import Settings
from gateway_client import GatewayClient
from logging_config import get_logger
from models import AnalysisResult, ChatMessage, SeverityLevel

from .extraction import interpret_response
from .prompts import SYSTEM_PROMPT

logger = get_logger(__name__)


def build_conversation(history: Sequence[ChatMessage], user_message: str) -> List[ChatMessage]:
    """Return a new conversation with the user's turn appended; ``history`` is left untouched."""
    return [*history, ChatMessage(role="user", content=user_message)]


class HealthAnalyzer:
    """
    Runs one symptom analysis: a single gateway call followed by heuristic
    interpretation of the reply.

    Settings are injected at construction so the analyzer never reads the
    environment. Pass ``client`` to swap the gateway transport (tests).
    """

    def __init__(self, settings: Settings, client: Optional[GatewayClient] = None):
        self.settings = settings
        self.client = client or GatewayClient.from_settings(settings)

    def analyze(
        self,
        messages: Sequence[ChatMessage],
        severity_level: SeverityLevel,
        user_id: Optional[str] = None,
    ) -> AnalysisResult:
        """
        Send the conversation to the gateway and interpret the reply.

        Gateway errors propagate unchanged; nothing is interpreted when the
        call fails.
        """
        logger.info(
            "Processing health analysis",
            extra={"extra_fields": {
                "user_id": user_id,
                "severity_level": SeverityLevel(severity_level).value,
                "turns": len(messages),
            }},
        )

        reply = self.client.complete(
            SYSTEM_PROMPT,
            [message.model_dump() for message in messages],
        )

        interpretation = interpret_response(reply, severity_level)

        logger.info(
            f"Analysis complete. Emergency: {interpretation.emergency}",
            extra={"extra_fields": {
                "user_id": user_id,
                "diseases_found": len(interpretation.diseases),
                "emergency": interpretation.emergency,
            }},
        )

        return AnalysisResult(response=reply, **interpretation.model_dump())

    def continue_conversation(
        self,
        history: Sequence[ChatMessage],
        user_message: str,
        severity_level: SeverityLevel,
        user_id: Optional[str] = None,
    ) -> AnalysisResult:
        """Append ``user_message`` to ``history`` and analyze the result."""
        return self.analyze(build_conversation(history, user_message), severity_level, user_id)
