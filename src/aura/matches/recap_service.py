"""AI match recaps from the Claude API, with a template when no key is configured."""

from __future__ import annotations

import logging

import anthropic

from aura.config import Settings
from aura.errors import ExternalServiceError

logger = logging.getLogger(__name__)

RECAP_PROMPT = (
    "Eres un comentarista deportivo de la NBA muy dramático y estás relatando un "
    "partido de baloncesto 1 contra 1 entre amigos. Genera un resumen dramático en "
    "español del siguiente partido:\n\n"
    "Jugador 1: {player1_name}\n"
    "Puntuación del jugador 1: {player1_score}\n"
    "Jugador 2: {player2_name}\n"
    "Puntuación del jugador 2: {player2_score}\n\n"
    "Responde solo con el resumen, en uno o dos párrafos cortos."
)


class RecapService:
    """Generate dramatic match recaps using the Claude API.

    Without an API key the service answers with a short template recap so
    local development works offline. With a key, any API failure raises
    ExternalServiceError; there are no retries.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-sonnet-4-20250514",
        max_tokens: int = 400,
        timeout_seconds: float = 20.0,
    ) -> None:
        self.model = model
        self.max_tokens = max_tokens
        self.client: anthropic.AsyncAnthropic | None = None
        if api_key:
            self.client = anthropic.AsyncAnthropic(
                api_key=api_key,
                timeout=timeout_seconds,
                max_retries=0,
            )

    @classmethod
    def from_settings(cls, settings: Settings) -> RecapService:
        return cls(
            api_key=settings.anthropic_api_key or None,
            model=settings.recap_model,
            max_tokens=settings.recap_max_tokens,
            timeout_seconds=settings.recap_timeout_seconds,
        )

    async def generate_recap(
        self,
        player1_name: str,
        player2_name: str,
        player1_score: int,
        player2_score: int,
    ) -> str:
        """Generate a recap for a finished match."""
        if self.client is None:
            return self._template_recap(player1_name, player2_name, player1_score, player2_score)

        prompt = RECAP_PROMPT.format(
            player1_name=player1_name,
            player2_name=player2_name,
            player1_score=player1_score,
            player2_score=player2_score,
        )
        try:
            response = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            logger.warning("Claude API recap failed (model=%s): %s", self.model, e)
            raise ExternalServiceError("Recap generation failed") from e

        text = "".join(block.text for block in response.content if block.type == "text").strip()
        if not text:
            raise ExternalServiceError("Recap generation returned no text")
        return text

    def _template_recap(
        self,
        player1_name: str,
        player2_name: str,
        player1_score: int,
        player2_score: int,
    ) -> str:
        """Fallback template-based recap when the API is not configured."""
        if player1_score > player2_score:
            winner, loser = player1_name, player2_name
        else:
            winner, loser = player2_name, player1_name
        high, low = max(player1_score, player2_score), min(player1_score, player2_score)

        recap = f"¡{winner} se impone a {loser} por {high}-{low}!"
        if high - low <= 2:
            recap += " Un duelo al rojo vivo decidido en los últimos segundos."
        else:
            recap += " Una exhibición que se recordará en la cancha."
        return recap
