"""AI labeler that turns a question/answer exchange into a short title."""

import os

from anthropic import Anthropic

SYSTEM_PROMPT = """You are a conversation title assistant. Given an exchange between a user and an AI assistant, write one concise title for it.

Requirements:
- At most 15 words, shorter is better
- Use the same language as the assistant's reply
- Capture the core topic of the exchange
- No quotes and no trailing punctuation
- Output the title only, without any explanation"""


class LabelAgent:
    """Generate short entry labels with Claude."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-3-5-haiku-latest",
        client: Anthropic | None = None,
    ):
        """Initialize the label agent.

        Args:
            api_key: Anthropic API key. If None, uses ANTHROPIC_API_KEY env var.
            model: The Claude model to use.
            client: Preconfigured client, mainly for tests.
        """
        if client is None:
            api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
            if not api_key:
                raise ValueError(
                    "Anthropic API key required. Set ANTHROPIC_API_KEY environment variable "
                    "or pass api_key parameter."
                )
            client = Anthropic(api_key=api_key)

        self.client = client
        self.model = model

    def generate_label(self, text: str) -> str:
        """Generate a label for a formatted exchange.

        Args:
            text: The exchange, as sent by the panel.

        Returns:
            The trimmed label, possibly empty.
        """
        response = self.client.messages.create(
            model=self.model,
            max_tokens=50,
            temperature=0.3,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": text}],
        )

        if not response.content:
            return ""
        return response.content[0].text.strip()
