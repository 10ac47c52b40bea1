"""
Prompt Templates for the Intent Router.

Holds the classifier system prompt and the generic handler system prompt.
"""

from typing import Optional

from .handlers import DEFAULT_HANDLER, HANDLER_DESCRIPTIONS, HandlerName


class PromptTemplates:
    """
    Manages prompt templates for the router.

    The classifier only ever sees masked text, so its prompt explains the
    token format and asks it to echo tokens unchanged.
    """

    CLASSIFIER_SYSTEM_PROMPT = """You are the routing orchestrator of a security awareness platform.

Your only job is to decide which specialist handles the user's request.
You never answer the request yourself and you never call tools.

Available handlers:
{handler_list}

Personal data in the input has been replaced by tokens such as
[USER-1A2B3C4D], [EMAIL-1A2B3C4D] or [PHONE-1A2B3C4D]. Copy any token you
need into taskContext exactly as written. Never guess what a token stands for.

Input format:
- An optional CONVERSATION HISTORY section with "User:" / "Assistant:" lines
- A CURRENT MESSAGE section (or the bare message when there is no history)
Route on the current message; use the history only to resolve references
such as "do the same for him" or "now upload it".

If nothing fits, choose {default_handler}.

Respond with a single JSON object and nothing else:
{{"agent": "<handler name>", "taskContext": "<one sentence for the handler, or empty>", "reasoning": "<short reason>"}}"""

    HANDLER_SYSTEM_PROMPTS = {
        HandlerName.MICROLEARNING: "You create, upload and assign security awareness microlearning.",
        HandlerName.PHISHING_EMAIL: "You design phishing email simulations and their landing pages.",
        HandlerName.SMISHING_SMS: "You design SMS phishing simulations.",
        HandlerName.VISHING_CALL: "You plan and summarize voice phishing simulation calls.",
        HandlerName.DEEPFAKE_VIDEO: "You script deepfake awareness videos.",
        HandlerName.USER_INFO: "You look up users, analyze their risk and suggest a training plan.",
        HandlerName.POLICY_SUMMARY: "You answer questions about company security policies.",
    }

    @classmethod
    def handler_list(cls) -> str:
        return "\n".join(f"- {h.value}: {HANDLER_DESCRIPTIONS[h]}" for h in HandlerName)

    @classmethod
    def get_classifier_prompt(
        cls,
        default_handler: HandlerName = DEFAULT_HANDLER,
        custom_instructions: Optional[str] = None
    ) -> str:
        """
        Get the classifier system prompt.

        Args:
            default_handler: Handler named as the catch-all choice
            custom_instructions: Additional custom instructions

        Returns:
            Formatted system prompt
        """
        prompt = cls.CLASSIFIER_SYSTEM_PROMPT.format(
            handler_list=cls.handler_list(),
            default_handler=default_handler.value,
        )
        if custom_instructions:
            prompt += f"\n\nAdditional instructions:\n{custom_instructions}"
        return prompt

    @classmethod
    def get_handler_prompt(cls, handler: HandlerName) -> str:
        """System prompt for a handler reached through the LLM dispatcher."""
        return cls.HANDLER_SYSTEM_PROMPTS.get(handler, cls.HANDLER_SYSTEM_PROMPTS[DEFAULT_HANDLER])
