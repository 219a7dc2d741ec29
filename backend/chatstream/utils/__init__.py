from chatstream.utils.sse import format_outcome_sse, format_sse
from chatstream.utils.message_helpers import format_for_gemini, format_for_openai, outbound_history

__all__ = ["format_for_gemini", "format_for_openai", "format_outcome_sse", "format_sse", "outbound_history"]
